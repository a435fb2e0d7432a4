"""
Member notifications.

This package implements the decoupled side of member creation:
- The event bus the member service publishes on
- Event definitions
- The mock email channel and templates
- The listener that turns MemberCreated into a welcome email
"""

from notifications.event_bus import Event, EventBus
from notifications.events import EventTypes, member_created
from notifications.channels import EmailChannel, NotificationResult
from notifications.email_listener import MemberEmailListener

__all__ = [
    "Event",
    "EventBus",
    "EventTypes",
    "member_created",
    "EmailChannel",
    "NotificationResult",
    "MemberEmailListener",
]
