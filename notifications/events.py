"""
Event definitions for member lifecycle notifications.

Design decisions:
- Events are named in past tense (MemberCreated, not CreateMember)
- Events carry everything a listener needs, so the email sender never has
  to query the store back
- Helper functions create properly structured Event objects
"""

from typing import TYPE_CHECKING

from notifications.event_bus import Event

if TYPE_CHECKING:
    from members.models import Member


class EventTypes:
    """Constants for event type names."""
    MEMBER_CREATED = "MemberCreated"


def member_created(member: "Member", source: str = "member-service") -> Event:
    """
    Create a MemberCreated event.

    Published after a new member has been committed. The payload is a JSON
    friendly snapshot of the saved record.
    """
    return Event(
        event_type=EventTypes.MEMBER_CREATED,
        source=source,
        payload=member.model_dump(mode="json"),
    )
