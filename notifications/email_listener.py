"""
Welcome-email listener.

Subscribes to MemberCreated events and sends the new member a welcome email.
The member service never calls this directly and never hears back from it.

Failure policy:
- A failed send (or an exception while rendering) is logged and appended to
  ``failed_deliveries``
- There is no retry, and the already-committed member is left alone; undoing
  it here would turn a cheap notification into a distributed transaction
"""

import logging
import threading
from typing import Optional

from notifications.channels import EmailChannel, NotificationResult
from notifications.event_bus import Event, EventBus
from notifications.events import EventTypes
from notifications.templates import NotificationType, render_notification

logger = logging.getLogger("email_listener")


class MemberEmailListener:
    """
    Event-driven welcome email sender.

    Example:
        listener = MemberEmailListener(bus, EmailChannel())
        listener.start()
        # Every MemberCreated published on ``bus`` now triggers an email
    """

    def __init__(self, event_bus: EventBus, email_channel: Optional[EmailChannel] = None):
        self.event_bus = event_bus
        self.email_channel = email_channel or EmailChannel()
        self.failed_deliveries: list[NotificationResult] = []
        self._lock = threading.Lock()
        self._started = False

    def start(self) -> None:
        """Subscribe to member events."""
        if self._started:
            logger.warning("MemberEmailListener already started")
            return
        self.event_bus.subscribe(EventTypes.MEMBER_CREATED, self._handle_member_created)
        self._started = True
        logger.info("MemberEmailListener started - subscribed to events")

    def stop(self) -> None:
        """Stop the listener by unsubscribing."""
        if not self._started:
            return
        self.event_bus.unsubscribe(EventTypes.MEMBER_CREATED, self._handle_member_created)
        self._started = False
        logger.info("MemberEmailListener stopped")

    def get_failed_deliveries(self) -> list[NotificationResult]:
        with self._lock:
            return list(self.failed_deliveries)

    def _handle_member_created(self, event: Event) -> None:
        payload = event.payload
        email = payload["email"]
        logger.info(f"Handling MemberCreated: member={payload.get('member_id')}, email={email}")

        try:
            subject, body = render_notification(NotificationType.MEMBER_WELCOME, **payload)
            result = self.email_channel.send(email, subject, body)
        except Exception as e:
            logger.error(f"Failed to send welcome email to {email}: {e}")
            result = NotificationResult(
                success=False,
                recipient=email,
                subject="",
                body="",
                sender=self.email_channel.sender,
                error=str(e),
            )

        if not result.success:
            logger.error(
                f"Welcome email for member {payload.get('member_id')} was not delivered; "
                f"member stays registered"
            )
            with self._lock:
                self.failed_deliveries.append(result)
