"""
Mock email channel.

The channel simulates sending email by logging the output. In a real system
it would integrate with an SMTP relay or a service like SendGrid, AWS SES or
Mailgun.

Design decisions:
- All sends are logged for visibility
- The channel records every attempt for test assertions
- Latency and failures can be simulated, which is how the "email fails
  after the member was already saved" situation is reproduced
"""

import logging
import random
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger("notifications")


@dataclass
class NotificationResult:
    """
    Result of an email send attempt.

    Captures success/failure and metadata for debugging and testing.
    """
    success: bool
    recipient: str
    subject: str
    body: str
    sender: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        return f"{status} EMAIL to {self.recipient}: {self.subject}"


class EmailChannel:
    """
    Mock email channel.

    Logs email sends and tracks them for test assertions.
    Can simulate slow delivery and failures.
    """

    def __init__(
        self,
        fail_rate: float = 0.0,
        delay_seconds: float = 0.0,
        sender: str = "noreply@members.local",
    ):
        """
        Initialize the email channel.

        Args:
            fail_rate: Probability of send failure (0.0 to 1.0)
            delay_seconds: Simulated delivery latency per message
            sender: From address used on every message
        """
        self.fail_rate = fail_rate
        self.delay_seconds = delay_seconds
        self.sender = sender
        self.sent_messages: list[NotificationResult] = []
        self._lock = threading.Lock()

    def send(self, to: str, subject: str, body: str) -> NotificationResult:
        """
        Send an email (mock implementation).

        Returns:
            NotificationResult indicating success/failure
        """
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)

        if random.random() < self.fail_rate:
            result = NotificationResult(
                success=False,
                recipient=to,
                subject=subject,
                body=body,
                sender=self.sender,
                error="Simulated email delivery failure",
            )
            logger.error(f"[EMAIL FAILED] To: {to} | Subject: {subject} | Error: {result.error}")
        else:
            result = NotificationResult(
                success=True,
                recipient=to,
                subject=subject,
                body=body,
                sender=self.sender,
            )
            logger.info(f"[EMAIL] To: {to} | Subject: {subject}")
            logger.debug(f"[EMAIL BODY] {body}")

        with self._lock:
            self.sent_messages.append(result)
        return result

    def get_sent_count(self) -> int:
        """Get the number of send attempts (for testing)."""
        with self._lock:
            return len(self.sent_messages)

    def get_successful_sends(self) -> list[NotificationResult]:
        with self._lock:
            return [m for m in self.sent_messages if m.success]

    def clear_history(self):
        """Clear sent message history (useful between tests)."""
        with self._lock:
            self.sent_messages.clear()

    def find_message_to(self, recipient: str) -> Optional[NotificationResult]:
        """Find a message sent to a specific recipient."""
        with self._lock:
            for msg in self.sent_messages:
                if msg.recipient == recipient:
                    return msg
        return None
