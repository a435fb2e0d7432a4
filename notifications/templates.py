"""
Notification message templates.

Templates are plain strings with {variable} placeholders rendered through
Python's string formatting. In a production system they might live in a
database for runtime editing, be localized, or use a proper templating
engine (Jinja2).
"""

from dataclasses import dataclass
from enum import Enum


class NotificationType(str, Enum):
    """Supported notification types."""
    MEMBER_WELCOME = "member_welcome"


@dataclass
class NotificationTemplate:
    """An email template: subject line plus body."""
    notification_type: NotificationType
    email_subject: str
    email_body: str

    def render_email(self, **kwargs) -> tuple[str, str]:
        """
        Render the template with provided variables.

        Returns:
            Tuple of (subject, body)
        """
        return (
            self.email_subject.format(**kwargs),
            self.email_body.format(**kwargs),
        )


# =============================================================================
# Template Definitions
# =============================================================================

MEMBER_WELCOME_TEMPLATE = NotificationTemplate(
    notification_type=NotificationType.MEMBER_WELCOME,
    email_subject="Welcome aboard, {name}!",
    email_body="""Hi {name},

Your membership has been created.

  Member number: {member_id}
  Email:         {email}
  Phone:         {phone}

If you did not sign up, please contact support and we will close the account.

Thanks,
The Members Team""",
)

TEMPLATES: dict[NotificationType, NotificationTemplate] = {
    NotificationType.MEMBER_WELCOME: MEMBER_WELCOME_TEMPLATE,
}


def get_template(notification_type: NotificationType) -> NotificationTemplate:
    """
    Get the template for a notification type.

    Raises:
        KeyError: If no template exists for this type
    """
    return TEMPLATES[notification_type]


def render_notification(notification_type: NotificationType, **context) -> tuple[str, str]:
    """Render a notification's (subject, body)."""
    return get_template(notification_type).render_email(**context)
