"""
Notification Pydantic schemas.

Notification fan-out builds a ``NotificationCreate`` from a template keyed by
``NotificationKind`` and writes it through the store.
"""

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NotificationKind(enum.Enum):
    """Engagement events that notify the post owner."""

    REACTION = "reaction"
    COMMENT = "comment"


# title, message
NOTIFICATION_TEMPLATES = {
    NotificationKind.REACTION: ("New reaction", "Someone liked your post"),
    NotificationKind.COMMENT: ("New comment", "Someone commented on your post"),
}

MOMENT_NOTIFICATION_TYPE = "moment"


class NotificationCreate(BaseModel):
    """Schema for a notification row written by the feed."""

    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(..., description="Recipient identity user id", min_length=1)
    title: str = Field(..., description="Short title", min_length=1, max_length=200)
    message: str = Field(..., description="Notification body", min_length=1)
    notification_type: str = Field(
        MOMENT_NOTIFICATION_TYPE, description="Notification category", max_length=50
    )

    @classmethod
    def for_kind(
        cls, user_id: str, kind: NotificationKind, summary: Optional[str] = None
    ) -> "NotificationCreate":
        """
        Build the notification for an engagement event.

        ``summary`` replaces the default message when given (for example a
        snippet of the comment).
        """
        title, message = NOTIFICATION_TEMPLATES[kind]
        return cls(user_id=user_id, title=title, message=summary or message)

    @field_validator("notification_type")
    @classmethod
    def validate_notification_type(cls, v: str) -> str:
        return v.lower()
