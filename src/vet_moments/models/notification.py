"""
Notification model for the vet-moments package.

The feed only writes notifications. Reading and marking them as read belongs
to the notifications subsystem.
"""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class Notification(BaseModel):
    """A notification addressed to an identity-provider user."""

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Identity provider user id of the recipient",
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    message: Mapped[str] = mapped_column(Text, nullable=False)

    notification_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="moment"
    )

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
