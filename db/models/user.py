"""SQLAlchemy models for per-user settings and notifications.

- user_settings
- account_notifications
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Index, Text, UniqueConstraint

from db.models.base import Base, JSONType, new_id, utcnow


class UserSetting(Base):
    """Named JSON setting per user.

    Table: user_settings
    """

    __tablename__ = "user_settings"

    id = Column(Text, primary_key=True, default=new_id)
    user_id = Column(Text, nullable=False)
    setting_name = Column(Text, nullable=False)
    setting_value = Column(JSONType, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "setting_name", name="uq_user_settings_name"),)


class AccountNotification(Base):
    """Notification attached to a paper trading account.

    Table: account_notifications
    """

    __tablename__ = "account_notifications"

    id = Column(Text, primary_key=True, default=new_id)
    user_id = Column(Text, nullable=False)
    account_id = Column(Text, nullable=True)
    notification_type = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False, default="")
    severity = Column(Text, nullable=False, default="info")  # info|warning|error
    is_read = Column(Boolean, nullable=False, default=False)
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("idx_account_notifications_user", "user_id", "is_read"),)
