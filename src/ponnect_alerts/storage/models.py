"""ORM rows for admin-curated alerts, bookmarks and the users that own them."""

from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _iso(value: dt.datetime | None) -> str | None:
    if value is None:
        return None
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return value.isoformat()


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(320), nullable=False, unique=True)
    name = Column(String(256), nullable=False, default="")
    role = Column(String(16), nullable=False, default="USER")

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role}>"


class RegionalAlert(Base):
    __tablename__ = "regional_alerts"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(512), nullable=False)
    message = Column(Text, nullable=False)
    region = Column(String(8), nullable=False, index=True)
    severity = Column(String(16), nullable=False)
    type = Column(String(16), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    active_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "region": self.region,
            "severity": self.severity,
            "type": self.type,
            "isActive": self.is_active,
            "activeUntil": _iso(self.active_until),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<RegionalAlert id={self.id} title={self.title!r:.40}>"


class SavedAlert(Base):
    __tablename__ = "saved_alerts"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    alert_id = Column(
        String(36), ForeignKey("regional_alerts.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "alert_id", name="uq_saved_alerts_user_alert"),
    )
