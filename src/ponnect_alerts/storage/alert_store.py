import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from sqlalchemy import case, create_engine, delete, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ponnect_alerts.errors import NotFoundError, StoreFailure, ValidationError
from ponnect_alerts.models.schemas import ALERT_TYPES, STATE_REGIONS, STORED_SEVERITIES
from ponnect_alerts.storage.models import Base, RegionalAlert, SavedAlert, User

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "message", "region", "severity", "type")
ROLES = ("USER", "EXPERT", "MODERATOR", "ADMIN")

_SEVERITY_ORDER = case(
    (RegionalAlert.severity == "CRITICAL", 2),
    (RegionalAlert.severity == "WARNING", 1),
    else_=0,
)


def create_session_factory(database_url: str) -> sessionmaker:
    """Engine plus schema for the given URL; in-memory SQLite shares one connection."""
    kwargs: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url == "sqlite://":
            kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)


def _parse_datetime(value: Any, field: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        cleaned = value.strip()
        if cleaned.endswith("Z"):
            cleaned = cleaned[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(cleaned)
        except ValueError as exc:
            raise ValidationError(f"Invalid {field}") from exc
    else:
        raise ValidationError(f"Invalid {field}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _check_choice(fields: dict[str, Any], name: str, choices: tuple[str, ...]) -> None:
    if name in fields and fields[name] not in choices:
        raise ValidationError(f"Invalid {name}")


def _check_text(fields: dict[str, Any], name: str) -> None:
    if name in fields and (
        not isinstance(fields[name], str) or not fields[name].strip()
    ):
        raise ValidationError(f"Invalid {name}")


def validate_alert_fields(fields: dict[str, Any], partial: bool) -> dict[str, Any]:
    """Check curated-alert input and map API keys onto column names."""
    if not isinstance(fields, dict):
        raise ValidationError("Invalid request body")
    if not partial and any(not fields.get(name) for name in REQUIRED_FIELDS):
        raise ValidationError("Missing required fields")

    _check_text(fields, "title")
    _check_text(fields, "message")
    _check_choice(fields, "region", STATE_REGIONS)
    _check_choice(fields, "severity", STORED_SEVERITIES)
    _check_choice(fields, "type", ALERT_TYPES)

    values: dict[str, Any] = {
        name: fields[name] for name in REQUIRED_FIELDS if name in fields
    }
    if "activeUntil" in fields:
        values["active_until"] = _parse_datetime(fields["activeUntil"], "activeUntil")
    if "isActive" in fields:
        if not isinstance(fields["isActive"], bool):
            raise ValidationError("Invalid isActive")
        values["is_active"] = fields["isActive"]
    return values


class AlertStore:
    """CRUD over admin-curated regional alerts and per-user bookmarks."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str) -> "AlertStore":
        return cls(create_session_factory(database_url))

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Alert store operation failed")
            raise StoreFailure() from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def list_active(
        self,
        region: str | None = None,
        alert_type: str | None = None,
        active_only: bool = True,
        now: datetime | None = None,
    ) -> list[dict]:
        stmt = select(RegionalAlert)
        if active_only:
            current = now or datetime.now(timezone.utc)
            stmt = stmt.where(
                RegionalAlert.is_active.is_(True),
                or_(
                    RegionalAlert.active_until.is_(None),
                    RegionalAlert.active_until >= current,
                ),
            )
        if region and region.lower() != "all":
            stmt = stmt.where(RegionalAlert.region == region.upper())
        if alert_type and alert_type.lower() != "all":
            stmt = stmt.where(RegionalAlert.type == alert_type.upper())
        stmt = stmt.order_by(_SEVERITY_ORDER.desc(), RegionalAlert.created_at.desc())

        with self._session() as session:
            return [row.to_dict() for row in session.scalars(stmt)]

    def get(self, alert_id: str) -> dict:
        with self._session() as session:
            row = session.get(RegionalAlert, alert_id)
            if row is None:
                raise NotFoundError()
            return row.to_dict()

    def create(self, fields: dict[str, Any]) -> dict:
        values = validate_alert_fields(fields, partial=False)
        with self._session() as session:
            row = RegionalAlert(**values)
            session.add(row)
            session.flush()
            logger.info("Created regional alert %s (%s)", row.id, row.region)
            return row.to_dict()

    def update(self, alert_id: str, fields: dict[str, Any]) -> dict:
        values = validate_alert_fields(fields, partial=True)
        with self._session() as session:
            row = session.get(RegionalAlert, alert_id)
            if row is None:
                raise NotFoundError()
            for name, value in values.items():
                setattr(row, name, value)
            session.flush()
            return row.to_dict()

    def delete(self, alert_id: str) -> None:
        with self._session() as session:
            row = session.get(RegionalAlert, alert_id)
            if row is None:
                raise NotFoundError()
            session.execute(delete(SavedAlert).where(SavedAlert.alert_id == alert_id))
            session.delete(row)
            logger.info("Deleted regional alert %s", alert_id)

    def toggle_saved(self, user_id: str, alert_id: str) -> bool:
        """Flip the bookmark and return whether the alert is now saved."""
        with self._session() as session:
            if session.get(RegionalAlert, alert_id) is None:
                raise NotFoundError()
            existing = session.scalars(
                select(SavedAlert).where(
                    SavedAlert.user_id == user_id, SavedAlert.alert_id == alert_id
                )
            ).first()
            if existing is not None:
                session.delete(existing)
                return False
            session.add(SavedAlert(user_id=user_id, alert_id=alert_id))
            return True

    def is_saved(self, user_id: str, alert_id: str) -> bool:
        with self._session() as session:
            existing = session.scalars(
                select(SavedAlert.id).where(
                    SavedAlert.user_id == user_id, SavedAlert.alert_id == alert_id
                )
            ).first()
            return existing is not None

    def get_user(self, user_id: str) -> dict | None:
        with self._session() as session:
            user = session.get(User, user_id)
            if user is None:
                return None
            return {"id": user.id, "email": user.email, "name": user.name, "role": user.role}

    def create_user(self, email: str, name: str = "", role: str = "USER") -> dict:
        if role not in ROLES:
            raise ValidationError("Invalid role")
        with self._session() as session:
            user = User(email=email, name=name, role=role)
            session.add(user)
            session.flush()
            return {"id": user.id, "email": user.email, "name": user.name, "role": user.role}
