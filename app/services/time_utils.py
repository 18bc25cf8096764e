from datetime import datetime, timezone

from sqlalchemy.orm import Session


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def db_datetime(db: Session, value: datetime) -> datetime:
    """SQLite stores naive datetimes; strip tzinfo for it only."""
    bind = db.get_bind()
    if bind and bind.dialect.name == "sqlite":
        return value.replace(tzinfo=None)
    return value


def isoformat_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
