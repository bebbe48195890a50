"""SQLAlchemy ORM models for the local cache."""

import json
from datetime import UTC, date, datetime

from sqlalchemy import Date, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from practicesync.domain.entities import (
    ItemType,
    LibraryItem,
    PracticeLog,
    PracticeSession,
)


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! Timestamps come back naive.
# Attach UTC before comparing with datetime.now(UTC).
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Yo, every cached row is keyed by the REMOTE id. That id is the fingerprint that makes
# upsert-and-prune work: same id means overwrite in place, missing id means delete.
class CachedLibraryItemModel(Base):
    """Cached copy of a remote library item."""

    __tablename__ = "cached_library_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    item_type: Mapped[str] = mapped_column(String(32), nullable=False, default="Unknown")
    artist: Mapped[str | None] = mapped_column(String(512), nullable=True)
    # JSON list of strings (SQLite has no array type)
    tags: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    last_practiced: Mapped[date | None] = mapped_column(Date, nullable=True)
    times_practiced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cached_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    @classmethod
    def from_entity(cls, item: LibraryItem) -> "CachedLibraryItemModel":
        model = cls(id=item.id)
        model.apply(item)
        return model

    def apply(self, item: LibraryItem) -> None:
        """Overwrite every column from the entity."""
        self.name = item.name
        self.item_type = item.type.value
        self.artist = item.artist
        self.tags = json.dumps(list(item.tags))
        self.last_practiced = item.last_practiced
        self.times_practiced = item.times_practiced
        self.cached_at = utc_now()

    def to_entity(self) -> LibraryItem:
        try:
            tags = json.loads(self.tags or "[]")
        except ValueError:
            tags = []
        return LibraryItem(
            id=self.id,
            name=self.name,
            type=ItemType.from_remote(self.item_type),
            artist=self.artist,
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
            last_practiced=self.last_practiced,
            times_practiced=self.times_practiced,
        )


class CachedSessionModel(Base):
    """Cached copy of a remote practice session."""

    __tablename__ = "cached_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    session_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    goal_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    cached_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    @classmethod
    def from_entity(cls, session: PracticeSession) -> "CachedSessionModel":
        model = cls(id=session.id)
        model.apply(session)
        return model

    def apply(self, session: PracticeSession) -> None:
        self.name = session.name
        self.session_date = session.date
        self.goal_minutes = session.goal_minutes
        self.cached_at = utc_now()

    def to_entity(self) -> PracticeSession:
        return PracticeSession(
            id=self.id,
            name=self.name,
            date=self.session_date,
            goal_minutes=self.goal_minutes,
        )


# Hey future me - "order" is a SQL keyword, so the column is sort_order. No foreign
# key to cached_sessions: logs of a session can be cached before the session list is.
class CachedLogModel(Base):
    """Cached copy of a remote practice log."""

    __tablename__ = "cached_logs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    item_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    session_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    planned_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    actual_minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cached_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

    @classmethod
    def from_entity(cls, log: PracticeLog) -> "CachedLogModel":
        model = cls(id=log.id)
        model.apply(log)
        return model

    def apply(self, log: PracticeLog) -> None:
        self.name = log.name
        self.item_id = log.item_id
        self.session_id = log.session_id
        self.planned_minutes = log.planned_minutes
        self.actual_minutes = log.actual_minutes
        self.sort_order = log.order
        self.notes = log.notes
        self.cached_at = utc_now()

    def to_entity(self) -> PracticeLog:
        return PracticeLog(
            id=self.id,
            name=self.name,
            item_id=self.item_id,
            session_id=self.session_id,
            planned_minutes=self.planned_minutes,
            actual_minutes=self.actual_minutes,
            order=self.sort_order,
            notes=self.notes,
        )


class CacheMetadataModel(Base):
    """One row per cached collection ("library", "sessions")."""

    __tablename__ = "cache_metadata"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )


class CredentialModel(Base):
    """Stored secrets (the remote API key)."""

    __tablename__ = "credentials"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )
