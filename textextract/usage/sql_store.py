"""Relational usage store implemented with SQLAlchemy."""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    create_engine,
    func,
    select,
)
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from .store import UsageLogEntry, UsageStore, UserRecord


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), index=True)
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)


class UsageLog(Base):
    __tablename__ = "usage_logs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    image_processed: Mapped[datetime] = mapped_column(DateTime, index=True)
    extracted_words: Mapped[int] = mapped_column(Integer, default=0)
    confidence: Mapped[int] = mapped_column(Integer, default=0)


class SqlUsageStore(UsageStore):
    """Usage store persisted in PostgreSQL or SQLite.

    Args:
        database_url: SQLAlchemy database URL.
    """

    def __init__(self, database_url: str) -> None:
        engine_kwargs: dict = {}
        url = make_url(database_url)
        in_memory = url.database in (None, "", ":memory:")
        if url.get_backend_name() == "sqlite" and in_memory:
            # One shared connection, otherwise each session sees an empty db.
            engine_kwargs = {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        self.engine = create_engine(database_url, **engine_kwargs)
        self._session = sessionmaker(self.engine, expire_on_commit=False)

    def initialize(self) -> None:
        """Create the tables if they do not exist."""
        Base.metadata.create_all(self.engine)

    def get_user(self, user_id: str) -> UserRecord | None:
        with self._session() as session:
            user = session.get(User, user_id)
            if user is None:
                return None
            return UserRecord(
                id=user.id,
                username=user.username,
                email=user.email,
                is_premium=user.is_premium,
            )

    def save_user(self, user: UserRecord) -> None:
        with self._session.begin() as session:
            row = session.get(User, user.id)
            if row is None:
                session.add(
                    User(
                        id=user.id,
                        username=user.username,
                        email=user.email,
                        is_premium=user.is_premium,
                    )
                )
            else:
                row.username = user.username
                row.email = user.email
                row.is_premium = user.is_premium

    def count_usage(self, user_id: str, start: datetime, end: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(UsageLog)
            .where(
                UsageLog.user_id == user_id,
                UsageLog.image_processed >= start,
                UsageLog.image_processed < end,
            )
        )
        with self._session() as session:
            return int(session.scalar(stmt) or 0)

    def add_usage(self, entry: UsageLogEntry) -> None:
        with self._session.begin() as session:
            session.add(
                UsageLog(
                    user_id=entry.user_id,
                    image_processed=entry.processed_at,
                    extracted_words=entry.extracted_words,
                    confidence=entry.confidence,
                )
            )
