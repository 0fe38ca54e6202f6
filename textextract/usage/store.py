"""Storage backends for users and per-image usage logs.

The backend is chosen once at startup from the configured database URL:
a relational store through SQLAlchemy when the URL is usable, otherwise an
in-memory store whose contents are lost when the process exits.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from textextract.utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_DATABASE_BACKENDS = ("postgresql", "sqlite")


@dataclass
class UserRecord:
    """A registered user and their entitlement flag."""

    id: str
    username: str
    email: str
    is_premium: bool = False


@dataclass
class UsageLogEntry:
    """One processed image."""

    user_id: str
    processed_at: datetime
    extracted_words: int
    confidence: int


class UsageStore(ABC):
    """Persistence interface used by the usage tracker."""

    @abstractmethod
    def get_user(self, user_id: str) -> UserRecord | None:
        """Return the user with ``user_id``, or ``None``."""

    @abstractmethod
    def save_user(self, user: UserRecord) -> None:
        """Insert or update a user."""

    @abstractmethod
    def count_usage(self, user_id: str, start: datetime, end: datetime) -> int:
        """Count usage logs for a user with ``start <= processed_at < end``."""

    @abstractmethod
    def add_usage(self, entry: UsageLogEntry) -> None:
        """Append a usage log entry."""


class MemoryUsageStore(UsageStore):
    """Process-local store backed by a dict and a list."""

    def __init__(self) -> None:
        self._users: dict[str, UserRecord] = {}
        self._logs: list[UsageLogEntry] = []
        self._lock = threading.Lock()

    def get_user(self, user_id: str) -> UserRecord | None:
        with self._lock:
            return self._users.get(user_id)

    def save_user(self, user: UserRecord) -> None:
        with self._lock:
            self._users[user.id] = user

    def count_usage(self, user_id: str, start: datetime, end: datetime) -> int:
        with self._lock:
            return sum(
                1
                for entry in self._logs
                if entry.user_id == user_id and start <= entry.processed_at < end
            )

    def add_usage(self, entry: UsageLogEntry) -> None:
        with self._lock:
            self._logs.append(entry)


def create_usage_store(database_url: str | None) -> UsageStore:
    """Select the storage backend for this process.

    Args:
        database_url: SQLAlchemy URL. PostgreSQL and SQLite URLs select the
            relational store; anything else selects the memory store.

    Returns:
        An initialized usage store.
    """
    if not database_url:
        logger.info("DATABASE_URL not configured, using memory storage")
        return MemoryUsageStore()

    try:
        url = make_url(database_url)
    except ArgumentError:
        logger.warning("DATABASE_URL is not a valid URL, using memory storage")
        return MemoryUsageStore()

    if url.get_backend_name() not in SUPPORTED_DATABASE_BACKENDS:
        logger.warning(
            "Unsupported database backend %s, using memory storage",
            url.get_backend_name(),
        )
        return MemoryUsageStore()

    from .sql_store import SqlUsageStore

    store = SqlUsageStore(database_url)
    store.initialize()
    logger.info("Using %s database storage", url.get_backend_name())
    return store
