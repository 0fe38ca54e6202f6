"""Tests for usage storage backends and daily limit enforcement."""

from datetime import date, datetime, timedelta

import pytest

from textextract.usage.sql_store import SqlUsageStore
from textextract.usage.store import (
    MemoryUsageStore,
    UsageLogEntry,
    UsageStore,
    UserRecord,
    create_usage_store,
)
from textextract.usage.tracker import (
    LIMIT_EXCEEDED_REASON,
    UNLIMITED,
    USER_NOT_FOUND_REASON,
    UsageTracker,
    day_bounds,
)


class FakeClock:
    """Settable replacement for datetime.now."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest) -> UsageStore:
    """Each test runs against both storage backends."""
    if request.param == "memory":
        return MemoryUsageStore()
    sql_store = SqlUsageStore("sqlite://")
    sql_store.initialize()
    return sql_store


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 10, 30))


@pytest.fixture
def tracker(store: UsageStore, clock: FakeClock) -> UsageTracker:
    return UsageTracker(store, daily_limit=3, clock=clock)


class TestStores:
    """Tests shared by both backends."""

    def test_save_and_get_user(self, store: UsageStore) -> None:
        store.save_user(UserRecord("u1", "alice", "a@example.com"))
        user = store.get_user("u1")
        assert user is not None
        assert user.username == "alice"
        assert user.is_premium is False

    def test_missing_user(self, store: UsageStore) -> None:
        assert store.get_user("nobody") is None

    def test_save_user_updates(self, store: UsageStore) -> None:
        store.save_user(UserRecord("u1", "alice", "a@example.com"))
        store.save_user(UserRecord("u1", "alice", "a@example.com", is_premium=True))
        assert store.get_user("u1").is_premium is True

    def test_count_window_end_exclusive(self, store: UsageStore) -> None:
        store.save_user(UserRecord("u1", "alice", "a@example.com"))
        start, end = day_bounds(date(2024, 5, 1))
        for when in (start, start + timedelta(hours=23), end):
            store.add_usage(UsageLogEntry("u1", when, 10, 90))
        assert store.count_usage("u1", start, end) == 2


class TestUsageTracker:
    """Tests for entitlement decisions."""

    def test_unknown_user_denied(self, tracker: UsageTracker) -> None:
        decision = tracker.can_process_image("ghost")
        assert decision.can_process is False
        assert decision.reason == USER_NOT_FOUND_REASON

    def test_free_user_limit(self, tracker: UsageTracker) -> None:
        tracker.register_user("u1", "alice", "a@example.com")
        assert tracker.can_process_image("u1").can_process is True

        tracker.record_image_processing("u1", 10, 90)
        tracker.record_image_processing("u1", 12, 85)
        decision = tracker.can_process_image("u1")
        assert decision.can_process is True
        assert decision.image_count == 2

        tracker.record_image_processing("u1", 5, 70)
        decision = tracker.can_process_image("u1")
        assert decision.can_process is False
        assert decision.image_count == 3
        assert decision.daily_limit == 3
        assert decision.reason == LIMIT_EXCEEDED_REASON

    def test_premium_unlimited(self, tracker: UsageTracker) -> None:
        tracker.register_user("u1", is_premium=True)
        for _ in range(5):
            tracker.record_image_processing("u1", 1, 80)
        decision = tracker.can_process_image("u1")
        assert decision.can_process is True
        assert decision.daily_limit == UNLIMITED
        assert decision.image_count == 0

    def test_limit_resets_next_day(
        self, tracker: UsageTracker, clock: FakeClock
    ) -> None:
        tracker.register_user("u1")
        for _ in range(3):
            tracker.record_image_processing("u1", 1, 80)
        assert tracker.can_process_image("u1").can_process is False

        clock.now = clock.now + timedelta(days=1)
        decision = tracker.can_process_image("u1")
        assert decision.can_process is True
        assert decision.image_count == 0

    def test_daily_usage_for_past_day(
        self, tracker: UsageTracker, clock: FakeClock
    ) -> None:
        tracker.register_user("u1")
        tracker.record_image_processing("u1", 1, 80)
        clock.now = clock.now + timedelta(days=1)
        usage = tracker.get_daily_usage("u1", date(2024, 5, 1))
        assert usage.image_count == 1
        assert usage.can_process is True

    def test_set_premium(self, tracker: UsageTracker) -> None:
        tracker.register_user("u1")
        user = tracker.set_premium("u1")
        assert user is not None and user.is_premium
        assert tracker.can_process_image("u1").daily_limit == UNLIMITED

    def test_set_premium_unknown(self, tracker: UsageTracker) -> None:
        assert tracker.set_premium("ghost") is None

    def test_register_defaults(self, tracker: UsageTracker) -> None:
        user = tracker.register_user("u9")
        assert user.username == "u9"
        assert user.email == ""


class TestCreateUsageStore:
    """Tests for backend selection."""

    def test_no_url(self) -> None:
        assert isinstance(create_usage_store(None), MemoryUsageStore)

    def test_invalid_url(self) -> None:
        assert isinstance(create_usage_store("not a url"), MemoryUsageStore)

    def test_unsupported_backend(self) -> None:
        store = create_usage_store("mysql://user:pw@localhost/db")
        assert isinstance(store, MemoryUsageStore)

    def test_sqlite(self) -> None:
        store = create_usage_store("sqlite://")
        assert isinstance(store, SqlUsageStore)
        store.save_user(UserRecord("u1", "alice", "a@example.com"))
        assert store.get_user("u1") is not None
