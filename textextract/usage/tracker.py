"""Daily usage limits for free and premium users."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from textextract.utils.logger import get_logger

from .store import UsageLogEntry, UsageStore, UserRecord

logger = get_logger(__name__)

UNLIMITED = -1
LIMIT_EXCEEDED_REASON = "Daily limit exceeded. Upgrade to Premium for unlimited access."
USER_NOT_FOUND_REASON = "User not found"


@dataclass
class DailyUsage:
    """Images processed by a user on one calendar day."""

    image_count: int
    daily_limit: int
    can_process: bool


@dataclass
class EntitlementDecision:
    """Whether a user may process another image right now."""

    can_process: bool
    image_count: int
    daily_limit: int
    reason: str | None = None


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return local midnight of ``day`` and of the following day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class UsageTracker:
    """Counts processed images and enforces the free-tier daily limit.

    Args:
        store: Storage backend chosen at startup.
        daily_limit: Images per day for free users.
        clock: Returns the current local time; injectable for tests.
    """

    def __init__(
        self,
        store: UsageStore,
        daily_limit: int = 3,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.daily_limit = daily_limit
        self.clock = clock

    def register_user(
        self,
        user_id: str,
        username: str | None = None,
        email: str | None = None,
        is_premium: bool = False,
    ) -> UserRecord:
        user = UserRecord(
            id=user_id,
            username=username or user_id,
            email=email or "",
            is_premium=is_premium,
        )
        self.store.save_user(user)
        return user

    def set_premium(self, user_id: str, is_premium: bool = True) -> UserRecord | None:
        user = self.store.get_user(user_id)
        if user is None:
            return None
        user.is_premium = is_premium
        self.store.save_user(user)
        logger.info("User %s premium set to %s", user_id, is_premium)
        return user

    def get_daily_usage(self, user_id: str, day: date | None = None) -> DailyUsage:
        """Count a user's processed images for one calendar day.

        Args:
            user_id: User identifier.
            day: Calendar day. Defaults to today.

        Returns:
            Count, limit and whether the count is under the limit.
        """
        start, end = day_bounds(day or self.clock().date())
        count = self.store.count_usage(user_id, start, end)
        return DailyUsage(
            image_count=count,
            daily_limit=self.daily_limit,
            can_process=count < self.daily_limit,
        )

    def can_process_image(self, user_id: str) -> EntitlementDecision:
        """Decide whether ``user_id`` may run another OCR call.

        Premium users always pass with an unlimited limit. Free users pass
        while today's count is under the daily limit. Unknown users are
        denied.
        """
        user = self.store.get_user(user_id)
        if user is None:
            return EntitlementDecision(
                can_process=False,
                image_count=0,
                daily_limit=self.daily_limit,
                reason=USER_NOT_FOUND_REASON,
            )

        if user.is_premium:
            return EntitlementDecision(
                can_process=True, image_count=0, daily_limit=UNLIMITED
            )

        usage = self.get_daily_usage(user_id)
        if not usage.can_process:
            logger.info(
                "User %s hit the daily limit (%d/%d)",
                user_id,
                usage.image_count,
                usage.daily_limit,
            )
            return EntitlementDecision(
                can_process=False,
                image_count=usage.image_count,
                daily_limit=usage.daily_limit,
                reason=LIMIT_EXCEEDED_REASON,
            )

        return EntitlementDecision(
            can_process=True,
            image_count=usage.image_count,
            daily_limit=usage.daily_limit,
        )

    def record_image_processing(
        self, user_id: str, extracted_words: int, confidence: int
    ) -> None:
        """Log one successfully processed image."""
        self.store.add_usage(
            UsageLogEntry(
                user_id=user_id,
                processed_at=self.clock(),
                extracted_words=extracted_words,
                confidence=confidence,
            )
        )
