"""
Timezone normalization between the business display zone and UTC storage.

Stored instants are always UTC. Humans enter and read wall-clock times in a
single fixed business timezone (``Settings.business_timezone``). The zone and
the clock are injectable so tests can pin both:

    from datetime import timedelta, timezone
    tz = TimezoneNormalizer(zone=timezone(timedelta(hours=-6)), clock=lambda: FIXED)

Ambiguous or skipped wall-clock times around DST transitions are not resolved
specially; whatever the zone database yields (fold=0) is accepted.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from sales_dashboard.config import get_settings

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimezoneNormalizer:
    """
    Converts between business-zone wall clock and UTC instants.
    """

    def __init__(self, zone: Optional[tzinfo] = None, clock: Optional[Clock] = None) -> None:
        if zone is None:
            zone = ZoneInfo(get_settings().business_timezone)
        self.zone = zone
        self._clock = clock or utc_now

    @classmethod
    def from_name(cls, name: str, clock: Optional[Clock] = None) -> "TimezoneNormalizer":
        """Build a normalizer for an IANA zone identifier such as ``America/Chicago``."""
        return cls(zone=ZoneInfo(name), clock=clock)

    def now(self) -> datetime:
        """Current instant in UTC, from the injected clock."""
        return self._clock().astimezone(timezone.utc)

    def to_storage_instant(self, local_wall_clock: datetime) -> datetime:
        """
        Convert a business-zone wall-clock time to a UTC instant.

        Naive values are read as business-zone wall clock; aware values are
        only converted.
        """
        if local_wall_clock.tzinfo is None:
            local_wall_clock = local_wall_clock.replace(tzinfo=self.zone)
        return local_wall_clock.astimezone(timezone.utc)

    def to_display(self, instant: datetime) -> datetime:
        """Convert a stored instant to an aware business-zone datetime."""
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return instant.astimezone(self.zone)

    def parse_wall_clock(self, text: str) -> datetime:
        """
        Parse ``YYYY-MM-DD`` or ``YYYY-MM-DDTHH:MM[:SS]`` entered in the
        business zone and return the UTC instant.
        """
        return self.to_storage_instant(datetime.fromisoformat(text.strip()))

    def format_display(self, instant: datetime) -> str:
        """
        en-US style locale string in the business zone, e.g.
        ``1/5/2024, 3:04:05 PM``.
        """
        local = self.to_display(instant)
        hour = local.hour % 12 or 12
        meridiem = "AM" if local.hour < 12 else "PM"
        return (
            f"{local.month}/{local.day}/{local.year}, "
            f"{hour}:{local.minute:02d}:{local.second:02d} {meridiem}"
        )

    def format_short(self, instant: datetime) -> str:
        """Compact table format, e.g. ``Jan 5, 2024, 3:04 PM``."""
        local = self.to_display(instant)
        hour = local.hour % 12 or 12
        meridiem = "AM" if local.hour < 12 else "PM"
        return f"{local:%b} {local.day}, {local.year}, {hour}:{local.minute:02d} {meridiem}"

    def today(self) -> str:
        """Current business-zone date as ``YYYY-MM-DD``."""
        return self.to_display(self.now()).date().isoformat()


__all__ = ["Clock", "TimezoneNormalizer", "utc_now"]
