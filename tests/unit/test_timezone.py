from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from sales_dashboard.analytics.timezone import TimezoneNormalizer


def test_naive_wall_clock_is_read_in_business_zone(tz: TimezoneNormalizer):
    instant = tz.to_storage_instant(datetime(2024, 1, 5, 9, 0))
    assert instant == datetime(2024, 1, 5, 15, 0, tzinfo=timezone.utc)
    assert instant.utcoffset() == timedelta(0)


def test_aware_input_is_only_converted(tz: TimezoneNormalizer):
    aware = datetime(2024, 1, 5, 9, 0, tzinfo=timezone(timedelta(hours=2)))
    assert tz.to_storage_instant(aware) == datetime(2024, 1, 5, 7, 0, tzinfo=timezone.utc)


def test_to_display_returns_business_zone(tz: TimezoneNormalizer):
    local = tz.to_display(datetime(2024, 1, 5, 15, 0, tzinfo=timezone.utc))
    assert (local.hour, local.utcoffset()) == (9, timedelta(hours=-6))


def test_to_display_treats_naive_as_utc(tz: TimezoneNormalizer):
    assert tz.to_display(datetime(2024, 1, 5, 15, 0)).hour == 9


def test_storage_and_display_are_inverse(tz: TimezoneNormalizer):
    wall = datetime(2024, 6, 30, 23, 59, 59)
    assert tz.to_display(tz.to_storage_instant(wall)).replace(tzinfo=None) == wall


def test_parse_wall_clock_accepts_date_and_datetime(tz: TimezoneNormalizer):
    assert tz.parse_wall_clock("2024-01-05") == datetime(2024, 1, 5, 6, tzinfo=timezone.utc)
    assert tz.parse_wall_clock(" 2024-01-05T09:30 ") == datetime(
        2024, 1, 5, 15, 30, tzinfo=timezone.utc
    )
    with pytest.raises(ValueError):
        tz.parse_wall_clock("05/01/2024")


@pytest.mark.parametrize(
    "instant,expected",
    [
        (datetime(2024, 1, 5, 21, 4, 5, tzinfo=timezone.utc), "1/5/2024, 3:04:05 PM"),
        (datetime(2024, 1, 5, 6, 0, 0, tzinfo=timezone.utc), "1/5/2024, 12:00:00 AM"),
        (datetime(2024, 1, 5, 18, 0, 0, tzinfo=timezone.utc), "1/5/2024, 12:00:00 PM"),
    ],
)
def test_format_display(tz: TimezoneNormalizer, instant: datetime, expected: str):
    assert tz.format_display(instant) == expected


def test_format_short(tz: TimezoneNormalizer):
    instant = datetime(2024, 1, 5, 21, 4, 5, tzinfo=timezone.utc)
    assert tz.format_short(instant) == "Jan 5, 2024, 3:04 PM"


def test_today_uses_business_date(tz: TimezoneNormalizer, clock):
    assert tz.today() == "2024-03-15"
    # 03:00 UTC on the 16th is still the evening of the 15th at UTC-6
    clock.now = datetime(2024, 3, 16, 3, 0, tzinfo=timezone.utc)
    assert tz.today() == "2024-03-15"


def test_now_is_utc(tz: TimezoneNormalizer):
    assert tz.now().utcoffset() == timedelta(0)


def test_named_zone_follows_daylight_saving():
    chicago = TimezoneNormalizer.from_name("America/Chicago")
    winter = chicago.to_storage_instant(datetime(2024, 1, 15, 12, 0))
    summer = chicago.to_storage_instant(datetime(2024, 7, 15, 12, 0))
    assert winter.hour == 18
    assert summer.hour == 17
