from datetime import date, datetime, timedelta, timezone

import pytest

from periods import Period, current_month, local_date, resolve_timeline

MANILA = timezone(timedelta(hours=8))


def test_resolve_timeline_day_windows() -> None:
    today = date(2025, 3, 10)
    week = resolve_timeline("7d", None, None, today=today)
    assert week == Period("7d", date(2025, 3, 10), date(2025, 3, 16))

    single = resolve_timeline("1d", None, None, today=today)
    assert single.start == single.end == today


def test_resolve_timeline_all_and_incomplete_custom() -> None:
    assert resolve_timeline(None, None, None) is None
    assert resolve_timeline("all", "2025-01-01", "2025-01-31") is None
    assert resolve_timeline("custom", "2025-01-01", None) is None


def test_resolve_timeline_custom() -> None:
    period = resolve_timeline("custom", "2025-01-01", "2025-01-31")
    assert period.contains(date(2025, 1, 15))
    assert not period.contains(date(2025, 2, 1))

    with pytest.raises(ValueError):
        resolve_timeline("custom", "2025-02-01", "2025-01-01")


def test_resolve_timeline_unknown() -> None:
    with pytest.raises(ValueError, match="Unknown timeline"):
        resolve_timeline("90d", None, None, today=date(2025, 1, 1))


def test_current_month_bounds() -> None:
    feb = current_month(today=date(2024, 2, 10))
    assert (feb.start, feb.end) == (date(2024, 2, 1), date(2024, 2, 29))

    dec = current_month(today=date(2024, 12, 31))
    assert (dec.start, dec.end) == (date(2024, 12, 1), date(2024, 12, 31))


def test_local_date_converts_aware_timestamps() -> None:
    late_utc = datetime(2025, 1, 1, 20, 0, tzinfo=timezone.utc)
    assert local_date(late_utc, MANILA) == date(2025, 1, 2)
    assert local_date(datetime(2025, 1, 1, 20, 0), MANILA) == date(2025, 1, 1)
    assert local_date(date(2025, 5, 5), MANILA) == date(2025, 5, 5)
