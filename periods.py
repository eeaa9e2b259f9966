from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from config import Settings, get_settings

TIMELINE_DAYS = {"1d": 1, "7d": 7, "15d": 15, "30d": 30}


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def local_zone(settings: Optional[Settings] = None) -> tzinfo:
    return ZoneInfo((settings or get_settings()).timezone)


def local_today(tz: Optional[tzinfo] = None) -> date:
    return datetime.now(tz or local_zone()).date()


def local_date(value: Union[date, datetime], tz: Optional[tzinfo] = None) -> date:
    """Truncate a timestamp to its calendar day in the local zone."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz or local_zone())
        return value.date()
    return value


def current_month(*, today: Optional[date] = None) -> Period:
    today = today or local_today()
    first = today.replace(day=1)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    end_this = next_month - date.resolution
    return Period("this_month", first, end_this)


def resolve_timeline(
    timeline: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    today: Optional[date] = None,
) -> Optional[Period]:
    """Window for the expense list; None means no filtering."""
    if not timeline or timeline == "all":
        return None
    if timeline == "custom":
        if not start or not end:
            return None
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end)
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        return Period("custom", start_date, end_date)
    if timeline not in TIMELINE_DAYS:
        raise ValueError(f"Unknown timeline filter: {timeline}")

    today = today or local_today()
    days = TIMELINE_DAYS[timeline]
    # today inclusive, today + days exclusive
    return Period(timeline, today, date.fromordinal(today.toordinal() + days - 1))
