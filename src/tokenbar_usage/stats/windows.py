"""Calendar-aligned aggregation windows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from .schemas import UsagePeriod, UsageWindow

DAYS_PER_WEEK = 7


@dataclass(frozen=True)
class CalendarConfig:
    """Calendar used to align windows.

    Attributes:
        timezone: Zone in which days start; `None` means the local system zone.
        first_weekday: First day of the week, `date.weekday()` numbering (0 = Monday).
        minimum_days_in_first_week: Days of the new year the first week of the year
            must contain. Affects week numbering only.
    """

    timezone: tzinfo | None = None
    first_weekday: int = 0
    minimum_days_in_first_week: int = 4

    def __post_init__(self) -> None:
        if not 0 <= self.first_weekday < DAYS_PER_WEEK:
            raise ValueError(f"first_weekday must be in 0..6, got {self.first_weekday}.")
        if not 1 <= self.minimum_days_in_first_week <= DAYS_PER_WEEK:
            raise ValueError(
                f"minimum_days_in_first_week must be in 1..7, got {self.minimum_days_in_first_week}."
            )

    @classmethod
    def system_default(cls) -> CalendarConfig:
        """Local system timezone with ISO-8601 week rules."""
        return cls()

    def local_date(self, instant: datetime) -> date:
        return instant.astimezone(self.timezone).date()

    def start_of_day(self, day: date) -> datetime:
        """Return local midnight of a calendar day as an aware datetime."""
        if self.timezone is None:
            return datetime.combine(day, time.min).astimezone()
        return datetime.combine(day, time.min, tzinfo=self.timezone)


def today_window(now: datetime, calendar: CalendarConfig) -> UsageWindow:
    day = calendar.local_date(now)
    return UsageWindow(start=calendar.start_of_day(day), end=calendar.start_of_day(day + timedelta(days=1)))


def week_window(now: datetime, calendar: CalendarConfig) -> UsageWindow:
    day = calendar.local_date(now)
    first_day = day - timedelta(days=(day.weekday() - calendar.first_weekday) % DAYS_PER_WEEK)
    return UsageWindow(
        start=calendar.start_of_day(first_day),
        end=calendar.start_of_day(first_day + timedelta(days=DAYS_PER_WEEK)),
    )


def month_window(now: datetime, calendar: CalendarConfig) -> UsageWindow:
    day = calendar.local_date(now)
    first_day = day.replace(day=1)
    if first_day.month == 12:
        next_first_day = first_day.replace(year=first_day.year + 1, month=1)
    else:
        next_first_day = first_day.replace(month=first_day.month + 1)
    return UsageWindow(start=calendar.start_of_day(first_day), end=calendar.start_of_day(next_first_day))


def compute_windows(now: datetime, calendar: CalendarConfig) -> dict[UsagePeriod, UsageWindow]:
    """Return the today, week and month windows containing `now`."""
    return {
        UsagePeriod.TODAY: today_window(now, calendar),
        UsagePeriod.WEEK: week_window(now, calendar),
        UsagePeriod.MONTH: month_window(now, calendar),
    }


def week_of_year(day: date, calendar: CalendarConfig) -> int:
    """Return the week number of `day` under the calendar's week rules.

    With Monday as first weekday and four minimum days this matches ISO-8601.
    """
    next_year_start = _first_week_start(day.year + 1, calendar)
    if day >= next_year_start:
        return 1

    year_start = _first_week_start(day.year, calendar)
    if day < year_start:
        year_start = _first_week_start(day.year - 1, calendar)
    return (day - year_start).days // DAYS_PER_WEEK + 1


def _first_week_start(year: int, calendar: CalendarConfig) -> date:
    january_first = date(year, 1, 1)
    offset = (january_first.weekday() - calendar.first_weekday) % DAYS_PER_WEEK
    if DAYS_PER_WEEK - offset >= calendar.minimum_days_in_first_week:
        return january_first - timedelta(days=offset)
    return january_first + timedelta(days=DAYS_PER_WEEK - offset)
