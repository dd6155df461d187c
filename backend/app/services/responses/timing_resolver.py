"""
Timing Resolver

Decides whether manual responses are still accepted for a meal today.

The resolver is a pure function of (preference, meal type, now). It only knows
about "today": callers that act on a specific menu date apply the past-date
rule themselves.
"""
import os
import re
from datetime import date, datetime, time
from typing import Optional

import pytz

from ...models.db_models import MealType
from ...models.timing import MealPreference, TimingInfo
from .errors import InvalidCutoffTimeError


# Wall clock used for "today" and cutoff comparison
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Kolkata")

DISPLAY_FORMAT = "%I:%M %p"

_TWELVE_HOUR = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$")
_TWENTY_FOUR_HOUR = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")


def service_timezone():
    return pytz.timezone(APP_TIMEZONE)


def local_now() -> datetime:
    """Current time in the service timezone (tz-aware)."""
    return datetime.now(service_timezone())


def local_today(now: Optional[datetime] = None) -> date:
    return (now or local_now()).date()


def to_storage(now: datetime) -> datetime:
    """Naive UTC for DateTime columns; naive input is assumed to be UTC already."""
    if now.tzinfo is None:
        return now
    return now.astimezone(pytz.utc).replace(tzinfo=None)


def parse_cutoff_time(value: str) -> time:
    """
    Parse a cutoff such as "10:30 AM", "6:30pm" or "18:30".

    Raises InvalidCutoffTimeError for anything else.
    """
    if not value:
        raise InvalidCutoffTimeError("Cutoff time is not set")

    match = _TWELVE_HOUR.match(value)
    if match:
        hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).upper()
        if not 1 <= hour <= 12 or minute > 59:
            raise InvalidCutoffTimeError(f"Invalid cutoff time: {value}")
        hour = hour % 12
        if meridiem == "PM":
            hour += 12
        return time(hour, minute)

    match = _TWENTY_FOUR_HOUR.match(value)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            raise InvalidCutoffTimeError(f"Invalid cutoff time: {value}")
        return time(hour, minute)

    raise InvalidCutoffTimeError(f"Invalid cutoff time: {value}")


def format_clock(value) -> str:
    """Render a time/datetime as "10:30 AM"."""
    return value.strftime(DISPLAY_FORMAT)


def cutoff_reason(cutoff_time: str) -> str:
    return f"Cutoff time {cutoff_time} has passed"


class TimingResolver:
    """Resolves TimingInfo for a provider's meal preference."""

    def resolve(
        self,
        preference: MealPreference,
        meal_type: MealType,
        now: datetime,
    ) -> TimingInfo:
        """
        Compare the time of day of `now` against the preference's cutoff.

        `can_respond` is true strictly before the cutoff minute.
        """
        cutoff = parse_cutoff_time(preference.cutoff_time)
        current = now.time().replace(tzinfo=None)
        can_respond = current < cutoff

        return TimingInfo(
            meal_type=meal_type,
            cutoff_time=preference.cutoff_time,
            can_respond=can_respond,
            current_time=format_clock(now),
            reason=None if can_respond else cutoff_reason(preference.cutoff_time),
        )

    def cutoff_passed(self, preference: MealPreference, now: datetime) -> bool:
        return not self.resolve(preference, preference.meal_type, now).can_respond
