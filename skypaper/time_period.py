"""Day segment definitions and mapping logic."""

from enum import Enum
from datetime import datetime, timedelta


# Late afternoon is the last stretch of daylight before sunset.
LATE_AFTERNOON_DURATION = timedelta(minutes=90)


class DaySegment(Enum):
    """Segments of the civil day used for wallpaper selection."""

    MIDNIGHT = "midnight"
    MORNING = "morning"
    EARLY_AFTERNOON = "early_afternoon"
    LATE_AFTERNOON = "late_afternoon"
    EVENING = "evening"

    @property
    def label(self) -> str:
        return self.value.replace('_', ' ')


# Order in which segments follow each other through a day.
SEGMENT_CYCLE = (
    DaySegment.MORNING,
    DaySegment.EARLY_AFTERNOON,
    DaySegment.LATE_AFTERNOON,
    DaySegment.EVENING,
    DaySegment.MIDNIGHT,
)


def next_segment(segment: DaySegment) -> DaySegment:
    """Return the segment that follows `segment` in the daily cycle."""
    index = SEGMENT_CYCLE.index(segment)
    return SEGMENT_CYCLE[(index + 1) % len(SEGMENT_CYCLE)]


def solar_midnight(sunset: datetime, next_sunrise: datetime) -> datetime:
    """Midpoint of the night between `sunset` and `next_sunrise`; evening ends here."""
    return sunset + (next_sunrise - sunset) / 2


def get_current_segment(sun_times: dict, current_time: datetime) -> DaySegment:
    """
    Determine the current day segment based on sun position.

    Args:
        sun_times: Dictionary with 'sunrise', 'noon', 'sunset', 'previous_sunset'
            and 'next_sunrise' datetime objects
        current_time: Current datetime (timezone-aware)

    Returns:
        DaySegment enum value
    """
    sunrise = sun_times['sunrise']
    solar_noon = sun_times['noon']
    sunset = sun_times['sunset']

    # Still the night that began with yesterday's sunset
    if current_time < sunrise:
        if current_time < solar_midnight(sun_times['previous_sunset'], sunrise):
            return DaySegment.EVENING
        return DaySegment.MIDNIGHT
    # Morning: sunrise to solar noon
    elif current_time < solar_noon:
        return DaySegment.MORNING
    # Early afternoon: solar noon until 90 minutes before sunset
    elif current_time < sunset - LATE_AFTERNOON_DURATION:
        return DaySegment.EARLY_AFTERNOON
    # Late afternoon: the last 90 minutes of daylight
    elif current_time < sunset:
        return DaySegment.LATE_AFTERNOON
    elif current_time < solar_midnight(sunset, sun_times['next_sunrise']):
        return DaySegment.EVENING
    else:
        return DaySegment.MIDNIGHT


def get_segment_end(sun_times: dict, current_time: datetime) -> datetime:
    """
    Get the instant at which the segment containing `current_time` ends.

    Args:
        sun_times: Same dictionary as for get_current_segment
        current_time: Current datetime (timezone-aware)

    Returns:
        Datetime of the next segment boundary
    """
    sunrise = sun_times['sunrise']
    sunset = sun_times['sunset']
    segment = get_current_segment(sun_times, current_time)

    if current_time < sunrise:
        if segment == DaySegment.EVENING:
            return solar_midnight(sun_times['previous_sunset'], sunrise)
        return sunrise
    if segment == DaySegment.MORNING:
        return sun_times['noon']
    if segment == DaySegment.EARLY_AFTERNOON:
        return sunset - LATE_AFTERNOON_DURATION
    if segment == DaySegment.LATE_AFTERNOON:
        return sunset
    if segment == DaySegment.EVENING:
        return solar_midnight(sunset, sun_times['next_sunrise'])
    return sun_times['next_sunrise']
