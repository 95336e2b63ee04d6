"""Sun position calculation using astral library."""

import logging
from datetime import datetime, timedelta, tzinfo
from typing import Optional
from astral import Observer
from astral.sun import sunrise, sunset
import pytz

from skypaper.errors import NoSunEvent
from skypaper.time_period import DaySegment, get_current_segment, get_segment_end


logger = logging.getLogger(__name__)


def local_timezone() -> tzinfo:
    """Timezone of the host system."""
    return datetime.now().astimezone().tzinfo


class SunCalculator:
    """Calculate sun events and day segments for a given location."""

    def __init__(self, latitude: float, longitude: float, timezone: Optional[str] = None):
        """
        Initialize sun calculator.

        Args:
            latitude: Latitude in degrees (-90 to 90)
            longitude: Longitude in degrees (-180 to 180)
            timezone: IANA timezone string (e.g., 'Asia/Tokyo'), or None for
                the system timezone
        """
        self.latitude = latitude
        self.longitude = longitude
        self.observer = Observer(latitude=latitude, longitude=longitude)
        self.tz = pytz.timezone(timezone) if timezone else local_timezone()

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def _sun_events(self, day) -> tuple[datetime, datetime]:
        try:
            rise = sunrise(self.observer, date=day, tzinfo=self.tz)
            set_ = sunset(self.observer, date=day, tzinfo=self.tz)
        except ValueError as e:
            # Polar day or polar night
            raise NoSunEvent(self.latitude, self.longitude, day, str(e)) from e
        if set_ <= rise:
            raise NoSunEvent(self.latitude, self.longitude, day, "sunset precedes sunrise")
        return rise, set_

    def get_sun_times(self, date: datetime = None) -> dict:
        """
        Get sun times for the civil day containing `date`.

        Args:
            date: Datetime to calculate for (defaults to now)

        Returns:
            Dictionary with 'sunrise', 'noon', 'sunset', 'previous_sunset' and
            'next_sunrise' as timezone-aware datetime objects. 'noon' is the
            midpoint between sunrise and sunset.

        Raises:
            NoSunEvent: If the sun does not rise or set around that day
        """
        if date is None:
            date = self.now()

        day = date.astimezone(self.tz).date()
        rise, set_ = self._sun_events(day)
        _, previous_set = self._sun_events(day - timedelta(days=1))
        next_rise, _ = self._sun_events(day + timedelta(days=1))

        return {
            'sunrise': rise,
            'noon': rise + (set_ - rise) / 2,
            'sunset': set_,
            'previous_sunset': previous_set,
            'next_sunrise': next_rise,
        }

    def classify(self, current_time: datetime = None) -> DaySegment:
        """
        Classify an instant into a day segment.

        Args:
            current_time: Timezone-aware datetime (defaults to now)

        Returns:
            DaySegment enum value

        Raises:
            NoSunEvent: At polar locations without sunrise or sunset
        """
        if current_time is None:
            current_time = self.now()
        sun_times = self.get_sun_times(current_time)
        segment = get_current_segment(sun_times, current_time)
        logger.debug(f"{current_time.isoformat()} is {segment.label}")
        return segment

    def get_next_transition_time(self, current_time: datetime) -> datetime:
        """
        Calculate when the next segment transition occurs.

        Args:
            current_time: Current datetime (timezone-aware)

        Returns:
            Datetime of next transition
        """
        sun_times = self.get_sun_times(current_time)
        return get_segment_end(sun_times, current_time)
