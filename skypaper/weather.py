"""Weather categories and the OpenWeatherMap current weather client."""

import json
import logging
import os
import re
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union


logger = logging.getLogger(__name__)

OPENWEATHERMAP_URL = "https://api.openweathermap.org/data/2.5/weather"

API_KEY_PATTERN = re.compile(r"\A\s*([0-9a-f]{32})\s*\Z")


class WeatherCategory(Enum):
    """Coarse weather buckets that rules can be conditioned on."""

    CLOUDS = "clouds"
    RAIN = "rain"
    SNOW = "snow"
    CLEAR = "clear"
    NO_OBSERVATION = "no_observation"


class NoObservationReason(Enum):
    """Why no weather category is available. Only used for diagnostics."""

    NOT_CONFIGURED = "weather service not configured"
    UNAVAILABLE = "weather service unavailable"
    UNRECOGNIZED = "unrecognized weather condition"


# https://openweathermap.org/weather-conditions
LABEL_CATEGORIES = {
    'thunderstorm': WeatherCategory.RAIN,
    'drizzle': WeatherCategory.RAIN,
    'rain': WeatherCategory.RAIN,
    'squall': WeatherCategory.RAIN,
    'tornado': WeatherCategory.RAIN,
    'snow': WeatherCategory.SNOW,
    'mist': WeatherCategory.CLOUDS,
    'smoke': WeatherCategory.CLOUDS,
    'haze': WeatherCategory.CLOUDS,
    'dust': WeatherCategory.CLOUDS,
    'fog': WeatherCategory.CLOUDS,
    'sand': WeatherCategory.CLOUDS,
    'ash': WeatherCategory.CLOUDS,
    'clouds': WeatherCategory.CLOUDS,
    'clear': WeatherCategory.CLEAR,
}

CODE_LABELS = {
    **{code: 'Thunderstorm' for code in (200, 201, 202, 210, 211, 212, 221, 230, 231, 232)},
    **{code: 'Drizzle' for code in (300, 301, 302, 310, 311, 312, 313, 314, 321)},
    **{code: 'Rain' for code in (500, 501, 502, 503, 504, 511, 520, 521, 522, 531)},
    **{code: 'Snow' for code in (600, 601, 602, 611, 612, 613, 615, 616, 620, 621, 622)},
    701: 'Mist',
    711: 'Smoke',
    721: 'Haze',
    731: 'Dust',
    741: 'Fog',
    751: 'Sand',
    761: 'Dust',
    762: 'Ash',
    771: 'Squall',
    781: 'Tornado',
    800: 'Clear',
    **{code: 'Clouds' for code in (801, 802, 803, 804)},
}

RawCondition = Union[int, str]


def classify_condition(raw: Optional[RawCondition]) -> WeatherCategory:
    """
    Map a raw weather condition to a category.

    Args:
        raw: OpenWeatherMap condition id (e.g. 501), condition label
            (e.g. 'Drizzle', case-insensitive) or a category name, or None

    Returns:
        WeatherCategory, NO_OBSERVATION for None and anything not in the table
    """
    if raw is None or isinstance(raw, bool):
        return WeatherCategory.NO_OBSERVATION
    if isinstance(raw, int):
        label = CODE_LABELS.get(raw)
        if label is None:
            return WeatherCategory.NO_OBSERVATION
        raw = label
    if isinstance(raw, str):
        return LABEL_CATEGORIES.get(raw.strip().lower(), WeatherCategory.NO_OBSERVATION)
    return WeatherCategory.NO_OBSERVATION


@dataclass
class WeatherReport:
    """Result of a single weather lookup."""

    condition: Optional[int] = None
    label: str = ""
    description: str = ""
    city_id: Optional[int] = None
    city_name: str = ""
    reason: Optional[NoObservationReason] = None

    @classmethod
    def unavailable(cls) -> "WeatherReport":
        return cls(reason=NoObservationReason.UNAVAILABLE)

    @property
    def available(self) -> bool:
        return self.reason is None

    def __str__(self) -> str:
        if not self.available:
            return self.reason.value
        place = f" in {self.city_name}" if self.city_name else ""
        return f"{self.description or self.label} (id={self.condition}){place}"


def read_api_key_file(path: Path) -> str:
    """
    Read an OpenWeatherMap API key from a file.

    Raises:
        ValueError: If the file does not hold a single 32 digit hex key
        OSError: If the file cannot be read
    """
    content = Path(path).expanduser().read_text()
    match = API_KEY_PATTERN.match(content)
    if not match:
        raise ValueError(f"Expected a 32 digit hexadecimal API key in {path}")
    return match.group(1)


def read_api_key_env(name: str) -> str:
    value = os.environ.get(name, "")
    match = API_KEY_PATTERN.match(value)
    if not match:
        raise ValueError(f"Environment variable {name} does not hold a 32 digit hexadecimal API key")
    return match.group(1)


class UnavailableWeatherProvider:
    """Stands in for a configured service that cannot be queried, e.g. without a usable API key."""

    def fetch(self, latitude: float, longitude: float) -> WeatherReport:
        return WeatherReport.unavailable()


class OpenWeatherMapClient:
    """Fetches current weather from OpenWeatherMap."""

    def __init__(self, api_key: str, city_id: Optional[int] = None, timeout: int = 10,
                 url: str = OPENWEATHERMAP_URL):
        """
        Initialize the client.

        Args:
            api_key: OpenWeatherMap API key
            city_id: Query by city id instead of coordinates
            timeout: Request timeout in seconds
            url: Current weather endpoint
        """
        self.api_key = api_key
        self.city_id = city_id
        self.timeout = timeout
        self.url = url

    def _hide(self, text: str) -> str:
        return text.replace(self.api_key, '█' * len(self.api_key)) if self.api_key else text

    def _build_url(self, latitude: float, longitude: float) -> str:
        if self.city_id is not None:
            params = {'id': self.city_id}
        else:
            params = {'lat': latitude, 'lon': longitude}
        params['APPID'] = self.api_key
        return f"{self.url}?{urllib.parse.urlencode(params)}"

    def fetch(self, latitude: float, longitude: float) -> WeatherReport:
        """
        Fetch current weather.

        Failures are logged and reported as an unavailable observation, never raised.

        Args:
            latitude: Latitude in degrees
            longitude: Longitude in degrees

        Returns:
            WeatherReport for the primary weather condition
        """
        url = self._build_url(latitude, longitude)
        logger.info(f"GET: {self._hide(url)}")

        try:
            with urllib.request.urlopen(url, timeout=self.timeout) as response:
                logger.info(f"{response.status} {response.reason}")
                data = json.loads(response.read().decode())
        except urllib.error.HTTPError as e:
            logger.warning(f"Weather request failed: {e.code} {e.reason}")
            return WeatherReport.unavailable()
        except (urllib.error.URLError, OSError) as e:
            logger.warning(f"Weather request failed: {self._hide(str(e))}")
            return WeatherReport.unavailable()
        except ValueError as e:
            logger.warning(f"Weather response is not valid JSON: {e}")
            return WeatherReport.unavailable()

        return self.parse(data)

    def parse(self, data: dict) -> WeatherReport:
        """Build a report from a current weather JSON document."""
        try:
            weather = data['weather']
            if not weather:
                raise ValueError("empty 'weather' list")
            primary = weather[0]
            condition = int(primary['id'])
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"Unexpected weather response: {e}")
            return WeatherReport.unavailable()

        report = WeatherReport(
            condition=condition,
            label=primary.get('main', ''),
            description=primary.get('description', ''),
            city_id=data.get('id'),
            city_name=data.get('name', ''),
        )
        logger.info("Current weather:")
        for entry in weather:
            logger.info(f"- {entry.get('description', entry.get('main'))!r} (id={entry.get('id')})")
        return report
