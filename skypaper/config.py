"""Configuration loading and validation."""

import logging
import os
import yaml
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import pytz

from skypaper.picker import expand_user
from skypaper.rules import Rule
from skypaper.time_period import DaySegment
from skypaper.weather import WeatherCategory, classify_condition, read_api_key_env, read_api_key_file

logger = logging.getLogger(__name__)

BACKENDS = ('auto', 'hyprpaper', 'swww', 'gnome', 'feh', 'macos', 'windows')


@dataclass(frozen=True)
class Coordinates:
    """Geographic location in degrees."""

    latitude: float
    longitude: float


@dataclass
class WeatherConfig:
    """Configuration for the OpenWeatherMap lookup."""

    api_key_file: Optional[Path] = None
    api_key_env: Optional[str] = None
    city_id: Optional[int] = None
    default_category: Optional[WeatherCategory] = None
    timeout: int = 10

    def read_api_key(self) -> str:
        """
        Read the API key from its configured source.

        Raises:
            ValueError: If the key is malformed or missing
            OSError: If the key file cannot be read
        """
        if self.api_key_file is not None:
            return read_api_key_file(self.api_key_file)
        return read_api_key_env(self.api_key_env)


@dataclass
class Config:
    """Skypaper configuration."""

    latitude: float
    longitude: float
    rules: Dict[DaySegment, List[Rule]] = field(default_factory=dict)
    timezone: Optional[str] = None
    weather: Optional[WeatherConfig] = None
    backend: str = "auto"
    monitor: str = ""

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(latitude=self.latitude, longitude=self.longitude)

    @classmethod
    def load(cls, config_path: Path) -> "Config":
        """
        Load and validate configuration from YAML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
            FileNotFoundError: If config file doesn't exist
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Failed to parse {config_path}: {e}") from e

        if not data:
            raise ValueError("Configuration file is empty")
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a mapping")

        config = cls.from_dict(data)
        logger.info(f"Loaded {config_path}")
        return config

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Validate an already parsed configuration document."""
        latitude = data.get('latitude')
        longitude = data.get('longitude')

        if latitude is None:
            raise ValueError("Missing required field: latitude")
        if longitude is None:
            raise ValueError("Missing required field: longitude")
        if isinstance(latitude, bool) or not isinstance(latitude, (int, float)):
            raise ValueError(f"Latitude must be a number, got: {latitude!r}")
        if isinstance(longitude, bool) or not isinstance(longitude, (int, float)):
            raise ValueError(f"Longitude must be a number, got: {longitude!r}")

        # Validate ranges
        if not (-90 <= latitude <= 90):
            raise ValueError(f"Latitude must be between -90 and 90, got: {latitude}")
        if not (-180 <= longitude <= 180):
            raise ValueError(f"Longitude must be between -180 and 180, got: {longitude}")

        # Validate timezone (optional, system timezone otherwise)
        timezone = data.get('timezone')
        if timezone is not None and timezone not in pytz.all_timezones:
            raise ValueError(
                f"Invalid timezone: {timezone}. "
                f"Must be a valid IANA timezone (e.g., 'Asia/Tokyo', 'Europe/London')"
            )

        rules = {segment: _parse_rules(segment, data.get(segment.value)) for segment in DaySegment}

        weather = None
        if data.get('openweathermap') is not None:
            weather = _parse_weather(data['openweathermap'])

        wallpaper = data.get('wallpaper') or {}
        if not isinstance(wallpaper, dict):
            raise ValueError("'wallpaper' must be a mapping")
        backend = wallpaper.get('backend', 'auto')
        if backend not in BACKENDS:
            raise ValueError(f"Invalid wallpaper backend: {backend}. Must be one of: {', '.join(BACKENDS)}")

        return cls(
            latitude=float(latitude),
            longitude=float(longitude),
            rules=rules,
            timezone=timezone,
            weather=weather,
            backend=backend,
            monitor=str(wallpaper.get('monitor', '')),
        )

    def get_rules(self, segment: DaySegment) -> List[Rule]:
        """Get the ordered rules for a day segment."""
        return self.rules.get(segment, [])


def _parse_condition(segment: DaySegment, value) -> WeatherCategory:
    category = classify_condition(value)
    if category == WeatherCategory.NO_OBSERVATION:
        raise ValueError(
            f"Unknown weather condition in '{segment.value}': {value!r}. "
            f"Use a category (clouds, rain, snow, clear), an OpenWeatherMap "
            f"condition name (e.g. Drizzle) or id (e.g. 501)"
        )
    return category


def _parse_rules(segment: DaySegment, rules_data) -> List[Rule]:
    if rules_data is None:
        raise ValueError(f"Missing rules for: {segment.value}")
    if not isinstance(rules_data, list) or not rules_data:
        raise ValueError(f"'{segment.value}' must be a non-empty list of rules")

    rules = []
    for index, rule_data in enumerate(rules_data, start=1):
        where = f"{segment.value} rule #{index}"
        if not isinstance(rule_data, dict):
            raise ValueError(f"{where} must be a mapping with 'patterns' and optional 'on'")

        patterns = rule_data.get('patterns')
        if isinstance(patterns, str):
            patterns = [patterns]
        if not patterns or not isinstance(patterns, list):
            raise ValueError(f"{where} requires a non-empty 'patterns' list")
        for pattern in patterns:
            if not isinstance(pattern, str):
                raise ValueError(f"{where} has a non-string pattern: {pattern!r}")
            try:
                expand_user(os.path.expandvars(pattern))
            except ValueError as e:
                raise ValueError(f"{where}: {e}") from e

        on = rule_data.get('on')
        if on is None:
            # YAML 1.1 reads a bare `on` key as boolean true
            on = rule_data.get(True)
        if on is None:
            on = []
        elif not isinstance(on, list):
            on = [on]
        conditions = frozenset(_parse_condition(segment, value) for value in on)

        rules.append(Rule(
            patterns=tuple(os.path.expandvars(p) for p in patterns),
            conditions=conditions,
        ))

    if not rules[-1].is_unconditional:
        logger.warning(
            f"The last rule of '{segment.value}' has an 'on' list; "
            f"nothing will match for other weather"
        )
    return rules


def _parse_weather(weather_data) -> WeatherConfig:
    if not isinstance(weather_data, dict):
        raise ValueError("'openweathermap' must be a mapping")

    api_key = weather_data.get('api_key')
    if not isinstance(api_key, dict):
        raise ValueError("openweathermap.api_key must be a mapping with a 'type'")

    key_type = api_key.get('type')
    api_key_file = None
    api_key_env = None
    if key_type == 'file':
        path_str = api_key.get('path')
        if not path_str:
            raise ValueError("openweathermap.api_key.path is required for type 'file'")
        try:
            api_key_file = Path(expand_user(os.path.expandvars(path_str)))
        except ValueError as e:
            raise ValueError(f"openweathermap.api_key.path: {e}") from e
    elif key_type == 'env':
        api_key_env = api_key.get('name')
        if not api_key_env:
            raise ValueError("openweathermap.api_key.name is required for type 'env'")
    else:
        raise ValueError(f"Invalid openweathermap.api_key.type: {key_type}. Must be 'file' or 'env'")

    city_id = weather_data.get('city_id')
    if city_id is not None and (isinstance(city_id, bool) or not isinstance(city_id, int)):
        raise ValueError(f"openweathermap.city_id must be an integer, got: {city_id!r}")

    default_category = None
    if weather_data.get('default') is not None:
        default_category = classify_condition(weather_data['default'])
        if default_category == WeatherCategory.NO_OBSERVATION:
            raise ValueError(f"Unknown openweathermap.default condition: {weather_data['default']!r}")

    timeout = weather_data.get('timeout', 10)
    if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
        raise ValueError(f"openweathermap.timeout must be a positive integer, got: {timeout!r}")

    return WeatherConfig(
        api_key_file=api_key_file,
        api_key_env=api_key_env,
        city_id=city_id,
        default_category=default_category,
        timeout=timeout,
    )


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    xdg_config_home = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
    return Path(xdg_config_home) / 'skypaper' / 'config.yaml'


CONFIG_TEMPLATE = """# Skypaper configuration

latitude: {latitude}      # Your latitude
longitude: {longitude}    # Your longitude
# timezone: "Asia/Tokyo"  # IANA timezone (default: system timezone)

# Optional: pick wallpapers by current weather
# openweathermap:
#   api_key:
#     type: file                     # or: type: env, name: OPENWEATHERMAP_API_KEY
#     path: ~/.config/skypaper/openweathermap_api_key
#   city_id: 1850147                 # Query by city instead of coordinates
#   default: clear                   # Weather to assume when the service fails

wallpaper:
  backend: auto   # auto, hyprpaper, swww, gnome, feh, macos, windows
  monitor: ""     # Monitor name for hyprpaper/swww (empty = all monitors)

# Rules are tried in order; the first one whose 'on' list contains the
# current weather (or that has no 'on' list) is used.
midnight:
  - patterns:
      - ~/Pictures/wallpapers/midnight/*
morning:
  - on: [rain, snow]
    patterns:
      - ~/Pictures/wallpapers/morning/rainy/*
  - patterns:
      - ~/Pictures/wallpapers/morning/*
early_afternoon:
  - patterns:
      - ~/Pictures/wallpapers/afternoon/*
late_afternoon:
  - patterns:
      - ~/Pictures/wallpapers/sunset/*
evening:
  - patterns:
      - ~/Pictures/wallpapers/evening/*
"""


def create_default_config(config_path: Path, latitude: float = 35.6812, longitude: float = 139.7671) -> None:
    """Create a default configuration template file.

    Args:
        config_path: Path where the config file should be created
        latitude: Latitude written into the template
        longitude: Longitude written into the template
    """
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(CONFIG_TEMPLATE.format(latitude=latitude, longitude=longitude))
