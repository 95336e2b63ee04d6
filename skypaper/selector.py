"""End-to-end wallpaper selection for a single run."""

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from skypaper.config import Config
from skypaper.errors import NoRuleMatched, WallpaperError
from skypaper.picker import resolve_and_pick
from skypaper.rules import Rule, match_rule
from skypaper.sun_calculator import SunCalculator
from skypaper.time_period import DaySegment
from skypaper.wallpaper_manager import WallpaperManager
from skypaper.weather import (
    NoObservationReason,
    OpenWeatherMapClient,
    UnavailableWeatherProvider,
    WeatherCategory,
    WeatherReport,
    classify_condition,
)


logger = logging.getLogger(__name__)


@dataclass
class Selection:
    """Outcome of one selection run."""

    segment: DaySegment
    category: WeatherCategory
    rule: Rule
    path: Path
    candidates: List[Path] = field(default_factory=list)
    reason: Optional[NoObservationReason] = None
    report: Optional[WeatherReport] = None


def create_weather_provider(config: Config):
    """
    Build the weather client from configuration.

    Returns:
        Client, None if weather is not configured, or an UnavailableWeatherProvider
        if the API key is unusable
    """
    if config.weather is None:
        return None
    try:
        api_key = config.weather.read_api_key()
    except (OSError, ValueError) as e:
        logger.warning(f"Cannot read OpenWeatherMap API key: {e}")
        return UnavailableWeatherProvider()
    return OpenWeatherMapClient(
        api_key=api_key,
        city_id=config.weather.city_id,
        timeout=config.weather.timeout,
    )


class WallpaperSelector:
    """Picks a wallpaper from the day segment and the current weather."""

    def __init__(self, config: Config, weather_provider=None,
                 rng: Optional[random.Random] = None,
                 sun_calc: Optional[SunCalculator] = None):
        """
        Initialize selector.

        Args:
            config: Configuration object
            weather_provider: Object with fetch(latitude, longitude) -> WeatherReport,
                or None when weather is not configured
            rng: Random source (defaults to the process-wide one)
            sun_calc: SunCalculator (built from config by default)
        """
        self.config = config
        self.weather_provider = weather_provider
        self.rng = rng
        coords = config.coordinates
        self.sun_calc = sun_calc or SunCalculator(coords.latitude, coords.longitude, config.timezone)

    @property
    def default_category(self) -> Optional[WeatherCategory]:
        return self.config.weather.default_category if self.config.weather else None

    def observe_weather(self) -> Tuple[WeatherCategory, Optional[NoObservationReason], Optional[WeatherReport]]:
        """
        Query the weather provider and classify the result.

        Never raises; an unavailable or unknown observation becomes
        NO_OBSERVATION together with the reason.

        Returns:
            (category, reason, report) where reason is None for a real observation;
            a default category standing in for a failed lookup keeps the reason
        """
        if self.weather_provider is None:
            logger.info(f"Weather: {NoObservationReason.NOT_CONFIGURED.value}")
            return WeatherCategory.NO_OBSERVATION, NoObservationReason.NOT_CONFIGURED, None

        coords = self.config.coordinates
        report = self.weather_provider.fetch(coords.latitude, coords.longitude)
        if not report.available:
            if self.default_category is not None:
                logger.warning(f"{report}; using default weather '{self.default_category.value}'")
                return self.default_category, report.reason, report
            logger.warning(f"Weather: {report}")
            return WeatherCategory.NO_OBSERVATION, report.reason, report

        category = classify_condition(report.condition)
        if category == WeatherCategory.NO_OBSERVATION:
            logger.warning(f"Weather: {NoObservationReason.UNRECOGNIZED.value} {report.condition}")
            return category, NoObservationReason.UNRECOGNIZED, report

        logger.info(f"Weather: {report} -> {category.value}")
        return category, None, report

    def _match(self, segment: DaySegment, category: WeatherCategory) -> Rule:
        rules = self.config.get_rules(segment)
        try:
            return match_rule(segment, category, rules)
        except NoRuleMatched:
            default = self.default_category
            if default is None or default == category:
                raise
            logger.warning(
                f"No rule of {segment.value} matched '{category.value}'; "
                f"retrying with default weather '{default.value}'"
            )
            return match_rule(segment, default, rules)

    def select(self, now: Optional[datetime] = None,
               segment: Optional[DaySegment] = None,
               category: Optional[WeatherCategory] = None) -> Selection:
        """
        Select a wallpaper.

        Args:
            now: Instant to select for (defaults to now)
            segment: Force a day segment instead of computing it
            category: Force a weather category instead of querying the provider

        Returns:
            Selection with the picked file

        Raises:
            NoSunEvent: If the day segment cannot be computed
            NoRuleMatched: If no rule applies to the segment and weather
            NoFilesFound: If the matched rule's patterns match no file
        """
        if segment is None:
            if now is None:
                now = self.sun_calc.now()
            segment = self.sun_calc.classify(now)
        logger.info(f"It is {segment.label}")

        reason = None
        report = None
        if category is None:
            category, reason, report = self.observe_weather()

        rule = self._match(segment, category)

        path, candidates = resolve_and_pick(rule.patterns, self.rng)
        logger.info(f"Picked {path}")

        return Selection(
            segment=segment,
            category=category,
            rule=rule,
            path=path,
            candidates=candidates,
            reason=reason,
            report=report,
        )

    def apply(self, selection: Selection, wallpaper_mgr: WallpaperManager) -> None:
        """
        Hand the picked file to the wallpaper setter.

        Raises:
            WallpaperError: If the setter fails
        """
        if not wallpaper_mgr.set_wallpaper(selection.path):
            raise WallpaperError(f"Failed to set {selection.path}")
