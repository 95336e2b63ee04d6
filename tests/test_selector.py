from __future__ import annotations

import random
from datetime import datetime

import pytest
import pytz

from skypaper.config import Config, WeatherConfig
from skypaper.errors import NoFilesFound, NoRuleMatched, NoSunEvent, WallpaperError
from skypaper.rules import Rule
from skypaper.selector import WallpaperSelector, create_weather_provider
from skypaper.time_period import DaySegment
from skypaper.weather import NoObservationReason, UnavailableWeatherProvider, WeatherCategory, WeatherReport

from tests.conftest import FakeWallpaperManager, FakeWeatherProvider


def make_config(tmp_path, rules=None, weather=None):
    fallback = [Rule(patterns=(f"{tmp_path}/any/*",))]
    all_rules = {segment: list(fallback) for segment in DaySegment}
    all_rules.update(rules or {})
    return Config(
        latitude=35.6812,
        longitude=139.7671,
        timezone="Asia/Tokyo",
        rules=all_rules,
        weather=weather,
    )


def rain_then_any(tmp_path):
    return [
        Rule(patterns=(f"{tmp_path}/r/*",), conditions=frozenset({WeatherCategory.RAIN})),
        Rule(patterns=(f"{tmp_path}/any/*",)),
    ]


def test_morning_without_weather_uses_unconditional_rule(tmp_path, make_files):
    make_files("r/rain.png")
    any_files = make_files("any/1.png", "any/2.png")
    config = make_config(tmp_path, {DaySegment.MORNING: rain_then_any(tmp_path)})
    selector = WallpaperSelector(config, weather_provider=None)

    for _ in range(20):
        selection = selector.select(segment=DaySegment.MORNING)
        assert selection.category == WeatherCategory.NO_OBSERVATION
        assert selection.reason == NoObservationReason.NOT_CONFIGURED
        assert selection.rule.is_unconditional
        assert selection.path in any_files


def test_unavailable_weather_degrades_to_no_observation(tmp_path, make_files):
    make_files("r/rain.png", "any/1.png")
    provider = FakeWeatherProvider(WeatherReport.unavailable())
    config = make_config(tmp_path, {DaySegment.MORNING: rain_then_any(tmp_path)})

    selection = WallpaperSelector(config, weather_provider=provider).select(segment=DaySegment.MORNING)

    assert provider.calls == [(35.6812, 139.7671)]
    assert selection.category == WeatherCategory.NO_OBSERVATION
    assert selection.reason == NoObservationReason.UNAVAILABLE
    assert selection.path == tmp_path / "any" / "1.png"


def test_unrecognized_weather_code(tmp_path, make_files):
    make_files("any/1.png")
    provider = FakeWeatherProvider(WeatherReport(condition=999, label="Meteor"))

    selection = WallpaperSelector(make_config(tmp_path), weather_provider=provider).select(
        segment=DaySegment.MIDNIGHT
    )

    assert selection.category == WeatherCategory.NO_OBSERVATION
    assert selection.reason == NoObservationReason.UNRECOGNIZED


def test_evening_snow_rule_is_used_exclusively(tmp_path, make_files):
    snow = make_files("snow/1.png", "snow/2.png")
    make_files("any/1.png")
    rules = [
        Rule(patterns=(f"{tmp_path}/snow/*",), conditions=frozenset({WeatherCategory.SNOW})),
        Rule(patterns=(f"{tmp_path}/any/*",)),
    ]
    provider = FakeWeatherProvider(WeatherReport(condition=601, label="Snow"))
    selector = WallpaperSelector(
        make_config(tmp_path, {DaySegment.EVENING: rules}),
        weather_provider=provider,
        rng=random.Random(3),
    )

    for _ in range(20):
        selection = selector.select(segment=DaySegment.EVENING)
        assert selection.category == WeatherCategory.SNOW
        assert selection.candidates == snow
        assert selection.path in snow


def test_segment_is_computed_from_clock(tmp_path, make_files):
    make_files("any/1.png", "noon/1.png")
    rules = {DaySegment.EARLY_AFTERNOON: [Rule(patterns=(f"{tmp_path}/noon/*",))]}
    selector = WallpaperSelector(make_config(tmp_path, rules))
    now = pytz.timezone("Asia/Tokyo").localize(datetime(2024, 3, 10, 13, 0))

    selection = selector.select(now=now)

    assert selection.segment == DaySegment.EARLY_AFTERNOON
    assert selection.path == tmp_path / "noon" / "1.png"


def test_no_rule_matched_is_fatal_without_default(tmp_path):
    rules = {DaySegment.MORNING: rain_then_any(tmp_path)[:1]}
    selector = WallpaperSelector(make_config(tmp_path, rules))

    with pytest.raises(NoRuleMatched) as excinfo:
        selector.select(segment=DaySegment.MORNING, category=WeatherCategory.CLEAR)

    assert excinfo.value.segment == DaySegment.MORNING
    assert excinfo.value.category == WeatherCategory.CLEAR


def test_no_rule_matched_retries_with_default_category(tmp_path, make_files):
    make_files("r/1.png")
    weather = WeatherConfig(api_key_env="UNUSED", default_category=WeatherCategory.RAIN)
    rules = {DaySegment.MORNING: rain_then_any(tmp_path)[:1]}
    selector = WallpaperSelector(make_config(tmp_path, rules, weather))

    selection = selector.select(segment=DaySegment.MORNING, category=WeatherCategory.CLEAR)

    assert selection.path == tmp_path / "r" / "1.png"


def test_default_category_replaces_failed_lookup(tmp_path, make_files):
    make_files("r/1.png", "any/1.png")
    weather = WeatherConfig(api_key_env="UNUSED", default_category=WeatherCategory.RAIN)
    provider = FakeWeatherProvider(WeatherReport.unavailable())
    config = make_config(tmp_path, {DaySegment.MORNING: rain_then_any(tmp_path)}, weather)

    selection = WallpaperSelector(config, weather_provider=provider).select(segment=DaySegment.MORNING)

    assert selection.category == WeatherCategory.RAIN
    assert selection.reason == NoObservationReason.UNAVAILABLE
    assert selection.path == tmp_path / "r" / "1.png"


def test_no_files_found_reports_patterns(tmp_path):
    selector = WallpaperSelector(make_config(tmp_path))

    with pytest.raises(NoFilesFound) as excinfo:
        selector.select(segment=DaySegment.MORNING)

    assert excinfo.value.patterns == (f"{tmp_path}/any/*",)


def test_polar_location_raises(tmp_path):
    config = make_config(tmp_path)
    config.latitude, config.timezone = 78.2232, "Arctic/Longyearbyen"
    selector = WallpaperSelector(config)
    now = pytz.timezone("Arctic/Longyearbyen").localize(datetime(2024, 6, 21, 12, 0))

    with pytest.raises(NoSunEvent):
        selector.select(now=now)


def test_apply_hands_file_to_setter(tmp_path, make_files):
    make_files("any/1.png")
    selector = WallpaperSelector(make_config(tmp_path))
    selection = selector.select(segment=DaySegment.MORNING)
    manager = FakeWallpaperManager()

    selector.apply(selection, manager)

    assert manager.paths == [selection.path]


def test_apply_failure_raises(tmp_path, make_files):
    make_files("any/1.png")
    selector = WallpaperSelector(make_config(tmp_path))
    selection = selector.select(segment=DaySegment.MORNING)

    with pytest.raises(WallpaperError):
        selector.apply(selection, FakeWallpaperManager(succeed=False))


def test_weather_provider_needs_readable_key(tmp_path, monkeypatch):
    monkeypatch.delenv("OWM_KEY", raising=False)
    config = make_config(tmp_path, weather=WeatherConfig(api_key_env="OWM_KEY"))

    assert isinstance(create_weather_provider(config), UnavailableWeatherProvider)

    monkeypatch.setenv("OWM_KEY", "0123456789abcdef0123456789abcdef")
    provider = create_weather_provider(config)
    assert provider.api_key == "0123456789abcdef0123456789abcdef"
    assert create_weather_provider(make_config(tmp_path)) is None


def test_unreadable_key_falls_back_to_default_category(tmp_path, make_files):
    clear = make_files("clear/1.png", "clear/2.png")
    make_files("any/1.png")
    rules = [
        Rule(patterns=(f"{tmp_path}/clear/*",), conditions=frozenset({WeatherCategory.CLEAR})),
        Rule(patterns=(f"{tmp_path}/any/*",)),
    ]
    weather = WeatherConfig(api_key_file=tmp_path / "missing", default_category=WeatherCategory.CLEAR)
    config = make_config(tmp_path, {DaySegment.MORNING: rules}, weather)

    selector = WallpaperSelector(config, weather_provider=create_weather_provider(config))
    selection = selector.select(segment=DaySegment.MORNING)

    assert selection.category == WeatherCategory.CLEAR
    assert selection.reason == NoObservationReason.UNAVAILABLE
    assert selection.path in clear


def test_unreadable_key_without_default_is_unavailable(tmp_path, make_files):
    make_files("r/1.png", "any/1.png")
    weather = WeatherConfig(api_key_file=tmp_path / "missing")
    config = make_config(tmp_path, {DaySegment.MORNING: rain_then_any(tmp_path)}, weather)

    selector = WallpaperSelector(config, weather_provider=create_weather_provider(config))
    selection = selector.select(segment=DaySegment.MORNING)

    assert selection.category == WeatherCategory.NO_OBSERVATION
    assert selection.reason == NoObservationReason.UNAVAILABLE
    assert selection.path == tmp_path / "any" / "1.png"
