from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from skypaper.weather import WeatherReport


JST = timezone(timedelta(hours=9))


class FakeWeatherProvider:
    def __init__(self, report: WeatherReport) -> None:
        self.report = report
        self.calls = []

    def fetch(self, latitude: float, longitude: float) -> WeatherReport:
        self.calls.append((latitude, longitude))
        return self.report


class FakeWallpaperManager:
    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.paths = []

    def set_wallpaper(self, path):
        self.paths.append(path)
        return self.succeed


@pytest.fixture
def sun_times():
    day = datetime(2024, 3, 10, tzinfo=JST)
    return {
        'previous_sunset': day - timedelta(days=1) + timedelta(hours=17, minutes=50),
        'sunrise': day + timedelta(hours=5, minutes=55),
        'noon': day + timedelta(hours=11, minutes=50),
        'sunset': day + timedelta(hours=17, minutes=45),
        'next_sunrise': day + timedelta(days=1, hours=5, minutes=54),
    }


@pytest.fixture
def make_files(tmp_path):
    def _make(*names: str):
        paths = []
        for name in names:
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(b"")
            paths.append(path)
        return paths

    return _make
