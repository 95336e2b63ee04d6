"""Exceptions raised while selecting a wallpaper."""


class SkypaperError(Exception):
    """Base class for selection failures that end a run."""


class NoSunEvent(SkypaperError):
    """The sun does not rise or set on this day at this location."""

    def __init__(self, latitude: float, longitude: float, day, reason: str = ""):
        self.latitude = latitude
        self.longitude = longitude
        self.day = day
        message = f"No sunrise/sunset on {day} at latitude {latitude}, longitude {longitude}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class NoRuleMatched(SkypaperError):
    """No rule of a segment matches the current weather category."""

    def __init__(self, segment, category):
        self.segment = segment
        self.category = category
        super().__init__(
            f"No rule matched for segment '{segment.value}' and weather '{category.value}'. "
            f"Add a rule without 'on' at the end of '{segment.value}' as a fallback."
        )


class NoFilesFound(SkypaperError):
    """The patterns of the matched rule expanded to nothing."""

    def __init__(self, patterns):
        self.patterns = tuple(patterns)
        super().__init__(f"No files matched patterns: {', '.join(self.patterns)}")


class WallpaperError(SkypaperError):
    """The desktop refused the picked wallpaper."""
