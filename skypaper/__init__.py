"""Skypaper - weather and daylight aware wallpaper picker."""

__version__ = "0.3.1"
