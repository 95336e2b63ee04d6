"""Main entry point for Skypaper."""

import argparse
import logging
import sys
from pathlib import Path

from skypaper import __version__, picker
from skypaper.config import Config, create_default_config, get_default_config_path
from skypaper.errors import SkypaperError
from skypaper.selector import WallpaperSelector, create_weather_provider
from skypaper.time_period import DaySegment
from skypaper.wallpaper_manager import WallpaperManager
from skypaper.weather import WeatherCategory


logger = logging.getLogger(__name__)

WEATHER_CHOICES = [c.value for c in WeatherCategory]


def setup_logging(verbose: bool = False):
    """Configure logging for stdout (systemd compatible)."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def _make_selector(config: Config, args) -> WallpaperSelector:
    if args.seed is not None:
        picker.seed(args.seed)
    provider = None if args.weather else create_weather_provider(config)
    return WallpaperSelector(config, weather_provider=provider)


def _overrides(args) -> dict:
    return {
        'segment': DaySegment(args.segment) if args.segment else None,
        'category': WeatherCategory(args.weather) if args.weather else None,
    }


def run_once(config: Config, args) -> int:
    """
    Select a wallpaper, set it and exit.

    Args:
        config: Configuration object
        args: Parsed command line arguments

    Returns:
        Process exit status
    """
    selector = _make_selector(config, args)
    wallpaper_mgr = WallpaperManager(config.backend, config.monitor)

    try:
        selection = selector.select(**_overrides(args))
        selector.apply(selection, wallpaper_mgr)
    except SkypaperError as e:
        logger.error(str(e))
        return 1

    logger.info("Wallpaper set successfully")
    return 0


def run_test(config: Config, args) -> int:
    """
    Show sun times, segment, weather and the pick without setting anything.

    Args:
        config: Configuration object
        args: Parsed command line arguments
    """
    selector = _make_selector(config, args)
    sun_calc = selector.sun_calc
    now = sun_calc.now()

    try:
        sun_times = sun_calc.get_sun_times(now)
        selection = selector.select(now=now, **_overrides(args))
    except SkypaperError as e:
        logger.error(str(e))
        return 1

    print(f"\nCurrent time: {now.strftime('%Y-%m-%d %H:%M:%S %Z')}")
    print(f"\nSun times for today:")
    print(f"  Sunrise:     {sun_times['sunrise'].strftime('%H:%M:%S')}")
    print(f"  Solar noon:  {sun_times['noon'].strftime('%H:%M:%S')}")
    print(f"  Sunset:      {sun_times['sunset'].strftime('%H:%M:%S')}")
    print(f"\nCurrent segment: {selection.segment.label}")
    if not args.segment:
        next_transition = sun_calc.get_next_transition_time(now)
        print(f"Next transition: {next_transition.strftime('%Y-%m-%d %H:%M:%S')}")

    weather = selection.category.value
    if selection.reason is not None and selection.category != WeatherCategory.NO_OBSERVATION:
        weather += f" (default, {selection.reason.value})"
    elif selection.reason is not None:
        weather += f" ({selection.reason.value})"
    print(f"\nWeather: {weather}")
    print(f"Matched rule: {selection.rule.describe()}")
    print(f"Candidates: {len(selection.candidates)}")
    print(f"Picked: {selection.path}\n")
    return 0


def init_config(config_path: Path) -> None:
    """Generate a configuration template."""
    if config_path.exists():
        response = input(f"Config file already exists at {config_path}. Overwrite? [y/N] ")
        if response.lower() != 'y':
            print("Aborted.")
            return

    create_default_config(config_path)
    print(f"Configuration template created at: {config_path}")
    print("\nPlease edit this file with your location and wallpaper patterns.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Skypaper - set a random wallpaper according to sky color"
    )
    parser.add_argument(
        '--config', '-c',
        type=Path,
        help='Path to configuration file (default: ~/.config/skypaper/config.yaml)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")

    selection = argparse.ArgumentParser(add_help=False)
    selection.add_argument(
        '--segment',
        choices=[s.value for s in DaySegment],
        help='Use this day segment instead of the current one'
    )
    selection.add_argument(
        '--weather',
        choices=WEATHER_CHOICES,
        help='Use this weather category instead of querying OpenWeatherMap'
    )
    selection.add_argument(
        '--seed',
        type=int,
        help='Seed for the random pick'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')
    subparsers.add_parser('once', parents=[selection], help='Set a wallpaper and exit (default)')
    subparsers.add_parser('test', parents=[selection], help='Show what would be picked without setting it')
    subparsers.add_parser('init', help='Generate configuration template')

    parser.set_defaults(segment=None, weather=None, seed=None)
    return parser


def cli(argv=None):
    """Command-line interface entry point."""
    args = build_parser().parse_args(argv)

    config_path = args.config or get_default_config_path()

    # Handle init command (doesn't need config)
    if args.command == 'init':
        init_config(config_path)
        return

    setup_logging(args.verbose)

    try:
        config = Config.load(config_path)
    except FileNotFoundError:
        print(f"Error: Configuration file not found: {config_path}", file=sys.stderr)
        print(f"Run 'skypaper init' to create a template.", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == 'test':
        status = run_test(config, args)
    else:
        # Default: one-shot selection
        status = run_once(config, args)
    sys.exit(status)


if __name__ == '__main__':
    cli()
