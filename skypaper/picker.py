"""Glob pattern expansion and random wallpaper picking."""

import glob
import logging
import os
import random
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from skypaper.errors import NoFilesFound


logger = logging.getLogger(__name__)

# Process-wide random source
_random = random.Random()


def seed(value) -> None:
    """Seed the process-wide random source for reproducible picks."""
    _random.seed(value)


def expand_user(pattern: str, home: Optional[str] = None) -> str:
    """
    Expand a leading '~' to the home directory.

    Args:
        pattern: Path or glob pattern
        home: Home directory (defaults to the current user's)

    Returns:
        Pattern with '~' replaced

    Raises:
        ValueError: For the unsupported '~user' form
    """
    if not pattern.startswith('~'):
        return pattern
    if pattern != '~' and not pattern.startswith(('~/', '~' + os.sep)):
        raise ValueError(f"Unsupported use of '~': {pattern!r}")
    if home is None:
        home = str(Path.home())
    return home + pattern[1:]


def expand_patterns(patterns: Sequence[str]) -> List[Path]:
    """
    Expand glob patterns into an ordered list of files.

    Patterns are expanded in order and their matches concatenated. A file
    matched by several patterns appears once per pattern. Directories and
    other non-files are ignored; missing directories contribute nothing.

    Args:
        patterns: Glob patterns, '~' allowed

    Returns:
        List of file paths
    """
    candidates = []
    for pattern in patterns:
        expanded = expand_user(pattern)
        matches = sorted(glob.glob(expanded, recursive=True))
        logger.debug(f"{pattern}: {len(matches)} match(es)")
        for match in matches:
            path = Path(match)
            if path.is_file():
                candidates.append(path)
            else:
                logger.warning(f"Ignoring {path}")
    return candidates


def pick_file(candidates: Sequence[Path], rng: Optional[random.Random] = None) -> Optional[Path]:
    """Pick one candidate uniformly at random, or None if there are none."""
    if not candidates:
        return None
    return (rng or _random).choice(candidates)


def resolve_and_pick(patterns: Sequence[str],
                     rng: Optional[random.Random] = None) -> Tuple[Path, List[Path]]:
    """
    Expand patterns and pick one of the matched files.

    Returns:
        (picked file, all candidates in expansion order)

    Raises:
        NoFilesFound: If the patterns match no file
    """
    candidates = expand_patterns(patterns)
    logger.info(f"{len(candidates)} file{'s' if len(candidates) != 1 else ''} matched")
    picked = pick_file(candidates, rng)
    if picked is None:
        raise NoFilesFound(patterns)
    return picked, candidates
