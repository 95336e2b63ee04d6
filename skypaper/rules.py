"""Weather-conditioned wallpaper rules."""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, Sequence, Tuple

from skypaper.errors import NoRuleMatched
from skypaper.time_period import DaySegment
from skypaper.weather import WeatherCategory


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    """A set of weather conditions and the glob patterns used when they hold."""

    patterns: Tuple[str, ...]
    conditions: FrozenSet[WeatherCategory] = field(default_factory=frozenset)

    @property
    def is_unconditional(self) -> bool:
        return not self.conditions

    def matches(self, category: WeatherCategory) -> bool:
        """Whether this rule applies under the given weather category."""
        if self.is_unconditional:
            return True
        if category == WeatherCategory.NO_OBSERVATION:
            return False
        return category in self.conditions

    def describe(self) -> str:
        if self.is_unconditional:
            on = "any weather"
        else:
            on = ", ".join(sorted(c.value for c in self.conditions))
        return f"on {on}: {', '.join(self.patterns)}"


def match_rule(
    segment: DaySegment,
    category: WeatherCategory,
    rules: Sequence[Rule]
) -> Rule:
    """
    Find the rule to use for a segment and weather category.

    Rules are scanned in declared order and the first one that applies wins,
    so a weather specific rule placed after a catch-all rule is never used.

    Args:
        segment: Current day segment
        category: Current weather category (may be NO_OBSERVATION)
        rules: Ordered rules configured for the segment

    Returns:
        The first matching Rule

    Raises:
        NoRuleMatched: If no rule applies
    """
    for index, rule in enumerate(rules):
        if rule.matches(category):
            logger.info(f"Rule #{index + 1} of {segment.value} matched ({rule.describe()})")
            return rule
        logger.debug(f"Rule #{index + 1} of {segment.value} skipped ({rule.describe()})")

    raise NoRuleMatched(segment, category)
