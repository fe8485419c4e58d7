"""
Badge service — achievement rules applied to a ranked department score.

Rules are plain data: each ``BadgeRule`` pairs a predicate with what to
record when it matches.  ``evaluate_badges`` is pure; ``award_badges``
persists one ``Badge`` row per match.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from app.extensions import db
from app.models.gamification import Badge, GamificationScore
from app.utils import utcnow

logger = logging.getLogger(__name__)


class BadgeType(str, enum.Enum):
    """Every badge a department can hold."""

    COST_CHAMPION = "cost_champion"
    EFFICIENCY_EXPERT = "efficiency_expert"
    MOST_IMPROVED = "most_improved"
    ZERO_WASTE = "zero_waste"
    # Declared for the badge catalogue; no rule awards these yet.
    GREEN_WARRIOR = "green_warrior"
    OPTIMIZATION_MASTER = "optimization_master"


@dataclass(frozen=True)
class BadgeRule:
    """One badge condition and the snapshot stored when it is met."""

    badge_type: BadgeType
    threshold: int
    predicate: Callable[[GamificationScore], bool]
    actual_value: Callable[[GamificationScore], int | float | None]
    describe: Callable[[GamificationScore], str]


def _rank_improvement(score: GamificationScore) -> int | None:
    if score.previous_rank is None or score.rank is None:
        return None
    return score.previous_rank - score.rank


RULES: list[BadgeRule] = [
    BadgeRule(
        badge_type=BadgeType.COST_CHAMPION,
        threshold=1,
        predicate=lambda s: s.rank == 1,
        actual_value=lambda s: s.rank,
        describe=lambda s: "Achieved #1 efficiency ranking",
    ),
    BadgeRule(
        badge_type=BadgeType.EFFICIENCY_EXPERT,
        threshold=95,
        predicate=lambda s: s.efficiency_score >= 95,
        actual_value=lambda s: s.efficiency_score,
        describe=lambda s: "Achieved 95%+ efficiency score",
    ),
    BadgeRule(
        badge_type=BadgeType.MOST_IMPROVED,
        threshold=3,
        predicate=lambda s: (_rank_improvement(s) or 0) >= 3,
        actual_value=_rank_improvement,
        describe=lambda s: f"Improved ranking by {_rank_improvement(s)} positions",
    ),
    BadgeRule(
        badge_type=BadgeType.ZERO_WASTE,
        threshold=100,
        predicate=lambda s: s.utilization_rate >= 100,
        actual_value=lambda s: s.utilization_rate,
        describe=lambda s: "Achieved 100% license utilization",
    ),
]


def evaluate_badges(score: GamificationScore) -> list[BadgeRule]:
    """Return the rules the ranked score satisfies, in rule order."""
    return [rule for rule in RULES if rule.predicate(score)]


def award_badges(
    organization_id: int,
    department_id: int,
    period: str,
    score: GamificationScore,
    now: datetime | None = None,
) -> list[str]:
    """
    Insert a Badge for every rule the score satisfies.

    Badges are append-only: rerunning a period awards them again.
    Flush only; the scorer commits.

    Returns:
        The awarded badge type strings, for the score's ``badges`` list.
    """
    now = now or utcnow()
    awarded = []
    for rule in evaluate_badges(score):
        db.session.add(
            Badge(
                organization_id=organization_id,
                department_id=department_id,
                badge_type=rule.badge_type.value,
                earned_date=now,
                period=period,
                criteria={
                    "threshold": rule.threshold,
                    "actualValue": rule.actual_value(score),
                    "description": rule.describe(score),
                },
            )
        )
        awarded.append(rule.badge_type.value)

    if awarded:
        db.session.flush()
        logger.debug(
            "Department %d earned %s for %s", department_id, awarded, period
        )
    return awarded
