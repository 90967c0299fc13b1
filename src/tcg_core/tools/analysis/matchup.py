"""Head-to-head comparison of two analyzed decks."""

from __future__ import annotations

import logging

from ...data.models.responses import AnalysisResult, ComparisonResult
from ...data.models.types import Winner
from .constants import matchup_advantage
from .speed import speed_tier, speed_tier_index

logger = logging.getLogger(__name__)

BASE_WIN_RATE = 50.0
WIN_RATE_BOUNDS = (20.0, 80.0)
SPEED_DOMINANCE_TIERS = 2  # Tier gap that counts as dominating the race
SPEED_DOMINANCE_POINTS = 15.0
POWER_GAP = 20  # Power difference beyond which the stronger deck gains
POWER_GAP_POINTS = 10.0
CONSISTENCY_DIVISOR = 10.0
FAVORED_MARGIN = 5.0  # Win-rate distance from 50 reported as favored


def _winner(a: int, b: int) -> Winner:
    if a > b:
        return "a"
    if b > a:
        return "b"
    return "tie"


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def compare(result_a: AnalysisResult, result_b: AnalysisResult) -> ComparisonResult:
    """Compare two decks and estimate deck A's win rate against deck B.

    The estimate starts at 50% and adds the archetype matchup, a bonus when
    one deck is at least two speed tiers faster, a bonus for a large power
    gap and a share of the consistency gap, then clamps to [20, 80].
    """
    a, b = result_a.scores, result_b.scores
    arch_a = result_a.archetype.primary_archetype
    arch_b = result_b.archetype.primary_archetype

    a_scores = a.components()
    b_scores = b.components()
    category_winners = {name: _winner(a_scores[name], b_scores[name]) for name in a_scores}

    key_factors: list[str] = []
    win_rate = BASE_WIN_RATE

    advantage = matchup_advantage(arch_a, arch_b)
    if advantage:
        win_rate += advantage
        side = "favors" if advantage > 0 else "disfavors"
        key_factors.append(
            f"Archetype matchup {side} deck A ({arch_a} vs {arch_b}: {advantage:+d})"
        )

    tier_a, tier_b = speed_tier(a.speed), speed_tier(b.speed)
    tier_gap = speed_tier_index(tier_a) - speed_tier_index(tier_b)
    if abs(tier_gap) >= SPEED_DOMINANCE_TIERS:
        win_rate += SPEED_DOMINANCE_POINTS * _sign(tier_gap)
        faster = "A" if tier_gap > 0 else "B"
        key_factors.append(f"Deck {faster} dominates the speed race ({tier_a} vs {tier_b})")

    power_gap = a.power - b.power
    if abs(power_gap) > POWER_GAP:
        win_rate += POWER_GAP_POINTS * _sign(power_gap)
        stronger = "A" if power_gap > 0 else "B"
        key_factors.append(f"Deck {stronger} hits much harder (power {a.power} vs {b.power})")

    consistency_gap = a.consistency - b.consistency
    win_rate += consistency_gap / CONSISTENCY_DIVISOR
    if consistency_gap:
        steadier = "A" if consistency_gap > 0 else "B"
        key_factors.append(
            f"Deck {steadier} is more consistent ({a.consistency} vs {b.consistency})"
        )

    low, high = WIN_RATE_BOUNDS
    win_rate = round(max(low, min(high, win_rate)), 1)
    logger.debug("Comparison %s vs %s: win rate %.1f", arch_a, arch_b, win_rate)

    return ComparisonResult(
        category_winners=category_winners,
        overall_winner=_winner(a.overall, b.overall),
        win_rate=win_rate,
        key_factors=key_factors,
        strategy=_strategy(result_a, result_b, win_rate),
        recommendations=_recommendations(result_a, result_b, category_winners),
    )


def _strategy(result_a: AnalysisResult, result_b: AnalysisResult, win_rate: float) -> str:
    arch_a = result_a.archetype.primary_archetype
    arch_b = result_b.archetype.primary_archetype
    if win_rate >= BASE_WIN_RATE + FAVORED_MARGIN:
        outlook = f"Deck A ({arch_a}) is favored."
    elif win_rate <= BASE_WIN_RATE - FAVORED_MARGIN:
        outlook = f"Deck A ({arch_a}) is the underdog against {arch_b}."
    else:
        outlook = "The matchup is close to even."

    if result_a.scores.speed > result_b.scores.speed:
        plan = "Use the speed advantage to take early prizes before deck B sets up."
    elif result_a.scores.speed < result_b.scores.speed:
        plan = "Survive the early turns and trade efficiently once deck B's opening pressure fades."
    else:
        plan = (
            "Both decks develop at a similar pace, so card quality and sequencing decide the game."
        )
    return f"{outlook} {plan}"


def _recommendations(
    result_a: AnalysisResult,
    result_b: AnalysisResult,
    category_winners: dict[str, Winner],
) -> list[str]:
    recommendations = []
    if category_winners["speed"] == "b":
        recommendations.append("Add acceleration or search to keep up with deck B's setup speed")
    if category_winners["power"] == "b":
        recommendations.append("Add higher-damage attackers or damage boosts")
    if category_winners["consistency"] == "b":
        recommendations.append("Add more draw and search support")
    arch_a = result_a.archetype.primary_archetype
    arch_b = result_b.archetype.primary_archetype
    if matchup_advantage(arch_a, arch_b) < 0:
        recommendations.append(f"Consider tech cards that target {arch_b} strategies")
    for vulnerability in result_a.synergy.type_synergy.vulnerabilities:
        if vulnerability in result_b.synergy.type_synergy.type_distribution:
            recommendations.append(f"Cover the {vulnerability} weakness that deck B can exploit")
    return recommendations
