"""Goal weights, search limits and build templates for deck optimization."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ...data.models.types import Archetype, OptimizationGoal


@dataclass(frozen=True)
class GoalWeights:
    """Weights over ScoreVector fields defining one goal's objective."""

    scores: dict[str, float]
    label: str
    minimize_cost: bool = False  # Cost goal: keep performance, lower the bill

    def objective(self, values: dict[str, int]) -> float:
        total = sum(self.scores.values())
        return sum(values[name] * weight for name, weight in self.scores.items()) / total


GOAL_WEIGHTS: dict[OptimizationGoal, GoalWeights] = {
    "consistency": GoalWeights({"consistency": 1.0, "overall": 0.25}, "consistency"),
    "power": GoalWeights({"power": 1.0, "overall": 0.25}, "power"),
    "cost": GoalWeights({"overall": 1.0}, "cost at equal performance", minimize_cost=True),
    "meta_adapt": GoalWeights({"meta_relevance": 1.0, "overall": 0.3}, "meta relevance"),
}


@dataclass(frozen=True)
class OptimizerWeights:
    """Search knobs."""

    COST_FLOOR: Decimal = Decimal("0.50")  # Denominator floor for score-per-cost ranking
    MIN_IMPROVEMENT: float = 1e-9  # Objective gain that counts as an improvement


@dataclass(frozen=True)
class CardAffinity:
    """How strongly a build favors card properties when ranking candidates."""

    categories: dict[str, float] = field(default_factory=dict)
    damage: float = 1.0  # Per 100 best-attack damage
    efficiency: float = 1.0  # Per 40 damage per resource
    hp: float = 0.0  # Per 100 HP
    abilities: float = 0.5  # Per ability


@dataclass(frozen=True)
class DeckTemplate:
    """Slot targets for a from-scratch build; resources fill the rest."""

    creatures: int
    supports: int
    affinity: CardAffinity
    copies: int = 4


ARCHETYPE_TEMPLATES: dict[Archetype, DeckTemplate] = {
    "aggro": DeckTemplate(
        16,
        30,
        CardAffinity(
            {"damage_boost": 2.0, "accelerate": 1.0, "draw": 1.0, "search": 1.0}, 2.0, 2.0
        ),
    ),
    "control": DeckTemplate(
        12,
        34,
        CardAffinity(
            {"disrupt": 2.5, "heal": 1.5, "protect": 1.0, "draw": 1.5, "switch": 1.0}, 0.5
        ),
    ),
    "combo": DeckTemplate(
        16,
        30,
        CardAffinity({"search": 2.5, "draw": 1.5, "accelerate": 1.5, "evolve": 1.0}, abilities=2.0),
    ),
    "midrange": DeckTemplate(
        16, 30, CardAffinity({"search": 1.5, "draw": 1.5, "switch": 1.0, "accelerate": 1.0})
    ),
    "mill": DeckTemplate(
        12, 34, CardAffinity({"mill": 3.0, "disrupt": 1.5, "heal": 1.0, "draw": 1.0}, 0.2)
    ),
    "stall": DeckTemplate(
        14, 32, CardAffinity({"heal": 2.5, "protect": 2.5, "status": 1.0, "draw": 1.0}, 0.2, hp=2.0)
    ),
    "toolbox": DeckTemplate(
        18, 28, CardAffinity({"search": 2.5, "switch": 1.5, "draw": 1.0})
    ),
    "turbo": DeckTemplate(
        14, 32, CardAffinity({"accelerate": 3.0, "search": 1.5, "draw": 1.5}, 2.0, 1.5)
    ),
    "spread": DeckTemplate(
        16, 30, CardAffinity({"multi_hit": 2.5, "damage_counters": 2.0, "draw": 1.0, "search": 1.0})
    ),
}

# Category bonuses used to shortlist candidates for each goal
GOAL_AFFINITY: dict[OptimizationGoal, CardAffinity] = {
    "consistency": CardAffinity(
        {"search": 3.0, "draw": 3.0, "evolve": 1.5, "accelerate": 1.0}, 0.5, 0.5
    ),
    "power": CardAffinity({"damage_boost": 2.5, "accelerate": 1.5, "multi_hit": 1.0}, 2.0, 2.0),
    "cost": CardAffinity({"search": 1.0, "draw": 1.0}),
    "meta_adapt": CardAffinity({"disrupt": 1.0, "search": 1.0, "draw": 1.0}),
}

DEFAULT_OPTIMIZER_WEIGHTS = OptimizerWeights()
