"""Type definitions for deck data."""

from typing import Literal

Format = Literal["standard", "expanded", "unlimited"]

Supertype = Literal["Creature", "Support", "Resource"]

Archetype = Literal[
    "aggro",
    "control",
    "combo",
    "midrange",
    "mill",
    "stall",
    "toolbox",
    "turbo",
    "spread",
]

# Declaration order doubles as the tie-break order for classification.
ARCHETYPES: tuple[Archetype, ...] = (
    "aggro",
    "control",
    "combo",
    "midrange",
    "mill",
    "stall",
    "toolbox",
    "turbo",
    "spread",
)

ScoreName = Literal[
    "overall",
    "consistency",
    "power",
    "speed",
    "versatility",
    "meta_relevance",
    "innovation",
    "difficulty",
]

SpeedTier = Literal["slow", "medium", "fast", "turbo"]

OptimizationGoal = Literal["consistency", "power", "cost", "meta_adapt"]

ChangeAction = Literal["add", "remove", "replace"]

StopReason = Literal["no_improvement", "change_cap", "budget", "deadline"]

LearningCurve = Literal["beginner", "intermediate", "advanced", "expert"]

Winner = Literal["a", "b", "tie"]
