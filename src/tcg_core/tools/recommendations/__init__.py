"""Deck optimization: greedy substitution search and from-scratch builds."""

from .candidates import AcquisitionCost, card_value
from .models import SearchDeadline
from .optimizer import DeckOptimizer
from .weights import ARCHETYPE_TEMPLATES, GOAL_WEIGHTS, GoalWeights

__all__ = [
    "ARCHETYPE_TEMPLATES",
    "GOAL_WEIGHTS",
    "AcquisitionCost",
    "DeckOptimizer",
    "GoalWeights",
    "SearchDeadline",
    "card_value",
]
