"""Pydantic models for cards, compositions and engine results."""

from .card import Ability, Attack, Card
from .deck import CompositionEntry, DeckComposition
from .inputs import BuildPreferences, Constraint, MetaShare
from .responses import (
    AnalysisResult,
    ArchetypeClassification,
    Change,
    ComparisonResult,
    OptimizationResult,
    ScoreVector,
    SpeedAnalysis,
    SynergyAnalysis,
    ValidationIssue,
    ValidationReport,
    WantListItem,
)

__all__ = [
    "Ability",
    "AnalysisResult",
    "ArchetypeClassification",
    "Attack",
    "BuildPreferences",
    "Card",
    "Change",
    "ComparisonResult",
    "CompositionEntry",
    "Constraint",
    "DeckComposition",
    "MetaShare",
    "OptimizationResult",
    "ScoreVector",
    "SpeedAnalysis",
    "SynergyAnalysis",
    "ValidationIssue",
    "ValidationReport",
    "WantListItem",
]
