"""tcg-core - deck analysis and optimization engine for trading card games."""

from __future__ import annotations

from .cache import AnalysisCache
from .config import Settings, get_settings
from .data.catalog import (
    CardCatalog,
    InMemoryCatalog,
    InMemoryOwnership,
    MetaSnapshotProvider,
    OwnershipLookup,
    StaticMetaSnapshot,
)
from .exceptions import (
    CatalogResolutionError,
    ConstraintInfeasibleError,
    TCGError,
    ValidationError,
)
from .tools.analysis.analyzer import DeckAnalyzer
from .tools.analysis.matchup import compare
from .tools.recommendations import DeckOptimizer, SearchDeadline

__version__ = "0.1.0"

__all__ = [
    "AnalysisCache",
    "CardCatalog",
    "CatalogResolutionError",
    "ConstraintInfeasibleError",
    "DeckAnalyzer",
    "DeckOptimizer",
    "InMemoryCatalog",
    "InMemoryOwnership",
    "MetaSnapshotProvider",
    "OwnershipLookup",
    "SearchDeadline",
    "Settings",
    "StaticMetaSnapshot",
    "TCGError",
    "ValidationError",
    "compare",
    "get_settings",
]
