"""Analysis orchestrator: one resolved snapshot in, one AnalysisResult out."""

from __future__ import annotations

import copy
import logging
from collections import Counter
from decimal import Decimal
from typing import TYPE_CHECKING

from ...cache import AnalysisCache
from ...config import Settings, get_settings
from ...data.catalog import CardCatalog, MetaSnapshotProvider
from ...data.models.deck import DeckComposition
from ...data.models.responses import (
    AnalysisResult,
    DeckInfo,
    Performance,
    ScoreVector,
    ValidationReport,
)
from ...data.models.types import LearningCurve
from ..deck import (
    ResolvedDeck,
    check_composition,
    get_format_rules,
    resolve_composition,
    validate_composition,
)
from .archetype import ArchetypeClassifier
from .constants import BUDGET_FLOOR, BUDGET_TIERS, LEARNING_CURVE_TIERS, RARITY_PRICE_ESTIMATES
from .features import FeatureExtractor
from .scoring import ScoreEstimator, ScoringEngine, build_breakdown
from .speed import SpeedEstimator, SpeedModel
from .synergy import SynergyDetector
from .weights import DEFAULT_ANALYSIS_WEIGHTS, AnalysisWeights

if TYPE_CHECKING:
    from ...data.models.card import Card

logger = logging.getLogger(__name__)


class DeckAnalyzer:
    """Run every analysis component against the same resolved deck.

    Pipeline: synergy, then speed (which reuses the synergy resource
    metric), then a first ScoreVector without an archetype, then the
    archetype, then the final ScoreVector with archetype-aware meta
    relevance and difficulty.
    """

    def __init__(
        self,
        catalog: CardCatalog,
        meta_provider: MetaSnapshotProvider | None = None,
        settings: Settings | None = None,
        weights: AnalysisWeights | None = None,
        speed_model: SpeedEstimator | None = None,
        scoring_engine: ScoreEstimator | None = None,
        cache: AnalysisCache | None = None,
    ):
        self.catalog = catalog
        self.meta_provider = meta_provider
        self.settings = settings or get_settings()
        weights = weights or DEFAULT_ANALYSIS_WEIGHTS
        self.features = FeatureExtractor()
        self.synergy = SynergyDetector(weights.synergy)
        self.speed_model = speed_model or SpeedModel(weights.speed_model, weights.speed)
        self.scoring = scoring_engine or ScoringEngine(weights)
        self.classifier = ArchetypeClassifier(self.settings)
        self.cache = cache

    def with_cache(self, cache: AnalysisCache) -> DeckAnalyzer:
        """Shallow copy sharing every component but memoizing into ``cache``."""
        clone = copy.copy(self)
        clone.cache = cache
        return clone

    def resolve(self, composition: DeckComposition, format_name: str) -> ResolvedDeck:
        get_format_rules(format_name)
        return resolve_composition(self.catalog, composition, format_name)

    def validate(self, composition: DeckComposition, format_name: str) -> ValidationReport:
        """Report every issue without raising on an illegal deck."""
        return check_composition(self.resolve(composition, format_name))

    def analyze(
        self, composition: DeckComposition, format_name: str | None = None
    ) -> AnalysisResult:
        """Analyze a composition, failing fast on an invalid deck.

        Raises:
            ValidationError: unknown format, wrong size, copy limit or legality problems.
            CatalogResolutionError: one or more card ids are unknown.
        """
        format_name = (format_name or self.settings.default_format).lower()
        if self.cache is not None:
            cached = self.cache.lookup(composition, format_name)
            if cached is not None:
                logger.debug("Analysis cache hit (%d cached)", len(self.cache))
                return cached

        deck = self.resolve(composition, format_name)
        report = validate_composition(deck)
        result = self._analyze_resolved(deck, report.warnings)

        if self.cache is not None:
            self.cache.store(composition, format_name, result)
        return result

    def _analyze_resolved(self, deck: ResolvedDeck, warnings: list[str]) -> AnalysisResult:
        features = self.features.extract(deck)
        synergy = self.synergy.analyze(deck, features)
        speed = self.speed_model.estimate(deck, features, synergy)
        meta = self.meta_provider.current_top_archetypes(deck.format) if self.meta_provider else []

        preliminary = self.scoring.score(deck, features, synergy, speed)
        archetype = self.classifier.classify(features, preliminary)
        scores = self.scoring.score(deck, features, synergy, speed, archetype, meta)

        logger.debug(
            "Analyzed %d-card %s deck: %s overall %d",
            deck.total_cards,
            deck.format,
            archetype.primary_archetype,
            scores.overall,
        )
        return AnalysisResult(
            format=deck.format,
            composition=deck.composition,
            scores=scores,
            archetype=archetype,
            synergy=synergy,
            speed=speed,
            deck_info=self._deck_info(deck),
            performance=self._performance(deck, scores),
            breakdown=build_breakdown(scores, archetype, speed),
            warnings=warnings,
        )

    @staticmethod
    def _deck_info(deck: ResolvedDeck) -> DeckInfo:
        value = Decimal("0")
        priced = 0
        for card, qty in deck.cards:
            if card.market_price is not None:
                value += card.market_price * qty
                priced += qty
        histogram = Counter(qty for _, qty in deck.cards)
        return DeckInfo(
            total_cards=deck.total_cards,
            unique_cards=len(deck.cards),
            creature_count=deck.creature_count,
            support_count=deck.support_count,
            resource_count=deck.resource_count,
            quantity_distribution=dict(sorted(histogram.items())),
            total_market_value=value,
            priced_cards=priced,
            mulligan_probability=round(deck.mulligan_probability(), 4),
        )

    def _performance(self, deck: ResolvedDeck, scores: ScoreVector) -> Performance:
        rotation_safe = sum(q for c, q in deck.cards if c.is_legal_in("standard"))
        future = 70 * rotation_safe / deck.total_cards + 0.3 * scores.innovation
        return Performance(
            tournament_performance=scores.overall,
            consistency_rating=round(scores.consistency / 10),
            power_level=scores.power,
            meta_viability=scores.meta_relevance,
            skill_ceiling=scores.difficulty,
            budget_efficiency=_budget_efficiency(deck.cards),
            future_proofing=max(0, min(100, round(future))),
            learning_curve=_learning_curve(scores.difficulty),
        )


def _estimated_price(card: Card) -> float | None:
    if card.market_price is not None:
        return float(card.market_price)
    if card.rarity:
        return RARITY_PRICE_ESTIMATES.get(card.rarity.lower())
    return None


def _budget_efficiency(cards: tuple[tuple[Card, int], ...]) -> int:
    """Cheaper average card prices score higher; unpriced decks are neutral."""
    total = 0.0
    copies = 0
    for card, qty in cards:
        price = _estimated_price(card)
        if price is not None:
            total += price * qty
            copies += qty
    if not copies:
        return 50
    average = total / copies
    for ceiling, score in BUDGET_TIERS:
        if average <= ceiling:
            return score
    return BUDGET_FLOOR


def _learning_curve(difficulty: int) -> LearningCurve:
    for ceiling, curve in LEARNING_CURVE_TIERS:
        if difficulty <= ceiling:
            return curve  # type: ignore[return-value]
    return "expert"
