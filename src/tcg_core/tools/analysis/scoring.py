"""Scoring engine: eight independent 0-100 scores for a resolved deck."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Protocol

import numpy as np

from ...data.models.inputs import MetaShare
from ...data.models.responses import (
    ArchetypeClassification,
    ScoreBreakdown,
    ScoreVector,
    SpeedAnalysis,
    SynergyAnalysis,
)
from ..deck import ResolvedDeck
from .constants import (
    ARCHETYPE_PROFILES,
    KNOWN_DECK_PROFILES,
    UTILITY_CATEGORIES,
    matchup_advantage,
)
from .features import DeckFeatures, card_categories
from .speed import speed_score
from .weights import DEFAULT_ANALYSIS_WEIGHTS, AnalysisWeights, OverallWeights

logger = logging.getLogger(__name__)

STRENGTH_THRESHOLD = 75
WEAKNESS_THRESHOLD = 40

SCORE_LABELS: dict[str, str] = {
    "consistency": "consistency",
    "power": "damage output",
    "speed": "setup speed",
    "versatility": "versatility",
    "meta_relevance": "meta positioning",
    "innovation": "originality",
    "difficulty": "piloting complexity",
}


def _clamp(value: float) -> int:
    return max(0, min(100, round(value)))


def compute_overall(
    components: Mapping[str, int], weights: OverallWeights | None = None
) -> int:
    """Fixed weighted sum of the seven sub-scores, clamped to [0, 100]."""
    w = (weights or DEFAULT_ANALYSIS_WEIGHTS.overall).as_dict()
    return _clamp(sum(components[name] * weight for name, weight in w.items()))


class ScoreEstimator(Protocol):
    """Anything that can score a resolved deck."""

    def score(
        self,
        deck: ResolvedDeck,
        features: DeckFeatures,
        synergy: SynergyAnalysis,
        speed: SpeedAnalysis,
        archetype: ArchetypeClassification | None = None,
        meta: Sequence[MetaShare] = (),
    ) -> ScoreVector: ...


class ScoringEngine:
    """Deterministic heuristic scores.

    ``archetype`` is optional: the first pass runs without it so the
    archetype classifier has scores to work from, and meta relevance stays
    neutral until the archetype is known.
    """

    def __init__(self, weights: AnalysisWeights | None = None):
        self.weights = weights or DEFAULT_ANALYSIS_WEIGHTS
        self._profiles = np.array(list(KNOWN_DECK_PROFILES.values()), dtype=np.float64)

    def score(
        self,
        deck: ResolvedDeck,
        features: DeckFeatures,
        synergy: SynergyAnalysis,
        speed: SpeedAnalysis,
        archetype: ArchetypeClassification | None = None,
        meta: Sequence[MetaShare] = (),
    ) -> ScoreVector:
        components = {
            "consistency": self.consistency(deck, features, synergy),
            "power": self.power(features, speed),
            "speed": speed_score(speed.average_setup_turn, self.weights.speed),
            "versatility": self.versatility(features, synergy),
            "meta_relevance": self.meta_relevance(deck, archetype, meta),
            "innovation": self.innovation(deck, features, meta),
            "difficulty": self.difficulty(deck, features, synergy, archetype),
        }
        overall = compute_overall(components, self.weights.overall)
        logger.debug("Scores: overall %d %s", overall, components)
        return ScoreVector(overall=overall, **components)

    # =========================================================================
    # Sub-scores
    # =========================================================================

    def consistency(
        self, deck: ResolvedDeck, features: DeckFeatures, synergy: SynergyAnalysis
    ) -> int:
        w = self.weights.consistency
        low, high = deck.rules.resource_band
        count = features.resource_count
        distance = max(low - count, count - high, 0)
        if distance:
            penalty = w.OUT_OF_BAND_PENALTY * distance
            resource = max(w.RESOURCE_FLOOR, w.RESOURCE_BAND_POINTS - penalty)
        else:
            resource = w.RESOURCE_BAND_POINTS

        basic_ratio = features.basic_creature_count / w.BASIC_CREATURE_FLOOR
        basics = w.BASIC_CREATURE_POINTS * min(1.0, basic_ratio)

        refill = sum(q for c, q in deck.supports() if card_categories(c) & {"search", "draw"})
        density = refill / features.total_cards if features.total_cards else 0.0
        search_draw = min(
            w.SEARCH_DRAW_POINTS, density / w.SEARCH_DRAW_FULL_DENSITY * w.SEARCH_DRAW_POINTS
        )

        evolution = w.EVOLUTION_POINTS * synergy.evolution_synergy.reliability / 100
        mulligan = min(w.MULLIGAN_PENALTY_CAP, deck.mulligan_probability() * 100)

        return _clamp(resource + basics + search_draw + evolution - mulligan)

    def power(self, features: DeckFeatures, speed: SpeedAnalysis) -> int:
        w = self.weights.power
        score = w.BASE
        for threshold, points in w.DAMAGE_TIERS:
            if features.average_damage >= threshold:
                score += points
                break
        if speed.prize_race_speed.one_shot_capable:
            score += w.ONE_SHOT_BONUS
        efficiency = features.damage_per_cost / w.EFFICIENCY_FULL * w.EFFICIENCY_POINTS
        score += min(w.EFFICIENCY_POINTS, efficiency)
        score += min(w.PRIZE_POINTS, speed.prize_race_speed.prizes_per_turn * w.PRIZE_POINTS)
        return _clamp(score)

    def versatility(self, features: DeckFeatures, synergy: SynergyAnalysis) -> int:
        w = self.weights.versatility
        type_points = w.TYPE_POINTS[min(features.distinct_types, len(w.TYPE_POINTS) - 1)]
        covered = sum(
            1 for category in UTILITY_CATEGORIES if features.support_effect_counts[category]
        )
        utility = min(w.UTILITY_CAP, covered * w.UTILITY_POINTS)
        coverage = 0.0
        if features.creature_count:
            coverage = w.COVERAGE_WEIGHT * synergy.type_synergy.weakness_coverage
        attackers = min(w.ATTACKER_CAP, features.unique_attackers * w.ATTACKER_POINTS)
        return _clamp(type_points + utility + coverage + attackers)

    def meta_relevance(
        self,
        deck: ResolvedDeck,
        archetype: ArchetypeClassification | None,
        meta: Sequence[MetaShare],
    ) -> int:
        w = self.weights.meta
        if archetype is None or not meta:
            return w.NEUTRAL

        primary = archetype.primary_archetype
        own_share = sum(share.share_of_field for share in meta if share.archetype == primary)
        presence = w.SHARE_POINTS * min(1.0, own_share / w.SHARE_FULL)

        field_edge = sum(
            share.share_of_field * matchup_advantage(primary, share.archetype) for share in meta
        )
        matchup = max(-w.MATCHUP_CAP, min(w.MATCHUP_CAP, field_edge * w.MATCHUP_SCALE))

        key_cards = {card_id for share in meta for card_id in share.key_card_ids}
        present = key_cards.intersection(deck.composition.card_ids)
        key_points = w.KEY_CARD_POINTS * len(present) / len(key_cards) if key_cards else 0.0

        return _clamp(w.BASE + presence + matchup + key_points)

    def innovation(
        self, deck: ResolvedDeck, features: DeckFeatures, meta: Sequence[MetaShare]
    ) -> int:
        """Distance from the closest widely copied list."""
        from sklearn.metrics.pairwise import cosine_similarity

        vector = features.profile_vector().reshape(1, -1)
        similarity = float(cosine_similarity(vector, self._profiles).max())

        deck_ids = set(deck.composition.card_ids)
        for share in meta:
            if share.key_card_ids:
                overlap = len(deck_ids.intersection(share.key_card_ids)) / len(share.key_card_ids)
                similarity = max(similarity, overlap)

        span = self.weights.innovation.SIMILARITY_SPAN
        return _clamp(100 * (1 - similarity) / span)

    def difficulty(
        self,
        deck: ResolvedDeck,
        features: DeckFeatures,
        synergy: SynergyAnalysis,
        archetype: ArchetypeClassification | None,
    ) -> int:
        w = self.weights.difficulty
        support_effects = sum(1 for c, _ in deck.supports() if card_categories(c))
        decisions = features.distinct_abilities + features.distinct_effect_attacks + support_effects

        score = w.BASE + min(w.DECISION_CAP, decisions * w.PER_DECISION)
        score += min(w.ABILITY_COMBO_CAP, len(synergy.ability_combos) * w.PER_ABILITY_COMBO)
        score += min(w.ATTACK_COMBO_CAP, len(synergy.attack_combos) * w.PER_ATTACK_COMBO)
        score += features.max_stage * w.PER_STAGE
        if archetype is not None:
            baseline = ARCHETYPE_PROFILES[archetype.primary_archetype].difficulty
            score += (baseline - 50) * w.ARCHETYPE_FACTOR
        return _clamp(score)


def build_breakdown(
    scores: ScoreVector,
    archetype: ArchetypeClassification,
    speed: SpeedAnalysis,
) -> ScoreBreakdown:
    """Strengths, weaknesses and game plan for a scored deck."""
    strengths = []
    weaknesses = []
    for name, value in scores.components().items():
        label = SCORE_LABELS[name]
        if value >= STRENGTH_THRESHOLD:
            strengths.append(f"Strong {label} ({value})")
        elif value <= WEAKNESS_THRESHOLD:
            weaknesses.append(f"Weak {label} ({value})")

    profile = ARCHETYPE_PROFILES[archetype.primary_archetype]
    win_conditions = list(profile.win_conditions)
    if speed.prize_race_speed.one_shot_capable:
        win_conditions.append("One-hit knockouts on large creatures")

    return ScoreBreakdown(
        strengths=strengths,
        weaknesses=weaknesses,
        core_strategy=profile.core_strategy,
        win_conditions=win_conditions,
    )
