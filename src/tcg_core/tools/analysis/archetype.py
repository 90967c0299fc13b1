"""Archetype classification from rule-based signatures."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from ...config import Settings, get_settings
from ...data.models.responses import ArchetypeClassification, ScoreVector
from ...data.models.types import ARCHETYPES, Archetype
from .constants import (
    ARCHETYPE_PROFILES,
    ARCHETYPE_SIGNATURES,
    LOW_CONFIDENCE_CAP,
    ArchetypeSignature,
)
from .features import DeckFeatures

logger = logging.getLogger(__name__)

# Effect categories exposed as classification signals (copies in the deck)
_EFFECT_SIGNALS = (
    "damage_boost",
    "disrupt",
    "heal",
    "protect",
    "switch",
    "draw",
    "search",
    "accelerate",
    "mill",
    "status",
    "multi_hit",
    "damage_counters",
)


def classification_signals(features: DeckFeatures, scores: ScoreVector) -> dict[str, float]:
    """Named values the signatures are written against."""
    signals: dict[str, float] = {
        "power": scores.power,
        "speed": scores.speed,
        "consistency": scores.consistency,
        # A deck with nothing to pay for should not read as cheap
        "avg_cost": features.average_attack_cost if features.attacker_count else float("inf"),
        "attacker_count": features.attacker_count,
        "unique_attackers": features.unique_attackers,
        "avg_hp": features.average_hp,
        "distinct_types": features.distinct_types,
        "ability_cards": features.ability_cards,
        "distinct_abilities": features.distinct_abilities,
        "stage2_count": features.stage2_count,
        "single_prize_ratio": features.single_prize_ratio if features.creature_count else 0.0,
    }
    for category in _EFFECT_SIGNALS:
        signals[category] = features.effect_counts[category]
    return signals


def signature_score(signature: ArchetypeSignature, signals: Mapping[str, float]) -> int:
    """Raw signature points normalized against the signature's own attainable range.

    Min-max scaling across the taxonomy would pin the top archetype at 100 for
    every deck, so the top score could never express low confidence.
    """
    raw = signature.base + sum(rule.points(signals[rule.signal]) for rule in signature.rules)
    if signature.max_raw <= 0:
        return 0
    return max(0, min(100, round(100 * raw / signature.max_raw)))


class ArchetypeClassifier:
    """Score every archetype independently and pick the best match."""

    def __init__(
        self,
        settings: Settings | None = None,
        signatures: Mapping[Archetype, ArchetypeSignature] | None = None,
    ):
        settings = settings or get_settings()
        self.margin = settings.archetype_secondary_margin
        self.floor = settings.archetype_floor
        self.signatures = signatures or ARCHETYPE_SIGNATURES

    def candidate_scores(self, features: DeckFeatures, scores: ScoreVector) -> dict[Archetype, int]:
        signals = classification_signals(features, scores)
        return {name: signature_score(self.signatures[name], signals) for name in ARCHETYPES}

    def classify(self, features: DeckFeatures, scores: ScoreVector) -> ArchetypeClassification:
        candidates = self.candidate_scores(features, scores)
        # Stable sort keeps declaration order among ties
        ranked = sorted(ARCHETYPES, key=lambda name: -candidates[name])
        classifiable = [name for name in ranked if candidates[name] >= self.floor]

        secondary: Archetype | None = None
        if len(classifiable) < 2:
            primary: Archetype = "midrange"
            others = max(score for name, score in candidates.items() if name != primary)
            confidence = max(min(candidates[primary], LOW_CONFIDENCE_CAP), others)
        else:
            primary, runner_up = ranked[0], ranked[1]
            confidence = candidates[primary]
            if confidence - candidates[runner_up] <= self.margin:
                secondary = runner_up

        logger.debug(
            "Archetype %s (%d), secondary %s, candidates %s",
            primary,
            confidence,
            secondary,
            candidates,
        )
        return ArchetypeClassification(
            primary_archetype=primary,
            secondary_archetype=secondary,
            confidence=confidence,
            characteristics=self._characteristics(primary, features),
            playstyle=self._playstyle(primary, secondary),
            candidate_scores=candidates,
        )

    @staticmethod
    def _characteristics(primary: Archetype, features: DeckFeatures) -> list[str]:
        tags = list(ARCHETYPE_PROFILES[primary].characteristics)
        if features.max_stage >= 1:
            tags.append("evolution lines")
        if features.effect_counts["accelerate"] >= 2:
            tags.append("resource acceleration")
        if features.distinct_types >= 3:
            tags.append("multi-type")
        return tags

    @staticmethod
    def _playstyle(primary: Archetype, secondary: Archetype | None) -> str:
        playstyle = ARCHETYPE_PROFILES[primary].playstyle
        if secondary:
            playstyle += f" Leans on a {secondary} plan as a backup."
        return playstyle
