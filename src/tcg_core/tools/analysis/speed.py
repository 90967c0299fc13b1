"""Closed-form speed model: setup turn, sustainability and prize race."""

from __future__ import annotations

import logging
from math import ceil
from typing import Protocol

from ...data.models.card import Attack, Card
from ...data.models.responses import PrizeRaceSpeed, SpeedAnalysis, SynergyAnalysis
from ...data.models.types import SpeedTier
from ..deck import ResolvedDeck
from .constants import DAMAGE_BOOST_AMOUNT, SPEED_TIERS
from .features import DeckFeatures, card_categories, main_attackers
from .weights import DEFAULT_ANALYSIS_WEIGHTS, SpeedModelWeights, SpeedWeights

logger = logging.getLogger(__name__)


def estimate_card_setup_turns(
    card: Card, attack: Attack | None = None, attach_rate: float = 1.0
) -> int:
    """Turn on which a single creature can first use an attack.

    Resources are attached one per turn (faster with acceleration) while
    evolution happens in parallel, one stage per turn after the basic.
    """
    attack = attack or card.best_attack
    cost = attack.cost_count if attack else 0
    return max(1, ceil(cost / attach_rate), card.stage + 1)


def speed_score(average_setup_turn: float, weights: SpeedWeights | None = None) -> int:
    """Inverse linear map from setup turn to a 0-100 speed score."""
    w = weights or DEFAULT_ANALYSIS_WEIGHTS.speed
    return max(0, min(100, round(w.INTERCEPT - w.PER_TURN * average_setup_turn)))


def speed_tier(score: int) -> SpeedTier:
    for upper, tier in SPEED_TIERS:
        if score < upper:
            return tier  # type: ignore[return-value]
    return "turbo"


def speed_tier_index(tier: SpeedTier) -> int:
    return [name for _, name in SPEED_TIERS].index(tier)


class SpeedEstimator(Protocol):
    """Anything that can turn a resolved deck into a SpeedAnalysis.

    ``SpeedModel`` is the closed-form implementation; a simulator can be
    swapped in behind the same contract.
    """

    def estimate(
        self, deck: ResolvedDeck, features: DeckFeatures, synergy: SynergyAnalysis
    ) -> SpeedAnalysis: ...


class SpeedModel:
    """Heuristic speed estimates from composition ratios."""

    def __init__(
        self,
        weights: SpeedModelWeights | None = None,
        score_weights: SpeedWeights | None = None,
    ):
        self.weights = weights or DEFAULT_ANALYSIS_WEIGHTS.speed_model
        self.score_weights = score_weights or DEFAULT_ANALYSIS_WEIGHTS.speed

    def estimate(
        self, deck: ResolvedDeck, features: DeckFeatures, synergy: SynergyAnalysis
    ) -> SpeedAnalysis:
        efficiency = synergy.energy_synergy.efficiency
        setup_turn = self.average_setup_turn(deck, features, efficiency)
        prize_race = self._prize_race(deck, features, synergy)
        score = speed_score(setup_turn, self.score_weights)

        logger.debug(
            "Speed: setup turn %.1f, score %d, damage %d",
            setup_turn,
            score,
            prize_race.damage_output_per_turn,
        )
        return SpeedAnalysis(
            average_setup_turn=setup_turn,
            energy_attachment_efficiency=efficiency,
            late_game_sustainability=self._late_game(features),
            prize_race_speed=prize_race,
            overall_speed=speed_tier(score),
        )

    def average_setup_turn(
        self, deck: ResolvedDeck, features: DeckFeatures, efficiency: int
    ) -> float:
        """Blend of attacker readiness and search density, never below turn one."""
        w = self.weights
        attach_rate = 1.0 + efficiency / 100

        attackers = main_attackers(deck)
        copies = sum(q for _, q in attackers)
        avg_stage = sum(c.stage * q for c, q in attackers) / copies if copies else 0.0
        readiness = max(1.0, features.average_attack_cost / attach_rate) + w.STAGE_TURNS * avg_stage

        refill = sum(q for c, q in deck.cards if card_categories(c) & {"search", "draw"})
        density = refill / features.total_cards if features.total_cards else 0.0
        reduction = min(w.MAX_SEARCH_REDUCTION, density * w.SEARCH_DENSITY_FACTOR)

        baseline = (1 - w.ATTACKER_WEIGHT) * w.BASE_SETUP_TURN
        turn = w.ATTACKER_WEIGHT * readiness + baseline - reduction
        return max(1.0, round(turn, 1))

    def _late_game(self, features: DeckFeatures) -> int:
        w = self.weights
        recursion = min(w.RECURSION_CAP, features.effect_counts["recursion"] * w.PER_RECURSION)
        thinning = min(w.THINNING_CAP, features.effect_counts["search"] * w.PER_THINNING)
        return max(0, min(100, round(w.LATE_GAME_BASE + recursion + thinning)))

    def _prize_race(
        self, deck: ResolvedDeck, features: DeckFeatures, synergy: SynergyAnalysis
    ) -> PrizeRaceSpeed:
        boost = 0
        for card, _ in deck.cards:
            for match in DAMAGE_BOOST_AMOUNT.finditer(card.effect_text):
                boost = max(boost, int(match.group(1) or match.group(2)))

        best = max((c.max_damage for c, _ in deck.creatures()), default=0)
        potential = max(
            best + boost if best else 0,
            max((combo.damage for combo in synergy.attack_combos), default=0),
        )
        damage = round(features.average_damage)
        return PrizeRaceSpeed(
            damage_output_per_turn=damage,
            one_shot_capable=potential >= deck.rules.large_hp_threshold,
            prizes_per_turn=round(damage / self.weights.PRIZE_DAMAGE, 2),
        )
