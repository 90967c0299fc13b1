"""Composition feature extraction shared by every heuristic.

Features are computed once per resolved deck and read by the scoring,
archetype, synergy and speed components, so each of them sees the same
snapshot.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from ...data.models.card import Card
from ..deck import ResolvedDeck
from .constants import (
    EFFECT_PATTERNS,
    MAIN_ATTACKER_DAMAGE,
    MULTI_PRIZE_SUBTYPES,
    PROFILE_FEATURES,
)


def card_categories(card: Card) -> frozenset[str]:
    """Effect categories found anywhere in a card's text."""
    text = card.effect_text
    if not text:
        return frozenset()
    return frozenset(name for name, pattern in EFFECT_PATTERNS.items() if pattern.search(text))


def text_categories(text: str) -> frozenset[str]:
    """Effect categories of a single ability or attack text."""
    lowered = text.lower()
    return frozenset(name for name, pattern in EFFECT_PATTERNS.items() if pattern.search(lowered))


def is_main_attacker(card: Card) -> bool:
    return card.is_creature and card.max_damage >= MAIN_ATTACKER_DAMAGE


def main_attackers(deck: ResolvedDeck) -> list[tuple[Card, int]]:
    """Creatures carrying the damage plan.

    Falls back to any damaging creature, then to every creature, so decks
    built around small attackers still have a plan to measure.
    """
    attackers = [(c, q) for c, q in deck.creatures() if is_main_attacker(c)]
    if not attackers:
        attackers = [(c, q) for c, q in deck.creatures() if c.max_damage > 0]
    if not attackers:
        attackers = deck.creatures()
    return attackers


@dataclass
class DeckFeatures:
    """Numeric summary of a resolved deck."""

    total_cards: int = 0
    creature_count: int = 0
    support_count: int = 0
    resource_count: int = 0
    basic_creature_count: int = 0
    stage2_count: int = 0
    max_stage: int = 0

    attacker_count: int = 0  # Copies of main attackers
    unique_attackers: int = 0
    average_damage: float = 0.0  # Copy-weighted best-attack damage of main attackers
    max_damage: int = 0
    average_attack_cost: float = 0.0  # Copy-weighted cost of those best attacks
    damage_per_cost: float = 0.0
    average_hp: float = 0.0
    single_prize_ratio: float = 1.0

    ability_cards: int = 0  # Copies of cards with at least one ability
    distinct_abilities: int = 0
    distinct_effect_attacks: int = 0

    # Copies of cards whose text matches each effect category
    effect_counts: Counter[str] = field(default_factory=Counter)
    support_effect_counts: Counter[str] = field(default_factory=Counter)
    type_distribution: dict[str, int] = field(default_factory=dict)

    @property
    def distinct_types(self) -> int:
        return len(self.type_distribution)

    def density(self, category: str) -> float:
        """Share of the deck carrying an effect category."""
        if not self.total_cards:
            return 0.0
        return self.effect_counts[category] / self.total_cards

    def profile_vector(self) -> NDArray[np.float64]:
        """Composition profile in ``PROFILE_FEATURES`` order, for similarity checks."""
        total = max(self.total_cards, 1)
        creatures = max(self.creature_count, 1)
        values = {
            "creature_ratio": self.creature_count / total,
            "support_ratio": self.support_count / total,
            "resource_ratio": self.resource_count / total,
            "stage2_ratio": self.stage2_count / creatures,
            "ability_ratio": self.ability_cards / total,
        }
        return np.array(
            [values[name] if name in values else self.density(name) for name in PROFILE_FEATURES],
            dtype=np.float64,
        )


class FeatureExtractor:
    """Build DeckFeatures from a resolved deck."""

    def extract(self, deck: ResolvedDeck) -> DeckFeatures:
        features = DeckFeatures(
            total_cards=deck.total_cards,
            creature_count=deck.creature_count,
            support_count=deck.support_count,
            resource_count=deck.resource_count,
            basic_creature_count=deck.basic_creature_count,
        )

        abilities: set[str] = set()
        effect_attacks: set[tuple[str, str]] = set()
        types: Counter[str] = Counter()
        hp_total = 0
        multi_prize = 0

        for card, qty in deck.cards:
            categories = card_categories(card)
            for category in categories:
                features.effect_counts[category] += qty
                if card.is_support:
                    features.support_effect_counts[category] += qty
            if card.abilities:
                features.ability_cards += qty
                abilities.update(a.name for a in card.abilities if a.text)
            effect_attacks.update((card.name, a.name) for a in card.attacks if a.text)

            if card.is_creature:
                hp_total += (card.hp or 0) * qty
                features.max_stage = max(features.max_stage, card.stage)
                if card.stage == 2:
                    features.stage2_count += qty
                if MULTI_PRIZE_SUBTYPES.intersection(card.subtypes):
                    multi_prize += qty
                for elemental_type in card.elemental_types:
                    types[elemental_type] += qty

        features.distinct_abilities = len(abilities)
        features.distinct_effect_attacks = len(effect_attacks)
        features.type_distribution = dict(sorted(types.items()))

        if features.creature_count:
            features.average_hp = hp_total / features.creature_count
            features.single_prize_ratio = 1 - multi_prize / features.creature_count

        self._extract_attack_profile(deck, features)
        return features

    def _extract_attack_profile(self, deck: ResolvedDeck, features: DeckFeatures) -> None:
        attacks = []
        for card, qty in main_attackers(deck):
            attack = card.best_attack
            if attack is not None:
                attacks.append((card, attack, qty))
        copies = sum(q for _, _, q in attacks)
        if not copies:
            return

        features.attacker_count = sum(q for c, _, q in attacks if c.max_damage > 0)
        features.unique_attackers = sum(1 for c, _, _ in attacks if c.max_damage > 0)
        features.max_damage = max(c.max_damage for c, _, _ in attacks)

        damage = 0.0
        cost = 0.0
        efficiency = 0.0
        for _, attack, qty in attacks:
            damage += attack.damage * qty
            cost += attack.cost_count * qty
            efficiency += attack.damage / max(attack.cost_count, 1) * qty

        features.average_damage = damage / copies
        features.average_attack_cost = cost / copies
        features.damage_per_cost = efficiency / copies
