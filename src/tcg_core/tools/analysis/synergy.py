"""Synergy detection: combos, type coverage, resource engine and evolution lines."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from itertools import combinations
from statistics import mean

from ...data.models.card import Ability, Card
from ...data.models.responses import (
    AbilityCombo,
    AttackCombo,
    EnergySynergy,
    EvolutionLine,
    EvolutionSynergy,
    SynergyAnalysis,
    SynergyEdge,
    SynergyGraph,
    SynergySubscores,
    TrainerSynergy,
    TypeSynergy,
)
from ..deck import ResolvedDeck
from .constants import (
    ABILITY_PAIRINGS,
    COMMON_OPPOSING_TYPES,
    SETUP_PAYOFFS,
    SUPPORT_PAIRINGS,
    TIER_SCORES,
    TYPE_RESISTANCES,
    TYPE_WEAKNESSES,
    VULNERABILITY_MIN_COPIES,
    EffectPairing,
    pair_key,
)
from .features import DeckFeatures, card_categories, text_categories
from .speed import estimate_card_setup_turns
from .weights import DEFAULT_ANALYSIS_WEIGHTS, SynergyWeights

logger = logging.getLogger(__name__)

RESOURCE_SEARCH = re.compile(r"search your deck for .*?(?:energy|resource)")
MAX_COPY_FACTOR = 4  # Copies at which a pairing scores its full tier value
MAX_COMBOS_FOR_MEAN = 5


def _pairing_score(pairing: EffectPairing, min_copies: int) -> int:
    """Tier score, shaded down when the rarer piece is run in fewer copies."""
    frequency = min(1.0, min_copies / MAX_COPY_FACTOR)
    return round(TIER_SCORES[pairing.tier] * (0.85 + 0.15 * frequency))


def _weaknesses(card: Card) -> set[str]:
    if card.weaknesses:
        return set(card.weaknesses)
    return {w for t in card.elemental_types for w in TYPE_WEAKNESSES.get(t, ())}


def _resistances(card: Card) -> set[str]:
    if card.resistances:
        return set(card.resistances)
    return {r for t in card.elemental_types for r in TYPE_RESISTANCES.get(t, ())}


def is_accelerator(card: Card) -> bool:
    """Cards that put resources into play faster than one attachment per turn."""
    text = card.effect_text
    return "accelerate" in card_categories(card) or bool(RESOURCE_SEARCH.search(text))


class SynergyDetector:
    """Enumerate card interactions and roll them into one synergy score."""

    def __init__(self, weights: SynergyWeights | None = None):
        self.weights = weights or DEFAULT_ANALYSIS_WEIGHTS.synergy

    def analyze(self, deck: ResolvedDeck, features: DeckFeatures) -> SynergyAnalysis:
        edges: list[SynergyEdge] = []

        ability_combos = self._ability_combos(deck, edges)
        trainer_synergy = self._trainer_synergy(deck, features, edges)
        attack_combos = self._attack_combos(deck, edges)
        type_synergy = self._type_synergy(deck, features)
        energy_synergy = self._energy_synergy(deck)
        evolution_synergy = self._evolution_synergy(deck, edges)
        edges.extend(self._resource_edges(deck))
        edges.extend(self._conflict_edges(deck))

        subscores = self._subscores(
            ability_combos, trainer_synergy, attack_combos, type_synergy, energy_synergy,
            evolution_synergy, features,
        )
        w = self.weights
        overall = (
            subscores.combos * w.COMBOS
            + subscores.attacks * w.ATTACKS
            + subscores.types * w.TYPES
            + subscores.energy * w.ENERGY
            + subscores.evolution * w.EVOLUTION
        )
        logger.debug(
            "Synergy: %d ability combos, %d attack combos, %d support pairs, overall %.1f",
            len(ability_combos),
            len(attack_combos),
            len(trainer_synergy),
            overall,
        )

        return SynergyAnalysis(
            overall_synergy=max(0, min(100, round(overall))),
            subscores=subscores,
            type_synergy=type_synergy,
            energy_synergy=energy_synergy,
            evolution_synergy=evolution_synergy,
            ability_combos=ability_combos,
            attack_combos=attack_combos,
            trainer_synergy=trainer_synergy,
            graph=SynergyGraph(nodes=[card.id for card, _ in deck.cards], edges=edges),
        )

    # =========================================================================
    # Combos
    # =========================================================================

    def _ability_combos(self, deck: ResolvedDeck, edges: list[SynergyEdge]) -> list[AbilityCombo]:
        with_abilities = [(c, q) for c, q in deck.cards if c.abilities]
        combos: list[AbilityCombo] = []
        for (card_a, qty_a), (card_b, qty_b) in combinations(with_abilities, 2):
            seen: set[tuple[str, str]] = set()
            for ability_a in card_a.abilities:
                for ability_b in card_b.abilities:
                    for key, pairing in self._match(ability_a, ability_b):
                        if key in seen:
                            continue
                        seen.add(key)
                        score = _pairing_score(pairing, min(qty_a, qty_b))
                        description = f"{ability_a.name} + {ability_b.name}: {pairing.description}"
                        combos.append(
                            AbilityCombo(
                                participant_cards=[card_a.name, card_b.name],
                                abilities=[ability_a.name, ability_b.name],
                                description=description,
                                synergy_score=score,
                            )
                        )
                        edges.append(
                            SynergyEdge(
                                source=card_a.id,
                                target=card_b.id,
                                kind="ability",
                                strength=score,
                                description=pairing.description,
                            )
                        )
        combos.sort(key=lambda c: (-c.synergy_score, c.participant_cards, c.abilities))
        return combos

    @staticmethod
    def _match(
        ability_a: Ability, ability_b: Ability
    ) -> list[tuple[tuple[str, str], EffectPairing]]:
        matches = []
        for cat_a in sorted(text_categories(ability_a.text)):
            for cat_b in sorted(text_categories(ability_b.text)):
                key = pair_key(cat_a, cat_b)
                if key in ABILITY_PAIRINGS:
                    matches.append((key, ABILITY_PAIRINGS[key]))
        return matches

    def _trainer_synergy(
        self, deck: ResolvedDeck, features: DeckFeatures, edges: list[SynergyEdge]
    ) -> list[TrainerSynergy]:
        supports = [(c, q, card_categories(c)) for c, q in deck.supports()]
        pairs: list[TrainerSynergy] = []
        total = max(features.total_cards, 1)
        for (card_a, qty_a, cats_a), (card_b, qty_b, cats_b) in combinations(supports, 2):
            found = {pair_key(a, b) for a in cats_a for b in cats_b}
            keys = sorted(found.intersection(SUPPORT_PAIRINGS))
            if not keys:
                continue
            # The strongest pairing between two cards represents the pair
            pairing = max((SUPPORT_PAIRINGS[k] for k in keys), key=lambda p: TIER_SCORES[p.tier])
            min_copies = min(qty_a, qty_b)
            score = _pairing_score(pairing, min_copies)
            pairs.append(
                TrainerSynergy(
                    participant_cards=[card_a.name, card_b.name],
                    effect=pairing.description,
                    synergy_score=score,
                    expected_frequency_per_game=round(
                        min_copies * self.weights.CARDS_SEEN_PER_GAME / total, 2
                    ),
                )
            )
            edges.append(
                SynergyEdge(
                    source=card_a.id,
                    target=card_b.id,
                    kind="support",
                    strength=score,
                    description=pairing.description,
                )
            )
        pairs.sort(key=lambda p: (-p.synergy_score, p.participant_cards))
        return pairs

    def _attack_combos(self, deck: ResolvedDeck, edges: list[SynergyEdge]) -> list[AttackCombo]:
        creatures = deck.creatures()
        combos: list[AttackCombo] = []
        for setup_card, _ in creatures:
            setups = [
                (attack, category)
                for attack in setup_card.attacks
                for category in sorted(text_categories(attack.text).intersection(SETUP_PAYOFFS))
            ]
            if not setups:
                continue
            for attacker, _ in creatures:
                if attacker.id == setup_card.id or attacker.best_attack is None:
                    continue
                payoff_attack = attacker.best_attack
                for setup_attack, category in setups:
                    payoff = SETUP_PAYOFFS[category]
                    if payoff.payoff_pattern is None:
                        reacts = payoff_attack.cost_count >= 3
                    else:
                        reacts = bool(payoff.payoff_pattern.search(payoff_attack.text.lower()))
                    damage = payoff_attack.damage + (payoff.bonus if payoff.payoff_pattern else 0)
                    if not reacts or damage < payoff.threshold:
                        continue
                    setup_name = setup_attack.name or setup_card.name
                    description = payoff.description.format(attacker=attacker.name)
                    combos.append(
                        AttackCombo(
                            setup_card=setup_card.name,
                            attacker_card=attacker.name,
                            combo_description=f"{setup_name} {description}",
                            damage=damage,
                            setup_turns=estimate_card_setup_turns(setup_card, setup_attack),
                        )
                    )
                    edges.append(
                        SynergyEdge(
                            source=setup_card.id,
                            target=attacker.id,
                            kind="attack",
                            strength=min(100, damage // 2),
                            description=description,
                        )
                    )
                    break
        combos.sort(key=lambda c: (-c.damage, c.setup_card, c.attacker_card))
        return combos

    # =========================================================================
    # Types, resources, evolution
    # =========================================================================

    def _type_synergy(self, deck: ResolvedDeck, features: DeckFeatures) -> TypeSynergy:
        creatures = deck.creatures()
        if not creatures:
            return TypeSynergy(weakness_coverage=100, vulnerabilities=[], type_distribution={})

        resisted = {r for card, _ in creatures for r in _resistances(card)}
        vulnerabilities = []
        for opposing in COMMON_OPPOSING_TYPES:
            weak_copies = sum(q for card, q in creatures if opposing in _weaknesses(card))
            if weak_copies >= VULNERABILITY_MIN_COPIES and opposing not in resisted:
                vulnerabilities.append(opposing)

        covered = len(COMMON_OPPOSING_TYPES) - len(vulnerabilities)
        return TypeSynergy(
            weakness_coverage=round(100 * covered / len(COMMON_OPPOSING_TYPES)),
            vulnerabilities=vulnerabilities,
            type_distribution=features.type_distribution,
        )

    def _energy_synergy(self, deck: ResolvedDeck) -> EnergySynergy:
        accelerators = [(c, q) for c, q in deck.cards if is_accelerator(c)]
        methods = sorted({c.name for c, _ in accelerators})
        if not deck.resource_count:
            return EnergySynergy(efficiency=self.weights.NEUTRAL, acceleration_methods=methods)
        ratio = sum(q for _, q in accelerators) / deck.resource_count
        efficiency = min(100, round(100 * ratio * self.weights.ENERGY_RATIO_SCALE))
        return EnergySynergy(efficiency=efficiency, acceleration_methods=methods)

    def _evolution_synergy(self, deck: ResolvedDeck, edges: list[SynergyEdge]) -> EvolutionSynergy:
        lines = evolution_lines(deck)
        if not lines:
            return EvolutionSynergy(reliability=self.weights.NEUTRAL, evolution_speed=3, lines=[])

        by_name = {card.name: card for card, _ in deck.creatures()}
        for line in lines:
            for lower, upper in zip(line.stages, line.stages[1:], strict=False):
                edges.append(
                    SynergyEdge(
                        source=by_name[lower].id,
                        target=by_name[upper].id,
                        kind="evolution",
                        strength=90,
                        description=f"{upper} evolves from {lower}",
                    )
                )

        line_copies = sum(line.copies for line in lines)
        support_copies = sum(
            q
            for card, q in deck.supports()
            if card_categories(card) & {"search", "draw", "evolve"}
        )
        ratio = support_copies / line_copies
        return EvolutionSynergy(
            reliability=min(100, round(40 + 60 * min(1.0, ratio))),
            evolution_speed=_evolution_speed(ratio),
            lines=lines,
        )

    def _resource_edges(self, deck: ResolvedDeck) -> list[SynergyEdge]:
        edges = []
        for resource, _ in deck.resources():
            for creature, _ in deck.creatures():
                needed = {t for a in creature.attacks for t in a.cost}
                matched = sorted(needed.intersection(resource.elemental_types))
                if matched:
                    edges.append(
                        SynergyEdge(
                            source=resource.id,
                            target=creature.id,
                            kind="type",
                            strength=50,
                            description=f"provides {', '.join(matched)} for attacks",
                        )
                    )
        return edges

    def _conflict_edges(self, deck: ResolvedDeck) -> list[SynergyEdge]:
        stadiums = [c for c, _ in deck.supports() if "Stadium" in c.subtypes]
        return [
            SynergyEdge(
                source=a.id,
                target=b.id,
                kind="conflict",
                strength=-50,
                description="stadiums replace each other",
            )
            for a, b in combinations(stadiums, 2)
        ]

    # =========================================================================
    # Roll-up
    # =========================================================================

    def _subscores(
        self,
        ability_combos: Sequence[AbilityCombo],
        trainer_synergy: Sequence[TrainerSynergy],
        attack_combos: Sequence[AttackCombo],
        type_synergy: TypeSynergy,
        energy_synergy: EnergySynergy,
        evolution_synergy: EvolutionSynergy,
        features: DeckFeatures,
    ) -> SynergySubscores:
        w = self.weights

        combo_scores = sorted(
            [c.synergy_score for c in ability_combos] + [t.synergy_score for t in trainer_synergy],
            reverse=True,
        )
        if combo_scores:
            bonus = min(w.COMBO_COUNT_CAP, w.COMBO_COUNT_BONUS * (len(combo_scores) - 1))
            combos = min(100, round(mean(combo_scores[:MAX_COMBOS_FOR_MEAN]) + bonus))
        else:
            combos = w.NEUTRAL

        if attack_combos:
            attacks = min(100, round(w.ATTACK_BASE + w.PER_ATTACK_COMBO * len(attack_combos)))
        else:
            attacks = w.NEUTRAL

        if features.creature_count:
            spread_bonus = 20 if 1 <= features.distinct_types <= 3 else 10
            types = min(100, round(0.8 * type_synergy.weakness_coverage + spread_bonus))
        else:
            types = w.NEUTRAL

        return SynergySubscores(
            combos=combos,
            attacks=attacks,
            types=types,
            energy=energy_synergy.efficiency,
            evolution=evolution_synergy.reliability,
        )


def evolution_lines(deck: ResolvedDeck) -> list[EvolutionLine]:
    """Evolution families with at least two stages present, basic first."""
    creatures = deck.creatures()
    by_name = {card.name: card for card, _ in creatures}
    copies: dict[str, int] = {}
    for card, qty in creatures:
        copies[card.name] = copies.get(card.name, 0) + qty

    def root(card: Card) -> str:
        seen = {card.name}
        while card.evolves_from and card.evolves_from in by_name and card.evolves_from not in seen:
            card = by_name[card.evolves_from]
            seen.add(card.name)
        return card.name

    families: dict[str, set[str]] = {}
    for card, _ in creatures:
        families.setdefault(root(card), set()).add(card.name)

    lines = []
    for members in families.values():
        if len(members) < 2:
            continue
        stages = sorted(members, key=lambda name: (by_name[name].stage, name))
        lines.append(EvolutionLine(stages=stages, copies=sum(copies[name] for name in stages)))
    lines.sort(key=lambda line: line.stages)
    return lines


def _evolution_speed(ratio: float) -> int:
    """1-5 ordinal: more search/draw per evolution copy means faster lines."""
    for threshold, speed in ((1.0, 5), (0.75, 4), (0.5, 3), (0.25, 2)):
        if ratio >= threshold:
            return speed
    return 1
