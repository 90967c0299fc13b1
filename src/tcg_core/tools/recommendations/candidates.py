"""Candidate ranking, acquisition costs and change explanations."""

from __future__ import annotations

from decimal import Decimal

from ...data.catalog import CardCatalog, OwnershipLookup
from ...data.models.card import Card
from ...data.models.responses import ScoreVector
from ..analysis.features import card_categories
from .weights import CardAffinity, GoalWeights

CATEGORY_LABELS: dict[str, str] = {
    "search": "deck search",
    "draw": "card draw",
    "accelerate": "resource acceleration",
    "damage_boost": "damage boost",
    "multi_hit": "bench damage",
    "damage_counters": "damage counters",
    "heal": "healing",
    "protect": "damage prevention",
    "status": "status conditions",
    "mill": "deck-out pressure",
    "disrupt": "disruption",
    "recursion": "discard recovery",
    "switch": "switching",
    "evolve": "evolution support",
    "hand_size": "hand-size payoff",
}


def card_value(
    card: Card, affinity: CardAffinity, preferred_types: frozenset[str] = frozenset()
) -> float:
    """Cheap standalone estimate used to shortlist cards before full analysis."""
    value = sum(affinity.categories.get(category, 0.0) for category in card_categories(card))
    if card.is_creature:
        attack = card.best_attack
        if attack is not None:
            value += affinity.damage * attack.damage / 100
            value += affinity.efficiency * attack.damage / max(attack.cost_count, 1) / 40
        value += affinity.hp * (card.hp or 0) / 100
        value += affinity.abilities * len(card.abilities)
        if preferred_types.intersection(card.elemental_types):
            value += 1.0
    return value


def describe_card(card: Card) -> str:
    """Short description of what a card brings."""
    categories = sorted(card_categories(card))
    if categories:
        return ", ".join(CATEGORY_LABELS[c] for c in categories[:2])
    if card.is_creature and card.best_attack is not None and card.best_attack.damage:
        attack = card.best_attack
        return f"{attack.damage} damage for {attack.cost_count} resources"
    if card.is_resource:
        types = "/".join(card.elemental_types) or "colorless"
        return f"{types} resource"
    return card.supertype.lower()


def substitution_reason(
    removed: Card,
    added: Card,
    before: ScoreVector,
    after: ScoreVector,
    goal: GoalWeights,
    quantity: int = 1,
) -> str:
    before_values = before.model_dump()
    after_values = after.model_dump()
    moved = [
        f"{name.replace('_', ' ')} {before_values[name]} -> {after_values[name]}"
        for name in goal.scores
        if before_values[name] != after_values[name]
    ]
    summary = ", ".join(moved) if moved else "scores unchanged"
    copies = f"{quantity}x " if quantity > 1 else ""
    return f"Replace {copies}{removed.name} with {added.name} ({describe_card(added)}): {summary}"


def score_impact(before: ScoreVector, after: ScoreVector) -> dict[str, int]:
    """Partial score delta; unchanged decks still report overall so the impact is never empty."""
    return before.delta(after) or {"overall": 0}


class AcquisitionCost:
    """Market price of the copies a user would still have to buy.

    Without an ownership lookup nothing counts as owned. Unpriced basic
    resources are free; any other unpriced card has an unknown cost.
    """

    def __init__(
        self,
        catalog: CardCatalog,
        ownership: OwnershipLookup | None = None,
        user_id: str | None = None,
    ):
        self.catalog = catalog
        self.ownership = ownership
        self.user_id = user_id

    def owned(self, card_id: str) -> int:
        if self.ownership is None or self.user_id is None:
            return 0
        return self.ownership.owned_quantity(self.user_id, card_id)

    def unit_price(self, card: Card) -> Decimal | None:
        price = self.catalog.card_price(card.id)
        if price is None and card.is_basic_resource:
            return Decimal("0")
        return price

    def of(self, card: Card, quantity: int) -> Decimal | None:
        missing = max(0, quantity - self.owned(card.id))
        if not missing:
            return Decimal("0")
        price = self.unit_price(card)
        return None if price is None else price * missing

    def change(self, card: Card, before: int, after: int) -> Decimal | None:
        """Cost of going from ``before`` to ``after`` copies; negative when copies leave."""
        cost_after = self.of(card, after)
        cost_before = self.of(card, before)
        if cost_after is None or cost_before is None:
            return None
        return cost_after - cost_before
