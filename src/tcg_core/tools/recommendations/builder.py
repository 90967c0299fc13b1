"""Seed assembly for decks built from scratch.

A seed follows an archetype template: must-include cards first, then the
best-ranked creatures with their evolution chains, then supports, and the
remaining slots go to basic resources matching the creatures' attack costs.
The seed only has to be a legal, sensible starting point; the local search
refines it afterwards.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from ...data.models.card import Card
from ...data.models.deck import DeckComposition
from ...data.models.types import Archetype
from ...exceptions import ConstraintInfeasibleError
from ..deck import FormatRules
from .candidates import AcquisitionCost, card_value
from .weights import DeckTemplate

logger = logging.getLogger(__name__)

# Attack cost tags that any resource can pay
GENERIC_COST_TAGS = frozenset({"Colorless"})


@dataclass
class SeedPlan:
    """Placed cards in placement order, with the role each was placed for."""

    archetype: Archetype
    counts: dict[str, int] = field(default_factory=dict)
    cards: dict[str, Card] = field(default_factory=dict)
    roles: dict[str, str] = field(default_factory=dict)
    spent: Decimal = Decimal("0")

    @property
    def total_cards(self) -> int:
        return sum(self.counts.values())

    @property
    def filler(self) -> Card:
        """The most-played basic resource, used to stand in for removed cards."""
        resources = sorted(
            card_id for card_id in self.counts if self.cards[card_id].is_basic_resource
        )
        return self.cards[max(resources, key=lambda card_id: self.counts[card_id])]

    def composition(self) -> DeckComposition:
        return DeckComposition.from_counts(self.counts)


class SeedBuilder:
    """Assemble a template-shaped seed deck from a candidate pool."""

    def __init__(
        self,
        pool: Sequence[Card],
        rules: FormatRules,
        costs: AcquisitionCost,
        max_budget: Decimal | None = None,
        only_owned: bool = False,
    ):
        self.pool = sorted(pool, key=lambda c: c.id)
        self.rules = rules
        self.costs = costs
        self.max_budget = max_budget
        self.only_owned = only_owned
        self._by_name: dict[str, Card] = {}
        for card in self.pool:
            self._by_name.setdefault(card.name, card)

    def build(
        self,
        archetype: Archetype,
        template: DeckTemplate,
        must_include: Sequence[Card] = (),
        preferred_types: frozenset[str] = frozenset(),
    ) -> SeedPlan:
        plan = SeedPlan(archetype=archetype)

        for card in must_include:
            wanted = 1 if card.is_basic_resource else template.copies
            placed = self._place_line(plan, card, wanted, "required card")
            if not placed:
                raise ConstraintInfeasibleError(
                    f"Cannot place required card {card.id}: its evolution chain, "
                    "ownership or the budget does not allow it",
                    [f"must include {card.id}"],
                )

        def ranked(cards: list[Card]) -> list[Card]:
            return sorted(
                cards,
                key=lambda c: (-card_value(c, template.affinity, preferred_types), c.id),
            )

        creatures = ranked([c for c in self.pool if c.is_creature])
        for card in creatures:
            if _count(plan, "Creature") >= template.creatures:
                break
            self._place_line(plan, card, template.copies, "creature")

        supports = ranked([c for c in self.pool if c.is_support])
        for card in supports:
            room = template.supports - _count(plan, "Support")
            if room <= 0:
                break
            self._place(plan, card, min(template.copies, room), "support")

        self._fill_resources(plan)
        logger.debug(
            "Seed %s: %d creatures, %d supports, %d resources, cost %s",
            archetype,
            _count(plan, "Creature"),
            _count(plan, "Support"),
            _count(plan, "Resource"),
            plan.spent,
        )
        return plan

    # -------------------------------------------------------------------------
    # Placement
    # -------------------------------------------------------------------------

    def available(self, card: Card) -> int:
        """Copies the deck may hold under the copy limit and ownership."""
        limit = self.rules.deck_size if card.is_basic_resource else self.rules.copy_limit
        if self.only_owned:
            limit = min(limit, self.costs.owned(card.id))
        return limit

    def _place(self, plan: SeedPlan, card: Card, quantity: int, role: str) -> int:
        """Add up to ``quantity`` copies, as many as slots, limits and budget allow."""
        current = plan.counts.get(card.id, 0)
        room = self.rules.deck_size - plan.total_cards
        quantity = min(quantity, self.available(card) - current, room)
        cost = Decimal("0")
        while quantity > 0:
            known = self.costs.change(card, current, current + quantity)
            if known is None:
                # Unpriced cards cannot be checked against a budget
                if self.max_budget is not None:
                    return 0
                break
            if self._affordable(plan, known):
                cost = known
                break
            quantity -= 1
        if quantity <= 0:
            return 0
        plan.counts[card.id] = current + quantity
        plan.cards[card.id] = card
        plan.roles.setdefault(card.id, role)
        plan.spent += cost
        return quantity

    def _affordable(self, plan: SeedPlan, cost: Decimal) -> bool:
        return self.max_budget is None or plan.spent + cost <= self.max_budget

    def _place_line(self, plan: SeedPlan, card: Card, quantity: int, role: str) -> int:
        """Place a creature together with every lower stage it evolves from."""
        chain = self._chain(card)
        if chain is None:
            return 0
        for lower in chain[:-1]:
            if plan.counts.get(lower.id, 0) == 0 and not self._place(plan, lower, quantity, role):
                return 0
        return self._place(plan, card, quantity, role)

    def _chain(self, card: Card) -> list[Card] | None:
        """Evolution chain from the basic stage up to ``card``, or None if a stage is missing."""
        chain = [card]
        seen = {card.id}
        while chain[0].evolves_from:
            lower = self._by_name.get(chain[0].evolves_from)
            if lower is None or lower.id in seen:
                return None
            chain.insert(0, lower)
            seen.add(lower.id)
        return chain

    def _fill_resources(self, plan: SeedPlan) -> None:
        demand: Counter[str] = Counter()
        for card_id, qty in plan.counts.items():
            card = plan.cards[card_id]
            for attack in card.attacks:
                for tag in attack.cost:
                    if tag not in GENERIC_COST_TAGS:
                        demand[tag] += qty

        basics = [c for c in self.pool if c.is_basic_resource]
        if not basics:
            raise ConstraintInfeasibleError(
                "No basic resource is available for this build",
                ["basic resources"],
            )

        def matched(card: Card) -> int:
            return max((demand[t] for t in card.elemental_types), default=0)

        basics.sort(key=lambda c: (-matched(c), c.id))
        matching = [c for c in basics if matched(c)] or basics[:1]
        total_demand = sum(matched(c) for c in matching)
        room = self.rules.deck_size - plan.total_cards
        for card in matching:
            share = room * matched(card) // total_demand if total_demand else room
            self._place(plan, card, share, "resource")
        # Rounding remainders and ownership gaps go to any basic resource that still has room
        for card in basics:
            room = self.rules.deck_size - plan.total_cards
            if room <= 0:
                break
            self._place(plan, card, room, "resource")

        if plan.total_cards < self.rules.deck_size:
            raise ConstraintInfeasibleError(
                f"Only {plan.total_cards} of {self.rules.deck_size} cards can be placed "
                "under the ownership and budget constraints",
                ["deck size"],
            )


def _count(plan: SeedPlan, supertype: str) -> int:
    return sum(
        qty for card_id, qty in plan.counts.items() if plan.cards[card_id].supertype == supertype
    )
