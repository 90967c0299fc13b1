"""Composition resolution and validation."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from functools import cached_property
from math import comb

from ..data.catalog import CardCatalog
from ..data.models.card import Card
from ..data.models.deck import DeckComposition
from ..data.models.responses import ValidationIssue, ValidationReport
from ..exceptions import ValidationError
from .analysis.constants import EFFECT_PATTERNS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormatRules:
    deck_size: int
    copy_limit: int
    resource_band: tuple[int, int]  # Recommended resource count, inclusive
    large_hp_threshold: int  # HP of the largest common creatures
    opening_hand: int = 7


FORMAT_RULES: dict[str, FormatRules] = {
    "standard": FormatRules(60, 4, (12, 16), 280),
    "expanded": FormatRules(60, 4, (11, 15), 300),
    "unlimited": FormatRules(60, 4, (14, 20), 120),
}


def get_format_rules(format_name: str) -> FormatRules:
    rules = FORMAT_RULES.get(format_name.lower())
    if rules is None:
        raise ValidationError(
            f"Unknown format '{format_name}'",
            [
                ValidationIssue(
                    issue="unknown_format", details=f"Supported: {', '.join(FORMAT_RULES)}"
                )
            ],
        )
    return rules


@dataclass(frozen=True)
class ResolvedDeck:
    """A composition joined with its catalog cards, in entry order."""

    composition: DeckComposition
    cards: tuple[tuple[Card, int], ...]
    format: str

    @property
    def rules(self) -> FormatRules:
        return get_format_rules(self.format)

    @property
    def total_cards(self) -> int:
        return sum(qty for _, qty in self.cards)

    @cached_property
    def category_counts(self) -> Counter[str]:
        counts: Counter[str] = Counter()
        for card, qty in self.cards:
            counts[card.supertype] += qty
        return counts

    @property
    def creature_count(self) -> int:
        return self.category_counts["Creature"]

    @property
    def support_count(self) -> int:
        return self.category_counts["Support"]

    @property
    def resource_count(self) -> int:
        return self.category_counts["Resource"]

    @property
    def basic_creature_count(self) -> int:
        return sum(qty for card, qty in self.cards if card.is_basic_creature)

    def creatures(self) -> list[tuple[Card, int]]:
        return [(c, q) for c, q in self.cards if c.is_creature]

    def supports(self) -> list[tuple[Card, int]]:
        return [(c, q) for c, q in self.cards if c.is_support]

    def resources(self) -> list[tuple[Card, int]]:
        return [(c, q) for c, q in self.cards if c.is_resource]

    def mulligan_probability(self) -> float:
        """Chance that an opening hand holds no basic creature."""
        total = self.total_cards
        hand = min(self.rules.opening_hand, total)
        if total == 0:
            return 1.0
        non_basic = total - self.basic_creature_count
        return comb(non_basic, hand) / comb(total, hand)


def resolve_composition(
    catalog: CardCatalog,
    composition: DeckComposition,
    format_name: str,
) -> ResolvedDeck:
    """Look up every card in one batch; unknown ids raise one aggregated error."""
    cards = catalog.resolve_cards(composition.card_ids)
    return ResolvedDeck(
        composition=composition,
        cards=tuple(zip(cards, (e.quantity for e in composition.entries), strict=True)),
        format=format_name.lower(),
    )


def check_composition(deck: ResolvedDeck) -> ValidationReport:
    """Check deck size, copy limits and legality, collecting every issue."""
    rules = deck.rules
    issues: list[ValidationIssue] = []
    warnings: list[str] = []

    total = deck.total_cards
    if total != rules.deck_size:
        issues.append(
            ValidationIssue(
                issue="wrong_size",
                details=f"Deck has {total} cards, {deck.format} requires exactly {rules.deck_size}",
            )
        )

    for card, qty in deck.cards:
        if not card.is_basic_resource and qty > rules.copy_limit:
            issues.append(
                ValidationIssue(
                    card_id=card.id,
                    issue="over_copy_limit",
                    details=f"Has {qty} copies, limit is {rules.copy_limit}",
                )
            )
        if not card.is_legal_in(deck.format):
            issues.append(
                ValidationIssue(
                    card_id=card.id,
                    issue="not_legal",
                    details=f"{card.name} is not legal in {deck.format}",
                )
            )

    low, high = rules.resource_band
    if deck.basic_creature_count == 0:
        warnings.append("Deck has no basic creatures and cannot open a legal hand")
    if deck.resource_count < low or deck.resource_count > high:
        warnings.append(
            f"Resource count {deck.resource_count} is outside the recommended {low}-{high}"
        )
    refill = (EFFECT_PATTERNS["draw"], EFFECT_PATTERNS["search"])
    if not any(p.search(card.effect_text) for card, _ in deck.supports() for p in refill):
        warnings.append("Deck has no draw or search support")

    return ValidationReport(
        format=deck.format,
        is_valid=not issues,
        total_cards=total,
        issues=issues,
        warnings=warnings,
    )


def validate_composition(deck: ResolvedDeck) -> ValidationReport:
    """Raise ValidationError listing every issue if the deck is not legal."""
    report = check_composition(deck)
    if not report.is_valid:
        logger.debug("Composition rejected with %d issues", len(report.issues))
        summary = "; ".join(i.details or i.issue for i in report.issues)
        raise ValidationError(f"Invalid composition: {summary}", report.issues)
    return report
