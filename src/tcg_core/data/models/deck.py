"""Deck composition models."""

from __future__ import annotations

import hashlib
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CompositionEntry(BaseModel):
    """A card id with its quantity in a deck."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    card_id: str = Field(alias="cardId", min_length=1)
    quantity: int = Field(ge=1)


class DeckComposition(BaseModel):
    """An immutable multiset of cards making up one deck.

    Entries keep their input order and card ids are unique. Copy limits
    depend on card data, so they are checked when the deck is resolved
    against a catalog (see ``tcg_core.tools.deck.validate_composition``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    entries: tuple[CompositionEntry, ...] = ()

    @model_validator(mode="after")
    def check_unique_ids(self) -> DeckComposition:
        seen: set[str] = set()
        duplicates: list[str] = []
        for entry in self.entries:
            if entry.card_id in seen:
                duplicates.append(entry.card_id)
            seen.add(entry.card_id)
        if duplicates:
            raise ValueError(f"duplicate card ids in composition: {', '.join(duplicates)}")
        return self

    @classmethod
    def from_counts(cls, counts: Mapping[str, int]) -> DeckComposition:
        """Build a composition from a ``{card_id: quantity}`` mapping, dropping zero quantities."""
        return cls(
            entries=tuple(
                CompositionEntry(card_id=card_id, quantity=qty)
                for card_id, qty in counts.items()
                if qty != 0
            )
        )

    @property
    def total_cards(self) -> int:
        return sum(e.quantity for e in self.entries)

    @property
    def card_ids(self) -> list[str]:
        return [e.card_id for e in self.entries]

    def quantity_of(self, card_id: str) -> int:
        for entry in self.entries:
            if entry.card_id == card_id:
                return entry.quantity
        return 0

    def to_counts(self) -> dict[str, int]:
        return {e.card_id: e.quantity for e in self.entries}

    def fingerprint(self, format_name: str) -> str:
        """Stable hash of (sorted composition, format), independent of entry order."""
        key_parts = [format_name.lower()]
        entries = sorted(self.entries, key=lambda e: e.card_id)
        key_parts.extend(f"{e.card_id}:{e.quantity}" for e in entries)
        return hashlib.sha256("|".join(key_parts).encode()).hexdigest()

    def replace(self, remove_id: str, add_id: str, quantity: int = 1) -> DeckComposition:
        """Return a new composition with ``quantity`` copies of one card swapped for another."""
        counts = self.to_counts()
        if counts.get(remove_id, 0) < quantity:
            raise ValueError(f"composition has fewer than {quantity} copies of {remove_id}")
        counts[remove_id] -= quantity
        counts[add_id] = counts.get(add_id, 0) + quantity
        return DeckComposition.from_counts(counts)
