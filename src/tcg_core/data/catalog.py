"""Collaborator interfaces for card data, ownership and the current meta.

The engine only reads through these protocols. The in-memory implementations
back the CLI and tests; a host application plugs in its own database-backed
versions.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import TypeAdapter

from ..exceptions import CatalogResolutionError, ValidationError
from .models.card import Card
from .models.deck import CompositionEntry, DeckComposition
from .models.inputs import MetaShare

logger = logging.getLogger(__name__)

_CARD_LIST = TypeAdapter(list[Card])


@runtime_checkable
class CardCatalog(Protocol):
    """Read-only card lookup."""

    def resolve_cards(self, ids: Iterable[str]) -> list[Card]:
        """Return cards in input order, raising CatalogResolutionError listing every unknown id."""
        ...

    def card_price(self, card_id: str) -> Decimal | None: ...

    def is_legal(self, card_id: str, format_name: str) -> bool: ...

    def legal_cards(self, format_name: str) -> list[Card]:
        """All cards legal in a format, in a stable order."""
        ...


@runtime_checkable
class OwnershipLookup(Protocol):
    def owned_quantity(self, user_id: str, card_id: str) -> int: ...

    def owned_card_ids(self, user_id: str) -> list[str]: ...


@runtime_checkable
class MetaSnapshotProvider(Protocol):
    def current_top_archetypes(self, format_name: str) -> list[MetaShare]: ...


class InMemoryCatalog:
    """Catalog over a fixed list of cards."""

    def __init__(self, cards: Iterable[Card]):
        self._cards: dict[str, Card] = {}
        for card in cards:
            if card.id in self._cards:
                raise ValueError(f"duplicate card id in catalog: {card.id}")
            self._cards[card.id] = card

    def __len__(self) -> int:
        return len(self._cards)

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._cards

    def get(self, card_id: str) -> Card | None:
        return self._cards.get(card_id)

    def resolve_cards(self, ids: Iterable[str]) -> list[Card]:
        ids = list(ids)
        missing = [card_id for card_id in ids if card_id not in self._cards]
        if missing:
            raise CatalogResolutionError(missing)
        return [self._cards[card_id] for card_id in ids]

    def card_price(self, card_id: str) -> Decimal | None:
        card = self._cards.get(card_id)
        return card.market_price if card else None

    def is_legal(self, card_id: str, format_name: str) -> bool:
        card = self._cards.get(card_id)
        return card.is_legal_in(format_name) if card else False

    def legal_cards(self, format_name: str) -> list[Card]:
        return sorted(
            (card for card in self._cards.values() if card.is_legal_in(format_name)),
            key=lambda c: c.id,
        )


class InMemoryOwnership:
    """Ownership lookup over ``{user_id: {card_id: quantity}}``."""

    def __init__(self, collections: Mapping[str, Mapping[str, int]] | None = None):
        self._collections = {user: dict(cards) for user, cards in (collections or {}).items()}

    def owned_quantity(self, user_id: str, card_id: str) -> int:
        return self._collections.get(user_id, {}).get(card_id, 0)

    def owned_card_ids(self, user_id: str) -> list[str]:
        owned = self._collections.get(user_id, {})
        return sorted(card_id for card_id, qty in owned.items() if qty > 0)


class StaticMetaSnapshot:
    """Meta snapshot fixed at construction, keyed by format."""

    def __init__(self, shares_by_format: Mapping[str, Iterable[MetaShare]] | None = None):
        self._shares = {
            fmt.lower(): list(shares) for fmt, shares in (shares_by_format or {}).items()
        }

    def current_top_archetypes(self, format_name: str) -> list[MetaShare]:
        return list(self._shares.get(format_name.lower(), []))


# =============================================================================
# JSON loading
# =============================================================================


def load_catalog(path: Path) -> InMemoryCatalog:
    """Load a catalog from a JSON list of card objects (camelCase keys accepted)."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("cards", [])
    cards = _CARD_LIST.validate_python(data)
    logger.debug("Loaded %d cards from %s", len(cards), path)
    return InMemoryCatalog(cards)


def parse_composition(data: Any) -> tuple[DeckComposition, str | None]:
    """Parse a deck document into a composition and its optional format.

    Accepts ``{"format": ..., "entries": [{"cardId": ..., "quantity": ...}]}``,
    ``{"format": ..., "cards": {card_id: quantity}}`` or a bare mapping of
    card ids to quantities.
    """
    if not isinstance(data, dict):
        raise ValidationError("Deck document must be a JSON object")

    format_name = data.get("format")
    if "entries" in data:
        entries = tuple(CompositionEntry.model_validate(e) for e in data["entries"])
        return DeckComposition(entries=entries), format_name
    if "cards" in data:
        return DeckComposition.from_counts(data["cards"]), format_name
    counts = {k: v for k, v in data.items() if k != "format"}
    return DeckComposition.from_counts(counts), format_name


def load_composition(path: Path) -> tuple[DeckComposition, str | None]:
    """Load a deck document from a JSON file."""
    return parse_composition(json.loads(Path(path).read_text(encoding="utf-8")))
