"""Pytest fixtures: a small card catalog and a few decks built from it."""

from __future__ import annotations

from decimal import Decimal

import pytest

from tcg_core.config import Settings
from tcg_core.data.catalog import InMemoryCatalog, InMemoryOwnership
from tcg_core.data.models.card import Ability, Attack, Card
from tcg_core.data.models.deck import DeckComposition
from tcg_core.tools.analysis.analyzer import DeckAnalyzer

LEGAL_EVERYWHERE = {"standard": True, "expanded": True, "unlimited": True}


def creature(
    card_id: str,
    name: str,
    types: list[str],
    hp: int,
    attacks: list[Attack],
    subtypes: list[str] | None = None,
    abilities: list[Ability] | None = None,
    price: str | None = None,
    evolves_from: str | None = None,
) -> Card:
    return Card(
        id=card_id,
        name=name,
        supertype="Creature",
        subtypes=subtypes or ["Basic"],
        elemental_types=types,
        hp=hp,
        attacks=attacks,
        abilities=abilities or [],
        legality_by_format=LEGAL_EVERYWHERE,
        market_price=Decimal(price) if price is not None else None,
        evolves_from=evolves_from,
    )


def support(
    card_id: str,
    name: str,
    text: str,
    price: str | None,
    subtype: str = "Item",
    legality: dict[str, bool] | None = None,
) -> Card:
    """Support rules text is carried as an ability so it is pattern matched."""
    return Card(
        id=card_id,
        name=name,
        supertype="Support",
        subtypes=[subtype],
        abilities=[Ability(name=name, text=text)],
        legality_by_format=legality or LEGAL_EVERYWHERE,
        market_price=Decimal(price) if price is not None else None,
    )


def resource(card_id: str, name: str, types: list[str], special: bool = False, price: str | None = None) -> Card:
    return Card(
        id=card_id,
        name=name,
        supertype="Resource",
        subtypes=["Special"] if special else ["Basic"],
        elemental_types=types,
        legality_by_format=LEGAL_EVERYWHERE,
        market_price=Decimal(price) if price is not None else None,
    )


def sample_cards() -> list[Card]:
    """Every card in the test catalog."""
    return [
        # Creatures
        creature("fire-pup", "Fire Pup", ["Fire"], 70, [Attack(name="Nip", cost=["Fire"], damage=30)], price="0.10"),
        creature(
            "blaze-fox",
            "Blaze Fox",
            ["Fire"],
            90,
            [Attack(name="Flare", cost=["Fire", "Colorless"], damage=60)],
            price="0.25",
        ),
        creature(
            "inferno-drake",
            "Inferno Drake",
            ["Fire"],
            150,
            [Attack(name="Inferno", cost=["Fire", "Fire", "Colorless"], damage=150)],
            subtypes=["Stage1"],
            evolves_from="Blaze Fox",
            price="2.50",
        ),
        creature(
            "ember-titan",
            "Ember Titan",
            ["Fire"],
            230,
            [Attack(name="Meltdown", cost=["Fire", "Fire", "Fire"], damage=200)],
            subtypes=["Basic", "ex"],
            price="12.00",
        ),
        creature(
            "volt-mouse",
            "Volt Mouse",
            ["Lightning"],
            60,
            [Attack(name="Jolt", cost=["Lightning"], damage=20, text="Your opponent's Active creature is now Paralyzed.")],
            price="0.10",
        ),
        creature(
            "tide-turtle",
            "Tide Turtle",
            ["Water"],
            120,
            [Attack(name="Shell Slam", cost=["Water", "Colorless", "Colorless"], damage=90)],
            abilities=[Ability(name="Hard Shell", text="This creature takes 30 less damage from attacks.")],
            price="0.50",
        ),
        creature(
            "ember-sprite",
            "Ember Sprite",
            ["Fire"],
            60,
            [Attack(name="Spark", cost=["Colorless"], damage=10)],
            abilities=[
                Ability(
                    name="Kindle",
                    text="Once during your turn, you may attach a basic Fire Energy card "
                    "from your hand to 1 of your creatures.",
                )
            ],
            price="1.00",
        ),
        # Supports
        support("scout-orders", "Scout Orders", "Search your deck for a creature, reveal it, and put it into your hand.", "0.50"),
        support("research-notes", "Research Notes", "Discard your hand and draw 7 cards.", "0.75", "Supporter"),
        support("field-kit", "Field Kit", "Heal 30 damage from 1 of your creatures.", "0.20"),
        support("swap-cart", "Swap Cart", "Switch your Active creature with 1 of your Benched creatures.", "0.30"),
        support(
            "power-cell",
            "Power Cell",
            "Attach a basic Energy card from your discard pile to 1 of your creatures.",
            "0.60",
        ),
        support("mind-rot", "Mind Rot", "Your opponent reveals their hand. Choose a card and discard it.", "1.50", "Supporter"),
        support("energy-search", "Energy Search", "Search your deck for a basic Energy card and put it into your hand.", "0.10"),
        support("premium-tutor", "Premium Tutor", "Search your deck for any card and put it into your hand.", "15.00"),
        support(
            "banned-relic",
            "Banned Relic",
            "Draw 3 cards.",
            "3.00",
            legality={"standard": False, "expanded": True, "unlimited": True},
        ),
        # Resources
        resource("fire-energy", "Fire Energy", ["Fire"]),
        resource("water-energy", "Water Energy", ["Water"]),
        resource("lightning-energy", "Lightning Energy", ["Lightning"]),
        resource("double-energy", "Double Energy", [], special=True, price="2.00"),
    ]


BALANCED_COUNTS = {
    "fire-pup": 4,
    "blaze-fox": 4,
    "inferno-drake": 3,
    "ember-sprite": 4,
    "ember-titan": 1,
    "scout-orders": 4,
    "research-notes": 4,
    "field-kit": 4,
    "swap-cart": 4,
    "power-cell": 4,
    "mind-rot": 4,
    "energy-search": 4,
    "premium-tutor": 2,
    "fire-energy": 14,
}

# Plenty of creatures and resources, almost no way to find them
FLOODED_COUNTS = {
    "fire-pup": 4,
    "blaze-fox": 4,
    "volt-mouse": 4,
    "tide-turtle": 4,
    "ember-sprite": 4,
    "research-notes": 4,
    "field-kit": 4,
    "swap-cart": 2,
    "fire-energy": 30,
}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def cards() -> list[Card]:
    return sample_cards()


@pytest.fixture
def catalog(cards: list[Card]) -> InMemoryCatalog:
    return InMemoryCatalog(cards)


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from the environment."""
    return Settings(_env_file=None)


@pytest.fixture
def fast_settings() -> Settings:
    """Smaller search pools so optimizer tests stay quick."""
    return Settings(_env_file=None, candidate_pool_size=6, removal_pool_size=4, max_changes=3)


@pytest.fixture
def analyzer(catalog: InMemoryCatalog, settings: Settings) -> DeckAnalyzer:
    return DeckAnalyzer(catalog, settings=settings)


@pytest.fixture
def balanced_deck() -> DeckComposition:
    return DeckComposition.from_counts(BALANCED_COUNTS)


@pytest.fixture
def flooded_deck() -> DeckComposition:
    return DeckComposition.from_counts(FLOODED_COUNTS)


@pytest.fixture
def collector() -> InMemoryOwnership:
    """A user owning exactly the balanced deck plus spare fire resources."""
    owned = dict(BALANCED_COUNTS)
    owned["fire-energy"] = 20
    return InMemoryOwnership({"ash": owned})
