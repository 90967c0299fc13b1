"""Static lookup tables for deck analysis.

Every table here is data, not logic: the heuristics read them, tests pin
them, and tuning means editing a table and bumping ``TABLES_VERSION``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

from ...data.models.types import Archetype

TABLES_VERSION = "2024.2"

# =============================================================================
# Effect categories (matched against lowercased card text)
# =============================================================================

_RESOURCE = r"(?:energy|resource)"

EFFECT_PATTERNS: dict[str, re.Pattern[str]] = {
    "search": re.compile(r"search your deck"),
    "draw": re.compile(r"\bdraw (?:a|\d+|up to|cards?)"),
    "accelerate": re.compile(rf"attach (?:an? |up to \d+ |\d+ )?(?:basic )?\w* ?{_RESOURCE}"),
    "damage_boost": re.compile(r"\+\d+ damage|(?:\d+ )?more damage|additional damage"),
    "multi_hit": re.compile(
        r"(?:damage|damage counters?) (?:to|on) (?:each of|\d+ of) your opponent'?s"
        r"(?: benched)? creatures?"
    ),
    "damage_counters": re.compile(r"damage counters?"),
    "heal": re.compile(r"\bheal"),
    "protect": re.compile(r"prevent all (?:effects of attacks|damage)|takes \d+ less damage"),
    "status": re.compile(r"\b(?:asleep|paralyzed|confused|burned|poisoned)\b"),
    "mill": re.compile(r"discard the top (?:card|\d+ cards) of your opponent'?s deck"),
    "disrupt": re.compile(r"your opponent (?:shuffles|discards|reveals)|opponent'?s hand"),
    "recursion": re.compile(r"from your discard pile"),
    "switch": re.compile(rf"\bswitch\b|move (?:an? |all )?{_RESOURCE}"),
    "evolve": re.compile(r"\bevolve"),
    "hand_size": re.compile(r"cards? in (?:your|their) hand"),
}

# Support-card categories that count as flexible utility for versatility.
UTILITY_CATEGORIES: tuple[str, ...] = (
    "search",
    "switch",
    "heal",
    "recursion",
    "disrupt",
    "protect",
)

# Subtypes worth more than one prize when knocked out.
MULTI_PRIZE_SUBTYPES = frozenset({"ex", "EX", "GX", "V", "VMAX", "VSTAR"})

MAIN_ATTACKER_DAMAGE = 60  # Best attack at or above this makes a creature a main attacker
VULNERABILITY_MIN_COPIES = 4  # Creature copies sharing a weakness before it is a vulnerability
DAMAGE_BOOST_AMOUNT = re.compile(r"\+(\d+) damage|(\d+) more damage")

# =============================================================================
# Effect-category pairings
# =============================================================================

Tier = Literal["S", "A", "B", "C"]

TIER_SCORES: dict[Tier, int] = {"S": 90, "A": 80, "B": 70, "C": 60}


@dataclass(frozen=True)
class EffectPairing:
    tier: Tier
    description: str


def pair_key(a: str, b: str) -> tuple[str, str]:
    """Order-independent key for a category pair."""
    return (a, b) if a <= b else (b, a)


# Ability on one card + ability on another
ABILITY_PAIRINGS: dict[tuple[str, str], EffectPairing] = {
    pair_key("accelerate", "damage_boost"): EffectPairing(
        "S", "accelerates resources into a boosted attacker"
    ),
    pair_key("search", "accelerate"): EffectPairing("A", "searches out pieces and powers them up"),
    pair_key("damage_boost", "multi_hit"): EffectPairing(
        "A", "boosted damage spread across the board"
    ),
    pair_key("search", "evolve"): EffectPairing("A", "finds and evolves lines quickly"),
    pair_key("draw", "hand_size"): EffectPairing("B", "draw feeds hand-size payoffs"),
    pair_key("protect", "heal"): EffectPairing("B", "layered damage prevention and healing"),
    pair_key("recursion", "accelerate"): EffectPairing("B", "recovers resources for re-attachment"),
    pair_key("switch", "accelerate"): EffectPairing(
        "B", "moves resources onto the active attacker"
    ),
    pair_key("damage_counters", "multi_hit"): EffectPairing(
        "C", "damage counters placed across the bench"
    ),
    pair_key("status", "damage_boost"): EffectPairing("C", "status conditions enable bonus damage"),
}

# Support card + support card
SUPPORT_PAIRINGS: dict[tuple[str, str], EffectPairing] = {
    pair_key("search", "draw"): EffectPairing("A", "search then refresh the hand"),
    pair_key("accelerate", "switch"): EffectPairing("B", "attach then reposition resources"),
    pair_key("recursion", "draw"): EffectPairing("B", "recover key cards and redraw into them"),
    pair_key("search", "evolve"): EffectPairing("A", "find evolution pieces and skip stages"),
    pair_key("heal", "switch"): EffectPairing("C", "retreat damaged creatures and heal them"),
    pair_key("disrupt", "draw"): EffectPairing("C", "disrupt the opponent while refilling"),
}


@dataclass(frozen=True)
class SetupPayoff:
    """An attack effect that changes board state and the payoff that exploits it."""

    payoff_pattern: re.Pattern[str] | None  # Payoff text that reacts to the setup
    bonus: int  # Extra damage credited when the payoff reacts
    threshold: int  # Damage the payoff must reach to count as a combo
    description: str


SETUP_PAYOFFS: dict[str, SetupPayoff] = {
    "accelerate": SetupPayoff(None, 0, 120, "accelerates resources so {attacker} attacks sooner"),
    "damage_counters": SetupPayoff(
        EFFECT_PATTERNS["damage_counters"],
        50,
        100,
        "places damage counters that {attacker} converts",
    ),
    "status": SetupPayoff(
        EFFECT_PATTERNS["status"], 60, 90, "inflicts a condition that {attacker} punishes"
    ),
}

# =============================================================================
# Type chart
# =============================================================================

COMMON_OPPOSING_TYPES: tuple[str, ...] = (
    "Grass",
    "Fire",
    "Water",
    "Lightning",
    "Psychic",
    "Fighting",
    "Darkness",
    "Metal",
)

# Defending type -> attacking types it is weak to
TYPE_WEAKNESSES: dict[str, tuple[str, ...]] = {
    "Grass": ("Fire",),
    "Fire": ("Water",),
    "Water": ("Lightning",),
    "Lightning": ("Fighting",),
    "Psychic": ("Darkness",),
    "Fighting": ("Psychic",),
    "Darkness": ("Fighting",),
    "Metal": ("Fire",),
    "Fairy": ("Metal",),
    "Dragon": (),
    "Colorless": ("Fighting",),
}

# Defending type -> attacking types it resists
TYPE_RESISTANCES: dict[str, tuple[str, ...]] = {
    "Metal": ("Grass",),
    "Darkness": ("Psychic",),
    "Lightning": ("Metal",),
    "Fighting": ("Lightning",),
    "Fairy": ("Darkness",),
}

# =============================================================================
# Archetype signatures
# =============================================================================


@dataclass(frozen=True)
class SignatureRule:
    """Points for one classification signal; the first matching tier wins.

    ``direction="min"`` awards a tier when the signal is at least its
    threshold (tiers listed highest first), ``"max"`` when it is at most
    its threshold (tiers listed lowest first).
    """

    signal: str
    tiers: tuple[tuple[float, float], ...]
    direction: Literal["min", "max"] = "min"

    @property
    def max_points(self) -> float:
        return max(points for _, points in self.tiers)

    def points(self, value: float) -> float:
        for threshold, points in self.tiers:
            if (self.direction == "min" and value >= threshold) or (
                self.direction == "max" and value <= threshold
            ):
                return points
        return 0.0


@dataclass(frozen=True)
class ArchetypeSignature:
    base: float
    rules: tuple[SignatureRule, ...]

    @property
    def max_raw(self) -> float:
        return self.base + sum(rule.max_points for rule in self.rules)


def _rule(
    signal: str, *tiers: tuple[float, float], direction: Literal["min", "max"] = "min"
) -> SignatureRule:
    return SignatureRule(signal, tuple(tiers), direction)


ARCHETYPE_SIGNATURES: dict[Archetype, ArchetypeSignature] = {
    "aggro": ArchetypeSignature(
        0,
        (
            _rule("power", (70, 25), (55, 15)),
            _rule("speed", (70, 25), (55, 15)),
            _rule("avg_cost", (2.0, 20), (2.5, 10), direction="max"),
            _rule("damage_boost", (4, 15), (2, 8)),
            _rule("attacker_count", (12, 15), (8, 8)),
        ),
    ),
    "control": ArchetypeSignature(
        0,
        (
            _rule("disrupt", (6, 35), (3, 20), (1, 8)),
            _rule("heal", (4, 15), (2, 8)),
            _rule("protect", (2, 10)),
            _rule("power", (45, 15), (55, 8), direction="max"),
            _rule("switch", (3, 10)),
            _rule("draw", (8, 15), (4, 8)),
        ),
    ),
    "combo": ArchetypeSignature(
        0,
        (
            _rule("ability_cards", (12, 25), (8, 15), (4, 8)),
            _rule("search", (8, 25), (4, 12)),
            _rule("accelerate", (4, 15), (2, 8)),
            _rule("stage2_count", (4, 10), (2, 5)),
            _rule("distinct_abilities", (5, 15), (3, 8)),
            _rule("draw", (8, 10)),
        ),
    ),
    "midrange": ArchetypeSignature(
        40,
        (
            _rule("consistency", (55, 20), (45, 10)),
            _rule("power", (50, 15), (40, 8)),
            _rule("speed", (50, 15), (40, 8)),
            _rule("attacker_count", (6, 10)),
        ),
    ),
    "mill": ArchetypeSignature(
        0,
        (
            _rule("mill", (6, 50), (4, 35), (2, 20), (1, 10)),
            _rule("disrupt", (3, 15)),
            _rule("heal", (2, 10)),
            _rule("power", (40, 15), direction="max"),
            _rule("draw", (6, 10)),
        ),
    ),
    "stall": ArchetypeSignature(
        0,
        (
            _rule("avg_hp", (180, 25), (130, 15), (100, 8)),
            _rule("heal", (6, 25), (3, 15), (1, 5)),
            _rule("protect", (4, 20), (2, 10)),
            _rule("status", (3, 15), (1, 5)),
            _rule("power", (35, 15), (45, 8), direction="max"),
        ),
    ),
    "toolbox": ArchetypeSignature(
        0,
        (
            _rule("unique_attackers", (6, 30), (4, 20), (3, 10)),
            _rule("distinct_types", (4, 25), (3, 18), (2, 10)),
            _rule("search", (6, 25), (3, 12)),
            _rule("switch", (3, 20), (1, 8)),
        ),
    ),
    "turbo": ArchetypeSignature(
        0,
        (
            _rule("speed", (80, 35), (65, 20)),
            _rule("accelerate", (6, 25), (4, 15), (2, 8)),
            _rule("avg_cost", (1.5, 15), (2.0, 8), direction="max"),
            _rule("search", (6, 15), (3, 8)),
            _rule("draw", (8, 10), (4, 5)),
        ),
    ),
    "spread": ArchetypeSignature(
        0,
        (
            _rule("multi_hit", (8, 40), (4, 25), (2, 12)),
            _rule("damage_counters", (4, 25), (2, 12)),
            _rule("single_prize_ratio", (0.8, 15), (0.6, 8)),
            _rule("attacker_count", (8, 10)),
            _rule("status", (2, 10)),
        ),
    ),
}

LOW_CONFIDENCE_CAP = 45  # Confidence ceiling when classification falls back to midrange


@dataclass(frozen=True)
class ArchetypeProfile:
    """Descriptive data for an archetype."""

    characteristics: tuple[str, ...]
    playstyle: str
    core_strategy: str
    win_conditions: tuple[str, ...]
    difficulty: int  # Baseline piloting difficulty, 0-100


ARCHETYPE_PROFILES: dict[Archetype, ArchetypeProfile] = {
    "aggro": ArchetypeProfile(
        ("fast damage", "low resource costs", "pressure"),
        "Attack early and often; trade resources for tempo and close before the opponent sets up.",
        "Take prizes quickly with efficient attackers before the opponent stabilizes.",
        ("Early knockouts", "Prize lead before turn four"),
        30,
    ),
    "control": ArchetypeProfile(
        ("disruption", "resource denial", "long games"),
        "Deny the opponent's resources and win once they can no longer act.",
        "Strip resources and hands, then win the long game with card advantage.",
        ("Opponent runs out of resources", "Late-game card advantage"),
        85,
    ),
    "combo": ArchetypeProfile(
        ("engine pieces", "ability chains", "explosive turns"),
        "Assemble specific pieces with search and draw, then take over in one turn.",
        "Assemble the engine quickly and execute a decisive combination.",
        ("Completed engine", "One explosive turn"),
        80,
    ),
    "midrange": ArchetypeProfile(
        ("balanced", "flexible", "solid fundamentals"),
        "Adapt between pressure and defense depending on the matchup.",
        "Play efficient threats backed by steady support and adapt to the opponent.",
        ("Favorable trades", "Steady prize progression"),
        50,
    ),
    "mill": ArchetypeProfile(
        ("deck-out", "discard", "defensive"),
        "Empty the opponent's deck while surviving their attacks.",
        "Mill the opponent out while staying alive.",
        ("Opponent decks out",),
        75,
    ),
    "stall": ArchetypeProfile(
        ("high HP", "healing", "damage prevention"),
        "Absorb attacks behind durable creatures and healing until the opponent stalls out.",
        "Outlast the opponent with durable creatures, healing and prevention.",
        ("Opponent cannot break through", "Timeout or deck-out"),
        65,
    ),
    "toolbox": ArchetypeProfile(
        ("many answers", "search", "type coverage"),
        "Search out the right attacker for each situation.",
        "Find the right answer for every matchup from a wide set of tools.",
        ("Matchup-specific answers", "Exploiting weaknesses"),
        70,
    ),
    "turbo": ArchetypeProfile(
        ("acceleration", "first-turn pressure", "speed"),
        "Accelerate resources to power big attacks as early as possible.",
        "Power out a large attack before the opponent can respond.",
        ("Turn-two heavy attacks", "Overwhelming early damage"),
        40,
    ),
    "spread": ArchetypeProfile(
        ("bench damage", "multi-prize turns", "board control"),
        "Spread damage across the opponent's board and take several knockouts at once.",
        "Damage the whole board and convert it into multi-knockout turns.",
        ("Multi-knockout turns", "Bench pressure"),
        60,
    ),
}

# =============================================================================
# Matchups
# =============================================================================

# (archetype, opponent) -> win-rate points for the first archetype.
# Looked up symmetrically: (b, a) is the negation of (a, b).
ARCHETYPE_MATCHUPS: dict[tuple[Archetype, Archetype], int] = {
    ("aggro", "control"): 15,
    ("aggro", "stall"): -10,
    ("aggro", "combo"): 10,
    ("aggro", "mill"): 10,
    ("control", "combo"): 15,
    ("control", "midrange"): 10,
    ("combo", "stall"): 10,
    ("turbo", "control"): 10,
    ("turbo", "stall"): -5,
    ("spread", "toolbox"): 5,
    ("mill", "stall"): 10,
    ("midrange", "spread"): 5,
}


def matchup_advantage(archetype: Archetype, opponent: Archetype) -> int:
    """Win-rate points for ``archetype`` against ``opponent``; unlisted pairs are even."""
    if (archetype, opponent) in ARCHETYPE_MATCHUPS:
        return ARCHETYPE_MATCHUPS[(archetype, opponent)]
    if (opponent, archetype) in ARCHETYPE_MATCHUPS:
        return -ARCHETYPE_MATCHUPS[(opponent, archetype)]
    return 0


# Speed tiers by speed score, slowest first: (upper bound exclusive, tier)
SPEED_TIERS: tuple[tuple[int, str], ...] = (
    (30, "slow"),
    (55, "medium"),
    (75, "fast"),
    (101, "turbo"),
)

# =============================================================================
# Reference lists for innovation
# =============================================================================

# Order of the composition profile vector
PROFILE_FEATURES: tuple[str, ...] = (
    "creature_ratio",
    "support_ratio",
    "resource_ratio",
    "search",
    "draw",
    "accelerate",
    "damage_boost",
    "heal",
    "disrupt",
    "multi_hit",
    "stage2_ratio",
    "ability_ratio",
)

# Profiles of widely copied tournament lists, in PROFILE_FEATURES order
KNOWN_DECK_PROFILES: dict[str, tuple[float, ...]] = {
    "turbo attacker": (0.25, 0.58, 0.17, 0.15, 0.13, 0.10, 0.05, 0.00, 0.03, 0.00, 0.00, 0.08),
    "evolution engine": (0.33, 0.52, 0.15, 0.17, 0.12, 0.05, 0.02, 0.02, 0.05, 0.00, 0.35, 0.12),
    "control lock": (0.20, 0.65, 0.15, 0.12, 0.15, 0.00, 0.00, 0.10, 0.15, 0.00, 0.00, 0.05),
    "spread toolbox": (0.27, 0.55, 0.18, 0.15, 0.12, 0.05, 0.03, 0.00, 0.03, 0.12, 0.10, 0.10),
    "single-prize aggro": (0.30, 0.50, 0.20, 0.10, 0.12, 0.07, 0.08, 0.00, 0.02, 0.02, 0.00, 0.05),
}

# =============================================================================
# Performance
# =============================================================================

# (average market price per card, budget efficiency), cheapest first
BUDGET_TIERS: tuple[tuple[float, int], ...] = (
    (0.50, 90),
    (1.50, 70),
    (4.00, 50),
    (10.00, 30),
)
BUDGET_FLOOR = 10

# Fallback price estimate by rarity when a card has no market price
RARITY_PRICE_ESTIMATES: dict[str, float] = {
    "common": 0.10,
    "uncommon": 0.25,
    "rare": 1.00,
    "holo rare": 2.50,
    "ultra rare": 8.00,
    "secret rare": 20.00,
}

LEARNING_CURVE_TIERS: tuple[tuple[int, str], ...] = (
    (30, "beginner"),
    (50, "intermediate"),
    (75, "advanced"),
)
