"""Scoring weights and constants for deck analysis.

Centralizes the numeric knobs of every heuristic so they can be tuned
without touching the formulas. Lookup tables (signatures, type chart,
matchups) live in ``constants``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class OverallWeights:
    """Fixed weights combining the seven sub-scores into ``overall``."""

    CONSISTENCY: float = 0.25
    POWER: float = 0.20
    SPEED: float = 0.15
    VERSATILITY: float = 0.12
    META_RELEVANCE: float = 0.13
    INNOVATION: float = 0.05
    DIFFICULTY: float = 0.10

    def as_dict(self) -> dict[str, float]:
        return {
            "consistency": self.CONSISTENCY,
            "power": self.POWER,
            "speed": self.SPEED,
            "versatility": self.VERSATILITY,
            "meta_relevance": self.META_RELEVANCE,
            "innovation": self.INNOVATION,
            "difficulty": self.DIFFICULTY,
        }


@dataclass(frozen=True)
class ConsistencyWeights:
    """Weights for the consistency score."""

    RESOURCE_BAND_POINTS: float = 35.0  # Resource count inside the format band
    OUT_OF_BAND_PENALTY: float = 5.0  # Per card outside the band
    RESOURCE_FLOOR: float = -25.0  # Lowest the resource component can go
    BASIC_CREATURE_FLOOR: int = 8  # Basic creatures needed for full credit
    BASIC_CREATURE_POINTS: float = 20.0
    SEARCH_DRAW_FULL_DENSITY: float = 0.25  # Share of deck that earns full search/draw credit
    SEARCH_DRAW_POINTS: float = 30.0
    EVOLUTION_POINTS: float = 15.0  # Scaled by evolution reliability
    MULLIGAN_PENALTY_CAP: float = 15.0  # One point per percent of mulligan chance


@dataclass(frozen=True)
class PowerWeights:
    """Weights for the power score."""

    BASE: float = 20.0
    # (average main-attacker damage, points), highest first
    DAMAGE_TIERS: tuple[tuple[int, float], ...] = (
        (200, 30.0),
        (150, 25.0),
        (120, 20.0),
        (90, 15.0),
        (60, 10.0),
    )
    ONE_SHOT_BONUS: float = 15.0
    EFFICIENCY_FULL: float = 40.0  # Damage per resource that earns full efficiency credit
    EFFICIENCY_POINTS: float = 20.0
    PRIZE_POINTS: float = 15.0  # Earned at one prize per turn


@dataclass(frozen=True)
class SpeedWeights:
    """Speed score is a straight line over the average setup turn."""

    INTERCEPT: float = 125.0
    PER_TURN: float = 25.0


@dataclass(frozen=True)
class VersatilityWeights:
    """Weights for the versatility score."""

    TYPE_POINTS: tuple[float, ...] = (0.0, 10.0, 20.0, 25.0, 30.0)  # By distinct creature types
    UTILITY_POINTS: float = 6.0  # Per utility category covered by support cards
    UTILITY_CAP: float = 30.0
    COVERAGE_WEIGHT: float = 0.2  # Times weakness coverage
    ATTACKER_POINTS: float = 5.0  # Per distinct main attacker
    ATTACKER_CAP: float = 20.0


@dataclass(frozen=True)
class MetaWeights:
    """Weights for the meta relevance score."""

    NEUTRAL: int = 50  # No snapshot or no archetype yet
    BASE: float = 30.0
    SHARE_FULL: float = 0.20  # Field share that earns full presence credit
    SHARE_POINTS: float = 40.0
    MATCHUP_SCALE: float = 2.0  # Times the share-weighted matchup advantage
    MATCHUP_CAP: float = 20.0
    KEY_CARD_POINTS: float = 10.0


@dataclass(frozen=True)
class InnovationWeights:
    """Similarity to a reference list maps linearly onto innovation."""

    SIMILARITY_SPAN: float = 0.35  # 1 - similarity at which innovation reaches 100


@dataclass(frozen=True)
class DifficultyWeights:
    """Weights for the difficulty score."""

    BASE: float = 15.0
    PER_DECISION: float = 3.0  # Per distinct non-trivial ability, attack or support effect
    DECISION_CAP: float = 45.0
    PER_ABILITY_COMBO: float = 5.0
    ABILITY_COMBO_CAP: float = 15.0
    PER_ATTACK_COMBO: float = 5.0
    ATTACK_COMBO_CAP: float = 10.0
    PER_STAGE: float = 5.0  # Times the highest evolution stage
    ARCHETYPE_FACTOR: float = 0.2  # Times (archetype baseline - 50)


@dataclass(frozen=True)
class SynergyWeights:
    """Fixed weights of the five synergy subcomponents."""

    COMBOS: float = 0.25
    ATTACKS: float = 0.20
    TYPES: float = 0.20
    ENERGY: float = 0.20
    EVOLUTION: float = 0.15

    NEUTRAL: int = 50  # Subcomponent score when a deck has nothing to measure
    COMBO_COUNT_BONUS: float = 3.0  # Per combo beyond the mean combo score
    COMBO_COUNT_CAP: float = 15.0
    ATTACK_BASE: float = 40.0
    PER_ATTACK_COMBO: float = 20.0
    ENERGY_RATIO_SCALE: float = 2.0  # Accelerator copies per resource for full efficiency
    CARDS_SEEN_PER_GAME: int = 20


@dataclass(frozen=True)
class SpeedModelWeights:
    """Constants of the closed-form setup-turn estimate."""

    BASE_SETUP_TURN: float = 2.5
    ATTACKER_WEIGHT: float = 0.7  # Blend weight of the attacker-cost term
    STAGE_TURNS: float = 0.5  # Extra turns per evolution stage
    SEARCH_DENSITY_FACTOR: float = 4.0  # Turns saved per unit of search/draw density
    MAX_SEARCH_REDUCTION: float = 1.0
    LATE_GAME_BASE: float = 40.0
    PER_RECURSION: float = 7.0
    RECURSION_CAP: float = 35.0
    PER_THINNING: float = 2.5
    THINNING_CAP: float = 25.0
    PRIZE_DAMAGE: int = 120  # Damage that takes one prize on average


@dataclass(frozen=True)
class AnalysisWeights:
    """Master configuration for all analysis weights."""

    overall: OverallWeights = field(default_factory=OverallWeights)
    consistency: ConsistencyWeights = field(default_factory=ConsistencyWeights)
    power: PowerWeights = field(default_factory=PowerWeights)
    speed: SpeedWeights = field(default_factory=SpeedWeights)
    versatility: VersatilityWeights = field(default_factory=VersatilityWeights)
    meta: MetaWeights = field(default_factory=MetaWeights)
    innovation: InnovationWeights = field(default_factory=InnovationWeights)
    difficulty: DifficultyWeights = field(default_factory=DifficultyWeights)
    synergy: SynergyWeights = field(default_factory=SynergyWeights)
    speed_model: SpeedModelWeights = field(default_factory=SpeedModelWeights)


# Global default config
DEFAULT_ANALYSIS_WEIGHTS = AnalysisWeights()
