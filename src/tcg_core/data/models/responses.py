"""Result models produced by the analysis and optimization engine."""

from __future__ import annotations

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .deck import DeckComposition
from .types import (
    Archetype,
    ChangeAction,
    LearningCurve,
    OptimizationGoal,
    SpeedTier,
    StopReason,
    Winner,
)

# Issue types for composition validation
IssueType = Literal[
    "wrong_size",
    "over_copy_limit",
    "not_legal",
    "unknown_format",
]

Score = int

# =============================================================================
# Validation
# =============================================================================


class ValidationIssue(BaseModel):
    """A single problem with a composition."""

    card_id: str | None = None
    issue: IssueType
    details: str | None = None


class ValidationReport(BaseModel):
    """Result of validating a composition against a format."""

    format: str
    is_valid: bool
    total_cards: int
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# =============================================================================
# Scores
# =============================================================================


class ScoreVector(BaseModel):
    """Eight independent 0-100 quality scores for a deck."""

    model_config = ConfigDict(frozen=True)

    overall: Score = Field(ge=0, le=100)
    consistency: Score = Field(ge=0, le=100)
    power: Score = Field(ge=0, le=100)
    speed: Score = Field(ge=0, le=100)
    versatility: Score = Field(ge=0, le=100)
    meta_relevance: Score = Field(ge=0, le=100)
    innovation: Score = Field(ge=0, le=100)
    difficulty: Score = Field(ge=0, le=100)

    def components(self) -> dict[str, int]:
        """The seven sub-scores that ``overall`` is derived from."""
        return self.model_dump(exclude={"overall"})

    def delta(self, other: ScoreVector) -> dict[str, int]:
        """Per-score difference ``other - self``, omitting unchanged scores."""
        mine = self.model_dump()
        theirs = other.model_dump()
        return {name: theirs[name] - mine[name] for name in mine if theirs[name] != mine[name]}


class ScoreBreakdown(BaseModel):
    """Human-readable reading of a ScoreVector."""

    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    core_strategy: str
    win_conditions: list[str] = Field(default_factory=list)


# =============================================================================
# Archetype
# =============================================================================


class ArchetypeClassification(BaseModel):
    """Strategic category of a deck."""

    model_config = ConfigDict(frozen=True)

    primary_archetype: Archetype
    secondary_archetype: Archetype | None = None
    confidence: Score = Field(ge=0, le=100)
    characteristics: list[str] = Field(default_factory=list)
    playstyle: str
    candidate_scores: dict[Archetype, Score] = Field(default_factory=dict)


# =============================================================================
# Synergy
# =============================================================================


class TypeSynergy(BaseModel):
    weakness_coverage: Score = Field(ge=0, le=100)
    vulnerabilities: list[str] = Field(default_factory=list)
    type_distribution: dict[str, int] = Field(default_factory=dict)


class EnergySynergy(BaseModel):
    efficiency: Score = Field(ge=0, le=100)
    acceleration_methods: list[str] = Field(default_factory=list)


class EvolutionLine(BaseModel):
    """Creatures of one evolution family present in the deck, basic first."""

    stages: list[str]
    copies: int


class EvolutionSynergy(BaseModel):
    reliability: Score = Field(ge=0, le=100)
    evolution_speed: int = Field(ge=1, le=5)
    lines: list[EvolutionLine] = Field(default_factory=list)


class AbilityCombo(BaseModel):
    participant_cards: list[str]
    abilities: list[str]
    description: str
    synergy_score: Score = Field(ge=0, le=100)


class AttackCombo(BaseModel):
    setup_card: str
    attacker_card: str
    combo_description: str
    damage: int
    setup_turns: int = Field(ge=1)


class TrainerSynergy(BaseModel):
    participant_cards: list[str]
    effect: str
    synergy_score: Score = Field(ge=0, le=100)
    expected_frequency_per_game: float = Field(ge=0)


class SynergyEdge(BaseModel):
    """Directed edge of the synergy graph; negative strength marks anti-synergy."""

    source: str
    target: str
    kind: Literal["evolution", "ability", "attack", "support", "type", "conflict"]
    strength: int = Field(ge=-100, le=100)
    description: str


class SynergyGraph(BaseModel):
    nodes: list[str] = Field(default_factory=list)
    edges: list[SynergyEdge] = Field(default_factory=list)


class SynergySubscores(BaseModel):
    """The five weighted components of overall synergy, always all present."""

    combos: Score = Field(ge=0, le=100)
    attacks: Score = Field(ge=0, le=100)
    types: Score = Field(ge=0, le=100)
    energy: Score = Field(ge=0, le=100)
    evolution: Score = Field(ge=0, le=100)


class SynergyAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_synergy: Score = Field(ge=0, le=100)
    subscores: SynergySubscores
    type_synergy: TypeSynergy
    energy_synergy: EnergySynergy
    evolution_synergy: EvolutionSynergy
    ability_combos: list[AbilityCombo] = Field(default_factory=list)
    attack_combos: list[AttackCombo] = Field(default_factory=list)
    trainer_synergy: list[TrainerSynergy] = Field(default_factory=list)
    graph: SynergyGraph = Field(default_factory=SynergyGraph)


# =============================================================================
# Speed
# =============================================================================


class PrizeRaceSpeed(BaseModel):
    damage_output_per_turn: int = Field(ge=0)
    one_shot_capable: bool
    prizes_per_turn: float = Field(ge=0)


class SpeedAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    average_setup_turn: float = Field(ge=1.0)
    energy_attachment_efficiency: Score = Field(ge=0, le=100)
    late_game_sustainability: Score = Field(ge=0, le=100)
    prize_race_speed: PrizeRaceSpeed
    overall_speed: SpeedTier


# =============================================================================
# Analysis result
# =============================================================================


class DeckInfo(BaseModel):
    total_cards: int
    unique_cards: int
    creature_count: int
    support_count: int
    resource_count: int
    # {quantity: number of distinct cards run at that quantity}
    quantity_distribution: dict[int, int] = Field(default_factory=dict)
    total_market_value: Decimal = Decimal("0")
    priced_cards: int = 0
    mulligan_probability: float = Field(ge=0, le=1)


class Performance(BaseModel):
    tournament_performance: Score = Field(ge=0, le=100)
    consistency_rating: int = Field(ge=0, le=10)
    power_level: Score = Field(ge=0, le=100)
    meta_viability: Score = Field(ge=0, le=100)
    skill_ceiling: Score = Field(ge=0, le=100)
    budget_efficiency: Score = Field(ge=0, le=100)
    future_proofing: Score = Field(ge=0, le=100)
    learning_curve: LearningCurve


class AnalysisResult(BaseModel):
    """Complete analysis of one composition in one format."""

    model_config = ConfigDict(frozen=True)

    format: str
    composition: DeckComposition
    scores: ScoreVector
    archetype: ArchetypeClassification
    synergy: SynergyAnalysis
    speed: SpeedAnalysis
    deck_info: DeckInfo
    performance: Performance
    breakdown: ScoreBreakdown
    warnings: list[str] = Field(default_factory=list)


# =============================================================================
# Optimization
# =============================================================================


class Change(BaseModel):
    """One explained edit to a composition."""

    action: ChangeAction
    card_id: str
    replaces_card_id: str | None = None
    quantity: int = Field(default=1, ge=1)
    reasoning_text: str = Field(min_length=1)
    score_impact: dict[str, int] = Field(min_length=1)
    cost_delta: Decimal = Decimal("0")
    required: bool = False  # Constraint repair rather than an optional improvement


class WantListItem(BaseModel):
    """An unowned card that would improve a collection build."""

    card_id: str
    quantity: int = Field(ge=1)
    estimated_cost: Decimal | None = None
    reasoning_text: str = Field(min_length=1)
    score_impact: dict[str, int] = Field(default_factory=dict)


class OptimizationResult(BaseModel):
    goal: OptimizationGoal
    optimized_composition: DeckComposition
    changes: list[Change] = Field(default_factory=list)
    score_improvement: dict[str, int] = Field(default_factory=dict)
    explanation: str
    original_scores: ScoreVector | None = None  # None for builds from scratch
    optimized_scores: ScoreVector
    unsatisfied_constraints: list[str] = Field(default_factory=list)
    stopped_reason: StopReason
    want_list: list[WantListItem] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_cost_delta(self) -> Decimal:
        return sum((c.cost_delta for c in self.changes), Decimal("0"))


# =============================================================================
# Comparison
# =============================================================================


class ComparisonResult(BaseModel):
    category_winners: dict[str, Winner]
    overall_winner: Winner
    win_rate: float = Field(ge=20, le=80)  # Deck A's estimated win rate in percent
    key_factors: list[str] = Field(default_factory=list)
    strategy: str
    recommendations: list[str] = Field(default_factory=list)
