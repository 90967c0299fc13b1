"""Tests for deck optimization, builds from scratch and collection builds."""

from __future__ import annotations

from decimal import Decimal
from typing import cast

import pytest

from tcg_core.config import Settings
from tcg_core.data.catalog import InMemoryCatalog, InMemoryOwnership
from tcg_core.data.models.card import Card
from tcg_core.data.models.deck import DeckComposition
from tcg_core.data.models.inputs import BuildPreferences, Constraint
from tcg_core.data.models.responses import OptimizationResult
from tcg_core.data.models.types import OptimizationGoal
from tcg_core.exceptions import CatalogResolutionError, ConstraintInfeasibleError, ValidationError
from tcg_core.tools.analysis.analyzer import DeckAnalyzer
from tcg_core.tools.recommendations import AcquisitionCost, DeckOptimizer, SearchDeadline, card_value
from tcg_core.tools.recommendations.weights import GOAL_AFFINITY, GOAL_WEIGHTS

from .conftest import BALANCED_COUNTS, FLOODED_COUNTS, sample_cards

# =============================================================================
# Helpers
# =============================================================================


def consistency_objective(result: OptimizationResult, original: bool = False) -> float:
    scores = result.original_scores if original else result.optimized_scores
    assert scores is not None
    return GOAL_WEIGHTS["consistency"].objective(scores.model_dump())


def replay(composition: DeckComposition, result: OptimizationResult) -> DeckComposition:
    """Apply every replace change in order to the starting composition."""
    for change in result.changes:
        assert change.action == "replace"
        assert change.replaces_card_id is not None
        composition = composition.replace(change.replaces_card_id, change.card_id, change.quantity)
    return composition


def owns_everything(cards: list[Card]) -> InMemoryOwnership:
    return InMemoryOwnership({"ash": {card.id: 60 for card in cards}})


@pytest.fixture
def optimizer(catalog: InMemoryCatalog, fast_settings: Settings) -> DeckOptimizer:
    return DeckOptimizer(catalog, settings=fast_settings)


# =============================================================================
# Candidates and costs
# =============================================================================


class TestCandidates:
    """Tests for candidate ranking and acquisition costs."""

    def test_card_value_rewards_goal_categories(self, catalog: InMemoryCatalog) -> None:
        """Search support outranks an unrelated support for consistency."""
        scout, kit = catalog.resolve_cards(["scout-orders", "field-kit"])
        affinity = GOAL_AFFINITY["consistency"]
        assert card_value(scout, affinity) == 3.0
        assert card_value(kit, affinity) == 0.0

    def test_preferred_types_bonus(self, catalog: InMemoryCatalog) -> None:
        """Creatures of a preferred type get a flat bonus."""
        (pup,) = catalog.resolve_cards(["fire-pup"])
        affinity = GOAL_AFFINITY["power"]
        assert card_value(pup, affinity, frozenset({"Fire"})) == card_value(pup, affinity) + 1.0

    def test_unpriced_basic_resources_are_free(self, catalog: InMemoryCatalog) -> None:
        """Basic resources without a price cost nothing; other unpriced cards are unknown."""
        costs = AcquisitionCost(catalog)
        energy, special = catalog.resolve_cards(["fire-energy", "double-energy"])
        assert costs.unit_price(energy) == Decimal("0")
        assert costs.of(special, 2) == Decimal("4.00")

    def test_owned_copies_are_free(self, catalog: InMemoryCatalog, collector: InMemoryOwnership) -> None:
        """Only copies beyond those owned cost money."""
        costs = AcquisitionCost(catalog, collector, "ash")
        (scout,) = catalog.resolve_cards(["scout-orders"])
        assert costs.owned("scout-orders") == 4
        assert costs.of(scout, 4) == Decimal("0")
        assert costs.of(scout, 5) == Decimal("0.50")
        assert costs.change(scout, 4, 3) == Decimal("0")
        assert AcquisitionCost(catalog).change(scout, 4, 3) == Decimal("-0.50")

    def test_search_deadline(self) -> None:
        """Deadlines trip on timeout or cancellation."""
        assert not SearchDeadline().expired()
        assert SearchDeadline(timeout=0).expired()
        deadline = SearchDeadline(timeout=3600)
        deadline.cancel()
        assert deadline.expired()


# =============================================================================
# Optimizing an existing deck
# =============================================================================


class TestOptimizeExisting:
    """Tests for greedy improvement of an existing deck."""

    def test_improves_flooded_deck(self, optimizer: DeckOptimizer, flooded_deck: DeckComposition) -> None:
        """A resource-flooded deck gains consistency from search substitutions."""
        result = optimizer.optimize(flooded_deck, Constraint(), "consistency")

        assert result.changes
        assert consistency_objective(result) > consistency_objective(result, original=True)
        assert result.optimized_composition.total_cards == 60
        assert all(c.action == "replace" and c.score_impact for c in result.changes)
        assert all(c.reasoning_text.startswith("Replace") for c in result.changes)
        assert sum(c.quantity for c in result.changes) <= 3
        assert result.stopped_reason in ("change_cap", "no_improvement")
        assert result.original_scores is not None
        assert result.score_improvement == result.original_scores.delta(result.optimized_scores)

    def test_changes_replay_to_result(self, optimizer: DeckOptimizer, flooded_deck: DeckComposition) -> None:
        """Applying the change list to the input reproduces the optimized deck."""
        result = optimizer.optimize(flooded_deck, Constraint(), "consistency")
        assert replay(flooded_deck, result).to_counts() == result.optimized_composition.to_counts()

    def test_repeated_swaps_are_merged(self, optimizer: DeckOptimizer, flooded_deck: DeckComposition) -> None:
        """Consecutive changes never repeat the same swap."""
        result = optimizer.optimize(flooded_deck, Constraint(), "consistency")
        pairs = [(c.card_id, c.replaces_card_id, c.required) for c in result.changes]
        assert all(a != b for a, b in zip(pairs, pairs[1:], strict=False))

    def test_result_is_legal(
        self, optimizer: DeckOptimizer, analyzer: DeckAnalyzer, flooded_deck: DeckComposition
    ) -> None:
        """The optimized deck passes validation."""
        result = optimizer.optimize(flooded_deck, Constraint(), "power")
        assert analyzer.validate(result.optimized_composition, "standard").is_valid

    def test_idempotent(self, catalog: InMemoryCatalog, flooded_deck: DeckComposition) -> None:
        """Re-optimizing a converged deck finds nothing more to change."""
        settings = Settings(_env_file=None, max_changes=100, candidate_pool_size=6, removal_pool_size=4)
        optimizer = DeckOptimizer(catalog, settings=settings)
        first = optimizer.optimize(flooded_deck, Constraint(), "consistency")
        assert first.stopped_reason == "no_improvement"

        second = optimizer.optimize(first.optimized_composition, Constraint(), "consistency")
        assert second.changes == []
        assert second.optimized_composition == first.optimized_composition
        assert "unchanged" in second.explanation

    def test_converged_budgeted_run_is_a_fixed_point(
        self, catalog: InMemoryCatalog, flooded_deck: DeckComposition
    ) -> None:
        """A budgeted run that stopped for lack of improvement has nothing left to change."""
        settings = Settings(_env_file=None, max_changes=100, candidate_pool_size=6, removal_pool_size=4)
        optimizer = DeckOptimizer(catalog, settings=settings)
        constraints = Constraint(max_budget=Decimal("1000"))
        first = optimizer.optimize(flooded_deck, constraints, "consistency")
        assert first.stopped_reason == "no_improvement"
        assert "not a fixed point" not in first.explanation

        second = optimizer.optimize(first.optimized_composition, constraints, "consistency")
        assert second.changes == []
        assert second.stopped_reason == "no_improvement"

    def test_capped_run_continues_when_rerun(
        self, optimizer: DeckOptimizer, flooded_deck: DeckComposition
    ) -> None:
        """A capped result is not a fixed point and says so."""
        constraints = Constraint(acceptable_changes=1)
        first = optimizer.optimize(flooded_deck, constraints, "consistency")
        assert first.stopped_reason == "change_cap"
        assert "not a fixed point" in first.explanation

        second = optimizer.optimize(first.optimized_composition, constraints, "consistency")
        assert len(second.changes) == 1
        assert second.optimized_composition != first.optimized_composition

    def test_change_cap_zero(self, optimizer: DeckOptimizer, flooded_deck: DeckComposition) -> None:
        """With no substitutions allowed the deck comes back unchanged."""
        result = optimizer.optimize(flooded_deck, Constraint(acceptable_changes=0), "consistency")
        assert result.changes == []
        assert result.stopped_reason == "change_cap"
        assert result.optimized_composition == flooded_deck

    def test_cancelled_deadline_returns_input(
        self, optimizer: DeckOptimizer, flooded_deck: DeckComposition
    ) -> None:
        """A cancelled search returns the best deck so far, here the input."""
        deadline = SearchDeadline()
        deadline.cancel()
        result = optimizer.optimize(flooded_deck, Constraint(), "consistency", deadline=deadline)
        assert result.stopped_reason == "deadline"
        assert result.changes == []
        assert "deadline" in result.explanation

    def test_cost_goal_saves_money(self, optimizer: DeckOptimizer, balanced_deck: DeckComposition) -> None:
        """The cost goal only accepts cheaper swaps that keep the overall score."""
        result = optimizer.optimize(balanced_deck, Constraint(), "cost")
        assert all(c.cost_delta < 0 for c in result.changes)
        assert result.total_cost_delta <= 0
        assert result.original_scores is not None
        assert result.optimized_scores.overall >= result.original_scores.overall


# =============================================================================
# Budgets
# =============================================================================


class TestBudget:
    """Tests for the budget constraint."""

    def test_zero_budget_with_nothing_affordable(self, fast_settings: Settings, flooded_deck: DeckComposition) -> None:
        """When every improving swap costs money a zero budget changes nothing."""
        deck_cards = {cid for cid in FLOODED_COUNTS if cid != "fire-energy"}
        cards = []
        for card in sample_cards():
            if card.id in deck_cards:
                price = None
            elif card.id == "fire-energy":
                price = Decimal("0.05")
            else:
                price = max(card.market_price or Decimal("0"), Decimal("0.10"))
            cards.append(card.model_copy(update={"market_price": price}))
        optimizer = DeckOptimizer(InMemoryCatalog(cards), settings=fast_settings)

        result = optimizer.optimize(flooded_deck, Constraint(max_budget=Decimal("0")), "consistency")
        assert result.changes == []
        assert result.optimized_composition == flooded_deck
        assert result.stopped_reason in ("budget", "no_improvement")
        assert result.explanation

    def test_zero_budget_with_owned_cards(
        self, catalog: InMemoryCatalog, cards: list[Card], fast_settings: Settings, flooded_deck: DeckComposition
    ) -> None:
        """Owned cards cost nothing, so a zero budget matches an unbudgeted run."""
        optimizer = DeckOptimizer(catalog, owns_everything(cards), settings=fast_settings)
        budgeted = optimizer.optimize(
            flooded_deck, Constraint(max_budget=Decimal("0"), user_id="ash"), "consistency"
        )
        unbudgeted = optimizer.optimize(flooded_deck, Constraint(user_id="ash"), "consistency")

        assert budgeted.changes
        assert budgeted.changes == unbudgeted.changes
        assert budgeted.optimized_composition == unbudgeted.optimized_composition
        assert budgeted.total_cost_delta == 0

    def test_spend_never_exceeds_budget(self, optimizer: DeckOptimizer, flooded_deck: DeckComposition) -> None:
        """Cumulative cost stays within the budget."""
        budget = Decimal("1.00")
        result = optimizer.optimize(flooded_deck, Constraint(max_budget=budget), "consistency")
        assert result.total_cost_delta <= budget


# =============================================================================
# Card constraints
# =============================================================================


class TestCardConstraints:
    """Tests for must-include, must-exclude and ownership constraints."""

    def test_excluded_card_is_swapped_out(self, optimizer: DeckOptimizer, balanced_deck: DeckComposition) -> None:
        """Every copy of an excluded card leaves the deck as a required change."""
        constraints = Constraint(must_exclude_card_ids=["mind-rot"], acceptable_changes=0)
        result = optimizer.optimize(balanced_deck, constraints, "consistency")

        assert result.optimized_composition.quantity_of("mind-rot") == 0
        assert result.changes
        assert all(c.required and c.replaces_card_id == "mind-rot" for c in result.changes)
        assert sum(c.quantity for c in result.changes) == 4
        assert "required change" in result.explanation
        assert result.unsatisfied_constraints == []

    def test_required_card_is_swapped_in(self, optimizer: DeckOptimizer, flooded_deck: DeckComposition) -> None:
        """A missing required card is added even when no substitutions are allowed."""
        constraints = Constraint(must_include_card_ids=["scout-orders"], acceptable_changes=0)
        result = optimizer.optimize(flooded_deck, constraints, "consistency")

        assert result.optimized_composition.quantity_of("scout-orders") >= 1
        assert result.changes[0].required
        assert result.changes[0].card_id == "scout-orders"
        assert "required" in result.changes[0].reasoning_text
        assert result.stopped_reason == "change_cap"

    def test_required_card_is_kept(self, optimizer: DeckOptimizer, balanced_deck: DeckComposition) -> None:
        """Substitutions never remove the last copy of a required card."""
        constraints = Constraint(must_include_card_ids=["field-kit", "mind-rot"])
        result = optimizer.optimize(balanced_deck, constraints, "power")
        assert result.optimized_composition.quantity_of("field-kit") >= 1
        assert result.optimized_composition.quantity_of("mind-rot") >= 1

    def test_include_and_exclude_conflict(self, optimizer: DeckOptimizer, balanced_deck: DeckComposition) -> None:
        """A card cannot be both required and excluded."""
        constraints = Constraint(must_include_card_ids=["scout-orders"], must_exclude_card_ids=["scout-orders"])
        with pytest.raises(ConstraintInfeasibleError) as exc_info:
            optimizer.optimize(balanced_deck, constraints)
        assert exc_info.value.constraints == ["must include/exclude scout-orders"]

    def test_required_card_not_legal(self, optimizer: DeckOptimizer, balanced_deck: DeckComposition) -> None:
        """A required card must be legal in the target format."""
        with pytest.raises(ConstraintInfeasibleError, match="not legal"):
            optimizer.optimize(balanced_deck, Constraint(must_include_card_ids=["banned-relic"]))

    def test_required_card_unknown(self, optimizer: DeckOptimizer, balanced_deck: DeckComposition) -> None:
        """Unknown required ids are catalog errors."""
        with pytest.raises(CatalogResolutionError):
            optimizer.optimize(balanced_deck, Constraint(must_include_card_ids=["nope"]))

    def test_owned_only_needs_ownership(self, optimizer: DeckOptimizer, balanced_deck: DeckComposition) -> None:
        """Restricting to owned cards without ownership data is infeasible."""
        with pytest.raises(ConstraintInfeasibleError):
            optimizer.optimize(balanced_deck, Constraint(only_owned_cards=True, user_id="ash"))

    def test_owned_only_reports_unowned_deck_cards(
        self,
        catalog: InMemoryCatalog,
        collector: InMemoryOwnership,
        fast_settings: Settings,
        flooded_deck: DeckComposition,
    ) -> None:
        """Cards already in the deck but not owned are reported, and nothing unowned is added."""
        optimizer = DeckOptimizer(catalog, collector, settings=fast_settings)
        result = optimizer.optimize(
            flooded_deck, Constraint(only_owned_cards=True, user_id="ash"), "consistency"
        )
        assert any("volt-mouse" in line for line in result.unsatisfied_constraints)
        for change in result.changes:
            assert collector.owned_quantity("ash", change.card_id) > 0

    def test_invalid_input_deck(self, optimizer: DeckOptimizer) -> None:
        """Illegal input decks are rejected before any search."""
        with pytest.raises(ValidationError):
            optimizer.optimize(DeckComposition.from_counts({"fire-pup": 4}), Constraint())

    def test_unknown_goal(self, optimizer: DeckOptimizer, balanced_deck: DeckComposition) -> None:
        """Unsupported goals are validation errors."""
        with pytest.raises(ValidationError, match="Unknown optimization goal"):
            optimizer.optimize(balanced_deck, Constraint(), cast(OptimizationGoal, "speed"))


# =============================================================================
# Builds
# =============================================================================


class TestBuildFromScratch:
    """Tests for building a deck with no input composition."""

    def test_build_is_legal(self, optimizer: DeckOptimizer, analyzer: DeckAnalyzer) -> None:
        """A from-scratch build is a legal 60-card deck with one add per seed card."""
        result = optimizer.optimize(None, Constraint(), "consistency")

        assert result.original_scores is None
        assert result.optimized_composition.total_cards == 60
        assert analyzer.validate(result.optimized_composition, "standard").is_valid

        adds = [c for c in result.changes if c.action == "add"]
        assert sum(c.quantity for c in adds) == 60
        assert all(c.score_impact for c in adds)
        assert result.explanation.startswith("Built a midrange deck")

    def test_build_follows_preferences(self, optimizer: DeckOptimizer) -> None:
        """Required and excluded cards shape the build."""
        result = optimizer.build_from_scratch(
            Constraint(must_include_card_ids=["volt-mouse"], must_exclude_card_ids=["premium-tutor"]),
            BuildPreferences(archetype="aggro", elemental_types=["Lightning"], goal="power"),
        )
        composition = result.optimized_composition
        assert composition.quantity_of("volt-mouse") >= 1
        assert composition.quantity_of("premium-tutor") == 0
        assert result.goal == "power"
        required = [c for c in result.changes if c.required]
        assert [c.card_id for c in required] == ["volt-mouse"]

    def test_build_excludes_illegal_cards(self, optimizer: DeckOptimizer) -> None:
        """Cards not legal in the format never enter a build."""
        result = optimizer.build_from_scratch(Constraint(), BuildPreferences(archetype="combo"))
        assert result.optimized_composition.quantity_of("banned-relic") == 0


class TestOptimizeFromCollection:
    """Tests for collection-only builds."""

    def test_uses_only_owned_cards(
        self, catalog: InMemoryCatalog, collector: InMemoryOwnership, fast_settings: Settings
    ) -> None:
        """Every copy in the deck is owned and acquiring it costs nothing."""
        optimizer = DeckOptimizer(catalog, collector, settings=fast_settings)
        result = optimizer.optimize_from_collection("ash")

        composition = result.optimized_composition
        assert composition.total_cards == 60
        for entry in composition.entries:
            assert entry.quantity <= collector.owned_quantity("ash", entry.card_id)
        assert result.total_cost_delta == 0

    def test_want_list(
        self, catalog: InMemoryCatalog, collector: InMemoryOwnership, fast_settings: Settings
    ) -> None:
        """The want-list only names cards the user lacks, with a reason each."""
        optimizer = DeckOptimizer(catalog, collector, settings=fast_settings)
        result = optimizer.optimize_from_collection("ash")

        assert len(result.want_list) <= fast_settings.want_list_size
        counts = result.optimized_composition.to_counts()
        for item in result.want_list:
            assert collector.owned_quantity("ash", item.card_id) <= counts.get(item.card_id, 0)
            assert item.reasoning_text.startswith("Not owned")

    def test_seed_pool_comes_from_owned_card_list(
        self, catalog: InMemoryCatalog, fast_settings: Settings
    ) -> None:
        """Collection builds ask the ownership lookup for the user's cards."""
        requested: list[str] = []

        class RecordingOwnership(InMemoryOwnership):
            def owned_card_ids(self, user_id: str) -> list[str]:
                requested.append(user_id)
                return super().owned_card_ids(user_id)

        ownership = RecordingOwnership({"ash": {**BALANCED_COUNTS, "fire-energy": 20}})
        optimizer = DeckOptimizer(catalog, ownership, settings=fast_settings)
        result = optimizer.optimize_from_collection("ash")

        assert "ash" in requested
        assert result.optimized_composition.total_cards == 60

    def test_needs_ownership(self, optimizer: DeckOptimizer) -> None:
        """Without ownership data there is no collection to build from."""
        with pytest.raises(ConstraintInfeasibleError):
            optimizer.optimize_from_collection("ash")

    def test_empty_collection(self, catalog: InMemoryCatalog, fast_settings: Settings) -> None:
        """A user owning nothing cannot fill a deck."""
        optimizer = DeckOptimizer(catalog, InMemoryOwnership({"ash": {}}), settings=fast_settings)
        with pytest.raises(ConstraintInfeasibleError):
            optimizer.optimize_from_collection("ash")
