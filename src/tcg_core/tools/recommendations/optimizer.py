"""Deck optimization by greedy local search.

Each step evaluates single-copy substitutions drawn from two small pools
(the weakest current cards and the most promising additions), re-running the
full analysis for every candidate composition, and accepts the one with the
best goal improvement per unit of cost. The search stops when nothing
improves the goal, the change cap is reached, the budget blocks every
improving swap, or the deadline passes. It is a bounded greedy search, not a
global solver: every accepted change is a single readable step.

Only a run that stops for lack of improvement is a fixed point. A run stopped
by the change cap, the budget or the deadline can continue when its result is
optimized again, and the budget is counted per run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from ...cache import AnalysisCache
from ...config import Settings, get_settings
from ...data.catalog import CardCatalog, MetaSnapshotProvider, OwnershipLookup
from ...data.models.card import Card
from ...data.models.deck import DeckComposition
from ...data.models.inputs import BuildPreferences, Constraint
from ...data.models.responses import (
    AnalysisResult,
    Change,
    OptimizationResult,
    ScoreVector,
    WantListItem,
)
from ...data.models.types import Archetype, OptimizationGoal, StopReason
from ...exceptions import ConstraintInfeasibleError, ValidationError
from ..analysis.analyzer import DeckAnalyzer
from ..deck import FormatRules, get_format_rules
from .builder import SeedBuilder, SeedPlan
from .candidates import (
    AcquisitionCost,
    card_value,
    describe_card,
    score_impact,
    substitution_reason,
)
from .models import SearchDeadline, SearchState, Substitution
from .weights import (
    ARCHETYPE_TEMPLATES,
    DEFAULT_OPTIMIZER_WEIGHTS,
    GOAL_AFFINITY,
    GOAL_WEIGHTS,
    CardAffinity,
    GoalWeights,
    OptimizerWeights,
)

logger = logging.getLogger(__name__)

DEFAULT_BUILD_ARCHETYPE: Archetype = "midrange"

STOP_DESCRIPTIONS: dict[StopReason, str] = {
    "no_improvement": "no remaining substitution improves the goal",
    "change_cap": "the cap on substitutions was reached",
    "budget": "every further improving substitution exceeds the remaining budget",
    "deadline": "the search deadline passed; this is the best composition found so far",
}


@dataclass
class _SearchRun:
    """Everything one optimization run reads, resolved once up front."""

    analyzer: DeckAnalyzer
    catalog: CardCatalog
    constraints: Constraint
    rules: FormatRules
    goal: GoalWeights
    affinity: CardAffinity
    costs: AcquisitionCost
    deadline: SearchDeadline
    pool: list[Card]
    max_changes: int
    preferred_types: frozenset[str] = frozenset()
    _cards: dict[str, Card] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._cards.update((card.id, card) for card in self.pool)

    @property
    def format(self) -> str:
        return self.constraints.format.lower()

    def analyze(self, composition: DeckComposition) -> AnalysisResult:
        return self.analyzer.analyze(composition, self.format)

    def objective(self, result: AnalysisResult) -> float:
        return self.goal.objective(result.scores.model_dump())

    def card(self, card_id: str) -> Card:
        card = self._cards.get(card_id)
        if card is None:
            card = self.catalog.resolve_cards([card_id])[0]
            self._cards[card_id] = card
        return card

    def value(self, card: Card) -> float:
        return card_value(card, self.affinity, self.preferred_types)

    def within_budget(self, spent: Decimal) -> bool:
        budget = self.constraints.max_budget
        return budget is None or spent <= budget


class DeckOptimizer:
    """Improve an existing deck, build one from scratch, or build from a collection."""

    def __init__(
        self,
        catalog: CardCatalog,
        ownership: OwnershipLookup | None = None,
        meta_provider: MetaSnapshotProvider | None = None,
        settings: Settings | None = None,
        analyzer: DeckAnalyzer | None = None,
        weights: OptimizerWeights | None = None,
    ):
        self.catalog = catalog
        self.ownership = ownership
        self.settings = settings or get_settings()
        self.analyzer = analyzer or DeckAnalyzer(catalog, meta_provider, self.settings)
        self.weights = weights or DEFAULT_OPTIMIZER_WEIGHTS

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    def optimize(
        self,
        composition: DeckComposition | None,
        constraints: Constraint | None = None,
        goal: OptimizationGoal = "consistency",
        deadline: SearchDeadline | None = None,
    ) -> OptimizationResult:
        """Optimize ``composition``, or build a deck from scratch when it is None."""
        constraints = constraints or Constraint()
        if composition is None:
            return self.build_from_scratch(constraints, BuildPreferences(goal=goal), deadline)
        return self.optimize_existing(composition, constraints, goal, deadline)

    def optimize_existing(
        self,
        composition: DeckComposition,
        constraints: Constraint | None = None,
        goal: OptimizationGoal = "consistency",
        deadline: SearchDeadline | None = None,
    ) -> OptimizationResult:
        """Greedily improve a legal composition under the goal and constraints.

        Raises:
            ValidationError: the composition or format is invalid.
            CatalogResolutionError: unknown card ids in the deck or constraints.
            ConstraintInfeasibleError: the constraints contradict each other or the format.
        """
        constraints = constraints or Constraint()
        must_include = self._check_constraints(constraints)
        run = self._start_run(constraints, goal, deadline)

        original = run.analyze(composition)
        state = SearchState(composition=composition, result=original)
        state.unsatisfied.extend(self._unowned_in_deck(run, composition))

        self._repair(run, state, must_include)
        stop = self._search(run, state)
        return self._finish(run, state, goal, stop, original.scores)

    def build_from_scratch(
        self,
        constraints: Constraint | None = None,
        preferences: BuildPreferences | None = None,
        deadline: SearchDeadline | None = None,
    ) -> OptimizationResult:
        """Assemble a seed deck for the preferred archetype, then refine it."""
        result, _, _ = self._build(constraints or Constraint(), preferences, deadline)
        return result

    def optimize_from_collection(
        self,
        user_id: str,
        constraints: Constraint | None = None,
        preferences: BuildPreferences | None = None,
        deadline: SearchDeadline | None = None,
    ) -> OptimizationResult:
        """Build from owned cards only and list unowned cards worth acquiring."""
        constraints = (constraints or Constraint()).model_copy(
            update={"only_owned_cards": True, "user_id": user_id}
        )
        result, run, state = self._build(constraints, preferences, deadline)
        want_list = self._want_list(run, state)
        return result.model_copy(update={"want_list": want_list})

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def _check_constraints(self, constraints: Constraint) -> list[Card]:
        """Reject constraints no composition can satisfy; return the must-include cards."""
        include = list(dict.fromkeys(constraints.must_include_card_ids))
        overlap = sorted(set(include).intersection(constraints.must_exclude_card_ids))
        if overlap:
            raise ConstraintInfeasibleError(
                f"Cards are both required and excluded: {', '.join(overlap)}",
                [f"must include/exclude {card_id}" for card_id in overlap],
            )

        format_name = constraints.format.lower()
        get_format_rules(format_name)
        cards = self.catalog.resolve_cards(include)

        illegal = [c.id for c in cards if not self.catalog.is_legal(c.id, format_name)]
        if illegal:
            raise ConstraintInfeasibleError(
                f"Required cards are not legal in {format_name}: {', '.join(illegal)}",
                [f"must include {card_id}" for card_id in illegal],
            )

        if constraints.only_owned_cards:
            if self.ownership is None or constraints.user_id is None:
                raise ConstraintInfeasibleError(
                    "Restricting to owned cards needs an ownership lookup and a user id",
                    ["only owned cards"],
                )
            unowned = [
                c.id for c in cards if not self.ownership.owned_quantity(constraints.user_id, c.id)
            ]
            if unowned:
                raise ConstraintInfeasibleError(
                    f"Required cards are not owned: {', '.join(unowned)}",
                    [f"must include {card_id}" for card_id in unowned],
                )
        return cards

    def _start_run(
        self,
        constraints: Constraint,
        goal: OptimizationGoal,
        deadline: SearchDeadline | None,
        preferred_types: frozenset[str] = frozenset(),
    ) -> _SearchRun:
        if goal not in GOAL_WEIGHTS:
            raise ValidationError(
                f"Unknown optimization goal '{goal}'. Supported: {', '.join(GOAL_WEIGHTS)}"
            )
        format_name = constraints.format.lower()
        excluded = set(constraints.must_exclude_card_ids)
        pool = [c for c in self.catalog.legal_cards(format_name) if c.id not in excluded]
        max_changes = constraints.acceptable_changes
        return _SearchRun(
            analyzer=self.analyzer.with_cache(AnalysisCache()),
            catalog=self.catalog,
            constraints=constraints,
            rules=get_format_rules(format_name),
            goal=GOAL_WEIGHTS[goal],
            affinity=GOAL_AFFINITY[goal],
            costs=AcquisitionCost(self.catalog, self.ownership, constraints.user_id),
            deadline=deadline or SearchDeadline(timeout=self.settings.optimization_timeout_seconds),
            pool=pool,
            max_changes=self.settings.max_changes if max_changes is None else max_changes,
            preferred_types=preferred_types,
        )

    def _unowned_in_deck(self, run: _SearchRun, composition: DeckComposition) -> list[str]:
        if not run.constraints.only_owned_cards:
            return []
        missing = []
        for entry in composition.entries:
            owned = run.costs.owned(entry.card_id)
            if owned < entry.quantity:
                missing.append(
                    f"only owned cards: deck runs {entry.quantity}x {entry.card_id}, "
                    f"user owns {owned}"
                )
        return missing

    # -------------------------------------------------------------------------
    # Candidate pools
    # -------------------------------------------------------------------------

    def _can_add(self, run: _SearchRun, card: Card, counts: dict[str, int]) -> bool:
        current = counts.get(card.id, 0)
        if not card.is_basic_resource and current >= run.rules.copy_limit:
            return False
        if run.constraints.only_owned_cards and run.costs.owned(card.id) <= current:
            return False
        return True

    def _addition_pool(self, run: _SearchRun, composition: DeckComposition) -> list[Card]:
        counts = composition.to_counts()
        cards = [c for c in run.pool if self._can_add(run, c, counts)]
        if run.goal.minimize_cost:
            cards.sort(key=lambda c: (run.costs.unit_price(c) or Decimal("0"), -run.value(c), c.id))
        else:
            cards.sort(key=lambda c: (-run.value(c), c.id))
        return cards[: self.settings.candidate_pool_size]

    def _removal_pool(self, run: _SearchRun, composition: DeckComposition) -> list[Card]:
        required = set(run.constraints.must_include_card_ids)
        cards = [
            run.card(e.card_id)
            for e in composition.entries
            if e.card_id not in required or e.quantity > 1
        ]
        if run.goal.minimize_cost:
            cards.sort(key=lambda c: (-(run.costs.unit_price(c) or Decimal("0")), c.id))
        else:
            cards.sort(key=lambda c: (run.value(c), c.id))
        return cards[: self.settings.removal_pool_size]

    def _swap_cost(
        self, run: _SearchRun, counts: dict[str, int], remove: Card, add: Card
    ) -> Decimal | None:
        """Acquisition cost delta of one swap; None when an unpriced card meets a budget."""
        have = counts.get(add.id, 0)
        added = run.costs.change(add, have, have + 1)
        if added is None:
            if run.constraints.max_budget is not None:
                return None
            added = Decimal("0")
        refund = run.costs.change(remove, counts[remove.id], counts[remove.id] - 1)
        return added + (refund or Decimal("0"))

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def _improves(self, run: _SearchRun, delta: float, cost: Decimal) -> bool:
        if run.goal.minimize_cost:
            return delta >= -self.weights.MIN_IMPROVEMENT and cost < 0
        return delta > self.weights.MIN_IMPROVEMENT

    def _rank_key(self, run: _SearchRun, sub: Substitution) -> tuple[object, ...]:
        """Smaller is better; card ids break ties so runs are reproducible."""
        if run.goal.minimize_cost:
            return (sub.cost_delta, -sub.objective_delta, sub.remove_id, sub.add_id)
        ratio = sub.objective_delta / float(max(sub.cost_delta, self.weights.COST_FLOOR))
        return (-ratio, -sub.objective_delta, sub.remove_id, sub.add_id)

    def _best_substitution(
        self, run: _SearchRun, state: SearchState
    ) -> tuple[Substitution | None, bool, bool]:
        """Best improving swap, whether the budget blocked one, and whether time ran out."""
        counts = state.composition.to_counts()
        base = run.objective(state.result)
        additions = self._addition_pool(run, state.composition)
        best: Substitution | None = None
        blocked = False

        for remove in self._removal_pool(run, state.composition):
            for add in additions:
                if add.id == remove.id:
                    continue
                if run.deadline.expired():
                    return best, blocked, True
                cost = self._swap_cost(run, counts, remove, add)
                if cost is None:
                    continue
                composition = state.composition.replace(remove.id, add.id)
                result = run.analyze(composition)
                delta = run.objective(result) - base
                if not self._improves(run, delta, cost):
                    continue
                if not run.within_budget(state.spent + cost):
                    blocked = True
                    continue
                candidate = Substitution(remove.id, add.id, composition, result, delta, cost)
                if best is None or self._rank_key(run, candidate) < self._rank_key(run, best):
                    best = candidate
        return best, blocked, False

    def _search(self, run: _SearchRun, state: SearchState) -> StopReason:
        while True:
            if state.substitutions >= run.max_changes:
                return "change_cap"
            if run.deadline.expired():
                return "deadline"
            best, blocked, expired = self._best_substitution(run, state)
            if best is not None:
                self._apply(run, state, best)
            if expired:
                return "deadline"
            if best is None:
                return "budget" if blocked else "no_improvement"

    def _repair(self, run: _SearchRun, state: SearchState, must_include: list[Card]) -> None:
        """Swap out excluded cards and swap in missing required cards."""
        excluded = set(run.constraints.must_exclude_card_ids)
        for card_id in [cid for cid in state.composition.card_ids if cid in excluded]:
            removed = run.card(card_id)
            while state.composition.quantity_of(card_id):
                additions = self._addition_pool(run, state.composition)
                sub = self._best_replacement(run, state, [removed], additions)
                if sub is None:
                    state.unsatisfied.append(
                        f"must exclude {card_id}: no affordable legal replacement"
                    )
                    break
                self._apply(run, state, sub, note=f"{removed.name} is excluded")

        for card in must_include:
            if state.composition.quantity_of(card.id):
                continue
            removals = [c for c in self._removal_pool(run, state.composition) if c.id != card.id]
            sub = self._best_replacement(run, state, removals, [card])
            if sub is None:
                state.unsatisfied.append(f"must include {card.id}: no affordable swap")
                continue
            self._apply(run, state, sub, note=f"{card.name} is required")

    def _best_replacement(
        self,
        run: _SearchRun,
        state: SearchState,
        removals: list[Card],
        additions: list[Card],
    ) -> Substitution | None:
        """Highest-objective swap regardless of improvement, within the budget."""
        counts = state.composition.to_counts()
        base = run.objective(state.result)
        best: Substitution | None = None
        for remove in removals:
            for add in additions:
                if add.id == remove.id:
                    continue
                cost = self._swap_cost(run, counts, remove, add)
                if cost is None or not run.within_budget(state.spent + cost):
                    continue
                composition = state.composition.replace(remove.id, add.id)
                result = run.analyze(composition)
                candidate = Substitution(
                    remove.id, add.id, composition, result, run.objective(result) - base, cost
                )
                key = (-candidate.objective_delta, candidate.remove_id, candidate.add_id)
                if best is None or key < (-best.objective_delta, best.remove_id, best.add_id):
                    best = candidate
        return best

    def _apply(
        self, run: _SearchRun, state: SearchState, sub: Substitution, note: str | None = None
    ) -> None:
        """Accept a swap, merging it into the previous change when it repeats."""
        removed = run.card(sub.remove_id)
        added = run.card(sub.add_id)
        before = state.result.scores
        required = note is not None

        state.composition = sub.composition
        state.result = sub.result
        state.spent += sub.cost_delta
        if not required:
            state.substitutions += 1

        previous = state.changes[-1] if state.changes else None
        quantity = 1
        cost = sub.cost_delta
        if (
            previous is not None
            and previous.action == "replace"
            and previous.card_id == added.id
            and previous.replaces_card_id == removed.id
            and previous.required == required
        ):
            quantity += previous.quantity
            cost += previous.cost_delta
            before = state.baselines.pop()
            state.changes.pop()

        reason = substitution_reason(removed, added, before, sub.result.scores, run.goal, quantity)
        if note:
            reason = f"{note}. {reason}"
        if cost < 0:
            reason = f"{reason}; saves {-cost:.2f}"
        elif cost > 0:
            reason = f"{reason}; costs {cost:.2f}"

        state.changes.append(
            Change(
                action="replace",
                card_id=added.id,
                replaces_card_id=removed.id,
                quantity=quantity,
                reasoning_text=reason,
                score_impact=score_impact(before, sub.result.scores),
                cost_delta=cost,
                required=required,
            )
        )
        state.baselines.append(before)
        logger.debug(
            "Accepted %s -> %s (objective %+.2f, cost %s)",
            removed.id,
            added.id,
            sub.objective_delta,
            sub.cost_delta,
        )

    # -------------------------------------------------------------------------
    # Builds
    # -------------------------------------------------------------------------

    def _build(
        self,
        constraints: Constraint,
        preferences: BuildPreferences | None,
        deadline: SearchDeadline | None,
    ) -> tuple[OptimizationResult, _SearchRun, SearchState]:
        preferences = preferences or BuildPreferences()
        must_include = self._check_constraints(constraints)
        run = self._start_run(
            constraints, preferences.goal, deadline, frozenset(preferences.elemental_types)
        )
        archetype = preferences.archetype or DEFAULT_BUILD_ARCHETYPE

        pool = run.pool
        if constraints.only_owned_cards:
            # Ownership and user id were checked by _check_constraints
            assert self.ownership is not None and constraints.user_id is not None
            owned = set(self.ownership.owned_card_ids(constraints.user_id))
            pool = [c for c in pool if c.id in owned]
        builder = SeedBuilder(
            pool,
            run.rules,
            run.costs,
            max_budget=constraints.max_budget,
            only_owned=constraints.only_owned_cards,
        )
        plan = builder.build(
            archetype, ARCHETYPE_TEMPLATES[archetype], must_include, run.preferred_types
        )

        seed = plan.composition()
        seed_result = run.analyze(seed)
        state = SearchState(composition=seed, result=seed_result, spent=plan.spent)
        for change in self._seed_changes(run, plan, seed_result):
            state.changes.append(change)
            state.baselines.append(seed_result.scores)

        stop = self._search(run, state)
        result = self._finish(run, state, preferences.goal, stop, None, seed_result.scores, plan)
        return result, run, state

    def _seed_changes(
        self, run: _SearchRun, plan: SeedPlan, seed_result: AnalysisResult
    ) -> list[Change]:
        """One add per seed card, scored against the same slots filled with basic resources."""
        filler = plan.filler
        changes = []
        for card_id, quantity in plan.counts.items():
            card = plan.cards[card_id]
            cost = run.costs.of(card, quantity) or Decimal("0")
            if card.is_basic_resource:
                impact = {"overall": 0}
                reason = (
                    f"Add {quantity}x {card.name} as {describe_card(card)} "
                    f"to pay attack costs of the {plan.archetype} build"
                )
            else:
                counts = dict(plan.counts)
                del counts[card_id]
                counts[filler.id] = counts.get(filler.id, 0) + quantity
                without = run.analyze(DeckComposition.from_counts(counts))
                impact = score_impact(without.scores, seed_result.scores)
                reason = (
                    f"Add {quantity}x {card.name} as {plan.roles[card_id]} "
                    f"for the {plan.archetype} build ({describe_card(card)}); "
                    f"overall {without.scores.overall} -> {seed_result.scores.overall} "
                    f"compared with {filler.name} in those slots"
                )
            changes.append(
                Change(
                    action="add",
                    card_id=card_id,
                    quantity=quantity,
                    reasoning_text=reason,
                    score_impact=impact,
                    cost_delta=cost,
                    required=plan.roles[card_id] == "required card",
                )
            )
        return changes

    def _want_list(self, run: _SearchRun, state: SearchState) -> list[WantListItem]:
        """Best single-copy swaps bringing in a card the user does not own (enough of)."""
        limit = self.settings.want_list_size
        if not limit:
            return []
        counts = state.composition.to_counts()
        unowned = [
            c
            for c in run.pool
            if run.costs.owned(c.id) <= counts.get(c.id, 0)
            and (c.is_basic_resource or counts.get(c.id, 0) < run.rules.copy_limit)
        ]
        unowned.sort(key=lambda c: (-run.value(c), c.id))
        base = run.objective(state.result)
        removals = self._removal_pool(run, state.composition)

        best: dict[str, tuple[float, Card, AnalysisResult]] = {}
        for add in unowned[: self.settings.candidate_pool_size]:
            for remove in removals:
                if add.id == remove.id or run.deadline.expired():
                    continue
                result = run.analyze(state.composition.replace(remove.id, add.id))
                delta = run.objective(result) - base
                if delta > self.weights.MIN_IMPROVEMENT and (
                    add.id not in best or delta > best[add.id][0]
                ):
                    best[add.id] = (delta, remove, result)

        ranked = sorted(best.items(), key=lambda item: (-item[1][0], item[0]))[:limit]
        items = []
        for card_id, (delta, remove, result) in ranked:
            card = run.card(card_id)
            items.append(
                WantListItem(
                    card_id=card_id,
                    quantity=1,
                    estimated_cost=run.costs.unit_price(card),
                    reasoning_text=(
                        f"Not owned: {card.name} ({describe_card(card)}) in place of "
                        f"{remove.name} would raise {run.goal.label} by {delta:.1f}"
                    ),
                    score_impact=score_impact(state.result.scores, result.scores),
                )
            )
        return items

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def _finish(
        self,
        run: _SearchRun,
        state: SearchState,
        goal: OptimizationGoal,
        stop: StopReason,
        original_scores: ScoreVector | None,
        seed_scores: ScoreVector | None = None,
        plan: SeedPlan | None = None,
    ) -> OptimizationResult:
        baseline = original_scores or seed_scores or state.result.scores
        explanation = self._explain(run, state, baseline, stop, plan)
        logger.info(
            "Optimization for %s finished: %d changes, %d substitutions, stopped by %s",
            goal,
            len(state.changes),
            state.substitutions,
            stop,
        )
        return OptimizationResult(
            goal=goal,
            optimized_composition=state.composition,
            changes=state.changes,
            score_improvement=baseline.delta(state.result.scores),
            explanation=explanation,
            original_scores=original_scores,
            optimized_scores=state.result.scores,
            unsatisfied_constraints=state.unsatisfied,
            stopped_reason=stop,
        )

    @staticmethod
    def _explain(
        run: _SearchRun,
        state: SearchState,
        baseline: ScoreVector,
        stop: StopReason,
        plan: SeedPlan | None,
    ) -> str:
        parts = []
        if plan is not None:
            parts.append(
                f"Built a {plan.archetype} deck of {len(plan.counts)} distinct cards "
                f"costing {plan.spent:.2f} to acquire."
            )

        required = sum(1 for c in state.changes if c.required and c.action == "replace")
        if required:
            parts.append(f"Made {required} required change(s) to satisfy the card constraints.")

        if state.substitutions:
            before = baseline.model_dump()
            after = state.result.scores.model_dump()
            moved = ", ".join(
                f"{name.replace('_', ' ')} {before[name]} -> {after[name]}"
                for name in run.goal.scores
            )
            parts.append(
                f"Applied {state.substitutions} substitution(s) for {run.goal.label}: {moved}."
            )
        elif plan is not None or required:
            parts.append(f"No further substitution improves {run.goal.label}.")
        else:
            parts.append(
                f"No improvement found for {run.goal.label} under the constraints; "
                "the composition is unchanged."
            )

        parts.append(f"Stopped because {STOP_DESCRIPTIONS[stop]}.")
        if stop != "no_improvement":
            parts.append(
                "This is not a fixed point: optimizing the result again may make further "
                "changes, and any budget applies afresh to that run."
            )
        if state.unsatisfied:
            parts.append(f"Unsatisfied constraints: {'; '.join(state.unsatisfied)}.")
        return " ".join(parts)
