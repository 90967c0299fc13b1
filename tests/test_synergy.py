"""Tests for synergy detection and the speed model."""

from __future__ import annotations

import pytest

from tcg_core.config import Settings
from tcg_core.data.catalog import InMemoryCatalog
from tcg_core.data.models.card import Ability, Attack
from tcg_core.data.models.deck import DeckComposition
from tcg_core.tools.analysis.analyzer import DeckAnalyzer
from tcg_core.tools.analysis.constants import ABILITY_PAIRINGS, SUPPORT_PAIRINGS, pair_key
from tcg_core.tools.analysis.features import card_categories, text_categories
from tcg_core.tools.analysis.speed import estimate_card_setup_turns, speed_score, speed_tier

from .conftest import creature, sample_cards

# A paralysis setup, its payoff and a resource accelerator with a damage booster
COMBO_COUNTS = {
    "volt-mouse": 4,
    "storm-hawk": 4,
    "ember-sprite": 4,
    "war-drum": 2,
    "fire-pup": 4,
    "scout-orders": 4,
    "research-notes": 4,
    "fire-energy": 17,
    "lightning-energy": 17,
}

# Vanilla attackers and resources only
PLAIN_COUNTS = {"fire-pup": 4, "blaze-fox": 4, "ember-titan": 4, "fire-energy": 48}


def combo_deck(changes: dict[str, int] | None = None) -> DeckComposition:
    """The combo deck, with zero counts dropping a card."""
    counts = {**COMBO_COUNTS, **(changes or {})}
    return DeckComposition.from_counts({card_id: qty for card_id, qty in counts.items() if qty})


@pytest.fixture
def combo_analyzer(settings: Settings) -> DeckAnalyzer:
    """Sample catalog plus a paralysis payoff and a damage booster."""
    extra = [
        creature(
            "storm-hawk",
            "Storm Hawk",
            ["Lightning"],
            110,
            [
                Attack(
                    name="Thunder Punish",
                    cost=["Lightning", "Lightning", "Colorless"],
                    damage=60,
                    text="If your opponent's Active creature is Paralyzed, this attack does 90 more damage.",
                )
            ],
            price="2.00",
        ),
        creature(
            "war-drum",
            "War Drum",
            ["Fire"],
            80,
            [Attack(name="Beat", cost=["Colorless"], damage=20)],
            abilities=[Ability(name="War Chant", text="Attacks used by your Fire creatures do 30 more damage.")],
            price="3.00",
        ),
    ]
    return DeckAnalyzer(InMemoryCatalog([*sample_cards(), *extra]), settings=settings)


# =============================================================================
# Effect categories
# =============================================================================


class TestEffectCategories:
    """Tests for matching card text against effect categories."""

    def test_switch_card_is_not_multi_hit(self, catalog: InMemoryCatalog) -> None:
        """Mentioning your own bench does not make a card spread damage."""
        (swap_cart,) = catalog.resolve_cards(["swap-cart"])
        assert card_categories(swap_cart) == frozenset({"switch"})

    def test_bench_damage_is_multi_hit(self) -> None:
        """Damage to the opponent's bench spreads damage."""
        text = "This attack does 20 damage to each of your opponent's Benched creatures."
        assert "multi_hit" in text_categories(text)

    def test_spread_damage_counters(self) -> None:
        """Counters on every opposing creature are both spread and counter placement."""
        text = "Put 2 damage counters on each of your opponent's creatures."
        assert text_categories(text) >= {"multi_hit", "damage_counters"}


# =============================================================================
# Synergy
# =============================================================================


class TestPairings:
    """Tests for the pairing tables."""

    def test_pair_key_is_order_independent(self) -> None:
        """Both orders of a pair map to one key."""
        assert pair_key("search", "draw") == pair_key("draw", "search")

    def test_tables_use_canonical_keys(self) -> None:
        """Every table key is already in canonical order."""
        for key in [*ABILITY_PAIRINGS, *SUPPORT_PAIRINGS]:
            assert key == pair_key(*key)


class TestSynergyDetector:
    """Tests for synergy analysis of real decks."""

    def test_search_and_draw_supports_pair(self, analyzer: DeckAnalyzer, balanced_deck: DeckComposition) -> None:
        """A search support and a draw support form a full-strength pair at four copies each."""
        synergy = analyzer.analyze(balanced_deck).synergy
        pair = next(
            t
            for t in synergy.trainer_synergy
            if set(t.participant_cards) == {"Scout Orders", "Research Notes"}
        )
        assert pair.effect == "search then refresh the hand"
        assert pair.synergy_score == 80
        assert pair.expected_frequency_per_game > 0

    def test_fewer_copies_shade_the_score(self, analyzer: DeckAnalyzer, balanced_deck: DeckComposition) -> None:
        """The rarer piece of a pair lowers its score."""
        synergy = analyzer.analyze(balanced_deck).synergy
        pair = next(
            t
            for t in synergy.trainer_synergy
            if set(t.participant_cards) == {"Premium Tutor", "Research Notes"}
        )
        assert pair.synergy_score < 80

    def test_evolution_line_and_edge(self, analyzer: DeckAnalyzer, balanced_deck: DeckComposition) -> None:
        """Evolution lines are listed basic first and appear in the graph."""
        synergy = analyzer.analyze(balanced_deck).synergy
        lines = synergy.evolution_synergy.lines
        assert [line.stages for line in lines] == [["Blaze Fox", "Inferno Drake"]]
        assert lines[0].copies == 7
        edges = [(e.source, e.target) for e in synergy.graph.edges if e.kind == "evolution"]
        assert edges == [("blaze-fox", "inferno-drake")]

    def test_resource_edges(self, analyzer: DeckAnalyzer, balanced_deck: DeckComposition) -> None:
        """Basic resources link to the creatures whose attacks they pay for."""
        graph = analyzer.analyze(balanced_deck).synergy.graph
        targets = {e.target for e in graph.edges if e.kind == "type" and e.source == "fire-energy"}
        assert {"fire-pup", "blaze-fox", "inferno-drake", "ember-titan"} <= targets
        assert set(graph.nodes) == set(balanced_deck.card_ids)

    def test_acceleration_methods(self, analyzer: DeckAnalyzer, balanced_deck: DeckComposition) -> None:
        """Cards that attach resources count as acceleration."""
        energy = analyzer.analyze(balanced_deck).synergy.energy_synergy
        assert energy.acceleration_methods == ["Ember Sprite", "Energy Search", "Power Cell"]
        assert 0 <= energy.efficiency <= 100

    def test_subscores_in_range(self, analyzer: DeckAnalyzer, flooded_deck: DeckComposition) -> None:
        """Every synergy subscore is a 0-100 value."""
        synergy = analyzer.analyze(flooded_deck).synergy
        assert all(0 <= v <= 100 for v in synergy.subscores.model_dump().values())
        assert 0 <= synergy.overall_synergy <= 100

    def test_ability_combo(self, combo_analyzer: DeckAnalyzer) -> None:
        """An accelerator and a damage booster pair at tier S, shaded by the rarer piece."""
        synergy = combo_analyzer.analyze(combo_deck()).synergy
        combo = next(
            c for c in synergy.ability_combos if set(c.participant_cards) == {"Ember Sprite", "War Drum"}
        )
        assert set(combo.abilities) == {"Kindle", "War Chant"}
        assert "accelerates resources into a boosted attacker" in combo.description
        assert combo.synergy_score == 83

        full = combo_analyzer.analyze(combo_deck({"fire-pup": 2, "war-drum": 4})).synergy
        combo = next(
            c for c in full.ability_combos if set(c.participant_cards) == {"Ember Sprite", "War Drum"}
        )
        assert combo.synergy_score == 90

    def test_attack_combo(self, combo_analyzer: DeckAnalyzer) -> None:
        """A paralysis setup feeds the attacker that punishes paralysis."""
        synergy = combo_analyzer.analyze(combo_deck()).synergy
        assert len(synergy.attack_combos) == 1
        combo = synergy.attack_combos[0]
        assert combo.setup_card == "Volt Mouse"
        assert combo.attacker_card == "Storm Hawk"
        assert combo.damage == 120
        assert combo.combo_description == "Jolt inflicts a condition that Storm Hawk punishes"
        assert combo.setup_turns == 1
        edges = [(e.source, e.target) for e in synergy.graph.edges if e.kind == "attack"]
        assert edges == [("volt-mouse", "storm-hawk")]
        assert synergy.subscores.attacks == 60

    def test_deck_without_synergy(self, analyzer: DeckAnalyzer) -> None:
        """Empty combo, attack and evolution components fall back to a neutral 50."""
        synergy = analyzer.analyze(DeckComposition.from_counts(PLAIN_COUNTS)).synergy
        assert synergy.ability_combos == []
        assert synergy.attack_combos == []
        assert synergy.trainer_synergy == []
        assert synergy.evolution_synergy.lines == []
        subscores = synergy.subscores.model_dump()
        assert set(subscores) == {"combos", "attacks", "types", "energy", "evolution"}
        assert subscores["combos"] == 50
        assert subscores["attacks"] == 50
        assert subscores["evolution"] == 50

    def test_shared_weakness_is_a_vulnerability(
        self, analyzer: DeckAnalyzer, balanced_deck: DeckComposition
    ) -> None:
        """A mono-Fire deck is exposed to Water and loses that share of coverage."""
        types = analyzer.analyze(balanced_deck).synergy.type_synergy
        assert types.vulnerabilities == ["Water"]
        assert types.weakness_coverage == 88


# =============================================================================
# Speed
# =============================================================================


class TestSpeedModel:
    """Tests for setup-turn estimates and speed tiers."""

    def test_card_setup_turns(self, catalog: InMemoryCatalog) -> None:
        """Attack cost and evolution stage both delay a creature."""
        pup, drake, titan = catalog.resolve_cards(["fire-pup", "inferno-drake", "ember-titan"])
        assert estimate_card_setup_turns(pup) == 1
        assert estimate_card_setup_turns(drake) == 3
        assert estimate_card_setup_turns(titan) == 3
        assert estimate_card_setup_turns(titan, attach_rate=2.0) == 2

    @pytest.mark.parametrize(("score", "tier"), [(10, "slow"), (29, "slow"), (30, "medium"), (74, "fast"), (90, "turbo")])
    def test_speed_tiers(self, score: int, tier: str) -> None:
        """Speed scores map onto ordered tiers."""
        assert speed_tier(score) == tier

    def test_faster_setup_scores_higher(self) -> None:
        """Speed score falls as the setup turn grows."""
        assert speed_score(1.0) >= speed_score(2.0) >= speed_score(4.0)
        assert 0 <= speed_score(10.0) <= 100

    def test_speed_analysis(self, analyzer: DeckAnalyzer, balanced_deck: DeckComposition) -> None:
        """The speed analysis is consistent with the speed score."""
        result = analyzer.analyze(balanced_deck)
        speed = result.speed
        assert speed.average_setup_turn >= 1.0
        assert speed.prize_race_speed.damage_output_per_turn > 0
        # 200 damage at most, short of the largest common HP
        assert not speed.prize_race_speed.one_shot_capable
        assert result.scores.speed == speed_score(speed.average_setup_turn)

    def test_one_shot_capable(self, combo_analyzer: DeckAnalyzer) -> None:
        """The best attack plus the largest damage boost can reach the large HP threshold."""
        # 60 damage plus a 90 boost falls short
        short = combo_analyzer.analyze(combo_deck()).speed.prize_race_speed
        assert not short.one_shot_capable
        # 200 damage plus a 90 boost reaches 280
        deck = combo_deck({"fire-pup": 0, "ember-titan": 4})
        assert combo_analyzer.analyze(deck).speed.prize_race_speed.one_shot_capable
