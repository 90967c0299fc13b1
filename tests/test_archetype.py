"""Tests for archetype classification."""

from __future__ import annotations

from collections import Counter

import pytest

from tcg_core.config import Settings
from tcg_core.data.models.responses import ScoreVector
from tcg_core.data.models.types import ARCHETYPES
from tcg_core.tools.analysis.archetype import ArchetypeClassifier, classification_signals, signature_score
from tcg_core.tools.analysis.constants import ARCHETYPE_SIGNATURES, SignatureRule
from tcg_core.tools.analysis.features import DeckFeatures


def make_scores(power: int = 50, speed: int = 50, consistency: int = 50) -> ScoreVector:
    return ScoreVector(
        overall=50,
        consistency=consistency,
        power=power,
        speed=speed,
        versatility=50,
        meta_relevance=50,
        innovation=50,
        difficulty=50,
    )


def mill_features(mill: int, disrupt: int, heal: int, draw: int) -> DeckFeatures:
    return DeckFeatures(
        total_cards=60,
        effect_counts=Counter({"mill": mill, "disrupt": disrupt, "heal": heal, "draw": draw}),
    )


@pytest.fixture
def classifier() -> ArchetypeClassifier:
    return ArchetypeClassifier(Settings(_env_file=None))


# =============================================================================
# Signatures
# =============================================================================


class TestSignatures:
    """Tests for signature rules and normalization."""

    def test_min_rule_takes_first_matching_tier(self) -> None:
        """Tiers are listed highest first for minimum rules."""
        rule = SignatureRule("mill", ((6, 50), (4, 35), (2, 20)))
        assert rule.points(7) == 50
        assert rule.points(4) == 35
        assert rule.points(1) == 0
        assert rule.max_points == 50

    def test_max_rule(self) -> None:
        """Maximum rules award points at or below the threshold."""
        rule = SignatureRule("power", ((35, 15), (45, 8)), direction="max")
        assert rule.points(30) == 15
        assert rule.points(40) == 8
        assert rule.points(50) == 0

    def test_every_archetype_has_a_signature(self) -> None:
        """Each archetype can be scored."""
        assert set(ARCHETYPE_SIGNATURES) == set(ARCHETYPES)
        assert all(sig.max_raw > 0 for sig in ARCHETYPE_SIGNATURES.values())

    def test_signature_scores_are_normalized(self) -> None:
        """A perfect match scores 100 regardless of how many points the signature has."""
        signals = classification_signals(mill_features(8, 4, 2, 6), make_scores(power=30, speed=40))
        assert signature_score(ARCHETYPE_SIGNATURES["mill"], signals) == 100

    def test_partial_match_stays_below_full_confidence(self) -> None:
        """A weak best match keeps a low score instead of being stretched to 100."""
        signals = classification_signals(mill_features(4, 0, 0, 0), make_scores(power=50))
        assert signature_score(ARCHETYPE_SIGNATURES["mill"], signals) == 35

    def test_empty_deck_has_no_cost_signal(self) -> None:
        """Decks without attackers do not read as cheap."""
        signals = classification_signals(DeckFeatures(), make_scores())
        assert signals["avg_cost"] == float("inf")
        assert signals["single_prize_ratio"] == 0.0


# =============================================================================
# Classification
# =============================================================================


class TestClassify:
    """Tests for picking primary and secondary archetypes."""

    def test_fallback_to_midrange(self, classifier: ArchetypeClassifier) -> None:
        """With fewer than two classifiable archetypes the deck is midrange at capped confidence."""
        result = classifier.classify(DeckFeatures(), make_scores())
        assert result.primary_archetype == "midrange"
        assert result.secondary_archetype is None
        assert result.confidence == 45

    def test_clear_primary(self, classifier: ArchetypeClassifier) -> None:
        """A strong mill profile wins outright."""
        result = classifier.classify(mill_features(8, 4, 2, 6), make_scores(power=30, speed=40))
        assert result.primary_archetype == "mill"
        assert result.confidence == 100
        assert result.secondary_archetype is None
        assert result.candidate_scores["midrange"] == 58
        assert result.candidate_scores["control"] == 51

    def test_close_runner_up_is_secondary(self, classifier: ArchetypeClassifier) -> None:
        """A runner-up within the margin becomes the secondary archetype."""
        result = classifier.classify(mill_features(4, 6, 4, 8), make_scores(power=30, speed=40))
        assert result.primary_archetype == "mill"
        assert result.confidence == 85
        assert result.secondary_archetype == "control"
        assert "control" in result.playstyle

    def test_margin_from_settings(self) -> None:
        """A zero margin leaves no secondary archetype."""
        classifier = ArchetypeClassifier(Settings(_env_file=None, archetype_secondary_margin=0))
        result = classifier.classify(mill_features(4, 6, 4, 8), make_scores(power=30, speed=40))
        assert result.primary_archetype == "mill"
        assert result.secondary_archetype is None

    @pytest.mark.parametrize(
        "features",
        [DeckFeatures(), mill_features(8, 4, 2, 6), mill_features(4, 6, 4, 8), mill_features(1, 1, 1, 1)],
    )
    def test_confidence_dominates_other_candidates(
        self, classifier: ArchetypeClassifier, features: DeckFeatures
    ) -> None:
        """Confidence is never below another archetype's candidate score."""
        result = classifier.classify(features, make_scores(power=30, speed=40))
        others = [s for name, s in result.candidate_scores.items() if name != result.primary_archetype]
        assert result.confidence >= max(others)
        assert 0 <= result.confidence <= 100

    def test_characteristics_include_profile(self, classifier: ArchetypeClassifier) -> None:
        """Characteristics start from the archetype profile."""
        result = classifier.classify(mill_features(8, 4, 2, 6), make_scores(power=30, speed=40))
        assert result.characteristics
        assert result.playstyle
