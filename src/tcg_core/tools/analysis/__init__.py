"""Deck analysis: scoring, archetypes, synergy, speed and matchups."""
