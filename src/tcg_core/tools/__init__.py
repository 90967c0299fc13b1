"""Deck tools: composition handling, analysis and recommendations."""
