"""Custom exceptions for the deck analysis engine."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class TCGError(Exception):
    """Base exception for deck analysis errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(TCGError):
    """Raised when a composition is malformed or illegal in its format.

    ``issues`` lists every problem found, so callers can report all of them
    at once instead of fixing one per round trip.
    """

    def __init__(self, message: str, issues: list[Any] | None = None):
        super().__init__(message)
        self.issues = issues or []


class CatalogResolutionError(TCGError):
    """Raised when one or more card ids are unknown to the catalog."""

    def __init__(self, missing_ids: Iterable[str]):
        self.missing_ids = sorted(set(missing_ids))
        super().__init__(f"Unknown card ids: {', '.join(self.missing_ids)}")


class ConstraintInfeasibleError(TCGError):
    """Raised when optimization constraints cannot be satisfied at all."""

    def __init__(self, message: str, constraints: list[str] | None = None):
        super().__init__(message)
        self.constraints = constraints or []
