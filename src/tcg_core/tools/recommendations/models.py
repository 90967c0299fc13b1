"""Internal data structures for the optimization search."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from decimal import Decimal

from ...data.models.deck import DeckComposition
from ...data.models.responses import AnalysisResult, Change, ScoreVector


@dataclass
class SearchDeadline:
    """Wall-clock budget and/or cancellation flag for a search.

    The search checks ``expired()`` between candidate evaluations and returns
    the best composition found so far once it trips.
    """

    timeout: float | None = None
    cancel_event: threading.Event | None = None
    started_at: float = field(default_factory=time.monotonic)

    def expired(self) -> bool:
        if self.cancel_event is not None and self.cancel_event.is_set():
            return True
        return self.timeout is not None and time.monotonic() - self.started_at >= self.timeout

    def cancel(self) -> None:
        if self.cancel_event is None:
            self.cancel_event = threading.Event()
        self.cancel_event.set()


@dataclass
class Substitution:
    """One evaluated single-copy swap."""

    remove_id: str
    add_id: str
    composition: DeckComposition
    result: AnalysisResult
    objective_delta: float
    cost_delta: Decimal


@dataclass
class SearchState:
    """Mutable progress of one search run."""

    composition: DeckComposition
    result: AnalysisResult
    changes: list[Change] = field(default_factory=list)
    # Scores before the first substitution merged into each change
    baselines: list[ScoreVector] = field(default_factory=list)
    spent: Decimal = Decimal("0")
    substitutions: int = 0
    unsatisfied: list[str] = field(default_factory=list)
