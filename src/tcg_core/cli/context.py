"""Catalog and engine context for CLI commands."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from tcg_core.config import get_settings
from tcg_core.data.catalog import (
    InMemoryCatalog,
    StaticMetaSnapshot,
    load_catalog,
    load_composition,
)
from tcg_core.data.models.deck import DeckComposition
from tcg_core.data.models.inputs import MetaShare
from tcg_core.exceptions import ValidationError
from tcg_core.tools.analysis.analyzer import DeckAnalyzer
from tcg_core.tools.recommendations import DeckOptimizer

_META_SNAPSHOT = TypeAdapter(dict[str, list[MetaShare]])


def setup_logging() -> None:
    """Configure root logging from settings (the library itself never does)."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(levelname)s:%(name)s:%(message)s",
    )


class EngineContext:
    """Lazy catalog and engine objects for one CLI invocation."""

    def __init__(self, catalog_path: Path, meta_path: Path | None = None) -> None:
        self.catalog_path = catalog_path
        self.meta_path = meta_path
        self._catalog: InMemoryCatalog | None = None
        self._meta: StaticMetaSnapshot | None = None

    @property
    def catalog(self) -> InMemoryCatalog:
        if self._catalog is None:
            self._catalog = _read(self.catalog_path, load_catalog)
        return self._catalog

    @property
    def meta(self) -> StaticMetaSnapshot | None:
        if self.meta_path is not None and self._meta is None:
            shares = _read(
                self.meta_path,
                lambda p: _META_SNAPSHOT.validate_python(json.loads(p.read_text(encoding="utf-8"))),
            )
            self._meta = StaticMetaSnapshot(shares)
        return self._meta

    def analyzer(self) -> DeckAnalyzer:
        return DeckAnalyzer(self.catalog, self.meta)

    def optimizer(self) -> DeckOptimizer:
        return DeckOptimizer(self.catalog, meta_provider=self.meta)

    def load_deck(self, path: Path, format_name: str | None = None) -> tuple[DeckComposition, str]:
        """Read a deck file; an explicit format wins over the file's own."""
        composition, file_format = _read(path, load_composition)
        return composition, format_name or file_format or get_settings().default_format


def _read(path: Path, loader: Any) -> Any:
    """Run a JSON file loader, reporting unreadable files as validation errors."""
    try:
        return loader(path)
    except json.JSONDecodeError as e:
        raise ValidationError(f"{path} is not valid JSON: {e}") from e
    except PydanticValidationError as e:
        raise ValidationError(f"{path} has invalid content: {e.error_count()} error(s)\n{e}") from e
    except ValueError as e:
        raise ValidationError(f"{path} has invalid content: {e}") from e


def output_json(data: Any) -> None:
    """Output data as JSON (plain text, no Rich formatting)."""
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    # Use regular print, not rprint, to avoid ANSI codes in JSON output
    print(json.dumps(data, indent=2, default=str))
