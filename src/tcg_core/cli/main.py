"""tcg CLI - analyze, optimize, compare and validate decks from JSON files."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Annotated, cast

import typer
from rich.console import Console
from rich.markup import escape

from tcg_core.cli.context import EngineContext, output_json, setup_logging
from tcg_core.cli.display import (
    render_analysis,
    render_comparison,
    render_optimization,
    render_validation,
)
from tcg_core.data.models.inputs import Constraint
from tcg_core.data.models.types import OptimizationGoal
from tcg_core.exceptions import TCGError
from tcg_core.tools.analysis.matchup import compare as compare_results
from tcg_core.tools.recommendations.weights import GOAL_WEIGHTS

console = Console()

# =============================================================================
# Main CLI app
# =============================================================================

cli = typer.Typer(
    name="tcg",
    help="tcg - deck analysis and optimization for trading card games.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

CatalogArg = Annotated[
    Path, typer.Argument(help="Card catalog JSON file", exists=True, dir_okay=False)
]
DeckArg = Annotated[Path, typer.Argument(help="Deck JSON file", exists=True, dir_okay=False)]
FormatOpt = Annotated[
    str | None, typer.Option("-f", "--format", help="Format (default: deck file, then settings)")
]
MetaOpt = Annotated[
    Path | None,
    typer.Option("--meta", help="Meta snapshot JSON: {format: [archetype shares]}", exists=True),
]
JsonOpt = Annotated[bool, typer.Option("--json", help="Output JSON")]


@cli.callback()
def _configure() -> None:
    setup_logging()


def _fail(error: TCGError) -> typer.Exit:
    console.print(f"[red]Error:[/] {escape(error.message)}")
    for issue in getattr(error, "issues", []):
        console.print(f"  • {escape(issue.details or issue.issue)}")
    return typer.Exit(code=1)


# =============================================================================
# Commands
# =============================================================================


@cli.command()
def analyze(
    catalog: CatalogArg,
    deck_file: DeckArg,
    format_name: FormatOpt = None,
    meta: MetaOpt = None,
    as_json: JsonOpt = False,
) -> None:
    """Score a deck, classify its archetype and report synergy and speed."""
    ctx = EngineContext(catalog, meta)
    try:
        composition, fmt = ctx.load_deck(deck_file, format_name)
        result = ctx.analyzer().analyze(composition, fmt)
    except TCGError as e:
        raise _fail(e) from e

    if as_json:
        output_json(result)
    else:
        render_analysis(console, result)


@cli.command()
def validate(
    catalog: CatalogArg,
    deck_file: DeckArg,
    format_name: FormatOpt = None,
    as_json: JsonOpt = False,
) -> None:
    """Check deck size, copy limits and legality, listing every issue."""
    ctx = EngineContext(catalog)
    try:
        composition, fmt = ctx.load_deck(deck_file, format_name)
        report = ctx.analyzer().validate(composition, fmt)
    except TCGError as e:
        raise _fail(e) from e

    if as_json:
        output_json(report)
    else:
        render_validation(console, report)
    if not report.is_valid:
        raise typer.Exit(code=1)


@cli.command()
def optimize(
    catalog: CatalogArg,
    deck_file: DeckArg,
    goal: Annotated[
        str, typer.Option("-g", "--goal", help=f"One of: {', '.join(GOAL_WEIGHTS)}")
    ] = "consistency",
    budget: Annotated[
        float | None, typer.Option("--budget", help="Maximum total cost of changes", min=0)
    ] = None,
    max_changes: Annotated[
        int | None, typer.Option("--max-changes", help="Cap on substitutions", min=0)
    ] = None,
    include: Annotated[
        list[str] | None, typer.Option("--include", help="Card id that must stay in the deck")
    ] = None,
    exclude: Annotated[
        list[str] | None, typer.Option("--exclude", help="Card id that must leave the deck")
    ] = None,
    format_name: FormatOpt = None,
    meta: MetaOpt = None,
    as_json: JsonOpt = False,
) -> None:
    """Improve a deck with explained single-card substitutions."""
    if goal not in GOAL_WEIGHTS:
        supported = ", ".join(GOAL_WEIGHTS)
        console.print(f"[red]Error:[/] Unknown goal '{goal}'. Use one of: {supported}")
        raise typer.Exit(code=1)

    ctx = EngineContext(catalog, meta)
    try:
        composition, fmt = ctx.load_deck(deck_file, format_name)
        constraints = Constraint(
            format=fmt,
            max_budget=Decimal(str(budget)) if budget is not None else None,
            acceptable_changes=max_changes,
            must_include_card_ids=include or [],
            must_exclude_card_ids=exclude or [],
        )
        result = ctx.optimizer().optimize(composition, constraints, cast(OptimizationGoal, goal))
    except TCGError as e:
        raise _fail(e) from e

    if as_json:
        output_json(result)
    else:
        render_optimization(console, result)


@cli.command()
def compare(
    catalog: CatalogArg,
    deck_a: Annotated[Path, typer.Argument(help="First deck JSON file", exists=True)],
    deck_b: Annotated[Path, typer.Argument(help="Second deck JSON file", exists=True)],
    format_name: FormatOpt = None,
    meta: MetaOpt = None,
    as_json: JsonOpt = False,
) -> None:
    """Estimate how deck A fares against deck B."""
    ctx = EngineContext(catalog, meta)
    try:
        analyzer = ctx.analyzer()
        composition_a, fmt_a = ctx.load_deck(deck_a, format_name)
        composition_b, fmt_b = ctx.load_deck(deck_b, format_name)
        result = compare_results(
            analyzer.analyze(composition_a, fmt_a), analyzer.analyze(composition_b, fmt_b)
        )
    except TCGError as e:
        raise _fail(e) from e

    if as_json:
        output_json(result)
    else:
        render_comparison(console, result)


def main() -> None:
    """Run the tcg CLI."""
    cli()


if __name__ == "__main__":
    main()
