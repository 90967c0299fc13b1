"""Rich rendering of engine results."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from tcg_core.data.models.responses import (
    AnalysisResult,
    ComparisonResult,
    OptimizationResult,
    ScoreVector,
    ValidationReport,
)

SCORE_ORDER = (
    "overall",
    "consistency",
    "power",
    "speed",
    "versatility",
    "meta_relevance",
    "innovation",
    "difficulty",
)


def _score_style(value: int) -> str:
    if value >= 75:
        return "green"
    if value <= 40:
        return "red"
    return "yellow"


def score_table(scores: ScoreVector, title: str = "Scores") -> Table:
    table = Table(title=title)
    table.add_column("Score", style="cyan")
    table.add_column("Value", justify="right")
    values = scores.model_dump()
    for name in SCORE_ORDER:
        value = values[name]
        table.add_row(name.replace("_", " "), f"[{_score_style(value)}]{value}[/]")
    return table


def render_validation(console: Console, report: ValidationReport) -> None:
    status = "[green]VALID[/]" if report.is_valid else "[red]INVALID[/]"
    console.print(f"\n[bold]Deck Validation:[/] {status}")
    console.print(f"Format: {report.format}")
    console.print(f"Cards: {report.total_cards}")

    if report.issues:
        console.print("\n[red]Issues:[/]")
        for issue in report.issues:
            label = f"{issue.card_id}: " if issue.card_id else ""
            console.print(f"  • {label}{issue.issue}")
            if issue.details:
                console.print(f"    [dim]{issue.details}[/dim]")

    if report.warnings:
        console.print("\n[yellow]Warnings:[/]")
        for warning in report.warnings:
            console.print(f"  • {warning}")


def render_analysis(console: Console, result: AnalysisResult) -> None:
    archetype = result.archetype
    console.print(f"\n[bold]Deck Analysis[/] ({result.format})\n")
    secondary = f" / {archetype.secondary_archetype}" if archetype.secondary_archetype else ""
    console.print(
        f"Archetype: [cyan]{archetype.primary_archetype}{secondary}[/] "
        f"(confidence {archetype.confidence})"
    )
    console.print(f"[dim]{archetype.playstyle}[/dim]")
    console.print(score_table(result.scores))

    speed = result.speed
    console.print(
        f"Speed: [cyan]{speed.overall_speed}[/], setup turn {speed.average_setup_turn:.1f}, "
        f"{speed.prize_race_speed.damage_output_per_turn} damage per turn"
    )
    console.print(f"Synergy: [cyan]{result.synergy.overall_synergy}[/]")

    info = result.deck_info
    console.print(
        f"Cards: {info.creature_count} creatures, {info.support_count} supports, "
        f"{info.resource_count} resources; mulligan chance {info.mulligan_probability:.1%}"
    )

    if result.breakdown.strengths:
        console.print("\n[green]Strengths:[/]")
        for line in result.breakdown.strengths:
            console.print(f"  • {line}")
    if result.breakdown.weaknesses:
        console.print("\n[red]Weaknesses:[/]")
        for line in result.breakdown.weaknesses:
            console.print(f"  • {line}")
    if result.warnings:
        console.print("\n[yellow]Warnings:[/]")
        for warning in result.warnings:
            console.print(f"  • {warning}")


def render_optimization(console: Console, result: OptimizationResult) -> None:
    console.print(f"\n[bold]Optimization[/] (goal: {result.goal})\n")
    console.print(result.explanation)

    if result.changes:
        table = Table(title="Changes")
        table.add_column("Action")
        table.add_column("Card", style="cyan")
        table.add_column("Replaces")
        table.add_column("Qty", justify="right")
        table.add_column("Cost", justify="right")
        table.add_column("Reason")
        for change in result.changes:
            action = f"[bold]{change.action}[/]" if change.required else change.action
            table.add_row(
                action,
                change.card_id,
                change.replaces_card_id or "",
                str(change.quantity),
                f"{change.cost_delta:.2f}",
                change.reasoning_text,
            )
        console.print(table)

    if result.score_improvement:
        moved = ", ".join(f"{k} {v:+d}" for k, v in result.score_improvement.items())
        console.print(f"Score change: [cyan]{moved}[/]")

    if result.unsatisfied_constraints:
        console.print("\n[red]Unsatisfied constraints:[/]")
        for line in result.unsatisfied_constraints:
            console.print(f"  • {line}")

    if result.want_list:
        console.print("\n[bold]Want list:[/]")
        for item in result.want_list:
            console.print(f"  • {item.card_id}: {item.reasoning_text}")


def render_comparison(console: Console, result: ComparisonResult) -> None:
    console.print("\n[bold]Matchup[/]\n")
    table = Table(title="Category winners")
    table.add_column("Category", style="cyan")
    table.add_column("Winner", justify="center")
    for category, winner in result.category_winners.items():
        table.add_row(category.replace("_", " "), winner.upper())
    console.print(table)
    console.print(
        f"Overall: [bold]{result.overall_winner.upper()}[/], "
        f"deck A win rate [cyan]{result.win_rate:.1f}%[/]"
    )
    console.print(f"\n{result.strategy}")
    if result.key_factors:
        console.print("\n[bold]Key factors:[/]")
        for factor in result.key_factors:
            console.print(f"  • {factor}")
    if result.recommendations:
        console.print("\n[bold]Recommendations:[/]")
        for line in result.recommendations:
            console.print(f"  • {line}")
