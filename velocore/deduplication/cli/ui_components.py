"""
Rich UI components for the deduplication CLI.

Tables and panels summarising pipeline runs, duplicate pairs, merges and
record completeness.
"""

from typing import Dict, List, Any, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from ...models import ContentType
from ..completeness import completeness_band, completeness_status
from ..core_engine import DuplicateCandidatePair
from ..merge_proposals import MergeResult
from ..pipeline import PipelineResult


class UIComponents:
    """Collection of Rich UI components for the CLI."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize UI components."""
        self.console = console or Console()

    def create_summary_table(self, result: PipelineResult) -> Table:
        """Records and duplicates per content type."""
        table = Table(
            title="Deduplication Summary",
            box=box.ROUNDED,
            show_header=True,
            header_style="bold cyan",
        )

        table.add_column("Content type", style="cyan", no_wrap=True)
        table.add_column("Records", justify="right", style="green")
        table.add_column("Duplicate pairs", justify="right", style="yellow")
        table.add_column("Canonical records", justify="right")

        duplicate_counts = result.duplicate_counts
        for content_type in ContentType:
            records = result.records.get(content_type, [])
            canonical = result.canonical.get(content_type)
            table.add_row(
                content_type.value,
                str(len(records)),
                str(duplicate_counts.get(content_type.value, 0)),
                str(len(canonical)) if canonical is not None and result.mode == "merge" else "-",
            )

        return table

    def create_pairs_table(self, pairs: List[DuplicateCandidatePair]) -> Table:
        """One row per duplicate pair, best matches first."""
        table = Table(
            title=f"Duplicate Pairs ({len(pairs)})",
            box=box.SIMPLE,
            show_header=True,
            header_style="bold magenta",
        )

        table.add_column("Type", style="dim")
        table.add_column("Record A", style="cyan")
        table.add_column("Record B", style="cyan")
        table.add_column("Similarity", justify="right")
        table.add_column("Reason")
        table.add_column("Distance", justify="right")

        for pair in sorted(pairs, key=lambda p: -p.similarity):
            similarity = pair.similarity * 100
            style = "green" if similarity >= 95 else "yellow"
            table.add_row(
                pair.content_type.value,
                pair.record_a.display_name,
                pair.record_b.display_name,
                f"[{style}]{similarity:.1f}%[/{style}]",
                pair.reason,
                f"{pair.distance_km:.2f} km" if pair.distance_km is not None else "-",
            )

        return table

    def create_merge_table(self, merge_results: List[MergeResult]) -> Table:
        """Outcome of every merged cluster."""
        table = Table(
            title="Merges",
            box=box.SIMPLE,
            show_header=True,
            header_style="bold blue",
        )

        table.add_column("Type", style="dim")
        table.add_column("Primary", style="cyan")
        table.add_column("Merged away")
        table.add_column("Conflicts", justify="right")
        table.add_column("Status", justify="center")

        for result in merge_results:
            table.add_row(
                result.content_type.value if result.content_type else "-",
                result.primary_id or "-",
                ", ".join(result.merged_ids),
                str(len(result.conflicts)),
                "[green]✓[/green]" if result.success else "[red]✗[/red]",
            )

        return table

    def create_completeness_table(self, quality: Dict[ContentType, List[Dict[str, Any]]]) -> Table:
        """Completeness bands and publication readiness per content type."""
        table = Table(
            title="Content Completeness",
            box=box.ROUNDED,
            show_header=True,
            header_style="bold cyan",
        )

        table.add_column("Content type", style="cyan")
        table.add_column("Records", justify="right")
        table.add_column("Average", justify="right")
        table.add_column("Excellent", justify="right", style="green")
        table.add_column("Good", justify="right")
        table.add_column("Partial", justify="right", style="yellow")
        table.add_column("Minimal", justify="right", style="red")
        table.add_column("Ready", justify="right")

        for content_type, entries in quality.items():
            scores = [entry["completeness"] for entry in entries]
            bands = [completeness_band(score) for score in scores]
            average = sum(scores) / len(scores) if scores else 0
            table.add_row(
                content_type.value,
                str(len(entries)),
                f"{average:.0f}%",
                str(bands.count("excellent")),
                str(bands.count("good")),
                str(bands.count("partial")),
                str(bands.count("minimal")),
                str(sum(1 for score in scores if completeness_status(score) == "ready")),
            )

        return table

    def create_result_panel(self, result: PipelineResult) -> Panel:
        """Where the run wrote its output."""
        error_count = result.error_statistics.get("total_errors", 0)
        lines = [
            f"[bold]Mode:[/bold] {result.mode}",
            f"[bold]Report:[/bold] {result.report_path}",
        ]
        if result.mode == "merge":
            lines.append(f"[bold]Files written:[/bold] {len(result.written_files)}")
        lines.append(f"[bold]Time:[/bold] {result.processing_time:.2f}s")
        if error_count:
            lines.append(f"[yellow]Errors logged: {error_count} (see log output)[/yellow]")

        return Panel(
            "\n".join(lines),
            title="Run complete",
            border_style="green" if not error_count else "yellow",
        )

    def show_error(self, message: str):
        """Print an error panel."""
        self.console.print(Panel(f"[red]{message}[/red]", title="Error", border_style="red"))
