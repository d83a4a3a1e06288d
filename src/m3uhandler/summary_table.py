from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:  # pragma: no cover
    from .models import RunSummary


SUCCESS_COLOR = "green"
WARNING_COLOR = "yellow"
ERROR_COLOR = "red"
DIM_COLOR = "dim"

SUCCESS_SYMBOL = "✓"
ERROR_SYMBOL = "✗"
SKIP_SYMBOL = "⊘"
IGNORE_SYMBOL = "○"
DELETE_SYMBOL = "−"


class SummaryTableRenderer:
    """Renders a conversion ``RunSummary`` as a Rich table or as plain text."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    @staticmethod
    def _get_status_color(value: int, *, is_error: bool = False, is_warning: bool = False) -> str:
        if value == 0:
            return DIM_COLOR
        if is_error:
            return ERROR_COLOR
        if is_warning:
            return WARNING_COLOR
        return SUCCESS_COLOR

    @staticmethod
    def _colorize_value_with_symbol(
        value: int,
        symbol: str = SUCCESS_SYMBOL,
        *,
        is_error: bool = False,
        is_warning: bool = False,
    ) -> str:
        """Return ``value`` wrapped in color markup, prefixed by ``symbol`` when non-zero."""
        if value == 0:
            return f"[{DIM_COLOR}]{value}[/{DIM_COLOR}]"
        color = SummaryTableRenderer._get_status_color(value, is_error=is_error, is_warning=is_warning)
        return f"[{color}]{symbol} {value}[/{color}]"

    def render_summary_table(
        self,
        summary: RunSummary,
        *,
        title: str = "Conversion Summary",
        duration: Optional[float] = None,
    ) -> Table:
        table = Table(title=title, show_header=True, header_style="bold")
        table.add_column("Metric", style="cyan", no_wrap=True)
        table.add_column("Count", justify="right")

        if duration is not None:
            table.add_row("Duration", f"{duration:.2f}s")
        table.add_row(
            "Would Write" if summary.dry_run else "Written",
            self._colorize_value_with_symbol(summary.written),
        )
        table.add_row(
            "Skipped (exists)",
            self._colorize_value_with_symbol(summary.skipped, SKIP_SYMBOL, is_warning=True),
        )
        table.add_row(
            "Ignored",
            self._colorize_value_with_symbol(summary.ignored, IGNORE_SYMBOL, is_warning=True),
        )
        table.add_row("Deleted", self._colorize_value_with_symbol(summary.deleted, DELETE_SYMBOL))
        if summary.delete_failed:
            table.add_row(
                "Delete Failures",
                self._colorize_value_with_symbol(summary.delete_failed, ERROR_SYMBOL, is_error=True),
            )
        if summary.dry_run:
            table.add_row("Mode", f"[{WARNING_COLOR}]dry-run[/{WARNING_COLOR}]")
        return table

    def print_summary_table(self, summary: RunSummary, *, duration: Optional[float] = None) -> None:
        self.console.print()
        self.console.print(self.render_summary_table(summary, duration=duration))

    @staticmethod
    def render_summary_plain_text(summary: RunSummary) -> str:
        """Render a summary without Rich markup, for logs and non-terminal output."""
        written_label = "Would Write" if summary.dry_run else "Written"
        lines = [
            "",
            "Conversion Summary",
            "------------------",
            f"    {written_label:<17}: {summary.written}",
            f"    {'Skipped (exists)':<17}: {summary.skipped}",
            f"    {'Ignored':<17}: {summary.ignored}",
            f"    {'Deleted':<17}: {summary.deleted}",
        ]
        if summary.delete_failed:
            lines.append(f"    {'Delete Failures':<17}: {summary.delete_failed}")
        return "\n".join(lines)
