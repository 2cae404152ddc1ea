from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from dataflow_jobs.pipeline import ExportResult


def render_summary(result: ExportResult, console: Optional[Console] = None) -> Table:
    """
    Render the per-split outcome of an export as a rich table.

    Returns the table so callers (and tests) can inspect what was printed.
    """
    console = console or Console()
    total = result.total_rows

    duration = result.profile.get("duration_seconds")
    peak_rss = result.profile.get("peak_rss_bytes")
    caption_parts = [f"{total:,} rows"]
    if duration is not None:
        caption_parts.append(f"{duration:.1f}s")
    if peak_rss:
        caption_parts.append(f"peak {peak_rss / (1024 * 1024):.1f} MB")

    table = Table(
        title="TFRecord Export",
        box=box.ROUNDED,
        caption=" │ ".join(caption_parts),
    )
    table.add_column("Split", style="cyan", no_wrap=True)
    table.add_column("Records", justify="right", style="magenta")
    table.add_column("Share", justify="right", style="green")
    table.add_column("Directory", style="yellow")

    for label, count in result.counts.items():
        share = f"{count / total:.1%}" if total else "-"
        table.add_row(label, f"{count:,}", share, result.directories.get(label, ""))

    console.print(table)
    return table


__all__ = ["render_summary"]
