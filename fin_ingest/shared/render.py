"""Output rendering helpers shared by the CLIs."""

from __future__ import annotations

import json
import sys
from collections.abc import Sequence
from typing import IO, Any

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text


def render_table(
    columns: Sequence[str],
    rows: Sequence[Sequence[object]],
    *,
    title: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Print rows as a Rich table on stdout (or ``stream``)."""
    output_stream = stream or sys.stdout
    console = Console(file=output_stream, highlight=False, force_terminal=False)
    table = Table(box=box.SIMPLE_HEAVY, show_header=True, header_style="bold", title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*[Text("" if cell is None else str(cell)) for cell in row])
    console.print(table)


def write_json(payload: Any, *, stream: IO[str] | None = None) -> None:
    output_stream = stream or sys.stdout
    json.dump(payload, output_stream, indent=2, default=str)
    output_stream.write("\n")
