from __future__ import annotations

import io
import json
from decimal import Decimal

from fin_ingest.shared.render import render_table, write_json


def test_render_table_prints_cells_verbatim() -> None:
    buffer = io.StringIO()
    render_table(("Row", "Description"), [(1, "[bold]Coffee[/bold]"), (2, None)], stream=buffer)
    output = buffer.getvalue()
    assert "Description" in output
    assert "[bold]Coffee[/bold]" in output
    assert "None" not in output


def test_write_json_serializes_decimals_as_strings() -> None:
    buffer = io.StringIO()
    write_json({"amount": Decimal("-4.50")}, stream=buffer)
    assert json.loads(buffer.getvalue()) == {"amount": "-4.50"}
