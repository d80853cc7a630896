"""Export decoded objects as CSV."""
from __future__ import annotations

import csv
import io
import json
from typing import Any


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return value


def export_csv(objects: list[dict[str, Any]]) -> str:
    """Export objects as a CSV string, one row per object.

    Columns are the top-level field names in first-seen order. Vectors and
    nested objects are written as compact JSON.
    """
    output = io.StringIO()
    writer = csv.writer(output)

    columns: dict[str, None] = {}
    for obj in objects:
        for name in obj:
            columns.setdefault(name)

    # Header
    writer.writerow(list(columns))

    for obj in objects:
        writer.writerow([_cell(obj.get(name)) for name in columns])

    return output.getvalue()
