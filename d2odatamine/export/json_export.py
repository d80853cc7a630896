"""Export decoded objects as JSON."""
from __future__ import annotations

import json
from typing import Any


def export_json(objects: list[dict[str, Any]], ids: list[int] | None = None) -> str:
    """Export objects as a JSON string.

    With `ids`, the output is an object keyed by id instead of a list.
    """
    if ids is not None:
        data: Any = {str(i): obj for i, obj in zip(ids, objects)}
    else:
        data = objects
    return json.dumps(data, indent=2, ensure_ascii=False)
