"""Deterministic placeholder data for generated table views.

Generated modules have no backing store, so the table controller is seeded
with fabricated rows and ``addItem()`` invents a record from a running
``nextId``.  Both follow one policy keyed on field type:

* number  -> ``row * 10 + field_index``
* boolean -> ``row % 2 == 0``
* text    -> ``"<controlName>_val<row>"``

The numbers carry no meaning; they only need to be stable across runs.
"""

from __future__ import annotations

import json
from typing import Any

from prime_gen.parser.models import FieldDescriptor


def placeholder_value(field: FieldDescriptor, field_index: int, row: int) -> Any:
    """Placeholder for *field* (0-based *field_index*) in 1-based *row*."""
    if field.value_kind == "number":
        return row * 10 + field_index
    if field.value_kind == "boolean":
        return row % 2 == 0
    return f"{field.control_name}_val{row}"


def build_sample_rows(fields: list[FieldDescriptor], count: int) -> list[dict[str, Any]]:
    """Fabricate *count* rows with an ``id`` plus one value per field."""
    rows: list[dict[str, Any]] = []
    for row in range(1, count + 1):
        item: dict[str, Any] = {"id": row}
        for index, field in enumerate(fields):
            item[field.control_name] = placeholder_value(field, index, row)
        rows.append(item)
    return rows


def sample_rows_literal(fields: list[FieldDescriptor], count: int) -> str:
    """The sample rows as a TypeScript array literal (JSON is valid TS)."""
    return json.dumps(build_sample_rows(fields, count), indent=2, ensure_ascii=False)


def add_item_expression(field: FieldDescriptor, field_index: int) -> str:
    """TypeScript expression for *field* inside ``addItem()``, keyed on ``nextId``."""
    if field.value_kind == "number":
        return f"nextId * 10 + {field_index}"
    if field.value_kind == "boolean":
        return "nextId % 2 === 0"
    return f"`{field.control_name}_val${{nextId}}`"


def form_default_literal(field: FieldDescriptor) -> str:
    """Initial ``FormControl`` value: empty string, ``null`` or ``false``."""
    if field.value_kind == "number":
        return "null"
    if field.value_kind == "boolean":
        return "false"
    return "''"
