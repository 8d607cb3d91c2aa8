"""Pydantic v2 models for the markup schema extractor.

Every field discovered in a form document is validated into a closed
``FieldDescriptor`` at the extraction boundary, so the template generator only
ever sees well-formed, identifier-safe records.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

IDENTIFIER_PATTERN = r"^[a-zA-Z][a-zA-Z0-9]*$"

# ---------------------------------------------------------------------------
# Type vocabularies
# ---------------------------------------------------------------------------

NUMERIC_TYPES = frozenset({
    "number", "range", "integer", "int", "float", "decimal", "currency",
})
BOOLEAN_TYPES = frozenset({"checkbox", "switch", "toggle", "boolean", "bool"})
SELECT_TYPES = frozenset({
    "select", "select-one", "select-multiple", "dropdown", "multiselect",
})
TEXTAREA_TYPES = frozenset({"textarea"})

# Types a plain ``<input type=...>`` can render natively.
HTML_INPUT_TYPES = frozenset({
    "text", "email", "password", "number", "tel", "url", "date",
    "datetime-local", "time", "month", "week", "color", "search", "range",
})


class LegacyMarker(BaseModel):
    """Provenance flag for an element that used an older PrimeNG convention."""

    model_config = ConfigDict(frozen=True)

    attribute: str = Field(..., description="Legacy attribute or tag, e.g. 'pDropdown'")
    replacement: str = Field(default="", description="Current equivalent, e.g. 'p-select'")


class FieldDescriptor(BaseModel):
    """One input-capable element discovered in a form document."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(default="Untitled", min_length=1, description="Human-readable label")
    raw_type: str = Field(default="text", min_length=1, description="Element kind / input type")
    control_name: str = Field(
        ..., pattern=IDENTIFIER_PATTERN, description="Identifier-safe form control key"
    )
    legacy_marker: Optional[LegacyMarker] = Field(
        default=None, description="Set when a legacy styling attribute was present"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def value_kind(self) -> str:
        """``number``, ``boolean`` or ``text``; drives placeholders and model types."""
        kind = self.raw_type.lower()
        if kind in NUMERIC_TYPES:
            return "number"
        if kind in BOOLEAN_TYPES:
            return "boolean"
        return "text"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def widget(self) -> str:
        """Which form control the form view renders for this field."""
        kind = self.raw_type.lower()
        if kind in SELECT_TYPES:
            return "select"
        if kind in TEXTAREA_TYPES:
            return "textarea"
        if kind in BOOLEAN_TYPES:
            return "checkbox"
        return "input"

    @property
    def input_type(self) -> str:
        """The ``type`` attribute for ``<input>`` widgets."""
        kind = self.raw_type.lower()
        return kind if kind in HTML_INPUT_TYPES else "text"

    @property
    def ts_type(self) -> str:
        """TypeScript type of this field in the generated model interface."""
        return {"number": "number", "boolean": "boolean"}.get(self.value_kind, "string")


class Schema(BaseModel):
    """Ordered field list extracted from one markup document.

    Order is document order and is carried unchanged into the model, the
    form view and the table view.
    """

    model_config = ConfigDict(frozen=True)

    fields: list[FieldDescriptor] = Field(default_factory=list)
    source: Optional[str] = Field(default=None, description="Path of the parsed document")

    @property
    def control_names(self) -> list[str]:
        return [f.control_name for f in self.fields]

    @property
    def labels(self) -> list[str]:
        return [f.label for f in self.fields]
