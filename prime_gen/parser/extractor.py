"""Form markup schema extractor.

Parses an HTML form document and extracts an ordered list of
``FieldDescriptor`` records: one per input-capable element, in document order.
Uses BeautifulSoup's lenient ``html.parser`` backend, so malformed nesting is
tolerated.  No AI calls; see ``prime_gen.parser.remote`` for that backend.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Optional

from bs4 import BeautifulSoup, Tag, UnicodeDammit

from prime_gen.errors import InvalidInputError, NotFoundError

from .models import FieldDescriptor, LegacyMarker, Schema
from .normalizer import FieldNameAllocator


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MARKUP_SUFFIXES = (".html", ".htm")

# Tag -> default raw type for every element that accepts a value.
# ``html.parser`` lowercases tag and attribute names.
_CONTROL_DEFAULT_TYPES: dict[str, str] = {
    "input": "text",
    "select": "select",
    "textarea": "textarea",
    "p-select": "select",
    "p-dropdown": "select",
    "p-multiselect": "multiselect",
    "p-inputnumber": "number",
    "p-datepicker": "date",
    "p-calendar": "date",
    "p-checkbox": "checkbox",
    "p-inputmask": "text",
    "p-password": "password",
}

# ``<input>`` types that do not hold user data.
_NON_VALUE_INPUT_TYPES = frozenset({"hidden", "submit", "button", "reset", "image"})

# Containers that group a label with its control.
_GROUPING_TAGS = frozenset({
    "div", "fieldset", "p", "li", "td", "th", "tr", "section", "span", "form",
})

# Legacy PrimeNG conventions: attribute/tag -> current replacement.
_LEGACY_ATTRIBUTES: dict[str, tuple[str, str]] = {
    "pinputtextarea": ("pInputTextarea", "pTextarea"),
    "pdropdown": ("pDropdown", "p-select"),
    "styleclass": ("styleClass", "class"),
}
_LEGACY_TAGS: dict[str, str] = {
    "p-dropdown": "p-select",
    "p-calendar": "p-datepicker",
}

_MACHINE_NAME_ATTRIBUTES = ("formcontrolname", "name")

UNTITLED = "Untitled"


# ---------------------------------------------------------------------------
# Element selection
# ---------------------------------------------------------------------------

def _is_value_control(tag: Tag) -> bool:
    """True for elements that accept a user-entered value."""
    if tag.name not in _CONTROL_DEFAULT_TYPES:
        return False
    if tag.name == "input":
        input_type = (tag.get("type") or "text").strip().lower()
        return input_type not in _NON_VALUE_INPUT_TYPES
    return True


def _find_controls(soup: BeautifulSoup) -> list[Tag]:
    """All value controls in document order."""
    return soup.find_all(_is_value_control)


def _resolve_raw_type(tag: Tag) -> str:
    """Explicit ``type`` attribute, else the element kind's default, else text."""
    explicit = tag.get("type")
    if isinstance(explicit, str) and explicit.strip():
        return explicit.strip().lower()
    return _CONTROL_DEFAULT_TYPES.get(tag.name, "text")


def _explicit_control_name(tag: Tag) -> Optional[str]:
    for attr in _MACHINE_NAME_ATTRIBUTES:
        value = tag.get(attr)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _legacy_marker(tag: Tag) -> Optional[LegacyMarker]:
    if tag.name in _LEGACY_TAGS:
        return LegacyMarker(attribute=tag.name, replacement=_LEGACY_TAGS[tag.name])
    for attr in tag.attrs:
        if attr in _LEGACY_ATTRIBUTES:
            original, replacement = _LEGACY_ATTRIBUTES[attr]
            return LegacyMarker(attribute=original, replacement=replacement)
    return None


# ---------------------------------------------------------------------------
# Label inference
# ---------------------------------------------------------------------------

LabelStrategy = Callable[[Tag], Optional[str]]


def _clean_text(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    collapsed = " ".join(text.split())
    return collapsed or None


def _label_text(label: Tag) -> Optional[str]:
    """Visible text of a ``<label>``, ignoring any control nested inside it."""
    parts = [
        str(s) for s in label.find_all(string=True)
        if not (s.parent is not None and s.parent.name in ("select", "textarea", "option"))
    ]
    return _clean_text(" ".join(parts))


def label_from_preceding_sibling(tag: Tag) -> Optional[str]:
    """Text of a ``<label>`` immediately before the control."""
    previous = tag.find_previous_sibling()
    if previous is not None and previous.name == "label":
        return _label_text(previous)
    return None


def label_from_grouping_container(tag: Tag) -> Optional[str]:
    """Text of a ``<label>`` inside the nearest grouping ancestor.

    A label whose ``for`` matches the control's ``id`` wins over the first
    label found in the container.  A control wrapped in its own ``<label>``
    uses that label's text.
    """
    container = next(
        (p for p in tag.parents if p.name in _GROUPING_TAGS or p.name == "label"), None
    )
    if container is None:
        return None
    if container.name == "label":
        return _label_text(container)
    labels = container.find_all("label")
    if not labels:
        return None
    element_id = tag.get("id") or tag.get("inputid")
    if element_id:
        for label in labels:
            if label.get("for") == element_id:
                return _label_text(label)
    return _label_text(labels[0])


def label_from_id(tag: Tag) -> Optional[str]:
    value = tag.get("id")
    return _clean_text(value) if isinstance(value, str) else None


def label_from_placeholder(tag: Tag) -> Optional[str]:
    value = tag.get("placeholder")
    return _clean_text(value) if isinstance(value, str) else None


LABEL_STRATEGIES: tuple[LabelStrategy, ...] = (
    label_from_preceding_sibling,
    label_from_grouping_container,
    label_from_id,
    label_from_placeholder,
)


def resolve_label(
    tag: Tag,
    strategies: tuple[LabelStrategy, ...] = LABEL_STRATEGIES,
) -> str:
    """Run *strategies* in order; the first non-blank result is the label."""
    for strategy in strategies:
        text = strategy(tag)
        if text:
            return text
    return UNTITLED


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------

def resolve_markup_path(path: str | Path) -> Path:
    """Return the markup file designated by *path*.

    A directory designates its first HTML file in sorted listing order.

    Raises:
        NotFoundError: If *path* does not exist.
        InvalidInputError: If *path* is neither an HTML file nor a directory
            containing one.
    """
    source = Path(path)
    if not source.exists():
        raise NotFoundError(f"Markup path not found: {source}", resource=str(source))

    if source.is_dir():
        candidates = sorted(
            p for p in source.iterdir()
            if p.is_file() and p.suffix.lower() in MARKUP_SUFFIXES
        )
        if not candidates:
            raise InvalidInputError(
                f"No HTML files found in the directory: {source}", resource=str(source)
            )
        return candidates[0]

    if source.is_file() and source.suffix.lower() in MARKUP_SUFFIXES:
        return source

    raise InvalidInputError(
        f"Expected an HTML file or a directory containing one, got: {source}",
        resource=str(source),
    )


async def read_markup(path: str | Path) -> tuple[Path, str]:
    """Resolve *path* and read the markup without blocking the event loop.

    The encoding is taken from a BOM or ``<meta charset>`` when present and
    guessed otherwise, so Latin-1 or Windows-1252 forms read as well as UTF-8.

    Raises:
        NotFoundError: If *path* does not exist.
        InvalidInputError: If the file cannot be read or decoded.
    """
    markup_file = resolve_markup_path(path)
    try:
        raw = await asyncio.to_thread(markup_file.read_bytes)
    except OSError as exc:
        raise InvalidInputError(
            f"Cannot read markup file: {exc.strerror or exc}", resource=str(markup_file)
        ) from exc

    text = decode_markup(raw)
    if text is None:
        raise InvalidInputError(
            f"Cannot determine the text encoding of {markup_file.name}",
            resource=str(markup_file),
        )
    return markup_file, text


def decode_markup(raw: bytes) -> Optional[str]:
    """Decode HTML bytes, preferring UTF-8 and any declared encoding."""
    dammit = UnicodeDammit(raw, known_definite_encodings=["utf-8"], is_html=True)
    return dammit.unicode_markup


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_markup(html: str, source: str | None = None) -> Schema:
    """Extract the field schema from an HTML string.

    Zero controls is a valid (empty) schema.
    """
    soup = BeautifulSoup(html, "html.parser")
    allocator = FieldNameAllocator()
    fields: list[FieldDescriptor] = []

    for position, tag in enumerate(_find_controls(soup), start=1):
        label = resolve_label(tag)
        fields.append(FieldDescriptor(
            label=label,
            raw_type=_resolve_raw_type(tag),
            control_name=allocator.allocate(_explicit_control_name(tag), label, position),
            legacy_marker=_legacy_marker(tag),
        ))

    return Schema(fields=fields, source=source)


async def extract_schema(path: str | Path) -> Schema:
    """Read the markup at *path* (file or directory) and extract its schema.

    Raises:
        NotFoundError: If the path does not exist.
        InvalidInputError: If the path does not designate an HTML document.
    """
    markup_file, html = await read_markup(path)
    return parse_markup(html, source=str(markup_file))
