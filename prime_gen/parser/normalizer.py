"""Field-name normalisation.

Turns human labels ("First Name", "e-mail address", "VAT_no") into camel-case
identifiers that are safe to use as form control keys and model properties.
"""

from __future__ import annotations

import re

_WORD_SPLIT = re.compile(r"[\s\-_]+")
_CASE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_VALID_IDENTIFIER = re.compile(r"^[a-zA-Z][a-zA-Z0-9]*$")

PLACEHOLDER_PREFIX = "field"

# Keys every generated record already carries.
RESERVED_NAMES = frozenset({"id"})


def split_words(label: str) -> list[str]:
    """Split *label* on separators and lower-to-upper case transitions."""
    words: list[str] = []
    for chunk in _WORD_SPLIT.split(label.strip()):
        for part in _CASE_BOUNDARY.split(chunk):
            cleaned = _NON_ALNUM.sub("", part)
            if cleaned:
                words.append(cleaned)
    return words


def is_valid_identifier(name: str) -> bool:
    return bool(_VALID_IDENTIFIER.match(name))


def normalize_field_name(label: str, position: int = 1) -> str:
    """Convert a human label into a camel-case identifier.

    Examples::

        normalize_field_name("First Name")    -> "firstName"
        normalize_field_name("emailAddress")  -> "emailAddress"
        normalize_field_name("2nd line", 4)   -> "field2ndLine4"
        normalize_field_name("???", 3)        -> "field3"

    Args:
        label: Free text taken from the markup.
        position: 1-based position of the field in its schema, used for the
            placeholder name when nothing usable survives normalisation and
            as the suffix of a digit-leading name.
    """
    words = split_words(label)
    if not words:
        return f"{PLACEHOLDER_PREFIX}{position}"

    first, rest = words[0], words[1:]
    name = first.lower() + "".join(w[0].upper() + w[1:].lower() for w in rest)
    if name[0].isdigit():
        name = f"{PLACEHOLDER_PREFIX}{name[0].upper()}{name[1:]}{position}"
    return name


class FieldNameAllocator:
    """Hands out control names that are unique within one schema.

    Repeated names are suffixed with an incrementing counter: ``name``,
    ``name2``, ``name3`` ...  Reserved record keys such as ``id`` count as
    taken from the start.  A fresh allocator is used per extraction run.
    """

    def __init__(self) -> None:
        self._used: set[str] = set(RESERVED_NAMES)

    def allocate(self, candidate: str | None, label: str, position: int) -> str:
        """Return a unique identifier for the field at *position*.

        *candidate* is an explicit machine name from the markup.  It is used
        verbatim when it is already a valid identifier, normalised when it is
        not, and ignored when blank (the label is normalised instead).
        """
        if candidate and candidate.strip():
            candidate = candidate.strip()
            base = candidate if is_valid_identifier(candidate) else normalize_field_name(candidate, position)
        else:
            base = normalize_field_name(label, position)

        name = base
        counter = 2
        while name in self._used:
            name = f"{base}{counter}"
            counter += 1
        self._used.add(name)
        return name

    @property
    def used(self) -> frozenset[str]:
        return frozenset(self._used - RESERVED_NAMES)
