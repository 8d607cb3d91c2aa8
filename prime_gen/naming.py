"""Module name derivation.

One input token (``orderEntry``, ``order entry``, ``Order_Entry`` ...) is turned
into the four spellings every generated artifact refers to.  All four are pure
functions of the token so regenerating a module always reproduces them.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict

_SEPARATOR_PATTERN = re.compile(r"[^A-Za-z0-9]+")
_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


class ModuleName(BaseModel):
    """The four agreeing representations of a module's name."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    slug: str
    type_name: str
    title: str


def to_identifier(token: str) -> str:
    """Collapse arbitrary text into a camel-case identifier.

    The first word keeps its inner casing but starts lower-case; every later
    word starts upper-case.  A word written entirely in capitals is treated
    as a plain word, so ``"ORDER entry"``, ``"order entry"`` and
    ``"orderEntry"`` all agree.
    """
    words = [
        w.lower() if w.isupper() else w
        for w in _SEPARATOR_PATTERN.split(token.strip()) if w
    ]
    if not words:
        return ""
    first, rest = words[0], words[1:]
    head = first[0].lower() + first[1:]
    return head + "".join(w[0].upper() + w[1:] for w in rest)


def to_slug(identifier: str) -> str:
    """``orderEntry`` -> ``order-entry``."""
    return _CASE_BOUNDARY.sub(r"\1-\2", identifier).lower()


def to_type_name(identifier: str) -> str:
    """``orderEntry`` -> ``OrderEntry``."""
    if not identifier:
        return ""
    return identifier[0].upper() + identifier[1:]


def to_title(identifier: str) -> str:
    """``orderEntry`` -> ``Order Entry``."""
    spaced = _CASE_BOUNDARY.sub(r"\1 \2", identifier)
    return " ".join(w[0].upper() + w[1:].lower() for w in spaced.split(" ") if w)


def derive_names(token: str) -> ModuleName:
    """Derive identifier, slug, type name and title from one token.

    An empty or separator-only token yields empty strings; callers are
    expected to reject it before generating anything.
    """
    identifier = to_identifier(token)
    return ModuleName(
        identifier=identifier,
        slug=to_slug(identifier),
        type_name=to_type_name(identifier),
        title=to_title(identifier),
    )
