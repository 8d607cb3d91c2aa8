"""Idempotent registration of a module in the shared ``apps.routes.ts``.

The registry is parsed with tree-sitter (TypeScript grammar) to find the route
array and its elements.  A new entry is spliced in as text right after the
last element, so every other byte of the file (comments, blank lines, quote
style) survives the edit.  The result is re-parsed before it is written.

Quick usage::

    from prime_gen.registry import RegistryEntry, merge_registration

    entry = RegistryEntry.from_names(names)
    result = merge_registration("src/app/apps/apps.routes.ts", entry)
"""

from __future__ import annotations

import re
import textwrap
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import tree_sitter_typescript
from pydantic import BaseModel
from tree_sitter import Language, Node, Parser

from prime_gen.errors import RegistryMalformedError, RegistryNotFoundError
from prime_gen.naming import ModuleName
from prime_gen.scaffolder.templates import TemplateRenderer
from prime_gen.utils import file_lock, print_warning, write_text_atomic

_TS_LANGUAGE = Language(tree_sitter_typescript.language_typescript())

_QUOTED_PATTERN = re.compile(r"""^(['"`])(.*)\1$""", re.DOTALL)

_INDENT_UNIT = "  "


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class RegistryEntry(BaseModel):
    """One lazily loaded module in the route registry."""

    path: str
    breadcrumb_title: str
    symbol_reference: str
    import_alias: str = "@/apps"

    @classmethod
    def from_names(cls, names: ModuleName, import_alias: str = "@/apps") -> "RegistryEntry":
        return cls(
            path=names.slug,
            breadcrumb_title=names.title,
            symbol_reference=names.identifier,
            import_alias=import_alias.rstrip("/"),
        )


class MergeResult(str, Enum):
    INSERTED = "inserted"
    ALREADY_EXISTS = "already_exists"


@dataclass
class MergePlan:
    """The outcome of a merge, computed without touching the file."""

    registry_path: Path
    entry: RegistryEntry
    result: MergeResult
    original: bytes
    updated: Optional[bytes] = None
    element_count: int = 0


# ---------------------------------------------------------------------------
# AST helpers
# ---------------------------------------------------------------------------


def _node_text(node: Node) -> str:
    """``node.text`` is ``bytes`` in tree-sitter 0.25."""
    return node.text.decode("utf-8")


def _unquote(text: str) -> str:
    match = _QUOTED_PATTERN.match(text.strip())
    return match.group(2) if match else text.strip()


def _iter_nodes(root: Node):
    """Yield every node under *root* in document order."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def find_route_array(root: Node) -> Node:
    """Locate the route collection of the registry.

    Preference order: the array initialiser of a declarator typed as
    ``Routes``, then the first array-valued declarator, then the first array
    literal anywhere in the file.

    Raises:
        RegistryMalformedError: If the file holds no array literal at all.
    """
    first_declared: Optional[Node] = None
    first_array: Optional[Node] = None

    for node in _iter_nodes(root):
        if node.type == "array" and first_array is None:
            first_array = node
        if node.type != "variable_declarator":
            continue
        value = node.child_by_field_name("value")
        if value is None or value.type != "array":
            continue
        annotation = node.child_by_field_name("type")
        if annotation is not None and "Routes" in _node_text(annotation):
            return value
        if first_declared is None:
            first_declared = value

    array = first_declared or first_array
    if array is None:
        raise RegistryMalformedError("Route registry contains no route array")
    return array


def array_elements(array: Node) -> list[Node]:
    """Elements of *array*, without interleaved comments."""
    return [child for child in array.named_children if child.type != "comment"]


def declared_path(element: Node) -> Optional[str]:
    """The ``path`` property of an object element, if it is a literal."""
    if element.type != "object":
        return None
    for pair in element.named_children:
        if pair.type != "pair":
            continue
        key = pair.child_by_field_name("key")
        value = pair.child_by_field_name("value")
        if key is None or value is None:
            continue
        if _unquote(_node_text(key)) == "path":
            return _unquote(_node_text(value))
    return None


# ---------------------------------------------------------------------------
# RouteRegistry
# ---------------------------------------------------------------------------


class RouteRegistry:
    """Plans and applies the insertion of a ``RegistryEntry``.

    ``plan()`` reads and validates the registry and computes the new text in
    memory; ``apply()`` writes it.  The pipeline plans before committing any
    artifact so a malformed registry fails the run early.
    """

    def __init__(
        self,
        registry_path: str | Path,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.registry_path = Path(registry_path)
        self.renderer = renderer or TemplateRenderer()
        self._parser = Parser(_TS_LANGUAGE)

    # -- Public API --------------------------------------------------------

    def read(self) -> bytes:
        """Raw registry bytes, checked to be UTF-8 text.

        Raises:
            RegistryNotFoundError: If the file is missing or unreadable.
            RegistryMalformedError: If the file is not UTF-8.
        """
        if not self.registry_path.is_file():
            raise RegistryNotFoundError(
                f"Route registry not found: {self.registry_path}",
                resource=str(self.registry_path),
            )
        try:
            source = self.registry_path.read_bytes()
        except OSError as exc:
            raise RegistryNotFoundError(
                f"Route registry cannot be read: {exc.strerror or exc}",
                resource=str(self.registry_path),
            ) from exc
        try:
            source.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RegistryMalformedError(
                f"Route registry is not UTF-8 text (byte {exc.start})",
                resource=str(self.registry_path),
            ) from exc
        return source

    def registered_paths(self, source: Optional[bytes] = None) -> list[str]:
        """``path`` values of every object entry, in file order."""
        source = self.read() if source is None else source
        array = find_route_array(self._parser.parse(source).root_node)
        return [p for p in (declared_path(e) for e in array_elements(array)) if p is not None]

    def plan(self, entry: RegistryEntry) -> MergePlan:
        """Compute the merge of *entry* without writing anything.

        Raises:
            RegistryNotFoundError: If the registry file does not exist.
            RegistryMalformedError: If no route array can be found, or the
                merged text does not parse to one more element.
        """
        source = self.read()
        tree = self._parser.parse(source)
        if tree.root_node.has_error:
            print_warning(
                f"Route registry {self.registry_path} has syntax errors; "
                f"merging into the best-effort parse"
            )

        try:
            array = find_route_array(tree.root_node)
        except RegistryMalformedError as exc:
            exc.resource = str(self.registry_path)
            raise

        elements = array_elements(array)
        if any(declared_path(e) == entry.path for e in elements):
            return MergePlan(
                registry_path=self.registry_path,
                entry=entry,
                result=MergeResult.ALREADY_EXISTS,
                original=source,
                element_count=len(elements),
            )

        updated = self._splice(source, array, elements, self._render_entry(entry))
        self._verify(updated, len(elements) + 1, entry)
        return MergePlan(
            registry_path=self.registry_path,
            entry=entry,
            result=MergeResult.INSERTED,
            original=source,
            updated=updated,
            element_count=len(elements) + 1,
        )

    def apply(self, plan: MergePlan) -> MergeResult:
        """Write a planned merge.  ``ALREADY_EXISTS`` plans leave the file as is.

        The plan is recomputed if the file changed after it was planned.
        """
        if self.read() != plan.original:
            plan = self.plan(plan.entry)
        if plan.result is MergeResult.INSERTED and plan.updated is not None:
            write_text_atomic(self.registry_path, plan.updated.decode("utf-8"))
        return plan.result

    def merge(self, entry: RegistryEntry) -> MergeResult:
        return self.apply(self.plan(entry))

    # -- Internals ---------------------------------------------------------

    def _render_entry(self, entry: RegistryEntry) -> str:
        return self.renderer.render("registry_entry.ts.j2", {"entry": entry}).strip()

    def _verify(self, updated: bytes, expected: int, entry: RegistryEntry) -> None:
        array = find_route_array(self._parser.parse(updated).root_node)
        elements = array_elements(array)
        if len(elements) != expected or declared_path(elements[-1]) != entry.path:
            raise RegistryMalformedError(
                f"Merged route registry did not parse to {expected} entries",
                resource=str(self.registry_path),
            )

    @staticmethod
    def _splice(source: bytes, array: Node, elements: list[Node], entry_text: str) -> bytes:
        """Insert *entry_text* as the new last element of *array*.

        Matches the indentation of the current last element and keeps the
        array's trailing-comma style.  Returns the new file content.
        """
        newline = b"\r\n" if b"\r\n" in source else b"\n"
        close = array.end_byte - 1
        array_line = source.rfind(b"\n", 0, array.start_byte) + 1
        base_indent = source[array_line:array.start_byte]
        base_indent = base_indent[: len(base_indent) - len(base_indent.lstrip())]
        close_line = source.rfind(b"\n", 0, close) + 1
        close_on_own_line = close_line > array.start_byte and not source[close_line:close].strip()

        last = elements[-1] if elements else None
        indent = base_indent + _INDENT_UNIT.encode("ascii")
        trailing_comma: Optional[Node] = None
        if last is not None:
            last_line = source.rfind(b"\n", 0, last.start_byte) + 1
            if last_line > array.start_byte and not source[last_line:last.start_byte].strip():
                indent = source[last_line:last.start_byte]
            following = last.next_sibling
            if following is not None and following.type == ",":
                trailing_comma = following

        block = textwrap.indent(entry_text, indent.decode("utf-8")).encode("utf-8")
        block = block.replace(b"\n", newline)

        splices: list[tuple[int, bytes]]
        if close_on_own_line:
            if last is None:
                splices = [(close_line, block + newline)]
            elif trailing_comma is not None:
                splices = [(close_line, block + b"," + newline)]
            else:
                splices = [(last.end_byte, b","), (close_line, block + newline)]
        elif last is None:
            splices = [(close, newline + block + newline + base_indent)]
        elif trailing_comma is not None:
            splices = [(trailing_comma.end_byte, newline + block + b",")]
        else:
            splices = [(last.end_byte, b"," + newline + block)]

        updated = source
        for offset, text in sorted(splices, key=lambda s: s[0], reverse=True):
            updated = updated[:offset] + text + updated[offset:]
        return updated


# ---------------------------------------------------------------------------
# Convenience entry point
# ---------------------------------------------------------------------------


def merge_registration(
    registry_path: str | Path,
    entry: RegistryEntry,
    lock_timeout: float = 10.0,
) -> MergeResult:
    """Merge *entry* into the registry under its exclusive lock file."""
    registry = RouteRegistry(registry_path)
    registry.read()
    with file_lock(registry.registry_path, timeout=lock_timeout):
        return registry.merge(entry)
