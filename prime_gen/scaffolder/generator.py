"""Module scaffolding generator.

Takes a ``ModuleName`` and a field ``Schema`` and renders every artifact of an
Angular/PrimeNG module (route table, model, service, form view + controller,
table view + controller, style placeholders) into an in-memory
``ArtifactSet``.  Nothing is written here; a failed render therefore leaves
the module directory untouched.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from prime_gen.naming import ModuleName
from prime_gen.parser.models import FieldDescriptor, Schema

from .fixtures import add_item_expression, form_default_literal, sample_rows_literal
from .templates import TemplateRenderer


# ---------------------------------------------------------------------------
# Artifact models
# ---------------------------------------------------------------------------


class ArtifactKind(str, Enum):
    """Every file a generated module consists of."""

    ROUTES = "routes"
    MODEL = "model"
    SERVICE = "service"
    FORM_VIEW = "form_view"
    FORM_CONTROLLER = "form_controller"
    TABLE_VIEW = "table_view"
    TABLE_CONTROLLER = "table_controller"
    FORM_STYLE = "form_style"
    TABLE_STYLE = "table_style"


# kind -> (template, filename pattern)
_ARTIFACT_LAYOUT: dict[ArtifactKind, tuple[str, str]] = {
    ArtifactKind.ROUTES: ("routes.ts.j2", "{slug}.routes.ts"),
    ArtifactKind.MODEL: ("model.ts.j2", "{slug}.model.ts"),
    ArtifactKind.SERVICE: ("service.ts.j2", "{slug}.service.ts"),
    ArtifactKind.FORM_VIEW: ("form.component.html.j2", "{slug}-form.component.html"),
    ArtifactKind.FORM_CONTROLLER: ("form.component.ts.j2", "{slug}-form.component.ts"),
    ArtifactKind.TABLE_VIEW: ("table.component.html.j2", "{slug}-table.component.html"),
    ArtifactKind.TABLE_CONTROLLER: ("table.component.ts.j2", "{slug}-table.component.ts"),
    ArtifactKind.FORM_STYLE: ("form.component.scss.j2", "{slug}-form.component.scss"),
    ArtifactKind.TABLE_STYLE: ("table.component.scss.j2", "{slug}-table.component.scss"),
}


class Artifact(BaseModel):
    """One rendered file, relative to the module directory."""

    kind: ArtifactKind
    filename: str
    content: str


class ArtifactSet(BaseModel):
    """All rendered files of one module, in a fixed order."""

    slug: str
    artifacts: list[Artifact] = Field(default_factory=list)

    def get(self, kind: ArtifactKind) -> Artifact:
        for artifact in self.artifacts:
            if artifact.kind == kind:
                return artifact
        raise KeyError(kind)

    def content(self, kind: ArtifactKind) -> str:
        return self.get(kind).content

    @property
    def filenames(self) -> list[str]:
        return [a.filename for a in self.artifacts]

    def paths(self, module_dir: Path) -> list[Path]:
        """Where each artifact lands under *module_dir*."""
        return [Path(module_dir) / a.filename for a in self.artifacts]


# ---------------------------------------------------------------------------
# Main generator
# ---------------------------------------------------------------------------


class ModuleGenerator:
    """Renders the artifact set of one module.

    Every artifact receives the same context, built once from the names and
    the schema, which is what keeps symbol names, paths, titles and field
    order in agreement across files.
    """

    def __init__(
        self,
        renderer: TemplateRenderer | None = None,
        *,
        import_alias: str = "@/apps",
        sample_rows: int = 5,
    ) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.import_alias = import_alias.rstrip("/")
        self.sample_rows = sample_rows

    # -- Public API --------------------------------------------------------

    def generate(
        self,
        names: ModuleName,
        schema: Schema,
        form_html: Optional[str] = None,
    ) -> ArtifactSet:
        """Render every artifact of the module.

        Args:
            names: Derived module names.
            schema: Ordered field schema.
            form_html: Pre-generated form view markup (from the remote layout
                backend).  When omitted the local form template is used.

        Returns:
            The complete, in-memory ``ArtifactSet``.
        """
        context = self._build_context(names, schema)
        artifacts: list[Artifact] = []

        for kind, (template_name, filename) in _ARTIFACT_LAYOUT.items():
            if kind is ArtifactKind.FORM_VIEW and form_html is not None:
                content = form_html.strip() + "\n"
            else:
                content = self.renderer.render(template_name, context)
            artifacts.append(Artifact(
                kind=kind,
                filename=filename.format(slug=names.slug),
                content=content.lstrip(),
            ))

        return ArtifactSet(slug=names.slug, artifacts=artifacts)

    def render_menu_snippet(self, names: ModuleName) -> str:
        """The ``app.menu.ts`` entry users paste to expose the module."""
        return self.renderer.render("menu_entry.ts.j2", {"names": names}).strip()

    # -- Context building --------------------------------------------------

    def _build_context(self, names: ModuleName, schema: Schema) -> dict[str, Any]:
        """Build the Jinja2 template context shared by every artifact."""
        return {
            "names": names,
            "import_alias": self.import_alias,
            "fields": [_enrich_field(f, i) for i, f in enumerate(schema.fields)],
            "sample_rows": sample_rows_literal(schema.fields, self.sample_rows),
        }


# ---------------------------------------------------------------------------
# Field enrichment
# ---------------------------------------------------------------------------

def _enrich_field(field: FieldDescriptor, index: int) -> dict[str, Any]:
    """Flatten a descriptor into the template variables it needs."""
    return {
        "label": field.label,
        "control_name": field.control_name,
        "raw_type": field.raw_type,
        "widget": field.widget,
        "input_type": field.input_type,
        "ts_type": field.ts_type,
        "default_literal": form_default_literal(field),
        "add_expression": add_item_expression(field, index),
        "legacy_marker": field.legacy_marker,
    }
