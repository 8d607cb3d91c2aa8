"""prime-gen scaffolder -- renders the artifacts of one Angular/PrimeNG module.

Takes a ``ModuleName`` and a field ``Schema`` and renders the route table,
model, service, form and table components of the module in memory; the
``ArtifactWriter`` then persists the whole set at once.

Quick usage::

    from prime_gen.naming import derive_names
    from prime_gen.scaffolder import ArtifactWriter, ModuleGenerator

    names = derive_names("order entry")
    artifact_set = ModuleGenerator().generate(names, schema)
    record = await ArtifactWriter("src/app/apps/order-entry").commit(artifact_set)
"""

from prime_gen.scaffolder.generator import (
    Artifact,
    ArtifactKind,
    ArtifactSet,
    ModuleGenerator,
)
from prime_gen.scaffolder.layout import RemoteLayoutGenerator, sanitize_layout_html
from prime_gen.scaffolder.templates import TemplateRenderer
from prime_gen.scaffolder.writer import ArtifactWriter, CommitRecord

__all__ = [
    "Artifact",
    "ArtifactKind",
    "ArtifactSet",
    "ModuleGenerator",
    "RemoteLayoutGenerator",
    "sanitize_layout_html",
    "TemplateRenderer",
    "ArtifactWriter",
    "CommitRecord",
]
