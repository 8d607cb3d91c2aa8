"""prime-gen pipeline orchestrator.

Implements the 4-step scaffold pipeline:

Step 1: NAMES    -- Derive identifier, slug, type name and title from the token.
Step 2: EXTRACT  -- Extract the field schema from the markup (local or Ollama).
Step 3: GENERATE -- Render every module artifact in memory (optional Ollama layout).
Step 4: PERSIST  -- Commit the artifacts and merge the route registry entry.

Nothing is written before step 4, and step 4 is all-or-nothing: if the
registry cannot be updated, the committed artifacts are rolled back.

Usage::

    prime-gen orderEntry forms/order-entry.html
    python -m prime_gen "order entry" forms/ --apps-dir src/app/apps --dry-run
"""

from __future__ import annotations

import asyncio
import re
import sys
import time
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from prime_gen.config import Backend, Config
from prime_gen.errors import InvalidInputError, PrimeGenError
from prime_gen.naming import ModuleName, derive_names
from prime_gen.ollama_client import OllamaClient
from prime_gen.parser import RemoteFieldExtractor, Schema, extract_schema, read_markup
from prime_gen.parser.models import IDENTIFIER_PATTERN
from prime_gen.registry import MergeResult, RegistryEntry, RouteRegistry
from prime_gen.scaffolder import (
    ArtifactSet,
    ArtifactWriter,
    ModuleGenerator,
    RemoteLayoutGenerator,
    TemplateRenderer,
)
from prime_gen.utils import (
    STEP_NAMES,
    console,
    file_lock,
    format_duration,
    print_error,
    print_step_header,
    print_success,
    print_summary_table,
    print_warning,
)


class ScaffoldResult(BaseModel):
    """What one pipeline run produced."""

    names: ModuleName
    module_dir: Path
    files: list[str] = Field(default_factory=list)
    field_count: int = 0
    registry_result: Optional[MergeResult] = None
    menu_snippet: str = ""
    dry_run: bool = False
    duration: str = ""


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class ScaffoldPipeline:
    """Drives the scaffold pipeline for one module.

    Attributes:
        config: Pipeline configuration.
        renderer: Template renderer shared by the generator and the registry.
        generator: Renders the module's artifact set.
        ollama: Async Ollama client, only created when a remote backend is
            configured.
    """

    def __init__(self, config: Config) -> None:
        self.config = config
        self.renderer = TemplateRenderer()
        self.generator = ModuleGenerator(
            self.renderer,
            import_alias=config.import_alias,
            sample_rows=config.sample_rows,
        )
        self.ollama: Optional[OllamaClient] = None
        if config.uses_remote:
            self.ollama = OllamaClient(
                base_url=config.ollama.url,
                timeout=config.ollama.timeout,
            )

    async def run(
        self,
        token: str,
        markup_path: str | Path,
        *,
        register: bool = True,
        dry_run: bool = False,
    ) -> ScaffoldResult:
        """Run every step for the module named by *token*.

        Args:
            token: Module name in any spelling (``orderEntry``, ``order entry``).
            markup_path: HTML file, or a directory holding one.
            register: Merge the module into the route registry.
            dry_run: Render and validate everything but write nothing.

        Raises:
            PrimeGenError: Any terminal failure; nothing is left half-written.
        """
        started = time.monotonic()

        print_step_header(1, STEP_NAMES[1])
        names = self._derive_names(token)
        console.print(
            f"  identifier=[bold]{names.identifier}[/bold] slug=[bold]{names.slug}[/bold] "
            f"type=[bold]{names.type_name}[/bold] title=[bold]{names.title}[/bold]"
        )

        print_step_header(2, STEP_NAMES[2])
        schema = await self._extract(markup_path)
        if not schema.fields:
            print_warning("  No input fields found; generating an empty form")
        for field in schema.fields:
            console.print(
                f"  [green]+[/green] {field.control_name} ({escape(field.raw_type)})", highlight=False
            )
            if field.legacy_marker is not None:
                print_warning(
                    f"    legacy '{field.legacy_marker.attribute}' "
                    f"(use '{field.legacy_marker.replacement or 'current API'}')"
                )

        print_step_header(3, STEP_NAMES[3])
        artifact_set = await self._generate(names, schema)
        menu_snippet = self.generator.render_menu_snippet(names)

        print_step_header(4, STEP_NAMES[4])
        module_dir = self.config.module_dir(names.slug)
        registry_result = await self._persist(names, artifact_set, module_dir, register, dry_run)

        result = ScaffoldResult(
            names=names,
            module_dir=module_dir,
            files=artifact_set.filenames,
            field_count=len(schema.fields),
            registry_result=registry_result,
            menu_snippet=menu_snippet,
            dry_run=dry_run,
            duration=format_duration(time.monotonic() - started),
        )
        self._print_final_summary(result)
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @staticmethod
    def _derive_names(token: str) -> ModuleName:
        names = derive_names(token)
        if not names.identifier:
            raise InvalidInputError(
                "Module name must contain at least one letter or digit", resource=token
            )
        if not re.match(IDENTIFIER_PATTERN, names.identifier):
            raise InvalidInputError(
                f"Module name must start with a letter, got '{names.identifier}'",
                resource=token,
            )
        return names

    async def _extract(self, markup_path: str | Path) -> Schema:
        if self.config.extraction_backend is Backend.OLLAMA:
            source, html = await read_markup(markup_path)
            extractor = RemoteFieldExtractor(self._client(), self.config.ollama.model)
            return await extractor.extract(html, source=str(source))
        return await extract_schema(markup_path)

    async def _generate(self, names: ModuleName, schema: Schema) -> ArtifactSet:
        form_html: Optional[str] = None
        if self.config.layout_backend is Backend.OLLAMA:
            layout = RemoteLayoutGenerator(self._client(), self.config.ollama.model)
            form_html = await layout.generate(names, schema)
        artifact_set = self.generator.generate(names, schema, form_html=form_html)
        console.print(f"  Rendered {len(artifact_set.artifacts)} artifacts")
        return artifact_set

    async def _persist(
        self,
        names: ModuleName,
        artifact_set: ArtifactSet,
        module_dir: Path,
        register: bool,
        dry_run: bool,
    ) -> Optional[MergeResult]:
        """Commit the artifacts and the registry entry as one unit."""
        writer = ArtifactWriter(module_dir)
        if not register:
            if dry_run:
                self._print_planned(artifact_set, module_dir)
                return None
            await writer.commit(artifact_set)
            print_success(f"  Wrote {len(artifact_set.artifacts)} files to {escape(str(module_dir))}")
            return None

        registry = RouteRegistry(self.config.registry_path, self.renderer)
        entry = RegistryEntry.from_names(names, self.config.import_alias)

        # Validate the registry before anything is written.
        plan = registry.plan(entry)
        if dry_run:
            self._print_planned(artifact_set, module_dir)
            console.print(f"  Registry: would be [bold]{plan.result.value}[/bold]")
            return plan.result

        with file_lock(registry.registry_path, timeout=self.config.lock_timeout):
            record = await writer.commit(artifact_set)
            try:
                merge_result = registry.apply(plan)
            except BaseException:
                record.rollback()
                raise

        print_success(f"  Wrote {len(artifact_set.artifacts)} files to {escape(str(module_dir))}")
        if merge_result is MergeResult.ALREADY_EXISTS:
            print_warning(f"  Route for '{names.slug}' already exists in {escape(str(registry.registry_path))}")
        else:
            print_success(f"  Route for '{names.slug}' added to {escape(str(registry.registry_path))}")
        return merge_result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _client(self) -> OllamaClient:
        if self.ollama is None:
            self.ollama = OllamaClient(
                base_url=self.config.ollama.url,
                timeout=self.config.ollama.timeout,
            )
        return self.ollama

    @staticmethod
    def _print_planned(artifact_set: ArtifactSet, module_dir: Path) -> None:
        console.print("  [dim]Dry run: nothing written[/dim]")
        for path in artifact_set.paths(module_dir):
            console.print(f"  [dim]would write[/dim] {escape(str(path))}", highlight=False)

    def _print_final_summary(self, result: ScaffoldResult) -> None:
        console.print()
        console.print(
            Panel(
                Text(result.menu_snippet),
                title="[bold]Add to app.menu.ts[/bold]",
                border_style="bright_cyan",
            )
        )
        summary: dict[str, Any] = {
            "Module": result.names.title,
            "Directory": str(result.module_dir),
            "Fields": result.field_count,
            "Files": len(result.files),
            "Registry": result.registry_result.value if result.registry_result else "skipped",
            "Duration": result.duration,
        }
        if result.dry_run:
            summary["Mode"] = "dry run"
        print_summary_table(summary, title="Scaffold Summary")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _build_config(args: Any) -> Config:
    """Layer CLI flags over the config file (or the environment)."""
    base = Config.load(Path(args.config)) if args.config else Config.from_env()
    data = base.model_dump()

    if args.apps_dir:
        data["apps_dir"] = Path(args.apps_dir)
    if args.registry:
        data["registry_file"] = args.registry
    if args.extract_with:
        data["extraction_backend"] = args.extract_with
    if args.layout_with:
        data["layout_backend"] = args.layout_with
    if args.sample_rows is not None:
        data["sample_rows"] = args.sample_rows
    if args.ollama_url:
        data["ollama"]["url"] = args.ollama_url
    if args.ollama_model:
        data["ollama"]["model"] = args.ollama_model

    return Config.model_validate(data)


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point for ``prime-gen`` and ``python -m prime_gen``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="prime-gen",
        description="prime-gen -- Angular/PrimeNG module scaffolding from an HTML form",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  prime-gen orderEntry forms/order-entry.html\n"
            "  prime-gen \"order entry\" forms/ --apps-dir src/app/apps\n"
            "  prime-gen orderEntry form.html --extract-with ollama --layout-with ollama\n"
        ),
    )

    parser.add_argument("module", help="Module name, e.g. orderEntry or 'order entry'")
    parser.add_argument("markup", help="HTML form file, or a directory containing one")
    parser.add_argument(
        "--apps-dir",
        default=None,
        help="Directory holding the app modules (default: src/app/apps)",
    )
    parser.add_argument(
        "--registry",
        default=None,
        help="Route registry file name inside the apps directory (default: apps.routes.ts)",
    )
    parser.add_argument(
        "--extract-with",
        choices=[b.value for b in Backend],
        default=None,
        help="Field extraction backend (default: local)",
    )
    parser.add_argument(
        "--layout-with",
        choices=[b.value for b in Backend],
        default=None,
        help="Form layout backend (default: local)",
    )
    parser.add_argument(
        "--sample-rows",
        type=int,
        default=None,
        help="Placeholder rows in the table view (default: 5)",
    )
    parser.add_argument("--ollama-url", default=None, help="Ollama server URL")
    parser.add_argument("--ollama-model", default=None, help="Ollama model name")
    parser.add_argument("--config", default=None, help="JSON configuration file")
    parser.add_argument(
        "--no-register",
        action="store_true",
        help="Do not add the module to the route registry",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Render and validate everything, write nothing",
    )

    args = parser.parse_args(argv)

    try:
        config = _build_config(args)
    except (OSError, ValidationError) as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid configuration: {escape(str(exc))}")
        sys.exit(1)

    pipeline = ScaffoldPipeline(config)
    try:
        asyncio.run(
            pipeline.run(
                args.module,
                args.markup,
                register=not args.no_register,
                dry_run=args.dry_run,
            )
        )
    except PrimeGenError as exc:
        print_error(f"Error: {escape(str(exc))}")
        if exc.resource:
            console.print(f"  resource: {exc.resource}", style="dim", markup=False)
        sys.exit(1)


if __name__ == "__main__":
    main()
