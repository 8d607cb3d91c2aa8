"""prime-gen configuration.

Centralised, typed configuration for the scaffold pipeline.  All settings use
Pydantic v2 models so they can be validated at construction time and serialised
to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class Backend(str, Enum):
    """Where a pipeline step gets its result from."""

    LOCAL = "local"
    OLLAMA = "ollama"


class OllamaConfig(BaseModel):
    """Configuration for the optional Ollama text-generation backend."""

    url: str = Field(default="http://localhost:11434")
    model: str = Field(default="qwen2.5-coder:14b")
    timeout: int = Field(default=120, ge=5, description="Per-request timeout in seconds")


class Config(BaseModel):
    """Global prime-gen configuration.

    Instances are created once by the CLI entry point (or by tests) and passed
    to ``ScaffoldPipeline``.
    """

    apps_dir: Path = Field(default=Path("src/app/apps"))
    registry_file: str = Field(default="apps.routes.ts")
    import_alias: str = Field(
        default="@/apps", description="Import path prefix for lazily loaded modules"
    )
    sample_rows: int = Field(default=5, ge=0, description="Placeholder rows in table views")
    extraction_backend: Backend = Field(default=Backend.LOCAL)
    layout_backend: Backend = Field(default=Backend.LOCAL)
    lock_timeout: float = Field(
        default=10.0, gt=0, description="Seconds to wait for the registry lock"
    )
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def registry_path(self) -> Path:
        """Path to the shared route registry (``apps.routes.ts``)."""
        return self.apps_dir / self.registry_file

    def module_dir(self, slug: str) -> Path:
        """Directory that holds every artifact of one module."""
        return self.apps_dir / slug

    @property
    def uses_remote(self) -> bool:
        """Whether any step talks to the Ollama backend."""
        return Backend.OLLAMA in (self.extraction_backend, self.layout_backend)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file and return its path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            PRIME_GEN_APPS_DIR, PRIME_GEN_REGISTRY_FILE, PRIME_GEN_IMPORT_ALIAS,
            PRIME_GEN_SAMPLE_ROWS, PRIME_GEN_EXTRACTION_BACKEND,
            PRIME_GEN_LAYOUT_BACKEND, PRIME_GEN_LOCK_TIMEOUT,
            PRIME_GEN_OLLAMA_URL, PRIME_GEN_OLLAMA_MODEL, PRIME_GEN_OLLAMA_TIMEOUT.
        """
        ollama_kwargs: dict[str, Any] = {}
        if os.environ.get("PRIME_GEN_OLLAMA_URL"):
            ollama_kwargs["url"] = os.environ["PRIME_GEN_OLLAMA_URL"]
        if os.environ.get("PRIME_GEN_OLLAMA_MODEL"):
            ollama_kwargs["model"] = os.environ["PRIME_GEN_OLLAMA_MODEL"]
        if os.environ.get("PRIME_GEN_OLLAMA_TIMEOUT"):
            ollama_kwargs["timeout"] = int(os.environ["PRIME_GEN_OLLAMA_TIMEOUT"])

        kwargs: dict[str, Any] = {}
        if os.environ.get("PRIME_GEN_APPS_DIR"):
            kwargs["apps_dir"] = Path(os.environ["PRIME_GEN_APPS_DIR"])
        if os.environ.get("PRIME_GEN_REGISTRY_FILE"):
            kwargs["registry_file"] = os.environ["PRIME_GEN_REGISTRY_FILE"]
        if os.environ.get("PRIME_GEN_IMPORT_ALIAS"):
            kwargs["import_alias"] = os.environ["PRIME_GEN_IMPORT_ALIAS"]
        if os.environ.get("PRIME_GEN_SAMPLE_ROWS"):
            kwargs["sample_rows"] = int(os.environ["PRIME_GEN_SAMPLE_ROWS"])
        if os.environ.get("PRIME_GEN_EXTRACTION_BACKEND"):
            kwargs["extraction_backend"] = Backend(os.environ["PRIME_GEN_EXTRACTION_BACKEND"])
        if os.environ.get("PRIME_GEN_LAYOUT_BACKEND"):
            kwargs["layout_backend"] = Backend(os.environ["PRIME_GEN_LAYOUT_BACKEND"])
        if os.environ.get("PRIME_GEN_LOCK_TIMEOUT"):
            kwargs["lock_timeout"] = float(os.environ["PRIME_GEN_LOCK_TIMEOUT"])

        return cls(ollama=OllamaConfig(**ollama_kwargs), **kwargs)
