"""Shared pytest fixtures for the prime-gen test suite.

Provides reusable fixtures for:
- Sample form markup and route registry documents
- Temporary apps directories with a registry in place
- Pre-built configuration pointing at the temporary directories
- Mocked Ollama responses
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from prime_gen.config import Config
from prime_gen.naming import derive_names
from prime_gen.parser.models import FieldDescriptor, Schema

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------


@pytest.fixture
def order_entry_html() -> Path:
    """Path to the sample order entry form."""
    path = FIXTURES_DIR / "order-entry.html"
    assert path.exists(), f"Order entry fixture not found at {path}"
    return path


@pytest.fixture
def apps_dir(tmp_path: Path) -> Path:
    """Temporary ``src/app/apps`` directory holding a populated registry."""
    target = tmp_path / "src" / "app" / "apps"
    target.mkdir(parents=True)
    shutil.copy(FIXTURES_DIR / "apps.routes.ts", target / "apps.routes.ts")
    yield target


@pytest.fixture
def registry_path(apps_dir: Path) -> Path:
    return apps_dir / "apps.routes.ts"


@pytest.fixture
def config(apps_dir: Path) -> Config:
    """Local-only configuration rooted at the temporary apps directory."""
    return Config(apps_dir=apps_dir, lock_timeout=0.5)


# ---------------------------------------------------------------------------
# Domain objects
# ---------------------------------------------------------------------------


@pytest.fixture
def order_names():
    return derive_names("orderEntry")


@pytest.fixture
def contact_schema() -> Schema:
    """The two-field schema of a minimal contact form."""
    return Schema(
        fields=[
            FieldDescriptor(label="First Name", raw_type="text", control_name="firstName"),
            FieldDescriptor(label="Email", raw_type="email", control_name="emailAddress"),
        ],
        source="contact.html",
    )


@pytest.fixture
def mixed_schema() -> Schema:
    """One field of every value kind and widget."""
    return Schema(
        fields=[
            FieldDescriptor(label="Name", raw_type="text", control_name="name"),
            FieldDescriptor(label="Quantity", raw_type="number", control_name="quantity"),
            FieldDescriptor(label="Active", raw_type="checkbox", control_name="active"),
            FieldDescriptor(label="Country", raw_type="select", control_name="country"),
            FieldDescriptor(label="Notes", raw_type="textarea", control_name="notes"),
        ]
    )


# ---------------------------------------------------------------------------
# Ollama mocks
# ---------------------------------------------------------------------------


def make_ollama_generate_response(text: str, model: str = "qwen2.5-coder:14b") -> dict[str, Any]:
    """A realistic non-streaming ``/api/generate`` body."""
    return {
        "model": model,
        "response": text,
        "done": True,
        "total_duration": 1_500_000_000,
    }


@pytest.fixture
def mock_ollama():
    """Factory patching ``httpx.AsyncClient`` so ``/api/generate`` answers *texts*.

    Each call consumes the next text; the last one repeats.

    Usage::

        def test_something(mock_ollama):
            with mock_ollama('[{"label": "Name"}]') as mock_cls:
                ...
    """

    def factory(*texts: str):
        responses = []
        for text in texts:
            response = MagicMock()
            response.status_code = 200
            response.json.return_value = make_ollama_generate_response(text)
            response.raise_for_status = MagicMock()
            responses.append(response)

        calls = {"count": 0}

        async def mock_post(url: str, **kwargs: Any) -> MagicMock:
            index = min(calls["count"], len(responses) - 1)
            calls["count"] += 1
            return responses[index]

        mock_client = AsyncMock()
        mock_client.post = AsyncMock(side_effect=mock_post)
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)
        return patch("httpx.AsyncClient", return_value=mock_client)

    return factory
