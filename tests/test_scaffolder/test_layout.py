"""Tests for remote form-layout generation (prime_gen.scaffolder.layout)."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from prime_gen.errors import MalformedUpstreamResponseError, UpstreamUnavailableError
from prime_gen.ollama_client import OllamaClient
from prime_gen.scaffolder.layout import (
    RemoteLayoutGenerator,
    sanitize_layout_html,
    schema_payload,
)


# ---------------------------------------------------------------------------
# sanitize_layout_html
# ---------------------------------------------------------------------------


class TestSanitizeLayoutHtml:
    @pytest.mark.unit
    def test_slices_first_top_level_div(self):
        raw = (
            "Here is your form:\n```html\n"
            '<div class="card"><div class="grid"><input /></div></div>\n'
            "```\n<div>second</div>"
        )
        assert sanitize_layout_html(raw) == '<div class="card"><div class="grid"><input /></div></div>'

    @pytest.mark.unit
    def test_strips_comments(self):
        raw = '<div class="card"><!-- <div> not real --><span>x</span></div>'
        assert sanitize_layout_html(raw) == '<div class="card"><span>x</span></div>'

    @pytest.mark.unit
    def test_skips_stray_closing_tags(self):
        assert sanitize_layout_html("</div> <DIV>ok</DIV>") == "<DIV>ok</DIV>"

    @pytest.mark.unit
    def test_multiline_is_preserved(self):
        raw = '<div class="card">\n  <form>\n  </form>\n</div>\ntrailing'
        assert sanitize_layout_html(raw) == '<div class="card">\n  <form>\n  </form>\n</div>'

    @pytest.mark.unit
    def test_no_div(self):
        with pytest.raises(MalformedUpstreamResponseError) as exc_info:
            sanitize_layout_html("<form></form>")
        assert exc_info.value.fragment == "<form></form>"

    @pytest.mark.unit
    def test_unclosed_div(self):
        with pytest.raises(MalformedUpstreamResponseError):
            sanitize_layout_html('<div class="card"><div>')

    @pytest.mark.unit
    def test_divider_tag_is_not_a_div(self):
        with pytest.raises(MalformedUpstreamResponseError):
            sanitize_layout_html("<p-divider></p-divider><divider></divider>")


# ---------------------------------------------------------------------------
# schema_payload
# ---------------------------------------------------------------------------


class TestSchemaPayload:
    @pytest.mark.unit
    def test_payload(self, mixed_schema):
        payload = json.loads(schema_payload(mixed_schema))
        assert [p["formControlName"] for p in payload] == mixed_schema.control_names
        assert [p["inputType"] for p in payload] == ["text", "number", "checkbox", "select", "textarea"]
        assert payload[0] == {"label": "Name", "inputType": "text", "formControlName": "name", "id": "name"}


# ---------------------------------------------------------------------------
# RemoteLayoutGenerator
# ---------------------------------------------------------------------------


class TestRemoteLayoutGenerator:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generate(self, mock_ollama, order_names, contact_schema):
        text = 'Sure!\n<div class="card"><form [formGroup]="form"></form></div>\nHope it helps.'
        with mock_ollama(text) as mock_cls:
            generator = RemoteLayoutGenerator(OllamaClient(), "qwen2.5-coder:14b")
            html = await generator.generate(order_names, contact_schema)

        assert html == '<div class="card"><form [formGroup]="form"></form></div>'
        prompt = mock_cls.return_value.post.call_args[1]["json"]["prompt"]
        assert "Order Entry" in prompt
        assert '"formControlName": "emailAddress"' in prompt

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_malformed(self, mock_ollama, order_names, contact_schema):
        with mock_ollama("I cannot do that."):
            generator = RemoteLayoutGenerator(OllamaClient(), "m")
            with pytest.raises(MalformedUpstreamResponseError):
                await generator.generate(order_names, contact_schema)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unavailable(self, order_names, contact_schema):
        mock_client = AsyncMock()
        mock_client.post = AsyncMock(side_effect=httpx.ReadTimeout("read timed out"))
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)

        with patch("httpx.AsyncClient", return_value=mock_client):
            with pytest.raises(UpstreamUnavailableError) as exc_info:
                await RemoteLayoutGenerator(OllamaClient(), "m").generate(order_names, contact_schema)
        assert "timed out" in str(exc_info.value)
