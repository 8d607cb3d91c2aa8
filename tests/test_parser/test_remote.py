"""Tests for remote field extraction (prime_gen.parser.remote).

Covers:
- JSON isolation from chatty / fenced model output
- Payload shape validation
- Coercion of loosely-keyed entries into FieldDescriptors
- RemoteFieldExtractor against a mocked Ollama server
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from prime_gen.errors import MalformedUpstreamResponseError, UpstreamUnavailableError
from prime_gen.ollama_client import OllamaClient
from prime_gen.parser.remote import (
    RemoteFieldExtractor,
    extract_json_payload,
    fields_from_payload,
)


# ---------------------------------------------------------------------------
# extract_json_payload
# ---------------------------------------------------------------------------


class TestExtractJsonPayload:
    @pytest.mark.unit
    def test_plain_array(self):
        assert extract_json_payload('[{"label": "Name"}]') == [{"label": "Name"}]

    @pytest.mark.unit
    def test_fenced_with_prose(self):
        text = 'Sure! Here are the fields:\n```json\n[{"label": "Age", "type": "number"}]\n```\nEnjoy.'
        assert extract_json_payload(text) == [{"label": "Age", "type": "number"}]

    @pytest.mark.unit
    def test_skips_unbalanced_candidates(self):
        text = 'Fields [see below] {oops [{"label": "City"}]'
        assert extract_json_payload(text) == [{"label": "City"}]

    @pytest.mark.unit
    def test_object_payload(self):
        assert extract_json_payload('result: {"fields": []}') == {"fields": []}

    @pytest.mark.unit
    def test_nothing_parseable(self):
        with pytest.raises(MalformedUpstreamResponseError) as exc_info:
            extract_json_payload("I could not find any fields in that form.")
        assert "could not find" in exc_info.value.fragment
        assert exc_info.value.resource == exc_info.value.fragment


# ---------------------------------------------------------------------------
# fields_from_payload
# ---------------------------------------------------------------------------


class TestFieldsFromPayload:
    @pytest.mark.unit
    def test_standard_keys(self):
        payload = [
            {"label": "First Name", "type": "text", "id": "fn"},
            {"label": "Email", "type": "email", "formControlName": "emailAddress"},
        ]
        schema = fields_from_payload(payload, source="contact.html")
        assert [(f.label, f.control_name, f.raw_type) for f in schema.fields] == [
            ("First Name", "firstName", "text"),
            ("Email", "emailAddress", "email"),
        ]
        assert schema.source == "contact.html"

    @pytest.mark.unit
    def test_alternate_keys(self):
        payload = [{"title": "Unit Price", "inputType": "NUMBER", "controlName": "unit-price"}]
        field = fields_from_payload(payload).fields[0]
        assert field.label == "Unit Price"
        assert field.raw_type == "number"
        assert field.control_name == "unitPrice"

    @pytest.mark.unit
    def test_missing_label_uses_id_then_untitled(self):
        schema = fields_from_payload([{"id": "postCode"}, {}])
        assert schema.labels == ["postCode", "Untitled"]
        assert schema.control_names == ["postCode", "untitled"]

    @pytest.mark.unit
    def test_wrapped_in_object(self):
        schema = fields_from_payload({"formFields": [{"label": "A"}, {"label": "A"}]})
        assert schema.control_names == ["a", "a2"]

    @pytest.mark.unit
    def test_single_object(self):
        schema = fields_from_payload({"label": "Only"})
        assert schema.control_names == ["only"]

    @pytest.mark.unit
    def test_non_object_entries_rejected(self):
        with pytest.raises(MalformedUpstreamResponseError):
            fields_from_payload([{"label": "A"}, "B"], raw_text='[{"label": "A"}, "B"]')

    @pytest.mark.unit
    def test_scalar_payload_rejected(self):
        with pytest.raises(MalformedUpstreamResponseError):
            fields_from_payload(42)


# ---------------------------------------------------------------------------
# RemoteFieldExtractor
# ---------------------------------------------------------------------------


class TestRemoteFieldExtractor:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_extract(self, mock_ollama):
        text = 'Here you go:\n[{"label": "First Name", "type": "text"}, {"label": "Email", "formControlName": "emailAddress"}]'
        with mock_ollama(text) as mock_cls:
            extractor = RemoteFieldExtractor(OllamaClient(), "qwen2.5-coder:14b")
            schema = await extractor.extract("<form>...</form>", source="contact.html")

        assert schema.control_names == ["firstName", "emailAddress"]
        payload = mock_cls.return_value.post.call_args[1]["json"]
        assert "<form>...</form>" in payload["prompt"]
        assert payload["model"] == "qwen2.5-coder:14b"
        assert payload["options"] == {"temperature": 0.0}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unparseable_response(self, mock_ollama):
        with mock_ollama("Sorry, I can't help with that."):
            extractor = RemoteFieldExtractor(OllamaClient(), "m")
            with pytest.raises(MalformedUpstreamResponseError):
                await extractor.extract("<form></form>")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unavailable(self):
        mock_client = AsyncMock()
        mock_client.post = AsyncMock(side_effect=httpx.ConnectError("Connection refused"))
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)

        with patch("httpx.AsyncClient", return_value=mock_client):
            extractor = RemoteFieldExtractor(OllamaClient(base_url="http://nowhere:11434"), "m")
            with pytest.raises(UpstreamUnavailableError) as exc_info:
                await extractor.extract("<form></form>")

        assert exc_info.value.resource == "http://nowhere:11434"
        assert "Connection refused" in str(exc_info.value)
