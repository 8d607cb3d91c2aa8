"""Remote field extraction through an Ollama model.

The model is asked to list the form fields of a document as JSON.  Its answer
is treated as untrusted text: only the first well-formed JSON array/object in
the response is used, and every entry is re-validated into a
``FieldDescriptor`` with the same naming rules as the local extractor.
"""

from __future__ import annotations

import json
import re
import textwrap
from typing import Any

from prime_gen.errors import MalformedUpstreamResponseError
from prime_gen.ollama_client import OllamaClient
from prime_gen.utils import console

from .models import FieldDescriptor, Schema
from .normalizer import FieldNameAllocator

_SYSTEM_PROMPT = "You are an assistant that extracts form fields from HTML and returns them as JSON."

_EXTRACTION_PROMPT = textwrap.dedent("""\
    Extract the labels, input types, formControlNames, and ids from the following
    HTML form and return them as a JSON array of objects with the keys
    "label", "type", "formControlName" and "id".
    Do not include any additional instructions, explanations, or text.
    Just return the raw JSON without any extra information.

    HTML:
    {html}
""")

_FENCE_PATTERN = re.compile(r"```(?:json)?")

# Keys a model may use for each descriptor attribute, in preference order.
_LABEL_KEYS = ("label", "name", "title")
_TYPE_KEYS = ("type", "inputType", "input_type")
_CONTROL_KEYS = ("formControlName", "controlName", "control_name", "name")
_ID_KEYS = ("id",)


def extract_json_payload(text: str) -> Any:
    """Return the first well-formed JSON array or object embedded in *text*.

    Each ``[`` / ``{`` is tried as a start position with
    ``JSONDecoder.raw_decode``; the first one that decodes wins.

    Raises:
        MalformedUpstreamResponseError: If no candidate decodes.
    """
    cleaned = _FENCE_PATTERN.sub("", text)
    decoder = json.JSONDecoder()
    for index, char in enumerate(cleaned):
        if char not in "[{":
            continue
        try:
            payload, _end = decoder.raw_decode(cleaned, index)
        except json.JSONDecodeError:
            continue
        return payload
    raise MalformedUpstreamResponseError(
        "Remote response did not contain a JSON array or object", fragment=text
    )


def _first_value(entry: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = entry.get(key)
        if isinstance(value, (str, int, float)) and str(value).strip():
            return str(value).strip()
    return None


def _entries_from_payload(payload: Any, raw_text: str) -> list[dict[str, Any]]:
    """Normalise the decoded payload to a list of field dicts."""
    if isinstance(payload, dict):
        nested = next(
            (v for k, v in payload.items() if k.lower() in ("fields", "formfields", "items")
             and isinstance(v, list)),
            None,
        )
        payload = nested if nested is not None else [payload]
    if not isinstance(payload, list):
        raise MalformedUpstreamResponseError(
            "Remote response JSON is not a list of fields", fragment=raw_text
        )
    entries = [e for e in payload if isinstance(e, dict)]
    if len(entries) != len(payload):
        raise MalformedUpstreamResponseError(
            "Remote response contained non-object field entries", fragment=raw_text
        )
    return entries


def fields_from_payload(payload: Any, raw_text: str = "", source: str | None = None) -> Schema:
    """Validate a decoded JSON payload into a ``Schema``."""
    allocator = FieldNameAllocator()
    fields: list[FieldDescriptor] = []
    for position, entry in enumerate(_entries_from_payload(payload, raw_text), start=1):
        label = _first_value(entry, _LABEL_KEYS) or _first_value(entry, _ID_KEYS) or "Untitled"
        raw_type = (_first_value(entry, _TYPE_KEYS) or "text").lower()
        fields.append(FieldDescriptor(
            label=label,
            raw_type=raw_type,
            control_name=allocator.allocate(_first_value(entry, _CONTROL_KEYS), label, position),
        ))
    return Schema(fields=fields, source=source)


class RemoteFieldExtractor:
    """Extracts a field schema by delegating to an Ollama model."""

    def __init__(self, client: OllamaClient, model: str) -> None:
        self.client = client
        self.model = model

    async def extract(self, html: str, source: str | None = None) -> Schema:
        """Ask the model for the fields of *html* and validate its answer.

        Raises:
            UpstreamUnavailableError: If the request fails or times out.
            MalformedUpstreamResponseError: If the answer holds no usable JSON.
        """
        reply = await self.client.generate(
            _EXTRACTION_PROMPT.format(html=html),
            model=self.model,
            system=_SYSTEM_PROMPT,
            temperature=0.0,
        )
        console.print(
            f"[dim]Ollama extraction with {reply.model} "
            f"took {reply.duration_ms:.0f}ms[/dim]"
        )
        payload = extract_json_payload(reply.text)
        return fields_from_payload(payload, raw_text=reply.text, source=source)
