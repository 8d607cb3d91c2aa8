"""Remote form-layout generation through an Ollama model.

The model is given the module title, the base card/form layout and the field
schema, and asked for a styled form.  Its answer is untrusted: comments are
stripped and the text is re-sliced to the first top-level ``<div>`` through
its matching ``</div>`` before it is used as the form view.
"""

from __future__ import annotations

import json
import re
import textwrap

from prime_gen.errors import MalformedUpstreamResponseError
from prime_gen.naming import ModuleName
from prime_gen.ollama_client import OllamaClient
from prime_gen.parser.models import Schema
from prime_gen.utils import console

_SYSTEM_PROMPT = "You are a form layout generator using Tailwind CSS and PrimeNG."

_LAYOUT_PROMPT = textwrap.dedent("""\
    Using the following JSON, generate a full HTML form layout inside this
    structure, using Tailwind CSS for styling. Each form field should be inside
    a <div class="field mb-4">, with a label and an input element.

    Here is the base layout:

    <div class="card">
        <div class="flex justify-between items-center mb-8">
            <span class="text-surface-900 dark:text-surface-0 text-xl font-semibold">{title}</span>
        </div>
        <form [formGroup]="form" (ngSubmit)="onSubmit()">
            <div class="grid grid-cols-1 md:grid-cols-2 gap-6">
                <!-- Generated form fields go here -->
            </div>
            <div class="flex justify-end">
                <button pButton pRipple type="submit" label="Submit" [disabled]="form.invalid"></button>
            </div>
        </form>
    </div>

    Each field must contain:
      - a <label> with class "block text-sm font-medium" whose "for" matches the control id;
      - a control with the given id, input type and formControlName.
    Keep the fields in the order given.

    JSON:
    {fields}

    Only return the full HTML form with the fields added, no other text or explanation.
""")

_COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)
_DIV_TAG_PATTERN = re.compile(r"<(/?)div\b[^>]*>", re.IGNORECASE)


def sanitize_layout_html(raw: str) -> str:
    """Return the first balanced top-level ``<div>`` block of *raw*.

    Raises:
        MalformedUpstreamResponseError: If *raw* has no ``<div>`` or the first
            one is never closed.
    """
    text = _COMMENT_PATTERN.sub("", raw)
    depth = 0
    start: int | None = None

    for match in _DIV_TAG_PATTERN.finditer(text):
        closing = match.group(1) == "/"
        if start is None:
            if closing:
                continue
            start = match.start()
        if closing:
            depth -= 1
        elif not match.group(0).endswith("/>"):
            depth += 1
        if depth == 0:
            return text[start:match.end()].strip()

    if start is None:
        raise MalformedUpstreamResponseError(
            "Remote layout response contained no <div> container", fragment=raw
        )
    raise MalformedUpstreamResponseError(
        "Remote layout response has an unclosed <div> container", fragment=raw
    )


def schema_payload(schema: Schema) -> str:
    """The schema as the JSON array embedded in the layout prompt."""
    return json.dumps(
        [
            {
                "label": f.label,
                "inputType": f.input_type if f.widget == "input" else f.widget,
                "formControlName": f.control_name,
                "id": f.control_name,
            }
            for f in schema.fields
        ],
        ensure_ascii=False,
    )


class RemoteLayoutGenerator:
    """Generates the form view markup by delegating to an Ollama model."""

    def __init__(self, client: OllamaClient, model: str) -> None:
        self.client = client
        self.model = model

    async def generate(self, names: ModuleName, schema: Schema) -> str:
        """Ask the model for the form markup and re-validate it.

        Raises:
            UpstreamUnavailableError: If the request fails or times out.
            MalformedUpstreamResponseError: If no container element survives
                sanitising.
        """
        prompt = _LAYOUT_PROMPT.format(title=names.title, fields=schema_payload(schema))
        reply = await self.client.generate(prompt, model=self.model, system=_SYSTEM_PROMPT)
        console.print(
            f"[dim]Ollama layout with {reply.model} "
            f"took {reply.duration_ms:.0f}ms[/dim]"
        )
        return sanitize_layout_html(reply.text)
