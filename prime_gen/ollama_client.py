"""Async client for Ollama's ``/api/generate`` endpoint.

This is the optional remote backend for field extraction and form-layout
generation.  Every call is a single non-streaming request: a connection
failure, a timeout or an HTTP error status ends the run with
``UpstreamUnavailableError``, and a body that is not a generation reply
raises ``MalformedUpstreamResponseError``.  There are no retries.

Typical usage::

    client = OllamaClient("http://localhost:11434", timeout=60)
    reply = await client.generate("List the form fields ...", model="qwen2.5-coder:14b")
    print(reply.text)
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, Field

from prime_gen.errors import MalformedUpstreamResponseError, UpstreamUnavailableError

_CONNECT_TIMEOUT = 10.0


class OllamaReply(BaseModel):
    """The useful part of one ``/api/generate`` reply."""

    text: str = Field(default="", description="Generated text")
    model: str = Field(default="", description="Model that produced the text")
    duration_ms: float = Field(default=0.0, description="Server-side generation time in ms")


class OllamaClient:
    """Sends one prompt per call to an Ollama server.

    A fresh ``httpx.AsyncClient`` is opened per request; the pipeline makes
    at most two calls per run.
    """

    def __init__(self, base_url: str = "http://localhost:11434", timeout: float = 120) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=_CONNECT_TIMEOUT),
        )

    @staticmethod
    def _build_payload(prompt: str, model: str, system: str, temperature: float | None) -> dict[str, Any]:
        payload: dict[str, Any] = {"model": model, "prompt": prompt, "stream": False}
        if system:
            payload["system"] = system
        if temperature is not None:
            payload["options"] = {"temperature": temperature}
        return payload

    @staticmethod
    def _parse_reply(data: Any, model: str) -> OllamaReply:
        """Validate a decoded body.  ``total_duration`` is in nanoseconds."""
        if not isinstance(data, dict) or not isinstance(data.get("response"), str):
            raise MalformedUpstreamResponseError(
                "Ollama reply has no 'response' text", fragment=str(data)
            )
        return OllamaReply(
            text=data["response"],
            model=data.get("model") or model,
            duration_ms=(data.get("total_duration") or 0) / 1_000_000.0,
        )

    async def generate(
        self,
        prompt: str,
        model: str = "qwen2.5-coder:14b",
        system: str = "",
        temperature: float | None = None,
    ) -> OllamaReply:
        """Generate text for *prompt* with *model*.

        Args:
            prompt: The user prompt.
            model: Ollama model tag.
            system: Optional system prompt.
            temperature: Optional sampling temperature override.

        Raises:
            UpstreamUnavailableError: The server could not be reached, timed
                out, or answered with an error status.
            MalformedUpstreamResponseError: The body is not a generation reply.
        """
        payload = self._build_payload(prompt, model, system, temperature)
        try:
            async with self._client() as client:
                response = await client.post("/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailableError(
                f"Request to Ollama timed out after {self.timeout}s", resource=self.base_url
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailableError(
                f"Ollama returned HTTP {exc.response.status_code} for model '{model}'",
                resource=self.base_url,
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailableError(
                f"Cannot reach Ollama at {self.base_url}: {exc}", resource=self.base_url
            ) from exc
        except ValueError as exc:
            raise MalformedUpstreamResponseError(
                "Ollama reply is not JSON", fragment=str(exc)
            ) from exc

        return self._parse_reply(data, model)
