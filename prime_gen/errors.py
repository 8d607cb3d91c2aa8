"""Exception hierarchy for prime-gen.

Every failure the generator can hit maps onto one class below.  Each exception
carries the offending ``resource`` (a path, an argument, or a response
fragment) so the CLI can tell the user exactly what to fix.
"""

from __future__ import annotations


class PrimeGenError(Exception):
    """Base class for all terminal generator failures."""

    def __init__(self, message: str, resource: str | None = None) -> None:
        self.resource = resource
        super().__init__(message)


class InvalidInputError(PrimeGenError):
    """A path or argument has the wrong shape (e.g. not an HTML document)."""


class NotFoundError(PrimeGenError):
    """A markup file or directory does not exist."""


class MalformedUpstreamResponseError(PrimeGenError):
    """The remote text-generation backend returned unusable text."""

    def __init__(self, message: str, fragment: str = "") -> None:
        self.fragment = fragment
        super().__init__(message, resource=_truncate(fragment))


class UpstreamUnavailableError(PrimeGenError):
    """The remote backend could not be reached or timed out."""


class RegistryNotFoundError(PrimeGenError):
    """The shared route registry file does not exist."""


class RegistryMalformedError(PrimeGenError):
    """The route registry does not contain a usable route array."""


class RegistryLockedError(PrimeGenError):
    """Another run holds the registry lock for longer than the timeout."""


def _truncate(text: str, limit: int = 300) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
