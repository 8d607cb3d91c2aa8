"""prime-gen markup parser.

Extracts an ordered field schema from an HTML form document, either locally
(BeautifulSoup) or through a remote Ollama model.

Usage::

    from prime_gen.parser import extract_schema

    schema = await extract_schema("forms/order-entry.html")
    for field in schema.fields:
        print(field.label, field.control_name, field.raw_type)
"""

from prime_gen.parser.extractor import (
    extract_schema,
    parse_markup,
    read_markup,
    resolve_label,
    resolve_markup_path,
)
from prime_gen.parser.models import FieldDescriptor, LegacyMarker, Schema
from prime_gen.parser.normalizer import FieldNameAllocator, normalize_field_name
from prime_gen.parser.remote import RemoteFieldExtractor, extract_json_payload

__all__ = [
    "extract_schema",
    "parse_markup",
    "read_markup",
    "resolve_label",
    "resolve_markup_path",
    "FieldDescriptor",
    "LegacyMarker",
    "Schema",
    "FieldNameAllocator",
    "normalize_field_name",
    "RemoteFieldExtractor",
    "extract_json_payload",
]
