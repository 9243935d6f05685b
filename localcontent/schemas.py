"""
localcontent/schemas.py -- Declarative schemas and their jsonschema translation.

Collections and globals declare their shape as JSON-Schema-style dicts.
One extension kind is understood on top of standard JSON Schema::

    {"type": "reference", "collection": "authors"}

which describes a field holding ``{"id": ..., "collection": "authors"}``
and, after inclusion, an ``entry`` side attribute with the referenced
document.

``convert_schema`` turns a collection schema into a plain Draft 2020-12
schema.  Reference nodes are expanded in place: the ``entry`` attribute is
checked against the referenced collection's own schema, whose reference
fields are in turn collapsed to the bare ``{id, collection}`` shape.
Expansion therefore stops after one level, which keeps self-referencing
collections finite.

Usage::

    from localcontent.schemas import build_validator, object_schema, reference

    posts = object_schema(
        {"title": {"type": "string"}, "author": reference("authors")},
        required=["title"],
    )
    validator = build_validator(posts, {"posts": posts, "authors": authors})
    errors = list(validator.iter_errors(data))
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import jsonschema

logger = logging.getLogger(__name__)

REFERENCE_TYPE = "reference"
FORMAT_PREFIX = "collection:"

# Editor-only annotations stripped before validation
_SCHEMA_SKIP_KEYS = frozenset({"label", "ui", "widget", "placeholder"})

# Keywords whose values are literal data, never sub-schemas
_LITERAL_KEYS = frozenset({"enum", "const", "default", "examples"})

# Keywords mapping arbitrary names to sub-schemas
_SCHEMA_MAP_KEYS = frozenset({
    "properties", "patternProperties", "$defs", "definitions", "dependentSchemas",
})


# ---------------------------------------------------------------------------
# Schema constructors
# ---------------------------------------------------------------------------

def reference(collection: str, **extra: Any) -> dict:
    """Return a reference field schema pointing at *collection*."""
    node = {"type": REFERENCE_TYPE, "collection": collection}
    node.update(extra)
    return node


def object_schema(
    properties: Mapping[str, dict],
    required: Iterable[str] | None = None,
    **extra: Any,
) -> dict:
    """Return an object schema with the given properties."""
    node: dict[str, Any] = {"type": "object", "properties": dict(properties)}
    if required:
        node["required"] = list(required)
    node.update(extra)
    return node


def is_reference(node: Any) -> bool:
    return isinstance(node, dict) and node.get("type") == REFERENCE_TYPE


def is_reference_value(value: Any) -> bool:
    """True for values shaped like ``{"id": ..., "collection": ...}``."""
    return (
        isinstance(value, dict)
        and bool(value.get("id"))
        and bool(value.get("collection"))
    )


def referenced_collections(schema: Any) -> set[str]:
    """Return the names of every collection referenced anywhere in *schema*."""
    found: set[str] = set()

    def _walk(node: Any) -> None:
        if isinstance(node, dict):
            if is_reference(node) and isinstance(node.get("collection"), str):
                found.add(node["collection"])
            for key, value in node.items():
                if key not in _LITERAL_KEYS:
                    _walk(value)
        elif isinstance(node, list):
            for item in node:
                _walk(item)

    _walk(schema)
    return found


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------

def convert_schema(schema: dict, all_schemas: Mapping[str, dict]) -> dict:
    """Translate a declarative schema into a Draft 2020-12 JSON Schema.

    Parameters
    ----------
    schema : dict
        The collection's own schema.
    all_schemas : mapping
        ``{collection name: schema}`` for every registered collection.

    Returns
    -------
    dict
        A new schema; the input is not modified.
    """
    return _convert(schema, all_schemas, expand=True)


def _convert(node: Any, all_schemas: Mapping[str, dict], *, expand: bool) -> Any:
    if isinstance(node, list):
        return [_convert(item, all_schemas, expand=expand) for item in node]
    if not isinstance(node, dict):
        return node
    if is_reference(node):
        return _reference_schema(node, all_schemas, expand=expand)

    converted: dict[str, Any] = {}
    for key, value in node.items():
        if key in _SCHEMA_SKIP_KEYS or key.startswith("x-"):
            continue
        if key in _LITERAL_KEYS:
            converted[key] = value
        elif key in _SCHEMA_MAP_KEYS and isinstance(value, dict):
            # keys here are field names, not keywords
            converted[key] = {
                name: _convert(sub, all_schemas, expand=expand)
                for name, sub in value.items()
            }
        else:
            converted[key] = _convert(value, all_schemas, expand=expand)
    return converted


def _reference_schema(node: dict, all_schemas: Mapping[str, dict], *, expand: bool) -> dict:
    target = node.get("collection")
    properties: dict[str, Any] = {
        "id": {"type": "string", "minLength": 1},
        "collection": {"type": "string", "format": f"{FORMAT_PREFIX}{target}"},
    }
    if expand and target in all_schemas:
        # The target's own references are collapsed, never expanded again.
        target_schema = _convert(all_schemas[target], all_schemas, expand=False)
        properties["entry"] = {"anyOf": [{"type": "null"}, target_schema]}

    result: dict[str, Any] = {
        "type": "object",
        "properties": properties,
        "required": ["id", "collection"],
    }
    if "description" in node:
        result["description"] = node["description"]
    return result


# ---------------------------------------------------------------------------
# Validator construction
# ---------------------------------------------------------------------------

def _make_reference_check(name: str, known: bool):
    def _check(instance: Any) -> bool:
        if not isinstance(instance, str):
            # type mismatches are reported by the "type" keyword
            return True
        return known and instance == name
    return _check


def reference_format_checker(
    collection_names: Iterable[str],
    referenced: Iterable[str] = (),
) -> jsonschema.FormatChecker:
    """Return a FormatChecker with one ``collection:<name>`` format per collection.

    Names in *referenced* that are not registered get a format that never
    matches, so a reference to an undeclared collection fails validation.
    """
    checker = jsonschema.FormatChecker()
    known = set(collection_names)
    for name in known | set(referenced):
        checker.checks(f"{FORMAT_PREFIX}{name}")(_make_reference_check(name, name in known))
    return checker


def build_validator(schema: dict, all_schemas: Mapping[str, dict]) -> jsonschema.Draft202012Validator:
    """Translate *schema* and compile a validator that understands references."""
    converted = convert_schema(schema, all_schemas)
    referenced = referenced_collections(schema)
    for target in list(referenced):
        referenced |= referenced_collections(all_schemas.get(target, {}))
    checker = reference_format_checker(all_schemas.keys(), referenced)
    return jsonschema.Draft202012Validator(converted, format_checker=checker)


def validate_document(data: Any, schema: dict, all_schemas: Mapping[str, dict]) -> list:
    """Return the ``jsonschema.ValidationError`` list for *data* (empty if valid)."""
    validator = build_validator(schema, all_schemas)
    return sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])


# ---------------------------------------------------------------------------
# Error humanisation
# ---------------------------------------------------------------------------

def humanize_error(error) -> str:
    """Convert a ``jsonschema.ValidationError`` into plain English."""
    path = ".".join(str(p) for p in error.absolute_path) if error.absolute_path else "(root)"
    msg = error.message
    if error.validator == "required":
        return f"Missing required field at {path}: {msg}"
    if error.validator == "type":
        return f"Wrong data type at '{path}': {msg}"
    if error.validator == "enum":
        return f"Invalid value at '{path}': {msg}"
    if error.validator == "format" and str(error.validator_value).startswith(FORMAT_PREFIX):
        target = str(error.validator_value)[len(FORMAT_PREFIX):]
        return f"Invalid reference at '{path}': expected collection '{target}', got {error.instance!r}"
    return f"Issue at '{path}': {msg}"


def format_validation_errors(errors: list, label: str) -> str:
    """Format a list of validation errors into a single message."""
    lines = [f"The data for {label} has some issues that need fixing:"]
    for i, err in enumerate(errors, 1):
        lines.append(f"  {i}. {humanize_error(err)}")
    return "\n".join(lines)
