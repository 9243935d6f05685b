"""
localcontent/models/factory.py -- Dynamic Pydantic model generation for globals.

Global values are parsed rather than merely checked: the value that gets
persisted is the *coerced* form produced by a Pydantic v2 model built from
the global's declarative schema.  Coercion means:

    - unknown keys are dropped (at every nesting level), or rejected where
      the object declares ``additionalProperties: false``,
    - schema ``default`` values are filled in for absent fields,
    - lax Pydantic conversions apply (e.g. ``"3"`` for an integer field).

Absent optional fields without a default stay absent in the output instead
of turning into ``null``.

Usage::

    from localcontent.models.factory import ModelFactory

    factory = ModelFactory()
    result = factory.validate("site-settings", schema, value)
    if result.passed:
        persist(result.value)
"""

from __future__ import annotations

import logging
import re
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

logger = logging.getLogger(__name__)

_HAS_DEFAULT = "x-has-default"


class _GlobalBase(BaseModel):
    model_config = ConfigDict(extra="ignore")


class _ClosedBase(BaseModel):
    """Base for objects declaring ``additionalProperties: false``."""

    model_config = ConfigDict(extra="forbid")


class ReferenceValue(_GlobalBase):
    """A ``{id, collection}`` reference stored inside a global."""

    id: str
    collection: str
    entry: Optional[dict[str, Any]] = None


# ------------------------------------------------------------------
# Type mapping: declarative schema -> Python type annotation
# ------------------------------------------------------------------

def _class_name(name: str) -> str:
    parts = re.split(r"[^0-9A-Za-z]+", name)
    return "".join(p[:1].upper() + p[1:] for p in parts if p) or "Anonymous"


def _schema_to_python(prop: Any, name: str) -> Any:
    """Convert one schema node to a (non-Optional) type annotation.

    Handles: string, integer, number, boolean, null, array, object, enums,
    references, anyOf/oneOf unions and ``type`` lists.
    """
    if not isinstance(prop, dict):
        return Any

    if "enum" in prop:
        values = tuple(prop["enum"])
        if values and all(isinstance(v, (str, int, bool)) for v in values):
            return Literal[values]  # type: ignore[valid-type]
        return Any

    if "const" in prop:
        return Literal[prop["const"]]  # type: ignore[valid-type]

    for union_key in ("anyOf", "oneOf"):
        if union_key in prop:
            members = tuple(
                _schema_to_python(sub, f"{name}_{i}")
                for i, sub in enumerate(prop[union_key])
            )
            return Union[members] if members else Any  # type: ignore[valid-type]

    json_type = prop.get("type")
    if isinstance(json_type, list):
        members = tuple(
            _schema_to_python(dict(prop, type=t), name) for t in json_type
        )
        return Union[members]  # type: ignore[valid-type]

    if json_type == "string":
        return str
    if json_type == "integer":
        return int
    if json_type == "number":
        return Union[int, float]
    if json_type == "boolean":
        return bool
    if json_type == "null":
        return type(None)
    if json_type == "reference":
        return ReferenceValue
    if json_type == "array":
        item_type = _schema_to_python(prop.get("items", {}), f"{name}_item")
        return list[item_type]  # type: ignore[valid-type]
    if json_type == "object":
        if "properties" not in prop:
            return dict[str, Any]
        return build_model(name, prop)
    return Any


def _field_definition(prop_name: str, prop: Any, required: set[str], owner: str) -> tuple:
    """Build the ``(annotation, FieldInfo)`` pair for ``create_model``."""
    prop = prop if isinstance(prop, dict) else {}
    python_type = _schema_to_python(prop, f"{owner}_{prop_name}")

    kwargs: dict[str, Any] = {}
    desc = prop.get("description", "")
    if desc:
        kwargs["description"] = desc

    if prop_name in required:
        return (python_type, Field(**kwargs))
    if "default" in prop:
        kwargs["json_schema_extra"] = {_HAS_DEFAULT: True}
        return (Optional[python_type], Field(default=prop["default"], **kwargs))
    return (Optional[python_type], Field(default=None, **kwargs))


def build_model(name: str, schema: dict) -> type[BaseModel]:
    """Generate a Pydantic model class from an object schema."""
    properties = schema.get("properties", {})
    required = set(schema.get("required", []))
    class_name = _class_name(name) + "Model"

    field_definitions: dict[str, Any] = {}
    for prop_name, prop_def in properties.items():
        field_definitions[prop_name] = _field_definition(prop_name, prop_def, required, name)

    base = _ClosedBase if schema.get("additionalProperties") is False else _GlobalBase
    return create_model(
        class_name,
        __base__=base,
        __module__=__name__,
        **field_definitions,
    )


# ------------------------------------------------------------------
# Dumping
# ------------------------------------------------------------------

def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        result = {}
        for field_name, info in type(value).model_fields.items():
            extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
            if field_name in value.model_fields_set or extra.get(_HAS_DEFAULT):
                result[field_name] = _dump(getattr(value, field_name))
        return result
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    return value


def dump_model(instance: BaseModel) -> dict:
    """Return the coerced value without keys the caller never supplied."""
    return _dump(instance)


# ------------------------------------------------------------------
# ModelFactory
# ------------------------------------------------------------------

class ModelFactory:
    """Generates and caches Pydantic models for global schemas.

    The cache is keyed by global name and remembers which schema object
    produced the model, so re-declaring a global with a new schema
    rebuilds its model on next use.
    """

    def __init__(self):
        self._model_cache: dict[str, tuple[dict, type[BaseModel]]] = {}

    def get_model(self, name: str, schema: dict) -> type[BaseModel]:
        cached = self._model_cache.get(name)
        if cached is not None and cached[0] is schema:
            return cached[1]
        model = self._build(name, schema)
        self._model_cache[name] = (schema, model)
        return model

    @staticmethod
    def _build(name: str, schema: dict) -> type[BaseModel]:
        if schema.get("type", "object") == "object":
            return build_model(name, schema)
        # Non-object globals are wrapped in a single "value" field.
        logger.debug("Wrapping non-object schema for global '%s'", name)
        return create_model(
            _class_name(name) + "ValueModel",
            __base__=_GlobalBase,
            __module__=__name__,
            value=(_schema_to_python(schema, name), Field()),
        )

    def validate(self, name: str, schema: dict, value: Any) -> "ValidationResult":
        """Validate and coerce *value* against the schema of global *name*.

        Returns
        -------
        ValidationResult
            ``passed``, human-readable ``errors`` and the coerced ``value``.
        """
        model = self.get_model(name, schema)
        wrapped = schema.get("type", "object") != "object"
        try:
            instance = model.model_validate({"value": value} if wrapped else value)
        except ValidationError as exc:
            errors = [_humanize_pydantic_error(err, wrapped) for err in exc.errors()]
            return ValidationResult(passed=False, errors=errors, value=None)
        dumped = dump_model(instance)
        return ValidationResult(passed=True, errors=[], value=dumped["value"] if wrapped else dumped)


# ------------------------------------------------------------------
# Validation result
# ------------------------------------------------------------------

class ValidationResult:
    """Result of validating a global value.

    Attributes
    ----------
    passed : bool
        Whether validation succeeded.
    errors : list[str]
        Human-readable error messages (empty if passed).
    value : object
        The coerced value (only set if passed).
    """

    __slots__ = ("passed", "errors", "value")

    def __init__(self, passed: bool, errors: list[str], value: Any):
        self.passed = passed
        self.errors = errors
        self.value = value


# ------------------------------------------------------------------
# Error humanization
# ------------------------------------------------------------------

def _humanize_pydantic_error(err: dict, wrapped: bool = False) -> str:
    """Convert a single Pydantic error dict to a human-friendly message.

    Pydantic error dicts look like::

        {
            "type": "string_type",
            "loc": ("title",),
            "msg": "Input should be a valid string",
            "input": 42,
        }
    """
    loc = tuple(err.get("loc", ()))
    if wrapped and loc[:1] == ("value",):
        loc = loc[1:]
    msg = err.get("msg", "Validation error")
    err_type = err.get("type", "")

    field_path = ".".join(str(part) for part in loc)
    if not field_path:
        field_path = "(root)"

    if err_type == "missing":
        return f"The field '{field_path}' is required but was not provided."
    if err_type == "literal_error":
        return f"The field '{field_path}' has an invalid value. {msg}."
    if "type" in err_type:
        return f"The field '{field_path}' has the wrong type. {msg}."
    return f"Field '{field_path}': {msg}."
