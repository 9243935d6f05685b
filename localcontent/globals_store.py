"""
localcontent/globals_store.py -- Singleton documents.

Every declared global is stored at ``<content_dir>/globals/<name>.json`` as
``{"data": <value>}``.  Writes are parsed through a Pydantic model built
from the global's schema, the coerced value is checked against the schema's
value constraints with jsonschema, and that coerced value is what gets
persisted.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from localcontent.errors import GlobalValidationError
from localcontent.models.factory import ModelFactory
from localcontent.registry import Global, GlobalReference, SchemaRegistry
from localcontent.schemas import humanize_error, validate_document
from localcontent.utils import read_envelope, safe_unlink, write_envelope

logger = logging.getLogger(__name__)

GLOBALS_DIRNAME = "globals"


class GlobalStore:
    """Read and write global values.

    Parameters
    ----------
    content_dir : str or pathlib.Path
    registry : SchemaRegistry
    model_factory : ModelFactory, optional
        Shared model cache; a private one is created when omitted.
    """

    def __init__(self, content_dir, registry: SchemaRegistry, model_factory: ModelFactory | None = None):
        self.content_dir = Path(content_dir)
        self.globals_dir = self.content_dir / GLOBALS_DIRNAME
        self.registry = registry
        self.model_factory = model_factory or ModelFactory()

    def global_path(self, glob: Global) -> Path:
        return self.globals_dir / f"{glob.name}.json"

    def get_global_value(self, ref: GlobalReference) -> Any:
        """Return the stored value, or None when missing or unreadable.

        Raises
        ------
        GlobalNotFoundError
            If *ref* names an undeclared global.
        """
        glob = self.registry.resolve_global(ref)
        return read_envelope(self.global_path(glob))

    def get_global_values(self) -> dict[str, Any]:
        """Return ``{name: value}`` for every declared global."""
        return {g.name: read_envelope(self.global_path(g)) for g in self.registry.globals()}

    def set_global_value(self, ref: GlobalReference, value: Any) -> Any:
        """Validate, coerce and store *value*.  Returns the coerced value.

        Raises
        ------
        GlobalNotFoundError
            If *ref* names an undeclared global.
        GlobalValidationError
            If *value* does not fit the schema.  Nothing is written.
        """
        glob = self.registry.resolve_global(ref)
        result = self.model_factory.validate(glob.name, glob.schema, value)
        if not result.passed:
            self._reject(glob, result.errors)

        # value constraints (minimum, pattern, minItems, ...) apply to the coerced form
        schema_errors = validate_document(result.value, glob.schema, self.registry.collection_schemas())
        if schema_errors:
            self._reject(glob, [humanize_error(e) for e in schema_errors])

        write_envelope(self.global_path(glob), result.value)
        logger.debug("Wrote global %s", glob.name)
        return result.value

    @staticmethod
    def _reject(glob: Global, errors: list[str]) -> None:
        lines = [f"The value for global '{glob.name}' has some issues that need fixing:"]
        lines.extend(f"  {i}. {err}" for i, err in enumerate(errors, 1))
        raise GlobalValidationError("\n".join(lines), errors)

    def delete_global_value(self, ref: GlobalReference) -> bool:
        """Remove the stored value.  Returns False if none was stored."""
        glob = self.registry.resolve_global(ref)
        return safe_unlink(self.global_path(glob))
