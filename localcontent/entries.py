"""
localcontent/entries.py -- Entry CRUD for collections.

Each entry lives at ``<content_dir>/<collection>/<id>.json`` wrapped as
``{"data": <entry>}``.  Writes replace the whole document after schema
validation; reads treat a missing or unreadable file as "no entry".

Usage:
    from localcontent.entries import EntryStore

    store = EntryStore(content_dir, registry)
    store.set_entry("posts", "hello-world", {"title": "Hello"})
    post = store.get_entry("posts", "hello-world", include=["author"])
    store.delete_entry("posts", "hello-world")
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Iterable

from localcontent.errors import (
    CollectionNotFoundError,
    EntryValidationError,
    InvalidIdentifierError,
)
from localcontent.registry import Collection, CollectionReference, SchemaRegistry
from localcontent.schemas import (
    format_validation_errors,
    humanize_error,
    is_reference_value,
    validate_document,
)
from localcontent.utils import (
    is_safe_name,
    read_json_document,
    safe_unlink,
    write_envelope,
)

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = ".json"


class EntryStore:
    """CRUD over per-collection JSON files.

    Parameters
    ----------
    content_dir : str or pathlib.Path
        Root of the content tree.
    registry : SchemaRegistry
        Source of collection declarations and schemas.
    """

    def __init__(self, content_dir, registry: SchemaRegistry):
        self.content_dir = Path(content_dir)
        self.registry = registry

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def collection_dir(self, collection: Collection) -> Path:
        return self.content_dir / collection.name

    def entry_path(self, collection: Collection, entry_id: str) -> Path:
        return self.collection_dir(collection) / f"{entry_id}{ENTRY_SUFFIX}"

    def entry_files(self, collection: Collection) -> list[Path]:
        """Return the entry files of *collection* in directory order.

        A missing collection directory yields an empty list.
        """
        directory = self.collection_dir(collection)
        try:
            with os.scandir(directory) as it:
                return [
                    Path(item.path) for item in it
                    if item.name.endswith(ENTRY_SUFFIX) and item.is_file()
                ]
        except FileNotFoundError:
            return []

    def entry_ids(self, collection_ref: CollectionReference) -> list[str]:
        """Return the sorted ids of every entry stored for a collection."""
        collection = self.registry.resolve_collection(collection_ref)
        return sorted(p.name[: -len(ENTRY_SUFFIX)] for p in self.entry_files(collection))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read_entry_file(self, path: Path) -> Any:
        """Return the unwrapped entry stored at *path*, or None."""
        result = read_json_document(path)
        if not result.ok:
            if not result.missing:
                logger.warning("Skipping unreadable entry %s (%s): %s",
                               path, result.status.value, result.error)
            return None
        document = result.value
        if not isinstance(document, dict):
            logger.warning("Skipping entry %s: missing data envelope", path)
            return None
        return document.get("data")

    def get_entry(
        self,
        collection_ref: CollectionReference,
        entry_id: str,
        include: Iterable[str] | None = None,
    ) -> Any:
        """Load a single entry.

        Parameters
        ----------
        collection_ref : str or Collection
        entry_id : str
        include : iterable of str, optional
            Reference fields whose target entry should be attached under
            ``entry``.

        Returns
        -------
        dict or None
            The entry, or None when it does not exist or cannot be read.

        Raises
        ------
        CollectionNotFoundError
            If *collection_ref* names an undeclared collection.
        """
        collection = self.registry.resolve_collection(collection_ref)
        if not is_safe_name(entry_id):
            return None
        entry = self.read_entry_file(self.entry_path(collection, entry_id))
        if entry is not None and include:
            self.resolve_references(entry, include)
        return entry

    def resolve_references(self, entry: Any, include: Iterable[str]) -> Any:
        """Attach the referenced entry to each included reference field.

        Only one level is resolved: the attached entries are loaded without
        their own includes.
        """
        if not isinstance(entry, dict):
            return entry
        for field in include:
            value = entry.get(field)
            if is_reference_value(value):
                value["entry"] = self._load_reference(value)
        return entry

    def _load_reference(self, reference: dict) -> Any:
        try:
            return self.get_entry(reference["collection"], str(reference["id"]))
        except CollectionNotFoundError:
            logger.warning("Reference to undeclared collection '%s' left unresolved",
                           reference["collection"])
            return None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_entry(self, collection_ref: CollectionReference, entry_id: str, data: Any) -> None:
        """Validate *data* and write it as the entry *entry_id*.

        The collection schema is translated against every registered
        collection on each call, so references to collections declared
        after start-up are checked correctly.

        Raises
        ------
        CollectionNotFoundError
            If the collection is not declared.
        InvalidIdentifierError
            If *entry_id* cannot be used as a file name.
        EntryValidationError
            If *data* fails validation.  Nothing is written.
        """
        collection = self.registry.resolve_collection(collection_ref)
        if not is_safe_name(entry_id):
            raise InvalidIdentifierError(f"Invalid entry id: {entry_id!r}")

        all_schemas = self.registry.collection_schemas()
        all_schemas.setdefault(collection.name, collection.schema)
        errors = validate_document(data, collection.schema, all_schemas)
        if errors:
            raise EntryValidationError(
                format_validation_errors(errors, f"collection '{collection.name}'"),
                [humanize_error(e) for e in errors],
            )

        write_envelope(self.entry_path(collection, entry_id), data)
        logger.debug("Wrote entry %s/%s", collection.name, entry_id)

    def delete_entry(self, collection_ref: CollectionReference, entry_id: str) -> bool:
        """Delete an entry.  Returns False if there was nothing to delete."""
        collection = self.registry.resolve_collection(collection_ref)
        if not is_safe_name(entry_id):
            return False
        deleted = safe_unlink(self.entry_path(collection, entry_id))
        if deleted:
            logger.debug("Deleted entry %s/%s", collection.name, entry_id)
        return deleted
