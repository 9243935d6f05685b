"""
localcontent/api.py -- The in-process content API.

``LocalContent`` is the single object editors, HTTP handlers and build
scripts talk to.  It owns the registry and wires the entry, global and
asset stores to one content directory::

    <content_dir>/
        <collection>/<id>.json     {"data": <entry>}
        globals/<name>.json        {"data": <value>}
        assets/<filename>          raw bytes

Usage:
    from localcontent import Collection, Global, LocalContent

    content = LocalContent(
        "site/content",
        collections=[Collection("posts", post_schema)],
        globals=[Global("settings", settings_schema)],
    )
    content.set_entry("posts", "hello", {"title": "Hello"})
    page = content.get_entries("posts", filters={"status": "published"},
                               sort=[("createdAt", "desc")], include_count=True)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Sequence

from localcontent.assets import Asset, AssetData, AssetStore, UploadedAsset
from localcontent.config import ContentSettings
from localcontent.entries import EntryStore
from localcontent.globals_store import GlobalStore
from localcontent.images import ImageProcessor, PillowImageProcessor
from localcontent.query import DEFAULT_INCLUDE_WORKERS, DEFAULT_LIMIT, EntryPage, QueryEngine
from localcontent.registry import (
    Collection,
    CollectionReference,
    Global,
    GlobalReference,
    SchemaRegistry,
)

logger = logging.getLogger(__name__)

_DEFAULT_PROCESSOR = object()


class LocalContent:
    """File-backed store for entries, globals and assets.

    Parameters
    ----------
    content_dir : str or pathlib.Path
        Root of the content tree.  Created lazily on first write.
    collections : iterable of Collection, optional
    globals : iterable of Global, optional
    image_processor : ImageProcessor or None, optional
        Defaults to a ``PillowImageProcessor``.  Pass ``None`` to serve
        images untransformed.
    default_limit : int, optional
        Page size for ``get_entries`` when none is given.
    include_workers : int, optional
        Bound on concurrent reference lookups in ``get_entries``.
    """

    def __init__(
        self,
        content_dir,
        collections: Iterable[Collection] | None = None,
        globals: Iterable[Global] | None = None,
        image_processor: ImageProcessor | None = _DEFAULT_PROCESSOR,  # type: ignore[assignment]
        default_limit: int = DEFAULT_LIMIT,
        include_workers: int = DEFAULT_INCLUDE_WORKERS,
    ):
        self.content_dir = Path(content_dir)
        logger.info("The content dir is %s", self.content_dir)

        if image_processor is _DEFAULT_PROCESSOR:
            image_processor = PillowImageProcessor()

        self.registry = SchemaRegistry(collections, globals)
        self.entries = EntryStore(self.content_dir, self.registry)
        self.query = QueryEngine(self.entries, default_limit=default_limit, include_workers=include_workers)
        self.globals_store = GlobalStore(self.content_dir, self.registry)
        self.assets = AssetStore(self.content_dir, image_processor=image_processor)

    @classmethod
    def from_settings(
        cls,
        settings: ContentSettings,
        collections: Iterable[Collection] | None = None,
        globals: Iterable[Global] | None = None,
        **kwargs,
    ) -> "LocalContent":
        return cls(
            settings.content_dir,
            collections=collections,
            globals=globals,
            default_limit=settings.default_limit,
            include_workers=settings.include_workers,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_config(
        self,
        collections: Iterable[Collection] | None = None,
        globals: Iterable[Global] | None = None,
    ) -> None:
        """Replace all collection and global declarations at once."""
        snapshot = self.registry.configure(collections, globals)
        logger.debug("Registry now holds %d collections and %d globals",
                     len(snapshot.collections), len(snapshot.globals))

    def get_collections(self) -> list[Collection]:
        return self.registry.collections()

    def get_collection(self, ref: CollectionReference) -> Collection:
        return self.registry.resolve_collection(ref)

    def get_globals(self) -> list[Global]:
        return self.registry.globals()

    def get_global(self, ref: GlobalReference) -> Global:
        return self.registry.resolve_global(ref)

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def get_entry(self, collection: CollectionReference, entry_id: str,
                  include: Iterable[str] | None = None) -> Any:
        return self.entries.get_entry(collection, entry_id, include=include)

    def get_entries(
        self,
        collection: CollectionReference,
        *,
        include: Iterable[str] | None = None,
        include_count: bool = False,
        limit: int | None = None,
        offset: int | None = None,
        filters: dict | None = None,
        sort: Iterable[Sequence[str]] | None = None,
    ) -> EntryPage:
        return self.query.get_entries(
            collection,
            include=include,
            include_count=include_count,
            limit=limit,
            offset=offset,
            filters=filters,
            sort=sort,
        )

    def set_entry(self, collection: CollectionReference, entry_id: str, data: Any) -> None:
        self.entries.set_entry(collection, entry_id, data)

    def delete_entry(self, collection: CollectionReference, entry_id: str) -> bool:
        return self.entries.delete_entry(collection, entry_id)

    # ------------------------------------------------------------------
    # Globals
    # ------------------------------------------------------------------

    def get_global_values(self) -> dict[str, Any]:
        return self.globals_store.get_global_values()

    def get_global_value(self, ref: GlobalReference) -> Any:
        return self.globals_store.get_global_value(ref)

    def set_global_value(self, ref: GlobalReference, value: Any) -> Any:
        return self.globals_store.set_global_value(ref, value)

    def delete_global_value(self, ref: GlobalReference) -> bool:
        return self.globals_store.delete_global_value(ref)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def upload_asset(self, data: bytes, filename: str, content_type: str | None = None) -> UploadedAsset:
        return self.assets.upload_asset(data, filename, content_type=content_type)

    def get_asset(self, filename: str, options=None) -> AssetData | None:
        return self.assets.get_asset(filename, options)

    def list_assets(self, search: str | None = None, limit: int | None = None,
                    start_after: str | None = None) -> list[Asset]:
        return self.assets.list_assets(search=search, limit=limit, start_after=start_after)

    def delete_asset(self, filename: str) -> bool:
        return self.assets.delete_asset(filename)
