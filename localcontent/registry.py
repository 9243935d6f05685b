"""
localcontent/registry.py -- Collection and global declarations.

The registry is a configuration view, not a source of truth: it only
knows which collections and globals exist and what their schemas are.
Content always lives on disk.

Reconfiguration swaps a whole immutable ``RegistrySnapshot`` under a lock,
so a reader holds either the old snapshot or the new one, never a mix.

Usage::

    from localcontent.registry import Collection, SchemaRegistry

    registry = SchemaRegistry([Collection("posts", post_schema)])
    posts = registry.resolve_collection("posts")
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Union

from localcontent.errors import CollectionNotFoundError, GlobalNotFoundError


@dataclass(frozen=True)
class Collection:
    """A named group of entries sharing one object schema.

    Parameters
    ----------
    name : str
        Unique name, also used as the on-disk directory name.
    schema : dict
        Declarative object schema (see ``localcontent.schemas``).
    label : str, optional
        Human-readable name for editors.  Defaults to *name*.
    """

    name: str
    schema: dict = field(compare=False, hash=False)
    label: str = ""

    @property
    def display_name(self) -> str:
        return self.label or self.name


@dataclass(frozen=True)
class Global:
    """A named singleton document with its own schema."""

    name: str
    schema: dict = field(compare=False, hash=False)
    label: str = ""

    @property
    def display_name(self) -> str:
        return self.label or self.name


CollectionReference = Union[str, Collection]
GlobalReference = Union[str, Global]


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable name-keyed view of every declared collection and global."""

    collections: Mapping[str, Collection]
    globals: Mapping[str, Global]

    @classmethod
    def build(
        cls,
        collections: Iterable[Collection] | None = None,
        globals: Iterable[Global] | None = None,
    ) -> "RegistrySnapshot":
        # Later declarations with the same name replace earlier ones.
        return cls(
            collections=MappingProxyType({c.name: c for c in collections or ()}),
            globals=MappingProxyType({g.name: g for g in globals or ()}),
        )


class SchemaRegistry:
    """Holds the active ``RegistrySnapshot`` and resolves references.

    Parameters
    ----------
    collections : iterable of Collection, optional
    globals : iterable of Global, optional
    """

    def __init__(
        self,
        collections: Iterable[Collection] | None = None,
        globals: Iterable[Global] | None = None,
    ):
        self._lock = threading.Lock()
        self._snapshot = RegistrySnapshot.build(collections, globals)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def configure(
        self,
        collections: Iterable[Collection] | None = None,
        globals: Iterable[Global] | None = None,
    ) -> RegistrySnapshot:
        """Replace every declaration at once and return the new snapshot."""
        snapshot = RegistrySnapshot.build(collections, globals)
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    @property
    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            return self._snapshot

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_collection(self, ref: CollectionReference) -> Collection:
        """Return the Collection for a name or pass a handle through.

        Raises
        ------
        CollectionNotFoundError
            If *ref* is a name that is not registered.
        """
        if isinstance(ref, Collection):
            return ref
        collection = self.snapshot.collections.get(ref)
        if collection is None:
            raise CollectionNotFoundError(ref)
        return collection

    def resolve_global(self, ref: GlobalReference) -> Global:
        """Return the Global for a name or pass a handle through.

        Raises
        ------
        GlobalNotFoundError
            If *ref* is a name that is not registered.
        """
        if isinstance(ref, Global):
            return ref
        glob = self.snapshot.globals.get(ref)
        if glob is None:
            raise GlobalNotFoundError(ref)
        return glob

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def collections(self) -> list[Collection]:
        return list(self.snapshot.collections.values())

    def globals(self) -> list[Global]:
        return list(self.snapshot.globals.values())

    def collection_schemas(self) -> dict[str, dict[str, Any]]:
        """Return ``{collection name: schema}`` for every registered collection."""
        return {name: c.schema for name, c in self.snapshot.collections.items()}
