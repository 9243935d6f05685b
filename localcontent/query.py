"""
localcontent/query.py -- Listing entries of a collection.

``QueryEngine.get_entries`` runs a fixed pipeline over a linear scan of the
collection directory:

    read -> filter -> count -> offset -> limit -> sort -> include

Sorting happens *after* pagination, so it orders the returned page only.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from localcontent.entries import EntryStore
from localcontent.filters import does_match_filter
from localcontent.registry import CollectionReference
from localcontent.sorting import sort_entries

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 1000
DEFAULT_INCLUDE_WORKERS = 8


@dataclass
class EntryPage:
    """One page of a listing.

    ``count`` is the number of entries that passed the filter before
    pagination.  It is only filled in when the caller asked for it.
    """

    entries: list = field(default_factory=list)
    limit: int = DEFAULT_LIMIT
    offset: int = 0
    count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "entries": self.entries,
            "limit": self.limit,
            "offset": self.offset,
        }
        if self.count is not None:
            result["count"] = self.count
        return result


class QueryEngine:
    """Filter, paginate, sort and resolve references over an EntryStore.

    Parameters
    ----------
    store : EntryStore
    default_limit : int, optional
        Page size used when the caller gives none (default 1000).
    include_workers : int, optional
        Upper bound on concurrent reference lookups (default 8).
    """

    def __init__(
        self,
        store: EntryStore,
        default_limit: int = DEFAULT_LIMIT,
        include_workers: int = DEFAULT_INCLUDE_WORKERS,
    ):
        self.store = store
        self.default_limit = default_limit
        self.include_workers = max(1, include_workers)

    def get_entries(
        self,
        collection_ref: CollectionReference,
        *,
        include: Iterable[str] | None = None,
        include_count: bool = False,
        limit: int | None = None,
        offset: int | None = None,
        filters: dict | None = None,
        sort: Iterable[Sequence[str]] | None = None,
    ) -> EntryPage:
        """List the entries of a collection.

        Parameters
        ----------
        collection_ref : str or Collection
        include : iterable of str, optional
            Reference fields to resolve one level deep.
        include_count : bool, optional
            Fill in ``EntryPage.count``.
        limit : int, optional
            Maximum number of entries returned.  ``0`` returns none.
        offset : int, optional
            Number of filtered entries skipped before the page starts.
        filters : dict, optional
            See ``localcontent.filters``.
        sort : iterable of (field, direction), optional
            See ``localcontent.sorting``.

        Raises
        ------
        CollectionNotFoundError
            If *collection_ref* names an undeclared collection.
        """
        limit = self.default_limit if limit is None else max(0, limit)
        offset = max(0, offset or 0)
        collection = self.store.registry.resolve_collection(collection_ref)

        entries = []
        for path in self.store.entry_files(collection):
            entry = self.store.read_entry_file(path)
            if entry is not None:
                entries.append(entry)

        if filters:
            entries = [e for e in entries if does_match_filter(e, filters)]
        total_count = len(entries)

        entries = entries[offset:offset + limit]
        sort_entries(entries, sort)

        include = list(include or ())
        if include and entries:
            self._resolve_all(entries, include)

        return EntryPage(
            entries=entries,
            limit=limit,
            offset=offset,
            count=total_count if include_count else None,
        )

    def _resolve_all(self, entries: list, include: list[str]) -> None:
        workers = min(self.include_workers, len(entries))
        if workers == 1:
            for entry in entries:
                self.store.resolve_references(entry, include)
            return
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="include") as pool:
            # list() re-raises the first worker exception, if any
            list(pool.map(lambda e: self.store.resolve_references(e, include), entries))
