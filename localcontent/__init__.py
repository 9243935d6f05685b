"""
localcontent -- a file-backed content repository.

Typed entries, singleton globals and binary assets stored as plain files,
with schema-validated writes and filter/sort/paginate queries.
"""

from localcontent.api import LocalContent
from localcontent.errors import (
    CollectionNotFoundError,
    ContentError,
    ContentValidationError,
    EntryValidationError,
    GlobalNotFoundError,
    GlobalValidationError,
    InvalidIdentifierError,
)
from localcontent.images import AssetTransformOptions, PillowImageProcessor
from localcontent.registry import Collection, Global
from localcontent.schemas import object_schema, reference

__all__ = [
    "AssetTransformOptions",
    "Collection",
    "CollectionNotFoundError",
    "ContentError",
    "ContentValidationError",
    "EntryValidationError",
    "Global",
    "GlobalNotFoundError",
    "GlobalValidationError",
    "InvalidIdentifierError",
    "LocalContent",
    "PillowImageProcessor",
    "object_schema",
    "reference",
]
