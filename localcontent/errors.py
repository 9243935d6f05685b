"""
localcontent/errors.py -- Exception taxonomy for the content engine.

Only configuration mistakes and rejected writes are raised.  Missing
content (entries, globals, assets) is reported through ``None`` / ``False``
return values instead, so none of those cases appear here.
"""

from __future__ import annotations


class ContentError(Exception):
    """Base class for every error raised by ``localcontent``."""


# ---------------------------------------------------------------------------
# Registry errors
# ---------------------------------------------------------------------------

class RegistryError(ContentError, LookupError):
    """A collection or global was referenced by a name that is not declared."""

    kind = "item"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{self.kind.capitalize()} {name} not found")


class CollectionNotFoundError(RegistryError):
    kind = "collection"


class GlobalNotFoundError(RegistryError):
    kind = "global"


# ---------------------------------------------------------------------------
# Write-path errors
# ---------------------------------------------------------------------------

class ContentValidationError(ContentError, ValueError):
    """A write payload failed its schema check.

    Attributes
    ----------
    errors : list[str]
        One human-readable line per failing field.
    """

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = list(errors or [])


class EntryValidationError(ContentValidationError):
    pass


class GlobalValidationError(ContentValidationError):
    pass


class InvalidIdentifierError(ContentError, ValueError):
    """An entry id or asset filename cannot be used as a file name."""
