"""
localcontent/utils.py -- Shared file helpers for the content engine.

All JSON writes use atomic temp-file-then-os.replace() so that a reader
scanning a collection never sees a partially-written document.

Reads come in two flavours.  ``read_json_document`` returns a
``ReadResult`` that tells a missing file apart from an unreadable or
corrupt one, which is what the stores log.  ``safe_read_json`` folds every
failure into a default value, which is what the stores return.
"""

from __future__ import annotations

import enum
import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JSON reads
# ---------------------------------------------------------------------------

class ReadStatus(enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    PARSE_ERROR = "parse_error"
    IO_ERROR = "io_error"


@dataclass(frozen=True)
class ReadResult:
    """Outcome of reading one JSON file.

    ``value`` is only meaningful when ``status`` is ``ReadStatus.OK``.
    ``error`` keeps the underlying exception for diagnostics.
    """

    status: ReadStatus
    value: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status is ReadStatus.OK

    @property
    def missing(self) -> bool:
        return self.status is ReadStatus.NOT_FOUND


def read_json_document(path) -> ReadResult:
    """Read and parse the JSON file at *path*.

    Parameters
    ----------
    path : str or pathlib.Path
        Absolute path to the JSON file.

    Returns
    -------
    ReadResult
        ``OK`` with the parsed value, ``NOT_FOUND`` when the file does not
        exist, ``PARSE_ERROR`` for invalid JSON, ``IO_ERROR`` for any other
        operating-system failure (permissions, path is a directory, ...).
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return ReadResult(ReadStatus.OK, json.load(fh))
    except FileNotFoundError as exc:
        return ReadResult(ReadStatus.NOT_FOUND, error=exc)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        return ReadResult(ReadStatus.PARSE_ERROR, error=exc)
    except OSError as exc:
        return ReadResult(ReadStatus.IO_ERROR, error=exc)


def safe_read_json(path, default=None):
    """Read a JSON file, returning *default* if the file is missing or corrupt.

    Corrupt and unreadable files are logged at WARNING; a missing file is
    an ordinary state and is not logged.
    """
    result = read_json_document(path)
    if result.ok:
        return result.value
    if not result.missing:
        logger.warning("Could not read %s (%s): %s", path, result.status.value, result.error)
    return default


def read_envelope(path):
    """Read a ``{"data": ...}`` document and return its payload, or None."""
    document = safe_read_json(path)
    if not isinstance(document, dict):
        return None
    return document.get("data")


# ---------------------------------------------------------------------------
# JSON writes (atomic)
# ---------------------------------------------------------------------------

def safe_write_json(path, data, *, indent=2):
    """Atomically write *data* as JSON to *path*.

    Uses a temporary file in the same directory followed by
    ``os.replace()`` so that readers never see a partially-written file.
    Parent directories are created if they do not exist.

    Parameters
    ----------
    path : str or pathlib.Path
        Absolute path to the target JSON file.
    data
        JSON-serialisable object to write.
    indent : int, optional
        JSON indentation level (default 2).
    """
    path = str(path)
    parent = os.path.dirname(path)
    os.makedirs(parent, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=indent, ensure_ascii=False)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def write_envelope(path, payload) -> None:
    """Write *payload* wrapped as ``{"data": payload}``."""
    safe_write_json(path, {"data": payload})


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}([Tt ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?([Zz]|[+-]\d{2}:?\d{2})?)?$")


def parse_iso_datetime(value) -> datetime | None:
    """Parse an ISO 8601 date or date-time string.

    Returns a timezone-aware datetime (naive values are taken as UTC), or
    None if *value* is not an ISO date string.
    """
    if not isinstance(value, str) or not _ISO_DATE_RE.match(value.strip()):
        return None
    text = value.strip()
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def as_timestamp(value) -> float | None:
    """Return a POSIX timestamp for datetime/date objects, else None."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp()
    return None


def is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# Misc file helpers
# ---------------------------------------------------------------------------

def safe_unlink(path) -> bool:
    """Remove *path*.  Returns False instead of raising if it is not there."""
    try:
        os.unlink(path)
        return True
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("Could not delete %s: %s", path, exc)
        return False


def is_safe_name(name) -> bool:
    """Return True if *name* can be used as a single path component."""
    if not isinstance(name, str) or not name or name in (".", ".."):
        return False
    if "/" in name or "\\" in name or "\x00" in name:
        return False
    return True
