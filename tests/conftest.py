"""
Shared pytest fixtures for the localcontent test suite.

Provides:
    - author_schema / post_schema / category_schema: declarative schemas
      (posts reference authors, categories reference themselves)
    - settings_schema: a global schema with defaults
    - content_dir: an empty temporary content directory
    - content: a LocalContent wired to content_dir with all of the above
    - sample_posts: post entries with statuses and ISO dates
    - make_image: factory producing encoded image bytes with Pillow
"""

import io
import json
import sys
from pathlib import Path

import pytest
from PIL import Image

# ---------------------------------------------------------------------------
# Ensure localcontent/ is importable regardless of where pytest is invoked
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from localcontent import Collection, Global, LocalContent  # noqa: E402
from localcontent.schemas import object_schema, reference  # noqa: E402


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

@pytest.fixture
def author_schema():
    return object_schema(
        {
            "name": {"type": "string", "minLength": 1},
            "email": {"type": "string"},
        },
        required=["name"],
    )


@pytest.fixture
def post_schema():
    return object_schema(
        {
            "title": {"type": "string"},
            "status": {"type": "string", "enum": ["draft", "published"]},
            "views": {"type": "integer", "minimum": 0},
            "createdAt": {"type": ["string", "null"]},
            "tags": {"type": "array", "items": {"type": "string"}},
            "author": reference("authors"),
        },
        required=["title", "status"],
    )


@pytest.fixture
def category_schema():
    """A collection whose entries point at a parent category."""
    return object_schema(
        {
            "name": {"type": "string"},
            "parent": reference("categories"),
        },
        required=["name"],
    )


@pytest.fixture
def settings_schema():
    return object_schema(
        {
            "siteName": {"type": "string"},
            "postsPerPage": {"type": "integer", "default": 10},
            "theme": {"type": "string", "enum": ["light", "dark"]},
            "social": object_schema(
                {"twitter": {"type": "string"}, "github": {"type": "string"}},
            ),
        },
        required=["siteName"],
    )


@pytest.fixture
def collections(author_schema, post_schema, category_schema):
    return [
        Collection("authors", author_schema),
        Collection("posts", post_schema),
        Collection("categories", category_schema),
    ]


@pytest.fixture
def globals_(settings_schema):
    return [Global("settings", settings_schema)]


# ---------------------------------------------------------------------------
# Content directories
# ---------------------------------------------------------------------------

@pytest.fixture
def content_dir(tmp_path):
    """Return the path of a fresh (not yet created) content directory."""
    return tmp_path / "content"


@pytest.fixture
def content(content_dir, collections, globals_):
    """A LocalContent over an empty content directory."""
    return LocalContent(content_dir, collections=collections, globals=globals_)


@pytest.fixture
def sample_posts():
    """Five posts keyed by id, in the order they should be written."""
    return {
        "p1": {"title": "First", "status": "published", "views": 10,
               "createdAt": "2024-01-05T10:00:00Z", "tags": ["python"]},
        "p2": {"title": "Second", "status": "draft", "views": 3,
               "createdAt": "2024-02-01T08:30:00Z", "tags": []},
        "p3": {"title": "Third", "status": "published", "views": 42,
               "createdAt": "2024-03-15T12:00:00Z", "tags": ["python", "web"]},
        "p4": {"title": "Fourth", "status": "published", "views": 7,
               "createdAt": None, "tags": ["web"]},
        "p5": {"title": "Fifth", "status": "published", "views": 0,
               "createdAt": "2023-12-31T23:59:59Z", "tags": []},
    }


def write_raw_entry(content_dir: Path, collection: str, entry_id: str, data) -> Path:
    """Write an entry file directly, bypassing validation."""
    directory = Path(content_dir) / collection
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{entry_id}.json"
    with open(path, "w", encoding="utf-8") as fh:
        json.dump({"data": data}, fh)
    return path


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

@pytest.fixture
def make_image():
    """Return ``make(width, height, fmt="JPEG", mode="RGB") -> bytes``."""

    def _make(width, height, fmt="JPEG", mode="RGB", color="red"):
        img = Image.new(mode, (width, height), color=color)
        buffer = io.BytesIO()
        img.save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


def image_format(data: bytes) -> str:
    with Image.open(io.BytesIO(data)) as img:
        return img.format
