"""
Tests for localcontent/entries.py -- entry CRUD through LocalContent.

Covers:
    - Write / read round trip and on-disk envelope format
    - Validation failures leave the store untouched
    - Delete semantics
    - Reference inclusion (one level, self references, dangling targets)
    - Unsafe identifiers
"""

import json

import pytest

from conftest import write_raw_entry
from localcontent.errors import (
    CollectionNotFoundError,
    ContentValidationError,
    EntryValidationError,
    InvalidIdentifierError,
)


class TestRoundTrip:

    def test_set_then_get(self, content):
        data = {"title": "Hello", "status": "draft", "views": 3}
        content.set_entry("posts", "hello", data)
        assert content.get_entry("posts", "hello") == data

    def test_envelope_on_disk(self, content, content_dir):
        content.set_entry("authors", "jane", {"name": "Jane"})
        path = content_dir / "authors" / "jane.json"
        with open(path, encoding="utf-8") as fh:
            assert json.load(fh) == {"data": {"name": "Jane"}}

    def test_overwrite_replaces_whole_entry(self, content):
        content.set_entry("posts", "p", {"title": "A", "status": "draft", "views": 1})
        content.set_entry("posts", "p", {"title": "B", "status": "published"})
        assert content.get_entry("posts", "p") == {"title": "B", "status": "published"}

    def test_collection_handle_accepted(self, content):
        posts = content.get_collection("posts")
        content.set_entry(posts, "p", {"title": "A", "status": "draft"})
        assert content.get_entry(posts, "p")["title"] == "A"

    def test_unicode_preserved(self, content, content_dir):
        content.set_entry("authors", "zoe", {"name": "Zoë 東京"})
        assert content.get_entry("authors", "zoe") == {"name": "Zoë 東京"}
        assert "Zoë" in (content_dir / "authors" / "zoe.json").read_text(encoding="utf-8")

    def test_missing_entry_is_none(self, content):
        assert content.get_entry("posts", "nothing") is None

    def test_entry_ids(self, content):
        content.set_entry("authors", "b", {"name": "B"})
        content.set_entry("authors", "a", {"name": "A"})
        assert content.entries.entry_ids("authors") == ["a", "b"]


class TestValidation:

    def test_invalid_entry_rejected(self, content):
        with pytest.raises(EntryValidationError) as exc_info:
            content.set_entry("posts", "bad", {"title": 7})
        err = exc_info.value
        assert isinstance(err, ContentValidationError)
        assert isinstance(err, ValueError)
        assert "collection 'posts'" in str(err)
        assert len(err.errors) == 2

    def test_rejection_leaves_state_unchanged(self, content, content_dir):
        content.set_entry("posts", "p", {"title": "Original", "status": "draft"})
        with pytest.raises(EntryValidationError):
            content.set_entry("posts", "p", {"title": "Changed", "status": "unknown"})
        assert content.get_entry("posts", "p") == {"title": "Original", "status": "draft"}

    def test_rejection_creates_no_file(self, content, content_dir):
        with pytest.raises(EntryValidationError):
            content.set_entry("posts", "new", {"status": "draft"})
        assert not (content_dir / "posts" / "new.json").exists()

    def test_reference_must_target_declared_collection(self, content):
        data = {"title": "A", "status": "draft",
                "author": {"id": "jane", "collection": "categories"}}
        with pytest.raises(EntryValidationError, match="Invalid reference"):
            content.set_entry("posts", "p", data)

    def test_undeclared_collection(self, content):
        with pytest.raises(CollectionNotFoundError):
            content.set_entry("pages", "home", {})
        with pytest.raises(CollectionNotFoundError):
            content.get_entry("pages", "home")

    @pytest.mark.parametrize("entry_id", ["", "..", "a/b", "..\\x"])
    def test_unsafe_id_rejected(self, content, entry_id):
        with pytest.raises(InvalidIdentifierError):
            content.set_entry("authors", entry_id, {"name": "X"})
        assert content.get_entry("authors", entry_id) is None
        assert content.delete_entry("authors", entry_id) is False


class TestDelete:

    def test_delete_existing(self, content):
        content.set_entry("authors", "jane", {"name": "Jane"})
        assert content.delete_entry("authors", "jane") is True
        assert content.get_entry("authors", "jane") is None

    def test_delete_missing_returns_false(self, content):
        assert content.delete_entry("authors", "ghost") is False

    def test_delete_twice(self, content):
        content.set_entry("authors", "jane", {"name": "Jane"})
        assert content.delete_entry("authors", "jane") is True
        assert content.delete_entry("authors", "jane") is False


class TestIncludes:

    @pytest.fixture
    def with_author(self, content):
        content.set_entry("authors", "jane", {"name": "Jane", "email": "jane@example.com"})
        content.set_entry("posts", "p1", {
            "title": "Post", "status": "published",
            "author": {"id": "jane", "collection": "authors"},
        })
        return content

    def test_include_attaches_entry(self, with_author):
        post = with_author.get_entry("posts", "p1", include=["author"])
        assert post["author"]["entry"] == {"name": "Jane", "email": "jane@example.com"}

    def test_without_include_reference_untouched(self, with_author):
        post = with_author.get_entry("posts", "p1")
        assert post["author"] == {"id": "jane", "collection": "authors"}

    def test_dangling_reference_resolves_to_none(self, with_author):
        with_author.delete_entry("authors", "jane")
        post = with_author.get_entry("posts", "p1", include=["author"])
        assert post["author"]["entry"] is None

    def test_include_of_non_reference_field_ignored(self, with_author):
        post = with_author.get_entry("posts", "p1", include=["title", "missing"])
        assert post["title"] == "Post"
        assert "missing" not in post

    def test_self_reference_resolves_one_level(self, content):
        content.set_entry("categories", "root", {"name": "Root"})
        content.set_entry("categories", "mid", {
            "name": "Mid", "parent": {"id": "root", "collection": "categories"},
        })
        content.set_entry("categories", "leaf", {
            "name": "Leaf", "parent": {"id": "mid", "collection": "categories"},
        })
        leaf = content.get_entry("categories", "leaf", include=["parent"])
        parent = leaf["parent"]["entry"]
        assert parent["name"] == "Mid"
        assert "entry" not in parent["parent"]

    def test_entry_with_included_reference_can_be_saved(self, with_author):
        post = with_author.get_entry("posts", "p1", include=["author"])
        with_author.set_entry("posts", "p1", post)
        assert with_author.get_entry("posts", "p1")["author"]["entry"]["name"] == "Jane"

    def test_reference_to_undeclared_collection_left_unresolved(self, content, content_dir):
        write_raw_entry(content_dir, "posts", "odd", {
            "title": "Odd", "status": "draft",
            "author": {"id": "x", "collection": "ghosts"},
        })
        post = content.get_entry("posts", "odd", include=["author"])
        assert post["author"]["entry"] is None
