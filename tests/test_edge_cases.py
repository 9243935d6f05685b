"""
Edge case tests across the content engine.

Covers:
    - Concurrent uploads of the same filename (check-then-write race)
    - Concurrent entry writes and reads never expose partial documents
    - Corrupt or hand-edited files on disk
    - Schema changes after content was written
"""

import json
import threading
from unittest.mock import patch

import pytest

from conftest import write_raw_entry
from localcontent import Collection, LocalContent
from localcontent.assets import AssetStore
from localcontent.schemas import object_schema


# ===========================================================================
# Concurrency
# ===========================================================================

class TestConcurrentUploads:
    """Uploads pick a free name first and write second."""

    def test_same_name_race_may_collide(self, content_dir):
        store = AssetStore(content_dir)
        barrier = threading.Barrier(2, timeout=5)
        original_write = AssetStore._write_bytes
        results = []

        def _slow_write(path, data):
            # both uploads have chosen a name before either writes
            barrier.wait()
            original_write(path, data)

        def _upload(payload):
            results.append(store.upload_asset(payload, "logo.png"))

        with patch.object(AssetStore, "_write_bytes", side_effect=_slow_write):
            threads = [threading.Thread(target=_upload, args=(p,)) for p in (b"one", b"two")]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert len(results) == 2
        assert {r.filename for r in results} == {"logo.png"}
        # the later write replaced the earlier one
        assert (content_dir / "assets" / "logo.png").read_bytes() in (b"one", b"two")
        assert [a.name for a in store.list_assets()] == ["logo.png"]

    def test_sequential_uploads_never_collide(self, content_dir):
        store = AssetStore(content_dir)
        names = [store.upload_asset(b"x", "logo.png").filename for _ in range(5)]
        assert len(set(names)) == 5


class TestConcurrentEntries:

    def test_parallel_writes_to_distinct_entries(self, content):
        errors = []

        def _write(i):
            try:
                content.set_entry("authors", f"a{i}", {"name": f"Author {i}"})
            except Exception as exc:  # pragma: no cover - surfaced below
                errors.append(exc)

        threads = [threading.Thread(target=_write, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        page = content.get_entries("authors", include_count=True)
        assert page.count == 20

    def test_reader_never_sees_partial_entry(self, content):
        content.set_entry("posts", "hot", {"title": "v0", "status": "draft", "tags": []})
        stop = threading.Event()
        seen = []

        def _reader():
            while not stop.is_set():
                seen.append(content.get_entry("posts", "hot"))

        reader = threading.Thread(target=_reader)
        reader.start()
        for i in range(100):
            content.set_entry("posts", "hot", {
                "title": f"v{i}", "status": "draft", "tags": ["x"] * (i % 10),
            })
        stop.set()
        reader.join()

        assert seen
        assert all(entry is not None and entry["title"].startswith("v") for entry in seen)


# ===========================================================================
# Files on disk
# ===========================================================================

class TestHandEditedFiles:

    def test_corrupt_entry_reads_as_none(self, content, content_dir):
        path = content_dir / "posts" / "broken.json"
        path.parent.mkdir(parents=True)
        path.write_text('{"data": {"title": ', encoding="utf-8")
        assert content.get_entry("posts", "broken") is None

    def test_entry_without_envelope(self, content, content_dir):
        path = content_dir / "posts" / "bare.json"
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps(["not", "an", "envelope"]), encoding="utf-8")
        assert content.get_entry("posts", "bare") is None

    def test_invalid_stored_entry_still_readable(self, content, content_dir):
        write_raw_entry(content_dir, "posts", "legacy", {"title": 1})
        assert content.get_entry("posts", "legacy") == {"title": 1}
        assert content.get_entries("posts").entries == [{"title": 1}]

    def test_temp_files_ignored_in_listing(self, content, content_dir):
        content.set_entry("authors", "jane", {"name": "Jane"})
        (content_dir / "authors" / "tmpabc.tmp").write_text("{", encoding="utf-8")
        assert len(content.get_entries("authors").entries) == 1

    def test_asset_subdirectories_not_listed(self, content, content_dir):
        content.upload_asset(b"x", "a.txt")
        (content_dir / "assets" / "nested").mkdir()
        assert [a.name for a in content.list_assets()] == ["a.txt"]


class TestSchemaEvolution:

    def test_stricter_schema_applies_to_new_writes_only(self, content_dir):
        loose = object_schema({"name": {"type": "string"}})
        strict = object_schema({"name": {"type": "string"}, "email": {"type": "string"}},
                               required=["name", "email"])
        content = LocalContent(content_dir, collections=[Collection("authors", loose)])
        content.set_entry("authors", "jane", {"name": "Jane"})

        content.set_config(collections=[Collection("authors", strict)])
        assert content.get_entry("authors", "jane") == {"name": "Jane"}
        with pytest.raises(ValueError):
            content.set_entry("authors", "bob", {"name": "Bob"})

    def test_reference_target_declared_later(self, content_dir, post_schema, author_schema):
        content = LocalContent(content_dir, collections=[Collection("posts", post_schema)])
        data = {"title": "A", "status": "draft", "author": {"id": "jane", "collection": "authors"}}
        with pytest.raises(ValueError):
            content.set_entry("posts", "a", data)

        content.set_config(collections=[
            Collection("posts", post_schema), Collection("authors", author_schema),
        ])
        content.set_entry("posts", "a", data)
        assert content.get_entry("posts", "a")["author"]["id"] == "jane"
