"""Tests for dashboard/store.py — JSON document persistence."""

import json
import threading

import pytest

from dashboard import store
from dashboard.errors import StoreError


class TestReadWrite:
    """read_json / write_json behavior."""

    def test_write_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "a" / "b" / "doc.json"
        store.write_json(path, {"x": 1})
        assert json.loads(path.read_text()) == {"x": 1}

    def test_write_is_indented(self, tmp_path):
        path = tmp_path / "doc.json"
        store.write_json(path, {"x": 1})
        assert path.read_text() == '{\n  "x": 1\n}'

    def test_write_leaves_no_temp_files(self, tmp_path):
        path = tmp_path / "doc.json"
        store.write_json(path, {"x": 1})
        store.write_json(path, {"x": 2})
        assert [p.name for p in tmp_path.iterdir()] == ["doc.json"]

    def test_read_missing_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            store.read_json(tmp_path / "missing.json")

    def test_read_malformed_raises_store_error(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(StoreError) as exc_info:
            store.read_json(path)
        assert exc_info.value.code == "FS-005"

    def test_default_is_a_copy(self, tmp_path):
        default = {"items": []}
        doc = store.read_json_or_default(tmp_path / "missing.json", default)
        doc["items"].append(1)
        assert default == {"items": []}

    def test_default_ignored_when_file_exists(self, tmp_path):
        path = tmp_path / "doc.json"
        store.write_json(path, {"items": [1]})
        assert store.read_json_or_default(path, {"items": []}) == {"items": [1]}


class TestUpdateJson:
    """Read-modify-write cycles."""

    def test_mutate_in_place(self, tmp_path):
        path = tmp_path / "doc.json"
        store.write_json(path, {"count": 1, "keep": "me"})

        def _bump(doc):
            doc["count"] += 1

        result = store.update_json(path, _bump)
        assert result == {"count": 2, "keep": "me"}
        assert json.loads(path.read_text()) == result

    def test_mutate_returns_replacement(self, tmp_path):
        path = tmp_path / "doc.json"
        store.write_json(path, {"old": True})
        store.update_json(path, lambda doc: {"new": True})
        assert json.loads(path.read_text()) == {"new": True}

    def test_missing_without_default_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            store.update_json(tmp_path / "missing.json", lambda doc: None)

    def test_missing_with_default(self, tmp_path):
        path = tmp_path / "missing.json"
        store.update_json(path, lambda doc: doc.update(created=True), default={})
        assert json.loads(path.read_text()) == {"created": True}

    def test_concurrent_updates_are_serialized(self, tmp_path):
        path = tmp_path / "counter.json"
        store.write_json(path, {"count": 0})

        def _bump(doc):
            doc["count"] += 1

        def _worker():
            for _ in range(10):
                store.update_json(path, _bump)

        threads = [threading.Thread(target=_worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.read_json(path) == {"count": 40}


class TestJsonLines:
    """append_json_line / read_json_lines."""

    def test_append_and_read(self, tmp_path):
        path = tmp_path / "logs" / "hooks.log"
        store.append_json_line(path, {"n": 1})
        store.append_json_line(path, {"n": 2})
        assert store.read_json_lines(path) == [{"n": 1}, {"n": 2}]

    def test_skips_blank_and_malformed_lines(self, tmp_path):
        path = tmp_path / "hooks.log"
        path.write_text('{"n": 1}\n\nnot json\n{"n": 2}\n')
        assert store.read_json_lines(path) == [{"n": 1}, {"n": 2}]

    def test_missing_file_is_empty(self, tmp_path):
        assert store.read_json_lines(tmp_path / "nope.log") == []
