"""Tests for the contact submission stores."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from consultsite.contact.models import ContactForm
from consultsite.contact.store import (
    STORE_FILENAME,
    JsonSubmissionStore,
    MemorySubmissionStore,
)
from pydantic import ValidationError


def _make_form(name: str = "Alice", message: str = "Please call me back soon.") -> ContactForm:
    return ContactForm(name=name, email="alice@acme.io", message=message)


class TestMemoryStore:
    def test_create_assigns_sequential_ids(self):
        store = MemorySubmissionStore()
        assert store.create(_make_form()).id == 1
        assert store.create(_make_form("Bob")).id == 2

    def test_list_in_id_order(self):
        store = MemorySubmissionStore()
        store.create(_make_form("Alice"))
        store.create(_make_form("Bob"))
        assert [s.name for s in store.list()] == ["Alice", "Bob"]

    def test_get(self):
        store = MemorySubmissionStore()
        created = store.create(_make_form())
        assert store.get(created.id) == created
        assert store.get(99) is None

    def test_submissions_are_immutable(self):
        submission = MemorySubmissionStore().create(_make_form())
        with pytest.raises(ValidationError):
            submission.name = "Mallory"

    def test_empty(self):
        assert MemorySubmissionStore().list() == []


class TestJsonStore:
    def test_persists_to_file(self, tmp_path: Path):
        store = JsonSubmissionStore(tmp_path)
        store.create(_make_form())

        raw = json.loads((tmp_path / STORE_FILENAME).read_text())
        assert raw["next_id"] == 2
        assert raw["submissions"][0]["email"] == "alice@acme.io"

    def test_reload_preserves_records(self, tmp_path: Path):
        created = JsonSubmissionStore(tmp_path).create(_make_form())

        reloaded = JsonSubmissionStore(tmp_path)
        assert reloaded.list() == [created]

    def test_ids_continue_after_restart(self, tmp_path: Path):
        first = JsonSubmissionStore(tmp_path)
        first.create(_make_form())
        first.create(_make_form())

        second = JsonSubmissionStore(tmp_path)
        assert second.create(_make_form()).id == 3

    def test_ids_not_reused_when_records_removed_by_hand(self, tmp_path: Path):
        store = JsonSubmissionStore(tmp_path)
        store.create(_make_form())
        store.create(_make_form())

        path = tmp_path / STORE_FILENAME
        raw = json.loads(path.read_text())
        raw["submissions"] = raw["submissions"][:1]
        path.write_text(json.dumps(raw))

        assert JsonSubmissionStore(tmp_path).create(_make_form()).id == 3

    def test_next_id_repaired_from_records(self, tmp_path: Path):
        store = JsonSubmissionStore(tmp_path)
        store.create(_make_form())

        path = tmp_path / STORE_FILENAME
        raw = json.loads(path.read_text())
        raw["next_id"] = 1
        path.write_text(json.dumps(raw))

        assert JsonSubmissionStore(tmp_path).create(_make_form()).id == 2

    def test_corrupt_file_raises(self, tmp_path: Path):
        (tmp_path / STORE_FILENAME).write_text("{not json")
        with pytest.raises(RuntimeError, match="Corrupt"):
            JsonSubmissionStore(tmp_path)

    def test_creates_missing_directory(self, tmp_path: Path):
        store = JsonSubmissionStore(tmp_path / "nested" / "data")
        store.create(_make_form())
        assert (tmp_path / "nested" / "data" / STORE_FILENAME).exists()

    def test_failed_write_leaves_store_unchanged(self, tmp_path: Path):
        store = JsonSubmissionStore(tmp_path)
        store.create(_make_form(name="First"))

        with patch.object(Path, "replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                store.create(_make_form(name="Second"))

        assert [s.name for s in store.list()] == ["First"]
        assert [s.name for s in JsonSubmissionStore(tmp_path).list()] == ["First"]
        assert store.create(_make_form(name="Third")).id == 2

    def test_no_temp_file_left_behind(self, tmp_path: Path):
        JsonSubmissionStore(tmp_path).create(_make_form())
        assert [p.name for p in tmp_path.iterdir()] == [STORE_FILENAME]
