"""Append-only contact submission stores.

Both stores allocate ids inside a lock so concurrent submissions get
unique, strictly increasing ids.  Nothing here updates or deletes a
stored submission.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path

from consultsite.contact.models import ContactForm, ContactSubmission
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

STORE_FILENAME = ".consultsite-submissions.json"

# Alias to avoid shadowing by SubmissionStore.list method
_list = list


class SubmissionStore(ABC):
    """Base class for contact submission persistence."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def create(self, form: ContactForm) -> ContactSubmission:
        """Assign the next id, stamp the current time, and store the record."""
        with self._lock:
            submission = ContactSubmission(
                id=self._allocate_id(),
                name=form.name,
                email=str(form.email),
                business=form.business,
                message=form.message,
                submitted_at=datetime.now(tz=UTC),
            )
            self._append(submission)
        logger.info("Stored contact submission %d", submission.id)
        return submission

    @abstractmethod
    def _allocate_id(self) -> int:
        """Return the next id; called with the lock held."""

    @abstractmethod
    def _append(self, submission: ContactSubmission) -> None:
        """Persist a new submission; called with the lock held."""

    @abstractmethod
    def list(self) -> _list[ContactSubmission]:
        """Return every submission in id order."""

    def get(self, submission_id: int) -> ContactSubmission | None:
        """Return a submission by id, or None if not found."""
        for submission in self.list():
            if submission.id == submission_id:
                return submission
        return None


class MemorySubmissionStore(SubmissionStore):
    """Process-lifetime store; everything is lost on restart."""

    def __init__(self) -> None:
        super().__init__()
        self._records: dict[int, ContactSubmission] = {}
        self._next_id = 1

    def _allocate_id(self) -> int:
        submission_id = self._next_id
        self._next_id += 1
        return submission_id

    def _append(self, submission: ContactSubmission) -> None:
        self._records[submission.id] = submission

    def list(self) -> _list[ContactSubmission]:
        with self._lock:
            return _list(self._records.values())


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    next_id: int = 1
    submissions: list[ContactSubmission] = Field(default_factory=list)


class JsonSubmissionStore(SubmissionStore):
    """JSON-file store, loaded on init and saved after every write.

    The next id is persisted alongside the records, so ids are never
    reused even if records are removed from the file by hand.
    """

    def __init__(self, data_dir: Path) -> None:
        super().__init__()
        self._path = data_dir / STORE_FILENAME
        self._data = self._load()

    def _load(self) -> _StoreData:
        if not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            data = _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError) as exc:
            # Starting fresh would hand out ids that were already used.
            logger.error("Corrupt submission store at %s", self._path)
            raise RuntimeError(f"Corrupt submission store at {self._path}") from exc
        highest = max((s.id for s in data.submissions), default=0)
        data.next_id = max(data.next_id, highest + 1)
        return data

    def _save(self, data: _StoreData) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(data.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(self._path)

    def _allocate_id(self) -> int:
        # Advanced in _append, once the record is on disk.
        return self._data.next_id

    def _append(self, submission: ContactSubmission) -> None:
        updated = _StoreData(
            next_id=submission.id + 1,
            submissions=[*self._data.submissions, submission],
        )
        self._save(updated)
        self._data = updated

    def list(self) -> _list[ContactSubmission]:
        with self._lock:
            return sorted(self._data.submissions, key=lambda s: s.id)
