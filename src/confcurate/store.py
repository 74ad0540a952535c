"""Read and write the JSON collection files of the website repository.

Layout (relative to the configured repository root):

    data/
        conferences.json                      # {"conferences": [...]}
        sessions/
            <conferenceId>-sessions.json      # {"conferenceId": ..., "sessions": [...]}

Every write reads the whole collection, replaces or appends one record by id,
and rewrites the whole file. The read-modify-write holds flock(LOCK_EX) on the
collection file and rewrites it in place; plain reads take LOCK_SH. The lock is
advisory, so it only orders writers that go through this module.

    store = ConferenceStore(config)
    store.save(Conference.new("PyCon 2025", date="2025-05-14"))
    store.load("pycon-2025")
"""

from __future__ import annotations

import contextlib
import fcntl
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from confcurate.errors import CorruptCollectionError, NotConfiguredError, ValidationError
from confcurate.models import Conference, RecordId, Session, same_id

if TYPE_CHECKING:
    from collections.abc import Callable

    from confcurate.config import ConfigStore

logger = logging.getLogger("confcurate.store")

R = TypeVar("R", Conference, Session)

_DATA_DIR = "data"
_SESSIONS_DIR = "sessions"


def conferences_path(root: Path) -> Path:
    return root / _DATA_DIR / "conferences.json"


def is_file_safe_id(conference_id: RecordId | None) -> bool:
    """True when the id can name a file inside data/sessions/."""
    text = "" if conference_id is None else str(conference_id)
    if not text or text in (".", ".."):
        return False
    return not any(c in text for c in ("/", "\\", "\0"))


def sessions_path(root: Path, conference_id: RecordId) -> Path:
    if not is_file_safe_id(conference_id):
        msg = f"Conference id {conference_id!r} cannot name a session file"
        raise ValidationError(msg)
    return root / _DATA_DIR / _SESSIONS_DIR / f"{conference_id}-sessions.json"


def dump_collection(doc: dict[str, Any]) -> str:
    return json.dumps(doc, indent=2, ensure_ascii=False) + "\n"


def _parse_records(path: Path, text: str, key: str) -> list[dict[str, Any]]:
    """Parse a collection document. Missing key reads as empty; anything else off-shape is corrupt."""
    if not text.strip():
        return []
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CorruptCollectionError(path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc
    if not isinstance(doc, dict):
        raise CorruptCollectionError(path, "top level is not an object")
    records = doc.get(key)
    if records is None:
        return []
    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        raise CorruptCollectionError(path, f"'{key}' is not a list of objects")
    return records


class _CollectionStore(Generic[R]):
    """Replace-or-append-by-id over one kind of collection file."""

    key: str
    record_type: type[R]

    def __init__(self, config: ConfigStore) -> None:
        self._config = config

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _root(self) -> Path:
        root = self._config.repo_path
        if root is None:
            raise NotConfiguredError
        return root

    def _path(self, root: Path, parent: str | None) -> Path:
        raise NotImplementedError

    def _document(self, records: list[dict[str, Any]], parent: str | None) -> dict[str, Any]:
        return {self.key: records}

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def _read(self, path: Path) -> list[dict[str, Any]]:
        try:
            with path.open(encoding="utf-8") as f:
                fcntl.flock(f, fcntl.LOCK_SH)
                text = f.read()
        except FileNotFoundError:
            return []
        return _parse_records(path, text, self.key)

    def _list(self, parent: str | None) -> list[R]:
        root = self._config.repo_path
        if root is None:
            return []
        return [self.record_type.from_dict(r) for r in self._read(self._path(root, parent))]

    def _load(self, record_id: RecordId, parent: str | None) -> R | None:
        path = self._path(self._root(), parent)
        for raw in self._read(path):
            if same_id(raw.get("id"), record_id):
                return self.record_type.from_dict(raw)
        return None

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def _rewrite_with_lock(
        self,
        path: Path,
        parent: str | None,
        transform: Callable[[list[dict[str, Any]]], list[dict[str, Any]]],
    ) -> None:
        """Read-modify-write the collection file under exclusive flock."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a+", encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            f.seek(0)
            records = transform(_parse_records(path, f.read(), self.key))
            f.seek(0)
            f.truncate()
            f.write(dump_collection(self._document(records, parent)))

    def _save(self, record: R, parent: str | None) -> None:
        path = self._path(self._root(), parent)
        new = record.to_dict()

        def upsert(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
            for i, r in enumerate(records):
                if same_id(r.get("id"), record.id):
                    records[i] = new
                    return records
            records.append(new)
            return records

        self._rewrite_with_lock(path, parent, upsert)
        logger.info("saved %s %s -> %s", self.key, record.id, path)

    def _delete(self, record_id: RecordId, parent: str | None) -> None:
        path = self._path(self._root(), parent)
        if not path.exists():
            return
        self._rewrite_with_lock(
            path, parent, lambda records: [r for r in records if not same_id(r.get("id"), record_id)],
        )
        logger.info("deleted %s %s from %s", self.key, record_id, path)


class ConferenceStore(_CollectionStore[Conference]):
    """data/conferences.json."""

    key = "conferences"
    record_type = Conference

    def _path(self, root: Path, parent: str | None) -> Path:
        return conferences_path(root)

    def list(self) -> list[Conference]:
        """All conferences in file order; [] when unconfigured or the file is absent."""
        return self._list(None)

    def load(self, conference_id: RecordId) -> Conference | None:
        return self._load(conference_id, None)

    def save(self, conference: Conference) -> None:
        self._save(conference, None)

    def delete(self, conference_id: RecordId) -> None:
        """Remove the conference, then its session file if there is one."""
        root = self._root()
        self._delete(conference_id, None)
        if not is_file_safe_id(conference_id):
            # No session file can exist for it; sessions_path refuses such ids.
            return
        with contextlib.suppress(FileNotFoundError):
            sessions_path(root, conference_id).unlink()
            logger.info("removed sessions of %s", conference_id)


class SessionStore(_CollectionStore[Session]):
    """data/sessions/<conferenceId>-sessions.json."""

    key = "sessions"
    record_type = Session

    def _path(self, root: Path, parent: str | None) -> Path:
        if parent is None or parent == "":
            msg = "conference id is required for session collections"
            raise ValueError(msg)
        return sessions_path(root, parent)

    def _document(self, records: list[dict[str, Any]], parent: str | None) -> dict[str, Any]:
        return {"conferenceId": parent, self.key: records}

    def list(self, conference_id: str) -> list[Session]:
        return self._list(conference_id)

    def load(self, conference_id: str, session_id: str) -> Session | None:
        return self._load(session_id, conference_id)

    def save(self, conference_id: str, session: Session) -> None:
        self._save(session, conference_id)

    def delete(self, conference_id: str, session_id: str) -> None:
        self._delete(session_id, conference_id)
