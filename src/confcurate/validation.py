"""Form and dataset validation.

The store accepts any record; these checks run in front of it, when the user
submits a form or asks for `confcurate validate`.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

from confcurate.errors import ValidationError
from confcurate.youtube import validate_url

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from confcurate.models import Conference, Session

# field → message shown when it is blank
CONFERENCE_REQUIRED = {
    "name": "Conference name is required",
    "date": "Date is required",
    "location": "Location is required",
    "slug": "Slug is required",
    "id": "ID is required",
}
SESSION_REQUIRED = {
    "title": "Session title is required",
    "speaker": "Speaker name is required",
    "id": "Session ID is required",
}


@dataclass(frozen=True)
class Issue:
    record: str       # "conference <id>" or "session <conf>/<id>"
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.record}: {self.message}"


def _blank(value: object) -> bool:
    return not str(value or "").strip()


def check_conference(conf: Conference) -> list[Issue]:
    record = f"conference {conf.id or '?'}"
    return [
        Issue(record, name, message)
        for name, message in CONFERENCE_REQUIRED.items()
        if _blank(getattr(conf, name))
    ]


def check_session(session: Session, conference_id: str = "") -> list[Issue]:
    record = f"session {conference_id}/{session.id or '?'}" if conference_id else f"session {session.id or '?'}"
    issues = [
        Issue(record, name, message)
        for name, message in SESSION_REQUIRED.items()
        if _blank(getattr(session, name))
    ]
    if session.youtube_url and not validate_url(session.youtube_url):
        issues.append(Issue(record, "youtubeUrl", "Please enter a valid YouTube URL"))
    return issues


def ensure_valid(issues: list[Issue]) -> None:
    """Raise ValidationError listing every issue, if any."""
    if issues:
        raise ValidationError("; ".join(str(i) for i in issues))


def _duplicates(ids: Iterable[object]) -> list[str]:
    return [i for i, n in Counter(str(i) for i in ids).items() if n > 1 and i]


def validate_dataset(
    conferences: list[Conference],
    sessions_by_conference: Mapping[str, list[Session]],
) -> list[Issue]:
    """Check every record, plus duplicate ids within each collection."""
    issues: list[Issue] = []
    for conf in conferences:
        issues.extend(check_conference(conf))
    for dup in _duplicates(c.id for c in conferences):
        issues.append(Issue(f"conference {dup}", "id", "Duplicate id"))

    known = {str(c.id) for c in conferences}
    for conf_id, sessions in sessions_by_conference.items():
        if str(conf_id) not in known:
            issues.append(Issue(f"sessions {conf_id}", "conferenceId", "No conference with this id"))
        for session in sessions:
            issues.extend(check_session(session, conf_id))
        for dup in _duplicates(s.id for s in sessions):
            issues.append(Issue(f"session {conf_id}/{dup}", "id", "Duplicate id"))
    return issues
