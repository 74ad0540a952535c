"""Data models for the conference dataset and git state."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase, collapse non-alphanumeric runs to '-', trim edge hyphens."""
    return _SLUG_RE.sub("-", name.lower()).strip("-")


def parse_tags(raw: str) -> list[str]:
    """Split comma-separated tag input, dropping blanks."""
    return [t.strip() for t in raw.split(",") if t.strip()]


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _tags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return parse_tags(value)
    return [str(t) for t in value]


# Ids arrive as strings from forms but may be numbers in hand-edited files.
RecordId = str | int


def same_id(a: Any, b: Any) -> bool:
    """Compare record ids by their text form, so 5 and "5" name one record."""
    return a is not None and b is not None and str(a) == str(b)


@dataclass
class Conference:
    """One entry of data/conferences.json.

    Scalar fields hold the JSON value as stored: a null stays None and a
    number stays a number, so load then save writes them back unchanged.
    Only tags are normalised to a list.
    """

    id: RecordId
    name: str | None = ""
    slug: str | None = ""
    description: str | None = ""
    date: str | None = ""
    location: str | None = ""
    website_url: str | None = ""
    tags: list[str] = field(default_factory=list)
    session_count: int | str | None = 0
    # Keys we do not model, kept so a save never drops website data
    extra: dict[str, Any] = field(default_factory=dict)

    _KEYS = ("id", "name", "slug", "description", "date", "location",
             "websiteUrl", "tags", "sessionCount")

    @classmethod
    def new(cls, name: str, **kwargs: Any) -> Conference:
        """Build a fresh record whose slug and id derive from name."""
        slug = kwargs.pop("slug", "") or slugify(name)
        conf_id = kwargs.pop("id", "") or slug
        return cls(id=conf_id, name=name, slug=slug, **kwargs)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Conference:
        return cls(
            id=d.get("id", ""),
            name=d.get("name", ""),
            slug=d.get("slug", ""),
            description=d.get("description", ""),
            date=d.get("date", ""),
            location=d.get("location", ""),
            website_url=d.get("websiteUrl", ""),
            tags=_tags(d.get("tags")),
            session_count=d.get("sessionCount", 0),
            extra={k: v for k, v in d.items() if k not in cls._KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "date": self.date,
            "location": self.location,
            "websiteUrl": self.website_url,
            "tags": list(self.tags),
            "sessionCount": self.session_count,
            **self.extra,
        }


@dataclass
class Session:
    """One entry of data/sessions/<conferenceId>-sessions.json.

    Stored values are kept as found, like Conference; duration may be text
    ("45 minutes") or a number of seconds.
    """

    id: RecordId
    title: str | None = ""
    speaker: str | None = ""
    youtube_url: str | None = ""
    summary: str | None = ""
    duration: str | int | None = ""
    tags: list[str] = field(default_factory=list)
    transcript: str | None = ""
    extracted_at: str | None = ""
    extra: dict[str, Any] = field(default_factory=dict)

    _KEYS = ("id", "title", "speaker", "youtubeUrl", "summary", "duration",
             "tags", "transcript", "extractedAt")

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Session:
        return cls(
            id=d.get("id", ""),
            title=d.get("title", ""),
            speaker=d.get("speaker", ""),
            youtube_url=d.get("youtubeUrl", ""),
            summary=d.get("summary", ""),
            duration=d.get("duration", ""),
            tags=_tags(d.get("tags")),
            transcript=d.get("transcript", ""),
            extracted_at=d.get("extractedAt", ""),
            extra={k: v for k, v in d.items() if k not in cls._KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "speaker": self.speaker,
            "youtubeUrl": self.youtube_url,
            "summary": self.summary,
            "duration": self.duration,
            "tags": list(self.tags),
            "transcript": self.transcript,
            "extractedAt": self.extracted_at,
            **self.extra,
        }


# ---------------------------------------------------------------------------
# Git state
# ---------------------------------------------------------------------------


@dataclass
class GitStatus:
    """Working tree state of one repository."""

    current_branch: str | None = None
    tracking: str | None = None
    ahead: int = 0
    behind: int = 0
    staged: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    renamed: list[dict[str, str]] = field(default_factory=list)   # [{"from":..., "to":...}]
    conflicted: list[str] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not any((
            self.staged, self.modified, self.created, self.deleted,
            self.renamed, self.conflicted, self.untracked,
        ))

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> GitStatus:
        return cls(
            current_branch=d.get("current"),
            tracking=d.get("tracking"),
            ahead=int(d.get("ahead", 0)),
            behind=int(d.get("behind", 0)),
            staged=list(d.get("staged", [])),
            modified=list(d.get("modified", [])),
            created=list(d.get("created", [])),
            deleted=list(d.get("deleted", [])),
            renamed=list(d.get("renamed", [])),
            conflicted=list(d.get("conflicted", [])),
            untracked=list(d.get("untracked", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current_branch,
            "tracking": self.tracking,
            "ahead": self.ahead,
            "behind": self.behind,
            "staged": self.staged,
            "modified": self.modified,
            "created": self.created,
            "deleted": self.deleted,
            "renamed": self.renamed,
            "conflicted": self.conflicted,
            "untracked": self.untracked,
            "isClean": self.is_clean,
        }


@dataclass
class Branch:
    name: str
    current: bool = False
    commit: str = ""
    label: str = ""           # tip commit subject


@dataclass
class BranchInfo:
    """Local branches of a repository."""

    current: str | None
    branches: list[Branch] = field(default_factory=list)

    @property
    def all(self) -> list[str]:
        return [b.name for b in self.branches]

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> BranchInfo:
        return cls(
            current=d.get("current"),
            branches=[
                Branch(
                    name=b["name"],
                    current=bool(b.get("current", False)),
                    commit=b.get("commit", ""),
                    label=b.get("label", ""),
                )
                for b in d.get("branches", [])
            ],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current,
            "all": self.all,
            "branches": [
                {"name": b.name, "current": b.current, "commit": b.commit, "label": b.label}
                for b in self.branches
            ],
        }


@dataclass
class VideoInfo:
    title: str
    duration: str
    description: str

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> VideoInfo:
        return cls(
            title=d.get("title", ""),
            duration=d.get("duration", ""),
            description=d.get("description", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "duration": self.duration, "description": self.description}
