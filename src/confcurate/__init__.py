"""Conference website content curator: a back-end gateway plus typed client.

Website repository layout (the configured root):
    data/
        conferences.json                   # {"conferences": [...]}
        sessions/
            <conferenceId>-sessions.json   # {"conferenceId": ..., "sessions": [...]}

The back end (confcurate.gateway) owns every file, config and git operation and
speaks JSON-RPC 2.0 on stdio. The front end (confcurate.client, the CLI) goes
through it for every data operation.

Collection writes: read-modify-write under flock(LOCK_EX) on the collection file.
"""

from confcurate.config import ConfigStore, load_settings
from confcurate.errors import CurateError, ErrorKind
from confcurate.models import Conference, Session
from confcurate.store import ConferenceStore, SessionStore

__all__ = [
    "Conference",
    "ConferenceStore",
    "ConfigStore",
    "CurateError",
    "ErrorKind",
    "Session",
    "SessionStore",
    "load_settings",
]
