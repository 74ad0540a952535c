"""Back-end gateway: the only process that touches files, config, and git.

Protocol: JSON-RPC 2.0, one JSON object per line over stdin/stdout.

    → {"jsonrpc": "2.0", "id": 1, "method": "conference-load", "params": ["pycon-2025"]}
    ← {"jsonrpc": "2.0", "id": 1, "result": {"id": "pycon-2025", ...}}
    ← {"jsonrpc": "2.0", "id": 2, "error": {"code": -32000,
         "message": "Failed to save conference: Website repository not configured",
         "data": {"kind": "not_configured"}}}

Menu notifications flow the other way and have no id:

    ← {"jsonrpc": "2.0", "method": "menu-validate-data"}

Requests are handled one at a time, in arrival order, each to completion.
Malformed lines are skipped. Logging goes to stderr; stdout is the channel.

Run with:
    python -m confcurate.gateway [--config-dir DIR]
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import sys
from typing import TYPE_CHECKING, Any

from confcurate import files, youtube
from confcurate import git as gitops
from confcurate.config import REPO_PATH_KEY, AppSettings, ConfigStore, load_settings
from confcurate.errors import CurateError, ErrorKind
from confcurate.menu import MenuBar
from confcurate.models import Conference, Session
from confcurate.store import ConferenceStore, SessionStore

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

logger = logging.getLogger("confcurate.gateway")

METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
APPLICATION_ERROR = -32000

# Longest accepted protocol line; session records carry whole transcripts.
LINE_LIMIT = 16 * 1024 * 1024

# wire name → (service method, action used in error messages)
OPERATIONS: dict[str, tuple[str, str]] = {
    "config-get": ("config_get", "read setting"),
    "config-set": ("config_set", "write setting"),
    "config-get-all": ("config_get_all", "read settings"),
    "fs-read-file": ("fs_read_file", "read file"),
    "fs-write-file": ("fs_write_file", "write file"),
    "fs-read-dir": ("fs_read_dir", "read directory"),
    "fs-exists": ("fs_exists", "check path"),
    "conference-list": ("conference_list", "list conferences"),
    "conference-load": ("conference_load", "load conference"),
    "conference-save": ("conference_save", "save conference"),
    "conference-delete": ("conference_delete", "delete conference"),
    "session-list": ("session_list", "list sessions"),
    "session-load": ("session_load", "load session"),
    "session-save": ("session_save", "save session"),
    "session-delete": ("session_delete", "delete session"),
    "youtube-validate-url": ("youtube_validate_url", "validate URL"),
    "youtube-extract-info": ("youtube_extract_info", "extract video info"),
    "git-status": ("git_status", "get git status"),
    "git-clone": ("git_clone", "clone repository"),
    "git-add": ("git_add", "add files"),
    "git-commit": ("git_commit", "commit"),
    "git-push": ("git_push", "push"),
    "git-list-branches": ("git_list_branches", "list branches"),
    "git-create-branch": ("git_create_branch", "create branch"),
    "git-switch-branch": ("git_switch_branch", "switch branch"),
    "git-get-current-branch": ("git_get_current_branch", "get current branch"),
    "git-has-uncommitted-changes": ("git_has_uncommitted_changes", "check for uncommitted changes"),
    "menu-activate": ("menu_activate", "activate menu item"),
}


def _record(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        msg = f"record must be an object, got {type(data).__name__}"
        raise TypeError(msg)
    return data


class GatewayService:
    """Back-end implementation of every gateway operation.

    Methods take and return plain JSON values; the client proxy turns them
    back into models.
    """

    def __init__(
        self,
        config: ConfigStore,
        settings: AppSettings | None = None,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        self.config = config
        self.settings = settings or AppSettings()
        self.conferences = ConferenceStore(config)
        self.sessions = SessionStore(config)
        self.menu = MenuBar(notify or (lambda channel: None))

    def _repo(self, repo_path: str) -> gitops.GitRepo:
        return gitops.GitRepo(repo_path, remote=self.settings.git.remote)

    # ------------------------------------------------------------------
    # config-*
    # ------------------------------------------------------------------

    def config_get(self, key: str) -> Any:
        return self.config.get(key)

    def config_set(self, key: str, value: Any) -> bool:
        self.config.set(key, value)
        if key == REPO_PATH_KEY:
            logger.info("website repository set to %s", value)
        return True

    def config_get_all(self) -> dict[str, Any]:
        return self.config.get_all()

    # ------------------------------------------------------------------
    # fs-*
    # ------------------------------------------------------------------

    def fs_read_file(self, path: str) -> Any:
        return files.read_json(path)

    def fs_write_file(self, path: str, data: Any) -> bool:
        files.write_json(path, data)
        return True

    def fs_read_dir(self, path: str) -> list[str]:
        return files.read_dir(path)

    def fs_exists(self, path: str) -> bool:
        return files.exists(path)

    # ------------------------------------------------------------------
    # conference-* / session-*
    # ------------------------------------------------------------------

    def conference_list(self) -> list[dict[str, Any]]:
        return [c.to_dict() for c in self.conferences.list()]

    def conference_load(self, conference_id: str) -> dict[str, Any] | None:
        conf = self.conferences.load(conference_id)
        return conf.to_dict() if conf else None

    def conference_save(self, data: dict[str, Any]) -> bool:
        self.conferences.save(Conference.from_dict(_record(data)))
        return True

    def conference_delete(self, conference_id: str) -> bool:
        self.conferences.delete(conference_id)
        return True

    def session_list(self, conference_id: str) -> list[dict[str, Any]]:
        return [s.to_dict() for s in self.sessions.list(conference_id)]

    def session_load(self, conference_id: str, session_id: str) -> dict[str, Any] | None:
        session = self.sessions.load(conference_id, session_id)
        return session.to_dict() if session else None

    def session_save(self, conference_id: str, data: dict[str, Any]) -> bool:
        self.sessions.save(conference_id, Session.from_dict(_record(data)))
        return True

    def session_delete(self, conference_id: str, session_id: str) -> bool:
        self.sessions.delete(conference_id, session_id)
        return True

    # ------------------------------------------------------------------
    # youtube-*
    # ------------------------------------------------------------------

    def youtube_validate_url(self, url: str) -> bool:
        return youtube.validate_url(url)

    def youtube_extract_info(self, url: str) -> dict[str, Any]:
        return youtube.extract_info(url).to_dict()

    # ------------------------------------------------------------------
    # git-*
    # ------------------------------------------------------------------

    def git_status(self, repo_path: str) -> dict[str, Any]:
        return self._repo(repo_path).status().to_dict()

    def git_clone(self, repo_url: str, local_path: str) -> bool:
        gitops.clone(repo_url, local_path)
        return True

    def git_add(self, repo_path: str, paths: list[str] | str | None = None) -> bool:
        self._repo(repo_path).add(paths or gitops.ALL)
        return True

    def git_commit(self, repo_path: str, message: str) -> bool:
        self._repo(repo_path).commit(message)
        return True

    def git_push(self, repo_path: str, branch: str | None = None) -> bool:
        self._repo(repo_path).push(branch)
        return True

    def git_list_branches(self, repo_path: str) -> dict[str, Any]:
        return self._repo(repo_path).list_branches().to_dict()

    def git_create_branch(self, repo_path: str, name: str, from_branch: str | None = None) -> bool:
        self._repo(repo_path).create_branch(name, from_branch)
        return True

    def git_switch_branch(self, repo_path: str, name: str) -> bool:
        self._repo(repo_path).switch_branch(name)
        return True

    def git_get_current_branch(self, repo_path: str) -> str | None:
        return self._repo(repo_path).current_branch()

    def git_has_uncommitted_changes(self, repo_path: str) -> bool:
        return self._repo(repo_path).has_uncommitted_changes()

    # ------------------------------------------------------------------
    # menu
    # ------------------------------------------------------------------

    def menu_activate(self, channel: str) -> bool:
        self.menu.activate(channel)
        return True


# ---------------------------------------------------------------------------
# JSON-RPC framing
# ---------------------------------------------------------------------------


def _error(msg_id: Any, code: int, message: str, kind: ErrorKind) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": msg_id,
        "error": {"code": code, "message": message, "data": {"kind": kind.value}},
    }


def _classify(exc: Exception) -> tuple[ErrorKind, str]:
    """Map an exception raised by an operation to (kind, cause)."""
    if isinstance(exc, CurateError):
        return exc.kind, exc.message
    if isinstance(exc, OSError):
        return ErrorKind.EXTERNAL, exc.strerror or str(exc)
    if isinstance(exc, (TypeError, ValueError, KeyError)):
        return ErrorKind.VALIDATION, str(exc)
    return ErrorKind.EXTERNAL, str(exc)


def handle_message(service: GatewayService, msg: dict[str, Any]) -> dict[str, Any] | None:
    """Handle one decoded request. Returns the response, or None for notifications."""
    method = msg.get("method", "")
    msg_id = msg.get("id")
    if msg_id is None:
        return None

    if method not in OPERATIONS:
        return _error(msg_id, METHOD_NOT_FOUND, f"Method not found: {method}", ErrorKind.VALIDATION)

    params = msg.get("params", [])
    if not isinstance(params, list):
        return _error(msg_id, INVALID_PARAMS, "params must be a list", ErrorKind.VALIDATION)

    method_name, action = OPERATIONS[method]
    handler = getattr(service, method_name)
    try:
        inspect.signature(handler).bind(*params)
    except TypeError as exc:
        return _error(msg_id, INVALID_PARAMS, f"Invalid arguments for {method}: {exc}", ErrorKind.VALIDATION)

    try:
        result = handler(*params)
    except Exception as exc:
        kind, cause = _classify(exc)
        if kind is ErrorKind.EXTERNAL and not isinstance(exc, CurateError):
            logger.exception("%s failed", method)
        else:
            logger.info("%s failed: %s", method, cause)
        return _error(msg_id, APPLICATION_ERROR, f"Failed to {action}: {cause}", kind)

    return {"jsonrpc": "2.0", "id": msg_id, "result": result}


def encode(obj: dict[str, Any]) -> bytes:
    return (json.dumps(obj, ensure_ascii=False) + "\n").encode()


async def serve(
    reader: asyncio.StreamReader,
    write: Callable[[bytes], None],
    config: ConfigStore,
    settings: AppSettings | None = None,
) -> None:
    """Serve requests from reader until EOF."""

    def notify(channel: str) -> None:
        write(encode({"jsonrpc": "2.0", "method": channel}))

    service = GatewayService(config, settings, notify=notify)
    logger.info("gateway ready (config %s)", config.path)

    while True:
        try:
            line = await reader.readline()
        except (asyncio.IncompleteReadError, EOFError):
            break
        except ValueError:
            # readline has already discarded the over-long line.
            logger.warning("skipping over-long line")
            continue
        if not line:
            break
        try:
            msg = json.loads(line)
        except json.JSONDecodeError:
            logger.warning("skipping malformed line")
            continue
        if not isinstance(msg, dict):
            continue

        response = handle_message(service, msg)
        if response is not None:
            write(encode(response))

    logger.info("gateway stopped")


async def _run_stdio(config: ConfigStore, settings: AppSettings) -> None:
    reader = asyncio.StreamReader(limit=LINE_LIMIT)
    loop = asyncio.get_running_loop()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    writer_transport, _ = await loop.connect_write_pipe(asyncio.BaseProtocol, sys.stdout.buffer)

    await serve(reader, writer_transport.write, config, settings)


def run_gateway(config_dir: Path | str | None = None) -> None:
    """Entry point for `confcurate serve` and `python -m confcurate.gateway`."""
    config = ConfigStore(config_dir)
    settings = load_settings(config.config_dir)
    logging.basicConfig(
        stream=sys.stderr,
        level=settings.logging.level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    asyncio.run(_run_stdio(config, settings))


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="confcurate back-end gateway (JSON-RPC on stdio)")
    parser.add_argument("--config-dir", default=None)
    args = parser.parse_args()
    run_gateway(args.config_dir)
