"""Front-end proxy for the back-end gateway.

    async with await GatewayClient.spawn(config_dir) as client:
        for conf in await client.conference_list():
            print(conf.name)

One typed coroutine per gateway operation. Several calls may be in flight;
replies are paired by id. A failed call raises the CurateError subclass named
by the reply's error kind. Menu notifications are fanned out to every
subscriber registered with on() / on_menu_action().
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import itertools
import json
import logging
import sys
from typing import TYPE_CHECKING, Any

from confcurate.config import REPO_PATH_KEY
from confcurate.errors import ExternalError, ValidationError, error_from_kind
from confcurate.gateway import LINE_LIMIT
from confcurate.menu import MENU_CHANNELS
from confcurate.models import BranchInfo, Conference, GitStatus, Session, VideoInfo

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence
    from pathlib import Path

    Subscriber = Callable[[str], Awaitable[None] | None]

logger = logging.getLogger("confcurate.client")


class GatewayClient:
    """JSON-RPC client speaking to a gateway over a pair of asyncio streams."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        process: asyncio.subprocess.Process | None = None,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._process = process
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future[dict[str, Any]]] = {}
        self._subscribers: dict[str, list[Subscriber]] = {}
        self._read_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False
        self._closing = False

    @classmethod
    async def spawn(
        cls,
        config_dir: Path | str | None = None,
        *,
        python: str = sys.executable,
        stderr: int | None = None,
        env: dict[str, str] | None = None,
    ) -> GatewayClient:
        """Start `python -m confcurate.gateway` as a child process and attach to it."""
        args = [python, "-m", "confcurate.gateway"]
        if config_dir is not None:
            args += ["--config-dir", str(config_dir)]
        process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=stderr,
            env=env,
            limit=LINE_LIMIT,
        )
        if process.stdout is None or process.stdin is None:
            process.kill()
            await process.wait()
            msg = "Gateway process has no stdio pipes"
            raise ExternalError(msg)
        client = cls(process.stdout, process.stdin, process=process)
        client.start()
        return client

    def start(self) -> None:
        if self._read_task is None:
            self._read_task = asyncio.create_task(self._read_loop())

    async def close(self) -> None:
        """Close the request stream and wait for the back end to exit."""
        if self._closing:
            return
        self._closing = True
        self._closed = True
        self._writer.close()
        if self._process is not None:
            await self._process.wait()
        elif self._read_task is not None:
            self._read_task.cancel()
        if self._read_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._read_task

    async def __aenter__(self) -> GatewayClient:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _read_loop(self) -> None:
        reason = "Gateway process exited"
        try:
            while True:
                try:
                    line = await self._reader.readline()
                except ValueError:
                    # The reply that overran the limit is lost; nothing left can be paired.
                    logger.error("gateway sent a line longer than %d bytes", LINE_LIMIT)
                    reason = "Gateway sent an over-long reply"
                    break
                if not line:
                    break
                try:
                    msg = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("ignoring malformed line from gateway")
                    continue
                if not isinstance(msg, dict):
                    continue

                msg_id = msg.get("id")
                if msg_id is not None:
                    fut = self._pending.pop(msg_id, None)
                    if fut is not None and not fut.done():
                        fut.set_result(msg)
                elif "method" in msg:
                    task = asyncio.create_task(self._notify(msg["method"]))
                    self._tasks.add(task)
                    task.add_done_callback(self._tasks.discard)
        except Exception:
            logger.exception("gateway read loop failed")
            reason = "Gateway connection failed"
        finally:
            self._closed = True
            for fut in self._pending.values():
                if not fut.done():
                    fut.set_exception(ExternalError(reason))
            self._pending.clear()

    async def _notify(self, channel: str) -> None:
        for callback in list(self._subscribers.get(channel, [])):
            try:
                result = callback(channel)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("subscriber for %s failed", channel)

    async def call(self, method: str, *params: Any) -> Any:
        """Send one request and wait for its result."""
        if self._closed:
            msg = "Gateway is not running"
            raise ExternalError(msg)
        msg_id = next(self._ids)
        request = {"jsonrpc": "2.0", "id": msg_id, "method": method, "params": list(params)}
        data = (json.dumps(request, ensure_ascii=False) + "\n").encode()
        if len(data) > LINE_LIMIT:
            msg = f"Request for {method} exceeds the {LINE_LIMIT}-byte line limit"
            raise ValidationError(msg)
        fut: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = fut
        self._writer.write(data)
        await self._writer.drain()

        reply = await fut
        if "error" in reply:
            err = reply["error"]
            kind = (err.get("data") or {}).get("kind", "external")
            raise error_from_kind(kind, err.get("message", "Gateway error"))
        return reply.get("result")

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def on(self, channel: str, callback: Subscriber) -> Callable[[], None]:
        """Subscribe to one notification channel. Returns an unsubscribe function."""
        subs = self._subscribers.setdefault(channel, [])
        subs.append(callback)

        def unsubscribe() -> None:
            if callback in subs:
                subs.remove(callback)

        return unsubscribe

    def on_menu_action(self, callback: Subscriber) -> Callable[[], None]:
        """Subscribe to every menu channel; callback receives the channel name."""
        undo = [self.on(channel, callback) for channel in MENU_CHANNELS]

        def unsubscribe() -> None:
            for u in undo:
                u()

        return unsubscribe

    # ------------------------------------------------------------------
    # config-*
    # ------------------------------------------------------------------

    async def config_get(self, key: str) -> Any:
        return await self.call("config-get", key)

    async def config_set(self, key: str, value: Any) -> None:
        await self.call("config-set", key, value)

    async def config_get_all(self) -> dict[str, Any]:
        return await self.call("config-get-all")  # type: ignore[no-any-return]

    async def repo_path(self) -> str | None:
        return await self.config_get(REPO_PATH_KEY)  # type: ignore[no-any-return]

    # ------------------------------------------------------------------
    # fs-*
    # ------------------------------------------------------------------

    async def fs_read_file(self, path: str) -> Any:
        return await self.call("fs-read-file", path)

    async def fs_write_file(self, path: str, data: Any) -> None:
        await self.call("fs-write-file", path, data)

    async def fs_read_dir(self, path: str) -> list[str]:
        return await self.call("fs-read-dir", path)  # type: ignore[no-any-return]

    async def fs_exists(self, path: str) -> bool:
        return bool(await self.call("fs-exists", path))

    # ------------------------------------------------------------------
    # conference-* / session-*
    # ------------------------------------------------------------------

    async def conference_list(self) -> list[Conference]:
        return [Conference.from_dict(d) for d in await self.call("conference-list")]

    async def conference_load(self, conference_id: str) -> Conference | None:
        data = await self.call("conference-load", conference_id)
        return Conference.from_dict(data) if data else None

    async def conference_save(self, conference: Conference) -> None:
        await self.call("conference-save", conference.to_dict())

    async def conference_delete(self, conference_id: str) -> None:
        await self.call("conference-delete", conference_id)

    async def session_list(self, conference_id: str) -> list[Session]:
        return [Session.from_dict(d) for d in await self.call("session-list", conference_id)]

    async def session_load(self, conference_id: str, session_id: str) -> Session | None:
        data = await self.call("session-load", conference_id, session_id)
        return Session.from_dict(data) if data else None

    async def session_save(self, conference_id: str, session: Session) -> None:
        await self.call("session-save", conference_id, session.to_dict())

    async def session_delete(self, conference_id: str, session_id: str) -> None:
        await self.call("session-delete", conference_id, session_id)

    # ------------------------------------------------------------------
    # youtube-*
    # ------------------------------------------------------------------

    async def youtube_validate_url(self, url: str) -> bool:
        return bool(await self.call("youtube-validate-url", url))

    async def youtube_extract_info(self, url: str) -> VideoInfo:
        return VideoInfo.from_dict(await self.call("youtube-extract-info", url))

    # ------------------------------------------------------------------
    # git-*
    # ------------------------------------------------------------------

    async def git_status(self, repo_path: str) -> GitStatus:
        return GitStatus.from_dict(await self.call("git-status", repo_path))

    async def git_clone(self, repo_url: str, local_path: str) -> None:
        await self.call("git-clone", repo_url, local_path)

    async def git_add(self, repo_path: str, paths: Sequence[str] | str | None = None) -> None:
        wire = list(paths) if paths is not None and not isinstance(paths, str) else paths
        await self.call("git-add", repo_path, wire)

    async def git_commit(self, repo_path: str, message: str) -> None:
        await self.call("git-commit", repo_path, message)

    async def git_push(self, repo_path: str, branch: str | None = None) -> None:
        await self.call("git-push", repo_path, branch)

    async def git_list_branches(self, repo_path: str) -> BranchInfo:
        return BranchInfo.from_dict(await self.call("git-list-branches", repo_path))

    async def git_create_branch(self, repo_path: str, name: str, from_branch: str | None = None) -> None:
        await self.call("git-create-branch", repo_path, name, from_branch)

    async def git_switch_branch(self, repo_path: str, name: str) -> None:
        await self.call("git-switch-branch", repo_path, name)

    async def git_get_current_branch(self, repo_path: str) -> str | None:
        return await self.call("git-get-current-branch", repo_path)  # type: ignore[no-any-return]

    async def git_has_uncommitted_changes(self, repo_path: str) -> bool:
        return bool(await self.call("git-has-uncommitted-changes", repo_path))

    # ------------------------------------------------------------------
    # menu
    # ------------------------------------------------------------------

    async def menu_activate(self, channel: str) -> None:
        await self.call("menu-activate", channel)
