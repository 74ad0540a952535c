"""Tests for confcurate.client against an in-process gateway and a spawned one."""

import asyncio

import pytest

from confcurate.client import GatewayClient
from confcurate.config import REPO_PATH_KEY
from confcurate.errors import (
    CorruptCollectionError,
    ExternalError,
    NotConfiguredError,
    PreconditionError,
    ValidationError,
)
from confcurate.models import Conference, Session
from tests.conftest import InProcessGateway, Pipe, requires_git


class TestClientCalls:
    @pytest.mark.asyncio
    async def test_typed_round_trip(self, config):
        async with InProcessGateway(config) as client:
            conf = Conference.new("PyCon 2025", date="2025-05-14", location="Pittsburgh", tags=["python"])
            await client.conference_save(conf)
            assert await client.conference_load(conf.id) == conf
            assert await client.conference_list() == [conf]

            s = Session(id="keynote", title="Keynote", speaker="Ada")
            await client.session_save(conf.id, s)
            assert await client.session_load(conf.id, "keynote") == s

            await client.conference_delete(conf.id)
            assert await client.session_list(conf.id) == []
            assert await client.conference_load(conf.id) is None

    @pytest.mark.asyncio
    async def test_concurrent_calls_pair_by_id(self, config):
        async with InProcessGateway(config) as client:
            for cid in ("a", "b", "c"):
                await client.conference_save(Conference(id=cid, name=cid))
            loaded = await asyncio.gather(*(client.conference_load(cid) for cid in ("c", "a", "b")))
            assert [c.id for c in loaded] == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_config(self, config, repo_root):
        async with InProcessGateway(config) as client:
            assert await client.repo_path() == str(repo_root)
            await client.config_set("theme", "dark")
            assert (await client.config_get_all())["theme"] == "dark"

    @pytest.mark.asyncio
    async def test_youtube(self, config):
        async with InProcessGateway(config) as client:
            assert await client.youtube_validate_url("https://youtu.be/abc")
            assert not await client.youtube_validate_url("https://example.com")
            info = await client.youtube_extract_info("https://youtu.be/abc")
            assert info.duration == "45 minutes"


class TestClientErrors:
    @pytest.mark.asyncio
    async def test_not_configured(self, unconfigured):
        async with InProcessGateway(unconfigured) as client:
            assert await client.conference_list() == []
            with pytest.raises(NotConfiguredError, match="Website repository not configured"):
                await client.conference_save(Conference(id="a"))

    @pytest.mark.asyncio
    async def test_corrupt(self, config, repo_root):
        (repo_root / "data").mkdir()
        (repo_root / "data" / "conferences.json").write_text("nope")
        async with InProcessGateway(config) as client:
            with pytest.raises(CorruptCollectionError):
                await client.conference_list()

    @pytest.mark.asyncio
    async def test_validation(self, config):
        async with InProcessGateway(config) as client:
            with pytest.raises(ValidationError):
                await client.youtube_extract_info("")
            with pytest.raises(ValidationError):
                await client.call("conference-load")

    @requires_git
    @pytest.mark.asyncio
    async def test_precondition(self, config, git_repo):
        repo = str(git_repo)
        async with InProcessGateway(config) as client:
            await client.git_create_branch(repo, "draft", "main")
            (git_repo / "new.json").write_text("{}")
            assert await client.git_has_uncommitted_changes(repo)
            with pytest.raises(PreconditionError):
                await client.git_switch_branch(repo, "main")
            assert await client.git_get_current_branch(repo) == "draft"

    @pytest.mark.asyncio
    async def test_pending_calls_fail_when_back_end_exits(self):
        client_in = asyncio.StreamReader()
        client = GatewayClient(client_in, Pipe(asyncio.StreamReader()))
        client.start()
        call = asyncio.create_task(client.conference_list())
        await asyncio.sleep(0)
        client_in.feed_eof()
        with pytest.raises(ExternalError, match="exited"):
            await call
        with pytest.raises(ExternalError):
            await client.conference_list()

    @pytest.mark.asyncio
    async def test_pending_calls_fail_on_over_long_reply(self):
        client_in = asyncio.StreamReader(limit=64)
        client = GatewayClient(client_in, Pipe(asyncio.StreamReader()))
        client.start()
        call = asyncio.create_task(client.conference_list())
        await asyncio.sleep(0)
        client_in.feed_data(b'{"jsonrpc": "2.0", "id": 1, "result": "' + b"x" * 200 + b'"}\n')
        with pytest.raises(ExternalError, match="over-long"):
            await asyncio.wait_for(call, timeout=5)
        with pytest.raises(ExternalError):
            await client.conference_list()

    @pytest.mark.asyncio
    async def test_over_long_request_is_refused_locally(self, config, monkeypatch):
        monkeypatch.setattr("confcurate.client.LINE_LIMIT", 100)
        async with InProcessGateway(config) as client:
            with pytest.raises(ValidationError, match="line limit"):
                await client.config_set("notes", "x" * 200)
            assert await client.config_get("notes") is None

    @pytest.mark.asyncio
    async def test_spawn_without_pipes(self, monkeypatch):
        class NoPipes:
            stdin = None
            stdout = None
            killed = False

            def kill(self):
                self.killed = True

            async def wait(self):
                return -9

        process = NoPipes()

        async def fake_exec(*args, **kwargs):
            return process

        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
        with pytest.raises(ExternalError, match="no stdio pipes"):
            await GatewayClient.spawn()
        assert process.killed


class TestNotifications:
    @pytest.mark.asyncio
    async def test_every_subscriber_is_called(self, config):
        async with InProcessGateway(config) as client:
            got_sync = []
            got_async = []
            done = asyncio.Event()

            async def async_cb(channel):
                got_async.append(channel)
                done.set()

            client.on("menu-validate-data", got_sync.append)
            client.on_menu_action(async_cb)

            await client.menu_activate("validate-data")
            await asyncio.wait_for(done.wait(), timeout=5)
            assert got_sync == ["menu-validate-data"]
            assert got_async == ["menu-validate-data"]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, config):
        async with InProcessGateway(config) as client:
            got = []
            done = asyncio.Event()
            unsubscribe = client.on_menu_action(got.append)
            client.on("menu-open-repo", lambda channel: done.set())
            unsubscribe()

            await client.menu_activate("open-repo")
            await asyncio.wait_for(done.wait(), timeout=5)
            assert got == []

    @pytest.mark.asyncio
    async def test_subscriber_may_call_back_into_client(self, config):
        async with InProcessGateway(config) as client:
            result = asyncio.Future()

            async def on_new(channel):
                result.set_result(await client.conference_list())

            client.on("menu-new-conference", on_new)
            await client.menu_activate("new-conference")
            assert await asyncio.wait_for(result, timeout=5) == []


class TestSpawned:
    @pytest.mark.asyncio
    async def test_subprocess_gateway(self, config_dir, repo_root):
        async with await GatewayClient.spawn(config_dir) as client:
            assert await client.config_get(REPO_PATH_KEY) is None
            await client.config_set(REPO_PATH_KEY, str(repo_root))
            await client.conference_save(Conference.new("EuroPython"))
            assert [c.id for c in await client.conference_list()] == ["europython"]
        assert (repo_root / "data" / "conferences.json").exists()
