"""
Shared fixtures.

Git-backed tests run the real git binary in a throwaway repository and are
skipped when git is not on PATH.
"""

import asyncio
import os
import shutil
import subprocess
from pathlib import Path

import pytest

from confcurate.client import GatewayClient
from confcurate.config import REPO_PATH_KEY, ConfigStore
from confcurate.gateway import serve

GIT_AVAILABLE = shutil.which("git") is not None

requires_git = pytest.mark.skipif(not GIT_AVAILABLE, reason="git executable not available")


def run_git(repo: Path, *args: str) -> str:
    """Run git in repo with a fixed identity; returns stdout."""
    env = {
        **os.environ,
        "GIT_AUTHOR_NAME": "Test",
        "GIT_AUTHOR_EMAIL": "test@example.com",
        "GIT_COMMITTER_NAME": "Test",
        "GIT_COMMITTER_EMAIL": "test@example.com",
    }
    result = subprocess.run(
        ["git", *args], cwd=repo, env=env, capture_output=True, text=True, check=True,
    )
    return result.stdout


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep tests away from the user's real configuration."""
    monkeypatch.setenv("CONFCURATE_CONFIG_DIR", str(tmp_path / "default-config"))
    monkeypatch.delenv("CONFCURATE_LOG_LEVEL", raising=False)


@pytest.fixture
def repo_root(tmp_path) -> Path:
    """An empty website checkout (no data/ yet)."""
    root = tmp_path / "website"
    root.mkdir()
    return root


@pytest.fixture
def config_dir(tmp_path) -> Path:
    return tmp_path / "config"


@pytest.fixture
def config(config_dir, repo_root) -> ConfigStore:
    """A ConfigStore pointing at repo_root."""
    store = ConfigStore(config_dir)
    store.set(REPO_PATH_KEY, str(repo_root))
    return store


@pytest.fixture
def unconfigured(config_dir) -> ConfigStore:
    return ConfigStore(config_dir)


@pytest.fixture
def git_repo(repo_root, monkeypatch) -> Path:
    """repo_root as a git repository on branch main with one commit."""
    if not GIT_AVAILABLE:
        pytest.skip("git executable not available")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    run_git(repo_root, "init", "-q")
    run_git(repo_root, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(repo_root, "config", "user.name", "Test")
    run_git(repo_root, "config", "user.email", "test@example.com")
    run_git(repo_root, "config", "commit.gpgsign", "false")
    (repo_root / "README.md").write_text("website\n")
    run_git(repo_root, "add", "README.md")
    run_git(repo_root, "commit", "-q", "-m", "Initial commit")
    return repo_root


class Pipe:
    """Writer end that feeds a StreamReader, standing in for a process pipe."""

    def __init__(self, reader):
        self.reader = reader

    def write(self, data):
        self.reader.feed_data(data)

    async def drain(self):
        pass

    def close(self):
        self.reader.feed_eof()


class InProcessGateway:
    """Async context manager: a GatewayClient wired to an in-process gateway."""

    def __init__(self, config):
        self.config = config

    async def __aenter__(self):
        server_in = asyncio.StreamReader()
        client_in = asyncio.StreamReader()
        self.server = asyncio.create_task(serve(server_in, client_in.feed_data, self.config))
        self.client = GatewayClient(client_in, Pipe(server_in))
        self.client.start()
        return self.client

    async def __aexit__(self, *exc_info):
        await self.client.close()
        await self.server
