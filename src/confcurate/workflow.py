"""Publishing workflow built on the gateway client.

    branch = await start_content_branch(client, repo, base_branch="main")
    ... edit records ...
    await save_changes(client, repo, push=True)
"""

from __future__ import annotations

import logging
from datetime import date
from typing import TYPE_CHECKING

from confcurate.errors import UncommittedChangesError
from confcurate.models import now_iso

if TYPE_CHECKING:
    from confcurate.client import GatewayClient

logger = logging.getLogger("confcurate.workflow")

COMMIT_PREFIX = "Update conference data"


def commit_message(timestamp: str | None = None) -> str:
    return f"{COMMIT_PREFIX} - {timestamp or now_iso()}"


def suggest_branch_name(today: date | None = None) -> str:
    return f"content-update-{(today or date.today()).isoformat()}"


async def save_changes(client: GatewayClient, repo_path: str, *, push: bool = False) -> bool:
    """Stage and commit everything in repo_path, optionally pushing.

    Returns False without committing when the working tree is clean.
    """
    if not await client.git_has_uncommitted_changes(repo_path):
        logger.info("nothing to save in %s", repo_path)
        return False
    await client.git_add(repo_path)
    await client.git_commit(repo_path, commit_message())
    if push:
        await client.git_push(repo_path)
    return True


async def start_content_branch(
    client: GatewayClient,
    repo_path: str,
    *,
    base_branch: str = "main",
    name: str | None = None,
) -> str:
    """Create and check out a new branch off base_branch. Returns its name."""
    branch = name or suggest_branch_name()
    await client.git_create_branch(repo_path, branch, base_branch)
    return branch


async def switch_branch(client: GatewayClient, repo_path: str, name: str) -> None:
    """Switch branches, refusing before any git call if the tree is dirty."""
    if await client.git_has_uncommitted_changes(repo_path):
        raise UncommittedChangesError
    await client.git_switch_branch(repo_path, name)
