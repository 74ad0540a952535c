"""Version-control adapter: a narrow view of one local git repository.

All operations shell out to the git binary:

    repo = GitRepo("/path/to/website")
    st = repo.status()
    if not st.is_clean:
        repo.add("all")
        repo.commit("Update conference data")
        repo.push()

Status is parsed from `git status --porcelain=v2 --branch -z`. git never reads
stdin here (the gateway's stdin is the protocol channel) and terminal prompts
are disabled, so an authentication failure surfaces as an error instead of a
hang. There is no timeout: a push stuck on the network blocks its caller.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from confcurate.errors import BranchExistsError, GitCommandError, UncommittedChangesError
from confcurate.models import Branch, BranchInfo, GitStatus

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger("confcurate.git")

ALL = "all"

_BRANCH_FORMAT = "%(refname:short)%00%(objectname:short)%00%(HEAD)%00%(contents:subject)"


def _run_git(args: list[str], cwd: Path | None = None) -> str:
    """Run git, returning stdout. Raises GitCommandError on non-zero exit."""
    cmd = ["git", *args]
    env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            check=False,
            env=env,
        )
    except FileNotFoundError as exc:
        raise GitCommandError(cmd, 127, "git executable not found") from exc
    if result.returncode != 0:
        output = result.stderr.strip() or result.stdout.strip()
        logger.warning("git %s failed (%d): %s", args[0], result.returncode, output)
        raise GitCommandError(cmd, result.returncode, output)
    return result.stdout


def clone(url: str, local_path: Path | str) -> None:
    _run_git(["clone", url, str(local_path)])
    logger.info("cloned %s into %s", url, local_path)


# ---------------------------------------------------------------------------
# Status parsing
# ---------------------------------------------------------------------------


def parse_status(output: str) -> GitStatus:
    """Parse `git status --porcelain=v2 --branch -z` output."""
    st = GitStatus()
    fields = output.split("\0")
    i = 0
    while i < len(fields):
        entry = fields[i]
        i += 1
        if not entry:
            continue

        if entry.startswith("# "):
            key, _, value = entry[2:].partition(" ")
            if key == "branch.head":
                st.current_branch = None if value == "(detached)" else value
            elif key == "branch.upstream":
                st.tracking = value
            elif key == "branch.ab":
                ahead, _, behind = value.partition(" ")
                st.ahead = abs(int(ahead))
                st.behind = abs(int(behind))
            continue

        kind = entry[0]
        if kind == "?":
            st.untracked.append(entry[2:])
            continue
        if kind == "u":
            st.conflicted.append(entry.split(" ", 10)[10])
            continue
        if kind not in "12":
            continue

        xy = entry[2:4]
        if kind == "1":
            path = entry.split(" ", 8)[8]
        else:
            path = entry.split(" ", 9)[9]
            orig = fields[i]
            i += 1
            st.renamed.append({"from": orig, "to": path})

        index = xy[0]
        if index != ".":
            st.staged.append(path)
        if "M" in xy:
            st.modified.append(path)
        if index in "AC":
            st.created.append(path)
        if "D" in xy:
            st.deleted.append(path)
    return st


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class GitRepo:
    """Operations scoped to one repository root."""

    def __init__(self, path: Path | str, remote: str = "origin") -> None:
        self.path = Path(path)
        self.remote = remote

    def _git(self, *args: str) -> str:
        return _run_git(list(args), cwd=self.path)

    def status(self) -> GitStatus:
        return parse_status(self._git("status", "--porcelain=v2", "--branch", "-z"))

    def has_uncommitted_changes(self) -> bool:
        return not self.status().is_clean

    def current_branch(self) -> str | None:
        """Checked-out branch name, or None when HEAD is detached."""
        try:
            return self._git("symbolic-ref", "--short", "-q", "HEAD").strip() or None
        except GitCommandError as exc:
            if exc.returncode == 1:
                return None
            raise

    def add(self, paths: Sequence[str] | str = ALL) -> None:
        """Stage paths; "all" (or ".") stages every change including deletions."""
        if isinstance(paths, str):
            if paths in (ALL, "."):
                self._git("add", "--all")
            else:
                self._git("add", "--", paths)
        else:
            self._git("add", "--", *paths)

    def commit(self, message: str) -> None:
        self._git("commit", "-m", message)
        logger.info("committed in %s: %s", self.path, message)

    def push(self, branch: str | None = None) -> None:
        """Push branch (default: HEAD) to the configured remote."""
        self._git("push", self.remote, branch or "HEAD")
        logger.info("pushed %s to %s", branch or "HEAD", self.remote)

    def branch_exists(self, name: str) -> bool:
        try:
            self._git("show-ref", "--verify", "--quiet", f"refs/heads/{name}")
        except GitCommandError:
            return False
        return True

    def list_branches(self) -> BranchInfo:
        out = self._git("for-each-ref", f"--format={_BRANCH_FORMAT}", "refs/heads/")
        branches: list[Branch] = []
        current: str | None = None
        for line in out.splitlines():
            if not line:
                continue
            name, commit, head, label = (line.split("\0") + ["", "", ""])[:4]
            is_current = head == "*"
            if is_current:
                current = name
            branches.append(Branch(name=name, current=is_current, commit=commit, label=label))
        if current is None:
            current = self.current_branch()
        return BranchInfo(current=current, branches=branches)

    def create_branch(self, name: str, from_branch: str | None = None) -> None:
        """Create and check out `name`, starting from `from_branch` when given."""
        if self.branch_exists(name):
            raise BranchExistsError(name)
        if from_branch:
            self._git("checkout", from_branch)
        self._git("checkout", "-b", name)
        logger.info("created branch %s (from %s)", name, from_branch or "HEAD")

    def switch_branch(self, name: str) -> None:
        """Check out `name`. Refuses while the working tree has any change."""
        if not self.status().is_clean:
            raise UncommittedChangesError
        self._git("checkout", name)
        logger.info("switched to %s", name)
