"""confcurate CLI: curate a conference website's data from the terminal.

Commands:
    confcurate init PATH                  point confcurate at a website checkout
    confcurate config get|set|show        inspect or change settings
    confcurate conference list|show|add|delete
    confcurate session list|show|add|delete CONF_ID ...
    confcurate git status|branches|branch|switch|save
    confcurate validate                   check every record
    confcurate menu CHANNEL               fire a menu action
    confcurate serve                      run the back end on stdio

Every data command talks to a freshly spawned back end through GatewayClient.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from confcurate import workflow
from confcurate.client import GatewayClient
from confcurate.config import REPO_PATH_KEY, load_settings
from confcurate.errors import CurateError, NotConfiguredError
from confcurate.models import Conference, Session, now_iso, parse_tags, slugify
from confcurate.store import conferences_path, is_file_safe_id
from confcurate.validation import check_conference, check_session, ensure_valid, validate_dataset

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(ctx: click.Context, fn: Callable[[GatewayClient], Awaitable[T]]) -> T:
    """Spawn a back end, run fn against it, and map CurateError to ClickException."""
    config_dir = ctx.obj.get("config_dir")

    async def main() -> T:
        async with await GatewayClient.spawn(config_dir, env=env) as client:
            return await fn(client)

    # Keep the back end's INFO chatter off the terminal unless asked for.
    env = {"CONFCURATE_LOG_LEVEL": "WARNING", **os.environ}
    try:
        return asyncio.run(main())
    except CurateError as exc:
        raise click.ClickException(str(exc)) from exc


async def _require_repo(client: GatewayClient) -> str:
    repo = await client.repo_path()
    if not repo:
        raise NotConfiguredError("Website repository not configured; run `confcurate init PATH`")
    return repo


def _parse_value(raw: str) -> Any:
    """Interpret a config value as JSON when it parses, else as a plain string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _cell(value: Any) -> str:
    return escape("" if value is None else str(value))


def _record_table(title: Any, record: dict[str, Any]) -> Table:
    table = Table(title=str(title), show_header=False)
    table.add_column("Field", style="dim", no_wrap=True)
    table.add_column("Value")
    for key, value in record.items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        table.add_row(key, _cell(value))
    return table


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="confcurate")
@click.option(
    "--config-dir",
    envvar="CONFCURATE_CONFIG_DIR",
    type=click.Path(file_okay=False, path_type=Path),
    help="Configuration directory (default: ~/.config/confcurate)",
)
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None) -> None:
    """confcurate: conference website content curator."""
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.pass_context
def init(ctx: click.Context, path: Path) -> None:
    """Use PATH as the website repository."""
    root = path.resolve()

    async def go(client: GatewayClient) -> None:
        await client.config_set(REPO_PATH_KEY, str(root))

    _run(ctx, go)
    click.echo(f"Website repository: {root}")
    if not conferences_path(root).exists():
        click.echo(f"Note: {conferences_path(root)} does not exist yet; it is created on first save")


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@cli.group()
def config() -> None:
    """Read and write settings."""


@config.command("get")
@click.argument("key")
@click.pass_context
def config_get(ctx: click.Context, key: str) -> None:
    """Print the value of KEY."""
    value = _run(ctx, lambda c: c.config_get(key))
    if value is None:
        raise click.ClickException(f"{key} is not set")
    click.echo(value if isinstance(value, str) else json.dumps(value))


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set KEY to VALUE (parsed as JSON when possible)."""
    _run(ctx, lambda c: c.config_set(key, _parse_value(value)))
    click.echo(f"{key} updated")


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show every setting."""
    values = _run(ctx, lambda c: c.config_get_all())
    settings = load_settings(ctx.obj.get("config_dir"))

    table = Table(title="confcurate settings", header_style="bold")
    table.add_column("Key", style="dim", no_wrap=True)
    table.add_column("Value")
    for key, value in sorted(values.items()):
        table.add_row(key, escape(value if isinstance(value, str) else json.dumps(value)))
    table.add_row("", "")
    table.add_row("git.remote", settings.git.remote)
    table.add_row("git.base_branch", settings.git.base_branch)
    table.add_row("logging.level", settings.logging.level)
    console.print(table)


# ---------------------------------------------------------------------------
# conference
# ---------------------------------------------------------------------------


@cli.group()
def conference() -> None:
    """Manage conferences."""


@conference.command("list")
@click.option("-q", "--query", default="", help="Only conferences whose name or location contains this")
@click.pass_context
def conference_list(ctx: click.Context, query: str) -> None:
    """List conferences."""
    confs = _run(ctx, lambda c: c.conference_list())
    if query:
        q = query.lower()
        confs = [c for c in confs if q in str(c.name or "").lower() or q in str(c.location or "").lower()]
    if not confs:
        click.echo("No conferences.")
        return

    table = Table(header_style="bold")
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Date", no_wrap=True)
    table.add_column("Location")
    table.add_column("Sessions", justify="right")
    for c in confs:
        table.add_row(_cell(c.id), _cell(c.name), _cell(c.date), _cell(c.location), _cell(c.session_count))
    console.print(table)


@conference.command("show")
@click.argument("conference_id")
@click.pass_context
def conference_show(ctx: click.Context, conference_id: str) -> None:
    """Show one conference."""
    conf = _run(ctx, lambda c: c.conference_load(conference_id))
    if conf is None:
        raise click.ClickException(f"No conference with id {conference_id}")
    console.print(_record_table(conf.name or conf.id, conf.to_dict()))


@conference.command("add")
@click.argument("name")
@click.option("--date", required=True, help="e.g. 2025-05-14")
@click.option("--location", required=True)
@click.option("--description", default="")
@click.option("--website-url", default="")
@click.option("--tags", default="", help="Comma-separated")
@click.option("--slug", default="", help="Default: derived from NAME")
@click.option("--id", "conf_id", default="", help="Default: the slug")
@click.pass_context
def conference_add(
    ctx: click.Context,
    name: str,
    date: str,
    location: str,
    description: str,
    website_url: str,
    tags: str,
    slug: str,
    conf_id: str,
) -> None:
    """Add or replace a conference."""
    conf = Conference.new(
        name,
        slug=slug,
        id=conf_id,
        date=date,
        location=location,
        description=description,
        website_url=website_url,
        tags=parse_tags(tags),
    )
    try:
        ensure_valid(check_conference(conf))
    except CurateError as exc:
        raise click.ClickException(str(exc)) from exc

    async def go(client: GatewayClient) -> None:
        existing = await client.conference_load(conf.id)
        if existing is not None:
            conf.session_count = existing.session_count
            conf.extra = existing.extra
        await client.conference_save(conf)

    _run(ctx, go)
    click.echo(f"Saved conference {conf.id}")


@conference.command("delete")
@click.argument("conference_id")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def conference_delete(ctx: click.Context, conference_id: str, yes: bool) -> None:
    """Delete a conference and all of its sessions."""
    if not yes:
        click.confirm(f"Delete conference {conference_id} and all its sessions?", abort=True)
    _run(ctx, lambda c: c.conference_delete(conference_id))
    click.echo(f"Deleted conference {conference_id}")


# ---------------------------------------------------------------------------
# session
# ---------------------------------------------------------------------------


@cli.group()
def session() -> None:
    """Manage the sessions of a conference."""


@session.command("list")
@click.argument("conference_id")
@click.pass_context
def session_list(ctx: click.Context, conference_id: str) -> None:
    """List sessions of CONFERENCE_ID."""
    sessions = _run(ctx, lambda c: c.session_list(conference_id))
    if not sessions:
        click.echo(f"No sessions for {conference_id}.")
        return

    table = Table(title=conference_id, header_style="bold")
    table.add_column("ID", no_wrap=True)
    table.add_column("Title")
    table.add_column("Speaker")
    table.add_column("Duration", no_wrap=True)
    table.add_column("Video")
    for s in sessions:
        video = "[green]yes[/green]" if s.youtube_url else "[dim]-[/dim]"
        table.add_row(_cell(s.id), _cell(s.title), _cell(s.speaker), _cell(s.duration), video)
    console.print(table)


@session.command("show")
@click.argument("conference_id")
@click.argument("session_id")
@click.pass_context
def session_show(ctx: click.Context, conference_id: str, session_id: str) -> None:
    """Show one session."""
    s = _run(ctx, lambda c: c.session_load(conference_id, session_id))
    if s is None:
        raise click.ClickException(f"No session {session_id} in {conference_id}")
    console.print(_record_table(s.title or s.id, s.to_dict()))


@session.command("add")
@click.argument("conference_id")
@click.option("--title", default="")
@click.option("--speaker", default="")
@click.option("--youtube-url", default="")
@click.option("--summary", default="")
@click.option("--duration", default="")
@click.option("--tags", default="", help="Comma-separated")
@click.option("--id", "session_id", default="", help="Default: derived from the title")
@click.option("--extract", is_flag=True, help="Fill blank title and duration from the video")
@click.pass_context
def session_add(
    ctx: click.Context,
    conference_id: str,
    title: str,
    speaker: str,
    youtube_url: str,
    summary: str,
    duration: str,
    tags: str,
    session_id: str,
    extract: bool,
) -> None:
    """Add or replace a session of CONFERENCE_ID."""

    async def go(client: GatewayClient) -> Session:
        if await client.conference_load(conference_id) is None:
            raise click.ClickException(f"No conference with id {conference_id}")

        s = Session(
            id=session_id,
            title=title,
            speaker=speaker,
            youtube_url=youtube_url,
            summary=summary,
            duration=duration,
            tags=parse_tags(tags),
        )
        if extract and youtube_url and await client.youtube_validate_url(youtube_url):
            info = await client.youtube_extract_info(youtube_url)
            s.title = s.title or info.title
            s.duration = s.duration or info.duration
            s.summary = s.summary or info.description
        s.id = s.id or slugify(s.title)

        existing = await client.session_load(conference_id, s.id)
        s.extracted_at = existing.extracted_at if existing and existing.extracted_at else now_iso()
        ensure_valid(check_session(s))

        await client.session_save(conference_id, s)
        await _sync_session_count(client, conference_id)
        return s

    saved = _run(ctx, go)
    click.echo(f"Saved session {conference_id}/{saved.id}")


@session.command("delete")
@click.argument("conference_id")
@click.argument("session_id")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def session_delete(ctx: click.Context, conference_id: str, session_id: str, yes: bool) -> None:
    """Delete one session."""
    if not yes:
        click.confirm(f"Delete session {conference_id}/{session_id}?", abort=True)

    async def go(client: GatewayClient) -> None:
        await client.session_delete(conference_id, session_id)
        await _sync_session_count(client, conference_id)

    _run(ctx, go)
    click.echo(f"Deleted session {conference_id}/{session_id}")


async def _sync_session_count(client: GatewayClient, conference_id: str) -> None:
    conf = await client.conference_load(conference_id)
    if conf is None:
        return
    count = len(await client.session_list(conference_id))
    if conf.session_count != count:
        conf.session_count = count
        await client.conference_save(conf)


# ---------------------------------------------------------------------------
# git
# ---------------------------------------------------------------------------


@cli.group()
def git() -> None:
    """Branches, status, and publishing of the website repository."""


@git.command("status")
@click.pass_context
def git_status(ctx: click.Context) -> None:
    """Show working tree status."""

    async def go(client: GatewayClient) -> Any:
        return await client.git_status(await _require_repo(client))

    st = _run(ctx, go)
    branch = st.current_branch or "(detached)"
    tracking = f" → {st.tracking} (+{st.ahead}/-{st.behind})" if st.tracking else ""
    console.print(f"On [bold]{escape(branch)}[/bold]{escape(tracking)}")
    if st.is_clean:
        console.print("[green]No unsaved changes[/green]")
        return

    table = Table(header_style="bold")
    table.add_column("Change", style="dim", no_wrap=True)
    table.add_column("Path")
    for label, paths in (
        ("staged", st.staged),
        ("modified", st.modified),
        ("created", st.created),
        ("deleted", st.deleted),
        ("conflicted", st.conflicted),
        ("untracked", st.untracked),
    ):
        for p in paths:
            table.add_row(label, escape(p))
    for r in st.renamed:
        table.add_row("renamed", escape(f"{r['from']} → {r['to']}"))
    console.print(table)


@git.command("branches")
@click.pass_context
def git_branches(ctx: click.Context) -> None:
    """List local branches."""

    async def go(client: GatewayClient) -> Any:
        return await client.git_list_branches(await _require_repo(client))

    info = _run(ctx, go)
    table = Table(header_style="bold")
    table.add_column("", no_wrap=True)
    table.add_column("Branch", no_wrap=True)
    table.add_column("Commit", style="dim", no_wrap=True)
    table.add_column("Subject")
    for b in info.branches:
        table.add_row("*" if b.current else "", escape(b.name), b.commit, escape(b.label))
    console.print(table)


@git.command("branch")
@click.argument("name", required=False)
@click.option("--from", "from_branch", default=None, help="Start point (default: git.base_branch)")
@click.pass_context
def git_branch(ctx: click.Context, name: str | None, from_branch: str | None) -> None:
    """Create and switch to a new content branch."""
    base = from_branch or load_settings(ctx.obj.get("config_dir")).git.base_branch

    async def go(client: GatewayClient) -> str:
        repo = await _require_repo(client)
        return await workflow.start_content_branch(client, repo, base_branch=base, name=name)

    branch = _run(ctx, go)
    click.echo(f"Switched to new branch {branch}")


@git.command("switch")
@click.argument("name")
@click.pass_context
def git_switch(ctx: click.Context, name: str) -> None:
    """Switch to branch NAME (requires a clean working tree)."""

    async def go(client: GatewayClient) -> None:
        await workflow.switch_branch(client, await _require_repo(client), name)

    _run(ctx, go)
    click.echo(f"Switched to {name}")


@git.command("save")
@click.option("--push", is_flag=True, help="Push the current branch after committing")
@click.pass_context
def git_save(ctx: click.Context, push: bool) -> None:
    """Commit every change, optionally pushing it."""

    async def go(client: GatewayClient) -> bool:
        return await workflow.save_changes(client, await _require_repo(client), push=push)

    if _run(ctx, go):
        click.echo("Changes saved" + (" and pushed" if push else ""))
    else:
        click.echo("Nothing to save")


# ---------------------------------------------------------------------------
# validate / menu / serve
# ---------------------------------------------------------------------------


@cli.command()
@click.pass_context
def validate(ctx: click.Context) -> None:
    """Check every conference and session record."""

    async def go(client: GatewayClient) -> Any:
        repo = await _require_repo(client)
        confs = await client.conference_list()
        conf_ids = [str(c.id) for c in confs if is_file_safe_id(c.id)]
        sessions_dir = str(Path(repo) / "data" / "sessions")
        if await client.fs_exists(sessions_dir):
            for name in await client.fs_read_dir(sessions_dir):
                if name.endswith("-sessions.json"):
                    cid = name.removesuffix("-sessions.json")
                    if cid not in conf_ids:
                        conf_ids.append(cid)
        by_conf = {cid: await client.session_list(cid) for cid in conf_ids}
        return validate_dataset(confs, by_conf), len(confs), sum(len(v) for v in by_conf.values())

    issues, n_confs, n_sessions = _run(ctx, go)
    if not issues:
        console.print(f"[green]OK[/green]: {n_confs} conferences, {n_sessions} sessions")
        return
    for issue in issues:
        console.print(f"[red]✗[/red] {escape(str(issue))}")
    raise click.ClickException(f"{len(issues)} problem(s) found")


@cli.command()
@click.argument("channel")
@click.pass_context
def menu(ctx: click.Context, channel: str) -> None:
    """Fire menu action CHANNEL (e.g. validate-data) and print the notification."""
    received: list[str] = []

    async def go(client: GatewayClient) -> None:
        got = asyncio.Event()

        def on_action(name: str) -> None:
            received.append(name)
            got.set()

        client.on_menu_action(on_action)
        await client.menu_activate(channel)
        await asyncio.wait_for(got.wait(), timeout=5)

    _run(ctx, go)
    for name in received:
        click.echo(name)


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Run the back end gateway on stdin/stdout."""
    from confcurate.gateway import run_gateway

    run_gateway(ctx.obj.get("config_dir"))
