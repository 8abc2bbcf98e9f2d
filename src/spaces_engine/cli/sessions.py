"""CLI: spaces sessions list|delete|export|import"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from spaces_engine.backup import import_session_name, space_url_list, spaces_for_backup, validate_import_format
from spaces_engine.models.session import Session, Space, Tab
from spaces_engine.naming import resolve_conflict

console = Console()


def _get_store():
    from spaces_engine.cli.main import _get_store
    return _get_store()


def _run(coro):
    from spaces_engine.cli.main import _run
    return _run(coro)


def _format_access(last_access: Optional[float]) -> str:
    if not last_access:
        return ""
    return datetime.fromtimestamp(last_access).strftime("%Y-%m-%d %H:%M")


@click.group()
def sessions():
    """Saved session management."""


@sessions.command("list")
@click.option("--json-output", "--json", is_flag=True)
def sessions_list(json_output):
    """List saved sessions."""

    async def _list():
        store = _get_store()
        found = await store.fetch_all_sessions()
        await store.close()
        if json_output:
            click.echo(json.dumps([s.to_wire() for s in found], indent=2))
            return
        table = Table(title=f"Sessions ({len(found)} total)")
        table.add_column("ID", style="bold")
        table.add_column("Name")
        table.add_column("Tabs", justify="right")
        table.add_column("Window")
        table.add_column("Last access")
        for s in found:
            table.add_row(
                str(s.id),
                s.name or "",
                str(len(s.tabs)),
                str(s.window_id) if s.window_id is not None else "",
                _format_access(s.last_access),
            )
        console.print(table)

    _run(_list())


@sessions.command("delete")
@click.argument("session_id", type=int)
def sessions_delete(session_id):
    """Delete a saved session."""

    async def _delete():
        store = _get_store()
        with console.status("Deleting..."):
            deleted = await store.remove_session(session_id)
        await store.close()
        if not deleted:
            console.print(f"[red]No session with id {session_id}.[/red]")
            raise SystemExit(1)
        console.print(f"[green]Session {session_id} deleted.[/green]")

    _run(_delete())


@sessions.command("export")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path), required=False)
@click.option("--session-id", type=int, default=None, help="Export one session as a plain URL list")
def sessions_export(output: Optional[Path], session_id: Optional[int]):
    """Write a JSON backup of every named session (stdout if no OUTPUT)."""

    async def _export():
        store = _get_store()
        if session_id is not None:
            session = await store.fetch_session_by_id(session_id)
            await store.close()
            if session is None:
                console.print(f"[red]No session with id {session_id}.[/red]")
                raise SystemExit(1)
            text, count = space_url_list(Space.from_session(session)), 1
        else:
            found = await store.fetch_all_sessions()
            await store.close()
            backup = spaces_for_backup(Space.from_session(s) for s in found if s.name)
            text, count = json.dumps(backup, indent=2), len(backup)
        if output is None:
            click.echo(text)
        else:
            output.write_text(text)
            console.print(f"[green]Exported {count} sessions to {output}.[/green]")

    _run(_export())


@sessions.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--overwrite", is_flag=True, help="Replace sessions with the same name")
def sessions_import(source: Path, overwrite: bool):
    """Import a JSON backup or a plain list of URLs."""
    result = validate_import_format(source.read_text())
    if not result.valid:
        console.print(f"[red]{result.error}[/red]")
        raise SystemExit(1)

    async def _import():
        store = _get_store()
        imported = skipped = 0
        if result.type == "txt":
            taken = [s.name for s in await store.fetch_all_sessions() if s.name]
            candidates = [(import_session_name(taken), [Tab(url=url) for url in result.data])]
        else:
            candidates = [
                (space["name"], [Tab.model_validate(tab) for tab in space["tabs"] or []])
                for space in result.data
            ]
        for name, tabs in candidates:
            resolution = await resolve_conflict(store, name, overwrite)
            if not resolution.proceed:
                console.print(f"[yellow]Skipping {name!r}: name already in use.[/yellow]")
                skipped += 1
                continue
            if resolution.requires_delete:
                await store.remove_session(resolution.existing_id)
            await store.create_session(Session(name=name, tabs=tabs))
            imported += 1
        await store.close()
        console.print(f"[green]Imported {imported} sessions[/green] ({skipped} skipped).")

    _run(_import())
