"""CLI: spaces serve"""

import asyncio
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from spaces_engine.engine import SpacesEngine
from spaces_engine.errors import SpacesError
from spaces_engine.runtime.base import DEFAULT_RESOURCE_BASE
from spaces_engine.runtime.bridge import BridgeWindowManager
from spaces_engine.stores.http import HttpSessionStore
from spaces_engine.stores.memory import InMemorySessionStore
from spaces_engine.stores.scratch import SCRATCH_FILE, JsonScratchStore
from spaces_engine.transport.http import DEFAULT_STORE_URL, HttpClient
from spaces_engine.transport.socketio import DEFAULT_BRIDGE_URL, BridgeConnection

console = Console()


def _load_config() -> dict:
    from spaces_engine.cli.main import _load_config
    return _load_config()


def _run(coro):
    from spaces_engine.cli.main import _run
    return _run(coro)


@click.command("serve")
@click.option("--bridge-url", default=None, help="Browser bridge Socket.IO URL")
@click.option("--store-url", default=None, help="Session store REST URL")
@click.option("--memory", is_flag=True, help="Keep sessions in memory instead of the REST store")
@click.option("--resource-base", default=None, help="URL prefix of the extension's own pages")
@click.option("--scratch-file", type=click.Path(dir_okay=False, path_type=Path), default=None)
def serve(
    bridge_url: Optional[str],
    store_url: Optional[str],
    memory: bool,
    resource_base: Optional[str],
    scratch_file: Optional[Path],
):
    """Run the engine until interrupted."""
    cfg = _load_config()

    async def _serve():
        bridge = BridgeConnection(base_url=bridge_url or cfg.get("bridge_url", DEFAULT_BRIDGE_URL), token=cfg.get("token"))
        if memory:
            store = InMemorySessionStore()
        else:
            store = HttpSessionStore(HttpClient(base_url=store_url or cfg.get("store_url", DEFAULT_STORE_URL), token=cfg.get("token")))
        windows = BridgeWindowManager(bridge, resource_base or cfg.get("resource_base", DEFAULT_RESOURCE_BASE))
        engine = SpacesEngine(store, windows, JsonScratchStore(scratch_file or SCRATCH_FILE))

        with console.status("Connecting to bridge..."):
            await bridge.connect()
        engine.attach(bridge)
        await engine.start()
        console.print("[green]Spaces engine running.[/green] Press Ctrl+C to stop.")
        try:
            await asyncio.Event().wait()
        finally:
            await engine.stop()
            await bridge.disconnect()
            await store.close()

    try:
        _run(_serve())
    except SpacesError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    except KeyboardInterrupt:
        console.print("Stopped.")
