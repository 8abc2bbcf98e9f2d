"""
Spaces CLI — `spaces` command.

Commands:
  spaces serve             Run the engine against a browser bridge
  spaces sessions <cmd>    List, delete, export and import saved sessions
  spaces config <cmd>      Show or change persisted settings
"""

import asyncio
import json
import logging
from pathlib import Path

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install spaces-engine[cli]")

from spaces_engine.stores.http import HttpSessionStore
from spaces_engine.transport.http import DEFAULT_STORE_URL, HttpClient

console = Console()
CONFIG_FILE = Path.home() / ".spaces" / "config.json"
CONFIG_KEYS = ("bridge_url", "store_url", "resource_base", "token")


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _get_store() -> HttpSessionStore:
    cfg = _load_config()
    http = HttpClient(base_url=cfg.get("store_url", DEFAULT_STORE_URL), token=cfg.get("token"))
    return HttpSessionStore(http)


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity",
)
def main(log_level: str):
    """Spaces: named, persistent browser window sessions."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.group()
def config():
    """Persisted settings (~/.spaces/config.json)."""


@config.command("show")
def config_show():
    """Print the current settings."""
    cfg = _load_config()
    if "token" in cfg:
        cfg["token"] = "***"
    click.echo(json.dumps(cfg, indent=2))


@config.command("set")
@click.argument("key", type=click.Choice(CONFIG_KEYS))
@click.argument("value")
def config_set(key: str, value: str):
    """Set KEY to VALUE."""
    cfg = _load_config()
    cfg[key] = value
    _save_config(cfg)
    console.print(f"[green]{key} updated.[/green]")


# Register subcommands from separate modules
from spaces_engine.cli.serve import serve
from spaces_engine.cli.sessions import sessions

main.add_command(serve)
main.add_command(sessions)


if __name__ == "__main__":
    main()
