from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich import print

from . import __version__
from .config import GitUserConfig, load_config
from .errors import StorageError, StorageFault
from .git_config import GitConfigBridge
from .hydrate import hydrate_from_git
from .session import Session
from .store import IdentityStore
from .terminal import run_session

app = typer.Typer(help="git-user: manage and switch git author identities", add_completion=False)

LOG_HANDLER_NAME = "gituser-cli"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(cfg: GitUserConfig) -> None:
    logger = logging.getLogger("gituser")
    for existing in list(logger.handlers):
        if existing.get_name() == LOG_HANDLER_NAME:
            logger.removeHandler(existing)
            existing.close()
    handler: logging.Handler
    if cfg.log_path:
        log_path = Path(cfg.log_path).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    else:
        handler = logging.NullHandler()
    handler.set_name(LOG_HANDLER_NAME)
    logger.addHandler(handler)
    level = logging.getLevelName(cfg.log_level.strip().upper())
    logger.setLevel(level if isinstance(level, int) else logging.WARNING)


def _version_callback(value: bool) -> None:
    if value:
        print(f"git-user {__version__}")
        raise typer.Exit()


def _open_store(cfg: GitUserConfig) -> IdentityStore:
    try:
        return IdentityStore.open(cfg.db_path, timeout_s=cfg.store_timeout_s)
    except StorageFault as exc:
        print(f"[red]db error:[/red] {exc}")
        raise typer.Exit(code=1) from exc


@app.command()
def main(
    init_db: bool = typer.Option(
        False, "--init-db", help="Seed the database from current git config and exit"
    ),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    """Browse, add, edit, delete and apply git identities."""

    cfg = load_config()
    _configure_logging(cfg)
    store = _open_store(cfg)
    bridge = GitConfigBridge(cfg.git_binary, timeout_s=cfg.git_timeout_s)
    try:
        inserted = hydrate_from_git(store, bridge)
        if init_db:
            print(f"Initialized database at {store.db_path}")
            print(f"Imported {len(inserted)} identities from git config")
            return
        try:
            identities = store.list_identities()
        except StorageError as exc:
            print(f"[red]load error:[/red] {exc}")
            raise typer.Exit(code=1) from exc
        session = Session(store, bridge, identities)
        try:
            run_session(session)
        except RuntimeError as exc:
            print(f"[red]tui error:[/red] {exc}")
            raise typer.Exit(code=1) from exc
    finally:
        store.close()


if __name__ == "__main__":
    app()
