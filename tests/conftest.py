from __future__ import annotations

from pathlib import Path

import pytest

from gituser.config import CONFIG_ENV_OVERRIDES
from gituser.errors import ExternalToolError, NotConfigured, NotTrackedWorkspace
from gituser.store import IdentityStore


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GIT_USER_CONFIG", str(tmp_path / "config" / "config.json"))
    for env_var in CONFIG_ENV_OVERRIDES.values():
        monkeypatch.delenv(env_var, raising=False)


class FakeBridge:
    """In-memory stand-in for git config."""

    def __init__(
        self,
        *,
        inside: bool = True,
        authors: dict[str, tuple[str, str]] | None = None,
    ) -> None:
        self.inside = inside
        self.authors = dict(authors or {})
        self.writes: list[tuple[str, str, str]] = []
        self.fail_write: str | None = None
        self.workspace_checks = 0

    def is_inside_tracked_workspace(self) -> bool:
        self.workspace_checks += 1
        return self.inside

    def read_author(self, scope: str) -> tuple[str, str]:
        if scope == "local" and not self.inside:
            raise NotTrackedWorkspace("not in a git repo")
        if scope not in self.authors:
            raise NotConfigured(f"no {scope} git user configured")
        return self.authors[scope]

    def write_author(self, scope: str, name: str, email: str) -> None:
        if self.fail_write is not None:
            raise ExternalToolError(self.fail_write)
        self.writes.append((scope, name, email))
        self.authors[scope] = (name, email)


@pytest.fixture
def bridge() -> FakeBridge:
    return FakeBridge()


@pytest.fixture
def store(tmp_path: Path):
    identity_store = IdentityStore(tmp_path / "users.sqlite3")
    try:
        yield identity_store
    finally:
        identity_store.close()
