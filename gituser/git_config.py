from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Final, Literal, Protocol

from .errors import ExternalToolError, NotConfigured, NotTrackedWorkspace

logger = logging.getLogger(__name__)

Scope = Literal["global", "local"]
SCOPES: Final[tuple[Scope, ...]] = ("global", "local")


class ConfigBridge(Protocol):
    """Reads and writes the author git records for a scope."""

    def is_inside_tracked_workspace(self) -> bool: ...

    def read_author(self, scope: Scope) -> tuple[str, str]: ...

    def write_author(self, scope: Scope, name: str, email: str) -> None: ...


def _scope_flag(scope: Scope) -> str:
    if scope not in SCOPES:
        raise ValueError(f"Invalid scope '{scope}'. Allowed scopes: {', '.join(SCOPES)}")
    return f"--{scope}"


def _combined_output(result: subprocess.CompletedProcess[str]) -> str:
    return ((result.stdout or "") + (result.stderr or "")).strip()


class GitConfigBridge:
    def __init__(
        self,
        git: str = "git",
        *,
        cwd: str | Path | None = None,
        timeout_s: float = 2.0,
    ) -> None:
        self.git = git
        self.cwd = str(cwd) if cwd is not None else None
        self.timeout_s = timeout_s

    def _run(self, args: Sequence[str]) -> subprocess.CompletedProcess[str]:
        cmd = [self.git, *args]
        try:
            return subprocess.run(
                cmd,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout_s,
            )
        except FileNotFoundError as exc:
            raise ExternalToolError(f"git: {self.git} not found") from exc
        except subprocess.TimeoutExpired as exc:
            logger.warning("git timed out: %s", " ".join(cmd))
            raise ExternalToolError(f"git: timed out after {self.timeout_s:g}s") from exc
        except OSError as exc:
            raise ExternalToolError(f"git: {exc}") from exc

    def is_inside_tracked_workspace(self) -> bool:
        try:
            result = self._run(["rev-parse", "--is-inside-work-tree"])
        except ExternalToolError as exc:
            logger.debug("workspace check failed: %s", exc)
            return False
        return result.returncode == 0 and result.stdout.strip() == "true"

    def _get(self, scope: Scope, key: str) -> str | None:
        result = self._run(["config", _scope_flag(scope), "--get", key])
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def read_author(self, scope: Scope) -> tuple[str, str]:
        _scope_flag(scope)
        if scope == "local" and not self.is_inside_tracked_workspace():
            raise NotTrackedWorkspace("not in a git repo")
        name = self._get(scope, "user.name")
        email = self._get(scope, "user.email")
        if not name or not email:
            raise NotConfigured(f"no {scope} git user configured")
        return name, email

    def write_author(self, scope: Scope, name: str, email: str) -> None:
        flag = _scope_flag(scope)
        for key, value in (("user.name", name), ("user.email", email)):
            result = self._run(["config", flag, key, value])
            if result.returncode != 0:
                detail = _combined_output(result)
                logger.warning("git config %s %s failed: %s", flag, key, detail)
                raise ExternalToolError(f"git: exit status {result.returncode}: {detail}")
        logger.info("git %s author set: %s <%s>", scope, name, email)
