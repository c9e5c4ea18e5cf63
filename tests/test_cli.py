from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from gituser import __version__, cli
from gituser.store import IdentityStore

runner = CliRunner()


def test_help_shows_init_db_switch() -> None:
    result = runner.invoke(cli.app, ["--help"])
    assert result.exit_code == 0
    assert "--init-db" in result.stdout


def test_version() -> None:
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_init_db_seeds_from_git_and_exits(monkeypatch, tmp_path: Path, bridge) -> None:
    db_path = tmp_path / "users.sqlite3"
    monkeypatch.setenv("GIT_USER_DB", str(db_path))
    bridge.authors = {"global": ("Alice", "a@x.com"), "local": ("Carl", "c@x.com")}
    monkeypatch.setattr(cli, "GitConfigBridge", lambda *args, **kwargs: bridge)

    def _no_tui(session):
        raise AssertionError("--init-db must not start the interactive session")

    monkeypatch.setattr(cli, "run_session", _no_tui)

    result = runner.invoke(cli.app, ["--init-db"])

    assert result.exit_code == 0, result.stdout
    assert "Initialized database at" in result.stdout
    assert "Imported 2 identities" in result.stdout
    with IdentityStore(db_path) as store:
        assert [i.name for i in store.list_identities()] == ["Alice", "Carl"]


def test_init_db_without_git_is_not_an_error(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GIT_USER_DB", str(tmp_path / "users.sqlite3"))
    monkeypatch.setenv("GIT_USER_GIT", str(tmp_path / "no-such-git"))

    result = runner.invoke(cli.app, ["--init-db"])

    assert result.exit_code == 0, result.stdout
    assert "Imported 0 identities" in result.stdout


def test_corrupt_database_exits_with_db_error(monkeypatch, tmp_path: Path) -> None:
    db_path = tmp_path / "users.sqlite3"
    db_path.write_bytes(b"not a valid sqlite database" * 100)
    monkeypatch.setenv("GIT_USER_DB", str(db_path))

    result = runner.invoke(cli.app, ["--init-db"])

    assert result.exit_code == 1
    assert "db error" in result.stdout


def test_interactive_session_receives_loaded_identities(monkeypatch, tmp_path: Path, bridge) -> None:
    monkeypatch.setenv("GIT_USER_DB", str(tmp_path / "users.sqlite3"))
    bridge.authors = {"global": ("Alice", "a@x.com")}
    monkeypatch.setattr(cli, "GitConfigBridge", lambda *args, **kwargs: bridge)
    seen = []
    monkeypatch.setattr(cli, "run_session", lambda session: seen.append(session))

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 0, result.stdout
    assert [i.name for i in seen[0].state.visible_identities] == ["Alice"]


def test_non_tty_stdin_reports_tui_error(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GIT_USER_DB", str(tmp_path / "users.sqlite3"))
    monkeypatch.setenv("GIT_USER_GIT", str(tmp_path / "no-such-git"))

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 1
    assert "tui error" in result.stdout


def test_log_file_is_written_when_configured(monkeypatch, tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "git-user.log"
    monkeypatch.setenv("GIT_USER_DB", str(tmp_path / "users.sqlite3"))
    monkeypatch.setenv("GIT_USER_GIT", str(tmp_path / "no-such-git"))
    monkeypatch.setenv("GIT_USER_LOG", str(log_path))
    monkeypatch.setenv("GIT_USER_LOG_LEVEL", "debug")

    result = runner.invoke(cli.app, ["--init-db"])

    assert result.exit_code == 0, result.stdout
    assert "hydrate global skipped" in log_path.read_text()
