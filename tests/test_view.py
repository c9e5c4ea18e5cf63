from __future__ import annotations

import io

from rich.console import Console

from gituser.session import MODE_ADD, MODE_EDIT, FormBuffers, SessionState
from gituser.store import Identity
from gituser.view import BROWSE_LEGEND, FORM_LEGEND, render


def _plain(state: SessionState, width: int = 120) -> str:
    buffer = io.StringIO()
    console = Console(file=buffer, width=width, color_system=None, force_terminal=False)
    console.print(render(state))
    return buffer.getvalue()


def _browse_state(*identities: Identity, selection: int | None = 0) -> SessionState:
    return SessionState(
        all_identities=list(identities),
        visible_identities=list(identities),
        selection=selection if identities else None,
    )


def test_empty_list_renders_without_error() -> None:
    output = _plain(_browse_state())

    assert "git-user" in output
    assert "No users." in output
    assert "fuzzy filter (/, esc)" in output
    assert BROWSE_LEGEND in output


def test_browse_lists_identities_and_marks_selection() -> None:
    alice = Identity(id=1, name="Alice", email="a@x.com")
    bob = Identity(id=2, name="Bob", email="b@x.com")

    output = _plain(_browse_state(alice, bob, selection=1))

    assert "  Alice" in output
    assert "│ Bob" in output
    assert "│ b@x.com" in output


def test_header_shows_error() -> None:
    state = _browse_state()
    state.error_message = "not inside a git repo (local set aborted)"

    assert "! not inside a git repo (local set aborted)" in _plain(state)


def test_filter_line_shows_query_and_cursor_while_filtering() -> None:
    state = _browse_state()
    state.filter_query = "ali"
    state.filter_active = True

    output = _plain(state)

    assert "ali█" in output
    assert "fuzzy filter" not in output


def test_add_form_renders_fields_with_focus() -> None:
    state = SessionState(mode=MODE_ADD, form=FormBuffers())

    output = _plain(state)

    assert "Add User" in output
    assert "> Name: █Full Name" in output
    assert "Email: name@example.com" in output
    assert FORM_LEGEND in output
    assert "No users." not in output


def test_edit_form_shows_buffers() -> None:
    state = SessionState(
        mode=MODE_EDIT,
        form=FormBuffers(name="Alice", email="a@x.com", active="email"),
        editing_target_id=1,
    )

    output = _plain(state)

    assert "Edit User" in output
    assert "  Name: Alice" in output
    assert "> Email: a@x.com█" in output


def test_long_list_is_paged_around_selection() -> None:
    people = [Identity(id=i, name=f"Person {i:02d}", email=f"p{i}@x.com") for i in range(30)]
    state = _browse_state(*people, selection=29)
    state.height = 20

    output = _plain(state)

    assert "Person 29" in output
    assert "Person 00" not in output
    assert "8/8" in output
