"""Interactive session state machine.

The session owns the mode, the form buffers, the filter query and the
status/error line. It is driven one action at a time, either through the
action methods or through ``handle_key`` with normalized key names, and it
keeps the in-memory snapshot, the filtered view and the store consistent
after every action. Nothing here touches the terminal.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Final, Literal

from .errors import ExternalToolError, StorageError, ValidationError
from .fuzzy import FuzzyFilter
from .git_config import ConfigBridge, Scope
from .store import Identity, IdentityStore

logger = logging.getLogger(__name__)

Mode = Literal["browse", "add", "edit"]
FormField = Literal["name", "email"]

MODE_BROWSE: Final[Mode] = "browse"
MODE_ADD: Final[Mode] = "add"
MODE_EDIT: Final[Mode] = "edit"

QUIT: Final = "quit"

DEFAULT_STATUS = "↑/↓ select, g=global, l=local, a=add, ?=help"
HELP_STATUS = (
    "keys: a add • g set global • l set local • / filter • del delete • e edit • enter=set local"
)
FILTER_STATUS = "type to filter, enter to apply, esc to clear"
ADD_STATUS = "add user: enter to next/save, esc to cancel"
EDIT_STATUS = "edit user: enter cycles fields, esc cancels"
INVALID_FORM = "invalid name/email"
NOT_IN_REPO = "not inside a git repo (local set aborted)"

# Named keys produced by the terminal layer; anything else of length one is text.
NAMED_KEYS: Final[frozenset[str]] = frozenset(
    {
        "UP",
        "DOWN",
        "PGUP",
        "PGDN",
        "HOME",
        "END",
        "ENTER",
        "ESC",
        "BACKSPACE",
        "DELETE",
        "TAB",
        "SHIFT_TAB",
        "CTRL_C",
    }
)


def is_text_key(key: str) -> bool:
    return key not in NAMED_KEYS and len(key) == 1 and key.isprintable()


@dataclass
class FormBuffers:
    name: str = ""
    email: str = ""
    active: FormField = "name"

    def value(self) -> str:
        return self.name if self.active == "name" else self.email

    def set_value(self, text: str) -> None:
        if self.active == "name":
            self.name = text
        else:
            self.email = text


@dataclass
class SessionState:
    mode: Mode = MODE_BROWSE
    all_identities: list[Identity] = field(default_factory=list)
    filter_query: str = ""
    filter_active: bool = False
    visible_identities: list[Identity] = field(default_factory=list)
    selection: int | None = None
    form: FormBuffers | None = None
    editing_target_id: int | None = None
    status_message: str = DEFAULT_STATUS
    error_message: str = ""
    width: int = 80
    height: int = 24

    @property
    def selected(self) -> Identity | None:
        if self.selection is None:
            return None
        return self.visible_identities[self.selection]


def validate_form(form: FormBuffers) -> tuple[str, str]:
    name = form.name.strip()
    email = form.email.strip()
    if not name or not email or "@" not in email:
        raise ValidationError(INVALID_FORM)
    return name, email


class Session:
    def __init__(
        self,
        store: IdentityStore,
        bridge: ConfigBridge,
        identities: Sequence[Identity] | None = None,
    ) -> None:
        self.store = store
        self.bridge = bridge
        self.filter = FuzzyFilter()
        self.state = SessionState()
        if identities is None:
            identities = store.list_identities()
        self._set_snapshot(identities)

    # -- snapshot/view bookkeeping -------------------------------------

    def _set_snapshot(self, identities: Sequence[Identity]) -> None:
        state = self.state
        state.all_identities = list(identities)
        state.visible_identities = list(self.filter.set_source(state.all_identities))
        self._clamp_selection()

    def _reapply_filter(self) -> None:
        state = self.state
        state.visible_identities = list(self.filter.apply(state.filter_query))
        state.selection = 0 if state.visible_identities else None

    def _clamp_selection(self) -> None:
        state = self.state
        if not state.visible_identities:
            state.selection = None
            return
        current = state.selection if state.selection is not None else 0
        state.selection = max(0, min(current, len(state.visible_identities) - 1))

    def _reload(self) -> None:
        self._set_snapshot(self.store.list_identities())

    def _reload_after_failure(self) -> None:
        try:
            self._reload()
        except StorageError as exc:
            logger.warning("snapshot reload after failed action also failed: %s", exc)

    def _select_pair(self, name: str, email: str) -> None:
        for index, identity in enumerate(self.state.visible_identities):
            if identity.name == name and identity.email == email:
                self.state.selection = index
                return

    def _begin(self) -> None:
        self.state.error_message = ""

    def _fail(self, message: str) -> None:
        self.state.error_message = message

    # -- browse actions ------------------------------------------------

    def start_filter(self) -> None:
        self._begin()
        state = self.state
        state.filter_active = True
        state.filter_query = ""
        self._reapply_filter()
        state.status_message = FILTER_STATUS

    def type_filter(self, text: str) -> None:
        self._begin()
        if not self.state.filter_active:
            return
        self.state.filter_query += text
        self._reapply_filter()

    def backspace_filter(self) -> None:
        self._begin()
        if not self.state.filter_active or not self.state.filter_query:
            return
        self.state.filter_query = self.state.filter_query[:-1]
        self._reapply_filter()

    def finish_filter(self) -> None:
        self._begin()
        self.state.filter_active = False

    def clear_filter(self) -> None:
        self._begin()
        state = self.state
        state.filter_active = False
        state.filter_query = ""
        self._reapply_filter()
        state.status_message = "filter cleared"

    def move_selection(self, delta: int) -> None:
        self._begin()
        state = self.state
        if state.selection is None:
            return
        last = len(state.visible_identities) - 1
        state.selection = max(0, min(state.selection + delta, last))

    def show_help(self) -> None:
        self._begin()
        self.state.status_message = HELP_STATUS

    def resize(self, width: int, height: int) -> None:
        self.state.width = max(1, width)
        self.state.height = max(1, height)

    def begin_add(self) -> None:
        self._begin()
        state = self.state
        state.mode = MODE_ADD
        state.form = FormBuffers()
        state.editing_target_id = None
        state.status_message = ADD_STATUS

    def begin_edit(self) -> None:
        self._begin()
        state = self.state
        target = state.selected
        if target is None:
            return
        state.mode = MODE_EDIT
        state.form = FormBuffers(name=target.name, email=target.email)
        state.editing_target_id = target.id
        state.status_message = EDIT_STATUS

    def delete_selected(self) -> None:
        self._begin()
        target = self.state.selected
        if target is None:
            return
        try:
            self.store.delete(target.id)
            self._reload()
        except StorageError as exc:
            logger.warning("delete of identity %s failed", target.id, exc_info=exc)
            self._fail(str(exc))
            self._reload_after_failure()
            return
        self.state.status_message = "deleted"

    def apply_selected(self, scope: Scope) -> None:
        self._begin()
        target = self.state.selected
        if target is None:
            return
        if scope == "local" and not self.bridge.is_inside_tracked_workspace():
            self._fail(NOT_IN_REPO)
            return
        try:
            self.bridge.write_author(scope, target.name, target.email)
        except ExternalToolError as exc:
            self._fail(str(exc))
            return
        self.state.status_message = f"set {scope}: {target.name} <{target.email}>"

    # -- form actions --------------------------------------------------

    def type_form(self, text: str) -> None:
        self._begin()
        form = self.state.form
        if form is None:
            return
        form.set_value(form.value() + text)

    def backspace_form(self) -> None:
        self._begin()
        form = self.state.form
        if form is None:
            return
        form.set_value(form.value()[:-1])

    def advance_field(self) -> None:
        self._begin()
        form = self.state.form
        if form is not None and form.active == "name":
            form.active = "email"

    def previous_field(self) -> None:
        self._begin()
        form = self.state.form
        if form is not None and form.active == "email":
            form.active = "name"

    def submit(self) -> None:
        self._begin()
        state = self.state
        form = state.form
        if form is None or state.mode == MODE_BROWSE:
            return
        try:
            name, email = validate_form(form)
        except ValidationError as exc:
            self._fail(str(exc))
            return
        try:
            if state.mode == MODE_EDIT and state.editing_target_id is not None:
                self.store.delete(state.editing_target_id)
            self.store.insert(name, email)
            self._reload()
        except StorageError as exc:
            logger.warning("saving %s <%s> failed", name, email, exc_info=exc)
            self._fail(str(exc))
            self._reload_after_failure()
            return
        self._leave_form("saved")
        self._select_pair(name, email)

    def cancel(self) -> None:
        self._begin()
        if self.state.mode == MODE_BROWSE:
            return
        self._leave_form("cancelled")

    def _leave_form(self, status: str) -> None:
        state = self.state
        state.mode = MODE_BROWSE
        state.form = None
        state.editing_target_id = None
        state.status_message = status

    # -- key dispatch --------------------------------------------------

    def handle_key(self, key: str) -> str | None:
        """Route a normalized key to an action; returns ``"quit"`` to stop."""

        if key == "CTRL_C":
            return QUIT
        if self.state.mode == MODE_BROWSE:
            return self._handle_browse_key(key)
        self._handle_form_key(key)
        return None

    def _handle_browse_key(self, key: str) -> str | None:
        state = self.state
        if state.filter_active:
            if is_text_key(key):
                self.type_filter(key)
            elif key == "BACKSPACE":
                self.backspace_filter()
            elif key == "ESC":
                self.clear_filter()
            elif key == "ENTER":
                self.finish_filter()
            elif key in {"UP", "DOWN"}:
                self.move_selection(-1 if key == "UP" else 1)
            return None

        page = max(1, state.height - 7)
        if key == "q":
            return QUIT
        if key == "?":
            self.show_help()
        elif key == "/":
            self.start_filter()
        elif key == "ESC":
            if state.filter_query:
                self.clear_filter()
        elif key == "a":
            self.begin_add()
        elif key == "e":
            self.begin_edit()
        elif key in {"DELETE", "BACKSPACE"}:
            self.delete_selected()
        elif key == "g":
            self.apply_selected("global")
        elif key in {"l", "ENTER"}:
            self.apply_selected("local")
        elif key in {"UP", "k"}:
            self.move_selection(-1)
        elif key in {"DOWN", "j"}:
            self.move_selection(1)
        elif key == "PGUP":
            self.move_selection(-page)
        elif key == "PGDN":
            self.move_selection(page)
        elif key == "HOME":
            self.move_selection(-len(state.visible_identities))
        elif key == "END":
            self.move_selection(len(state.visible_identities))
        return None

    def _handle_form_key(self, key: str) -> None:
        form = self.state.form
        if form is None:
            return
        if key == "ESC":
            self.cancel()
        elif key == "ENTER":
            if form.active == "name":
                self.advance_field()
            else:
                self.submit()
        elif key in {"TAB", "DOWN"}:
            self.advance_field()
        elif key in {"SHIFT_TAB", "UP"}:
            self.previous_field()
        elif key == "BACKSPACE":
            self.backspace_form()
        elif is_text_key(key):
            self.type_form(key)
