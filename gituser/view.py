from __future__ import annotations

from rich.console import Group
from rich.style import Style
from rich.text import Text

from .fuzzy import fuzzy_match
from .session import MODE_BROWSE, MODE_EDIT, SessionState
from .store import Identity

TITLE = Style(color="color(213)", bold=True)
STATUS = Style(color="color(86)")
ERROR = Style(color="color(196)", bold=True)
FOOTER = Style(dim=True)
FOCUS = Style(color="color(229)", bgcolor="color(57)", bold=True)
HEADER = Style(color="color(45)", bold=True)
MATCH = Style(underline=True, bold=True)
SELECTED_NAME = Style(color="color(170)", bold=True)
SELECTED_EMAIL = Style(color="color(168)")
EMAIL = Style(dim=True)
CURSOR = "█"

BROWSE_LEGEND = (
    "keys: ↑/↓ move • enter/l: set local • g: set global • a: add • e: edit • "
    "del: delete • /: filter • esc: clear • q: quit"
)
FORM_LEGEND = "enter: next/save • tab: next field • esc: cancel • ctrl+c: quit"

# header + blank + filter line + title + blank + pager + blank + legend
CHROME_LINES = 8
LINES_PER_ITEM = 3


def _header(state: SessionState) -> Text:
    header = Text()
    header.append("git-user", style=HEADER)
    header.append("  ")
    header.append(state.status_message, style=STATUS)
    if state.error_message:
        header.append("  ")
        header.append(f"! {state.error_message}", style=ERROR)
    return header


def _filter_line(state: SessionState) -> Text:
    line = Text("  ")
    if not state.filter_query and not state.filter_active:
        line.append("fuzzy filter (/, esc)", style=FOOTER)
        return line
    line.append(state.filter_query)
    if state.filter_active:
        line.append(CURSOR)
    return line


def _highlighted(value: str, offset: int, positions: set[int], base: Style | None) -> Text:
    text = Text(value, style=base or "")
    for index in range(len(value)):
        if index + offset in positions:
            text.stylize(MATCH, index, index + 1)
    return text


def _item(identity: Identity, query: str, selected: bool) -> list[Text]:
    positions: set[int] = set()
    if query.strip():
        match = fuzzy_match(query, identity.filter_value)
        if match is not None:
            positions = set(match.positions)
    email_offset = len(identity.name) + 2
    marker = Text("│ ", style=SELECTED_NAME) if selected else Text("  ")
    name = _highlighted(identity.name, 0, positions, SELECTED_NAME if selected else None)
    email = _highlighted(
        identity.email, email_offset, positions, SELECTED_EMAIL if selected else EMAIL
    )
    marker_email = Text("│ ", style=SELECTED_NAME) if selected else Text("  ")
    return [
        Text.assemble(marker, name),
        Text.assemble(marker_email, email),
        Text(""),
    ]


def _page_bounds(state: SessionState) -> tuple[int, int, int, int]:
    total = len(state.visible_identities)
    per_page = max(1, (state.height - CHROME_LINES) // LINES_PER_ITEM)
    pages = max(1, -(-total // per_page))
    page = (state.selection or 0) // per_page
    start = page * per_page
    return start, min(total, start + per_page), page, pages


def _browse(state: SessionState) -> list[Text]:
    lines = [_filter_line(state), Text("Git Users", style=TITLE), Text("")]
    if not state.visible_identities:
        lines.append(Text("  No users.", style=FOOTER))
        return lines
    start, end, page, pages = _page_bounds(state)
    for index in range(start, end):
        lines.extend(
            _item(
                state.visible_identities[index],
                state.filter_query,
                selected=index == state.selection,
            )
        )
    if pages > 1:
        lines.append(Text(f"  {page + 1}/{pages}", style=FOOTER))
    return lines


def _field(label: str, value: str, placeholder: str, focused: bool) -> Text:
    line = Text()
    line.append("> " if focused else "  ", style=FOCUS if focused else "")
    line.append(label, style=FOCUS if focused else "")
    if value:
        line.append(value)
    elif not focused:
        line.append(placeholder, style=FOOTER)
    if focused:
        line.append(CURSOR)
        if not value:
            line.append(placeholder, style=FOOTER)
    return line


def _form(state: SessionState) -> list[Text]:
    form = state.form
    title = "Edit User" if state.mode == MODE_EDIT else "Add User"
    lines = [Text(title, style=TITLE), Text("")]
    if form is None:
        return lines
    lines.append(_field("Name: ", form.name, "Full Name", form.active == "name"))
    lines.append(_field("Email: ", form.email, "name@example.com", form.active == "email"))
    lines.append(Text(""))
    return lines


def render(state: SessionState) -> Group:
    """Project the session state to a renderable; reads nothing else."""

    body = _browse(state) if state.mode == MODE_BROWSE else _form(state)
    legend = BROWSE_LEGEND if state.mode == MODE_BROWSE else FORM_LEGEND
    return Group(_header(state), Text(""), *body, Text(legend, style=FOOTER))
