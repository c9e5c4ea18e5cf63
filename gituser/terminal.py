from __future__ import annotations

import logging
import os
import select
import sys
import termios
import tty
from collections.abc import Iterator
from contextlib import contextmanager

from rich.console import Console

from .session import QUIT, Session
from .view import render

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.25

ESCAPE_SEQUENCES: dict[str, str] = {
    "\x1b[A": "UP",
    "\x1b[B": "DOWN",
    "\x1bOA": "UP",
    "\x1bOB": "DOWN",
    "\x1b[5~": "PGUP",
    "\x1b[6~": "PGDN",
    "\x1b[H": "HOME",
    "\x1b[F": "END",
    "\x1bOH": "HOME",
    "\x1bOF": "END",
    "\x1b[1~": "HOME",
    "\x1b[4~": "END",
    "\x1b[3~": "DELETE",
    "\x1b[Z": "SHIFT_TAB",
}
CONTROL_KEYS: dict[str, str] = {
    "\r": "ENTER",
    "\n": "ENTER",
    "\x7f": "BACKSPACE",
    "\x08": "BACKSPACE",
    "\t": "TAB",
    "\x03": "CTRL_C",
}
_SEQUENCES_LONGEST_FIRST = sorted(ESCAPE_SEQUENCES, key=len, reverse=True)


def _match_escape(data: str, start: int) -> tuple[str | None, int]:
    for seq in _SEQUENCES_LONGEST_FIRST:
        if data.startswith(seq, start):
            return ESCAPE_SEQUENCES[seq], start + len(seq)
    if start + 1 < len(data) and data[start + 1] in "[O":
        # Unknown CSI/SS3 sequence: skip through its final byte.
        end = start + 2
        while end < len(data) and not ("@" <= data[end] <= "~"):
            end += 1
        return None, end + 1
    return "ESC", start + 1


def decode_keys(data: str) -> list[str]:
    """Turn a chunk of terminal input into normalized key names."""

    keys: list[str] = []
    index = 0
    while index < len(data):
        ch = data[index]
        if ch == "\x1b":
            key, index = _match_escape(data, index)
            if key is not None:
                keys.append(key)
            continue
        if ch in CONTROL_KEYS:
            keys.append(CONTROL_KEYS[ch])
        elif ch.isprintable():
            keys.append(ch)
        index += 1
    return keys


@contextmanager
def cbreak_terminal(fd: int) -> Iterator[None]:
    """No echo, no line buffering, ctrl+c delivered as a key; restored on exit."""

    old_settings = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        mode = termios.tcgetattr(fd)
        mode[3] &= ~termios.ISIG
        termios.tcsetattr(fd, termios.TCSANOW, mode)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)


def read_keys(fd: int, timeout: float = POLL_INTERVAL_S) -> list[str]:
    ready, _, _ = select.select([fd], [], [], timeout)
    if not ready:
        return []
    data = os.read(fd, 1024)
    if not data:
        return []
    return decode_keys(data.decode(errors="replace"))


def run_session(session: Session, console: Console | None = None) -> None:
    """Full-screen event loop: read keys, feed the session, repaint."""

    console = console or Console()
    if not sys.stdin.isatty():
        raise RuntimeError("git-user needs an interactive terminal")
    fd = sys.stdin.fileno()
    with console.screen(hide_cursor=True) as screen, cbreak_terminal(fd):
        width, height = console.size
        session.resize(width, height)
        screen.update(render(session.state))
        while True:
            keys = read_keys(fd)
            width, height = console.size
            resized = (width, height) != (session.state.width, session.state.height)
            if resized:
                session.resize(width, height)
            for key in keys:
                if session.handle_key(key) == QUIT:
                    logger.debug("session quit")
                    return
            if keys or resized:
                screen.update(render(session.state))
