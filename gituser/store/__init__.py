from __future__ import annotations

from ._store import IdentityStore
from .types import Identity

__all__ = [
    "Identity",
    "IdentityStore",
]
