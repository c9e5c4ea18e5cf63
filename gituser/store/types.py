from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    id: int
    name: str
    email: str

    @property
    def filter_value(self) -> str:
        return f"{self.name} <{self.email}>"
