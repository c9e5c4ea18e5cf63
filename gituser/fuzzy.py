from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .store import Identity

FIRST_CHAR_BONUS = 10
SEPARATOR_BONUS = 8
CAMEL_BONUS = 6
ADJACENT_BONUS = 5
LEADING_PENALTY = 3
MAX_LEADING_PENALTY = 9
SEPARATORS = frozenset(" <>@.-_/,+")

_MAX_CHAR_BONUS = ADJACENT_BONUS + max(FIRST_CHAR_BONUS, SEPARATOR_BONUS, CAMEL_BONUS)


@dataclass(frozen=True)
class Match:
    score: int
    positions: tuple[int, ...]


def _char_bonus(text: str, j: int) -> int:
    if j == 0:
        return FIRST_CHAR_BONUS
    prev = text[j - 1]
    if prev in SEPARATORS:
        return SEPARATOR_BONUS
    if prev.islower() and text[j].isupper():
        return CAMEL_BONUS
    return 0


def _is_subsequence(query: list[str], text: list[str]) -> bool:
    it = iter(text)
    return all(ch in it for ch in query)


def fuzzy_match(query: str, text: str) -> Match | None:
    """Score ``query`` as a case-insensitive ordered subsequence of ``text``.

    Every unmatched character between two matched ones costs more than the
    largest possible bonus difference for a query of this length, so among
    candidates the one with the smallest total gap always ranks first (an
    exact substring has gap 0). Bonuses for word starts, camel humps, runs
    and early matches only order candidates with equal gaps.
    """

    # Lower per character so indexes line up with ``text``.
    q = [ch.lower() for ch in query]
    t = [ch.lower() for ch in text]
    m, n = len(q), len(t)
    if m == 0:
        return Match(score=0, positions=())
    if m > n or not _is_subsequence(q, t):
        return None

    gap_weight = m * _MAX_CHAR_BONUS + MAX_LEADING_PENALTY + 1
    neg_inf = float("-inf")
    # best[i][j]: best score with query[:i + 1] matched and query[i] at text[j].
    best: list[list[float]] = [[neg_inf] * n for _ in range(m)]
    back: list[list[int]] = [[-1] * n for _ in range(m)]

    for j in range(n):
        if t[j] == q[0]:
            lead = min(MAX_LEADING_PENALTY, LEADING_PENALTY * j)
            best[0][j] = _char_bonus(text, j) - lead

    for i in range(1, m):
        prev = best[i - 1]
        # Running max over k < j - 1 of prev[k] + gap_weight * k.
        run_val = neg_inf
        run_idx = -1
        for j in range(i, n):
            k = j - 2
            if k >= 0 and prev[k] != neg_inf:
                cand = prev[k] + gap_weight * k
                if cand > run_val:
                    run_val, run_idx = cand, k
            if t[j] != q[i]:
                continue
            bonus = _char_bonus(text, j)
            options: list[tuple[float, int]] = []
            if prev[j - 1] != neg_inf:
                options.append((prev[j - 1] + ADJACENT_BONUS + bonus, j - 1))
            if run_idx >= 0:
                options.append((run_val - gap_weight * (j - 1) + bonus, run_idx))
            if options:
                score, src = max(options)
                best[i][j] = score
                back[i][j] = src

    last = best[m - 1]
    end = max(range(n), key=lambda j: (last[j], -j))
    if last[end] == neg_inf:
        return None
    positions = [end]
    for i in range(m - 1, 0, -1):
        positions.append(back[i][positions[-1]])
    positions.reverse()
    return Match(score=int(last[end]), positions=tuple(positions))


def filter_identities(query: str, source: Sequence[Identity]) -> list[Identity]:
    if not query.strip():
        return list(source)
    scored: list[tuple[int, int, Identity]] = []
    for index, identity in enumerate(source):
        match = fuzzy_match(query, identity.filter_value)
        if match is not None:
            scored.append((-match.score, index, identity))
    scored.sort(key=lambda row: (row[0], row[1]))
    return [identity for _, _, identity in scored]


class FuzzyFilter:
    """Filtered view over a snapshot of identities."""

    def __init__(self, source: Iterable[Identity] = ()) -> None:
        self._source: list[Identity] = list(source)
        self.query = ""
        self.view: list[Identity] = list(self._source)

    @property
    def source(self) -> list[Identity]:
        return list(self._source)

    def set_source(self, identities: Iterable[Identity]) -> list[Identity]:
        self._source = list(identities)
        return self.apply(self.query)

    def apply(self, query: str) -> list[Identity]:
        self.query = query
        self.view = filter_identities(query, self._source)
        return self.view
