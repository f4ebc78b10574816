"""Rank computation over an ascending, tie-aware, capacity-bounded window.

Everything in this module is pure: callers fetch the window from a
leaderboard store and hand it in already sorted by score ascending.
"""

from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Optional, Sequence


@dataclass(frozen=True)
class LeaderboardEntry:
    name: str
    score: int
    id: Hashable

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'score': self.score}


@dataclass(frozen=True)
class RankedEntry:
    entry: LeaderboardEntry
    rank: int

    def to_dict(self) -> Dict[str, Any]:
        data = self.entry.to_dict()
        data['rank'] = self.rank
        return data


@dataclass(frozen=True)
class RankResult:
    rank: int
    is_tied: bool
    id: Optional[Hashable] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'rank': self.rank, 'is_tied': self.is_tied, 'id': self.id}


def with_ranks(entries: Sequence[LeaderboardEntry]) -> List[RankedEntry]:
    """Apply standard competition ranking (1-2-2-4) to ascending entries.

    Tied scores share the rank of the first of them; the next distinct
    score jumps to its 1-based position.
    """
    ranked: List[RankedEntry] = []
    rank = 1
    for position, entry in enumerate(entries, start=1):
        if position > 1 and entry.score != entries[position - 2].score:
            rank = position
        ranked.append(RankedEntry(entry=entry, rank=rank))
    return ranked


def _count_better(window: Sequence[LeaderboardEntry], score: int) -> int:
    return sum(1 for e in window if e.score < score)


def peek_rank(window: Sequence[LeaderboardEntry], score: int, capacity: int) -> Optional[RankResult]:
    """Rank a score against the window without it being stored.

    Returns None when the score would not make the cut: the window is
    saturated and the score is worse than its current last entry.
    """
    if capacity <= 0:
        return None
    if len(window) >= capacity and score > window[-1].score:
        return None
    is_tied = any(e.score == score for e in window)
    return RankResult(rank=_count_better(window, score) + 1, is_tied=is_tied)


def confirmed_rank(window: Sequence[LeaderboardEntry], entry_id: Hashable, score: int) -> Optional[RankResult]:
    """Rank a freshly stored entry against a window re-queried after insert.

    The window already contains the entry (if it made the cut), so a tie
    needs at least one other entry with the same score.
    """
    if not any(e.id == entry_id for e in window):
        return None
    same = sum(1 for e in window if e.score == score)
    return RankResult(rank=_count_better(window, score) + 1, is_tied=same > 1, id=entry_id)
