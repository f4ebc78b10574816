"""Leaderboard stores and the client that ranks against them.

The store is the durable, shared side: it only knows how to insert a
score and list the best ones. The Leaderboard client layers the ranking
rules on top and turns store failures into explicit outcomes, so the
game keeps working when the backend does not.
"""

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Hashable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from dontblink import db
from dontblink.models import Score, NAME_MAX_LENGTH
from .ranking import LeaderboardEntry, RankResult, confirmed_rank, peek_rank, with_ranks

logger = logging.getLogger(__name__)

DEFAULT_NAME = 'Anonymous'


class LeaderboardStoreError(Exception):
    """The backing store could not answer a query or accept an insert."""


class LeaderboardStore:
    """Interface for an ordered, capacity-bounded set of scored entries."""

    def query_ascending(self, limit: int) -> List[LeaderboardEntry]:
        """Best `limit` entries ordered by score ascending (ties oldest first)."""
        raise NotImplementedError

    def insert(self, name: str, score: int) -> Hashable:
        """Store a new entry and return its id."""
        raise NotImplementedError


class SqlLeaderboardStore(LeaderboardStore):
    """Store backed by the `score` table.

    Each call pushes its own app context so it can run from background
    timer tasks as well as from request handlers. Driver errors that
    SQLAlchemy does not wrap (an integer out of column range raises
    OverflowError) are rolled back and reported the same way.
    """

    def __init__(self, app):
        self.app = app

    def query_ascending(self, limit: int) -> List[LeaderboardEntry]:
        with self.app.app_context():
            try:
                rows = (
                    Score.query.order_by(Score.score.asc(), Score.id.asc())
                    .limit(max(0, int(limit)))
                    .all()
                )
            except (SQLAlchemyError, OverflowError) as exc:
                db.session.rollback()
                logger.error(f"[leaderboard-query] limit={limit} failed: {exc}", exc_info=True)
                raise LeaderboardStoreError(str(exc)) from exc
            return [LeaderboardEntry(name=r.name, score=r.score, id=r.id) for r in rows]

    def insert(self, name: str, score: int) -> Hashable:
        with self.app.app_context():
            row = Score(name=name, score=int(score))
            try:
                db.session.add(row)
                db.session.commit()
            except (SQLAlchemyError, OverflowError) as exc:
                db.session.rollback()
                logger.error(f"[leaderboard-insert] name={name!r} score={score} failed: {exc}", exc_info=True)
                raise LeaderboardStoreError(str(exc)) from exc
            return row.id


class MemoryLeaderboardStore(LeaderboardStore):
    """Process-local store, used when no database is wanted."""

    def __init__(self):
        self._entries: List[LeaderboardEntry] = []
        self._ids = itertools.count(1)

    def query_ascending(self, limit: int) -> List[LeaderboardEntry]:
        ordered = sorted(self._entries, key=lambda e: (e.score, e.id))
        return ordered[: max(0, int(limit))]

    def insert(self, name: str, score: int) -> Hashable:
        entry = LeaderboardEntry(name=name, score=int(score), id=next(self._ids))
        self._entries.append(entry)
        return entry.id


class RankStatus(str, Enum):
    RANKED = 'ranked'
    UNRANKED = 'unranked'
    FAILED = 'failed'


@dataclass(frozen=True)
class RankOutcome:
    status: RankStatus
    result: Optional[RankResult] = None
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: Optional[RankResult]) -> 'RankOutcome':
        if result is None:
            return cls(status=RankStatus.UNRANKED)
        return cls(status=RankStatus.RANKED, result=result)

    @classmethod
    def failed(cls, error: str) -> 'RankOutcome':
        return cls(status=RankStatus.FAILED, error=error)

    @property
    def rank(self) -> Optional[int]:
        return self.result.rank if self.result else None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'status': self.status.value, 'rank': None, 'is_tied': False, 'id': None}
        if self.result:
            data.update(self.result.to_dict())
        if self.error:
            data['error'] = self.error
        return data


def clean_name(name: Optional[str]) -> str:
    name = name.strip() if isinstance(name, str) else ''
    return (name or DEFAULT_NAME)[:NAME_MAX_LENGTH]


class Leaderboard:
    """Ranking client over a store's top-`size` window."""

    def __init__(self, store: LeaderboardStore, size: int = 100):
        self.store = store
        self.size = int(size)

    def _window(self) -> List[LeaderboardEntry]:
        return self.store.query_ascending(self.size)

    def peek(self, score: int) -> RankOutcome:
        try:
            window = self._window()
        except LeaderboardStoreError as exc:
            return RankOutcome.failed(str(exc))
        outcome = RankOutcome.from_result(peek_rank(window, int(score), self.size))
        logger.info(f"[leaderboard-peek] score={score} window={len(window)} status={outcome.status.value} rank={outcome.rank}")
        return outcome

    def submit(self, name: str, score: int) -> RankOutcome:
        name = clean_name(name)
        try:
            entry_id = self.store.insert(name, int(score))
            # Not atomic with the insert: concurrent submits may shift the window in between
            window = self._window()
        except LeaderboardStoreError as exc:
            return RankOutcome.failed(str(exc))
        outcome = RankOutcome.from_result(confirmed_rank(window, entry_id, int(score)))
        logger.info(
            f"[leaderboard-submit] name={name!r} score={score} id={entry_id} status={outcome.status.value} rank={outcome.rank}"
        )
        return outcome

    def top(self, n: int = 10) -> List[Dict[str, Any]]:
        try:
            window = self._window()
        except LeaderboardStoreError:
            return []
        return [r.to_dict() for r in with_ranks(window)[: max(0, int(n))]]
