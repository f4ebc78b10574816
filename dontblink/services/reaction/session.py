"""One player's session: a fixed number of rounds, then the leaderboard flow.

peek (on completion) -> optional submit -> confirmed rank.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from .leaderboard import DEFAULT_NAME, Leaderboard, RankOutcome, RankStatus, clean_name
from .prefs import PrefsStore
from .recorder import ScoreRecorder
from .rounds import RoundScheduler, RoundSettings

logger = logging.getLogger(__name__)


class SessionController:
    def __init__(
        self,
        leaderboard: Leaderboard,
        timers,
        settings: Optional[RoundSettings] = None,
        prefs: Optional[PrefsStore] = None,
        player_key: str = 'local',
        listener: Optional[Callable[[str, dict], None]] = None,
        display_size: int = 10,
        clock: Callable[[], float] = time.monotonic,
        rng=None,
    ):
        self.leaderboard = leaderboard
        self.settings = settings or RoundSettings()
        self.prefs = prefs or PrefsStore()
        self.player_key = player_key
        self.listener = listener
        self.display_size = display_size

        self.recorder = ScoreRecorder(self.settings.rounds)
        self.rounds = RoundScheduler(
            self.recorder,
            timers,
            settings=self.settings,
            listener=listener,
            on_complete=self._on_complete,
            clock=clock,
            rng=rng,
        )
        self.average: Optional[int] = None
        self.preview: Optional[RankOutcome] = None
        self.confirmed: Optional[RankOutcome] = None

    @property
    def is_complete(self) -> bool:
        return self.average is not None

    @property
    def has_submitted(self) -> bool:
        return self.confirmed is not None and self.confirmed.status is not RankStatus.FAILED

    # ---- input boundary ----
    def start(self) -> None:
        self.recorder = ScoreRecorder(self.settings.rounds)
        self.rounds.recorder = self.recorder
        self.average = None
        self.preview = None
        self.confirmed = None
        self._emit('session_started', {
            'target_rounds': self.settings.rounds,
            'best': self.prefs.get_best(self.player_key),
        })
        self.rounds.start()

    def handle_input(self) -> None:
        self.rounds.handle_input()

    def reset(self) -> None:
        # A reset session has nothing left to submit
        self.rounds.reset()
        self.average = None
        self.preview = None
        self.confirmed = None
        self._emit('session_reset', {})

    # ---- leaderboard flow ----
    def _on_complete(self, recorder: ScoreRecorder) -> None:
        self.average = recorder.average()
        is_best = self.prefs.record_best(self.player_key, self.average)
        saved_name = self.prefs.get_name(self.player_key)
        self.prefs.add_history(self.player_key, saved_name or DEFAULT_NAME, self.average)

        # Both queries resolve before anything is shown
        preview = self.leaderboard.peek(self.average)
        rows = self.leaderboard.top(self.display_size)
        self.preview = preview
        logger.info(
            f"[session-results] player={self.player_key} average={self.average} best={is_best} preview={preview.status.value}"
        )
        self._emit('results', {
            'average': self.average,
            'times': list(recorder.times),
            'best': self.prefs.get_best(self.player_key),
            'is_new_best': is_best,
            'name': saved_name,
            'preview': preview.to_dict(),
            'leaderboard': rows,
            'history': self.prefs.history(self.player_key),
        })

    def submit(self, name: Optional[str]) -> Optional[RankOutcome]:
        """Commit the session average under `name`.

        Returns None when there is nothing to submit: the session is not
        finished yet, or it was already submitted successfully.
        """
        if not self.is_complete:
            return None
        if self.has_submitted:
            logger.info(f"[session-submit-skip] player={self.player_key} already submitted")
            return None
        name = clean_name(name)
        self.prefs.set_name(self.player_key, name)
        outcome = self.leaderboard.submit(name, self.average)
        self.confirmed = outcome
        self._emit('rank_confirmed', {
            'outcome': outcome.to_dict(),
            'leaderboard': self.leaderboard.top(self.display_size),
        })
        return outcome

    def snapshot(self) -> Dict[str, Any]:
        return {
            'state': self.rounds.state.value,
            'round': self.rounds.round_index,
            'total': self.settings.rounds,
            'times': list(self.recorder.times),
            'average': self.average,
            'preview': self.preview.to_dict() if self.preview else None,
            'confirmed': self.confirmed.to_dict() if self.confirmed else None,
        }

    def _emit(self, name: str, payload: dict) -> None:
        if self.listener:
            self.listener(name, payload)
