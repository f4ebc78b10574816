"""Round state machine: waiting, deceptive flash, real change, reaction.

Every state change goes through `transition()`, a closed table of
(state, event) -> (next state, effects). Anything not in the table is
ignored, which is how stray input (clicks while idle or paused) and
late timer callbacks are absorbed.

Scheduled callbacks capture the generation token current when they were
scheduled. Every cancel-all mints a new token, so a callback that fires
after its round was cancelled, reset or finished does nothing even if
the underlying timer could not be revoked.
"""

import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from .recorder import ScoreRecorder, round_half_up

logger = logging.getLogger(__name__)

# Dark enough for white text, and distinct from each other
COLORS = [
    '#1a1a2e',
    '#c1121f',
    '#1b4332',
    '#5a189a',
    '#006466',
    '#9b2226',
    '#023e8a',
    '#74290f',
    '#3d405b',
    '#184e77',
]
TOO_EARLY_COLOR = '#3d0000'

MSG_WAITING = 'Click anywhere when the color changes'
MSG_NOW = 'NOW!'
MSG_TOO_EARLY = 'Too early!'


def lighten_hex(color: str, amount: int) -> str:
    """Add `amount` to each RGB channel of a #rrggbb color, clamped to 255."""
    n = int(color.lstrip('#'), 16)
    r = min(255, (n >> 16) + amount)
    g = min(255, ((n >> 8) & 0xFF) + amount)
    b = min(255, (n & 0xFF) + amount)
    return f"#{r:02x}{g:02x}{b:02x}"


def pick_color_pair(rng) -> Tuple[str, str]:
    first, second = rng.sample(COLORS, 2)
    return first, second


class RoundState(Enum):
    IDLE = 'idle'
    WAITING = 'waiting'
    READY = 'ready'
    PAUSED = 'paused'


class RoundEvent(Enum):
    BEGIN = 'begin'
    TRIGGER = 'trigger'
    INPUT = 'input'
    FINISH = 'finish'
    RESET = 'reset'


class Effect(Enum):
    CANCEL_TIMERS = 'cancel_timers'
    PLAN_ROUND = 'plan_round'
    MARK_CHANGE = 'mark_change'
    REJECT_EARLY = 'reject_early'
    RECORD_TIME = 'record_time'
    FINALIZE = 'finalize'


_TRANSITIONS: Dict[Tuple[RoundState, RoundEvent], Tuple[RoundState, Tuple[Effect, ...]]] = {
    (RoundState.IDLE, RoundEvent.BEGIN): (RoundState.WAITING, (Effect.CANCEL_TIMERS, Effect.PLAN_ROUND)),
    (RoundState.PAUSED, RoundEvent.BEGIN): (RoundState.WAITING, (Effect.CANCEL_TIMERS, Effect.PLAN_ROUND)),
    (RoundState.WAITING, RoundEvent.TRIGGER): (RoundState.READY, (Effect.MARK_CHANGE,)),
    (RoundState.WAITING, RoundEvent.INPUT): (RoundState.PAUSED, (Effect.CANCEL_TIMERS, Effect.REJECT_EARLY)),
    (RoundState.READY, RoundEvent.INPUT): (RoundState.PAUSED, (Effect.CANCEL_TIMERS, Effect.RECORD_TIME)),
    (RoundState.PAUSED, RoundEvent.FINISH): (RoundState.IDLE, (Effect.FINALIZE,)),
}
for _state in RoundState:
    _TRANSITIONS[(_state, RoundEvent.RESET)] = (RoundState.IDLE, (Effect.CANCEL_TIMERS,))


def transition(state: RoundState, event: RoundEvent) -> Optional[Tuple[RoundState, Tuple[Effect, ...]]]:
    return _TRANSITIONS.get((state, event))


@dataclass
class RoundSettings:
    rounds: int = 5
    min_delay_ms: int = 2000
    max_delay_ms: int = 6000
    fake_chance: float = 0.38
    fake_min_delay_ms: int = 1200
    fake_max_delay_ms: int = 3500
    fake_duration_ms: int = 130
    real_after_fake_ms: int = 900
    real_after_fake_jitter_ms: int = 1500
    result_pause_ms: int = 1100
    too_early_pause_ms: int = 1400
    flash_lighten: int = 65

    @classmethod
    def from_config(cls, cfg) -> 'RoundSettings':
        defaults = cls()
        return cls(
            rounds=int(cfg.get('ROUNDS', defaults.rounds)),
            min_delay_ms=int(cfg.get('MIN_DELAY_MS', defaults.min_delay_ms)),
            max_delay_ms=int(cfg.get('MAX_DELAY_MS', defaults.max_delay_ms)),
            fake_chance=float(cfg.get('FAKE_CHANCE', defaults.fake_chance)),
            fake_min_delay_ms=int(cfg.get('FAKE_MIN_DELAY_MS', defaults.fake_min_delay_ms)),
            fake_max_delay_ms=int(cfg.get('FAKE_MAX_DELAY_MS', defaults.fake_max_delay_ms)),
            fake_duration_ms=int(cfg.get('FAKE_DURATION_MS', defaults.fake_duration_ms)),
            real_after_fake_ms=int(cfg.get('REAL_AFTER_FAKE_MS', defaults.real_after_fake_ms)),
            real_after_fake_jitter_ms=int(cfg.get('REAL_AFTER_FAKE_JITTER_MS', defaults.real_after_fake_jitter_ms)),
            result_pause_ms=int(cfg.get('RESULT_PAUSE_MS', defaults.result_pause_ms)),
            too_early_pause_ms=int(cfg.get('TOO_EARLY_PAUSE_MS', defaults.too_early_pause_ms)),
            flash_lighten=int(cfg.get('FLASH_LIGHTEN', defaults.flash_lighten)),
        )


Listener = Callable[[str, dict], None]


class RoundScheduler:
    """Runs the rounds of one session and reports through `listener`.

    `listener(event_name, payload)` receives presentation events:
    round_begin, flash, flash_end, change, too_early, scored.
    `on_complete(recorder)` is called once the last round is scored and
    its result pause has elapsed.
    """

    def __init__(
        self,
        recorder: ScoreRecorder,
        timers,
        settings: Optional[RoundSettings] = None,
        listener: Optional[Listener] = None,
        on_complete: Optional[Callable[[ScoreRecorder], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        rng=None,
    ):
        self.recorder = recorder
        self.timers = timers
        self.settings = settings or RoundSettings()
        self.listener = listener
        self.on_complete = on_complete
        self.clock = clock
        self.rng = rng or random.Random()

        self.round_index = 0
        self.from_color: Optional[str] = None
        self.to_color: Optional[str] = None
        self.has_flash = False
        self._state = RoundState.IDLE
        self._change_at: Optional[float] = None
        self._generation = 0
        self._pending: List = []
        self._retry = False

    # ---- read-only views ----
    @property
    def state(self) -> RoundState:
        return self._state

    @property
    def change_at(self) -> Optional[float]:
        return self._change_at

    @property
    def generation(self) -> int:
        return self._generation

    # ---- boundary ----
    def start(self) -> None:
        """Begin round 1 of a fresh session."""
        self.reset()
        self.round_index = 0
        self.begin()

    def begin(self, retry: bool = False) -> None:
        self._retry = retry
        self._dispatch(RoundEvent.BEGIN)

    def trigger_change(self) -> None:
        self._dispatch(RoundEvent.TRIGGER)

    def handle_input(self) -> None:
        self._dispatch(RoundEvent.INPUT)

    def reset(self) -> None:
        self._dispatch(RoundEvent.RESET)

    # ---- transition machinery ----
    def _dispatch(self, event: RoundEvent) -> bool:
        step = transition(self._state, event)
        if step is None:
            logger.debug(f"[round-ignore] state={self._state.value} event={event.value}")
            return False
        next_state, effects = step
        self._state = next_state
        for effect in effects:
            getattr(self, f"_effect_{effect.value}")()
        if self._state is not RoundState.READY:
            self._change_at = None
        return True

    def _effect_cancel_timers(self) -> None:
        for handle in self._pending:
            handle.cancel()
        self._pending = []
        self._generation += 1

    def _effect_plan_round(self) -> None:
        s = self.settings
        if not self._retry:
            self.round_index += 1
        self._retry = False
        self.from_color, self.to_color = pick_color_pair(self.rng)
        self.has_flash = self.rng.random() < s.fake_chance
        logger.info(
            f"[round-begin] round={self.round_index}/{s.rounds} flash={self.has_flash} generation={self._generation}"
        )
        self._emit('round_begin', {
            'round': self.round_index,
            'total': s.rounds,
            'color': self.from_color,
            'message': MSG_WAITING,
            'markers': self.recorder.markers(),
        })
        if self.has_flash:
            self._schedule(self.rng.uniform(s.fake_min_delay_ms, s.fake_max_delay_ms), self._flash)
        else:
            self._schedule(self.rng.uniform(s.min_delay_ms, s.max_delay_ms), self.trigger_change)

    def _flash(self) -> None:
        if self._state is not RoundState.WAITING:
            return
        s = self.settings
        self._emit('flash', {'color': lighten_hex(self.from_color, s.flash_lighten)})
        self._schedule(s.fake_duration_ms, self._flash_end)
        gap = self.rng.uniform(s.real_after_fake_ms, s.real_after_fake_ms + s.real_after_fake_jitter_ms)
        self._schedule(s.fake_duration_ms + gap, self.trigger_change)

    def _flash_end(self) -> None:
        if self._state is RoundState.WAITING:
            self._emit('flash_end', {'color': self.from_color})

    def _effect_mark_change(self) -> None:
        self._change_at = self.clock()
        self._emit('change', {'color': self.to_color, 'message': MSG_NOW})

    def _effect_reject_early(self) -> None:
        logger.info(f"[round-early] round={self.round_index}")
        self._emit('too_early', {'round': self.round_index, 'color': TOO_EARLY_COLOR, 'message': MSG_TOO_EARLY})
        self._schedule(self.settings.too_early_pause_ms, lambda: self.begin(retry=True))

    def _effect_record_time(self) -> None:
        ms = round_half_up((self.clock() - self._change_at) * 1000.0)
        self.recorder.add(ms)
        logger.info(f"[round-scored] round={self.round_index} ms={ms}")
        self._emit('scored', {'ms': ms, 'round': self.round_index, 'markers': self.recorder.markers()})
        self._schedule(self.settings.result_pause_ms, self._after_result)

    def _after_result(self) -> None:
        if self.recorder.is_complete():
            self._dispatch(RoundEvent.FINISH)
        else:
            self.begin()

    def _effect_finalize(self) -> None:
        logger.info(f"[session-complete] rounds={len(self.recorder.times)} times={self.recorder.times}")
        if self.on_complete:
            self.on_complete(self.recorder)

    # ---- helpers ----
    def _schedule(self, delay_ms: float, action: Callable[[], None]) -> None:
        token = self._generation

        def _fire():
            if token != self._generation:
                logger.debug(f"[timer-stale] token={token} current={self._generation} state={self._state.value}")
                return
            action()

        self._pending.append(self.timers.call_later(delay_ms, _fire))

    def _emit(self, name: str, payload: dict) -> None:
        if self.listener:
            self.listener(name, payload)
