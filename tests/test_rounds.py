from conftest import FakeTimers, ScriptedRandom

from dontblink.services.reaction.recorder import ScoreRecorder
from dontblink.services.reaction.rounds import (
    COLORS, RoundEvent, RoundScheduler, RoundSettings, RoundState, lighten_hex, transition,
)


def _scheduler(timers, listener=None, roll=0.9, rounds=5, on_complete=None):
    return RoundScheduler(
        ScoreRecorder(rounds),
        timers,
        settings=RoundSettings(rounds=rounds),
        listener=listener,
        on_complete=on_complete,
        clock=timers.clock,
        rng=ScriptedRandom(roll),
    )


def _assert_change_at_invariant(rounds):
    assert (rounds.change_at is not None) == (rounds.state is RoundState.READY)


def test_transition_table_is_closed():
    assert transition(RoundState.IDLE, RoundEvent.INPUT) is None
    assert transition(RoundState.PAUSED, RoundEvent.INPUT) is None
    assert transition(RoundState.READY, RoundEvent.TRIGGER) is None
    assert transition(RoundState.WAITING, RoundEvent.INPUT)[0] is RoundState.PAUSED
    assert transition(RoundState.READY, RoundEvent.INPUT)[0] is RoundState.PAUSED
    for state in RoundState:
        assert transition(state, RoundEvent.RESET)[0] is RoundState.IDLE


def test_lighten_hex_clamps_channels():
    assert lighten_hex('#1a1a2e', 65) == '#5b5b6f'
    assert lighten_hex('#f0f0f0', 65) == '#ffffff'


def test_begin_waits_then_triggers_real_change(fake_timers, listener):
    rounds = _scheduler(fake_timers, listener)
    rounds.start()
    assert rounds.state is RoundState.WAITING
    assert rounds.round_index == 1
    assert rounds.from_color != rounds.to_color
    begin = listener.last('round_begin')
    assert begin['round'] == 1 and begin['total'] == 5 and begin['color'] == COLORS[0]
    _assert_change_at_invariant(rounds)

    fake_timers.advance(1999)
    assert rounds.state is RoundState.WAITING
    fake_timers.advance(1)
    assert rounds.state is RoundState.READY
    assert rounds.change_at == 2.0
    assert listener.last('change') == {'color': COLORS[1], 'message': 'NOW!'}
    _assert_change_at_invariant(rounds)


def test_ready_input_records_time_and_advances(fake_timers, listener):
    rounds = _scheduler(fake_timers, listener)
    rounds.start()
    fake_timers.advance(2000)
    fake_timers.advance(183)
    rounds.handle_input()
    assert rounds.state is RoundState.PAUSED
    assert rounds.recorder.times == [183]
    assert listener.last('scored')['ms'] == 183
    _assert_change_at_invariant(rounds)

    fake_timers.advance(1099)
    assert rounds.state is RoundState.PAUSED
    fake_timers.advance(1)
    assert rounds.state is RoundState.WAITING
    assert rounds.round_index == 2


def test_early_click_retries_same_round(fake_timers, listener):
    rounds = _scheduler(fake_timers, listener)
    rounds.start()
    fake_timers.advance(500)
    rounds.handle_input()
    assert rounds.state is RoundState.PAUSED
    assert rounds.round_index == 1
    assert rounds.recorder.times == []
    assert listener.last('too_early') == {'round': 1, 'color': '#3d0000', 'message': 'Too early!'}

    fake_timers.advance(1400)
    assert rounds.state is RoundState.WAITING
    assert rounds.round_index == 1
    assert listener.names().count('round_begin') == 2
    # The cancelled trigger (due at t=2000) must not fire; the new one is due at t=3900
    fake_timers.advance(1000)
    assert rounds.state is RoundState.WAITING
    fake_timers.advance(1000)
    assert rounds.state is RoundState.READY


def test_input_ignored_when_idle_or_paused(fake_timers, listener):
    rounds = _scheduler(fake_timers, listener)
    rounds.handle_input()
    assert rounds.state is RoundState.IDLE
    assert listener.events == []

    rounds.start()
    fake_timers.advance(2200)
    rounds.handle_input()
    rounds.handle_input()
    assert rounds.recorder.times == [200]
    assert listener.names().count('scored') == 1


def test_flash_round_reverts_then_triggers(fake_timers, listener):
    rounds = _scheduler(fake_timers, listener, roll=0.1)
    rounds.start()
    assert rounds.has_flash
    fake_timers.advance(1200)
    assert listener.last('flash') == {'color': lighten_hex(COLORS[0], 65)}
    assert rounds.state is RoundState.WAITING
    fake_timers.advance(130)
    assert listener.last('flash_end') == {'color': COLORS[0]}
    # flash duration (130) + minimum gap (900) after the flash started
    fake_timers.advance(899)
    assert rounds.state is RoundState.WAITING
    fake_timers.advance(1)
    assert rounds.state is RoundState.READY


def test_click_on_flash_is_early(fake_timers, listener):
    rounds = _scheduler(fake_timers, listener, roll=0.1)
    rounds.start()
    fake_timers.advance(1250)
    rounds.handle_input()
    assert rounds.state is RoundState.PAUSED
    assert 'too_early' in listener.names()
    fake_timers.advance(200)
    assert 'flash_end' not in listener.names()


def test_stale_timers_are_inert_even_if_not_revoked(listener):
    timers = FakeTimers(revocable=False)
    rounds = _scheduler(timers, listener)
    rounds.start()
    first_generation = rounds.generation
    timers.advance(500)
    rounds.handle_input()
    assert rounds.generation > first_generation

    # Retry begins at t=1900; the first trigger still fires at t=2000
    timers.advance(1600)
    assert rounds.state is RoundState.WAITING
    assert 'change' not in listener.names()
    timers.advance(1800)
    assert rounds.state is RoundState.READY


def test_reset_cancels_pending_round(fake_timers, listener):
    rounds = _scheduler(fake_timers, listener)
    rounds.start()
    rounds.reset()
    assert rounds.state is RoundState.IDLE
    fake_timers.advance(10000)
    assert rounds.state is RoundState.IDLE
    assert 'change' not in listener.names()


def test_full_session_finalizes_after_target_rounds(fake_timers, listener):
    completed = []
    rounds = _scheduler(fake_timers, listener, on_complete=completed.append)
    rounds.start()
    for ms in [180, 150, 220, 190, 160]:
        fake_timers.advance(2000)
        assert rounds.state is RoundState.READY
        fake_timers.advance(ms)
        rounds.handle_input()
        _assert_change_at_invariant(rounds)
        fake_timers.advance(1100)

    assert rounds.state is RoundState.IDLE
    assert rounds.round_index == 5
    assert len(completed) == 1
    assert completed[0].times == [180, 150, 220, 190, 160]
    assert completed[0].average() == 180
