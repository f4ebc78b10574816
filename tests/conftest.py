import itertools
import os
import sys
import pytest

# Ensure the repo root (containing the `dontblink` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from dontblink import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ROUNDS = 5
    LEADERBOARD_SIZE = 100
    LEADERBOARD_DISPLAY = 10
    LEADERBOARD_BACKEND = 'sql'
    PREFS_PATH = ''


class FakeHandle:
    def __init__(self, due, seq, callback, revocable):
        self.due = due
        self.seq = seq
        self.callback = callback
        self.revocable = revocable
        self.cancelled = False

    def cancel(self):
        if self.revocable:
            self.cancelled = True


class FakeTimers:
    """Virtual-time timers: nothing fires until advance() is called.

    With revocable=False, cancel() is a no-op, like a timer that is
    already in flight.
    """

    def __init__(self, revocable=True):
        self.revocable = revocable
        self.now_ms = 0.0
        self._queue = []
        self._seq = itertools.count()

    def __call__(self, lock=None):
        return self

    def call_later(self, delay_ms, callback):
        handle = FakeHandle(self.now_ms + delay_ms, next(self._seq), callback, self.revocable)
        self._queue.append(handle)
        return handle

    def clock(self):
        return self.now_ms / 1000.0

    def pending(self):
        return [h for h in self._queue if not h.cancelled]

    def advance(self, ms):
        target = self.now_ms + ms
        while True:
            due = [h for h in self._queue if not h.cancelled and h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.due, h.seq))
            self._queue.remove(handle)
            self.now_ms = handle.due
            handle.callback()
        self.now_ms = target


class ScriptedRandom:
    """RNG stand-in: fixed roll, lower bound of every range, first colors."""

    def __init__(self, roll=0.9):
        self.roll = roll

    def random(self):
        return self.roll

    def uniform(self, a, b):
        return a

    def sample(self, population, k):
        return list(population)[:k]


class Recorder:
    """Listener that keeps every (event, payload) pair."""

    def __init__(self):
        self.events = []

    def __call__(self, name, payload):
        self.events.append((name, payload))

    def names(self):
        return [name for name, _ in self.events]

    def last(self, name):
        for event, payload in reversed(self.events):
            if event == name:
                return payload
        return None


@pytest.fixture()
def fake_timers():
    return FakeTimers()


@pytest.fixture()
def listener():
    return Recorder()


@pytest.fixture()
def flask_app(fake_timers):
    application = create_app(TestConfig)
    application.config['REACTION_TIMER_FACTORY'] = fake_timers
    application.config['REACTION_CLOCK'] = fake_timers.clock
    with application.app_context():
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
