from flask_socketio import emit
from flask import current_app, request
from dontblink import socketio
from dontblink.services.reaction import RoundSettings, SessionController
from dontblink.services.reaction.timers import SocketIOTimers
from typing import Dict, Any
import threading
import time


# One game session per connected socket
_sessions: Dict[str, SessionController] = {}
_locks: Dict[str, threading.RLock] = {}

DEFAULT_PLAYER_KEY = 'local'


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _is_payload(data) -> bool:
    return data is None or isinstance(data, dict)


def _lock_for(sid: str) -> threading.RLock:
    lock = _locks.get(sid)
    if lock is None:
        lock = _locks[sid] = threading.RLock()
    return lock


def _make_controller(sid: str, namespace: str, player_key: str, lock) -> SessionController:
    app = current_app._get_current_object()
    cfg = app.config
    timer_factory = cfg.get('REACTION_TIMER_FACTORY') or SocketIOTimers
    clock = cfg.get('REACTION_CLOCK') or time.monotonic

    def _listener(name: str, payload: Dict[str, Any]) -> None:
        # socketio.emit: also called from timer background tasks
        socketio.emit(name, payload, to=sid, namespace=namespace)

    return SessionController(
        app.extensions['leaderboard'],
        timer_factory(lock),
        settings=RoundSettings.from_config(cfg),
        prefs=app.extensions['prefs'],
        player_key=player_key,
        listener=_listener,
        display_size=int(cfg.get('LEADERBOARD_DISPLAY', 10)),
        clock=clock,
    )


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(reason=None):
    sid = _get_sid()
    session = _sessions.pop(sid, None)
    lock = _locks.pop(sid, None)
    if session and lock:
        with lock:
            session.rounds.reset()


def handle_start_session(data=None):
    sid = _get_sid()
    if not _is_payload(data):
        emit('error', {'message': 'start_session expects an object'})
        return
    # Without a key every anonymous connection shares one prefs record
    player_key = str((data or {}).get('player_key') or DEFAULT_PLAYER_KEY)
    lock = _lock_for(sid)
    with lock:
        session = _sessions.get(sid)
        if session is None or session.player_key != player_key:
            if session is not None:
                session.rounds.reset()
            session = _make_controller(sid, request.namespace, player_key, lock)
            _sessions[sid] = session
        current_app.logger.info(f"[session-start] sid={sid} player={player_key}")
        session.start()


def handle_input(data=None):
    sid = _get_sid()
    session = _sessions.get(sid)
    if not session:
        # Input without a session is ignored, like input while idle
        return
    with _lock_for(sid):
        session.handle_input()


def handle_reset(data=None):
    sid = _get_sid()
    session = _sessions.get(sid)
    if not session:
        return
    with _lock_for(sid):
        session.reset()


def handle_submit_score(data=None):
    sid = _get_sid()
    if not _is_payload(data):
        emit('error', {'message': 'submit_score expects an object'})
        return
    session = _sessions.get(sid)
    if not session:
        emit('error', {'message': 'No active session'})
        return
    with _lock_for(sid):
        outcome = session.submit((data or {}).get('name'))
    if outcome is None:
        reason = 'already_submitted' if session.has_submitted else 'session_not_complete'
        emit('submit_ignored', {'reason': reason})


def handle_get_state(data=None):
    session = _sessions.get(_get_sid())
    if not session:
        emit('error', {'message': 'No active session'})
        return
    emit('state', session.snapshot())


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'start_session': handle_start_session,
        'input': handle_input,
        'reset': handle_reset,
        'submit_score': handle_submit_score,
        'get_state': handle_get_state,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
