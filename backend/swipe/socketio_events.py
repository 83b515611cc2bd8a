from flask_socketio import join_room, leave_room, emit
from flask_login import current_user
from swipe import socketio
from flask import current_app, request
from swipe.services.games.directions import direction_from_payload
from swipe.services.games.machine import RoundState
from swipe.services.games.registry import discard_machine, get_machine, player_room
from typing import Dict, Any
import time


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    # When the last socket of a player goes away, stop their timers
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    player_id = ctx['player_id']
    _socket_count[player_id] = max(0, _socket_count.get(player_id, 0) - 1)
    if current_app.config.get('TESTING'):
        if _socket_count.get(player_id, 0) == 0:
            _end_session(player_id)
        return
    _schedule_end_if_no_sockets(current_app._get_current_object(), player_id)


def handle_join_game(data):
    try:
        player_id = int((data or {}).get('player_id'))
    except (TypeError, ValueError):
        emit('error', {'message': 'player_id is required'})
        return
    # Same rule as the HTTP game routes: a socket only plays as its logged-in player
    if not current_user.is_authenticated or current_user.id != player_id:
        emit('error', {'message': 'Not allowed to join this player'})
        return
    room = player_room(player_id)
    previous = _sid_to_ctx.get(_get_sid())
    if previous and previous['player_id'] != player_id:
        _detach(previous['player_id'])
    join_room(room)
    if not previous or previous['player_id'] != player_id:
        _sid_to_ctx[_get_sid()] = {'player_id': player_id}
        _socket_count[player_id] = _socket_count.get(player_id, 0) + 1
    _cancel_scheduled_end(player_id)
    emit('joined', {'room': room})
    machine = get_machine(current_app._get_current_object(), player_id, create=False)
    if machine:
        emit('game_state', machine.snapshot())


def handle_leave_game(data=None):
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        emit('error', {'message': 'Not in a game'})
        return
    player_id = ctx['player_id']
    _detach(player_id)
    emit('left', {'room': player_room(player_id)})


def handle_start_round(data=None):
    machine = _current_machine(create=True)
    if machine is None:
        return
    with machine.lock:
        if machine.state is RoundState.IDLE:
            machine.start_round()
    emit('game_state', machine.snapshot())


def handle_swipe(data):
    try:
        direction = direction_from_payload(data, current_app.config.get('MIN_SWIPE_DISTANCE', 0))
    except ValueError as exc:
        emit('error', {'message': str(exc)})
        return
    machine = _current_machine(create=False)
    accepted = False
    if machine is not None and direction is not None:
        accepted = machine.handle_swipe(direction)
    emit('swipe_result', {
        'accepted': accepted,
        'direction': direction.value if direction else None,
        'state': machine.snapshot() if machine else None,
    })


def handle_reset(data=None):
    machine = _current_machine(create=True)
    if machine is None:
        return
    machine.reset()
    emit('game_state', machine.snapshot())


def handle_ping(data):
    emit('pong', data or {})

# ---- Player socket lifecycle helpers ----

_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_socket_count: Dict[int, int] = {}
_end_deadline: Dict[int, float] = {}

def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore

def _current_machine(create: bool):
    ctx = _sid_to_ctx.get(_get_sid())
    if not ctx:
        emit('error', {'message': 'join_game first'})
        return None
    return get_machine(current_app._get_current_object(), ctx['player_id'], create=create)

def _detach(player_id: int) -> None:
    """Take this socket out of a player's room; the last one out ends the session."""
    leave_room(player_room(player_id))
    _socket_count[player_id] = max(0, _socket_count.get(player_id, 0) - 1)
    if _socket_count[player_id] == 0:
        # Explicit quit or player switch: end immediately
        _end_session(player_id)

def _end_session(player_id: int) -> None:
    """Stop the player's round machine and drop socket bookkeeping."""
    if discard_machine(player_id):
        socketio.emit('session_ended', {'player_id': player_id}, to=player_room(player_id), namespace='/ws')
    _socket_count.pop(player_id, None)
    _end_deadline.pop(player_id, None)

def _schedule_end_if_no_sockets(app, player_id: int) -> None:
    if _socket_count.get(player_id, 0) > 0:
        return
    delay_sec = float(app.config.get('DISCONNECT_GRACE_SEC', 2.0))
    _end_deadline[player_id] = time.time() + delay_sec

    def _runner(pid: int, deadline: float):
        sleep_for = max(0.0, deadline - time.time())
        if sleep_for:
            socketio.sleep(sleep_for)
        if _socket_count.get(pid, 0) == 0 and _end_deadline.get(pid) == deadline:
            with app.app_context():
                _end_session(pid)

    socketio.start_background_task(_runner, player_id, _end_deadline[player_id])

def _cancel_scheduled_end(player_id: int) -> None:
    _end_deadline.pop(player_id, None)



def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = (
        ('connect', handle_connect),
        ('disconnect', handle_disconnect),
        ('join_game', handle_join_game),
        ('leave_game', handle_leave_game),
        ('start_round', handle_start_round),
        ('swipe', handle_swipe),
        ('reset', handle_reset),
        ('ping', handle_ping),
    )
    for event, handler in handlers:
        socketio.on_event(event, handler, namespace='/ws')

    if testing:
        # Test-only mirror on default namespace
        for event, handler in handlers:
            socketio.on_event(event, handler, namespace='/')
