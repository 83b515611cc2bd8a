from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
import time
from swipe.services.games.directions import direction_from_payload
from swipe.services.games.machine import RoundState
from swipe.services.games.registry import discard_machine, get_machine
from swipe.services.games.scoring import ScoreStore


game = Blueprint('game', __name__)

_last_swipe_at: dict[int, float] = {}


def _app():
    return current_app._get_current_object()


def _idle_state(player_id: int) -> dict:
    payload = {
        'state': RoundState.IDLE.value,
        'round': 0,
        'displayed_direction': None,
        'show_question_mark': False,
        'revealed_direction': None,
        'consecutive_correct': 0,
        'difficulty': 1,
        'swipe_count': 0,
    }
    payload.update(ScoreStore(_app(), player_id).snapshot())
    return payload


def _debounced(player_id: int) -> bool:
    try:
        debounce_ms = int(current_app.config.get('SWIPE_DEBOUNCE_MS', 0))
    except (TypeError, ValueError):
        debounce_ms = 0
    if debounce_ms <= 0:
        return False
    now = time.time() * 1000.0
    last = _last_swipe_at.get(player_id, 0)
    if now - last < debounce_ms:
        return True
    _last_swipe_at[player_id] = now
    return False


@game.route('/start', methods=['POST'])
@login_required
def start_game():
    machine = get_machine(_app(), current_user.id)
    with machine.lock:
        if machine.state is RoundState.IDLE:
            machine.start_round()
    # Idempotent start: an active machine just reports its state
    return jsonify(machine.snapshot())


@game.route('/swipe', methods=['POST'])
@login_required
def swipe():
    data = request.get_json(silent=True)
    try:
        direction = direction_from_payload(data, current_app.config.get('MIN_SWIPE_DISTANCE', 0))
    except ValueError as exc:
        return jsonify({'error': str(exc)}), 400

    machine = get_machine(_app(), current_user.id, create=False)
    if machine is None or direction is None:
        state = machine.snapshot() if machine else _idle_state(current_user.id)
        return jsonify({'accepted': False, 'state': state})
    if _debounced(current_user.id):
        return jsonify({'accepted': False, 'message': 'debounced', 'state': machine.snapshot()}), 202

    accepted = machine.handle_swipe(direction)
    return jsonify({'accepted': accepted, 'direction': direction.value, 'state': machine.snapshot()})


@game.route('/reset', methods=['POST'])
@login_required
def reset_game():
    machine = get_machine(_app(), current_user.id)
    machine.reset()
    return jsonify(machine.snapshot())


@game.route('/stop', methods=['POST'])
@login_required
def stop_game():
    discard_machine(current_user.id)
    _last_swipe_at.pop(current_user.id, None)
    return jsonify(_idle_state(current_user.id))


@game.route('/state', methods=['GET'])
@login_required
def get_game_state():
    machine = get_machine(_app(), current_user.id, create=False)
    return jsonify(machine.snapshot() if machine else _idle_state(current_user.id))
