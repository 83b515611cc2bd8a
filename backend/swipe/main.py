from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from swipe import db
from swipe.models import Player
from swipe.services.games.registry import discard_machine, get_machine
from swipe.services.games.scoring import ScoreStore, get_or_create_record
from swipe.services.remote import RemoteSyncClient, SyncError

main = Blueprint('main', __name__)

MAX_USERNAME_LENGTH = 64


def _player_payload(player):
    get_or_create_record(player.id)
    return player.to_dict()


@main.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    if not username:
        return jsonify({'error': 'Please enter a username'}), 400
    if len(username) > MAX_USERNAME_LENGTH:
        return jsonify({'error': f'Username must be at most {MAX_USERNAME_LENGTH} characters'}), 400

    if Player.query.filter_by(username=username).first():
        return jsonify({'error': 'Username has been taken'}), 400

    remote_synced = False
    if current_app.config.get('REMOTE_SYNC_ENABLED'):
        client = RemoteSyncClient.from_config(current_app.config)
        try:
            if client.check_username_exists(username):
                return jsonify({'error': 'Username has been taken'}), 400
            remote_synced = client.save_username(username)
        except SyncError as exc:
            # Local play still works without the remote leaderboard
            current_app.logger.warning(f"[register-remote-failed] username={username} error={exc}")

    player = Player(username=username)
    db.session.add(player)
    db.session.commit()
    login_user(player, remember=True)
    current_app.logger.info(f"[register] player={player.id} username={username} remote={remote_synced}")

    payload = _player_payload(player)
    payload['remote_synced'] = remote_synced
    return jsonify(payload), 201


@main.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    player = Player.query.filter_by(username=(data.get('username') or '').strip()).first()
    if not player:
        return jsonify({'error': 'Unknown username'}), 404
    login_user(player, remember=True)
    return jsonify(_player_payload(player))


@main.route('/logout', methods=['POST'])
@login_required
def logout():
    discard_machine(current_user.id)
    logout_user()
    return jsonify({'success': True})


@main.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify(_player_payload(current_user))


@main.route('/me/high-score', methods=['DELETE'])
@login_required
def reset_high_score():
    app = current_app._get_current_object()
    machine = get_machine(app, current_user.id, create=False)
    if machine is None:
        store = ScoreStore(app, current_user.id)
        store.reset_high()
        return jsonify(store.snapshot())
    with machine.lock:
        machine.store.reset_high()
        return jsonify(machine.store.snapshot())
