from flask import Blueprint, jsonify, current_app
from flask_login import current_user
from swipe.models import Player, ScoreRecord
from swipe.services.remote import DecodingError, RemoteSyncClient, SyncError


leaderboard = Blueprint('leaderboard', __name__)


def _local_rows():
    rows = (
        Player.query.join(ScoreRecord, ScoreRecord.player_id == Player.id)
        .with_entities(Player.username, ScoreRecord.high_score)
        .all()
    )
    return [{'username': username, 'highest_score': high_score} for username, high_score in rows]


def _remote_rows(rows):
    cleaned = []
    for row in rows:
        if not isinstance(row, dict):
            raise DecodingError(f"Unexpected leaderboard row: {row!r}")
        try:
            score = int(row.get('highest_score') or 0)
        except (TypeError, ValueError):
            raise DecodingError(f"Bad highest_score for {row.get('username')!r}: {row.get('highest_score')!r}")
        cleaned.append({'username': row.get('username'), 'highest_score': score})
    return cleaned


def _rank(rows, me):
    ordered = sorted(rows, key=lambda r: r['highest_score'], reverse=True)
    users = []
    for idx, row in enumerate(ordered, start=1):
        users.append({
            'rank': idx,
            'username': row.get('username') or 'Unknown',
            'highest_score': row['highest_score'],
            'is_current_user': me is not None and row.get('username') == me,
        })
    return users


@leaderboard.route('', methods=['GET'])
def get_leaderboard():
    """Global rankings by best score; falls back to local records when remote is unavailable."""
    me = current_user.username if current_user.is_authenticated else None
    source = 'local'
    error = None
    rows = None
    if current_app.config.get('REMOTE_SYNC_ENABLED'):
        try:
            rows = _remote_rows(RemoteSyncClient.from_config(current_app.config).get_all_users())
            source = 'remote'
        except SyncError as exc:
            current_app.logger.warning(f"[leaderboard-remote-failed] error={exc}")
            error = f'Could not load rankings. {exc}'
    if rows is None:
        rows = _local_rows()

    users = _rank(rows, me)
    payload = {
        'source': source,
        'users': users,
        'me': next((u for u in users if u['is_current_user']), None),
    }
    if error:
        payload['error'] = error
    return jsonify(payload)
