from contextlib import contextmanager

from flask import has_app_context

from swipe import db, socketio
from swipe.models import Player, ScoreRecord
from swipe.services.remote import RemoteSyncClient, SyncError


@contextmanager
def _app_scope(app):
    # Timer threads arrive without an app context; requests already have one.
    if has_app_context():
        yield
    else:
        with app.app_context():
            yield


def get_or_create_record(player_id: int) -> ScoreRecord:
    """Return the player's single score record, creating it on first use."""
    record = ScoreRecord.query.filter_by(player_id=player_id).first()
    if record is None:
        record = ScoreRecord(player_id=player_id, current_score=0, high_score=0)
        db.session.add(record)
        db.session.commit()
    return record


class ScoreStore:
    """Local current/high score for one player.

    All operations commit immediately. Raising the high score also queues a
    remote sync; that sync can only ever change ``sync_status``.
    """

    def __init__(self, app, player_id: int):
        self.app = app
        self.player_id = player_id

    def update_score(self, new_value: int) -> None:
        with _app_scope(self.app):
            record = get_or_create_record(self.player_id)
            record.current_score = int(new_value)
            raised = record.current_score > record.high_score
            if raised:
                record.high_score = record.current_score
                record.sync_status = 'pending'
            record.touch()
            db.session.add(record)
            db.session.commit()
            if raised:
                schedule_high_score_sync(self.app, self.player_id, record.high_score)

    def commit_game_over(self) -> None:
        """Finalize the run: bank the current score as high score if better, then zero it."""
        with _app_scope(self.app):
            record = get_or_create_record(self.player_id)
            raised = record.current_score > record.high_score
            if raised:
                record.high_score = record.current_score
                record.sync_status = 'pending'
            record.current_score = 0
            record.touch()
            db.session.add(record)
            db.session.commit()
            self.app.logger.info(
                f"[game-over] player={self.player_id} high_score={record.high_score} raised={raised}"
            )
            if raised:
                schedule_high_score_sync(self.app, self.player_id, record.high_score)

    def reset_current(self) -> None:
        with _app_scope(self.app):
            record = get_or_create_record(self.player_id)
            record.current_score = 0
            record.touch()
            db.session.add(record)
            db.session.commit()

    def reset_high(self) -> None:
        with _app_scope(self.app):
            record = get_or_create_record(self.player_id)
            record.high_score = 0
            record.touch()
            db.session.add(record)
            db.session.commit()

    @property
    def current_score(self) -> int:
        return self.snapshot()['current_score']

    @property
    def high_score(self) -> int:
        return self.snapshot()['high_score']

    def snapshot(self) -> dict:
        with _app_scope(self.app):
            record = get_or_create_record(self.player_id)
            return {'current_score': record.current_score, 'high_score': record.high_score}


def schedule_high_score_sync(app, player_id: int, score: int) -> None:
    """Push a new high score to the remote leaderboard without waiting for it.

    - No-ops unless REMOTE_SYNC_ENABLED
    - Runs inline in TESTING mode, as a background task otherwise
    - Failures are logged and recorded as sync_status='failed'; scores stay put
    """
    if not app.config.get('REMOTE_SYNC_ENABLED'):
        return

    def _worker(pid: int, value: int):
        with _app_scope(app):
            player = db.session.get(Player, pid)
            if not player:
                return
            client = RemoteSyncClient.from_config(app.config)
            try:
                client.update_high_score(player.username, value)
                status = 'synced'
                app.logger.info(f"[sync-ok] player={pid} username={player.username} high_score={value}")
            except SyncError as exc:
                status = 'failed'
                app.logger.warning(f"[sync-failed] player={pid} high_score={value} error={exc}")
            record = ScoreRecord.query.filter_by(player_id=pid).first()
            # A newer high score may have been queued meanwhile; only the latest value owns the status.
            if record and record.high_score == value:
                record.sync_status = status
                db.session.add(record)
                db.session.commit()

    if app.config.get('TESTING'):
        _worker(player_id, score)
    else:
        socketio.start_background_task(_worker, player_id, score)
