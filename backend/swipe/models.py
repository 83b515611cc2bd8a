from swipe import db
from flask_login import UserMixin
from datetime import datetime, timezone


def _utcnow():
    return datetime.now(timezone.utc)


class Player(UserMixin, db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    score_record = db.relationship('ScoreRecord', back_populates='player', uselist=False)

    def to_dict(self):
        record = self.score_record
        return {
            'id': self.id,
            'username': self.username,
            'current_score': record.current_score if record else 0,
            'high_score': record.high_score if record else 0,
        }


class ScoreRecord(db.Model):
    __tablename__ = 'score_record'
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), unique=True, nullable=False)
    current_score = db.Column(db.Integer, default=0, nullable=False)
    high_score = db.Column(db.Integer, default=0, nullable=False)
    last_updated = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    sync_status = db.Column(db.String(16), nullable=True)  # pending, synced, failed
    player = db.relationship('Player', back_populates='score_record')

    def touch(self):
        self.last_updated = _utcnow()

    def to_dict(self):
        return {
            'current_score': self.current_score,
            'high_score': self.high_score,
            'last_updated': self.last_updated.isoformat() if self.last_updated else None,
            'sync_status': self.sync_status,
        }
