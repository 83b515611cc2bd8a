import os
import sys
import pytest

# Ensure the backend root (containing the `swipe` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from swipe import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REMOTE_SYNC_ENABLED = False
    SUPABASE_URL = 'example.supabase.co'
    SUPABASE_KEY = 'test-key'
    MIN_SWIPE_DISTANCE = 20
    SWIPE_DEBOUNCE_MS = 0


class StubRandom:
    """Scripted stand-in for random.Random.

    random() pops from ``randoms`` (else ``default_random``), uniform(a, b)
    pops from ``uniforms`` (else a), choice(seq) pops from ``choices`` (else
    the first candidate, so the first target is always Up).
    """

    def __init__(self, randoms=(), choices=(), uniforms=(), default_random=0.99):
        self.randoms = list(randoms)
        self.choices = list(choices)
        self.uniforms = list(uniforms)
        self.default_random = default_random

    def random(self):
        return self.randoms.pop(0) if self.randoms else self.default_random

    def uniform(self, a, b):
        return self.uniforms.pop(0) if self.uniforms else a

    def choice(self, seq):
        if self.choices:
            wanted = self.choices.pop(0)
            assert wanted in seq, f"{wanted} is not a candidate in {seq}"
            return wanted
        return seq[0]


class FakeRemote:
    """Replaces RemoteSyncClient; from_config() hands back this recorder."""

    def __init__(self):
        self.calls = []
        self.users = []
        self.fail_with = None

    def from_config(self, config, session=None):
        return self

    def _record(self, *call):
        self.calls.append(call)
        if self.fail_with is not None:
            raise self.fail_with

    def update_high_score(self, username, high_score):
        self._record('update_high_score', username, high_score)
        return True

    def save_username(self, username):
        self._record('save_username', username)
        self.users.append({'username': username, 'highest_score': 0})
        return True

    def check_username_exists(self, username):
        self._record('check_username_exists', username)
        return any(u['username'] == username for u in self.users)

    def get_all_users(self):
        self._record('get_all_users')
        return list(self.users)


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import swipe.models  # noqa: F401
        db.create_all()
        yield application
        from swipe.services.games.registry import discard_all
        from swipe import socketio_events
        from swipe.api import game as game_api
        discard_all()
        socketio_events._sid_to_ctx.clear()
        socketio_events._socket_count.clear()
        socketio_events._end_deadline.clear()
        game_api._last_swipe_at.clear()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app, client, player):
    """Socket logged in as the `player` fixture through the HTTP session."""
    client.post('/api/players/login', json={'username': player.username})
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=client,
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def player(flask_app):
    from swipe.models import Player
    p = Player(username='alice')
    db.session.add(p)
    db.session.commit()
    return p


@pytest.fixture()
def fake_remote(flask_app, monkeypatch):
    remote = FakeRemote()
    for target in (
        'swipe.services.games.scoring.RemoteSyncClient',
        'swipe.main.RemoteSyncClient',
        'swipe.api.leaderboard.RemoteSyncClient',
    ):
        monkeypatch.setattr(target, remote)
    flask_app.config['REMOTE_SYNC_ENABLED'] = True
    return remote


@pytest.fixture()
def make_machine(flask_app, player):
    """Build a machine on a virtual clock; emitted events land on machine.events."""
    from swipe.services.games.machine import GameSettings, RoundStateMachine
    from swipe.services.games.scoring import ScoreStore
    from swipe.services.games.timers import ManualTimerScheduler

    def _make(rng=None, **settings):
        events = []
        machine = RoundStateMachine(
            ScoreStore(flask_app, player.id),
            scheduler=ManualTimerScheduler(),
            rng=rng or StubRandom(),
            settings=GameSettings(**settings),
            listener=lambda name, payload: events.append((name, payload)),
            name=str(player.id),
        )
        machine.events = events
        return machine

    return _make


def event_names(machine):
    return [name for name, _ in machine.events]
