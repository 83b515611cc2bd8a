import os


def _flag(name, default='0'):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///swipe.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Remote leaderboard (PostgREST / Supabase). Host with or without scheme.
    SUPABASE_URL = os.environ.get('SUPABASE_URL')
    SUPABASE_KEY = os.environ.get('SUPABASE_KEY')
    REMOTE_SYNC_ENABLED = _flag('REMOTE_SYNC_ENABLED')
    SYNC_TIMEOUT_SEC = float(os.environ.get('SYNC_TIMEOUT_SEC', '5'))
    # Gesture shorter than this (in points) is not a swipe
    MIN_SWIPE_DISTANCE = float(os.environ.get('MIN_SWIPE_DISTANCE', '20'))
    # Optional: debounce swipes per player (ms). 0 disables.
    SWIPE_DEBOUNCE_MS = int(os.environ.get('SWIPE_DEBOUNCE_MS', '0'))
    # Tear down a player's round machine this long after their last socket leaves
    DISCONNECT_GRACE_SEC = float(os.environ.get('DISCONNECT_GRACE_SEC', '2'))
    # Trap: a correct swipe turns into a guessing challenge
    TRAP_MIN_STREAK = int(os.environ.get('TRAP_MIN_STREAK', '3'))
    TRAP_PROBABILITY = float(os.environ.get('TRAP_PROBABILITY', '0.2'))
    FEINT_DELAY_SEC = float(os.environ.get('FEINT_DELAY_SEC', '0.5'))
    TRAP_REVEAL_DELAY_SEC = float(os.environ.get('TRAP_REVEAL_DELAY_SEC', '0.1'))
    TRAP_SUCCESS_PAUSE_SEC = float(os.environ.get('TRAP_SUCCESS_PAUSE_SEC', '0.5'))
    # Fake-out: a wrong arrow flashes briefly
    FAKE_MIN_STREAK = int(os.environ.get('FAKE_MIN_STREAK', '5'))
    FAKE_DELAY_MIN_SEC = float(os.environ.get('FAKE_DELAY_MIN_SEC', '0.8'))
    FAKE_DELAY_MAX_SEC = float(os.environ.get('FAKE_DELAY_MAX_SEC', '2.5'))
    CELEBRATION_EVERY = int(os.environ.get('CELEBRATION_EVERY', '10'))
