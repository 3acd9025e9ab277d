import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///luckyjet.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Comma separated list, or '*' for any origin
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Round loop timing (milliseconds)
    TICK_INTERVAL_MS = int(os.environ.get('TICK_INTERVAL_MS', '50'))
    INTER_ROUND_PAUSE_MS = int(os.environ.get('INTER_ROUND_PAUSE_MS', '8000'))
    # Backlog and history sizing
    BACKLOG_TARGET = int(os.environ.get('BACKLOG_TARGET', '30'))
    ROUND_LOG_CAP = int(os.environ.get('ROUND_LOG_CAP', '200'))
    HISTORY_LIMIT = int(os.environ.get('HISTORY_LIMIT', '20'))
    # Pause before the loop retries after a persistence failure (seconds)
    RETRY_DELAY_SEC = float(os.environ.get('RETRY_DELAY_SEC', '1'))
    # Set false to serve the socket/API without driving rounds
    ROUND_LOOP_ENABLED = _env_bool('ROUND_LOOP_ENABLED', True)
