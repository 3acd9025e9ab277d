from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def _parse_origins(value):
    if not value or value.strip() == '*':
        return '*'
    return [origin.strip() for origin in value.split(',') if origin.strip()]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = _parse_origins(flask_app.config.get('CORS_ORIGINS', '*'))

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Models must be imported before create_all / migrations see the tables
    from luckyjet import models  # noqa: F401

    from luckyjet.services.rounds import init_round_engine, get_scheduler
    init_round_engine(flask_app, socketio)

    from luckyjet.main import main
    flask_app.register_blueprint(main)

    from luckyjet.api.rounds import rounds
    flask_app.register_blueprint(rounds, url_prefix='/api/rounds')

    from luckyjet.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the round tables, then prefills the backlog."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            added = get_scheduler(flask_app).refill_backlog()
            click.echo(f'Database has been reset, {added} rounds queued.')

    @click.command('prefill-rounds')
    def prefill_rounds_command():
        """Tops the round backlog up to BACKLOG_TARGET."""
        with flask_app.app_context():
            added = get_scheduler(flask_app).refill_backlog()
            click.echo(f'{added} rounds queued.')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(prefill_rounds_command)

    return flask_app
