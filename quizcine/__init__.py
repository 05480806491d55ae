from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

socketio = SocketIO(async_mode=None)


def _allowed_origins(value):
    if not value or value.strip() == '*':
        return '*'
    return [o.strip() for o in value.split(',') if o.strip()]


def create_app(config_class=Config):
    flask_app = Flask(
        __name__,
        static_folder=getattr(config_class, 'PUBLIC_DIR', None),
        static_url_path='',
    )
    flask_app.config.from_object(config_class)

    allowed_origins = _allowed_origins(flask_app.config.get('CORS_ORIGINS', '*'))
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Room table and question bank live on the app so each app (and each test) gets its own
    from quizcine.services.quiz.registry import RoomRegistry
    from quizcine.services.quiz.repository import QuestionRepository
    from quizcine.services.quiz.scoring import ScoringRules

    registry = RoomRegistry(idle_ttl=flask_app.config.get('ROOM_IDLE_TTL_SEC', 0))
    flask_app.extensions['quizcine'] = {
        'rooms': registry,
        'questions': QuestionRepository(flask_app.config['QUESTIONS_PATH']),
        'rules': ScoringRules.from_config(flask_app.config),
    }

    from quizcine.routes import main
    flask_app.register_blueprint(main)

    # Register Socket.IO event handlers
    from quizcine.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    from quizcine.services.quiz.reaper import start_room_reaper
    start_room_reaper(flask_app, registry)

    @click.command('questions-check')
    def questions_check_command():
        """Lists the rounds found in the question bank."""
        repository = flask_app.extensions['quizcine']['questions']
        rounds = repository.rounds()
        if not rounds:
            click.echo(f"No questions found in {repository.path}")
            return
        for name, count in rounds.items():
            click.echo(f"{name or '(no round)'}: {count}")
        click.echo(f"{sum(rounds.values())} questions in {len(rounds)} rounds")

    flask_app.cli.add_command(questions_check_command)

    return flask_app
