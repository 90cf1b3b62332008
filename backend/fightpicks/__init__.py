from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    from fightpicks.logging_config import setup_logging
    setup_logging(flask_app)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from fightpicks.main import main
    flask_app.register_blueprint(main)

    from fightpicks.api.games import games
    # Mount game routes under /api to match frontend API client
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from fightpicks.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @flask_app.errorhandler(404)
    def not_found_error(error):
        if request.path.startswith('/api/'):
            return jsonify({'error': 'Resource not found', 'code': 'not_found'}), 404
        return error

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with a demo game."""
        from fightpicks.services.games.session import create_game
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            game, host = create_game('Demo Fight Night', 'Host')
            print(f'Database has been reset! Demo game code: {game.game_code} (host player id {host.id})')

    @click.command('rescore-game')
    @click.argument('game_code')
    def rescore_game_command(game_code):
        """Recomputes every pick score and player total of a game."""
        from fightpicks.models import Game
        from fightpicks.services.games.results import rescore_game
        with flask_app.app_context():
            game = Game.query.filter_by(game_code=game_code.upper()).first()
            if not game:
                raise click.ClickException(f'Game {game_code} not found')
            summary = rescore_game(game.id)
            print(
                f"Rescored {summary['fights_rescored']} fights, "
                f"{summary['picks_scored']} picks ({summary['picks_corrected']} corrected), "
                f"{summary['players_updated']} players updated"
            )

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(rescore_game_command)

    return flask_app
