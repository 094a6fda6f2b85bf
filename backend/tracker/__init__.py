from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from tracker.main import main
    flask_app.register_blueprint(main)

    from tracker.api.tournament import tournament
    flask_app.register_blueprint(tournament, url_prefix='/api/tournament')

    from tracker.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Ensure the model is registered before create_all / migrations run
    import tracker.models  # noqa: F401

    @click.command('tracker-reset')
    def tracker_reset_command():
        """Drops, recreates, and seeds the tournament store with defaults."""
        from tracker.services.tournament.store import forget_state, save_state
        from tracker.services.tournament.state import TournamentState
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            state = TournamentState(top_k=flask_app.config.get('DEFAULT_TOP_K', 4))
            save_state(flask_app, state)
            forget_state(flask_app)
            print('Tournament store has been reset and seeded!')

    @click.command('tracker-show')
    def tracker_show_command():
        """Prints the current player leaderboard."""
        from tracker.services.tournament.leaderboard import build_player_board
        from tracker.services.tournament.store import get_state
        with flask_app.app_context():
            state = get_state(flask_app)
            for row in build_player_board(state.players, state.ledger, state.top_k):
                print(f"{row['rank']:>2}. {row['name']:<24} {row['score']:>8.1f}")
                if row['rank'] == state.top_k:
                    print('-' * 37)

    flask_app.cli.add_command(tracker_reset_command)
    flask_app.cli.add_command(tracker_show_command)

    return flask_app
