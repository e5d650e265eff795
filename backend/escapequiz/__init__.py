from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
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
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One live hub per app; every publish is forwarded to the Socket.IO room of the same name
    from escapequiz.services.live import init_live_hub
    init_live_hub(flask_app)

    from escapequiz.errors import QuizError, Unauthenticated

    @flask_app.errorhandler(QuizError)
    def handle_quiz_error(exc):
        return jsonify(exc.to_dict()), exc.status

    from escapequiz.main import main
    flask_app.register_blueprint(main)

    from escapequiz.api.teams import teams
    flask_app.register_blueprint(teams, url_prefix='/api')

    from escapequiz.api.game import game
    flask_app.register_blueprint(game, url_prefix='/api')

    from escapequiz.api.admin import admin
    flask_app.register_blueprint(admin, url_prefix='/api/admin')

    from escapequiz.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from escapequiz.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        raise Unauthenticated()

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('upload-questions')
    @click.argument('path', type=click.Path(exists=True, dir_okay=False))
    def upload_questions_command(path):
        """Loads a question file ({"questions": [...]} or a bare list)."""
        from escapequiz.services.questions import upload_questions
        with open(path, 'rb') as fh:
            raw = fh.read()
        with flask_app.app_context():
            result = upload_questions(raw)
        print(f"Uploaded {result['accepted']} questions ({result['skipped']} skipped).")

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(upload_questions_command)

    return flask_app
