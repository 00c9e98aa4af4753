import logging

import click
import sqlalchemy as sa
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import BadRequest

from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()


def _probe_storage(flask_app) -> bool:
    """Run a trivial query and record whether the database answered."""
    try:
        with flask_app.app_context():
            db.session.execute(sa.text('SELECT 1'))
            db.session.remove()
        ready = True
    except SQLAlchemyError as exc:
        flask_app.logger.warning(f"[storage] not ready: {exc.__class__.__name__}: {exc}")
        ready = False
    else:
        flask_app.logger.info("[storage] ready")
    flask_app.extensions['storage_ready'] = ready
    return ready


def _register_error_handlers(flask_app):
    from gameprofile.errors import ProfileServiceError

    @flask_app.errorhandler(ProfileServiceError)
    def handle_service_error(exc):
        if exc.status_code >= 500:
            flask_app.logger.error(f"[error] {request.method} {request.path}: {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(BadRequest)
    def handle_bad_request(exc):
        return jsonify({'error': exc.description or 'Bad request'}), 400


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    db.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=flask_app.config.get('CORS_ORIGINS', '*'))

    # Verification key and allowlist are read once and never change afterwards
    from gameprofile.auth import TokenVerifier, check_client, load_identity_from_request, load_public_key
    public_key = load_public_key(flask_app.config)
    if public_key is None:
        flask_app.logger.warning("[auth] no public key configured; every bearer token will be rejected")
    flask_app.extensions['token_verifier'] = TokenVerifier(
        public_key,
        algorithms=flask_app.config.get('JWT_ALGORITHMS'),
        leeway=int(flask_app.config.get('JWT_LEEWAY_SECONDS', 0)),
    )
    login_manager.request_loader(load_identity_from_request)

    # Ensure models are registered on the metadata
    from gameprofile import models  # noqa: F401

    _register_error_handlers(flask_app)

    from gameprofile.api.users import users
    flask_app.register_blueprint(users, url_prefix='/users')

    @flask_app.before_request
    def require_storage():
        if request.blueprint != users.name:
            return None
        # An unknown client is rejected even while storage is down
        check_client()
        if flask_app.extensions.get('storage_ready') or _probe_storage(flask_app):
            return None
        return jsonify({'error': 'Storage not ready'}), 503

    @flask_app.route('/')
    def index():
        return jsonify({
            'message': 'Game profile server',
            'ready': bool(flask_app.extensions.get('storage_ready')),
        })

    @click.command('db-reset')
    @click.option('--seed', is_flag=True, help='Insert a few demo profiles.')
    def db_reset_command(seed):
        """Drops and recreates the profile tables."""
        from gameprofile.models import FriendEdge, Profile
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            if seed:
                for pid, exp in (('player1', 0), ('player2', 250), ('player3', 640)):
                    db.session.add(Profile(id=pid, experience=exp))
                db.session.add(FriendEdge(owner_id='player1', friend_id='player2'))
                db.session.commit()
            click.echo('Database has been reset' + (' and seeded!' if seed else '!'))

    flask_app.cli.add_command(db_reset_command)

    _probe_storage(flask_app)

    return flask_app
