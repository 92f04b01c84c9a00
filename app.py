import logging
import os

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from errors import ApiError
from extensions import db

logger = logging.getLogger(__name__)


def _database_url():
    database_url = os.environ.get("DATABASE_URL", "sqlite:///binroute.db")

    # Render often provides postgres:// but SQLAlchemy expects postgresql://
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)
    return database_url


def _configure_logging(level_name):
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(exc):
        db.session.rollback()
        if exc.status_code >= 500:
            logger.error("API error: %s", exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({"success": False, "message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        db.session.rollback()
        logger.exception("Unhandled error")
        return jsonify({"success": False, "message": "Internal server error"}), 500


def register_commands(app):
    @app.cli.command("create-admin")
    @click.option("--username", default="admin", show_default=True)
    @click.option("--email", default="admin@binroute.local", show_default=True)
    @click.password_option()
    def create_admin(username, email, password):
        """Create an administrator account."""
        from models import User
        from statuses import UserRole

        if User.query.filter_by(username=username.lower()).first():
            raise click.ClickException(f"User '{username}' already exists")
        user = User(
            first_name="Admin",
            last_name="User",
            username=username.lower(),
            email=email.lower(),
            role=UserRole.ADMIN,
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f"Created admin '{user.username}' (id {user.id})")


def create_app(test_config=None) -> Flask:
    app = Flask(__name__)

    app.config["SQLALCHEMY_DATABASE_URI"] = _database_url()
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    app.config["TOKEN_MAX_AGE"] = int(os.environ.get("TOKEN_MAX_AGE", 7 * 24 * 3600))
    app.config["LOG_LEVEL"] = os.environ.get("LOG_LEVEL", "INFO")
    app.json.sort_keys = False

    if test_config:
        app.config.update(test_config)

    _configure_logging(app.config["LOG_LEVEL"])

    # Initialize SQLAlchemy extension
    db.init_app(app)

    with app.app_context():
        # Import models so SQLAlchemy knows about them
        from models import Bin, Route, RouteStop, User  # noqa: F401

        db.create_all()

        # Register blueprints
        from routes.analytics import analytics_bp
        from routes.api import api_bp
        from routes.auth import auth_bp
        from routes.bins import bins_bp
        from routes.collections import collections_bp
        from routes.routes import routes_bp
        from routes.users import users_bp

        app.register_blueprint(analytics_bp)
        app.register_blueprint(api_bp)
        app.register_blueprint(auth_bp)
        app.register_blueprint(bins_bp)
        app.register_blueprint(collections_bp)
        app.register_blueprint(routes_bp)
        app.register_blueprint(users_bp)

    register_error_handlers(app)
    register_commands(app)
    logger.info("Bin collection service ready")
    return app


if __name__ == "__main__":
    # Local development entrypoint; gunicorn uses "app:create_app()"
    create_app().run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
