import click
from flask import Flask, jsonify
from flask_cors import CORS

from mpesa_gateway.config import config, missing_settings, validate_config
from mpesa_gateway.errors import AppError
from mpesa_gateway.extensions import db, migrate
from mpesa_gateway.stores import init_store
from mpesa_gateway.utils.logger import RequestLogger, configure_app_logging, get_logger

logger = get_logger(__name__)


def create_app(config_name='development', config_overrides=None):
    """
    Application factory pattern

    Raises:
        ConfigError: required settings are missing (skipped when TESTING)
    """
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config[config_name])
    if config_overrides:
        app.config.update(config_overrides)

    if not app.config.get('TESTING'):
        validate_config(app.config)

    # Initialize extensions
    if app.config.get('SQLALCHEMY_DATABASE_URI'):
        db.init_app(app)
        migrate.init_app(app, db)
    CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)

    init_store(app)

    configure_app_logging(app)
    RequestLogger(app)

    # Register blueprints
    from mpesa_gateway.api import register_blueprints
    register_blueprints(app)

    # Error handlers
    register_error_handlers(app)

    register_commands(app)

    logger.info(
        f"M-Pesa gateway started ({config_name}, {app.config['MPESA_ENV']}, "
        f"{app.config['PAYMENT_STORE']} store)"
    )
    return app


def register_error_handlers(app):
    """Register error handlers"""

    @app.errorhandler(AppError)
    def app_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(400)
    def bad_request(error):
        return jsonify({'error': 'Bad request', 'details': str(error)}), 400

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Not found', 'details': str(error)}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed', 'details': str(error)}), 405

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({'error': 'Internal server error', 'details': str(error)}), 500


def register_commands(app):
    """Register Flask CLI commands"""

    @app.cli.command('check-env')
    def check_env():
        """Verify that every required environment variable is set."""
        missing = missing_settings(app.config)
        if missing:
            click.echo(f"Missing required environment variables: {', '.join(missing)}", err=True)
            raise SystemExit(1)
        click.echo('All required environment variables are present')

    @app.cli.command('init-db')
    def init_db():
        """Create the payment tables."""
        if 'sqlalchemy' not in app.extensions:
            click.echo('No database configured (PAYMENT_STORE is not "sql")', err=True)
            raise SystemExit(1)
        db.create_all()
        click.echo('Payment tables created')
