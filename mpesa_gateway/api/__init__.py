"""
API Blueprints Package
Registers all API blueprints
"""

from mpesa_gateway.api.payments import payments_bp
from mpesa_gateway.api.callbacks import callbacks_bp
from mpesa_gateway.api.health import health_bp

# Export blueprints
__all__ = [
    'payments_bp',
    'callbacks_bp',
    'health_bp',
    'register_blueprints'
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app

    Args:
        app: Flask application instance
    """

    url_base: str = '/api/mpesa'

    app.register_blueprint(payments_bp, url_prefix=url_base)
    app.register_blueprint(callbacks_bp, url_prefix=url_base)
    app.register_blueprint(health_bp)
