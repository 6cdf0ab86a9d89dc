"""
Health Check Endpoints
"""

from datetime import datetime

from flask import Blueprint, current_app, jsonify

from mpesa_gateway.stores import get_store

health_bp = Blueprint('health', __name__)


@health_bp.route('/', methods=['GET'])
def index():
    """Plain-text liveness banner"""
    return 'M-Pesa Gateway Running', 200


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic health check endpoint

    Returns:
        200 if the payment store is reachable
        503 otherwise
    """
    health_status = {
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': 'mpesa-gateway',
        'environment': current_app.config.get('MPESA_ENV', 'sandbox')
    }

    try:
        get_store().ping()
        health_status['checks'] = {
            'store': {
                'status': 'healthy',
                'message': f"{current_app.config.get('PAYMENT_STORE', 'sql')} store OK"
            }
        }
        status_code = 200
    except Exception as e:
        health_status['status'] = 'unhealthy'
        health_status['checks'] = {
            'store': {
                'status': 'unhealthy',
                'message': f'Store error: {str(e)}'
            }
        }
        status_code = 503

    return jsonify(health_status), status_code
