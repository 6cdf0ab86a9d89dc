"""
M-Pesa Callback Endpoint
Receives the asynchronous STK Push result from Safaricom
"""

from flask import Blueprint, request

from mpesa_gateway.errors import AppError
from mpesa_gateway.services.payment_service import PaymentService
from mpesa_gateway.stores import get_store
from mpesa_gateway.utils.logger import get_logger

callbacks_bp = Blueprint('callbacks', __name__)
logger = get_logger(__name__)


@callbacks_bp.route('/callback', methods=['POST'])
def mpesa_callback():
    """
    Receive an STK Push result

    Body:
        {"Body": {"stkCallback": {...}}}

    Always answers 200 with an empty body so Safaricom does not redeliver;
    500 only for unexpected internal failures.
    """
    try:
        payload = request.get_json(silent=True)
        PaymentService(store=get_store()).handle_callback(payload)

    except AppError as e:
        # Still acknowledged, otherwise the gateway keeps redelivering
        logger.error(f'Callback processing error: {e.message}')

    except Exception as e:
        logger.exception(f'Callback error: {str(e)}')
        return '', 500

    return '', 200
