from flask import Blueprint, current_app, jsonify, request
from marshmallow import ValidationError

from mpesa_gateway.errors import AppError, PaymentNotFound
from mpesa_gateway.providers import get_provider
from mpesa_gateway.schemas.payment_schema import (
    InitiatePaymentResponseSchema,
    InitiatePaymentSchema,
    PaymentStatusSchema
)
from mpesa_gateway.services.payment_service import PaymentService
from mpesa_gateway.stores import get_store
from mpesa_gateway.utils.logger import get_logger

payments_bp = Blueprint('payments', __name__)
logger = get_logger(__name__)

initiate_schema = InitiatePaymentSchema()
initiate_response_schema = InitiatePaymentResponseSchema()
status_schema = PaymentStatusSchema()


def _payment_service() -> PaymentService:
    return PaymentService(
        store=get_store(),
        provider=get_provider(),
        status_query_enabled=current_app.config.get('MPESA_STATUS_QUERY_ENABLED', True)
    )


@payments_bp.route('/payment', methods=['POST'])
def initiate_payment():
    """
    Initiate an STK Push payment

    Body:
        {
            "phone": "0712345678",
            "amount": 100
        }

    Returns:
        {
            "ResponseCode": "0",
            "CheckoutRequestID": "ws_CO_...",
            "ResponseDescription": "Success. Request accepted for processing"
        }
    """
    try:
        data = initiate_schema.load(request.get_json(silent=True) or {})

        result = _payment_service().initiate_payment(
            phone=data['phone'],
            amount=data['amount']
        )

        body = initiate_response_schema.dump(result)
        return jsonify({key: value for key, value in body.items() if value is not None}), 200

    except ValidationError as e:
        return jsonify({
            'error': 'Invalid request',
            'details': e.messages
        }), 400

    except AppError as e:
        logger.error(f'M-Pesa payment error: {e.message}')
        return jsonify(e.to_dict()), e.status_code

    except Exception as e:
        logger.exception(f'M-Pesa payment error: {str(e)}')
        return jsonify({
            'error': 'Failed to initiate payment',
            'details': 'Internal server error'
        }), 500


@payments_bp.route('/payment-status/<checkout_request_id>', methods=['GET'])
def payment_status(checkout_request_id):
    """
    Get the status of a payment

    Path Parameters:
        - checkout_request_id: CheckoutRequestID returned at initiation

    Returns:
        200 {"status": "pending" | "success" | "failed", ...}
        404 if no payment was initiated with this id
    """
    try:
        record = _payment_service().get_status(checkout_request_id)
        return jsonify(status_schema.dump(record)), 200

    except PaymentNotFound as e:
        return jsonify(e.to_dict()), 404

    except Exception as e:
        # Polling clients always get an answer
        logger.error(f'Payment status error: {str(e)}')
        return jsonify({'status': 'pending'}), 200
