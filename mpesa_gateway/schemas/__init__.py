"""
Schemas Package
Marshmallow schemas for request/response validation
"""

from mpesa_gateway.schemas.payment_schema import (
    InitiatePaymentSchema,
    InitiatePaymentResponseSchema,
    PaymentStatusSchema
)
from mpesa_gateway.schemas.callback_schema import (
    MPesaCallbackSchema,
    metadata_items
)

__all__ = [
    'InitiatePaymentSchema',
    'InitiatePaymentResponseSchema',
    'PaymentStatusSchema',
    'MPesaCallbackSchema',
    'metadata_items'
]
