from mpesa_gateway.models.payment_request import PaymentRequest, PaymentStatus

__all__ = ['PaymentRequest', 'PaymentStatus']
