from mpesa_gateway.services.payment_service import PaymentService

__all__ = ['PaymentService']
