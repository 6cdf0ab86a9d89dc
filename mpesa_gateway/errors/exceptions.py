class AppError(Exception):
    status_code = 500
    error = "Application error"

    def __init__(self, message, details=None, status_code=None, error=None):
        super().__init__(message)
        if status_code:
            self.status_code = status_code
        if error:
            self.error = error
        self.message = message
        self.details = details if details is not None else message

    def to_dict(self):
        return {'error': self.error, 'details': self.details}


class ConfigError(AppError):
    status_code = 500
    error = "Configuration error"

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(
            f"Missing required environment variables: {', '.join(self.missing)}"
        )


class AuthError(AppError):
    status_code = 500
    error = "Failed to generate M-Pesa token"


class ValidationError(AppError):
    status_code = 400
    error = "Validation error"


class UpstreamError(AppError):
    status_code = 500
    error = "Failed to initiate payment"


class PersistenceError(AppError):
    status_code = 500
    error = "Database error"

    def __init__(self, message, checkout_request_id=None, **kwargs):
        super().__init__(message, **kwargs)
        self.checkout_request_id = checkout_request_id

    def to_dict(self):
        data = super().to_dict()
        if self.checkout_request_id:
            data['CheckoutRequestID'] = self.checkout_request_id
        return data


class PaymentNotFound(AppError):
    status_code = 404
    error = "Payment not found"
