from mpesa_gateway.errors.exceptions import (
    AppError,
    AuthError,
    ConfigError,
    PaymentNotFound,
    PersistenceError,
    UpstreamError,
    ValidationError,
)

__all__ = [
    'AppError',
    'AuthError',
    'ConfigError',
    'PaymentNotFound',
    'PersistenceError',
    'UpstreamError',
    'ValidationError',
]
