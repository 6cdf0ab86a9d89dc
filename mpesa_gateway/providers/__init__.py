from flask import current_app

from mpesa_gateway.providers.mpesa_provider import (
    MPesaProvider,
    generate_password,
    get_timestamp,
    map_query_result_code,
)


def get_provider() -> MPesaProvider:
    """
    Build an M-Pesa provider from the current app's configuration.

    Returns:
        Initialized provider instance
    """
    return MPesaProvider(_get_provider_config())


def _get_provider_config() -> dict:
    """Get provider configuration from Flask app config."""
    return {
        # Required
        'consumer_key':    current_app.config.get('MPESA_CONSUMER_KEY'),
        'consumer_secret': current_app.config.get('MPESA_CONSUMER_SECRET'),
        'shortcode':       current_app.config.get('MPESA_BUSINESS_SHORTCODE'),
        'passkey':         current_app.config.get('MPESA_PASSKEY'),
        'callback_url':    current_app.config.get('MPESA_CALLBACK_URL'),
        # Environment
        'environment':     current_app.config.get('MPESA_ENV', 'sandbox'),
        # Payment behaviour
        'transaction_type':  current_app.config.get('MPESA_TRANSACTION_TYPE', 'CustomerPayBillOnline'),
        'account_reference': current_app.config.get('MPESA_ACCOUNT_REFERENCE', 'Checkout'),
        'transaction_desc':  current_app.config.get('MPESA_TRANSACTION_DESC', 'Payment'),
        # Timeouts (seconds)
        'token_timeout':   current_app.config.get('MPESA_TOKEN_TIMEOUT', 90),
        'request_timeout': current_app.config.get('MPESA_REQUEST_TIMEOUT', 30),
    }


__all__ = [
    'MPesaProvider',
    'get_provider',
    'generate_password',
    'get_timestamp',
    'map_query_result_code',
]
