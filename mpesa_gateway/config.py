import os
from dotenv import load_dotenv

from mpesa_gateway.errors import ConfigError

load_dotenv()


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _callback_url():
    explicit = os.getenv('MPESA_CALLBACK_URL')
    if explicit:
        return explicit
    backend_url = os.getenv('BACKEND_URL')
    if backend_url:
        return f"{backend_url.rstrip('/')}/api/mpesa/callback"
    return None


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key')

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql" or "memory"
    PAYMENT_STORE = os.getenv('PAYMENT_STORE', 'sql')

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ORIGINS', 'http://localhost:8080').split(',')
        if origin.strip()
    ]

    # M-Pesa (Daraja) configuration
    MPESA_ENV = os.getenv('MPESA_ENV', 'sandbox')
    MPESA_CONSUMER_KEY = os.getenv('MPESA_CONSUMER_KEY')
    MPESA_CONSUMER_SECRET = os.getenv('MPESA_CONSUMER_SECRET')
    MPESA_BUSINESS_SHORTCODE = os.getenv('MPESA_BUSINESS_SHORTCODE')
    MPESA_PASSKEY = os.getenv('MPESA_PASSKEY')
    MPESA_CALLBACK_URL = _callback_url()
    MPESA_TRANSACTION_TYPE = os.getenv('MPESA_TRANSACTION_TYPE', 'CustomerPayBillOnline')
    MPESA_ACCOUNT_REFERENCE = os.getenv('MPESA_ACCOUNT_REFERENCE', 'Checkout')
    MPESA_TRANSACTION_DESC = os.getenv('MPESA_TRANSACTION_DESC', 'Payment')
    MPESA_TOKEN_TIMEOUT = int(os.getenv('MPESA_TOKEN_TIMEOUT', 90))
    MPESA_REQUEST_TIMEOUT = int(os.getenv('MPESA_REQUEST_TIMEOUT', 30))
    MPESA_STATUS_QUERY_ENABLED = _env_bool('MPESA_STATUS_QUERY_ENABLED', True)

    REQUIRED_SETTINGS = [
        'MPESA_CONSUMER_KEY',
        'MPESA_CONSUMER_SECRET',
        'MPESA_BUSINESS_SHORTCODE',
        'MPESA_PASSKEY',
        'MPESA_CALLBACK_URL',
    ]


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    PAYMENT_STORE = 'sql'

    MPESA_ENV = 'sandbox'
    MPESA_CONSUMER_KEY = 'test_consumer_key'
    MPESA_CONSUMER_SECRET = 'test_consumer_secret'
    MPESA_BUSINESS_SHORTCODE = '174379'
    MPESA_PASSKEY = 'test_passkey'
    MPESA_CALLBACK_URL = 'https://example.com/api/mpesa/callback'
    MPESA_STATUS_QUERY_ENABLED = True


# Settings whose environment variable differs from the config key
_ENV_NAMES = {
    'SQLALCHEMY_DATABASE_URI': 'DATABASE_URL',
}


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def missing_settings(app_config):
    """Return the names of required settings that are unset or empty."""
    required = list(app_config.get('REQUIRED_SETTINGS', Config.REQUIRED_SETTINGS))
    if app_config.get('PAYMENT_STORE', 'sql') == 'sql':
        required.append('SQLALCHEMY_DATABASE_URI')

    return [
        _ENV_NAMES.get(name, name)
        for name in required
        if not app_config.get(name)
    ]


def validate_config(app_config):
    """
    Fail fast when required settings are absent

    Raises:
        ConfigError: listing every missing setting
    """
    missing = missing_settings(app_config)
    if missing:
        raise ConfigError(missing)
