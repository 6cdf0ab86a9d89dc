"""
Unit Tests for configuration checks
"""

import pytest

from mpesa_gateway import create_app
from mpesa_gateway.config import TestingConfig, missing_settings, validate_config
from mpesa_gateway.errors import ConfigError

BLANK_MPESA = {
    'MPESA_CONSUMER_KEY': None,
    'MPESA_CONSUMER_SECRET': '',
    'MPESA_BUSINESS_SHORTCODE': '174379',
    'MPESA_PASSKEY': 'test_passkey',
    'MPESA_CALLBACK_URL': 'https://example.com/api/mpesa/callback',
}


def _settings(**overrides):
    settings = {
        name: getattr(TestingConfig, name)
        for name in dir(TestingConfig)
        if name.isupper()
    }
    settings.update(overrides)
    return settings


class TestMissingSettings:

    def test_complete_config(self):
        assert missing_settings(_settings()) == []
        validate_config(_settings())

    def test_lists_every_missing_setting(self):
        missing = missing_settings(_settings(MPESA_CONSUMER_KEY=None, MPESA_PASSKEY=''))

        assert missing == ['MPESA_CONSUMER_KEY', 'MPESA_PASSKEY']

    def test_database_url_required_for_sql_store(self):
        assert missing_settings(_settings(SQLALCHEMY_DATABASE_URI=None)) == ['DATABASE_URL']

    def test_database_url_optional_for_memory_store(self):
        settings = _settings(SQLALCHEMY_DATABASE_URI=None, PAYMENT_STORE='memory')

        assert missing_settings(settings) == []

    def test_validate_config_raises(self):
        with pytest.raises(ConfigError) as exc_info:
            validate_config(_settings(MPESA_CALLBACK_URL=None, SQLALCHEMY_DATABASE_URI=''))

        error = exc_info.value
        assert error.missing == ['MPESA_CALLBACK_URL', 'DATABASE_URL']
        assert error.message == (
            'Missing required environment variables: MPESA_CALLBACK_URL, DATABASE_URL'
        )


class TestCreateApp:

    def test_production_refuses_incomplete_config(self):
        with pytest.raises(ConfigError) as exc_info:
            create_app('production', dict(BLANK_MPESA, SQLALCHEMY_DATABASE_URI='sqlite:///:memory:'))

        assert exc_info.value.missing == ['MPESA_CONSUMER_KEY', 'MPESA_CONSUMER_SECRET']

    def test_unknown_store_rejected(self):
        with pytest.raises(ValueError):
            create_app('testing', {'PAYMENT_STORE': 'redis'})


class TestCheckEnvCommand:

    def test_reports_complete_environment(self, app):
        result = app.test_cli_runner().invoke(args=['check-env'])

        assert result.exit_code == 0
        assert 'All required environment variables are present' in result.output

    def test_reports_missing_variables(self):
        app = create_app('testing', {'MPESA_PASSKEY': '', 'MPESA_CALLBACK_URL': None})

        result = app.test_cli_runner().invoke(args=['check-env'])

        assert result.exit_code == 1
        assert 'MPESA_PASSKEY, MPESA_CALLBACK_URL' in result.output


class TestInitDbCommand:

    def test_creates_tables(self, app):
        result = app.test_cli_runner().invoke(args=['init-db'])

        assert result.exit_code == 0
        assert 'Payment tables created' in result.output
