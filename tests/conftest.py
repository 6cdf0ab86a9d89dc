"""
Pytest Configuration and Fixtures
"""
from decimal import Decimal
from unittest.mock import Mock

import pytest

from mpesa_gateway import create_app
from mpesa_gateway.extensions import db as _db
from mpesa_gateway.providers.mpesa_provider import MPesaProvider
from mpesa_gateway.stores import get_store
from mpesa_gateway.stores.base import PaymentRecord


@pytest.fixture(scope='function')
def app():
    """Create application for testing, backed by an in-memory SQLite database"""
    app = create_app('testing')

    with app.app_context():
        _db.create_all()

        yield app

        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope='function')
def memory_app():
    """Application using the in-process payment store"""
    app = create_app('testing', {'PAYMENT_STORE': 'memory'})

    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def client(app):
    """Create a test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def store(app):
    """The app's payment store"""
    return get_store()


@pytest.fixture(scope='function')
def mock_provider():
    """Provider double; gateway calls are configured per test"""
    provider = Mock(spec=MPesaProvider)
    provider.stk_push.return_value = {
        'MerchantRequestID': '29115-34620561-1',
        'CheckoutRequestID': 'ws_CO_191220191020363925',
        'ResponseCode': '0',
        'ResponseDescription': 'Success. Request accepted for processing',
        'CustomerMessage': 'Success. Request accepted for processing'
    }
    provider.query_stk_status.return_value = {
        'status': 'pending',
        'result_code': '',
        'result_desc': '',
        'raw_response': {}
    }
    return provider


@pytest.fixture(scope='function')
def sample_payment(store):
    """A pending payment awaiting its callback"""
    return store.create(PaymentRecord(
        checkout_request_id='ws_CO_191220191020363925',
        merchant_request_id='29115-34620561-1',
        phone='254712345678',
        amount=Decimal('100.00'),
        status='pending'
    ))


@pytest.fixture
def success_items():
    """CallbackMetadata items of a completed payment"""
    return [
        {'Name': 'Amount', 'Value': 100.00},
        {'Name': 'MpesaReceiptNumber', 'Value': 'NLJ7RT61SV'},
        {'Name': 'TransactionDate', 'Value': 20191219102115},
        {'Name': 'PhoneNumber', 'Value': 254712345678}
    ]


@pytest.fixture
def make_callback():
    """Build an STK callback envelope as Safaricom posts it"""

    def _make_callback(checkout_request_id='ws_CO_191220191020363925', result_code=0,
                       result_desc='The service request is processed successfully.', items=None):
        stk_callback = {
            'MerchantRequestID': '29115-34620561-1',
            'CheckoutRequestID': checkout_request_id,
            'ResultCode': result_code,
            'ResultDesc': result_desc
        }
        if items is not None:
            stk_callback['CallbackMetadata'] = {'Item': items}
        return {'Body': {'stkCallback': stk_callback}}

    return _make_callback
