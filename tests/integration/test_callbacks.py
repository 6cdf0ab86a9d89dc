"""
Integration Tests for M-Pesa Callback Processing
"""

import json
from unittest.mock import patch

import pytest

from mpesa_gateway.errors import PersistenceError
from mpesa_gateway.stores import get_store
from mpesa_gateway.stores.base import PaymentRecord

CHECKOUT_ID = 'ws_CO_191220191020363925'


def _post_callback(client, payload):
    return client.post(
        '/api/mpesa/callback',
        headers={'Content-Type': 'application/json'},
        data=json.dumps(payload)
    )


class TestCallbackEndpoint:

    def test_successful_payment(self, client, store, sample_payment, make_callback, success_items):
        response = _post_callback(client, make_callback(items=success_items))

        assert response.status_code == 200
        assert response.data == b''

        record = store.get_by_checkout_id(CHECKOUT_ID)
        assert record.status == 'success'
        assert record.receipt_number == 'NLJ7RT61SV'
        assert record.transaction_date == '20191219102115'
        assert record.result_code == '0'

    def test_cancelled_payment(self, client, store, sample_payment, make_callback):
        response = _post_callback(client, make_callback(
            result_code=1032,
            result_desc='Request cancelled by user'
        ))

        assert response.status_code == 200

        record = store.get_by_checkout_id(CHECKOUT_ID)
        assert record.status == 'failed'
        assert record.result_code == '1032'
        assert record.result_desc == 'Request cancelled by user'
        assert record.receipt_number is None

    def test_repeated_delivery(self, client, store, sample_payment, make_callback, success_items):
        payload = make_callback(items=success_items)

        assert _post_callback(client, payload).status_code == 200
        assert _post_callback(client, payload).status_code == 200

        record = store.get_by_checkout_id(CHECKOUT_ID)
        assert record.status == 'success'
        assert record.receipt_number == 'NLJ7RT61SV'

    def test_conflicting_late_delivery_ignored(self, client, store, sample_payment,
                                               make_callback, success_items):
        _post_callback(client, make_callback(items=success_items))
        response = _post_callback(client, make_callback(result_code=1037, result_desc='Timeout'))

        assert response.status_code == 200
        assert store.get_by_checkout_id(CHECKOUT_ID).status == 'success'

    def test_nameless_metadata_item_does_not_block_payment(self, client, store, sample_payment,
                                                           make_callback, success_items):
        items = [{'Value': 'no name'}] + success_items

        response = _post_callback(client, make_callback(items=items))

        assert response.status_code == 200
        record = store.get_by_checkout_id(CHECKOUT_ID)
        assert record.status == 'success'
        assert record.receipt_number == 'NLJ7RT61SV'

    def test_unknown_checkout_id(self, client, store, make_callback):
        response = _post_callback(client, make_callback(checkout_request_id='ws_CO_unknown'))

        assert response.status_code == 200
        assert response.data == b''
        assert store.get_by_checkout_id('ws_CO_unknown') is None

    @pytest.mark.parametrize('payload', [
        {},
        {'Body': {}},
        {'Body': {'stkCallback': {'ResultCode': 0}}},
        ['not', 'an', 'envelope'],
    ])
    def test_malformed_payload(self, client, store, sample_payment, payload):
        response = _post_callback(client, payload)

        assert response.status_code == 200
        assert store.get_by_checkout_id(CHECKOUT_ID).status == 'pending'

    def test_non_json_body(self, client, sample_payment):
        response = client.post('/api/mpesa/callback', data='not json', content_type='text/plain')

        assert response.status_code == 200

    def test_store_error_still_acknowledged(self, client, make_callback):
        with patch(
            'mpesa_gateway.api.callbacks.PaymentService.handle_callback',
            side_effect=PersistenceError('database is locked')
        ):
            response = _post_callback(client, make_callback())

        assert response.status_code == 200

    def test_unexpected_error_returns_500(self, client, make_callback):
        with patch(
            'mpesa_gateway.api.callbacks.PaymentService.handle_callback',
            side_effect=RuntimeError('boom')
        ):
            response = _post_callback(client, make_callback())

        assert response.status_code == 500
        assert response.data == b''


class TestCallbackWithMemoryStore:

    def test_callback_updates_memory_store(self, memory_app, make_callback, success_items):
        store = get_store()
        store.create(PaymentRecord(
            checkout_request_id=CHECKOUT_ID,
            phone='254712345678',
            amount=100
        ))

        response = _post_callback(memory_app.test_client(), make_callback(items=success_items))

        assert response.status_code == 200
        assert store.get_by_checkout_id(CHECKOUT_ID).status == 'success'
