from typing import Dict, Type

from flask import current_app

from mpesa_gateway.stores.base import PaymentRecord, PaymentStore
from mpesa_gateway.stores.memory_store import InMemoryPaymentStore
from mpesa_gateway.stores.sql_store import SqlPaymentStore

# Store registry
STORES: Dict[str, Type[PaymentStore]] = {
    'memory': InMemoryPaymentStore,
    'sql':    SqlPaymentStore,
}


def init_store(app) -> PaymentStore:
    """
    Build the payment store named by PAYMENT_STORE and attach it to the app.

    Raises:
        ValueError: If the store name is unknown
    """
    store_name = app.config.get('PAYMENT_STORE', 'sql').lower()
    store_class = STORES.get(store_name)

    if not store_class:
        raise ValueError(f'Unknown payment store: {store_name}')

    store = store_class()
    app.extensions['payment_store'] = store
    return store


def get_store() -> PaymentStore:
    """Payment store of the current app."""
    return current_app.extensions['payment_store']


__all__ = [
    'PaymentRecord',
    'PaymentStore',
    'InMemoryPaymentStore',
    'SqlPaymentStore',
    'STORES',
    'init_store',
    'get_store',
]
