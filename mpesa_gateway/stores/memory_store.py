import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Optional

from mpesa_gateway.errors import PersistenceError
from mpesa_gateway.models import PaymentStatus
from mpesa_gateway.stores.base import PaymentRecord, PaymentStore, check_changes


class InMemoryPaymentStore(PaymentStore):
    """Process-local store, used for tests and single-process development"""

    def __init__(self):
        self._records: Dict[str, PaymentRecord] = {}
        self._lock = threading.Lock()

    def create(self, record: PaymentRecord) -> PaymentRecord:
        with self._lock:
            if record.checkout_request_id in self._records:
                raise PersistenceError(
                    f'Payment {record.checkout_request_id} already exists',
                    checkout_request_id=record.checkout_request_id
                )
            stored = replace(record)
            self._records[record.checkout_request_id] = stored
            return replace(stored)

    def update_by_checkout_id(
            self,
            checkout_request_id: str,
            changes: Dict[str, Any],
            only_pending: bool = False
    ) -> Optional[PaymentRecord]:
        changes = check_changes(changes)

        with self._lock:
            current = self._records.get(checkout_request_id)
            if current is None:
                return None
            if only_pending and current.status != PaymentStatus.PENDING.value:
                return None

            updated = replace(current, **changes, updated_at=datetime.utcnow())
            self._records[checkout_request_id] = updated
            return replace(updated)

    def get_by_checkout_id(self, checkout_request_id: str) -> Optional[PaymentRecord]:
        with self._lock:
            record = self._records.get(checkout_request_id)
            return replace(record) if record else None

    def __len__(self):
        return len(self._records)
