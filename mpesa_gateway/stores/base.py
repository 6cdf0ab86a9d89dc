from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from mpesa_gateway.models import PaymentStatus


@dataclass
class PaymentRecord:
    """A payment request as seen by the service layer, independent of the backend"""
    checkout_request_id: str
    phone: str
    amount: Decimal
    status: str = PaymentStatus.PENDING.value
    merchant_request_id: Optional[str] = None
    receipt_number: Optional[str] = None
    transaction_date: Optional[str] = None
    result_code: Optional[str] = None
    result_desc: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in PaymentStatus.terminal()


# Fields a caller may change through update_by_checkout_id()
UPDATABLE_FIELDS = frozenset(
    f.name for f in fields(PaymentRecord)
    if f.name not in ('checkout_request_id', 'created_at', 'updated_at')
)


class PaymentStore(ABC):
    """Abstract base class for payment record storage"""

    @abstractmethod
    def create(self, record: PaymentRecord) -> PaymentRecord:
        """
        Persist a new payment record

        Raises:
            PersistenceError: duplicate checkout id or backend failure
        """
        pass

    @abstractmethod
    def update_by_checkout_id(
            self,
            checkout_request_id: str,
            changes: Dict[str, Any],
            only_pending: bool = False
    ) -> Optional[PaymentRecord]:
        """
        Merge changes into a record as one atomic operation

        Args:
            checkout_request_id: Gateway checkout id
            changes: Field values to set
            only_pending: Apply only while the record's status is still pending

        Returns:
            The updated record, or None when no record matched
        """
        pass

    @abstractmethod
    def get_by_checkout_id(self, checkout_request_id: str) -> Optional[PaymentRecord]:
        """Return the record for a checkout id, or None"""
        pass

    def ping(self) -> bool:
        """Health probe; backends with an external dependency override this"""
        return True


def check_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    if 'status' in changes:
        changes = {**changes, 'status': PaymentStatus(changes['status']).value}
    return changes
