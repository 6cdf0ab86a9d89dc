from dataclasses import asdict, fields
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mpesa_gateway.errors import PersistenceError
from mpesa_gateway.extensions import db
from mpesa_gateway.models import PaymentRequest, PaymentStatus
from mpesa_gateway.stores.base import PaymentRecord, PaymentStore, check_changes
from mpesa_gateway.utils.logger import get_logger

logger = get_logger(__name__)

_RECORD_FIELDS = [f.name for f in fields(PaymentRecord)]


def _to_record(row: PaymentRequest) -> PaymentRecord:
    return PaymentRecord(**{name: getattr(row, name) for name in _RECORD_FIELDS})


class SqlPaymentStore(PaymentStore):
    """Flask-SQLAlchemy backed store (table ``mpesa_payments``)"""

    def create(self, record: PaymentRecord) -> PaymentRecord:
        row = PaymentRequest(**asdict(record))
        try:
            db.session.add(row)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise PersistenceError(
                f'Payment {record.checkout_request_id} already exists',
                checkout_request_id=record.checkout_request_id
            ) from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error(f'Insert failed for {record.checkout_request_id}: {str(exc)}')
            raise PersistenceError(
                str(exc),
                checkout_request_id=record.checkout_request_id
            ) from exc

        return _to_record(row)

    def update_by_checkout_id(
            self,
            checkout_request_id: str,
            changes: Dict[str, Any],
            only_pending: bool = False
    ) -> Optional[PaymentRecord]:
        changes = check_changes(changes)

        values = {getattr(PaymentRequest, name): value for name, value in changes.items()}
        values[PaymentRequest.updated_at] = datetime.utcnow()

        # Single UPDATE ... WHERE statement, so the pending check and the
        # write cannot interleave with another writer
        query = PaymentRequest.query.filter(
            PaymentRequest.checkout_request_id == checkout_request_id
        )
        if only_pending:
            query = query.filter(PaymentRequest.status == PaymentStatus.PENDING.value)

        try:
            matched = query.update(values, synchronize_session=False)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error(f'Update failed for {checkout_request_id}: {str(exc)}')
            raise PersistenceError(
                str(exc),
                checkout_request_id=checkout_request_id
            ) from exc

        if not matched:
            return None

        return self.get_by_checkout_id(checkout_request_id)

    def get_by_checkout_id(self, checkout_request_id: str) -> Optional[PaymentRecord]:
        try:
            # Bypass the identity map so a row changed by a bulk UPDATE is re-read
            row = db.session.get(
                PaymentRequest,
                checkout_request_id,
                populate_existing=True
            )
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError(
                str(exc),
                checkout_request_id=checkout_request_id
            ) from exc

        return _to_record(row) if row else None

    def ping(self) -> bool:
        db.session.execute(text('SELECT 1'))
        return True
