from decimal import Decimal
from typing import Any, Dict, Optional

from marshmallow import ValidationError as SchemaValidationError

from mpesa_gateway.errors import AppError, PaymentNotFound, PersistenceError
from mpesa_gateway.models import PaymentStatus
from mpesa_gateway.providers.mpesa_provider import MPesaProvider
from mpesa_gateway.schemas.callback_schema import MPesaCallbackSchema, metadata_items
from mpesa_gateway.stores.base import PaymentRecord, PaymentStore
from mpesa_gateway.utils.logger import get_logger
from mpesa_gateway.utils.validators import normalize_phone

logger = get_logger(__name__)

callback_schema = MPesaCallbackSchema()


class PaymentService:
    """STK Push payment lifecycle: initiate, resolve by callback, resolve by query"""

    def __init__(
            self,
            store: PaymentStore,
            provider: Optional[MPesaProvider] = None,
            status_query_enabled: bool = True
    ):
        self.store = store
        self.provider = provider
        self.status_query_enabled = status_query_enabled

    def initiate_payment(self, phone: Any, amount: Decimal) -> Dict[str, Any]:
        """
        Send an STK Push and record it as pending

        Args:
            phone: Raw buyer phone number
            amount: Amount to charge

        Returns:
            Gateway acknowledgement subset (ResponseCode, CheckoutRequestID,
            ResponseDescription, CustomerMessage)

        Raises:
            ValidationError: Invalid phone number
            AuthError / UpstreamError: Gateway call failed
            PersistenceError: Gateway accepted the request but it could not be recorded
        """
        formatted_phone = normalize_phone(phone)

        response = self.provider.stk_push(formatted_phone, amount)
        checkout_request_id = response['CheckoutRequestID']

        record = PaymentRecord(
            checkout_request_id=checkout_request_id,
            merchant_request_id=response.get('MerchantRequestID'),
            phone=formatted_phone,
            # Same whole-shilling value the STK payload carries
            amount=Decimal(int(amount)),
            status=PaymentStatus.PENDING.value
        )

        try:
            self.store.create(record)
        except PersistenceError as e:
            # The buyer has a prompt on their phone that nothing here tracks
            logger.error(
                f'Untracked STK Push {checkout_request_id} for {formatted_phone}: {e.message}'
            )
            raise PersistenceError(
                f'Payment request was sent but could not be recorded: {e.message}',
                checkout_request_id=checkout_request_id
            ) from e

        logger.info(f'Payment initiated: {checkout_request_id} - {formatted_phone} - {amount}')

        return {
            'ResponseCode': str(response.get('ResponseCode', '0')),
            'CheckoutRequestID': checkout_request_id,
            'ResponseDescription': response.get('ResponseDescription', 'Request sent successfully'),
            'CustomerMessage': response.get('CustomerMessage'),
        }

    def handle_callback(self, payload: Any) -> Optional[PaymentRecord]:
        """
        Apply an STK callback to its payment record

        Unknown checkout ids, malformed envelopes and repeated deliveries are
        logged and ignored; the gateway is acknowledged regardless.

        Returns:
            The record after the callback, or None for an unknown or malformed one
        """
        try:
            envelope = callback_schema.load(payload if isinstance(payload, dict) else {})
        except SchemaValidationError as e:
            logger.warning(f'Ignoring malformed M-Pesa callback: {e.messages}')
            return None

        stk = envelope['body']['stk_callback']
        checkout_request_id = stk['checkout_request_id']
        result_code = stk['result_code']
        status = PaymentStatus.SUCCESS if result_code == 0 else PaymentStatus.FAILED

        logger.info(f'Payment status for {checkout_request_id}: {status.value} - {stk["result_desc"]}')

        changes = {
            'status': status.value,
            'result_code': str(result_code),
            'result_desc': stk['result_desc'],
        }
        if status == PaymentStatus.SUCCESS:
            items = metadata_items(stk)
            receipt = items.get('MpesaReceiptNumber')
            transaction_date = items.get('TransactionDate')
            if receipt is not None:
                changes['receipt_number'] = str(receipt)
            if transaction_date is not None:
                changes['transaction_date'] = str(transaction_date)

        return self._resolve(checkout_request_id, changes, source='callback')

    def get_status(self, checkout_request_id: str) -> PaymentRecord:
        """
        Current status of a payment

        Pending records are refreshed from the gateway when status queries are
        enabled. Store and gateway failures degrade to a pending answer.

        Raises:
            PaymentNotFound: No record exists for the checkout id
        """
        try:
            record = self.store.get_by_checkout_id(checkout_request_id)
        except AppError as e:
            logger.warning(f'Payment status lookup failed for {checkout_request_id}: {e.message}')
            return _pending(checkout_request_id)

        if record is None:
            raise PaymentNotFound(f'No payment request with CheckoutRequestID {checkout_request_id}')

        if record.is_terminal or not self.status_query_enabled or self.provider is None:
            return record

        try:
            result = self.provider.query_stk_status(checkout_request_id)
        except AppError as e:
            logger.warning(f'STK status query failed for {checkout_request_id}: {e.message} ({e.details})')
            return record

        if result['status'] == PaymentStatus.PENDING.value:
            return record

        changes = {
            'status': result['status'],
            'result_code': result['result_code'],
            'result_desc': result['result_desc'],
        }
        try:
            resolved = self._resolve(checkout_request_id, changes, source='status query')
        except AppError as e:
            logger.warning(f'Could not persist queried status for {checkout_request_id}: {e.message}')
            return record

        return resolved or record

    def _resolve(self, checkout_request_id: str, changes: Dict[str, Any], source: str) -> Optional[PaymentRecord]:
        """Move a pending record to its terminal status, at most once."""
        updated = self.store.update_by_checkout_id(
            checkout_request_id,
            changes,
            only_pending=True
        )
        if updated is not None:
            logger.info(f'Payment updated from {source}: {checkout_request_id} - {updated.status}')
            return updated

        existing = self.store.get_by_checkout_id(checkout_request_id)
        if existing is None:
            logger.warning(f'{source.capitalize()} for unknown payment {checkout_request_id}')
            return None

        logger.info(
            f'Payment {checkout_request_id} already {existing.status}; '
            f'ignoring {source} result {changes["status"]}'
        )
        return existing


def _pending(checkout_request_id: str) -> PaymentRecord:
    return PaymentRecord(
        checkout_request_id=checkout_request_id,
        phone='',
        amount=Decimal('0'),
        status=PaymentStatus.PENDING.value
    )
