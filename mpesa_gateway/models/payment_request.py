from datetime import datetime
from enum import Enum

from mpesa_gateway.extensions import db


class PaymentStatus(str, Enum):
    PENDING = 'pending'
    SUCCESS = 'success'
    FAILED = 'failed'

    @classmethod
    def terminal(cls):
        return (cls.SUCCESS.value, cls.FAILED.value)


class PaymentRequest(db.Model):
    __tablename__ = 'mpesa_payments'

    # Issued by the gateway once it accepts the STK push
    checkout_request_id = db.Column(db.String(100), primary_key=True)
    merchant_request_id = db.Column(db.String(100))

    phone = db.Column(db.String(20), nullable=False)
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)

    # Filled in when the payment resolves
    receipt_number = db.Column('mpesa_receipt_number', db.String(50))
    transaction_date = db.Column(db.String(20))
    result_code = db.Column(db.String(20))
    result_desc = db.Column(db.String(255))

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'checkout_request_id': self.checkout_request_id,
            'merchant_request_id': self.merchant_request_id,
            'phone': self.phone,
            'amount': self.amount,
            'status': self.status,
            'receipt_number': self.receipt_number,
            'transaction_date': self.transaction_date,
            'result_code': self.result_code,
            'result_desc': self.result_desc,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }

    def __repr__(self):
        return f'<PaymentRequest {self.checkout_request_id} - {self.status}>'
