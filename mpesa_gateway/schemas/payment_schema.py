from marshmallow import EXCLUDE, Schema, ValidationError, fields, pre_load, validates


class InitiatePaymentSchema(Schema):
    """STK Push initiation request"""

    class Meta:
        unknown = EXCLUDE

    phone = fields.Str(required=True)
    amount = fields.Decimal(required=True)

    @pre_load
    def stringify_phone(self, data, **kwargs):
        # Checkout forms sometimes post the phone as a JSON number
        if isinstance(data, dict) and isinstance(data.get('phone'), int):
            data = {**data, 'phone': str(data['phone'])}
        return data

    @validates('amount')
    def validate_amount(self, value, **kwargs):
        if value <= 0:
            raise ValidationError('Amount must be greater than 0')
        # Daraja only charges whole shillings
        if value != value.to_integral_value():
            raise ValidationError('Amount must be a whole number of shillings')


class InitiatePaymentResponseSchema(Schema):
    """Subset of the gateway acknowledgement returned to the client"""
    ResponseCode = fields.Str(dump_only=True)
    CheckoutRequestID = fields.Str(dump_only=True)
    ResponseDescription = fields.Str(dump_only=True)
    CustomerMessage = fields.Str(dump_only=True)


class PaymentStatusSchema(Schema):
    """Payment status response"""
    status = fields.Str(dump_only=True)
    checkout_request_id = fields.Str(dump_only=True, data_key='checkoutRequestId')
    receipt_number = fields.Str(dump_only=True, data_key='receiptNumber')
    transaction_date = fields.Str(dump_only=True, data_key='transactionDate')
    result_desc = fields.Str(dump_only=True, data_key='resultDesc')
