"""
M-Pesa Callback Schemas
Parse the nested STK Push result envelope Safaricom posts to CallBackURL:

    {"Body": {"stkCallback": {
        "MerchantRequestID": "...",
        "CheckoutRequestID": "...",
        "ResultCode": 0,
        "ResultDesc": "...",
        "CallbackMetadata": {"Item": [{"Name": "...", "Value": ...}, ...]}
    }}}
"""

from marshmallow import EXCLUDE, Schema, fields, pre_load


class CallbackItemSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    Name = fields.Str(load_default=None, allow_none=True)
    Value = fields.Raw(load_default=None, allow_none=True)


class CallbackMetadataSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    Item = fields.List(fields.Nested(CallbackItemSchema), load_default=list)

    @pre_load
    def wrap_single_item(self, data, **kwargs):
        # Item is occasionally a single object instead of a list
        if isinstance(data, dict) and isinstance(data.get('Item'), dict):
            data = {**data, 'Item': [data['Item']]}
        return data


class StkCallbackSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    merchant_request_id = fields.Str(load_default=None, allow_none=True, data_key='MerchantRequestID')
    checkout_request_id = fields.Str(required=True, data_key='CheckoutRequestID')
    result_code = fields.Int(required=True, data_key='ResultCode')
    result_desc = fields.Str(load_default='', allow_none=True, data_key='ResultDesc')
    callback_metadata = fields.Nested(
        CallbackMetadataSchema,
        load_default=None,
        allow_none=True,
        data_key='CallbackMetadata'
    )


class CallbackBodySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    stk_callback = fields.Nested(StkCallbackSchema, required=True, data_key='stkCallback')


class MPesaCallbackSchema(Schema):
    """M-Pesa STK callback envelope"""

    class Meta:
        unknown = EXCLUDE

    body = fields.Nested(CallbackBodySchema, required=True, data_key='Body')


def metadata_items(stk_callback):
    """Flatten CallbackMetadata.Item into a {Name: Value} dict."""
    metadata = stk_callback.get('callback_metadata') or {}
    return {
        item['Name']: item.get('Value')
        for item in metadata.get('Item', [])
        if item.get('Name')
    }
