"""
Custom Validators
Validation and normalisation for buyer input
"""

import re

from mpesa_gateway.errors import ValidationError

COUNTRY_CODE = '254'

# 254 + a Safaricom subscriber number starting with 7 or 1
_KENYAN_MSISDN = re.compile(r'^254[17]\d{8}$')


def normalize_phone(phone) -> str:
    """
    Normalise a buyer phone number to the gateway's 2547XXXXXXXX format

    Accepts: 0712345678, 712345678, 254712345678, +254 712 345 678

    Args:
        phone: Raw phone number (string or number)

    Returns:
        Phone number as 254 followed by 9 digits

    Raises:
        ValidationError: If the result is not a valid Kenyan mobile number
    """
    digits = re.sub(r'\D', '', str(phone if phone is not None else ''))

    if digits.startswith('0') and len(digits) == 10:
        digits = COUNTRY_CODE + digits[1:]
    elif digits[:1] in ('7', '1') and len(digits) == 9:
        digits = COUNTRY_CODE + digits

    if not _KENYAN_MSISDN.match(digits):
        raise ValidationError(
            'Please provide a valid Kenyan phone number',
            error='Invalid phone number'
        )

    return digits
