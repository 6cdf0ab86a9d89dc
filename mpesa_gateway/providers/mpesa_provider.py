"""
M-Pesa Payment Provider
Based on the Safaricom Daraja API.

Supported flows
---------------
STK Push (Lipa na M-Pesa Online)
    POST /mpesa/stkpush/v1/processrequest
    POST /mpesa/stkpushquery/v1/query         (status poll)

Authentication
    GET  /oauth/v1/generate?grant_type=client_credentials  (Basic auth)
    A fresh token is requested for every Daraja call.

Callback
    Safaricom POSTs the final STK result to CallBackURL; the envelope is
    parsed by mpesa_gateway.schemas.callback_schema.

Required config keys
--------------------
    consumer_key        – From Safaricom Developer Portal app
    consumer_secret     – From Safaricom Developer Portal app
    shortcode           – Business shortcode (PayBill or Buy-Goods)
    passkey             – Lipa na M-Pesa Online passkey
    callback_url        – Publicly reachable STK callback endpoint

Optional config keys
--------------------
    environment         – "sandbox" (default) | "production"
    transaction_type    – "CustomerPayBillOnline" (default) | "CustomerBuyGoodsOnline"
    account_reference   – Shown on the buyer's phone, max 12 chars
    transaction_desc    – Shown on the buyer's phone, max 13 chars
    token_timeout       – Seconds allowed for the OAuth call (default 90)
    request_timeout     – Seconds allowed for STK calls (default 30)
"""

import base64
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import requests

from mpesa_gateway.errors import AuthError, ConfigError, UpstreamError
from mpesa_gateway.models import PaymentStatus

logger = logging.getLogger(__name__)

# Daraja base URLs
_BASE_URLS = {
    "sandbox":    "https://sandbox.safaricom.co.ke",
    "production": "https://api.safaricom.co.ke",
}

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

# STK query ResultCode → payment status; anything unlisted is still pending
_STK_QUERY_STATUS_MAP: Dict[str, str] = {
    "0":    PaymentStatus.SUCCESS.value,
    "1":    PaymentStatus.FAILED.value,    # Insufficient balance
    "17":   PaymentStatus.FAILED.value,    # Financial limit reached
    "26":   PaymentStatus.FAILED.value,    # Traffic/system timeout
    "1001": PaymentStatus.FAILED.value,    # Subscriber busy with another transaction
    "1019": PaymentStatus.FAILED.value,    # Transaction expired
    "1025": PaymentStatus.FAILED.value,    # Error sending push request
    "1032": PaymentStatus.FAILED.value,    # Request cancelled by user
    "1037": PaymentStatus.FAILED.value,    # User unreachable / USSD timeout
    "2001": PaymentStatus.FAILED.value,    # Wrong PIN
}


def map_query_result_code(code: Any) -> str:
    """Map an STK query ResultCode to pending / success / failed."""
    if code is None:
        return PaymentStatus.PENDING.value
    return _STK_QUERY_STATUS_MAP.get(str(code).strip(), PaymentStatus.PENDING.value)


def get_timestamp(now: Optional[datetime] = None) -> str:
    """YYYYMMDDHHmmss from the server's local clock."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def generate_password(shortcode: str, passkey: str, timestamp: str) -> str:
    """Password = Base64(BusinessShortCode + Passkey + Timestamp)"""
    raw = f"{shortcode}{passkey}{timestamp}"
    return base64.b64encode(raw.encode("utf-8")).decode("utf-8")


class MPesaProvider:
    """M-Pesa (Daraja API) STK Push client."""

    # Daraja endpoint paths
    _EP_AUTH      = "/oauth/v1/generate"
    _EP_STK_PUSH  = "/mpesa/stkpush/v1/processrequest"
    _EP_STK_QUERY = "/mpesa/stkpushquery/v1/query"

    def __init__(self, config: Dict[str, Any]):
        self.config = config

        self.consumer_key    = config.get("consumer_key") or ""
        self.consumer_secret = config.get("consumer_secret") or ""
        self.shortcode       = str(config.get("shortcode") or "")
        self.passkey         = config.get("passkey") or ""
        self.callback_url    = config.get("callback_url") or ""
        self.environment     = (config.get("environment") or "sandbox").lower()

        self.transaction_type  = config.get("transaction_type") or "CustomerPayBillOnline"
        self.account_reference = config.get("account_reference") or "Checkout"
        self.transaction_desc  = config.get("transaction_desc") or "Payment"
        self.token_timeout     = config.get("token_timeout") or 90
        self.request_timeout   = config.get("request_timeout") or 30

        if self.environment not in _BASE_URLS:
            raise ValueError(
                f"MPesaProvider: environment must be 'sandbox' or 'production', got '{self.environment}'"
            )

        self.base_url = _BASE_URLS[self.environment]

    # Token provider

    def get_access_token(self) -> str:
        """
        Exchange the consumer key/secret for a bearer token.

        Raises:
            AuthError: credentials missing, request failed or timed out,
                or the gateway returned no token
        """
        if not self.consumer_key or not self.consumer_secret:
            raise AuthError("M-Pesa credentials are not configured")

        url = f"{self.base_url}{self._EP_AUTH}?grant_type=client_credentials"
        try:
            resp = requests.get(
                url,
                auth=(self.consumer_key, self.consumer_secret),
                timeout=self.token_timeout,
            )
        except requests.Timeout as exc:
            raise AuthError(
                f"Token request timed out after {self.token_timeout}s"
            ) from exc
        except requests.RequestException as exc:
            raise AuthError(f"Token request failed – {exc}") from exc

        data = self._json_body(resp)
        if not resp.ok:
            logger.error("M-Pesa token error: HTTP %s %s", resp.status_code, data)
            raise AuthError(
                f"Token request rejected with HTTP {resp.status_code}",
                details=self._error_details(resp, data),
            )

        token = data.get("access_token")
        if not token:
            raise AuthError("Token response did not contain an access_token")

        logger.debug("MPesaProvider: access token generated (expires in %ss)", data.get("expires_in"))
        return token

    # STK Push

    def stk_push(
        self,
        phone: str,
        amount: Any,
        account_reference: Optional[str] = None,
        transaction_desc: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send an STK Push prompt to an already normalised phone number.

        Returns the Daraja acknowledgement (MerchantRequestID,
        CheckoutRequestID, ResponseCode, ResponseDescription, CustomerMessage).

        Raises:
            ConfigError: passkey, shortcode or callback URL missing
            AuthError: token exchange failed
            UpstreamError: Daraja refused or could not be reached
        """
        missing = [
            name for name, value in (
                ("MPESA_BUSINESS_SHORTCODE", self.shortcode),
                ("MPESA_PASSKEY", self.passkey),
                ("MPESA_CALLBACK_URL", self.callback_url),
            ) if not value
        ]
        if missing:
            raise ConfigError(missing)

        timestamp, password = self._generate_password()

        payload = {
            "BusinessShortCode": self.shortcode,
            "Password":          password,
            "Timestamp":         timestamp,
            "TransactionType":   self.transaction_type,
            "Amount":            int(amount),
            "PartyA":            phone,
            "PartyB":            self.shortcode,
            "PhoneNumber":       phone,
            "CallBackURL":       self.callback_url,
            "AccountReference":  (account_reference or self.account_reference)[:12],
            "TransactionDesc":   (transaction_desc or self.transaction_desc)[:13],
        }

        resp = self._post(self._EP_STK_PUSH, payload, context="stk_push")

        response_code = str(resp.get("ResponseCode", ""))
        if response_code != "0" or not resp.get("CheckoutRequestID"):
            raise UpstreamError(
                f"STK Push not accepted (ResponseCode {response_code or 'missing'})",
                details=resp.get("ResponseDescription") or resp.get("errorMessage") or resp,
            )

        logger.info(
            "MPesaProvider: STK Push accepted for %s (CheckoutRequestID %s)",
            phone, resp["CheckoutRequestID"],
        )
        return resp

    def query_stk_status(self, checkout_request_id: str) -> Dict[str, Any]:
        """
        Ask Daraja for the live result of an STK Push.

        Returns:
            Dict containing:
                - status: pending / success / failed
                - result_code: Daraja ResultCode (string, may be empty)
                - result_desc: Daraja ResultDesc
                - raw_response: Full Daraja response
        """
        timestamp, password = self._generate_password()
        payload = {
            "BusinessShortCode": self.shortcode,
            "Password":          password,
            "Timestamp":         timestamp,
            "CheckoutRequestID": checkout_request_id,
        }

        resp = self._post(
            self._EP_STK_QUERY,
            payload,
            context="stk_query",
            error="Failed to query payment status",
        )

        result_code = resp.get("ResultCode")
        return {
            "status":       map_query_result_code(result_code),
            "result_code":  str(result_code) if result_code is not None else "",
            "result_desc":  resp.get("ResultDesc", ""),
            "raw_response": resp,
        }

    # Private – auth & HTTP helpers

    def _generate_password(self) -> Tuple[str, str]:
        """Timestamp and password, derived from the same clock reading."""
        timestamp = get_timestamp()
        return timestamp, generate_password(self.shortcode, self.passkey, timestamp)

    def _post(
        self,
        endpoint: str,
        payload: Dict[str, Any],
        context: str = "",
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Execute an authenticated POST to a Daraja endpoint."""
        token = self.get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type":  "application/json",
        }

        url = f"{self.base_url}{endpoint}"
        try:
            resp = requests.post(url, json=payload, headers=headers, timeout=self.request_timeout)
        except requests.Timeout as exc:
            raise UpstreamError(
                f"MPesaProvider [{context}]: timed out after {self.request_timeout}s",
                error=error,
            ) from exc
        except requests.RequestException as exc:
            raise UpstreamError(
                f"MPesaProvider [{context}]: network error – {exc}",
                error=error,
            ) from exc

        return self._handle_response(resp, context, error)

    def _handle_response(
        self, resp: requests.Response, context: str, error: Optional[str] = None
    ) -> Dict[str, Any]:
        """Parse Daraja response, raising on error envelopes."""
        data = self._json_body(resp)

        logger.debug("MPesa [%s] HTTP %s: %s", context, resp.status_code, data)

        if not resp.ok:
            raise UpstreamError(
                f"MPesaProvider [{context}] HTTP {resp.status_code}",
                details=self._error_details(resp, data),
                error=error,
            )

        # Daraja sometimes returns 200 with an error envelope
        if data.get("errorCode"):
            raise UpstreamError(
                f"MPesaProvider [{context}] Daraja error {data['errorCode']}",
                details=self._error_details(resp, data),
                error=error,
            )

        return data

    @staticmethod
    def _json_body(resp: requests.Response) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {"body": data}

    @staticmethod
    def _error_details(resp: requests.Response, data: Dict[str, Any]) -> Any:
        """Best-effort detail: errorMessage, else the body, else the status line."""
        if data.get("errorMessage"):
            return data["errorMessage"]
        if data:
            return data
        if resp.text:
            return resp.text[:300]
        return f"HTTP {resp.status_code}"
