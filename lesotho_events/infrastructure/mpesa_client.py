# lesotho_events/infrastructure/mpesa_client.py

import base64
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

import requests

from lesotho_events import config
from lesotho_events.domain.exceptions import MpesaAuthError

logger = logging.getLogger(__name__)

COUNTRY_CODE = "254"
LESOTHO_COUNTRY_CODE = "266"


@dataclass
class StkPushResult:
    success: bool
    checkout_request_id: str | None = None
    customer_message: str | None = None
    response_code: str | None = None
    error: Any = None


def format_phone_number(phone_number: str) -> str:
    """
    Rewrite a phone number into the country-code form the STK push expects.
    Prefix substitution only; no E.164 validation.
    """
    cleaned = re.sub(r"\D", "", phone_number)

    if cleaned.startswith(LESOTHO_COUNTRY_CODE):
        return f"{COUNTRY_CODE}{cleaned[len(LESOTHO_COUNTRY_CODE):]}"
    if cleaned.startswith("0"):
        return f"{COUNTRY_CODE}{cleaned[1:]}"
    if cleaned.startswith(COUNTRY_CODE):
        return cleaned
    if len(cleaned) == 9:
        return f"{COUNTRY_CODE}{cleaned}"
    return cleaned


def whole_units(amount: Decimal) -> int:
    return int(Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class MpesaClient:
    """Thin wrapper over the Daraja OAuth and STK push endpoints."""

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        business_shortcode: str,
        passkey: str,
        callback_url: str,
        base_url: str = "https://sandbox.safaricom.co.ke",
        timeout: float = 10,
        session: requests.Session | None = None,
    ):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.business_shortcode = business_shortcode
        self.passkey = passkey
        self.callback_url = callback_url
        self.auth_url = f"{base_url}/oauth/v1/generate?grant_type=client_credentials"
        self.stk_push_url = f"{base_url}/mpesa/stkpush/v1/processrequest"
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls) -> "MpesaClient":
        return cls(
            consumer_key=config.MPESA_CONSUMER_KEY,
            consumer_secret=config.MPESA_CONSUMER_SECRET,
            business_shortcode=config.MPESA_BUSINESS_SHORTCODE,
            passkey=config.MPESA_PASSKEY,
            callback_url=config.MPESA_CALLBACK_URL,
            base_url=config.MPESA_BASE_URL,
            timeout=config.MPESA_TIMEOUT_SECONDS,
        )

    def get_access_token(self) -> str:
        try:
            response = self.session.get(
                self.auth_url,
                auth=(self.consumer_key, self.consumer_secret),
                timeout=self.timeout,
            )
            response.raise_for_status()
            token = response.json().get("access_token")
        except (requests.RequestException, ValueError) as exc:
            logger.error("M-Pesa auth error: %s", _error_detail(exc))
            raise MpesaAuthError("Failed to get M-Pesa access token") from exc

        if not token:
            raise MpesaAuthError("Failed to get M-Pesa access token")
        return token

    def generate_password(self, now: datetime | None = None) -> tuple[str, str]:
        timestamp = (now or datetime.now()).strftime("%Y%m%d%H%M%S")
        raw = f"{self.business_shortcode}{self.passkey}{timestamp}"
        password = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        return password, timestamp

    def initiate_stk_push(
        self,
        phone_number: str,
        amount: Decimal,
        account_reference: str,
        transaction_desc: str,
    ) -> StkPushResult:
        try:
            access_token = self.get_access_token()
            password, timestamp = self.generate_password()

            request_data = {
                "BusinessShortCode": self.business_shortcode,
                "Password": password,
                "Timestamp": timestamp,
                "TransactionType": "CustomerPayBillOnline",
                "Amount": whole_units(amount),
                "PartyA": phone_number,
                "PartyB": self.business_shortcode,
                "PhoneNumber": phone_number,
                "CallBackURL": self.callback_url,
                "AccountReference": account_reference,
                "TransactionDesc": transaction_desc,
            }

            response = self.session.post(
                self.stk_push_url,
                json=request_data,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except MpesaAuthError as exc:
            return StkPushResult(success=False, error=str(exc))
        except (requests.RequestException, ValueError) as exc:
            error = _error_detail(exc)
            logger.error("M-Pesa STK push error: %s", error)
            return StkPushResult(success=False, error=error)

        if not data.get("CheckoutRequestID"):
            logger.error("M-Pesa STK push returned no CheckoutRequestID: %s", data)
            return StkPushResult(success=False, error=data)

        return StkPushResult(
            success=True,
            checkout_request_id=data.get("CheckoutRequestID"),
            customer_message=data.get("CustomerMessage"),
            response_code=data.get("ResponseCode"),
        )


def _error_detail(exc: Exception) -> Any:
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            return response.json()
        except ValueError:
            return response.text
    return str(exc)
