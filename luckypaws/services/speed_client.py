import base64
from decimal import Decimal
from typing import Any, Literal, Optional, Union

import httpx
from loguru import logger
from pydantic import BaseModel

from luckypaws.core.config import settings
from luckypaws.core.errors import UpstreamError, ValidationError
from luckypaws.models.order import PaymentMethod


class LightningPaymentResult(BaseModel):
    kind: Literal["lightning"] = "lightning"
    payment_id: str
    payment_request: str
    amount_sats: Optional[int] = None
    expires_at: Any = None # Raw provider value, normalized by the order service

    @property
    def invoice(self) -> str:
        return self.payment_request


class OnChainPaymentResult(BaseModel):
    kind: Literal["on_chain"] = "on_chain"
    payment_id: str
    address: str
    amount_sats: Optional[int] = None
    expires_at: Any = None

    @property
    def invoice(self) -> str:
        return self.address


PaymentResult = Union[LightningPaymentResult, OnChainPaymentResult]


def _positive_int(value) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value) if value > 0 else None


def parse_payment(payment: dict, method: PaymentMethod) -> PaymentResult:
    """
    Turn a raw Speed payment object into the result for the requested method.
    Raises UpstreamError when the id or the method's payment target is missing.
    """
    if not isinstance(payment, dict) or not payment.get("id"):
        raise UpstreamError("Invalid response from Speed API: missing payment id")

    options = (payment.get("payment_method_options") or {}).get(method.value) or {}
    amount_sats = _positive_int(payment.get("amount_in_satoshis")) or _positive_int(options.get("amount"))

    if method == PaymentMethod.LIGHTNING:
        payment_request = options.get("payment_request")
        if not payment_request:
            raise UpstreamError("Invalid response from Speed API: missing lightning payment request")
        return LightningPaymentResult(
            payment_id=payment["id"],
            payment_request=payment_request,
            amount_sats=amount_sats,
            expires_at=payment.get("expires_at"),
        )

    address = options.get("address")
    if not address:
        raise UpstreamError("Invalid response from Speed API: missing on-chain address")
    return OnChainPaymentResult(
        payment_id=payment["id"],
        address=address,
        amount_sats=amount_sats,
        expires_at=payment.get("expires_at"),
    )


class SpeedClient:
    """
    Client for the Speed (TrySpeed) payments API.
    One pooled httpx client per instance, every call bounded by the configured timeout.
    """

    def __init__(self, secret_key: str = None, base_url: str = None, timeout: float = None,
                 transport: httpx.AsyncBaseTransport = None):
        self.secret_key = settings.SPEED_SECRET_KEY if secret_key is None else secret_key
        self.base_url = (base_url or settings.SPEED_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _auth_header(self) -> str:
        token = base64.b64encode(f"{self.secret_key}:".encode()).decode()
        return f"Basic {token}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "Authorization": self._auth_header(),
                    "Accept": "application/json",
                    "speed-version": settings.SPEED_API_VERSION,
                },
            )
        return self._client

    async def aclose(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, json: dict = None) -> httpx.Response:
        try:
            return await self._get_client().request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.error(f"Speed API timeout on {method} {path}: {e}")
            raise UpstreamError("Speed API timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Speed API request failed on {method} {path}: {e}")
            raise UpstreamError("Speed API request failed") from e

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(f"Unexpected response from Speed API: {response.text[:200]}") from e
        if not isinstance(data, dict):
            raise UpstreamError("Unexpected response from Speed API")
        return data

    async def create_payment(self, amount_usd: Decimal, method: PaymentMethod = PaymentMethod.LIGHTNING) -> PaymentResult:
        payload = {
            "amount": float(amount_usd),
            "currency": "USD",
            "success_url": settings.PAYMENT_SUCCESS_URL,
            "cancel_url": settings.PAYMENT_CANCEL_URL,
            "payment_method": method.value,
        }
        response = await self._request("POST", "/payments", json=payload)
        if response.is_error:
            logger.error(f"Speed API create payment failed: {response.status_code} {response.text[:200]}")
            raise UpstreamError(f"Speed API returned {response.status_code}")
        return parse_payment(self._json(response), method)

    async def get_payment_status(self, payment_id: str) -> str:
        response = await self._request("GET", f"/payments/{payment_id}")
        if response.is_error:
            logger.error(f"Speed API status check for {payment_id} failed: {response.status_code}")
            raise UpstreamError(f"Speed API returned {response.status_code}")
        status = self._json(response).get("status")
        if not status:
            raise UpstreamError("Speed API response has no status")
        return str(status)

    async def decode_invoice(self, invoice: str) -> int:
        """Amount encoded in a payment request, as reported by the provider."""
        response = await self._request("POST", "/invoices/decode", json={"invoice": invoice})
        if 400 <= response.status_code < 500:
            message = "Decode failed"
            try:
                message = response.json().get("message") or message
            except (ValueError, AttributeError):
                pass
            raise ValidationError(message)
        if response.is_error:
            raise UpstreamError(f"Speed API returned {response.status_code}")
        amount = self._json(response).get("amount")
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise UpstreamError("Speed API decode response has no amount")
        return int(amount)


speed_client = SpeedClient()
