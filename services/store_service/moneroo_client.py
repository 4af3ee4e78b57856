"""
Moneroo API client for the hosted checkout.

Provides async methods for:
- Initializing a payment and getting the hosted checkout URL
- Verifying a payment by id
- Checking webhook signatures
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx
from libs.common.config import get_settings

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = frozenset({"success", "paid", "completed"})


@dataclass
class PaymentCustomer:
    """Customer block sent with a payment initialization."""

    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
        }
        if self.phone:
            data["phone"] = self.phone
        return data


@dataclass
class PaymentSession:
    """Result of initializing a hosted checkout."""

    checkout_url: str
    payment_id: Optional[str]


@dataclass
class VerifiedPayment:
    """Server-side verification result."""

    status: str
    success: bool
    raw: dict = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.success and self.status.lower() in SUCCESS_STATUSES

    @property
    def amount(self) -> Optional[int]:
        """Charged amount in XOF, when Moneroo reports one."""
        value = (self.raw.get("data") or {}).get("amount")
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None


class MonerooError(Exception):
    """Base exception for Moneroo API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


class MonerooClient:
    """Async client for the Moneroo payments API."""

    def __init__(
        self,
        secret_key: str = None,
        base_url: str = None,
        transport: httpx.AsyncBaseTransport = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.MONEROO_SECRET_KEY
        if not self.secret_key:
            raise ValueError("MONEROO_SECRET_KEY is required")
        self.base_url = (base_url or settings.MONEROO_API_BASE_URL).rstrip("/")
        self._transport = transport
        self._headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict = None,
    ) -> dict:
        """Make an async request to the Moneroo API."""
        url = f"{self.base_url}{endpoint}"

        try:
            async with httpx.AsyncClient(
                timeout=30.0, transport=self._transport
            ) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._headers,
                    json=json_data,
                )
        except httpx.HTTPError as e:
            logger.error(f"Moneroo request failed: {e}")
            raise MonerooError(message=f"Moneroo unreachable: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}

        if not response.is_success:
            logger.error(f"Moneroo API error: {response.status_code} - {data}")
            raise MonerooError(
                message=data.get("message", "Unknown Moneroo error"),
                status_code=response.status_code,
                response_data=data,
            )

        return data

    # =========================================================================
    # Payment Methods
    # =========================================================================

    async def initialize_payment(
        self,
        amount: int,
        currency: str,
        return_url: str,
        customer: PaymentCustomer,
        description: str,
        metadata: dict = None,
    ) -> PaymentSession:
        """
        Create a hosted checkout session.

        Args:
            amount: Whole XOF amount (Moneroo expects an integer)
            currency: ISO code, "XOF" for Togo/Benin
            return_url: Where Moneroo sends the browser back; it appends
                monerooPaymentId and monerooPaymentStatus
            customer: Buyer identity
            description: Shown on the hosted page
            metadata: Free-form string map echoed back in webhooks

        Returns:
            PaymentSession with the URL to redirect the buyer to

        Raises:
            MonerooError: On transport failure, non-2xx, or a missing URL
        """
        data = await self._request(
            "POST",
            "/payments/initialize",
            json_data={
                "amount": int(amount),
                "currency": currency,
                "description": description,
                "return_url": return_url,
                "customer": customer.to_dict(),
                "metadata": metadata or {},
            },
        )

        payment = data.get("data") or {}
        checkout_url = payment.get("checkout_url") or payment.get("payment_url")
        if not checkout_url:
            raise MonerooError(
                message="Missing checkout_url in Moneroo response",
                response_data=data,
            )

        return PaymentSession(
            checkout_url=checkout_url,
            payment_id=payment.get("id") or payment.get("payment_id"),
        )

    async def verify_payment(self, payment_id: str) -> VerifiedPayment:
        """
        Fetch the authoritative status of a payment.

        Args:
            payment_id: Reference Moneroo appended to the return URL

        Returns:
            VerifiedPayment; check `is_paid` before trusting it
        """
        data = await self._request("GET", f"/payments/{payment_id}/verify")

        payment = data.get("data") or {}
        return VerifiedPayment(
            status=str(payment.get("status") or ""),
            success=data.get("success") is True,
            raw=data,
        )


def verify_webhook_signature(raw_body: bytes, signature: str, secret: str) -> bool:
    """X-Moneroo-Signature is the hex HMAC-SHA256 of the raw body."""
    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def get_moneroo_client() -> MonerooClient:
    """Get a MonerooClient instance."""
    return MonerooClient()
