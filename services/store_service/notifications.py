"""WhatsApp order alerts through the Twilio Messages API.

Alerts are best-effort: `notify_new_order` never raises. It returns a
NotificationResult that checkout callers intentionally discard.
"""

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import httpx
from libs.common.config import get_settings
from libs.common.currency import format_fcfa
from libs.common.logging import get_logger

logger = get_logger(__name__)

TWILIO_API_BASE_URL = "https://api.twilio.com/2010-04-01"


class OrderLine(Protocol):
    product_id: object
    color: Optional[str]
    length: Optional[float]
    quantity: int
    unit_price: int


@dataclass
class NotificationResult:
    admin_sent: bool = False
    client_sent: bool = False
    error: Optional[str] = None


class TwilioError(Exception):
    def __init__(self, message: str, status_code: int = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


# ============================================================================
# MESSAGE FORMATTING
# ============================================================================


def to_whatsapp_number(raw: Optional[str]) -> str:
    phone = (raw or "").strip()
    if not phone:
        return ""
    if phone.lower().startswith("whatsapp:"):
        return phone
    if phone.startswith("+"):
        return f"whatsapp:{phone}"
    return f"whatsapp:+{phone.lstrip('+')}"


def format_item_line(item: OrderLine) -> str:
    quantity = max(1, int(item.quantity or 1))
    unit_price = int(item.unit_price or 0)
    variant = ""
    if item.color or item.length is not None:
        length = f' - {float(item.length):g}"' if item.length is not None else ""
        variant = f" ({item.color or '?'}{length})"
    price = (
        f" — {format_fcfa(unit_price)} x{quantity}" if unit_price > 0 else f" x{quantity}"
    )
    return f"• Produit #{item.product_id or '?'}{variant}{price}"


def build_admin_message(
    order_id: str,
    customer_name: str,
    customer_phone: str,
    total: int,
    items: Sequence[OrderLine],
) -> str:
    lines = [format_item_line(item) for item in items]
    details = "\n".join(lines) if lines else "— Aucun item trouvé"
    return (
        f"🛒 Nouvelle commande #{order_id}\n"
        f"Nom: {customer_name or '-'}\n"
        f"Téléphone client: {customer_phone or '-'}\n"
        f"Total: {format_fcfa(total)}\n\n"
        f"📦 Détails:\n{details}"
    )


def build_client_message(
    order_id: str, customer_name: str, total: int, store_name: str
) -> str:
    name = (customer_name or "").strip() or "Bonjour"
    return (
        f"Bonjour {name} 👋\n\n"
        f"Votre commande *#{order_id}* a bien été reçue ✅\n"
        f"💰 Total : *{format_fcfa(total)}*\n\n"
        "Nous vous contacterons très bientôt.\n"
        "Merci pour votre confiance 💖\n\n"
        f"— {store_name}"
    )


# ============================================================================
# SENDER
# ============================================================================


class WhatsAppNotifier:
    def __init__(
        self,
        account_sid: str = None,
        auth_token: str = None,
        from_number: str = None,
        admin_to: str = None,
        transport: httpx.AsyncBaseTransport = None,
    ):
        settings = get_settings()
        self.account_sid = account_sid or settings.TWILIO_ACCOUNT_SID
        self.auth_token = auth_token or settings.TWILIO_AUTH_TOKEN
        self.from_number = from_number or settings.TWILIO_WHATSAPP_FROM
        self.admin_to = admin_to or settings.ADMIN_WHATSAPP_TO
        self.store_name = settings.STORE_NAME
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.admin_to)

    async def send(self, to: str, body: str) -> None:
        url = f"{TWILIO_API_BASE_URL}/Accounts/{self.account_sid}/Messages.json"
        async with httpx.AsyncClient(timeout=15.0, transport=self._transport) as client:
            response = await client.post(
                url,
                data={"From": self.from_number, "To": to, "Body": body},
                auth=(self.account_sid, self.auth_token),
            )
        if not response.is_success:
            raise TwilioError(
                f"Twilio error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

    async def notify_new_order(
        self,
        order_id: str,
        customer_name: str,
        customer_phone: str,
        total: int,
        items: Sequence[OrderLine] = (),
    ) -> NotificationResult:
        """Alert the shop (detailed) and the customer (short). Never raises."""
        result = NotificationResult()
        if not self.configured:
            logger.warning(
                "WhatsApp notifier not configured; skipping order alert",
                extra={"extra_fields": {"order_id": str(order_id)}},
            )
            result.error = "not configured"
            return result

        try:
            await self.send(
                to_whatsapp_number(self.admin_to),
                build_admin_message(
                    str(order_id), customer_name, customer_phone, total, items
                ),
            )
            result.admin_sent = True
        except (httpx.HTTPError, TwilioError) as e:
            logger.error(
                f"Admin WhatsApp alert failed: {e}",
                extra={"extra_fields": {"order_id": str(order_id)}},
            )
            result.error = str(e)
            return result

        client_to = to_whatsapp_number(customer_phone)
        if client_to:
            try:
                await self.send(
                    client_to,
                    build_client_message(
                        str(order_id), customer_name, total, self.store_name
                    ),
                )
                result.client_sent = True
            except (httpx.HTTPError, TwilioError) as e:
                logger.warning(
                    f"Client WhatsApp message failed: {e}",
                    extra={"extra_fields": {"order_id": str(order_id)}},
                )
                result.error = str(e)

        return result


def get_notifier() -> WhatsAppNotifier:
    """Get a WhatsAppNotifier instance."""
    return WhatsAppNotifier()
