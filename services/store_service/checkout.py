"""Checkout orchestration.

Validate -> either write the order now (cash on delivery) or stage a
CheckoutPayload in session storage and hand off to the hosted payment page.
"""

import re
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from libs.common.config import get_settings
from libs.common.currency import CURRENCY_CODE
from libs.common.logging import get_logger
from pydantic import ValidationError
from services.store_service.catalog import existing_variant_ids
from services.store_service.client_state import ClientState
from services.store_service.models import Country, DeliveryMode, Order, PaymentMethod
from services.store_service.moneroo_client import (
    MonerooClient,
    MonerooError,
    PaymentCustomer,
    PaymentSession,
)
from services.store_service.notifications import NotificationResult, WhatsAppNotifier
from services.store_service.orders import OrderDraft, create_order_with_items
from services.store_service.pricing import compute_delivery_fee, compute_grand_total
from services.store_service.schemas import (
    CartLine,
    CheckoutForm,
    CheckoutPayload,
    CheckoutPayloadItem,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CHECKOUT_PAYLOAD_KEY = "checkout_payload_v1"

# Front-end routes returned as redirect_to
CONFIRMATION_ROUTE = "/order-confirmation"
CART_ROUTE = "/cart"
CHECKOUT_ROUTE = "/checkout"
PAYMENT_ROUTE = "/payment"
PAYMENT_RETURN_PATH = "/payment/return"

PHONE_CODES = {Country.TOGO: "+228", Country.BENIN: "+229"}


# ============================================================================
# ERRORS
# ============================================================================


class CheckoutValidationError(Exception):
    """Form or cart is not submittable; nothing was written."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class CheckoutInProgressError(Exception):
    """Another submission for the same shopper session is still running."""


class MissingCheckoutPayloadError(Exception):
    """No staged payload to pay for (expired, already used, or never staged)."""


class GatewayInitError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ============================================================================
# HELPERS
# ============================================================================


def normalize_phone(country: Country, raw_phone: str) -> str:
    """Digits only, prefixed with the country dial code exactly once."""
    code = PHONE_CODES.get(Country(country), "")
    digits = re.sub(r"\D", "", raw_phone or "")
    code_digits = code.lstrip("+")
    if code_digits and digits.startswith(code_digits):
        digits = digits[len(code_digits):]
    return f"{code}{digits}"


def validate_checkout(
    form: CheckoutForm,
    delivery_mode: DeliveryMode,
    lines: Sequence[CartLine],
    known_variant_ids: Iterable,
) -> None:
    if not lines:
        raise CheckoutValidationError("Votre panier est vide.", field="items")
    if not form.full_name.strip():
        raise CheckoutValidationError("Veuillez indiquer votre nom.", field="full_name")
    if not form.phone.strip():
        raise CheckoutValidationError(
            "Veuillez indiquer votre téléphone.", field="phone"
        )
    if delivery_mode == DeliveryMode.DELIVERY:
        for field_name in ("region", "city", "address"):
            if not getattr(form, field_name).strip():
                raise CheckoutValidationError(
                    "Veuillez compléter l'adresse de livraison.", field=field_name
                )

    known = set(known_variant_ids)
    if any(line.variant.id not in known for line in lines):
        raise CheckoutValidationError(
            "Erreur: une variante est manquante. Revenez au panier et réessayez.",
            field="items",
        )


def payload_items(lines: Sequence[CartLine]) -> list[CheckoutPayloadItem]:
    return [
        CheckoutPayloadItem(
            product_id=line.product.id,
            variant_id=line.variant.id,
            color=line.variant.color,
            length=line.variant.length,
            quantity=line.quantity,
            unit_price=line.variant.price,
        )
        for line in lines
    ]


def read_staged_payload(state: ClientState) -> Optional[CheckoutPayload]:
    raw = state.session.get_item(CHECKOUT_PAYLOAD_KEY)
    if not raw:
        return None
    try:
        return CheckoutPayload.model_validate_json(raw)
    except ValidationError:
        logger.debug("Discarding unreadable staged checkout payload")
        return None


async def send_order_notification(
    notifier: WhatsAppNotifier,
    order: Order,
    items: Sequence[CheckoutPayloadItem],
) -> NotificationResult:
    """Fire the order alert; its result is not part of the checkout outcome.

    The order is already committed here, so any notifier error is logged and
    reported in the result instead of propagating.
    """
    try:
        return await notifier.notify_new_order(
            order_id=str(order.id),
            customer_name=order.full_name,
            customer_phone=order.phone,
            total=order.total,
            items=items,
        )
    except Exception as e:
        logger.error(
            f"Order alert failed: {e}",
            exc_info=True,
            extra={"extra_fields": {"order_id": str(order.id)}},
        )
        return NotificationResult(error=str(e))


class SubmissionGuard:
    """Rejects a second in-flight submission for the same shopper session."""

    def __init__(self):
        self._active: set[str] = set()

    @asynccontextmanager
    async def hold(self, session_id: str):
        if session_id in self._active:
            raise CheckoutInProgressError(session_id)
        self._active.add(session_id)
        try:
            yield
        finally:
            self._active.discard(session_id)

    def is_active(self, session_id: str) -> bool:
        return session_id in self._active


submission_guard = SubmissionGuard()


def get_submission_guard() -> SubmissionGuard:
    return submission_guard


# ============================================================================
# CHECKOUT
# ============================================================================


@dataclass
class CheckoutResult:
    outcome: str  # "order_created" | "payment_required"
    redirect_to: str
    total: int
    order_id: Optional[uuid.UUID] = None


async def submit_checkout(
    db: AsyncSession,
    state: ClientState,
    form: CheckoutForm,
    payment_method: PaymentMethod,
    user_id: Optional[str],
    notifier: WhatsAppNotifier,
) -> CheckoutResult:
    """Validate the cart + form, then take the cash or the gateway path.

    Raises CheckoutValidationError before any write. On OrderWriteError the
    cart is left untouched.
    """
    cart = state.cart()
    try:
        known = await existing_variant_ids(db, [line.variant.id for line in cart.lines])
        validate_checkout(form, cart.delivery_mode, cart.lines, known)

        items = payload_items(cart.lines)
        delivery_mode = cart.delivery_mode
        total_price = cart.total_price
        grand_total = compute_grand_total(delivery_mode, total_price)

        if not payment_method.uses_gateway:
            draft = OrderDraft(
                user_id=user_id,
                form=form,
                phone=normalize_phone(form.country, form.phone),
                payment_method=payment_method,
                delivery_mode=delivery_mode,
                delivery_fee=compute_delivery_fee(delivery_mode, total_price),
                total=grand_total,
            )
            order = await create_order_with_items(db, draft, items)
            await send_order_notification(notifier, order, items)

            result = CheckoutResult(
                outcome="order_created",
                redirect_to=CONFIRMATION_ROUTE,
                total=grand_total,
                order_id=order.id,
            )
            cart.clear_cart()
            await state.flush(db)
            return result

        payload = CheckoutPayload(
            user_id=user_id,
            form_data=form,
            payment_method=payment_method,
            delivery_mode=delivery_mode,
            items=items,
            total_price=total_price,
        )
        state.session.set_item(CHECKOUT_PAYLOAD_KEY, payload.model_dump_json())
        await state.flush(db)
        logger.info(
            "Checkout payload staged for hosted payment",
            extra={
                "extra_fields": {
                    "session_id": state.session_id,
                    "payment_method": payment_method.value,
                    "grand_total": grand_total,
                }
            },
        )
        return CheckoutResult(
            outcome="payment_required", redirect_to=PAYMENT_ROUTE, total=grand_total
        )
    finally:
        cart.dispose()


# ============================================================================
# PAYMENT STEP
# ============================================================================


@dataclass
class PaymentInitResult:
    session: PaymentSession
    amount: int
    currency: str


def split_customer_name(full_name: str) -> tuple[str, str]:
    parts = full_name.strip().split()
    first_name = parts[0] if parts else "Client"
    last_name = " ".join(parts[1:]) or " "
    return first_name, last_name


async def initialize_payment_step(
    state: ClientState, gateway: MonerooClient
) -> PaymentInitResult:
    """Open a hosted checkout for the staged payload.

    Raises MissingCheckoutPayloadError when nothing is staged and
    GatewayInitError when Moneroo refuses or is unreachable.
    """
    settings = get_settings()
    payload = read_staged_payload(state)
    if payload is None:
        raise MissingCheckoutPayloadError(state.session_id)

    amount = compute_grand_total(payload.delivery_mode, payload.total_price)
    form = payload.form_data
    first_name, last_name = split_customer_name(form.full_name)
    customer = PaymentCustomer(
        email=str(form.email) if form.email else settings.STORE_CONTACT_EMAIL,
        first_name=first_name,
        last_name=last_name,
        phone=normalize_phone(form.country, form.phone) if form.phone else None,
    )

    try:
        session = await gateway.initialize_payment(
            amount=amount,
            currency=CURRENCY_CODE,
            return_url=settings.FRONTEND_URL.rstrip("/") + PAYMENT_RETURN_PATH,
            customer=customer,
            description=f"Commande {settings.STORE_NAME}",
            metadata={"source": "belleawigs", "session_id": state.session_id},
        )
    except MonerooError as e:
        logger.error(
            f"Payment initialization failed: {e.message}",
            extra={
                "extra_fields": {
                    "session_id": state.session_id,
                    "status_code": e.status_code,
                }
            },
        )
        raise GatewayInitError("Erreur paiement. Réessaie.") from e

    logger.info(
        "Hosted checkout opened",
        extra={
            "extra_fields": {
                "session_id": state.session_id,
                "payment_id": session.payment_id,
                "amount": amount,
            }
        },
    )
    return PaymentInitResult(session=session, amount=amount, currency=CURRENCY_CODE)
