"""Turn a verified hosted payment into exactly one order.

The staged CheckoutPayload is the one-shot token: it is deleted in the same
transaction that stores the order, so a replayed return (refresh, back
button, double redirect) finds nothing to reconcile and goes back to the
cart. On any failure the payload stays so the buyer can retry.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from libs.common.logging import get_logger
from services.store_service.checkout import (
    CART_ROUTE,
    CHECKOUT_PAYLOAD_KEY,
    CONFIRMATION_ROUTE,
    normalize_phone,
    read_staged_payload,
    send_order_notification,
)
from services.store_service.client_state import ClientState
from services.store_service.models import OrderStatus
from services.store_service.moneroo_client import MonerooClient, MonerooError
from services.store_service.notifications import WhatsAppNotifier
from services.store_service.orders import (
    OrderDraft,
    create_order_with_items,
    get_order_by_payment_id,
)
from services.store_service.pricing import compute_delivery_fee, compute_grand_total
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

PAYMENT_PROVIDER = "moneroo"


class PaymentVerificationError(Exception):
    """Gateway could not confirm the payment; nothing was written."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


@dataclass
class ReconciliationResult:
    outcome: str  # "order_created" | "nothing_to_reconcile"
    redirect_to: str
    order_id: Optional[uuid.UUID] = None


async def reconcile_payment_return(
    db: AsyncSession,
    state: ClientState,
    gateway: MonerooClient,
    notifier: WhatsAppNotifier,
    payment_id: Optional[str],
    reported_status: Optional[str] = None,
    session_user_id: Optional[str] = None,
) -> ReconciliationResult:
    """Resume the checkout staged before the hosted payment redirect.

    `reported_status` comes from the return URL and is only logged; the
    verified status from Moneroo is the one trusted.
    """
    payload = read_staged_payload(state)
    if payload is None or not payment_id:
        logger.info(
            "Payment return with nothing to reconcile",
            extra={
                "extra_fields": {
                    "session_id": state.session_id,
                    "payment_id": payment_id,
                    "has_payload": payload is not None,
                }
            },
        )
        return ReconciliationResult(
            outcome="nothing_to_reconcile", redirect_to=CART_ROUTE
        )

    # One order per external payment; the staged payload is left for its own payment
    existing = await get_order_by_payment_id(db, payment_id)
    if existing is not None:
        logger.warning(
            f"Payment {payment_id} already reconciled as order {existing.id}",
            extra={
                "extra_fields": {
                    "session_id": state.session_id,
                    "payment_id": payment_id,
                    "order_id": str(existing.id),
                }
            },
        )
        return ReconciliationResult(
            outcome="nothing_to_reconcile", redirect_to=CART_ROUTE
        )

    try:
        verified = await gateway.verify_payment(payment_id)
    except MonerooError as e:
        logger.error(
            f"Payment verification failed: {e.message}",
            extra={"extra_fields": {"payment_id": payment_id}},
        )
        raise PaymentVerificationError(
            "Paiement non vérifié. Merci de réessayer."
        ) from e

    if not verified.is_paid:
        logger.warning(
            f"Payment {payment_id} not validated",
            extra={
                "extra_fields": {
                    "payment_id": payment_id,
                    "verified_status": verified.status,
                    "verified_success": verified.success,
                    "reported_status": reported_status,
                }
            },
        )
        raise PaymentVerificationError("Paiement non validé.")

    # Totals are recomputed, never taken from the staged grand total
    delivery_fee = compute_delivery_fee(payload.delivery_mode, payload.total_price)
    grand_total = compute_grand_total(payload.delivery_mode, payload.total_price)
    if verified.amount is not None and verified.amount != grand_total:
        logger.warning(
            f"Payment {payment_id} amount does not match the staged checkout",
            extra={
                "extra_fields": {
                    "payment_id": payment_id,
                    "verified_amount": verified.amount,
                    "grand_total": grand_total,
                }
            },
        )
        raise PaymentVerificationError("Montant du paiement incorrect.")

    form = payload.form_data
    draft = OrderDraft(
        user_id=payload.user_id or session_user_id,
        form=form,
        phone=normalize_phone(form.country, form.phone),
        payment_method=payload.payment_method,
        delivery_mode=payload.delivery_mode,
        delivery_fee=delivery_fee,
        total=grand_total,
        status=OrderStatus.PAID,
        payment_provider=PAYMENT_PROVIDER,
        payment_id=payment_id,
        payment_status="paid",
    )

    # Payload removal is committed together with the order
    state.session.remove_item(CHECKOUT_PAYLOAD_KEY)
    await state.flush(db, commit=False)
    order = await create_order_with_items(db, draft, payload.items)

    await send_order_notification(notifier, order, payload.items)

    result = ReconciliationResult(
        outcome="order_created", redirect_to=CONFIRMATION_ROUTE, order_id=order.id
    )
    cart = state.cart()
    cart.clear_cart()
    cart.dispose()
    await state.flush(db)
    return result
