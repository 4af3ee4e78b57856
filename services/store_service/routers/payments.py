"""Hosted payment router: open checkout, reconcile the return, Moneroo webhook."""

import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.checkout import (
    CART_ROUTE,
    CHECKOUT_ROUTE,
    CheckoutInProgressError,
    GatewayInitError,
    MissingCheckoutPayloadError,
    SubmissionGuard,
    get_submission_guard,
    initialize_payment_step,
)
from services.store_service.client_state import ClientState
from services.store_service.models import OrderStatus
from services.store_service.moneroo_client import (
    MonerooClient,
    MonerooError,
    get_moneroo_client,
    verify_webhook_signature,
)
from services.store_service.notifications import WhatsAppNotifier, get_notifier
from services.store_service.orders import OrderWriteError, get_order_by_payment_id
from services.store_service.reconciliation import (
    PaymentVerificationError,
    reconcile_payment_return,
)
from services.store_service.routers._helpers import error_detail, session_id_param
from services.store_service.schemas import (
    PaymentInitResponse,
    ReconciliationResponse,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["store"])
logger = get_logger(__name__)


# ============================================================================
# PAYMENT STEP
# ============================================================================


@router.post("/initialize", response_model=PaymentInitResponse)
async def initialize_payment(
    session_id: str = Depends(session_id_param),
    gateway: MonerooClient = Depends(get_moneroo_client),
    db: AsyncSession = Depends(get_async_db),
):
    """Open a Moneroo hosted checkout for the staged payload."""
    state = await ClientState.load(db, session_id)
    try:
        result = await initialize_payment_step(state, gateway)
    except MissingCheckoutPayloadError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_detail("Aucun paiement en attente.", CART_ROUTE),
        )
    except GatewayInitError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=error_detail(e.message, CHECKOUT_ROUTE),
        )

    return PaymentInitResponse(
        checkout_url=result.session.checkout_url,
        payment_id=result.session.payment_id,
        amount=result.amount,
        currency=result.currency,
    )


@router.get("/return", response_model=ReconciliationResponse)
async def payment_return(
    session_id: str = Depends(session_id_param),
    moneroo_payment_id: Optional[str] = Query(None, alias="monerooPaymentId"),
    moneroo_payment_status: Optional[str] = Query(
        None, alias="monerooPaymentStatus"
    ),
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    guard: SubmissionGuard = Depends(get_submission_guard),
    gateway: MonerooClient = Depends(get_moneroo_client),
    notifier: WhatsAppNotifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Landing point after the hosted checkout.

    Creates the order once per staged payload. Replays return
    `nothing_to_reconcile` with a redirect to the cart.
    """
    try:
        async with guard.hold(session_id):
            state = await ClientState.load(db, session_id)
            result = await reconcile_payment_return(
                db,
                state,
                gateway,
                notifier,
                payment_id=moneroo_payment_id,
                reported_status=moneroo_payment_status,
                session_user_id=current_user.user_id if current_user else None,
            )
    except CheckoutInProgressError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=error_detail(
                "Paiement déjà en cours de validation.", CART_ROUTE
            ),
        )
    except PaymentVerificationError as e:
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail=error_detail(e.message, CART_ROUTE),
        )
    except OrderWriteError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail(
                "Erreur création commande après paiement.", CART_ROUTE
            ),
        )

    return ReconciliationResponse(
        outcome=result.outcome,
        redirect_to=result.redirect_to,
        order_id=result.order_id,
    )


# ============================================================================
# WEBHOOK
# ============================================================================


@router.post("/webhooks/moneroo")
async def moneroo_webhook(
    request: Request,
    gateway: MonerooClient = Depends(get_moneroo_client),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Moneroo webhook endpoint (no auth; verified by X-Moneroo-Signature).

    Only confirms payment on orders that already exist; orders are created
    by the return handler.
    """
    secret = get_settings().MONEROO_WEBHOOK_SECRET
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook secret not configured",
        )

    raw = await request.body()
    signature = request.headers.get("x-moneroo-signature")
    if not signature or not verify_webhook_signature(raw, signature, secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature"
        )

    try:
        payload = json.loads(raw.decode("utf-8") or "{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    event = payload.get("event")
    data = payload.get("data") or {}
    payment_id = data.get("id") or data.get("payment_id") or payload.get("payment_id")
    if event != "payment.success" or not payment_id:
        return {"received": True}

    # Always re-verify with the API before trusting the event
    try:
        verified = await gateway.verify_payment(str(payment_id))
    except MonerooError as e:
        logger.error(
            f"Webhook verification failed for {payment_id}: {e.message}",
            extra={"extra_fields": {"payment_id": payment_id, "event": event}},
        )
        return {"received": True}

    if not verified.is_paid:
        logger.warning(
            f"Webhook for {payment_id} not confirmed by verification",
            extra={
                "extra_fields": {
                    "payment_id": payment_id,
                    "verified_status": verified.status,
                }
            },
        )
        return {"received": True}

    order = await get_order_by_payment_id(db, str(payment_id))
    if not order:
        logger.info(
            f"Webhook for {payment_id} has no order yet",
            extra={"extra_fields": {"payment_id": payment_id}},
        )
        return {"received": True}

    # IDEMPOTENCY CHECK: nothing to do when the order is already marked paid
    if order.payment_status == "paid":
        return {"received": True}

    order.payment_status = "paid"
    if order.status == OrderStatus.PENDING:
        order.status = OrderStatus.PAID
    await db.commit()
    logger.info(
        f"Order {order.id} marked paid from webhook",
        extra={"extra_fields": {"order_id": str(order.id), "payment_id": payment_id}},
    )
    return {"received": True}
