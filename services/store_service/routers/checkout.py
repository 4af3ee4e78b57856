"""Store checkout router: cash orders and hosted-payment staging."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.checkout import (
    CHECKOUT_ROUTE,
    CheckoutInProgressError,
    CheckoutValidationError,
    SubmissionGuard,
    get_submission_guard,
    submit_checkout,
)
from services.store_service.client_state import ClientState
from services.store_service.notifications import WhatsAppNotifier, get_notifier
from services.store_service.orders import OrderWriteError
from services.store_service.routers._helpers import error_detail, session_id_param
from services.store_service.schemas import CheckoutRequest, CheckoutResponse
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    request: CheckoutRequest,
    session_id: str = Depends(session_id_param),
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    guard: SubmissionGuard = Depends(get_submission_guard),
    notifier: WhatsAppNotifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_async_db),
):
    """Submit the cart.

    Cash orders are written immediately and the cart is emptied; mobile and
    card payments are staged and the buyer is sent to the payment step.
    """
    try:
        async with guard.hold(session_id):
            state = await ClientState.load(db, session_id)
            result = await submit_checkout(
                db,
                state,
                request.form,
                request.payment_method,
                user_id=current_user.user_id if current_user else None,
                notifier=notifier,
            )
    except CheckoutInProgressError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=error_detail(
                "Une commande est déjà en cours de traitement.", CHECKOUT_ROUTE
            ),
        )
    except CheckoutValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=error_detail(e.message, CHECKOUT_ROUTE, field=e.field),
        )
    except OrderWriteError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail(e.message, CHECKOUT_ROUTE),
        )

    return CheckoutResponse(
        outcome=result.outcome,
        redirect_to=result.redirect_to,
        order_id=result.order_id,
        total=result.total,
    )
