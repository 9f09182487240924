from fastapi import APIRouter, Depends, Header

from limo_booking.core.dependencies import get_raw_body, get_reconciler
from limo_booking.schemas.payment import (
    CheckoutOut,
    CheckoutRequest,
    ConfirmOut,
    ConfirmRequest,
    ReceiptOut,
    WebhookOut,
)
from limo_booking.services.payments import PaymentReconciler

router = APIRouter(prefix="/payments", tags=["Payments"])


# =====================================================================
# CHECKOUT SESSION
# =====================================================================
@router.post("/checkout-session", response_model=CheckoutOut)
def create_checkout_session(data: CheckoutRequest, reconciler: PaymentReconciler = Depends(get_reconciler)):
    result = reconciler.create_checkout_session(data.booking_id)
    return CheckoutOut(
        booking_id=result.booking_id,
        session_id=result.session_id,
        url=result.redirect_url,
        amount=result.amount,
        currency=reconciler.currency,
        expires_at=result.expires_at,
    )


# =====================================================================
# GATEWAY WEBHOOK
# =====================================================================
@router.post("/webhook", response_model=WebhookOut)
def webhook(
    payload: bytes = Depends(get_raw_body),
    stripe_signature: str | None = Header(default=None),
    reconciler: PaymentReconciler = Depends(get_reconciler),
):
    return WebhookOut(result=reconciler.handle_webhook(payload, stripe_signature))


# =====================================================================
# FALLBACK CONFIRMATION (return page)
# =====================================================================
@router.post("/confirm", response_model=ConfirmOut)
def confirm_payment(data: ConfirmRequest, reconciler: PaymentReconciler = Depends(get_reconciler)):
    result = reconciler.confirm_fallback(booking_id=data.booking_id, session_id=data.session_id)
    booking = result.booking
    return ConfirmOut(
        status=result.status,
        booking_id=booking.id if booking else None,
        booking_status=booking.status if booking else None,
        payment_status=booking.payment_status if booking else None,
    )


# =====================================================================
# RECEIPT
# =====================================================================
@router.get("/receipt/{booking_id}", response_model=ReceiptOut)
def receipt(booking_id: int, reconciler: PaymentReconciler = Depends(get_reconciler)):
    return reconciler.build_receipt(booking_id)
