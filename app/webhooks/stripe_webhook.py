import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.config import settings
from app.errors import DomainError
from app.models import get_db
from app.services import order_lifecycle, stripe_service
from app.services.recharge_service import CreditingService, get_crediting_service

router = APIRouter()
logger = logging.getLogger(__name__)

SETTLEMENT_EVENTS = {"checkout.session.completed", "checkout.session.async_payment_succeeded"}


@router.post(
    "/stripe",
    summary="Stripe webhook",
)
async def stripe_webhook(
    request: Request,
    db: Session = Depends(get_db),
    crediting: CreditingService = Depends(get_crediting_service),
):
    """
    Stripe sends events here. On a paid Checkout Session the order named in
    metadata.order_no is settled through the same path as /api/payments/complete,
    so a webhook racing the client's completion call credits the order once.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature", "")

    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.warning("STRIPE_WEBHOOK_SECRET is not set, skipping webhook processing")
        return {"received": True}

    try:
        event = stripe.Webhook.construct_event(
            payload, sig_header, settings.STRIPE_WEBHOOK_SECRET
        )
    except ValueError as e:
        logger.error("Invalid payload: %s", e)
        raise HTTPException(status_code=400, detail="Invalid payload")
    except stripe.SignatureVerificationError as e:
        logger.error("Invalid signature: %s", e)
        raise HTTPException(status_code=400, detail="Invalid signature")

    if event["type"] not in SETTLEMENT_EVENTS:
        return {"received": True}

    session = event["data"]["object"]
    order_no = stripe_service.session_order_no(session)
    if not order_no:
        logger.warning("No order_no in session metadata")
        return {"received": True}

    order = order_lifecycle.find_order(db, order_no)
    if not order:
        logger.warning("Order %s not found", order_no)
        return {"received": True}

    verification = stripe_service.verification_from_session(session)
    if not verification.verified:
        logger.info("Stripe session for order %s not verified: %s", order_no, verification.error)
        return {"received": True}

    try:
        order_lifecycle.settle_order(db, order, verification, "stripe", crediting)
    except DomainError as exc:
        logger.info("Stripe webhook for order %s not applied: %s", order_no, exc.message)
    except Exception as e:
        logger.error("Error settling order %s: %s", order_no, e, exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Internal server error")

    return {"received": True}
