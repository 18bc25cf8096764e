"""Purchase order lifecycle: pending order -> provider verification -> credited.

An order leaves ``pending`` exactly once. The transition is a conditional
UPDATE on ``status`` together with an insert into ``payment_confirmations``
(unique on the provider confirmation id), both in the transaction that wraps
the call to the crediting service. A concurrent settlement of the same order
either blocks on the row lock and then matches zero rows, or fails on the
unique confirmation id; in both cases it never reaches the crediting service.
"""

import dataclasses
import logging
import secrets
import time
from decimal import Decimal
from typing import Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import DomainError, InternalError, InvalidState, NotFound, PaymentFailed
from app.models import Order, OrderStatus, PaymentConfirmation, User
from app.schemas.payments import GoldCoinPayload, ProductType, TranslatePayload, VipPayload
from app.services.recharge_service import CreditAck, CreditingService
from app.services.time_utils import db_datetime, utcnow
from app.services.verification import PaymentVerification, amounts_match

logger = logging.getLogger(__name__)

# (confirmation id, expected amount, order number) -> verification
Verifier = Callable[[str, Decimal, str], PaymentVerification]

# vip and svip orders share storage and lookups
PRODUCT_FAMILIES: dict[ProductType, tuple[ProductType, ...]] = {
    ProductType.VIP: (ProductType.VIP, ProductType.SVIP),
    ProductType.SVIP: (ProductType.VIP, ProductType.SVIP),
    ProductType.GOLD_COIN: (ProductType.GOLD_COIN,),
    ProductType.TRANSLATE: (ProductType.TRANSLATE,),
}


def generate_order_no() -> str:
    """Millisecond timestamp plus a 3-digit random suffix. Probabilistically unique only."""
    return f"{int(time.time() * 1000)}{secrets.randbelow(1000):03d}"


def payload_columns(payload: VipPayload | GoldCoinPayload | TranslatePayload) -> dict:
    if isinstance(payload, VipPayload):
        return {"vip_level": payload.vip_level, "month": payload.month}
    if isinstance(payload, GoldCoinPayload):
        return {"gold_coin": payload.gold_coin, "give_gold_coin": payload.give_gold_coin}
    return {"character_num": payload.character}


def order_payload(order: Order) -> VipPayload | GoldCoinPayload | TranslatePayload:
    product_type = ProductType(order.product_type)
    if product_type in (ProductType.VIP, ProductType.SVIP):
        return VipPayload(vip_level=order.vip_level, month=order.month)
    if product_type == ProductType.GOLD_COIN:
        return GoldCoinPayload(gold_coin=order.gold_coin, give_gold_coin=order.give_gold_coin or 0)
    return TranslatePayload(character=order.character_num)


def describe_product(product_type: ProductType, payload: VipPayload | GoldCoinPayload | TranslatePayload) -> str:
    if isinstance(payload, VipPayload):
        tier = "SVIP" if product_type == ProductType.SVIP else "VIP"
        return f"{tier} level {payload.vip_level}, {payload.month} month(s)"
    if isinstance(payload, GoldCoinPayload):
        bonus = f" (+{payload.give_gold_coin} bonus)" if payload.give_gold_coin else ""
        return f"{payload.gold_coin} gold coins{bonus}"
    return f"{payload.character} translation characters"


def create_order(
    db: Session,
    buyer: User,
    product_type: ProductType,
    payload: VipPayload | GoldCoinPayload | TranslatePayload,
    amount: Decimal,
    payment_method: str,
    recipient: User | None = None,
) -> Order:
    """Insert one pending order. Nothing is persisted when the insert fails."""
    recipient = recipient or buyer
    order = Order(
        order_no=generate_order_no(),
        product_type=product_type.value,
        buyer_user_id=buyer.id,
        buyer_display_name=buyer.display_name,
        recipient_user_id=recipient.id,
        amount=amount,
        payment_method=payment_method,
        status=OrderStatus.PENDING,
        **payload_columns(payload),
    )
    try:
        db.add(order)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create %s order for user %s", product_type.value, buyer.id)
        raise InternalError("Failed to create order")
    db.refresh(order)
    logger.info(
        "Created %s order %s for user %s (amount=%s, method=%s)",
        product_type.value,
        order.order_no,
        buyer.id,
        order.amount,
        payment_method,
    )
    return order


def find_order(
    db: Session,
    order_no: str,
    product_type: ProductType | None = None,
    buyer_id: int | None = None,
) -> Order | None:
    query = db.query(Order).filter(Order.order_no == order_no)
    if product_type is not None:
        query = query.filter(Order.product_type.in_([p.value for p in PRODUCT_FAMILIES[product_type]]))
    if buyer_id is not None:
        query = query.filter(Order.buyer_user_id == buyer_id)
    return query.first()


def get_order(
    db: Session,
    order_no: str,
    product_type: ProductType | None = None,
    buyer_id: int | None = None,
) -> Order:
    order = find_order(db, order_no, product_type, buyer_id)
    if not order:
        raise NotFound("Order not found")
    return order


def list_orders(db: Session, buyer_id: int) -> list[Order]:
    return (
        db.query(Order)
        .filter(Order.buyer_user_id == buyer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def cancel_order(db: Session, order: Order) -> bool:
    """Cancel a still-pending order, e.g. when its checkout could not be opened."""
    order_no = order.order_no
    updated = (
        db.query(Order)
        .filter(Order.id == order.id, Order.status == OrderStatus.PENDING)
        .update({Order.status: OrderStatus.CANCELLED}, synchronize_session=False)
    )
    db.commit()
    if updated == 1:
        logger.info("Order %s cancelled", order_no)
    return updated == 1


def claim_order(db: Session, order: Order, verification: PaymentVerification, payment_method: str) -> None:
    """Move a pending order to paid and record its confirmation id. Does not commit."""
    order_id = order.id
    db_now = db_datetime(db, utcnow())
    updated = (
        db.query(Order)
        .filter(Order.id == order_id, Order.status == OrderStatus.PENDING)
        .update(
            {
                Order.status: OrderStatus.PAID,
                Order.pay_time: db_now,
                Order.external_payment_id: verification.confirmation_id,
            },
            synchronize_session=False,
        )
    )
    if updated != 1:
        db.rollback()
        raise InvalidState("Order status is not pending")

    db.add(
        PaymentConfirmation(
            confirmation_id=verification.confirmation_id,
            order_id=order_id,
            payment_method=payment_method,
            amount=verification.amount,
        )
    )
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise InvalidState("Payment already processed")


def settle_order(
    db: Session,
    order: Order,
    verification: PaymentVerification,
    payment_method: str,
    crediting: CreditingService,
) -> CreditAck:
    """Claim a verified order and hand it to the crediting service in one transaction."""
    if order.status != OrderStatus.PENDING:
        raise InvalidState("Order status is not pending")
    if order.payment_method != payment_method:
        raise InvalidState(f"Order was created for {order.payment_method} payment")
    if not amounts_match(verification.amount, order.amount):
        logger.warning(
            "Amount mismatch for order %s: expected=%s, received=%s",
            order.order_no,
            order.amount,
            verification.amount,
        )
        raise PaymentFailed("Paid amount does not match order amount")

    order_no = order.order_no
    payload = order_payload(order)
    claim_order(db, order, verification, payment_method)
    try:
        ack = crediting.credit(order_no, payload, verification.amount, verification.confirmation_id)
    except Exception:
        db.rollback()
        raise
    db.commit()
    logger.info(
        "Order %s settled via %s (confirmation=%s, amount=%s)",
        order_no,
        payment_method,
        verification.confirmation_id,
        verification.amount,
    )
    return ack


def complete_payment(
    db: Session,
    buyer: User,
    order_no: str,
    confirmation_id: str,
    product_type: ProductType,
    expected_amount: Decimal,
    payment_method: str,
    verifier: Verifier,
    crediting: CreditingService,
) -> PaymentVerification:
    """Verify a provider confirmation and settle the matching pending order.

    Errors are logged and re-raised as-is so callers can tell provider
    rejections from storage or crediting failures.
    """
    try:
        verification = verifier(confirmation_id, expected_amount, order_no)
        if not verification.verified:
            raise PaymentFailed(verification.error or "Payment verification failed")
        if verification.amount is None:
            verification = dataclasses.replace(verification, amount=expected_amount)

        order = get_order(db, order_no, product_type, buyer_id=buyer.id)
        settle_order(db, order, verification, payment_method, crediting)
        return verification
    except DomainError as exc:
        logger.warning("Payment completion for order %s rejected: %s", order_no, exc.message)
        raise
    except Exception:
        logger.exception("Payment completion failed for order %s", order_no)
        raise
