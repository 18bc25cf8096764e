from enum import IntEnum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, SmallInteger, String
from sqlalchemy.sql import func

from app.models.database import Base


class OrderStatus(IntEnum):
    PENDING = 0
    PAID = 1
    CANCELLED = 2


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_no = Column(String(32), unique=True, index=True, nullable=False)
    product_type = Column(String(20), nullable=False, index=True)  # vip | svip | goldCoin | translate
    buyer_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    buyer_display_name = Column(String(255), nullable=False)
    recipient_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)

    # product payload, only the columns of the order's product family are set
    vip_level = Column(Integer, nullable=True)
    month = Column(Integer, nullable=True)
    gold_coin = Column(Integer, nullable=True)
    give_gold_coin = Column(Integer, nullable=True)
    character_num = Column(Integer, nullable=True)

    payment_method = Column(String(50), nullable=False)  # paypal | stripe
    status = Column(SmallInteger, nullable=False, default=OrderStatus.PENDING)
    external_payment_id = Column(String(255), nullable=True)
    pay_time = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
