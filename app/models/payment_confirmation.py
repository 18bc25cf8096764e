from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.sql import func

from app.models.database import Base


class PaymentConfirmation(Base):
    """One row per settled order, keyed by the provider's confirmation id."""

    __tablename__ = "payment_confirmations"

    id = Column(Integer, primary_key=True, index=True)
    confirmation_id = Column(String(255), unique=True, index=True, nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, nullable=False)
    payment_method = Column(String(50), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
