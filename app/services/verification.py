from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PaymentVerification:
    """Outcome of asking a payment provider about a confirmation id."""

    verified: bool
    confirmation_id: str
    amount: Decimal | None = None
    error: str | None = None
    provider_status: str | None = None


def to_amount(value) -> Decimal | None:
    """Parse a provider amount into a 2-place Decimal, None when unparseable."""
    if value is None:
        return None
    try:
        return Decimal(str(value)).quantize(CENTS)
    except (InvalidOperation, ValueError):
        return None


def amounts_match(left: Decimal | None, right: Decimal | None) -> bool:
    if left is None or right is None:
        return False
    return left.quantize(CENTS) == right.quantize(CENTS)
