"""Client for the external recharge service that credits purchased products.

The recharge service owns balances (VIP expiry, gold coins, translation
characters). It must treat ``order_no`` as an idempotency key: the same order
may be submitted again if a settlement transaction is rolled back after the
request was sent.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

import httpx

from app.schemas.payments import GoldCoinPayload, TranslatePayload, VipPayload

logger = logging.getLogger(__name__)

RECHARGE_PATHS = {
    "vip": "/vip",
    "goldCoin": "/gold-coin",
    "translate": "/translate",
}


@dataclass(frozen=True)
class CreditAck:
    order_no: str
    reference: str | None = None


class CreditingService(Protocol):
    def credit(
        self,
        order_no: str,
        payload: VipPayload | GoldCoinPayload | TranslatePayload,
        amount: Decimal,
        confirmation_id: str,
    ) -> CreditAck: ...


def build_recharge_body(
    order_no: str,
    payload: VipPayload | GoldCoinPayload | TranslatePayload,
    amount: Decimal,
    confirmation_id: str,
) -> dict:
    body = {
        "orderNo": order_no,
        "amount": format(amount, "f"),
        "paypalOrderId": confirmation_id,
    }
    if isinstance(payload, VipPayload):
        body.update(vipLevel=payload.vip_level, month=payload.month)
    elif isinstance(payload, GoldCoinPayload):
        body.update(goldCoin=payload.gold_coin, giveGoldCoin=payload.give_gold_coin)
    else:
        body.update(character=payload.character)
    return body


class RechargeClient:
    def __init__(self, base_url: str, token: str = "", timeout: float = 10.0, transport=None):
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _headers(self, order_no: str) -> dict[str, str]:
        headers = {"Idempotency-Key": order_no}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def credit(
        self,
        order_no: str,
        payload: VipPayload | GoldCoinPayload | TranslatePayload,
        amount: Decimal,
        confirmation_id: str,
    ) -> CreditAck:
        if not self.base_url:
            raise ValueError("RECHARGE_SERVICE_URL is not set")
        path = RECHARGE_PATHS[payload.kind]
        body = build_recharge_body(order_no, payload, amount, confirmation_id)
        with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            response = client.post(path, json=body, headers=self._headers(order_no))
        response.raise_for_status()

        data = response.json() if response.content else {}
        reference = data.get("reference") or data.get("id")
        logger.info("Recharge %s accepted for order %s (reference=%s)", payload.kind, order_no, reference)
        return CreditAck(order_no=order_no, reference=str(reference) if reference is not None else None)


def get_crediting_service() -> CreditingService:
    from app.config import settings

    return RechargeClient(
        base_url=settings.RECHARGE_SERVICE_URL,
        token=settings.RECHARGE_SERVICE_TOKEN,
        timeout=settings.RECHARGE_TIMEOUT_SECONDS,
    )
