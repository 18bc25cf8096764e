from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import AliasChoices, BaseModel, Field, model_validator

from app.schemas.base import AmountResponse, CamelModel


class PaymentMethod(str, Enum):
    PAYPAL = "paypal"
    STRIPE = "stripe"


class ProductType(str, Enum):
    VIP = "vip"
    SVIP = "svip"
    GOLD_COIN = "goldCoin"
    TRANSLATE = "translate"


class VipPayload(BaseModel):
    kind: Literal["vip"] = "vip"
    vip_level: int
    month: int


class GoldCoinPayload(BaseModel):
    kind: Literal["goldCoin"] = "goldCoin"
    gold_coin: int
    give_gold_coin: int = 0


class TranslatePayload(BaseModel):
    kind: Literal["translate"] = "translate"
    character: int


ProductPayload = Annotated[
    Union[VipPayload, GoldCoinPayload, TranslatePayload],
    Field(discriminator="kind"),
]

# productDetails keys each product type cannot do without
REQUIRED_DETAILS: dict[ProductType, tuple[str, ...]] = {
    ProductType.VIP: ("vip_level", "month"),
    ProductType.SVIP: ("vip_level", "month"),
    ProductType.GOLD_COIN: ("gold_coin",),
    ProductType.TRANSLATE: ("character",),
}


class ProductDetails(CamelModel):
    vip_level: int | None = Field(default=None, alias="vipLevel", ge=1)
    month: int | None = Field(default=None, ge=1)
    gold_coin: int | None = Field(default=None, alias="goldCoin", ge=1)
    give_gold_coin: int | None = Field(default=None, alias="giveGoldCoin", ge=0)
    character: int | None = Field(default=None, ge=1)


class InitializePaymentRequest(CamelModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    product_type: ProductType = Field(alias="productType")
    product_details: ProductDetails = Field(alias="productDetails")
    payment_method: PaymentMethod = Field(default=PaymentMethod.PAYPAL, alias="paymentMethod")
    return_url: str | None = Field(default=None, alias="returnUrl")
    cancel_url: str | None = Field(default=None, alias="cancelUrl")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "amount": "9.99",
                    "productType": "goldCoin",
                    "productDetails": {"goldCoin": 500, "giveGoldCoin": 50},
                    "paymentMethod": "paypal",
                }
            ]
        },
    }

    @model_validator(mode="after")
    def validate_product_details(self) -> "InitializePaymentRequest":
        missing = [
            name for name in REQUIRED_DETAILS[self.product_type] if getattr(self.product_details, name) is None
        ]
        if missing:
            aliases = [ProductDetails.model_fields[name].alias or name for name in missing]
            raise ValueError(
                f"productDetails.{', productDetails.'.join(aliases)} required for productType "
                f"'{self.product_type.value}'"
            )
        return self

    def build_payload(self) -> VipPayload | GoldCoinPayload | TranslatePayload:
        details = self.product_details
        if self.product_type in (ProductType.VIP, ProductType.SVIP):
            return VipPayload(vip_level=details.vip_level, month=details.month)
        if self.product_type == ProductType.GOLD_COIN:
            return GoldCoinPayload(gold_coin=details.gold_coin, give_gold_coin=details.give_gold_coin or 0)
        return TranslatePayload(character=details.character)


class InitializePaymentResponse(CamelModel):
    success: bool = True
    order_no: str = Field(alias="orderNo")
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    checkout_url: str | None = Field(default=None, alias="checkoutUrl")
    session_id: str | None = Field(default=None, alias="sessionId")


class CompletePaymentRequest(CamelModel):
    order_no: str = Field(alias="orderNo", min_length=1, max_length=32)
    confirmation_id: str = Field(
        validation_alias=AliasChoices("paypalOrderId", "confirmationId", "confirmation_id"),
        min_length=1,
        max_length=255,
    )
    product_type: ProductType = Field(alias="productType")
    expected_amount: Decimal = Field(alias="expectedAmount", gt=0)
    payment_method: PaymentMethod = Field(default=PaymentMethod.PAYPAL, alias="paymentMethod")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "orderNo": "1760659200000042",
                    "paypalOrderId": "5O190127TN364715T",
                    "productType": "goldCoin",
                    "expectedAmount": 9.99,
                }
            ]
        },
    }


class VerificationResult(AmountResponse):
    verified: bool
    amount: Decimal | None = None
    error: str | None = None
    provider_status: str | None = Field(default=None, alias="providerStatus")
    confirmation_id: str = Field(alias="confirmationId")


class CompletePaymentResponse(CamelModel):
    success: bool = True
    verification_result: VerificationResult = Field(alias="verificationResult")


class OrderStatusResponse(AmountResponse):
    order_no: str = Field(alias="orderNo")
    status: int
    amount: Decimal
    pay_time: str | None = Field(default=None, alias="payTime")


class OrderResponse(AmountResponse):
    order_no: str = Field(alias="orderNo")
    product_type: ProductType = Field(alias="productType")
    product_details: ProductDetails = Field(alias="productDetails")
    amount: Decimal
    payment_method: PaymentMethod = Field(alias="paymentMethod")
    status: int
    pay_time: str | None = Field(default=None, alias="payTime")
    created_at: str = Field(alias="createdAt")


class PaymentMethodsResponse(CamelModel):
    available_methods: list[PaymentMethod] = Field(alias="availableMethods")
    enabled_methods: list[PaymentMethod] = Field(alias="enabledMethods")
