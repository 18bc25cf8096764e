from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_serializer

CENTS = Decimal("0.01")


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AmountResponse(CamelModel):
    @field_serializer("amount", check_fields=False)
    def serialize_amount(self, value: Decimal | None) -> str | None:
        if value is None:
            return None
        return format(value.quantize(CENTS), "f")
