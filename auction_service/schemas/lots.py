from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_serializer, field_validator

from auction_service.services.lot_lifecycle import LotUpdate


class LotResponse(BaseModel):
    id: int
    name: str
    description: str | None
    start_price: Decimal
    current_price: Decimal | None
    owner_id: str | None
    created_at: datetime | None
    auction_end_date: datetime

    model_config = {"from_attributes": True}

    @field_serializer("start_price", "current_price")
    def serialize_price(self, value: Decimal | None) -> str | None:
        if value is None:
            return None
        normalized = value.normalize()
        return format(normalized, "f")


class LotCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    start_price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    owner_id: str | None = Field(default=None, max_length=255)
    auction_end_date: datetime | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Vintage camera",
                    "description": "Leica M3, 1957",
                    "start_price": "100.00",
                    "owner_id": "user-42",
                    "auction_end_date": "2030-01-01T12:00:00Z",
                }
            ]
        }
    }


class LotUpdateRequest(BaseModel):
    """Only fields present in the request body are applied; ``null`` clears a field."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    owner_id: str | None = Field(default=None, max_length=255)

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("name must not be null")
        return value

    def to_update(self) -> LotUpdate:
        return LotUpdate(**{field: getattr(self, field) for field in self.model_fields_set})


class BidRequest(BaseModel):
    bid_amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)

    model_config = {"json_schema_extra": {"examples": [{"bid_amount": "150.00"}]}}
