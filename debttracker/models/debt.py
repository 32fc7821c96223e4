"""Debt domain model.

One document in the debts collection per borrower per order.
Amounts are stored as BSON Decimal128 so no precision is lost.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from bson import Decimal128
from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator

from debttracker.models.common import PyObjectId


class Debt(BaseModel):
    """Money owed by one borrower to the lender of one group order.

    Debts are never updated: they are created when an order is tracked
    and removed when paid, cancelled by the host, or timed out.
    """

    model_config = {"populate_by_name": True, "arbitrary_types_allowed": True}

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    order_id: str
    borrower_id: str
    lender_id: str
    amount: Decimal = Field(gt=0)
    message_id: str = ""
    initiated_transport: str = ""
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @field_validator("amount", mode="before")
    @classmethod
    def convert_decimal128(cls, value: Any) -> Any:
        if isinstance(value, Decimal128):
            return value.to_decimal()
        return value

    @field_validator("created_at")
    @classmethod
    def ensure_aware(cls, value: datetime) -> datetime:
        # MongoDB hands back naive UTC datetimes
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def validate_not_self_debt(self) -> "Debt":
        if self.borrower_id == self.lender_id:
            raise ValueError("A lender cannot owe a debt to themselves")
        return self

    @field_serializer("id")
    def serialize_id(self, value: Optional[str], _info) -> Optional[str]:
        if value is not None:
            return str(value)
        return value

    def to_mongo_dict(self) -> dict:
        """Convert model to a MongoDB-insertable dict, excluding None id."""
        data = self.model_dump(by_alias=True, mode="python")
        if data.get("_id") is None:
            data.pop("_id", None)
        data["amount"] = Decimal128(self.amount)
        return data


class DebtResponse(BaseModel):
    """Response model for Debt data returned via API."""

    id: str
    order_id: str
    borrower_id: str
    lender_id: str
    amount: str
    message_id: str
    initiated_transport: str
    created_at: str

    @classmethod
    def from_debt(cls, debt: Debt) -> "DebtResponse":
        return cls(
            id=str(debt.id),
            order_id=debt.order_id,
            borrower_id=debt.borrower_id,
            lender_id=debt.lender_id,
            amount=f"{debt.amount:.2f}",
            message_id=debt.message_id,
            initiated_transport=debt.initiated_transport,
            created_at=debt.created_at.isoformat(),
        )
