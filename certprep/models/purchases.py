"""Purchase request models."""
from decimal import Decimal

from pydantic import BaseModel, Field


class PurchaseCreate(BaseModel):
    testId: str = Field(..., min_length=1)
    paymentAmount: Decimal = Field(..., ge=0)
    paymentMethod: str | None = Field(None, max_length=50)
    transactionId: str | None = Field(None, max_length=255)
