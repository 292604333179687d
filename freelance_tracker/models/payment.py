"""Payment model definitions."""
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class Payment(BaseModel):
    """A recorded cash receipt against an invoice."""

    id: str = Field(alias="_id", serialization_alias="id")
    invoice_id: str
    user_id: Optional[str] = None
    project_id: Optional[str] = None
    amount: Decimal = Field(ge=0)
    currency: str = "EUR"
    payment_date: date
    method: Optional[str] = None

    model_config = {"populate_by_name": True}
