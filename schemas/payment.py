from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    currency: str = Field("MXN", min_length=3, max_length=3)
    type: str = "POLICY_PREMIUM"
    paid_by: Optional[Literal["tenant", "landlord"]] = Field(None, alias="paidBy")
    gateway_session_id: Optional[str] = Field(None, alias="gatewaySessionId")
    gateway_intent_id: Optional[str] = Field(None, alias="gatewayIntentId")
    notes: Optional[str] = None

    model_config = {"populate_by_name": True}


class PaymentStatusUpdate(BaseModel):
    status: Literal["PENDING", "PROCESSING", "COMPLETED", "FAILED", "CANCELLED", "REFUNDED"]
