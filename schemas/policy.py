from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from schemas.actor import ActorData
from services.completion import GuarantorType


class PolicyCreate(BaseModel):
    policy_number: Optional[str] = Field(None, alias="policyNumber")
    rent_amount: Decimal = Field(..., gt=0, alias="rentAmount")
    contract_length_months: int = Field(12, ge=1, le=120, alias="contractLengthMonths")
    guarantor_type: GuarantorType = Field(GuarantorType.NONE, alias="guarantorType")
    tenant_percentage: Optional[Decimal] = Field(None, ge=0, le=100, alias="tenantPercentage")
    landlord_percentage: Optional[Decimal] = Field(None, ge=0, le=100, alias="landlordPercentage")
    include_investigation_fee: bool = Field(False, alias="includeInvestigationFee")
    property_address: Optional[str] = Field(None, alias="propertyAddress")
    property_type: Optional[str] = Field(None, alias="propertyType")

    tenant: Optional[ActorData] = None
    landlords: list[ActorData] = Field(default_factory=list)
    joint_obligors: list[ActorData] = Field(default_factory=list, alias="jointObligors")
    avals: list[ActorData] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _check_split(self) -> "PolicyCreate":
        if (self.tenant_percentage is None) != (self.landlord_percentage is None):
            raise ValueError("tenantPercentage and landlordPercentage must be given together")
        return self


class StatusUpdate(BaseModel):
    # Plain string so unknown values reach the workflow and come back as INVALID_STATUS
    status: str
    reason: Optional[str] = None


class PricingRequest(BaseModel):
    rent_amount: Decimal = Field(..., gt=0, alias="rentAmount")
    tenant_percentage: Optional[Decimal] = Field(None, ge=0, le=100, alias="tenantPercentage")
    landlord_percentage: Optional[Decimal] = Field(None, ge=0, le=100, alias="landlordPercentage")
    include_investigation_fee: bool = Field(False, alias="includeInvestigationFee")

    model_config = {"populate_by_name": True}
