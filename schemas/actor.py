from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class ReferenceSchema(BaseModel):
    kind: Literal["personal", "commercial"] = "personal"
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None
    relationship_type: Optional[str] = None

    model_config = _CAMEL


class DocumentSchema(BaseModel):
    """Metadata of a file already stored by the upload provider."""

    category: str
    file_name: str
    storage_key: str
    mime_type: Optional[str] = None

    model_config = _CAMEL


class ActorData(BaseModel):
    """Fields an actor (or staff on its behalf) may fill in. All optional; completeness is checked on submit."""

    is_company: Optional[bool] = None
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    paternal_last_name: Optional[str] = None
    maternal_last_name: Optional[str] = None
    rfc: Optional[str] = None
    curp: Optional[str] = None
    nationality: Optional[str] = None
    company_name: Optional[str] = None
    company_rfc: Optional[str] = None
    legal_rep_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    occupation: Optional[str] = None
    employer_name: Optional[str] = None
    monthly_income: Optional[Decimal] = Field(None, ge=0)
    # Tenant
    employment_status: Optional[str] = None
    previous_address: Optional[str] = None
    # Landlord
    bank_name: Optional[str] = None
    clabe: Optional[str] = None
    property_deed_number: Optional[str] = None
    # Joint obligor / aval
    relationship_to_tenant: Optional[str] = None
    guarantee_method: Optional[Literal["income", "property"]] = None
    guarantee_property_address: Optional[str] = None
    guarantee_property_value: Optional[Decimal] = Field(None, ge=0)

    references: Optional[list[ReferenceSchema]] = None

    model_config = _CAMEL


class VerificationRequest(BaseModel):
    action: Literal["approve", "reject"]
    # Required when rejecting
    reason: Optional[str] = None

    model_config = _CAMEL
