from fastapi import APIRouter, Depends, HTTPException

from api.deps import get_current_user, get_pricing_rates
from schemas.policy import PricingRequest
from services.auth import AuthUser
from services.pricing import PricingRates, calculate_pricing
from utils.case import dict_keys_to_camel

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post("/calculate")
async def calculate(
    body: PricingRequest,
    user: AuthUser = Depends(get_current_user),
    rates: PricingRates = Depends(get_pricing_rates),
):
    """Quote a policy price without persisting anything."""
    try:
        breakdown = calculate_pricing(
            body.rent_amount,
            rates,
            tenant_percentage=body.tenant_percentage,
            landlord_percentage=body.landlord_percentage,
            include_investigation_fee=body.include_investigation_fee,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return dict_keys_to_camel(breakdown.to_dict())
