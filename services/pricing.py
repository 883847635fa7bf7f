"""
Premium calculation.
premium = max(rent * rate, minimum); optional investigation fee; IVA on the subtotal;
the total with IVA is split between tenant and landlord by percentage.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from config import Settings

CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricingRates:
    premium_rate_percent: Decimal
    minimum_premium: Decimal
    investigation_fee: Decimal
    iva_rate: Decimal

    @classmethod
    def from_settings(cls, settings: Settings) -> "PricingRates":
        return cls(
            premium_rate_percent=settings.premium_rate_percent,
            minimum_premium=settings.minimum_premium,
            investigation_fee=settings.investigation_fee,
            iva_rate=settings.iva_rate,
        )


@dataclass(frozen=True)
class PricingBreakdown:
    rent_amount: Decimal
    premium: Decimal
    minimum_applied: bool
    investigation_fee: Decimal
    subtotal: Decimal
    iva: Decimal
    iva_rate: Decimal
    total_price: Decimal
    tenant_percentage: Decimal
    landlord_percentage: Decimal
    tenant_amount: Decimal
    landlord_amount: Decimal

    def to_dict(self) -> dict[str, str | bool]:
        return {k: (v if isinstance(v, bool) else str(v)) for k, v in asdict(self).items()}


def validate_percentage_split(tenant_percentage: Decimal, landlord_percentage: Decimal) -> bool:
    return abs((tenant_percentage + landlord_percentage) - Decimal("100")) < CENTS


def calculate_pricing(
    rent_amount: Decimal,
    rates: PricingRates,
    tenant_percentage: Optional[Decimal] = None,
    landlord_percentage: Optional[Decimal] = None,
    include_investigation_fee: bool = False,
) -> PricingBreakdown:
    rent = Decimal(rent_amount)
    if rent <= 0:
        raise ValueError("Rent amount must be positive")

    tenant_pct = Decimal(100) if tenant_percentage is None else Decimal(tenant_percentage)
    landlord_pct = (Decimal(100) - tenant_pct) if landlord_percentage is None else Decimal(landlord_percentage)
    if not validate_percentage_split(tenant_pct, landlord_pct):
        raise ValueError("Tenant and landlord percentages must sum to 100%")

    by_rate = _money(rent * rates.premium_rate_percent / Decimal(100))
    minimum_applied = by_rate < rates.minimum_premium
    premium = rates.minimum_premium if minimum_applied else by_rate
    fee = rates.investigation_fee if include_investigation_fee else Decimal("0")
    subtotal = _money(premium + fee)
    iva = _money(subtotal * rates.iva_rate)
    total = subtotal + iva

    return PricingBreakdown(
        rent_amount=_money(rent),
        premium=_money(premium),
        minimum_applied=minimum_applied,
        investigation_fee=_money(fee),
        subtotal=subtotal,
        iva=iva,
        iva_rate=rates.iva_rate,
        total_price=total,
        tenant_percentage=tenant_pct,
        landlord_percentage=landlord_pct,
        tenant_amount=_money(total * tenant_pct / Decimal(100)),
        landlord_amount=_money(total * landlord_pct / Decimal(100)),
    )
