from typing import Any, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.auth import AuthUser, JWTAuthVerifier
from services.errors import ErrorCode
from services.permissions import Capability, check_capability
from services.pricing import PricingRates
from services.workflow import load_policy

_bearer_scheme = HTTPBearer(auto_error=False)

MSG_POLICY_NOT_FOUND = "Policy not found"


def get_verifier(request: Request) -> JWTAuthVerifier:
    return request.app.state.verifier


def get_pricing_rates(request: Request) -> PricingRates:
    return PricingRates.from_settings(request.app.state.settings)


def get_token_days(request: Request) -> int:
    return request.app.state.settings.actor_token_days


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    verifier: JWTAuthVerifier = Depends(get_verifier),
) -> AuthUser:
    result = verifier.verify(credentials.credentials if credentials else None)
    if not result.success:
        raise HTTPException(
            status_code=401,
            detail={"code": "UNAUTHORIZED", "message": result.error or "Unauthorized"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return result.user


def require(user: AuthUser, capability: Capability, policy: Any = None) -> None:
    decision = check_capability(user, capability, policy)
    if not decision.allowed:
        status_code = 401 if decision.code == ErrorCode.UNAUTHORIZED else 403
        raise HTTPException(status_code=status_code, detail={"code": decision.code.value, "message": decision.message})


async def get_policy_or_404(policy_id: str, db: AsyncSession):
    policy = await load_policy(db, policy_id)
    if not policy:
        raise HTTPException(
            status_code=404, detail={"code": ErrorCode.POLICY_NOT_FOUND.value, "message": MSG_POLICY_NOT_FOUND}
        )
    return policy
