from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import (
    client_ip,
    get_current_user,
    get_policy_or_404,
    get_pricing_rates,
    get_token_days,
    require,
)
from api.serializers import (
    activity_to_response,
    actor_to_response,
    completion_to_response,
    document_to_response,
    policy_to_response,
)
from database import get_db
from schemas.actor import ActorData, VerificationRequest
from schemas.policy import PolicyCreate, StatusUpdate
from services.activity import Performer, SqlActivityLogger
from services.actors import add_actor_to_policy, parse_actor_type, verify_actor, verify_document
from services.auth import AuthUser
from services.completion import ActorCompletionGate
from services.errors import ErrorCode
from services.permissions import Capability, is_ownership_scoped
from services.policies import create_policy, list_policies
from services.pricing import PricingRates
from services.status_registry import is_filterable, parse_status
from services.workflow import PolicyWorkflow

router = APIRouter(prefix="/policies", tags=["policies"])

_NOT_FOUND_STATUS = {ErrorCode.POLICY_NOT_FOUND: 404}


@router.get("")
async def list_all_policies(
    status: Optional[str] = None,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require(user, Capability.VIEW_POLICY)
    status_filter = None
    if status:
        status_filter = parse_status(status)
        if status_filter is None or not is_filterable(status_filter):
            raise HTTPException(
                status_code=400,
                detail={"code": ErrorCode.INVALID_STATUS.value, "message": f"Cannot filter by status {status}"},
            )
    owner = user.id if is_ownership_scoped(user) else None
    policies = await list_policies(db, status=status_filter, created_by_id=owner)
    return [policy_to_response(p, include_actors=False) for p in policies]


@router.post("", status_code=201)
async def create_new_policy(
    body: PolicyCreate,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    rates: PricingRates = Depends(get_pricing_rates),
    token_days: int = Depends(get_token_days),
    db: AsyncSession = Depends(get_db),
):
    require(user, Capability.CREATE_POLICY)
    try:
        policy = await create_policy(
            db, body, Performer.user(user.id), rates, token_days, ip_address=client_ip(request)
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return policy_to_response(policy, include_tokens=True)


@router.get("/{policy_id}")
async def get_policy(policy_id: str, user: AuthUser = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    policy = await get_policy_or_404(policy_id, db)
    require(user, Capability.VIEW_POLICY, policy)
    return policy_to_response(policy, include_tokens=not is_ownership_scoped(user))


@router.delete("/{policy_id}", status_code=204)
async def delete_policy(policy_id: str, user: AuthUser = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    require(user, Capability.DELETE_POLICY)
    policy = await get_policy_or_404(policy_id, db)
    await db.delete(policy)
    await db.flush()


@router.put("/{policy_id}/status")
async def update_policy_status(
    policy_id: str,
    body: StatusUpdate,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require(user, Capability.CHANGE_STATUS)
    outcome = await PolicyWorkflow(db).transition(
        policy_id,
        body.status,
        Performer.user(user.id),
        reason=body.reason,
        ip_address=client_ip(request),
    )
    if not outcome.success:
        detail = {"code": outcome.error.value, "message": outcome.message}
        if outcome.missing_actors:
            detail["missingActors"] = outcome.missing_actors
        raise HTTPException(status_code=_NOT_FOUND_STATUS.get(outcome.error, 400), detail=detail)

    response = {
        "success": True,
        "policy": policy_to_response(outcome.policy) if outcome.policy is not None else None,
        "activity": activity_to_response(outcome.activity),
    }
    if outcome.warning:
        response["warning"] = outcome.warning
    return response


@router.get("/{policy_id}/activities")
async def list_policy_activities(
    policy_id: str,
    order: str = Query("desc", pattern="^(asc|desc)$"),
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    policy = await get_policy_or_404(policy_id, db)
    require(user, Capability.VIEW_POLICY, policy)
    activities = await SqlActivityLogger(db).list_for_policy(policy.id, newest_first=(order == "desc"))
    return [activity_to_response(a) for a in activities]


@router.get("/{policy_id}/completion")
async def get_policy_completion(
    policy_id: str, user: AuthUser = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    policy = await get_policy_or_404(policy_id, db)
    require(user, Capability.VIEW_POLICY, policy)
    return completion_to_response(ActorCompletionGate().report(policy))


@router.get("/{policy_id}/progress")
async def get_policy_progress(
    policy_id: str, user: AuthUser = Depends(get_current_user), db: AsyncSession = Depends(get_db)
):
    policy = await get_policy_or_404(policy_id, db)
    require(user, Capability.VIEW_POLICY, policy)
    progress = PolicyWorkflow(db).progress(policy)
    return {
        "currentStatus": progress["current_status"],
        "progress": progress["progress"],
        "steps": progress["steps"],
        "nextActions": progress["next_actions"],
        "allowedNextStatuses": progress["allowed_next_statuses"],
    }


@router.post("/{policy_id}/actors/{actor_type}", status_code=201)
async def add_policy_actor(
    policy_id: str,
    actor_type: str,
    body: ActorData,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    token_days: int = Depends(get_token_days),
    db: AsyncSession = Depends(get_db),
):
    kind = parse_actor_type(actor_type)
    if kind is None:
        raise HTTPException(status_code=400, detail=f"Unknown actor type: {actor_type}")
    policy = await get_policy_or_404(policy_id, db)
    require(user, Capability.MANAGE_ACTORS, policy)

    data = body.model_dump(exclude_unset=True, exclude={"references"}, by_alias=False)
    references = [r.model_dump(by_alias=False) for r in body.references or []]
    try:
        actor = await add_actor_to_policy(db, policy, kind, data, token_days, references=references)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await SqlActivityLogger(db).record(
        policy.id,
        "actor_added",
        Performer.user(user.id),
        {"actorType": kind.value, "actorId": actor.id},
        ip_address=client_ip(request),
        description=f"{kind.value} agregado a la protección",
    )
    return actor_to_response(actor, kind, include_token=True)


def _verification_error(e: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": ErrorCode.MISSING_REASON.value, "message": str(e)})


@router.put("/{policy_id}/actors/{actor_type}/{actor_id}/verify")
async def verify_policy_actor(
    policy_id: str,
    actor_type: str,
    actor_id: str,
    body: VerificationRequest,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require(user, Capability.VERIFY_ACTORS)
    kind = parse_actor_type(actor_type)
    if kind is None:
        raise HTTPException(status_code=400, detail=f"Unknown actor type: {actor_type}")
    policy = await get_policy_or_404(policy_id, db)
    try:
        result = await verify_actor(
            db,
            policy,
            kind,
            actor_id,
            body.action,
            Performer.user(user.id),
            reason=body.reason,
            ip_address=client_ip(request),
        )
    except ValueError as e:
        raise _verification_error(e)
    if result is None:
        raise HTTPException(status_code=404, detail="Actor not found on this policy")

    response = {"success": True, "actor": actor_to_response(result.target, kind)}
    if result.transition is not None:
        response["policyStatus"] = result.transition.policy.status if result.transition.policy else None
        response["policyAdvanced"] = result.transition.success and result.transition.changed
    return response


@router.put("/{policy_id}/documents/{document_id}/verify")
async def verify_policy_document(
    policy_id: str,
    document_id: str,
    body: VerificationRequest,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    require(user, Capability.VERIFY_ACTORS)
    policy = await get_policy_or_404(policy_id, db)
    try:
        result = await verify_document(
            db,
            policy,
            document_id,
            body.action,
            Performer.user(user.id),
            reason=body.reason,
            ip_address=client_ip(request),
        )
    except ValueError as e:
        raise _verification_error(e)
    if result is None:
        raise HTTPException(status_code=404, detail="Document not found on this policy")
    return {"success": True, "document": document_to_response(result.target)}
