"""
Tokenized actor forms. The access token in the path is the only credential;
no bearer token is needed.
"""
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import client_ip
from api.serializers import actor_to_response, document_to_response, policy_to_response
from database import get_db
from models import ActorDocument
from schemas.actor import ActorData, DocumentSchema
from services.actors import apply_fields, find_by_token, parse_actor_type, replace_references, submit_actor
from services.completion import ActorType
from services.workflow import load_policy

router = APIRouter(prefix="/actors", tags=["actors"])

# Foreign key on ActorDocument for each actor table
_DOCUMENT_OWNER = {
    ActorType.TENANT: "tenant_id",
    ActorType.LANDLORD: "landlord_id",
    ActorType.JOINT_OBLIGOR: "joint_obligor_id",
    ActorType.AVAL: "aval_id",
}


async def _actor_or_401(actor_type: str, token: str, db: AsyncSession):
    kind = parse_actor_type(actor_type)
    if kind is None:
        raise HTTPException(status_code=400, detail=f"Unknown actor type: {actor_type}")
    actor = await find_by_token(db, kind, token)
    if actor is None:
        raise HTTPException(status_code=401, detail={"code": "UNAUTHORIZED", "message": "Invalid or expired token"})
    return kind, actor


@router.get("/{actor_type}/{token}")
async def get_actor_form(actor_type: str, token: str, db: AsyncSession = Depends(get_db)):
    kind, actor = await _actor_or_401(actor_type, token, db)
    policy = await load_policy(db, actor.policy_id)
    return {
        "actor": actor_to_response(actor, kind),
        "policy": policy_to_response(policy, include_actors=False) if policy else None,
    }


@router.put("/{actor_type}/{token}")
async def update_actor_form(actor_type: str, token: str, body: ActorData, db: AsyncSession = Depends(get_db)):
    kind, actor = await _actor_or_401(actor_type, token, db)
    if actor.information_complete:
        raise HTTPException(status_code=400, detail="Information already submitted")

    apply_fields(actor, body.model_dump(exclude_unset=True, exclude={"references"}, by_alias=False))
    if body.references is not None:
        replace_references(actor, [r.model_dump(by_alias=False) for r in body.references])
    await db.flush()
    return actor_to_response(actor, kind)


@router.post("/{actor_type}/{token}/submit")
async def submit_actor_form(actor_type: str, token: str, request: Request, db: AsyncSession = Depends(get_db)):
    kind, actor = await _actor_or_401(actor_type, token, db)
    result = await submit_actor(db, kind, actor, ip_address=client_ip(request))
    if not result.success:
        raise HTTPException(
            status_code=400,
            detail={"message": "Missing required information", "missingFields": result.missing_fields},
        )

    response = {"success": True, "actor": actor_to_response(actor, kind)}
    if result.transition is not None:
        response["policyStatus"] = result.transition.policy.status if result.transition.policy else None
        response["policyAdvanced"] = result.transition.success and result.transition.changed
    warnings = [w for w in (result.warning, result.transition and result.transition.warning) if w]
    if warnings:
        response["warning"] = "; ".join(warnings)
    return response


@router.post("/{actor_type}/{token}/documents", status_code=201)
async def add_actor_document(actor_type: str, token: str, body: DocumentSchema, db: AsyncSession = Depends(get_db)):
    kind, actor = await _actor_or_401(actor_type, token, db)
    document = ActorDocument(
        id=f"doc-{uuid.uuid4().hex[:12]}",
        category=body.category,
        file_name=body.file_name,
        storage_key=body.storage_key,
        mime_type=body.mime_type,
        verification_status="PENDING",
        **{_DOCUMENT_OWNER[kind]: actor.id},
    )
    db.add(document)
    await db.flush()
    return document_to_response(document)
