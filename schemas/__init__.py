from schemas.actor import ActorData, DocumentSchema, ReferenceSchema, VerificationRequest
from schemas.payment import PaymentCreate, PaymentStatusUpdate
from schemas.policy import PolicyCreate, PricingRequest, StatusUpdate

__all__ = [
    "ActorData",
    "DocumentSchema",
    "PaymentCreate",
    "PaymentStatusUpdate",
    "PolicyCreate",
    "PricingRequest",
    "ReferenceSchema",
    "StatusUpdate",
    "VerificationRequest",
]
