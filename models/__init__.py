from models.activity import PolicyActivity
from models.actors import ACTOR_MODELS, ActorDocument, ActorReference, Aval, JointObligor, Landlord, Tenant
from models.payment import Payment
from models.policy import Policy

__all__ = [
    "ACTOR_MODELS",
    "ActorDocument",
    "ActorReference",
    "Aval",
    "JointObligor",
    "Landlord",
    "Payment",
    "Policy",
    "PolicyActivity",
    "Tenant",
]
