from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text, event
from sqlalchemy.orm import relationship

from database import Base, utcnow


class PolicyActivity(Base):
    """Append-only audit entry for one event on a policy."""

    __tablename__ = "policy_activities"

    # Integer key keeps insertion order when timestamps collide
    id = Column(Integer, primary_key=True, autoincrement=True)
    policy_id = Column(String(64), ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True)
    action = Column(String(64), nullable=False, index=True)
    description = Column(Text, nullable=True)
    performed_by_id = Column(String(64), nullable=True)
    performed_by_type = Column(String(32), nullable=False, default="system")
    details = Column(JSON, nullable=False, default=dict)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    policy = relationship("Policy", back_populates="activities")


@event.listens_for(PolicyActivity, "before_update")
def _refuse_activity_update(mapper, connection, target):
    raise ValueError("Policy activity records are append-only")
