from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship

from database import Base, utcnow

PAYMENT_STATUSES = ("PENDING", "PROCESSING", "COMPLETED", "FAILED", "CANCELLED", "REFUNDED")
PREMIUM_PAYMENT_TYPE = "POLICY_PREMIUM"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(64), primary_key=True, index=True)
    policy_id = Column(String(64), ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(32), nullable=False, default=PREMIUM_PAYMENT_TYPE)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="MXN")
    status = Column(String(32), nullable=False, default="PENDING", index=True)
    # External processor references (checkout session / payment intent)
    gateway_session_id = Column(String(255), nullable=True, index=True)
    gateway_intent_id = Column(String(255), nullable=True)
    paid_by = Column(String(32), nullable=True)  # tenant | landlord
    notes = Column(Text, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    policy = relationship("Policy", back_populates="payments")
