from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship, validates

from database import Base, utcnow
from services.status_registry import PolicyStatus, parse_status


class Policy(Base):
    __tablename__ = "policies"

    id = Column(String(64), primary_key=True, index=True)
    policy_number = Column(String(32), unique=True, nullable=False, index=True)
    status = Column(String(32), nullable=False, default=PolicyStatus.DRAFT.value, index=True)
    guarantor_type = Column(String(32), nullable=False, default="NONE")

    # Monetary terms (MXN)
    rent_amount = Column(Numeric(12, 2), nullable=False)
    contract_length_months = Column(Integer, nullable=False, default=12)
    premium = Column(Numeric(12, 2), nullable=False, default=0)
    investigation_fee = Column(Numeric(12, 2), nullable=False, default=0)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    iva = Column(Numeric(12, 2), nullable=False, default=0)
    total_price = Column(Numeric(12, 2), nullable=False, default=0)
    tenant_percentage = Column(Numeric(5, 2), nullable=False, default=100)
    landlord_percentage = Column(Numeric(5, 2), nullable=False, default=0)

    property_address = Column(Text, nullable=True)
    property_type = Column(String(32), nullable=True)

    created_by_id = Column(String(64), nullable=True, index=True)

    # Lifecycle milestones; each is written once
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    contract_signed_at = Column(DateTime(timezone=True), nullable=True)
    activated_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    # Set once on activation: activated_at plus the contract length
    expires_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    tenant = relationship(
        "Tenant", back_populates="policy", uselist=False, cascade="all, delete-orphan", lazy="selectin"
    )
    landlords = relationship(
        "Landlord",
        back_populates="policy",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Landlord.created_at",
    )
    joint_obligors = relationship(
        "JointObligor", back_populates="policy", cascade="all, delete-orphan", lazy="selectin"
    )
    avals = relationship("Aval", back_populates="policy", cascade="all, delete-orphan", lazy="selectin")
    # Rows are removed by ON DELETE CASCADE. Query them directly; loading through the policy raises.
    activities = relationship(
        "PolicyActivity", back_populates="policy", cascade="all, delete-orphan", passive_deletes=True, lazy="raise"
    )
    payments = relationship(
        "Payment", back_populates="policy", cascade="all, delete-orphan", passive_deletes=True, lazy="raise"
    )

    @validates("status")
    def _validate_status(self, key, value):
        status = parse_status(value)
        if status is None:
            raise ValueError(f"Unknown policy status: {value}")
        return status.value

    @validates("policy_number")
    def _validate_policy_number(self, key, value):
        if self.policy_number is not None and value != self.policy_number:
            raise ValueError("Policy number cannot be changed once assigned")
        return value
