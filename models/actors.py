from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import declared_attr, relationship

from database import Base, utcnow


class ActorMixin:
    """Columns shared by every participant table."""

    id = Column(String(64), primary_key=True, index=True)

    @declared_attr
    def policy_id(cls):
        return Column(String(64), ForeignKey("policies.id", ondelete="CASCADE"), nullable=False, index=True)

    is_company = Column(Boolean, nullable=False, default=False)
    # Person
    first_name = Column(String(128), nullable=True)
    middle_name = Column(String(128), nullable=True)
    paternal_last_name = Column(String(128), nullable=True)
    maternal_last_name = Column(String(128), nullable=True)
    rfc = Column(String(16), nullable=True)
    curp = Column(String(18), nullable=True)
    nationality = Column(String(32), nullable=True)
    # Company
    company_name = Column(String(256), nullable=True)
    company_rfc = Column(String(16), nullable=True)
    legal_rep_name = Column(String(256), nullable=True)
    # Contact
    email = Column(String(256), nullable=True)
    phone = Column(String(32), nullable=True)
    address = Column(Text, nullable=True)
    # Employment / financial
    occupation = Column(String(128), nullable=True)
    employer_name = Column(String(256), nullable=True)
    monthly_income = Column(Numeric(12, 2), nullable=True)

    information_complete = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Staff review: PENDING | APPROVED | REJECTED
    verification_status = Column(String(32), nullable=False, default="PENDING")
    verified_by_id = Column(String(64), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    # Tokenized onboarding link
    access_token = Column(String(64), unique=True, nullable=True, index=True)
    token_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def display_name(self) -> str:
        if self.is_company and self.company_name:
            return self.company_name
        parts = [self.first_name, self.paternal_last_name, self.maternal_last_name]
        return " ".join(p for p in parts if p) or self.company_name or ""


class Tenant(ActorMixin, Base):
    __tablename__ = "tenants"

    employment_status = Column(String(32), nullable=True)
    previous_address = Column(Text, nullable=True)

    policy = relationship("Policy", back_populates="tenant")
    references = relationship(
        "ActorReference", back_populates="tenant", cascade="all, delete-orphan", lazy="selectin"
    )
    documents = relationship(
        "ActorDocument", back_populates="tenant", cascade="all, delete-orphan", lazy="selectin"
    )


class Landlord(ActorMixin, Base):
    __tablename__ = "landlords"

    is_primary = Column(Boolean, nullable=False, default=False)
    bank_name = Column(String(128), nullable=True)
    clabe = Column(String(18), nullable=True)
    property_deed_number = Column(String(64), nullable=True)

    policy = relationship("Policy", back_populates="landlords")
    references = relationship(
        "ActorReference", back_populates="landlord", cascade="all, delete-orphan", lazy="selectin"
    )
    documents = relationship(
        "ActorDocument", back_populates="landlord", cascade="all, delete-orphan", lazy="selectin"
    )


class JointObligor(ActorMixin, Base):
    __tablename__ = "joint_obligors"

    relationship_to_tenant = Column(String(64), nullable=True)
    guarantee_method = Column(String(32), nullable=True)  # income | property

    policy = relationship("Policy", back_populates="joint_obligors")
    references = relationship(
        "ActorReference", back_populates="joint_obligor", cascade="all, delete-orphan", lazy="selectin"
    )
    documents = relationship(
        "ActorDocument", back_populates="joint_obligor", cascade="all, delete-orphan", lazy="selectin"
    )


class Aval(ActorMixin, Base):
    __tablename__ = "avals"

    relationship_to_tenant = Column(String(64), nullable=True)
    # Avals always back the policy with real estate
    guarantee_property_address = Column(Text, nullable=True)
    guarantee_property_value = Column(Numeric(14, 2), nullable=True)

    policy = relationship("Policy", back_populates="avals")
    references = relationship(
        "ActorReference", back_populates="aval", cascade="all, delete-orphan", lazy="selectin"
    )
    documents = relationship(
        "ActorDocument", back_populates="aval", cascade="all, delete-orphan", lazy="selectin"
    )


class _OwnedByActor:
    """One nullable foreign key per actor table; exactly one is set."""

    @declared_attr
    def tenant_id(cls):
        return Column(String(64), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True)

    @declared_attr
    def landlord_id(cls):
        return Column(String(64), ForeignKey("landlords.id", ondelete="CASCADE"), nullable=True, index=True)

    @declared_attr
    def joint_obligor_id(cls):
        return Column(String(64), ForeignKey("joint_obligors.id", ondelete="CASCADE"), nullable=True, index=True)

    @declared_attr
    def aval_id(cls):
        return Column(String(64), ForeignKey("avals.id", ondelete="CASCADE"), nullable=True, index=True)


class ActorReference(_OwnedByActor, Base):
    __tablename__ = "actor_references"

    id = Column(String(64), primary_key=True, index=True)
    kind = Column(String(32), nullable=False, default="personal")  # personal | commercial
    name = Column(String(256), nullable=False)
    phone = Column(String(32), nullable=True)
    email = Column(String(256), nullable=True)
    relationship_type = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    tenant = relationship("Tenant", back_populates="references")
    landlord = relationship("Landlord", back_populates="references")
    joint_obligor = relationship("JointObligor", back_populates="references")
    aval = relationship("Aval", back_populates="references")


class ActorDocument(_OwnedByActor, Base):
    __tablename__ = "actor_documents"

    id = Column(String(64), primary_key=True, index=True)
    category = Column(String(64), nullable=False)
    file_name = Column(String(512), nullable=False)
    storage_key = Column(String(1024), nullable=False)
    mime_type = Column(String(128), nullable=True)
    verification_status = Column(String(32), nullable=False, default="PENDING")
    verified_by_id = Column(String(64), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    tenant = relationship("Tenant", back_populates="documents")
    landlord = relationship("Landlord", back_populates="documents")
    joint_obligor = relationship("JointObligor", back_populates="documents")
    aval = relationship("Aval", back_populates="documents")


ACTOR_MODELS = {
    "tenant": Tenant,
    "landlord": Landlord,
    "joint_obligor": JointObligor,
    "aval": Aval,
}
