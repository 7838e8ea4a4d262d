# app/models/credential.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    Date,
    DateTime,
    Text,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.jsonfields import load_json


class Credential(Base):
    """Regulatory certification type and its default cycle requirements"""

    __tablename__ = "credentials"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(200), nullable=False)
    body = Column(String(200), nullable=False)
    region = Column(String(10), nullable=False, index=True)
    vertical = Column(String(50), nullable=True)

    # Requirements (hours_required is null for outcome-based bodies)
    hours_required = Column(Float, nullable=True)
    ethics_hours = Column(Float, nullable=True)
    structured_hours = Column(Float, nullable=True)
    cycle_length_years = Column(Integer, default=1, nullable=False)

    description = Column(Text, nullable=True)
    category_rules = Column(
        Text, nullable=True, comment="JSON string of body-specific category rules"
    )
    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    rule_packs = relationship(
        "RulePack", back_populates="credential", order_by="RulePack.version"
    )

    def __repr__(self):
        return f"<Credential(id={self.id}, name='{self.name}', region='{self.region}')>"

    def get_category_rules(self):
        """Category rules as a dict, None if absent or unreadable"""
        return load_json(
            self.category_rules, default=None, context=f"credential {self.id} category_rules"
        )


class CredentialHolding(Base):
    """A professional's link to a credential, evaluated independently per cycle"""

    __tablename__ = "credential_holdings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    credential_id = Column(
        Integer, ForeignKey("credentials.id"), nullable=False, index=True
    )

    jurisdiction = Column(String(20), nullable=True, comment="State/province subcode")
    renewal_deadline = Column(DateTime, nullable=True)
    hours_completed = Column(
        Float,
        default=0.0,
        nullable=False,
        comment="Self-reported hours predating system use",
    )
    is_primary = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user = relationship("User", back_populates="holdings")
    credential = relationship("Credential")

    def __repr__(self):
        return f"<CredentialHolding(id={self.id}, user_id={self.user_id}, credential_id={self.credential_id})>"


class RulePack(Base):
    """Versioned, effective-dated requirement rules for one credential"""

    __tablename__ = "credential_rule_packs"
    __table_args__ = (
        UniqueConstraint("credential_id", "version", name="uq_rule_pack_version"),
    )

    id = Column(Integer, primary_key=True, index=True)
    credential_id = Column(
        Integer, ForeignKey("credentials.id"), nullable=False, index=True
    )

    version = Column(Integer, nullable=False)
    name = Column(String(200), nullable=False)
    rules = Column(Text, nullable=False, comment="JSON string of the rules payload")

    # effective_to null means the pack is currently open-ended
    effective_from = Column(Date, nullable=False)
    effective_to = Column(Date, nullable=True)

    changelog = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    credential = relationship("Credential", back_populates="rule_packs")

    def __repr__(self):
        return f"<RulePack(credential_id={self.credential_id}, version={self.version}, from={self.effective_from}, to={self.effective_to})>"

    def get_rules(self):
        return load_json(self.rules, default={}, context=f"rule pack {self.id}")

    def covers(self, on_date) -> bool:
        """True when on_date falls inside [effective_from, effective_to]"""
        if self.effective_from > on_date:
            return False
        return self.effective_to is None or self.effective_to >= on_date
