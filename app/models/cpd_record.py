# app/models/cpd_record.py

from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    DateTime,
    Text,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.jsonfields import load_json
from typing import Dict, Optional


# Records with this source are audit evidence and can't be edited or deleted
IMMUTABLE_SOURCE = "platform"


class CPDRecord(Base):
    """A logged (completed, in-progress or planned) learning activity"""

    __tablename__ = "cpd_records"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # Owner
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # ===== CORE CPD DATA =====
    title = Column(String(300), nullable=False)
    provider = Column(String(200), nullable=True)
    activity_type = Column(
        String(50), nullable=False, comment="structured, verifiable, unstructured, ..."
    )
    hours = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False)
    status = Column(
        String(20), default="completed", nullable=False
    )  # completed, in_progress, planned
    category = Column(String(50), nullable=True, comment="ethics, technical, general")
    learning_outcome = Column(Text, nullable=True)
    notes = Column(
        Text, nullable=True, comment="Free-form notes; JSON for watch/attendance data"
    )

    # ===== PROVENANCE =====
    external_id = Column(String(200), nullable=True)
    source = Column(
        String(20), default="manual", nullable=False
    )  # manual, import, auto, platform
    evidence_strength = Column(
        String(30), default="manual_only", nullable=False
    )  # manual_only, url_only, certificate_attached, provider_verified

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    user = relationship("User", back_populates="cpd_records")
    allocations = relationship(
        "CPDAllocation", back_populates="cpd_record", order_by="CPDAllocation.id"
    )
    completion_rules = relationship(
        "CompletionRule", back_populates="cpd_record", order_by="CompletionRule.id"
    )
    evidence = relationship("Evidence", back_populates="cpd_record")

    def __repr__(self):
        return f"<CPDRecord(id={self.id}, title='{self.title}', hours={self.hours})>"

    @property
    def is_completed(self):
        return self.status == "completed"

    @property
    def is_immutable(self):
        """Platform-generated records are audit evidence"""
        return self.source == IMMUTABLE_SOURCE

    def get_notes_metadata(self) -> Optional[Dict]:
        """Notes as a dict when they hold JSON metadata, otherwise None"""
        value = load_json(self.notes, default=None, context=f"cpd record {self.id} notes")
        return value if isinstance(value, dict) else None


class Evidence(Base):
    """Metadata of an uploaded evidence file (storage itself is external)"""

    __tablename__ = "evidence"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    cpd_record_id = Column(
        Integer, ForeignKey("cpd_records.id"), nullable=True, index=True
    )

    file_name = Column(String(255), nullable=False)
    file_type = Column(String(100), nullable=False)
    file_size = Column(Integer, default=0, nullable=False)
    storage_key = Column(String(500), nullable=False)
    uploaded_at = Column(DateTime, server_default=func.now(), nullable=False)

    cpd_record = relationship("CPDRecord", back_populates="evidence")


class CPDAllocation(Base):
    """Hours of one logged activity attributed to one credential holding"""

    __tablename__ = "cpd_allocations"
    __table_args__ = (
        UniqueConstraint("cpd_record_id", "holding_id", name="uq_allocation_holding"),
    )

    id = Column(Integer, primary_key=True, index=True)
    cpd_record_id = Column(
        Integer, ForeignKey("cpd_records.id"), nullable=False, index=True
    )
    holding_id = Column(
        Integer, ForeignKey("credential_holdings.id"), nullable=False, index=True
    )
    hours = Column(Float, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    cpd_record = relationship("CPDRecord", back_populates="allocations")
    holding = relationship("CredentialHolding")

    def __repr__(self):
        return f"<CPDAllocation(record={self.cpd_record_id}, holding={self.holding_id}, hours={self.hours})>"


class CompletionRule(Base):
    """Gating criterion for certificate issuance on a logged activity"""

    __tablename__ = "completion_rules"

    id = Column(Integer, primary_key=True, index=True)
    cpd_record_id = Column(
        Integer, ForeignKey("cpd_records.id"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    rule_type = Column(
        String(30), nullable=False
    )  # assessment_pass, evidence_upload, watch_time, attendance
    config = Column(Text, nullable=False, default="{}")
    active = Column(Boolean, default=True, nullable=False)

    cpd_record = relationship("CPDRecord", back_populates="completion_rules")

    def __repr__(self):
        return f"<CompletionRule(id={self.id}, type='{self.rule_type}')>"
