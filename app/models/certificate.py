# app/models/certificate.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    DateTime,
    Text,
    ForeignKey,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class Certificate(Base):
    """
    Issued once every completion rule of a CPD record passes.
    Immutable apart from status; never hard-deleted.
    """

    __tablename__ = "certificates"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    cpd_record_id = Column(
        Integer, ForeignKey("cpd_records.id"), nullable=False, index=True
    )

    certificate_code = Column(String(30), unique=True, index=True, nullable=False)
    title = Column(String(300), nullable=False)
    credential_name = Column(String(200), nullable=True)
    hours = Column(Float, nullable=False)
    category = Column(String(50), nullable=True)
    activity_type = Column(String(50), nullable=True)
    provider = Column(String(200), nullable=True)
    completed_date = Column(DateTime, nullable=False)
    verification_url = Column(String(500), nullable=True)

    status = Column(String(20), default="active", nullable=False)  # active, revoked
    certificate_metadata = Column(
        Text, nullable=True, comment="JSON snapshot of the completion rule results"
    )

    issued_at = Column(DateTime, server_default=func.now(), nullable=False)
    revoked_at = Column(DateTime, nullable=True)

    cpd_record = relationship("CPDRecord")

    def __repr__(self):
        return f"<Certificate(code='{self.certificate_code}', status='{self.status}')>"

    @property
    def is_active(self):
        return self.status == "active"
