# app/models/user.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base


class User(Base):
    """A regulated professional tracking CPD against one or more credentials"""

    __tablename__ = "users"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # Basic user info
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(200), nullable=False)

    # Account status
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    holdings = relationship(
        "CredentialHolding", back_populates="user", order_by="CredentialHolding.id"
    )
    cpd_records = relationship("CPDRecord", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"

    @property
    def primary_holding(self):
        """The holding flagged primary, falling back to the first one"""
        for holding in self.holdings:
            if holding.is_primary:
                return holding
        return self.holdings[0] if self.holdings else None
