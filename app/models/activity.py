# app/models/activity.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    DateTime,
    Text,
    ForeignKey,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.jsonfields import load_json_list

INTERNATIONAL = "INTL"


class Activity(Base):
    """Catalog learning item; only published activities are visible to users"""

    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)

    type = Column(
        String(30), nullable=False
    )  # webinar, video, article, assessment, bundle
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=True)
    provider = Column(String(200), nullable=True)
    duration_minutes = Column(Integer, nullable=True)

    publish_status = Column(
        String(20), default="draft", nullable=False, index=True
    )  # draft, review, published, archived
    tags = Column(Text, nullable=True, comment="JSON list of tags")
    jurisdiction_scope = Column(Text, nullable=True, comment="JSON list of regions")
    active = Column(Boolean, default=True, nullable=False)

    assessment_id = Column(Integer, ForeignKey("assessments.id"), nullable=True)
    published_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    credit_mappings = relationship(
        "CreditMapping", back_populates="activity", order_by="CreditMapping.id"
    )
    assessment = relationship("Assessment")

    def __repr__(self):
        return f"<Activity(id={self.id}, title='{self.title}', status='{self.publish_status}')>"

    def get_tags(self):
        return load_json_list(self.tags, context=f"activity {self.id} tags")

    def get_jurisdiction_scope(self):
        return load_json_list(
            self.jurisdiction_scope, context=f"activity {self.id} jurisdiction_scope"
        )

    @property
    def active_mappings(self):
        return [m for m in self.credit_mappings if m.active]

    @property
    def hours(self) -> float:
        """Catalog duration expressed in hours"""
        if not self.duration_minutes:
            return 0.0
        return round(self.duration_minutes / 60, 2)


class CreditMapping(Base):
    """One eligibility rule row: what credit an activity grants and where"""

    __tablename__ = "activity_credit_mappings"

    id = Column(Integer, primary_key=True, index=True)
    activity_id = Column(
        Integer, ForeignKey("activities.id"), nullable=False, index=True
    )

    # Scope
    country = Column(String(10), nullable=False)  # region code or "INTL"
    state_province = Column(Text, nullable=True, comment="JSON list, inclusion")
    exclusions = Column(Text, nullable=True, comment="JSON list, exclusion")
    credential_id = Column(Integer, ForeignKey("credentials.id"), nullable=True)

    # Credit granted
    credit_category = Column(String(50), nullable=False)
    credit_amount = Column(Float, nullable=False)
    credit_unit = Column(String(20), default="hours", nullable=False)
    structured_flag = Column(String(20), default="true", nullable=False)
    validation_method = Column(String(30), default="attendance", nullable=False)

    active = Column(Boolean, default=True, nullable=False)

    activity = relationship("Activity", back_populates="credit_mappings")

    def __repr__(self):
        return f"<CreditMapping(activity_id={self.activity_id}, country='{self.country}', amount={self.credit_amount})>"

    def get_exclusions(self):
        return load_json_list(self.exclusions, context=f"credit mapping {self.id} exclusions")

    def get_state_province(self):
        return load_json_list(
            self.state_province, context=f"credit mapping {self.id} state_province"
        )


class Assessment(Base):
    """Quiz attached to activities or referenced by assessment-pass rules"""

    __tablename__ = "assessments"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(300), nullable=False)
    pass_mark = Column(Float, default=70.0, nullable=False)
    hours = Column(Float, default=0.0, nullable=False)
    category = Column(String(50), nullable=True)
    credential_id = Column(Integer, ForeignKey("credentials.id"), nullable=True)
    activity_type = Column(String(50), default="structured", nullable=False)
    max_attempts = Column(Integer, default=3, nullable=False)
    active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Assessment(id={self.id}, title='{self.title}')>"


class AssessmentAttempt(Base):
    __tablename__ = "assessment_attempts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assessment_id = Column(
        Integer, ForeignKey("assessments.id"), nullable=False, index=True
    )
    score = Column(Float, nullable=False)
    passed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<AssessmentAttempt(user_id={self.user_id}, assessment_id={self.assessment_id}, score={self.score})>"
