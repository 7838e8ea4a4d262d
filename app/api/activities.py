from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.models.activity import Activity, CreditMapping
from app.schemas.activity import (
    ActivityCreate,
    ActivityResponse,
    CreditMappingCreate,
    CreditMappingResponse,
)
from app.services.activity_service import ActivityService
from typing import List, Optional

router = APIRouter(prefix="/api/activities", tags=["Activities"])


def _mapping_response(mapping: CreditMapping) -> CreditMappingResponse:
    return CreditMappingResponse(
        id=mapping.id,
        activity_id=mapping.activity_id,
        country=mapping.country,
        credit_category=mapping.credit_category,
        credit_amount=mapping.credit_amount,
        credit_unit=mapping.credit_unit,
        credential_id=mapping.credential_id,
        state_province=mapping.get_state_province(),
        exclusions=mapping.get_exclusions(),
        structured_flag=mapping.structured_flag,
        validation_method=mapping.validation_method,
        active=mapping.active,
    )


def _activity_response(activity: Activity) -> ActivityResponse:
    return ActivityResponse(
        id=activity.id,
        type=activity.type,
        title=activity.title,
        description=activity.description,
        provider=activity.provider,
        duration_minutes=activity.duration_minutes,
        publish_status=activity.publish_status,
        tags=activity.get_tags(),
        jurisdiction_scope=activity.get_jurisdiction_scope(),
        assessment_id=activity.assessment_id,
        active=activity.active,
        created_at=activity.created_at,
        credit_mappings=[_mapping_response(m) for m in activity.credit_mappings],
    )


@router.get("/", response_model=List[ActivityResponse])
async def list_activities(
    status: Optional[str] = Query(None, description="publish status filter"),
    type: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """List catalog activities, newest first"""
    activities = ActivityService(db).list_activities(
        publish_status=status, activity_type=type, limit=limit, offset=offset
    )
    return [_activity_response(a) for a in activities]


@router.post("/", response_model=ActivityResponse, status_code=201)
async def create_activity(request: ActivityCreate, db: Session = Depends(get_db)):
    """Create a draft activity with its credit mappings"""
    data = request.model_dump()
    activity = ActivityService(db).create_activity(**data)
    return _activity_response(activity)


@router.get("/{activity_id}", response_model=ActivityResponse)
async def get_activity(activity_id: int, db: Session = Depends(get_db)):
    return _activity_response(ActivityService(db).get_activity(activity_id))


@router.post(
    "/{activity_id}/mappings", response_model=CreditMappingResponse, status_code=201
)
async def add_credit_mapping(
    activity_id: int, request: CreditMappingCreate, db: Session = Depends(get_db)
):
    mapping = ActivityService(db).add_credit_mapping(activity_id, request.model_dump())
    return _mapping_response(mapping)


@router.delete("/{activity_id}/mappings/{mapping_id}", response_model=CreditMappingResponse)
async def deactivate_credit_mapping(
    activity_id: int, mapping_id: int, db: Session = Depends(get_db)
):
    """Switch a credit mapping off; the row is kept"""
    mapping = ActivityService(db).deactivate_credit_mapping(activity_id, mapping_id)
    return _mapping_response(mapping)


@router.post("/{activity_id}/review", response_model=ActivityResponse)
async def submit_for_review(activity_id: int, db: Session = Depends(get_db)):
    return _activity_response(ActivityService(db).change_status(activity_id, "review"))


@router.post("/{activity_id}/publish", response_model=ActivityResponse)
async def publish_activity(activity_id: int, db: Session = Depends(get_db)):
    """Publish an activity; it needs at least one active credit mapping"""
    return _activity_response(ActivityService(db).change_status(activity_id, "published"))


@router.post("/{activity_id}/archive", response_model=ActivityResponse)
async def archive_activity(activity_id: int, db: Session = Depends(get_db)):
    return _activity_response(ActivityService(db).change_status(activity_id, "archived"))
