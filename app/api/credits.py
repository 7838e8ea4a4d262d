from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.schemas.credit import ActivityCreditsResponse, CreditView
from app.services.credit_resolver import CreditResolverService

router = APIRouter(prefix="/api/activities", tags=["Credits"])

NO_HOLDINGS_MESSAGE = (
    "No credentials on file. Complete onboarding to see applicable credits."
)


@router.get("/{activity_id}/credits", response_model=ActivityCreditsResponse)
async def get_activity_credits(
    activity_id: int,
    user_id: int = Query(..., description="Professional whose holdings are resolved"),
    db: Session = Depends(get_db),
):
    """What a published activity is worth for each of the professional's credentials"""
    service = CreditResolverService(db)
    activity, views = service.resolve_for_user(activity_id, user_id)

    return ActivityCreditsResponse(
        activity_id=activity.id,
        title=activity.title,
        credit_views=[CreditView.model_validate(v, from_attributes=True) for v in views],
        message=None if views else NO_HOLDINGS_MESSAGE,
    )


@router.get("/{activity_id}/credits/{holding_id}", response_model=CreditView)
async def get_activity_credits_for_holding(
    activity_id: int, holding_id: int, db: Session = Depends(get_db)
):
    """Credit view for a single credential holding"""
    service = CreditResolverService(db)
    view = service.resolve_for_holding(activity_id, holding_id)
    return CreditView.model_validate(view, from_attributes=True)
