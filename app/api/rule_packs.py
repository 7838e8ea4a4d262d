from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.models.credential import RulePack
from app.schemas.rule_pack import RulePackCreate, RulePackResponse, ResolvedRules
from app.services.rule_pack_service import RulePackService
from datetime import date
from typing import List, Optional

router = APIRouter(prefix="/api/rule-packs", tags=["Rule Packs"])


def _pack_response(pack: RulePack) -> RulePackResponse:
    return RulePackResponse(
        id=pack.id,
        credential_id=pack.credential_id,
        version=pack.version,
        name=pack.name,
        rules=pack.get_rules(),
        effective_from=pack.effective_from,
        effective_to=pack.effective_to,
        changelog=pack.changelog,
        created_at=pack.created_at,
    )


@router.get("/", response_model=List[RulePackResponse])
async def list_rule_packs(
    credential_id: Optional[int] = Query(None), db: Session = Depends(get_db)
):
    """List rule packs, newest effective date first per credential"""
    packs = RulePackService(db).list_rule_packs(credential_id)
    return [_pack_response(p) for p in packs]


@router.post("/", response_model=RulePackResponse, status_code=201)
async def create_rule_pack(request: RulePackCreate, db: Session = Depends(get_db)):
    """Create the next rule pack version, closing the currently open one"""
    pack = RulePackService(db).create_rule_pack(
        credential_id=request.credential_id,
        name=request.name,
        rules=request.rules,
        effective_from=request.effective_from,
        effective_to=request.effective_to,
        changelog=request.changelog,
    )
    return _pack_response(pack)


@router.get("/resolve", response_model=ResolvedRules)
async def resolve_rule_pack(
    credential_id: int = Query(...),
    on_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
):
    """Rules in force for a credential on a date (today by default)"""
    resolved = RulePackService(db).resolve_rule_pack(credential_id, on_date)
    return ResolvedRules.model_validate(resolved, from_attributes=True)


@router.get("/{pack_id}", response_model=RulePackResponse)
async def get_rule_pack(pack_id: int, db: Session = Depends(get_db)):
    return _pack_response(RulePackService(db).get_rule_pack(pack_id))
