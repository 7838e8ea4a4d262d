from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.schemas.cpd_record import CPDRecordResponse, CPDRecordUpdate
from app.services.cpd_record_service import CPDRecordService
from typing import Any, Dict

router = APIRouter(prefix="/api/cpd-records", tags=["CPD Records"])


@router.get("/{record_id}", response_model=CPDRecordResponse)
async def get_cpd_record(record_id: int, db: Session = Depends(get_db)):
    return CPDRecordResponse.model_validate(CPDRecordService(db).get_record(record_id))


@router.patch("/{record_id}", response_model=CPDRecordResponse)
async def update_cpd_record(
    record_id: int, request: CPDRecordUpdate, db: Session = Depends(get_db)
):
    """Edit a logged activity; platform-generated records are read-only"""
    changes = request.model_dump(exclude_unset=True)
    record = CPDRecordService(db).update_record(record_id, changes)
    return CPDRecordResponse.model_validate(record)


@router.delete("/{record_id}")
async def delete_cpd_record(record_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Delete a logged activity; platform-generated records are kept"""
    CPDRecordService(db).delete_record(record_id)
    return {"deleted": True, "id": record_id}
