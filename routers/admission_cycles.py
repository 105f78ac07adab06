from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

import crud
import schemas
from config import settings
from database import get_db
from errors import ERROR_RESPONSES, not_found
from responses import build_page, cached_json_response

router = APIRouter(prefix="/admission-cycles", tags=["admission-cycles"], responses=ERROR_RESPONSES)


@router.get("")
def list_admission_cycles(
    request: Request,
    institution_id: Optional[int] = Query(None, gt=0),
    year: Optional[int] = Query(None, ge=1900, le=2100),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    cycles = crud.list_admission_cycles(db, institution_id, year, limit, offset)
    total = crud.count_admission_cycles(db, institution_id, year)
    page = build_page(
        [schemas.AdmissionCycleListItem.model_validate(cycle) for cycle in cycles],
        total,
        offset,
        limit,
    )
    return cached_json_response(request, page, settings.ADMISSION_CYCLES_CACHE_CONTROL)


@router.get("/{cycle_id}")
def get_admission_cycle(cycle_id: int, db: Session = Depends(get_db)):
    cycle = crud.get_admission_cycle(db, cycle_id)
    if not cycle:
        raise not_found("Admission cycle")
    return {"data": schemas.AdmissionCycleDetail.model_validate(cycle)}
