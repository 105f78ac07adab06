import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import crud
import schemas
from auth import RequestContext, require_user
from config import settings
from database import get_db
from errors import ERROR_RESPONSES, bad_request, conflict, not_found
from responses import build_page

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/saved-schools", tags=["saved-schools"], responses=ERROR_RESPONSES)


@router.get("")
def list_saved_schools(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    context: RequestContext = Depends(require_user),
):
    saved = crud.list_saved_schools(db, context.user.id, limit, offset)
    total = crud.count_saved_schools(db, context.user.id)
    return build_page([schemas.SavedSchoolResponse.model_validate(s) for s in saved], total, offset, limit)


@router.post("", status_code=201)
def save_school(
    payload: schemas.SavedSchoolCreate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(require_user),
):
    try:
        saved = crud.create_saved_school(db, context.user.id, payload.model_dump())
    except crud.InstitutionNotFoundError:
        raise not_found("Institution")
    except crud.AlreadySavedError:
        raise conflict("Institution already saved")
    return {"data": schemas.SavedSchoolRecord.model_validate(saved), "message": "School saved successfully"}


@router.post("/toggle", response_model=schemas.SaveToggleResponse)
def toggle_saved_school(
    payload: schemas.SaveToggleRequest,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(require_user),
):
    """Save the school if it isn't saved yet, otherwise remove it."""
    try:
        saved = crud.toggle_saved_school(db, context.user.id, payload.institution_id)
    except crud.InstitutionNotFoundError:
        raise not_found("Institution")
    except crud.SavedSchoolLimitError as e:
        raise bad_request(str(e))
    return schemas.SaveToggleResponse(saved=saved)


@router.get("/{saved_id}")
def get_saved_school(
    saved_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(require_user),
):
    saved = crud.get_saved_school(db, context.user.id, saved_id)
    if not saved:
        raise not_found("Saved school")
    return {"data": schemas.SavedSchoolResponse.model_validate(saved)}


@router.put("/{saved_id}")
def update_saved_school(
    saved_id: int,
    payload: schemas.SavedSchoolUpdate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(require_user),
):
    # Only notes and tags are editable
    saved = crud.update_saved_school(db, context.user.id, saved_id, payload.model_dump(exclude_unset=True))
    if not saved:
        raise not_found("Saved school")
    return {"data": schemas.SavedSchoolRecord.model_validate(saved), "message": "Saved school updated successfully"}


@router.delete("/{saved_id}")
def delete_saved_school(
    saved_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(require_user),
):
    if not crud.delete_saved_school(db, context.user.id, saved_id):
        raise not_found("Saved school")
    return {"message": "School removed from saved list"}
