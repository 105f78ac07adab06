import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

import crud
import schemas
from auth import RequestContext, require_admin
from config import settings
from database import get_db
from errors import ERROR_RESPONSES, bad_request, not_found
from responses import build_page, cached_json_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/institutions", tags=["institutions"], responses=ERROR_RESPONSES)


def get_search_params(request: Request) -> schemas.SearchParams:
    """Validate the raw query string. Empty values count as absent."""
    raw = {key: value for key, value in request.query_params.items() if value != ""}
    try:
        return schemas.SearchParams.model_validate(raw)
    except ValidationError as e:
        logger.info(f"Rejected search parameters: {e.errors()}")
        raise bad_request("Invalid search parameters")


@router.get("")
def search_institutions(
    request: Request,
    params: schemas.SearchParams = Depends(get_search_params),
    db: Session = Depends(get_db),
):
    """Paged, filtered institution search with ETag support."""
    rows = crud.search_institutions(db, params)
    total = crud.count_institutions(db, params)
    page = build_page(
        [schemas.InstitutionSummary.model_validate(row) for row in rows],
        total,
        params.offset,
        params.limit,
    )
    return cached_json_response(request, page, settings.SEARCH_CACHE_CONTROL)


@router.post("", status_code=201)
def create_institution(
    payload: schemas.InstitutionCreate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(require_admin),
):
    try:
        institution = crud.create_institution(db, payload.model_dump())
    except ValueError as e:
        raise bad_request("Invalid institution", str(e))
    logger.info(f"[ADMIN] {context.user.email} created institution {institution.institution_id}")
    return {
        "data": schemas.InstitutionRecord.model_validate(institution),
        "message": "Institution created successfully",
    }


@router.get("/{institution_id}")
def get_institution(institution_id: int, db: Session = Depends(get_db)):
    institution = crud.get_institution(db, institution_id)
    if not institution:
        raise not_found("Institution")
    return {"data": schemas.InstitutionDetail.model_validate(institution)}


@router.put("/{institution_id}")
def update_institution(
    institution_id: int,
    payload: schemas.InstitutionUpdate,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(require_admin),
):
    changes = payload.model_dump(exclude_unset=True)
    if "institution_name" in changes and changes["institution_name"] is None:
        raise bad_request("Invalid institution", "institution_name cannot be null")
    try:
        institution = crud.update_institution(db, institution_id, changes)
    except ValueError as e:
        raise bad_request("Invalid institution", str(e))
    if not institution:
        raise not_found("Institution")
    logger.info(f"[ADMIN] {context.user.email} updated institution {institution_id}: {sorted(changes)}")
    return {
        "data": schemas.InstitutionRecord.model_validate(institution),
        "message": "Institution updated successfully",
    }


@router.delete("/{institution_id}")
def delete_institution(
    institution_id: int,
    db: Session = Depends(get_db),
    context: RequestContext = Depends(require_admin),
):
    if not crud.delete_institution(db, institution_id):
        raise not_found("Institution")
    logger.info(f"[ADMIN] {context.user.email} deleted institution {institution_id}")
    return {"message": "Institution deleted successfully"}
