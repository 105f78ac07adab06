from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import crud
import schemas
from database import get_db
from errors import ERROR_RESPONSES

router = APIRouter(tags=["reference"], responses=ERROR_RESPONSES)


@router.get("/popular-majors", response_model=List[str])
def popular_majors(db: Session = Depends(get_db)):
    """Distinct major names, sorted."""
    return crud.list_popular_majors(db)


@router.get("/international-documents", response_model=List[str])
def international_documents(db: Session = Depends(get_db)):
    """Distinct document names, sorted."""
    return crud.list_international_documents(db)


@router.get("/states", response_model=List[str])
def states(db: Session = Depends(get_db)):
    return crud.list_states(db)


@router.get("/cities", response_model=List[schemas.CityOption])
def cities(db: Session = Depends(get_db)):
    return crud.list_cities(db)


@router.get("/locales", response_model=List[str])
def locales(db: Session = Depends(get_db)):
    return crud.list_locales(db)


@router.get("/search-metadata", response_model=schemas.SearchMetadataResponse)
def search_metadata(db: Session = Depends(get_db)):
    """Value ranges for the numeric search filters."""
    return crud.get_search_metadata(db)
