import logging

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

import crud
import schemas
from auth import RequestContext, authenticate, get_password_hash, require_user
from database import get_db
from errors import ERROR_RESPONSES, ApiError, conflict

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["accounts"], responses=ERROR_RESPONSES)


@router.post("/register", response_model=schemas.UserResponse, status_code=201)
def register(payload: schemas.UserCreate, db: Session = Depends(get_db)):
    try:
        user = crud.create_user(
            db,
            email=payload.email,
            password_hash=get_password_hash(payload.password),
            full_name=payload.full_name,
            country=payload.country,
            intended_major=payload.intended_major,
        )
    except crud.EmailTakenError:
        raise conflict("Email already registered")
    logger.info(f"[AUTH] Registered user {user.id}")
    return user


@router.post("/token", response_model=schemas.TokenResponse)
def login(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """Exchange email (as username) and password for a bearer token."""
    user = authenticate(db, form.username, form.password)
    if not user:
        raise ApiError(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return schemas.TokenResponse(access_token=crud.create_session(db, user.id))


@router.post("/logout")
def logout(db: Session = Depends(get_db), context: RequestContext = Depends(require_user)):
    crud.delete_session(db, context.token)
    return {"message": "Logged out"}


@router.get("/me", response_model=schemas.MeResponse)
def me(context: RequestContext = Depends(require_user)):
    profile = schemas.UserResponse.model_validate(context.user)
    return schemas.MeResponse(**profile.model_dump(), is_admin=context.is_admin)
