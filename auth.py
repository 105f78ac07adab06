from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, status
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

import crud
from database import get_db
from errors import ApiError
from models import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


@dataclass(frozen=True)
class RequestContext:
    """Identity resolved for a single request. ``user`` is None for anonymous callers."""
    user: Optional[User] = None
    token: Optional[str] = None
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)

def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = crud.get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user

def get_request_context(db: Session = Depends(get_db), token: Optional[str] = Depends(oauth2_scheme)) -> RequestContext:
    if not token:
        return RequestContext()
    user = crud.get_session_user(db, token)
    if not user:
        return RequestContext()
    return RequestContext(user=user, token=token, is_admin=crud.is_admin(db, user.id))

def require_user(context: RequestContext = Depends(get_request_context)) -> RequestContext:
    if not context.is_authenticated:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Unauthorized", headers={"WWW-Authenticate": "Bearer"})
    return context

def require_admin(context: RequestContext = Depends(require_user)) -> RequestContext:
    if not context.is_admin:
        raise ApiError(status.HTTP_403_FORBIDDEN, "Forbidden - Admin access required")
    return context
