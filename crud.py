"""
CRUD operations for database models.
"""

from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func
from models import (
    AdminRoleEnum, AdminUser, AdmissionCycle, City, EnglishRequirement, EnrollmentStat, Institution,
    InstitutionControl, InstitutionLevel, InternationalDocument, PopularMajor, SavedSchool, State,
    UrbanizationLocale, User, UserSession,
)
from schemas import SearchParams
from config import settings
from typing import List, Optional, Dict
from datetime import datetime, timedelta
from uuid import uuid4
import institution_query
import logging
import secrets

logger = logging.getLogger(__name__)


class InstitutionNotFoundError(LookupError):
    pass

class AlreadySavedError(Exception):
    pass

class SavedSchoolLimitError(Exception):
    def __init__(self, limit: int):
        super().__init__(f"Limit reached. You can only save up to {limit} schools.")
        self.limit = limit

class EmailTakenError(Exception):
    pass

# Institution operations
def search_institutions(db: Session, params: SearchParams) -> List[Institution]:
    """One page of institutions matching the filters."""
    return institution_query.search(db, params)

def count_institutions(db: Session, params: SearchParams) -> int:
    """Exact number of institutions matching the filters."""
    return institution_query.count(db, params)

def get_institution(db: Session, institution_id: int) -> Optional[Institution]:
    """Get institution by ID with all nested detail."""
    return (
        db.query(Institution)
        .options(
            joinedload(Institution.city).joinedload(City.state),
            joinedload(Institution.control),
            joinedload(Institution.level),
            joinedload(Institution.locale),
            selectinload(Institution.admission_cycles).options(
                joinedload(AdmissionCycle.admission_requirement),
                joinedload(AdmissionCycle.test_score),
                joinedload(AdmissionCycle.english_requirement),
                selectinload(AdmissionCycle.international_documents),
            ),
            selectinload(Institution.enrollment_stats),
            selectinload(Institution.popular_majors),
        )
        .filter(Institution.institution_id == institution_id)
        .first()
    )

_REFERENCES = {
    "city_id": City,
    "level_id": InstitutionLevel,
    "control_id": InstitutionControl,
    "locale_id": UrbanizationLocale,
}

def _check_references(db: Session, data: Dict):
    for key, model in _REFERENCES.items():
        value = data.get(key)
        if value is not None and db.get(model, value) is None:
            raise ValueError(f"Unknown {key}: {value}")

def create_institution(db: Session, data: Dict) -> Institution:
    """Create a new institution."""
    _check_references(db, data)
    try:
        institution = Institution(**data)
        db.add(institution)
        db.commit()
        db.refresh(institution)
        logger.info(f"Created institution {institution.institution_id} ({institution.institution_name})")
        return institution
    except Exception as e:
        logger.error(f"create_institution failed: {str(e)}")
        db.rollback()
        raise

def update_institution(db: Session, institution_id: int, changes: Dict) -> Optional[Institution]:
    """Apply the given field changes. Returns None if the institution does not exist."""
    institution = db.get(Institution, institution_id)
    if not institution:
        return None
    _check_references(db, changes)
    try:
        for key, value in changes.items():
            setattr(institution, key, value)
        db.commit()
        db.refresh(institution)
        return institution
    except Exception as e:
        logger.error(f"update_institution failed: {str(e)}")
        db.rollback()
        raise

def delete_institution(db: Session, institution_id: int) -> bool:
    """Delete institution and everything that belongs to it."""
    institution = db.get(Institution, institution_id)
    if not institution:
        return False
    try:
        db.delete(institution)
        db.commit()
        logger.info(f"Deleted institution {institution_id}")
        return True
    except Exception as e:
        logger.error(f"delete_institution failed: {str(e)}")
        db.rollback()
        raise

# Admission cycle operations
def _admission_cycles(db: Session, institution_id: Optional[int], year: Optional[int]):
    query = db.query(AdmissionCycle)
    if institution_id is not None:
        query = query.filter(AdmissionCycle.institution_id == institution_id)
    if year is not None:
        query = query.filter(AdmissionCycle.year_admissions == year)
    return query

def list_admission_cycles(
    db: Session,
    institution_id: Optional[int] = None,
    year: Optional[int] = None,
    limit: int = 20,
    offset: int = 0,
) -> List[AdmissionCycle]:
    """Admission cycles, most recent year first."""
    return (
        _admission_cycles(db, institution_id, year)
        .options(
            joinedload(AdmissionCycle.institution),
            joinedload(AdmissionCycle.admission_requirement),
            joinedload(AdmissionCycle.test_score),
            joinedload(AdmissionCycle.english_requirement),
            selectinload(AdmissionCycle.international_documents),
        )
        .order_by(AdmissionCycle.year_admissions.desc(), AdmissionCycle.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )

def count_admission_cycles(db: Session, institution_id: Optional[int] = None, year: Optional[int] = None) -> int:
    return _admission_cycles(db, institution_id, year).count()

def get_admission_cycle(db: Session, cycle_id: int) -> Optional[AdmissionCycle]:
    return (
        db.query(AdmissionCycle)
        .options(
            joinedload(AdmissionCycle.institution).joinedload(Institution.city).joinedload(City.state),
            joinedload(AdmissionCycle.institution).selectinload(Institution.enrollment_stats),
            selectinload(AdmissionCycle.international_documents),
        )
        .filter(AdmissionCycle.id == cycle_id)
        .first()
    )

# Reference data
def _distinct_sorted(db: Session, column) -> List[str]:
    return sorted({value for (value,) in db.query(column).distinct() if value is not None})

def list_popular_majors(db: Session) -> List[str]:
    return _distinct_sorted(db, PopularMajor.major_name)

def list_international_documents(db: Session) -> List[str]:
    return _distinct_sorted(db, InternationalDocument.document_name)

def list_states(db: Session) -> List[str]:
    return [name for (name,) in db.query(State.name).order_by(State.name)]

def list_locales(db: Session) -> List[str]:
    return [description for (description,) in db.query(UrbanizationLocale.description).order_by(UrbanizationLocale.description)]

def list_cities(db: Session) -> List[Dict]:
    rows = db.query(City.name, State.name).outerjoin(City.state).order_by(City.name, State.name)
    return [{"name": city, "state": state} for city, state in rows]

def _value_range(db: Session, column, default_min: float, default_max: float) -> Dict:
    low, high = db.query(func.min(column), func.max(column)).one()
    if low is None or high is None:
        return {"min": default_min, "max": default_max}
    return {"min": low, "max": high}

def get_search_metadata(db: Session) -> Dict:
    """Min/max of the numeric filter dimensions, for slider bounds."""
    return {
        "toefl": _value_range(db, EnglishRequirement.toefl_minimum, 0, 120),
        "ielts": _value_range(db, EnglishRequirement.ielts_minimum, 0, 9),
        "tuition_intl": _value_range(db, EnglishRequirement.out_of_state_tuition_intl, 0, 100000),
        "percent_intl": _value_range(db, EnrollmentStat.percent_nonresident, 0, 100),
    }

# Saved school operations
def _saved_schools(db: Session, user_id: str):
    return db.query(SavedSchool).filter(SavedSchool.user_id == user_id)

def list_saved_schools(db: Session, user_id: str, limit: int = 20, offset: int = 0) -> List[SavedSchool]:
    """User's saved schools, newest first."""
    return (
        _saved_schools(db, user_id)
        .options(
            joinedload(SavedSchool.institution).joinedload(Institution.city).joinedload(City.state),
            joinedload(SavedSchool.institution).joinedload(Institution.control),
        )
        .order_by(SavedSchool.created_at.desc(), SavedSchool.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

def count_saved_schools(db: Session, user_id: str) -> int:
    return _saved_schools(db, user_id).count()

def get_saved_school(db: Session, user_id: str, saved_id: int) -> Optional[SavedSchool]:
    return _saved_schools(db, user_id).filter(SavedSchool.id == saved_id).first()

def find_saved_school(db: Session, user_id: str, institution_id: int) -> Optional[SavedSchool]:
    return _saved_schools(db, user_id).filter(SavedSchool.institution_id == institution_id).first()

def create_saved_school(db: Session, user_id: str, data: Dict) -> SavedSchool:
    """Save an institution for a user. Each institution can be saved once per user."""
    if db.get(Institution, data["institution_id"]) is None:
        raise InstitutionNotFoundError(data["institution_id"])
    if find_saved_school(db, user_id, data["institution_id"]):
        raise AlreadySavedError(data["institution_id"])

    saved = SavedSchool(user_id=user_id, **data)
    db.add(saved)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadySavedError(data["institution_id"])
    db.refresh(saved)
    return saved

def update_saved_school(db: Session, user_id: str, saved_id: int, changes: Dict) -> Optional[SavedSchool]:
    saved = get_saved_school(db, user_id, saved_id)
    if not saved:
        return None
    for key, value in changes.items():
        setattr(saved, key, value)
    saved.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(saved)
    return saved

def delete_saved_school(db: Session, user_id: str, saved_id: int) -> bool:
    deleted = _saved_schools(db, user_id).filter(SavedSchool.id == saved_id).delete(synchronize_session=False)
    db.commit()
    return deleted > 0

def toggle_saved_school(db: Session, user_id: str, institution_id: int, limit: Optional[int] = None) -> bool:
    """
    Save the institution if it is not saved yet, otherwise unsave it.

    Returns the new state (True = saved). Raises SavedSchoolLimitError when
    the user is already at the cap; nothing is changed in that case.
    """
    limit = settings.SAVED_SCHOOLS_LIMIT if limit is None else limit
    if db.get(Institution, institution_id) is None:
        raise InstitutionNotFoundError(institution_id)

    deleted = (
        _saved_schools(db, user_id)
        .filter(SavedSchool.institution_id == institution_id)
        .delete(synchronize_session=False)
    )
    if deleted:
        db.commit()
        logger.info(f"[SAVED] User {user_id} unsaved institution {institution_id}")
        return False

    if count_saved_schools(db, user_id) >= limit:
        db.rollback()
        raise SavedSchoolLimitError(limit)

    db.add(SavedSchool(user_id=user_id, institution_id=institution_id))
    try:
        db.commit()
    except IntegrityError:
        # A concurrent toggle inserted the same row first
        db.rollback()
        logger.warning(f"[SAVED] Duplicate save for user {user_id}, institution {institution_id}")
    logger.info(f"[SAVED] User {user_id} saved institution {institution_id}")
    return True

# User operations
def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get user by email."""
    return db.query(User).filter(func.lower(User.email) == email.lower()).first()

def create_user(db: Session, email: str, password_hash: str, **profile) -> User:
    """Create a new user account."""
    if get_user_by_email(db, email):
        raise EmailTakenError(email)
    user = User(id=str(uuid4()), email=email, password_hash=password_hash, **profile)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise EmailTakenError(email)
    db.refresh(user)
    return user

def create_session(db: Session, user_id: str, ttl_hours: Optional[int] = None) -> str:
    """Issue a new opaque bearer token for the user."""
    ttl_hours = settings.SESSION_TTL_HOURS if ttl_hours is None else ttl_hours
    token = secrets.token_urlsafe(32)
    db.add(UserSession(token=token, user_id=user_id, expires_at=datetime.utcnow() + timedelta(hours=ttl_hours)))
    db.commit()
    return token

def get_session_user(db: Session, token: str) -> Optional[User]:
    """Resolve a bearer token to its user. Expired or unknown tokens resolve to None."""
    session = db.get(UserSession, token)
    if not session:
        return None
    if session.expires_at <= datetime.utcnow():
        return None
    return session.user

def delete_session(db: Session, token: str) -> bool:
    deleted = db.query(UserSession).filter(UserSession.token == token).delete(synchronize_session=False)
    db.commit()
    return deleted > 0

def is_admin(db: Session, user_id: str) -> bool:
    return (
        db.query(AdminUser)
        .filter(AdminUser.user_id == user_id, AdminUser.is_active.isnot(False))
        .first()
        is not None
    )

def grant_admin(db: Session, user_id: str, role: AdminRoleEnum = AdminRoleEnum.ADMIN) -> AdminUser:
    """Make the user an active admin (UPSERT)."""
    admin = db.query(AdminUser).filter(AdminUser.user_id == user_id).first()
    if admin:
        admin.role = role
        admin.is_active = True
    else:
        admin = AdminUser(user_id=user_id, role=role, is_active=True)
        db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin
