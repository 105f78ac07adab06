"""
Pydantic schemas for API requests and responses.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import List, Optional, Generic, TypeVar
from config import settings
from models import SortEnum

# Generic Wrapper
T = TypeVar('T')

class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    offset: int
    limit: int
    has_more: bool = Field(alias="hasMore")

class Page(BaseModel, Generic[T]):
    data: List[T]
    pagination: Pagination

# Search Schema
class SearchParams(BaseModel):
    """Validated institution search filters. Unset fields impose no filter."""
    query: Optional[str] = Field(None, max_length=255)
    state: Optional[str] = Field(None, max_length=50)
    city: Optional[str] = Field(None, max_length=100)
    institution_control: Optional[str] = Field(None, max_length=50)
    institution_level: Optional[str] = Field(None, max_length=50)
    locale: Optional[str] = Field(None, max_length=100)
    major: Optional[str] = Field(None, max_length=255)
    min_rank: Optional[int] = Field(None, ge=1)
    max_rank: Optional[int] = Field(None, ge=1)
    toefl_score: Optional[int] = Field(None, ge=0, le=120)
    ielts_score: Optional[float] = Field(None, ge=0, le=9)
    max_tuition_intl: Optional[float] = Field(None, ge=0)
    min_acceptance_rate: Optional[float] = Field(None, ge=0, le=100)
    min_intl_percent: Optional[float] = Field(None, ge=0, le=100)
    only_ranked: Optional[bool] = None
    sort: SortEnum = SortEnum.RANK_ASC
    limit: int = Field(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
    offset: int = Field(0, ge=0)

# Reference Schemas
class StateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str

class CityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    state: Optional[StateResponse] = None

class CityOption(BaseModel):
    name: str
    state: Optional[str] = None

class LookupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str

class RangeResponse(BaseModel):
    min: float
    max: float

class SearchMetadataResponse(BaseModel):
    toefl: RangeResponse
    ielts: RangeResponse
    tuition_intl: RangeResponse
    percent_intl: RangeResponse

# Admission Cycle Schemas
class AdmissionRequirementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    secondary_school_gpa: Optional[str] = None
    secondary_school_rank: Optional[str] = None
    secondary_school_record: Optional[str] = None
    college_prep_program: Optional[str] = None
    recommendations: Optional[str] = None
    formal_demonstration: Optional[str] = None
    work_experience: Optional[str] = None
    personal_statement: Optional[str] = None
    legacy_status: Optional[str] = None
    admission_test_scores: Optional[str] = None
    english_proficiency_test: Optional[str] = None
    other_test: Optional[str] = None

class TestScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sat_erw_25: Optional[int] = None
    sat_erw_75: Optional[int] = None
    sat_math_25: Optional[int] = None
    sat_math_75: Optional[int] = None
    act_composite_25: Optional[int] = None
    act_composite_75: Optional[int] = None

class EnglishRequirementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    out_of_state_tuition_intl: Optional[float] = None
    toefl_minimum: Optional[int] = None
    toefl_section_requirements: Optional[str] = None
    ielts_minimum: Optional[float] = None
    ielts_section_requirements: Optional[str] = None
    english_exemptions: Optional[str] = None

class InternationalDocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    document_name: str

class AdmissionCycleSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    year_admissions: int
    tuition_and_fees: Optional[float] = None
    percent_admitted_total: Optional[float] = None

class AdmissionCycleResponse(AdmissionCycleSummary):
    institution_id: Optional[int] = None
    total_price_on_campus: Optional[float] = None
    total_price_off_campus: Optional[float] = None
    applicants_total: Optional[int] = None
    open_admission_policy: Optional[str] = None
    admission_requirement: Optional[AdmissionRequirementResponse] = None
    test_score: Optional[TestScoreResponse] = None
    english_requirement: Optional[EnglishRequirementResponse] = None
    international_documents: List[InternationalDocumentResponse] = []

class EnrollmentStatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    year_enrollment: int
    undergraduate_headcount: Optional[int] = None
    percent_nonresident: Optional[float] = None
    associate_degree_count: Optional[int] = None
    bachelor_degree_count: Optional[int] = None
    percent_nonresident_secondary: Optional[float] = None

class PopularMajorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    major_name: str

# Institution Schemas
class InstitutionBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    institution_id: int
    institution_name: str
    rank: Optional[int] = None

class InstitutionWithLocation(InstitutionBrief):
    city: Optional[CityResponse] = None
    enrollment_stats: List[EnrollmentStatResponse] = []

class InstitutionSummary(InstitutionBrief):
    """One search result row."""
    city: Optional[CityResponse] = None
    control: Optional[LookupResponse] = None
    level: Optional[LookupResponse] = None
    locale: Optional[LookupResponse] = None
    admission_cycles: List[AdmissionCycleSummary] = []

class InstitutionDetail(InstitutionSummary):
    admission_cycles: List[AdmissionCycleResponse] = []
    enrollment_stats: List[EnrollmentStatResponse] = []
    popular_majors: List[PopularMajorResponse] = []

class InstitutionRecord(InstitutionBrief):
    city_id: Optional[int] = None
    level_id: Optional[int] = None
    control_id: Optional[int] = None
    locale_id: Optional[int] = None

class InstitutionCreate(BaseModel):
    institution_name: str = Field(..., min_length=1, max_length=500)
    rank: Optional[int] = Field(None, gt=0)
    city_id: Optional[int] = Field(None, gt=0)
    level_id: Optional[int] = Field(None, gt=0)
    control_id: Optional[int] = Field(None, gt=0)
    locale_id: Optional[int] = Field(None, gt=0)

class InstitutionUpdate(BaseModel):
    institution_name: Optional[str] = Field(None, min_length=1, max_length=500)
    rank: Optional[int] = Field(None, gt=0)
    city_id: Optional[int] = Field(None, gt=0)
    level_id: Optional[int] = Field(None, gt=0)
    control_id: Optional[int] = Field(None, gt=0)
    locale_id: Optional[int] = Field(None, gt=0)

class AdmissionCycleDetail(AdmissionCycleResponse):
    institution: Optional[InstitutionWithLocation] = None

class AdmissionCycleListItem(AdmissionCycleResponse):
    institution: Optional[InstitutionBrief] = None

# Saved School Schemas
class SavedSchoolCreate(BaseModel):
    institution_id: int = Field(..., gt=0)
    notes: Optional[str] = Field(None, max_length=2000)
    tags: Optional[List[str]] = None

class SavedSchoolUpdate(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)
    tags: Optional[List[str]] = None

class SavedSchoolRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    institution_id: int
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class SavedSchoolResponse(SavedSchoolRecord):
    institution: Optional[InstitutionSummary] = None

class SaveToggleRequest(BaseModel):
    institution_id: int = Field(..., gt=0)

class SaveToggleResponse(BaseModel):
    saved: bool

# User Schemas
class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: Optional[str] = Field(None, max_length=255)
    country: Optional[str] = Field(None, max_length=100)
    intended_major: Optional[str] = Field(None, max_length=255)

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    full_name: Optional[str] = None
    country: Optional[str] = None
    intended_major: Optional[str] = None

class MeResponse(UserResponse):
    is_admin: bool = False

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"

# Error Schema
class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
