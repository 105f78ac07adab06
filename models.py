from sqlalchemy import (
    Column, Integer, String, Boolean, Enum, Float, ForeignKey, DateTime, Text, JSON, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum

Base = declarative_base()

# Enums
class AdminRoleEnum(str, enum.Enum):
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

class SortEnum(str, enum.Enum):
    RANK_ASC = "rank_asc"
    RANK_DESC = "rank_desc"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"

# Location
class State(Base):
    __tablename__ = "states"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)

    cities = relationship("City", back_populates="state")

class City(Base):
    __tablename__ = "cities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    state_id = Column(Integer, ForeignKey("states.id"), nullable=True)

    state = relationship("State", back_populates="cities")

# Classification lookups
class InstitutionControl(Base):
    __tablename__ = "institution_controls"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String(50), unique=True, nullable=False)

class InstitutionLevel(Base):
    __tablename__ = "institution_levels"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String(50), unique=True, nullable=False)

class UrbanizationLocale(Base):
    __tablename__ = "urbanization_locales"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String(100), unique=True, nullable=False)

# Institutions
class Institution(Base):
    __tablename__ = "institutions"

    institution_id = Column(Integer, primary_key=True, index=True)
    institution_name = Column(String(500), nullable=False, index=True)
    rank = Column(Integer, nullable=True, index=True)  # NULL = unranked
    city_id = Column(Integer, ForeignKey("cities.id"), nullable=True)
    level_id = Column(Integer, ForeignKey("institution_levels.id"), nullable=True)
    control_id = Column(Integer, ForeignKey("institution_controls.id"), nullable=True)
    locale_id = Column(Integer, ForeignKey("urbanization_locales.id"), nullable=True)

    city = relationship("City")
    level = relationship("InstitutionLevel")
    control = relationship("InstitutionControl")
    locale = relationship("UrbanizationLocale")

    admission_cycles = relationship(
        "AdmissionCycle",
        back_populates="institution",
        cascade="all, delete-orphan",
        order_by="(AdmissionCycle.year_admissions.desc(), AdmissionCycle.id)",
    )
    enrollment_stats = relationship(
        "EnrollmentStat",
        back_populates="institution",
        cascade="all, delete-orphan",
        order_by="(EnrollmentStat.year_enrollment.desc(), EnrollmentStat.id)",
    )
    popular_majors = relationship(
        "PopularMajor",
        back_populates="institution",
        cascade="all, delete-orphan",
        order_by="PopularMajor.id",
    )
    saved_by = relationship("SavedSchool", back_populates="institution", cascade="all, delete-orphan")

class AdmissionCycle(Base):
    __tablename__ = "admission_cycles"

    id = Column(Integer, primary_key=True, index=True)
    institution_id = Column(Integer, ForeignKey("institutions.institution_id", ondelete="CASCADE"), index=True)
    year_admissions = Column(Integer, nullable=False)
    tuition_and_fees = Column(Float)
    total_price_on_campus = Column(Float)
    total_price_off_campus = Column(Float)
    applicants_total = Column(Integer)
    percent_admitted_total = Column(Float)
    open_admission_policy = Column(String(50))

    institution = relationship("Institution", back_populates="admission_cycles")
    # One row per cycle for each of these
    admission_requirement = relationship(
        "AdmissionRequirement", back_populates="admission_cycle", uselist=False, cascade="all, delete-orphan"
    )
    test_score = relationship("TestScore", back_populates="admission_cycle", uselist=False, cascade="all, delete-orphan")
    english_requirement = relationship(
        "EnglishRequirement", back_populates="admission_cycle", uselist=False, cascade="all, delete-orphan"
    )
    international_documents = relationship(
        "InternationalDocument",
        back_populates="admission_cycle",
        cascade="all, delete-orphan",
        order_by="InternationalDocument.id",
    )

class AdmissionRequirement(Base):
    __tablename__ = "admission_requirements"

    id = Column(Integer, primary_key=True, index=True)
    admission_cycle_id = Column(Integer, ForeignKey("admission_cycles.id", ondelete="CASCADE"), unique=True)
    secondary_school_gpa = Column(String(50))
    secondary_school_rank = Column(String(50))
    secondary_school_record = Column(String(50))
    college_prep_program = Column(String(50))
    recommendations = Column(String(50))
    formal_demonstration = Column(String(50))
    work_experience = Column(String(50))
    personal_statement = Column(String(50))
    legacy_status = Column(String(50))
    admission_test_scores = Column(String(50))
    english_proficiency_test = Column(String(50))
    other_test = Column(String(50))

    admission_cycle = relationship("AdmissionCycle", back_populates="admission_requirement")

class TestScore(Base):
    __tablename__ = "test_scores"

    id = Column(Integer, primary_key=True, index=True)
    admission_cycle_id = Column(Integer, ForeignKey("admission_cycles.id", ondelete="CASCADE"), unique=True)
    sat_erw_25 = Column(Integer)
    sat_erw_75 = Column(Integer)
    sat_math_25 = Column(Integer)
    sat_math_75 = Column(Integer)
    act_composite_25 = Column(Integer)
    act_composite_75 = Column(Integer)

    admission_cycle = relationship("AdmissionCycle", back_populates="test_score")

class EnglishRequirement(Base):
    __tablename__ = "english_requirements"

    id = Column(Integer, primary_key=True, index=True)
    admission_cycle_id = Column(Integer, ForeignKey("admission_cycles.id", ondelete="CASCADE"), unique=True)
    out_of_state_tuition_intl = Column(Float)
    toefl_minimum = Column(Integer)
    toefl_section_requirements = Column(Text)
    ielts_minimum = Column(Float)
    ielts_section_requirements = Column(Text)
    english_exemptions = Column(Text)

    admission_cycle = relationship("AdmissionCycle", back_populates="english_requirement")

class InternationalDocument(Base):
    __tablename__ = "international_documents"

    id = Column(Integer, primary_key=True, index=True)
    admission_cycle_id = Column(Integer, ForeignKey("admission_cycles.id", ondelete="CASCADE"), index=True)
    document_name = Column(String(255), nullable=False)

    admission_cycle = relationship("AdmissionCycle", back_populates="international_documents")

class EnrollmentStat(Base):
    __tablename__ = "enrollment_stats"

    id = Column(Integer, primary_key=True, index=True)
    institution_id = Column(Integer, ForeignKey("institutions.institution_id", ondelete="CASCADE"), index=True)
    year_enrollment = Column(Integer, nullable=False)
    undergraduate_headcount = Column(Integer)
    percent_nonresident = Column(Float)
    associate_degree_count = Column(Integer)
    bachelor_degree_count = Column(Integer)
    percent_nonresident_secondary = Column(Float)

    institution = relationship("Institution", back_populates="enrollment_stats")

class PopularMajor(Base):
    __tablename__ = "popular_majors"

    id = Column(Integer, primary_key=True, index=True)
    institution_id = Column(Integer, ForeignKey("institutions.institution_id", ondelete="CASCADE"), index=True)
    major_name = Column(String(255), nullable=False)

    institution = relationship("Institution", back_populates="popular_majors")

# Accounts
class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255))
    country = Column(String(100))
    intended_major = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    admin = relationship("AdminUser", back_populates="user", uselist=False, cascade="all, delete-orphan")
    saved_schools = relationship("SavedSchool", back_populates="user", cascade="all, delete-orphan")

class UserSession(Base):
    __tablename__ = "user_sessions"

    token = Column(String(128), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    expires_at = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="sessions")

class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    role = Column(Enum(AdminRoleEnum), nullable=False, default=AdminRoleEnum.ADMIN)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="admin")

class SavedSchool(Base):
    __tablename__ = "saved_schools"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    institution_id = Column(
        Integer, ForeignKey("institutions.institution_id", ondelete="CASCADE"), nullable=False
    )
    notes = Column(Text)
    tags = Column(JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="saved_schools")
    institution = relationship("Institution", back_populates="saved_by")

    __table_args__ = (
        UniqueConstraint("user_id", "institution_id", name="uq_saved_school_user_institution"),
    )
