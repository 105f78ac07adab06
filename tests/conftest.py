import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import crud
import models
from auth import get_password_hash
from database import get_db
from main import app

PASSWORD = "password123"
PASSWORD_HASH = get_password_hash(PASSWORD)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _institution(db, name, rank, city=None, control=None, level=None, locale=None,
                 cycles=(), enrollment=None, majors=()):
    institution = models.Institution(
        institution_name=name,
        rank=rank,
        city=city,
        control=control,
        level=level,
        locale=locale,
    )
    for cycle in cycles:
        english = cycle.pop("english", None)
        documents = cycle.pop("documents", ())
        admission_cycle = models.AdmissionCycle(**cycle)
        if english:
            admission_cycle.english_requirement = models.EnglishRequirement(**english)
        admission_cycle.international_documents = [
            models.InternationalDocument(document_name=name) for name in documents
        ]
        institution.admission_cycles.append(admission_cycle)
    if enrollment is not None:
        institution.enrollment_stats.append(
            models.EnrollmentStat(year_enrollment=2023, undergraduate_headcount=10000, percent_nonresident=enrollment)
        )
    institution.popular_majors = [models.PopularMajor(major_name=major) for major in majors]
    db.add(institution)
    return institution


@pytest.fixture
def catalog(db):
    """
    Seven institutions across two states.

    Ranked: Cornell 12, UCLA 15, Berkeley 20, USC 28, NYCC 120.
    Unranked: California Community Institute, Unranked Plains College.
    """
    california = models.State(name="California")
    new_york = models.State(name="New York")
    los_angeles = models.City(name="Los Angeles", state=california)
    berkeley = models.City(name="Berkeley", state=california)
    nyc = models.City(name="New York City", state=new_york)
    ithaca = models.City(name="Ithaca", state=new_york)

    public = models.InstitutionControl(description="Public")
    private = models.InstitutionControl(description="Private nonprofit")
    four_year = models.InstitutionLevel(description="Four or more years")
    two_year = models.InstitutionLevel(description="At least 2 but less than 4 years")
    city_locale = models.UrbanizationLocale(description="City")
    suburb = models.UrbanizationLocale(description="Suburb")
    town = models.UrbanizationLocale(description="Town")

    ucla = _institution(
        db, "University of California-Los Angeles", 15, los_angeles, public, four_year, city_locale,
        cycles=[dict(year_admissions=2023, tuition_and_fees=13000, applicants_total=145000,
                     percent_admitted_total=9,
                     english=dict(toefl_minimum=100, ielts_minimum=7.0, out_of_state_tuition_intl=44000),
                     documents=["Passport", "Financial Statement"])],
        enrollment=12, majors=["Biology", "Economics"],
    )
    cal = _institution(
        db, "University of California-Berkeley", 20, berkeley, public, four_year, city_locale,
        cycles=[dict(year_admissions=2023, tuition_and_fees=14000, percent_admitted_total=11.5,
                     english=dict(toefl_minimum=90, ielts_minimum=6.5, out_of_state_tuition_intl=45000),
                     documents=["Passport"])],
        enrollment=14, majors=["Computer Science", "Economics"],
    )
    usc = _institution(
        db, "University of Southern California", 28, los_angeles, private, four_year, city_locale,
        cycles=[dict(year_admissions=2023, tuition_and_fees=66000, percent_admitted_total=12,
                     english=dict(toefl_minimum=100, ielts_minimum=7.0, out_of_state_tuition_intl=66000))],
        enrollment=25, majors=["Business"],
    )
    cci = _institution(
        db, "California Community Institute", None, los_angeles, public, two_year, suburb,
        cycles=[dict(year_admissions=2023, tuition_and_fees=1500, percent_admitted_total=100,
                     open_admission_policy="Yes")],
        enrollment=2, majors=["Nursing"],
    )
    cornell = _institution(
        db, "Cornell University", 12, ithaca, private, four_year, town,
        cycles=[dict(year_admissions=2023, tuition_and_fees=65000, percent_admitted_total=7.5,
                     english=dict(toefl_minimum=100, ielts_minimum=7.0, out_of_state_tuition_intl=65000),
                     documents=["Passport", "Bank Letter"])],
        enrollment=24, majors=["Computer Science", "Biology"],
    )
    nycc = _institution(
        db, "New York City College", 120, nyc, public, four_year, city_locale,
        cycles=[
            dict(year_admissions=2022, tuition_and_fees=7000, percent_admitted_total=30,
                 english=dict(toefl_minimum=61, ielts_minimum=6.0, out_of_state_tuition_intl=20000)),
            dict(year_admissions=2023, tuition_and_fees=7500, percent_admitted_total=50),
        ],
        enrollment=8, majors=["Nursing"],
    )
    plains = _institution(db, "Unranked Plains College", None)
    db.commit()

    return {
        "ucla": ucla.institution_id,
        "berkeley": cal.institution_id,
        "usc": usc.institution_id,
        "cci": cci.institution_id,
        "cornell": cornell.institution_id,
        "nycc": nycc.institution_id,
        "plains": plains.institution_id,
        "los_angeles": los_angeles.id,
        "public": public.id,
    }


@pytest.fixture
def make_user(db):
    def _make_user(email, admin=False):
        user = crud.create_user(db, email=email, password_hash=PASSWORD_HASH, full_name=email.split("@")[0])
        if admin:
            crud.grant_admin(db, user.id)
        token = crud.create_session(db, user.id)
        return user.id, {"Authorization": f"Bearer {token}"}
    return _make_user


@pytest.fixture
def user_headers(make_user):
    return make_user("student@example.com")[1]


@pytest.fixture
def admin_headers(make_user):
    return make_user("admin@example.com", admin=True)[1]
