"""
Institution search query construction.

Search filters are first turned into a ``QueryPlan``: the set of related
tables that must match (required joins) and the predicates to apply to each
of them. The plan is then compiled onto a SQLAlchemy query. Page and count
queries are compiled from the same plan, so both see the same filters and
joins and the total always agrees with the paged rows.
"""

import enum
import logging
import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

from sqlalchemy import and_, func
from sqlalchemy.orm import Query, Session, contains_eager, joinedload, selectinload

from models import (
    AdmissionCycle, City, EnglishRequirement, EnrollmentStat, Institution, InstitutionControl,
    InstitutionLevel, PopularMajor, SortEnum, State, UrbanizationLocale,
)
from schemas import SearchParams

logger = logging.getLogger(__name__)


class Relation(str, enum.Enum):
    CITY = "cities"
    STATE = "states"
    CONTROL = "institution_controls"
    LEVEL = "institution_levels"
    LOCALE = "urbanization_locales"
    POPULAR_MAJORS = "popular_majors"
    ADMISSION_CYCLES = "admission_cycles"
    ENGLISH_REQUIREMENTS = "english_requirements"
    ENROLLMENT_STATS = "enrollment_stats"


# Nested relations are only reachable through their parent
PARENTS = {
    Relation.STATE: Relation.CITY,
    Relation.ENGLISH_REQUIREMENTS: Relation.ADMISSION_CYCLES,
}

MODELS = {
    None: Institution,
    Relation.CITY: City,
    Relation.STATE: State,
    Relation.CONTROL: InstitutionControl,
    Relation.LEVEL: InstitutionLevel,
    Relation.LOCALE: UrbanizationLocale,
    Relation.POPULAR_MAJORS: PopularMajor,
    Relation.ADMISSION_CYCLES: AdmissionCycle,
    Relation.ENGLISH_REQUIREMENTS: EnglishRequirement,
    Relation.ENROLLMENT_STATS: EnrollmentStat,
}

# Many-to-one relations, compiled to inner joins in this order
JOIN_PATHS = [
    (Relation.CITY, Institution.city),
    (Relation.STATE, City.state),
    (Relation.CONTROL, Institution.control),
    (Relation.LEVEL, Institution.level),
    (Relation.LOCALE, Institution.locale),
]

OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    "eq": operator.eq,
    "gte": operator.ge,
    "lte": operator.le,
    "icontains": lambda column, value: column.icontains(value, autoescape=True),
    "not_null": lambda column, value: column.isnot(None),
}

# (search param, relation, column, operator)
FILTERS = [
    ("query", None, "institution_name", "icontains"),
    ("min_rank", None, "rank", "gte"),
    ("max_rank", None, "rank", "lte"),
    ("institution_control", Relation.CONTROL, "description", "eq"),
    ("institution_level", Relation.LEVEL, "description", "eq"),
    ("locale", Relation.LOCALE, "description", "eq"),
    ("major", Relation.POPULAR_MAJORS, "major_name", "eq"),
    ("state", Relation.STATE, "name", "eq"),
    ("city", Relation.CITY, "name", "eq"),
    ("toefl_score", Relation.ENGLISH_REQUIREMENTS, "toefl_minimum", "lte"),
    ("ielts_score", Relation.ENGLISH_REQUIREMENTS, "ielts_minimum", "lte"),
    ("max_tuition_intl", Relation.ENGLISH_REQUIREMENTS, "out_of_state_tuition_intl", "lte"),
    ("min_acceptance_rate", Relation.ADMISSION_CYCLES, "percent_admitted_total", "gte"),
    ("min_intl_percent", Relation.ENROLLMENT_STATS, "percent_nonresident", "gte"),
]

ORDERINGS = {
    SortEnum.RANK_ASC: lambda: [Institution.rank.asc().nulls_last()],
    SortEnum.RANK_DESC: lambda: [Institution.rank.desc().nulls_last()],
    SortEnum.NAME_ASC: lambda: [Institution.institution_name.asc()],
    SortEnum.NAME_DESC: lambda: [Institution.institution_name.desc()],
}


@dataclass(frozen=True)
class Predicate:
    relation: Optional[Relation]  # None targets the institutions table itself
    column: str
    op: str
    value: Any = None

    def compile(self):
        column = getattr(MODELS[self.relation], self.column)
        return OPERATORS[self.op](column, self.value)


@dataclass
class QueryPlan:
    required: Set[Relation] = field(default_factory=set)
    predicates: List[Predicate] = field(default_factory=list)

    def require(self, relation: Relation):
        while relation is not None:
            self.required.add(relation)
            relation = PARENTS.get(relation)

    def add(self, relation: Optional[Relation], column: str, op: str, value: Any = None):
        if relation is not None:
            self.require(relation)
        self.predicates.append(Predicate(relation, column, op, value))

    def criteria(self, relation: Optional[Relation]) -> list:
        return [p.compile() for p in self.predicates if p.relation is relation]


def plan_search(params: SearchParams) -> QueryPlan:
    """Collect required joins and predicates for every filter that is set."""
    plan = QueryPlan()
    for name, relation, column, op in FILTERS:
        value = getattr(params, name)
        if value is None:
            continue
        plan.add(relation, column, op, value)
    if params.only_ranked:
        plan.add(None, "rank", "not_null")
    return plan


def _exists(collection, criteria: list):
    if not criteria:
        return collection.any()
    return collection.any(and_(*criteria))


def _has(reference, criteria: list):
    if not criteria:
        return reference.has()
    return reference.has(and_(*criteria))


def apply_plan(query: Query, plan: QueryPlan) -> Query:
    """Add the plan's required joins and predicates to a query over Institution."""
    for relation, path in JOIN_PATHS:
        if relation in plan.required:
            query = query.join(path)

    criteria = plan.criteria(None)
    for relation, _ in JOIN_PATHS:
        criteria.extend(plan.criteria(relation))

    # One-to-many relations match through EXISTS so institutions are never duplicated
    if Relation.POPULAR_MAJORS in plan.required:
        criteria.append(_exists(Institution.popular_majors, plan.criteria(Relation.POPULAR_MAJORS)))

    if Relation.ADMISSION_CYCLES in plan.required:
        cycle_criteria = plan.criteria(Relation.ADMISSION_CYCLES)
        if Relation.ENGLISH_REQUIREMENTS in plan.required:
            english = plan.criteria(Relation.ENGLISH_REQUIREMENTS)
            cycle_criteria.append(_has(AdmissionCycle.english_requirement, english))
        criteria.append(_exists(Institution.admission_cycles, cycle_criteria))

    if Relation.ENROLLMENT_STATS in plan.required:
        criteria.append(_exists(Institution.enrollment_stats, plan.criteria(Relation.ENROLLMENT_STATS)))

    if criteria:
        query = query.filter(*criteria)
    return query


def _load_options(plan: QueryPlan) -> list:
    """Eager loads for display: reuse required joins, outer-join the rest."""
    if Relation.CITY in plan.required:
        city = contains_eager(Institution.city)
        city = city.contains_eager(City.state) if Relation.STATE in plan.required else city.joinedload(City.state)
    else:
        city = joinedload(Institution.city).joinedload(City.state)

    options = [city]
    for relation, path in ((Relation.CONTROL, Institution.control),
                           (Relation.LEVEL, Institution.level),
                           (Relation.LOCALE, Institution.locale)):
        options.append(contains_eager(path) if relation in plan.required else joinedload(path))
    options.append(selectinload(Institution.admission_cycles))
    return options


def page_query(db: Session, plan: QueryPlan, params: SearchParams) -> Query:
    query = apply_plan(db.query(Institution), plan)
    query = query.options(*_load_options(plan))
    ordering = ORDERINGS[params.sort]() + [Institution.institution_id.asc()]
    return query.order_by(*ordering).offset(params.offset).limit(params.limit)


def count_query(db: Session, plan: QueryPlan) -> Query:
    query = db.query(func.count(Institution.institution_id)).select_from(Institution)
    return apply_plan(query, plan)


def search(db: Session, params: SearchParams) -> List[Institution]:
    plan = plan_search(params)
    logger.info(f"Institution search: required={sorted(r.value for r in plan.required)}, "
                f"predicates={len(plan.predicates)}, offset={params.offset}, limit={params.limit}")
    return page_query(db, plan, params).all()


def count(db: Session, params: SearchParams) -> int:
    return count_query(db, plan_search(params)).scalar() or 0
