"""Compile raw listing parameters into a deterministic query plan.

``compile_query`` accepts whatever mapping the caller has (HTTP query params,
CLI arguments, a test dict) and returns a :class:`QueryPlan`: the normalized
constraints, the search terms, a sort key and the page window. Invalid or
unknown entries are dropped and logged at debug level; compilation never
fails. ``apply_plan`` and ``count_statement`` turn the same plan into the page
query and the total-count query, so both always share one constraint set.

Every ordering ends with ``Project.id`` which makes the order total: equal
parameter sets yield the same page contents across calls.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy import Select, and_, case, func, or_, select
from sqlalchemy.sql.elements import ColumnElement

from freelanceflow.config import settings
from freelanceflow.db.models import (
    BudgetType,
    Category,
    ExperienceLevel,
    Project,
    ProjectSize,
    ProjectSkill,
    ProjectStatus,
    TimelineDuration,
)
from freelanceflow.logging import get_logger

logger = get_logger(__file__)

SEARCH_MAX_CHARS = 200
SEARCH_MAX_TERMS = 8

TITLE_WEIGHT = 3
SKILL_WEIGHT = 2
DESCRIPTION_WEIGHT = 1

SORT_KEYS = ("newest", "oldest", "budget_high", "budget_low", "most_proposals")
DEFAULT_SORT = "default"
RELEVANCE_SORT = "relevance"

_KEY_ALIASES = {
    "experienceLevel": "experience_level",
    "projectSize": "project_size",
    "budgetType": "budget_type",
    "budgetMin": "budget_min",
    "budgetMax": "budget_max",
    "isRemote": "is_remote",
    "isUrgent": "is_urgent",
    "timelineDuration": "timeline",
    "timeline_duration": "timeline",
    "clientId": "client",
    "client_id": "client",
    "freelancerId": "freelancer",
    "freelancer_id": "freelancer",
    "q": "search",
}

_ENUM_KEYS = {
    "category": Category,
    "status": ProjectStatus,
    "experience_level": ExperienceLevel,
    "project_size": ProjectSize,
    "timeline": TimelineDuration,
}

KNOWN_KEYS = frozenset(
    list(_ENUM_KEYS)
    + [
        "client",
        "freelancer",
        "location",
        "skills",
        "budget_type",
        "budget_min",
        "budget_max",
        "is_remote",
        "is_urgent",
        "search",
        "sort",
        "page",
        "limit",
    ]
)


@dataclass(frozen=True)
class BudgetRange:
    type: BudgetType
    minimum: float | None = None
    maximum: float | None = None


@dataclass(frozen=True)
class QueryPlan:
    """Normalized listing request.

    ``filters`` maps a constraint name to its parsed value; ``dropped`` lists
    the raw keys that were ignored, which is only informational.
    """

    filters: dict[str, Any] = field(default_factory=dict)
    skills: tuple[str, ...] = ()
    budget: BudgetRange | None = None
    search_terms: tuple[str, ...] = ()
    sort: str = DEFAULT_SORT
    page: int = 1
    limit: int = 12
    dropped: tuple[str, ...] = ()

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _first(value: Any) -> Any:
    if isinstance(value, (list, tuple)) and not isinstance(value, str):
        return value[0] if value else None
    return value


def _canonical_key(key: str) -> str:
    return _KEY_ALIASES.get(key, key)


def _parse_int(value: Any) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _parse_float(value: Any) -> float | None:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _parse_flag(value: Any) -> bool:
    if value is True:
        return True
    return isinstance(value, str) and value.strip().lower() == "true"


def _parse_skills(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple, set)):
        parts = [p for item in value for p in str(item).split(",")]
    else:
        return ()
    seen: dict[str, None] = {}
    for part in parts:
        pattern = part.strip().lower()
        if pattern:
            seen.setdefault(pattern, None)
    return tuple(seen)


def parse_search(text: Any) -> tuple[str, ...]:
    """Split free text into at most ``SEARCH_MAX_TERMS`` distinct lower-case terms."""

    if not isinstance(text, str):
        return ()
    terms: dict[str, None] = {}
    for raw in text[:SEARCH_MAX_CHARS].lower().split():
        terms.setdefault(raw, None)
        if len(terms) >= SEARCH_MAX_TERMS:
            break
    return tuple(terms)


def apply_default_status(filters: dict[str, Any]) -> dict[str, Any]:
    """Public browse shows only open projects.

    Runs after parsing: when the request names neither a status nor a client
    or freelancer, ``status=open`` is injected.
    """

    if not any(key in filters for key in ("status", "client", "freelancer")):
        filters = dict(filters)
        filters["status"] = ProjectStatus.open
    return filters


def _page_window(page_raw: Any, limit_raw: Any) -> tuple[int, int]:
    max_limit = settings.list_max_limit()
    limit = _parse_int(limit_raw) if limit_raw is not None else None
    if limit is None or limit < 1:
        limit = settings.list_default_limit()
    limit = min(limit, max_limit)

    page = _parse_int(page_raw) if page_raw is not None else None
    if page is None or page < 1:
        page = 1
    page = min(page, settings.list_max_page())
    return page, limit


def compile_query(params: Mapping[str, Any] | None) -> QueryPlan:
    """Build a :class:`QueryPlan` from ``params``. Never raises on bad input."""

    raw: dict[str, Any] = {}
    dropped: list[str] = []
    for key, value in (params or {}).items():
        canonical = _canonical_key(key)
        if canonical not in KNOWN_KEYS:
            logger.debug("Ignoring unknown listing parameter %r", key)
            dropped.append(key)
            continue
        value = _first(value) if canonical != "skills" else value
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        raw[canonical] = value

    def drop(key: str, why: str) -> None:
        logger.debug("Dropping listing parameter %s=%r: %s", key, raw.get(key), why)
        dropped.append(key)

    filters: dict[str, Any] = {}
    for key, enum_cls in _ENUM_KEYS.items():
        if key not in raw:
            continue
        try:
            filters[key] = enum_cls(str(raw[key]).strip())
        except ValueError:
            drop(key, "not a valid value")

    for key in ("client", "freelancer"):
        if key in raw:
            member_id = _parse_int(raw[key])
            if member_id is None:
                drop(key, "not an integer id")
            else:
                filters[key] = member_id

    if "location" in raw:
        location = str(raw["location"]).strip()
        if location.lower() == "remote":
            drop("location", "'remote' is not a place")
        else:
            filters["location"] = location

    for key in ("is_remote", "is_urgent"):
        if key in raw and _parse_flag(raw[key]):
            filters[key] = True

    filters = apply_default_status(filters)

    skills = _parse_skills(raw.get("skills")) if "skills" in raw else ()

    budget = None
    if "budget_type" in raw:
        try:
            budget_type = BudgetType(str(raw["budget_type"]).strip())
        except ValueError:
            budget_type = None
            drop("budget_type", "not a valid budget type")
        lo = _parse_float(raw["budget_min"]) if "budget_min" in raw else None
        hi = _parse_float(raw["budget_max"]) if "budget_max" in raw else None
        if "budget_min" in raw and lo is None:
            drop("budget_min", "not a number")
        if "budget_max" in raw and hi is None:
            drop("budget_max", "not a number")
        if budget_type is not None and (lo is not None or hi is not None):
            budget = BudgetRange(budget_type, lo, hi)

    search_terms = parse_search(raw.get("search"))

    sort = DEFAULT_SORT
    if "sort" in raw:
        requested = str(raw["sort"]).strip()
        if requested in SORT_KEYS:
            sort = requested
        else:
            drop("sort", "unknown sort key")
    if search_terms:
        sort = RELEVANCE_SORT

    page, limit = _page_window(raw.get("page"), raw.get("limit"))

    return QueryPlan(
        filters=filters,
        skills=skills,
        budget=budget,
        search_terms=search_terms,
        sort=sort,
        page=page,
        limit=limit,
        dropped=tuple(dropped),
    )


def _skill_match(pattern: str) -> ColumnElement[bool]:
    return (
        select(ProjectSkill.id)
        .where(
            ProjectSkill.project_id == Project.id,
            ProjectSkill.name.icontains(pattern, autoescape=True),
        )
        .exists()
    )


def _term_matches(term: str) -> tuple[ColumnElement[bool], ColumnElement[bool], ColumnElement[bool]]:
    return (
        Project.title.icontains(term, autoescape=True),
        _skill_match(term),
        Project.description.icontains(term, autoescape=True),
    )


def relevance_expr(terms: tuple[str, ...]) -> ColumnElement:
    score = None
    for term in terms:
        in_title, in_skills, in_description = _term_matches(term)
        part = (
            case((in_title, TITLE_WEIGHT), else_=0)
            + case((in_skills, SKILL_WEIGHT), else_=0)
            + case((in_description, DESCRIPTION_WEIGHT), else_=0)
        )
        score = part if score is None else score + part
    return score


def budget_sort_expr() -> ColumnElement:
    """Numeric budget: the fixed amount, or the hourly ceiling."""

    return func.coalesce(Project.budget_amount, Project.rate_max)


def where_clauses(plan: QueryPlan) -> list[ColumnElement[bool]]:
    filters = plan.filters
    clauses: list[ColumnElement[bool]] = []

    column_for = {
        "category": Project.category,
        "status": Project.status,
        "experience_level": Project.experience_level,
        "project_size": Project.project_size,
        "timeline": Project.timeline_duration,
        "client": Project.client_id,
        "freelancer": Project.freelancer_id,
    }
    for key, column in column_for.items():
        if key in filters:
            clauses.append(column == filters[key])

    if "location" in filters:
        clauses.append(Project.location.icontains(filters["location"], autoescape=True))
    if filters.get("is_remote"):
        clauses.append(Project.is_remote.is_(True))
    if filters.get("is_urgent"):
        clauses.append(Project.is_urgent.is_(True))

    if plan.skills:
        clauses.append(or_(*[_skill_match(p) for p in plan.skills]))

    budget = plan.budget
    if budget is not None:
        clauses.append(Project.budget_type == budget.type)
        if budget.type == BudgetType.fixed:
            if budget.minimum is not None:
                clauses.append(Project.budget_amount >= budget.minimum)
            if budget.maximum is not None:
                clauses.append(Project.budget_amount <= budget.maximum)
        else:
            if budget.minimum is not None:
                clauses.append(Project.rate_min >= budget.minimum)
            if budget.maximum is not None:
                clauses.append(Project.rate_max <= budget.maximum)

    if plan.search_terms:
        clauses.append(
            or_(*[or_(*_term_matches(term)) for term in plan.search_terms])
        )
    return clauses


def order_by_clauses(plan: QueryPlan) -> list[ColumnElement]:
    if plan.sort == RELEVANCE_SORT:
        return [
            relevance_expr(plan.search_terms).desc(),
            Project.created_at.desc(),
            Project.id.desc(),
        ]
    if plan.sort == "newest":
        return [Project.created_at.desc(), Project.id.desc()]
    if plan.sort == "oldest":
        return [Project.created_at.asc(), Project.id.asc()]
    if plan.sort == "budget_high":
        return [budget_sort_expr().desc(), Project.id.desc()]
    if plan.sort == "budget_low":
        return [budget_sort_expr().asc(), Project.id.asc()]
    if plan.sort == "most_proposals":
        return [Project.proposal_count.desc(), Project.created_at.desc(), Project.id.desc()]
    return [
        Project.is_urgent.desc(),
        Project.featured.desc(),
        Project.created_at.desc(),
        Project.id.desc(),
    ]


def apply_plan(stmt: Select, plan: QueryPlan, *, paginate: bool = True) -> Select:
    clauses = where_clauses(plan)
    if clauses:
        stmt = stmt.where(and_(*clauses))
    stmt = stmt.order_by(*order_by_clauses(plan))
    if paginate:
        stmt = stmt.offset(plan.offset).limit(plan.limit)
    return stmt


def count_statement(plan: QueryPlan) -> Select:
    clauses = where_clauses(plan)
    stmt = select(func.count(Project.id))
    if clauses:
        stmt = stmt.where(and_(*clauses))
    return stmt


def pagination_meta(plan: QueryPlan, total: int) -> dict[str, Any]:
    total_pages = math.ceil(total / plan.limit) if total else 0
    return {
        "currentPage": plan.page,
        "totalPages": total_pages,
        "totalProjects": total,
        "hasNextPage": plan.page < total_pages,
        "hasPreviousPage": plan.page > 1,
        "limit": plan.limit,
    }
