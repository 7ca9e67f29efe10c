"""
Plan catalog service.

Administrative CRUD over subscription tiers plus the cached read path used
by purchase and reconciliation.
"""
import logging
import math
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from careerly.core.cache import NullCache
from careerly.core.errors import PlanNotFound, PlanNameExists, InvalidPlanData
from careerly.db.base import utcnow
from careerly.db.models.plan import Plan
from careerly.schemas.plan import PlanCreate, PlanUpdate, PlanRead

logger = logging.getLogger(__name__)

PLAN_CACHE_PREFIX = "plan:"

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


def normalize_pagination(page: int, limit: int) -> Tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..100 (default 10)."""
    if page < 1:
        page = 1
    if limit < 1:
        limit = DEFAULT_PAGE_LIMIT
    if limit > MAX_PAGE_LIMIT:
        limit = MAX_PAGE_LIMIT
    return page, limit


def build_pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


def plan_cache_key(plan_id: str) -> str:
    return f"{PLAN_CACHE_PREFIX}{plan_id}"


def _find_plan(db: Session, plan_id: str) -> Optional[Plan]:
    return db.query(Plan).filter(Plan.id == plan_id, Plan.deleted_at.is_(None)).first()


def _find_plan_by_name(db: Session, name: str) -> Optional[Plan]:
    return db.query(Plan).filter(Plan.name == name, Plan.deleted_at.is_(None)).first()


def invalidate_plan_cache(cache, plan_id: str) -> None:
    cache.delete(plan_cache_key(plan_id))


def create_plan(db: Session, data: PlanCreate) -> Plan:
    """
    Create a plan.

    Raises:
        InvalidPlanData: If name or display name is blank
        PlanNameExists: If another live plan already uses the name
    """
    if not data.name.strip() or not data.display_name.strip():
        raise InvalidPlanData()

    if _find_plan_by_name(db, data.name):
        raise PlanNameExists()

    plan = Plan(
        name=data.name,
        display_name=data.display_name,
        price=data.price,
        duration_days=data.duration_days,
        max_resumes=data.max_resumes,
        max_ats_checks=data.max_ats_checks,
        max_interviews=data.max_interviews,
        is_active=True if data.is_active is None else data.is_active,
    )
    db.add(plan)
    try:
        db.commit()
    except IntegrityError:
        # Unique slug also covers soft-deleted plans
        db.rollback()
        raise PlanNameExists()
    db.refresh(plan)

    logger.info(f"Plan created: plan_id={plan.id}, name={plan.name}, price={plan.price}")
    return plan


def get_plan_model(db: Session, plan_id: str) -> Plan:
    """Load a live plan from the store, bypassing the cache."""
    plan = _find_plan(db, plan_id)
    if not plan:
        raise PlanNotFound()
    return plan


def get_plan(db: Session, plan_id: str, cache=None) -> PlanRead:
    """
    Read-through lookup of a plan snapshot.

    A cache hit skips the store; a miss loads from the store and fills the
    cache. Undecodable cache entries are dropped and treated as a miss.

    Raises:
        PlanNotFound: If the plan does not exist or is soft-deleted
    """
    if cache is None:
        cache = NullCache()
    key = plan_cache_key(plan_id)

    cached = cache.get(key)
    if cached:
        try:
            return PlanRead.model_validate_json(cached)
        except ValueError:
            logger.warning(f"Dropping undecodable cache entry: key={key}")
            cache.delete(key)

    snapshot = PlanRead.model_validate(get_plan_model(db, plan_id))
    cache.set(key, snapshot.model_dump_json())
    return snapshot


def list_plans(
    db: Session,
    page: int = 1,
    limit: int = DEFAULT_PAGE_LIMIT,
    include_inactive: bool = False,
) -> Tuple[List[Plan], Dict[str, int]]:
    """List live plans, newest first, with pagination info."""
    page, limit = normalize_pagination(page, limit)

    query = db.query(Plan).filter(Plan.deleted_at.is_(None))
    if not include_inactive:
        query = query.filter(Plan.is_active.is_(True))

    total = query.count()
    plans = (
        query.order_by(Plan.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return plans, build_pagination(page, limit, total)


def update_plan(db: Session, plan_id: str, data: PlanUpdate, cache=None) -> Plan:
    """
    Apply a partial update to a plan.

    Raises:
        PlanNotFound: If the plan does not exist
        PlanNameExists: If renaming onto another live plan's name
    """
    if cache is None:
        cache = NullCache()
    plan = get_plan_model(db, plan_id)
    changes = data.model_dump(exclude_unset=True)

    new_name = changes.get("name")
    if new_name and new_name != plan.name:
        if _find_plan_by_name(db, new_name):
            raise PlanNameExists()

    for field_name, value in changes.items():
        if field_name in ("name", "display_name", "price", "is_active") and value is None:
            continue
        setattr(plan, field_name, value)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise PlanNameExists()
    db.refresh(plan)

    invalidate_plan_cache(cache, plan.id)
    logger.info(f"Plan updated: plan_id={plan.id}, fields={sorted(changes)}")
    return plan


def delete_plan(db: Session, plan_id: str, cache=None) -> None:
    """Soft-delete a plan. Subscriptions keep referencing the row."""
    if cache is None:
        cache = NullCache()
    plan = get_plan_model(db, plan_id)
    plan.deleted_at = utcnow()
    db.commit()

    invalidate_plan_cache(cache, plan.id)
    logger.info(f"Plan deleted: plan_id={plan.id}")
