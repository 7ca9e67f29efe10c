"""
Unit tests for the plan catalog and its advisory cache.
"""
import pytest
from decimal import Decimal
from pydantic import ValidationError

from careerly.core.cache import NullCache
from careerly.core.errors import InvalidPlanData, PlanNameExists, PlanNotFound
from careerly.db.models import Plan
from careerly.schemas.plan import PlanCreate, PlanUpdate
from careerly.services import plan_service


def plan_data(**overrides):
    data = {
        "name": "pro-monthly",
        "display_name": "Pro Monthly",
        "price": Decimal("150000"),
        "max_resumes": 10,
        "max_ats_checks": 20,
    }
    data.update(overrides)
    return PlanCreate(**data)


def test_create_plan_defaults(db):
    plan = plan_service.create_plan(db, plan_data())

    assert plan.id
    assert plan.is_active is True
    assert plan.max_interviews is None
    assert plan.limit_for("interview").is_unlimited


def test_create_plan_rejects_blank_display_name(db):
    with pytest.raises(InvalidPlanData):
        plan_service.create_plan(db, plan_data(display_name="   "))


def test_create_plan_rejects_duplicate_name(db):
    plan_service.create_plan(db, plan_data())

    with pytest.raises(PlanNameExists):
        plan_service.create_plan(db, plan_data(display_name="Another Pro"))


def test_deleted_plan_name_cannot_be_reused(db):
    plan = plan_service.create_plan(db, plan_data())
    plan_service.delete_plan(db, plan.id)

    with pytest.raises(PlanNameExists):
        plan_service.create_plan(db, plan_data())


def test_get_plan_reads_through_cache(db, cache):
    plan = plan_service.create_plan(db, plan_data())

    first = plan_service.get_plan(db, plan.id, cache=cache)
    second = plan_service.get_plan(db, plan.id, cache=cache)

    assert first == second
    assert first.price == Decimal("150000")
    assert cache.misses == 1
    assert cache.hits == 1


@pytest.mark.parametrize("use_cache", [True, False])
def test_get_plan_same_result_with_or_without_cache(db, cache, use_cache):
    plan = plan_service.create_plan(db, plan_data())

    snapshot = plan_service.get_plan(db, plan.id, cache=cache if use_cache else NullCache())

    assert snapshot.name == "pro-monthly"
    assert snapshot.max_resumes == 10


def test_get_plan_drops_undecodable_cache_entry(db, cache):
    plan = plan_service.create_plan(db, plan_data())
    cache.set(plan_service.plan_cache_key(plan.id), "{not json")

    snapshot = plan_service.get_plan(db, plan.id, cache=cache)

    assert snapshot.id == plan.id
    assert cache.data[plan_service.plan_cache_key(plan.id)] == snapshot.model_dump_json()


def test_get_plan_missing(db, cache):
    with pytest.raises(PlanNotFound):
        plan_service.get_plan(db, "missing", cache=cache)


def test_update_plan_invalidates_cache(db, cache):
    plan = plan_service.create_plan(db, plan_data())
    plan_service.get_plan(db, plan.id, cache=cache)

    plan_service.update_plan(db, plan.id, PlanUpdate(price=Decimal("175000"), max_resumes=0), cache=cache)
    snapshot = plan_service.get_plan(db, plan.id, cache=cache)

    assert snapshot.price == Decimal("175000")
    assert snapshot.max_resumes == 0
    assert cache.misses == 2


def test_update_plan_rename_conflict(db):
    plan_service.create_plan(db, plan_data())
    elite = plan_service.create_plan(db, plan_data(name="elite", display_name="Elite"))

    with pytest.raises(PlanNameExists):
        plan_service.update_plan(db, elite.id, PlanUpdate(name="pro-monthly"))


def test_delete_plan_is_soft(db, cache):
    plan = plan_service.create_plan(db, plan_data())
    plan_service.get_plan(db, plan.id, cache=cache)

    plan_service.delete_plan(db, plan.id, cache=cache)

    with pytest.raises(PlanNotFound):
        plan_service.get_plan(db, plan.id, cache=cache)
    assert db.query(Plan).filter(Plan.id == plan.id).one().deleted_at is not None


def test_list_plans_pagination_and_filters(db):
    for i in range(3):
        plan_service.create_plan(db, plan_data(name=f"plan-{i}", display_name=f"Plan {i}"))
    plan_service.create_plan(db, plan_data(name="hidden", display_name="Hidden", is_active=False))

    plans, pagination = plan_service.list_plans(db, page=1, limit=2)
    assert len(plans) == 2
    assert pagination == {"page": 1, "limit": 2, "total": 3, "total_pages": 2}

    _, pagination = plan_service.list_plans(db, include_inactive=True)
    assert pagination["total"] == 4


def test_normalize_pagination():
    assert plan_service.normalize_pagination(0, 0) == (1, 10)
    assert plan_service.normalize_pagination(3, 500) == (3, 100)


def test_update_plan_keeps_other_plans_cached(db, cache):
    pro = plan_service.create_plan(db, plan_data())
    basic = plan_service.create_plan(db, plan_data(name="basic-monthly", display_name="Basic Monthly"))
    plan_service.get_plan(db, pro.id, cache=cache)
    plan_service.get_plan(db, basic.id, cache=cache)

    plan_service.update_plan(db, pro.id, PlanUpdate(max_resumes=3), cache=cache)

    assert plan_service.plan_cache_key(pro.id) not in cache.data
    assert plan_service.plan_cache_key(basic.id) in cache.data


@pytest.mark.parametrize("schema, fields", [
    (PlanCreate, {"name": "x", "display_name": "X", "price": Decimal("1000"), "max_resumes": -1}),
    (PlanUpdate, {"max_interviews": -2}),
])
def test_negative_limits_fail_validation(schema, fields):
    with pytest.raises(ValidationError):
        schema(**fields)
