"""
Plan catalog endpoints.

Any authenticated user can browse purchasable plans; creating, editing and
deleting plans is admin only.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from careerly.core.auth_dependency import get_current_user_obj, require_admin
from careerly.core.cache import get_cache
from careerly.core.errors import InvalidPlanData, PlanNameExists, PlanNotFound
from careerly.db.models.user import User
from careerly.db.session import get_db
from careerly.schemas.plan import PlanCreate, PlanListResponse, PlanRead, PlanUpdate
from careerly.services import plan_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plans", tags=["Plans"])


@router.get("", response_model=PlanListResponse)
def list_plans(
    page: int = Query(1, description="Page number (1-based)"),
    limit: int = Query(10, description="Page size (max 100)"),
    include_inactive: bool = Query(False, description="Admin only: include inactive plans"),
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
):
    """List live plans, newest first."""
    plans, pagination = plan_service.list_plans(
        db,
        page=page,
        limit=limit,
        include_inactive=include_inactive and user.is_admin,
    )
    return {"plans": plans, "pagination": pagination}


@router.get("/{plan_id}", response_model=PlanRead)
def get_plan(
    plan_id: str,
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
):
    try:
        return plan_service.get_plan(db, plan_id, cache=cache)
    except PlanNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.post("", response_model=PlanRead, status_code=status.HTTP_201_CREATED)
def create_plan(
    data: PlanCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        plan = plan_service.create_plan(db, data)
    except InvalidPlanData as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except PlanNameExists as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)

    logger.info(f"Plan created by admin: admin_id={admin.id}, plan_id={plan.id}")
    return plan


@router.put("/{plan_id}", response_model=PlanRead)
def update_plan(
    plan_id: str,
    data: PlanUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
):
    try:
        return plan_service.update_plan(db, plan_id, data, cache=cache)
    except PlanNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except PlanNameExists as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_plan(
    plan_id: str,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
):
    try:
        plan_service.delete_plan(db, plan_id, cache=cache)
    except PlanNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

    logger.info(f"Plan deleted by admin: admin_id={admin.id}, plan_id={plan_id}")
