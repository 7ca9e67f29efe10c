"""
Pydantic schemas for the plan catalog.
"""
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class PlanBase(BaseModel):
    """Fields shared by plan create and read schemas."""
    name: str = Field(..., description="Unique slug", min_length=1, max_length=64, pattern="^[a-z0-9][a-z0-9_-]*$")
    display_name: str = Field(..., description="Human-readable plan name", min_length=1, max_length=255)
    price: Decimal = Field(..., ge=0, description="Price in whole currency units")
    duration_days: Optional[int] = Field(None, ge=1, description="Subscription length (default 30 days)")
    max_resumes: Optional[int] = Field(None, ge=0, description="Monthly resume limit (null or 0 = unlimited)")
    max_ats_checks: Optional[int] = Field(None, ge=0, description="Monthly ATS check limit (null or 0 = unlimited)")
    max_interviews: Optional[int] = Field(None, ge=0, description="Monthly interview limit (null or 0 = unlimited)")


class PlanCreate(PlanBase):
    """Schema for creating a plan."""
    is_active: Optional[bool] = Field(True, description="Whether the plan can be purchased")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "pro-monthly",
                "display_name": "Pro Monthly",
                "price": 150000,
                "duration_days": 30,
                "max_resumes": 10,
                "max_ats_checks": 20,
                "max_interviews": None,
                "is_active": True
            }
        }


class PlanUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=64, pattern="^[a-z0-9][a-z0-9_-]*$")
    display_name: Optional[str] = Field(None, min_length=1, max_length=255)
    price: Optional[Decimal] = Field(None, ge=0)
    duration_days: Optional[int] = Field(None, ge=1)
    max_resumes: Optional[int] = Field(None, ge=0)
    max_ats_checks: Optional[int] = Field(None, ge=0)
    max_interviews: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class PlanRead(PlanBase):
    """Plan as returned by the API and stored in the catalog cache."""
    id: str
    is_active: bool
    created_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PlanListResponse(BaseModel):
    plans: List[PlanRead]
    pagination: Pagination
