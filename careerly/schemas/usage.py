"""
Pydantic schemas for quota and subscription endpoints.
"""
from typing import Optional, Dict
from datetime import date, datetime
from pydantic import BaseModel, ConfigDict, Field


class FeatureQuota(BaseModel):
    """Usage details for a single feature."""
    limit: Optional[int] = Field(None, description="Monthly limit (None for unlimited)")
    used: int = Field(..., description="Current month usage")
    remaining: Optional[int] = Field(None, description="Remaining quota (None for unlimited)")
    unlimited: bool = Field(..., description="Whether this feature has unlimited quota")


class QuotaResponse(BaseModel):
    """Response schema for GET /me/quota."""
    plan_name: str = Field(..., description="Display name of the active plan")
    period: date = Field(..., description="First day of the current UTC month")
    features: Dict[str, FeatureQuota] = Field(..., description="Per-feature usage details")

    class Config:
        json_schema_extra = {
            "example": {
                "plan_name": "Pro Monthly",
                "period": "2026-10-01",
                "features": {
                    "resume": {"limit": 10, "used": 3, "remaining": 7, "unlimited": False},
                    "ats_check": {"limit": 20, "used": 0, "remaining": 20, "unlimited": False},
                    "interview": {"limit": None, "used": 4, "remaining": None, "unlimited": True}
                }
            }
        }


class ConsumeResponse(BaseModel):
    """Result of a successful check-and-consume."""
    feature: str
    used: int
    limit: Optional[int] = None
    remaining: Optional[int] = None


class QuotaExceededResponse(BaseModel):
    """Error detail for quota exceeded."""
    error: str = Field("quota_exceeded", description="Error code")
    feature: str = Field(..., description="Feature that exceeded quota")
    plan: Optional[str] = Field(None, description="User's current plan")
    limit: int = Field(..., description="Monthly limit for this feature")
    used: int = Field(..., description="Current month usage")
    remaining: int = Field(0, description="Remaining quota (0 if exceeded)")
    message: str = Field(..., description="Human-readable error message")


class SubscriptionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    plan_id: str
    start_date: datetime
    end_date: datetime
    status: str
    created_at: datetime
