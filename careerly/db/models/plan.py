"""
Plan model: subscription tiers and their per-feature monthly limits.
"""
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Numeric
from careerly.db.base import Base, new_id, utcnow
from careerly.core.plan_limits import get_plan_limit, Limit


class Plan(Base):
    """
    Subscription tier.

    Limit columns are nullable; NULL or 0 means the feature is uncapped
    under this plan. Plans are soft-deleted only.
    """
    __tablename__ = "plans"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, unique=True, nullable=False, index=True)  # slug, e.g. "pro-monthly"
    display_name = Column(String, nullable=False)
    price = Column(Numeric(12, 2), nullable=False, default=0)

    duration_days = Column(Integer, nullable=True)
    max_resumes = Column(Integer, nullable=True)
    max_ats_checks = Column(Integer, nullable=True)
    max_interviews = Column(Integer, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    def limit_for(self, feature) -> Limit:
        return get_plan_limit(self, feature)

    @property
    def is_purchasable(self) -> bool:
        return bool(self.is_active) and self.deleted_at is None and (self.price or 0) > 0

    def __repr__(self):
        return f"<Plan(id={self.id}, name='{self.name}', price={self.price})>"
