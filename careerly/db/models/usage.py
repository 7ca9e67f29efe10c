from datetime import datetime
from sqlalchemy import Column, String, Integer, Date, DateTime, ForeignKey, UniqueConstraint
from careerly.db.base import Base, new_id, utcnow


class Usage(Base):
    """
    Per-user, per-feature, per-calendar-month usage counter.

    Rows are created lazily on first use in a period and never reset; a new
    month simply starts a new row at zero.
    """
    __tablename__ = "usage"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    feature = Column(String, nullable=False)  # "resume", "ats_check", "interview"
    period_month = Column(Date, nullable=False)  # first day of the UTC month
    count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # One counter per user per feature per month
    __table_args__ = (
        UniqueConstraint("user_id", "feature", "period_month", name="uq_usage_user_feature_period"),
    )

    @staticmethod
    def period_start(now: datetime = None):
        """First day of the UTC month containing `now`."""
        if now is None:
            now = utcnow()
        return now.date().replace(day=1)
