"""
Quota-metered features and per-plan monthly limits.

Plans store their limits as nullable integer columns. A stored NULL or 0
means "no cap" for that feature; everything else in the codebase works with
the explicit Limit value instead of the raw column.
"""
import enum
from dataclasses import dataclass
from typing import List, Optional


class Feature(str, enum.Enum):
    RESUME = "resume"
    ATS_CHECK = "ats_check"
    INTERVIEW = "interview"


SUPPORTED_FEATURES: List[str] = [feature.value for feature in Feature]

# Feature -> Plan column holding its monthly limit
FEATURE_LIMIT_COLUMNS = {
    Feature.RESUME: "max_resumes",
    Feature.ATS_CHECK: "max_ats_checks",
    Feature.INTERVIEW: "max_interviews",
}


def parse_feature(value) -> Feature:
    """Normalize a feature name, raising ValueError for unknown features."""
    if isinstance(value, Feature):
        return value
    try:
        return Feature(str(value).lower())
    except ValueError:
        raise ValueError(f"Unknown feature: {value}. Must be one of {SUPPORTED_FEATURES}")


@dataclass(frozen=True)
class Limit:
    """Monthly allowance for one feature: either unlimited or capped at n."""

    cap: Optional[int] = None

    @classmethod
    def unlimited(cls) -> "Limit":
        return cls(None)

    @classmethod
    def capped(cls, n: int) -> "Limit":
        if n < 1:
            raise ValueError("A capped limit must be at least 1")
        return cls(n)

    @classmethod
    def from_column(cls, value: Optional[int]) -> "Limit":
        if not value:
            return cls.unlimited()
        # Negative values raise instead of granting unlimited use
        return cls.capped(value)

    @property
    def is_unlimited(self) -> bool:
        return self.cap is None

    def remaining(self, used: int) -> Optional[int]:
        if self.is_unlimited:
            return None
        return max(0, self.cap - used)


def get_plan_limit(plan, feature) -> Limit:
    """
    Resolve the monthly limit for a feature in a given plan.

    Args:
        plan: Plan model or snapshot exposing max_resumes/max_ats_checks/max_interviews
        feature: Feature enum or name

    Returns:
        Limit for the feature
    """
    column = FEATURE_LIMIT_COLUMNS[parse_feature(feature)]
    return Limit.from_column(getattr(plan, column, None))
