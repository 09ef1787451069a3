# coastal_risk.py
# Static threshold cascade from change metrics to an erosion risk tier.

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return _RANKS[self]


_RANKS = {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2, RiskLevel.CRITICAL: 3}


@dataclass(frozen=True)
class RiskAssessment:
    level: RiskLevel
    factors: Tuple[str, ...]
    recommendations: Tuple[str, ...]

    def to_dict(self) -> Dict:
        return {
            "level": self.level.value,
            "factors": list(self.factors),
            "recommendations": list(self.recommendations),
        }


# (min |percentage change|, min |annual change km²/yr|, level, factors, recommendations)
# Checked top to bottom; a tier matches when either bound is exceeded.
RISK_TIERS = (
    (10.0, 0.5, RiskLevel.CRITICAL,
     ("Severe coastline erosion", "High annual loss rate"),
     ("Immediate coastal protection measures required",
      "Emergency assessment and monitoring",
      "Community relocation planning may be necessary")),
    (5.0, 0.2, RiskLevel.HIGH,
     ("Significant coastline changes", "Accelerating erosion"),
     ("Implement coastal protection strategies",
      "Regular monitoring and assessment",
      "Community awareness and preparedness")),
    (2.0, 0.1, RiskLevel.MEDIUM,
     ("Moderate coastline erosion",),
     ("Monitor coastline changes regularly",
      "Consider preventive measures",
      "Engage local communities in monitoring")),
)

STABLE_FACTORS = ("Stable coastline conditions",)
STABLE_RECOMMENDATIONS = (
    "Continue regular monitoring",
    "Maintain existing coastal management practices",
)


def assess_risk(percentage_change: float, average_annual_change: float) -> RiskAssessment:
    """Classify a comparison. Sign is ignored: gain is as unstable as loss."""
    if not (math.isfinite(percentage_change) and math.isfinite(average_annual_change)):
        raise ValueError("Risk inputs must be finite numbers")

    pct = abs(percentage_change)
    rate = abs(average_annual_change)
    for pct_limit, rate_limit, level, factors, recommendations in RISK_TIERS:
        if pct > pct_limit or rate > rate_limit:
            return RiskAssessment(level, factors, recommendations)
    return RiskAssessment(RiskLevel.LOW, STABLE_FACTORS, STABLE_RECOMMENDATIONS)
