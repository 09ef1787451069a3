# coastal_models.py
# Records passed between the analysis core and its store.

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from shapely.geometry import mapping, MultiPolygon

from coastal_metrics import ChangeMetrics
from coastal_risk import RiskAssessment


@dataclass(frozen=True)
class CoastlineDataset:
    """One shoreline snapshot. `geometry` is the raw payload as uploaded."""

    id: str
    year: int
    geometry: Any
    name: str = ""
    region: Optional[str] = None
    province: Optional[str] = None
    municipality: Optional[str] = None
    barangay: Optional[str] = None
    metadata: Dict = field(default_factory=dict)

    @property
    def location(self) -> Dict[str, Optional[str]]:
        return {
            "region": self.region,
            "province": self.province,
            "municipality": self.municipality,
            "barangay": self.barangay,
        }

    @property
    def source(self) -> Optional[str]:
        return self.metadata.get("source")


@dataclass(frozen=True)
class ChangePoint:
    coordinates: Tuple[float, float]
    change: str
    area_km2: float
    severity: str
    description: str

    def to_dict(self) -> Dict:
        return {
            "coordinates": list(self.coordinates),
            "change": self.change,
            "area_km2": self.area_km2,
            "severity": self.severity,
            "description": self.description,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Rounded metrics plus the risk classification."""

    land_loss_area: float
    land_gain_area: float
    net_change: float
    percentage_change: float
    average_annual_change: float
    affected_length: float
    risk_assessment: RiskAssessment

    @classmethod
    def from_metrics(cls, metrics: ChangeMetrics, risk: RiskAssessment) -> "AnalysisResult":
        return cls(risk_assessment=risk, **metrics.rounded())

    def to_dict(self) -> Dict:
        return {
            "land_loss_area": self.land_loss_area,
            "land_gain_area": self.land_gain_area,
            "net_change": self.net_change,
            "percentage_change": self.percentage_change,
            "average_annual_change": self.average_annual_change,
            "affected_length": self.affected_length,
        }


def to_feature_collection(geom: MultiPolygon, change: str) -> Dict:
    return {"type": "FeatureCollection", "features": [
        {"type": "Feature", "geometry": mapping(p), "properties": {"change": change}}
        for p in geom.geoms
    ]}


@dataclass(frozen=True)
class AnalysisRecord:
    """Everything one comparison produces, ready to hand to a store."""

    name: str
    baseline_id: str
    comparison_id: str
    baseline_year: int
    comparison_year: int
    location: Dict[str, Optional[str]]
    result: AnalysisResult
    metrics: ChangeMetrics
    loss_geometry: MultiPolygon
    gain_geometry: MultiPolygon
    change_points: Tuple[ChangePoint, ...] = ()
    baseline_source: Optional[str] = None
    comparison_source: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def risk_assessment(self) -> RiskAssessment:
        return self.result.risk_assessment

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "location": dict(self.location),
            "comparison": {
                "baseline_year": self.baseline_year,
                "comparison_year": self.comparison_year,
                "baseline_coastline_id": self.baseline_id,
                "comparison_coastline_id": self.comparison_id,
                "baseline_source": self.baseline_source,
                "comparison_source": self.comparison_source,
            },
            "results": self.result.to_dict(),
            "geospatial_data": {
                "loss_polygon": to_feature_collection(self.loss_geometry, "loss"),
                "gain_polygon": to_feature_collection(self.gain_geometry, "gain"),
                "change_points": [cp.to_dict() for cp in self.change_points],
            },
            "risk_assessment": self.risk_assessment.to_dict(),
            "created_at": self.created_at.isoformat(),
        }
