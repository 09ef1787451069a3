# coastal_metrics.py
# Area, length and rate metrics for a coastline comparison.
# Areas and lengths are geodesic on the WGS84 ellipsoid, never planar
# degrees scaled by a constant.

import logging
from dataclasses import dataclass, asdict
from typing import Dict

from pyproj import Geod
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry

from coastal_errors import DivisionByZeroArea
from coastal_geometry import polygon_parts

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------
WGS84 = Geod(ellps="WGS84")
M2_PER_KM2 = 1_000_000.0
M_PER_KM = 1_000.0

AREA_DECIMALS = 4
PERCENT_DECIMALS = 2
RATE_DECIMALS = 4
LENGTH_DECIMALS = 2


def _round(value: float, decimals: int) -> float:
    # + 0.0 folds -0.0 into 0.0
    return round(value, decimals) + 0.0


# ---------------------------------------------------------------------
# Geodesic measurements
# ---------------------------------------------------------------------
def _ring_area_m2(ring) -> float:
    lons, lats = ring.xy
    area, _ = WGS84.polygon_area_perimeter(lons, lats)
    return abs(area)


def _polygon_area_m2(poly: Polygon) -> float:
    area = _ring_area_m2(poly.exterior)
    for hole in poly.interiors:
        area -= _ring_area_m2(hole)
    return max(area, 0.0)


def geodesic_area_km2(geom: BaseGeometry) -> float:
    """Ellipsoidal area of every polygon in geom, holes subtracted, in km²."""
    return sum(_polygon_area_m2(p) for p in polygon_parts(geom)) / M2_PER_KM2


def boundary_length_km(geom: BaseGeometry) -> float:
    """Geodesic length of all rings (exteriors and holes) in km."""
    total = 0.0
    for poly in polygon_parts(geom):
        for ring in [poly.exterior, *poly.interiors]:
            lons, lats = ring.xy
            total += WGS84.line_length(lons, lats)
    return total / M_PER_KM


# ---------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ChangeMetrics:
    """Full-precision comparison metrics. Areas in km², length in km."""

    baseline_area: float
    comparison_area: float
    land_loss_area: float
    land_gain_area: float
    net_change: float
    percentage_change: float
    average_annual_change: float
    affected_length: float
    year_span: int

    def rounded(self) -> Dict[str, float]:
        return {
            "land_loss_area": _round(self.land_loss_area, AREA_DECIMALS),
            "land_gain_area": _round(self.land_gain_area, AREA_DECIMALS),
            "net_change": _round(self.net_change, AREA_DECIMALS),
            "percentage_change": _round(self.percentage_change, PERCENT_DECIMALS),
            "average_annual_change": _round(self.average_annual_change, RATE_DECIMALS),
            "affected_length": _round(self.affected_length, LENGTH_DECIMALS),
        }

    def to_dict(self) -> Dict:
        return asdict(self)


def compute_metrics(
    baseline: BaseGeometry,
    comparison: BaseGeometry,
    loss: BaseGeometry,
    gain: BaseGeometry,
    baseline_year: int,
    comparison_year: int,
) -> ChangeMetrics:
    """
    Derive area, rate and length metrics from a difference result.

    Percentage change is measured against the baseline area and fails
    with DivisionByZeroArea when that is zero. A zero or negative year
    span yields an annual change of 0.
    """
    baseline_area = geodesic_area_km2(baseline)
    if baseline_area <= 0.0:
        raise DivisionByZeroArea(
            "Baseline area is zero, percentage change is undefined",
            baseline_year=baseline_year,
        )
    comparison_area = geodesic_area_km2(comparison)
    loss_area = geodesic_area_km2(loss)
    gain_area = geodesic_area_km2(gain)

    net_change = gain_area - loss_area
    percentage_change = (comparison_area - baseline_area) / baseline_area * 100.0

    year_span = int(comparison_year) - int(baseline_year)
    if year_span > 0:
        average_annual_change = net_change / year_span
    else:
        logger.warning(
            "Year span %d -> %d is not positive, annual change set to 0",
            baseline_year, comparison_year,
        )
        average_annual_change = 0.0

    return ChangeMetrics(
        baseline_area=baseline_area,
        comparison_area=comparison_area,
        land_loss_area=loss_area,
        land_gain_area=gain_area,
        net_change=net_change,
        percentage_change=percentage_change,
        average_annual_change=average_annual_change,
        affected_length=boundary_length_km(baseline),
        year_span=year_span,
    )
