# coastal_processor.py
# Core processing for coastline comparison
# Normalize -> difference -> metrics -> risk, kept apart from storage and UI

import sys
import logging
from typing import Dict, List, Optional, Tuple

from shapely.geometry import MultiPolygon

from coastal_errors import CoastlineError, InvalidReferenceData
from coastal_geometry import DEFAULT_GRID_SIZE, normalize_geometry
from coastal_difference import DEFAULT_MAX_VERTICES, compute_difference
from coastal_metrics import AREA_DECIMALS, compute_metrics, geodesic_area_km2
from coastal_models import AnalysisRecord, AnalysisResult, ChangePoint, CoastlineDataset
from coastal_risk import assess_risk
from coastal_store import CoastlineStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------
DEFAULT_PARAMS = {
    "grid_size": DEFAULT_GRID_SIZE,          # snap grid, degrees
    "max_vertices": DEFAULT_MAX_VERTICES,    # combined vertex limit for the overlay
    "change_point_min_km2": 0.0,             # skip loss/gain parts smaller than this
    "change_point_high_km2": 1.0,
    "change_point_medium_km2": 0.1,
}
DEFAULT_ANALYSIS_NAME = "Coastline Analysis"
LOG_HANDLER_NAME = "coastal-stderr"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level=logging.INFO) -> logging.Handler:
    """Send log records to stderr. Calling it again only changes the level."""
    root = logging.getLogger()
    for handler in root.handlers:
        if handler.get_name() == LOG_HANDLER_NAME:
            break
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(LOG_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
    return handler


# ---------------------------------------------------------------------
# Change points
# ---------------------------------------------------------------------
def find_change_points(
    loss: MultiPolygon,
    gain: MultiPolygon,
    min_km2: float = 0.0,
    high_km2: float = 1.0,
    medium_km2: float = 0.1,
) -> List[ChangePoint]:
    """One point per loss/gain part, largest area first."""
    scored = []
    for change, geom, label in (("loss", loss, "Land loss"), ("gain", gain, "Land gain")):
        for part in geom.geoms:
            area = geodesic_area_km2(part)
            if area < min_km2:
                continue
            if area >= high_km2:
                severity = "high"
            elif area >= medium_km2:
                severity = "medium"
            else:
                severity = "low"
            rp = part.representative_point()
            scored.append((area, ChangePoint(
                coordinates=(rp.x, rp.y),
                change=change,
                area_km2=round(area, AREA_DECIMALS),
                severity=severity,
                description=f"{label} of {area:.4f} km²",
            )))
    scored.sort(key=lambda x: x[0], reverse=True)
    return [cp for _, cp in scored]


# ---------------------------------------------------------------------
# Main analyzer
# ---------------------------------------------------------------------
class CoastalAnalyzer:
    """Runs one coastline comparison end to end. Holds no per-run state."""

    def __init__(self, params: Optional[Dict] = None):
        params = dict(params or {})
        unknown = set(params) - set(DEFAULT_PARAMS)
        if unknown:
            raise ValueError(f"Unknown analysis parameters: {sorted(unknown)}")
        self.params = {**DEFAULT_PARAMS, **params}
        self.grid_size = float(self.params["grid_size"])
        self.max_vertices = int(self.params["max_vertices"])
        self.change_point_min_km2 = float(self.params["change_point_min_km2"])
        self.change_point_high_km2 = float(self.params["change_point_high_km2"])
        self.change_point_medium_km2 = float(self.params["change_point_medium_km2"])
        if self.grid_size < 0:
            raise ValueError("grid_size must be >= 0")

    def run(
        self,
        baseline: CoastlineDataset,
        comparison: CoastlineDataset,
        name: Optional[str] = None,
    ) -> AnalysisRecord:
        try:
            return self._run(baseline, comparison, name)
        except CoastlineError as e:
            logger.error(
                "Comparison of coastline %s with %s failed: %s: %s",
                baseline.id, comparison.id, e.kind, e.message,
            )
            raise

    def _run(self, baseline: CoastlineDataset, comparison: CoastlineDataset,
             name: Optional[str]) -> AnalysisRecord:
        logger.info("Comparing coastline %s (%s) with %s (%s)",
                    baseline.id, baseline.year, comparison.id, comparison.year)

        base_geom = normalize_geometry(baseline.geometry, grid_size=self.grid_size)
        comp_geom = normalize_geometry(comparison.geometry, grid_size=self.grid_size)

        diff = compute_difference(base_geom, comp_geom,
                                  grid_size=self.grid_size, max_vertices=self.max_vertices)

        metrics = compute_metrics(base_geom, comp_geom, diff.loss, diff.gain,
                                  baseline.year, comparison.year)

        # classify on the values that get reported
        rounded = metrics.rounded()
        risk = assess_risk(rounded["percentage_change"], rounded["average_annual_change"])
        result = AnalysisResult.from_metrics(metrics, risk)

        change_points = find_change_points(
            diff.loss, diff.gain,
            min_km2=self.change_point_min_km2,
            high_km2=self.change_point_high_km2,
            medium_km2=self.change_point_medium_km2,
        )

        if not name:
            name = f"{baseline.name} Analysis" if baseline.name else DEFAULT_ANALYSIS_NAME

        logger.info("Comparison %s -> %s: net %.4f km² (%.2f%%), risk %s",
                    baseline.id, comparison.id, result.net_change,
                    result.percentage_change, risk.level.value)

        return AnalysisRecord(
            name=name,
            baseline_id=baseline.id,
            comparison_id=comparison.id,
            baseline_year=baseline.year,
            comparison_year=comparison.year,
            location=baseline.location,
            baseline_source=baseline.source,
            comparison_source=comparison.source,
            result=result,
            metrics=metrics,
            loss_geometry=diff.loss,
            gain_geometry=diff.gain,
            change_points=tuple(change_points),
        )

    def compare(
        self,
        store: CoastlineStore,
        baseline_id: str,
        comparison_id: str,
        name: Optional[str] = None,
        save: bool = True,
    ) -> Tuple[Optional[str], AnalysisRecord]:
        """Resolve both datasets from the store, compare, and optionally save."""
        try:
            baseline = store.get_coastline(baseline_id)
            comparison = store.get_coastline(comparison_id)
        except InvalidReferenceData as e:
            logger.error("Comparison of coastline %s with %s failed: %s",
                         baseline_id, comparison_id, e.message)
            raise

        record = self.run(baseline, comparison, name=name)
        analysis_id = store.save_analysis(record) if save else None
        return analysis_id, record


def analyze_coastlines(
    baseline_geometry,
    baseline_year: int,
    comparison_geometry,
    comparison_year: int,
    name: Optional[str] = None,
    params: Optional[Dict] = None,
) -> AnalysisRecord:
    """Compare two raw payloads without going through a store."""
    baseline = CoastlineDataset(id="baseline", year=baseline_year, geometry=baseline_geometry)
    comparison = CoastlineDataset(id="comparison", year=comparison_year, geometry=comparison_geometry)
    return CoastalAnalyzer(params).run(baseline, comparison, name=name)
