# coastal_difference.py
# Polygon set-difference engine.
# loss = baseline - comparison, gain = comparison - baseline, both in
# native lon/lat degrees.

import logging
from dataclasses import dataclass

import shapely
from shapely.errors import GEOSException
from shapely.geometry import MultiPolygon
from shapely.geometry.base import BaseGeometry
from shapely.validation import make_valid

from coastal_errors import GeometryTooComplex, InvalidPolygonInput
from coastal_geometry import (
    DEFAULT_GRID_SIZE,
    as_multipolygon,
    count_vertices,
    ensure_valid_multipolygon,
)

logger = logging.getLogger(__name__)

# Overlay cost grows with vertex count; refuse anything past this
DEFAULT_MAX_VERTICES = 250_000


@dataclass(frozen=True)
class DifferenceResult:
    """Areas present in only one of the two coastlines."""

    loss: MultiPolygon
    gain: MultiPolygon

    @property
    def is_empty(self) -> bool:
        return self.loss.is_empty and self.gain.is_empty


def _overlay_difference(a: BaseGeometry, b: BaseGeometry, grid_size: float) -> BaseGeometry:
    try:
        return shapely.difference(a, b, grid_size=grid_size or None)
    except GEOSException as e:
        logger.warning("Overlay failed (%s), retrying on repaired input", e)

    try:
        return shapely.difference(make_valid(a), make_valid(b), grid_size=grid_size or None)
    except GEOSException as e:
        raise InvalidPolygonInput(f"Polygon clipping failed: {e}")


def compute_difference(
    baseline: BaseGeometry,
    comparison: BaseGeometry,
    grid_size: float = DEFAULT_GRID_SIZE,
    max_vertices: int = DEFAULT_MAX_VERTICES,
) -> DifferenceResult:
    """
    Split two canonical coastlines into lost and gained land.

    Identical inputs give two empty results; disjoint inputs give the
    inputs back unchanged. Everything else goes through a snap-rounded
    GEOS overlay on `grid_size`.
    """
    a = ensure_valid_multipolygon(baseline, "baseline")
    b = ensure_valid_multipolygon(comparison, "comparison")

    total = count_vertices(a) + count_vertices(b)
    if max_vertices and total > max_vertices:
        raise GeometryTooComplex(
            f"Inputs have {total} vertices, limit is {max_vertices}",
            vertex_count=total, max_vertices=max_vertices,
        )

    if a.equals(b):
        logger.debug("Baseline and comparison are identical")
        return DifferenceResult(loss=MultiPolygon(), gain=MultiPolygon())

    if a.disjoint(b):
        logger.debug("Baseline and comparison do not overlap")
        return DifferenceResult(loss=a, gain=b)

    loss = as_multipolygon(_overlay_difference(a, b, grid_size))
    gain = as_multipolygon(_overlay_difference(b, a, grid_size))
    logger.debug("Difference: %d loss part(s), %d gain part(s)", len(loss.geoms), len(gain.geoms))
    return DifferenceResult(loss=loss, gain=gain)
