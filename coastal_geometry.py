# coastal_geometry.py
# Geometry normalizer: turns any supported coastline payload into one
# canonical shapely MultiPolygon in longitude/latitude degrees.

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import shapely
from shapely.geometry import mapping, Polygon, MultiPolygon, GeometryCollection
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.validation import make_valid, explain_validity

from coastal_errors import InvalidPolygonInput, NoPolygonGeometry, UnsupportedGeometryType

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------
# Snap grid in degrees, ~0.1 mm on the ground
DEFAULT_GRID_SIZE = 1e-9
MIN_DISTINCT_VERTICES = 3


class GeometryKind(Enum):
    """Closed set of geometry shapes the normalizer understands."""

    POLYGON = "Polygon"
    POLYGON_WITH_HOLES = "PolygonWithHoles"
    MULTI_POLYGON = "MultiPolygon"
    UNSUPPORTED = "Unsupported"

    @property
    def is_polygonal(self) -> bool:
        return self is not GeometryKind.UNSUPPORTED


def classify_geometry(geometry) -> GeometryKind:
    """Resolve a GeoJSON geometry dict to its GeometryKind."""
    if not isinstance(geometry, dict):
        return GeometryKind.UNSUPPORTED
    gtype = geometry.get("type")
    if gtype == "Polygon":
        coords = geometry.get("coordinates")
        # malformed coordinates are rejected later by _build
        if isinstance(coords, (list, tuple)) and len(coords) > 1:
            return GeometryKind.POLYGON_WITH_HOLES
        return GeometryKind.POLYGON
    if gtype == "MultiPolygon":
        return GeometryKind.MULTI_POLYGON
    return GeometryKind.UNSUPPORTED


# ---------------------------------------------------------------------
# Ring checks
# ---------------------------------------------------------------------
def _distinct_vertex_count(coords: np.ndarray, grid_size: float) -> int:
    pts = coords[:-1] if len(coords) > 1 and np.array_equal(coords[0], coords[-1]) else coords
    if len(pts) == 0:
        return 0
    if grid_size:
        pts = np.round(pts / grid_size)
    return len(np.unique(pts, axis=0))


def _checked_ring(ring, grid_size: float) -> np.ndarray:
    """Validate one raw ring and return it as an (n, 2) float array."""
    try:
        arr = np.asarray(ring, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidPolygonInput(f"Malformed ring coordinates: {e}")
    if arr.ndim != 2 or arr.shape[1] < 2:
        raise InvalidPolygonInput("Ring must be a sequence of [lon, lat] pairs")
    arr = arr[:, :2]
    if not np.all(np.isfinite(arr)):
        raise InvalidPolygonInput("Ring contains non-finite coordinates")
    if len(arr) < 2 or not np.array_equal(arr[0], arr[-1]):
        raise InvalidPolygonInput("Ring is not closed (first and last points differ)",
                                  point_count=int(len(arr)))
    distinct = _distinct_vertex_count(arr, grid_size)
    if distinct < MIN_DISTINCT_VERTICES:
        raise InvalidPolygonInput(
            f"Ring has {distinct} distinct vertices, at least {MIN_DISTINCT_VERTICES} required",
            distinct_vertices=distinct,
        )
    return arr


def _polygon_from_rings(rings: Sequence, grid_size: float) -> Polygon:
    if not rings:
        raise InvalidPolygonInput("Polygon has no rings")
    checked = [_checked_ring(r, grid_size) for r in rings]
    return Polygon(checked[0], checked[1:])


def _raw_rings(coords: Sequence) -> List:
    """A bare ring ([[lon, lat], ...]) or a list of rings -> list of rings."""
    if not coords:
        raise InvalidPolygonInput("Empty coordinate list")
    first = coords[0]
    if isinstance(first, (list, tuple, np.ndarray)) and len(first) and np.isscalar(first[0]):
        return [coords]
    return list(coords)


# ---------------------------------------------------------------------
# Repair helpers
# ---------------------------------------------------------------------
def polygon_parts(geom: Optional[BaseGeometry]) -> List[Polygon]:
    """All non-empty polygons contained in geom, dropping lines and points."""
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom]
    if isinstance(geom, MultiPolygon):
        return [p for p in geom.geoms if not p.is_empty]
    if isinstance(geom, GeometryCollection):
        return [p for g in geom.geoms for p in polygon_parts(g)]
    return []


def as_multipolygon(geom: Optional[BaseGeometry]) -> MultiPolygon:
    parts = [p for p in polygon_parts(geom) if p.area > 0]
    return MultiPolygon(parts)


def repair_geometry(geom: BaseGeometry, grid_size: float = DEFAULT_GRID_SIZE) -> BaseGeometry:
    """
    Fix self-touching rings, bow-ties and near-duplicate vertices.

    make_valid() first so the precision reducer never sees an invalid
    input, then snap to the grid, then make_valid() again in case the
    snapping collapsed something.
    """
    if not geom.is_valid:
        logger.debug("Repairing invalid geometry: %s", explain_validity(geom))
        geom = make_valid(geom)
    if grid_size:
        geom = shapely.set_precision(geom, grid_size)
    if not geom.is_valid:
        geom = make_valid(geom)
    return geom


def _union(geoms: Sequence[BaseGeometry], grid_size: float) -> BaseGeometry:
    if grid_size:
        return shapely.union_all(geoms, grid_size=grid_size)
    return unary_union(geoms)


def count_vertices(geom: BaseGeometry) -> int:
    return int(shapely.get_num_coordinates(geom))


# ---------------------------------------------------------------------
# Payload unpacking
# ---------------------------------------------------------------------
def _polygonal_members(members: Sequence, container: str) -> List[Tuple[GeometryKind, Dict]]:
    tagged = []
    seen_types = []
    for geometry in members:
        if not isinstance(geometry, dict):
            continue
        seen_types.append(geometry.get("type"))
        kind = classify_geometry(geometry)
        if kind.is_polygonal:
            tagged.append((kind, geometry))
    if not tagged:
        raise NoPolygonGeometry(
            f"No polygons found in {container}",
            member_count=len(members),
            geometry_types=sorted({str(t) for t in seen_types}),
        )
    return tagged


def _tagged_geometries(payload) -> List[Tuple[GeometryKind, Dict]]:
    """Resolve every polygon-family geometry in payload to (kind, geojson)."""
    if isinstance(payload, BaseGeometry):
        payload = mapping(payload)
    elif isinstance(payload, (list, tuple)):
        rings = _raw_rings(payload)
        geometry = {"type": "Polygon", "coordinates": rings}
        return [(classify_geometry(geometry), geometry)]

    if not isinstance(payload, dict):
        raise UnsupportedGeometryType(f"Unsupported geometry payload: {type(payload).__name__}")

    ptype = payload.get("type")
    if ptype == "FeatureCollection":
        features = payload.get("features") or []
        members = [f.get("geometry") for f in features if isinstance(f, dict)]
        return _polygonal_members(members, "FeatureCollection")
    if ptype == "GeometryCollection":
        return _polygonal_members(payload.get("geometries") or [], "GeometryCollection")
    if ptype == "Feature":
        geometry = payload.get("geometry")
        if geometry is None:
            raise NoPolygonGeometry("Feature has no geometry")
        kind = classify_geometry(geometry)
        if not kind.is_polygonal:
            gtype = geometry.get("type") if isinstance(geometry, dict) else type(geometry).__name__
            raise UnsupportedGeometryType(f"Unsupported geometry type: {gtype}", geometry_type=gtype)
        return [(kind, geometry)]

    kind = classify_geometry(payload)
    if not kind.is_polygonal:
        raise UnsupportedGeometryType(f"Unsupported geometry type: {ptype}", geometry_type=ptype)
    return [(kind, payload)]


def _build(kind: GeometryKind, geometry: Dict, grid_size: float) -> BaseGeometry:
    coords = geometry.get("coordinates")
    if coords is None:
        coords = []
    if not isinstance(coords, (list, tuple)):
        raise InvalidPolygonInput("Malformed coordinates", geometry_type=geometry.get("type"))
    if kind is GeometryKind.MULTI_POLYGON:
        if not all(isinstance(p, (list, tuple)) for p in coords):
            raise InvalidPolygonInput("Malformed coordinates", geometry_type=geometry.get("type"))
        parts = [repair_geometry(_polygon_from_rings(p, grid_size), grid_size) for p in coords]
        if not parts:
            raise InvalidPolygonInput("MultiPolygon has no parts")
        # parts of one MultiPolygon may still overlap each other
        return parts[0] if len(parts) == 1 else _union(parts, grid_size)
    return repair_geometry(_polygon_from_rings(coords, grid_size), grid_size)


# ---------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------
def normalize_geometry(payload, grid_size: float = DEFAULT_GRID_SIZE) -> MultiPolygon:
    """
    Canonical MultiPolygon for a coastline payload.

    Accepts GeoJSON Polygon / MultiPolygon / Feature / FeatureCollection /
    GeometryCollection dicts, bare coordinate rings, or shapely polygons.
    Non-polygon members of a collection are ignored. A single qualifying
    geometry is used as-is; several are merged with a unary union.
    """
    tagged = _tagged_geometries(payload)
    built = [_build(kind, geometry, grid_size) for kind, geometry in tagged]

    if len(built) == 1:
        merged = built[0]
    else:
        merged = _union(built, grid_size)

    result = as_multipolygon(merged)
    if result.is_empty:
        raise InvalidPolygonInput("Geometry collapsed to nothing after repair")
    logger.debug("Normalized %d geometry(ies) into %d polygon(s)", len(built), len(result.geoms))
    return result


def ensure_valid_multipolygon(geom: Optional[BaseGeometry], role: str = "input") -> MultiPolygon:
    """Reject empty, non-polygonal or degenerate geometry before clipping."""
    if geom is None or geom.is_empty:
        raise InvalidPolygonInput(f"{role} geometry is empty", role=role)
    if not isinstance(geom, (Polygon, MultiPolygon)):
        raise InvalidPolygonInput(f"{role} geometry is a {geom.geom_type}, not a polygon", role=role)
    parts = polygon_parts(geom)
    for poly in parts:
        for ring in [poly.exterior, *poly.interiors]:
            distinct = _distinct_vertex_count(np.asarray(ring.coords)[:, :2], 0.0)
            if distinct < MIN_DISTINCT_VERTICES:
                raise InvalidPolygonInput(
                    f"{role} ring has {distinct} distinct vertices",
                    role=role, distinct_vertices=distinct,
                )
    if not geom.is_valid:
        raise InvalidPolygonInput(f"{role} geometry is invalid: {explain_validity(geom)}", role=role)
    return MultiPolygon(parts)
