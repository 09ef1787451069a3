import pytest
from shapely.geometry import MultiPolygon, Polygon, box

from coastal_errors import InvalidPolygonInput, NoPolygonGeometry, UnsupportedGeometryType
from coastal_geometry import (
    GeometryKind,
    classify_geometry,
    ensure_valid_multipolygon,
    normalize_geometry,
)


def ring(lon, lat, size=1.0):
    return [
        [lon, lat],
        [lon + size, lat],
        [lon + size, lat + size],
        [lon, lat + size],
        [lon, lat],
    ]


def polygon(lon, lat, size=1.0):
    return {"type": "Polygon", "coordinates": [ring(lon, lat, size)]}


def feature(geom):
    return {"type": "Feature", "geometry": geom, "properties": {}}


def collection(*geoms):
    return {"type": "FeatureCollection", "features": [feature(g) for g in geoms]}


def test_classify_geometry():
    assert classify_geometry(polygon(0, 0)) is GeometryKind.POLYGON
    holed = {"type": "Polygon", "coordinates": [ring(0, 0, 4), ring(1, 1, 1)]}
    assert classify_geometry(holed) is GeometryKind.POLYGON_WITH_HOLES
    multi = {"type": "MultiPolygon", "coordinates": [[ring(0, 0)], [ring(5, 5)]]}
    assert classify_geometry(multi) is GeometryKind.MULTI_POLYGON
    assert classify_geometry({"type": "Point", "coordinates": [0, 0]}) is GeometryKind.UNSUPPORTED
    assert classify_geometry(None) is GeometryKind.UNSUPPORTED


def test_plain_polygon_becomes_multipolygon():
    result = normalize_geometry(polygon(0, 0))
    assert isinstance(result, MultiPolygon)
    assert len(result.geoms) == 1
    assert result.area == pytest.approx(1.0)


def test_bare_ring_and_ring_list():
    assert normalize_geometry(ring(0, 0)).area == pytest.approx(1.0)

    holed = normalize_geometry([ring(0, 0, 4), ring(1, 1, 1)])
    assert len(holed.geoms[0].interiors) == 1
    assert holed.area == pytest.approx(15.0)


def test_feature_and_shapely_inputs():
    assert normalize_geometry(feature(polygon(0, 0, 2))).area == pytest.approx(4.0)
    assert normalize_geometry(box(0, 0, 3, 1)).area == pytest.approx(3.0)


def test_single_feature_collection_is_identity():
    result = normalize_geometry(collection(polygon(10, 10, 0.5)))
    assert len(result.geoms) == 1
    assert result.bounds == pytest.approx((10, 10, 10.5, 10.5))
    assert result.symmetric_difference(box(10, 10, 10.5, 10.5)).area < 1e-12


def test_overlapping_polygons_are_unioned():
    result = normalize_geometry(collection(polygon(0, 0), polygon(0.5, 0)))
    # two unit squares overlapping by half
    assert result.area == pytest.approx(1.5)
    assert len(result.geoms) == 1


def test_disjoint_polygons_stay_multipart():
    result = normalize_geometry(collection(polygon(0, 0), polygon(5, 5)))
    assert len(result.geoms) == 2
    assert result.area == pytest.approx(2.0)


def test_non_polygon_members_are_ignored():
    fc = collection(
        {"type": "Point", "coordinates": [0, 0]},
        polygon(0, 0),
        {"type": "LineString", "coordinates": [[0, 0], [1, 1]]},
    )
    fc["features"].append({"type": "Feature", "geometry": None, "properties": {}})
    assert normalize_geometry(fc).area == pytest.approx(1.0)


def test_collection_without_polygons():
    fc = collection(
        {"type": "Point", "coordinates": [0, 0]},
        {"type": "LineString", "coordinates": [[0, 0], [1, 1]]},
    )
    with pytest.raises(NoPolygonGeometry) as exc:
        normalize_geometry(fc)
    assert exc.value.to_dict()["geometry_types"] == ["LineString", "Point"]

    with pytest.raises(NoPolygonGeometry):
        normalize_geometry({"type": "FeatureCollection", "features": []})


def test_geometry_collection_is_supported():
    gc = {"type": "GeometryCollection", "geometries": [
        {"type": "Point", "coordinates": [0, 0]}, polygon(0, 0, 2),
    ]}
    assert normalize_geometry(gc).area == pytest.approx(4.0)


def test_unsupported_top_level_types():
    with pytest.raises(UnsupportedGeometryType):
        normalize_geometry({"type": "Point", "coordinates": [0, 0]})
    with pytest.raises(UnsupportedGeometryType):
        normalize_geometry(feature({"type": "LineString", "coordinates": [[0, 0], [1, 1]]}))
    with pytest.raises(UnsupportedGeometryType):
        normalize_geometry("POLYGON ((0 0, 1 0, 1 1, 0 0))")


def test_feature_without_geometry():
    with pytest.raises(NoPolygonGeometry):
        normalize_geometry({"type": "Feature", "geometry": None, "properties": {}})


def test_unclosed_ring_is_rejected():
    open_ring = ring(0, 0)[:-1]
    with pytest.raises(InvalidPolygonInput, match="not closed"):
        normalize_geometry({"type": "Polygon", "coordinates": [open_ring]})


def test_ring_needs_three_distinct_vertices():
    degenerate = [[0, 0], [1, 0], [1, 0], [0, 0]]
    with pytest.raises(InvalidPolygonInput) as exc:
        normalize_geometry({"type": "Polygon", "coordinates": [degenerate]})
    assert exc.value.details["distinct_vertices"] == 2


def test_malformed_coordinates_are_rejected():
    with pytest.raises(InvalidPolygonInput):
        normalize_geometry({"type": "Polygon", "coordinates": [[[0, 0], [1], [1, 1], [0, 0]]]})
    with pytest.raises(InvalidPolygonInput):
        normalize_geometry({"type": "Polygon", "coordinates": []})
    with pytest.raises(InvalidPolygonInput) as exc:
        normalize_geometry({"type": "Polygon", "coordinates": 5})
    assert exc.value.details["geometry_type"] == "Polygon"
    with pytest.raises(InvalidPolygonInput) as exc:
        normalize_geometry({"type": "MultiPolygon", "coordinates": 5})
    assert exc.value.details["geometry_type"] == "MultiPolygon"
    with pytest.raises(InvalidPolygonInput):
        normalize_geometry({"type": "MultiPolygon", "coordinates": [5]})
    with pytest.raises(InvalidPolygonInput):
        normalize_geometry({"type": "Polygon", "coordinates": [5]})


def test_near_duplicate_vertices_are_snapped():
    coords = [[0, 0], [1, 0], [1 + 1e-13, 1e-13], [1, 1], [0, 1], [0, 0]]
    result = normalize_geometry({"type": "Polygon", "coordinates": [coords]})
    assert result.is_valid
    assert result.area == pytest.approx(1.0)


def test_self_touching_ring_is_repaired():
    # vertex (1, 0) touches the bottom edge
    coords = [[0, 0], [2, 0], [2, 2], [1, 0], [0, 2], [0, 0]]
    result = normalize_geometry({"type": "Polygon", "coordinates": [coords]})
    assert result.is_valid
    assert result.area > 0


def test_bow_tie_is_repaired_into_two_parts():
    coords = [[0, 0], [1, 1], [1, 0], [0, 1], [0, 0]]
    result = normalize_geometry({"type": "Polygon", "coordinates": [coords]})
    assert result.is_valid
    assert len(result.geoms) == 2
    assert result.area == pytest.approx(0.5)


def test_overlapping_multipolygon_parts_are_merged():
    multi = {"type": "MultiPolygon", "coordinates": [[ring(0, 0)], [ring(0.5, 0)]]}
    result = normalize_geometry(multi)
    assert result.is_valid
    assert result.area == pytest.approx(1.5)


def test_ensure_valid_multipolygon():
    assert isinstance(ensure_valid_multipolygon(Polygon(ring(0, 0))), MultiPolygon)
    with pytest.raises(InvalidPolygonInput):
        ensure_valid_multipolygon(MultiPolygon(), "baseline")
    with pytest.raises(InvalidPolygonInput):
        ensure_valid_multipolygon(None)
    bow_tie = Polygon([(0, 0), (1, 1), (1, 0), (0, 1)])
    with pytest.raises(InvalidPolygonInput, match="invalid"):
        ensure_valid_multipolygon(bow_tie)
