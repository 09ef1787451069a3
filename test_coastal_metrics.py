import pytest
from shapely.geometry import MultiPolygon, Polygon, box

from coastal_errors import DivisionByZeroArea
from coastal_metrics import (
    ChangeMetrics,
    boundary_length_km,
    compute_metrics,
    geodesic_area_km2,
)


def test_geodesic_area_of_one_degree_cell_at_equator():
    # ~12,309 km² on WGS84
    area = geodesic_area_km2(box(0, 0, 1, 1))
    assert 12_200 < area < 12_400


def test_area_shrinks_towards_the_poles():
    equator = geodesic_area_km2(box(0, 0, 1, 1))
    north = geodesic_area_km2(box(0, 60, 1, 61))
    assert north / equator == pytest.approx(0.5, abs=0.02)


def test_area_ignores_ring_orientation():
    ccw = Polygon([(0, 0), (1, 0), (1, 1), (0, 1)])
    cw = Polygon([(0, 0), (0, 1), (1, 1), (1, 0)])
    assert geodesic_area_km2(ccw) == pytest.approx(geodesic_area_km2(cw))


def test_holes_are_subtracted():
    outer = box(0, 0, 1, 1)
    holed = outer.difference(box(0.25, 0.25, 0.75, 0.75))
    assert geodesic_area_km2(holed) == pytest.approx(
        geodesic_area_km2(outer) - geodesic_area_km2(box(0.25, 0.25, 0.75, 0.75))
    )


def test_multipolygon_area_is_summed():
    a, b = box(0, 0, 1, 1), box(5, 0, 6, 1)
    assert geodesic_area_km2(MultiPolygon([a, b])) == pytest.approx(
        geodesic_area_km2(a) + geodesic_area_km2(b)
    )


def test_empty_geometry_has_zero_area():
    assert geodesic_area_km2(MultiPolygon()) == 0.0


def test_boundary_length_of_one_degree_cell():
    # two meridian arcs (~110.6 km) and two equator-ish arcs (~111.3 km)
    length = boundary_length_km(box(0, 0, 1, 1))
    assert 440 < length < 447


def test_boundary_length_includes_holes():
    outer = box(0, 0, 1, 1)
    holed = outer.difference(box(0.25, 0.25, 0.75, 0.75))
    assert boundary_length_km(holed) > boundary_length_km(outer)


def test_compute_metrics_for_shrunk_square():
    baseline = box(0, 0, 1, 1)
    comparison = box(0, 0, 1, 0.9)
    loss = box(0, 0.9, 1, 1)
    metrics = compute_metrics(baseline, comparison, loss, MultiPolygon(), 2000, 2010)

    assert metrics.year_span == 10
    assert metrics.land_gain_area == 0.0
    assert metrics.net_change == pytest.approx(-metrics.land_loss_area)
    assert metrics.average_annual_change == pytest.approx(metrics.net_change / 10)
    assert metrics.percentage_change == pytest.approx(-10.0, abs=0.05)
    assert metrics.baseline_area + metrics.land_gain_area - metrics.land_loss_area == pytest.approx(
        metrics.comparison_area
    )
    assert metrics.affected_length == pytest.approx(boundary_length_km(baseline))


def test_zero_year_span_gives_zero_rate():
    metrics = compute_metrics(box(0, 0, 1, 1), box(0, 0, 1, 0.5), box(0, 0.5, 1, 1),
                              MultiPolygon(), 2015, 2015)
    assert metrics.year_span == 0
    assert metrics.average_annual_change == 0.0


def test_negative_year_span_gives_zero_rate():
    metrics = compute_metrics(box(0, 0, 1, 1), box(0, 0, 1, 0.5), box(0, 0.5, 1, 1),
                              MultiPolygon(), 2020, 2010)
    assert metrics.year_span == -10
    assert metrics.average_annual_change == 0.0


def test_zero_baseline_area_is_an_error():
    with pytest.raises(DivisionByZeroArea):
        compute_metrics(MultiPolygon(), box(0, 0, 1, 1), MultiPolygon(), box(0, 0, 1, 1), 2000, 2010)


def test_rounding_for_presentation():
    metrics = ChangeMetrics(
        baseline_area=100.0,
        comparison_area=97.0,
        land_loss_area=3.123456,
        land_gain_area=0.000001,
        net_change=-3.123466,
        percentage_change=-3.0049,
        average_annual_change=-0.00001,
        affected_length=41.2345,
        year_span=10,
    )
    assert metrics.rounded() == {
        "land_loss_area": 3.1235,
        "land_gain_area": 0.0,
        "net_change": -3.1235,
        "percentage_change": -3.0,
        "average_annual_change": 0.0,
        "affected_length": 41.23,
    }
    # -0.0 is folded into 0.0
    assert str(metrics.rounded()["average_annual_change"]) == "0.0"
    assert metrics.to_dict()["land_loss_area"] == 3.123456
