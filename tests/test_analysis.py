"""Tests for zero and extremum detection."""

import pytest

from calcgraph_pkg.analysis import SpecialPoint, find_special_points
from calcgraph_pkg.models import Point3D
from calcgraph_pkg.renderer import GraphRenderer
from calcgraph_pkg.types import SpecialPointType


def pts(*pairs):
    return [Point3D(x, y) for x, y in pairs]


class TestFindSpecialPoints:
    def test_sign_changes_and_minimum(self):
        found = find_special_points(pts((0, 1), (1, -1), (2, 1)))
        assert [p.type for p in found] == [
            SpecialPointType.ZERO,
            SpecialPointType.ZERO,
            SpecialPointType.MINIMUM,
        ]
        assert found[0].position.x == pytest.approx(0.5)
        assert found[1].position.x == pytest.approx(1.5)
        assert found[2].position == Point3D(1, -1)

    def test_descriptions(self):
        found = find_special_points(pts((0, 0), (1, 1), (2, 0)))
        assert [p.description for p in found] == [
            "Zero: (0.000, 0.000)",
            "Zero: (2.000, 0.000)",
            "Maximum: (1.000, 1.000)",
        ]
        assert found[2].value == 1

    def test_crossing_can_be_reported_twice(self):
        found = find_special_points(pts((0, -1), (1, 0.0005), (2, 1)))
        zeros = [p for p in found if p.type == SpecialPointType.ZERO]
        assert len(zeros) == 2
        assert zeros[0].position.x == pytest.approx(1 / 1.0005)
        assert zeros[1].position == Point3D(1, 0.0005)

    def test_custom_tolerance(self):
        found = find_special_points(pts((0, 0.05), (1, 2)), tolerance=0.1)
        assert len(found) == 1

    def test_two_points_have_no_extrema(self):
        found = find_special_points(pts((0, 1), (1, -1)))
        assert [p.type for p in found] == [SpecialPointType.ZERO]

    def test_equal_x_skipped(self):
        assert find_special_points(pts((0, 0.5), (0, 1), (1, 0.5))) == []

    def test_monotone_has_none(self):
        assert find_special_points(pts((0, 1), (1, 2), (2, 3), (3, 4))) == []

    def test_empty(self):
        assert find_special_points([]) == []


class TestFromExpression:
    def test_parabola(self):
        found = GraphRenderer().find_special_points("x^2 - 4", (-5, 5))
        zeros = [p.position.x for p in found if p.type == SpecialPointType.ZERO]
        minima = [p for p in found if p.type == SpecialPointType.MINIMUM]
        assert any(abs(x + 2) < 0.01 for x in zeros)
        assert any(abs(x - 2) < 0.01 for x in zeros)
        assert len(minima) == 1
        assert minima[0].position.x == pytest.approx(0, abs=0.01)
        assert minima[0].value == pytest.approx(-4, abs=1e-3)

    def test_sine_maximum(self):
        found = GraphRenderer().find_special_points("sin(x)", (0, 3), resolution=300)
        maxima = [p for p in found if p.type == SpecialPointType.MAXIMUM]
        assert len(maxima) == 1
        assert maxima[0].position.x == pytest.approx(1.5708, abs=0.01)


def test_dict_round_trip():
    point = SpecialPoint(SpecialPointType.MAXIMUM, Point3D(1, 2), 2.0, "Maximum: (1.000, 2.000)")
    assert SpecialPoint.from_dict(point.to_dict()) == point
