"""Tests for the graph sampler."""

import logging
import math

import pytest

from calcgraph_pkg.config import MAX_RESOLUTION
from calcgraph_pkg.parser import parse_ast
from calcgraph_pkg.sampler import CancellationToken, GraphSampler, clamp_resolution
from calcgraph_pkg.types import AngleUnit, OperationCancelledError, RenderError, ValidationError


@pytest.fixture
def sampler():
    return GraphSampler()


class TestSample2D:
    def test_parabola(self, sampler):
        points = sampler.sample_2d(parse_ast("x^2"), (-5, 5), 100)
        assert len(points) == 101
        xs = [p.x for p in points]
        assert xs == sorted(xs)
        assert xs[0] == -5 and xs[-1] == 5
        for p in points:
            assert p.y == pytest.approx(p.x**2, abs=1e-9)
            assert p.z == 0

    def test_singularity_skipped(self, sampler):
        points = sampler.sample_2d(parse_ast("1/x"), (-1, 1), 2)
        assert [p.x for p in points] == [-1, 1]

    def test_domain_gap_skipped(self, sampler):
        points = sampler.sample_2d(parse_ast("sqrt(x)"), (-1, 1), 4)
        assert [p.x for p in points] == [0, 0.5, 1]

    def test_nothing_valid(self, sampler):
        with pytest.raises(RenderError):
            sampler.sample_2d(parse_ast("sqrt(-1 - x^2)"), (-1, 1), 10)

    def test_infinite_binding_is_a_render_error(self, sampler):
        with pytest.raises(RenderError):
            sampler.sample_2d(parse_ast("sin(a * x)"), (-1, 1), 10, {"a": math.inf})

    def test_bound_variables(self, sampler):
        points = sampler.sample_2d(parse_ast("a*x"), (0, 1), 1, {"a": 3})
        assert [p.y for p in points] == [0, 3]


class TestResolution:
    def test_invalid(self, sampler):
        with pytest.raises(ValidationError):
            sampler.sample_2d(parse_ast("x"), (0, 1), 0)

    def test_capped_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="calcgraph"):
            assert clamp_resolution(MAX_RESOLUTION * 2) == MAX_RESOLUTION
        assert "capped" in caplog.text

    def test_in_range(self):
        assert clamp_resolution(50) == 50


class TestSample3D:
    def test_grid_order(self, sampler):
        points = sampler.sample_3d(parse_ast("x + y"), (0, 2), (0, 3), 2, 3)
        assert len(points) == 12
        assert [(p.x, p.y) for p in points[:4]] == [(0, 0), (0, 1), (0, 2), (0, 3)]
        assert all(p.z == pytest.approx(p.x + p.y) for p in points)

    def test_holes_skipped(self, sampler):
        points = sampler.sample_3d(parse_ast("1/(x - y)"), (0, 1), (0, 1), 1, 1)
        assert len(points) == 2


class TestParametric:
    def test_circle(self, sampler):
        nodes = [parse_ast("cos(t)"), parse_ast("sin(t)")]
        points = sampler.sample_parametric(nodes, (0, 2 * math.pi), 8)
        assert len(points) == 9
        for p in points:
            assert math.hypot(p.x, p.y) == pytest.approx(1)
            assert p.z == 0

    def test_helix(self, sampler):
        nodes = [parse_ast("cos(t)"), parse_ast("sin(t)"), parse_ast("t")]
        points = sampler.sample_parametric(nodes, (0, 1), 4)
        assert [p.z for p in points] == pytest.approx([0, 0.25, 0.5, 0.75, 1])

    def test_component_count(self, sampler):
        with pytest.raises(RenderError):
            sampler.sample_parametric([parse_ast("t")], (0, 1), 4)

    def test_point_needs_every_component(self, sampler):
        nodes = [parse_ast("t"), parse_ast("sqrt(t)")]
        points = sampler.sample_parametric(nodes, (-1, 1), 2)
        assert [p.x for p in points] == [0, 1]


class TestPolar:
    def test_cardioid(self, sampler):
        points = sampler.sample_polar(parse_ast("1 + cos(theta)"), (0, 2 * math.pi), 100)
        assert len(points) >= 90

    def test_degrees(self, sampler):
        points = sampler.sample_polar(parse_ast("1"), (0, 90), 2, AngleUnit.DEGREE)
        coords = [(p.x, p.y) for p in points]
        half = math.sqrt(0.5)
        assert coords == [
            pytest.approx((1, 0)),
            pytest.approx((half, half)),
            pytest.approx((0, 1)),
        ]

    def test_negative_radius_skipped(self, sampler):
        points = sampler.sample_polar(parse_ast("theta - 1"), (0, 2), 2)
        assert len(points) == 2
        assert points[0].x == pytest.approx(0)


class TestImplicit:
    def test_unit_circle(self, sampler):
        points = sampler.sample_implicit(parse_ast("x^2 + y^2 - 1"), (-2, 2), (-2, 2), 40)
        assert points
        for p in points:
            assert abs(p.x**2 + p.y**2 - 1) <= 0.1

    def test_contour_value(self, sampler):
        points = sampler.sample_implicit(
            parse_ast("x^2 + y^2"), (-3, 3), (-3, 3), 30, contour_value=4, tolerance=0.5
        )
        assert points
        for p in points:
            assert abs(p.x**2 + p.y**2 - 4) <= 0.5

    def test_no_contour(self, sampler):
        with pytest.raises(RenderError):
            sampler.sample_implicit(parse_ast("x^2 + y^2 + 1"), (-1, 1), (-1, 1), 10)


class TestCancellation:
    def test_cancelled_token(self, sampler):
        token = CancellationToken()
        assert not token.cancelled
        token.cancel()
        assert token.cancelled
        with pytest.raises(OperationCancelledError) as exc_info:
            sampler.sample_2d(parse_ast("x"), (0, 1), 10, token=token)
        assert isinstance(exc_info.value, RenderError)
        assert exc_info.value.code == "CANCELLED"

    def test_deadline(self, sampler):
        token = CancellationToken(timeout=0)
        with pytest.raises(OperationCancelledError, match="deadline"):
            sampler.sample_3d(parse_ast("x*y"), (0, 1), (0, 1), 5, 5, token=token)

    def test_unexpired_token(self, sampler):
        token = CancellationToken(timeout=60)
        assert len(sampler.sample_2d(parse_ast("x"), (0, 1), 4, token=token)) == 5
