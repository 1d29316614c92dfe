"""Sampling of expressions into point sets.

A sample whose evaluation fails (domain gap, asymptote, division by zero) or
is not finite is skipped. A run fails with RenderError only when nothing at
all survives. Samples are produced in ascending coordinate order.
"""

from __future__ import annotations

import math
import time
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from .config import IMPLICIT_TOLERANCE, MAX_RESOLUTION
from .evaluator import Evaluator
from .logging_config import get_logger
from .mathutils import to_radians
from .models import Point3D, Range
from .nodes import Node
from .types import AngleUnit, CalculationError, OperationCancelledError, RenderError, ValidationError

logger = get_logger("sampler")


class CancellationToken:
    """Cooperative cancellation for long sampling runs.

    Args:
        timeout: Optional number of seconds after which the token expires
    """

    def __init__(self, timeout: float | None = None):
        self._cancelled = False
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        if self._cancelled:
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def check(self) -> None:
        if self._cancelled:
            raise OperationCancelledError("Sampling was cancelled")
        if self.cancelled:
            raise OperationCancelledError("Sampling deadline exceeded")


def clamp_resolution(resolution: int) -> int:
    """Validate a resolution and cap it at MAX_RESOLUTION."""
    resolution = int(resolution)
    if resolution < 1:
        raise ValidationError("Resolution must be at least 1", "INVALID_RESOLUTION")
    if resolution > MAX_RESOLUTION:
        logger.warning(f"Resolution {resolution} capped at {MAX_RESOLUTION}")
        return MAX_RESOLUTION
    return resolution


def _axis(bounds: Range, resolution: int) -> list[float]:
    return np.linspace(bounds.min, bounds.max, resolution + 1).tolist()


class GraphSampler:
    """Drives an Evaluator across a domain.

    Args:
        evaluator: Evaluator used for every sample; a default one is created if omitted
    """

    def __init__(self, evaluator: Evaluator | None = None):
        self.evaluator = evaluator or Evaluator()

    def _value(self, node: Node, bindings: dict[str, Any]) -> float | None:
        try:
            value = self.evaluator.evaluate_float(node, bindings)
        except CalculationError:
            return None
        return value if math.isfinite(value) else None

    @staticmethod
    def _finish(kind: str, points: list[Point3D], total: int) -> list[Point3D]:
        logger.debug("%s sampling kept %d of %d samples", kind, len(points), total)
        if not points:
            raise RenderError(f"No valid points could be generated for the {kind} graph")
        return points

    def sample_2d(
        self,
        node: Node,
        domain: Any,
        resolution: int,
        variables: Mapping[str, Any] | None = None,
        token: CancellationToken | None = None,
    ) -> list[Point3D]:
        """Sample y = f(x) at resolution + 1 evenly spaced x values."""
        domain = Range.of(domain)
        resolution = clamp_resolution(resolution)
        bindings = dict(variables or {})
        points: list[Point3D] = []
        xs = _axis(domain, resolution)
        for x in xs:
            if token is not None:
                token.check()
            bindings["x"] = x
            y = self._value(node, bindings)
            if y is not None:
                points.append(Point3D(x, y, 0.0))
        return self._finish("2D", points, len(xs))

    def sample_3d(
        self,
        node: Node,
        x_range: Any,
        y_range: Any,
        x_resolution: int,
        y_resolution: int,
        variables: Mapping[str, Any] | None = None,
        token: CancellationToken | None = None,
    ) -> list[Point3D]:
        """Sample z = f(x, y) on a grid, x in the outer loop."""
        xs = _axis(Range.of(x_range), clamp_resolution(x_resolution))
        ys = _axis(Range.of(y_range), clamp_resolution(y_resolution))
        bindings = dict(variables or {})
        points: list[Point3D] = []
        for x in xs:
            bindings["x"] = x
            for y in ys:
                if token is not None:
                    token.check()
                bindings["y"] = y
                z = self._value(node, bindings)
                if z is not None:
                    points.append(Point3D(x, y, z))
        return self._finish("3D", points, len(xs) * len(ys))

    def sample_parametric(
        self,
        nodes: Sequence[Node],
        parameter_range: Any,
        resolution: int,
        variables: Mapping[str, Any] | None = None,
        token: CancellationToken | None = None,
    ) -> list[Point3D]:
        """Sample (x(t), y(t)[, z(t)]); a point needs every component finite."""
        if not 2 <= len(nodes) <= 3:
            raise RenderError(
                f"Parametric graphs need 2 or 3 component expressions, got {len(nodes)}"
            )
        ts = _axis(Range.of(parameter_range), clamp_resolution(resolution))
        bindings = dict(variables or {})
        points: list[Point3D] = []
        for t in ts:
            if token is not None:
                token.check()
            bindings["t"] = t
            components = []
            for node in nodes:
                value = self._value(node, bindings)
                if value is None:
                    break
                components.append(value)
            else:
                if len(components) == 2:
                    components.append(0.0)
                points.append(Point3D(*components))
        return self._finish("parametric", points, len(ts))

    def sample_polar(
        self,
        node: Node,
        angle_range: Any,
        resolution: int,
        angle_unit: AngleUnit = AngleUnit.RADIAN,
        variables: Mapping[str, Any] | None = None,
        token: CancellationToken | None = None,
    ) -> list[Point3D]:
        """Sample r = f(theta) and convert to Cartesian; negative radii are skipped.

        ``theta`` is bound in radians whatever ``angle_unit`` the range is given in.
        """
        unit = AngleUnit(angle_unit)
        thetas = _axis(Range.of(angle_range), clamp_resolution(resolution))
        bindings = dict(variables or {})
        points: list[Point3D] = []
        for theta in thetas:
            if token is not None:
                token.check()
            radians = to_radians(theta, unit)
            bindings["theta"] = radians
            r = self._value(node, bindings)
            if r is not None and r >= 0:
                points.append(Point3D(r * math.cos(radians), r * math.sin(radians), 0.0))
        return self._finish("polar", points, len(thetas))

    def sample_implicit(
        self,
        node: Node,
        x_range: Any,
        y_range: Any,
        resolution: int,
        contour_value: float = 0.0,
        tolerance: float = IMPLICIT_TOLERANCE,
        variables: Mapping[str, Any] | None = None,
        token: CancellationToken | None = None,
    ) -> list[Point3D]:
        """Approximate the contour f(x, y) = contour_value on a resolution x resolution grid.

        A cell is flagged when its corner values straddle the contour value
        (inclusive) and every corner evaluates. A flagged cell contributes its
        center, provided f(center) is within ``tolerance`` of the contour value.
        """
        resolution = clamp_resolution(resolution)
        xs = _axis(Range.of(x_range), resolution)
        ys = _axis(Range.of(y_range), resolution)
        bindings = dict(variables or {})

        corners = np.full((len(xs), len(ys)), np.nan)
        for i, x in enumerate(xs):
            bindings["x"] = x
            for j, y in enumerate(ys):
                if token is not None:
                    token.check()
                bindings["y"] = y
                value = self._value(node, bindings)
                if value is not None:
                    corners[i, j] = value

        points: list[Point3D] = []
        for i in range(resolution):
            for j in range(resolution):
                if token is not None:
                    token.check()
                cell = corners[i : i + 2, j : j + 2]
                if np.isnan(cell).any():
                    continue
                if not cell.min() <= contour_value <= cell.max():
                    continue
                center_x = (xs[i] + xs[i + 1]) / 2
                center_y = (ys[j] + ys[j + 1]) / 2
                bindings["x"] = center_x
                bindings["y"] = center_y
                value = self._value(node, bindings)
                if value is not None and abs(value - contour_value) <= tolerance:
                    points.append(Point3D(center_x, center_y, 0.0))
        return self._finish("implicit", points, resolution * resolution)
