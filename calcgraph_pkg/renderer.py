"""Graph rendering facade: expressions in, Graph records out."""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Union

import numpy as np

from .analysis import SpecialPoint, find_special_points
from .config import (
    DEFAULT_3D_RESOLUTION,
    DEFAULT_RESOLUTION,
    DEFAULT_SCREEN_HEIGHT,
    DEFAULT_SCREEN_WIDTH,
    IMPLICIT_TOLERANCE,
    MAX_RESOLUTION,
    POINT_HIT_DISTANCE,
    SPECIAL_POINT_RESOLUTION,
    SPECIAL_POINT_TOLERANCE,
    VERSION,
)
from .graph import Annotation, Graph, GraphStyle
from .logging_config import get_logger
from .models import Expression, Point3D, Range
from .nodes import Binary, Node
from .sampler import CancellationToken, GraphSampler, clamp_resolution
from .service import EQUATION_OPERATORS, CalculatorService
from .types import (
    AngleUnit,
    CalculationError,
    ExpressionParseError,
    FunctionType,
    RenderError,
    UnsupportedFunctionError,
    ValidationError,
)

logger = get_logger("renderer")

ExpressionLike = Union[Expression, str]

DEFAULT_RANGE = (-10.0, 10.0)
FULL_TURN = (0.0, 2 * math.pi)


@dataclass(frozen=True)
class PointValue:
    """Nearest sampled point to a screen position."""

    math_coordinate: Point3D
    function_value: float
    on_function: bool
    distance: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "math_coordinate": self.math_coordinate.to_dict(),
            "function_value": self.function_value,
            "on_function": self.on_function,
            "distance": self.distance,
        }


@contextmanager
def _render_errors(kind: str, expression: Any = None) -> Iterator[None]:
    try:
        yield
    except (RenderError, UnsupportedFunctionError):
        raise
    except (CalculationError, ValidationError) as e:
        raise RenderError(f"Failed to render {kind}: {e}", expression) from e


class GraphRenderer:
    """Builds Graph records by sampling expressions.

    Args:
        service: CalculatorService used to parse string input; its evaluator
            (and precision) drives sampling
    """

    supported_function_types: tuple[FunctionType, ...] = tuple(FunctionType)

    def __init__(self, service: CalculatorService | None = None):
        self.service = service or CalculatorService()
        self.sampler = GraphSampler(self.service.evaluator)

    def _expression(self, expression: ExpressionLike) -> Expression:
        if isinstance(expression, str):
            try:
                return self._checked(self.service.parse_expression(expression))
            except ExpressionParseError as e:
                raise RenderError(f"Cannot render invalid expression: {e}", expression) from e
        return self._checked(expression)

    @staticmethod
    def _checked(expression: Expression) -> Expression:
        if not expression.is_valid or expression.ast is None:
            raise RenderError(
                f"Cannot render invalid expression: {expression.error_message or expression.input}",
                expression,
            )
        return expression

    def render_2d(
        self,
        expression: ExpressionLike,
        x_range: Any = DEFAULT_RANGE,
        y_range: Any = DEFAULT_RANGE,
        resolution: int = DEFAULT_RESOLUTION,
        style: GraphStyle | None = None,
        token: CancellationToken | None = None,
    ) -> Graph:
        """Render y = f(x) over ``x_range``."""
        expression = self._expression(expression)
        with _render_errors("2D graph", expression):
            resolution = clamp_resolution(resolution)
            points = self.sampler.sample_2d(
                expression.ast, x_range, resolution, expression.variables, token
            )
            return Graph(
                expression.id,
                FunctionType.FUNCTION_2D,
                Range.of(x_range),
                Range.of(y_range),
                points,
                resolution=resolution,
                style=style,
            )

    def render_3d(
        self,
        expression: ExpressionLike,
        x_range: Any = DEFAULT_RANGE,
        y_range: Any = DEFAULT_RANGE,
        z_range: Any = DEFAULT_RANGE,
        x_resolution: int = DEFAULT_3D_RESOLUTION,
        y_resolution: int = DEFAULT_3D_RESOLUTION,
        style: GraphStyle | None = None,
        token: CancellationToken | None = None,
    ) -> Graph:
        """Render z = f(x, y); the graph's range is the z range."""
        expression = self._expression(expression)
        with _render_errors("3D graph", expression):
            x_resolution = clamp_resolution(x_resolution)
            y_resolution = clamp_resolution(y_resolution)
            points = self.sampler.sample_3d(
                expression.ast,
                x_range,
                y_range,
                x_resolution,
                y_resolution,
                expression.variables,
                token,
            )
            return Graph(
                expression.id,
                FunctionType.FUNCTION_3D,
                Range.of(x_range),
                Range.of(z_range),
                points,
                resolution=max(x_resolution, y_resolution),
                style=style,
            )

    def render_parametric(
        self,
        expressions: Sequence[ExpressionLike],
        parameter_range: Any = FULL_TURN,
        resolution: int = DEFAULT_RESOLUTION,
        style: GraphStyle | None = None,
        token: CancellationToken | None = None,
    ) -> Graph:
        """Render (x(t), y(t)) or (x(t), y(t), z(t)); the first expression owns the graph."""
        if not 2 <= len(expressions) <= 3:
            raise RenderError(
                "Parametric graphs need x and y expressions and at most a z expression"
            )
        parsed = [self._expression(item) for item in expressions]
        variables: dict[str, Any] = {}
        for item in parsed:
            variables.update(item.variables)

        with _render_errors("parametric graph", parsed[0]):
            resolution = clamp_resolution(resolution)
            points = self.sampler.sample_parametric(
                [item.ast for item in parsed], parameter_range, resolution, variables, token
            )
            function_type = (
                FunctionType.PARAMETRIC_3D if len(parsed) == 3 else FunctionType.PARAMETRIC_2D
            )
            return Graph(
                parsed[0].id,
                function_type,
                Range.of(parameter_range),
                Range(0.0, 1.0),
                points,
                resolution=resolution,
                style=style,
            )

    def render_polar(
        self,
        expression: ExpressionLike,
        angle_range: Any = FULL_TURN,
        radius_range: Any = (0.0, 10.0),
        resolution: int = DEFAULT_RESOLUTION,
        angle_unit: AngleUnit = AngleUnit.RADIAN,
        style: GraphStyle | None = None,
        token: CancellationToken | None = None,
    ) -> Graph:
        """Render r = f(theta); the graph's domain is the angle range in ``angle_unit``."""
        expression = self._expression(expression)
        with _render_errors("polar graph", expression):
            resolution = clamp_resolution(resolution)
            points = self.sampler.sample_polar(
                expression.ast, angle_range, resolution, angle_unit, expression.variables, token
            )
            return Graph(
                expression.id,
                FunctionType.POLAR,
                Range.of(angle_range),
                Range.of(radius_range),
                points,
                resolution=resolution,
                style=style,
            )

    def render_implicit(
        self,
        expression: ExpressionLike,
        x_range: Any = DEFAULT_RANGE,
        y_range: Any = DEFAULT_RANGE,
        resolution: int = DEFAULT_RESOLUTION,
        contour_value: float | None = None,
        tolerance: float = IMPLICIT_TOLERANCE,
        style: GraphStyle | None = None,
        token: CancellationToken | None = None,
    ) -> Graph:
        """Render the contour f(x, y) = c.

        An equation ``lhs = rhs`` is sampled as ``lhs - rhs``. A missing
        contour value means 0.
        """
        expression = self._expression(expression)
        node: Node = expression.ast
        if isinstance(node, Binary) and node.op in EQUATION_OPERATORS:
            node = Binary("-", node.left, node.right)

        with _render_errors("implicit graph", expression):
            resolution = clamp_resolution(resolution)
            points = self.sampler.sample_implicit(
                node,
                x_range,
                y_range,
                resolution,
                0.0 if contour_value is None else contour_value,
                tolerance,
                expression.variables,
                token,
            )
            return Graph(
                expression.id,
                FunctionType.IMPLICIT,
                Range.of(x_range),
                Range.of(y_range),
                points,
                resolution=resolution,
                style=style,
            )

    def render(
        self,
        function_type: FunctionType | str,
        expressions: ExpressionLike | Sequence[ExpressionLike],
        **options: Any,
    ) -> Graph:
        """Dispatch to the render method for ``function_type``.

        Raises:
            UnsupportedFunctionError: If this renderer does not handle the type.
        """
        kind = self._function_type(function_type)
        if kind in (FunctionType.PARAMETRIC_2D, FunctionType.PARAMETRIC_3D):
            if isinstance(expressions, (str, Expression)):
                raise RenderError("Parametric graphs need a sequence of expressions")
            return self.render_parametric(list(expressions), **options)

        if not isinstance(expressions, (str, Expression)):
            items = list(expressions)
            if len(items) != 1:
                raise RenderError(f"A {kind.value} graph takes exactly one expression")
            expressions = items[0]

        if kind == FunctionType.FUNCTION_2D:
            return self.render_2d(expressions, **options)
        if kind == FunctionType.FUNCTION_3D:
            return self.render_3d(expressions, **options)
        if kind == FunctionType.POLAR:
            return self.render_polar(expressions, **options)
        return self.render_implicit(expressions, **options)

    def _function_type(self, function_type: FunctionType | str) -> FunctionType:
        try:
            kind = FunctionType(function_type)
        except ValueError:
            raise UnsupportedFunctionError(
                f"Unknown function type: {function_type}", str(function_type)
            ) from None
        if kind not in self.supported_function_types:
            raise UnsupportedFunctionError(
                f"Function type not supported by this renderer: {kind.value}", kind.value
            )
        return kind

    def find_special_points(
        self,
        expression: ExpressionLike,
        domain: Any,
        tolerance: float = SPECIAL_POINT_TOLERANCE,
        resolution: int = SPECIAL_POINT_RESOLUTION,
    ) -> list[SpecialPoint]:
        """Sample densely over ``domain`` and report zeros and extrema."""
        expression = self._expression(expression)
        with _render_errors("special points", expression):
            points = self.sampler.sample_2d(
                expression.ast, domain, resolution, expression.variables
            )
            return find_special_points(points, tolerance)

    def update_viewport(self, graph: Graph, **changes: float) -> Graph:
        """Copy of ``graph`` with viewport fields replaced."""
        updated = graph.copy()
        updated.update_viewport(**changes)
        return updated

    def add_annotations(self, graph: Graph, annotations: Sequence[Annotation]) -> Graph:
        """Copy of ``graph`` with ``annotations`` appended."""
        updated = graph.copy()
        for annotation in annotations:
            updated.add_annotation(annotation)
        return updated

    def point_value(
        self,
        graph: Graph,
        screen_x: float,
        screen_y: float,
        width: float = DEFAULT_SCREEN_WIDTH,
        height: float = DEFAULT_SCREEN_HEIGHT,
    ) -> PointValue | None:
        """Nearest sampled point to a screen position, or None for an empty graph."""
        if not graph.points:
            return None
        x, y = graph.viewport.to_math(screen_x, screen_y, width, height)
        target = np.array([x, y, 0.0])
        coords = np.array([(p.x, p.y, p.z) for p in graph.points], dtype=float)
        distances = np.linalg.norm(coords - target, axis=1)
        nearest = int(np.argmin(distances))
        distance = float(distances[nearest])
        return PointValue(
            math_coordinate=Point3D(x, y, 0.0),
            function_value=graph.points[nearest].y,
            on_function=distance < POINT_HIT_DISTANCE,
            distance=distance,
        )

    def renderer_info(self) -> dict[str, Any]:
        return {
            "supported_function_types": [kind.value for kind in self.supported_function_types],
            "max_resolution": MAX_RESOLUTION,
            "version": VERSION,
        }

    def is_function_type_supported(self, function_type: FunctionType | str) -> bool:
        try:
            return FunctionType(function_type) in self.supported_function_types
        except ValueError:
            return False
