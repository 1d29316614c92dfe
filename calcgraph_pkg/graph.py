"""Graph records: style, annotations, the viewport transform and the Graph itself."""

from __future__ import annotations

import dataclasses
import json
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import numpy as np

from .config import (
    DEFAULT_RESOLUTION,
    DEFAULT_SCREEN_HEIGHT,
    DEFAULT_SCREEN_WIDTH,
    MAX_ANNOTATIONS,
    MAX_POINTS,
    MAX_RESOLUTION,
    SPECIAL_POINT_TOLERANCE,
)
from .analysis import SpecialPoint, find_special_points
from .logging_config import get_logger
from .models import Point3D, Range, new_id
from .types import FunctionType, ValidationError

logger = get_logger("graph")

TWO_PI = 2 * math.pi

ANNOTATION_TYPES = ("point", "line", "text", "arrow")
THREE_D_TYPES = frozenset({FunctionType.FUNCTION_3D, FunctionType.PARAMETRIC_3D})

# Rough per-item memory used by render_stats
POINT_BYTES = 24
ANNOTATION_BYTES = 200


@dataclass(frozen=True)
class GraphStyle:
    """Line style; the material fields are only set for 3D graphs."""

    color: str = "#007AFF"
    line_width: float = 2
    line_type: str = "solid"
    show_points: bool = False
    point_size: float = 3
    material: str | None = None
    opacity: float | None = None
    double_sided: bool | None = None

    @classmethod
    def default_for(cls, function_type: FunctionType) -> "GraphStyle":
        if function_type in THREE_D_TYPES:
            return cls(
                line_width=1, point_size=2, material="solid", opacity=0.8, double_sided=True
            )
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GraphStyle":
        return cls(**data)


@dataclass(frozen=True)
class Annotation:
    type: str
    position: Point3D
    content: str = ""
    style: dict[str, Any] = field(
        default_factory=lambda: {"font_size": 12, "font_color": "#000000"}
    )
    interactive: bool = False

    def __post_init__(self) -> None:
        if self.type not in ANNOTATION_TYPES:
            raise ValidationError(
                f"Annotation type must be one of {', '.join(ANNOTATION_TYPES)}", "INVALID_ANNOTATION"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "position": self.position.to_dict(),
            "content": self.content,
            "style": dict(self.style),
            "interactive": self.interactive,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Annotation":
        return cls(
            type=data["type"],
            position=Point3D.from_dict(data["position"]),
            content=data.get("content", ""),
            style=dict(data.get("style", {})),
            interactive=bool(data.get("interactive", False)),
        )


@dataclass
class Viewport:
    """Maps math coordinates to screen coordinates.

    ``scale_x``/``scale_y`` are screen units per math unit and must stay
    strictly positive. ``rotation`` is kept in [0, 2*pi) and is carried for
    consumers; the mapping functions do not apply it.
    """

    center_x: float = 0.0
    center_y: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    rotation: float = 0.0

    def __post_init__(self) -> None:
        self.validate()
        self.rotation = self.rotation % TWO_PI

    def validate(self) -> None:
        if not (self.scale_x > 0 and self.scale_y > 0):
            raise ValidationError("Viewport scale factors must be positive", "INVALID_VIEWPORT")

    def zoom(self, factor: float, pivot_x: float | None = None, pivot_y: float | None = None) -> None:
        """Scale by ``factor``; with a pivot, the pivot keeps its screen position."""
        if not (factor > 0 and math.isfinite(factor)):
            raise ValidationError(
                "Zoom factor must be a positive finite number", "INVALID_VIEWPORT"
            )
        self.scale_x *= factor
        self.scale_y *= factor
        if pivot_x is not None and pivot_y is not None:
            self.center_x = pivot_x - (pivot_x - self.center_x) / factor
            self.center_y = pivot_y - (pivot_y - self.center_y) / factor

    def pan(self, dx: float, dy: float) -> None:
        """Shift by a screen-space offset."""
        self.center_x += dx / self.scale_x
        self.center_y += dy / self.scale_y

    def rotate(self, angle: float) -> None:
        self.rotation = (self.rotation + angle) % TWO_PI

    def reset(self) -> None:
        self.center_x, self.center_y = 0.0, 0.0
        self.scale_x, self.scale_y = 1.0, 1.0
        self.rotation = 0.0

    def fit_to_view(
        self,
        points: Sequence[Point3D],
        padding: float = 0.1,
        width: float = 1.0,
        height: float = 1.0,
    ) -> None:
        """Center on the points' bounding box and scale it, padded, into width x height.

        With the default 1 x 1 target the scale is the reciprocal of the
        padded extent. Does nothing without points or when either extent is zero.
        """
        if not points:
            return
        coords = np.array([(p.x, p.y) for p in points], dtype=float)
        low = coords.min(axis=0)
        high = coords.max(axis=0)
        x_extent, y_extent = (high - low).tolist()
        if x_extent == 0 or y_extent == 0:
            return

        self.center_x = float((low[0] + high[0]) / 2)
        self.center_y = float((low[1] + high[1]) / 2)
        self.scale_x = width / (x_extent * (1 + 2 * padding))
        self.scale_y = height / (y_extent * (1 + 2 * padding))

    def to_screen(
        self,
        x: float,
        y: float,
        width: float = DEFAULT_SCREEN_WIDTH,
        height: float = DEFAULT_SCREEN_HEIGHT,
    ) -> tuple[float, float]:
        """Math to screen; the center maps to the screen middle and screen y grows downward."""
        return (
            width / 2 + (x - self.center_x) * self.scale_x,
            height / 2 - (y - self.center_y) * self.scale_y,
        )

    def to_math(
        self,
        screen_x: float,
        screen_y: float,
        width: float = DEFAULT_SCREEN_WIDTH,
        height: float = DEFAULT_SCREEN_HEIGHT,
    ) -> tuple[float, float]:
        return (
            (screen_x - width / 2) / self.scale_x + self.center_x,
            (height / 2 - screen_y) / self.scale_y + self.center_y,
        )

    def update(self, **changes: float) -> None:
        """Replace fields atomically; invalid changes leave the viewport untouched."""
        unknown = set(changes) - {f.name for f in dataclasses.fields(self)}
        if unknown:
            raise ValidationError(f"Unknown viewport fields: {', '.join(sorted(unknown))}")
        candidate = dataclasses.replace(self, **changes)
        self.center_x = candidate.center_x
        self.center_y = candidate.center_y
        self.scale_x = candidate.scale_x
        self.scale_y = candidate.scale_y
        self.rotation = candidate.rotation

    def to_dict(self) -> dict[str, float]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Viewport":
        return cls(**{key: float(value) for key, value in data.items()})


@dataclass
class Graph:
    """A sampled point set with its domain, range, style, viewport and annotations."""

    expression_id: str
    function_type: FunctionType
    domain: Range
    range: Range
    points: list[Point3D] = field(default_factory=list)
    resolution: int = DEFAULT_RESOLUTION
    style: GraphStyle | None = None
    viewport: Viewport = field(default_factory=Viewport)
    annotations: list[Annotation] = field(default_factory=list)
    id: str = field(default_factory=lambda: new_id("graph"))
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        try:
            self.function_type = FunctionType(self.function_type)
        except ValueError:
            raise ValidationError(
                f"Invalid function type: {self.function_type}", "INVALID_GRAPH"
            ) from None
        self.domain = Range.of(self.domain)
        self.range = Range.of(self.range)
        self.points = list(self.points)
        self.annotations = list(self.annotations)
        if self.style is None:
            self.style = GraphStyle.default_for(self.function_type)
        self.validate()

    def validate(self) -> None:
        if not self.expression_id or not self.expression_id.strip():
            raise ValidationError("Graph must reference an expression id", "INVALID_GRAPH")
        if not 1 <= self.resolution <= MAX_RESOLUTION:
            raise ValidationError(
                f"Resolution must be between 1 and {MAX_RESOLUTION}", "INVALID_GRAPH"
            )
        if len(self.points) > MAX_POINTS:
            raise ValidationError(f"Point count cannot exceed {MAX_POINTS}", "INVALID_GRAPH")
        if len(self.annotations) > MAX_ANNOTATIONS:
            raise ValidationError(
                f"Annotation count cannot exceed {MAX_ANNOTATIONS}", "INVALID_GRAPH"
            )

    # points

    def add_point(self, point: Point3D) -> None:
        if len(self.points) >= MAX_POINTS:
            raise ValidationError("Maximum point count reached", "INVALID_GRAPH")
        self.points.append(point)

    def add_points(self, points: Iterable[Point3D]) -> None:
        points = list(points)
        if len(self.points) + len(points) > MAX_POINTS:
            raise ValidationError("Adding these points would exceed the point limit", "INVALID_GRAPH")
        self.points.extend(points)

    def clear_points(self) -> None:
        self.points = []

    def update_points(self, points: Iterable[Point3D]) -> None:
        points = list(points)
        if len(points) > MAX_POINTS:
            raise ValidationError(f"Point count cannot exceed {MAX_POINTS}", "INVALID_GRAPH")
        self.points = points

    def bounding_box(self) -> dict[str, tuple[float, float]]:
        """(min, max) per axis; the domain and range stand in when there are no points."""
        if not self.points:
            return {
                "x": (self.domain.min, self.domain.max),
                "y": (self.range.min, self.range.max),
                "z": (0.0, 0.0),
            }
        coords = np.array([(p.x, p.y, p.z) for p in self.points], dtype=float)
        low = coords.min(axis=0).tolist()
        high = coords.max(axis=0).tolist()
        return {axis: (low[i], high[i]) for i, axis in enumerate("xyz")}

    # viewport

    def update_viewport(self, **changes: float) -> None:
        self.viewport.update(**changes)

    def zoom(self, factor: float, pivot_x: float | None = None, pivot_y: float | None = None) -> None:
        self.viewport.zoom(factor, pivot_x, pivot_y)

    def pan(self, dx: float, dy: float) -> None:
        self.viewport.pan(dx, dy)

    def rotate(self, angle: float) -> None:
        self.viewport.rotate(angle)

    def reset_viewport(self) -> None:
        self.viewport.reset()

    def fit_to_view(self, padding: float = 0.1) -> None:
        self.viewport.fit_to_view(self.points, padding)

    # annotations

    def add_annotation(self, annotation: Annotation) -> None:
        if len(self.annotations) >= MAX_ANNOTATIONS:
            raise ValidationError("Maximum annotation count reached", "INVALID_GRAPH")
        self.annotations.append(annotation)

    def remove_annotation(self, index: int) -> bool:
        if not 0 <= index < len(self.annotations):
            return False
        del self.annotations[index]
        return True

    def update_annotation(self, index: int, **changes: Any) -> bool:
        if not 0 <= index < len(self.annotations):
            return False
        self.annotations[index] = dataclasses.replace(self.annotations[index], **changes)
        return True

    def clear_annotations(self) -> None:
        self.annotations = []

    def update_style(self, **changes: Any) -> None:
        self.style = dataclasses.replace(self.style, **changes)

    def find_special_points(self, tolerance: float = SPECIAL_POINT_TOLERANCE) -> list[SpecialPoint]:
        return find_special_points(self.points, tolerance)

    def render_stats(self) -> dict[str, Any]:
        return {
            "point_count": len(self.points),
            "annotation_count": len(self.annotations),
            "resolution": self.resolution,
            "function_type": self.function_type.value,
            "memory_estimate": len(self.points) * POINT_BYTES
            + len(self.annotations) * ANNOTATION_BYTES,
        }

    # optimization

    def optimize(
        self,
        simplify_tolerance: float = 0.001,
        max_points: int = 1000,
        remove_outliers: bool = False,
    ) -> None:
        """Thin the point list when it holds more than ``max_points``.

        Points within ``simplify_tolerance`` of the line through their kept
        predecessor and their successor are dropped first; if too many
        remain, every n-th point is kept. Optionally removes points whose y
        lies outside 1.5 IQR of the quartiles.
        """
        if len(self.points) <= max_points:
            return

        before = len(self.points)
        simplified = _simplify_polyline(self.points, simplify_tolerance)
        if len(simplified) > max_points:
            step = math.ceil(len(simplified) / max_points)
            simplified = simplified[::step]
        self.points = simplified

        if remove_outliers:
            self.points = _without_outliers(self.points)
        logger.debug("Optimized graph %s from %d to %d points", self.id, before, len(self.points))

    # serialization

    def copy(self) -> "Graph":
        return Graph.from_dict(self.to_dict())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "expression_id": self.expression_id,
            "function_type": self.function_type.value,
            "domain": self.domain.to_dict(),
            "range": self.range.to_dict(),
            "resolution": self.resolution,
            "points": [point.to_dict() for point in self.points],
            "style": self.style.to_dict(),
            "viewport": self.viewport.to_dict(),
            "annotations": [annotation.to_dict() for annotation in self.annotations],
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Graph":
        return cls(
            expression_id=data["expression_id"],
            function_type=FunctionType(data["function_type"]),
            domain=Range.from_dict(data["domain"]),
            range=Range.from_dict(data["range"]),
            points=[Point3D.from_dict(point) for point in data.get("points", [])],
            resolution=int(data.get("resolution", DEFAULT_RESOLUTION)),
            style=GraphStyle.from_dict(data["style"]) if data.get("style") else None,
            viewport=Viewport.from_dict(data["viewport"]) if data.get("viewport") else Viewport(),
            annotations=[Annotation.from_dict(item) for item in data.get("annotations", [])],
            id=data["id"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> "Graph":
        return cls.from_dict(json.loads(text))


def _distance_to_line(point: Point3D, start: Point3D, end: Point3D) -> float:
    a = end.y - start.y
    b = start.x - end.x
    norm = math.hypot(a, b)
    if norm == 0:
        return math.hypot(point.x - start.x, point.y - start.y)
    c = end.x * start.y - start.x * end.y
    return abs(a * point.x + b * point.y + c) / norm


def _simplify_polyline(points: list[Point3D], tolerance: float) -> list[Point3D]:
    if len(points) <= 2:
        return list(points)
    kept = [points[0]]
    for i in range(1, len(points) - 1):
        if _distance_to_line(points[i], kept[-1], points[i + 1]) > tolerance:
            kept.append(points[i])
    kept.append(points[-1])
    return kept


def _without_outliers(points: list[Point3D]) -> list[Point3D]:
    if len(points) < 3:
        return points
    ys = np.array([p.y for p in points], dtype=float)
    q1, q3 = np.quantile(ys, [0.25, 0.75])
    spread = q3 - q1
    low, high = q1 - 1.5 * spread, q3 + 1.5 * spread
    return [p for p in points if low <= p.y <= high]
