"""Zero and extremum detection over sampled 2D points.

Two zero detectors run side by side and are not deduplicated: a point whose
|y| is below the tolerance is reported as is, and a sign change between
consecutive points is reported at the linearly interpolated root. A single
crossing can therefore appear twice.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .config import SPECIAL_POINT_TOLERANCE
from .models import Point3D
from .types import SpecialPointType


@dataclass(frozen=True)
class SpecialPoint:
    type: SpecialPointType
    position: Point3D
    value: float
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "position": self.position.to_dict(),
            "value": self.value,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SpecialPoint":
        return cls(
            type=SpecialPointType(data["type"]),
            position=Point3D.from_dict(data["position"]),
            value=float(data["value"]),
            description=data["description"],
        )


def _zero(point: Point3D) -> SpecialPoint:
    return SpecialPoint(
        SpecialPointType.ZERO, point, point.y, f"Zero: ({point.x:.3f}, {point.y:.3f})"
    )


def _extremum(kind: SpecialPointType, point: Point3D) -> SpecialPoint:
    label = "Maximum" if kind == SpecialPointType.MAXIMUM else "Minimum"
    return SpecialPoint(kind, point, point.y, f"{label}: ({point.x:.3f}, {point.y:.3f})")


def find_special_points(
    points: Sequence[Point3D], tolerance: float = SPECIAL_POINT_TOLERANCE
) -> list[SpecialPoint]:
    """Report zeros, local maxima and local minima in scan order.

    Args:
        points: 2D samples in ascending x order
        tolerance: |y| below this is a zero

    Returns:
        Zeros (near-zero and sign-change, interleaved per index) followed by
        extrema; nothing is sorted or deduplicated.
    """
    found: list[SpecialPoint] = []
    count = len(points)

    for i, current in enumerate(points):
        if abs(current.y) < tolerance:
            found.append(_zero(current))
        if i + 1 < count:
            following = points[i + 1]
            if current.y * following.y < 0:
                x = current.x + (following.x - current.x) * (-current.y / (following.y - current.y))
                found.append(_zero(Point3D(x, 0.0, 0.0)))

    if count < 3:
        return found

    for i in range(1, count - 1):
        previous, current, following = points[i - 1], points[i], points[i + 1]
        if current.x == previous.x or following.x == current.x:
            continue
        left_slope = (current.y - previous.y) / (current.x - previous.x)
        right_slope = (following.y - current.y) / (following.x - current.x)
        if left_slope > 0 and right_slope < 0:
            found.append(_extremum(SpecialPointType.MAXIMUM, current))
        elif left_slope < 0 and right_slope > 0:
            found.append(_extremum(SpecialPointType.MINIMUM, current))

    return found
