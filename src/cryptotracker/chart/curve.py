from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from cryptotracker.chart.models import CurveMode, DrawPoint

Point = tuple[float, float]


@dataclass(frozen=True)
class LineSegment:
    """A straight segment ending at `end`; it starts where the last one ended."""

    end: Point


@dataclass(frozen=True)
class CubicSegment:
    """A cubic Bezier segment from `start` through two controls to `end`."""

    start: Point
    control1: Point
    control2: Point
    end: Point

    def point_at(self, t: float) -> Point:
        """Evaluates the curve at parameter `t` in [0, 1]."""
        xs, ys = _bezier(
            np.array([t]), self.start, self.control1, self.control2, self.end
        )
        return float(xs[0]), float(ys[0])


Segment = LineSegment | CubicSegment


@dataclass(frozen=True)
class CurvePath:
    """A drawable path: a start position followed by connected segments.

    `start` is None only for an empty input. A single point produces a
    start position and no segments so renderers can still place a marker.
    """

    start: Point | None = None
    segments: list[Segment] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.segments

    def flatten(self, steps: int = 16) -> np.ndarray:
        """Approximates the path by a polyline.

        Cubic segments are sampled at `steps` evenly spaced parameters,
        straight segments contribute their end point only.

        Returns:
            An array of shape (n, 2) holding x and y columns. Empty paths
            return an array of shape (0, 2).
        """
        if steps < 1:
            err_msg = "steps must be a positive integer."
            raise ValueError(err_msg)
        if self.start is None:
            return np.empty((0, 2))

        chunks = [np.array([self.start], dtype=float)]
        t = np.linspace(0.0, 1.0, steps + 1)[1:]
        for segment in self.segments:
            if isinstance(segment, CubicSegment):
                xs, ys = _bezier(
                    t, segment.start, segment.control1, segment.control2, segment.end
                )
                chunks.append(np.column_stack((xs, ys)))
            else:
                chunks.append(np.array([segment.end], dtype=float))
        return np.vstack(chunks)


def _bezier(
    t: np.ndarray, p0: Point, p1: Point, p2: Point, p3: Point
) -> tuple[np.ndarray, np.ndarray]:
    """Bernstein form of a cubic Bezier, vectorised over `t`."""
    u = 1.0 - t
    b0 = u**3
    b1 = 3 * u**2 * t
    b2 = 3 * u * t**2
    b3 = t**3
    xs = b0 * p0[0] + b1 * p1[0] + b2 * p2[0] + b3 * p3[0]
    ys = b0 * p0[1] + b1 * p1[1] + b2 * p2[1] + b3 * p3[1]
    return xs, ys


class CurveBuilder:
    """Joins draw points into a smooth (or straight) path.

    In cubic mode both control points of a segment sit at the horizontal
    midpoint of its end points, each keeping the y of its own end point.
    That yields an S-curve between different levels and a straight line
    between equal ones.
    """

    def __init__(self, mode: CurveMode = CurveMode.CUBIC) -> None:
        self.mode = mode

    def build(self, points: Sequence[DrawPoint]) -> CurvePath:
        if not points:
            return CurvePath()

        first = points[0]
        segments: list[Segment] = []
        for p0, p1 in zip(points, points[1:]):
            if self.mode is CurveMode.LINEAR:
                segments.append(LineSegment(end=(p1.x, p1.y)))
                continue
            mid_x = (p0.x + p1.x) / 2
            segments.append(
                CubicSegment(
                    start=(p0.x, p0.y),
                    control1=(mid_x, p0.y),
                    control2=(mid_x, p1.y),
                    end=(p1.x, p1.y),
                )
            )
        return CurvePath(start=(first.x, first.y), segments=segments)
