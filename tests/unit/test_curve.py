import numpy as np
import pytest

from cryptotracker.chart.curve import CubicSegment, CurveBuilder, CurvePath, LineSegment
from cryptotracker.chart.models import CurveMode, DrawPoint


def pts(*coords: tuple[float, float]) -> list[DrawPoint]:
    return [DrawPoint(x=x, y=y, x_label="") for x, y in coords]


def test_empty_input_builds_empty_path() -> None:
    """Tests that no points produce neither a start nor segments."""
    path = CurveBuilder().build([])

    assert path.start is None
    assert path.segments == []
    assert path.is_empty


def test_single_point_only_sets_start() -> None:
    """Tests that one point yields a start position without segments."""
    path = CurveBuilder().build(pts((3.0, 4.0)))

    assert path.start == (3.0, 4.0)
    assert path.is_empty


def test_cubic_controls_sit_at_horizontal_midpoint() -> None:
    """Tests control point placement for each cubic segment."""
    path = CurveBuilder(CurveMode.CUBIC).build(pts((0, 10), (20, 30), (40, 5)))

    first, second = path.segments
    assert isinstance(first, CubicSegment)
    assert first.start == (0, 10)
    assert first.control1 == (10, 10)
    assert first.control2 == (10, 30)
    assert first.end == (20, 30)
    assert second.control1 == (30, 30)
    assert second.control2 == (30, 5)


def test_equal_levels_give_a_flat_segment() -> None:
    """Tests that a segment between equal y values never leaves that level."""
    path = CurveBuilder().build(pts((0, 50), (10, 50)))

    flat = path.flatten(steps=10)
    np.testing.assert_allclose(flat[:, 1], 50.0)
    assert path.segments[0].point_at(0.5) == pytest.approx((5.0, 50.0))


def test_s_curve_passes_through_the_centre() -> None:
    """Tests the symmetric S-curve between two different levels."""
    segment = CurveBuilder().build(pts((0, 0), (10, 10))).segments[0]

    assert segment.point_at(0.0) == pytest.approx((0.0, 0.0))
    assert segment.point_at(0.5) == pytest.approx((5.0, 5.0))
    assert segment.point_at(1.0) == pytest.approx((10.0, 10.0))
    # Horizontal tangents at both ends keep the curve below the midline early on.
    assert segment.point_at(0.25)[1] < 2.5


def test_linear_mode_builds_straight_segments() -> None:
    """Tests that linear mode only records segment end points."""
    path = CurveBuilder(CurveMode.LINEAR).build(pts((0, 1), (5, 2), (9, 0)))

    assert path.start == (0, 1)
    assert path.segments == [LineSegment(end=(5, 2)), LineSegment(end=(9, 0))]


def test_flatten_cubic_path_shape() -> None:
    """Tests the polyline produced for a cubic path."""
    path = CurveBuilder().build(pts((0, 0), (10, 10), (20, 0)))

    flat = path.flatten(steps=8)
    assert flat.shape == (1 + 2 * 8, 2)
    np.testing.assert_allclose(flat[0], (0, 0))
    np.testing.assert_allclose(flat[8], (10, 10))
    np.testing.assert_allclose(flat[-1], (20, 0))
    assert np.all(np.diff(flat[:, 0]) > 0)


def test_flatten_linear_path_keeps_vertices() -> None:
    path = CurveBuilder(CurveMode.LINEAR).build(pts((0, 1), (5, 2), (9, 0)))

    np.testing.assert_allclose(path.flatten(), [(0, 1), (5, 2), (9, 0)])


def test_flatten_empty_path() -> None:
    assert CurvePath().flatten().shape == (0, 2)


def test_flatten_rejects_non_positive_steps() -> None:
    """Tests that the sampling resolution must be positive."""
    path = CurveBuilder().build(pts((0, 0), (1, 1)))

    with pytest.raises(ValueError, match="steps"):
        path.flatten(steps=0)
