import pytest

from cryptotracker.chart.hit_test import (
    NOT_FOUND,
    find_draw_point_index,
    to_global_index,
)
from cryptotracker.chart.models import DrawPoint


@pytest.fixture()
def draw_points() -> list[DrawPoint]:
    """Three points spaced one 20px slot apart."""
    return [DrawPoint(x=x, y=0.0, x_label="") for x in (10.0, 30.0, 50.0)]


def test_pointer_on_point_matches(draw_points: list[DrawPoint]) -> None:
    assert find_draw_point_index(30.0, 20.0, draw_points) == 1


def test_pointer_near_point_matches(draw_points: list[DrawPoint]) -> None:
    """Tests a pointer inside the trigger window but off the exact x."""
    assert find_draw_point_index(53.5, 20.0, draw_points) == 2


def test_window_bounds_are_inclusive(draw_points: list[DrawPoint]) -> None:
    """Tests that a point exactly half a trigger width away still matches."""
    assert find_draw_point_index(0.0, 20.0, draw_points) == 0
    assert find_draw_point_index(60.0, 20.0, draw_points) == 2


def test_first_match_wins(draw_points: list[DrawPoint]) -> None:
    """Tests that overlapping windows resolve to the lowest index."""
    assert find_draw_point_index(20.0, 20.0, draw_points) == 0
    assert find_draw_point_index(30.0, 100.0, draw_points) == 0


@pytest.mark.parametrize("pointer_x", [-5.0, 61.0, 1000.0])
def test_pointer_outside_data_is_not_found(
    draw_points: list[DrawPoint], pointer_x: float
) -> None:
    assert find_draw_point_index(pointer_x, 20.0, draw_points) == NOT_FOUND


def test_no_draw_points() -> None:
    assert find_draw_point_index(10.0, 20.0, []) == NOT_FOUND


@pytest.mark.parametrize(
    ("local_index", "visible_range", "expected"),
    [
        (0, range(0, 3), 0),
        (2, range(5, 10), 7),
        (4, range(5, 10), 9),
        (5, range(5, 10), None),
        (NOT_FOUND, range(5, 10), None),
        (0, range(4, 4), None),
    ],
)
def test_to_global_index(
    local_index: int, visible_range: range, expected: int | None
) -> None:
    """Tests mapping local hit indices onto the full sample list."""
    assert to_global_index(local_index, visible_range) == expected
