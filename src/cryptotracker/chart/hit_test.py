from collections.abc import Sequence
from typing import Final

from cryptotracker.chart.models import DrawPoint

NOT_FOUND: Final[int] = -1


def find_draw_point_index(
    pointer_x: float, trigger_width: float, draw_points: Sequence[DrawPoint]
) -> int:
    """Returns the index of the first draw point near `pointer_x`.

    A point matches when its x lies within `trigger_width / 2` of the
    pointer, both ends inclusive. The index is local to `draw_points`.

    Returns:
        The matching index, or `NOT_FOUND` if no point is close enough.
    """
    left = pointer_x - trigger_width / 2
    right = pointer_x + trigger_width / 2
    for index, point in enumerate(draw_points):
        if left <= point.x <= right:
            return index
    return NOT_FOUND


def to_global_index(local_index: int, visible_range: range) -> int | None:
    """Maps a hit-test result back to an index into the full sample list.

    Returns None for misses and for results that fall outside the visible
    range, e.g. a drag that started or ended beyond the plotted data.
    """
    if local_index == NOT_FOUND:
        return None
    global_index = visible_range.start + local_index
    if global_index not in visible_range:
        return None
    return global_index
