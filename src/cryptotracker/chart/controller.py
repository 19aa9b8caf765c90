from collections.abc import Callable, Sequence

from loguru import logger

from cryptotracker.chart.hit_test import find_draw_point_index, to_global_index
from cryptotracker.chart.layout import ChartLayoutEngine, validate_visible_range
from cryptotracker.chart.models import (
    CanvasSize,
    ChartStyle,
    DataPoint,
    LayoutRequest,
    LayoutResult,
)


class LineChartController:
    """Drives the layout engine from a UI's render and pointer events.

    The controller holds the chart inputs and the result of the most recent
    layout pass, which is all the hit tester needs. Selection is owned by
    the caller: a drag only reports the sample under the pointer through
    `on_selected_data_point` and the caller is expected to feed it back via
    `set_selected_data_point`.
    """

    def __init__(
        self,
        engine: ChartLayoutEngine,
        style: ChartStyle | None = None,
        on_selected_data_point: Callable[[DataPoint], None] | None = None,
        on_x_label_width_change: Callable[[float], None] | None = None,
    ) -> None:
        """Initializes the controller.

        Args:
            engine: The layout engine used for every render.
            style: The chart style. Defaults to `ChartStyle()`.
            on_selected_data_point: Called with the sample a drag resolved to.
            on_x_label_width_change: Called whenever the slot width of a
                render differs from the previous one.
        """
        self._engine = engine
        self._style = style or ChartStyle()
        self._on_selected_data_point = on_selected_data_point
        self._on_x_label_width_change = on_x_label_width_change

        self._samples: tuple[DataPoint, ...] = ()
        self._visible_range = range(0)
        self._unit = ""
        self._selected: DataPoint | None = None
        self._show_helper_lines = True
        self._is_showing_data_points = False

        self._last_layout: LayoutResult | None = None
        self._x_label_width: float | None = None

    @property
    def samples(self) -> tuple[DataPoint, ...]:
        return self._samples

    @property
    def visible_range(self) -> range:
        return self._visible_range

    @property
    def selected_data_point(self) -> DataPoint | None:
        return self._selected

    @property
    def selected_index(self) -> int | None:
        """Global index of the selected sample, or None if it is not present."""
        if self._selected is None:
            return None
        try:
            return self._samples.index(self._selected)
        except ValueError:
            return None

    @property
    def is_showing_data_points(self) -> bool:
        return self._is_showing_data_points

    @property
    def last_layout(self) -> LayoutResult | None:
        """The layout produced by the most recent `render` call."""
        return self._last_layout

    @property
    def x_label_width(self) -> float | None:
        return self._x_label_width

    def set_data(
        self,
        samples: Sequence[DataPoint],
        visible_range: range | None = None,
        unit: str = "",
    ) -> None:
        """Replaces the chart samples.

        Args:
            samples: Samples in ascending x order.
            visible_range: The indices to plot. Defaults to all samples.
            unit: Suffix for the value labels, e.g. "$".

        Raises:
            ValueError: If `visible_range` is not a valid sub-range.
        """
        samples = tuple(samples)
        if visible_range is None:
            visible_range = range(len(samples))
        validate_visible_range(visible_range, len(samples))

        self._samples = samples
        self._visible_range = visible_range
        self._unit = unit
        self._last_layout = None
        logger.debug(
            f"Chart data set: {len(samples)} samples, visible {visible_range}."
        )

    def set_selected_data_point(self, point: DataPoint | None) -> None:
        self._selected = point
        if point is not None:
            self._is_showing_data_points = True

    def set_show_helper_lines(self, show: bool) -> None:
        self._show_helper_lines = show

    def set_style(self, style: ChartStyle) -> None:
        self._style = style

    @property
    def style(self) -> ChartStyle:
        return self._style

    def render(self, canvas: CanvasSize) -> LayoutResult:
        """Lays the chart out for `canvas` and keeps the result for hit tests."""
        layout = self._engine.layout(
            LayoutRequest(
                samples=self._samples,
                visible_range=self._visible_range,
                style=self._style,
                unit=self._unit,
                canvas=canvas,
                selected_index=self.selected_index,
                show_helper_lines=self._show_helper_lines,
                show_data_points=self._is_showing_data_points,
            )
        )
        self._last_layout = layout

        if layout.slot_width != self._x_label_width:
            self._x_label_width = layout.slot_width
            if self._on_x_label_width_change is not None:
                self._on_x_label_width_change(layout.slot_width)
        return layout

    def handle_drag(self, pointer_x: float) -> DataPoint | None:
        """Resolves a drag position against the last layout.

        Returns:
            The sample under the pointer, or None if the pointer is outside
            the plotted data or nothing has been rendered yet.
        """
        layout = self._last_layout
        if layout is None:
            return None

        local_index = find_draw_point_index(
            pointer_x, layout.slot_width, layout.draw_points
        )
        global_index = to_global_index(local_index, self._visible_range)
        self._is_showing_data_points = global_index is not None
        if global_index is None:
            return None

        point = self._samples[global_index]
        if self._on_selected_data_point is not None:
            self._on_selected_data_point(point)
        return point
