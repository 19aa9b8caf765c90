import math
from collections.abc import Sequence
from typing import Final

import numpy as np
from loguru import logger

from cryptotracker.chart.curve import CurveBuilder
from cryptotracker.chart.metrics import LabelMetrics
from cryptotracker.chart.models import (
    DataPoint,
    DrawPoint,
    LayoutRequest,
    LayoutResult,
    LineDraw,
    PointMarker,
    TextBox,
    TextDraw,
    ValueLabel,
    ViewportGeometry,
)

# Gap between the top value annotation and the viewport, in logical pixels.
TOP_LABEL_OFFSET: Final[float] = 10.0
SELECTED_POINT_FILL: Final[str] = "#FFFFFF"


def validate_visible_range(visible_range: range, sample_count: int) -> None:
    """Checks that `visible_range` is a contiguous sub-range of the samples.

    Raises:
        ValueError: If the range has a step other than one or reaches
            outside `[0, sample_count]`.
    """
    if visible_range.step != 1:
        err_msg = f"Visible range must have a step of 1, got {visible_range!r}."
        raise ValueError(err_msg)
    if visible_range.start < 0 or visible_range.start > visible_range.stop:
        err_msg = f"Visible range {visible_range!r} is not a valid index range."
        raise ValueError(err_msg)
    if visible_range.stop > sample_count:
        err_msg = (
            f"Visible range {visible_range!r} exceeds the {sample_count} "
            "available samples."
        )
        raise ValueError(err_msg)


def compute_tick_count(
    plot_height: float, line_height: float, min_label_spacing: float
) -> int:
    """Number of y-axis ticks that fit, not counting the final one."""
    step = line_height + min_label_spacing
    if step <= 0:
        return 0
    return max(0, math.floor((plot_height + line_height) / step))


class ChartLayoutEngine:
    """Turns samples and a style into a pixel-space draw plan.

    The engine keeps no state between calls. Each `layout` call measures the
    labels through the injected `LabelMetrics`, reserves room for the axis
    labels and the top value annotation, spreads the y-axis ticks evenly
    over the plotting area and maps every visible sample onto it.

    Label measurement errors are not caught here; they point at a broken
    font or style rather than at bad data.
    """

    def __init__(self, metrics: LabelMetrics) -> None:
        self._metrics = metrics

    def layout(self, request: LayoutRequest) -> LayoutResult:
        """Computes the draw plan for `request`.

        Raises:
            ValueError: If the visible range is not a valid sub-range of the
                samples.
        """
        validate_visible_range(request.visible_range, len(request.samples))

        style = request.style
        canvas = request.canvas
        start = request.visible_range.start
        visible = list(request.samples[start : request.visible_range.stop])

        ys = np.array([point.y for point in visible], dtype=float)
        max_y = float(ys.max()) if ys.size else 0.0
        min_y = float(ys.min()) if ys.size else 0.0

        x_boxes = [
            self._metrics.measure(point.x_label, style.label_font_size)
            for point in visible
        ]
        max_x_label_width = max((box.width for box in x_boxes), default=0.0)
        max_x_label_height = max((box.height for box in x_boxes), default=0.0)
        max_line_count = max((box.line_count for box in x_boxes), default=0)
        line_height = (
            max_x_label_height / max_line_count if max_line_count > 0 else 0.0
        )

        # Reserve the x labels, both paddings, one line for the top value
        # annotation and the gap between the viewport and the x labels.
        plot_height = canvas.height - (
            max_x_label_height
            + 2 * style.vertical_padding
            + line_height
            + style.x_axis_label_spacing
        )
        tick_count = (
            compute_tick_count(plot_height, line_height, style.min_y_label_spacing)
            if visible
            else 0
        )

        y_values = self._y_values(visible, max_y, min_y, tick_count, request.unit)
        y_boxes = [
            self._metrics.measure(label.formatted(), style.label_font_size)
            for label in y_values
        ]
        max_y_label_width = max((box.width for box in y_boxes), default=0.0)

        top = style.vertical_padding + line_height + TOP_LABEL_OFFSET
        viewport = ViewportGeometry(
            top=top,
            bottom=top + plot_height,
            left=2 * style.horizontal_padding + max_y_label_width,
            right=canvas.width,
        )
        slot_width = max_x_label_width + style.x_axis_label_spacing

        x_labels, vertical_lines = self._x_axis(
            request, visible, x_boxes, viewport, slot_width
        )
        y_labels, horizontal_lines = self._y_axis(
            request, y_values, y_boxes, viewport, line_height, max_y_label_width
        )
        draw_points = self._draw_points(
            visible, viewport, slot_width, max_y, min_y
        )

        logger.trace(
            f"Layout pass: {len(draw_points)} points, {tick_count} ticks, "
            f"slot width {slot_width:.1f}px, plot height {plot_height:.1f}px."
        )

        return LayoutResult(
            viewport=viewport,
            plot_height=plot_height,
            line_height=line_height,
            slot_width=slot_width,
            tick_count=tick_count,
            path=CurveBuilder(style.curve_mode).build(draw_points),
            y_values=y_values,
            x_labels=x_labels,
            y_labels=y_labels,
            helper_lines=vertical_lines + horizontal_lines,
            draw_points=draw_points,
            markers=self._markers(request, draw_points),
            annotation=self._annotation(request, viewport, slot_width),
        )

    @staticmethod
    def _y_values(
        visible: Sequence[DataPoint],
        max_y: float,
        min_y: float,
        tick_count: int,
        unit: str,
    ) -> list[ValueLabel]:
        """Tick values counting down from `max_y`.

        A flat series gets one label, and when no subdivision fits only the
        two boundary values are kept.
        """
        if not visible:
            return []
        if max_y == min_y:
            return [ValueLabel(value=max_y, unit=unit)]
        if tick_count == 0:
            return [
                ValueLabel(value=max_y, unit=unit),
                ValueLabel(value=min_y, unit=unit),
            ]

        increment = (max_y - min_y) / tick_count
        return [
            ValueLabel(value=max_y - increment * i, unit=unit)
            for i in range(tick_count + 1)
        ]

    def _x_axis(
        self,
        request: LayoutRequest,
        visible: Sequence[DataPoint],
        boxes: Sequence[TextBox],
        viewport: ViewportGeometry,
        slot_width: float,
    ) -> tuple[list[TextDraw], list[LineDraw]]:
        style = request.style
        label_top = viewport.bottom + style.x_axis_label_spacing
        labels: list[TextDraw] = []
        lines: list[LineDraw] = []

        for index, (point, box) in enumerate(zip(visible, boxes)):
            is_selected = request.selected_index == request.visible_range.start + index
            color = style.selected_color if is_selected else style.unselected_color
            center_x = viewport.left + index * slot_width + slot_width / 2

            labels.append(
                TextDraw(
                    text=point.x_label,
                    x=center_x - box.width / 2,
                    y=label_top,
                    width=box.width,
                    height=box.height,
                    color=color,
                )
            )
            if request.show_helper_lines:
                thickness = style.helper_lines_thickness_px
                if is_selected:
                    thickness *= style.selected_helper_line_factor
                lines.append(
                    LineDraw(
                        x1=center_x,
                        y1=viewport.bottom,
                        x2=center_x,
                        y2=viewport.top,
                        color=color,
                        thickness=thickness,
                    )
                )
        return labels, lines

    def _y_axis(
        self,
        request: LayoutRequest,
        values: Sequence[ValueLabel],
        boxes: Sequence[TextBox],
        viewport: ViewportGeometry,
        line_height: float,
        max_label_width: float,
    ) -> tuple[list[TextDraw], list[LineDraw]]:
        style = request.style
        if len(values) == 1:
            centers = [viewport.top + viewport.height / 2]
        else:
            # The first tick sits on the viewport top and the last one on its
            # bottom, the rest share the remaining height evenly.
            intervals = len(values) - 1
            spacing = (viewport.height - line_height * intervals) / intervals
            centers = [
                viewport.top + i * (line_height + spacing) for i in range(len(values))
            ]

        labels: list[TextDraw] = []
        lines: list[LineDraw] = []
        for value, box, center_y in zip(values, boxes, centers):
            labels.append(
                TextDraw(
                    text=value.formatted(),
                    x=max_label_width - box.width + style.horizontal_padding,
                    y=center_y - line_height / 2,
                    width=box.width,
                    height=box.height,
                    color=style.unselected_color,
                )
            )
            if request.show_helper_lines:
                lines.append(
                    LineDraw(
                        x1=viewport.left,
                        y1=center_y,
                        x2=viewport.right,
                        y2=center_y,
                        color=style.unselected_color,
                        thickness=style.helper_lines_thickness_px,
                    )
                )
        return labels, lines

    @staticmethod
    def _draw_points(
        visible: Sequence[DataPoint],
        viewport: ViewportGeometry,
        slot_width: float,
        max_y: float,
        min_y: float,
    ) -> list[DrawPoint]:
        if not visible:
            return []

        offsets = np.arange(len(visible), dtype=float)
        xs = viewport.left + offsets * slot_width + slot_width / 2
        if max_y == min_y:
            pixel_ys = np.full(len(visible), viewport.top + viewport.height / 2)
        else:
            # [min_y, max_y] -> [0, 1], then flipped onto [bottom, top].
            ratios = (np.array([p.y for p in visible], dtype=float) - min_y) / (
                max_y - min_y
            )
            pixel_ys = viewport.bottom - ratios * viewport.height

        return [
            DrawPoint(x=x, y=y, x_label=point.x_label)
            for x, y, point in zip(xs.tolist(), pixel_ys.tolist(), visible)
        ]

    @staticmethod
    def _markers(
        request: LayoutRequest, draw_points: Sequence[DrawPoint]
    ) -> list[PointMarker]:
        if not request.show_data_points:
            return []

        style = request.style
        markers: list[PointMarker] = []
        for index, point in enumerate(draw_points):
            markers.append(
                PointMarker(
                    x=point.x,
                    y=point.y,
                    radius=style.point_radius,
                    fill=style.selected_color,
                )
            )
            if request.selected_index == request.visible_range.start + index:
                markers.append(
                    PointMarker(
                        x=point.x,
                        y=point.y,
                        radius=style.selected_point_radius,
                        fill=SELECTED_POINT_FILL,
                        outline=style.selected_color,
                        outline_width=style.selected_point_outline_width,
                    )
                )
        return markers

    def _annotation(
        self,
        request: LayoutRequest,
        viewport: ViewportGeometry,
        slot_width: float,
    ) -> TextDraw | None:
        """The selected sample's value, drawn above the viewport."""
        selected = request.selected_index
        visible_range = request.visible_range
        if selected is None or selected not in visible_range:
            return None

        style = request.style
        text = ValueLabel(
            value=request.samples[selected].y, unit=request.unit
        ).formatted()
        box = self._metrics.measure(text, style.label_font_size, max_lines=1)

        center_x = (
            viewport.left
            + (selected - visible_range.start) * slot_width
            + slot_width / 2
        )
        # The last sample is right-aligned so the text does not run off the canvas.
        if selected == visible_range[-1]:
            text_x = center_x - box.width
        else:
            text_x = center_x - box.width / 2

        canvas_width = request.canvas.width
        if not 0 <= round(canvas_width - text_x) <= round(canvas_width):
            return None

        return TextDraw(
            text=text,
            x=text_x,
            y=viewport.top - box.height - TOP_LABEL_OFFSET,
            width=box.width,
            height=box.height,
            color=style.selected_color,
        )
