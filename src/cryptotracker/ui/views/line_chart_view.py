from collections.abc import Sequence

import pyqtgraph as pg
from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QMouseEvent, QPainter, QPainterPath, QPaintEvent
from PySide6.QtWidgets import QSizePolicy, QWidget

from cryptotracker.chart.controller import LineChartController
from cryptotracker.chart.curve import CubicSegment, CurvePath
from cryptotracker.chart.layout import ChartLayoutEngine
from cryptotracker.chart.models import (
    CanvasSize,
    ChartStyle,
    DataPoint,
    LayoutResult,
    TextDraw,
)
from cryptotracker.ui.text_metrics import QtLabelMetrics

BACKGROUND_COLOR = "#FFFFFF"


def build_painter_path(path: CurvePath) -> QPainterPath:
    """Converts a chart curve into a QPainterPath."""
    painter_path = QPainterPath()
    if path.start is None:
        return painter_path

    painter_path.moveTo(*path.start)
    for segment in path.segments:
        if isinstance(segment, CubicSegment):
            painter_path.cubicTo(
                QPointF(*segment.control1),
                QPointF(*segment.control2),
                QPointF(*segment.end),
            )
        else:
            painter_path.lineTo(*segment.end)
    return painter_path


class LineChartView(QWidget):
    """A price history line chart with draggable point selection.

    The widget recomputes the whole layout on every repaint and paints the
    resulting draw plan with QPainter. Selection is owned by whoever hosts
    the widget: dragging emits `selectedDataPointChanged` and the host is
    expected to call `set_selected_data_point` in response.
    """

    selectedDataPointChanged = Signal(object)  # noqa: N815
    xLabelWidthChanged = Signal(float)  # noqa: N815

    def __init__(
        self, style: ChartStyle | None = None, parent: QWidget | None = None
    ) -> None:
        super().__init__(parent)
        self._metrics = QtLabelMetrics(self.font())
        self._controller = LineChartController(
            ChartLayoutEngine(self._metrics),
            style=style,
            on_selected_data_point=self.selectedDataPointChanged.emit,
            on_x_label_width_change=self.xLabelWidthChanged.emit,
        )
        self.setMinimumHeight(200)
        self.setSizePolicy(
            QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding
        )

    @property
    def controller(self) -> LineChartController:
        return self._controller

    @property
    def chart_style(self) -> ChartStyle:
        return self._controller.style

    def set_data(
        self,
        samples: Sequence[DataPoint],
        visible_range: range | None = None,
        unit: str = "",
    ) -> None:
        """Replaces the plotted samples and clears the selection."""
        self._controller.set_data(samples, visible_range, unit)
        self._controller.set_selected_data_point(None)
        self.update()

    def set_selected_data_point(self, point: DataPoint | None) -> None:
        self._controller.set_selected_data_point(point)
        self.update()

    def set_show_helper_lines(self, show: bool) -> None:
        self._controller.set_show_helper_lines(show)
        self.update()

    def set_chart_style(self, style: ChartStyle) -> None:
        self._controller.set_style(style)
        self.update()

    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802
        """Lays the chart out for the current size and paints it."""
        layout = self._controller.render(CanvasSize(self.width(), self.height()))
        style = self._controller.style

        painter = QPainter(self)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing)
            painter.fillRect(self.rect(), pg.mkColor(BACKGROUND_COLOR))
            painter.setFont(self._metrics.font_for(style.label_font_size))
            self._paint_helper_lines(painter, layout)
            for label in layout.x_labels:
                self._paint_text(painter, label, Qt.AlignmentFlag.AlignHCenter)
            for label in layout.y_labels:
                self._paint_text(painter, label, Qt.AlignmentFlag.AlignRight)
            if layout.annotation is not None:
                self._paint_text(
                    painter, layout.annotation, Qt.AlignmentFlag.AlignLeft
                )
            self._paint_curve(painter, layout, style)
            self._paint_markers(painter, layout)
        finally:
            painter.end()

    @staticmethod
    def _paint_helper_lines(painter: QPainter, layout: LayoutResult) -> None:
        for line in layout.helper_lines:
            painter.setPen(pg.mkPen(line.color, width=line.thickness))
            painter.drawLine(QPointF(line.x1, line.y1), QPointF(line.x2, line.y2))

    @staticmethod
    def _paint_text(
        painter: QPainter, label: TextDraw, alignment: Qt.AlignmentFlag
    ) -> None:
        painter.setPen(pg.mkPen(label.color))
        painter.drawText(
            QRectF(label.x, label.y, label.width, label.height),
            alignment | Qt.AlignmentFlag.AlignTop,
            label.text,
        )

    @staticmethod
    def _paint_curve(
        painter: QPainter, layout: LayoutResult, style: ChartStyle
    ) -> None:
        if layout.path.is_empty:
            return
        pen = pg.mkPen(style.chart_line_color, width=style.line_width)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(build_painter_path(layout.path))

    @staticmethod
    def _paint_markers(painter: QPainter, layout: LayoutResult) -> None:
        for marker in layout.markers:
            if marker.outline is None:
                painter.setPen(Qt.PenStyle.NoPen)
            else:
                painter.setPen(pg.mkPen(marker.outline, width=marker.outline_width))
            painter.setBrush(pg.mkBrush(marker.fill))
            painter.drawEllipse(
                QPointF(marker.x, marker.y), marker.radius, marker.radius
            )

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        """Starts a selection drag with the left button."""
        if event.button() == Qt.MouseButton.LeftButton:
            self._drag_to(event.position().x())
            event.accept()
        else:
            super().mousePressEvent(event)

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        """Updates the selection while the left button is held."""
        if event.buttons() & Qt.MouseButton.LeftButton:
            self._drag_to(event.position().x())
            event.accept()
        else:
            super().mouseMoveEvent(event)

    def _drag_to(self, x: float) -> None:
        was_showing = self._controller.is_showing_data_points
        self._controller.handle_drag(x)
        if was_showing != self._controller.is_showing_data_points:
            self.update()
