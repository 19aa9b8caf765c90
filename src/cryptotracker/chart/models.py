"""Value types shared by the chart layout engine and its renderers.

Everything here is immutable. Samples and style come in from the caller,
the rest is derived per layout pass and thrown away on the next one.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cryptotracker.chart.curve import CurvePath


class CurveMode(Enum):
    """How consecutive draw points are joined."""

    CUBIC = "cubic"
    LINEAR = "linear"


@dataclass(frozen=True)
class DataPoint:
    """One historical price observation projected onto a numeric x-axis."""

    x: float
    y: float
    x_label: str


@dataclass(frozen=True)
class ChartStyle:
    """Visual configuration for a single chart render.

    Distances are logical pixels, the font size is in points and colours are
    anything `pyqtgraph.mkColor` accepts (normally `#RRGGBB` strings).
    """

    chart_line_color: str = "#000000"
    unselected_color: str = "#7C7C7C"
    selected_color: str = "#000000"
    helper_lines_thickness_px: float = 1.0
    axis_lines_thickness_px: float = 5.0
    label_font_size: float = 14.0
    min_y_label_spacing: float = 25.0
    vertical_padding: float = 8.0
    horizontal_padding: float = 8.0
    x_axis_label_spacing: float = 8.0
    line_width: float = 5.0
    point_radius: float = 10.0
    selected_point_radius: float = 15.0
    selected_point_outline_width: float = 3.0
    selected_helper_line_factor: float = 1.8
    curve_mode: CurveMode = CurveMode.CUBIC


@dataclass(frozen=True)
class ValueLabel:
    """A y-axis value paired with the unit it is displayed in."""

    value: float
    unit: str

    def formatted(self) -> str:
        """Formats the value for display, e.g. `2,659$` or `0.123$`.

        Large values drop their fraction, mid-range values keep up to two
        digits and small values keep up to three.
        """
        if self.value >= 1000:
            fraction_digits = 0
        elif self.value >= 2:
            fraction_digits = 2
        else:
            fraction_digits = 3

        text = f"{self.value:,.{fraction_digits}f}"
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        if text == "-0":
            text = "0"
        return f"{text}{self.unit}"


@dataclass(frozen=True)
class CanvasSize:
    """Total drawable area handed to the engine."""

    width: float
    height: float


@dataclass(frozen=True)
class TextBox:
    """The measured extent of a (possibly multi-line) label."""

    width: float
    height: float
    line_count: int


@dataclass(frozen=True)
class ViewportGeometry:
    """Pixel bounds of the plotting area, excluding label margins."""

    top: float
    bottom: float
    left: float
    right: float

    @property
    def height(self) -> float:
        return self.bottom - self.top

    @property
    def width(self) -> float:
        return self.right - self.left


@dataclass(frozen=True)
class DrawPoint:
    """A sample projected into pixel space."""

    x: float
    y: float
    x_label: str


@dataclass(frozen=True)
class TextDraw:
    """A label to draw, anchored at its top-left corner."""

    text: str
    x: float
    y: float
    width: float
    height: float
    color: str


@dataclass(frozen=True)
class LineDraw:
    """A straight helper line."""

    x1: float
    y1: float
    x2: float
    y2: float
    color: str
    thickness: float


@dataclass(frozen=True)
class PointMarker:
    """A filled disk drawn on top of a data point."""

    x: float
    y: float
    radius: float
    fill: str
    outline: str | None = None
    outline_width: float = 0.0


@dataclass(frozen=True)
class LayoutRequest:
    """Everything the engine needs for one layout pass.

    `visible_range` indexes into `samples` and must have a step of one.
    `selected_index` is a global index into `samples`, not into the visible
    slice.
    """

    samples: tuple[DataPoint, ...]
    visible_range: range
    style: ChartStyle
    unit: str
    canvas: CanvasSize
    selected_index: int | None = None
    show_helper_lines: bool = True
    show_data_points: bool = False


@dataclass(frozen=True)
class LayoutResult:
    """The draw plan produced by a single layout pass."""

    viewport: ViewportGeometry
    plot_height: float
    line_height: float
    slot_width: float
    tick_count: int
    path: "CurvePath"
    y_values: list[ValueLabel] = field(default_factory=list)
    x_labels: list[TextDraw] = field(default_factory=list)
    y_labels: list[TextDraw] = field(default_factory=list)
    helper_lines: list[LineDraw] = field(default_factory=list)
    draw_points: list[DrawPoint] = field(default_factory=list)
    markers: list[PointMarker] = field(default_factory=list)
    annotation: TextDraw | None = None
