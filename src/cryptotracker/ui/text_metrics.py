from PySide6.QtGui import QFont, QFontMetricsF

from cryptotracker.chart.models import TextBox


class QtLabelMetrics:
    """Measures chart labels with Qt's font metrics.

    A QGuiApplication must exist before `measure` is called.
    """

    def __init__(self, base_font: QFont | None = None) -> None:
        self._base_font = QFont(base_font) if base_font is not None else QFont()

    def font_for(self, font_size: float) -> QFont:
        """Returns a copy of the base font at `font_size` points."""
        font = QFont(self._base_font)
        font.setPointSizeF(font_size)
        return font

    def measure(
        self, text: str, font_size: float, max_lines: int | None = None
    ) -> TextBox:
        """Measures `text` line by line, keeping at most `max_lines` lines.

        Raises:
            ValueError: If the font size or line limit is not positive.
        """
        if font_size <= 0:
            err_msg = f"Font size must be positive, got {font_size}."
            raise ValueError(err_msg)
        if max_lines is not None and max_lines <= 0:
            err_msg = f"max_lines must be positive, got {max_lines}."
            raise ValueError(err_msg)

        lines = text.split("\n")
        if max_lines is not None:
            lines = lines[:max_lines]

        metrics = QFontMetricsF(self.font_for(font_size))
        return TextBox(
            width=max(metrics.horizontalAdvance(line) for line in lines),
            height=metrics.lineSpacing() * len(lines),
            line_count=len(lines),
        )
