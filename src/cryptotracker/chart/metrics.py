from typing import Protocol

from cryptotracker.chart.models import TextBox

# Average glyph advance and line height as a fraction of the font size.
# These match a typical sans-serif face closely enough for headless layout.
DEFAULT_ADVANCE_RATIO = 0.6
DEFAULT_LINE_HEIGHT_RATIO = 1.25


class LabelMetrics(Protocol):
    """Measures text labels into pixel boxes.

    Real text shaping is a platform concern, so the layout engine only ever
    talks to this interface. Implementations must raise on bad input rather
    than returning an empty box.
    """

    def measure(
        self, text: str, font_size: float, max_lines: int | None = None
    ) -> TextBox:
        """Returns the box `text` occupies when rendered at `font_size`."""
        ...


class FixedAdvanceLabelMetrics:
    """A deterministic measurer for headless rendering and tests.

    Every glyph advances by the same amount and every line has the same
    height, both proportional to the font size. Lines are split on `\\n`.
    """

    def __init__(
        self,
        advance_ratio: float = DEFAULT_ADVANCE_RATIO,
        line_height_ratio: float = DEFAULT_LINE_HEIGHT_RATIO,
    ) -> None:
        if advance_ratio <= 0 or line_height_ratio <= 0:
            err_msg = "Glyph advance and line height ratios must be positive."
            raise ValueError(err_msg)
        self.advance_ratio = advance_ratio
        self.line_height_ratio = line_height_ratio

    def measure(
        self, text: str, font_size: float, max_lines: int | None = None
    ) -> TextBox:
        """Measures `text`, keeping at most `max_lines` lines if given.

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

        longest = max(len(line) for line in lines)
        return TextBox(
            width=longest * font_size * self.advance_ratio,
            height=len(lines) * font_size * self.line_height_ratio,
            line_count=len(lines),
        )
