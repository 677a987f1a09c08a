"""
Pick a font size (and at most one line break) so a line of customer text
fits the printable width of the shirt.

Sizes step down one pixel at a time from ``default_size`` to ``min_size``.
At the floor the text is split greedily into two lines; the split is only
used when both lines fit.
"""
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional

from PIL import ImageFont

DEFAULT_FONT_SIZE = 22
MIN_FONT_SIZE = 12
MAX_LINE_WIDTH = 171
TOP_LINE_FONT_SIZE = 26

Measurer = Callable[[str, int], float]


@dataclass(frozen=True)
class FitResult:
    font_size: int
    wrapped: bool
    text: str

    def to_dict(self) -> dict:
        return {"fontSize": self.font_size, "shouldWrap": self.wrapped, "text": self.text}


@lru_cache(maxsize=64)
def load_font(size: int, font_path: Optional[str] = None) -> ImageFont.FreeTypeFont:
    if font_path:
        return ImageFont.truetype(font_path, size)
    return ImageFont.load_default(size=size)


def pillow_measurer(font_path: Optional[str] = None) -> Measurer:
    """Width in pixels as Pillow would draw it, rounded like a canvas measure."""
    def measure(text: str, size: int) -> float:
        return round(load_font(size, font_path).getlength(text))
    return measure


def _split_two_lines(words: list[str], max_width: float, measure: Measurer, size: int) -> tuple[str, str]:
    line_one = words[0]
    index = 1
    while index < len(words):
        candidate = f"{line_one} {words[index]}"
        if measure(candidate, size) > max_width:
            break
        line_one = candidate
        index += 1
    return line_one, " ".join(words[index:])


def fit_text(
    text: str,
    max_width: float = MAX_LINE_WIDTH,
    measure: Optional[Measurer] = None,
    default_size: int = DEFAULT_FONT_SIZE,
    min_size: int = MIN_FONT_SIZE,
) -> FitResult:
    if not text:
        return FitResult(default_size, False, "")

    measure = measure or pillow_measurer()

    size = default_size
    while size > min_size and measure(text, size) > max_width:
        size -= 1

    if measure(text, size) <= max_width:
        return FitResult(size, False, text)

    words = text.split()
    if len(words) < 2:
        return FitResult(min_size, False, text)

    # An over-long first word stays whole on line one.
    line_one, line_two = _split_two_lines(words, max_width, measure, min_size)
    if not line_two:
        return FitResult(min_size, False, text)

    longest = max(measure(line_one, min_size), measure(line_two, min_size))
    if longest <= max_width:
        return FitResult(min_size, True, f"{line_one}\n{line_two}")
    return FitResult(min_size, False, text)
