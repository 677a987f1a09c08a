"""
Render the two "Famous Since" text lines over a garment photo and export
the result as PNG.
"""
import base64
import io
from dataclasses import dataclass, replace
from pathlib import Path
from typing import IO, Optional, Union

import requests
from PIL import Image as PilImage, ImageDraw, UnidentifiedImageError

from famous_since.utils.exceptions import ValidationError
from famous_since.utils.logging import get_logger

from .text_fit import DEFAULT_FONT_SIZE, MAX_LINE_WIDTH, fit_text, load_font, pillow_measurer

log = get_logger(__name__)

PIXEL_RATIO = 2
TEXT_COLOR = "#FFFFFF"
BLANK_GARMENT = (600, 700)
# Garments are scaled to this width before the pixel ratio is applied.
DISPLAY_WIDTH = BLANK_GARMENT[0]
# Wrapped bottom lines sit half a percent lower.
WRAP_NUDGE_PERCENT = 0.5

ImageSource = Union[bytes, str, Path, IO[bytes], None]


@dataclass(frozen=True)
class TextLine:
    text: str
    font_size: int
    top: float      # percent of image height
    left: float     # percent of image width, line centre


@dataclass(frozen=True)
class Preset:
    top_line: TextLine
    bottom_line: TextLine


DEFAULT_PRESET = Preset(
    top_line=TextLine("FAMOUS SINCE", DEFAULT_FONT_SIZE, 33, 51),
    bottom_line=TextLine("", DEFAULT_FONT_SIZE, 37, 51),
)


def famous_preset(bottom_text: str, font_path: Optional[str] = None) -> Preset:
    """Default preset with the customer's text fitted onto the bottom line."""
    fit = fit_text(bottom_text.upper(), MAX_LINE_WIDTH, pillow_measurer(font_path))
    bottom = replace(DEFAULT_PRESET.bottom_line, text=fit.text, font_size=fit.font_size)
    return replace(DEFAULT_PRESET, bottom_line=bottom)


def load_garment(source: ImageSource, static_folder: Optional[str] = None) -> PilImage.Image:
    """
    Open and fully decode a garment image. ``source`` may be raw bytes, a file
    object, an http(s) URL, or a path relative to ``static_folder``.
    ``None`` gives a plain black canvas.
    """
    if source is None or source == "":
        return PilImage.new("RGBA", BLANK_GARMENT, "#111111")

    if isinstance(source, str) and source.startswith(("http://", "https://")):
        response = requests.get(source, timeout=30)
        response.raise_for_status()
        source = response.content
    elif isinstance(source, (str, Path)):
        path = Path(source)
        if not path.is_absolute() and static_folder:
            path = Path(static_folder) / str(source).lstrip("/")
        source = path.read_bytes()

    try:
        img = PilImage.open(io.BytesIO(source) if isinstance(source, bytes) else source)
        img.load()
    except UnidentifiedImageError as e:
        raise ValidationError("Garment image could not be read") from e
    return img.convert("RGBA")


def render_mockup(
    source: ImageSource,
    preset: Preset = DEFAULT_PRESET,
    vertical_offset: int = 0,
    pixel_ratio: int = PIXEL_RATIO,
    font_path: Optional[str] = None,
    static_folder: Optional[str] = None,
) -> bytes:
    garment = load_garment(source, static_folder)
    display_height = max(1, round(garment.height * DISPLAY_WIDTH / garment.width))
    width, height = DISPLAY_WIDTH * pixel_ratio, display_height * pixel_ratio
    canvas = garment.resize((width, height), PilImage.Resampling.LANCZOS)
    draw = ImageDraw.Draw(canvas)

    for line, is_bottom in ((preset.top_line, False), (preset.bottom_line, True)):
        if not line.text:
            continue
        font = load_font(line.font_size * pixel_ratio, font_path or None)
        top = line.top
        if is_bottom and "\n" in line.text:
            top += WRAP_NUDGE_PERCENT
        x = width * line.left / 100
        y = height * top / 100 + vertical_offset * pixel_ratio
        draw.multiline_text(
            (x, y), line.text, font=font, fill=TEXT_COLOR, anchor="ma", align="center", spacing=2 * pixel_ratio
        )

    buffer = io.BytesIO()
    canvas.save(buffer, format="PNG", optimize=True)
    log.debug("Rendered mockup %dx%d", width, height)
    return buffer.getvalue()


def to_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")
