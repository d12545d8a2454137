from __future__ import annotations

import enum
import logging
import os
import re
from dataclasses import dataclass
from typing import BinaryIO, Optional, Tuple, Union

import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image, ImageColor, UnidentifiedImageError

from .constants import (
    DEFAULT_BG_COLOR,
    DEFAULT_FG_COLOR,
    QR_MIN_SIDE,
    QR_QUIET_ZONE_MODULES,
    QR_SIDE_DIVISOR,
)
from .errors import ColorParseError, ImageDecodeError, PlacementError, QrEncodeError


logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]

_BARE_HEX = re.compile(r"^(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_CSS_FUNC = re.compile(r"^(rgba?|hsla?)\((.*)\)$", re.IGNORECASE)
_CSS_ARG_SPLIT = re.compile(r"[\s,/]+")


class Position(enum.Enum):
    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"
    CENTER = "center"

    @classmethod
    def parse(cls, value: Optional[str], log: Optional[logging.Logger] = None) -> "Position":
        """Map a position keyword to a Position, falling back to TOP_LEFT.

        An empty or missing keyword selects TOP_LEFT silently; anything else
        that is not a known keyword logs a warning first.
        """
        if not value:
            return cls.TOP_LEFT
        try:
            return cls(value)
        except ValueError:
            (log or logger).warning("unknown position %s, falling back to top-left", value)
            return cls.TOP_LEFT


@dataclass
class OverlayResult:
    width: int
    height: int
    qr_side: int
    offset: Tuple[int, int]


def _parse_css_function(name: str, body: str) -> RGBA:
    args = [a for a in _CSS_ARG_SPLIT.split(body.strip()) if a]
    if len(args) not in (3, 4):
        raise ValueError(f"expected 3 or 4 components, got {len(args)}")
    r, g, b = ImageColor.getrgb(f"{name[:3]}({','.join(args[:3])})")[:3]
    alpha = 255
    if len(args) == 4:
        a = args[3]
        frac = float(a[:-1]) / 100.0 if a.endswith("%") else float(a)
        alpha = round(min(1.0, max(0.0, frac)) * 255)
    return r, g, b, alpha


def parse_color(value: str) -> RGBA:
    """Parse a CSS color string into an 8-bit RGBA tuple.

    Bare hex digits (``ffffffff``) are accepted as if prefixed with '#'.
    Functional forms take a CSS alpha in 0..1 or a percentage, with comma or
    space/slash separators: ``rgba(0, 0, 0, 0.5)``, ``hsl(120 100% 50% / 25%)``.
    """
    spec = value.strip()
    if _BARE_HEX.match(spec):
        spec = "#" + spec
    try:
        m = _CSS_FUNC.match(spec)
        if m:
            return _parse_css_function(m.group(1).lower(), m.group(2))
        return ImageColor.getcolor(spec, "RGBA")  # type: ignore[return-value]
    except ValueError as exc:
        raise ColorParseError(f"Invalid color {value!r}: {exc}") from exc


def target_side(width: int, height: int) -> int:
    """Requested QR side length for a width x height cover image."""
    return max(QR_MIN_SIDE, min(width, height) // QR_SIDE_DIVISOR)


def render_qr(
    text: str,
    max_side: int,
    *,
    quiet_zone: bool = True,
    fg: RGBA = (0, 0, 0, 255),
    bg: RGBA = (255, 255, 255, 255),
) -> Image.Image:
    """Render ``text`` as an RGBA QR code no wider than ``max_side`` pixels.

    The symbol uses error correction level H and the smallest version that
    fits. Each module is drawn as a square of ``max_side // modules`` pixels
    (at least one), so the actual side is usually a little smaller than the
    requested one.
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=1,
        border=QR_QUIET_ZONE_MODULES if quiet_zone else 0,
    )
    qr.add_data(text)
    try:
        qr.make(fit=True)
    except DataOverflowError as exc:
        raise QrEncodeError(f"Text of {len(text)} characters does not fit in a level-H QR code") from exc

    matrix = qr.get_matrix()
    modules = len(matrix)
    box = max(1, max_side // modules)
    side = modules * box

    # one pixel per module, then scaled up without smoothing
    img = Image.new("RGBA", (modules, modules), bg)
    img.putdata([fg if dark else bg for row in matrix for dark in row])
    return img.resize((side, side), Image.Resampling.NEAREST)


def compute_offset(
    position: Position,
    image_size: Tuple[int, int],
    qr_size: Tuple[int, int],
) -> Tuple[int, int]:
    """Top-left pixel where the QR code goes for the given position.

    Raises:
        PlacementError: If the QR code is larger than the image on either axis.
    """
    width, height = image_size
    qr_w, qr_h = qr_size
    if qr_w > width or qr_h > height:
        raise PlacementError(
            f"QR code ({qr_w}x{qr_h}) does not fit inside the {width}x{height} image"
        )
    if position is Position.TOP_RIGHT:
        return width - qr_w, 0
    if position is Position.BOTTOM_LEFT:
        return 0, height - qr_h
    if position is Position.BOTTOM_RIGHT:
        return width - qr_w, height - qr_h
    if position is Position.CENTER:
        return (width - qr_w) // 2, (height - qr_h) // 2
    return 0, 0


def load_rgba(path: Union[str, os.PathLike]) -> Image.Image:
    """Decode an image file of any supported format into RGBA pixels.

    Filesystem errors (missing file, permissions) propagate unchanged;
    anything the codec cannot read raises ImageDecodeError.
    """
    with open(path, "rb") as fh:
        try:
            with Image.open(fh) as im:
                return im.convert("RGBA")
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise ImageDecodeError(f"Cannot decode image {os.fspath(path)}: {exc}") from exc


def overlay_qr(
    image: Image.Image,
    text: str,
    *,
    quiet_zone: bool = True,
    position: Position = Position.TOP_LEFT,
    fg: RGBA = (0, 0, 0, 255),
    bg: RGBA = (255, 255, 255, 255),
) -> OverlayResult:
    """Paste a QR code for ``text`` onto ``image`` in place.

    QR pixels replace the cover pixels outright; there is no alpha blending.
    """
    width, height = image.size
    qr_img = render_qr(text, target_side(width, height), quiet_zone=quiet_zone, fg=fg, bg=bg)
    offset = compute_offset(position, (width, height), qr_img.size)
    image.paste(qr_img, offset)
    return OverlayResult(width=width, height=height, qr_side=qr_img.width, offset=offset)


def write_overlayed_image(
    img: Union[str, os.PathLike],
    output: BinaryIO,
    text: str,
    *,
    has_quiet_zone: bool = True,
    qr_position: Position = Position.TOP_LEFT,
    qrcode_fg_color: str = DEFAULT_FG_COLOR,
    qrcode_bg_color: str = DEFAULT_BG_COLOR,
    log: Optional[logging.Logger] = None,
) -> OverlayResult:
    """Stamp a QR code of ``text`` onto the image at ``img`` and write it as PNG.

    Args:
        img: Cover image path; any format Pillow can decode.
        output: Writable binary stream; receives the PNG bytes.
        text: Secret encoded into the QR code.
        has_quiet_zone: Surround the symbol with a 4-module blank margin.
        qr_position: Where to place the QR code.
        qrcode_fg_color: CSS color of the dark modules.
        qrcode_bg_color: CSS color of the light modules and quiet zone.
        log: Logger for progress messages.

    Returns:
        Geometry of the composited image and QR code.
    """
    log = log or logger

    log.info("start pixel converting")
    image = load_rgba(img)

    fg = parse_color(qrcode_fg_color)
    bg = parse_color(qrcode_bg_color)

    log.info("start QR Code generation")
    result = overlay_qr(image, text, quiet_zone=has_quiet_zone, position=qr_position, fg=fg, bg=bg)
    log.info(
        "overlapped %dpx QR Code on %dx%d image at %s",
        result.qr_side,
        result.width,
        result.height,
        result.offset,
    )

    log.info("writing overlapped image")
    image.save(output, format="PNG")
    return result
