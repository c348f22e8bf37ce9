"""Color parsing, normalization and conversion.

Every accepted color string normalizes to a single canonical ``Color`` holding
four 8-bit channels. Supported input formats:

- Hex: ``#RGB``, ``#RRGGBB``, ``#RRGGBBAA``
- RGB: ``rgb(r, g, b)``, ``rgba(r, g, b, a)``
- HSL: ``hsl(h, s%, l%)``, ``hsla(h, s%, l%, a)``
- OKLCH: ``oklch(l% c h)``, ``oklch(l% c h / a)``

Alpha tokens containing a decimal point are fractional (0.0-1.0), anything
else is an integer byte (0-255).
"""

import math
import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from shard.errors import ParseError


class ColorFormat(str, Enum):
    HEX = "hex"
    RGB = "rgb"
    HSL = "hsl"
    OKLCH = "oklch"


@dataclass(frozen=True)
class Color:
    r: int
    g: int
    b: int
    a: int = 255

    def __post_init__(self):
        for name in ("r", "g", "b", "a"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= 255:
                raise ValueError(f"channel {name} must be an integer in 0..255, got {value!r}")

    @property
    def rgba(self) -> tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)

    @property
    def is_opaque(self) -> bool:
        return self.a == 255

    def to_hex(self) -> str:
        if self.is_opaque:
            return f"#{self.r:02X}{self.g:02X}{self.b:02X}"
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}{self.a:02X}"

    def to_rgb(self) -> str:
        if self.is_opaque:
            return f"rgb({self.r}, {self.g}, {self.b})"
        return f"rgba({self.r}, {self.g}, {self.b}, {_format_alpha(self.a)})"

    def to_hsl(self) -> str:
        h, s, l = _rgb_to_hsl(self.r / 255, self.g / 255, self.b / 255)
        body = f"{_format_number(h, 2)}, {_format_number(s * 100, 2)}%, {_format_number(l * 100, 2)}%"
        if self.is_opaque:
            return f"hsl({body})"
        return f"hsla({body}, {_format_alpha(self.a)})"

    def to_oklch(self) -> str:
        lightness, chroma, hue = rgb_to_oklch(self.r, self.g, self.b)
        chroma_text = _format_number(chroma, 6)
        # Hue is meaningless for achromatic colors.
        hue_text = "0" if chroma_text == "0" else _format_number(hue, 4)
        body = f"{_format_number(lightness * 100, 4)}% {chroma_text} {hue_text}"
        if self.is_opaque:
            return f"oklch({body})"
        return f"oklch({body} / {_format_alpha(self.a)})"


_NUMBER = r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)"

HEX_REGEX = re.compile(r"^#([0-9a-f]{3}|[0-9a-f]{6}|[0-9a-f]{8})$", re.IGNORECASE)
RGB_REGEX = re.compile(
    rf"^rgba?\s*\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*({_NUMBER})\s*)?\)$",
    re.IGNORECASE,
)
HSL_REGEX = re.compile(
    rf"^hsla?\s*\(\s*({_NUMBER})\s*,\s*({_NUMBER})\s*%\s*,\s*({_NUMBER})\s*%\s*(?:,\s*({_NUMBER})\s*)?\)$",
    re.IGNORECASE,
)
OKLCH_REGEX = re.compile(
    rf"^oklch\s*\(\s*({_NUMBER})\s*%\s*({_NUMBER})\s+({_NUMBER})\s*(?:/\s*({_NUMBER})\s*)?\)$",
    re.IGNORECASE,
)

# Candidate substrings for extract_all; each match is validated by parse().
COLOR_FINDER = re.compile(
    r"(?<![\w&#])#[0-9a-f]{3,8}(?!\w)|(?<![\w-])(?:rgba?|hsla?|oklch)\s*\([^()]*\)",
    re.IGNORECASE,
)

# Tolerance for float error when testing whether an OKLCH color is inside sRGB.
GAMUT_EPSILON = 1e-3
GAMUT_SEARCH_STEPS = 32
# No sRGB color reaches this chroma; larger inputs are capped before gamut mapping.
MAX_CHROMA = 1.0


def parse(text: str) -> Color:
    """Parse a color string into its canonical RGBA8 value.

    Args:
        text: Color text in any supported format. Surrounding whitespace is ignored.

    Returns:
        The canonical Color.

    Raises:
        ParseError: If the text does not match any supported grammar or a
            component is out of range.
    """
    candidate = text.strip()
    for parser in (_parse_hex, _parse_rgb, _parse_hsl, _parse_oklch):
        color = parser(candidate)
        if color is not None:
            return color
    raise ParseError(text)


def format_color(color: Color, fmt: ColorFormat | str) -> str:
    fmt = ColorFormat(fmt)
    if fmt is ColorFormat.HEX:
        return color.to_hex()
    if fmt is ColorFormat.RGB:
        return color.to_rgb()
    if fmt is ColorFormat.HSL:
        return color.to_hsl()
    return color.to_oklch()


def extract_all(text: str) -> Iterator[Color]:
    """Yield every color found in ``text``, in order of first occurrence.

    Candidates that look like colors but fail to parse are skipped.
    """
    for match in COLOR_FINDER.finditer(text):
        try:
            yield parse(match.group(0))
        except ParseError:
            continue


def _parse_hex(text: str) -> Color | None:
    match = HEX_REGEX.match(text)
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(d * 2 for d in digits)
    channels = [int(digits[i:i + 2], 16) for i in range(0, len(digits), 2)]
    return Color(*channels)


def _parse_rgb(text: str) -> Color | None:
    match = RGB_REGEX.match(text)
    if not match:
        return None
    channels = [_to_int(text, match.group(i)) for i in (1, 2, 3)]
    if any(c > 255 for c in channels):
        raise ParseError(text, "rgb channel out of range 0..255")
    alpha = _parse_alpha(text, match.group(4))
    return Color(*channels, alpha)


def _parse_hsl(text: str) -> Color | None:
    match = HSL_REGEX.match(text)
    if not match:
        return None
    hue = _to_float(text, match.group(1)) % 360
    saturation = _to_float(text, match.group(2))
    lightness = _to_float(text, match.group(3))
    if not (0 <= saturation <= 100 and 0 <= lightness <= 100):
        raise ParseError(text, "saturation and lightness must be within 0%..100%")
    alpha = _parse_alpha(text, match.group(4))
    r, g, b = _hsl_to_rgb(hue, saturation / 100, lightness / 100)
    return Color(_to_byte(r), _to_byte(g), _to_byte(b), alpha)


def _parse_oklch(text: str) -> Color | None:
    match = OKLCH_REGEX.match(text)
    if not match:
        return None
    lightness = _to_float(text, match.group(1))
    chroma = _to_float(text, match.group(2))
    hue = _to_float(text, match.group(3)) % 360
    if not 0 <= lightness <= 100:
        raise ParseError(text, "lightness must be within 0%..100%")
    if chroma < 0:
        raise ParseError(text, "chroma must not be negative")
    alpha = _parse_alpha(text, match.group(4))
    r, g, b = oklch_to_rgb(lightness / 100, chroma, hue)
    return Color(r, g, b, alpha)


def _parse_alpha(text: str, token: str | None) -> int:
    if token is None:
        return 255
    if "." in token:
        value = _to_float(text, token)
        if not 0.0 <= value <= 1.0:
            raise ParseError(text, "fractional alpha must be within 0.0..1.0")
        return _to_byte(value)
    value = _to_int(text, token)
    if not 0 <= value <= 255:
        raise ParseError(text, "integer alpha must be within 0..255")
    return value


def _to_float(text: str, token: str) -> float:
    value = float(token)
    if not math.isfinite(value):
        raise ParseError(text, "number out of range")
    return value


def _to_int(text: str, token: str) -> int:
    try:
        return int(token)
    except ValueError as exc:
        raise ParseError(text, "number out of range") from exc


def _to_byte(unit: float) -> int:
    """Scale a 0..1 float to a byte, rounding half up."""
    return max(0, min(255, math.floor(unit * 255 + 0.5)))


def _format_number(value: float, digits: int) -> str:
    text = f"{value:.{digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text


def _format_alpha(alpha: int) -> str:
    # Always keep a decimal point so the value reads back as fractional.
    text = f"{alpha / 255:.4f}".rstrip("0")
    if text.endswith("."):
        text += "0"
    return text


def _hsl_to_rgb(h: float, s: float, l: float) -> tuple[float, float, float]:
    chroma = (1 - abs(2 * l - 1)) * s
    sector = h / 60
    x = chroma * (1 - abs(sector % 2 - 1))
    if sector < 1:
        r, g, b = chroma, x, 0.0
    elif sector < 2:
        r, g, b = x, chroma, 0.0
    elif sector < 3:
        r, g, b = 0.0, chroma, x
    elif sector < 4:
        r, g, b = 0.0, x, chroma
    elif sector < 5:
        r, g, b = x, 0.0, chroma
    else:
        r, g, b = chroma, 0.0, x
    m = l - chroma / 2
    return (r + m, g + m, b + m)


def _rgb_to_hsl(r: float, g: float, b: float) -> tuple[float, float, float]:
    high = max(r, g, b)
    low = min(r, g, b)
    l = (high + low) / 2
    delta = high - low
    if delta == 0:
        return (0.0, 0.0, l)
    s = delta / (1 - abs(2 * l - 1))
    if high == r:
        h = 60 * (((g - b) / delta) % 6)
    elif high == g:
        h = 60 * ((b - r) / delta + 2)
    else:
        h = 60 * ((r - g) / delta + 4)
    return (h % 360, min(s, 1.0), l)


def _srgb_to_linear(c: float) -> float:
    if c <= 0.04045:
        return c / 12.92
    return ((c + 0.055) / 1.055) ** 2.4


def _linear_to_srgb(c: float) -> float:
    magnitude = abs(c)
    if magnitude <= 0.0031308:
        return 12.92 * c
    return math.copysign(1.055 * magnitude ** (1 / 2.4) - 0.055, c)


def _cbrt(x: float) -> float:
    return math.copysign(abs(x) ** (1 / 3), x)


def _oklab_to_srgb(lightness: float, a: float, b: float) -> tuple[float, float, float]:
    l_ = lightness + 0.3963377774 * a + 0.2158037573 * b
    m_ = lightness - 0.1055613458 * a - 0.0638541728 * b
    s_ = lightness - 0.0894841775 * a - 1.2914855480 * b
    l, m, s = l_ ** 3, m_ ** 3, s_ ** 3
    red = 4.0767416621 * l - 3.3077115913 * m + 0.2309699292 * s
    green = -1.2684380046 * l + 2.6097574011 * m - 0.3413193965 * s
    blue = -0.0041960863 * l - 0.7034186147 * m + 1.7076147010 * s
    return (_linear_to_srgb(red), _linear_to_srgb(green), _linear_to_srgb(blue))


def _oklch_to_srgb(lightness: float, chroma: float, hue: float) -> tuple[float, float, float]:
    radians = math.radians(hue)
    return _oklab_to_srgb(lightness, chroma * math.cos(radians), chroma * math.sin(radians))


def _in_gamut(channels: tuple[float, float, float]) -> bool:
    return all(-GAMUT_EPSILON <= c <= 1 + GAMUT_EPSILON for c in channels)


def oklch_to_rgb(lightness: float, chroma: float, hue: float) -> tuple[int, int, int]:
    """Convert OKLCH (lightness 0..1) to 8-bit sRGB.

    Colors outside the sRGB gamut keep their lightness and hue while chroma is
    reduced by bisection to the largest in-gamut value; the remaining float
    error is clamped.
    """
    chroma = min(chroma, MAX_CHROMA)
    channels = _oklch_to_srgb(lightness, chroma, hue)
    if not _in_gamut(channels):
        low, high = 0.0, chroma
        for _ in range(GAMUT_SEARCH_STEPS):
            mid = (low + high) / 2
            if _in_gamut(_oklch_to_srgb(lightness, mid, hue)):
                low = mid
            else:
                high = mid
        channels = _oklch_to_srgb(lightness, low, hue)
    r, g, b = (_to_byte(min(1.0, max(0.0, c))) for c in channels)
    return (r, g, b)


def rgb_to_oklch(r: int, g: int, b: int) -> tuple[float, float, float]:
    """Convert 8-bit sRGB to OKLCH as (lightness 0..1, chroma, hue degrees)."""
    red, green, blue = (_srgb_to_linear(c / 255) for c in (r, g, b))
    l = _cbrt(0.4122214708 * red + 0.5363325363 * green + 0.0514459929 * blue)
    m = _cbrt(0.2119034982 * red + 0.6806995451 * green + 0.1073969566 * blue)
    s = _cbrt(0.0883024619 * red + 0.2817188376 * green + 0.6299787005 * blue)
    lightness = 0.2104542553 * l + 0.7936177850 * m - 0.0040720468 * s
    a = 1.9779984951 * l - 2.4285922050 * m + 0.4505937099 * s
    b_axis = 0.0259040371 * l + 0.7827717662 * m - 0.8086757660 * s
    chroma = math.hypot(a, b_axis)
    hue = math.degrees(math.atan2(b_axis, a)) % 360
    return (lightness, chroma, hue)
