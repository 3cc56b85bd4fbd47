"""
Atlas settings: the immutable run configuration and its text parsers.

Settings come from three layers, later layers winning:
    defaults < YAML config file < command line flags
"""

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

import yaml

from .errors import SettingsError


class FieldMode(Enum):
    MSDF = "msdf"
    SDF = "sdf"
    PSDF = "psdf"

    @property
    def channels(self) -> int:
        return 3 if self is FieldMode.MSDF else 1


@dataclass(frozen=True)
class CodepointRange:
    """Half-open interval [begin, end) of character codes."""
    begin: int
    end: int

    def __iter__(self):
        return iter(range(self.begin, self.end))

    def __str__(self) -> str:
        return f"{self.begin}-{self.end}"


@dataclass(frozen=True)
class TextureDimensions:
    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class AtlasSettings:
    codepoint_ranges: tuple[CodepointRange, ...] = (CodepointRange(0, 65536),)
    texture: TextureDimensions = TextureDimensions(2048, 2048)
    use_spans: bool = False
    max_char_height: int = 32
    auto_height: bool = False
    spacing: int = 2
    smooth_pixels: int = 2
    range: float = 1.0
    mode: FieldMode = FieldMode.MSDF
    font_file_name: str = "UbuntuMono-R.ttf"
    output_file_name: str = "bitmap_font"

    def with_char_height(self, height: int) -> "AtlasSettings":
        return replace(self, max_char_height=height)


def _parse_int(text: str, what: str) -> int:
    text = text.strip()
    try:
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text)
    except ValueError:
        raise SettingsError(f"Invalid {what}: {text!r}") from None


def parse_codepoint_range(text: str) -> CodepointRange:
    """
    Parse "BEGIN-END" (end exclusive). A single number N selects N alone.
    Both bounds accept decimal or 0x-prefixed hex.
    """
    if "-" in text:
        begin_text, end_text = text.split("-", 1)
        begin = _parse_int(begin_text, "codepoint range start")
        end = _parse_int(end_text, "codepoint range end")
    else:
        begin = _parse_int(text, "codepoint")
        end = begin + 1
    if begin < 0 or end < begin:
        raise SettingsError(f"Invalid codepoint range: {text!r}")
    return CodepointRange(begin, end)


def parse_texture_size(text: str) -> TextureDimensions:
    """Parse "WIDTHxHEIGHT"."""
    parts = text.lower().split("x")
    if len(parts) != 2:
        raise SettingsError(f"Texture size must look like 2048x2048, got {text!r}")
    width = _parse_int(parts[0], "texture width")
    height = _parse_int(parts[1], "texture height")
    if width <= 0 or height <= 0:
        raise SettingsError(f"Texture size must be positive, got {text!r}")
    return TextureDimensions(width, height)


def parse_mode(text: str) -> FieldMode:
    try:
        return FieldMode(text.strip().lower())
    except ValueError:
        choices = ", ".join(m.value for m in FieldMode)
        raise SettingsError(f"Unknown font mode {text!r} (expected one of {choices})") from None


def _non_negative(value, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        value = _parse_int(str(value), what)
    if value < 0:
        raise SettingsError(f"{what} must not be negative, got {value}")
    return value


def _positive(value, what: str) -> int:
    value = _non_negative(value, what)
    if value == 0:
        raise SettingsError(f"{what} must be positive, got 0")
    return value


def _as_bool(value, what: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise SettingsError(f"{what} must be a boolean, got {value!r}")


def _as_ranges(value) -> tuple[CodepointRange, ...]:
    if isinstance(value, (str, int)):
        value = [value]
    return tuple(
        r if isinstance(r, CodepointRange) else parse_codepoint_range(str(r))
        for r in value
    )


def _as_range_value(value) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise SettingsError(f"Invalid range: {value!r}") from None
    if result <= 0:
        raise SettingsError(f"range must be positive, got {value!r}")
    return result


# Config key -> (settings field, converter)
_CONVERTERS = {
    "code-range": ("codepoint_ranges", _as_ranges),
    "texture-size": ("texture", lambda v: v if isinstance(v, TextureDimensions) else parse_texture_size(str(v))),
    "mode": ("mode", lambda v: v if isinstance(v, FieldMode) else parse_mode(str(v))),
    "char-height": ("max_char_height", lambda v: _positive(v, "char-height")),
    "smooth-pixels": ("smooth_pixels", lambda v: _non_negative(v, "smooth-pixels")),
    "spacing": ("spacing", lambda v: _non_negative(v, "spacing")),
    "range": ("range", _as_range_value),
    "font": ("font_file_name", str),
    "output-name": ("output_file_name", str),
    "auto-height": ("auto_height", lambda v: _as_bool(v, "auto-height")),
    "use-spans": ("use_spans", lambda v: _as_bool(v, "use-spans")),
}


def settings_from_mapping(values: dict, base: AtlasSettings | None = None) -> AtlasSettings:
    """
    Build settings from a mapping of option names to values.

    Keys use the long command line names ("char-height"); underscores are
    accepted in place of dashes. Values that are None are ignored so that
    unset command line flags do not override lower layers.
    """
    changes = {}
    for key, value in values.items():
        if value is None:
            continue
        name = key.replace("_", "-")
        if name not in _CONVERTERS:
            raise SettingsError(f"Unknown setting: {key!r}")
        field_name, convert = _CONVERTERS[name]
        changes[field_name] = convert(value)
    return replace(base or AtlasSettings(), **changes)


def load_settings(path: Path, base: AtlasSettings | None = None) -> AtlasSettings:
    """Load settings from a YAML mapping."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise SettingsError(f"Could not read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise SettingsError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise SettingsError(f"Config file {path} must contain a mapping")
    return settings_from_mapping(data, base)
