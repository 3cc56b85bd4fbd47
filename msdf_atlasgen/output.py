"""
Atlas output files.

    <output>_desc.c   font information, optional codepoint spans, glyph table
    <output>_img.c    atlas pixels as a C byte array (rows bottom to top)
    <output>_img.png  preview of the atlas (top row first)

Glyph records are read by attribute only (codepoint, bbox, advance,
placement, bitmap), so this module does not depend on the pipeline.
"""

import re
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image

from .config import AtlasSettings

HEADER = "// Generated by msdf-atlasgen, do not modify.\n"

FILLER_ENTRY = "{ 0, 0, 0, 0, 0, 0, 0, 0, 0 },"


def _short_float(value: float) -> str:
    """Four significant digits as a C float literal."""
    text = f"{value:.4g}"
    if not any(c in text for c in ".en"):
        text += ".0"
    return text + "f"


def _fixed_float(value: float) -> str:
    return f"{value:.4f}f"


def _glyph_entry(glyph) -> str:
    p = glyph.placement
    box = glyph.bbox
    return (
        f"{{ {p.x}, {p.y}, {p.width}, {p.height}, "
        f"{_fixed_float(box.left)}, {_fixed_float(box.right)}, "
        f"{_fixed_float(box.bottom)}, {_fixed_float(box.top)}, "
        f"{_fixed_float(glyph.advance)} }},"
    )


def codepoint_spans(codepoints: list[int]) -> list[tuple[int, int, int]]:
    """
    Split sorted codepoints into runs of consecutive values.

    Returns (start, end_exclusive, cumulative) triples, where cumulative is
    the number of glyphs in all earlier spans, i.e. the table index of start.
    """
    spans = []
    cumulative = 0
    begin = 0
    while begin < len(codepoints):
        end = begin + 1
        while end < len(codepoints) and codepoints[end] == codepoints[end - 1] + 1:
            end += 1
        size = end - begin
        spans.append((codepoints[begin], codepoints[begin] + size, cumulative))
        cumulative += size
        begin = end
    return spans


def format_description(glyphs: list, settings: AtlasSettings) -> str:
    """
    Render the glyph description as C source.

    Glyphs are listed by ascending codepoint. With use_spans the table holds
    only real glyphs and a span table maps codepoints to indices; otherwise
    the table is indexed by codepoint directly, with zero entries for gaps.
    """
    glyphs = sorted(glyphs, key=lambda g: g.codepoint)

    # These help when aligning to the top or bottom instead of the baseline
    min_y = min(g.bbox.bottom for g in glyphs)
    max_y = max(g.bbox.top for g in glyphs)

    lines = [HEADER]
    lines.append(
        "static const struct {\n"
        "    unsigned int smooth_pixels;\n"
        "    float min_y;\n"
        "    float max_y;\n"
        "} font_information = {\n"
        f"    {settings.smooth_pixels},\n"
        f"    {_short_float(min_y)},\n"
        f"    {_short_float(max_y)}\n"
        "};\n\n"
    )

    if settings.use_spans:
        spans = codepoint_spans([g.codepoint for g in glyphs])
        span_lines = [f"    {{ {start}, {end}, {cumulative} }}" for start, end, cumulative in spans]
        lines.append(
            "static const struct bitmap_span {\n"
            "    unsigned int start;\n"
            "    unsigned int end;\n"
            "    unsigned int cumulative;\n"
            "} font_codepoint_spans[] = {\n"
            + ",\n".join(span_lines) + "\n"
            "};\n\n"
        )

    lines.append(
        "static const struct bitmap_glyph {\n"
        "    unsigned int atlas_x, atlas_y;\n"
        "    unsigned int atlas_w, atlas_h;\n"
        "    float minx, maxx;\n"
        "    float miny, maxy;\n"
        "    float advance;\n"
        "} font_codepoint_infos[] = {\n"
    )

    entries = []
    for glyph in glyphs:
        if not settings.use_spans:
            while len(entries) < glyph.codepoint:
                entries.append(FILLER_ENTRY)
        entries.append(_glyph_entry(glyph))

    lines.extend(entry + "\n" for entry in entries)
    lines.append("};\n")
    lines.append(f"static const int bitmap_chars_count = {len(entries)};\n")
    return "".join(lines)


def _output_path(settings: AtlasSettings, suffix: str) -> Path:
    path = Path(settings.output_file_name + suffix)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def write_description(glyphs: list, settings: AtlasSettings) -> Path:
    path = _output_path(settings, "_desc.c")
    path.write_text(format_description(glyphs, settings))
    return path


def compose_atlas(glyphs: list, settings: AtlasSettings) -> np.ndarray:
    """Blit every glyph field into a texture-sized canvas (row 0 at the bottom)."""
    width = settings.texture.width
    height = settings.texture.height
    if settings.mode.channels == 3:
        canvas = np.zeros((height, width, 3))
    else:
        canvas = np.zeros((height, width))

    for glyph in glyphs:
        if glyph.bitmap is None:
            raise ValueError(f"Glyph {glyph.codepoint} has no rendered field")
        p = glyph.placement
        pixels = glyph.bitmap.pixels
        canvas[p.y:p.y + pixels.shape[0], p.x:p.x + pixels.shape[1]] = pixels
    return canvas


def encode_pixels(canvas: np.ndarray) -> np.ndarray:
    """Map field values to bytes: floor(v * 256) clamped to 0..255."""
    values = np.nan_to_num(canvas, nan=0.0, posinf=1.0, neginf=0.0)
    return np.clip(np.floor(values * 256), 0, 255).astype(np.uint8)


def format_image_source(pixels: np.ndarray, settings: AtlasSettings) -> str:
    """Render encoded atlas bytes as a C struct, one texture row per line."""
    width = settings.texture.width
    height = settings.texture.height
    channels = settings.mode.channels
    size = f"{width}*{height}" + ("*3" if channels == 3 else "")

    lines = [
        HEADER,
        "\n",
        "static const struct {\n",
        "    unsigned int width, height;\n",
        "    unsigned int channels;\n",
        "    unsigned int char_border;\n",
        "    unsigned int spacing;\n",
        f"    unsigned char pixels[{size}];\n",
        "} font_image = {\n",
        f"    {width}, {height}, {channels}, {settings.smooth_pixels}, {settings.spacing}, {{\n",
    ]
    for row in pixels.reshape(height, width * channels):
        lines.append("".join(f"{v}," for v in row.tolist()) + "\n")
    lines.append("}};\n")
    return "".join(lines)


def write_image(glyphs: list, settings: AtlasSettings) -> list[Path]:
    """Write the atlas as a C byte array and a PNG preview. Returns both paths."""
    pixels = encode_pixels(compose_atlas(glyphs, settings))

    source_path = _output_path(settings, "_img.c")
    source_path.write_text(format_image_source(pixels, settings))

    png_path = _output_path(settings, "_img.png")
    Image.fromarray(np.ascontiguousarray(np.flipud(pixels))).save(png_path)

    return [source_path, png_path]


# ---------------------------------------------------------------------------
# Reading descriptions back
# ---------------------------------------------------------------------------

@dataclass
class GlyphMetrics:
    atlas_x: int
    atlas_y: int
    atlas_w: int
    atlas_h: int
    min_x: float
    max_x: float
    min_y: float
    max_y: float
    advance: float

    @property
    def is_filler(self) -> bool:
        return self.atlas_w == 0 and self.atlas_h == 0


@dataclass
class Description:
    smooth_pixels: int
    min_y: float
    max_y: float
    spans: list[tuple[int, int, int]] | None
    glyphs: list[GlyphMetrics]
    count: int

    def lookup(self, codepoint: int) -> GlyphMetrics | None:
        """Find a glyph the way a renderer would, by span offset or direct index."""
        if self.spans is not None:
            for start, end, cumulative in self.spans:
                if start <= codepoint < end:
                    return self.glyphs[cumulative + codepoint - start]
            return None
        if 0 <= codepoint < len(self.glyphs):
            entry = self.glyphs[codepoint]
            return None if entry.is_filler else entry
        return None


_FLOAT = r"(-?[0-9.]+(?:e[-+]?\d+)?)f"
_INFO_RE = re.compile(r"font_information = \{\s*(\d+),\s*" + _FLOAT + r",\s*" + _FLOAT + r"\s*\};")
_SPANS_RE = re.compile(r"font_codepoint_spans\[\] = \{(.*?)\};", re.DOTALL)
_SPAN_RE = re.compile(r"\{\s*(\d+),\s*(\d+),\s*(\d+)\s*\}")
_INFOS_RE = re.compile(r"font_codepoint_infos\[\] = \{(.*?)\};", re.DOTALL)
_ENTRY_RE = re.compile(r"\{([^{}]*)\}")
_COUNT_RE = re.compile(r"bitmap_chars_count = (\d+);")


def _parse_entry(body: str) -> GlyphMetrics:
    values = [v.strip().rstrip("f") for v in body.split(",")]
    if len(values) != 9:
        raise ValueError(f"Glyph entry needs 9 values, got {len(values)}: {body!r}")
    ints = [int(float(v)) for v in values[:4]]
    floats = [float(v) for v in values[4:]]
    return GlyphMetrics(*ints, *floats)


def read_description(text: str) -> Description:
    """Parse a description written by format_description."""
    info = _INFO_RE.search(text)
    infos = _INFOS_RE.search(text)
    count = _COUNT_RE.search(text)
    if info is None or infos is None or count is None:
        raise ValueError("Not a glyph atlas description")

    spans_match = _SPANS_RE.search(text)
    spans = None
    if spans_match is not None:
        spans = [tuple(int(v) for v in m.groups()) for m in _SPAN_RE.finditer(spans_match.group(1))]

    return Description(
        smooth_pixels=int(info.group(1)),
        min_y=float(info.group(2)),
        max_y=float(info.group(3)),
        spans=spans,
        glyphs=[_parse_entry(m.group(1)) for m in _ENTRY_RE.finditer(infos.group(1))],
        count=int(count.group(1)),
    )
