"""
Distance field font atlas generator.

Packs a font's glyphs into a fixed-size texture of (multi-channel) signed
distance fields and writes a C description of glyph placement and metrics.
"""

from .atlas import (
    Atlas,
    BoundingBox,
    FieldBitmap,
    GlyphRecord,
    build_atlas,
    build_charset,
    build_glyph_field,
    find_char_height,
    normalize_glyphs,
    pack_glyphs,
    read_shapes,
    render_fields,
    run,
)
from .binpack import Rect, pack_max_rects
from .config import (
    AtlasSettings,
    CodepointRange,
    FieldMode,
    TextureDimensions,
    load_settings,
    parse_codepoint_range,
    parse_mode,
    parse_texture_size,
    settings_from_mapping,
)
from .errors import (
    AtlasError,
    CollaboratorUnavailable,
    NoGlyphsCollected,
    PackingInfeasible,
    SettingsError,
)
from .output import (
    Description,
    GlyphMetrics,
    compose_atlas,
    encode_pixels,
    format_description,
    read_description,
    write_description,
    write_image,
)
from .shapes import FontShapeProvider, GlyphShape, Shape

__all__ = [
    "Atlas",
    "BoundingBox",
    "FieldBitmap",
    "GlyphRecord",
    "build_atlas",
    "build_charset",
    "build_glyph_field",
    "find_char_height",
    "normalize_glyphs",
    "pack_glyphs",
    "read_shapes",
    "render_fields",
    "run",
    "Rect",
    "pack_max_rects",
    "AtlasSettings",
    "CodepointRange",
    "FieldMode",
    "TextureDimensions",
    "load_settings",
    "parse_codepoint_range",
    "parse_mode",
    "parse_texture_size",
    "settings_from_mapping",
    "AtlasError",
    "CollaboratorUnavailable",
    "NoGlyphsCollected",
    "PackingInfeasible",
    "SettingsError",
    "Description",
    "GlyphMetrics",
    "compose_atlas",
    "encode_pixels",
    "format_description",
    "read_description",
    "write_description",
    "write_image",
    "FontShapeProvider",
    "GlyphShape",
    "Shape",
]
