"""
Atlas construction: collect glyphs, normalize them to one height, render
their distance fields and pack them into the texture.

Feasibility trials (used by the height search) and the final pass run the
same collect/normalize/pack code; only the final pass renders fields.
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import numpy as np

from .binpack import Rect, pack_max_rects
from .config import AtlasSettings, FieldMode
from .errors import NoGlyphsCollected, PackingInfeasible, SettingsError
from .field import edge_coloring_simple, generate_msdf, generate_pseudo_sdf, generate_sdf
from .output import write_description, write_image
from .shapes import FontShapeProvider, Shape

# Corner angle (radians) for multi-channel edge coloring
EDGE_COLORING_ANGLE = 2.5

Packer = Callable[[list[Rect], int, int, int], bool]


@dataclass
class BoundingBox:
    left: float
    bottom: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def top(self) -> float:
        return self.bottom + self.height

    def scale(self, factor: float):
        self.left *= factor
        self.bottom *= factor
        self.width *= factor
        self.height *= factor


@dataclass
class FieldBitmap:
    """Rendered field of one glyph. pixels is (h, w, 3) for msdf, else (h, w)."""
    mode: FieldMode
    pixels: np.ndarray

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]


@dataclass
class GlyphRecord:
    codepoint: int
    bbox: BoundingBox
    shape: Shape
    advance: float = 0.0
    placement: Rect = field(default_factory=Rect)
    translation: tuple[float, float] = (0.0, 0.0)
    bitmap: FieldBitmap | None = None


@dataclass
class Atlas:
    glyphs: list[GlyphRecord]
    scale: float
    char_height: int
    settings: AtlasSettings


def read_shapes(provider, settings: AtlasSettings) -> list[GlyphRecord]:
    """
    Collect a record for every mapped codepoint with visible ink, in range order.

    Glyphs without ink (space, control characters) have an empty bounding box
    and are skipped.
    """
    result = []
    for codepoint_range in settings.codepoint_ranges:
        for codepoint in codepoint_range:
            glyph = provider.try_get_glyph(codepoint)
            if glyph is None:
                continue
            bounds = glyph.bounds
            box = BoundingBox(bounds.left, bounds.bottom, bounds.width, bounds.height)
            glyph.shape.normalize()
            if box.width > 0:
                result.append(GlyphRecord(codepoint, box, glyph.shape, glyph.advance))
    return result


def normalize_glyphs(glyphs: list[GlyphRecord], settings: AtlasSettings) -> float:
    """
    Scale all glyphs so the tallest one is max_char_height texels high.

    Sets each glyph's footprint (placement size, including the smoothing
    border on every side) and its translation into that footprint.
    Returns the scale factor.
    """
    if not glyphs:
        raise NoGlyphsCollected(
            "No glyphs with visible ink in code ranges "
            + ", ".join(str(r) for r in settings.codepoint_ranges)
        )
    if settings.max_char_height <= 0:
        raise SettingsError(f"Character height must be positive, got {settings.max_char_height}")
    max_height = max(g.bbox.height for g in glyphs)
    if max_height <= 0:
        raise NoGlyphsCollected("All collected glyphs have zero height")

    scale = settings.max_char_height / max_height
    smooth = settings.smooth_pixels

    for glyph in glyphs:
        glyph.bbox.scale(scale)
        glyph.advance *= scale
        glyph.placement.width = int(math.ceil(glyph.bbox.width)) + 2 * smooth
        glyph.placement.height = int(math.ceil(glyph.bbox.height)) + 2 * smooth
        glyph.translation = (smooth - glyph.bbox.left, smooth - glyph.bbox.bottom)

    return scale


def build_glyph_field(glyph: GlyphRecord, settings: AtlasSettings, scale: float) -> FieldBitmap:
    """Render the glyph's distance field into a bitmap of its footprint size."""
    width = glyph.placement.width
    height = glyph.placement.height
    # The renderer works in font units; range is already given in them
    translate = (glyph.translation[0] / scale, glyph.translation[1] / scale)
    range_ = settings.range

    if settings.mode is FieldMode.MSDF:
        edge_coloring_simple(glyph.shape, EDGE_COLORING_ANGLE)
        pixels = generate_msdf(glyph.shape, width, height, range_, scale, translate)
    elif settings.mode is FieldMode.SDF:
        pixels = generate_sdf(glyph.shape, width, height, range_, scale, translate)
    else:
        pixels = generate_pseudo_sdf(glyph.shape, width, height, range_, scale, translate)

    glyph.bitmap = FieldBitmap(settings.mode, pixels)
    return glyph.bitmap


def render_fields(glyphs: list[GlyphRecord], settings: AtlasSettings, scale: float):
    for glyph in glyphs:
        build_glyph_field(glyph, settings, scale)


def build_charset(
    provider,
    settings: AtlasSettings,
    build_images: bool = True,
) -> tuple[list[GlyphRecord], float]:
    """Collect and normalize glyphs, rendering fields unless this is a trial."""
    glyphs = read_shapes(provider, settings)
    scale = normalize_glyphs(glyphs, settings)
    if build_images:
        render_fields(glyphs, settings, scale)
    return glyphs, scale


def pack_glyphs(glyphs: list[GlyphRecord], settings: AtlasSettings, packer: Packer = pack_max_rects) -> bool:
    """
    Pack every glyph footprint into the texture in one packer call.

    On success each glyph.placement holds its atlas position. On failure
    placements are unspecified.
    """
    rects = [g.placement for g in glyphs]
    return packer(rects, settings.texture.width, settings.texture.height, settings.spacing)


def find_char_height(provider, settings: AtlasSettings, packer: Packer = pack_max_rects) -> int:
    """
    Find the largest character height whose glyphs still pack into the texture.

    Starts at max_char_height and doubles while packing succeeds, then
    bisects between the last success and the smallest known failure.
    Heights above the texture height are never tried, so when max_char_height
    exceeds the texture height the first probe is the texture height rather
    than max_char_height.
    """
    highest = settings.texture.height + 1  # smallest height known not to fit
    lo, hi = 0, min(settings.max_char_height, settings.texture.height)

    while lo != hi:
        print(f"trying {hi}")
        glyphs, _ = build_charset(provider, settings.with_char_height(hi), build_images=False)
        print("packing atlas...")
        if pack_glyphs(glyphs, settings, packer):
            lo = hi
            hi = min(lo * 2, highest - 1)
        else:
            highest = min(highest, hi)
            hi = lo + (hi - lo) // 2

    if lo == 0:
        raise PackingInfeasible(
            f"No character height fits into a {settings.texture} texture"
        )
    return lo


def build_atlas(provider, settings: AtlasSettings, packer: Packer = pack_max_rects) -> Atlas:
    """Pick the character height (if auto-sizing), then build and pack real bitmaps."""
    if settings.auto_height:
        settings = settings.with_char_height(find_char_height(provider, settings, packer))

    print(f"using char height {settings.max_char_height}.")
    print("building chars...")
    glyphs, scale = build_charset(provider, settings)

    print("packing atlas...")
    if not pack_glyphs(glyphs, settings, packer):
        raise PackingInfeasible(
            f"Packing atlas failed: {len(glyphs)} glyphs at height "
            f"{settings.max_char_height} do not fit into a {settings.texture} texture"
        )
    return Atlas(glyphs=glyphs, scale=scale, char_height=settings.max_char_height, settings=settings)


def run(settings: AtlasSettings) -> Atlas:
    """Build the atlas for settings and write the description and image files."""
    with FontShapeProvider(Path(settings.font_file_name)) as provider:
        atlas = build_atlas(provider, settings)

    desc_path = write_description(atlas.glyphs, atlas.settings)
    image_paths = write_image(atlas.glyphs, atlas.settings)

    print(f"Atlas saved to: {desc_path}")
    for path in image_paths:
        print(f"  Image: {path}")
    print(f"  Glyphs: {len(atlas.glyphs)}")
    print(f"  Char height: {atlas.char_height} texels")
    print(f"  Texture: {atlas.settings.texture}")
    print(f"  Mode: {atlas.settings.mode.value}")
    return atlas
