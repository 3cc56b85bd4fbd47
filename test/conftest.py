"""Fixtures: small fonts built on the fly with fontTools FontBuilder."""

from pathlib import Path

import pytest

from fontTools.fontBuilder import FontBuilder
from fontTools.pens.t2CharStringPen import T2CharStringPen
from fontTools.pens.ttGlyphPen import TTGlyphPen

from msdf_atlasgen.shapes import FontShapeProvider

UNITS_PER_EM = 1000

# glyph name -> (codepoint, advance width, rectangles as (x, y, w, h))
TEST_GLYPHS = {
    "space": (32, 250, []),
    "period": (46, 300, [(100, 0, 100, 100)]),
    "A": (65, 600, [(100, 0, 400, 700)]),
    "B": (66, 600, [(100, 0, 400, 300), (100, 400, 400, 300)]),
    "C": (67, 600, [(100, -100, 400, 700)]),
    "a": (97, 500, [(100, 0, 300, 400)]),
}


def draw_rectangles(pen, rectangles):
    for x, y, w, h in rectangles:
        pen.moveTo((x, y))
        pen.lineTo((x, y + h))
        pen.lineTo((x + w, y + h))
        pen.lineTo((x + w, y))
        pen.closePath()


def build_test_font(path: Path, glyphs: dict = TEST_GLYPHS, is_ttf: bool = False) -> Path:
    """Write a font whose glyphs are unions of rectangles."""
    glyph_order = [".notdef"] + list(glyphs)
    cmap = {codepoint: name for name, (codepoint, _, _) in glyphs.items()}
    outlines = {".notdef": (500, [(50, 0, 200, 250)])}
    outlines.update({name: (advance, rects) for name, (_, advance, rects) in glyphs.items()})

    fb = FontBuilder(UNITS_PER_EM, isTTF=is_ttf)
    fb.setupGlyphOrder(glyph_order)
    fb.setupCharacterMap(cmap)

    metrics = {}
    if is_ttf:
        ttf_glyphs = {}
        for name, (advance, rects) in outlines.items():
            pen = TTGlyphPen(None)
            draw_rectangles(pen, rects)
            ttf_glyphs[name] = pen.glyph()
            metrics[name] = (advance, min((r[0] for r in rects), default=0))
        fb.setupGlyf(ttf_glyphs)
    else:
        charstrings = {}
        for name, (advance, rects) in outlines.items():
            pen = T2CharStringPen(width=advance, glyphSet=None)
            draw_rectangles(pen, rects)
            charstrings[name] = pen.getCharString()
            metrics[name] = (advance, min((r[0] for r in rects), default=0))
        fb.setupCFF(
            psName="AtlasTest-Regular",
            fontInfo={"FamilyName": "Atlas Test", "FullName": "Atlas Test Regular"},
            charStringsDict=charstrings,
            privateDict={},
        )

    fb.setupHorizontalMetrics(metrics)
    fb.setupHorizontalHeader(ascent=800, descent=-200)
    fb.setupNameTable({"familyName": "Atlas Test", "styleName": "Regular"})
    fb.setupOS2(sTypoAscender=800, sTypoDescender=-200, usWinAscent=800, usWinDescent=200)
    fb.setupPost()
    fb.save(str(path))
    return path


@pytest.fixture(scope="session")
def font_path(tmp_path_factory):
    return build_test_font(tmp_path_factory.mktemp("fonts") / "AtlasTest.otf")


@pytest.fixture(scope="session")
def ttf_font_path(tmp_path_factory):
    return build_test_font(tmp_path_factory.mktemp("fonts") / "AtlasTest.ttf", is_ttf=True)


@pytest.fixture
def font(font_path):
    with FontShapeProvider(font_path) as provider:
        yield provider
