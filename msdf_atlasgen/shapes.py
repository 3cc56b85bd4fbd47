"""
Glyph outlines read from a font with fontTools.

A Shape is a list of closed contours, each a list of Bezier edge segments
(linear, quadratic or cubic) in font units with y growing upwards. Edges carry
a channel color used by the multi-channel distance field generator.
"""

import math
from dataclasses import dataclass, field
from pathlib import Path

from fontTools.pens.basePen import BasePen
from fontTools.pens.boundsPen import BoundsPen
from fontTools.ttLib import TTFont, TTLibError

from .errors import CollaboratorUnavailable

# Edge channel colors, one bit per channel
BLACK = 0
RED = 1
GREEN = 2
YELLOW = 3
BLUE = 4
MAGENTA = 5
CYAN = 6
WHITE = 7

Point = tuple[float, float]


def _lerp(a: Point, b: Point, t: float) -> Point:
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


def _split_bezier(points: tuple, t: float) -> tuple[tuple, tuple]:
    """Split a Bezier curve at t (de Casteljau)."""
    left = [points[0]]
    right = [points[-1]]
    level = list(points)
    while len(level) > 1:
        level = [_lerp(a, b, t) for a, b in zip(level, level[1:])]
        left.append(level[0])
        right.append(level[-1])
    return tuple(left), tuple(reversed(right))


@dataclass
class EdgeSegment:
    points: tuple[Point, ...]
    color: int = WHITE

    @property
    def degree(self) -> int:
        return len(self.points) - 1

    def point(self, t: float) -> Point:
        n = self.degree
        x = y = 0.0
        for i, (px, py) in enumerate(self.points):
            weight = math.comb(n, i) * t ** i * (1 - t) ** (n - i)
            x += weight * px
            y += weight * py
        return (x, y)

    def direction(self, t: float) -> Point:
        """Tangent at t. At the ends, falls back past coincident control points."""
        pts = self.points
        if t <= 0:
            for p in pts[1:]:
                d = (p[0] - pts[0][0], p[1] - pts[0][1])
                if d != (0.0, 0.0):
                    return d
            return (0.0, 0.0)
        if t >= 1:
            for p in reversed(pts[:-1]):
                d = (pts[-1][0] - p[0], pts[-1][1] - p[1])
                if d != (0.0, 0.0):
                    return d
            return (0.0, 0.0)
        n = self.degree
        dx = dy = 0.0
        for i in range(n):
            weight = n * math.comb(n - 1, i) * t ** i * (1 - t) ** (n - 1 - i)
            dx += weight * (pts[i + 1][0] - pts[i][0])
            dy += weight * (pts[i + 1][1] - pts[i][1])
        return (dx, dy)

    def split_in_thirds(self) -> list["EdgeSegment"]:
        first, rest = _split_bezier(self.points, 1 / 3)
        second, third = _split_bezier(rest, 0.5)
        return [EdgeSegment(p, self.color) for p in (first, second, third)]


@dataclass
class Contour:
    edges: list[EdgeSegment] = field(default_factory=list)


@dataclass
class Shape:
    contours: list[Contour] = field(default_factory=list)

    @property
    def edge_count(self) -> int:
        return sum(len(c.edges) for c in self.contours)

    def normalize(self):
        """Split single-edge contours into thirds so they can be colored."""
        for contour in self.contours:
            if len(contour.edges) == 1:
                contour.edges = contour.edges[0].split_in_thirds()


@dataclass
class Bounds:
    left: float
    bottom: float
    right: float
    top: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.top - self.bottom


@dataclass
class GlyphShape:
    shape: Shape
    bounds: Bounds
    advance: float


class ShapePen(BasePen):
    """Pen collecting drawn outlines into a Shape."""

    def __init__(self, glyphSet=None):
        super().__init__(glyphSet)
        self.shape = Shape()
        self._edges = None
        self._start = None

    def _add(self, *points):
        current = self._getCurrentPoint()
        pts = (tuple(current),) + tuple(tuple(p) for p in points)
        if all(p == pts[0] for p in pts[1:]):
            return  # zero length
        self._edges.append(EdgeSegment(pts))

    def _moveTo(self, pt):
        self._edges = []
        self._start = tuple(pt)

    def _lineTo(self, pt):
        self._add(pt)

    def _curveToOne(self, pt1, pt2, pt3):
        self._add(pt1, pt2, pt3)

    def _qCurveToOne(self, pt1, pt2):
        self._add(pt1, pt2)

    def _closePath(self):
        if self._edges is None:
            return
        current = self._getCurrentPoint()
        if current is not None and tuple(current) != self._start:
            self._edges.append(EdgeSegment((tuple(current), self._start)))
        if self._edges:
            self.shape.contours.append(Contour(self._edges))
        self._edges = None
        self._start = None

    # Open paths do not occur in font outlines; close them the same way.
    _endPath = _closePath


class FontShapeProvider:
    """
    Looks up glyph outlines, bounds and advances by Unicode codepoint.

    Use as a context manager so the font file is closed when the run ends:

        with FontShapeProvider(path) as font:
            glyph = font.try_get_glyph(ord("A"))
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        try:
            self.font = TTFont(str(self.path))
            self._cmap = self.font.getBestCmap() or {}
            self._glyph_set = self.font.getGlyphSet()
        except (OSError, TTLibError, KeyError) as e:
            raise CollaboratorUnavailable(f'Could not open font "{self.path}": {e}') from e

    def try_get_glyph(self, codepoint: int) -> GlyphShape | None:
        """Return the glyph for codepoint, or None if the font does not map it."""
        glyph_name = self._cmap.get(codepoint)
        if glyph_name is None or glyph_name == ".notdef":
            return None
        glyph = self._glyph_set[glyph_name]

        pen = ShapePen(self._glyph_set)
        glyph.draw(pen)

        bounds_pen = BoundsPen(self._glyph_set)
        glyph.draw(bounds_pen)
        if bounds_pen.bounds is None:
            bounds = Bounds(0.0, 0.0, 0.0, 0.0)
        else:
            bounds = Bounds(*(float(v) for v in bounds_pen.bounds))

        return GlyphShape(shape=pen.shape, bounds=bounds, advance=float(glyph.width))

    def close(self):
        self.font.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
