"""
Signed distance field rendering for glyph shapes.

Three generators share one sampling convention: texel (x, y) samples the
shape at ((x + 0.5) / scale - translate), and stores
signed_distance / range + 0.5, with positive distances inside the glyph.
Row 0 of every result is the bottom row.

- generate_sdf: true distance to the nearest edge.
- generate_pseudo_sdf: like sdf, but beyond an edge's endpoints the distance
  is measured to the edge's extended tangent line.
- generate_msdf: one pseudo distance per channel, each channel only seeing
  the edges whose color includes it. Run edge_coloring_simple first.

Curved edges are flattened into short line segments and everything is
evaluated with numpy over all texels at once.
"""

import math

import numpy as np

from .shapes import BLACK, BLUE, CYAN, GREEN, MAGENTA, RED, WHITE, YELLOW, Shape

FLATTEN_STEPS = {1: 1, 2: 12, 3: 16}

# Upper bound on texel * segment pairs evaluated in one numpy batch
BATCH_SIZE = 1 << 20

# msdfgen's historical default
EDGE_THRESHOLD = 1.00000001


# ---------------------------------------------------------------------------
# Edge coloring
# ---------------------------------------------------------------------------

def _normalized(v):
    length = math.hypot(v[0], v[1])
    if length == 0:
        return (0.0, 1.0)
    return (v[0] / length, v[1] / length)


def _is_corner(a, b, cross_threshold: float) -> bool:
    dot = a[0] * b[0] + a[1] * b[1]
    cross = a[0] * b[1] - a[1] * b[0]
    return dot <= 0 or abs(cross) > cross_threshold


class _ColorCycle:
    """Deterministic color switching, seeded like msdfgen's default."""

    def __init__(self, seed: int = 0):
        self.seed = seed

    def switch(self, color: int, banned: int = BLACK) -> int:
        combined = color & banned
        if combined in (RED, GREEN, BLUE):
            return combined ^ WHITE
        if color in (BLACK, WHITE):
            start = (CYAN, MAGENTA, YELLOW)[self.seed % 3]
            self.seed //= 3
            return start
        shifted = color << (1 + (self.seed & 1))
        self.seed >>= 1
        return (shifted | shifted >> 3) & WHITE


def edge_coloring_simple(shape: Shape, angle_threshold: float, seed: int = 0):
    """
    Assign channel colors to edges so that edges meeting at a sharp corner
    never share two channels.

    Corners are edge junctions turning by more than angle_threshold radians
    (or reversing direction). Smooth contours stay white; a contour with one
    corner (teardrop) is split into three color runs; otherwise colors switch
    at every corner.
    """
    cross_threshold = math.sin(angle_threshold)
    cycle = _ColorCycle(seed)

    for contour in shape.contours:
        edges = contour.edges
        corners = []
        if edges:
            prev_direction = edges[-1].direction(1)
            for index, edge in enumerate(edges):
                if _is_corner(_normalized(prev_direction), _normalized(edge.direction(0)), cross_threshold):
                    corners.append(index)
                prev_direction = edge.direction(1)

        if not corners:
            for edge in edges:
                edge.color = WHITE

        elif len(corners) == 1:
            first = cycle.switch(WHITE)
            colors = (first, WHITE, cycle.switch(first))
            corner = corners[0]
            m = len(edges)
            if m >= 3:
                for i in range(m):
                    slot = int(3 + 2.875 * i / (m - 1) - 1.4375 + 0.5) - 3
                    edges[(corner + i) % m].color = colors[slot + 1]
            else:
                # Fewer edges than colors: split every edge into thirds
                parts = [None] * 7
                for k, part in enumerate(edges[0].split_in_thirds()):
                    parts[k + 3 * corner] = part
                if m >= 2:
                    for k, part in enumerate(edges[1].split_in_thirds()):
                        parts[k + 3 - 3 * corner] = part
                    parts[0].color = parts[1].color = colors[0]
                    parts[2].color = parts[3].color = colors[1]
                    parts[4].color = parts[5].color = colors[2]
                else:
                    parts[0].color = colors[0]
                    parts[1].color = colors[1]
                    parts[2].color = colors[2]
                contour.edges = [p for p in parts if p is not None]

        else:
            corner_count = len(corners)
            spline = 0
            start = corners[0]
            m = len(edges)
            color = cycle.switch(WHITE)
            initial_color = color
            for i in range(m):
                index = (start + i) % m
                if spline + 1 < corner_count and corners[spline + 1] == index:
                    spline += 1
                    banned = initial_color if spline == corner_count - 1 else BLACK
                    color = cycle.switch(color, banned)
                edges[index].color = color


# ---------------------------------------------------------------------------
# Flattened geometry
# ---------------------------------------------------------------------------

class _Segments:
    """Flattened line segments of a shape plus per-edge endpoint tangents."""

    def __init__(self, shape: Shape):
        starts, ends, edge_ids, firsts, lasts = [], [], [], [], []
        edge_colors, edge_start, edge_start_dir, edge_end, edge_end_dir = [], [], [], [], []

        for contour in shape.contours:
            for edge in contour.edges:
                index = len(edge_colors)
                steps = FLATTEN_STEPS[edge.degree]
                ts = np.linspace(0.0, 1.0, steps + 1)
                pts = np.array([edge.point(float(t)) for t in ts])
                pts[0] = edge.points[0]
                pts[-1] = edge.points[-1]
                starts.append(pts[:-1])
                ends.append(pts[1:])
                edge_ids.append(np.full(steps, index))
                first = np.zeros(steps, dtype=bool)
                first[0] = True
                last = np.zeros(steps, dtype=bool)
                last[-1] = True
                firsts.append(first)
                lasts.append(last)

                edge_colors.append(edge.color)
                edge_start.append(edge.points[0])
                edge_start_dir.append(_normalized(edge.direction(0)))
                edge_end.append(edge.points[-1])
                edge_end_dir.append(_normalized(edge.direction(1)))

        if edge_colors:
            self.start = np.concatenate(starts)
            self.end = np.concatenate(ends)
            self.edge = np.concatenate(edge_ids)
            self.first = np.concatenate(firsts)
            self.last = np.concatenate(lasts)
        else:
            self.start = self.end = np.zeros((0, 2))
            self.edge = np.zeros(0, dtype=int)
            self.first = self.last = np.zeros(0, dtype=bool)

        self.colors = np.array(edge_colors, dtype=int)
        self.edge_start = np.array(edge_start, dtype=float).reshape(-1, 2)
        self.edge_start_dir = np.array(edge_start_dir, dtype=float).reshape(-1, 2)
        self.edge_end = np.array(edge_end, dtype=float).reshape(-1, 2)
        self.edge_end_dir = np.array(edge_end_dir, dtype=float).reshape(-1, 2)

    @property
    def orientation(self) -> float:
        """
        +1 when outer contours run clockwise (TrueType), -1 when they run
        counter-clockwise (CFF). Distances are multiplied by this so the
        inside of the glyph is always positive.
        """
        twice_area = np.sum(self.start[:, 0] * self.end[:, 1] - self.end[:, 0] * self.start[:, 1])
        return -1.0 if twice_area > 0 else 1.0

    def channel_mask(self, channel: int) -> np.ndarray:
        return (self.colors[self.edge] & channel) != 0


def _nearest_distance(points: np.ndarray, segs: _Segments, selected: np.ndarray, pseudo: bool) -> np.ndarray:
    """
    Signed distance from every point to the nearest selected segment.

    Ties (points equally close to two edges, e.g. outside a corner) go to the
    segment the point is most perpendicular to. The sign is the side of that
    segment the point lies on.
    """
    indices = np.flatnonzero(selected)
    a = segs.start[indices]
    d = segs.end[indices] - a
    length2 = np.einsum("ij,ij->i", d, d)
    safe_length2 = np.where(length2 > 0, length2, 1.0)

    ap = points[:, None, :] - a[None, :, :]
    u = np.clip(np.einsum("nsk,sk->ns", ap, d) / safe_length2, 0.0, 1.0)
    offset = ap - u[..., None] * d
    dist = np.hypot(offset[..., 0], offset[..., 1])
    cross = offset[..., 0] * d[:, 1] - offset[..., 1] * d[:, 0]
    ortho = np.abs(cross) / np.maximum(dist * np.sqrt(length2), 1e-300)

    best = dist.min(axis=1, keepdims=True)
    tied = dist <= best + 1e-9 * (1.0 + best)
    choice = np.argmax(np.where(tied, ortho, -1.0), axis=1)

    rows = np.arange(len(points))
    distance = dist[rows, choice]
    signed = np.where(cross[rows, choice] > 0, distance, -distance)
    if not pseudo:
        return signed

    chosen = indices[choice]
    param = u[rows, choice]
    edge = segs.edge[chosen]

    # Beyond the start point: distance to the tangent line through it
    at_start = segs.first[chosen] & (param <= 0.0)
    q = points - segs.edge_start[edge]
    t = segs.edge_start_dir[edge]
    along = q[:, 0] * t[:, 0] + q[:, 1] * t[:, 1]
    perp = q[:, 0] * t[:, 1] - q[:, 1] * t[:, 0]
    use = at_start & (along < 0) & (np.abs(perp) <= distance)
    signed = np.where(use, perp, signed)

    # Beyond the end point
    at_end = segs.last[chosen] & (param >= 1.0)
    q = points - segs.edge_end[edge]
    t = segs.edge_end_dir[edge]
    along = q[:, 0] * t[:, 0] + q[:, 1] * t[:, 1]
    perp = q[:, 0] * t[:, 1] - q[:, 1] * t[:, 0]
    use = at_end & (along > 0) & (np.abs(perp) <= distance)
    signed = np.where(use, perp, signed)

    return signed


def _sample_points(width: int, height: int, scale: float, translate) -> np.ndarray:
    xs = (np.arange(width) + 0.5) / scale - translate[0]
    ys = (np.arange(height) + 0.5) / scale - translate[1]
    grid_x, grid_y = np.meshgrid(xs, ys)
    return np.column_stack([grid_x.ravel(), grid_y.ravel()])


def _distance_field(points, segs: _Segments, selected, pseudo: bool) -> np.ndarray:
    if not selected.any():
        return np.full(len(points), -np.inf)
    result = np.empty(len(points))
    batch = max(1, BATCH_SIZE // max(1, int(np.count_nonzero(selected))))
    for begin in range(0, len(points), batch):
        chunk = points[begin:begin + batch]
        result[begin:begin + batch] = _nearest_distance(chunk, segs, selected, pseudo)
    return result * segs.orientation


def _single_channel(shape, width, height, range_, scale, translate, pseudo):
    segs = _Segments(shape)
    points = _sample_points(width, height, scale, translate)
    selected = np.ones(len(segs.edge), dtype=bool)
    distance = _distance_field(points, segs, selected, pseudo)
    return (distance / range_ + 0.5).reshape(height, width)


def generate_sdf(shape: Shape, width: int, height: int, range_: float, scale: float, translate) -> np.ndarray:
    """True signed distance field, shape (height, width)."""
    return _single_channel(shape, width, height, range_, scale, translate, pseudo=False)


def generate_pseudo_sdf(shape: Shape, width: int, height: int, range_: float, scale: float, translate) -> np.ndarray:
    """Pseudo signed distance field, shape (height, width)."""
    return _single_channel(shape, width, height, range_, scale, translate, pseudo=True)


def generate_msdf(
    shape: Shape,
    width: int,
    height: int,
    range_: float,
    scale: float,
    translate,
    edge_threshold: float = EDGE_THRESHOLD,
) -> np.ndarray:
    """Multi-channel signed distance field, shape (height, width, 3)."""
    segs = _Segments(shape)
    points = _sample_points(width, height, scale, translate)
    channels = []
    for channel in (RED, GREEN, BLUE):
        distance = _distance_field(points, segs, segs.channel_mask(channel), pseudo=True)
        channels.append(distance / range_ + 0.5)
    msdf = np.stack(channels, axis=-1).reshape(height, width, 3)
    if edge_threshold > 0:
        correct_clashes(msdf, edge_threshold / (scale * range_))
    return msdf


# ---------------------------------------------------------------------------
# Multi-channel clash correction
# ---------------------------------------------------------------------------

def _pixel_clash(a, b, threshold: float) -> bool:
    """
    True if texel a and its neighbour b interpolate into an artifact: both on
    the same side of the edge, but two channels flip between them. Only the
    texel farther from the edge is reported.
    """
    a = [float(v) for v in a]
    b = [float(v) for v in b]
    a_in = sum(v > 0.5 for v in a) >= 2
    b_in = sum(v > 0.5 for v in b) >= 2
    if a_in != b_in:
        return False
    for texel in (a, b):
        if all(v > 0.5 for v in texel) or all(v < 0.5 for v in texel):
            return False

    def flips(i):
        return (a[i] > 0.5) != (b[i] > 0.5) and (a[i] < 0.5) != (b[i] < 0.5)

    if flips(0):
        if flips(1):
            first, second, rest = 0, 1, 2
        elif flips(2):
            first, second, rest = 0, 2, 1
        else:
            return False
    elif flips(1) and flips(2):
        first, second, rest = 1, 2, 0
    else:
        return False

    return (
        abs(a[first] - b[first]) >= threshold
        and abs(a[second] - b[second]) >= threshold
        and abs(a[rest] - 0.5) >= abs(b[rest] - 0.5)
    )


def correct_clashes(msdf: np.ndarray, threshold: float):
    """Replace clashing texels (in place) by the median of their channels."""
    height, width = msdf.shape[:2]
    clashes = []
    for y in range(height):
        for x in range(width):
            texel = msdf[y, x]
            if (
                (x > 0 and _pixel_clash(texel, msdf[y, x - 1], threshold))
                or (x < width - 1 and _pixel_clash(texel, msdf[y, x + 1], threshold))
                or (y > 0 and _pixel_clash(texel, msdf[y - 1, x], threshold))
                or (y < height - 1 and _pixel_clash(texel, msdf[y + 1, x], threshold))
            ):
                clashes.append((y, x))
    for y, x in clashes:
        msdf[y, x] = np.median(msdf[y, x])
