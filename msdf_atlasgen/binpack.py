"""
MaxRects rectangle packing (best short side fit, no rotation).

Spacing is handled by growing every rectangle and the bin by `spacing`
texels on the right and top, so packed rectangles keep at least `spacing`
texels between each other while still touching the bin's far edges.
"""

from dataclasses import dataclass


@dataclass
class Rect:
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def top(self) -> int:
        return self.y + self.height

    def intersects(self, other: "Rect") -> bool:
        return (
            self.x < other.right and other.x < self.right
            and self.y < other.top and other.y < self.top
        )

    def contains(self, other: "Rect") -> bool:
        return (
            self.x <= other.x and self.y <= other.y
            and other.right <= self.right and other.top <= self.top
        )


def _find_position(free: list[Rect], width: int, height: int) -> Rect | None:
    """Pick the free rectangle leaving the shortest leftover side."""
    best = None
    best_short = best_long = None
    for f in free:
        if width > f.width or height > f.height:
            continue
        leftover_x = f.width - width
        leftover_y = f.height - height
        short = min(leftover_x, leftover_y)
        long = max(leftover_x, leftover_y)
        if best is None or (short, long) < (best_short, best_long):
            best = Rect(f.x, f.y, width, height)
            best_short, best_long = short, long
    return best


def _split_free(free: list[Rect], used: Rect) -> list[Rect]:
    result = []
    for f in free:
        if not f.intersects(used):
            result.append(f)
            continue
        if used.x > f.x:
            result.append(Rect(f.x, f.y, used.x - f.x, f.height))
        if used.right < f.right:
            result.append(Rect(used.right, f.y, f.right - used.right, f.height))
        if used.y > f.y:
            result.append(Rect(f.x, f.y, f.width, used.y - f.y))
        if used.top < f.top:
            result.append(Rect(f.x, used.top, f.width, f.top - used.top))
    return _prune(result)


def _prune(free: list[Rect]) -> list[Rect]:
    """Drop free rectangles contained in another one."""
    kept = []
    for i, f in enumerate(free):
        contained = False
        for j, g in enumerate(free):
            if i == j or not g.contains(f):
                continue
            # Of two identical rectangles keep the first
            if f != g or j < i:
                contained = True
                break
        if not contained:
            kept.append(f)
    return kept


def pack_max_rects(rects: list[Rect], max_width: int, max_height: int, spacing: int = 0) -> bool:
    """
    Place every rect inside max_width x max_height, writing rect.x / rect.y.

    Returns False as soon as one rect does not fit; positions are then
    meaningless. Larger rectangles are placed first; ties keep input order,
    so results are deterministic.
    """
    free = [Rect(0, 0, max_width + spacing, max_height + spacing)]
    order = sorted(
        range(len(rects)),
        key=lambda i: (-max(rects[i].width, rects[i].height), -rects[i].width * rects[i].height, i),
    )
    for i in order:
        rect = rects[i]
        placed = _find_position(free, rect.width + spacing, rect.height + spacing)
        if placed is None:
            return False
        rect.x = placed.x
        rect.y = placed.y
        free = _split_free(free, placed)
    return True
