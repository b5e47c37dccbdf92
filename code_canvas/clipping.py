"""Reduce geometry to what can reach the canvas before it is handed to Pillow.

ImageDraw converts coordinates to C integers, so finite but huge values
(1e300) overflow inside Pillow. Everything the renderer draws goes through
here first: segments and polygons are clipped to a view box that extends
past the canvas by more than the widest allowed stroke, and curves too
large for Pillow are flattened into polygons, sampled densely only where
they can be seen from the view box.

Intersections are computed with exact rational arithmetic. Endpoints
1e300 apart would otherwise cancel away the few pixels that are visible.
"""

import math
import sys
from fractions import Fraction

Box = tuple[float, float, float, float]
XY = tuple[float, float]

CURVE_SAMPLES = 720

# Sampled points are kept finite so that exact arithmetic can take them
_FAR = sys.float_info.max


def view_box(size: int, margin: float) -> Box:
    return (-margin, -margin, size + margin, size + margin)


def intersects(bounds: Box, box: Box) -> bool:
    return (
        bounds[0] <= box[2] and bounds[2] >= box[0] and bounds[1] <= box[3] and bounds[3] >= box[1]
    )


def contains(point: XY, box: Box) -> bool:
    return box[0] <= point[0] <= box[2] and box[1] <= point[1] <= box[3]


def clamp_box(bounds: Box, box: Box) -> Box:
    x0, y0, x1, y1 = bounds
    return (
        min(max(x0, box[0]), box[2]),
        min(max(y0, box[1]), box[3]),
        min(max(x1, box[0]), box[2]),
        min(max(y1, box[1]), box[3]),
    )


def clip_segment(start: XY, end: XY, box: Box) -> tuple[XY, XY] | None:
    """Liang-Barsky clip of one segment; None when it misses the box.

    Endpoints inside the box come back unchanged.
    """
    if contains(start, box) and contains(end, box):
        return start, end

    x0, y0 = Fraction(start[0]), Fraction(start[1])
    dx, dy = Fraction(end[0]) - x0, Fraction(end[1]) - y0
    t0, t1 = Fraction(0), Fraction(1)
    for p, q in (
        (-dx, x0 - Fraction(box[0])),
        (dx, Fraction(box[2]) - x0),
        (-dy, y0 - Fraction(box[1])),
        (dy, Fraction(box[3]) - y0),
    ):
        if p == 0:
            if q < 0:
                return None
            continue
        t = q / p
        if p < 0:
            if t > t1:
                return None
            t0 = max(t0, t)
        else:
            if t < t0:
                return None
            t1 = min(t1, t)

    def at(t: Fraction) -> XY:
        if t == 0:
            return start
        if t == 1:
            return end
        return (float(x0 + t * dx), float(y0 + t * dy))

    return at(t0), at(t1)


def clip_polyline(points: list[XY], box: Box) -> list[list[XY]]:
    """Clip an open polyline into the runs that stay inside the box."""
    runs: list[list[XY]] = []
    for start, end in zip(points, points[1:]):
        clipped = clip_segment(start, end, box)
        if clipped is None:
            continue
        # An unclipped start is the previous segment's unclipped end
        if runs and runs[-1][-1] == clipped[0]:
            runs[-1].append(clipped[1])
        else:
            runs.append([clipped[0], clipped[1]])
    return runs


def _cross(a: XY, b: XY, axis: int, bound: float) -> XY:
    t = (Fraction(bound) - Fraction(a[axis])) / (Fraction(b[axis]) - Fraction(a[axis]))
    other = 1 - axis
    value = float(Fraction(a[other]) + t * (Fraction(b[other]) - Fraction(a[other])))
    return (bound, value) if axis == 0 else (value, bound)


def clip_polygon(points: list[XY], box: Box) -> list[XY]:
    """Sutherland-Hodgman clip of a polygon against the box."""
    output = list(points)
    for axis, bound, keep_above in (
        (0, box[0], True),
        (0, box[2], False),
        (1, box[1], True),
        (1, box[3], False),
    ):
        if not output:
            break
        source, output = output, []

        def inside(
            point: XY, axis: int = axis, bound: float = bound, keep_above: bool = keep_above
        ) -> bool:
            return point[axis] >= bound if keep_above else point[axis] <= bound

        prev = source[-1]
        prev_in = inside(prev)
        for point in source:
            point_in = inside(point)
            if point_in:
                if not prev_in:
                    output.append(_cross(prev, point, axis, bound))
                output.append(point)
            elif prev_in:
                output.append(_cross(prev, point, axis, bound))
            prev, prev_in = point, point_in
    return output


def visible_window(cx: float, cy: float, box: Box) -> tuple[float, float] | None:
    """Angles (degrees, low < high) of rays from the center that meet the box.

    None when the center lies inside the box and every ray does.
    """
    if contains((cx, cy), box):
        return None
    mid = math.degrees(math.atan2((box[1] + box[3]) / 2 - cy, (box[0] + box[2]) / 2 - cx))
    deltas = []
    for x, y in ((box[0], box[1]), (box[2], box[1]), (box[2], box[3]), (box[0], box[3])):
        angle = math.degrees(math.atan2(y - cy, x - cx))
        deltas.append((angle - mid + 180) % 360 - 180)
    return mid + min(deltas), mid + max(deltas)


def _on_circle(cx: float, cy: float, r: float, degrees: float) -> XY:
    rad = math.radians(degrees)
    x = cx + r * math.cos(rad)
    y = cy + r * math.sin(rad)
    return (min(max(x, -_FAR), _FAR), min(max(y, -_FAR), _FAR))


def sample_arc(cx: float, cy: float, r: float, start: float, end: float, box: Box) -> list[XY]:
    """Points along a circular arc from ``start`` to ``end`` degrees (start <= end).

    Angles follow screen coordinates: 0 is +x and angles grow clockwise.
    Samples are dense inside the visible window; elsewhere only the
    endpoints are kept, since a chord across an unseen sector stays unseen.
    """
    window = visible_window(cx, cy, box)
    if window is None:
        ranges = [(start, end)]
    else:
        ranges = [(window[0] + 360 * k, window[1] + 360 * k) for k in range(-3, 4)]

    angles = {start, end}
    for low, high in ranges:
        low, high = max(low, start), min(high, end)
        if low < high:
            step = (high - low) / CURVE_SAMPLES
            angles.update(low + i * step for i in range(CURVE_SAMPLES + 1))
    return [_on_circle(cx, cy, r, angle) for angle in sorted(angles)]
