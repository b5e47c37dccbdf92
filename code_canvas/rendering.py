"""Scene rasterization with Pillow.

Primitives are drawn in render order (layer ascending, insertion order on
ties) onto a transparent RGBA canvas. Opaque primitives are drawn directly;
translucent ones (opacity < 1 or an alpha color) and text are drawn onto
their own layer and alpha-composited, which gives SVG group-opacity
semantics. Geometry is clipped to a bounded view box first (see
``code_canvas.clipping``), so any finite coordinate renders. Identical
scenes always produce byte-identical PNGs.
"""

from __future__ import annotations

import asyncio
import base64
import io
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal

from PIL import Image, ImageDraw, ImageFont

from code_canvas.clipping import (
    XY,
    Box,
    clamp_box,
    clip_polygon,
    clip_polyline,
    clip_segment,
    contains,
    intersects,
    sample_arc,
    view_box,
)
from code_canvas.errors import RenderFailure
from code_canvas.types import (
    Arc,
    Circle,
    Line,
    Path,
    Primitive,
    Rectangle,
    Scene,
    Text,
    Triangle,
    color_to_rgba,
)

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)

Color = tuple[int, int, int, int]

# Fallback font names tried for CSS generic families
_GENERIC_FONTS: dict[str, list[str]] = {
    "sans-serif": ["DejaVuSans", "Arial", "Helvetica", "LiberationSans-Regular"],
    "serif": ["DejaVuSerif", "Times New Roman", "LiberationSerif-Regular"],
    "monospace": ["DejaVuSansMono", "Courier New", "LiberationMono-Regular"],
}

BOLD_WEIGHT = 600


@dataclass(frozen=True)
class RenderOptions:
    """Configuration for scene rendering.

    Attributes:
        size: Output edge length in pixels; None keeps the scene's canvas size.
            A different size resamples the composited image (LANCZOS).
        background: Background color; None leaves the canvas transparent.
        output_format: Return type - "image" (PIL), "bytes" (PNG), or "base64"
        optimize_png: Enable PNG optimization (slower but smaller)
    """

    size: int | None = None
    background: str | None = None
    output_format: Literal["image", "bytes", "base64"] = "image"
    optimize_png: bool = False


def encode_png(img: Image.Image, optimize: bool = False) -> bytes:
    """Encode a PIL Image as PNG bytes."""
    buffer = io.BytesIO()
    img.save(buffer, format="PNG", optimize=optimize)
    return buffer.getvalue()


def image_to_base64(img: Image.Image) -> str:
    """Convert PIL Image to base64 PNG string."""
    return base64.standard_b64encode(encode_png(img)).decode("utf-8")


def png_to_base64(png: bytes) -> str:
    return base64.standard_b64encode(png).decode("utf-8")


@lru_cache(maxsize=64)
def load_font(family: str, size: int, weight: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Resolve a font by family name, falling back to Pillow's default font."""
    names = [family, *_GENERIC_FONTS.get(family.lower(), _GENERIC_FONTS["sans-serif"])]
    if weight >= BOLD_WEIGHT:
        names = [f"{name}-Bold" for name in names] + [f"{name} Bold" for name in names] + names
    for name in names:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    logger.debug(f"No truetype font found for {family!r}, using default font")
    return ImageFont.load_default(size=size)


# Geometry limits, as multiples of the canvas size
VIEW_MARGIN = 8  # clip box extends this far past every canvas edge
MAX_STROKE = 4  # wider strokes are drawn at this width
MAX_FONT = 4  # larger text is drawn at this size
CURVE_LIMIT = 64  # larger radii are flattened to polygons instead of going to Pillow


def _stroke_px(width: float) -> int:
    """PIL needs integer widths; any visible stroke is at least 1px."""
    if width <= 0:
        return 0
    return max(1, round(width))


def _needs_own_layer(primitive: Primitive) -> bool:
    if isinstance(primitive, Text) or primitive.opacity < 1:
        return True
    for color in (primitive.fill, primitive.stroke):
        rgba = color_to_rgba(color)
        if rgba is not None and rgba[3] < 255:
            return True
    return False


def _bounds(primitive: Primitive, max_stroke: float) -> Box:
    """Axis-aligned box around a primitive, stroke included."""
    pad = min(primitive.stroke_width, max_stroke)
    match primitive:
        case Rectangle(x=x, y=y, width=w, height=h):
            x0, y0, x1, y1 = x, y, x + w, y + h
        case Circle(x=x, y=y, radius=r) | Arc(x=x, y=y, radius=r):
            x0, y0, x1, y1 = x - r, y - r, x + r, y + r
        case Triangle(points=points) | Path(points=points):
            xs = [p.x for p in points]
            ys = [p.y for p in points]
            x0, y0, x1, y1 = min(xs), min(ys), max(xs), max(ys)
        case Line(x1=lx1, y1=ly1, x2=lx2, y2=ly2):
            x0, y0, x1, y1 = min(lx1, lx2), min(ly1, ly2), max(lx1, lx2), max(ly1, ly2)
        case Text(content=content, x=x, y=y, size=size):
            # Generous: no glyph is wider than twice the font size
            half = size * (len(content) + 1)
            x0, y0, x1, y1 = x - half, y - size, x + half, y + size
        case _:
            raise TypeError(f"Unknown primitive: {type(primitive).__name__}")
    return (x0 - pad, y0 - pad, x1 + pad, y1 + pad)


def _draw_runs(
    draw: ImageDraw.ImageDraw, points: list[XY], view: Box, outline: Color, width: int
) -> None:
    for run in clip_polyline(points, view):
        draw.line(run, fill=outline, width=width, joint="curve")


def _draw_flattened(
    draw: ImageDraw.ImageDraw,
    points: list[XY],
    view: Box,
    fill: Color | None,
    outline: Color | None,
    width: int,
) -> None:
    """Fill and outline a closed polygon that may extend far past the view."""
    if fill is not None:
        clipped = clip_polygon(points, view)
        if len(clipped) >= 3:
            draw.polygon(clipped, fill=fill)
    if outline is not None:
        _draw_runs(draw, [*points, points[0]], view, outline, width)


def _rounded_outline(x: float, y: float, w: float, h: float, r: float, view: Box) -> list[XY]:
    corners = (
        (x + r, y + r, 180),
        (x + w - r, y + r, 270),
        (x + w - r, y + h - r, 360),
        (x + r, y + h - r, 450),
    )
    points: list[XY] = []
    for cx, cy, start in corners:
        points.extend(sample_arc(cx, cy, r, start, start + 90, view))
    return points


def _draw_primitive(draw: ImageDraw.ImageDraw, primitive: Primitive, size: int) -> None:
    """Rasterize one primitive of a ``size`` canvas onto ``draw``."""
    view = view_box(size, VIEW_MARGIN * size)
    max_stroke = MAX_STROKE * size
    if not intersects(_bounds(primitive, max_stroke), view):
        return

    fill = color_to_rgba(primitive.fill)
    outline = color_to_rgba(primitive.stroke)
    width = _stroke_px(min(primitive.stroke_width, max_stroke))
    if width == 0:
        outline = None
    curve_limit = CURVE_LIMIT * size

    match primitive:
        case Rectangle(x=x, y=y, width=w, height=h, radius=radius):
            # Zero or negative sizes render nothing, as in SVG
            if w <= 0 or h <= 0:
                return
            # PIL boxes are inclusive of the far edge
            box = (x, y, max(x, x + w - 1), max(y, y + h - 1))
            clamped = clamp_box(box, view)
            radius = min(radius, w / 2, h / 2)
            if radius > 0 and (clamped != box or radius > curve_limit):
                _draw_flattened(
                    draw, _rounded_outline(x, y, w, h, radius, view), view, fill, outline, width
                )
            elif radius > 0:
                draw.rounded_rectangle(box, radius=radius, fill=fill, outline=outline, width=width)
            else:
                # Clamped edges sit further out than any stroke reaches
                draw.rectangle(clamped, fill=fill, outline=outline, width=width)

        case Circle(x=x, y=y, radius=r):
            if r > curve_limit:
                _draw_flattened(draw, sample_arc(x, y, r, 0, 360, view), view, fill, outline, width)
            else:
                draw.ellipse((x - r, y - r, x + r, y + r), fill=fill, outline=outline, width=width)

        case Triangle(points=points):
            xy = [p.as_tuple() for p in points]
            if all(contains(p, view) for p in xy):
                draw.polygon(xy, fill=fill, outline=outline, width=max(width, 1))
            else:
                _draw_flattened(draw, xy, view, fill, outline, width)

        case Line(x1=x1, y1=y1, x2=x2, y2=y2):
            if outline is not None:
                clipped = clip_segment((x1, y1), (x2, y2), view)
                if clipped is not None:
                    draw.line(list(clipped), fill=outline, width=width)

        case Path(points=points, closed=closed):
            xy = [p.as_tuple() for p in points]
            # SVG fills open paths as if closed
            if fill is not None and len(xy) >= 3:
                clipped = clip_polygon(xy, view)
                if len(clipped) >= 3:
                    draw.polygon(clipped, fill=fill)
            if outline is not None and len(xy) >= 2:
                if closed:
                    xy.append(xy[0])
                _draw_runs(draw, xy, view, outline, width)

        case Arc(x=x, y=y, radius=r, start_angle=start, end_angle=end):
            lo, hi = min(start, end), max(start, end)
            full = hi - lo >= 360
            # pieslice runs clockwise from 3 o'clock, the same convention as Arc
            base = lo % 360
            if r > curve_limit:
                if full:
                    wedge = sample_arc(x, y, r, 0, 360, view)
                else:
                    wedge = [(x, y), *sample_arc(x, y, r, base, base + (hi - lo), view)]
                _draw_flattened(draw, wedge, view, fill, outline, width)
            elif full:
                draw.ellipse((x - r, y - r, x + r, y + r), fill=fill, outline=outline, width=width)
            else:
                draw.pieslice(
                    (x - r, y - r, x + r, y + r),
                    base,
                    base + (hi - lo),
                    fill=fill,
                    outline=outline,
                    width=width,
                )

        case Text(content=content, x=x, y=y, font=family, size=font_size, weight=weight):
            if fill is None:
                return
            font = load_font(family, max(1, round(min(font_size, MAX_FONT * size))), weight)
            anchor = clamp_box((x, y, x, y), view)[:2]
            # Whitespace collapses to single spaces, as in SVG text
            draw.text(anchor, " ".join(content.split()), fill=fill, font=font, anchor="mm")


def _composite(canvas: Image.Image, primitive: Primitive) -> Image.Image:
    if not _needs_own_layer(primitive):
        _draw_primitive(ImageDraw.Draw(canvas), primitive, canvas.width)
        return canvas

    layer = Image.new("RGBA", canvas.size, TRANSPARENT)
    _draw_primitive(ImageDraw.Draw(layer), primitive, canvas.width)
    if primitive.opacity < 1:
        opacity = primitive.opacity
        layer.putalpha(layer.getchannel("A").point(lambda a: round(a * opacity)))
    return Image.alpha_composite(canvas, layer)


def rasterize(scene: Scene, background: str | None = None) -> Image.Image:
    """Composite a scene at its own canvas size into an RGBA image."""
    bg = color_to_rgba(background) or TRANSPARENT
    canvas = Image.new("RGBA", (scene.size, scene.size), bg)
    for primitive in scene.render_order():
        canvas = _composite(canvas, primitive)
    return canvas


def render_scene(
    scene: Scene,
    options: RenderOptions | None = None,
) -> Image.Image | bytes | str:
    """Render a scene to an image.

    Args:
        scene: Scene to render
        options: Render configuration (uses defaults if None)

    Returns:
        PIL Image, PNG bytes, or base64 string depending on options.output_format

    Raises:
        RenderFailure: If Pillow cannot rasterize, resample or encode the scene.
    """
    if options is None:
        options = RenderOptions()
    if options.size is not None and options.size <= 0:
        raise RenderFailure(f"Output size must be positive, got {options.size}")

    try:
        img = rasterize(scene, options.background)
        if options.size is not None and options.size != scene.size:
            img = img.resize((options.size, options.size), Image.Resampling.LANCZOS)

        if options.output_format == "image":
            return img

        png_bytes = encode_png(img, optimize=options.optimize_png)
    except Exception as e:
        logger.warning(f"Render failed for {len(scene.primitives)} primitives: {e}")
        raise RenderFailure(f"{type(e).__name__}: {e}") from e

    if options.output_format == "base64":
        return png_to_base64(png_bytes)
    return png_bytes


async def render_scene_async(
    scene: Scene,
    options: RenderOptions | None = None,
) -> Image.Image | bytes | str:
    """Async wrapper for render_scene (runs in thread pool)."""
    return await asyncio.to_thread(render_scene, scene, options)
