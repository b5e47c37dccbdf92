"""Tests for scene rasterization."""

import base64
from collections.abc import Callable

import pytest
from PIL import Image

from code_canvas.canvas import DrawingContext
from code_canvas.errors import RenderFailure
from code_canvas.rendering import (
    RenderOptions,
    encode_png,
    image_to_base64,
    rasterize,
    render_scene,
    render_scene_async,
)
from code_canvas.types import Circle, Rectangle, Scene

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)
WHITE = (255, 255, 255, 255)
TRANSPARENT = (0, 0, 0, 0)


def _render(ctx: DrawingContext) -> Image.Image:
    img = render_scene(ctx.scene)
    assert isinstance(img, Image.Image)
    return img


def _draw_kind(ctx: DrawingContext, kind: str, color: str) -> None:
    """Draw a shape of the given kind that covers the pixel (50, 50)."""
    match kind:
        case "rectangle":
            ctx.rectangle(20, 20, 60, 60, fill=color)
        case "circle":
            ctx.circle(50, 50, 30, fill=color)
        case "triangle":
            ctx.triangle(10, 90, 50, 10, 90, 90, fill=color)
        case "path":
            ctx.path([(20, 20), (80, 20), (80, 80), (20, 80)], fill=color, closed=True)
        case "arc":
            ctx.arc(50, 50, 40, 0, 360, fill=color)
        case "line":
            ctx.line(0, 50, 100, 50, stroke=color, width=9)


class TestExampleScenario:
    """White background, advance layer, red circle in the middle."""

    def test_center_red_corner_white(self) -> None:
        ctx = DrawingContext(512)
        ctx.rectangle(0, 0, 512, 512, fill="#ffffff").advance_layer().circle(
            256, 256, 100, fill="#ff0000"
        )
        img = _render(ctx)

        assert img.size == (512, 512)
        assert img.getpixel((256, 256)) == RED
        assert img.getpixel((0, 0)) == WHITE
        assert img.getpixel((511, 511)) == WHITE
        assert img.getpixel((511, 0)) == WHITE


class TestLayerOrdering:
    def test_higher_layer_wins(self) -> None:
        ctx = DrawingContext(100)
        ctx.rect(0, 0, 100, 100, fill="blue").layer().rect(0, 0, 100, 100, fill="red")
        assert _render(ctx).getpixel((50, 50)) == RED

    def test_layer_beats_insertion_order(self) -> None:
        top = Rectangle(layer=1, x=0, y=0, width=100, height=100, fill="red")
        bottom = Rectangle(layer=0, x=0, y=0, width=100, height=100, fill="blue")
        img = render_scene(Scene(size=100, primitives=(top, bottom)))
        assert isinstance(img, Image.Image)
        assert img.getpixel((50, 50)) == RED

    @pytest.mark.parametrize("first", ["rectangle", "circle", "triangle", "path", "arc", "line"])
    @pytest.mark.parametrize("second", ["rectangle", "circle", "triangle", "path", "arc", "line"])
    def test_later_insertion_wins_within_layer(self, first: str, second: str) -> None:
        ctx = DrawingContext(100)
        _draw_kind(ctx, first, "blue")
        _draw_kind(ctx, second, "red")
        assert _render(ctx).getpixel((50, 50)) == RED


class TestDeterminism:
    def test_same_scene_same_bytes(self) -> None:
        ctx = DrawingContext(200)
        (
            ctx.rect(0, 0, 200, 200, fill="#eef", radius=12)
            .layer()
            .circle(100, 100, 60, fill="rgba(255, 0, 0, 0.5)", stroke="#000", stroke_width=3)
            .arc(100, 100, 40, 30, 300, fill="orange", opacity=0.7)
            .path([(10, 190), (100, 120), (190, 190)], stroke="green", stroke_width=4)
            .text("Hi", 100, 100, size=32, weight=700)
        )
        first = render_scene(ctx.scene, RenderOptions(output_format="bytes"))
        second = render_scene(ctx.scene, RenderOptions(output_format="bytes"))
        assert first == second

    def test_degenerate_calls_do_not_change_output(self) -> None:
        plain = DrawingContext(64)
        plain.rect(0, 0, 64, 64, fill="white").circle(32, 32, 10, fill="red")

        noisy = DrawingContext(64)
        noisy.rect(0, 0, 64, 64, fill="white").circle(5, 5, 0).path([]).circle(
            32, 32, 10, fill="red"
        )

        options = RenderOptions(output_format="bytes")
        assert render_scene(plain.scene, options) == render_scene(noisy.scene, options)


class TestArcConvention:
    """0 degrees points right and angles grow clockwise (toward +y)."""

    def test_quarter_wedge_covers_lower_right(self) -> None:
        ctx = DrawingContext(512)
        ctx.arc(256, 256, 100, 0, 90, fill="#ff0000")
        img = _render(ctx)

        # Just inside the boundary points (356, 256) and (256, 356)
        assert img.getpixel((350, 258)) == RED
        assert img.getpixel((258, 350)) == RED
        assert img.getpixel((300, 300)) == RED
        # Other quadrants stay empty
        assert img.getpixel((200, 300)) == TRANSPARENT
        assert img.getpixel((300, 200)) == TRANSPARENT
        assert img.getpixel((200, 200)) == TRANSPARENT

    def test_reversed_angles_cover_same_wedge(self) -> None:
        forward = DrawingContext(128)
        forward.arc(64, 64, 40, 0, 90, fill="red")
        backward = DrawingContext(128)
        backward.arc(64, 64, 40, 90, 0, fill="red")
        options = RenderOptions(output_format="bytes")
        assert render_scene(forward.scene, options) == render_scene(backward.scene, options)

    def test_full_turn_is_a_disc(self) -> None:
        ctx = DrawingContext(100)
        ctx.arc(50, 50, 30, 0, 360, fill="red")
        img = _render(ctx)
        for point in [(75, 50), (25, 50), (50, 25), (50, 75)]:
            assert img.getpixel(point) == RED


class TestStyles:
    def test_unpainted_canvas_is_transparent(self) -> None:
        img = _render(DrawingContext(32))
        assert img.mode == "RGBA"
        assert img.getpixel((16, 16)) == TRANSPARENT

    def test_background_option(self) -> None:
        img = rasterize(DrawingContext(32).scene, background="white")
        assert img.getpixel((0, 0)) == WHITE

    def test_opacity_blends_with_layer_below(self) -> None:
        ctx = DrawingContext(50)
        ctx.rect(0, 0, 50, 50, fill="white").layer().rect(0, 0, 50, 50, fill="red", opacity=0.5)
        r, g, b, a = _render(ctx).getpixel((25, 25))
        assert r == 255
        assert a == 255
        assert 120 <= g <= 135
        assert g == b

    def test_zero_opacity_draws_nothing(self) -> None:
        ctx = DrawingContext(50)
        ctx.circle(25, 25, 20, fill="red", opacity=0)
        assert _render(ctx).getpixel((25, 25)) == TRANSPARENT

    def test_stroke_only_circle_leaves_center_empty(self) -> None:
        ctx = DrawingContext(100)
        ctx.circle(50, 50, 40, stroke="red", stroke_width=4)
        img = _render(ctx)
        assert img.getpixel((50, 50)) == TRANSPARENT
        assert img.getpixel((50, 11)) == RED

    def test_zero_size_rectangle_draws_nothing(self) -> None:
        ctx = DrawingContext(20)
        ctx.rect(5, 5, 0, 10, fill="red").rect(5, 5, 10, -3, fill="red")
        assert _render(ctx).getbbox() is None

    def test_rectangle_covers_exact_pixels(self) -> None:
        ctx = DrawingContext(20)
        ctx.rect(5, 5, 10, 10, fill="red")
        img = _render(ctx)
        assert img.getbbox() == (5, 5, 15, 15)

    def test_text_draws_pixels(self) -> None:
        ctx = DrawingContext(200)
        ctx.rect(0, 0, 200, 200, fill="white").layer().text("HELLO", 100, 100, size=40)
        img = _render(ctx)
        dark = [
            px
            for px in img.crop((40, 70, 160, 130)).getdata()
            if px[0] < 128 and px[1] < 128 and px[2] < 128
        ]
        assert dark
        # Centered: nothing drawn near the corners
        assert img.getpixel((5, 5)) == WHITE

    def test_closed_path_stroke_returns_to_start(self) -> None:
        ctx = DrawingContext(100)
        ctx.path([(10, 10), (90, 10), (90, 90)], stroke="red", stroke_width=3, closed=True)
        img = _render(ctx)
        # Closing segment runs along the diagonal from (90, 90) to (10, 10)
        assert img.getpixel((50, 50)) == RED


class TestOffCanvasGeometry:
    """Any finite coordinate renders: partially, or not at all."""

    def test_shape_straddling_edge_is_partial(self) -> None:
        ctx = DrawingContext(100)
        ctx.circle(0, 50, 30, fill="red").rect(-20, 90, 40, 40, fill="blue")
        img = _render(ctx)
        assert img.getpixel((10, 50)) == RED
        assert img.getpixel((50, 50)) == TRANSPARENT
        assert img.getpixel((5, 95)) == BLUE
        assert img.getpixel((25, 95)) == TRANSPARENT

    def test_line_crossing_canvas_from_outside(self) -> None:
        ctx = DrawingContext(100)
        ctx.line(-500, 50, 600, 50, stroke="red", width=3)
        img = _render(ctx)
        assert img.getpixel((0, 50)) == RED
        assert img.getpixel((99, 50)) == RED
        assert img.getpixel((50, 10)) == TRANSPARENT

    def test_shapes_fully_off_canvas_draw_nothing(self) -> None:
        ctx = DrawingContext(100)
        ctx.rect(-500, -500, 100, 100, fill="red")
        ctx.circle(1000, 1000, 50, fill="red")
        ctx.triangle(-10, -10, -50, -10, -30, -40, fill="red")
        ctx.line(-10, -10, -100, -50, stroke="red", width=3)
        ctx.path([(200, 0), (300, 50), (200, 100)], fill="red", stroke="red", stroke_width=2)
        ctx.arc(-300, 50, 100, 0, 90, fill="red")
        ctx.text("far away", -1000, -1000)
        assert _render(ctx).getbbox() is None

    @pytest.mark.parametrize(
        "draw",
        [
            lambda ctx: ctx.text("hi", 1e300, 5),
            lambda ctx: ctx.text("hi", -1e300, -1e300, size=1e300),
            lambda ctx: ctx.circle(1e300, 1e300, 5, fill="red", stroke="red", stroke_width=1e300),
            lambda ctx: ctx.circle(-1e300, 1e300, 1e300, fill="red", stroke="red", stroke_width=2),
            lambda ctx: ctx.line(1e300, -1e300, 1e300, 1e300, stroke="red", width=1e300),
            lambda ctx: ctx.arc(1e300, -1e300, 1e300, 10, 80, fill="red", stroke="red", stroke_width=3),
            lambda ctx: ctx.rect(1e300, 1e300, 1e300, 1e300, fill="red", radius=1e300),
            lambda ctx: ctx.path([(1e300, 0), (-1e300, 1e300)], stroke="red", stroke_width=2),
        ],
        ids=["text", "text-size", "circle", "huge-circle", "line", "arc", "rect", "path"],
    )
    def test_extreme_values_render(self, draw: Callable[[DrawingContext], object]) -> None:
        ctx = DrawingContext(64)
        draw(ctx)
        img = render_scene(ctx.scene, RenderOptions(output_format="bytes"))
        assert isinstance(img, bytes)
        assert img.startswith(PNG_MAGIC)

    def test_far_text_draws_nothing(self) -> None:
        ctx = DrawingContext(64)
        ctx.text("hi", 1e300, 5).text("hi", 5, -1e300)
        assert _render(ctx).getbbox() is None

    def test_huge_circle_covers_canvas(self) -> None:
        ctx = DrawingContext(100)
        ctx.circle(50, 50, 1e300, fill="red")
        img = _render(ctx)
        assert img.getpixel((0, 0)) == RED
        assert img.getpixel((99, 99)) == RED

    def test_huge_rectangle_covers_canvas(self) -> None:
        ctx = DrawingContext(100)
        ctx.rect(-1e300, -1e300, 2e300, 2e300, fill="red")
        img = _render(ctx)
        assert img.getpixel((0, 0)) == RED
        assert img.getpixel((99, 99)) == RED

    def test_huge_rounded_rectangle_covers_canvas(self) -> None:
        ctx = DrawingContext(100)
        ctx.rect(-1e300, -1e300, 2e300, 2e300, fill="red", radius=1e300)
        assert _render(ctx).getpixel((50, 50)) == RED

    def test_line_between_extreme_endpoints(self) -> None:
        ctx = DrawingContext(100)
        ctx.line(-1e300, 50, 1e300, 50, stroke="red", width=3)
        ctx.line(-1e300, -1e300, 1e300, 1e300, stroke="blue", width=3)
        img = _render(ctx)
        assert img.getpixel((10, 50)) == RED
        assert img.getpixel((90, 50)) == RED
        assert img.getpixel((20, 20)) == BLUE
        assert img.getpixel((80, 80)) == BLUE

    def test_polygon_with_extreme_vertices_covers_canvas(self) -> None:
        ctx = DrawingContext(100)
        ctx.triangle(-1e300, 1e300, 50, -1e300, 1e300, 1e300, fill="red")
        img = _render(ctx)
        assert img.getpixel((50, 50)) == RED
        assert img.getpixel((0, 99)) == RED

    def test_huge_arc_keeps_angle_convention(self) -> None:
        ctx = DrawingContext(100)
        ctx.arc(50, 50, 1e300, 0, 90, fill="red")
        img = _render(ctx)
        # 0 degrees points right and angles grow clockwise (downwards)
        assert img.getpixel((75, 75)) == RED
        assert img.getpixel((25, 25)) == TRANSPARENT
        assert img.getpixel((75, 25)) == TRANSPARENT

    def test_huge_stroke_width_is_capped(self) -> None:
        ctx = DrawingContext(100)
        ctx.line(0, 50, 100, 50, stroke="red", width=1e300)
        img = _render(ctx)
        assert img.getpixel((50, 0)) == RED
        assert img.getpixel((50, 99)) == RED

    def test_render_errors_become_render_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def broken(*args: object, **kwargs: object) -> None:
            raise OverflowError("Python int too large to convert to C long")

        monkeypatch.setattr("code_canvas.rendering._draw_primitive", broken)
        ctx = DrawingContext(32)
        ctx.circle(16, 16, 4, fill="red")
        with pytest.raises(RenderFailure, match="OverflowError"):
            render_scene(ctx.scene)


class TestRenderOptions:
    def test_resize(self) -> None:
        ctx = DrawingContext(512)
        ctx.rect(0, 0, 512, 512, fill="white")
        img = render_scene(ctx.scene, RenderOptions(size=128))
        assert isinstance(img, Image.Image)
        assert img.size == (128, 128)
        assert all(channel >= 250 for channel in img.getpixel((64, 64)))

    def test_bytes_output_is_png(self) -> None:
        png = render_scene(DrawingContext(16).scene, RenderOptions(output_format="bytes"))
        assert isinstance(png, bytes)
        assert png.startswith(PNG_MAGIC)

    def test_base64_output_decodes_to_png(self) -> None:
        data = render_scene(DrawingContext(16).scene, RenderOptions(output_format="base64"))
        assert isinstance(data, str)
        assert base64.b64decode(data).startswith(PNG_MAGIC)

    def test_helpers_agree(self) -> None:
        img = rasterize(Scene(size=8, primitives=(Circle(x=4, y=4, radius=3, fill="red"),)))
        assert base64.b64decode(image_to_base64(img)) == encode_png(img)

    def test_invalid_size_raises_render_failure(self) -> None:
        with pytest.raises(RenderFailure):
            render_scene(DrawingContext(16).scene, RenderOptions(size=0))

    @pytest.mark.asyncio
    async def test_async_matches_sync(self) -> None:
        ctx = DrawingContext(64)
        ctx.circle(32, 32, 20, fill="blue")
        options = RenderOptions(output_format="bytes")
        assert await render_scene_async(ctx.scene, options) == render_scene(ctx.scene, options)
