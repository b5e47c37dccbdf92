"""Tests for primitive models and SVG export."""

import pytest
from pydantic import ValidationError

from code_canvas.types import (
    Arc,
    Circle,
    Path,
    Point,
    Rectangle,
    Scene,
    Text,
    color_to_rgba,
    normalize_color,
)


class TestNormalizeColor:
    @pytest.mark.parametrize(
        "color", ["#fff", "#ff0000", "red", "rgb(1, 2, 3)", "rgba(255, 0, 0, 0.5)", "hsl(0, 100%, 50%)"]
    )
    def test_accepts_css_colors(self, color: str) -> None:
        assert normalize_color(color) == color

    @pytest.mark.parametrize("color", [None, "", "none", "transparent", "  None "])
    def test_no_paint_values(self, color: str | None) -> None:
        assert normalize_color(color) is None

    def test_rejects_garbage(self) -> None:
        with pytest.raises(ValueError, match="unknown color"):
            normalize_color("blurple")

    def test_rejects_non_strings(self) -> None:
        with pytest.raises(ValueError):
            normalize_color(123)

    def test_css_rgba_alpha_is_fractional(self) -> None:
        assert color_to_rgba("rgba(255, 0, 0, 0.5)") == (255, 0, 0, 128)
        assert color_to_rgba("rgba(0, 0, 255, 1)") == (0, 0, 255, 255)
        assert color_to_rgba("rgba(0, 0, 0, 25%)") == (0, 0, 0, 64)

    def test_opaque_colors_get_full_alpha(self) -> None:
        assert color_to_rgba("red") == (255, 0, 0, 255)
        assert color_to_rgba(None) is None


class TestPrimitiveValidation:
    def test_primitives_are_immutable(self) -> None:
        circle = Circle(x=1, y=1, radius=1)
        with pytest.raises(ValidationError):
            circle.layer = 5  # type: ignore[misc]

    def test_negative_layer_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Circle(layer=-1, x=1, y=1, radius=1)

    def test_nan_coordinates_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Circle(x=float("nan"), y=1, radius=1)

    def test_negative_stroke_width_clamped(self) -> None:
        assert Rectangle(x=0, y=0, width=1, height=1, stroke_width=-3).stroke_width == 0

    def test_path_needs_a_point(self) -> None:
        with pytest.raises(ValidationError):
            Path(points=[])


class TestArcGeometry:
    def test_point_at_follows_screen_convention(self) -> None:
        arc = Arc(x=256, y=256, radius=100, start_angle=0, end_angle=90)
        x0, y0 = arc.point_at(0)
        x90, y90 = arc.point_at(90)
        assert (x0, y0) == pytest.approx((356, 256))
        assert (x90, y90) == pytest.approx((256, 356))

    def test_flags(self) -> None:
        assert not Arc(x=0, y=0, radius=1, start_angle=0, end_angle=90).large_arc
        assert Arc(x=0, y=0, radius=1, start_angle=0, end_angle=270).large_arc
        assert Arc(x=0, y=0, radius=1, start_angle=0, end_angle=90).sweep
        assert not Arc(x=0, y=0, radius=1, start_angle=90, end_angle=0).sweep

    def test_svg_path_is_a_wedge(self) -> None:
        arc = Arc(x=256, y=256, radius=100, start_angle=0, end_angle=90)
        assert arc.to_svg_d() == "M 256,256 L 356,256 A 100,100 0 0,1 256,356 Z"


class TestSvgExport:
    def test_rect_svg(self) -> None:
        rect = Rectangle(x=1, y=2, width=3, height=4, fill="#fff")
        assert rect.to_svg() == (
            '<rect x="1" y="2" width="3" height="4" rx="0" '
            'fill="#fff" stroke="none" stroke-width="0" opacity="1" />'
        )

    def test_path_svg_closed(self) -> None:
        path = Path(points=[Point(x=0, y=0), Point(x=10, y=0), Point(x=10, y=10)], closed=True)
        assert path.to_svg_d() == "M 0,0 L 10,0 L 10,10 Z"

    def test_text_content_is_escaped(self) -> None:
        text = Text(content="a < b & c > d", x=0, y=0)
        svg = text.to_svg()
        assert ">a &lt; b &amp; c &gt; d</text>" in svg
        assert 'text-anchor="middle"' in svg

    def test_scene_svg_uses_render_order(self) -> None:
        top = Circle(layer=1, x=0, y=0, radius=1)
        bottom = Rectangle(layer=0, x=0, y=0, width=1, height=1)
        svg = Scene(size=64, primitives=(top, bottom)).to_svg()
        assert svg.startswith('<svg width="64" height="64"')
        assert svg.index("<rect") < svg.index("<circle")


class TestScene:
    def test_render_order_is_stable(self) -> None:
        a = Circle(layer=1, x=0, y=0, radius=1)
        b = Circle(layer=0, x=1, y=0, radius=1)
        c = Circle(layer=1, x=2, y=0, radius=1)
        d = Circle(layer=0, x=3, y=0, radius=1)
        scene = Scene(primitives=(a, b, c, d))
        assert scene.render_order() == [b, d, a, c]

    def test_layer_count(self) -> None:
        scene = Scene(
            primitives=(
                Circle(layer=0, x=0, y=0, radius=1),
                Circle(layer=4, x=0, y=0, radius=1),
                Circle(layer=4, x=0, y=0, radius=1),
            )
        )
        assert scene.layer_count == 2

    def test_json_round_trip_keeps_kinds(self) -> None:
        scene = Scene(
            size=128,
            primitives=(
                Rectangle(x=0, y=0, width=5, height=5, fill="red"),
                Text(content="hi", x=1, y=1, layer=2),
            ),
        )
        restored = Scene.model_validate(scene.model_dump(mode="json"))
        assert restored == scene
        assert isinstance(restored.primitives[1], Text)
