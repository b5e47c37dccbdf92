"""Drawable primitives.

Every primitive is immutable once created: its layer is fixed by the
DrawingContext at creation time and never changes afterwards.
"""

import html
import math
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from code_canvas.types.geometry import Point, clamp_value, format_number
from code_canvas.types.styles import (
    DEFAULT_FONT,
    DEFAULT_OPACITY,
    DEFAULT_STROKE_WIDTH,
    DEFAULT_TEXT_FILL,
    DEFAULT_TEXT_SIZE,
    DEFAULT_TEXT_WEIGHT,
    normalize_color,
)

_n = format_number


def _attr(value: object) -> str:
    return html.escape(str(value), quote=True)


class PrimitiveBase(BaseModel):
    """Fields shared by all primitives.

    Color fields hold None for "no paint" (omitted, "none" or "transparent").
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    layer: int = Field(default=0, ge=0)
    fill: str | None = None
    stroke: str | None = None
    stroke_width: float = DEFAULT_STROKE_WIDTH
    opacity: float = DEFAULT_OPACITY

    @field_validator("fill", "stroke", mode="before")
    @classmethod
    def _validate_color(cls, value: object) -> str | None:
        return normalize_color(value)

    @field_validator("stroke_width")
    @classmethod
    def _validate_stroke_width(cls, value: float) -> float:
        return max(0.0, value)

    @field_validator("opacity")
    @classmethod
    def _validate_opacity(cls, value: float) -> float:
        return clamp_value(value, 0.0, 1.0)

    def _style_attrs(self) -> str:
        return (
            f'fill="{_attr(self.fill or "none")}" stroke="{_attr(self.stroke or "none")}" '
            f'stroke-width="{_n(self.stroke_width)}" opacity="{_n(self.opacity)}"'
        )

    def to_svg(self) -> str:
        """Serialize as a single SVG element."""
        raise NotImplementedError


class Rectangle(PrimitiveBase):
    """Axis-aligned box anchored at its top-left corner."""

    kind: Literal["rectangle"] = "rectangle"
    x: float
    y: float
    width: float
    height: float
    radius: float = 0.0  # corner radius, 0 = square corners

    @field_validator("radius")
    @classmethod
    def _validate_radius(cls, value: float) -> float:
        return max(0.0, value)

    def to_svg(self) -> str:
        return (
            f'<rect x="{_n(self.x)}" y="{_n(self.y)}" width="{_n(self.width)}" '
            f'height="{_n(self.height)}" rx="{_n(self.radius)}" {self._style_attrs()} />'
        )


class Circle(PrimitiveBase):
    kind: Literal["circle"] = "circle"
    x: float
    y: float
    radius: float = Field(gt=0)

    def to_svg(self) -> str:
        return (
            f'<circle cx="{_n(self.x)}" cy="{_n(self.y)}" r="{_n(self.radius)}" '
            f"{self._style_attrs()} />"
        )


class Triangle(PrimitiveBase):
    """Three explicit vertices; degenerate triangles are allowed."""

    kind: Literal["triangle"] = "triangle"
    points: tuple[Point, Point, Point]

    def to_svg(self) -> str:
        pts = " ".join(f"{_n(p.x)},{_n(p.y)}" for p in self.points)
        return f'<polygon points="{pts}" {self._style_attrs()} />'


class Line(PrimitiveBase):
    kind: Literal["line"] = "line"
    x1: float
    y1: float
    x2: float
    y2: float

    def to_svg(self) -> str:
        return (
            f'<line x1="{_n(self.x1)}" y1="{_n(self.y1)}" x2="{_n(self.x2)}" y2="{_n(self.y2)}" '
            f'stroke="{_attr(self.stroke or "none")}" stroke-width="{_n(self.stroke_width)}" '
            f'opacity="{_n(self.opacity)}" />'
        )


class Path(PrimitiveBase):
    """Polyline through one or more points, optionally closed."""

    kind: Literal["path"] = "path"
    points: list[Point] = Field(min_length=1)
    closed: bool = False

    def to_svg_d(self) -> str:
        first, *rest = self.points
        d_parts = [f"M {_n(first.x)},{_n(first.y)}"]
        d_parts.extend(f"L {_n(p.x)},{_n(p.y)}" for p in rest)
        if self.closed:
            d_parts.append("Z")
        return " ".join(d_parts)

    def to_svg(self) -> str:
        return f'<path d="{self.to_svg_d()}" {self._style_attrs()} />'


class Arc(PrimitiveBase):
    """Pie wedge from the center, along the circle, back to the center.

    Angles are in degrees: 0 points right (+x) and angles grow clockwise
    because y grows downward.
    """

    kind: Literal["arc"] = "arc"
    x: float
    y: float
    radius: float = Field(gt=0)
    start_angle: float
    end_angle: float

    @property
    def large_arc(self) -> bool:
        return abs(self.end_angle - self.start_angle) > 180

    @property
    def sweep(self) -> bool:
        return self.end_angle > self.start_angle

    def point_at(self, angle: float) -> tuple[float, float]:
        """Point on the circle at the given angle in degrees."""
        rad = math.radians(angle)
        return (self.x + self.radius * math.cos(rad), self.y + self.radius * math.sin(rad))

    def to_svg_d(self) -> str:
        x1, y1 = self.point_at(self.start_angle)
        x2, y2 = self.point_at(self.end_angle)
        r = _n(self.radius)
        return (
            f"M {_n(self.x)},{_n(self.y)} L {_n(x1)},{_n(y1)} "
            f"A {r},{r} 0 {int(self.large_arc)},{int(self.sweep)} {_n(x2)},{_n(y2)} Z"
        )

    def to_svg(self) -> str:
        return f'<path d="{self.to_svg_d()}" {self._style_attrs()} />'


class Text(PrimitiveBase):
    """Text centered (horizontally and vertically) on x, y."""

    kind: Literal["text"] = "text"
    content: str
    x: float
    y: float
    fill: str | None = DEFAULT_TEXT_FILL
    font: str = DEFAULT_FONT
    size: float = Field(default=DEFAULT_TEXT_SIZE, gt=0)
    weight: int = DEFAULT_TEXT_WEIGHT

    def to_svg(self) -> str:
        content = html.escape(self.content, quote=False)
        return (
            f'<text x="{_n(self.x)}" y="{_n(self.y)}" font-family="{_attr(self.font)}" '
            f'font-size="{_n(self.size)}" font-weight="{self.weight}" '
            f'fill="{_attr(self.fill or "none")}" opacity="{_n(self.opacity)}" '
            f'text-anchor="middle" dominant-baseline="central">{content}</text>'
        )


Primitive = Annotated[
    Rectangle | Circle | Triangle | Line | Path | Arc | Text,
    Field(discriminator="kind"),
]
