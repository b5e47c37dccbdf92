"""Chainable drawing surface handed to submitted code as ``ctx``.

Each drawing call appends one primitive tagged with the current layer and
returns the context itself, so calls compose fluently::

    ctx.rect(0, 0, 512, 512, fill="#fff").layer().circle(256, 256, 100, fill="red")

A context is single-use: the harness creates a fresh one per execution.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from code_canvas.types import (
    DEFAULT_CANVAS_SIZE,
    DEFAULT_FONT,
    DEFAULT_TEXT_FILL,
    DEFAULT_TEXT_SIZE,
    DEFAULT_TEXT_WEIGHT,
    Arc,
    Circle,
    Line,
    Path,
    Point,
    Primitive,
    Rectangle,
    Scene,
    Text,
    Triangle,
)


class DrawingContext:
    """Builder that records primitives into a scene, layer by layer."""

    def __init__(self, size: int = DEFAULT_CANVAS_SIZE) -> None:
        if size <= 0:
            raise ValueError(f"canvas size must be positive, got {size}")
        self._size = size
        self._primitives: list[Primitive] = []
        self._layer = 0

    def __repr__(self) -> str:
        return f"<DrawingContext {self._size}x{self._size} layer={self._layer} primitives={len(self._primitives)}>"

    @property
    def width(self) -> int:
        return self._size

    @property
    def height(self) -> int:
        return self._size

    @property
    def current_layer(self) -> int:
        return self._layer

    @property
    def scene(self) -> Scene:
        """Immutable snapshot of everything drawn so far."""
        return Scene(size=self._size, primitives=tuple(self._primitives))

    def _append(self, primitive: Primitive) -> DrawingContext:
        self._primitives.append(primitive)
        return self

    def rectangle(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        *,
        fill: str | None = None,
        stroke: str | None = None,
        stroke_width: float = 0,
        opacity: float = 1,
        radius: float = 0,
    ) -> DrawingContext:
        """Draw an axis-aligned rectangle from its top-left corner.

        ``radius`` rounds the corners (0 = square corners).
        """
        return self._append(
            Rectangle(
                layer=self._layer,
                x=x,
                y=y,
                width=width,
                height=height,
                radius=radius,
                fill=fill,
                stroke=stroke,
                stroke_width=stroke_width,
                opacity=opacity,
            )
        )

    rect = rectangle

    def circle(
        self,
        x: float,
        y: float,
        radius: float,
        *,
        fill: str | None = None,
        stroke: str | None = None,
        stroke_width: float = 0,
        opacity: float = 1,
    ) -> DrawingContext:
        """Draw a circle centered on x, y. A radius <= 0 draws nothing."""
        if radius <= 0:
            return self
        return self._append(
            Circle(
                layer=self._layer,
                x=x,
                y=y,
                radius=radius,
                fill=fill,
                stroke=stroke,
                stroke_width=stroke_width,
                opacity=opacity,
            )
        )

    def triangle(
        self,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        x3: float,
        y3: float,
        *,
        fill: str | None = None,
        stroke: str | None = None,
        stroke_width: float = 0,
        opacity: float = 1,
    ) -> DrawingContext:
        """Draw a triangle through three vertices."""
        return self._append(
            Triangle(
                layer=self._layer,
                points=(Point(x=x1, y=y1), Point(x=x2, y=y2), Point(x=x3, y=y3)),
                fill=fill,
                stroke=stroke,
                stroke_width=stroke_width,
                opacity=opacity,
            )
        )

    def line(
        self,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        *,
        stroke: str,
        width: float,
        opacity: float = 1,
    ) -> DrawingContext:
        """Draw a straight segment. ``stroke`` and ``width`` are required."""
        return self._append(
            Line(
                layer=self._layer,
                x1=x1,
                y1=y1,
                x2=x2,
                y2=y2,
                stroke=stroke,
                stroke_width=width,
                opacity=opacity,
            )
        )

    def path(
        self,
        points: Iterable[Sequence[float]],
        *,
        fill: str | None = None,
        stroke: str | None = None,
        stroke_width: float = 0,
        opacity: float = 1,
        closed: bool = False,
    ) -> DrawingContext:
        """Draw a polyline through ``[(x, y), ...]``. An empty list draws nothing."""
        pts = [_to_point(p) for p in points]
        if not pts:
            return self
        return self._append(
            Path(
                layer=self._layer,
                points=pts,
                closed=closed,
                fill=fill,
                stroke=stroke,
                stroke_width=stroke_width,
                opacity=opacity,
            )
        )

    def arc(
        self,
        x: float,
        y: float,
        radius: float,
        start_angle: float,
        end_angle: float,
        *,
        fill: str | None = None,
        stroke: str | None = None,
        stroke_width: float = 0,
        opacity: float = 1,
    ) -> DrawingContext:
        """Draw a pie wedge. Angles in degrees, 0 = right, 90 = down."""
        if radius <= 0:
            return self
        return self._append(
            Arc(
                layer=self._layer,
                x=x,
                y=y,
                radius=radius,
                start_angle=start_angle,
                end_angle=end_angle,
                fill=fill,
                stroke=stroke,
                stroke_width=stroke_width,
                opacity=opacity,
            )
        )

    def text(
        self,
        content: str,
        x: float,
        y: float,
        *,
        fill: str | None = DEFAULT_TEXT_FILL,
        font: str = DEFAULT_FONT,
        size: float = DEFAULT_TEXT_SIZE,
        weight: int = DEFAULT_TEXT_WEIGHT,
        opacity: float = 1,
    ) -> DrawingContext:
        """Draw text whose visual center sits on x, y."""
        return self._append(
            Text(
                layer=self._layer,
                content=str(content),
                x=x,
                y=y,
                fill=fill,
                font=font,
                size=size,
                weight=weight,
                opacity=opacity,
            )
        )

    def advance_layer(self) -> DrawingContext:
        """Move to the next layer; later layers render on top."""
        self._layer += 1
        return self

    layer = advance_layer


def _to_point(value: Sequence[float]) -> Point:
    if len(value) != 2:
        raise ValueError(f"path points must be (x, y) pairs, got {value!r}")
    return Point(x=value[0], y=value[1])
