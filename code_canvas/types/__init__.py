"""Type definitions for code_canvas.

This package contains all type definitions organized into focused modules:
- geometry: Point and numeric helpers
- styles: Style defaults and color handling
- primitives: Drawable primitive models
- scene: Scene model (primitives + canvas size)
- lineage: Thread and generation node models
"""

from code_canvas.types.geometry import Point, clamp_value, format_number
from code_canvas.types.lineage import (
    GenerationKind,
    GenerationNode,
    RunState,
    ThreadRecord,
    ThreadStatus,
)
from code_canvas.types.primitives import (
    Arc,
    Circle,
    Line,
    Path,
    Primitive,
    PrimitiveBase,
    Rectangle,
    Text,
    Triangle,
)
from code_canvas.types.scene import DEFAULT_CANVAS_SIZE, Scene
from code_canvas.types.styles import (
    DEFAULT_FONT,
    DEFAULT_OPACITY,
    DEFAULT_STROKE_WIDTH,
    DEFAULT_TEXT_FILL,
    DEFAULT_TEXT_SIZE,
    DEFAULT_TEXT_WEIGHT,
    color_to_rgba,
    normalize_color,
)

__all__ = [
    # Geometry
    "Point",
    "clamp_value",
    "format_number",
    # Styles
    "DEFAULT_FONT",
    "DEFAULT_OPACITY",
    "DEFAULT_STROKE_WIDTH",
    "DEFAULT_TEXT_FILL",
    "DEFAULT_TEXT_SIZE",
    "DEFAULT_TEXT_WEIGHT",
    "color_to_rgba",
    "normalize_color",
    # Primitives
    "Arc",
    "Circle",
    "Line",
    "Path",
    "Primitive",
    "PrimitiveBase",
    "Rectangle",
    "Text",
    "Triangle",
    # Scene
    "DEFAULT_CANVAS_SIZE",
    "Scene",
    # Lineage
    "GenerationKind",
    "GenerationNode",
    "RunState",
    "ThreadRecord",
    "ThreadStatus",
]
