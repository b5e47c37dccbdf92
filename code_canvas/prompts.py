"""Drawing API documentation and the system prompt built around it."""

from __future__ import annotations

from code_canvas.config import settings

INTERFACE_DOCS = """\
Drawing API

The `ctx` object is available in your code, together with the `math` module.
All coordinates are in pixels. Origin (0, 0) is TOP-LEFT; x increases
rightward, y increases downward. Every method draws onto the current layer
and returns `ctx`, so calls can be chained.

Colors are CSS strings: '#f00', '#ff0000', 'red', 'rgb(255, 0, 0)',
'rgba(255, 0, 0, 0.5)', 'hsl(0, 100%, 50%)'. Use 'transparent' or 'none'
(or leave the option out) for no fill or no stroke.

ctx.rectangle(x, y, width, height, *, fill=None, stroke=None, stroke_width=0, opacity=1, radius=0)
    Rectangle from its top-left corner. `radius` rounds the corners.
    Alias: ctx.rect(...)
    ctx.rect(0, 0, 512, 512, fill='#f0faff')
    ctx.rect(100, 100, 80, 80, fill='#fff', stroke='#000', stroke_width=2, radius=12)

ctx.circle(x, y, radius, *, fill=None, stroke=None, stroke_width=0, opacity=1)
    Circle centered on (x, y). A radius of 0 or less draws nothing.
    ctx.circle(256, 256, 100, fill='#ff5733')

ctx.triangle(x1, y1, x2, y2, x3, y3, *, fill=None, stroke=None, stroke_width=0, opacity=1)
    Triangle through three vertices.
    ctx.triangle(256, 100, 100, 400, 412, 400, fill='#ffd700')

ctx.line(x1, y1, x2, y2, *, stroke, width, opacity=1)
    Straight segment. `stroke` and `width` are required.
    ctx.line(0, 0, 512, 512, stroke='#000', width=2)

ctx.path(points, *, fill=None, stroke=None, stroke_width=0, opacity=1, closed=False)
    Polyline through a list of (x, y) pairs. Do NOT pass SVG path strings.
    An empty list draws nothing. A fill needs at least three points.
    ctx.path([(100, 100), (200, 50), (300, 100), (250, 200)], fill='#9933ff', closed=True)
    ctx.path([(0, 256), (128, 128), (256, 256), (384, 128)], stroke='#000', stroke_width=3)

ctx.arc(x, y, radius, start_angle, end_angle, *, fill=None, stroke=None, stroke_width=0, opacity=1)
    Pie wedge from the center. Angles are in DEGREES: 0 = right, 90 = down,
    180 = left, 270 = up (clockwise on screen).
    ctx.arc(256, 256, 100, 0, 90, fill='#ff9900')

ctx.text(content, x, y, *, fill='#000000', font='sans-serif', size=16, weight=400, opacity=1)
    Text centered on (x, y). `weight` 600 or more selects a bold face.
    ctx.text('Hello', 256, 256, fill='#1e40af', size=48, weight=700)

ctx.advance_layer()
    Move to the next layer. Shapes on higher layers render on top of shapes
    on lower layers. Within one layer, later calls render on top.
    Alias: ctx.layer()
    ctx.rect(0, 0, 512, 512, fill='#fff').layer().circle(256, 256, 100, fill='#f00')

ctx.width, ctx.height
    Canvas size in pixels.
"""

_PROMPT_INTRO = """\
You are an image generation assistant. You write Python code to create images \
using the Drawing API below.

Canvas: {size}x{size} pixels. Origin (0,0) is TOP-LEFT. X increases rightward, \
Y increases downward. Center is ({center}, {center}).
"""

_PROMPT_LAYERS = """\
LAYERS:
- Use ctx.layer() to move to the next layer
- Higher layers render ON TOP of lower layers
- Example: background rect on layer 0, foreground circle on layer 1
"""

_PROMPT_WORKFLOW = """\
WORKFLOW:
1. Plan the image composition (shapes, colors, layers)
2. Write code that creates the entire image
3. CRITICALLY examine the result: check positioning, colors, proportions
4. If ANYTHING is wrong, identify the issue and rewrite the code
5. Iterate until the result looks correct. Only then respond with a text summary.
"""

_PROMPT_PATTERNS = """\
COMMON PATTERNS:
- Outline shapes: leave fill out and pass stroke with stroke_width
- Layered composition: ctx.rect(...).layer().circle(...).layer().text(...)
- Transparency: use rgba() colors or the opacity option
- Rounded shapes: use radius on rect()
"""

_PROMPT_RULES = """\
RULES:
- Each execution starts fresh; nothing carries over from earlier attempts
- To fix anything, rewrite the entire code
- All methods are synchronous and chainable
- Use ctx.method() syntax (the ctx object is provided)
- Imports are not available; use the provided math module
- You have at most {attempts} executions per request
"""


def get_interface_documentation() -> str:
    """Return the Drawing API documentation text."""
    return INTERFACE_DOCS


def build_system_prompt(canvas_size: int | None = None, max_attempts: int | None = None) -> str:
    """Build the instruction context for a code-writing model.

    Args:
        canvas_size: Square canvas edge in pixels (default from settings)
        max_attempts: Execution budget mentioned in the rules (default from settings)

    Returns:
        Complete system prompt with the API documentation embedded
    """
    size = canvas_size if canvas_size is not None else settings.canvas_size
    attempts = max_attempts if max_attempts is not None else settings.max_run_attempts
    parts = [
        _PROMPT_INTRO.format(size=size, center=size // 2),
        INTERFACE_DOCS,
        _PROMPT_LAYERS,
        _PROMPT_WORKFLOW,
        _PROMPT_PATTERNS,
        _PROMPT_RULES.format(attempts=attempts),
    ]
    return "\n".join(parts)
