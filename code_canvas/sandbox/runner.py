"""Execute drawing code against a fresh DrawingContext.

``run_drawing_code`` is the in-process core. ``main`` is the child-process
entry point used by the harness (through ``__main__``): it reads code from
stdin, renders the scene to PNG and writes exactly one JSON line to stdout,
either ``{"scene": {...}, "png": "<base64>"}`` or
``{"error": "...", "kind": "code" | "render"}``. Rendering happens here so
that the parent's wall-clock timeout bounds it too.

Usage:
    python -m code_canvas.sandbox --size 512 --max-steps 2000000 [--output-size 256] < code.py
"""

from __future__ import annotations

import argparse
import json
import sys
from types import TracebackType

from code_canvas.canvas import DrawingContext
from code_canvas.errors import CodeExecutionError, RenderFailure
from code_canvas.rendering import RenderOptions, png_to_base64, render_scene
from code_canvas.types import DEFAULT_CANVAS_SIZE, Scene

from .restrictions import CODE_FILENAME, StepBudget, safe_builtins, validate_code


def _error_line(tb: TracebackType | None) -> int | None:
    """Line number of the innermost traceback frame inside submitted code."""
    line = None
    while tb is not None:
        if tb.tb_frame.f_code.co_filename == CODE_FILENAME:
            line = tb.tb_lineno
        tb = tb.tb_next
    return line


def run_drawing_code(
    code: str,
    canvas_size: int = DEFAULT_CANVAS_SIZE,
    *,
    max_steps: int | None = None,
) -> Scene:
    """Validate and run drawing code, returning the resulting scene.

    The code sees ``ctx`` (a fresh DrawingContext bound to ``canvas_size``),
    a curated builtins table and ``math``. Nothing is shared between calls.

    Raises:
        CodeExecutionError: If the code fails validation, raises, or exceeds
            ``max_steps`` traced lines.
    """
    tree = validate_code(code)
    compiled = compile(tree, CODE_FILENAME, "exec")

    ctx = DrawingContext(canvas_size)
    namespace = {"__builtins__": safe_builtins(), "ctx": ctx}
    budget = StepBudget(max_steps)

    try:
        with budget.active():
            exec(compiled, namespace)  # noqa: S102
    except CodeExecutionError:
        raise
    except Exception as e:
        raise CodeExecutionError(f"{type(e).__name__}: {e}", line=_error_line(e.__traceback__)) from e

    return ctx.scene


def _emit(payload: dict) -> None:
    sys.stdout.write(json.dumps(payload) + "\n")
    sys.stdout.flush()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run drawing code read from stdin")
    parser.add_argument("--size", type=int, default=DEFAULT_CANVAS_SIZE)
    parser.add_argument("--max-steps", type=int, default=None)
    parser.add_argument("--output-size", type=int, default=None)
    args = parser.parse_args(argv)

    code = sys.stdin.read()
    try:
        scene = run_drawing_code(code, args.size, max_steps=args.max_steps)
    except CodeExecutionError as e:
        _emit({"error": str(e), "kind": "code"})
        return 1

    try:
        png = render_scene(scene, RenderOptions(size=args.output_size, output_format="bytes"))
    except RenderFailure as e:
        _emit({"error": str(e), "kind": "render"})
        return 1

    assert isinstance(png, bytes)
    _emit({"scene": scene.model_dump(mode="json"), "png": png_to_base64(png)})
    return 0
