"""Agent-facing ``execute_code`` tool: code in, image or error text out."""

from __future__ import annotations

import logging
from typing import Any

from code_canvas.config import settings
from code_canvas.errors import RunStateError
from code_canvas.lineage import GenerationRun
from code_canvas.sandbox import ExecutionError, execute_code

logger = logging.getLogger(__name__)

TOOL_NAME = "execute_code"

TOOL_DESCRIPTION = (
    "Execute Python code to create an image using the Drawing API (the `ctx` object). "
    "Returns the generated image. Each call starts from a blank canvas."
)

TOOL_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "code": {
            "type": "string",
            "description": "Python code using the Drawing API",
        },
    },
    "required": ["code"],
}


def tool_definition() -> dict[str, Any]:
    """Tool definition in the name/description/input_schema shape."""
    return {
        "name": TOOL_NAME,
        "description": TOOL_DESCRIPTION,
        "input_schema": TOOL_INPUT_SCHEMA,
    }


def _error_result(text: str) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": text}], "is_error": True}


async def handle_execute_code(
    args: dict[str, Any],
    *,
    canvas_size: int | None = None,
    run: GenerationRun | None = None,
) -> dict[str, Any]:
    """Handle an execute_code tool call.

    Args:
        args: Dictionary with 'code' (drawing code string)
        canvas_size: Canvas edge in pixels (default from settings)
        run: Run to record the attempt on, if lineage is tracked
            (an exhausted run rejects the call without executing)

    Returns:
        Tool result with the rendered PNG, or error text asking for a fix
    """
    code = args.get("code", "")
    if not code or not isinstance(code, str):
        return _error_result("Error: code must be a non-empty string")

    if run is not None and run.exhausted:
        return _error_result(
            f"Execution limit reached: this request allows at most {run.max_attempts} "
            "executions. No more code can be run."
        )

    size = canvas_size if canvas_size is not None else settings.canvas_size
    outcome = await execute_code(code, size)

    if run is not None:
        try:
            await run.record(outcome)
        except RunStateError as e:
            # Lineage is lost for this attempt; the caller still gets the image
            logger.warning(f"execute_code: attempt not recorded: {e}")

    if isinstance(outcome, ExecutionError):
        logger.info(f"execute_code: {outcome.kind.value} error")
        return _error_result(
            f"Code execution failed: {outcome.message}\n\nFix the code and try again."
        )

    logger.info(f"execute_code: rendered {outcome.primitive_count} primitives")
    content: list[dict[str, Any]] = [
        {"type": "text", "text": "Code executed. Generated image:"},
        {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": "image/png",
                "data": outcome.image_base64,
            },
        },
    ]
    return {"content": content}
