"""Sandboxed execution harness: code string in, PNG (or typed error) out."""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path as FilePath
from typing import Any, Literal

from PIL import Image
from pydantic import ValidationError

from code_canvas.config import settings
from code_canvas.types import Scene

logger = logging.getLogger(__name__)

RUNNER_MODULE = "code_canvas.sandbox"

# Directory containing the code_canvas package, so the child can import it
_PACKAGE_ROOT = FilePath(__file__).resolve().parent.parent.parent

# Host variables the child interpreter needs to start; everything else is dropped
_INHERITED_ENV = ("PATH", "SYSTEMROOT", "LD_LIBRARY_PATH", "VIRTUAL_ENV")


class ErrorKind(str, Enum):
    """Why an execution produced no image."""

    CODE = "code"  # Code failed to parse, validate or run
    TIMEOUT = "timeout"  # Wall-clock budget exceeded
    RENDER = "render"  # Scene could not be rasterized


@dataclass(frozen=True)
class ExecutionResult:
    """A successful execution: the verbatim code and the rendered PNG."""

    code: str
    canvas_size: int
    png: bytes = field(repr=False)
    scene: Scene = field(repr=False)
    success: Literal[True] = True

    @property
    def image_base64(self) -> str:
        return base64.standard_b64encode(self.png).decode("utf-8")

    @property
    def primitive_count(self) -> int:
        return len(self.scene.primitives)

    def to_image(self) -> Image.Image:
        """Decode the PNG into a PIL Image."""
        img = Image.open(io.BytesIO(self.png))
        img.load()
        return img


@dataclass(frozen=True)
class ExecutionError:
    """A failed execution. No partial image is ever returned."""

    code: str
    kind: ErrorKind
    message: str
    success: Literal[False] = False


ExecutionOutcome = ExecutionResult | ExecutionError


def _truncate(message: str) -> str:
    limit = settings.max_error_chars
    if len(message) <= limit:
        return message
    return message[:limit] + "... (truncated)"


def _child_env() -> dict[str, str]:
    """Minimal environment for the child interpreter."""
    python_path = [str(_PACKAGE_ROOT)]
    if os.environ.get("PYTHONPATH"):
        python_path.append(os.environ["PYTHONPATH"])
    env = {key: os.environ[key] for key in _INHERITED_ENV if key in os.environ}
    env.update(
        {
            "PYTHONPATH": os.pathsep.join(python_path),
            "PYTHONHASHSEED": "0",  # deterministic set iteration in submitted code
            "PYTHONIOENCODING": "utf-8",
        }
    )
    return env


def _parse_payload(stdout: str) -> dict[str, Any] | None:
    """Find the runner's JSON line (the last line starting with '{')."""
    for line in reversed(stdout.strip().split("\n")):
        line = line.strip()
        if line.startswith("{"):
            try:
                payload = json.loads(line)
            except json.JSONDecodeError:
                return None
            return payload if isinstance(payload, dict) else None
    return None


async def _run_child(
    code: str, canvas_size: int, max_steps: int, timeout: float, output_size: int | None
) -> tuple[int, str, str] | None:
    """Run and render the code in a fresh interpreter. Returns None on timeout."""
    args = ["-m", RUNNER_MODULE, "--size", str(canvas_size), "--max-steps", str(max_steps)]
    if output_size is not None:
        args += ["--output-size", str(output_size)]
    proc = await asyncio.create_subprocess_exec(
        sys.executable,
        *args,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=_child_env(),
    )
    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(code.encode("utf-8")), timeout=timeout
        )
    except TimeoutError:
        proc.kill()
        await proc.wait()
        return None
    except asyncio.CancelledError:
        proc.kill()
        await proc.wait()
        raise

    return (
        proc.returncode or 0,
        stdout.decode("utf-8", errors="replace"),
        stderr.decode("utf-8", errors="replace"),
    )


async def execute_code(
    code: str,
    canvas_size: int | None = None,
    *,
    output_size: int | None = None,
    timeout: float | None = None,
    max_steps: int | None = None,
) -> ExecutionOutcome:
    """Execute drawing code in an isolated child process and render the result.

    Every call gets a fresh interpreter and a fresh DrawingContext, so no
    two executions can observe each other. The child also rasterizes the
    scene, so the wall-clock ``timeout`` bounds execution and rendering
    together; ``max_steps`` bounds executed lines.

    Args:
        code: Drawing code using the ``ctx`` API
        canvas_size: Square canvas edge in pixels (default from settings)
        output_size: Resample the rendered image to this size if given
        timeout: Wall-clock seconds (default from settings)
        max_steps: Traced line budget (default from settings)

    Returns:
        ExecutionResult with the PNG and verbatim code, or ExecutionError.
    """
    size = canvas_size if canvas_size is not None else settings.canvas_size
    if size <= 0:
        raise ValueError(f"canvas_size must be a positive integer, got {size}")
    timeout = timeout if timeout is not None else settings.execution_timeout
    max_steps = max_steps if max_steps is not None else settings.max_execution_steps

    if len(code) > settings.max_code_chars:
        return ExecutionError(
            code=code,
            kind=ErrorKind.CODE,
            message=f"Code is too long ({len(code)} chars, limit {settings.max_code_chars})",
        )

    completed = await _run_child(code, size, max_steps, timeout, output_size)
    if completed is None:
        logger.info(f"Execution timed out after {timeout:g}s")
        return ExecutionError(
            code=code,
            kind=ErrorKind.TIMEOUT,
            message=f"Code execution timed out after {timeout:g} seconds",
        )

    return_code, stdout, stderr = completed
    payload = _parse_payload(stdout)
    if payload is None:
        logger.warning(f"Sandbox exited with code {return_code} without a result")
        detail = stderr.strip() or "no output"
        return ExecutionError(
            code=code,
            kind=ErrorKind.CODE,
            message=_truncate(f"Sandbox exited with code {return_code}: {detail}"),
        )

    if "error" in payload:
        kind = ErrorKind.RENDER if payload.get("kind") == ErrorKind.RENDER.value else ErrorKind.CODE
        logger.info(f"Code execution failed ({kind.value}): {str(payload['error'])[:200]}")
        return ExecutionError(code=code, kind=kind, message=_truncate(str(payload["error"])))

    try:
        scene = Scene.model_validate(payload.get("scene"))
        png = base64.b64decode(payload["png"], validate=True)
    except (ValidationError, KeyError, TypeError, binascii.Error) as e:
        return ExecutionError(
            code=code, kind=ErrorKind.CODE, message=_truncate(f"Invalid sandbox output: {e}")
        )

    logger.info(f"Executed code: {len(scene.primitives)} primitives, {scene.layer_count} layers")
    return ExecutionResult(code=code, canvas_size=size, png=png, scene=scene)
