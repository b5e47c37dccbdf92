"""Static and runtime restrictions applied to submitted drawing code.

Submitted code gets a curated builtins table and ``ctx``; nothing else.
Before it runs, an AST pass rejects constructs that could reach the host
interpreter (imports, dunder/private access, frame introspection). While it
runs, a trace function counts executed lines and stops runaway loops.
"""

from __future__ import annotations

import ast
import math
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType, SimpleNamespace
from typing import Any

from code_canvas.errors import CodeExecutionError, StepLimitExceeded

# Filename given to compiled submissions; used to trace only their frames
CODE_FILENAME = "<drawing>"

_FORBIDDEN_NODES: dict[type[ast.AST], str] = {
    ast.Import: "import statements are not allowed",
    ast.ImportFrom: "import statements are not allowed",
    ast.Global: "global statements are not allowed",
    ast.Nonlocal: "nonlocal statements are not allowed",
    ast.ClassDef: "class definitions are not allowed",
    ast.AsyncFunctionDef: "async code is not allowed",
    ast.Await: "async code is not allowed",
    ast.AsyncFor: "async code is not allowed",
    ast.AsyncWith: "async code is not allowed",
}

# Attributes that expose frames, code objects or string formatting lookups
_FORBIDDEN_ATTRIBUTES = frozenset(
    {
        "format",
        "format_map",
        "gi_frame",
        "gi_code",
        "gi_yieldfrom",
        "cr_frame",
        "cr_code",
        "ag_frame",
        "ag_code",
        "f_back",
        "f_builtins",
        "f_code",
        "f_globals",
        "f_locals",
        "tb_frame",
        "tb_next",
    }
)

_SAFE_BUILTIN_NAMES = (
    "abs",
    "all",
    "any",
    "bool",
    "dict",
    "divmod",
    "enumerate",
    "filter",
    "float",
    "int",
    "isinstance",
    "len",
    "list",
    "map",
    "max",
    "min",
    "pow",
    "range",
    "reversed",
    "round",
    "set",
    "sorted",
    "str",
    "sum",
    "tuple",
    "zip",
    "True",
    "False",
    "None",
    # Exceptions submitted code may raise or catch
    "ArithmeticError",
    "Exception",
    "IndexError",
    "KeyError",
    "TypeError",
    "ValueError",
    "ZeroDivisionError",
)


def safe_builtins() -> dict[str, Any]:
    """Build a fresh builtins table for one execution.

    ``math`` is exposed as a namespace copy so one execution cannot rebind
    module attributes another execution would see.
    """
    import builtins

    table: dict[str, Any] = {name: getattr(builtins, name) for name in _SAFE_BUILTIN_NAMES}
    table["math"] = SimpleNamespace(
        **{name: getattr(math, name) for name in dir(math) if not name.startswith("_")}
    )
    return table


class _Validator(ast.NodeVisitor):
    def generic_visit(self, node: ast.AST) -> None:
        for node_type, message in _FORBIDDEN_NODES.items():
            if isinstance(node, node_type):
                self._reject(node, message)
        super().generic_visit(node)

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("__"):
            self._reject(node, f"dunder names are not allowed: {node.id}")
        self.generic_visit(node)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("_") or node.attr in _FORBIDDEN_ATTRIBUTES:
            self._reject(node, f"access to attribute '{node.attr}' is not allowed")
        self.generic_visit(node)

    @staticmethod
    def _reject(node: ast.AST, message: str) -> None:
        raise CodeExecutionError(message, line=getattr(node, "lineno", None))


def validate_code(code: str) -> ast.Module:
    """Parse and validate submitted code.

    Raises:
        CodeExecutionError: On syntax errors or forbidden constructs.
    """
    try:
        tree = ast.parse(code, filename=CODE_FILENAME, mode="exec")
    except SyntaxError as e:
        raise CodeExecutionError(f"SyntaxError: {e.msg}", line=e.lineno) from None
    _Validator().visit(tree)
    return tree


class StepBudget:
    """Counts line events in submitted code and raises once over budget."""

    def __init__(self, max_steps: int | None) -> None:
        self.max_steps = max_steps
        self.steps = 0

    def _trace_calls(self, frame: FrameType, event: str, arg: Any) -> Any:
        if frame.f_code.co_filename != CODE_FILENAME:
            return None
        return self._trace_lines

    def _trace_lines(self, frame: FrameType, event: str, arg: Any) -> Any:
        if event == "line":
            self.steps += 1
            if self.max_steps is not None and self.steps > self.max_steps:
                raise StepLimitExceeded(
                    f"execution exceeded {self.max_steps} steps (infinite loop?)",
                    line=frame.f_lineno,
                )
        return self._trace_lines

    @contextmanager
    def active(self) -> Iterator[StepBudget]:
        previous = sys.gettrace()
        sys.settrace(self._trace_calls)
        try:
            yield self
        finally:
            sys.settrace(previous)
