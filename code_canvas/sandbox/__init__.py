"""Sandboxed execution of untrusted drawing code.

- restrictions: AST validation, curated builtins, step budget
- runner: in-process core and child-process entry point
- harness: async ``execute_code`` that isolates each run in a fresh process
"""

from .harness import (
    ErrorKind,
    ExecutionError,
    ExecutionOutcome,
    ExecutionResult,
    execute_code,
)
from .restrictions import StepBudget, safe_builtins, validate_code
from .runner import run_drawing_code

__all__ = [
    "ErrorKind",
    "ExecutionError",
    "ExecutionOutcome",
    "ExecutionResult",
    "StepBudget",
    "execute_code",
    "run_drawing_code",
    "safe_builtins",
    "validate_code",
]
