"""Exception hierarchy for code_canvas."""


class CodeCanvasError(Exception):
    """Base class for all code_canvas errors."""


class CodeExecutionError(CodeCanvasError):
    """Submitted drawing code failed to parse, validate or run.

    Always recoverable by resubmitting corrected code.
    """

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class StepLimitExceeded(CodeExecutionError):
    """Drawing code exceeded its execution step budget."""


class RenderFailure(CodeCanvasError):
    """A scene could not be rasterized."""


class LineageError(CodeCanvasError):
    """Base class for lineage tracking errors."""


class LineageWriteFailure(LineageError):
    """The lineage store failed to persist a generation node."""


class ThreadNotFoundError(LineageError):
    """Thread does not exist, was deleted, or belongs to someone else."""


class GenerationNotFoundError(LineageError):
    """Generation node does not exist."""


class ThreadBusyError(LineageError):
    """A run is already in progress on the thread."""


class RunStateError(LineageError):
    """Operation not allowed in the run's current state."""


class AttemptBudgetExhausted(RunStateError):
    """The run has used every execution attempt it was allowed."""
