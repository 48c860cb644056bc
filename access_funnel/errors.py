"""Error taxonomy for the access funnel.

User-facing errors are raised inside the engine and rendered as Error entries;
PersistenceFailure never reaches the user.
"""
from __future__ import annotations

from access_funnel import messages


class FunnelError(Exception):
    """Base class for errors rendered into the Output Log."""

    @property
    def message(self) -> str:
        return str(self)


class UnknownCommand(FunnelError):
    def __init__(self):
        super().__init__(messages.UNKNOWN_COMMAND)


class InvalidInput(FunnelError):
    def __init__(self, expected_id: str, hint: str):
        self.expected_id = expected_id
        self.hint = hint
        super().__init__(messages.INVALID_INPUT.format(expected_id=expected_id, hint=hint))


class ValidationRejected(FunnelError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"[ERROR] {reason}")


class PersistenceFailure(Exception):
    """Progress Store unreachable, erroring, or timed out."""

    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause!r}" if cause is not None else ""
        super().__init__(f"{operation} failed{detail}")


class CatalogError(ValueError):
    """Command catalog could not be read or is structurally invalid."""
