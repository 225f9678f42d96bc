from __future__ import annotations

from typing import Any, Optional


class BriefflowError(RuntimeError):
    status_code = 500
    code = "internal_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def to_content(self) -> dict[str, Any]:
        return {"detail": self.detail, "code": self.code}


class UnauthorizedError(BriefflowError):
    status_code = 401
    code = "unauthorized"


class ForbiddenError(BriefflowError):
    status_code = 403
    code = "forbidden"


class NotFoundError(BriefflowError):
    status_code = 404
    code = "not_found"


class ValidationFailedError(BriefflowError):
    """Raised when input or business preconditions fail; ``errors`` lists each failure."""

    status_code = 422
    code = "validation_failed"

    def __init__(self, detail: str, errors: Optional[list[dict[str, Any]]] = None) -> None:
        super().__init__(detail)
        self.errors = errors or []

    def to_content(self) -> dict[str, Any]:
        content = super().to_content()
        content["errors"] = self.errors
        return content


class StateConflictError(BriefflowError):
    """The entity was not in the expected status when the guarded update ran."""

    status_code = 409
    code = "state_conflict"

    def __init__(self, detail: str, *, expected: Any = None, actual: Any = None) -> None:
        super().__init__(detail)
        self.expected = expected
        self.actual = actual

    def to_content(self) -> dict[str, Any]:
        content = super().to_content()
        content["expected"] = _status_value(self.expected)
        content["actual"] = _status_value(self.actual)
        return content


def _status_value(value: Any) -> Any:
    if isinstance(value, (list, tuple, set, frozenset)):
        return sorted(_status_value(item) for item in value)
    return getattr(value, "value", value)
