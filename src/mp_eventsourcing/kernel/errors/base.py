"""Root error class for the event store's error hierarchy."""

from __future__ import annotations

import json
from typing import Any


class BaseError(Exception):
    """Root of every error the event store raises on purpose.

    Args:
        message: Human-readable description.
        code: Machine-readable slug (defaults to ``default_code``).
        detail: Structured context, e.g. the aggregate key and sequence numbers.
        cause: Driver or library exception this error wraps.

    ``retryable`` tells callers and :class:`TenacityRetryPolicy` whether the
    same call may succeed if simply repeated.  Only transient storage failures
    set it; a concurrency conflict needs a fresh read first.
    """

    default_code: str = "base_error"
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        detail: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.detail: dict[str, Any] = dict(detail or {})
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        """Nested form: ``code``, ``message``, ``detail`` and ``cause`` when set."""
        data: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "detail": self.detail,
        }
        if self.cause is not None:
            data["cause"] = repr(self.cause)
        return data

    def log_fields(self) -> dict[str, Any]:
        """Flat key/values for a structlog event; ``detail`` keys are inlined."""
        fields: dict[str, Any] = {"error_code": self.code, **self.detail}
        if self.cause is not None:
            fields["cause"] = repr(self.cause)
        return fields


__all__ = ["BaseError"]
