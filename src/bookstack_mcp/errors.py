"""Error taxonomy for bookstack-mcp.

Every failure that reaches a tool caller is a BookStackError carrying an
ErrorCode (the error kind) and a human-readable message. The MCP server and
the CLI render it as JSON via to_json().
"""

import json
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Kinds of errors surfaced to callers."""

    VALIDATION_ERROR = "VALIDATION_ERROR"  # Malformed or missing caller arguments
    UNAUTHORIZED = "UNAUTHORIZED"  # BookStack rejected the token (401/403)
    NOT_FOUND = "NOT_FOUND"  # BookStack returned 404, or a template had no body
    REMOTE_ERROR = "REMOTE_ERROR"  # Any other non-2xx response
    REMOTE_UNAVAILABLE = "REMOTE_UNAVAILABLE"  # Timeouts and connection failures
    SCHEMA_MISMATCH = "SCHEMA_MISMATCH"  # Response did not match the expected shape
    INTERNAL_ERROR = "INTERNAL_ERROR"  # Anything unanticipated


class BookStackError(Exception):
    """An error with a machine-readable kind and a human-readable message."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_validation_error(cls, error: Exception, what: str) -> "BookStackError":
        """Wrap a pydantic ValidationError raised while parsing caller arguments."""
        errors = getattr(error, "errors", None)
        details = {"errors": errors(include_url=False)} if callable(errors) else None
        return cls(
            ErrorCode.VALIDATION_ERROR,
            f"Invalid arguments for {what}: {error}",
            details,
        )


def format_error_json(code: ErrorCode | str, message: str, details: dict | None = None) -> str:
    """Format an error as JSON for --json-errors output."""
    code_value = code.value if isinstance(code, ErrorCode) else code
    error: dict[str, dict[str, object]] = {"error": {"code": code_value, "message": message}}
    if details:
        error["error"]["details"] = details
    return json.dumps(error, default=str)
