"""Response envelope shared by every endpoint."""

from typing import Any, Optional

from pydantic import BaseModel


class APIResponse(BaseModel):
    """``{success, message, data?, error?}`` wrapper around every payload."""

    success: bool
    message: str
    data: Optional[Any] = None
    error: Optional[str] = None

    def to_body(self) -> dict:
        """Dump the envelope, leaving out ``data``/``error`` when unset."""
        body = {"success": self.success, "message": self.message}
        if self.data is not None:
            body["data"] = self.data
        if self.error is not None:
            body["error"] = self.error
        return body


def ok(message: str, data: Any = None) -> dict:
    return APIResponse(success=True, message=message, data=data).to_body()


def fail(message: str, error: Optional[str] = None) -> dict:
    return APIResponse(success=False, message=message, error=error).to_body()
