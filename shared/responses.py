"""
Standard response envelope shared by every service.

Success: ``{"success": true, "message": ..., "data": {...}}``
Failure: ``{"success": false, "message": ..., "errorCode": ..., "errors": [...]}``
"""

from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field


class FieldError(BaseModel):
    """Single field-level validation failure."""

    field: str
    message: str


class SuccessEnvelope(BaseModel):
    success: bool = True
    message: str = "Success"
    data: Optional[Dict[str, Any]] = None


class ErrorEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    message: str = "Internal server error"
    error_code: Optional[str] = Field(default=None, alias="errorCode")
    errors: Optional[List[FieldError]] = None
    error: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def success_response(message: str = "Success", data: Optional[Dict[str, Any]] = None,
                     status_code: int = 200) -> JSONResponse:
    """Build a JSON response carrying the success envelope."""
    envelope = SuccessEnvelope(message=message, data=data)
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(mode="json", exclude_none=True),
    )


def error_response(envelope: ErrorEnvelope, status_code: int) -> JSONResponse:
    """Build a JSON response carrying the failure envelope."""
    return JSONResponse(status_code=status_code, content=envelope.to_wire())
