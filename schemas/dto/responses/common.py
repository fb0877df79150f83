"""
Common response DTOs shared across endpoints.

ErrorResponse    — error shape from AppError.to_dict()
SuccessResponse  — the bare {success: true} acknowledgement
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class ErrorResponse(BaseModel):
    """Error JSON body produced by the AppError exception handler."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error: str
    errors: list[str]
    code: str
    field: Optional[str] = None
    details: Optional[Any] = None


class SuccessResponse(BaseModel):
    """Acknowledgement returned by every endorsement access endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
