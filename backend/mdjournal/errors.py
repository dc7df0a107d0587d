from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, status


class ReportError(HTTPException):
    """Base for errors surfaced to API callers as ``{"code", "message"}``."""

    status_code_default = status.HTTP_400_BAD_REQUEST
    code = "REPORT_ERROR"

    def __init__(self, message: str, *, code: Optional[str] = None):
        self.code = code or self.code
        self.message = message
        super().__init__(status_code=self.status_code_default, detail={"code": self.code, "message": message})

    def __str__(self) -> str:
        return self.message


class InvalidInputError(ReportError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    code = "INVALID_REQUEST"


class ReportNotFoundError(ReportError):
    status_code_default = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
