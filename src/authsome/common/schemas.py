"""Shared Pydantic schemas for Authsome."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "authsome"


class ErrorResponse(BaseModel):
    error: str
    code: str
    detail: str = ""


class ResponseModel(BaseModel, Generic[T]):
    """Success envelope: optional message plus the payload."""

    message: Optional[str] = None
    data: Optional[T] = None

    @classmethod
    def of(cls, data=None, message: Optional[str] = None):
        return cls(message=message, data=data)
