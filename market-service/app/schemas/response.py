# app/schemas/response.py
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Success envelope: every successful endpoint returns {"data": ...}."""

    data: T


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None


class ResultMessage(BaseModel):
    result: str = "Success"


def wrap(data) -> dict:
    return {"data": data}
