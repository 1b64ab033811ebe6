from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class CursorPage(BaseModel, Generic[T]):
    items: list[T]
    next_cursor: str | None = None
    has_more: bool = False


class ErrorPayload(BaseModel):
    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)
    hint: str | None = None


class ErrorResponse(BaseModel):
    detail: ErrorPayload
