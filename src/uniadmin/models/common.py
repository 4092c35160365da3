"""Response envelopes shared across the API: errors and paginated listings."""

import math
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

ItemT = TypeVar("ItemT")


class ErrorDetail(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str
    message: str
    details: dict[str, Any] | list[Any] | str | None = None
    path: str | None = None
    trace_id: str = Field(..., min_length=1, max_length=128)
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Body of every failed request: ``{"schema_version": ..., "error": {...}}``."""

    model_config = ConfigDict(extra="forbid")

    schema_version: str = "1.0"
    error: ErrorDetail


class Page(BaseModel, Generic[ItemT]):
    """One page of a listing plus the totals needed to page through the rest."""

    model_config = ConfigDict(frozen=True)

    items: list[ItemT]
    total: int
    page: int
    limit: int
    pages: int

    @classmethod
    def build(cls, items: list[ItemT], total: int, page: int, limit: int) -> "Page[ItemT]":
        return cls(
            items=items,
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit) if total else 0,
        )
