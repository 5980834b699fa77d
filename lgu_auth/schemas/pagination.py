"""Shared pagination schemas for list endpoints."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from lgu_auth.schemas.base import CamelModel

T = TypeVar("T")


class PaginationParams(BaseModel):
    """Query params for paginated list endpoints."""

    limit: int = Field(default=50, ge=1, le=200, description="Max items per page")
    offset: int = Field(default=0, ge=0, description="Number of items to skip")


class PaginatedResponse(CamelModel, Generic[T]):
    """Standard paginated response: items + total + cursor info."""

    items: list[T]
    total: int
    limit: int
    offset: int
    has_more: bool

    @classmethod
    def build(cls, items: list, total: int, params: PaginationParams) -> "PaginatedResponse[T]":
        return cls(
            items=items,
            total=total,
            limit=params.limit,
            offset=params.offset,
            has_more=params.offset + len(items) < total,
        )
