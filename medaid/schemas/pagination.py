"""Pagination schemas and utilities."""
from typing import Generic, TypeVar, List
from pydantic import Field

from medaid.schemas.common import CamelModel

T = TypeVar("T")


class PaginationParams(CamelModel):
    """Common pagination parameters."""
    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    page_size: int = Field(default=20, ge=1, le=100, description="Number of items per page")

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


class PaginationMeta(CamelModel):
    """Pagination metadata."""
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next: bool
    has_previous: bool


class PaginatedResponse(CamelModel, Generic[T]):
    """Generic paginated response."""
    items: List[T]
    pagination: PaginationMeta

    @classmethod
    def create(
        cls,
        items: List[T],
        total_items: int,
        params: PaginationParams,
    ) -> "PaginatedResponse[T]":
        """
        Build a page of results with its metadata.

        Args:
            items: Items on the current page
            total_items: Total number of items across all pages
            params: Pagination parameters used for the query

        Returns:
            PaginatedResponse with items and metadata
        """
        total_pages = (total_items + params.page_size - 1) // params.page_size

        return cls(
            items=items,
            pagination=PaginationMeta(
                page=params.page,
                page_size=params.page_size,
                total_items=total_items,
                total_pages=total_pages,
                has_next=params.page < total_pages,
                has_previous=params.page > 1,
            ),
        )
