# lms_core/utils/pagination.py
"""Pagination utilities for consistent paged results."""
from math import ceil
from typing import Optional
from pydantic import BaseModel, Field, ValidationError

from ..core.config import settings
from ..core.exceptions import BadRequestError


class PaginationParams(BaseModel):
    """Standard pagination parameters."""
    page: int = Field(1, ge=1, description="Page number (starts from 1)")
    size: int = Field(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page")

    @classmethod
    def parse(cls, page: int = 1, size: Optional[int] = None) -> "PaginationParams":
        """Validate raw paging input, turning violations into a 400."""
        try:
            return cls(page=page, **({"size": size} if size is not None else {}))
        except ValidationError as e:
            raise BadRequestError(f"Invalid pagination parameters: {e.errors()[0]['msg']}")


class PaginationMeta(BaseModel):
    """Pagination metadata."""
    page: int
    size: int
    total: int
    total_pages: int
    has_next: bool
    has_previous: bool


class Paginator:
    """Pagination utility class."""

    @staticmethod
    def calculate_offset(page: int, size: int) -> int:
        """Calculate offset for database queries."""
        return (page - 1) * size

    @staticmethod
    def create_meta(page: int, size: int, total: int) -> PaginationMeta:
        """Create pagination metadata."""
        total_pages = ceil(total / size) if size > 0 else 0
        return PaginationMeta(
            page=page,
            size=size,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1
        )
