"""Pagination utilities.

page (default 1), per_page (default 20, max 100).
"""

from dataclasses import dataclass
from typing import TypeVar

from fastapi import Query

T = TypeVar("T")


@dataclass
class PaginationParams:
    """Pagination query parameters.

    Attributes:
        page: Current page number (1-indexed).
        per_page: Number of items per page.
    """

    page: int
    per_page: int

    @property
    def offset(self) -> int:
        """Number of items to skip (0 for page 1)."""
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        """Maximum number of items to return (same as per_page)."""
        return self.per_page

    def slice(self, items: list[T]) -> list[T]:
        """Return the current page of an in-memory list.

        Args:
            items: Full, already filtered collection.

        Returns:
            Items on the requested page (empty past the last page).
        """
        return items[self.offset : self.offset + self.limit]


def pagination_params(
    page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(
        default=20,
        ge=1,
        le=100,
        description="Items per page (max 100)",
    ),
) -> PaginationParams:
    """FastAPI dependency for pagination query parameters.

    Args:
        page: Page number (default 1, must be >= 1).
        per_page: Items per page (default 20, between 1 and 100).

    Returns:
        PaginationParams with validated page and per_page.
    """
    return PaginationParams(page=page, per_page=per_page)
