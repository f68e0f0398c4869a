"""Response envelope models.

Every success body is {"data": ...}, collections add {"meta": ...} and every
error body is {"error": {...}}.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, computed_field

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """Pagination metadata for collections.

    Attributes:
        total: Total number of items across all pages.
        page: Current page number (1-indexed).
        per_page: Number of items per page.
    """

    total: int
    page: int
    per_page: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        """Calculate total number of pages.

        Returns:
            Number of pages needed to display all items.
            Returns 0 if total is 0.
        """
        if self.total == 0:
            return 0
        return (self.total + self.per_page - 1) // self.per_page


class DataResponse(BaseModel, Generic[T]):
    """Standard response envelope for single resources.

    Usage:
        @router.get("/proposals/{proposal_id}")
        async def get_proposal(proposal_id: str) -> DataResponse[dict]:
            return DataResponse(data=repo.get(proposal_id))
    """

    data: T


class ListResponse(BaseModel, Generic[T]):
    """Standard response envelope for collections.

    Usage:
        @router.get("/proposals")
        async def list_proposals(
            pagination: PaginationParams = Depends(pagination_params)
        ) -> ListResponse[dict]:
            records = repo.list()
            return ListResponse(
                data=pagination.slice(records),
                meta=PaginationMeta(
                    total=len(records),
                    page=pagination.page,
                    per_page=pagination.per_page,
                ),
            )
    """

    data: list[T]
    meta: PaginationMeta


class ErrorDetail(BaseModel):
    """Error detail for response body.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        details: Optional list of field-level errors (for validation).
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    error: ErrorDetail
