"""Record endpoints.

The same routes are mounted for brokers, policyholders, proposals,
beneficiaries and offers:
- GET /{resource}: list (soft-deleted hidden unless include_deleted=true)
- GET /{resource}/bin: soft-deleted records only
- GET /{resource}/{id}: one record
- GET /{resource}/{id}/history: edit history of one record
- DELETE /{resource}/{id}: soft delete (moves the record to the bin)
- PUT /{resource}/{id}/restore: take a record out of the bin

Reads require "read"; soft delete and restore require "delete".

Brokers additionally have a review step (requires "manage-brokers"):
- POST /brokers/{id}/approve
- POST /brokers/{id}/decline
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from portal.api.deps import Audit, BrokerManager, Deleter, Reader
from portal.core.auth import CurrentUser
from portal.core.errors import NotFoundError
from portal.core.pagination import PaginationParams, pagination_params
from portal.core.responses import DataResponse, ListResponse, PaginationMeta
from portal.repositories import record_repository
from portal.repositories.record_repository import RecordRepository
from portal.schemas.records import BrokerRecord, EditHistoryEntry
from portal.services.audit_log import AuditLog

Pagination = Annotated[PaginationParams, Depends(pagination_params)]


def _paginate(records: list[Any], pagination: PaginationParams) -> dict:
    return {
        "data": pagination.slice(records),
        "meta": PaginationMeta(
            total=len(records),
            page=pagination.page,
            per_page=pagination.per_page,
        ),
    }


def _actor_name(user: CurrentUser) -> str:
    return user.name or user.email


def _audit_change(
    audit: AuditLog,
    repo: RecordRepository,
    action: str,
    record_id: str,
    user: CurrentUser,
) -> None:
    audit.record(
        f"{repo.resource.upper()}_{action}",
        repo.resource.lower(),
        resource_id=record_id,
        user_id=user.id,
    )


def build_record_router(repo: RecordRepository) -> APIRouter:
    """Create the router for one record type.

    Args:
        repo: Repository backing the routes.

    Returns:
        APIRouter to mount under the resource prefix.
    """
    router = APIRouter()
    model = repo.model

    @router.get("", response_model=ListResponse[model])
    async def list_records(
        _user: Reader,
        pagination: Pagination,
        include_deleted: Annotated[bool, Query()] = False,
    ) -> dict:
        """List records."""
        records = repo.find_all(include_deleted=include_deleted)
        return _paginate(records, pagination)

    @router.get("/bin", response_model=ListResponse[model])
    async def list_deleted_records(
        _user: Reader,
        pagination: Pagination,
    ) -> dict:
        """List soft-deleted records."""
        return _paginate(repo.find_deleted(), pagination)

    @router.get("/{record_id}", response_model=DataResponse[model])
    async def get_record(record_id: str, _user: Reader) -> dict:
        """Get one record, soft-deleted included."""
        record = repo.get(record_id)
        if record is None:
            raise NotFoundError(repo.resource, record_id)
        return {"data": record}

    @router.get("/{record_id}/history")
    async def get_record_history(
        record_id: str, _user: Reader
    ) -> DataResponse[list[EditHistoryEntry]]:
        """Get the edit history of one record."""
        history = repo.history(record_id)
        if history is None:
            raise NotFoundError(repo.resource, record_id)
        return DataResponse(data=history)

    @router.delete("/{record_id}", response_model=DataResponse[model])
    async def soft_delete_record(record_id: str, user: Deleter, audit: Audit) -> dict:
        """Move a record to the bin."""
        record = repo.soft_delete(
            record_id, user_id=user.id, user_name=_actor_name(user)
        )
        if record is None:
            raise NotFoundError(repo.resource, record_id)
        _audit_change(audit, repo, "SOFT_DELETED", record_id, user)
        return {"data": record}

    @router.put("/{record_id}/restore", response_model=DataResponse[model])
    async def restore_record(record_id: str, user: Deleter, audit: Audit) -> dict:
        """Restore a soft-deleted record."""
        record = repo.restore(record_id, user_id=user.id, user_name=_actor_name(user))
        if record is None:
            raise NotFoundError(repo.resource, record_id)
        _audit_change(audit, repo, "RESTORED", record_id, user)
        return {"data": record}

    return router


def build_broker_review_router(repo: RecordRepository) -> APIRouter:
    """Create the approve/decline routes for broker records."""
    router = APIRouter()

    async def _review(
        record_id: str, *, approved: bool, user: CurrentUser, audit: AuditLog
    ) -> dict:
        record = repo.review(
            record_id, approved=approved, user_id=user.id, user_name=_actor_name(user)
        )
        if record is None:
            raise NotFoundError(repo.resource, record_id)
        _audit_change(
            audit, repo, "APPROVED" if approved else "DECLINED", record_id, user
        )
        return {"data": record}

    @router.post("/{record_id}/approve", response_model=DataResponse[BrokerRecord])
    async def approve_broker(record_id: str, user: BrokerManager, audit: Audit) -> dict:
        """Approve a pending broker."""
        return await _review(record_id, approved=True, user=user, audit=audit)

    @router.post("/{record_id}/decline", response_model=DataResponse[BrokerRecord])
    async def decline_broker(record_id: str, user: BrokerManager, audit: Audit) -> dict:
        """Decline a pending broker."""
        return await _review(record_id, approved=False, user=user, audit=audit)

    return router


brokers_router = build_record_router(record_repository.brokers)
broker_review_router = build_broker_review_router(record_repository.brokers)
policyholders_router = build_record_router(record_repository.policyholders)
proposals_router = build_record_router(record_repository.proposals)
beneficiaries_router = build_record_router(record_repository.beneficiaries)
offers_router = build_record_router(record_repository.offers)
