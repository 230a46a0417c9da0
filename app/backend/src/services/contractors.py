"""Service layer functions for the user's contractors (regular buyers)."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.backend.src.core.errors import ContractorNipExistsError, ContractorNotFoundError
from app.backend.src.models import Contractor
from app.backend.src.schemas.common import PaginationMeta, SortOrder
from app.backend.src.schemas.contractor import (
    ContractorCreate,
    ContractorList,
    ContractorListQuery,
    ContractorRead,
    ContractorSortField,
    ContractorUpdate,
)

from .metrics import contractor_operations_total, track_operation

LOGGER = structlog.get_logger(__name__)

SORT_COLUMNS = {
    ContractorSortField.NAME: Contractor.name,
    ContractorSortField.CREATED_AT: Contractor.created_at,
    ContractorSortField.UPDATED_AT: Contractor.updated_at,
}


def _active_contractors(user_id: UUID) -> Select:
    return select(Contractor).where(
        Contractor.user_id == user_id,
        Contractor.deleted_at.is_(None),
    )


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def find_active_contractor(
    session: Session, user_id: UUID, contractor_id: UUID
) -> Contractor | None:
    """Return the user's contractor if it exists and is not soft-deleted."""

    return session.execute(
        _active_contractors(user_id).where(Contractor.id == contractor_id)
    ).scalar_one_or_none()


def get_contractor(session: Session, user_id: UUID, contractor_id: UUID) -> Contractor:
    contractor = find_active_contractor(session, user_id, contractor_id)
    if contractor is None:
        LOGGER.warning(
            "contractor_not_found",
            user_id=str(user_id),
            contractor_id=str(contractor_id),
        )
        raise ContractorNotFoundError(contractor_id)
    return contractor


def _check_nip_uniqueness(
    session: Session,
    user_id: UUID,
    nip: str,
    exclude_contractor_id: UUID | None = None,
) -> None:
    stmt = _active_contractors(user_id).where(Contractor.nip == nip)
    if exclude_contractor_id is not None:
        stmt = stmt.where(Contractor.id != exclude_contractor_id)
    if session.execute(stmt.limit(1)).scalar_one_or_none() is not None:
        raise ContractorNipExistsError(nip)


def _commit_or_conflict(session: Session, nip: str | None) -> None:
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        LOGGER.warning("contractor_nip_conflict", nip=nip, error=str(exc.orig))
        raise ContractorNipExistsError(nip or "") from exc


def list_contractors(
    session: Session, user_id: UUID, query: ContractorListQuery
) -> ContractorList:
    """Return a page of the user's contractors, optionally filtered by name or NIP."""

    stmt = _active_contractors(user_id)
    if query.search and query.search.strip():
        term = f"%{_escape_like(query.search.strip())}%"
        stmt = stmt.where(
            or_(
                Contractor.name.ilike(term, escape="\\"),
                Contractor.nip.ilike(term, escape="\\"),
            )
        )

    total = session.scalar(select(func.count()).select_from(stmt.subquery())) or 0

    column = SORT_COLUMNS[query.sort_by]
    ordering = column.asc() if query.sort_order == SortOrder.ASC else column.desc()
    rows = session.execute(
        stmt.order_by(ordering, Contractor.id)
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
    ).scalars()

    return ContractorList(
        data=[serialize_contractor(row) for row in rows],
        pagination=PaginationMeta.build(page=query.page, limit=query.limit, total=total),
    )


@track_operation(contractor_operations_total, "create")
def create_contractor(
    session: Session, user_id: UUID, payload: ContractorCreate
) -> Contractor:
    if payload.nip:
        _check_nip_uniqueness(session, user_id, payload.nip)

    contractor = Contractor(
        user_id=user_id,
        name=payload.name,
        address=payload.address or None,
        nip=payload.nip or None,
    )
    session.add(contractor)
    _commit_or_conflict(session, payload.nip)
    LOGGER.info(
        "contractor_created",
        user_id=str(user_id),
        contractor_id=str(contractor.id),
    )
    return contractor


@track_operation(contractor_operations_total, "update")
def update_contractor(
    session: Session, user_id: UUID, contractor_id: UUID, payload: ContractorUpdate
) -> Contractor:
    """Apply the fields present in ``payload``; ``address`` and ``nip`` may be cleared."""

    contractor = get_contractor(session, user_id, contractor_id)
    fields = payload.model_fields_set

    if "nip" in fields and payload.nip is not None:
        _check_nip_uniqueness(session, user_id, payload.nip, contractor_id)

    if "name" in fields and payload.name is not None:
        contractor.name = payload.name.strip()
    if "address" in fields:
        contractor.address = payload.address
    if "nip" in fields:
        contractor.nip = payload.nip

    session.add(contractor)
    _commit_or_conflict(session, contractor.nip)
    session.refresh(contractor)
    return contractor


@track_operation(contractor_operations_total, "delete")
def remove_contractor(session: Session, user_id: UUID, contractor_id: UUID) -> None:
    """Soft delete a contractor. Invoices keep their buyer snapshot."""

    contractor = get_contractor(session, user_id, contractor_id)
    contractor.deleted_at = datetime.now(timezone.utc)
    session.add(contractor)
    session.commit()
    LOGGER.info(
        "contractor_deleted",
        user_id=str(user_id),
        contractor_id=str(contractor_id),
    )


def serialize_contractor(contractor: Contractor) -> ContractorRead:
    return ContractorRead(
        id=contractor.id,
        name=contractor.name,
        address=contractor.address,
        nip=contractor.nip,
        created_at=contractor.created_at,
        updated_at=contractor.updated_at,
    )


__all__ = [
    "create_contractor",
    "find_active_contractor",
    "get_contractor",
    "list_contractors",
    "remove_contractor",
    "serialize_contractor",
    "update_contractor",
]
