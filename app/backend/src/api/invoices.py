"""Invoice endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.backend.src.core.security import Identity, get_current_identity
from app.backend.src.schemas.invoice import (
    InvoiceCreate,
    InvoiceDuplicate,
    InvoiceList,
    InvoiceListQuery,
    InvoiceRead,
    InvoiceStatusChange,
    InvoiceStatusUpdate,
    InvoiceUpdate,
    NextInvoiceNumber,
)
from app.backend.src.services import invoices as invoice_service
from ..db import get_session_dependency

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=InvoiceList)
def list_invoices(
    query: Annotated[InvoiceListQuery, Query()],
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> InvoiceList:
    return invoice_service.list_invoices(session, identity.user_id, query)


@router.get("/next-number", response_model=NextInvoiceNumber)
def next_invoice_number(
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> NextInvoiceNumber:
    """Preview the number that the next created invoice would receive."""

    return invoice_service.get_next_invoice_number(session, identity.user_id)


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(
    invoice_id: UUID,
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> InvoiceRead:
    return invoice_service.find_invoice(session, identity.user_id, invoice_id)


@router.post("", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
def create_invoice(
    payload: InvoiceCreate,
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> InvoiceRead:
    return invoice_service.create_invoice(session, identity.user_id, payload)


@router.put("/{invoice_id}", response_model=InvoiceRead)
def update_invoice(
    invoice_id: UUID,
    payload: InvoiceUpdate,
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> InvoiceRead:
    return invoice_service.update_invoice(session, identity.user_id, invoice_id, payload)


@router.patch("/{invoice_id}/status", response_model=InvoiceStatusChange)
def update_invoice_status(
    invoice_id: UUID,
    payload: InvoiceStatusUpdate,
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> InvoiceStatusChange:
    return invoice_service.update_invoice_status(
        session, identity.user_id, invoice_id, payload.status
    )


@router.post(
    "/{invoice_id}/duplicate",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
def duplicate_invoice(
    invoice_id: UUID,
    payload: InvoiceDuplicate | None = Body(default=None),
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> InvoiceRead:
    """Copy an invoice into a new draft dated today."""

    invoice_number = payload.invoice_number if payload is not None else None
    return invoice_service.duplicate_invoice(
        session, identity.user_id, invoice_id, invoice_number
    )


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(
    invoice_id: UUID,
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> Response:
    invoice_service.remove_invoice(session, identity.user_id, invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
