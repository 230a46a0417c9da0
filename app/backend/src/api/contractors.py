"""Contractor (saved buyer) endpoints."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.backend.src.core.security import Identity, get_current_identity
from app.backend.src.schemas.contractor import (
    ContractorCreate,
    ContractorList,
    ContractorListQuery,
    ContractorRead,
    ContractorUpdate,
)
from app.backend.src.services import contractors as contractor_service
from ..db import get_session_dependency

router = APIRouter(prefix="/contractors", tags=["contractors"])


@router.get("", response_model=ContractorList)
def list_contractors(
    query: Annotated[ContractorListQuery, Query()],
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> ContractorList:
    return contractor_service.list_contractors(session, identity.user_id, query)


@router.get("/{contractor_id}", response_model=ContractorRead)
def get_contractor(
    contractor_id: UUID,
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> ContractorRead:
    contractor = contractor_service.get_contractor(session, identity.user_id, contractor_id)
    return contractor_service.serialize_contractor(contractor)


@router.post("", response_model=ContractorRead, status_code=status.HTTP_201_CREATED)
def create_contractor(
    payload: ContractorCreate,
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> ContractorRead:
    contractor = contractor_service.create_contractor(session, identity.user_id, payload)
    return contractor_service.serialize_contractor(contractor)


@router.put("/{contractor_id}", response_model=ContractorRead)
def update_contractor(
    contractor_id: UUID,
    payload: ContractorUpdate,
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> ContractorRead:
    contractor = contractor_service.update_contractor(
        session, identity.user_id, contractor_id, payload
    )
    return contractor_service.serialize_contractor(contractor)


@router.delete("/{contractor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_contractor(
    contractor_id: UUID,
    session: Session = Depends(get_session_dependency),
    identity: Identity = Depends(get_current_identity),
) -> Response:
    contractor_service.remove_contractor(session, identity.user_id, contractor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
