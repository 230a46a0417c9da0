"""Invoice lifecycle: creation, updates, status changes, duplication and removal.

Every query is scoped to the owning user and ignores soft-deleted invoices.
Seller data is copied from the user's profile when an invoice is created and
never re-synced afterwards; buyer data is likewise stored as a snapshot.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy import Select, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import (
    InternalError,
    InvalidDatesError,
    InvoiceNotFoundError,
    InvoiceNumberExistsError,
    ItemsRequiredError,
)
from app.backend.src.models import Invoice, InvoiceItem
from app.backend.src.schemas.common import PaginationMeta, SortOrder
from app.backend.src.schemas.invoice import (
    BuyerInfo,
    BuyerInput,
    InvoiceCreate,
    InvoiceItemInput,
    InvoiceItemRead,
    InvoiceList,
    InvoiceListQuery,
    InvoiceRead,
    InvoiceSortField,
    InvoiceStatus,
    InvoiceStatusChange,
    InvoiceSummary,
    InvoiceUpdate,
    NextInvoiceNumber,
    SellerInfo,
)

from .calculations import InvoiceTotals, calculate_item_amounts, calculate_totals, format_money
from .contractors import find_active_contractor, get_contractor
from .metrics import invoice_operations_total, track_operation
from .numbering import generate_invoice_number
from .status import (
    requires_complete_profile,
    validate_profile_for_issuing,
    validate_status_transition,
)
from .user_profiles import get_profile, increment_invoice_counter

LOGGER = structlog.get_logger(__name__)

SORT_COLUMNS = {
    InvoiceSortField.INVOICE_NUMBER: Invoice.invoice_number,
    InvoiceSortField.ISSUE_DATE: Invoice.issue_date,
    InvoiceSortField.DUE_DATE: Invoice.due_date,
    InvoiceSortField.TOTAL_GROSS: Invoice.total_gross,
    InvoiceSortField.CREATED_AT: Invoice.created_at,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --------------------------------------------------------------------------
# Lookups and guards
# --------------------------------------------------------------------------
def _active_invoices(user_id: UUID) -> Select:
    return select(Invoice).where(
        Invoice.user_id == user_id,
        Invoice.deleted_at.is_(None),
    )


def _get_invoice_or_404(session: Session, user_id: UUID, invoice_id: UUID) -> Invoice:
    invoice = session.execute(
        _active_invoices(user_id).where(Invoice.id == invoice_id)
    ).scalar_one_or_none()
    if invoice is None:
        LOGGER.warning(
            "invoice_not_found",
            user_id=str(user_id),
            invoice_id=str(invoice_id),
        )
        raise InvoiceNotFoundError(invoice_id)
    return invoice


def _validate_dates(issue_date: date, due_date: date) -> None:
    if due_date < issue_date:
        raise InvalidDatesError()


def _check_invoice_number_uniqueness(
    session: Session,
    user_id: UUID,
    invoice_number: str,
    exclude_invoice_id: UUID | None = None,
) -> None:
    stmt = _active_invoices(user_id).where(Invoice.invoice_number == invoice_number)
    if exclude_invoice_id is not None:
        stmt = stmt.where(Invoice.id != exclude_invoice_id)
    if session.execute(stmt.limit(1)).scalar_one_or_none() is not None:
        LOGGER.warning(
            "invoice_number_exists",
            user_id=str(user_id),
            invoice_number=invoice_number,
        )
        raise InvoiceNumberExistsError(invoice_number)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _build_items(items: list[InvoiceItemInput]) -> list[InvoiceItem]:
    default_unit = get_settings().default_item_unit
    return [
        InvoiceItem(
            position=item.position,
            name=item.name,
            unit=item.unit or default_unit,
            quantity=item.quantity,
            unit_price=item.unit_price,
            vat_rate=item.vat_rate.value,
        )
        for item in items
    ]


def _apply_totals(invoice: Invoice, totals: InvoiceTotals) -> None:
    invoice.total_net = totals.total_net
    invoice.total_vat = totals.total_vat
    invoice.total_gross = totals.total_gross


def _commit(session: Session, event: str, message: str, **context: str) -> None:
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        LOGGER.error(event, error=str(exc), **context)
        raise InternalError(message) from exc


# --------------------------------------------------------------------------
# Serialization
# --------------------------------------------------------------------------
def serialize_item(item: InvoiceItem) -> InvoiceItemRead:
    amounts = calculate_item_amounts(item.quantity, item.unit_price, item.vat_rate)
    return InvoiceItemRead(
        id=item.id,
        position=item.position,
        name=item.name,
        unit=item.unit,
        quantity=format_money(item.quantity),
        unit_price=format_money(item.unit_price),
        vat_rate=item.vat_rate,
        net_amount=format_money(amounts.net),
        vat_amount=format_money(amounts.vat),
        gross_amount=format_money(amounts.gross),
    )


def serialize_invoice(invoice: Invoice) -> InvoiceRead:
    """Return the full representation of an invoice, items ordered by position."""

    items = sorted(invoice.items, key=lambda item: item.position)
    return InvoiceRead(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        status=invoice.status,
        payment_method=invoice.payment_method,
        currency=invoice.currency,
        notes=invoice.notes,
        seller=SellerInfo(
            company_name=invoice.seller_company_name,
            address=invoice.seller_address,
            nip=invoice.seller_nip,
            bank_account=invoice.seller_bank_account,
            logo_url=invoice.seller_logo_url,
        ),
        buyer=BuyerInfo(
            name=invoice.buyer_name,
            address=invoice.buyer_address,
            nip=invoice.buyer_nip,
        ),
        items=[serialize_item(item) for item in items],
        total_net=format_money(invoice.total_net),
        total_vat=format_money(invoice.total_vat),
        total_gross=format_money(invoice.total_gross),
        contractor_id=invoice.contractor_id,
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
    )


def serialize_summary(invoice: Invoice) -> InvoiceSummary:
    return InvoiceSummary(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        status=invoice.status,
        buyer_name=invoice.buyer_name,
        buyer_nip=invoice.buyer_nip,
        total_net=format_money(invoice.total_net),
        total_vat=format_money(invoice.total_vat),
        total_gross=format_money(invoice.total_gross),
        currency=invoice.currency,
        created_at=invoice.created_at,
        updated_at=invoice.updated_at,
    )


# --------------------------------------------------------------------------
# Reads
# --------------------------------------------------------------------------
def list_invoices(session: Session, user_id: UUID, query: InvoiceListQuery) -> InvoiceList:
    """Return one page of the user's invoices with filtering and sorting applied."""

    stmt = _active_invoices(user_id)
    if query.status is not None:
        stmt = stmt.where(Invoice.status == query.status.value)
    if query.search and query.search.strip():
        term = f"%{_escape_like(query.search.strip())}%"
        stmt = stmt.where(
            or_(
                Invoice.invoice_number.ilike(term, escape="\\"),
                Invoice.buyer_name.ilike(term, escape="\\"),
            )
        )
    if query.date_from is not None:
        stmt = stmt.where(Invoice.issue_date >= query.date_from)
    if query.date_to is not None:
        stmt = stmt.where(Invoice.issue_date <= query.date_to)

    total = session.scalar(select(func.count()).select_from(stmt.subquery())) or 0

    column = SORT_COLUMNS[query.sort_by]
    ordering = column.asc() if query.sort_order == SortOrder.ASC else column.desc()
    rows = session.execute(
        stmt.order_by(ordering, Invoice.id)
        .offset((query.page - 1) * query.limit)
        .limit(query.limit)
    ).scalars()

    return InvoiceList(
        data=[serialize_summary(row) for row in rows],
        pagination=PaginationMeta.build(page=query.page, limit=query.limit, total=total),
    )


def find_invoice(session: Session, user_id: UUID, invoice_id: UUID) -> InvoiceRead:
    return serialize_invoice(_get_invoice_or_404(session, user_id, invoice_id))


def get_next_invoice_number(
    session: Session, user_id: UUID, now: date | None = None
) -> NextInvoiceNumber:
    """Preview the number the next invoice would get. The counter is not consumed."""

    profile = get_profile(session, user_id)
    number_format = (
        profile.invoice_number_format or get_settings().default_invoice_number_format
    )
    counter = (profile.invoice_number_counter or 0) + 1
    return NextInvoiceNumber(
        next_number=generate_invoice_number(number_format, counter, now or date.today()),
        format=number_format,
        counter=counter,
    )


# --------------------------------------------------------------------------
# Writes
# --------------------------------------------------------------------------
@track_operation(invoice_operations_total, "create")
def create_invoice(session: Session, user_id: UUID, payload: InvoiceCreate) -> InvoiceRead:
    """Create an invoice with its items and consume one number from the counter.

    The invoice row and its items are written in one transaction: if the
    items cannot be stored the transaction is rolled back, so no invoice is
    left behind without items.
    """

    LOGGER.debug(
        "invoice_create_requested",
        user_id=str(user_id),
        invoice_number=payload.invoice_number,
    )
    if not payload.items:
        raise ItemsRequiredError()
    _validate_dates(payload.issue_date, payload.due_date)
    _check_invoice_number_uniqueness(session, user_id, payload.invoice_number)

    profile = get_profile(session, user_id)
    status = InvoiceStatus(payload.status)
    if requires_complete_profile(status):
        validate_profile_for_issuing(profile)

    if payload.contractor_id is not None:
        get_contractor(session, user_id, payload.contractor_id)

    totals = calculate_totals(payload.items)
    invoice = Invoice(
        user_id=user_id,
        contractor_id=payload.contractor_id,
        invoice_number=payload.invoice_number,
        issue_date=payload.issue_date,
        due_date=payload.due_date,
        status=status.value,
        payment_method=payload.payment_method.value,
        currency=get_settings().default_currency,
        notes=payload.notes or None,
        seller_company_name=profile.company_name or "",
        seller_address=profile.address or "",
        seller_nip=profile.nip or "",
        seller_bank_account=profile.bank_account,
        seller_logo_url=profile.logo_url,
        buyer_name=payload.buyer.name,
        buyer_address=payload.buyer.address or None,
        buyer_nip=payload.buyer.nip or None,
    )
    _apply_totals(invoice, totals)
    session.add(invoice)

    try:
        session.flush()
    except IntegrityError as exc:
        session.rollback()
        LOGGER.warning(
            "invoice_number_conflict",
            user_id=str(user_id),
            invoice_number=payload.invoice_number,
            error=str(exc.orig),
        )
        raise InvoiceNumberExistsError(payload.invoice_number) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        LOGGER.error("invoice_insert_failed", user_id=str(user_id), error=str(exc))
        raise InternalError("Failed to create invoice") from exc

    invoice_id = invoice.id
    try:
        invoice.items = _build_items(payload.items)
        session.flush()
    except SQLAlchemyError as exc:
        # Rolling back removes the invoice row flushed above.
        session.rollback()
        LOGGER.error(
            "invoice_items_insert_failed",
            user_id=str(user_id),
            invoice_id=str(invoice_id),
            error=str(exc),
        )
        raise InternalError("Failed to create invoice items") from exc

    try:
        increment_invoice_counter(session, user_id)
    except SQLAlchemyError as exc:
        session.rollback()
        LOGGER.error("invoice_counter_update_failed", user_id=str(user_id), error=str(exc))
        raise InternalError("Failed to create invoice") from exc
    _commit(
        session,
        "invoice_commit_failed",
        "Failed to create invoice",
        user_id=str(user_id),
        invoice_id=str(invoice_id),
    )
    session.refresh(invoice)

    LOGGER.info(
        "invoice_created",
        user_id=str(user_id),
        invoice_id=str(invoice.id),
        invoice_number=invoice.invoice_number,
        status=invoice.status,
        total_gross=format_money(invoice.total_gross),
    )
    return serialize_invoice(invoice)


@track_operation(invoice_operations_total, "update")
def update_invoice(
    session: Session, user_id: UUID, invoice_id: UUID, payload: InvoiceUpdate
) -> InvoiceRead:
    """Apply a partial update.

    Fields absent from ``payload`` keep their values. When ``items`` is
    present the whole item set is replaced and totals are recomputed;
    otherwise items and totals are left untouched. All validation happens
    before anything is written.
    """

    invoice = _get_invoice_or_404(session, user_id, invoice_id)
    fields = payload.model_fields_set

    issue_date = payload.issue_date if payload.issue_date is not None else invoice.issue_date
    due_date = payload.due_date if payload.due_date is not None else invoice.due_date
    _validate_dates(issue_date, due_date)

    number_changed = (
        payload.invoice_number is not None
        and payload.invoice_number != invoice.invoice_number
    )
    if number_changed:
        _check_invoice_number_uniqueness(
            session, user_id, payload.invoice_number, exclude_invoice_id=invoice.id
        )

    if payload.status is not None and payload.status.value != invoice.status:
        validate_status_transition(invoice.status, payload.status)
        if requires_complete_profile(payload.status):
            validate_profile_for_issuing(get_profile(session, user_id))

    if "contractor_id" in fields and payload.contractor_id is not None:
        get_contractor(session, user_id, payload.contractor_id)

    replace_items = "items" in fields and payload.items is not None
    if replace_items and not payload.items:
        raise ItemsRequiredError()
    totals = calculate_totals(payload.items) if replace_items else None

    if payload.invoice_number is not None:
        invoice.invoice_number = payload.invoice_number
    invoice.issue_date = issue_date
    invoice.due_date = due_date
    if payload.status is not None:
        invoice.status = payload.status.value
    if payload.payment_method is not None:
        invoice.payment_method = payload.payment_method.value
    if "notes" in fields:
        invoice.notes = payload.notes
    if "contractor_id" in fields:
        invoice.contractor_id = payload.contractor_id

    if payload.buyer is not None:
        buyer_fields = payload.buyer.model_fields_set
        if payload.buyer.name is not None:
            invoice.buyer_name = payload.buyer.name
        if "address" in buyer_fields:
            invoice.buyer_address = payload.buyer.address
        if "nip" in buyer_fields:
            invoice.buyer_nip = payload.buyer.nip

    invoice.updated_at = _utcnow()

    try:
        if replace_items:
            # Old items go first so the new set can reuse their positions.
            invoice.items.clear()
            session.flush()
            invoice.items.extend(_build_items(payload.items))
            _apply_totals(invoice, totals)
        session.flush()
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        if number_changed:
            LOGGER.warning(
                "invoice_number_conflict",
                user_id=str(user_id),
                invoice_number=payload.invoice_number,
                error=str(exc.orig),
            )
            raise InvoiceNumberExistsError(payload.invoice_number) from exc
        LOGGER.error("invoice_update_failed", invoice_id=str(invoice_id), error=str(exc))
        raise InternalError("Failed to update invoice") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        LOGGER.error("invoice_update_failed", invoice_id=str(invoice_id), error=str(exc))
        raise InternalError("Failed to update invoice") from exc

    session.refresh(invoice)
    LOGGER.info(
        "invoice_updated",
        user_id=str(user_id),
        invoice_id=str(invoice_id),
        fields=sorted(fields),
    )
    return serialize_invoice(invoice)


@track_operation(invoice_operations_total, "status")
def update_invoice_status(
    session: Session, user_id: UUID, invoice_id: UUID, status: InvoiceStatus
) -> InvoiceStatusChange:
    """Move an invoice to ``status`` if the transition and seller profile allow it."""

    invoice = _get_invoice_or_404(session, user_id, invoice_id)
    requested = InvoiceStatus(status)
    validate_status_transition(invoice.status, requested)
    if requires_complete_profile(requested):
        validate_profile_for_issuing(get_profile(session, user_id))

    previous_status = invoice.status
    invoice.status = requested.value
    invoice.updated_at = _utcnow()
    session.add(invoice)
    _commit(
        session,
        "invoice_status_update_failed",
        "Failed to update invoice status",
        invoice_id=str(invoice_id),
    )

    LOGGER.info(
        "invoice_status_changed",
        user_id=str(user_id),
        invoice_id=str(invoice_id),
        previous_status=previous_status,
        status=requested.value,
    )
    return InvoiceStatusChange(
        id=invoice.id,
        invoice_number=invoice.invoice_number,
        status=requested,
        updated_at=invoice.updated_at,
    )


@track_operation(invoice_operations_total, "duplicate")
def duplicate_invoice(
    session: Session,
    user_id: UUID,
    invoice_id: UUID,
    invoice_number: str | None = None,
    *,
    today: date | None = None,
) -> InvoiceRead:
    """Create a new draft from an existing invoice.

    The copy is dated ``today`` (issue and due date), keeps the buyer,
    contractor, payment method, notes and items of the source, and gets
    either ``invoice_number`` or the next number from the user's counter.
    Items are renumbered 1..N in their original order.
    """

    source = _get_invoice_or_404(session, user_id, invoice_id)
    today = today or date.today()

    if invoice_number:
        _check_invoice_number_uniqueness(session, user_id, invoice_number)
        new_number = invoice_number
    else:
        new_number = get_next_invoice_number(session, user_id, now=today).next_number

    contractor_id = source.contractor_id
    if contractor_id is not None and find_active_contractor(session, user_id, contractor_id) is None:
        LOGGER.info(
            "duplicate_contractor_dropped",
            invoice_id=str(invoice_id),
            contractor_id=str(contractor_id),
        )
        contractor_id = None

    source_items = sorted(source.items, key=lambda item: item.position)
    payload = InvoiceCreate(
        invoice_number=new_number,
        issue_date=today,
        due_date=today,
        status=InvoiceStatus.DRAFT,
        payment_method=source.payment_method,
        notes=source.notes,
        contractor_id=contractor_id,
        buyer=BuyerInput(
            name=source.buyer_name,
            address=source.buyer_address,
            nip=source.buyer_nip,
        ),
        items=[
            InvoiceItemInput(
                position=index,
                name=item.name,
                unit=item.unit,
                quantity=format_money(item.quantity),
                unit_price=format_money(item.unit_price),
                vat_rate=item.vat_rate,
            )
            for index, item in enumerate(source_items, start=1)
        ],
    )

    LOGGER.info(
        "invoice_duplicate_requested",
        user_id=str(user_id),
        source_invoice_id=str(invoice_id),
        invoice_number=new_number,
    )
    return create_invoice(session, user_id, payload)


@track_operation(invoice_operations_total, "delete")
def remove_invoice(session: Session, user_id: UUID, invoice_id: UUID) -> None:
    """Soft delete an invoice; its items stay in storage but become unreachable."""

    invoice = _get_invoice_or_404(session, user_id, invoice_id)
    now = _utcnow()
    invoice.deleted_at = now
    invoice.updated_at = now
    session.add(invoice)
    _commit(
        session,
        "invoice_delete_failed",
        "Failed to delete invoice",
        invoice_id=str(invoice_id),
    )
    LOGGER.info("invoice_deleted", user_id=str(user_id), invoice_id=str(invoice_id))


__all__ = [
    "create_invoice",
    "duplicate_invoice",
    "find_invoice",
    "get_next_invoice_number",
    "list_invoices",
    "remove_invoice",
    "serialize_invoice",
    "serialize_summary",
    "update_invoice",
    "update_invoice_status",
]
