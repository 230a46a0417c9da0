"""Unit tests for the invoice lifecycle service layer."""

from __future__ import annotations

import os
import sys
import uuid
from datetime import date
from pathlib import Path
from typing import Any

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_invoicing.db")

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.backend.src.core.errors import (
    AmountOutOfRangeError,
    ContractorNotFoundError,
    IncompleteProfileError,
    InternalError,
    InvalidDatesError,
    InvalidStatusTransitionError,
    InvoiceNotFoundError,
    InvoiceNumberExistsError,
    ProfileNotFoundError,
)
from app.backend.src.db import Base, get_engine, session_scope
from app.backend.src.models import Invoice, InvoiceItem, UserProfile
from app.backend.src.schemas.contractor import ContractorCreate
from app.backend.src.schemas.invoice import (
    BuyerInput,
    InvoiceCreate,
    InvoiceItemInput,
    InvoiceListQuery,
    InvoiceStatus,
    InvoiceUpdate,
    PaymentMethod,
    VatRate,
)
from app.backend.src.services import contractors as contractor_service
from app.backend.src.services import invoices as invoice_service

USER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
OTHER_USER_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def _add_profile(user_id: uuid.UUID = USER_ID, *, complete: bool = True) -> None:
    with session_scope() as session:
        session.add(
            UserProfile(
                id=user_id,
                email=f"{user_id.hex[:6]}@example.com",
                company_name="Acme sp. z o.o." if complete else None,
                address="ul. Prosta 1, 00-001 Warszawa" if complete else None,
                nip="5260250274" if complete else None,
                bank_account="PL61109010140000071219812874",
                invoice_number_format="FV/{YYYY}/{NNN}",
                invoice_number_counter=0,
            )
        )


@pytest.fixture()
def profile() -> None:
    _add_profile()


def _payload(**overrides: Any) -> InvoiceCreate:
    data: dict[str, Any] = {
        "invoiceNumber": "FV/2024/001",
        "issueDate": "2024-03-01",
        "dueDate": "2024-03-15",
        "buyer": {"name": "Buyer SA", "address": "ul. Kupiecka 2, Kraków", "nip": "1234563218"},
        "items": [
            {"position": 1, "name": "Consulting", "quantity": "2", "unitPrice": "100.00", "vatRate": "23"},
            {"position": 2, "name": "Handbook", "quantity": "1", "unitPrice": "50.00", "vatRate": "5"},
        ],
    }
    data.update(overrides)
    return InvoiceCreate.model_validate(data)


def _create(user_id: uuid.UUID = USER_ID, **overrides: Any):  # type: ignore[no-untyped-def]
    with session_scope() as session:
        return invoice_service.create_invoice(session, user_id, _payload(**overrides))


def _failing_commit() -> None:
    raise OperationalError("COMMIT", {}, Exception("database is locked"))


def _counter(user_id: uuid.UUID = USER_ID) -> int:
    with session_scope() as session:
        return session.get(UserProfile, user_id).invoice_number_counter


def _invoice_count() -> int:
    with session_scope() as session:
        return session.scalar(select(func.count()).select_from(Invoice))


# --------------------------------------------------------------------------
# create
# --------------------------------------------------------------------------
def test_create_invoice_computes_totals_and_snapshots_seller(profile: None) -> None:
    invoice = _create()

    assert invoice.invoice_number == "FV/2024/001"
    assert invoice.status == InvoiceStatus.DRAFT
    assert invoice.currency == "PLN"
    assert invoice.total_net == "250.00"
    assert invoice.total_vat == "48.50"
    assert invoice.total_gross == "298.50"
    assert invoice.seller.company_name == "Acme sp. z o.o."
    assert invoice.seller.nip == "5260250274"
    assert invoice.buyer.name == "Buyer SA"
    assert [item.position for item in invoice.items] == [1, 2]
    assert invoice.items[0].net_amount == "200.00"
    assert invoice.items[0].vat_amount == "46.00"
    assert invoice.items[0].gross_amount == "246.00"
    assert invoice.items[0].unit == "szt."


def test_create_invoice_increments_counter_once(profile: None) -> None:
    _create()
    _create(invoiceNumber="FV/2024/002")

    assert _counter() == 2


def test_seller_snapshot_is_not_resynced(profile: None) -> None:
    created = _create()
    with session_scope() as session:
        session.get(UserProfile, USER_ID).company_name = "Renamed Ltd"

    with session_scope() as session:
        invoice = invoice_service.find_invoice(session, USER_ID, created.id)

    assert invoice.seller.company_name == "Acme sp. z o.o."


def test_create_invoice_rejects_duplicate_number_for_same_user(profile: None) -> None:
    _create()

    with pytest.raises(InvoiceNumberExistsError) as exc_info:
        _create()

    assert exc_info.value.code == "INVOICE_NUMBER_EXISTS"
    assert _counter() == 1


def test_same_number_is_allowed_for_different_users(profile: None) -> None:
    _add_profile(OTHER_USER_ID)

    _create()
    other = _create(OTHER_USER_ID)

    assert other.invoice_number == "FV/2024/001"


def test_create_invoice_rejects_due_date_before_issue_date(profile: None) -> None:
    with pytest.raises(InvalidDatesError):
        _create(issueDate="2024-03-10", dueDate="2024-03-09")

    assert _invoice_count() == 0
    assert _counter() == 0


def test_due_date_equal_to_issue_date_is_accepted(profile: None) -> None:
    invoice = _create(issueDate="2024-03-10", dueDate="2024-03-10")

    assert invoice.due_date == date(2024, 3, 10)


def test_issuing_requires_complete_profile() -> None:
    _add_profile(complete=False)

    with pytest.raises(IncompleteProfileError):
        _create(status="unpaid")

    draft = _create()
    assert draft.status == InvoiceStatus.DRAFT


def test_create_invoice_without_profile_fails() -> None:
    with pytest.raises(ProfileNotFoundError):
        _create()


def test_create_invoice_rejects_unknown_contractor(profile: None) -> None:
    with pytest.raises(ContractorNotFoundError):
        _create(contractorId=str(uuid.uuid4()))


def test_create_invoice_rejects_amounts_beyond_column_range(profile: None) -> None:
    items = [{"position": 1, "name": "Bulk", "quantity": "999999999999.99", "unitPrice": "2.00", "vatRate": "23"}]

    with pytest.raises(AmountOutOfRangeError) as exc_info:
        _create(items=items)

    assert exc_info.value.status_code == 400
    assert _invoice_count() == 0
    assert _counter() == 0


def test_database_rejection_of_duplicate_number_maps_to_conflict(
    profile: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    _create()
    monkeypatch.setattr(invoice_service, "_check_invoice_number_uniqueness", lambda *args, **kwargs: None)

    with pytest.raises(InvoiceNumberExistsError):
        _create()

    assert _invoice_count() == 1
    assert _counter() == 1


def test_failed_commit_on_create_rolls_back_invoice_and_counter(
    profile: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    with pytest.raises(InternalError) as exc_info:
        with session_scope() as session:
            monkeypatch.setattr(session, "commit", _failing_commit)
            invoice_service.create_invoice(session, USER_ID, _payload())

    assert exc_info.value.message == "Failed to create invoice"
    assert _invoice_count() == 0
    assert _counter() == 0


def test_failed_item_insert_leaves_no_invoice_behind(profile: None) -> None:
    item = InvoiceItemInput(
        position=1, name="Service", unit=None, quantity="1", unit_price="10.00", vat_rate=VatRate.VAT_23
    )
    # Bypasses schema validation so the database rejects the duplicate position.
    payload = InvoiceCreate.model_construct(
        invoice_number="FV/2024/001",
        issue_date=date(2024, 3, 1),
        due_date=date(2024, 3, 15),
        status=InvoiceStatus.DRAFT,
        payment_method=PaymentMethod.TRANSFER,
        notes=None,
        contractor_id=None,
        buyer=BuyerInput(name="Buyer SA"),
        items=[item, item.model_copy()],
    )

    with pytest.raises(InternalError) as exc_info:
        with session_scope() as session:
            invoice_service.create_invoice(session, USER_ID, payload)

    assert exc_info.value.status_code == 500
    assert _invoice_count() == 0
    assert _counter() == 0
    with session_scope() as session:
        assert session.scalar(select(func.count()).select_from(InvoiceItem)) == 0


# --------------------------------------------------------------------------
# update
# --------------------------------------------------------------------------
def _update(invoice_id: uuid.UUID, data: dict[str, Any], user_id: uuid.UUID = USER_ID):  # type: ignore[no-untyped-def]
    with session_scope() as session:
        return invoice_service.update_invoice(
            session, user_id, invoice_id, InvoiceUpdate.model_validate(data)
        )


def test_partial_update_leaves_other_fields_untouched(profile: None) -> None:
    created = _create()

    updated = _update(created.id, {"notes": "Thank you"})

    assert updated.notes == "Thank you"
    assert updated.invoice_number == created.invoice_number
    assert updated.buyer == created.buyer
    assert updated.total_gross == created.total_gross
    assert [item.id for item in updated.items] == [item.id for item in created.items]


def test_update_with_items_replaces_them_and_recomputes_totals(profile: None) -> None:
    created = _create()

    updated = _update(
        created.id,
        {"items": [{"position": 1, "name": "Flat fee", "quantity": "1", "unitPrice": "10.00", "vatRate": "8"}]},
    )

    assert len(updated.items) == 1
    assert updated.items[0].name == "Flat fee"
    assert updated.total_net == "10.00"
    assert updated.total_vat == "0.80"
    assert updated.total_gross == "10.80"
    with session_scope() as session:
        assert session.scalar(select(func.count()).select_from(InvoiceItem)) == 1


def test_update_validates_merged_dates_before_writing(profile: None) -> None:
    created = _create()

    with pytest.raises(InvalidDatesError):
        _update(created.id, {"issueDate": "2024-04-01", "notes": "changed"})

    with session_scope() as session:
        current = invoice_service.find_invoice(session, USER_ID, created.id)
    assert current.issue_date == date(2024, 3, 1)
    assert current.notes is None


def test_update_rejects_number_taken_by_another_invoice(profile: None) -> None:
    _create()
    second = _create(invoiceNumber="FV/2024/002")

    with pytest.raises(InvoiceNumberExistsError):
        _update(second.id, {"invoiceNumber": "FV/2024/001"})


def test_database_rejection_of_renumbering_maps_to_conflict(
    profile: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    _create()
    second = _create(invoiceNumber="FV/2024/002")
    monkeypatch.setattr(invoice_service, "_check_invoice_number_uniqueness", lambda *args, **kwargs: None)

    with pytest.raises(InvoiceNumberExistsError):
        _update(second.id, {"invoiceNumber": "FV/2024/001", "notes": "renumbered"})

    with session_scope() as session:
        current = invoice_service.find_invoice(session, USER_ID, second.id)
    assert current.invoice_number == "FV/2024/002"
    assert current.notes is None
    assert _counter() == 2


def test_update_keeping_own_number_is_allowed(profile: None) -> None:
    created = _create()

    updated = _update(created.id, {"invoiceNumber": "FV/2024/001", "paymentMethod": "cash"})

    assert updated.payment_method == PaymentMethod.CASH


def test_update_can_clear_buyer_nip(profile: None) -> None:
    created = _create()

    updated = _update(created.id, {"buyer": {"nip": None}})

    assert updated.buyer.nip is None
    assert updated.buyer.name == "Buyer SA"


def test_update_status_field_goes_through_transition_rules(profile: None) -> None:
    created = _create(status="paid")

    with pytest.raises(InvalidStatusTransitionError):
        _update(created.id, {"status": "draft"})


def test_update_of_foreign_invoice_is_not_found(profile: None) -> None:
    created = _create()

    with pytest.raises(InvoiceNotFoundError):
        _update(created.id, {"notes": "x"}, user_id=OTHER_USER_ID)


# --------------------------------------------------------------------------
# status
# --------------------------------------------------------------------------
def _set_status(invoice_id: uuid.UUID, status: InvoiceStatus):  # type: ignore[no-untyped-def]
    with session_scope() as session:
        return invoice_service.update_invoice_status(session, USER_ID, invoice_id, status)


def test_status_walks_through_allowed_transitions(profile: None) -> None:
    created = _create()

    assert _set_status(created.id, InvoiceStatus.UNPAID).status == InvoiceStatus.UNPAID
    assert _set_status(created.id, InvoiceStatus.PAID).status == InvoiceStatus.PAID
    result = _set_status(created.id, InvoiceStatus.UNPAID)

    assert result.id == created.id
    assert result.invoice_number == "FV/2024/001"
    assert result.status == InvoiceStatus.UNPAID


def test_paid_invoice_cannot_return_to_draft(profile: None) -> None:
    created = _create(status="paid")

    with pytest.raises(InvalidStatusTransitionError):
        _set_status(created.id, InvoiceStatus.DRAFT)


def test_same_status_change_is_a_no_op(profile: None) -> None:
    created = _create()

    assert _set_status(created.id, InvoiceStatus.DRAFT).status == InvoiceStatus.DRAFT


def test_status_change_requires_complete_profile() -> None:
    _add_profile(complete=False)
    created = _create()

    with pytest.raises(IncompleteProfileError):
        _set_status(created.id, InvoiceStatus.UNPAID)


def test_paying_a_draft_requires_complete_profile() -> None:
    _add_profile(complete=False)
    created = _create()

    with pytest.raises(IncompleteProfileError):
        _set_status(created.id, InvoiceStatus.PAID)


def test_unpaid_to_unpaid_is_accepted(profile: None) -> None:
    created = _create(status="unpaid")

    assert _set_status(created.id, InvoiceStatus.UNPAID).status == InvoiceStatus.UNPAID


def test_failed_commit_on_status_change_is_internal_error(
    profile: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    created = _create()

    with pytest.raises(InternalError) as exc_info:
        with session_scope() as session:
            monkeypatch.setattr(session, "commit", _failing_commit)
            invoice_service.update_invoice_status(session, USER_ID, created.id, InvoiceStatus.UNPAID)

    assert exc_info.value.status_code == 500
    with session_scope() as session:
        assert invoice_service.find_invoice(session, USER_ID, created.id).status == InvoiceStatus.DRAFT


# --------------------------------------------------------------------------
# duplicate
# --------------------------------------------------------------------------
def test_duplicate_creates_renumbered_draft(profile: None) -> None:
    source = _create(
        status="paid",
        notes="Original",
        items=[
            {"position": 3, "name": "Second", "quantity": "1", "unitPrice": "5.00", "vatRate": "0"},
            {"position": 1, "name": "First", "quantity": "2", "unitPrice": "10.00", "vatRate": "23"},
        ],
    )

    with session_scope() as session:
        copy = invoice_service.duplicate_invoice(
            session, USER_ID, source.id, today=date(2024, 5, 10)
        )

    assert copy.id != source.id
    assert copy.invoice_number == "FV/2024/002"
    assert copy.status == InvoiceStatus.DRAFT
    assert copy.issue_date == date(2024, 5, 10)
    assert copy.due_date == date(2024, 5, 10)
    assert copy.notes == "Original"
    assert copy.buyer == source.buyer
    assert [(item.position, item.name) for item in copy.items] == [(1, "First"), (2, "Second")]
    assert copy.total_gross == source.total_gross
    assert _counter() == 2


def test_duplicate_with_explicit_number(profile: None) -> None:
    source = _create()

    with session_scope() as session:
        copy = invoice_service.duplicate_invoice(session, USER_ID, source.id, "KOPIA/1")

    assert copy.invoice_number == "KOPIA/1"


def test_duplicate_with_taken_number_fails(profile: None) -> None:
    source = _create()

    with pytest.raises(InvoiceNumberExistsError):
        with session_scope() as session:
            invoice_service.duplicate_invoice(session, USER_ID, source.id, "FV/2024/001")


def test_duplicate_drops_deleted_contractor(profile: None) -> None:
    with session_scope() as session:
        contractor = contractor_service.create_contractor(
            session, USER_ID, ContractorCreate(name="Buyer SA", nip="1234563218")
        )
    source = _create(contractorId=str(contractor.id))
    with session_scope() as session:
        contractor_service.remove_contractor(session, USER_ID, contractor.id)

    with session_scope() as session:
        copy = invoice_service.duplicate_invoice(session, USER_ID, source.id, "FV/2024/777")

    assert source.contractor_id == contractor.id
    assert copy.contractor_id is None
    assert copy.buyer.name == "Buyer SA"


# --------------------------------------------------------------------------
# remove / read
# --------------------------------------------------------------------------
def test_removed_invoice_is_hidden_and_cannot_be_removed_twice(profile: None) -> None:
    created = _create()

    with session_scope() as session:
        invoice_service.remove_invoice(session, USER_ID, created.id)

    with pytest.raises(InvoiceNotFoundError):
        with session_scope() as session:
            invoice_service.find_invoice(session, USER_ID, created.id)
    with pytest.raises(InvoiceNotFoundError):
        with session_scope() as session:
            invoice_service.remove_invoice(session, USER_ID, created.id)

    assert _invoice_count() == 1


def test_failed_commit_on_remove_keeps_invoice_visible(
    profile: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    created = _create()

    with pytest.raises(InternalError) as exc_info:
        with session_scope() as session:
            monkeypatch.setattr(session, "commit", _failing_commit)
            invoice_service.remove_invoice(session, USER_ID, created.id)

    assert exc_info.value.message == "Failed to delete invoice"
    with session_scope() as session:
        assert invoice_service.find_invoice(session, USER_ID, created.id).id == created.id


def test_number_of_removed_invoice_can_be_reused(profile: None) -> None:
    created = _create()
    with session_scope() as session:
        invoice_service.remove_invoice(session, USER_ID, created.id)

    again = _create()

    assert again.invoice_number == created.invoice_number


def test_invoices_of_other_users_are_invisible(profile: None) -> None:
    created = _create()

    with pytest.raises(InvoiceNotFoundError):
        with session_scope() as session:
            invoice_service.find_invoice(session, OTHER_USER_ID, created.id)


def test_list_invoices_filters_searches_and_paginates(profile: None) -> None:
    _create(invoiceNumber="FV/2024/001", buyer={"name": "Acme Retail"})
    _create(invoiceNumber="FV/2024/002", buyer={"name": "Nowak i Syn"}, status="unpaid")
    _create(invoiceNumber="FV/2024/003", buyer={"name": "ACME Logistics"}, issueDate="2024-04-01", dueDate="2024-04-02")

    with session_scope() as session:
        first_page = invoice_service.list_invoices(
            session, USER_ID, InvoiceListQuery(limit=2, sort_by="invoiceNumber", sort_order="asc")
        )
        searched = invoice_service.list_invoices(session, USER_ID, InvoiceListQuery(search="acme"))
        unpaid = invoice_service.list_invoices(session, USER_ID, InvoiceListQuery(status="unpaid"))
        april = invoice_service.list_invoices(
            session, USER_ID, InvoiceListQuery(date_from=date(2024, 4, 1), date_to=date(2024, 4, 30))
        )
        by_number = invoice_service.list_invoices(session, USER_ID, InvoiceListQuery(search="2024/002"))

    assert [row.invoice_number for row in first_page.data] == ["FV/2024/001", "FV/2024/002"]
    assert first_page.pagination.total == 3
    assert first_page.pagination.total_pages == 2
    assert first_page.pagination.has_next_page is True
    assert first_page.pagination.has_previous_page is False
    assert {row.buyer_name for row in searched.data} == {"Acme Retail", "ACME Logistics"}
    assert [row.invoice_number for row in unpaid.data] == ["FV/2024/002"]
    assert [row.invoice_number for row in april.data] == ["FV/2024/003"]
    assert [row.invoice_number for row in by_number.data] == ["FV/2024/002"]


def test_list_invoices_skips_removed_and_foreign_invoices(profile: None) -> None:
    _add_profile(OTHER_USER_ID)
    kept = _create()
    removed = _create(invoiceNumber="FV/2024/002")
    _create(OTHER_USER_ID, invoiceNumber="FV/2024/003")
    with session_scope() as session:
        invoice_service.remove_invoice(session, USER_ID, removed.id)

    with session_scope() as session:
        result = invoice_service.list_invoices(session, USER_ID, InvoiceListQuery())

    assert [row.id for row in result.data] == [kept.id]
    assert result.pagination.total == 1


def test_next_invoice_number_does_not_consume_counter(profile: None) -> None:
    with session_scope() as session:
        preview = invoice_service.get_next_invoice_number(session, USER_ID, now=date(2024, 1, 2))
        again = invoice_service.get_next_invoice_number(session, USER_ID, now=date(2024, 1, 2))

    assert preview.next_number == "FV/2024/001"
    assert preview.counter == 1
    assert preview.format == "FV/{YYYY}/{NNN}"
    assert again.next_number == preview.next_number
    assert _counter() == 0
