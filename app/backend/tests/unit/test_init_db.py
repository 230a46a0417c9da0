"""Unit tests for the table creation script."""

from __future__ import annotations

import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_invoicing.db")

import pytest
from sqlalchemy import inspect

from app.backend.src.db import Base, get_engine
from init_db import init_db


@pytest.fixture(autouse=True)
def clean_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.drop_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def test_init_db_creates_invoicing_tables() -> None:
    tables = init_db()

    assert {"contractors", "invoice_items", "invoices", "user_profiles"} <= set(tables)
    assert set(tables) == set(inspect(get_engine()).get_table_names())


def test_init_db_is_idempotent() -> None:
    assert init_db() == init_db()
