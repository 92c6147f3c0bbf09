from datetime import date
from decimal import Decimal

import pytest

from amortization.engine import create_loan
from amortization.store import create_store


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "loans.sqlite"


@pytest.fixture
def store(db_path):
    loan_store = create_store(db_path)
    loan_store.init_schema()
    return loan_store


@pytest.fixture
def car_loan():
    # 10000 over 36 months at 6 % -> monthly rate 0.005
    return create_loan("car", Decimal("10000"), 36, Decimal("6.0"), date(2016, 4, 15))


@pytest.fixture
def flat_loan():
    return create_loan("flat", Decimal("12000"), 12, Decimal("0"), date(2016, 4, 1))
