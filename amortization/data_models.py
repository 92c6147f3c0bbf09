"""Data models for the amortization tracker.

This module defines dataclasses representing the entities the engine works
with: the loan itself, a payment transaction applied to it, a single projected
schedule period and the summary of a projected schedule. Loans and
transactions are plain snapshots; persistence is handled by ``store``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class Loan:
    """An amortizing loan.

    Attributes
    ----------
    name: str
        Unique identifier of the loan, stable across its life.
    payment: Decimal
        Fixed monthly payment. Computed once from the original principal, term
        and APR when the loan is created and never recomputed afterwards.
    balance: Decimal
        Current outstanding principal.
    periods: int
        Number of monthly periods at origination.
    apr: Decimal
        Nominal annual rate in percent (``Decimal("5.25")`` means 5.25 %).
    start_time: date
        Date of the first scheduled payment.
    time_created: datetime
        Record creation timestamp. Audit only.
    """

    name: str
    payment: Decimal
    balance: Decimal
    periods: int
    apr: Decimal
    start_time: date
    time_created: datetime
    id: Optional[int] = None

    @property
    def paid_off(self) -> bool:
        return self.balance <= 0

    def with_balance(self, balance: Decimal) -> "Loan":
        """Return a copy of this loan with a new outstanding balance."""
        return replace(self, balance=balance)


@dataclass(frozen=True)
class Transaction:
    """A payment applied to a loan.

    ``principal + interest`` is always exactly the amount paid. Transactions
    are append-only: once recorded they are never changed.
    """

    name: str
    principal: Decimal
    interest: Decimal
    date: date
    time_created: datetime
    id: Optional[int] = None

    @property
    def amount(self) -> Decimal:
        return self.principal + self.interest


@dataclass(frozen=True)
class PeriodResult:
    """One month of a projected amortization schedule."""

    period: int
    date: date
    interest: Decimal
    principal: Decimal
    balance: Decimal


@dataclass
class ScheduleSummary:
    """Aggregate figures of a projected schedule.

    ``months_early`` is the number of periods of the original term left over
    when the balance reaches zero (``0`` when the loan runs its full term).
    """

    payments: int
    months_early: int
    paid_off: bool
    total_interest: Decimal
    total_principal: Decimal
    payoff_date: Optional[date]
