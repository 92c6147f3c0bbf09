"""Output helpers for the amortization tracker.

This module renders loans, projected schedules, payment receipts and payment
history as plain text. Amounts are rounded to cents for display only; the
engine keeps full precision.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from .data_models import Loan, PeriodResult, ScheduleSummary, Transaction


def payment_in_cents(loan: Loan) -> Decimal:
    """The fixed payment as shown to users; never below the accepted minimum."""
    return loan.payment.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def print_loan(loan: Loan) -> None:
    print(f"{loan.name}: Balance = ${loan.balance:.2f}, APR = {loan.apr:.2f}%")


def print_payment(loan: Loan) -> None:
    print(f"Monthly payment: {payment_in_cents(loan)}")


def print_schedule(schedule: Iterable[PeriodResult]) -> None:
    """Print one line per projected period."""
    for entry in schedule:
        print(
            f"{entry.date.isoformat()}: Interest = {entry.interest:.2f}, "
            f"Principal = {entry.principal:.2f}, Balance: {entry.balance:.2f}"
        )


def print_summary(summary: ScheduleSummary) -> None:
    if summary.paid_off and summary.payoff_date is not None:
        print(f"Paid off on {summary.payoff_date.isoformat()} after {summary.payments} payments")
        print(f"Total interest: {summary.total_interest:.2f}")
    if summary.months_early:
        print(f"Congrats, you'll pay off your loan {summary.months_early} months early!")


def print_receipt(transaction: Transaction, balance) -> None:
    print(
        f"Payment received. You paid ${transaction.principal:.2f} towards the balance, "
        f"${transaction.interest:.2f} in interest and have ${balance:.2f} remaining on your loan."
    )


def print_transactions(transactions: Iterable[Transaction]) -> None:
    """Print payment history as a simple table."""
    headers = ["Date", "Amount", "Principal", "Interest"]
    print("\t".join(headers))
    for t in transactions:
        row = [
            t.date.isoformat(),
            f"{t.amount:.2f}",
            f"{t.principal:.2f}",
            f"{t.interest:.2f}",
        ]
        print("\t".join(row))
