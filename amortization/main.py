"""Command‑line interface for the amortization tracker.

This module uses the ``click`` library to implement a multi‑command interface.
Users can initialize a loan database, create loans, record payments, view
loans with their projected amortization schedule and list payment history.
Schedules can also be exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import functools
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Callable, List, Optional

import click
from sqlalchemy.exc import SQLAlchemyError

from .config import configure_logging
from .data_models import Loan, PeriodResult, ScheduleSummary
from .engine import compute_schedule, create_loan
from .errors import AmortizationError
from .formatter import (
    payment_in_cents,
    print_loan,
    print_payment,
    print_receipt,
    print_schedule,
    print_summary,
    print_transactions,
)
from .store import create_store
from .utils import decimal_from_str, parse_amount, parse_date

logger = logging.getLogger(__name__)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn core and storage errors into ``click`` errors with exit status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except AmortizationError as exc:
            logger.warning("%s", exc)
            raise click.ClickException(str(exc)) from exc
        except SQLAlchemyError as exc:
            logger.error("Database error: %s", exc)
            raise click.ClickException(f"Error with database: {exc}") from exc

    return wrapper


def parse_date_option(value: Optional[str]) -> date:
    """Parse an optional YYYY-MM-DD option, defaulting to today."""
    if not value:
        return date.today()
    try:
        return parse_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def build_loan_from_options(
    name: str,
    balance: str,
    apr: str,
    term: int,
    start: Optional[str],
    months: bool = False,
) -> Loan:
    try:
        principal = parse_amount(balance)
        rate = decimal_from_str(apr.rstrip("%"))
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    periods = term if months else term * 12
    start_time = parse_date_option(start)
    try:
        return create_loan(name, principal, periods, rate, start_time)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def export_to_json(path: Path, loan: Loan, schedule: List[PeriodResult], summary: ScheduleSummary) -> None:
    """Export a loan's projected schedule and summary to a JSON file."""
    sched_list = []
    for e in schedule:
        sched_list.append(
            {
                "period": e.period,
                "date": e.date.isoformat(),
                "interest": float(e.interest),
                "principal": float(e.principal),
                "balance": float(e.balance),
            }
        )
    data = {
        "loan": {
            "name": loan.name,
            "payment": float(loan.payment),
            "balance": float(loan.balance),
            "apr": float(loan.apr),
            "periods": loan.periods,
            "start_time": loan.start_time.isoformat(),
        },
        "summary": {
            "payments": summary.payments,
            "months_early": summary.months_early,
            "paid_off": summary.paid_off,
            "total_interest": float(summary.total_interest),
            "total_principal": float(summary.total_principal),
            "payoff_date": summary.payoff_date.isoformat() if summary.payoff_date else None,
        },
        "schedule": sched_list,
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: List[PeriodResult]) -> None:
    """Export a projected schedule to a CSV file."""
    header = ["Period", "Date", "Interest", "Principal", "Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule:
            writer.writerow(
                [
                    e.period,
                    e.date.isoformat(),
                    f"{e.interest:.2f}",
                    f"{e.principal:.2f}",
                    f"{e.balance:.2f}",
                ]
            )


def show_loan(loan: Loan, verbosity: int) -> None:
    """Print a loan; more detail with each level of verbosity."""
    print_loan(loan)
    logger.debug("Loan details: %r", loan)
    if verbosity < 1:
        return
    print_payment(loan)
    schedule, summary = compute_schedule(loan)
    if verbosity > 1:
        print_schedule(schedule)
    print_summary(summary)


@click.group()
def cli() -> None:
    """Track amortizing loans and their payments."""
    configure_logging()


@cli.command()
@click.argument("db")
@handle_errors
def init(db: str) -> None:
    """Initialize the database."""
    create_store(db).init_schema()
    click.echo(f"Initialized {db}")


@cli.command()
@click.argument("db")
@click.argument("name")
@click.option("--balance", "-b", "balance", required=True, help="Balance of the loan")
@click.option("--apr", "-a", "apr", required=True, help="Annual percentage rate (percent)")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan term in years")
@click.option("--months", is_flag=True, help="Interpret --term as a number of months")
@click.option("--start", "start", help="First payment due date (YYYY-MM-DD, default today)")
@handle_errors
def create(db: str, name: str, balance: str, apr: str, term: int, months: bool, start: Optional[str]) -> None:
    """Create a new loan."""
    loan = build_loan_from_options(name, balance, apr, term, start, months)
    create_store(db).add_loan(loan)
    click.echo(f"Added loan {loan.name}. Monthly payment: {payment_in_cents(loan)}")


@cli.command()
@click.argument("db")
@click.argument("name")
@click.option("--amount", "-a", "amount", required=True, help="Payment amount")
@click.option("--extra", "-e", "extra", is_flag=True, help="This payment goes 100% to principal")
@click.option("--date", "-d", "payment_date", help="Date of payment (YYYY-MM-DD, default today)")
@handle_errors
def pay(db: str, name: str, amount: str, extra: bool, payment_date: Optional[str]) -> None:
    """Pay a loan."""
    try:
        value = parse_amount(amount)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    if value <= 0:
        raise click.BadParameter("Payment amount must be positive")
    paid_on = parse_date_option(payment_date)
    transaction, balance = create_store(db).record_payment(name, value, extra, paid_on)
    print_receipt(transaction, balance)


@cli.command()
@click.argument("db")
@click.argument("name", required=False)
@click.option("-v", "verbosity", count=True, help="Sets the level of verbosity")
@click.option("--output", "output", type=str, help="Export the schedule of NAME (.json or .csv)")
@handle_errors
def show(db: str, name: Optional[str], verbosity: int, output: Optional[str]) -> None:
    """Show one loan, or all loans, with their projected schedule."""
    store = create_store(db)
    if output:
        if not name:
            raise click.UsageError("--output requires a loan NAME")
        loan = store.load_loan(name)
        schedule, summary = compute_schedule(loan)
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, loan, schedule, summary)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, schedule)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    loans = [store.load_loan(name)] if name else store.list_loans()
    for loan in loans:
        show_loan(loan, verbosity)


@cli.command()
@click.argument("db")
@click.argument("name")
@handle_errors
def history(db: str, name: str) -> None:
    """List the payments recorded against a loan."""
    store = create_store(db)
    store.load_loan(name)
    print_transactions(store.list_transactions(name))


if __name__ == "__main__":
    cli()
