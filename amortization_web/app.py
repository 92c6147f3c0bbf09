import logging
import os
from datetime import date
from decimal import Decimal
from typing import Optional

from flask import Flask, jsonify, request

from amortization import config
from amortization.data_models import Loan, PeriodResult, ScheduleSummary, Transaction
from amortization.engine import compute_schedule, create_loan
from amortization.errors import (
    AmortizationError,
    DuplicateLoan,
    InsufficientPayment,
    LoanNotFound,
)
from amortization.formatter import payment_in_cents
from amortization.store import LoanStore
from amortization.utils import decimal_from_str, parse_amount, parse_date

logger = logging.getLogger(__name__)


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def _serialize_loan(loan: Loan) -> dict:
    return {
        "name": loan.name,
        "payment": str(payment_in_cents(loan)),
        "balance": _money(loan.balance),
        "periods": loan.periods,
        "apr": str(loan.apr),
        "start_time": loan.start_time.isoformat(),
        "time_created": loan.time_created.isoformat(),
    }


def _serialize_schedule(schedule: list[PeriodResult]) -> list[dict]:
    """Convert schedule entries into JSON-serialisable dictionaries for charts."""
    serialized = []
    for entry in schedule:
        serialized.append(
            {
                "period": entry.period,
                "date": entry.date.isoformat(),
                "interest": _money(entry.interest),
                "principal": _money(entry.principal),
                "balance": _money(entry.balance),
            }
        )
    return serialized


def _serialize_summary(summary: ScheduleSummary) -> dict:
    return {
        "payments": summary.payments,
        "months_early": summary.months_early,
        "paid_off": summary.paid_off,
        "total_interest": _money(summary.total_interest),
        "total_principal": _money(summary.total_principal),
        "payoff_date": summary.payoff_date.isoformat() if summary.payoff_date else None,
    }


def _serialize_transaction(transaction: Transaction) -> dict:
    return {
        "name": transaction.name,
        "amount": _money(transaction.amount),
        "principal": _money(transaction.principal),
        "interest": _money(transaction.interest),
        "date": transaction.date.isoformat(),
    }


def _truthy(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _request_payload() -> dict:
    """Return the JSON object or form fields of the current request."""
    payload = request.get_json(silent=True) or request.form
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object or form fields")
    return payload


def _form_to_loan(form) -> Loan:
    name = str(form.get("name", "")).strip()
    if not name:
        raise ValueError("Loan name is required")
    principal = parse_amount(str(form.get("balance", "")))
    apr = decimal_from_str(str(form.get("apr", "")))
    term = int(str(form.get("term", 0)))
    periods = term if _truthy(form.get("months")) else term * 12
    start = form.get("start")
    start_time = parse_date(str(start)) if start else date.today()
    return create_loan(name, principal, periods, apr, start_time)


def create_app(database_url: Optional[str] = None) -> Flask:
    """Build the web application around a loan store."""
    app = Flask(__name__)
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    loan_store = LoanStore(database_url or config.database_url())
    loan_store.init_schema()
    app.extensions["loan_store"] = loan_store

    @app.errorhandler(LoanNotFound)
    def loan_not_found(exc):
        return _error(str(exc), 404)

    @app.errorhandler(DuplicateLoan)
    def duplicate_loan(exc):
        return _error(str(exc), 409)

    @app.errorhandler(InsufficientPayment)
    def insufficient_payment(exc):
        body = {"error": str(exc), "expected": _money(exc.expected), "got": _money(exc.got)}
        return jsonify(body), 400

    @app.errorhandler(AmortizationError)
    def amortization_error(exc):
        return _error(str(exc), 400)

    @app.get("/loans")
    def list_loans():
        return jsonify([_serialize_loan(loan) for loan in loan_store.list_loans()])

    @app.post("/loans")
    def add_loan():
        try:
            loan = _form_to_loan(_request_payload())
        except ValueError as exc:
            return _error(str(exc), 400)
        loan = loan_store.add_loan(loan)
        return jsonify(_serialize_loan(loan)), 201

    @app.get("/loans/<name>")
    def get_loan(name):
        return jsonify(_serialize_loan(loan_store.load_loan(name)))

    @app.get("/loans/<name>/schedule")
    def loan_schedule(name):
        loan = loan_store.load_loan(name)
        schedule, summary = compute_schedule(loan)
        return jsonify(
            {
                "loan": _serialize_loan(loan),
                "summary": _serialize_summary(summary),
                "schedule": _serialize_schedule(schedule),
            }
        )

    @app.get("/loans/<name>/payments")
    def list_payments(name):
        loan_store.load_loan(name)
        return jsonify([_serialize_transaction(t) for t in loan_store.list_transactions(name)])

    @app.post("/loans/<name>/payments")
    def add_payment(name):
        try:
            form = _request_payload()
            amount = parse_amount(str(form.get("amount", "")))
            if amount <= 0:
                raise ValueError("Payment amount must be positive")
            raw_date = form.get("date")
            payment_date = parse_date(str(raw_date)) if raw_date else None
        except ValueError as exc:
            return _error(str(exc), 400)
        extra = _truthy(form.get("extra"))
        transaction, balance = loan_store.record_payment(name, amount, extra, payment_date)
        logger.info("Payment of %s recorded against %s", _money(amount), name)
        return (
            jsonify({"transaction": _serialize_transaction(transaction), "balance": _money(balance)}),
            201,
        )

    return app


if __name__ == "__main__":
    config.configure_logging()
    print("Starting amortization web app...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
