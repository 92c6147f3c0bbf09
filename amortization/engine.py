"""Core calculation engine for the amortization tracker.

This module implements the financial logic of a standard amortizing loan: the
fixed annuity payment, the interest accrued in a month, the projection of the
remaining schedule and the application of an actual payment. Everything here is
a pure function of its inputs; storing the results is left to the caller.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterator, List, Optional, Tuple
import logging

from .data_models import Loan, PeriodResult, ScheduleSummary, Transaction
from .errors import DegenerateAmortization, InsufficientPayment, InvalidTerm
from .utils import add_months, first_of_month

logger = logging.getLogger(__name__)

# A balance left below half a cent after a period is paid off in that period.
RESIDUAL_BALANCE = Decimal("0.005")

CENT = Decimal("0.01")


def _monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    return Decimal(annual_rate_percent) / Decimal(100) / Decimal(12)


def minimum_payment(loan: Loan) -> Decimal:
    """Return the smallest regular payment ``loan`` accepts.

    This is the fixed payment at currency precision, so paying the amount shown
    to the user (rounded to the cent) is always enough.
    """
    return min(loan.payment, loan.payment.quantize(CENT, rounding=ROUND_HALF_UP))


def compute_fixed_payment(principal: Decimal, periods: int, annual_rate_percent: Decimal) -> Decimal:
    """Return the fixed monthly payment that amortizes ``principal``.

    The formula is:

        payment = P * r / (1 - (1 + r)^-n)

    where ``P`` is the principal, ``r`` is the monthly rate (APR / 100 / 12)
    and ``n`` is the number of periods. When the rate is zero the payment
    simplifies to ``P / n``. The result is not rounded.
    """
    if periods <= 0:
        raise InvalidTerm(periods)
    principal = Decimal(principal)
    if principal <= 0:
        raise ValueError("Principal must be positive")
    if Decimal(annual_rate_percent) < 0:
        raise ValueError("APR must not be negative")
    rate = _monthly_rate(annual_rate_percent)
    if rate == 0:
        return principal / Decimal(periods)
    return principal * rate / (1 - (1 + rate) ** -periods)


def interest_for_period(balance: Decimal, annual_rate_percent: Decimal) -> Decimal:
    """Return the interest accrued on ``balance`` over one month."""
    if balance <= 0:
        return Decimal(0)
    return Decimal(balance) * _monthly_rate(annual_rate_percent)


def create_loan(
    name: str,
    principal: Decimal,
    periods: int,
    apr: Decimal,
    start_time: date,
    time_created: Optional[datetime] = None,
) -> Loan:
    """Create a new loan, deriving its fixed payment from the original terms."""
    principal = Decimal(principal)
    apr = Decimal(apr)
    payment = compute_fixed_payment(principal, periods, apr)
    loan = Loan(
        name=name,
        payment=payment,
        balance=principal,
        periods=periods,
        apr=apr,
        start_time=start_time,
        time_created=time_created or datetime.now(timezone.utc),
    )
    logger.debug("Created loan %s with payment %s", name, payment)
    return loan


def project_schedule(loan: Loan) -> Iterator[PeriodResult]:
    """Yield the projected schedule of ``loan`` one period at a time.

    The projection starts from the loan's current balance and pays the fixed
    payment every month for at most ``loan.periods`` periods. It stops as soon
    as the balance reaches zero. Period dates are reported on the first of the
    month, starting one month after ``loan.start_time``.

    Each call starts a fresh projection from the (immutable) loan snapshot.

    Raises
    ------
    DegenerateAmortization
        If the payment does not exceed the interest of some period.
    """
    balance = loan.balance
    period_start = first_of_month(loan.start_time)
    for period in range(1, loan.periods + 1):
        if balance <= 0:
            return
        interest = interest_for_period(balance, loan.apr)
        principal = loan.payment - interest
        if principal <= 0:
            raise DegenerateAmortization(period, loan.payment, interest)
        # Clamp so the last period never overpays.
        if principal > balance or balance - principal < RESIDUAL_BALANCE:
            principal = balance
        balance -= principal
        yield PeriodResult(
            period=period,
            date=add_months(period_start, period),
            interest=interest,
            principal=principal,
            balance=balance,
        )


def compute_schedule(loan: Loan) -> Tuple[List[PeriodResult], ScheduleSummary]:
    """Compute the projected schedule of a loan and summarize it.

    Returns
    -------
    schedule: List[PeriodResult]
        One entry per projected month, up to and including payoff.
    summary: ScheduleSummary
        Totals, payoff date and how many months early the loan is paid off
        compared to its original term.
    """
    schedule = list(project_schedule(loan))
    if not schedule:
        paid_off = loan.paid_off
        months_early = 0
    else:
        paid_off = schedule[-1].balance <= 0
        months_early = loan.periods - schedule[-1].period if paid_off else 0
    summary = ScheduleSummary(
        payments=len(schedule),
        months_early=months_early,
        paid_off=paid_off,
        total_interest=sum((p.interest for p in schedule), Decimal(0)),
        total_principal=sum((p.principal for p in schedule), Decimal(0)),
        payoff_date=schedule[-1].date if schedule and paid_off else None,
    )
    if months_early:
        logger.debug("Loan %s pays off %d months early", loan.name, months_early)
    return schedule, summary


def apply_payment(
    loan: Loan,
    amount_paid: Decimal,
    force_all_principal: bool = False,
    payment_date: Optional[date] = None,
) -> Tuple[Transaction, Decimal]:
    """Split a payment into interest and principal and advance the balance.

    A regular payment pays one month of interest on the current balance and
    the rest goes to principal; it must be at least ``minimum_payment(loan)``. When
    ``force_all_principal`` is set the whole amount goes to principal and the
    minimum is not enforced.

    The returned balance is not clamped at zero. The caller persists the
    transaction and the new balance together.

    Raises
    ------
    InsufficientPayment
        If a regular payment is below ``minimum_payment(loan)``.
    """
    amount_paid = Decimal(amount_paid)
    if force_all_principal:
        interest = Decimal(0)
        principal = amount_paid
    else:
        floor = minimum_payment(loan)
        if amount_paid < floor:
            raise InsufficientPayment(floor, amount_paid)
        interest = interest_for_period(loan.balance, loan.apr)
        principal = amount_paid - interest

    transaction = Transaction(
        name=loan.name,
        principal=principal,
        interest=interest,
        date=payment_date or date.today(),
        time_created=datetime.now(timezone.utc),
    )
    new_balance = loan.balance - principal
    logger.debug(
        "Applied %s to %s: principal=%s interest=%s balance=%s",
        amount_paid,
        loan.name,
        principal,
        interest,
        new_balance,
    )
    return transaction, new_balance
