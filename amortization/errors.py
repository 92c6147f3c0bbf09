"""Error kinds raised by the amortization core.

None of these terminate the process. They are raised to the caller, which
decides how to present them (the CLI turns them into ``click`` errors, the web
front-end into JSON error responses).
"""

from __future__ import annotations

from decimal import Decimal


class AmortizationError(Exception):
    """Base class for all recoverable amortization errors."""


class InvalidTerm(AmortizationError, ValueError):
    """A loan term of zero or fewer periods was supplied."""

    def __init__(self, periods: int) -> None:
        super().__init__(f"Term must be a positive number of periods; got {periods}")
        self.periods = periods


class InsufficientPayment(AmortizationError):
    """A regular payment was below the loan's fixed payment."""

    def __init__(self, expected: Decimal, got: Decimal) -> None:
        super().__init__(
            f"Amount paid is insufficient payment. Expected {expected:.2f}, got {got:.2f}"
        )
        self.expected = expected
        self.got = got


class DegenerateAmortization(AmortizationError):
    """The fixed payment does not cover the interest accrued in a period.

    Projecting such a loan would never reduce the balance, so the projection is
    aborted instead.
    """

    def __init__(self, period: int, payment: Decimal, interest: Decimal) -> None:
        super().__init__(
            f"Payment {payment:.2f} does not exceed interest {interest:.2f} "
            f"in period {period}; the loan never amortizes"
        )
        self.period = period
        self.payment = payment
        self.interest = interest


class LoanNotFound(AmortizationError):
    """No loan with the requested name exists."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Could not find loan with the name: {name}")
        self.name = name


class DuplicateLoan(AmortizationError):
    """A loan with the same name already exists."""

    def __init__(self, name: str) -> None:
        super().__init__(f"A loan with the name {name} already exists")
        self.name = name
