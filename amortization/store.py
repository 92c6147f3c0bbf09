"""Persistence layer for loans and their payment history.

This module keeps loans and transactions in a relational database through
SQLAlchemy. It defaults to SQLite files for local use, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL). Loans and transactions are
correlated only by the loan name.

Recording a payment inserts the transaction and updates the loan balance in a
single database transaction, so the two never diverge.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union
import logging

from sqlalchemy import Column, Date, DateTime, Integer, Numeric, String, create_engine, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import database_url
from .data_models import Loan, Transaction
from .engine import apply_payment
from .errors import DuplicateLoan, LoanNotFound

logger = logging.getLogger(__name__)

Base = declarative_base()

# Money and rates are stored with enough scale to keep the fixed payment exact
# to well below a cent.
MONEY = Numeric(24, 10, asdecimal=True)


class LoanModel(Base):
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    payment = Column(MONEY, nullable=False)
    balance = Column(MONEY, nullable=False)
    periods = Column(Integer, nullable=False)
    apr = Column(MONEY, nullable=False)
    start_time = Column(Date, nullable=False)
    time_created = Column(DateTime, nullable=False)


class TransactionModel(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), index=True, nullable=False)
    principal = Column(MONEY, nullable=False)
    interest = Column(MONEY, nullable=False)
    from_account = Column(String(255))
    to_account = Column(String(255))
    date = Column(Date, nullable=False)
    time_created = Column(DateTime, nullable=False)


class LoanStore:
    """Database-backed loan store."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def init_schema(self) -> None:
        """Create the ``loans`` and ``transactions`` tables if missing."""
        Base.metadata.create_all(self._engine)
        logger.info("Database successfully created")

    def add_loan(self, loan: Loan) -> Loan:
        """Insert a new loan and return it with its assigned id."""
        row = LoanModel(
            name=loan.name,
            payment=loan.payment,
            balance=loan.balance,
            periods=loan.periods,
            apr=loan.apr,
            start_time=loan.start_time,
            time_created=loan.time_created,
        )
        with self._session_factory() as session:
            session.add(row)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateLoan(loan.name) from exc
            logger.info("Added loan: %s", loan.name)
            return self._loan_from_row(row)

    def get_loan(self, name: str) -> Optional[Loan]:
        """Return the loan called ``name``, or ``None`` if there is none."""
        with self._session_factory() as session:
            row = self._find_row(session, name)
            return self._loan_from_row(row) if row is not None else None

    def load_loan(self, name: str) -> Loan:
        """Return the loan called ``name``.

        Raises
        ------
        LoanNotFound
            If no such loan exists.
        """
        loan = self.get_loan(name)
        if loan is None:
            raise LoanNotFound(name)
        return loan

    def list_loans(self) -> List[Loan]:
        with self._session_factory() as session:
            rows: Iterable[LoanModel] = session.execute(
                select(LoanModel).order_by(LoanModel.name.asc())
            ).scalars()
            return [self._loan_from_row(row) for row in rows]

    def record_payment(
        self,
        name: str,
        amount: Decimal,
        force_all_principal: bool = False,
        payment_date: Optional[date] = None,
    ) -> Tuple[Transaction, Decimal]:
        """Apply a payment to the loan called ``name`` and persist it.

        The transaction insert and the balance update are committed together;
        if either fails, neither is stored.

        Raises
        ------
        LoanNotFound
            If no such loan exists.
        InsufficientPayment
            If a regular payment is below the minimum payment. Nothing is stored.
        """
        by_name = LoanModel.name == name
        with self._session_factory() as session:
            with session.begin():
                # Touch the row first so the write lock is held before the
                # balance is read; on SQLite this starts the write transaction.
                locked = session.execute(
                    update(LoanModel)
                    .where(by_name)
                    .values(balance=LoanModel.balance)
                    .execution_options(synchronize_session=False)
                )
                row = self._find_row(session, name)
                if not locked.rowcount or row is None:
                    raise LoanNotFound(name)
                loan = self._loan_from_row(row)
                transaction, new_balance = apply_payment(
                    loan, amount, force_all_principal, payment_date
                )
                tx_row = TransactionModel(
                    name=transaction.name,
                    principal=transaction.principal,
                    interest=transaction.interest,
                    date=transaction.date,
                    time_created=transaction.time_created,
                )
                session.add(tx_row)
                session.execute(
                    update(LoanModel)
                    .where(by_name)
                    .values(balance=LoanModel.balance - transaction.principal)
                    .execution_options(synchronize_session=False)
                )
                session.flush()
                new_balance = Decimal(
                    session.execute(select(LoanModel.balance).where(by_name)).scalar_one()
                )
                transaction = self._transaction_from_row(tx_row)
        logger.info(
            "Recorded payment on %s: principal=%.2f interest=%.2f balance=%.2f",
            name,
            transaction.principal,
            transaction.interest,
            new_balance,
        )
        return transaction, new_balance

    def list_transactions(self, name: str) -> List[Transaction]:
        with self._session_factory() as session:
            rows: Iterable[TransactionModel] = session.execute(
                select(TransactionModel)
                .where(TransactionModel.name == name)
                .order_by(TransactionModel.date.asc(), TransactionModel.id.asc())
            ).scalars()
            return [self._transaction_from_row(row) for row in rows]

    @staticmethod
    def _find_row(session: Session, name: str) -> Optional[LoanModel]:
        stmt = select(LoanModel).where(LoanModel.name == name)
        return session.execute(stmt).scalars().first()

    @staticmethod
    def _loan_from_row(row: LoanModel) -> Loan:
        return Loan(
            id=row.id,
            name=row.name,
            payment=Decimal(row.payment),
            balance=Decimal(row.balance),
            periods=row.periods,
            apr=Decimal(row.apr),
            start_time=row.start_time,
            time_created=row.time_created,
        )

    @staticmethod
    def _transaction_from_row(row: TransactionModel) -> Transaction:
        return Transaction(
            id=row.id,
            name=row.name,
            principal=Decimal(row.principal),
            interest=Decimal(row.interest),
            date=row.date,
            time_created=row.time_created,
        )


def create_store(db: Optional[Union[str, Path]] = None) -> LoanStore:
    """Return a store for a database path or URL (see ``config.database_url``)."""
    return LoanStore(database_url(db))
