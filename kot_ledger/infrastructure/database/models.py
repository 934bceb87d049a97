"""SQLAlchemy ORM models for customers, bills, expenses and the settlement log"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, BigInteger, Date, DateTime, Integer, ForeignKey, Text, Index
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Customer(Base):
    """Customer with cached balances derived from the settlement log"""

    __tablename__ = "customers"

    id = Column(String(64), primary_key=True, default=_new_id)
    name = Column(Text, nullable=True)
    contact = Column(Text, nullable=True)
    credit_balance = Column(BigInteger, nullable=False, default=0)
    advance_balance = Column(BigInteger, nullable=False, default=0)
    # Bumped on every cached-balance write; guards against lost updates
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    bills = relationship("Bill", back_populates="customer")


class Bill(Base):
    """One settlement of a customer's KOTs"""

    __tablename__ = "bills"

    id = Column(String(64), primary_key=True, default=_new_id)
    bill_number = Column(Integer, nullable=False)
    customer_id = Column(String(64), ForeignKey("customers.id"), nullable=False, index=True)
    total = Column(BigInteger, nullable=False)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    customer = relationship("Customer", back_populates="bills")


class Expense(Base):
    """Business expense; payment figures live in the settlement log"""

    __tablename__ = "expenses"

    id = Column(String(64), primary_key=True, default=_new_id)
    voucher_no = Column(Integer, nullable=False)
    amount = Column(BigInteger, nullable=False)
    category = Column(Text, nullable=False)
    mode = Column(Text, nullable=False)  # Cash | UPI | Credit | Split (display only)
    remarks = Column(Text, nullable=True)
    expense_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class Settlement(Base):
    """Append-only record of one payment component applied to a bill, expense or clearance"""

    __tablename__ = "settlements"
    __table_args__ = (
        Index("ix_settlements_customer_created", "customer_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(String(64), ForeignKey("customers.id"), nullable=True)
    expense_id = Column(String(64), ForeignKey("expenses.id"), nullable=True, index=True)
    bill_id = Column(String(64), ForeignKey("bills.id"), nullable=True, index=True)
    # Free text so legacy labels survive until migrate_legacy_modes runs
    kind = Column(Text, nullable=False, index=True)
    sub_type = Column(Text, nullable=True)  # Accrual | Clearance
    amount = Column(BigInteger, nullable=False)
    reference_id = Column(String(64), nullable=True)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
