"""Data access layer for customers, bills, expenses and settlements"""

from datetime import date, datetime, timezone
from typing import Dict, List, Optional
from sqlalchemy import case, func
from sqlalchemy.orm import Query, Session
from kot_ledger.infrastructure.database.models import Bill, Customer, Expense, Settlement
from kot_ledger.domain.exceptions import ConcurrentModification, CustomerNotFound, ExpenseNotFound
from kot_ledger.domain.models import ADVANCE_TOP_UP_KINDS, PaymentKind, SettlementEntry, SettlementSubType
from kot_ledger.utils.date_utils import financial_year_bounds, shop_timezone


def to_settlement_entry(row: Settlement) -> SettlementEntry:
    return SettlementEntry(
        id=row.id,
        kind=row.kind,
        amount=row.amount,
        created_at=row.created_at,
        sub_type=row.sub_type,
        customer_id=row.customer_id,
        expense_id=row.expense_id,
        bill_id=row.bill_id,
        reference_id=row.reference_id,
        remarks=row.remarks,
    )


# SUM(CASE ...) expressions shared by balance queries
_ACCRUED = func.coalesce(
    func.sum(
        case(
            (
                (Settlement.kind == PaymentKind.CREDIT.value)
                & (Settlement.sub_type == SettlementSubType.ACCRUAL.value),
                Settlement.amount,
            ),
            else_=0,
        )
    ),
    0,
)
_CLEARED = func.coalesce(
    func.sum(
        case((Settlement.sub_type == SettlementSubType.CLEARANCE.value, Settlement.amount), else_=0)
    ),
    0,
)
_DEPOSITED = func.coalesce(
    func.sum(
        case(
            (Settlement.kind.in_([k.value for k in ADVANCE_TOP_UP_KINDS]), Settlement.amount),
            else_=0,
        )
    ),
    0,
)
_USED = func.coalesce(
    func.sum(case((Settlement.kind == PaymentKind.ADVANCE_USE.value, Settlement.amount), else_=0)),
    0,
)


class CustomerRepository:
    """Repository for customers and their cached balances"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, customer_id: str) -> Optional[Customer]:
        return self.db.get(Customer, customer_id)

    def require(self, customer_id: str) -> Customer:
        customer = self.get(customer_id)
        if customer is None:
            raise CustomerNotFound(f"Customer {customer_id} not found")
        return customer

    def create(self, name: Optional[str] = None, contact: Optional[str] = None, customer_id: Optional[str] = None) -> Customer:
        customer = Customer(name=name, contact=contact, credit_balance=0, advance_balance=0, version=0)
        if customer_id:
            customer.id = customer_id
        self.db.add(customer)
        self.db.flush()
        return customer

    def get_or_create(self, customer_id: str) -> Customer:
        """Accounts come into existence with the first transaction"""
        customer = self.get(customer_id)
        if customer is None:
            customer = self.create(customer_id=customer_id)
        return customer

    def update_cached_balances(self, customer: Customer, credit_balance: int, advance_balance: int) -> None:
        """Compare-and-swap on version; a concurrent writer makes this fail"""
        expected_version = customer.version
        updated = (
            self.db.query(Customer)
            .filter(Customer.id == customer.id, Customer.version == expected_version)
            .update(
                {
                    Customer.credit_balance: credit_balance,
                    Customer.advance_balance: advance_balance,
                    Customer.version: Customer.version + 1,
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise ConcurrentModification(
                f"Customer {customer.id} was modified concurrently (expected version {expected_version})"
            )
        self.db.expire(customer)

    def with_credit(self) -> List[Customer]:
        return (
            self.db.query(Customer)
            .filter(Customer.credit_balance > 0)
            .order_by(Customer.credit_balance.desc(), Customer.created_at.desc())
            .all()
        )

    def total_credit(self) -> int:
        return self.db.query(func.coalesce(func.sum(Customer.credit_balance), 0)).filter(
            Customer.credit_balance > 0
        ).scalar()

    def count(self) -> int:
        return self.db.query(func.count(Customer.id)).scalar()

    def count_with_credit(self) -> int:
        return self.db.query(func.count(Customer.id)).filter(Customer.credit_balance > 0).scalar()

    def all(self) -> List[Customer]:
        return self.db.query(Customer).order_by(Customer.created_at).all()


class SettlementRepository:
    """Repository for the append-only settlement log"""

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        kind: PaymentKind,
        amount: int,
        customer_id: Optional[str] = None,
        expense_id: Optional[str] = None,
        bill_id: Optional[str] = None,
        sub_type: Optional[SettlementSubType] = None,
        reference_id: Optional[str] = None,
        remarks: Optional[str] = None,
    ) -> Settlement:
        row = Settlement(
            kind=PaymentKind(kind).value,
            amount=amount,
            customer_id=customer_id,
            expense_id=expense_id,
            bill_id=bill_id,
            sub_type=sub_type.value if sub_type else None,
            reference_id=reference_id,
            remarks=remarks,
        )
        self.db.add(row)
        self.db.flush()  # Get ID without committing
        return row

    def for_expense(self, expense_id: str) -> List[Settlement]:
        return (
            self.db.query(Settlement)
            .filter(Settlement.expense_id == expense_id)
            .order_by(Settlement.created_at, Settlement.id)
            .all()
        )

    def credit_history(self, customer_id: str, limit: int = 100) -> List[Settlement]:
        """Accruals and clearances, newest first"""
        return (
            self.db.query(Settlement)
            .filter(
                Settlement.customer_id == customer_id,
                Settlement.sub_type.in_(
                    [SettlementSubType.ACCRUAL.value, SettlementSubType.CLEARANCE.value]
                ),
            )
            .order_by(Settlement.created_at.desc(), Settlement.id.desc())
            .limit(limit)
            .all()
        )

    def advance_ledger_query(self, customer_id: str, limit: int) -> Query:
        """Deposits and uses, newest first"""
        kinds = [PaymentKind.ADVANCE_USE.value] + [k.value for k in ADVANCE_TOP_UP_KINDS]
        return (
            self.db.query(Settlement)
            .filter(Settlement.customer_id == customer_id, Settlement.kind.in_(kinds))
            .order_by(Settlement.created_at.desc(), Settlement.id.desc())
            .limit(limit)
        )

    def customer_totals(self, customer_id: str) -> Dict[str, int]:
        row = (
            self.db.query(
                _ACCRUED.label("accrued"),
                _CLEARED.label("cleared"),
                _DEPOSITED.label("deposited"),
                _USED.label("used"),
            )
            .filter(Settlement.customer_id == customer_id)
            .one()
        )
        return {
            "accrued": int(row.accrued),
            "cleared": int(row.cleared),
            "deposited": int(row.deposited),
            "used": int(row.used),
        }

    def totals_by_customer(self) -> Dict[str, Dict[str, int]]:
        """Log-derived totals for every customer with at least one settlement"""
        rows = (
            self.db.query(
                Settlement.customer_id,
                _ACCRUED.label("accrued"),
                _CLEARED.label("cleared"),
                _DEPOSITED.label("deposited"),
                _USED.label("used"),
            )
            .filter(Settlement.customer_id.isnot(None))
            .group_by(Settlement.customer_id)
            .all()
        )
        return {
            r.customer_id: {
                "accrued": int(r.accrued),
                "cleared": int(r.cleared),
                "deposited": int(r.deposited),
                "used": int(r.used),
            }
            for r in rows
        }

    def expense_totals(self) -> Dict[str, Dict[str, int]]:
        """Accrued and cleared credit per expense"""
        rows = (
            self.db.query(
                Settlement.expense_id,
                _ACCRUED.label("accrued"),
                _CLEARED.label("cleared"),
            )
            .filter(Settlement.expense_id.isnot(None))
            .group_by(Settlement.expense_id)
            .all()
        )
        return {r.expense_id: {"accrued": int(r.accrued), "cleared": int(r.cleared)} for r in rows}

    def counts_by_kind(self) -> Dict[str, int]:
        rows = self.db.query(Settlement.kind, func.count(Settlement.id)).group_by(Settlement.kind).all()
        return {kind: count for kind, count in rows}

    def count(self) -> int:
        return self.db.query(func.count(Settlement.id)).scalar()

    def rewrite_kind(self, old_kind: str, new_kind: PaymentKind) -> int:
        """Relabel every row carrying old_kind; returns rows changed"""
        return (
            self.db.query(Settlement)
            .filter(Settlement.kind == old_kind)
            .update({Settlement.kind: PaymentKind(new_kind).value}, synchronize_session=False)
        )


class BillRepository:
    """Repository for bills"""

    def __init__(self, db: Session):
        self.db = db

    def next_bill_number(self, when: datetime) -> int:
        """Bill numbers restart every financial year"""
        start, end = financial_year_bounds(when)
        current = (
            self.db.query(func.max(Bill.bill_number))
            .filter(Bill.created_at >= start, Bill.created_at < end)
            .scalar()
        )
        return (current or 0) + 1

    def create(self, customer_id: str, total: int, remarks: Optional[str] = None) -> Bill:
        now = datetime.now(timezone.utc)
        bill = Bill(
            bill_number=self.next_bill_number(now),
            customer_id=customer_id,
            total=total,
            remarks=remarks,
            created_at=now,
        )
        self.db.add(bill)
        self.db.flush()
        return bill


class ExpenseRepository:
    """Repository for business expenses"""

    def __init__(self, db: Session):
        self.db = db

    def next_voucher_no(self, when: datetime) -> int:
        start, end = financial_year_bounds(when)
        current = (
            self.db.query(func.max(Expense.voucher_no))
            .filter(Expense.created_at >= start, Expense.created_at < end)
            .scalar()
        )
        return (current or 0) + 1

    def create(
        self,
        amount: int,
        category: str,
        mode: str,
        remarks: Optional[str] = None,
        expense_date: Optional[date] = None,
    ) -> Expense:
        now = datetime.now(timezone.utc)
        expense = Expense(
            voucher_no=self.next_voucher_no(now),
            amount=amount,
            category=category,
            mode=mode,
            remarks=remarks,
            expense_date=expense_date or now.astimezone(shop_timezone()).date(),
            created_at=now,
        )
        self.db.add(expense)
        self.db.flush()
        return expense

    def get(self, expense_id: str) -> Optional[Expense]:
        return self.db.get(Expense, expense_id)

    def require(self, expense_id: str) -> Expense:
        expense = self.get(expense_id)
        if expense is None:
            raise ExpenseNotFound(f"Expense {expense_id} not found")
        return expense

    def by_ids(self, expense_ids: List[str]) -> List[Expense]:
        if not expense_ids:
            return []
        return (
            self.db.query(Expense)
            .filter(Expense.id.in_(expense_ids))
            .order_by(Expense.created_at.desc())
            .all()
        )
