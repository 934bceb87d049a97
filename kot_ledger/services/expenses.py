"""Expense book - business expenses, split payments and vendor credit"""

from datetime import date
from typing import List, Optional, Sequence, Union

from sqlalchemy.orm import Session

from kot_ledger.config import settings
from kot_ledger.domain.accounts import check_clearance_components, summarize_expense
from kot_ledger.domain.exceptions import InvalidAmount, OverClearance
from kot_ledger.domain.models import (
    CASH_LIKE_KINDS,
    ExpenseDetails,
    PaymentComponent,
    PaymentKind,
    SettlementSubType,
    SplitContext,
)
from kot_ledger.domain.split_payment import (
    build_split,
    coerce_kind,
    contributing_total,
    require_positive_amount,
    validate_total,
)
from kot_ledger.infrastructure.database.models import Expense
from kot_ledger.infrastructure.database.repositories import (
    ExpenseRepository,
    SettlementRepository,
    to_settlement_entry,
)
from kot_ledger.infrastructure.database.session import atomic
from kot_ledger.infrastructure.observability.logging import log_settlement
from kot_ledger.infrastructure.observability.metrics import record_settlement


class ExpenseService:
    """Expenses paid now, on credit, or both"""

    def __init__(self, db: Session):
        self.db = db
        self.expenses = ExpenseRepository(db)
        self.settlements = SettlementRepository(db)

    def _details(self, expense: Expense) -> ExpenseDetails:
        entries = [to_settlement_entry(row) for row in self.settlements.for_expense(expense.id)]
        return ExpenseDetails(
            id=expense.id,
            voucher_no=expense.voucher_no,
            amount=expense.amount,
            category=expense.category,
            mode=expense.mode,
            remarks=expense.remarks,
            expense_date=expense.expense_date,
            created_at=expense.created_at,
            settlements=entries,
            summary=summarize_expense(entries),
        )

    def get_expense(self, expense_id: str) -> ExpenseDetails:
        return self._details(self.expenses.require(expense_id))

    def create_expense(
        self,
        amount: int,
        category: str,
        payment_kind: Optional[Union[PaymentKind, str]] = None,
        components: Optional[Sequence[PaymentComponent]] = None,
        remarks: Optional[str] = None,
        expense_date: Optional[date] = None,
    ) -> ExpenseDetails:
        """
        Record an expense and how it was settled.

        Either a single payment kind (the whole amount) or split components
        that sum to the amount. Same-kind components are merged first and
        only one Credit line may remain.
        """
        require_positive_amount(amount)
        if amount > settings.max_transaction_amount:
            raise InvalidAmount(
                f"Expense amount {amount} exceeds the maximum of {settings.max_transaction_amount}",
                amount=amount,
            )
        category = (category or "").strip()
        if not category:
            raise InvalidAmount("An expense needs a category", amount=amount)

        if (components is None) == (payment_kind is None):
            raise InvalidAmount("Provide either a payment kind or split components, not both", amount=amount)
        if components is not None:
            split = build_split(components, amount, SplitContext.EXPENSE)
        else:
            kind = coerce_kind(payment_kind)
            split = build_split([PaymentComponent(kind=kind, amount=amount)], amount, SplitContext.EXPENSE)

        if not validate_total(split, amount, tolerance=settings.rounding_tolerance_minor):
            allocated = contributing_total(split)
            raise InvalidAmount(
                f"Split total {allocated} does not match expense amount {amount}",
                amount=allocated,
            )

        # Legacy display label
        mode = split.components[0].kind.value if len(split) == 1 else "Split"

        with atomic(self.db):
            expense = self.expenses.create(
                amount=amount,
                category=category,
                mode=mode,
                remarks=remarks,
                expense_date=expense_date,
            )
            for component in split:
                self.settlements.append(
                    component.kind,
                    component.amount,
                    expense_id=expense.id,
                    sub_type=SettlementSubType.ACCRUAL if component.kind == PaymentKind.CREDIT else None,
                    remarks=remarks,
                )
            details = self._details(expense)

        for component in split:
            record_settlement(component.kind.value, component.amount)
        log_settlement(
            "expense_created",
            amount,
            expense_id=details.id,
            credit_outstanding=details.summary.credit_outstanding,
        )
        return details

    def clear_expense_credit(
        self,
        expense_id: str,
        components: Sequence[PaymentComponent],
        remarks: Optional[str] = None,
    ) -> ExpenseDetails:
        """Pay down an expense's outstanding credit with Cash/UPI"""
        for component in components:
            if component.kind not in CASH_LIKE_KINDS:
                raise InvalidAmount(
                    f"{component.kind.value} cannot clear expense credit",
                    kind=component.kind.value,
                    amount=component.amount,
                    component_id=component.id,
                )
        requested = check_clearance_components(components)

        with atomic(self.db):
            expense = self.expenses.require(expense_id)
            outstanding = self._details(expense).summary.credit_outstanding
            if requested > outstanding:
                raise OverClearance(
                    f"Clearance of {requested} exceeds outstanding expense credit of {outstanding}",
                    requested=requested,
                    outstanding=outstanding,
                )
            for component in components:
                self.settlements.append(
                    component.kind,
                    component.amount,
                    expense_id=expense.id,
                    sub_type=SettlementSubType.CLEARANCE,
                    remarks=remarks,
                )
            details = self._details(expense)

        for component in components:
            record_settlement(component.kind.value, component.amount)
        log_settlement(
            "expense_credit_cleared",
            requested,
            expense_id=expense_id,
            credit_outstanding=details.summary.credit_outstanding,
        )
        return details

    def outstanding_expenses(self) -> List[ExpenseDetails]:
        """Expenses still owing credit to a vendor, newest first"""
        totals = self.settlements.expense_totals()
        owing = [eid for eid, t in totals.items() if t["accrued"] > t["cleared"]]
        return [self._details(expense) for expense in self.expenses.by_ids(owing)]

    def total_outstanding(self) -> int:
        totals = self.settlements.expense_totals()
        return sum(max(0, t["accrued"] - t["cleared"]) for t in totals.values())
