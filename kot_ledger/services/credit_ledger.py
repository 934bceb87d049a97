"""Credit ledger accountant - customer credit accrual and clearance"""

import uuid
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from kot_ledger.domain.accounts import apply_accrual, apply_clearance
from kot_ledger.domain.models import (
    ClearanceResult,
    CreditHolder,
    CustomerCreditAccount,
    PaymentComponent,
    PaymentKind,
    SettlementEntry,
    SettlementSubType,
)
from kot_ledger.infrastructure.database.repositories import (
    CustomerRepository,
    SettlementRepository,
    to_settlement_entry,
)
from kot_ledger.infrastructure.database.session import atomic
from kot_ledger.infrastructure.observability.logging import log_settlement
from kot_ledger.infrastructure.observability.metrics import record_settlement
from kot_ledger.services.advance_ledger import AdvanceLedger
from kot_ledger.utils.money import clearance_message


class CreditLedger:
    """Accrual and clearance of what customers owe"""

    def __init__(self, db: Session):
        self.db = db
        self.customers = CustomerRepository(db)
        self.settlements = SettlementRepository(db)
        self.advance = AdvanceLedger(db)

    def get_account(self, customer_id: str) -> CustomerCreditAccount:
        """Credit position computed from the settlement log"""
        totals = self.settlements.customer_totals(customer_id)
        return CustomerCreditAccount(
            customer_id=customer_id,
            accrued=totals["accrued"],
            cleared=totals["cleared"],
        )

    def get_balance(self, customer_id: str) -> int:
        return self.get_account(customer_id).balance

    def get_history(self, customer_id: str, limit: int = 100) -> List[SettlementEntry]:
        return [to_settlement_entry(row) for row in self.settlements.credit_history(customer_id, limit)]

    def customers_with_credit(self) -> List[CreditHolder]:
        return [
            CreditHolder(customer_id=c.id, name=c.name, contact=c.contact, balance=c.credit_balance)
            for c in self.customers.with_credit()
        ]

    def total_outstanding(self) -> int:
        return self.customers.total_credit()

    def record_accrual(
        self,
        customer_id: str,
        amount: int,
        reference_id: Optional[str] = None,
        remarks: Optional[str] = None,
    ) -> SettlementEntry:
        """Put amount on the customer's account"""
        with atomic(self.db):
            customer = self.customers.get_or_create(customer_id)
            apply_accrual(self.get_account(customer_id), amount)
            row = self.settlements.append(
                PaymentKind.CREDIT,
                amount,
                customer_id=customer_id,
                sub_type=SettlementSubType.ACCRUAL,
                reference_id=reference_id,
                remarks=remarks,
            )
            self.customers.update_cached_balances(
                customer, customer.credit_balance + amount, customer.advance_balance
            )
        record_settlement(PaymentKind.CREDIT.value, amount)
        log_settlement("credit_accrual", amount, customer_id=customer_id, reference_id=reference_id)
        return to_settlement_entry(row)

    def record_clearance(
        self,
        customer_id: str,
        components: Sequence[PaymentComponent],
        remarks: Optional[str] = None,
    ) -> ClearanceResult:
        """
        Collect a due with Cash, UPI and/or AdvanceUse components.

        The whole request is validated before anything is written: an
        amount above the outstanding balance fails with OverClearance and an
        AdvanceUse above the wallet fails with InsufficientAdvance.
        """
        reference_id = uuid.uuid4().hex
        remarks = remarks or "Credit Clearance"
        with atomic(self.db):
            customer = self.customers.require(customer_id)
            updated = apply_clearance(self.get_account(customer_id), components)
            cleared = sum(c.amount for c in components)
            advance_spent = 0
            for component in components:
                if component.kind == PaymentKind.ADVANCE_USE:
                    self.advance.append_use(
                        customer_id,
                        component.amount,
                        sub_type=SettlementSubType.CLEARANCE,
                        reference_id=reference_id,
                        remarks=remarks,
                    )
                    advance_spent += component.amount
                else:
                    self.settlements.append(
                        component.kind,
                        component.amount,
                        customer_id=customer_id,
                        sub_type=SettlementSubType.CLEARANCE,
                        reference_id=reference_id,
                        remarks=remarks,
                    )
            self.customers.update_cached_balances(
                customer,
                customer.credit_balance - cleared,
                customer.advance_balance - advance_spent,
            )

        for component in components:
            record_settlement(component.kind.value, component.amount)
        log_settlement(
            "credit_clearance",
            cleared,
            customer_id=customer_id,
            reference_id=reference_id,
            remaining=updated.balance,
        )
        return ClearanceResult(
            customer_id=customer_id,
            cleared=cleared,
            remaining_balance=updated.balance,
            message=clearance_message(cleared, updated.balance),
        )
