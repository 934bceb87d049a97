"""Advance balance manager - customer pre-paid funds"""

from typing import Iterator, Optional, Union

from sqlalchemy.orm import Session

from kot_ledger.config import settings
from kot_ledger.domain.accounts import apply_deposit, apply_use
from kot_ledger.domain.exceptions import InvalidAmount
from kot_ledger.domain.models import (
    CustomerAdvanceAccount,
    PaymentKind,
    SettlementEntry,
    SettlementSubType,
)
from kot_ledger.domain.split_payment import coerce_kind
from kot_ledger.infrastructure.database.models import Settlement
from kot_ledger.infrastructure.database.repositories import (
    CustomerRepository,
    SettlementRepository,
    to_settlement_entry,
)
from kot_ledger.infrastructure.database.session import atomic
from kot_ledger.infrastructure.observability.logging import log_settlement
from kot_ledger.infrastructure.observability.metrics import record_settlement

_DEPOSIT_KINDS = {
    PaymentKind.CASH: PaymentKind.ADVANCE_ADD_CASH,
    PaymentKind.UPI: PaymentKind.ADVANCE_ADD_UPI,
    PaymentKind.ADVANCE_ADD_CASH: PaymentKind.ADVANCE_ADD_CASH,
    PaymentKind.ADVANCE_ADD_UPI: PaymentKind.ADVANCE_ADD_UPI,
}


def deposit_kind(method: Union[PaymentKind, str]) -> PaymentKind:
    """Cash/UPI (or the matching top-up kind) to the AdvanceAdd* kind"""
    kind = coerce_kind(method)
    if kind not in _DEPOSIT_KINDS:
        raise InvalidAmount(f"Advance cannot be deposited by {kind.value}", kind=kind.value)
    return _DEPOSIT_KINDS[kind]


class AdvanceLedgerView:
    """
    Newest-first advance entries for one customer, up to limit.

    Lazy and restartable: every iteration runs a fresh query, so iterating
    again yields the same entries unless new ones were written.
    """

    def __init__(self, settlements: SettlementRepository, customer_id: str, limit: int):
        self._settlements = settlements
        self.customer_id = customer_id
        self.limit = limit

    def __iter__(self) -> Iterator[SettlementEntry]:
        query = self._settlements.advance_ledger_query(self.customer_id, self.limit)
        for row in query.yield_per(50):
            yield to_settlement_entry(row)


class AdvanceLedger:
    """Deposits into and uses of customer advance wallets"""

    def __init__(self, db: Session):
        self.db = db
        self.customers = CustomerRepository(db)
        self.settlements = SettlementRepository(db)

    def get_account(self, customer_id: str) -> CustomerAdvanceAccount:
        totals = self.settlements.customer_totals(customer_id)
        return CustomerAdvanceAccount(
            customer_id=customer_id,
            deposited=totals["deposited"],
            used=totals["used"],
        )

    def get_balance(self, customer_id: str) -> int:
        return self.get_account(customer_id).balance

    def get_ledger(self, customer_id: str, limit: Optional[int] = None) -> AdvanceLedgerView:
        return AdvanceLedgerView(self.settlements, customer_id, limit or settings.default_ledger_limit)

    # Writers below join the caller's transaction and leave cached balances alone

    def append_deposit(
        self,
        customer_id: str,
        amount: int,
        method: Union[PaymentKind, str],
        bill_id: Optional[str] = None,
        reference_id: Optional[str] = None,
        remarks: Optional[str] = None,
    ) -> Settlement:
        kind = deposit_kind(method)
        apply_deposit(self.get_account(customer_id), amount)
        return self.settlements.append(
            kind,
            amount,
            customer_id=customer_id,
            bill_id=bill_id,
            reference_id=reference_id,
            remarks=remarks,
        )

    def append_use(
        self,
        customer_id: str,
        amount: int,
        bill_id: Optional[str] = None,
        sub_type: Optional[SettlementSubType] = None,
        reference_id: Optional[str] = None,
        remarks: Optional[str] = None,
    ) -> Settlement:
        # Balance is read from the log inside the current transaction
        apply_use(self.get_account(customer_id), amount)
        return self.settlements.append(
            PaymentKind.ADVANCE_USE,
            amount,
            customer_id=customer_id,
            bill_id=bill_id,
            sub_type=sub_type,
            reference_id=reference_id,
            remarks=remarks,
        )

    def deposit(
        self,
        customer_id: str,
        amount: int,
        method: Union[PaymentKind, str] = PaymentKind.CASH,
        remarks: Optional[str] = None,
    ) -> SettlementEntry:
        """Add money to a customer's advance wallet"""
        with atomic(self.db):
            customer = self.customers.get_or_create(customer_id)
            row = self.append_deposit(customer_id, amount, method, remarks=remarks)
            self.customers.update_cached_balances(
                customer, customer.credit_balance, customer.advance_balance + amount
            )
        entry = to_settlement_entry(row)
        record_settlement(entry.kind, amount)
        log_settlement("advance_deposit", amount, customer_id=customer_id, kind=entry.kind)
        return entry

    def use(
        self,
        customer_id: str,
        amount: int,
        reference_id: Optional[str] = None,
        remarks: Optional[str] = None,
    ) -> SettlementEntry:
        """Spend advance; fails with InsufficientAdvance beyond the balance"""
        with atomic(self.db):
            customer = self.customers.require(customer_id)
            row = self.append_use(customer_id, amount, reference_id=reference_id, remarks=remarks)
            self.customers.update_cached_balances(
                customer, customer.credit_balance, customer.advance_balance - amount
            )
        entry = to_settlement_entry(row)
        record_settlement(entry.kind, amount)
        log_settlement("advance_use", amount, customer_id=customer_id, reference_id=reference_id)
        return entry
