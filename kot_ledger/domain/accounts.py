"""Credit and advance account arithmetic over the settlement log"""

import logging
from dataclasses import replace
from typing import Iterable, Sequence

from kot_ledger.domain.exceptions import (
    InsufficientAdvance,
    InvalidAmount,
    InvariantViolation,
    OverClearance,
)
from kot_ledger.domain.models import (
    ADVANCE_TOP_UP_KINDS,
    CustomerAdvanceAccount,
    CustomerCreditAccount,
    ExpenseStatus,
    ExpenseSummary,
    PaymentComponent,
    PaymentKind,
    SettlementEntry,
    SettlementSubType,
)
from kot_ledger.domain.split_payment import require_positive_amount

logger = logging.getLogger(__name__)

CLEARANCE_KINDS = frozenset({PaymentKind.CASH, PaymentKind.UPI, PaymentKind.ADVANCE_USE})


def _ensure_non_negative(account, balance: int) -> None:
    if balance < 0:
        logger.critical(
            "Negative balance computed",
            extra={"customer_id": account.customer_id, "balance": balance},
        )
        raise InvariantViolation(
            f"Balance for customer {account.customer_id} would become {balance}",
            amount=balance,
        )


def credit_account_from_entries(
    customer_id: str, entries: Iterable[SettlementEntry]
) -> CustomerCreditAccount:
    """Accrual is every Credit/Accrual entry; clearance every Clearance entry"""
    accrued = cleared = 0
    for entry in entries:
        if entry.kind == PaymentKind.CREDIT.value and entry.sub_type == SettlementSubType.ACCRUAL.value:
            accrued += entry.amount
        elif entry.sub_type == SettlementSubType.CLEARANCE.value:
            cleared += entry.amount
    return CustomerCreditAccount(customer_id=customer_id, accrued=accrued, cleared=cleared)


def advance_account_from_entries(
    customer_id: str, entries: Iterable[SettlementEntry]
) -> CustomerAdvanceAccount:
    deposited = used = 0
    top_ups = {k.value for k in ADVANCE_TOP_UP_KINDS}
    for entry in entries:
        if entry.kind in top_ups:
            deposited += entry.amount
        elif entry.kind == PaymentKind.ADVANCE_USE.value:
            used += entry.amount
    return CustomerAdvanceAccount(customer_id=customer_id, deposited=deposited, used=used)


def apply_accrual(account: CustomerCreditAccount, amount: int) -> CustomerCreditAccount:
    require_positive_amount(amount, PaymentKind.CREDIT)
    return replace(account, accrued=account.accrued + amount)


def check_clearance_components(components: Sequence[PaymentComponent]) -> int:
    """Validate clearance lines and return their sum"""
    if not components:
        raise InvalidAmount("No clearance components provided")
    total = 0
    for component in components:
        if component.kind not in CLEARANCE_KINDS:
            raise InvalidAmount(
                f"{component.kind.value} cannot be used to clear credit",
                kind=component.kind.value,
                amount=component.amount,
                component_id=component.id,
            )
        total += require_positive_amount(component.amount, component.kind, component.id)
    return total


def apply_clearance(
    account: CustomerCreditAccount, components: Sequence[PaymentComponent]
) -> CustomerCreditAccount:
    """
    Clear credit with Cash/UPI/AdvanceUse components.

    Clearing more than is owed is rejected outright; turning an excess into
    advance is a separate, explicit deposit.
    """
    requested = check_clearance_components(components)
    if requested > account.balance:
        raise OverClearance(
            f"Clearance of {requested} exceeds outstanding credit of {account.balance}",
            requested=requested,
            outstanding=account.balance,
        )
    updated = replace(account, cleared=account.cleared + requested)
    _ensure_non_negative(updated, updated.balance)
    return updated


def apply_deposit(account: CustomerAdvanceAccount, amount: int) -> CustomerAdvanceAccount:
    require_positive_amount(amount)
    return replace(account, deposited=account.deposited + amount)


def apply_use(account: CustomerAdvanceAccount, amount: int) -> CustomerAdvanceAccount:
    require_positive_amount(amount, PaymentKind.ADVANCE_USE)
    if amount > account.balance:
        raise InsufficientAdvance(
            f"AdvanceUse of {amount} exceeds available advance of {account.balance}",
            requested=amount,
            available=account.balance,
            kind=PaymentKind.ADVANCE_USE.value,
        )
    updated = replace(account, used=account.used + amount)
    _ensure_non_negative(updated, updated.balance)
    return updated


def summarize_expense(entries: Iterable[SettlementEntry]) -> ExpenseSummary:
    """
    Derive an expense's figures from its settlements alone.

    Status:
    - Paid: nothing outstanding
    - PartiallyCredited: outstanding, but some credit already cleared
    - Outstanding: outstanding and nothing cleared yet
    """
    paid = accrued = cleared = 0
    for entry in entries:
        if entry.sub_type == SettlementSubType.CLEARANCE.value:
            cleared += entry.amount
        elif entry.kind == PaymentKind.CREDIT.value:
            accrued += entry.amount
        elif entry.kind in (PaymentKind.CASH.value, PaymentKind.UPI.value):
            paid += entry.amount

    outstanding = max(0, accrued - cleared)
    if outstanding == 0:
        status = ExpenseStatus.PAID
    elif cleared > 0:
        status = ExpenseStatus.PARTIALLY_CREDITED
    else:
        status = ExpenseStatus.OUTSTANDING

    return ExpenseSummary(
        paid_amount=paid,
        credit_accrued=accrued,
        credit_cleared=cleared,
        credit_outstanding=outstanding,
        status=status,
    )
