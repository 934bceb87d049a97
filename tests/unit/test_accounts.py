"""Unit tests for credit/advance arithmetic and expense summaries"""

import pytest
from datetime import datetime, timezone
from kot_ledger.domain.accounts import (
    advance_account_from_entries,
    apply_accrual,
    apply_clearance,
    apply_deposit,
    apply_use,
    check_clearance_components,
    credit_account_from_entries,
    summarize_expense,
)
from kot_ledger.domain.models import (
    CustomerAdvanceAccount,
    CustomerCreditAccount,
    ExpenseStatus,
    PaymentComponent,
    PaymentKind,
    SettlementEntry,
)
from kot_ledger.domain.exceptions import InsufficientAdvance, InvalidAmount, OverClearance


def entry(kind: str, amount: int, sub_type: str = None, entry_id: int = 1) -> SettlementEntry:
    return SettlementEntry(
        id=entry_id,
        kind=kind,
        amount=amount,
        created_at=datetime(2024, 4, 1, tzinfo=timezone.utc),
        sub_type=sub_type,
    )


def test_credit_account_from_entries():
    entries = [
        entry("Credit", 500, "Accrual"),
        entry("Cash", 1000),
        entry("Cash", 200, "Clearance"),
        entry("AdvanceUse", 100, "Clearance"),
        entry("Credit", 300, "Accrual"),
    ]

    account = credit_account_from_entries("c1", entries)

    assert account.accrued == 800
    assert account.cleared == 300
    assert account.balance == 500


def test_advance_account_from_entries():
    entries = [
        entry("AdvanceAddCash", 500),
        entry("AdvanceAddUPI", 250),
        entry("AdvanceUse", 300),
        entry("Cash", 999),
    ]

    account = advance_account_from_entries("c1", entries)

    assert account.deposited == 750
    assert account.used == 300
    assert account.balance == 450


def test_apply_accrual_returns_new_account():
    account = CustomerCreditAccount("c1")

    updated = apply_accrual(account, 400)

    assert updated.balance == 400
    assert account.balance == 0


def test_apply_accrual_rejects_zero():
    with pytest.raises(InvalidAmount):
        apply_accrual(CustomerCreditAccount("c1"), 0)


def test_apply_clearance_within_balance():
    account = CustomerCreditAccount("c1", accrued=1000)

    updated = apply_clearance(
        account,
        [PaymentComponent(PaymentKind.CASH, 300), PaymentComponent(PaymentKind.ADVANCE_USE, 200)],
    )

    assert updated.cleared == 500
    assert updated.balance == 500


def test_apply_clearance_exact_balance():
    account = CustomerCreditAccount("c1", accrued=1000, cleared=400)

    updated = apply_clearance(account, [PaymentComponent(PaymentKind.UPI, 600)])

    assert updated.balance == 0


def test_over_clearance_leaves_balance_unchanged():
    account = CustomerCreditAccount("c1", accrued=200)

    with pytest.raises(OverClearance) as exc_info:
        apply_clearance(account, [PaymentComponent(PaymentKind.CASH, 201)])

    assert exc_info.value.requested == 201
    assert exc_info.value.outstanding == 200
    assert account.balance == 200


def test_clearance_rejects_credit_component():
    with pytest.raises(InvalidAmount) as exc_info:
        check_clearance_components([PaymentComponent(PaymentKind.CREDIT, 100, id="x")])

    assert exc_info.value.component_id == "x"


def test_clearance_requires_components():
    with pytest.raises(InvalidAmount):
        check_clearance_components([])


@pytest.mark.parametrize(
    "operations",
    [
        [("accrue", 500), ("clear", 200), ("clear", 300), ("clear", 1)],
        [("accrue", 100), ("clear", 150), ("accrue", 50), ("clear", 150)],
        [("clear", 10), ("accrue", 10), ("clear", 10)],
    ],
)
def test_credit_balance_never_negative(operations):
    account = CustomerCreditAccount("c1")
    for op, amount in operations:
        if op == "accrue":
            account = apply_accrual(account, amount)
        else:
            try:
                account = apply_clearance(account, [PaymentComponent(PaymentKind.CASH, amount)])
            except OverClearance:
                pass
        assert account.balance >= 0


def test_advance_deposit_and_use():
    account = apply_deposit(CustomerAdvanceAccount("c1"), 150)
    account = apply_use(account, 100)

    assert account.balance == 50
    assert account.balance == account.deposited - account.used


def test_advance_use_beyond_balance():
    account = CustomerAdvanceAccount("c1", deposited=150)

    with pytest.raises(InsufficientAdvance) as exc_info:
        apply_use(account, 200)

    assert exc_info.value.available == 150
    assert account.balance == 150


def test_summarize_expense_split_with_credit():
    summary = summarize_expense(
        [entry("Cash", 300), entry("UPI", 200), entry("Credit", 500, "Accrual")]
    )

    assert summary.paid_amount == 500
    assert summary.credit_accrued == 500
    assert summary.credit_outstanding == 500
    assert summary.status == ExpenseStatus.OUTSTANDING


def test_summarize_expense_partially_cleared():
    summary = summarize_expense(
        [entry("Credit", 500, "Accrual"), entry("Cash", 300, "Clearance")]
    )

    assert summary.credit_cleared == 300
    assert summary.credit_outstanding == 200
    assert summary.paid_amount == 0
    assert summary.status == ExpenseStatus.PARTIALLY_CREDITED


def test_summarize_expense_fully_paid():
    assert summarize_expense([entry("UPI", 800)]).status == ExpenseStatus.PAID
    assert (
        summarize_expense([entry("Credit", 500, "Accrual"), entry("UPI", 500, "Clearance")]).status
        == ExpenseStatus.PAID
    )
