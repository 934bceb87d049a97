"""Integration tests for customer credit accrual and clearance"""

import pytest
from sqlalchemy.orm import Session
from kot_ledger.domain.models import PaymentComponent, PaymentKind
from kot_ledger.domain.exceptions import (
    ConcurrentModification,
    CustomerNotFound,
    InsufficientAdvance,
    InvalidAmount,
    OverClearance,
)
from kot_ledger.infrastructure.database.models import Customer, Settlement
from kot_ledger.infrastructure.database.repositories import CustomerRepository
from kot_ledger.services.advance_ledger import AdvanceLedger
from kot_ledger.services.credit_ledger import CreditLedger


def settlement_count(db: Session) -> int:
    return db.query(Settlement).count()


def test_accrual_creates_account_and_updates_cache(db: Session):
    ledger = CreditLedger(db)

    entry = ledger.record_accrual("walk_in", 500, reference_id="kot-7", remarks="Lunch")

    assert entry.kind == "Credit"
    assert entry.sub_type == "Accrual"
    assert ledger.get_balance("walk_in") == 500
    customer = db.get(Customer, "walk_in")
    assert customer.credit_balance == 500
    assert customer.version == 1


def test_accrual_rejects_non_positive(db: Session, customer: Customer):
    with pytest.raises(InvalidAmount):
        CreditLedger(db).record_accrual(customer.id, 0)

    assert settlement_count(db) == 0


def test_clearance_with_cash_and_upi(db: Session, customer: Customer):
    ledger = CreditLedger(db)
    ledger.record_accrual(customer.id, 1000)

    result = ledger.record_clearance(
        customer.id,
        [PaymentComponent(PaymentKind.CASH, 300), PaymentComponent(PaymentKind.UPI, 200)],
    )

    assert result.cleared == 500
    assert result.remaining_balance == 500
    assert result.message == "Credit cleared: ₹5.00 (Remaining ₹5.00)"
    assert ledger.get_balance(customer.id) == 500
    assert db.get(Customer, customer.id).credit_balance == 500

    clearances = [e for e in ledger.get_history(customer.id) if e.sub_type == "Clearance"]
    assert {e.kind for e in clearances} == {"Cash", "UPI"}
    assert len({e.reference_id for e in clearances}) == 1


def test_clearance_with_advance(db: Session, customer: Customer):
    advance = AdvanceLedger(db)
    ledger = CreditLedger(db)
    advance.deposit(customer.id, 400)
    ledger.record_accrual(customer.id, 1000)

    result = ledger.record_clearance(
        customer.id,
        [PaymentComponent(PaymentKind.ADVANCE_USE, 400), PaymentComponent(PaymentKind.CASH, 600)],
    )

    assert result.remaining_balance == 0
    assert result.message == "Credit cleared: ₹10.00"
    assert advance.get_balance(customer.id) == 0
    cached = db.get(Customer, customer.id)
    assert (cached.credit_balance, cached.advance_balance) == (0, 0)


def test_over_clearance_rejected_without_writes(db: Session, customer: Customer):
    ledger = CreditLedger(db)
    ledger.record_accrual(customer.id, 200)
    before = settlement_count(db)

    with pytest.raises(OverClearance) as exc_info:
        ledger.record_clearance(customer.id, [PaymentComponent(PaymentKind.CASH, 500)])

    assert exc_info.value.outstanding == 200
    assert settlement_count(db) == before
    assert ledger.get_balance(customer.id) == 200


def test_clearance_advance_beyond_wallet_rolls_back(db: Session, customer: Customer):
    ledger = CreditLedger(db)
    ledger.record_accrual(customer.id, 1000)
    before = settlement_count(db)

    with pytest.raises(InsufficientAdvance):
        ledger.record_clearance(
            customer.id,
            [PaymentComponent(PaymentKind.CASH, 100), PaymentComponent(PaymentKind.ADVANCE_USE, 50)],
        )

    assert settlement_count(db) == before
    assert ledger.get_balance(customer.id) == 1000


def test_clearance_for_unknown_customer(db: Session):
    with pytest.raises(CustomerNotFound):
        CreditLedger(db).record_clearance("ghost", [PaymentComponent(PaymentKind.CASH, 10)])


def test_customers_with_credit_and_total(db: Session, make_customer):
    ledger = CreditLedger(db)
    make_customer("a", name="Asha")
    make_customer("b", name="Bala")
    make_customer("c", name="Chitra")
    ledger.record_accrual("a", 300)
    ledger.record_accrual("b", 900)

    holders = ledger.customers_with_credit()

    assert [h.customer_id for h in holders] == ["b", "a"]
    assert holders[0].name == "Bala"
    assert ledger.total_outstanding() == 1200


def test_history_newest_first(db: Session, customer: Customer):
    ledger = CreditLedger(db)
    ledger.record_accrual(customer.id, 100, remarks="first")
    ledger.record_accrual(customer.id, 200, remarks="second")

    history = ledger.get_history(customer.id, limit=1)

    assert len(history) == 1
    assert history[0].remarks == "second"


def test_stale_version_raises_concurrent_modification(db: Session, customer: Customer):
    repo = CustomerRepository(db)
    stale = repo.require(customer.id)
    # Another writer bumps the version behind our back
    db.query(Customer).filter(Customer.id == customer.id).update(
        {Customer.version: Customer.version + 1}, synchronize_session=False
    )

    with pytest.raises(ConcurrentModification):
        repo.update_cached_balances(stale, 100, 0)
    db.rollback()
