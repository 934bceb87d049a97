"""Unit tests for split payment allocation"""

import pytest
from kot_ledger.domain.models import PaymentComponent, PaymentKind, SplitContext, SplitPaymentSet
from kot_ledger.domain.split_payment import (
    add_component,
    advance_added,
    build_split,
    check_allocation,
    contributing_total,
    credit_amount,
    initialize,
    merge_components,
    over_allocation,
    paid_amount,
    remaining,
    remove_component,
    split_evenly,
    validate_total,
)
from kot_ledger.domain.exceptions import (
    DuplicateCredit,
    InsufficientAdvance,
    InvalidAmount,
    OverAllocation,
)


def amounts(split: SplitPaymentSet) -> dict:
    return {c.kind: c.amount for c in split}


def test_initialize_bill_seeds_single_credit_line():
    split = initialize(1000)

    assert len(split) == 1
    assert split.components[0].kind == PaymentKind.CREDIT
    assert split.components[0].amount == 1000
    assert validate_total(split, 1000)


def test_initialize_clearance_seeds_cash():
    split = initialize(500, SplitContext.CLEARANCE)

    assert amounts(split) == {PaymentKind.CASH: 500}
    assert remaining(split, 500) == 0


@pytest.mark.parametrize("total", [0, -10, 10.5, "100", True])
def test_initialize_rejects_bad_totals(total):
    with pytest.raises(InvalidAmount):
        initialize(total)


def test_add_cash_draws_down_credit_line():
    split = initialize(1000)

    split = add_component(split, PaymentKind.CASH, 300, 1000)

    assert amounts(split) == {PaymentKind.CREDIT: 700, PaymentKind.CASH: 300}
    assert validate_total(split, 1000)
    assert credit_amount(split) == 700
    assert paid_amount(split) == 300


def test_credit_line_dropped_when_fully_drawn():
    split = add_component(initialize(1000), "UPI", 1000, 1000)

    assert amounts(split) == {PaymentKind.UPI: 1000}
    assert credit_amount(split) == 0


def test_add_component_leaves_input_untouched():
    seeded = initialize(1000)

    add_component(seeded, PaymentKind.CASH, 400, 1000)

    assert amounts(seeded) == {PaymentKind.CREDIT: 1000}


def test_over_allocation_beyond_credit_line():
    split = initialize(1000)

    with pytest.raises(OverAllocation) as exc_info:
        add_component(split, PaymentKind.CASH, 1200, 1000, component_id="c1")

    assert exc_info.value.excess == 200
    assert exc_info.value.kind == "Cash"
    assert exc_info.value.component_id == "c1"


def test_over_allocation_without_seed():
    split = add_component(SplitPaymentSet(SplitContext.BILL), PaymentKind.CASH, 600, 1000)

    with pytest.raises(OverAllocation) as exc_info:
        add_component(split, PaymentKind.UPI, 500, 1000)

    assert exc_info.value.excess == 100
    # OverAllocation is reported as an invalid amount too
    assert isinstance(exc_info.value, InvalidAmount)


def test_second_credit_line_rejected():
    split = add_component(initialize(1000), PaymentKind.CASH, 400, 1000)

    with pytest.raises(DuplicateCredit) as exc_info:
        add_component(split, PaymentKind.CREDIT, 100, 1000)

    assert exc_info.value.component_id == split.of_kind(PaymentKind.CREDIT)[0].id


def test_credit_only_takes_unallocated_remainder():
    split = add_component(SplitPaymentSet(SplitContext.BILL), PaymentKind.CASH, 700, 1000)

    with pytest.raises(OverAllocation):
        add_component(split, PaymentKind.CREDIT, 400, 1000)

    split = add_component(split, PaymentKind.CREDIT, 300, 1000)
    assert validate_total(split, 1000)


def test_advance_use_capped_by_balance():
    with pytest.raises(InsufficientAdvance) as exc_info:
        add_component(initialize(1000), PaymentKind.ADVANCE_USE, 200, 1000, advance_balance=150)

    assert exc_info.value.requested == 200
    assert exc_info.value.available == 150


def test_advance_use_cap_counts_existing_lines():
    split = add_component(initialize(1000), PaymentKind.ADVANCE_USE, 100, 1000, advance_balance=150)

    with pytest.raises(InsufficientAdvance) as exc_info:
        add_component(split, PaymentKind.ADVANCE_USE, 100, 1000, advance_balance=150)

    assert exc_info.value.available == 50


def test_advance_top_up_does_not_count_towards_bill_total():
    split = add_component(initialize(1000), PaymentKind.CASH, 1000, 1000)

    split = add_component(split, PaymentKind.ADVANCE_ADD_CASH, 500, 1000)

    assert contributing_total(split) == 1000
    assert advance_added(split) == 500
    assert validate_total(split, 1000)


@pytest.mark.parametrize("kind", [PaymentKind.ADVANCE_USE, PaymentKind.ADVANCE_ADD_UPI])
def test_expense_context_rejects_advance_kinds(kind):
    split = initialize(1000, SplitContext.EXPENSE)

    with pytest.raises(InvalidAmount) as exc_info:
        add_component(split, kind, 100, 1000)

    assert exc_info.value.kind == kind.value


def test_clearance_context_rejects_credit():
    split = SplitPaymentSet(SplitContext.CLEARANCE)

    with pytest.raises(InvalidAmount):
        add_component(split, PaymentKind.CREDIT, 100, 1000)


@pytest.mark.parametrize("amount", [0, -5, 2.5])
def test_component_amount_must_be_positive_integer(amount):
    with pytest.raises(InvalidAmount) as exc_info:
        add_component(initialize(1000), PaymentKind.CASH, amount, 1000, component_id="bad")

    assert exc_info.value.component_id == "bad"


def test_unknown_kind_rejected():
    with pytest.raises(InvalidAmount):
        add_component(initialize(1000), "Cheque", 100, 1000)


def test_removing_contributing_component_breaks_total():
    split = add_component(initialize(1000), PaymentKind.CASH, 300, 1000, component_id="cash")
    assert validate_total(split, 1000)

    split = remove_component(split, "cash")

    assert not validate_total(split, 1000)
    assert remaining(split, 1000) == 300


def test_remove_unknown_component_is_noop():
    split = initialize(1000)

    assert remove_component(split, "missing") is split


def test_validate_total_tolerance():
    split = add_component(SplitPaymentSet(SplitContext.BILL), PaymentKind.CASH, 999, 1000)
    assert validate_total(split, 1000)

    split = add_component(SplitPaymentSet(SplitContext.BILL), PaymentKind.CASH, 998, 1000)
    assert not validate_total(split, 1000)


def test_validate_total_empty_set():
    assert not validate_total(SplitPaymentSet(SplitContext.BILL), 0)


def test_over_allocation_helpers():
    split = SplitPaymentSet(
        SplitContext.BILL,
        (PaymentComponent(PaymentKind.CASH, 700), PaymentComponent(PaymentKind.UPI, 500)),
    )

    assert over_allocation(split, 1000) == 200
    assert remaining(split, 1000) == 0
    with pytest.raises(OverAllocation):
        check_allocation(split, 1000)


def test_merge_components_keeps_first_seen_order():
    merged = merge_components(
        [
            PaymentComponent(PaymentKind.UPI, 100, id="u1"),
            PaymentComponent(PaymentKind.CASH, 200, id="c1"),
            PaymentComponent(PaymentKind.UPI, 50, id="u2"),
        ]
    )

    assert [(c.kind, c.amount, c.id) for c in merged] == [
        (PaymentKind.UPI, 150, "u1"),
        (PaymentKind.CASH, 200, "c1"),
    ]


def test_build_split_places_credit_last():
    split = build_split(
        [PaymentComponent(PaymentKind.CREDIT, 400), PaymentComponent(PaymentKind.CASH, 600)],
        1000,
        SplitContext.BILL,
    )

    assert [c.kind for c in split] == [PaymentKind.CASH, PaymentKind.CREDIT]
    assert validate_total(split, 1000)


def test_build_split_never_draws_credit_to_fit_overallocation():
    with pytest.raises(OverAllocation):
        build_split(
            [PaymentComponent(PaymentKind.CREDIT, 600), PaymentComponent(PaymentKind.CASH, 500)],
            1000,
            SplitContext.BILL,
        )


def test_split_evenly_remainder_skips_advance_use():
    split = split_evenly(1001, [PaymentKind.ADVANCE_USE, PaymentKind.CASH, PaymentKind.UPI])

    assert [c.amount for c in split] == [333, 335, 333]
    assert validate_total(split, 1001, tolerance=0)


def test_split_evenly_drops_empty_lines():
    split = split_evenly(2, [PaymentKind.CASH, PaymentKind.UPI, PaymentKind.CREDIT])

    assert amounts(split) == {PaymentKind.CASH: 2}


def test_split_evenly_rejects_non_contributing_kind():
    with pytest.raises(InvalidAmount):
        split_evenly(1000, [PaymentKind.CASH, PaymentKind.ADVANCE_ADD_CASH])


@pytest.mark.parametrize(
    "steps",
    [
        [(PaymentKind.CASH, 250), (PaymentKind.UPI, 250)],
        [(PaymentKind.ADVANCE_USE, 100), (PaymentKind.CASH, 900)],
        [(PaymentKind.UPI, 1), (PaymentKind.CASH, 998)],
        [(PaymentKind.ADVANCE_ADD_UPI, 300), (PaymentKind.CASH, 1000)],
    ],
)
def test_seeded_sets_always_satisfy_total(steps):
    split = initialize(1000)
    for kind, amount in steps:
        split = add_component(split, kind, amount, 1000, advance_balance=500)
        assert validate_total(split, 1000, tolerance=0)
