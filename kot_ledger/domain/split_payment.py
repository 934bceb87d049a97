"""Split payment calculator - allocation of a total across payment kinds"""

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence, Union

from kot_ledger.domain.exceptions import (
    DuplicateCredit,
    InsufficientAdvance,
    InvalidAmount,
    OverAllocation,
)
from kot_ledger.domain.models import (
    CONTRIBUTING_KINDS,
    PERMITTED_KINDS,
    PaymentComponent,
    PaymentKind,
    SplitContext,
    SplitPaymentSet,
    new_component_id,
)

# ±0.01 major unit once amounts are held in minor units
ROUNDING_TOLERANCE = 1

KindLike = Union[PaymentKind, str]


def coerce_kind(kind: KindLike) -> PaymentKind:
    """Turn a kind label into a PaymentKind, rejecting anything outside the enum"""
    if isinstance(kind, PaymentKind):
        return kind
    try:
        return PaymentKind(kind)
    except ValueError:
        raise InvalidAmount(f"Unknown payment kind {kind!r}", kind=str(kind)) from None


def require_positive_amount(
    amount: object, kind: Optional[PaymentKind] = None, component_id: Optional[str] = None
) -> int:
    """Amounts are positive integers in minor units"""
    label = kind.value if kind else None
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(
            f"{label or 'Amount'} must be a whole number of minor units, got {amount!r}",
            kind=label,
            component_id=component_id,
        )
    if amount <= 0:
        raise InvalidAmount(
            f"{label or 'Amount'} must be greater than zero, got {amount}",
            kind=label,
            amount=amount,
            component_id=component_id,
        )
    return amount


def initialize(total: int, context: SplitContext = SplitContext.BILL) -> SplitPaymentSet:
    """
    Seed a split set that already satisfies the total.

    Bills and expenses start as a single Credit line the user reallocates
    from; clearances start fully paid in Cash.
    """
    require_positive_amount(total)
    seed_kind = PaymentKind.CASH if context == SplitContext.CLEARANCE else PaymentKind.CREDIT
    return SplitPaymentSet(
        context=context,
        components=(PaymentComponent(kind=seed_kind, amount=total),),
    )


def contributing_total(split: SplitPaymentSet) -> int:
    contributing = CONTRIBUTING_KINDS[split.context]
    return sum(c.amount for c in split.components if c.kind in contributing)


def remaining(split: SplitPaymentSet, total: int) -> int:
    """Amount still to allocate; never negative (see over_allocation)"""
    return max(0, total - contributing_total(split))


def over_allocation(split: SplitPaymentSet, total: int) -> int:
    return max(0, contributing_total(split) - total)


def check_allocation(split: SplitPaymentSet, total: int) -> None:
    """Raise OverAllocation if the contributing components exceed the total"""
    excess = over_allocation(split, total)
    if excess:
        raise OverAllocation(
            f"Components exceed the total of {total} by {excess}",
            excess=excess,
            amount=contributing_total(split),
        )


def credit_amount(split: SplitPaymentSet) -> int:
    return sum(c.amount for c in split.of_kind(PaymentKind.CREDIT))


def advance_used(split: SplitPaymentSet) -> int:
    return sum(c.amount for c in split.of_kind(PaymentKind.ADVANCE_USE))


def advance_added(split: SplitPaymentSet) -> int:
    return sum(c.amount for c in split.components if c.kind.is_advance_top_up)


def paid_amount(split: SplitPaymentSet) -> int:
    """Cash and UPI actually collected (advance consumption excluded)"""
    return sum(c.amount for c in split.components if c.kind in (PaymentKind.CASH, PaymentKind.UPI))


def add_component(
    split: SplitPaymentSet,
    kind: KindLike,
    amount: int,
    total: int,
    advance_balance: int = 0,
    component_id: Optional[str] = None,
) -> SplitPaymentSet:
    """
    Append a component and return the new set; the input set is untouched.

    Rules:
    - amount must be a positive integer
    - kind must be accepted in the set's context
    - at most one Credit line
    - contributing kinds other than Credit may use the unallocated remainder
      plus the current Credit line; whatever goes beyond the remainder is
      drawn out of the Credit line (dropped once it reaches zero)
    - Credit may only take the unallocated remainder
    - AdvanceUse is capped by the advance balance supplied by the caller,
      less any AdvanceUse already in the set
    - advance top-ups only need a positive amount
    """
    kind = coerce_kind(kind)
    require_positive_amount(amount, kind, component_id)

    if kind not in PERMITTED_KINDS[split.context]:
        raise InvalidAmount(
            f"{kind.value} is not accepted when settling a {split.context.value}",
            kind=kind.value,
            amount=amount,
            component_id=component_id,
        )

    credit_lines = split.of_kind(PaymentKind.CREDIT)
    if kind == PaymentKind.CREDIT and credit_lines:
        raise DuplicateCredit(
            f"Split already has a Credit line of {credit_lines[0].amount}",
            kind=kind.value,
            amount=amount,
            component_id=credit_lines[0].id,
        )

    components = list(split.components)

    if kind in CONTRIBUTING_KINDS[split.context]:
        if kind == PaymentKind.ADVANCE_USE:
            available = advance_balance - advance_used(split)
            if amount > available:
                raise InsufficientAdvance(
                    f"AdvanceUse of {amount} exceeds available advance of {max(available, 0)}",
                    requested=amount,
                    available=max(available, 0),
                    kind=kind.value,
                    component_id=component_id,
                )

        free = remaining(split, total)
        credit_line = credit_lines[0] if credit_lines else None
        drawable = credit_line.amount if credit_line and kind != PaymentKind.CREDIT else 0
        if amount > free + drawable:
            raise OverAllocation(
                f"{kind.value} of {amount} exceeds the {free + drawable} left to allocate",
                excess=amount - (free + drawable),
                kind=kind.value,
                amount=amount,
                component_id=component_id,
            )

        draw = amount - free
        if draw > 0:
            position = components.index(credit_line)
            left = credit_line.amount - draw
            if left > 0:
                components[position] = replace(credit_line, amount=left)
            else:
                del components[position]

    components.append(
        PaymentComponent(kind=kind, amount=amount, id=component_id or new_component_id())
    )
    return SplitPaymentSet(context=split.context, components=tuple(components))


def remove_component(split: SplitPaymentSet, component_id: str) -> SplitPaymentSet:
    """Drop a component by id; unknown ids leave the set as it is"""
    components = tuple(c for c in split.components if c.id != component_id)
    if len(components) == len(split.components):
        return split
    return SplitPaymentSet(context=split.context, components=components)


def validate_total(split: SplitPaymentSet, total: int, tolerance: int = ROUNDING_TOLERANCE) -> bool:
    """True iff the contributing components sum to total within tolerance"""
    if not split.components:
        return False
    return abs(contributing_total(split) - total) <= tolerance


def merge_components(components: Iterable[PaymentComponent]) -> List[PaymentComponent]:
    """Collapse components of the same kind into one line, first-seen order"""
    merged: Dict[PaymentKind, PaymentComponent] = {}
    for component in components:
        existing = merged.get(component.kind)
        if existing is None:
            merged[component.kind] = component
        else:
            merged[component.kind] = replace(existing, amount=existing.amount + component.amount)
    return list(merged.values())


def build_split(
    components: Sequence[PaymentComponent],
    total: int,
    context: SplitContext,
    advance_balance: int = 0,
) -> SplitPaymentSet:
    """
    Replay caller-supplied components through add_component so every rule
    is applied. The Credit line goes last so it can never be drawn down to
    make room for an over-allocated set. Same-kind Cash/UPI lines are merged;
    a second Credit line is rejected.
    """
    credit_lines = [c for c in components if c.kind == PaymentKind.CREDIT]
    if len(credit_lines) > 1:
        second = credit_lines[1]
        raise DuplicateCredit(
            f"Only one Credit line may be part of a split, got {len(credit_lines)}",
            kind=PaymentKind.CREDIT.value,
            amount=second.amount,
            component_id=second.id,
        )
    merged = merge_components(components)
    ordered = [c for c in merged if c.kind != PaymentKind.CREDIT] + [
        c for c in merged if c.kind == PaymentKind.CREDIT
    ]
    split = SplitPaymentSet(context=context)
    for component in ordered:
        split = add_component(
            split,
            component.kind,
            component.amount,
            total,
            advance_balance=advance_balance,
            component_id=component.id,
        )
    return split


def split_evenly(
    total: int,
    kinds: Sequence[KindLike],
    context: SplitContext = SplitContext.BILL,
) -> SplitPaymentSet:
    """
    Divide total evenly across kinds.

    The indivisible remainder goes to the first contributing component that
    is not AdvanceUse, so repeated runs give the same allocation.

    Example:
        1001 over [AdvanceUse, Cash, UPI] → AdvanceUse 333, Cash 335, UPI 333
    """
    require_positive_amount(total)
    resolved = [coerce_kind(k) for k in kinds]
    if not resolved:
        raise InvalidAmount("At least one payment kind is required to split a total")

    contributing = CONTRIBUTING_KINDS[context]
    for kind in resolved:
        if kind not in contributing:
            raise InvalidAmount(
                f"{kind.value} does not count towards a {context.value} total",
                kind=kind.value,
            )
    if resolved.count(PaymentKind.CREDIT) > 1:
        raise DuplicateCredit("Only one Credit line may be part of a split", kind=PaymentKind.CREDIT.value)

    base, leftover = divmod(total, len(resolved))
    absorber = next(
        (i for i, kind in enumerate(resolved) if kind != PaymentKind.ADVANCE_USE),
        0,
    )

    components = []
    for i, kind in enumerate(resolved):
        amount = base + (leftover if i == absorber else 0)
        # Totals smaller than the number of kinds leave some lines empty
        if amount > 0:
            components.append(PaymentComponent(kind=kind, amount=amount))

    return SplitPaymentSet(context=context, components=tuple(components))
