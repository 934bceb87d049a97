"""POST /v1/splits/preview - Interactive split payment allocation"""

from fastapi import APIRouter, Depends

from kot_ledger.api.dependencies import get_advance_ledger
from kot_ledger.api.v1.schemas import ComponentOut, SplitPreviewRequest, SplitPreviewResponse
from kot_ledger.config import settings
from kot_ledger.domain.models import SplitContext, SplitPaymentSet
from kot_ledger.domain.split_payment import (
    add_component,
    credit_amount,
    initialize,
    over_allocation,
    remaining,
    validate_total,
)
from kot_ledger.services.advance_ledger import AdvanceLedger

router = APIRouter()


def starting_set(total: int, context: SplitContext, seed: bool, has_components: bool) -> SplitPaymentSet:
    """
    Bills and expenses start from a Credit line the entered components draw
    from. A clearance's Cash seed is only the default when nothing has been
    entered; once the cashier enters lines they replace it.
    """
    if not seed:
        return SplitPaymentSet(context=context)
    if context == SplitContext.CLEARANCE and has_components:
        return SplitPaymentSet(context=context)
    return initialize(total, context)


@router.post("/splits/preview", response_model=SplitPreviewResponse)
def preview_split(
    request_body: SplitPreviewRequest,
    advance: AdvanceLedger = Depends(get_advance_ledger),
):
    """
    Replay the components the cashier has entered so far.

    Bills and expenses are seeded with a Credit line for the whole total and
    every Cash/UPI/AdvanceUse line draws from it; nothing is persisted.
    """
    total = request_body.total
    context = request_body.context
    advance_balance = advance.get_balance(request_body.customer_id) if request_body.customer_id else 0

    split = starting_set(total, context, request_body.seed, bool(request_body.components))
    for component in request_body.components:
        split = add_component(
            split,
            component.kind,
            component.amount,
            total,
            advance_balance=advance_balance,
            component_id=component.id,
        )

    return SplitPreviewResponse(
        context=context,
        total=total,
        components=[ComponentOut.model_validate(c) for c in split],
        remaining=remaining(split, total),
        over_allocation=over_allocation(split, total),
        credit_amount=credit_amount(split),
        valid=validate_total(split, total, tolerance=settings.rounding_tolerance_minor),
    )
