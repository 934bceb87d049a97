"""POST /v1/bills - Settle a bill"""

from fastapi import APIRouter, Depends

from kot_ledger.api.dependencies import get_billing_service
from kot_ledger.api.v1.schemas import BillRequest, BillResponse
from kot_ledger.services.billing import BillingService

router = APIRouter()


@router.post("/bills", response_model=BillResponse, status_code=201)
def create_bill(
    request_body: BillRequest,
    billing: BillingService = Depends(get_billing_service),
):
    """
    Create a bill and record its payment.

    Send either `payment_kind` (the whole total in one kind) or
    `components` (a split that must add up to the total).
    """
    components = (
        [c.to_domain() for c in request_body.components]
        if request_body.components is not None
        else None
    )
    settlement = billing.settle_bill(
        customer_id=request_body.customer_id,
        total=request_body.total,
        components=components,
        payment_kind=request_body.payment_kind,
        remarks=request_body.remarks,
    )
    return BillResponse.model_validate(settlement)
