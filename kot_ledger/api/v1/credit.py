"""Customer credit endpoints - balance, history, accrual and clearance"""

from typing import List

from fastapi import APIRouter, Depends, Query

from kot_ledger.api.dependencies import get_credit_ledger
from kot_ledger.api.v1.schemas import (
    AccrualRequest,
    ClearanceRequest,
    ClearanceResponse,
    CreditAccountResponse,
    CreditHolderOut,
    OutstandingCreditResponse,
    SettlementOut,
)
from kot_ledger.services.credit_ledger import CreditLedger

router = APIRouter()


@router.get("/customers/{customer_id}/credit", response_model=CreditAccountResponse)
def get_credit_account(customer_id: str, ledger: CreditLedger = Depends(get_credit_ledger)):
    account = ledger.get_account(customer_id)
    return CreditAccountResponse(
        customer_id=account.customer_id,
        accrued=account.accrued,
        cleared=account.cleared,
        balance=account.balance,
    )


@router.get("/customers/{customer_id}/credit/history", response_model=List[SettlementOut])
def get_credit_history(
    customer_id: str,
    limit: int = Query(100, ge=1, le=1000),
    ledger: CreditLedger = Depends(get_credit_ledger),
):
    """Accruals and clearances, newest first"""
    return [SettlementOut.model_validate(e) for e in ledger.get_history(customer_id, limit=limit)]


@router.post("/customers/{customer_id}/credit/accruals", response_model=SettlementOut, status_code=201)
def record_accrual(
    customer_id: str,
    request_body: AccrualRequest,
    ledger: CreditLedger = Depends(get_credit_ledger),
):
    entry = ledger.record_accrual(
        customer_id,
        request_body.amount,
        reference_id=request_body.reference_id,
        remarks=request_body.remarks,
    )
    return SettlementOut.model_validate(entry)


@router.post("/customers/{customer_id}/credit/clearances", response_model=ClearanceResponse, status_code=201)
def record_clearance(
    customer_id: str,
    request_body: ClearanceRequest,
    ledger: CreditLedger = Depends(get_credit_ledger),
):
    """
    Collect a due in Cash, UPI and/or from the advance wallet.

    Rejected as a whole when it exceeds the outstanding balance.
    """
    result = ledger.record_clearance(
        customer_id,
        [c.to_domain() for c in request_body.components],
        remarks=request_body.remarks,
    )
    return ClearanceResponse.model_validate(result)


@router.get("/credit/outstanding", response_model=OutstandingCreditResponse)
def get_outstanding_credit(ledger: CreditLedger = Depends(get_credit_ledger)):
    """Customers who owe money, largest balance first"""
    return OutstandingCreditResponse(
        total_outstanding=ledger.total_outstanding(),
        customers=[CreditHolderOut.model_validate(h) for h in ledger.customers_with_credit()],
    )
