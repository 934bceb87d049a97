"""Customer advance endpoints - wallet balance, ledger, deposits and uses"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from kot_ledger.api.dependencies import get_advance_ledger
from kot_ledger.api.v1.schemas import (
    AdvanceAccountResponse,
    AdvanceLedgerResponse,
    DepositRequest,
    SettlementOut,
    UseRequest,
)
from kot_ledger.services.advance_ledger import AdvanceLedger

router = APIRouter()


@router.get("/customers/{customer_id}/advance", response_model=AdvanceAccountResponse)
def get_advance_account(customer_id: str, ledger: AdvanceLedger = Depends(get_advance_ledger)):
    account = ledger.get_account(customer_id)
    return AdvanceAccountResponse(
        customer_id=account.customer_id,
        deposited=account.deposited,
        used=account.used,
        balance=account.balance,
    )


@router.get("/customers/{customer_id}/advance/ledger", response_model=AdvanceLedgerResponse)
def get_advance_ledger_entries(
    customer_id: str,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    ledger: AdvanceLedger = Depends(get_advance_ledger),
):
    """Deposits and uses, newest first"""
    view = ledger.get_ledger(customer_id, limit=limit)
    return AdvanceLedgerResponse(
        customer_id=customer_id,
        entries=[SettlementOut.model_validate(e) for e in view],
    )


@router.post("/customers/{customer_id}/advance/deposits", response_model=SettlementOut, status_code=201)
def deposit_advance(
    customer_id: str,
    request_body: DepositRequest,
    ledger: AdvanceLedger = Depends(get_advance_ledger),
):
    entry = ledger.deposit(
        customer_id,
        request_body.amount,
        method=request_body.method,
        remarks=request_body.remarks,
    )
    return SettlementOut.model_validate(entry)


@router.post("/customers/{customer_id}/advance/uses", response_model=SettlementOut, status_code=201)
def use_advance(
    customer_id: str,
    request_body: UseRequest,
    ledger: AdvanceLedger = Depends(get_advance_ledger),
):
    entry = ledger.use(
        customer_id,
        request_body.amount,
        reference_id=request_body.reference_id,
        remarks=request_body.remarks,
    )
    return SettlementOut.model_validate(entry)
