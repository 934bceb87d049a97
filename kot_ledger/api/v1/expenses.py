"""Expense endpoints - record expenses and pay down vendor credit"""

from fastapi import APIRouter, Depends

from kot_ledger.api.dependencies import get_expense_service
from kot_ledger.api.v1.schemas import (
    ExpenseClearanceRequest,
    ExpenseRequest,
    ExpenseResponse,
    OutstandingExpensesResponse,
)
from kot_ledger.services.expenses import ExpenseService

router = APIRouter()


@router.post("/expenses", response_model=ExpenseResponse, status_code=201)
def create_expense(
    request_body: ExpenseRequest,
    expenses: ExpenseService = Depends(get_expense_service),
):
    components = (
        [c.to_domain() for c in request_body.components]
        if request_body.components is not None
        else None
    )
    details = expenses.create_expense(
        amount=request_body.amount,
        category=request_body.category,
        payment_kind=request_body.payment_kind,
        components=components,
        remarks=request_body.remarks,
        expense_date=request_body.expense_date,
    )
    return ExpenseResponse.model_validate(details)


# Declared before /expenses/{expense_id} so "outstanding" is not taken as an id
@router.get("/expenses/outstanding", response_model=OutstandingExpensesResponse)
def get_outstanding_expenses(expenses: ExpenseService = Depends(get_expense_service)):
    """Business credit still owed to vendors"""
    return OutstandingExpensesResponse(
        total_outstanding=expenses.total_outstanding(),
        expenses=[ExpenseResponse.model_validate(d) for d in expenses.outstanding_expenses()],
    )


@router.get("/expenses/{expense_id}", response_model=ExpenseResponse)
def get_expense(expense_id: str, expenses: ExpenseService = Depends(get_expense_service)):
    return ExpenseResponse.model_validate(expenses.get_expense(expense_id))


@router.post("/expenses/{expense_id}/clearances", response_model=ExpenseResponse, status_code=201)
def clear_expense_credit(
    expense_id: str,
    request_body: ExpenseClearanceRequest,
    expenses: ExpenseService = Depends(get_expense_service),
):
    details = expenses.clear_expense_credit(
        expense_id,
        [c.to_domain() for c in request_body.components],
        remarks=request_body.remarks,
    )
    return ExpenseResponse.model_validate(details)
