"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from kot_ledger.domain.models import ExpenseStatus, PaymentComponent, PaymentKind, SplitContext


class ComponentIn(BaseModel):
    """One payment line as sent by the UI; amounts are minor units"""

    kind: PaymentKind
    amount: int = Field(..., description="Amount in minor currency units")
    id: Optional[str] = None

    def to_domain(self) -> PaymentComponent:
        if self.id:
            return PaymentComponent(kind=self.kind, amount=self.amount, id=self.id)
        return PaymentComponent(kind=self.kind, amount=self.amount)


class ComponentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kind: PaymentKind
    amount: int


class SettlementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    amount: int
    sub_type: Optional[str] = None
    customer_id: Optional[str] = None
    expense_id: Optional[str] = None
    bill_id: Optional[str] = None
    reference_id: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime


# Split preview

class SplitPreviewRequest(BaseModel):
    """Seed a split for total, then add components in order"""

    total: int = Field(..., gt=0)
    context: SplitContext = SplitContext.BILL
    customer_id: Optional[str] = Field(None, description="Advance balance is read for this customer")
    seed: bool = True
    components: List[ComponentIn] = []


class SplitPreviewResponse(BaseModel):
    context: SplitContext
    total: int
    components: List[ComponentOut]
    remaining: int
    over_allocation: int
    credit_amount: int
    valid: bool


# Bills

class BillRequest(BaseModel):
    """Request body for POST /v1/bills"""

    customer_id: str = Field(..., min_length=1)
    total: int = Field(..., gt=0)
    payment_kind: Optional[PaymentKind] = None
    components: Optional[List[ComponentIn]] = None
    remarks: Optional[str] = None


class BillResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bill_id: str
    bill_number: int
    customer_id: str
    total: int
    paid_portion: int
    credit_portion: int
    advance_used: int
    advance_added: int
    message: str


# Credit

class CreditAccountResponse(BaseModel):
    customer_id: str
    accrued: int
    cleared: int
    balance: int


class AccrualRequest(BaseModel):
    amount: int
    reference_id: Optional[str] = None
    remarks: Optional[str] = None


class ClearanceRequest(BaseModel):
    components: List[ComponentIn] = Field(..., min_length=1)
    remarks: Optional[str] = None


class ClearanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    customer_id: str
    cleared: int
    remaining_balance: int
    message: str


class CreditHolderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    customer_id: str
    name: Optional[str] = None
    contact: Optional[str] = None
    balance: int


class OutstandingCreditResponse(BaseModel):
    total_outstanding: int
    customers: List[CreditHolderOut]


# Advance

class AdvanceAccountResponse(BaseModel):
    customer_id: str
    deposited: int
    used: int
    balance: int


class DepositRequest(BaseModel):
    amount: int
    method: PaymentKind = PaymentKind.CASH
    remarks: Optional[str] = None


class UseRequest(BaseModel):
    amount: int
    reference_id: Optional[str] = None
    remarks: Optional[str] = None


class AdvanceLedgerResponse(BaseModel):
    customer_id: str
    entries: List[SettlementOut]


# Expenses

class ExpenseRequest(BaseModel):
    """Request body for POST /v1/expenses"""

    amount: int
    category: str = Field(..., min_length=1)
    payment_kind: Optional[PaymentKind] = None
    components: Optional[List[ComponentIn]] = None
    remarks: Optional[str] = None
    expense_date: Optional[date] = None


class ExpenseClearanceRequest(BaseModel):
    components: List[ComponentIn] = Field(..., min_length=1)
    remarks: Optional[str] = None


class ExpenseSummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    paid_amount: int
    credit_accrued: int
    credit_cleared: int
    credit_outstanding: int
    status: ExpenseStatus


class ExpenseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    voucher_no: int
    amount: int
    category: str
    mode: str
    remarks: Optional[str] = None
    expense_date: date
    created_at: datetime
    settlements: List[SettlementOut]
    summary: ExpenseSummaryOut


class OutstandingExpensesResponse(BaseModel):
    total_outstanding: int
    expenses: List[ExpenseResponse]


# Audit

class MismatchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    customer_id: str
    account: str
    stored: int
    computed: int


class ConsistencyResponse(BaseModel):
    consistent: bool
    mismatches: List[MismatchOut]


class ReconcileResponse(BaseModel):
    records_updated: int
    mismatches: List[MismatchOut]


class MigrateModesRequest(BaseModel):
    mapping: Optional[Dict[str, PaymentKind]] = None


class MigrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    migrated_records: int
    errors: List[str]
    summary: str


class AuditReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_customers: int
    customers_with_credit: int
    total_settlements: int
    settlements_by_kind: Dict[str, int]
    issues: List[str]
