"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from kot_ledger.infrastructure.database.session import get_db
from kot_ledger.services.advance_ledger import AdvanceLedger
from kot_ledger.services.billing import BillingService
from kot_ledger.services.credit_ledger import CreditLedger
from kot_ledger.services.expenses import ExpenseService
from kot_ledger.services.reconciliation import ReconciliationAuditor


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_credit_ledger(db: Session = Depends(get_db)) -> CreditLedger:
    return CreditLedger(db)


def get_advance_ledger(db: Session = Depends(get_db)) -> AdvanceLedger:
    return AdvanceLedger(db)


def get_billing_service(db: Session = Depends(get_db)) -> BillingService:
    return BillingService(db)


def get_expense_service(db: Session = Depends(get_db)) -> ExpenseService:
    return ExpenseService(db)


def get_auditor(db: Session = Depends(get_db)) -> ReconciliationAuditor:
    return ReconciliationAuditor(db)
