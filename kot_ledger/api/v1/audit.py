"""Audit endpoints - consistency checks, reconciliation and mode migration"""

from typing import Optional

from fastapi import APIRouter, Depends

from kot_ledger.api.dependencies import get_auditor
from kot_ledger.api.v1.schemas import (
    AuditReportResponse,
    ConsistencyResponse,
    MigrateModesRequest,
    MigrationResponse,
    MismatchOut,
    ReconcileResponse,
)
from kot_ledger.services.reconciliation import ReconciliationAuditor

router = APIRouter()


@router.get("/audit/consistency", response_model=ConsistencyResponse)
def check_consistency(auditor: ReconciliationAuditor = Depends(get_auditor)):
    """Read-only comparison of cached balances with the settlement log"""
    mismatches = auditor.validate_consistency()
    return ConsistencyResponse(
        consistent=not mismatches,
        mismatches=[MismatchOut.model_validate(m) for m in mismatches],
    )


@router.post("/audit/reconcile", response_model=ReconcileResponse)
def reconcile_balances(auditor: ReconciliationAuditor = Depends(get_auditor)):
    result = auditor.reconcile()
    return ReconcileResponse(
        records_updated=result.records_updated,
        mismatches=[MismatchOut.model_validate(m) for m in result.mismatches],
    )


@router.post("/audit/migrate-modes", response_model=MigrationResponse)
def migrate_modes(
    request_body: Optional[MigrateModesRequest] = None,
    auditor: ReconciliationAuditor = Depends(get_auditor),
):
    """
    Relabel legacy payment modes to canonical kinds.

    Safe to repeat; a second run migrates nothing.
    """
    mapping = request_body.mapping if request_body else None
    return MigrationResponse.model_validate(auditor.migrate_legacy_modes(mapping))


@router.get("/audit/report", response_model=AuditReportResponse)
def audit_report(auditor: ReconciliationAuditor = Depends(get_auditor)):
    return AuditReportResponse.model_validate(auditor.generate_report())
