"""Reconciliation auditor - drift between cached balances and the settlement log"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from kot_ledger.domain.exceptions import InconsistentState, PersistenceFailure
from kot_ledger.domain.models import (
    AuditReport,
    BalanceMismatch,
    MigrationResult,
    PaymentKind,
    ReconciliationResult,
)
from kot_ledger.domain.modes import plan_mode_migration
from kot_ledger.infrastructure.database.repositories import CustomerRepository, SettlementRepository
from kot_ledger.infrastructure.database.session import atomic
from kot_ledger.infrastructure.observability.logging import log_reconciliation
from kot_ledger.infrastructure.observability.metrics import (
    balance_mismatch_gauge,
    migrated_records_counter,
)

logger = logging.getLogger(__name__)

_EMPTY_TOTALS = {"accrued": 0, "cleared": 0, "deposited": 0, "used": 0}


class ReconciliationAuditor:
    """Detects and repairs drift; never blocks ordinary operations"""

    def __init__(self, db: Session):
        self.db = db
        self.customers = CustomerRepository(db)
        self.settlements = SettlementRepository(db)

    def _computed_balances(self) -> Dict[str, Tuple[int, int]]:
        totals = self.settlements.totals_by_customer()
        computed = {}
        for customer in self.customers.all():
            t = totals.get(customer.id, _EMPTY_TOTALS)
            computed[customer.id] = (t["accrued"] - t["cleared"], t["deposited"] - t["used"])
        return computed

    def _mismatches(self, computed: Dict[str, Tuple[int, int]]) -> List[BalanceMismatch]:
        mismatches = []
        for customer in self.customers.all():
            credit, advance = computed[customer.id]
            if customer.credit_balance != credit:
                mismatches.append(
                    BalanceMismatch(customer.id, "credit", customer.credit_balance, credit)
                )
            if customer.advance_balance != advance:
                mismatches.append(
                    BalanceMismatch(customer.id, "advance", customer.advance_balance, advance)
                )

        balance_mismatch_gauge.set(len(mismatches))
        if mismatches:
            logger.warning(
                f"Balance mismatch for {len(mismatches)} account(s)",
                extra={
                    "step": "validate_consistency",
                    "customer_ids": sorted({m.customer_id for m in mismatches}),
                },
            )
        return mismatches

    def validate_consistency(self) -> List[BalanceMismatch]:
        """Compare every cached balance with the log; read-only"""
        return self._mismatches(self._computed_balances())

    def assert_consistent(self) -> None:
        mismatches = self.validate_consistency()
        if mismatches:
            raise InconsistentState(
                f"{len(mismatches)} cached balance(s) diverge from the settlement log",
                amount=sum(abs(m.drift) for m in mismatches),
            )

    def reconcile(self) -> ReconciliationResult:
        """
        Overwrite every drifting cached balance with the log-derived value.

        Runs as a single transaction; any failure leaves the store untouched.
        records_updated counts customer rows rewritten; a customer whose
        credit and advance both drifted is one row.
        """
        with atomic(self.db):
            computed = self._computed_balances()
            mismatches = self._mismatches(computed)
            drifted = sorted({m.customer_id for m in mismatches})
            for customer_id in drifted:
                credit, advance = computed[customer_id]
                customer = self.customers.require(customer_id)
                self.customers.update_cached_balances(customer, credit, advance)
            self.assert_consistent()

        log_reconciliation("reconcile", len(drifted), accounts=len(mismatches))
        return ReconciliationResult(records_updated=len(drifted), mismatches=mismatches)

    def migrate_legacy_modes(self, mapping: Optional[Mapping[str, PaymentKind]] = None) -> MigrationResult:
        """
        Relabel free-text payment modes ("cash", "CASH") to canonical kinds.

        Idempotent: canonical rows are never touched, so a second run
        changes nothing. On failure nothing is migrated and the result
        reports how many rows would have been.
        """
        counts = self.settlements.counts_by_kind()
        plan = plan_mode_migration(counts.keys(), mapping)
        pending = sum(counts[label] for label in plan)

        try:
            with atomic(self.db):
                migrated = 0
                for label, kind in plan.items():
                    migrated += self.settlements.rewrite_kind(label, kind)
        except PersistenceFailure as e:
            logger.error(f"Mode migration rolled back: {e}", extra={"step": "migrate_modes"})
            return MigrationResult(
                success=False,
                migrated_records=pending,
                errors=[str(e)],
                summary=f"Migration failed: {e}",
            )

        migrated_records_counter.inc(migrated)
        log_reconciliation("migrate_modes", migrated, labels=sorted(plan))
        return MigrationResult(
            success=True,
            migrated_records=migrated,
            errors=[],
            summary=f"Migrated {migrated} settlement records to canonical payment kinds",
        )

    def invalid_modes(self) -> Dict[str, int]:
        """Settlement kinds outside PaymentKind, with row counts"""
        valid = {k.value for k in PaymentKind}
        return {kind: count for kind, count in self.settlements.counts_by_kind().items() if kind not in valid}

    def generate_report(self) -> AuditReport:
        issues = []
        mismatched_customers = {m.customer_id for m in self.validate_consistency()}
        if mismatched_customers:
            issues.append(f"Balance mismatch for {len(mismatched_customers)} customers")
        invalid = self.invalid_modes()
        if invalid:
            issues.append(f"{sum(invalid.values())} settlements with invalid modes")

        return AuditReport(
            total_customers=self.customers.count(),
            customers_with_credit=self.customers.count_with_credit(),
            total_settlements=self.settlements.count(),
            settlements_by_kind=self.settlements.counts_by_kind(),
            issues=issues,
        )

    def run_full_migration(self) -> Tuple[MigrationResult, Optional[ReconciliationResult], AuditReport]:
        """Migrate modes, then reconcile balances, then report"""
        migration = self.migrate_legacy_modes()
        reconciliation = self.reconcile() if migration.success else None
        return migration, reconciliation, self.generate_report()
