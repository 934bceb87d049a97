"""Bill settlement - one bill, its split payment and the resulting ledger entries"""

from typing import List, Optional, Sequence, Union

from sqlalchemy.orm import Session

from kot_ledger.config import settings
from kot_ledger.domain.exceptions import InvalidAmount
from kot_ledger.domain.models import (
    ADVANCE_TOP_UP_KINDS,
    CASH_LIKE_KINDS,
    BillSettlement,
    PaymentComponent,
    PaymentKind,
    SettlementSubType,
    SplitContext,
)
from kot_ledger.domain.split_payment import (
    advance_added,
    advance_used,
    build_split,
    coerce_kind,
    contributing_total,
    credit_amount,
    paid_amount,
    require_positive_amount,
    validate_total,
)
from kot_ledger.infrastructure.database.repositories import (
    BillRepository,
    CustomerRepository,
    SettlementRepository,
)
from kot_ledger.infrastructure.database.session import atomic
from kot_ledger.infrastructure.observability.logging import log_settlement
from kot_ledger.infrastructure.observability.metrics import record_settlement
from kot_ledger.services.advance_ledger import AdvanceLedger
from kot_ledger.utils.money import settlement_message

_SINGLE_KINDS = CASH_LIKE_KINDS | {PaymentKind.CREDIT, PaymentKind.ADVANCE_USE}


class BillingService:
    """Settles bills against Cash, UPI, Credit and advance"""

    def __init__(self, db: Session):
        self.db = db
        self.customers = CustomerRepository(db)
        self.settlements = SettlementRepository(db)
        self.bills = BillRepository(db)
        self.advance = AdvanceLedger(db)

    def _single_payment(self, kind: PaymentKind, total: int, advance_balance: int) -> List[PaymentComponent]:
        """A one-kind payment, optionally preceded by auto-applied advance"""
        if kind not in _SINGLE_KINDS:
            raise InvalidAmount(f"A bill cannot be paid with {kind.value} alone", kind=kind.value)
        components = []
        due = total
        if settings.auto_apply_advance_on_billing and kind in CASH_LIKE_KINDS and advance_balance > 0:
            applied = min(advance_balance, total)
            components.append(PaymentComponent(kind=PaymentKind.ADVANCE_USE, amount=applied))
            due -= applied
        if due > 0:
            components.append(PaymentComponent(kind=kind, amount=due))
        return components

    def settle_bill(
        self,
        customer_id: str,
        total: int,
        components: Optional[Sequence[PaymentComponent]] = None,
        payment_kind: Optional[Union[PaymentKind, str]] = None,
        remarks: Optional[str] = None,
    ) -> BillSettlement:
        """
        Create a bill and record how it was paid, atomically.

        Flow:
        1. Build the split (single kind or caller components) and validate
           it against the total
        2. Re-check AdvanceUse against the advance balance inside the
           transaction
        3. Write the bill and one settlement per component
        4. Refresh the customer's cached credit and advance balances
        """
        require_positive_amount(total)
        if total > settings.max_transaction_amount:
            raise InvalidAmount(
                f"Bill total {total} exceeds the maximum of {settings.max_transaction_amount}",
                amount=total,
            )
        if (components is None) == (payment_kind is None):
            raise InvalidAmount("Provide either a payment kind or split components, not both")

        with atomic(self.db):
            customer = self.customers.get_or_create(customer_id)
            advance_balance = self.advance.get_balance(customer_id)

            if payment_kind is not None:
                components = self._single_payment(coerce_kind(payment_kind), total, advance_balance)

            split = build_split(components, total, SplitContext.BILL, advance_balance=advance_balance)
            if not validate_total(split, total, tolerance=settings.rounding_tolerance_minor):
                allocated = contributing_total(split)
                raise InvalidAmount(
                    f"Components cover {allocated} of a bill total of {total}",
                    amount=allocated,
                )

            bill = self.bills.create(customer_id, total, remarks)
            for component in split:
                if component.kind == PaymentKind.CREDIT:
                    self.settlements.append(
                        component.kind,
                        component.amount,
                        customer_id=customer_id,
                        bill_id=bill.id,
                        sub_type=SettlementSubType.ACCRUAL,
                        remarks=remarks,
                    )
                elif component.kind == PaymentKind.ADVANCE_USE:
                    self.advance.append_use(
                        customer_id,
                        component.amount,
                        bill_id=bill.id,
                        remarks=f"Applied to bill {bill.bill_number}",
                    )
                elif component.kind in ADVANCE_TOP_UP_KINDS:
                    self.advance.append_deposit(
                        customer_id,
                        component.amount,
                        component.kind,
                        bill_id=bill.id,
                        remarks=f"Extra paid during bill {bill.bill_number}",
                    )
                else:
                    self.settlements.append(
                        component.kind,
                        component.amount,
                        customer_id=customer_id,
                        bill_id=bill.id,
                        remarks=remarks,
                    )

            credit = credit_amount(split)
            used = advance_used(split)
            added = advance_added(split)
            self.customers.update_cached_balances(
                customer,
                customer.credit_balance + credit,
                customer.advance_balance + added - used,
            )
            bill_id, bill_number = bill.id, bill.bill_number

        paid_portion = paid_amount(split) + used
        for component in split:
            record_settlement(component.kind.value, component.amount)
        log_settlement(
            "bill_settled",
            total,
            customer_id=customer_id,
            reference_id=bill_id,
            paid_portion=paid_portion,
            credit_portion=credit,
        )
        return BillSettlement(
            bill_id=bill_id,
            bill_number=bill_number,
            customer_id=customer_id,
            total=total,
            paid_portion=paid_portion,
            credit_portion=credit,
            advance_used=used,
            advance_added=added,
            message=settlement_message(paid_portion, credit),
        )
