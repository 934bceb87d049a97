"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


class PaymentKind(str, Enum):
    """Closed set of payment component kinds"""

    CASH = "Cash"
    UPI = "UPI"
    CREDIT = "Credit"
    ADVANCE_USE = "AdvanceUse"
    ADVANCE_ADD_CASH = "AdvanceAddCash"
    ADVANCE_ADD_UPI = "AdvanceAddUPI"

    @property
    def is_advance_top_up(self) -> bool:
        return self in (PaymentKind.ADVANCE_ADD_CASH, PaymentKind.ADVANCE_ADD_UPI)


ADVANCE_TOP_UP_KINDS = frozenset({PaymentKind.ADVANCE_ADD_CASH, PaymentKind.ADVANCE_ADD_UPI})
CASH_LIKE_KINDS = frozenset({PaymentKind.CASH, PaymentKind.UPI})


class SplitContext(str, Enum):
    """What a split set is settling"""

    BILL = "bill"
    EXPENSE = "expense"
    CLEARANCE = "clearance"


PERMITTED_KINDS: Dict[SplitContext, frozenset] = {
    SplitContext.BILL: frozenset(PaymentKind),
    SplitContext.EXPENSE: frozenset({PaymentKind.CASH, PaymentKind.UPI, PaymentKind.CREDIT}),
    SplitContext.CLEARANCE: frozenset({PaymentKind.CASH, PaymentKind.UPI, PaymentKind.ADVANCE_USE}),
}

CONTRIBUTING_KINDS: Dict[SplitContext, frozenset] = {
    SplitContext.BILL: frozenset(
        {PaymentKind.CASH, PaymentKind.UPI, PaymentKind.CREDIT, PaymentKind.ADVANCE_USE}
    ),
    SplitContext.EXPENSE: frozenset({PaymentKind.CASH, PaymentKind.UPI, PaymentKind.CREDIT}),
    SplitContext.CLEARANCE: frozenset({PaymentKind.CASH, PaymentKind.UPI, PaymentKind.ADVANCE_USE}),
}


class SettlementSubType(str, Enum):
    ACCRUAL = "Accrual"
    CLEARANCE = "Clearance"


class ExpenseStatus(str, Enum):
    PAID = "Paid"
    PARTIALLY_CREDITED = "PartiallyCredited"
    OUTSTANDING = "Outstanding"


def new_component_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class PaymentComponent:
    """One allocation line in a split payment"""

    kind: PaymentKind
    amount: int  # minor units
    id: str = field(default_factory=new_component_id)


@dataclass(frozen=True)
class SplitPaymentSet:
    """Components attached to one bill, expense or clearance (display order only)"""

    context: SplitContext
    components: Tuple[PaymentComponent, ...] = ()

    def __iter__(self):
        return iter(self.components)

    def __len__(self) -> int:
        return len(self.components)

    def of_kind(self, kind: PaymentKind) -> List[PaymentComponent]:
        return [c for c in self.components if c.kind == kind]


@dataclass(frozen=True)
class CustomerCreditAccount:
    """Derived credit position of one customer"""

    customer_id: str
    accrued: int = 0
    cleared: int = 0

    @property
    def balance(self) -> int:
        return self.accrued - self.cleared


@dataclass(frozen=True)
class CustomerAdvanceAccount:
    """Derived advance wallet of one customer"""

    customer_id: str
    deposited: int = 0
    used: int = 0

    @property
    def balance(self) -> int:
        return self.deposited - self.used


@dataclass
class SettlementEntry:
    """Immutable settlement log entry as seen by the domain"""

    id: int
    kind: str  # PaymentKind value, or a legacy label before migration
    amount: int
    created_at: datetime
    sub_type: Optional[str] = None
    customer_id: Optional[str] = None
    expense_id: Optional[str] = None
    bill_id: Optional[str] = None
    reference_id: Optional[str] = None
    remarks: Optional[str] = None


@dataclass
class ExpenseSummary:
    """Figures derived from an expense's settlements"""

    paid_amount: int
    credit_accrued: int
    credit_cleared: int
    credit_outstanding: int
    status: ExpenseStatus


@dataclass
class ExpenseDetails:
    id: str
    voucher_no: int
    amount: int
    category: str
    mode: str
    remarks: Optional[str]
    expense_date: date
    created_at: datetime
    settlements: List[SettlementEntry]
    summary: ExpenseSummary


@dataclass
class BillSettlement:
    """Outcome of settling one bill"""

    bill_id: str
    bill_number: int
    customer_id: str
    total: int
    paid_portion: int
    credit_portion: int
    advance_used: int
    advance_added: int
    message: str


@dataclass
class ClearanceResult:
    customer_id: str
    cleared: int
    remaining_balance: int
    message: str


@dataclass
class CreditHolder:
    """Customer currently owing money, as shown on the dues screen"""

    customer_id: str
    name: Optional[str]
    contact: Optional[str]
    balance: int


@dataclass
class BalanceMismatch:
    """Cached balance that disagrees with the settlement log"""

    customer_id: str
    account: str  # "credit" | "advance"
    stored: int
    computed: int

    @property
    def drift(self) -> int:
        return self.stored - self.computed


@dataclass
class ReconciliationResult:
    records_updated: int
    mismatches: List[BalanceMismatch]


@dataclass
class MigrationResult:
    success: bool
    migrated_records: int
    errors: List[str]
    summary: str


@dataclass
class AuditReport:
    total_customers: int
    customers_with_credit: int
    total_settlements: int
    settlements_by_kind: Dict[str, int]
    issues: List[str]
