"""Normalisation of historical free-text payment mode labels"""

import logging
import re
from typing import Dict, Iterable, Mapping, Optional

from kot_ledger.domain.models import PaymentKind

logger = logging.getLogger(__name__)

# Labels seen in older data that do not match an enum value case-insensitively
LEGACY_ALIASES: Dict[str, PaymentKind] = {
    "advance": PaymentKind.ADVANCE_USE,
    "apply": PaymentKind.ADVANCE_USE,
    "advanceapply": PaymentKind.ADVANCE_USE,
    "advanceaddition": PaymentKind.ADVANCE_ADD_CASH,
    "gpay": PaymentKind.UPI,
    "phonepe": PaymentKind.UPI,
    "paytm": PaymentKind.UPI,
    "due": PaymentKind.CREDIT,
    "udhar": PaymentKind.CREDIT,
}


def _squash(label: str) -> str:
    """'Advance add cash', 'advance_add_cash' and 'ADVANCEADDCASH' look the same"""
    return re.sub(r"[\s_\-]+", "", label).casefold()


def default_mode_mapping() -> Dict[str, PaymentKind]:
    mapping = {_squash(kind.value): kind for kind in PaymentKind}
    mapping.update(LEGACY_ALIASES)
    return mapping


def normalize_mode(label: str, mapping: Optional[Mapping[str, PaymentKind]] = None) -> Optional[PaymentKind]:
    """
    Map a stored label onto its canonical kind, or None if unknown.

    A caller-supplied mapping is matched on the exact label first and then
    on its squashed form.
    """
    if label is None:
        return None
    if mapping is not None:
        if label in mapping:
            return PaymentKind(mapping[label])
        squashed_custom = {_squash(k): v for k, v in mapping.items()}
        found = squashed_custom.get(_squash(label))
        if found is not None:
            return PaymentKind(found)
    return default_mode_mapping().get(_squash(label))


def plan_mode_migration(
    labels: Iterable[str], mapping: Optional[Mapping[str, PaymentKind]] = None
) -> Dict[str, PaymentKind]:
    """
    Labels that need rewriting, each with its canonical kind.

    Canonical labels are never sources, even when a caller mapping names
    them, so every target lies outside the plan's keys and rows cannot be
    relabelled twice in one run or flip back and forth across runs.
    """
    canonical = {kind.value for kind in PaymentKind}
    if mapping:
        ignored = sorted(label for label in mapping if label in canonical)
        if ignored:
            logger.warning(
                "Mode mapping entries for canonical kinds ignored",
                extra={"step": "migrate_modes", "labels": ignored},
            )

    plan: Dict[str, PaymentKind] = {}
    for label in labels:
        if label in canonical:
            continue
        kind = normalize_mode(label, mapping)
        if kind is not None:
            plan[label] = kind
    return plan
