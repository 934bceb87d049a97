"""Domain-specific exceptions"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        amount: Optional[int] = None,
        component_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.amount = amount
        self.component_id = component_id

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Error payload naming the offending component"""
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.kind is not None:
            payload["kind"] = self.kind
        if self.amount is not None:
            payload["amount"] = self.amount
        if self.component_id is not None:
            payload["component_id"] = self.component_id
        return payload


class InvalidAmount(DomainException):
    """Non-positive, non-integer or otherwise unacceptable amount"""

    pass


class OverAllocation(InvalidAmount):
    """Contributing components would exceed the target total"""

    def __init__(self, message: str, excess: int, **kwargs):
        super().__init__(message, **kwargs)
        self.excess = excess

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["excess"] = self.excess
        return payload


class DuplicateCredit(DomainException):
    """A second Credit line was added to one split set"""

    pass


class InsufficientAdvance(DomainException):
    """Requested AdvanceUse exceeds the customer's advance balance"""

    def __init__(self, message: str, requested: int, available: int, **kwargs):
        super().__init__(message, amount=requested, **kwargs)
        self.requested = requested
        self.available = available

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["available"] = self.available
        return payload


class OverClearance(DomainException):
    """Requested clearance exceeds the outstanding credit"""

    def __init__(self, message: str, requested: int, outstanding: int, **kwargs):
        super().__init__(message, amount=requested, **kwargs)
        self.requested = requested
        self.outstanding = outstanding

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["outstanding"] = self.outstanding
        return payload


class NotFound(DomainException):
    """Referenced entity does not exist"""

    pass


class CustomerNotFound(NotFound):
    pass


class ExpenseNotFound(NotFound):
    pass


class PersistenceFailure(DomainException):
    """The store could not commit the transaction"""

    retryable = True

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["retryable"] = self.retryable
        return payload


class ConcurrentModification(PersistenceFailure):
    """Cached balance row changed underneath the current transaction"""

    pass


class InconsistentState(DomainException):
    """Stored balance diverges from the settlement log"""

    pass


class InvariantViolation(DomainException):
    """Arithmetic produced a state that must never exist (negative balance)"""

    pass
