"""Mapping of domain exceptions onto HTTP responses"""

import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kot_ledger.api.dependencies import get_request_id
from kot_ledger.domain.exceptions import (
    ConcurrentModification,
    DomainException,
    InconsistentState,
    InvariantViolation,
    NotFound,
    PersistenceFailure,
)
from kot_ledger.infrastructure.observability.logging import log_validation_failure
from kot_ledger.infrastructure.observability.metrics import record_validation_failure

# Most specific first
_STATUS_CODES = (
    (ConcurrentModification, 409),
    (PersistenceFailure, 503),
    (NotFound, 404),
    (InconsistentState, 409),
    (InvariantViolation, 500),
)


def status_for(exc: DomainException) -> int:
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 422


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Every failure names the offending component so the UI can point at it"""
    request_id = get_request_id(request)
    status_code = status_for(exc)
    payload = exc.to_dict()

    if status_code == 422:
        record_validation_failure(exc.code)
        log_validation_failure(request_id, payload)
    else:
        logging.error(f"{exc.code}: {exc.message}", extra={"request_id": request_id})

    payload["request_id"] = request_id
    return JSONResponse(status_code=status_code, content={"detail": payload})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainException, domain_exception_handler)
