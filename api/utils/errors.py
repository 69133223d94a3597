"""
Engine error mapping

Translates engine errors into HTTP errors with a structured detail body.
"""

from fastapi import HTTPException

from bluetrust.errors import (
    AlreadyPending,
    BlueTrustError,
    InsufficientBalance,
    InvalidInput,
    InvalidTransition,
    InvariantViolation,
    NotFound,
    OracleUnavailable,
)


STATUS_CODES: list[tuple[type[BlueTrustError], int]] = [
    (InvalidInput, 422),
    (NotFound, 404),
    (InvalidTransition, 409),
    (AlreadyPending, 409),
    (InsufficientBalance, 409),
    (OracleUnavailable, 503),
    (InvariantViolation, 500),
]


def to_http_exception(error: BlueTrustError) -> HTTPException:
    """
    Build the HTTPException for an engine error

    Example:
        >>> try:
        ...     await engine.purchase(holder_id, issuer_id, quantity)
        ... except BlueTrustError as e:
        ...     raise to_http_exception(e)
    """
    status_code = next((code for cls, code in STATUS_CODES if isinstance(error, cls)), 400)
    return HTTPException(status_code=status_code, detail=error.to_dict())
