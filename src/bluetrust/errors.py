"""
Engine Errors

Error taxonomy shared by the state machine, the ledger and the marketplace.
Every error carries a machine-readable code plus a context dict (current
status, available balance, ...) so callers can act on it.
"""

from typing import Any


class BlueTrustError(Exception):
    """Base exception for engine errors"""

    code = "error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Serializable form used by the HTTP adapter"""
        return {"error": self.code, "message": self.message, **self.context}


class InvalidInput(BlueTrustError):
    """Malformed or out-of-range caller data"""

    code = "invalid_input"


class InvalidQuantity(InvalidInput):
    """Purchase quantity is not a positive integer"""

    code = "invalid_quantity"


class NotFound(BlueTrustError):
    """Unknown project or account id"""

    code = "not_found"


class InvalidTransition(BlueTrustError):
    """Project state machine precondition violated"""

    code = "invalid_transition"


class AlreadyPending(BlueTrustError):
    """A verification request for the project is already in flight"""

    code = "already_pending"


class InsufficientBalance(BlueTrustError):
    """Not enough available or held credits for the operation"""

    code = "insufficient_balance"


class OracleUnavailable(BlueTrustError):
    """Evidence source failed or timed out"""

    code = "oracle_unavailable"


class InvariantViolation(BlueTrustError):
    """
    Ledger invariant would be broken by the operation.

    Raised before commit, never after. Signals a programming error rather
    than a business-rule failure.
    """

    code = "invariant_violation"
