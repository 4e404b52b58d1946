"""Exception hierarchy for the debt engine."""

from typing import Optional


class DebtEngineError(Exception):
    """Base exception for all debt engine errors."""


class ValidationError(DebtEngineError):
    """Raised when an input is malformed or out of range.

    ``field`` names the offending input so callers can point at it.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class ComputationError(DebtEngineError):
    """Raised when loan terms cannot amortize (negative amortization)."""


class NotFoundError(DebtEngineError):
    """Raised when an account does not exist or is not a debt account."""

    def __init__(self, account_id: str, reason: Optional[str] = None):
        self.account_id = account_id
        super().__init__(reason or f"Debt account {account_id} not found")


class StateError(DebtEngineError):
    """Raised when an operation is not allowed in the account's current state."""
