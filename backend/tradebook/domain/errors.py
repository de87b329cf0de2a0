# Overview: Error taxonomy raised by the invoice/payment core.

"""
Domain errors.

Every core operation is all-or-nothing: it either returns new values or
raises one of these synchronously. Routes translate them into HTTP status
codes; the core itself never logs or retries.
"""


class DomainError(ValueError):
    """Base class for invoice/payment rule violations."""


class ValidationError(DomainError):
    """A required computation input is missing or out of domain."""


class OverpaymentError(DomainError):
    """Payment amount exceeds the outstanding balance."""


class AlreadySettledError(DomainError):
    """Payment attempted against an invoice with nothing outstanding."""


class UnauthorizedReversalError(DomainError):
    """Reversal or deletion attempted without elevated authorization."""
