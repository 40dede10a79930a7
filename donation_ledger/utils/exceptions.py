"""
Exception types.

Defines the categorized errors raised by the fetch layer, by request
validation and by the donation workflow.
"""

from aiohttp import ClientError
from web3.exceptions import ProviderConnectionError, Web3Exception


class DonationLedgerError(Exception):
    """Base class for all donation ledger errors."""

    code = "donation_ledger_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


# Fetch layer


class FetchError(DonationLedgerError):
    """Raised when events cannot be retrieved from the node."""

    code = "fetch_error"


class SourceUnavailableError(FetchError):
    """Raised when the node connection cannot be reached."""

    code = "source_unavailable"


class RangeTooLargeError(FetchError):
    """Raised when the node rejects the requested block window."""

    code = "range_too_large"


# Validation


class ValidationError(DonationLedgerError):
    """Raised when a donation request is malformed."""

    code = "validation_error"


class InvalidAmountError(ValidationError):
    """Raised for an empty, non-numeric or non-positive amount."""

    code = "invalid_amount"


class InvalidTokenError(ValidationError):
    """Raised for an empty or malformed token address."""

    code = "invalid_token"


# Workflow


class WorkflowError(DonationLedgerError):
    """Raised when a donation transaction does not complete."""

    code = "workflow_error"


class TransactionRejectedError(WorkflowError):
    """Native transfer was rejected, reverted or not confirmed in time."""

    code = "transaction_rejected"


class ApprovalRejectedError(WorkflowError):
    """Token approval failed; the donation call was not attempted."""

    code = "approval_rejected"


class DonationRejectedError(WorkflowError):
    """Donation call failed after a successful approval."""

    code = "donation_rejected"


class SignerUnavailableError(WorkflowError):
    """No signing key is configured."""

    code = "signer_unavailable"


# Exception categories based on handling strategy

# Node/transport failures - the source is unreachable
CONNECTION_ERRORS = (
    ClientError,
    ProviderConnectionError,
    ConnectionError,
    OSError,
    TimeoutError,
)

# Errors reported by the node itself
NODE_ERRORS = (
    Web3Exception,
    ValueError,
)


def is_connection_error(exc: Exception) -> bool:
    """
    Check if exception means the node could not be reached.

    Args:
        exc: Exception to check

    Returns:
        True if exception is a transport failure
    """
    return isinstance(exc, CONNECTION_ERRORS)
