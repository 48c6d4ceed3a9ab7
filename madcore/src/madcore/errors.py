"""
Wallet error taxonomy.

Every error carries the name of the operation that failed so callers can
tell categories apart programmatically and still read a useful message.
"""

from __future__ import annotations


class MadWalletError(Exception):
    """Base class for all wallet errors."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class ValidationError(MadWalletError):
    """Malformed address, curve, value, index or hex input."""


class AccountNotFoundError(ValidationError):
    pass


class DuplicateAccountError(ValidationError):
    pass


class InsufficientFundsError(MadWalletError):
    pass


class NoUnspentOutputsError(MadWalletError):
    pass


class UnknownInputOwnerError(MadWalletError):
    pass


class UnknownDataOutputOwnerError(MadWalletError):
    """A data output has no matching signer record, or the record disagrees with its owner tag."""


class InvalidOwnerLengthError(MadWalletError):
    pass


class DataTooLargeError(MadWalletError):
    pass


class EpochInversionError(MadWalletError):
    pass


class DepositOverflowError(MadWalletError):
    """Deposit cannot cover the two-epoch floor for its data size."""


class ExternalCollaboratorError(MadWalletError):
    """Failure reported by the transport, a signer or the hasher."""
