"""
madcore - Core library for the MadNet wallet

Provides wire models, owner encoding, deposit economics and signers.
"""

__version__ = "0.3.0"

from madcore.constants import (
    BASE_DATASIZE_CONST,
    DATA_STORE_SVA,
    EPOCH_BLOCK_SIZE,
    EPOCH_BOUNDARY,
    MAX_DATASTORE_SIZE,
    MAX_UTXOS,
    VALUE_STORE_SVA,
)
from madcore.crypto import BNSigner, SecpSigner, Signer, create_signer, keccak256
from madcore.deposit import calculate_deposit, calculate_num_epochs, remaining_deposit
from madcore.errors import (
    AccountNotFoundError,
    DataTooLargeError,
    DepositOverflowError,
    DuplicateAccountError,
    EpochInversionError,
    ExternalCollaboratorError,
    InsufficientFundsError,
    InvalidOwnerLengthError,
    MadWalletError,
    NoUnspentOutputsError,
    UnknownDataOutputOwnerError,
    UnknownInputOwnerError,
    ValidationError,
)
from madcore.models import (
    AtomicSwap,
    Curve,
    DataStore,
    DataStoreUTXOID,
    Tx,
    TxIn,
    TxOut,
    ValueStore,
)
from madcore.owner import Owner, decode_owner, encode_owner, prefix_sva_curve

__all__ = [
    "AccountNotFoundError",
    "AtomicSwap",
    "BASE_DATASIZE_CONST",
    "BNSigner",
    "Curve",
    "DATA_STORE_SVA",
    "DataStore",
    "DataStoreUTXOID",
    "DataTooLargeError",
    "DepositOverflowError",
    "DuplicateAccountError",
    "EPOCH_BLOCK_SIZE",
    "EPOCH_BOUNDARY",
    "EpochInversionError",
    "ExternalCollaboratorError",
    "InsufficientFundsError",
    "InvalidOwnerLengthError",
    "MAX_DATASTORE_SIZE",
    "MAX_UTXOS",
    "MadWalletError",
    "NoUnspentOutputsError",
    "Owner",
    "SecpSigner",
    "Signer",
    "Tx",
    "TxIn",
    "TxOut",
    "UnknownDataOutputOwnerError",
    "UnknownInputOwnerError",
    "VALUE_STORE_SVA",
    "ValidationError",
    "ValueStore",
    "calculate_deposit",
    "calculate_num_epochs",
    "create_signer",
    "decode_owner",
    "encode_owner",
    "keccak256",
    "prefix_sva_curve",
    "remaining_deposit",
]
