"""
Ledger backend implementations.

Available backends:
- MadNetRPCBackend: MadNet node HTTP RPC

The transaction builder depends only on LedgerBackend, so tests and
alternative transports can supply their own implementation.
"""

from madwallet.backends.base import LedgerBackend, UTXOSet
from madwallet.backends.madnet_rpc import MadNetRPCBackend

__all__ = [
    "LedgerBackend",
    "MadNetRPCBackend",
    "UTXOSet",
]
