"""
madwallet - MadNet UTXO wallet

Ledger backends, account management and transaction building.
"""

__version__ = "0.3.0"
