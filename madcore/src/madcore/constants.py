"""
Ledger and wallet protocol constants.

Data store economics follow the node's deposit equation:
- a lease costs (len(rawData) + BASE_DATASIZE_CONST) per epoch
- every deposit also pays for a fixed two-epoch floor
"""

from __future__ import annotations

# RPC limits
MAX_UTXOS = 255  # ids per get-utxo request, page size for name-space iteration
REQUEST_TIMEOUT = 8.0  # seconds

# Data store sizing
MAX_DATASTORE_SIZE = 2097152  # 2MB
BASE_DATASIZE_CONST = 376

# Epochs
EPOCH_BLOCK_SIZE = 1024
# Blocks past this offset inside an epoch lease against the next epoch
EPOCH_BOUNDARY = 960

# Owner / signature prefixes (SVA = signature validation algorithm)
VALUE_STORE_SVA = 1
DATA_STORE_SVA = 3
OWNER_LENGTH = 22
PUBKEY_HASH_LENGTH = 20
INDEX_HEX_LENGTH = 64  # data store index is always 32 bytes

# Written into every TxHash / Signature field until the hasher fills it
PLACEHOLDER = "C0FFEE"

DEFAULT_CHAIN_ID = 1
