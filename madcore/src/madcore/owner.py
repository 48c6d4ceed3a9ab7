"""
Owner tag codec.

Every output carries a 22-byte owner: SVA kind (1 byte) | curve (1 byte) |
public key hash (20 bytes). Signatures written back into a transaction use
the same SVA | curve prefix in front of the raw signature bytes.
"""

from __future__ import annotations

from dataclasses import dataclass

from madcore.constants import DATA_STORE_SVA, OWNER_LENGTH, PUBKEY_HASH_LENGTH, VALUE_STORE_SVA
from madcore.errors import InvalidOwnerLengthError, ValidationError
from madcore.models import Curve
from madcore.validation import normalize_hex

SVA_KINDS = (VALUE_STORE_SVA, DATA_STORE_SVA)


@dataclass(frozen=True)
class Owner:
    sva: int
    curve: Curve
    pubkey_hash: bytes

    @property
    def address(self) -> str:
        return self.pubkey_hash.hex()

    def to_bytes(self) -> bytes:
        return encode_owner(self.sva, self.curve, self.pubkey_hash)

    def to_hex(self) -> str:
        return self.to_bytes().hex()


def prefix_sva_curve(sva: int, curve: int, payload: bytes) -> bytes:
    """Prepend the one-byte SVA kind and one-byte curve to payload."""
    if not 0 < sva < 256:
        raise ValidationError(f"SVA kind out of range: {sva}", "prefix_sva_curve")
    if not 0 < int(curve) < 256:
        raise ValidationError(f"Curve out of range: {curve}", "prefix_sva_curve")
    if not payload:
        raise ValidationError("Empty payload", "prefix_sva_curve")
    return bytes([sva, int(curve)]) + payload


def encode_owner(sva: int, curve: int, pubkey_hash: bytes | str) -> bytes:
    if isinstance(pubkey_hash, str):
        pubkey_hash = bytes.fromhex(normalize_hex(pubkey_hash, "encode_owner"))
    if len(pubkey_hash) != PUBKEY_HASH_LENGTH:
        raise ValidationError(
            f"Public key hash must be {PUBKEY_HASH_LENGTH} bytes, got {len(pubkey_hash)}",
            "encode_owner",
        )
    try:
        curve = Curve(curve)
    except ValueError as e:
        raise ValidationError(f"Invalid curve: {curve}", "encode_owner") from e
    return prefix_sva_curve(sva, curve, pubkey_hash)


def decode_owner(owner: bytes | str) -> Owner:
    if isinstance(owner, str):
        owner = bytes.fromhex(normalize_hex(owner, "decode_owner"))
    if len(owner) != OWNER_LENGTH:
        raise InvalidOwnerLengthError(
            f"Owner must be {OWNER_LENGTH} bytes, got {len(owner)}", "decode_owner"
        )
    try:
        curve = Curve(owner[1])
    except ValueError as e:
        raise ValidationError(f"Invalid curve in owner: {owner[1]}", "decode_owner") from e
    return Owner(sva=owner[0], curve=curve, pubkey_hash=bytes(owner[2:]))
