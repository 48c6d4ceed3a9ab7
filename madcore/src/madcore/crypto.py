"""
Signature primitives for the two account curves.

- Curve 1: secp256k1 ECDSA (coincurve), Ethereum-style addresses
- Curve 2: BN254 pairing-based signatures (py_ecc), aggregatable by the node

Both variants expose the same Signer interface and are chosen once, when an
account is created.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from coincurve import PrivateKey, PublicKey
from Crypto.Hash import keccak
from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    G2,
    b,
    b2,
    curve_order,
    field_modulus,
    is_on_curve,
    multiply,
    normalize,
    pairing,
)

from madcore.errors import ValidationError
from madcore.models import Curve

BN_SCALAR_LENGTH = 32
BN_G1_LENGTH = 64
BN_G2_LENGTH = 128
BN_SIGNATURE_LENGTH = BN_G2_LENGTH + BN_G1_LENGTH


class CryptoError(Exception):
    pass


def keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


class Signer(ABC):
    """Signing capability bound to one private key and one curve."""

    curve: Curve

    @abstractmethod
    async def sign(self, message: bytes) -> bytes:
        """Sign message, returns the raw (unprefixed) signature"""

    @abstractmethod
    async def verify(self, message: bytes, signature: bytes) -> bool:
        """Check signature over message against this signer's public key"""

    @abstractmethod
    def get_public_key(self) -> bytes:
        """Public key bytes"""

    @abstractmethod
    def get_address(self) -> str:
        """20-byte address as lower-case hex"""


class SecpSigner(Signer):
    """
    secp256k1 signer producing recoverable r || s || v signatures.

    Messages are hashed with keccak256 before signing. The public key is the
    65-byte uncompressed encoding; the address is the low 20 bytes of the
    keccak256 of the key without its 0x04 prefix.
    """

    curve = Curve.SECP256K1

    def __init__(self, private_key: bytes):
        try:
            self._private_key = PrivateKey(private_key)
        except ValueError as e:
            raise ValidationError(f"Invalid secp256k1 private key: {e}", "SecpSigner") from e
        self._public_key = self._private_key.public_key

    async def sign(self, message: bytes) -> bytes:
        return self._private_key.sign_recoverable(keccak256(message), hasher=None)

    async def verify(self, message: bytes, signature: bytes) -> bool:
        try:
            recovered = PublicKey.from_signature_and_message(
                signature, keccak256(message), hasher=None
            )
            return recovered.format(compressed=False) == self.get_public_key()
        except Exception:
            return False

    def get_public_key(self) -> bytes:
        return self._public_key.format(compressed=False)

    def get_address(self) -> str:
        return keccak256(self.get_public_key()[1:])[-20:].hex()


def _coeff(value: object) -> int:
    return int(getattr(value, "n", value))


def _encode_g1(point: tuple) -> bytes:
    x, y = normalize(point)
    return _coeff(x).to_bytes(32, "big") + _coeff(y).to_bytes(32, "big")


def _decode_g1(data: bytes) -> tuple:
    if len(data) != BN_G1_LENGTH:
        raise CryptoError(f"Invalid G1 length: {len(data)}")
    point = (
        FQ(int.from_bytes(data[:32], "big")),
        FQ(int.from_bytes(data[32:], "big")),
        FQ.one(),
    )
    if not is_on_curve(point, b):
        raise CryptoError("G1 point not on curve")
    return point


def _encode_g2(point: tuple) -> bytes:
    x, y = normalize(point)
    x_re, x_im = (_coeff(c) for c in x.coeffs)
    y_re, y_im = (_coeff(c) for c in y.coeffs)
    return b"".join(v.to_bytes(32, "big") for v in (x_im, x_re, y_im, y_re))


def _decode_g2(data: bytes) -> tuple:
    if len(data) != BN_G2_LENGTH:
        raise CryptoError(f"Invalid G2 length: {len(data)}")
    x_im, x_re, y_im, y_re = (
        int.from_bytes(data[i : i + 32], "big") for i in range(0, BN_G2_LENGTH, 32)
    )
    point = (FQ2([x_re, x_im]), FQ2([y_re, y_im]), FQ2.one())
    if not is_on_curve(point, b2):
        raise CryptoError("G2 point not on curve")
    return point


def hash_to_g1(message: bytes) -> tuple:
    """
    Map message onto G1 by try-and-increment over keccak256.

    BN254 G1 has cofactor 1, so every point found lies in the subgroup.
    """
    counter = 0
    while True:
        digest = keccak256(counter.to_bytes(4, "big") + message)
        x = int.from_bytes(digest, "big") % field_modulus
        rhs = (pow(x, 3, field_modulus) + 3) % field_modulus
        # field_modulus = 3 mod 4
        y = pow(rhs, (field_modulus + 1) // 4, field_modulus)
        if (y * y) % field_modulus == rhs:
            return (FQ(x), FQ(y), FQ.one())
        counter += 1


class BNSigner(Signer):
    """
    BN254 signer.

    Signatures are pubkey (G2, 128 bytes) || sk * H(m) (G1, 64 bytes) so the
    node can check them without an account lookup. The address is the low
    20 bytes of keccak256 over the raw 128-byte public key.
    """

    curve = Curve.BN256

    def __init__(self, private_key: bytes):
        secret = int.from_bytes(private_key, "big") % curve_order
        if secret == 0:
            raise ValidationError("Invalid BN254 private key", "BNSigner")
        self._secret = secret
        self._public_key = _encode_g2(multiply(G2, secret))

    async def sign(self, message: bytes) -> bytes:
        signature = multiply(hash_to_g1(message), self._secret)
        return self._public_key + _encode_g1(signature)

    async def verify(self, message: bytes, signature: bytes) -> bool:
        try:
            if len(signature) != BN_SIGNATURE_LENGTH:
                return False
            if signature[:BN_G2_LENGTH] != self._public_key:
                return False
            public_key = _decode_g2(signature[:BN_G2_LENGTH])
            sigma = _decode_g1(signature[BN_G2_LENGTH:])
            return pairing(G2, sigma) == pairing(public_key, hash_to_g1(message))
        except Exception:
            return False

    @staticmethod
    def public_key_from_signature(signature: bytes) -> bytes:
        if len(signature) != BN_SIGNATURE_LENGTH:
            raise CryptoError(f"Invalid BN signature length: {len(signature)}")
        return signature[:BN_G2_LENGTH]

    def get_public_key(self) -> bytes:
        return self._public_key

    def get_address(self) -> str:
        return keccak256(self._public_key)[-20:].hex()


def create_signer(private_key: str | bytes, curve: Curve | int) -> Signer:
    """Build the signer variant for curve from a 32-byte private key."""
    if isinstance(private_key, str):
        private_key = bytes.fromhex(private_key)
    if len(private_key) != BN_SCALAR_LENGTH:
        raise ValidationError(
            f"Private key must be 32 bytes, got {len(private_key)}", "create_signer"
        )
    if curve == Curve.SECP256K1:
        return SecpSigner(private_key)
    if curve == Curve.BN256:
        return BNSigner(private_key)
    raise ValidationError(f"Invalid curve: {curve}", "create_signer")
