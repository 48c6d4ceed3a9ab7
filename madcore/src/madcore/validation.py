"""
Input guards and hex/number coercion.

All guards raise ValidationError before any external call is made.
"""

from __future__ import annotations

import re

from madcore.errors import ValidationError
from madcore.models import Curve

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def normalize_hex(value: str | bytes, operation: str = "normalize_hex") -> str:
    """Strip 0x, check characters, left-pad odd lengths and lower-case."""
    if isinstance(value, (bytes, bytearray)):
        if not value:
            raise ValidationError("Empty bytes", operation)
        return bytes(value).hex()
    if not isinstance(value, str) or not value:
        raise ValidationError("No input provided", operation)
    if value.startswith("0x"):
        value = value[2:]
    if not _HEX_RE.match(value):
        raise ValidationError(f"Invalid hex character in {value!r}", operation)
    if len(value) % 2 != 0:
        value = "0" + value
    return value.lower()


def validate_address(value: str | bytes) -> str:
    address = normalize_hex(value, "validate_address")
    if len(address) != 40:
        raise ValidationError(f"Invalid address length: {len(address)}", "validate_address")
    return address


def validate_private_key(value: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError("No private key provided", "validate_private_key")
    # 32 bytes, optionally 0x-prefixed; length is checked before padding
    if len(value) not in (64, 66):
        raise ValidationError("Invalid private key length", "validate_private_key")
    key = normalize_hex(value, "validate_private_key")
    if len(key) != 64:
        raise ValidationError("Invalid private key length", "validate_private_key")
    return key


def validate_curve(value: int | str | Curve) -> Curve:
    try:
        return Curve(validate_number(value, "validate_curve"))
    except ValueError as e:
        raise ValidationError(f"Invalid curve: {value!r}", "validate_curve") from e


def validate_number(value: int | str, operation: str = "validate_number") -> int:
    """Positive integer from an int or a decimal / 0x-hex string."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid number: {value!r}", operation)
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value:
        try:
            number = int(value, 16) if value.startswith("0x") else int(value, 10)
        except ValueError as e:
            raise ValidationError(f"Invalid number: {value!r}", operation) from e
    else:
        raise ValidationError(f"Invalid number: {value!r}", operation)
    if number <= 0:
        raise ValidationError(f"Number must be positive: {value!r}", operation)
    return number


def validate_amount(value: int | str) -> int:
    return validate_number(value, "validate_amount")


def int_to_hex(value: int) -> str:
    """Even-length lower-case hex without prefix."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"Cannot hex-encode {value!r}", "int_to_hex")
    encoded = format(value, "x")
    if len(encoded) % 2 != 0:
        encoded = "0" + encoded
    return encoded


def hex_to_int(value: str) -> int:
    return int(normalize_hex(value, "hex_to_int"), 16)


def text_to_hex(text: str) -> str:
    return text.encode("utf-8").hex()


def hex_or_text(value: str | bytes, operation: str = "hex_or_text") -> str:
    """0x-prefixed strings are hex, other strings are UTF-8 text."""
    if isinstance(value, (bytes, bytearray)):
        return normalize_hex(value, operation)
    if not isinstance(value, str) or not value:
        raise ValidationError("No input provided", operation)
    if value.startswith("0x"):
        return normalize_hex(value, operation)
    return text_to_hex(value)
