"""
Field encodings for liability data.

Every value that enters the hash must be a canonical element of the BN254
scalar field. Values are validated explicitly; nothing is reduced modulo the
field, so an oversized owner or balance is a fatal EncodingOverflow instead of
a silent wraparound.
"""
from typing import Union

from solvency.errors import EncodingOverflow
from solvency.utils.encoding import to_bytes32_hex

# BN254 (alt_bn128) scalar field, shared with the proving circuit.
FIELD_MODULUS = 21888242871839275222246405745257275088548364400416034343698204186575808495617

ZERO_ELEMENT = 0


def encode_field_element(name: str, value: int) -> int:
    """
    Validate that an integer is a canonical field element.

    Args:
        name: Label used in the error message (e.g. "owner", "balance").
        value: The integer to check.

    Returns:
        The value unchanged.

    Raises:
        TypeError: If value is not an int.
        EncodingOverflow: If value is negative or not below FIELD_MODULUS.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0 or value >= FIELD_MODULUS:
        raise EncodingOverflow(name, value, FIELD_MODULUS)
    return value


def parse_integer(value: Union[int, str]) -> int:
    """
    Parse an arbitrary-precision integer from an int or a decimal string.

    Floats are rejected outright; a balance must never pass through binary
    floating point.
    """
    if isinstance(value, bool):
        raise ValueError(f"Boolean is not an integer amount: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text[:1] in ('-', '+') else text
        if not digits.isdigit():
            raise ValueError(f"Not a decimal integer: {value!r}")
        return int(text)
    raise ValueError(f"Unsupported integer encoding: {type(value).__name__}")


def parse_owner(value: Union[int, str]) -> int:
    """Parse an owner identifier given as '0x' hex, a decimal string or an int."""
    if isinstance(value, str) and value.strip().lower().startswith('0x'):
        text = value.strip()[2:]
        if not text:
            raise ValueError(f"Empty hex owner: {value!r}")
        try:
            return int(text, 16)
        except ValueError:
            raise ValueError(f"Not a hex owner: {value!r}") from None
    return parse_integer(value)


def field_to_str(value: int) -> str:
    """Serialize a field element as a decimal string."""
    return str(encode_field_element("value", value))


def field_to_bytes32_hex(value: int) -> str:
    """On-chain bytes32 representation of a field element."""
    return to_bytes32_hex(encode_field_element("value", value))
