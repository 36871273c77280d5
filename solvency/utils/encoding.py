"""
Fixed-width integer encodings used for hashing and on-chain representation.
"""

def int_to_bytes32(value: int) -> bytes:
    """Encode a non-negative integer as 32 big-endian bytes."""
    if value < 0 or value >= 1 << 256:
        raise ValueError(f"Value does not fit in 32 bytes: {value}")
    return value.to_bytes(32, 'big')

def bytes32_to_int(data: bytes) -> int:
    """Decode 32 big-endian bytes into an integer."""
    if len(data) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(data)}")
    return int.from_bytes(data, 'big')

def to_bytes32_hex(value: int) -> str:
    """
    Hex-encode an integer as a Solidity bytes32 literal.
    Returns '0x' followed by 64 zero-padded lowercase hex digits.
    """
    return '0x' + int_to_bytes32(value).hex()

def from_bytes32_hex(text: str) -> int:
    """Decode a '0x'-prefixed bytes32 literal."""
    if not text.startswith('0x') or len(text) != 66:
        raise ValueError(f"Not a bytes32 hex literal: {text!r}")
    return bytes32_to_int(bytes.fromhex(text[2:]))

def int_to_le32(value: int) -> bytes:
    """Encode a non-negative integer as 32 little-endian bytes."""
    return value.to_bytes(32, 'little')

def le32_to_int(data: bytes) -> int:
    """Decode 32 little-endian bytes into an integer."""
    if len(data) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(data)}")
    return int.from_bytes(data, 'little')
