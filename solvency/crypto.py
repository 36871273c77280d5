"""
Core cryptographic functions for the liability audit.
"""
import nacl.signing
import nacl.exceptions
from Crypto.Hash import keccak
from Crypto.PublicKey import ECC
from Crypto.Signature import eddsa

from solvency.field import FIELD_MODULUS, encode_field_element
from solvency.utils.encoding import int_to_bytes32, int_to_le32, le32_to_int

# Inputs accepted by field_hash. Leaves use 2, internal nodes 4, the reserve
# attestation message 1.
SUPPORTED_ARITIES = (1, 2, 4)


def generate_hash(data: bytes) -> bytes:
    """Generates a Keccak-256 hash."""
    return keccak.new(digest_bits=256, data=data).digest()


def field_hash(*elements: int) -> int:
    """
    Hash a fixed number of field elements to a field element.

    Each input is encoded as 32 big-endian bytes, the concatenation is hashed
    with Keccak-256 and the digest is reduced into the field. Arities differ in
    encoded length, so a leaf preimage can never collide with a node preimage.
    """
    if len(elements) not in SUPPORTED_ARITIES:
        raise ValueError(f"Unsupported hash arity: {len(elements)}")
    preimage = b''.join(
        int_to_bytes32(encode_field_element(f"input[{i}]", e))
        for i, e in enumerate(elements)
    )
    return int.from_bytes(generate_hash(preimage), 'big') % FIELD_MODULUS


# --- Mock custodian signatures using PyNaCl (Ed25519) ---
#
# Production attestations come from an external EdDSA signer. The mock signer
# below exposes its public key and nonce point R as affine (x, y) coordinates
# so that attestations have the same shape: (Ax, Ay) and (R8x, R8y, S).
# Point encoding and decoding go through pycryptodome's Ed25519 curve.


def decompress_point(encoded: bytes) -> tuple[int, int]:
    """Decode a 32-byte compressed Edwards25519 point into affine coordinates."""
    point = eddsa.import_public_key(encoded).pointQ
    return int(point.x), int(point.y)


def compress_point(x: int, y: int) -> bytes:
    """Encode affine Edwards25519 coordinates into 32 bytes. Raises ValueError off the curve."""
    return ECC.construct(curve="Ed25519", point_x=x, point_y=y).export_key(format="raw")


def generate_custodian_keypair(seed: bytes = None) -> tuple[nacl.signing.SigningKey, tuple[int, int]]:
    """Generates a custodian signing key and its public key coordinates."""
    signing_key = nacl.signing.SigningKey(seed) if seed else nacl.signing.SigningKey.generate()
    return signing_key, decompress_point(bytes(signing_key.verify_key))


def sign_field_element(signing_key: nacl.signing.SigningKey, message: int) -> dict:
    """
    Sign a field element.

    Returns:
        Signature dict with R8x, R8y and S as integers.
    """
    signature = signing_key.sign(int_to_bytes32(message)).signature
    r8x, r8y = decompress_point(signature[:32])
    return {"R8x": r8x, "R8y": r8y, "S": le32_to_int(signature[32:])}


def verify_field_signature(public_key: tuple[int, int], message: int, signature: dict) -> bool:
    """Verifies a signature produced by sign_field_element."""
    try:
        verify_key = nacl.signing.VerifyKey(compress_point(*public_key))
        raw = compress_point(signature["R8x"], signature["R8y"]) + int_to_le32(signature["S"])
        verify_key.verify(int_to_bytes32(message), raw)
        return True
    except (nacl.exceptions.BadSignatureError, ValueError, TypeError, OverflowError):
        return False
