"""
Reserve attestations.

The custodian's signer publishes its reserve balance signed over the message
H(reserveBalance). The attestation is consumed as-is: its fields become
private witness inputs, and the signature itself is checked inside the proof
by the proving subsystem.

Two input layouts are accepted:

    nested: {"custodianPublicKey": [Ax, Ay], "reserveBalance": ...,
             "signature": {"R8x": ..., "R8y": ..., "S": ...}}
    flat:   {"bankPubKeyAx": ..., "bankPubKeyAy": ..., "bankBalance": ...,
             "bankSigR8x": ..., "bankSigR8y": ..., "bankSigS": ...}

Note: the message binds only the balance, not the audit period. Replay of an
older attestation across cycles is not prevented here.
"""
import json
import logging
from dataclasses import dataclass
from typing import Optional

import nacl.utils

from solvency.crypto import (
    field_hash,
    generate_custodian_keypair,
    generate_hash,
    sign_field_element,
    verify_field_signature,
)
from solvency.field import FIELD_MODULUS, encode_field_element, parse_integer

logger = logging.getLogger(__name__)

# Demonstration seed. DO NOT USE IN PRODUCTION.
MOCK_CUSTODIAN_SEED = bytes.fromhex("0001020304050607080900010203040506070809000102030405060708090001")


@dataclass(frozen=True)
class ReserveAttestation:
    custodian_public_key: tuple[int, int]
    reserve_balance: int
    signature_r8: tuple[int, int]
    signature_s: int

    def message(self) -> int:
        """The signed message: H(reserveBalance)."""
        return attestation_message(self.reserve_balance)

    def verify(self) -> bool:
        """
        Check the signature with the mock custodian's scheme.

        Attestations from an external signer are checked by the proving
        subsystem instead.
        """
        return verify_field_signature(
            self.custodian_public_key,
            self.message(),
            {"R8x": self.signature_r8[0], "R8y": self.signature_r8[1], "S": self.signature_s},
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'ReserveAttestation':
        if "bankBalance" in data:
            public_key = (data["bankPubKeyAx"], data["bankPubKeyAy"])
            balance = data["bankBalance"]
            r8 = (data["bankSigR8x"], data["bankSigR8y"])
            s = data["bankSigS"]
        else:
            public_key = tuple(data["custodianPublicKey"])
            balance = data["reserveBalance"]
            signature = data["signature"]
            r8 = (signature["R8x"], signature["R8y"])
            s = signature["S"]

        if len(public_key) != 2:
            raise ValueError("custodianPublicKey must have exactly two coordinates")

        # Every value is a circuit input, so each must be a field element.
        return cls(
            custodian_public_key=(
                encode_field_element("bankPubKeyAx", parse_integer(public_key[0])),
                encode_field_element("bankPubKeyAy", parse_integer(public_key[1])),
            ),
            reserve_balance=encode_field_element("reserveBalance", parse_integer(balance)),
            signature_r8=(
                encode_field_element("bankSigR8x", parse_integer(r8[0])),
                encode_field_element("bankSigR8y", parse_integer(r8[1])),
            ),
            signature_s=encode_field_element("bankSigS", parse_integer(s)),
        )

    @classmethod
    def from_file(cls, path: str) -> 'ReserveAttestation':
        with open(path, 'r') as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> dict:
        return {
            "custodianPublicKey": [str(c) for c in self.custodian_public_key],
            "reserveBalance": str(self.reserve_balance),
            "signature": {
                "R8x": str(self.signature_r8[0]),
                "R8y": str(self.signature_r8[1]),
                "S": str(self.signature_s),
            },
        }


def attestation_message(reserve_balance: int) -> int:
    return field_hash(encode_field_element("reserveBalance", reserve_balance))


def _in_field(*values: int) -> bool:
    return all(0 <= v < FIELD_MODULUS for v in values)


class MockCustodian:
    """
    Stand-in for the custodian's signer, for tests and local demos.

    Signs H(reserveBalance) with a key derived from a fixed or random seed.
    Ed25519 coordinates live modulo 2^255 - 19, above the BN254 field, so
    candidate keys H(seed, counter) are tried in turn until the public key
    and the nonce point both fit the field. The result has the shape and
    value ranges of a real attestation. It is not a BabyJubJub signature and
    a circuit will not accept it.
    """

    MAX_ATTEMPTS = 1000

    def __init__(self, seed: Optional[bytes] = None):
        self.seed = seed if seed is not None else nacl.utils.random(32)

    def attest(self, reserve_balance: int) -> ReserveAttestation:
        message = attestation_message(reserve_balance)
        for counter in range(self.MAX_ATTEMPTS):
            signing_key, public_key = generate_custodian_keypair(
                generate_hash(self.seed + counter.to_bytes(4, 'big')))
            if not _in_field(*public_key):
                continue
            signature = sign_field_element(signing_key, message)
            if not _in_field(signature["R8x"], signature["R8y"], signature["S"]):
                continue
            logger.info(f"Mock custodian attested reserve balance {reserve_balance} (key #{counter})")
            return ReserveAttestation(
                custodian_public_key=public_key,
                reserve_balance=reserve_balance,
                signature_r8=(signature["R8x"], signature["R8y"]),
                signature_s=signature["S"],
            )
        raise RuntimeError(f"No field-compatible mock key found in {self.MAX_ATTEMPTS} attempts")
