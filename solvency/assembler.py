"""
Audit input assembly.

Builds the witness input handed to the proving subsystem. The circuit binds
inputs by name, so the field names and their order below are a protocol
contract: renaming or reordering any of them breaks existing circuits.

    totalIssuance                 PUBLIC  (also published on-chain)
    bankBalance                   PRIVATE
    bankPubKeyAx, bankPubKeyAy    PRIVATE
    bankSigR8x, bankSigR8y        PRIVATE
    bankSigS                      PRIVATE

The proof shows bankBalance >= totalIssuance, and that bankBalance carries a
valid custodian signature, without revealing bankBalance.
"""
import json
from collections import OrderedDict
from dataclasses import dataclass

from solvency.attestation import ReserveAttestation
from solvency.field import encode_field_element
from solvency.sum_tree import TreeNode

SUBMISSION_FIELDS = (
    "bankPubKeyAx",
    "bankPubKeyAy",
    "bankBalance",
    "bankSigR8x",
    "bankSigR8y",
    "bankSigS",
    "totalIssuance",
)
PUBLIC_FIELDS = ("totalIssuance",)
PRIVATE_FIELDS = tuple(f for f in SUBMISSION_FIELDS if f not in PUBLIC_FIELDS)


@dataclass(frozen=True)
class AuditSubmissionInput:
    bank_pub_key_ax: int
    bank_pub_key_ay: int
    bank_balance: int
    bank_sig_r8x: int
    bank_sig_r8y: int
    bank_sig_s: int
    total_issuance: int

    def to_dict(self) -> "OrderedDict[str, str]":
        """Flat mapping in SUBMISSION_FIELDS order, values as decimal strings."""
        values = (
            self.bank_pub_key_ax,
            self.bank_pub_key_ay,
            self.bank_balance,
            self.bank_sig_r8x,
            self.bank_sig_r8y,
            self.bank_sig_s,
            self.total_issuance,
        )
        return OrderedDict((name, str(v)) for name, v in zip(SUBMISSION_FIELDS, values))

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def public_inputs(self) -> dict:
        data = self.to_dict()
        return {name: data[name] for name in PUBLIC_FIELDS}

    def private_inputs(self) -> dict:
        data = self.to_dict()
        return {name: data[name] for name in PRIVATE_FIELDS}


def assemble(attestation: ReserveAttestation, root: TreeNode) -> AuditSubmissionInput:
    """
    Merge a reserve attestation with the tree root into the prover input.

    The caller must already have passed `root` through verify_against_anchor.
    This function trusts that it did and does not look at the anchor: a root
    that skipped verification yields a proof that misleadingly claims
    solvency against an unchecked liability total.

    Raises:
        EncodingOverflow: If any value is not a field element.
    """
    ax, ay = attestation.custodian_public_key
    r8x, r8y = attestation.signature_r8
    values = zip(SUBMISSION_FIELDS, (ax, ay, attestation.reserve_balance, r8x, r8y,
                                     attestation.signature_s, root.sum))
    return AuditSubmissionInput(*(encode_field_element(name, v) for name, v in values))
