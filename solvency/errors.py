"""
Error taxonomy for the liability audit.

Every error is local and synchronous. None of them is retried: the inputs are
deterministic, so a retry on the same data cannot change the outcome.
"""


class AuditError(Exception):
    """Base class for all audit failures."""
    pass


class EncodingOverflow(AuditError):
    """Raised when a value does not fit the hash field."""

    def __init__(self, name: str, value: int, modulus: int):
        self.name = name
        self.value = value
        self.modulus = modulus
        super().__init__(f"{name}={value} is outside the field [0, {modulus})")


class EmptyLiabilitySet(AuditError):
    """Raised when a tree is requested over zero liabilities."""

    def __init__(self):
        super().__init__("Cannot build a liability tree from an empty record set")


class SupplyMismatch(AuditError):
    """Raised when the tree sum does not equal the on-chain total supply."""

    def __init__(self, tree_sum: int, chain_supply: int):
        self.tree_sum = tree_sum
        self.chain_supply = chain_supply
        super().__init__(f"Mismatch! Tree sum: {tree_sum}, chain supply: {chain_supply}")


class SnapshotFormatError(AuditError):
    """Raised when a balance snapshot is malformed."""
    pass


class TreeIntegrityError(AuditError):
    """Raised when stored tree levels do not hash back to their parents."""
    pass


class CycleStateError(AuditError):
    """Raised when an audit cycle stage is invoked out of order."""
    pass


class PublicSignalMismatch(AuditError):
    """Raised when a proof does not attest the committed total issuance."""
    pass


class ProverError(AuditError):
    """Raised when the external proving subsystem fails."""
    pass
