"""
Balance snapshots and the audit artifacts keyed on them.

A snapshot is produced by an external indexer that scans token transfer logs
and reads every holder's balance at one block height:

    {
      "blockNumber": 1234,
      "totalSupply": "1000000",
      "timestamp": 1700000000,
      "users": [{"address": "0xabc...", "balance": "250000"}, ...]
    }
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Optional

from solvency.errors import SnapshotFormatError
from solvency.field import encode_field_element, parse_integer, parse_owner
from solvency.utils.encoding import to_bytes32_hex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiabilityRecord:
    """One holder's balance. Both fields must be field elements to be hashed."""
    owner: int
    balance: int


@dataclass(frozen=True)
class AuditAnchor:
    """Trusted on-chain total at a block height."""
    total_supply: int
    block_height: int


@dataclass(frozen=True)
class RootCommitment:
    """The durable audit artifact: root hash and sum at a snapshot block."""
    root_hash: int
    root_sum: int
    snapshot_block: int

    @property
    def root_hash_bytes32(self) -> str:
        return to_bytes32_hex(self.root_hash)

    def to_dict(self) -> dict:
        return {
            "rootHash": str(self.root_hash),
            "rootSum": str(self.root_sum),
            "snapshotBlock": self.snapshot_block,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'RootCommitment':
        return cls(
            root_hash=parse_integer(data["rootHash"]),
            root_sum=parse_integer(data["rootSum"]),
            snapshot_block=int(data["snapshotBlock"]),
        )


@dataclass
class Snapshot:
    block_number: int
    total_supply: int
    records: list = field(default_factory=list)
    timestamp: Optional[int] = None

    @property
    def anchor(self) -> AuditAnchor:
        return AuditAnchor(total_supply=self.total_supply, block_height=self.block_number)

    @classmethod
    def from_dict(cls, data: dict) -> 'Snapshot':
        """
        Parse a snapshot document.

        Balances and supply are read as arbitrary-precision integers. Owners
        are validated as field elements; balances are validated when the leaf
        is built.

        Raises:
            SnapshotFormatError: On missing keys, non-integer amounts, negative
                balances or a repeated owner.
        """
        try:
            block_number = parse_integer(data["blockNumber"])
            total_supply = parse_integer(data["totalSupply"])
            users = data["users"]
        except KeyError as e:
            raise SnapshotFormatError(f"Snapshot is missing {e.args[0]!r}") from e
        except ValueError as e:
            raise SnapshotFormatError(f"Invalid snapshot header: {e}") from e

        if total_supply < 0:
            raise SnapshotFormatError(f"Negative total supply: {total_supply}")

        records = []
        seen = set()
        for i, user in enumerate(users):
            try:
                owner = encode_field_element("owner", parse_owner(user["address"]))
                balance = parse_integer(user["balance"])
            except KeyError as e:
                raise SnapshotFormatError(f"User {i} is missing {e.args[0]!r}") from e
            except ValueError as e:
                raise SnapshotFormatError(f"User {i}: {e}") from e

            if balance < 0:
                raise SnapshotFormatError(f"User {i} has a negative balance: {balance}")
            if owner in seen:
                raise SnapshotFormatError(f"Duplicate owner in snapshot: {user['address']}")
            seen.add(owner)
            records.append(LiabilityRecord(owner=owner, balance=balance))

        return cls(
            block_number=block_number,
            total_supply=total_supply,
            records=records,
            timestamp=data.get("timestamp"),
        )

    @classmethod
    def from_file(cls, path: str) -> 'Snapshot':
        """Load a snapshot from a JSON file."""
        with open(path, 'r') as f:
            # Large integers must never become floats.
            data = json.load(f, parse_float=_reject_float)
        snapshot = cls.from_dict(data)
        logger.info(f"Loaded snapshot at block {snapshot.block_number} with {len(snapshot.records)} holders")
        return snapshot

    def to_dict(self) -> dict:
        data = {
            "blockNumber": self.block_number,
            "totalSupply": str(self.total_supply),
            "users": [
                {"address": hex(r.owner), "balance": str(r.balance)}
                for r in self.records
            ],
        }
        if self.timestamp is not None:
            data["timestamp"] = self.timestamp
        return data


def _reject_float(text: str):
    raise SnapshotFormatError(f"Floating point amount in snapshot: {text}")
