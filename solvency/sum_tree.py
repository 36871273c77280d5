"""
A Merkle sum-tree over liability records.

Every node carries a commitment and the total balance of its subtree:

    leaf   = (H(owner, balance), balance)
    parent = (H(left.commitment, left.sum, right.commitment, right.sum),
              left.sum + right.sum)

Levels are folded left-to-right. An odd level pairs its last node with
ZERO_NODE for that single parent. All levels are retained so that inclusion
proofs can be read off the finished tree.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence

import msgpack

from solvency.crypto import field_hash
from solvency.errors import EmptyLiabilitySet, EncodingOverflow, SupplyMismatch, TreeIntegrityError
from solvency.field import ZERO_ELEMENT, encode_field_element
from solvency.snapshot import AuditAnchor, LiabilityRecord, RootCommitment

logger = logging.getLogger(__name__)

TREE_FORMAT_VERSION = 1


@dataclass(frozen=True)
class TreeNode:
    commitment: int
    sum: int

    def to_dict(self) -> dict:
        return {"hash": str(self.commitment), "sum": str(self.sum)}

    @classmethod
    def from_dict(cls, data: dict) -> 'TreeNode':
        return cls(commitment=int(data["hash"]), sum=int(data["sum"]))


ZERO_NODE = TreeNode(commitment=ZERO_ELEMENT, sum=0)


def build_leaf(record: LiabilityRecord) -> TreeNode:
    """Commit a single record. Raises EncodingOverflow on out-of-field values."""
    owner = encode_field_element("owner", record.owner)
    balance = encode_field_element("balance", record.balance)
    return TreeNode(commitment=field_hash(owner, balance), sum=balance)


def hash_pair(left: TreeNode, right: TreeNode) -> TreeNode:
    """Combine two children into their parent node."""
    # Sums are hashed as field elements too; an overflowing subtotal is fatal.
    left_sum = encode_field_element("sum", left.sum)
    right_sum = encode_field_element("sum", right.sum)
    parent_sum = encode_field_element("sum", left_sum + right_sum)
    commitment = field_hash(left.commitment, left_sum, right.commitment, right_sum)
    return TreeNode(commitment=commitment, sum=parent_sum)


def _pairs(level: Sequence[TreeNode]) -> list[tuple[TreeNode, TreeNode]]:
    pairs = []
    for i in range(0, len(level), 2):
        left = level[i]
        right = level[i + 1] if i + 1 < len(level) else ZERO_NODE
        pairs.append((left, right))
    return pairs


@dataclass(frozen=True)
class InclusionProof:
    """Sibling path proving a leaf's membership and its share of the root sum."""
    leaf_index: int
    owner: int
    balance: int
    siblings: tuple[TreeNode, ...]

    def to_dict(self) -> dict:
        return {
            "leafIndex": self.leaf_index,
            "owner": str(self.owner),
            "balance": str(self.balance),
            "siblings": [s.to_dict() for s in self.siblings],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'InclusionProof':
        return cls(
            leaf_index=int(data["leafIndex"]),
            owner=int(data["owner"]),
            balance=int(data["balance"]),
            siblings=tuple(TreeNode.from_dict(s) for s in data["siblings"]),
        )


class Tree:
    """An immutable liability sum-tree. Level 0 holds the leaves."""

    def __init__(self, levels: Sequence[Sequence[TreeNode]], owners: Sequence[int]):
        self.levels = tuple(tuple(level) for level in levels)
        self.owners = tuple(owners)
        self._index = {owner: i for i, owner in enumerate(self.owners)}

    @property
    def root(self) -> TreeNode:
        return self.levels[-1][0]

    @property
    def leaves(self) -> tuple[TreeNode, ...]:
        return self.levels[0]

    @property
    def depth(self) -> int:
        return len(self.levels) - 1

    def __len__(self) -> int:
        return len(self.levels[0])

    def find(self, owner: int) -> Optional[int]:
        """Leaf index of an owner, or None."""
        return self._index.get(owner)

    def inclusion_proof(self, index: int) -> InclusionProof:
        """Collect the sibling (commitment, sum) pairs from leaf `index` to the root."""
        if index < 0 or index >= len(self):
            raise IndexError(f"Leaf index {index} out of range for {len(self)} leaves")

        siblings = []
        position = index
        for level in self.levels[:-1]:
            sibling = position ^ 1
            siblings.append(level[sibling] if sibling < len(level) else ZERO_NODE)
            position //= 2

        return InclusionProof(
            leaf_index=index,
            owner=self.owners[index],
            balance=self.leaves[index].sum,
            siblings=tuple(siblings),
        )

    def to_bytes(self) -> bytes:
        """Serialize all levels. Integers are stored as decimal strings."""
        data = {
            "version": TREE_FORMAT_VERSION,
            "owners": [str(o) for o in self.owners],
            "levels": [[[str(n.commitment), str(n.sum)] for n in level] for level in self.levels],
        }
        return msgpack.packb(data, use_bin_type=True)

    @classmethod
    def from_bytes(cls, encoded: bytes) -> 'Tree':
        """Load a serialized tree, re-checking every parent against its children."""
        try:
            data = msgpack.unpackb(encoded, raw=False)
            version = data.get("version")
            if version != TREE_FORMAT_VERSION:
                raise TreeIntegrityError(f"Unsupported tree format version: {version}")
            levels = [[TreeNode(int(c), int(s)) for c, s in level] for level in data["levels"]]
            owners = [int(o) for o in data["owners"]]
        except (msgpack.exceptions.UnpackException, ValueError, KeyError, TypeError, AttributeError) as e:
            raise TreeIntegrityError(f"Malformed tree dump: {e!r}") from e

        if not levels or not levels[0] or len(owners) != len(levels[0]):
            raise TreeIntegrityError("Leaf level does not match owner list")
        for depth in range(len(levels) - 1):
            try:
                expected = [hash_pair(l, r) for l, r in _pairs(levels[depth])]
            except EncodingOverflow as e:
                raise TreeIntegrityError(f"Level {depth} holds a value outside the field: {e}") from e
            if expected != levels[depth + 1]:
                raise TreeIntegrityError(f"Level {depth + 1} does not hash from level {depth}")
        if len(levels[-1]) != 1:
            raise TreeIntegrityError("Top level must hold exactly one root")

        return cls(levels, owners)


def build_tree(records: Sequence[LiabilityRecord], workers: Optional[int] = None,
               parallel_threshold: int = 1024) -> Tree:
    """
    Build a liability sum-tree from an ordered record sequence.

    Args:
        records: Non-empty ordered records. Order fixes each leaf's position.
        workers: Thread count. None or 1 builds sequentially.
        parallel_threshold: Levels narrower than this are hashed on the
            calling thread even when workers > 1.

    Returns:
        The Tree with every level retained.

    Raises:
        EmptyLiabilitySet: If records is empty.
        EncodingOverflow: If an owner, balance or subtotal leaves the field.
    """
    if not records:
        raise EmptyLiabilitySet()

    logger.info(f"Building liability sum tree over {len(records)} records")

    executor = ThreadPoolExecutor(max_workers=workers) if workers and workers > 1 else None
    try:
        def run(fn, items):
            if executor is not None and len(items) >= parallel_threshold:
                # map() yields results in submission order, so pair i stays at i.
                return list(executor.map(fn, items))
            return [fn(item) for item in items]

        current = run(build_leaf, list(records))
        levels = [current]
        while len(current) > 1:
            if len(current) % 2:
                logger.debug(f"Padding level {len(levels) - 1} ({len(current)} nodes) with a zero node")
            current = run(lambda pair: hash_pair(*pair), _pairs(current))
            levels.append(current)
    finally:
        if executor is not None:
            executor.shutdown(wait=True)

    tree = Tree(levels, [r.owner for r in records])
    logger.info(
        f"Tree built: {len(records)} leaves, {len(levels)} levels, "
        f"root hash {str(tree.root.commitment)[:10]}..., root sum {tree.root.sum}"
    )
    return tree


def verify_against_anchor(root: TreeNode, anchor: AuditAnchor) -> RootCommitment:
    """
    Bind the root to the on-chain total supply.

    Returns:
        The durable root-commitment record for the anchor's block.

    Raises:
        SupplyMismatch: If the root sum differs from anchor.total_supply.
    """
    if root.sum != anchor.total_supply:
        logger.error(
            f"Supply mismatch at block {anchor.block_height}: "
            f"tree sum {root.sum}, chain supply {anchor.total_supply}"
        )
        raise SupplyMismatch(tree_sum=root.sum, chain_supply=anchor.total_supply)

    logger.info(f"Root sum matches chain supply {anchor.total_supply} at block {anchor.block_height}")
    return RootCommitment(
        root_hash=root.commitment,
        root_sum=root.sum,
        snapshot_block=anchor.block_height,
    )


def verify_inclusion_proof(proof: InclusionProof, root: TreeNode) -> bool:
    """Recompute the path from the proven leaf and compare it with the root."""
    try:
        node = build_leaf(LiabilityRecord(owner=proof.owner, balance=proof.balance))
        position = proof.leaf_index
        for sibling in proof.siblings:
            if position % 2 == 0:
                node = hash_pair(node, sibling)
            else:
                node = hash_pair(sibling, node)
            position //= 2
    except (EncodingOverflow, TypeError):
        return False
    return position == 0 and node == root
