"""
One audit cycle as an explicit state machine.

    SNAPSHOT_READY -> TREE_BUILT -> ANCHOR_VERIFIED -> INPUT_ASSEMBLED
        -> PROOF_REQUESTED -> SUBMITTED

Each transition requires the previous one to have succeeded. Any failure
moves the cycle to ABORTED, from which nothing can proceed. A cycle owns its
snapshot and tree; separate cycles share no state.
"""
import logging
import time
from enum import Enum
from typing import Optional

from solvency.assembler import AuditSubmissionInput, assemble
from solvency.attestation import ReserveAttestation
from solvency.errors import AuditError, CycleStateError, PublicSignalMismatch
from solvency.monitoring import AuditMetrics
from solvency.prover import ProofArtifact, Prover, Submitter, build_submit_call
from solvency.snapshot import RootCommitment, Snapshot
from solvency.sum_tree import Tree, build_tree, verify_against_anchor

logger = logging.getLogger(__name__)


class CycleState(Enum):
    SNAPSHOT_READY = "SNAPSHOT_READY"
    TREE_BUILT = "TREE_BUILT"
    ANCHOR_VERIFIED = "ANCHOR_VERIFIED"
    INPUT_ASSEMBLED = "INPUT_ASSEMBLED"
    PROOF_REQUESTED = "PROOF_REQUESTED"
    SUBMITTED = "SUBMITTED"
    ABORTED = "ABORTED"


class AuditCycle:
    def __init__(self, snapshot: Snapshot, workers: Optional[int] = None,
                 parallel_threshold: int = 1024, metrics: Optional[AuditMetrics] = None):
        self.snapshot = snapshot
        self.workers = workers
        self.parallel_threshold = parallel_threshold
        self.metrics = metrics

        self.state = CycleState.SNAPSHOT_READY
        self.tree: Optional[Tree] = None
        self.commitment: Optional[RootCommitment] = None
        self.submission_input: Optional[AuditSubmissionInput] = None
        self.proof: Optional[ProofArtifact] = None
        self.tx_id: Optional[str] = None
        self.error: Optional[Exception] = None

    def _require(self, expected: CycleState):
        if self.state != expected:
            raise CycleStateError(f"Cycle is {self.state.value}, expected {expected.value}")

    def _abort(self, error: Exception):
        self.state = CycleState.ABORTED
        self.error = error
        logger.error(f"Audit cycle for block {self.snapshot.block_number} aborted: {error}")
        if self.metrics:
            self.metrics.record_cycle(type(error).__name__)

    def build_tree(self) -> Tree:
        self._require(CycleState.SNAPSHOT_READY)
        started = time.perf_counter()
        try:
            self.tree = build_tree(self.snapshot.records, workers=self.workers,
                                   parallel_threshold=self.parallel_threshold)
        except AuditError as e:
            self._abort(e)
            raise
        if self.metrics:
            self.metrics.record_tree(len(self.tree), len(self.tree.levels), time.perf_counter() - started)
        self.state = CycleState.TREE_BUILT
        return self.tree

    def verify_anchor(self) -> RootCommitment:
        self._require(CycleState.TREE_BUILT)
        try:
            self.commitment = verify_against_anchor(self.tree.root, self.snapshot.anchor)
        except AuditError as e:
            self._abort(e)
            raise
        if self.metrics:
            self.metrics.record_anchor(self.commitment.snapshot_block)
        self.state = CycleState.ANCHOR_VERIFIED
        return self.commitment

    def assemble(self, attestation: ReserveAttestation) -> AuditSubmissionInput:
        self._require(CycleState.ANCHOR_VERIFIED)
        try:
            self.submission_input = assemble(attestation, self.tree.root)
        except AuditError as e:
            self._abort(e)
            raise
        self.state = CycleState.INPUT_ASSEMBLED
        logger.info(f"Prover input assembled, totalIssuance={self.submission_input.total_issuance}")
        if attestation.reserve_balance < self.submission_input.total_issuance:
            # The proof will fail; that is the proving subsystem's verdict to give.
            logger.warning("Attested reserves are below total issuance")
        return self.submission_input

    def request_proof(self, prover: Prover) -> ProofArtifact:
        self._require(CycleState.INPUT_ASSEMBLED)
        self.state = CycleState.PROOF_REQUESTED
        try:
            proof = prover.prove(dict(self.submission_input.to_dict()))
            if not proof.attests(self.submission_input.total_issuance):
                raise PublicSignalMismatch(
                    f"Public signals {proof.public_signals} do not contain "
                    f"totalIssuance {self.submission_input.total_issuance}"
                )
        except Exception as e:
            # Any prover failure ends the cycle.
            self._abort(e)
            raise
        self.proof = proof
        logger.info("Proof received")
        return proof

    def submit(self, submitter: Submitter) -> str:
        if self.state != CycleState.PROOF_REQUESTED or self.proof is None:
            raise CycleStateError(f"Cycle is {self.state.value}, expected a received proof")
        call = build_submit_call(self.proof, self.commitment)
        logger.info(f"Submitting audit with root {call.root_hash[:12]}... and liabilities {call.total_liabilities}")
        self.tx_id = submitter.submit_audit(call)
        self.state = CycleState.SUBMITTED
        if self.metrics:
            self.metrics.record_cycle("submitted")
        logger.info(f"Audit submitted: {self.tx_id}")
        return self.tx_id

    def run(self, attestation: ReserveAttestation, prover: Optional[Prover] = None,
            submitter: Optional[Submitter] = None) -> CycleState:
        """Advance as far as the supplied collaborators allow."""
        logger.info(f"Starting audit cycle for block {self.snapshot.block_number}")
        self.build_tree()
        self.verify_anchor()
        self.assemble(attestation)
        if prover is None:
            if self.metrics:
                self.metrics.record_cycle("assembled")
            return self.state
        self.request_proof(prover)
        if submitter is not None:
            self.submit(submitter)
        return self.state
