"""
Interfaces to the external proving and submission steps.

Proof generation is delegated to snarkjs (Groth16). Any backend exposing the
Prover interface can be substituted.
"""
import json
import logging
import os
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from solvency.errors import ProverError
from solvency.snapshot import RootCommitment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProofArtifact:
    proof: dict
    public_signals: list = field(default_factory=list)

    def attests(self, total_issuance: int) -> bool:
        """True if the public signals include the committed total."""
        return str(total_issuance) in [str(s) for s in self.public_signals]

    def to_dict(self) -> dict:
        return {"proof": self.proof, "publicSignals": list(self.public_signals)}


@dataclass(frozen=True)
class SubmitAuditCall:
    """
    Arguments for
    submitAudit(uint256[2] a, uint256[2][2] b, uint256[2] c, bytes32 rootHash, uint256 totalLiabilities).
    """
    a: list
    b: list
    c: list
    root_hash: str
    total_liabilities: int

    def to_args(self) -> list:
        return [self.a, self.b, self.c, self.root_hash, str(self.total_liabilities)]


class Prover(ABC):
    @abstractmethod
    def prove(self, inputs: dict) -> ProofArtifact:
        """Produce a proof for the assembled circuit inputs."""


class Submitter(ABC):
    @abstractmethod
    def submit_audit(self, call: SubmitAuditCall) -> str:
        """Send the audit to the ledger and return the transaction id."""


class SnarkjsProver(Prover):
    """Runs `snarkjs groth16 fullprove` in a scratch directory."""

    def __init__(self, wasm_path: str, zkey_path: str, snarkjs_bin: str = "snarkjs",
                 timeout: int = 600):
        self.wasm_path = wasm_path
        self.zkey_path = zkey_path
        self.snarkjs_bin = snarkjs_bin
        self.timeout = timeout

    def prove(self, inputs: dict) -> ProofArtifact:
        with tempfile.TemporaryDirectory(prefix="solvency-proof-") as workdir:
            input_path = os.path.join(workdir, "input.json")
            proof_path = os.path.join(workdir, "proof.json")
            public_path = os.path.join(workdir, "public.json")
            with open(input_path, 'w') as f:
                json.dump(inputs, f, indent=2)

            cmd = [
                self.snarkjs_bin, "groth16", "fullprove",
                input_path, self.wasm_path, self.zkey_path,
                proof_path, public_path,
            ]
            logger.info("Generating Groth16 proof with snarkjs")
            try:
                subprocess.run(cmd, check=True, capture_output=True, text=True, timeout=self.timeout)
            except FileNotFoundError as e:
                raise ProverError(f"snarkjs not found: {self.snarkjs_bin}") from e
            except subprocess.TimeoutExpired as e:
                raise ProverError(f"snarkjs timed out after {self.timeout}s") from e
            except subprocess.CalledProcessError as e:
                logger.error(f"snarkjs failed: {e.stderr}")
                raise ProverError(f"snarkjs exited with status {e.returncode}") from e

            try:
                with open(proof_path, 'r') as f:
                    proof = json.load(f)
                with open(public_path, 'r') as f:
                    public_signals = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise ProverError(f"snarkjs produced no readable proof: {e}") from e

        return ProofArtifact(proof=proof, public_signals=public_signals)


def format_groth16_calldata(proof: dict) -> tuple[list, list, list]:
    """
    Reshape a snarkjs Groth16 proof for a Solidity verifier.

    The G2 point pi_b has its coordinate pairs swapped; the projective third
    coordinate of each point is dropped.
    """
    a = [proof["pi_a"][0], proof["pi_a"][1]]
    b = [
        [proof["pi_b"][0][1], proof["pi_b"][0][0]],
        [proof["pi_b"][1][1], proof["pi_b"][1][0]],
    ]
    c = [proof["pi_c"][0], proof["pi_c"][1]]
    return a, b, c


def build_submit_call(artifact: ProofArtifact, commitment: RootCommitment) -> SubmitAuditCall:
    a, b, c = format_groth16_calldata(artifact.proof)
    return SubmitAuditCall(
        a=a,
        b=b,
        c=c,
        root_hash=commitment.root_hash_bytes32,
        total_liabilities=commitment.root_sum,
    )
