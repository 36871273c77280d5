"""
Tests for the prover adapter and Solidity calldata formatting.
"""
import json
import subprocess

import pytest

from solvency.errors import ProverError
from solvency.prover import (
    ProofArtifact,
    SnarkjsProver,
    build_submit_call,
    format_groth16_calldata,
)
from solvency.snapshot import RootCommitment

SAMPLE_PROOF = {
    "pi_a": ["1", "2", "1"],
    "pi_b": [["3", "4"], ["5", "6"], ["1", "0"]],
    "pi_c": ["7", "8", "1"],
    "protocol": "groth16",
    "curve": "bn128",
}


def test_calldata_swaps_pi_b():
    a, b, c = format_groth16_calldata(SAMPLE_PROOF)
    assert a == ["1", "2"]
    assert b == [["4", "3"], ["6", "5"]]
    assert c == ["7", "8"]


def test_submit_call():
    artifact = ProofArtifact(proof=SAMPLE_PROOF, public_signals=["1000000"])
    commitment = RootCommitment(root_hash=0xABC, root_sum=1_000_000, snapshot_block=9)
    call = build_submit_call(artifact, commitment)
    assert call.root_hash == "0x" + "0" * 61 + "abc"
    assert call.total_liabilities == 1_000_000
    assert call.to_args() == [["1", "2"], [["4", "3"], ["6", "5"]], ["7", "8"], call.root_hash, "1000000"]


def test_artifact_attests():
    artifact = ProofArtifact(proof=SAMPLE_PROOF, public_signals=["1", "1000000"])
    assert artifact.attests(1_000_000)
    assert not artifact.attests(999_999)


class FakeCompleted:
    returncode = 0


def test_snarkjs_prover_runs_fullprove(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        input_path, proof_path, public_path = cmd[3], cmd[6], cmd[7]
        with open(input_path) as f:
            inputs = json.load(f)
        with open(proof_path, 'w') as f:
            json.dump(SAMPLE_PROOF, f)
        with open(public_path, 'w') as f:
            json.dump([inputs["totalIssuance"]], f)
        return FakeCompleted()

    monkeypatch.setattr(subprocess, "run", fake_run)
    prover = SnarkjsProver("circuit.wasm", "circuit.zkey", snarkjs_bin="snarkjs")
    artifact = prover.prove({"totalIssuance": "1000000"})

    assert calls[0][:3] == ["snarkjs", "groth16", "fullprove"]
    assert calls[0][4:6] == ["circuit.wasm", "circuit.zkey"]
    assert artifact.proof == SAMPLE_PROOF
    assert artifact.public_signals == ["1000000"]


def test_snarkjs_failure_raises(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd, stderr="constraint failed")

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(ProverError, match="status 1"):
        SnarkjsProver("c.wasm", "c.zkey").prove({})


def test_missing_snarkjs_raises():
    prover = SnarkjsProver("c.wasm", "c.zkey", snarkjs_bin="definitely-not-snarkjs-binary")
    with pytest.raises(ProverError, match="not found"):
        prover.prove({})


def test_missing_output_files_raise(monkeypatch):
    monkeypatch.setattr(subprocess, "run", lambda cmd, **kwargs: FakeCompleted())
    with pytest.raises(ProverError, match="no readable proof"):
        SnarkjsProver("c.wasm", "c.zkey").prove({})


def test_malformed_output_raises(monkeypatch):
    def fake_run(cmd, **kwargs):
        for path in cmd[6:8]:
            with open(path, 'w') as f:
                f.write("{not json")
        return FakeCompleted()

    monkeypatch.setattr(subprocess, "run", fake_run)
    with pytest.raises(ProverError):
        SnarkjsProver("c.wasm", "c.zkey").prove({})
