"""
Audit Cycle Tool

Drives one proof-of-solvency cycle from files: load the balance snapshot,
commit it into a liability sum tree, check the root against the on-chain
supply and write the prover input. With a configured circuit it also runs
the prover. Chain submission is left to the relayer.
"""
import argparse
import json
import logging
import os
import sys

from solvency.attestation import MOCK_CUSTODIAN_SEED, MockCustodian, ReserveAttestation
from solvency.config import Config
from solvency.errors import AuditError
from solvency.field import parse_integer, parse_owner
from solvency.monitoring import AuditMetrics
from solvency.pipeline import AuditCycle
from solvency.prover import SnarkjsProver, format_groth16_calldata
from solvency.snapshot import Snapshot
from solvency.sum_tree import Tree

logger = logging.getLogger(__name__)


def _write_json(path: str, data):
    os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)
    logger.info(f"Wrote {path}")


def load_config(path: str = None) -> Config:
    if path and os.path.exists(path):
        return Config.from_file(path)
    return Config.default()


def cmd_sample_config(args):
    Config.default().to_file(args.output)
    print(f"Generated sample configuration at: {args.output}")


def cmd_mock_attestation(args):
    custodian = MockCustodian(MOCK_CUSTODIAN_SEED if args.fixed_key else None)
    attestation = custodian.attest(parse_integer(args.balance))
    _write_json(args.output, attestation.to_dict())
    print(f"Mock attestation for reserve balance {attestation.reserve_balance} saved to {args.output}")


def _start_metrics(config: Config):
    if not config.monitoring.enabled:
        return None
    metrics = AuditMetrics(config.monitoring.host, config.monitoring.port)
    metrics.start_server()
    return metrics


def _new_cycle(config: Config, snapshot_path: str = None, metrics: AuditMetrics = None) -> AuditCycle:
    snapshot = Snapshot.from_file(snapshot_path or config.paths.snapshot)
    return AuditCycle(snapshot, workers=config.tree.workers,
                      parallel_threshold=config.tree.parallel_threshold, metrics=metrics)


def cmd_build_tree(args):
    config = load_config(args.config)
    metrics = _start_metrics(config)
    try:
        cycle = _new_cycle(config, args.snapshot, metrics)
        tree = cycle.build_tree()
        commitment = cycle.verify_anchor()

        out = config.paths.output_dir
        _write_json(os.path.join(out, "merkle_root.json"), commitment.to_dict())
        with open(os.path.join(out, "liability_tree.msgpack"), 'wb') as f:
            f.write(tree.to_bytes())
    finally:
        if metrics:
            metrics.stop_server()

    print(f"Tree built. Root hash: {commitment.root_hash_bytes32}")
    print(f"  Root sum: {commitment.root_sum} at block {commitment.snapshot_block}")


def cmd_inclusion_proof(args):
    config = load_config(args.config)
    path = args.tree or os.path.join(config.paths.output_dir, "liability_tree.msgpack")
    with open(path, 'rb') as f:
        tree = Tree.from_bytes(f.read())

    index = tree.find(parse_owner(args.owner))
    if index is None:
        print(f"Owner {args.owner} is not in the tree")
        return 1
    print(json.dumps(tree.inclusion_proof(index).to_dict(), indent=2))
    return 0


def cmd_assemble(args):
    config = load_config(args.config)
    attestation = ReserveAttestation.from_file(args.attestation or config.paths.attestation)
    metrics = _start_metrics(config)
    try:
        cycle = _new_cycle(config, args.snapshot, metrics)
        cycle.build_tree()
        commitment = cycle.verify_anchor()
        submission = cycle.assemble(attestation)

        out = config.paths.output_dir
        _write_json(os.path.join(out, "merkle_root.json"), commitment.to_dict())
        _write_json(os.path.join(out, "input.json"), submission.to_dict())

        if args.prove:
            prover = SnarkjsProver(config.prover.wasm_path, config.prover.zkey_path,
                                   config.prover.snarkjs_bin, config.prover.timeout)
            artifact = cycle.request_proof(prover)
            a, b, c = format_groth16_calldata(artifact.proof)
            _write_json(os.path.join(out, "proof.json"), artifact.to_dict())
            _write_json(os.path.join(out, "calldata.json"), {
                "a": a, "b": b, "c": c,
                "rootHash": commitment.root_hash_bytes32,
                "totalLiabilities": str(commitment.root_sum),
            })
    finally:
        if metrics:
            metrics.stop_server()
    print(f"Cycle reached {cycle.state.value}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Proof of Solvency Audit Tool")
    parser.add_argument("--config", type=str, default="audit_config.json", help="Path to config file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parser_sample = subparsers.add_parser("sample-config", help="Generate a sample audit_config.json")
    parser_sample.add_argument("--output", type=str, default="audit_config.json", help="Output file path")

    parser_mock = subparsers.add_parser("mock-attestation", help="Sign a reserve balance with a mock custodian key")
    parser_mock.add_argument("--balance", type=str, required=True, help="Reserve balance (integer)")
    parser_mock.add_argument("--output", type=str, default="bank_input.json", help="Output file path")
    parser_mock.add_argument("--fixed-key", action="store_true", help="Use the fixed demonstration key")

    parser_tree = subparsers.add_parser("build-tree", help="Build the liability tree and check it against supply")
    parser_tree.add_argument("--snapshot", type=str, help="Snapshot JSON (overrides config)")

    parser_proof = subparsers.add_parser("inclusion-proof", help="Print an owner's inclusion proof")
    parser_proof.add_argument("--owner", type=str, required=True, help="Owner address")
    parser_proof.add_argument("--tree", type=str, help="Serialized tree (overrides config)")

    parser_assemble = subparsers.add_parser("assemble", help="Assemble the prover input")
    parser_assemble.add_argument("--snapshot", type=str, help="Snapshot JSON (overrides config)")
    parser_assemble.add_argument("--attestation", type=str, help="Reserve attestation JSON (overrides config)")
    parser_assemble.add_argument("--prove", action="store_true", help="Also run snarkjs")

    args = parser.parse_args(argv)

    if args.command != "sample-config":
        level = load_config(args.config).log_level
        logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO))

    commands = {
        "sample-config": cmd_sample_config,
        "mock-attestation": cmd_mock_attestation,
        "build-tree": cmd_build_tree,
        "inclusion-proof": cmd_inclusion_proof,
        "assemble": cmd_assemble,
    }
    try:
        return commands[args.command](args) or 0
    except (AuditError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
