"""
Configuration management for the liability audit.
"""
import json
import os
from typing import Optional
from dataclasses import dataclass, asdict


@dataclass
class TreeConfig:
    """Sum-tree build configuration."""
    workers: int = 1
    parallel_threshold: int = 1024  # Narrower levels are hashed inline


@dataclass
class ProverConfig:
    """External prover configuration."""
    snarkjs_bin: str = "snarkjs"
    wasm_path: str = "./circuits/solvency.wasm"
    zkey_path: str = "./circuits/solvency_final.zkey"
    timeout: int = 600  # seconds


@dataclass
class PathsConfig:
    """Input and output locations."""
    snapshot: str = "./data/snapshot.json"
    attestation: Optional[str] = "./data/bank_input.json"
    output_dir: str = "./data"


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 9090


@dataclass
class Config:
    """Main configuration."""
    tree: TreeConfig
    prover: ProverConfig
    paths: PathsConfig
    monitoring: MonitoringConfig
    log_level: str = "INFO"

    @classmethod
    def default(cls) -> 'Config':
        """Create default configuration."""
        return cls(
            tree=TreeConfig(),
            prover=ProverConfig(),
            paths=PathsConfig(),
            monitoring=MonitoringConfig()
        )

    @classmethod
    def from_file(cls, path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)

        config = cls(
            tree=TreeConfig(**data.get('tree', {})),
            prover=ProverConfig(**data.get('prover', {})),
            paths=PathsConfig(**data.get('paths', {})),
            monitoring=MonitoringConfig(**data.get('monitoring', {})),
            log_level=data.get('log_level', 'INFO')
        )
        config.validate()
        return config

    def validate(self):
        if self.tree.workers < 1:
            raise ValueError(f"tree.workers must be at least 1, got {self.tree.workers}")
        if self.tree.parallel_threshold < 1:
            raise ValueError("tree.parallel_threshold must be positive")
        if self.prover.timeout <= 0:
            raise ValueError("prover.timeout must be positive")

    def to_file(self, path: str):
        """Save configuration to JSON file."""
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'tree': asdict(self.tree),
            'prover': asdict(self.prover),
            'paths': asdict(self.paths),
            'monitoring': asdict(self.monitoring),
            'log_level': self.log_level
        }
