"""
Shared fixtures for the audit test suite.
"""
import json

import pytest

from solvency.snapshot import LiabilityRecord


@pytest.fixture
def records():
    """Five holders; an odd count exercises zero-node padding."""
    return [
        LiabilityRecord(owner=0x1111, balance=250_000),
        LiabilityRecord(owner=0x2222, balance=400_000),
        LiabilityRecord(owner=0x3333, balance=150_000),
        LiabilityRecord(owner=0x4444, balance=125_000),
        LiabilityRecord(owner=0x5555, balance=75_000),
    ]


@pytest.fixture
def snapshot_data():
    return {
        "blockNumber": 1234,
        "totalSupply": "1000000",
        "timestamp": 1700000000,
        "users": [
            {"address": "0x70997970C51812dc3A010C7d01b50e0d17dc79C8", "balance": "600000"},
            {"address": "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC", "balance": "300000"},
            {"address": "0x90F79bf6EB2c4f870365E785982E1f101E93b906", "balance": "100000"},
        ],
    }


@pytest.fixture
def snapshot_file(tmp_path, snapshot_data):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(snapshot_data))
    return str(path)
