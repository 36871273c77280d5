"""
Tests for audit metrics.
"""
import socket
import urllib.request

import pytest

from solvency.monitoring import AuditMetrics


def test_registries_are_isolated():
    first, second = AuditMetrics(), AuditMetrics()
    first.record_cycle("submitted")
    assert first.sample("solvency_audit_cycles_total", {"outcome": "submitted"}) == 1.0
    assert second.sample("solvency_audit_cycles_total", {"outcome": "submitted"}) is None


def test_record_tree():
    metrics = AuditMetrics()
    metrics.record_tree(leaves=5, levels=4, latency=0.25)
    assert metrics.sample("solvency_tree_leaves") == 5.0
    assert metrics.sample("solvency_tree_levels") == 4.0
    assert metrics.sample("solvency_tree_build_seconds_count") == 1.0
    assert metrics.sample("solvency_tree_build_seconds_sum") == 0.25
    assert metrics.sample("process_memory_percent") >= 0.0


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_exposition_server():
    metrics = AuditMetrics(port=_free_port())
    metrics.record_cycle("assembled")
    metrics.start_server()
    try:
        body = urllib.request.urlopen(f"http://127.0.0.1:{metrics.port}/metrics", timeout=5).read().decode()
    finally:
        metrics.stop_server()
    assert 'solvency_audit_cycles_total{outcome="assembled"} 1.0' in body
