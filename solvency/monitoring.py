# solvency/monitoring.py
import time
import socket
import threading
import logging
from socketserver import ThreadingMixIn
from wsgiref.simple_server import make_server, WSGIServer

import psutil
from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry
from prometheus_client.exposition import make_wsgi_app

logger = logging.getLogger(__name__)

# Create a threaded WSGI server for the Prometheus metrics
class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """A WSGI server that runs in a separate thread to not block the audit."""
    allow_reuse_address = True
    daemon_threads = True

class AuditMetrics:
    def __init__(self, host="127.0.0.1", port=9090):
        self.host = host
        self.port = port
        self.server = None
        self.thread = None

        # Isolated registry so several cycles/processes never collide
        self.registry = CollectorRegistry()

        self.cycles = Counter('solvency_audit_cycles_total', 'Audit cycles by outcome', ['outcome'], registry=self.registry)
        self.tree_build_seconds = Histogram('solvency_tree_build_seconds', 'Time to build the liability tree', registry=self.registry)
        self.tree_leaves = Gauge('solvency_tree_leaves', 'Leaves in the last built tree', registry=self.registry)
        self.tree_levels = Gauge('solvency_tree_levels', 'Levels in the last built tree', registry=self.registry)
        self.memory_usage = Gauge('process_memory_percent', 'Memory usage of the audit process', registry=self.registry)
        self.snapshot_block = Gauge('solvency_snapshot_block', 'Block height of the last verified snapshot', registry=self.registry)

    def start_server(self, max_retries: int = 5, retry_delay: float = 2):
        """Starts the Prometheus HTTP server on a background thread."""
        app = make_wsgi_app(self.registry)

        for attempt in range(max_retries):
            try:
                self.server = make_server(self.host, self.port, app, ThreadingWSGIServer)
                self.server.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

                self.thread = threading.Thread(target=self.server.serve_forever)
                self.thread.daemon = True
                self.thread.start()
                logger.info(f"Prometheus server started on http://{self.host}:{self.port}")
                return
            except OSError as e:
                if e.errno == 98:  # Address already in use
                    if attempt < max_retries - 1:
                        logger.warning(f"Port {self.port} in use, retrying in {retry_delay}s (attempt {attempt+1}/{max_retries})...")
                        time.sleep(retry_delay)
                    else:
                        logger.error(f"Failed to bind to port {self.port} after {max_retries} attempts")
                        raise
                else:
                    raise

    def stop_server(self):
        """Stops the HTTP server."""
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            self.server = None
            logger.info("Prometheus server stopped.")

    def record_tree(self, leaves: int, levels: int, latency: float):
        self.tree_leaves.set(leaves)
        self.tree_levels.set(levels)
        self.tree_build_seconds.observe(latency)
        self.memory_usage.set(psutil.Process().memory_percent())

    def record_anchor(self, block_height: int):
        self.snapshot_block.set(block_height)

    def record_cycle(self, outcome: str):
        self.cycles.labels(outcome=outcome).inc()

    def sample(self, name: str, labels: dict = None):
        """Current value of a metric sample, or None."""
        return self.registry.get_sample_value(name, labels or {})
