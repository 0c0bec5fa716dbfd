import threading
from typing import Dict, List


class MetricsTracker:
    """In-process request counters and latency history."""

    def __init__(self):

        self._lock = threading.Lock()
        self.reset()

    def reset(self):

        with self._lock:

            self._metrics = {

                "total_requests": 0,
                "successful_requests": 0,
                "failed_requests": 0,

                "total_latency": 0.0,
                "avg_latency": 0.0,

                "queries_answered": 0,
                "documents_indexed": 0,

            }

            self._latencies: List[float] = []

    def record_success(self, latency: float):

        with self._lock:

            self._metrics["total_requests"] += 1
            self._metrics["successful_requests"] += 1
            self._metrics["total_latency"] += latency

            self._metrics["avg_latency"] = (
                self._metrics["total_latency"]
                / self._metrics["successful_requests"]
            )

            self._latencies.append(latency)

    def record_failure(self):

        with self._lock:

            self._metrics["total_requests"] += 1
            self._metrics["failed_requests"] += 1

    def record_query(self):

        with self._lock:
            self._metrics["queries_answered"] += 1

    def record_indexed(self, documents: int):

        with self._lock:
            self._metrics["documents_indexed"] += documents

    def get_metrics(self) -> Dict:

        with self._lock:

            snapshot = dict(self._metrics)

        snapshot["p95_latency"] = self.get_latency_percentile(95)

        return snapshot

    def get_latency_percentile(self, percentile: float) -> float:

        with self._lock:
            latencies = sorted(self._latencies)

        if not latencies:
            return 0.0

        index = int(len(latencies) * percentile / 100)
        index = min(index, len(latencies) - 1)

        return latencies[index]


metrics_tracker = MetricsTracker()
