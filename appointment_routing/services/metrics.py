"""CloudWatch metrics for the routing service.

Two families of datapoints share one buffered publisher:

* ``ExternalAPI/*``: request count, error count and latency for every
  call to GoHighLevel, Google Maps and DynamoDB, dimensioned by
  ``Service`` plus ``Status``, ``ErrorType`` or ``Operation``.
* ``Routing/Outcome``: one count per finished workflow run, dimensioned
  by its terminal ``State`` and HTTP ``StatusCode``.

Datapoints are buffered in memory and pushed by a daemon thread every
``FLUSH_INTERVAL_SECONDS``.  Nothing leaves the process unless
``METRICS_ENABLED=true``; otherwise the buffer is only logged at DEBUG.

>>> from appointment_routing.services.metrics import metrics
>>> metrics.record_success("ghl", "GET /calendars/free-slots", latency_ms=123.4)
>>> metrics.record_failure("google_maps", "distancematrix", error_type="timeout")
>>> metrics.record_routing_outcome("succeeded", 200)
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
from collections.abc import Iterator
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "AppointmentRouting"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # PutMetricData limit

Datum = dict[str, Any]


def _datum(name: str, value: float, unit: str, **dimensions: str) -> Datum:
    return {
        "MetricName": name,
        "Dimensions": [{"Name": k, "Value": v} for k, v in dimensions.items()],
        "Timestamp": datetime.now(UTC),
        "Value": value,
        "Unit": unit,
    }


def _chunks(batch: list[Datum], size: int = MAX_BATCH_SIZE) -> Iterator[list[Datum]]:
    for start in range(0, len(batch), size):
        yield batch[start:start + size]


class MetricsClient:
    """Buffered CloudWatch publisher; one instance per process."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[Datum] = []
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    # ── External calls ───────────────────────────────────────────────

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        """Count a completed call to ``service`` and record its latency."""
        self._append(
            _datum("ExternalAPI/RequestCount", 1, "Count", Service=service, Status="success"),
            _datum("ExternalAPI/Latency", latency_ms, "Milliseconds",
                   Service=service, Operation=operation),
        )
        logger.debug("Metric: %s %s ok in %.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Count a failed call; latency is only recorded when a response came back."""
        data = [
            _datum("ExternalAPI/RequestCount", 1, "Count", Service=service, Status="failure"),
            _datum("ExternalAPI/ErrorCount", 1, "Count", Service=service, ErrorType=error_type),
        ]
        if latency_ms > 0:
            data.append(
                _datum("ExternalAPI/Latency", latency_ms, "Milliseconds",
                       Service=service, Operation=operation),
            )
        self._append(*data)
        logger.debug("Metric: %s %s failed (%s)", service, operation, error_type)

    # ── Workflow ─────────────────────────────────────────────────────

    def record_routing_outcome(self, final_state: str, status_code: int) -> None:
        """Count one routing run by terminal state and response status."""
        self._append(
            _datum("Routing/Outcome", 1, "Count",
                   State=final_state, StatusCode=str(status_code)),
        )
        logger.debug("Metric: routing %s -> %d", final_state, status_code)

    # ── Publishing ───────────────────────────────────────────────────

    def flush(self) -> int:
        """Drain the buffer to CloudWatch and return the number of datapoints sent."""
        with self._lock:
            batch, self._buffer = self._buffer, []
        if not batch:
            return 0
        if not self._enabled:
            logger.debug("Dropping %d metrics (METRICS_ENABLED is off)", len(batch))
            return 0

        sent = 0
        try:
            for chunk in _chunks(batch):
                self._cloudwatch().put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
        except Exception:
            logger.exception("CloudWatch publish failed after %d of %d metrics", sent, len(batch))
        else:
            logger.info("Published %d metrics to CloudWatch", sent)
        return sent

    def shutdown(self) -> None:
        """Stop the flush thread and publish whatever is still buffered."""
        self._stopped.set()
        self.flush()

    def _cloudwatch(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    def _append(self, *data: Datum) -> None:
        with self._lock:
            self._buffer.extend(data)

    def _start_flush_thread(self) -> None:
        def _loop() -> None:
            while not self._stopped.wait(FLUSH_INTERVAL_SECONDS):
                self.flush()

        threading.Thread(target=_loop, daemon=True, name="metrics-flush").start()
        atexit.register(self.shutdown)
        logger.info("Metrics publishing every %ds to %s", FLUSH_INTERVAL_SECONDS, NAMESPACE)


metrics = MetricsClient()
