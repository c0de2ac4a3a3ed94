"""Cost and latency metrics for upstream calls.

This module provides:
- EngineMetrics: Aggregates call metrics per engine operation
- Cost tracking with model-specific pricing
- Latency percentile calculations
- Export to JSON
"""

import json
import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator

logger = logging.getLogger(__name__)


# Model pricing per 1K tokens (approximate, update as needed)
# Format: model_name -> (input_price, output_price) per 1K tokens
MODEL_PRICING: dict[str, tuple[float, float]] = {
    "gpt-4.1": (0.002, 0.008),
    "gpt-4.1-mini": (0.0004, 0.0016),
    "gpt-4o": (0.0025, 0.01),
    "gpt-4o-mini": (0.00015, 0.0006),
    "gpt-4": (0.03, 0.06),
    "text-embedding-ada-002": (0.0001, 0.0),
    "text-embedding-3-small": (0.00002, 0.0),
    "text-embedding-3-large": (0.00013, 0.0),
}

# Default pricing if model not found
DEFAULT_PRICING = (0.001, 0.002)

# Calls kept in memory; older calls drop out of summaries first
MAX_RECORDED_CALLS = 10_000


@dataclass
class CallMetric:
    """Metrics for a single upstream call."""

    timestamp: datetime
    operation: str
    model: str | None
    input_tokens: int
    output_tokens: int
    cost_usd: float
    latency_ms: float
    status: str
    error: str | None = None


@dataclass
class OperationSummary:
    """Summary of metrics for one operation (embed, retrieve, lookup, ...)."""

    operation: str
    total_calls: int
    successful_calls: int
    failed_calls: int
    total_input_tokens: int
    total_output_tokens: int
    total_cost_usd: float
    total_latency_ms: float
    avg_latency_ms: float
    p50_latency_ms: float
    p95_latency_ms: float
    p99_latency_ms: float
    models_used: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "total_calls": self.total_calls,
            "successful_calls": self.successful_calls,
            "failed_calls": self.failed_calls,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_tokens": self.total_input_tokens + self.total_output_tokens,
            "total_cost_usd": self.total_cost_usd,
            "total_latency_ms": self.total_latency_ms,
            "avg_latency_ms": self.avg_latency_ms,
            "p50_latency_ms": self.p50_latency_ms,
            "p95_latency_ms": self.p95_latency_ms,
            "p99_latency_ms": self.p99_latency_ms,
            "models_used": self.models_used,
        }


def calculate_cost(model: str | None, input_tokens: int, output_tokens: int) -> float:
    """Estimated cost in USD for a model and token counts."""
    if not model or (input_tokens == 0 and output_tokens == 0):
        return 0.0
    if model in MODEL_PRICING:
        input_price, output_price = MODEL_PRICING[model]
    else:
        # Longest matching key first so "gpt-4.1-mini" beats "gpt-4"
        model_lower = model.lower()
        matched = None
        for key in sorted(MODEL_PRICING, key=len, reverse=True):
            if key in model_lower:
                matched = MODEL_PRICING[key]
                break
        input_price, output_price = matched or DEFAULT_PRICING

    return (input_tokens * input_price / 1000) + (output_tokens * output_price / 1000)


def _percentile(values: list[float], p: float) -> float:
    """Calculate the p-th percentile of values."""
    if not values:
        return 0.0
    sorted_values = sorted(values)
    k = (len(sorted_values) - 1) * p / 100
    f = int(k)
    c = f + 1
    if c >= len(sorted_values):
        return sorted_values[-1]
    return sorted_values[f] + (k - f) * (sorted_values[c] - sorted_values[f])


class CallTracker:
    """Mutable handle yielded by EngineMetrics.track for reporting token usage."""

    def __init__(self) -> None:
        self.input_tokens = 0
        self.output_tokens = 0

    def set_usage(self, input_tokens: int | None, output_tokens: int | None = 0) -> None:
        self.input_tokens = input_tokens or 0
        self.output_tokens = output_tokens or 0


class EngineMetrics:
    """Thread-safe collector of upstream call metrics, grouped by operation.

    Only the most recent ``max_calls`` calls are retained, so a long-running
    server reports a sliding window rather than its whole lifetime.
    """

    def __init__(self, max_calls: int = MAX_RECORDED_CALLS):
        self._lock = threading.RLock()
        self._calls: deque[CallMetric] = deque(maxlen=max_calls)

    def record_call(
        self,
        operation: str,
        model: str | None = None,
        input_tokens: int = 0,
        output_tokens: int = 0,
        cost_usd: float | None = None,
        latency_ms: float = 0.0,
        status: str = "success",
        error: str | None = None,
    ) -> None:
        """Record one upstream call.

        Args:
            operation: Engine operation (embed, retrieve, lookup, complete, index_upload, provision)
            model: Model deployment name, if the call hit a model
            input_tokens: Number of input tokens
            output_tokens: Number of output tokens
            cost_usd: Cost in USD (calculated if not provided)
            latency_ms: Latency in milliseconds
            status: "success" or "error"
            error: Error message if status is "error"
        """
        if cost_usd is None:
            cost_usd = calculate_cost(model, input_tokens, output_tokens)

        metric = CallMetric(
            timestamp=datetime.now(timezone.utc),
            operation=operation,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=cost_usd,
            latency_ms=latency_ms,
            status=status,
            error=error,
        )
        with self._lock:
            self._calls.append(metric)

        logger.debug(
            "[call_metric] operation=%s, model=%s, tokens=%d/%d, cost=$%.5f, latency=%.0fms, status=%s",
            operation,
            model or "-",
            input_tokens,
            output_tokens,
            cost_usd,
            latency_ms,
            status,
        )

    @contextmanager
    def track(self, operation: str, model: str | None = None) -> Iterator[CallTracker]:
        """Time a block and record it; exceptions are recorded as errors and reraised."""
        tracker = CallTracker()
        start = time.perf_counter()
        try:
            yield tracker
        except Exception as e:
            self.record_call(
                operation,
                model=model,
                input_tokens=tracker.input_tokens,
                output_tokens=tracker.output_tokens,
                latency_ms=(time.perf_counter() - start) * 1000,
                status="error",
                error=f"{type(e).__name__}: {e}",
            )
            raise
        self.record_call(
            operation,
            model=model,
            input_tokens=tracker.input_tokens,
            output_tokens=tracker.output_tokens,
            latency_ms=(time.perf_counter() - start) * 1000,
        )

    def get_operation_summary(self, operation: str) -> OperationSummary | None:
        """Summary for one operation, or None if it was never called."""
        with self._lock:
            calls = [c for c in self._calls if c.operation == operation]
        if not calls:
            return None

        latencies = [c.latency_ms for c in calls]
        total_latency = sum(latencies)
        return OperationSummary(
            operation=operation,
            total_calls=len(calls),
            successful_calls=len([c for c in calls if c.status == "success"]),
            failed_calls=len([c for c in calls if c.status == "error"]),
            total_input_tokens=sum(c.input_tokens for c in calls),
            total_output_tokens=sum(c.output_tokens for c in calls),
            total_cost_usd=sum(c.cost_usd for c in calls),
            total_latency_ms=total_latency,
            avg_latency_ms=total_latency / len(calls),
            p50_latency_ms=_percentile(latencies, 50),
            p95_latency_ms=_percentile(latencies, 95),
            p99_latency_ms=_percentile(latencies, 99),
            models_used=sorted({c.model for c in calls if c.model}),
        )

    def get_all_summaries(self) -> list[OperationSummary]:
        with self._lock:
            operations = sorted({c.operation for c in self._calls})
        return [s for s in (self.get_operation_summary(op) for op in operations) if s]

    def get_global_stats(self) -> dict[str, Any]:
        """Totals across every operation."""
        with self._lock:
            calls = list(self._calls)
        return {
            "total_calls": len(calls),
            "failed_calls": len([c for c in calls if c.status == "error"]),
            "total_tokens": sum(c.input_tokens + c.output_tokens for c in calls),
            "total_cost_usd": sum(c.cost_usd for c in calls),
            "total_latency_ms": sum(c.latency_ms for c in calls),
        }

    def export_json(self, operation: str | None = None) -> str:
        """Export metrics as JSON, optionally for a single operation."""
        if operation:
            summary = self.get_operation_summary(operation)
            if not summary:
                return json.dumps({"error": f"No metrics for operation: {operation}"})
            return json.dumps(summary.to_dict(), indent=2, default=str)
        return json.dumps(
            {
                "global_stats": self.get_global_stats(),
                "operations": [s.to_dict() for s in self.get_all_summaries()],
            },
            indent=2,
            default=str,
        )

    def reset(self) -> None:
        with self._lock:
            self._calls.clear()


# Global metrics instance
_global_metrics: EngineMetrics | None = None
_metrics_lock = threading.Lock()


def get_metrics() -> EngineMetrics:
    """Get the global EngineMetrics instance."""
    global _global_metrics
    with _metrics_lock:
        if _global_metrics is None:
            _global_metrics = EngineMetrics()
        return _global_metrics


def reset_metrics() -> None:
    """Discard all recorded metrics (used between tests)."""
    get_metrics().reset()
