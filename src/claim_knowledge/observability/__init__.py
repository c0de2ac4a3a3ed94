"""Observability module.

This module provides:
- Structured logging with claim number context
- Cost and latency tracking per engine operation
"""

from claim_knowledge.observability.logger import (
    get_logger,
    claim_context,
    log_claim_event,
)
from claim_knowledge.observability.metrics import (
    EngineMetrics,
    get_metrics,
    reset_metrics,
)

__all__ = [
    # Logger
    "get_logger",
    "claim_context",
    "log_claim_event",
    # Metrics
    "EngineMetrics",
    "get_metrics",
    "reset_metrics",
]
