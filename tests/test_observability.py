"""Tests for the observability module."""

import json
import logging

import pytest


class TestStructuredLogging:
    """Tests for structured logging with claim context."""

    def test_get_logger_attaches_stderr_handler_once(self):
        import sys

        from claim_knowledge.observability.logger import HumanReadableFormatter, get_logger

        logger = get_logger("test_logger", structured=False)
        again = get_logger("test_logger", structured=True)
        assert again is logger
        assert len(logger.handlers) == 1
        assert logger.handlers[0].stream is sys.stderr
        assert isinstance(logger.handlers[0].formatter, HumanReadableFormatter)
        assert logger.propagate is False

    def test_claim_context_reaches_log_records(self, capsys):
        from claim_knowledge.observability.logger import claim_context, get_logger

        logger = get_logger("test_logger_with_context", structured=True)
        with claim_context(claim_number="CLM-2025-001007", operation="lookup"):
            logger.info("Claim not found")
        data = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert data["claim_number"] == "CLM-2025-001007"
        assert data["operation"] == "lookup"
        assert data["message"] == "Claim not found"

    def test_claim_context_sets_and_restores(self):
        from claim_knowledge.observability.logger import _get_claim_context, claim_context

        assert _get_claim_context() == {}
        with claim_context(claim_number="CLM-1", operation="lookup"):
            ctx = _get_claim_context()
            assert ctx["claim_number"] == "CLM-1"
            assert ctx["operation"] == "lookup"
            with claim_context(claim_number="CLM-2"):
                assert _get_claim_context()["claim_number"] == "CLM-2"
            assert _get_claim_context()["claim_number"] == "CLM-1"
        assert _get_claim_context() == {}

    def test_structured_formatter_includes_context(self):
        from claim_knowledge.observability.logger import StructuredFormatter, claim_context

        formatter = StructuredFormatter()
        record = logging.LogRecord("claim_knowledge.test", logging.INFO, __file__, 1, "hello", None, None)
        with claim_context(claim_number="CLM-9", operation="index"):
            data = json.loads(formatter.format(record))
        assert data["message"] == "hello"
        assert data["claim_number"] == "CLM-9"
        assert data["operation"] == "index"
        assert data["level"] == "INFO"

    def test_human_formatter_prefix(self):
        from claim_knowledge.observability.logger import HumanReadableFormatter

        record = logging.LogRecord("claim_knowledge.test", logging.WARNING, __file__, 1, "slow", None, None)
        record.claim_number = "CLM-3"
        line = HumanReadableFormatter().format(record)
        assert "[claim=CLM-3]" in line
        assert "WARNING" in line
        assert line.endswith("claim_knowledge.test: slow")

    def test_log_claim_event_message(self, caplog):
        from claim_knowledge.observability.logger import log_claim_event

        logger = logging.getLogger("test_events_logger")
        with caplog.at_level(logging.INFO, logger="test_events_logger"):
            log_claim_event(logger, "batch_indexed", index="claims-index", count=3)
        record = caplog.records[-1]
        assert record.getMessage() == "[batch_indexed] index=claims-index, count=3"
        assert record.extra_data == {"event": "batch_indexed", "index": "claims-index", "count": 3}

    def test_json_format_from_env(self, monkeypatch):
        from claim_knowledge.observability.logger import StructuredFormatter, get_logger

        monkeypatch.setenv("CLAIM_KNOWLEDGE_LOG_FORMAT", "json")
        monkeypatch.setenv("CLAIM_KNOWLEDGE_LOG_LEVEL", "DEBUG")
        logger = get_logger("test_logger_json_env")
        handler = logger.handlers[0]
        assert isinstance(handler.formatter, StructuredFormatter)
        assert logger.level == logging.DEBUG


class TestMetrics:
    """Tests for EngineMetrics."""

    def test_calculate_cost_known_model(self):
        from claim_knowledge.observability.metrics import calculate_cost

        assert calculate_cost("gpt-4.1", 1000, 1000) == pytest.approx(0.010)

    def test_calculate_cost_prefers_longest_match(self):
        from claim_knowledge.observability.metrics import MODEL_PRICING, calculate_cost

        in_price, out_price = MODEL_PRICING["gpt-4.1-mini"]
        assert calculate_cost("prod-gpt-4.1-mini", 1000, 1000) == pytest.approx(in_price + out_price)

    def test_calculate_cost_unknown_model_uses_default(self):
        from claim_knowledge.observability.metrics import DEFAULT_PRICING, calculate_cost

        assert calculate_cost("mystery", 1000, 0) == pytest.approx(DEFAULT_PRICING[0])
        assert calculate_cost(None, 1000, 0) == 0.0

    def test_track_records_success_with_usage(self):
        from claim_knowledge.observability.metrics import EngineMetrics

        metrics = EngineMetrics()
        with metrics.track("embed", model="text-embedding-ada-002") as tracker:
            tracker.set_usage(100, 0)
        summary = metrics.get_operation_summary("embed")
        assert summary.total_calls == 1
        assert summary.successful_calls == 1
        assert summary.total_input_tokens == 100
        assert summary.models_used == ["text-embedding-ada-002"]

    def test_track_records_error_and_reraises(self):
        from claim_knowledge.observability.metrics import EngineMetrics

        metrics = EngineMetrics()
        with pytest.raises(RuntimeError):
            with metrics.track("retrieve"):
                raise RuntimeError("boom")
        summary = metrics.get_operation_summary("retrieve")
        assert summary.failed_calls == 1
        assert metrics.get_global_stats()["failed_calls"] == 1

    def test_summaries_grouped_by_operation(self):
        from claim_knowledge.observability.metrics import EngineMetrics

        metrics = EngineMetrics()
        metrics.record_call("lookup", latency_ms=10)
        metrics.record_call("lookup", latency_ms=30)
        metrics.record_call("complete", model="gpt-4.1", input_tokens=10, output_tokens=5)
        operations = [s.operation for s in metrics.get_all_summaries()]
        assert operations == ["complete", "lookup"]
        lookup = metrics.get_operation_summary("lookup")
        assert lookup.avg_latency_ms == 20
        assert lookup.p50_latency_ms == 20
        assert metrics.get_operation_summary("embed") is None

    def test_export_json(self):
        from claim_knowledge.observability.metrics import EngineMetrics

        metrics = EngineMetrics()
        metrics.record_call("lookup", latency_ms=5)
        exported = json.loads(metrics.export_json())
        assert exported["global_stats"]["total_calls"] == 1
        assert exported["operations"][0]["operation"] == "lookup"
        assert "error" in json.loads(metrics.export_json("embed"))

    def test_history_capped_at_max_calls(self):
        from claim_knowledge.observability.metrics import EngineMetrics

        metrics = EngineMetrics(max_calls=3)
        for latency in (1, 2, 3, 4, 5):
            metrics.record_call("lookup", latency_ms=latency)
        summary = metrics.get_operation_summary("lookup")
        assert summary.total_calls == 3
        assert summary.total_latency_ms == 12
        assert metrics.get_global_stats()["total_calls"] == 3

    def test_default_cap(self):
        from claim_knowledge.observability.metrics import MAX_RECORDED_CALLS, EngineMetrics

        metrics = EngineMetrics()
        for _ in range(MAX_RECORDED_CALLS + 10):
            metrics.record_call("embed")
        assert metrics.get_global_stats()["total_calls"] == MAX_RECORDED_CALLS

    def test_global_singleton_reset(self):
        from claim_knowledge.observability.metrics import get_metrics, reset_metrics

        get_metrics().record_call("lookup")
        assert get_metrics() is get_metrics()
        reset_metrics()
        assert get_metrics().get_global_stats()["total_calls"] == 0
