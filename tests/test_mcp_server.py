"""Unit tests for MCP server tools."""

import json
from unittest.mock import MagicMock, patch

import pytest

from claim_knowledge.errors import InvalidInput, UpstreamFailure
from claim_knowledge.mcp_server import server
from claim_knowledge.mcp_server.server import (
    complete_direct,
    get_claim,
    get_engine_metrics,
    retrieve_claims,
)


@pytest.fixture
def mcp_engine(provisioned_engine):
    with patch("claim_knowledge.mcp_server.server._get_engine", return_value=provisioned_engine):
        yield provisioned_engine


class TestMcpServerTools:
    """Test MCP server tool wrappers."""

    def test_retrieve_claims_found(self, mcp_engine):
        data = json.loads(retrieve_claims("status of CLM-2025-001007"))
        assert data["outcome"] == "found"
        assert data["text"] == "Claim CLM-2025-001007 is Under Review."

    def test_retrieve_claims_no_match(self, mcp_engine, search_service):
        search_service.retrieve_response = {"response": []}
        data = json.loads(retrieve_claims("claims on Mars"))
        assert data["outcome"] == "no_match"

    def test_retrieve_claims_invalid_query(self, mcp_engine):
        data = json.loads(retrieve_claims("   "))
        assert data["outcome"] == "failure"
        assert "empty" in data["reason"]

    def test_get_claim(self, mcp_engine, sample_claim):
        mcp_engine.index_batch([sample_claim])
        data = json.loads(get_claim("CLM-2025-001007"))
        assert data["claimNumber"] == "CLM-2025-001007"
        assert data["fraudScore"] == 67
        assert data["contentVector"] is None

    def test_get_claim_not_found(self, mcp_engine):
        data = json.loads(get_claim("CLM-0000-000000"))
        assert data == {"error": "Claim not found: CLM-0000-000000"}

    def test_get_claim_upstream_error(self):
        engine = MagicMock()
        engine.get_by_key.side_effect = UpstreamFailure("Search service returned 503")
        with patch("claim_knowledge.mcp_server.server._get_engine", return_value=engine):
            data = json.loads(get_claim("CLM-1"))
        assert data == {"error": "Search service returned 503"}

    def test_complete_direct(self, mcp_engine):
        data = json.loads(complete_direct("You are a fraud analyst", "score this claim"))
        assert data == {"text": '{"fraudScore": 42}'}

    def test_complete_direct_invalid(self):
        engine = MagicMock()
        engine.complete.side_effect = InvalidInput("user_prompt cannot be empty")
        with patch("claim_knowledge.mcp_server.server._get_engine", return_value=engine):
            data = json.loads(complete_direct("system", ""))
        assert "user_prompt" in data["error"]


class TestObservabilityTools:
    def test_metrics_after_calls(self, mcp_engine):
        retrieve_claims("claims")
        data = json.loads(get_engine_metrics())
        operations = [o["operation"] for o in data["operations"]]
        assert "retrieve" in operations
        assert data["global_stats"]["total_calls"] >= 1

    def test_metrics_for_unknown_operation(self):
        data = json.loads(get_engine_metrics("embed"))
        assert "error" in data


def test_engine_built_once_from_env(engine_env, monkeypatch):
    monkeypatch.setattr(server, "_engine", None)
    with patch("claim_knowledge.engine.KnowledgeEngine.from_env") as from_env:
        first = server._get_engine()
        second = server._get_engine()
    assert first is second
    from_env.assert_called_once_with()


def test_main_configures_logging_and_runs_stdio():
    with patch.object(server.mcp, "run") as run, patch.object(server, "get_logger") as get_logger:
        server.main()
    get_logger.assert_called_once_with("claim_knowledge")
    run.assert_called_once_with(transport="stdio")
