"""MCP server exposing claims knowledge retrieval via stdio transport.

This server includes an observability endpoint for metrics.
"""

import json
import threading

from mcp.server.fastmcp import FastMCP

from claim_knowledge.errors import KnowledgeEngineError
from claim_knowledge.observability import get_logger, get_metrics

mcp = FastMCP("claim-knowledge", json_response=True)

_engine = None
_engine_lock = threading.Lock()


def _get_engine():
    """Engine built once from the environment on first use."""
    global _engine
    with _engine_lock:
        if _engine is None:
            from claim_knowledge.engine import KnowledgeEngine

            _engine = KnowledgeEngine.from_env()
        return _engine


@mcp.tool()
def retrieve_claims(query: str, instructions: str | None = None, top_results: int = 5) -> str:
    """Answer a natural-language question about claims from the knowledge base.

    Returns:
        JSON string with outcome ("found", "no_match" or "failure"), text and reason.
    """
    try:
        result = _get_engine().retrieve_result(query, instructions, top_results)
    except KnowledgeEngineError as e:
        return json.dumps({"outcome": "failure", "text": "", "reason": str(e)})
    return result.model_dump_json()


@mcp.tool()
def get_claim(claim_number: str) -> str:
    """Look up one claim by exact claim number; returns all indexed fields except the vector."""
    try:
        document = _get_engine().get_by_key(claim_number)
    except KnowledgeEngineError as e:
        return json.dumps({"error": str(e)})
    if not document:
        return json.dumps({"error": f"Claim not found: {claim_number}"})
    return json.dumps(document.to_upload_payload())


@mcp.tool()
def complete_direct(system_prompt: str, user_prompt: str, model: str | None = None) -> str:
    """Send a prompt straight to the language model, bypassing retrieval."""
    try:
        text = _get_engine().complete(system_prompt, user_prompt, model)
    except KnowledgeEngineError as e:
        return json.dumps({"error": str(e)})
    return json.dumps({"text": text})


# ============================================================================
# OBSERVABILITY TOOLS
# ============================================================================


@mcp.tool()
def get_engine_metrics(operation: str | None = None) -> str:
    """Get call metrics for the engine.

    Args:
        operation: Optional operation name (embed, retrieve, lookup, complete,
                   index_upload, provision). If omitted, returns the global summary.

    Returns:
        JSON string with calls, tokens, estimated cost and latency percentiles.
    """
    metrics = get_metrics()

    if operation:
        summary = metrics.get_operation_summary(operation)
        if summary is None:
            return json.dumps({"error": f"No metrics found for operation: {operation}"})
        return json.dumps(summary.to_dict(), default=str)
    return json.dumps(
        {
            "global_stats": metrics.get_global_stats(),
            "operations": [s.to_dict() for s in metrics.get_all_summaries()],
        },
        default=str,
    )


def main() -> None:
    """Run the MCP server with stdio transport (default)."""
    get_logger("claim_knowledge")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
