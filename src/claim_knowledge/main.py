"""CLI entry point for the claims knowledge engine.

This module provides the command-line interface with full observability:
- Structured logging with claim context
- Optional metrics reporting
"""

import json
import logging
import os
import sys
from pathlib import Path

from claim_knowledge.errors import KnowledgeEngineError

# Ensure src is on path when run as script
if __name__ == "__main__" and str(Path(__file__).resolve().parent.parent) not in sys.path:
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

DEFAULT_SYSTEM_PROMPT = "You are an insurance claims assistant. Answer using only the facts provided."


def _setup_logging() -> None:
    """Configure logging for CLI usage."""
    from claim_knowledge.observability import get_logger

    logger = get_logger("claim_knowledge")
    logger.setLevel(logging.DEBUG if "--debug" in sys.argv else logging.INFO)


def _usage() -> str:
    return """Usage:
  claim-knowledge provision                 Create index, knowledge source and knowledge base
  claim-knowledge index [claims.json]       Embed and upload claims from a JSON file
  claim-knowledge get <claim_number>        Exact lookup of one claim
  claim-knowledge search <query>            Synthesized answer from the knowledge base
  claim-knowledge complete <prompt>         Direct model completion
  claim-knowledge metrics [operation]       Show call metrics for this session
  claim-knowledge config                    Show effective configuration (keys redacted)

Options:
  --instructions=<text>                     Formatting instructions for search
  --system=<text>                           System prompt for complete
  --vector                                  Include contentVector in get output
  --debug                                   Enable debug logging
  --json                                    Use JSON log format
"""


def _split_options(args: list[str]) -> tuple[list[str], dict[str, str | bool]]:
    """Separate positional args from --flag and --key=value options."""
    positional = []
    options: dict[str, str | bool] = {}
    for arg in args:
        if arg.startswith("--"):
            key, sep, value = arg[2:].partition("=")
            options[key] = value if sep else True
        else:
            positional.append(arg)
    return positional, options


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _build_engine():
    from claim_knowledge.engine import KnowledgeEngine

    return KnowledgeEngine.from_env()


def cmd_provision() -> None:
    """Provision index, knowledge source and knowledge base in order."""
    with _build_engine() as engine:
        result = engine.provision()
    print(json.dumps(result, indent=2))


def cmd_index(path: Path | None) -> None:
    """Index every claim in a JSON file as one batch."""
    with _build_engine() as engine:
        count = engine.index_file(path)
    print(f"Indexed {count} claims")


def cmd_get(claim_number: str, include_vector: bool = False) -> None:
    """Print one claim document as JSON."""
    with _build_engine() as engine:
        document = engine.get_by_key(claim_number, include_vector=include_vector)
    if not document:
        _fail(f"Claim not found: {claim_number}")
    print(json.dumps(document.to_upload_payload(), indent=2))


def cmd_search(query: str, instructions: str | None = None) -> None:
    """Print the synthesized answer for a query."""
    with _build_engine() as engine:
        result = engine.retrieve_result(query, instructions)
    if not result.ok:
        _fail(result.reason or "Retrieval failed")
    if not result.text:
        print("No matching claims found.")
        return
    print(result.text)


def cmd_complete(user_prompt: str, system_prompt: str = DEFAULT_SYSTEM_PROMPT) -> None:
    """Print a direct completion."""
    with _build_engine() as engine:
        print(engine.complete(system_prompt, user_prompt))


def cmd_metrics(operation: str | None = None) -> None:
    """Display call metrics.

    Args:
        operation: Optional operation name (embed, retrieve, lookup, complete, ...).
                   Otherwise, shows the global summary.
    """
    from claim_knowledge.observability import get_metrics

    metrics = get_metrics()

    if operation:
        summary = metrics.get_operation_summary(operation)
        if summary is None:
            print(f"No metrics found for operation: {operation}", file=sys.stderr)
            print("Note: Metrics are only available for calls made in the current session.")
            sys.exit(1)
        print(json.dumps(summary.to_dict(), indent=2, default=str))
        return

    global_stats = metrics.get_global_stats()
    if global_stats["total_calls"] == 0:
        print("No upstream calls have been made in the current session.")
        return
    print("Global Metrics Summary:")
    print(json.dumps(global_stats, indent=2, default=str))
    print("\nPer-Operation Summaries:")
    for summary in metrics.get_all_summaries():
        print(f"\n  {summary.operation}:")
        print(f"    Calls: {summary.total_calls} ({summary.failed_calls} failed)")
        print(f"    Tokens: {summary.total_input_tokens + summary.total_output_tokens}")
        print(f"    Cost: ${summary.total_cost_usd:.4f}")
        print(f"    Latency: {summary.total_latency_ms:.0f}ms (p95: {summary.p95_latency_ms:.0f}ms)")


def cmd_config() -> None:
    """Print the effective configuration without secrets."""
    from claim_knowledge.config.settings import EngineConfig

    print(json.dumps(EngineConfig.from_env().redacted(), indent=2))


def main() -> None:
    """Run the engine CLI: provision, index, get, search, complete, metrics, or config."""
    argv, options = _split_options(sys.argv[1:])

    if options.get("json"):
        os.environ["CLAIM_KNOWLEDGE_LOG_FORMAT"] = "json"
    if options.get("debug"):
        os.environ["CLAIM_KNOWLEDGE_LOG_LEVEL"] = "DEBUG"

    _setup_logging()

    if not argv:
        print(_usage(), file=sys.stderr)
        sys.exit(1)

    command = argv[0].lower()
    rest = argv[1:]

    try:
        if command == "provision":
            cmd_provision()
        elif command == "index":
            cmd_index(Path(rest[0]) if rest else None)
        elif command == "get":
            if not rest:
                print(_usage(), file=sys.stderr)
                _fail("get requires <claim_number>")
            cmd_get(rest[0], include_vector=bool(options.get("vector")))
        elif command == "search":
            if not rest:
                print(_usage(), file=sys.stderr)
                _fail("search requires <query>")
            instructions = options.get("instructions")
            cmd_search(" ".join(rest), instructions if isinstance(instructions, str) else None)
        elif command == "complete":
            if not rest:
                print(_usage(), file=sys.stderr)
                _fail("complete requires <prompt>")
            system = options.get("system")
            cmd_complete(
                " ".join(rest),
                system if isinstance(system, str) and system else DEFAULT_SYSTEM_PROMPT,
            )
        elif command == "metrics":
            cmd_metrics(rest[0] if rest else None)
        elif command == "config":
            cmd_config()
        else:
            print(_usage(), file=sys.stderr)
            _fail(f"Unknown command: {command}")
    except KnowledgeEngineError as e:
        _fail(str(e))


if __name__ == "__main__":
    main()
