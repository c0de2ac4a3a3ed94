"""Shared pytest fixtures for all test files."""

import json
import re
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock
from urllib.parse import unquote

import httpx
import pytest

from claim_knowledge.config.settings import EngineConfig
from claim_knowledge.engine import KnowledgeEngine
from claim_knowledge.search.client import SearchServiceClient
from claim_knowledge.utils.retry import RetryPolicy

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

SEARCH_ENDPOINT = "https://test-search.search.windows.net"
MODELS_ENDPOINT = "https://test-models.openai.azure.com"

REQUIRED_ENV = {
    "AZURE_AI_SEARCH_ENDPOINT": SEARCH_ENDPOINT,
    "SECRET_AZURE_AI_SEARCH_API_KEY": "search-admin-key",
    "MODELS_ENDPOINT": MODELS_ENDPOINT,
    "MODELS_API_KEY": "models-key",
}

OPTIONAL_ENV = (
    "EMBEDDING_MODEL_NAME",
    "LANGUAGE_MODEL_NAME",
    "EMBEDDING_DIMENSIONS",
    "AZURE_OPENAI_API_VERSION",
    "AZURE_AI_SEARCH_API_VERSION",
    "CLAIMS_INDEX_NAME",
    "CLAIMS_KNOWLEDGE_SOURCE_NAME",
    "KNOWLEDGE_BASE_NAME",
    "SEARCH_TIMEOUT_SECONDS",
    "MODELS_TIMEOUT_SECONDS",
    "UPSTREAM_RETRY_ATTEMPTS",
    "CLAIMS_DATA_PATH",
)

FAST_RETRY = RetryPolicy(max_attempts=3, min_wait=0, max_wait=0)

_FILTER = re.compile(r"^(\w+) eq '(.*)'$")


def _error(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"error": {"code": str(status), "message": message}})


class FakeSearchService:
    """In-memory stand-in for the search service REST API, served via httpx.MockTransport."""

    def __init__(self):
        self.indexes: dict[str, dict] = {}
        self.documents: dict[str, dict[str, dict]] = {}
        self.knowledge_sources: dict[str, dict] = {}
        self.knowledge_bases: dict[str, dict] = {}
        self.requests: list[SimpleNamespace] = []
        self.failures: list[tuple[str, str, object]] = []
        self.retrieve_response: dict = {
            "response": [
                {
                    "role": "assistant",
                    "content": [{"type": "text", "text": "Claim CLM-2025-001007 is Under Review."}],
                }
            ],
            "activity": [],
            "references": [],
        }

    def fail(self, method: str, path_fragment: str, outcome) -> None:
        """Queue one failure for the next matching request.

        ``outcome`` is an HTTP status code or an exception class to raise.
        """
        self.failures.append((method, path_fragment, outcome))

    def calls(self, method: str, path_fragment: str = "") -> list[SimpleNamespace]:
        return [r for r in self.requests if r.method == method and path_fragment in r.path]

    @property
    def transport(self) -> httpx.MockTransport:
        # Late-bound so a test can swap ``handle`` after the client is built
        return httpx.MockTransport(lambda request: self.handle(request))

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = unquote(request.url.path)
        body = json.loads(request.content) if request.content else None
        self.requests.append(
            SimpleNamespace(
                method=request.method,
                path=path,
                params=dict(request.url.params),
                headers=dict(request.headers),
                json=body,
            )
        )

        for position, (method, fragment, outcome) in enumerate(self.failures):
            if method == request.method and fragment in path:
                del self.failures[position]
                if isinstance(outcome, int):
                    return _error(outcome, "Injected failure")
                raise outcome("Injected failure", request=request)

        if request.headers.get("api-key") != REQUIRED_ENV["SECRET_AZURE_AI_SEARCH_API_KEY"]:
            return _error(403, "Invalid api-key")
        if "api-version" not in request.url.params:
            return _error(400, "api-version is required")

        parts = path.strip("/").split("/")
        if parts[0] == "indexes":
            return self._indexes(request, parts[1:], body)
        if parts[0] == "knowledgesources" and request.method == "PUT":
            self.knowledge_sources[parts[1]] = body
            return httpx.Response(201, json=body)
        if parts[0] == "knowledgebases":
            return self._knowledge_bases(request, parts[1:], body)
        return _error(404, f"No route for {path}")

    def _indexes(self, request: httpx.Request, parts: list[str], body) -> httpx.Response:
        name = parts[0]
        if len(parts) == 1:
            if request.method == "GET":
                if name not in self.indexes:
                    return _error(404, f"Index '{name}' not found")
                return httpx.Response(200, json=self.indexes[name])
            if request.method == "PUT":
                if request.headers.get("if-none-match") == "*" and name in self.indexes:
                    return _error(412, "The index already exists")
                self.indexes[name] = body
                self.documents.setdefault(name, {})
                return httpx.Response(201, json=body)

        if name not in self.indexes:
            return _error(404, f"Index '{name}' not found")
        store = self.documents.setdefault(name, {})
        action = parts[-1]
        if action == "index":
            results = []
            for doc in body["value"]:
                doc = {k: v for k, v in doc.items() if k != "@search.action"}
                store[doc["id"]] = doc
                results.append({"key": doc["id"], "status": True, "statusCode": 201})
            return httpx.Response(200, json={"value": results})
        if action == "search":
            matches = list(store.values())
            if body.get("filter"):
                field, value = _FILTER.match(body["filter"]).groups()
                value = value.replace("''", "'")
                matches = [d for d in matches if d.get(field) == value]
            if body.get("select"):
                selected = body["select"].split(",")
                matches = [{k: d.get(k) for k in selected if k in d} for d in matches]
            matches = matches[: body.get("top", 50)]
            return httpx.Response(200, json={"value": [{"@search.score": 1.0, **d} for d in matches]})
        return _error(404, "No such document operation")

    def _knowledge_bases(self, request: httpx.Request, parts: list[str], body) -> httpx.Response:
        name = parts[0]
        if request.method == "PUT":
            for source in body.get("knowledgeSources", []):
                if source["name"] not in self.knowledge_sources:
                    return _error(400, f"Knowledge source '{source['name']}' does not exist")
            self.knowledge_bases[name] = body
            return httpx.Response(201, json=body)
        if name not in self.knowledge_bases:
            return _error(404, f"Knowledge base '{name}' not found")
        return httpx.Response(200, json=self.retrieve_response)


def fake_vector(text: str, dimensions: int = 1536) -> list[float]:
    """Deterministic vector whose values are exact in float32."""
    seed = len(text)
    return [((seed + i) % 8) / 8.0 for i in range(dimensions)]


def make_embedding_response(vector: list[float], prompt_tokens: int = 12):
    return SimpleNamespace(
        data=[SimpleNamespace(embedding=vector, index=0)],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, total_tokens=prompt_tokens),
    )


def make_completion_response(content: str | None, prompt_tokens: int = 40, completion_tokens: int = 10):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(role="assistant", content=content))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


def make_openai_client(dimensions: int = 1536) -> MagicMock:
    """MagicMock AzureOpenAI client with deterministic embeddings and a canned completion."""
    client = MagicMock()
    client.embeddings.create.side_effect = lambda model, input: make_embedding_response(
        fake_vector(input, dimensions)
    )
    client.chat.completions.create.return_value = make_completion_response('{"fraudScore": 42}')
    return client


@pytest.fixture(autouse=True)
def reset_global_metrics():
    """Reset the global EngineMetrics singleton before and after each test."""
    from claim_knowledge.observability.metrics import reset_metrics

    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def engine_env(monkeypatch):
    """Required settings present, optional settings unset."""
    for key in OPTIONAL_ENV:
        monkeypatch.delenv(key, raising=False)
    for key, value in REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)
    return dict(REQUIRED_ENV)


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(
        search_endpoint=SEARCH_ENDPOINT,
        search_api_key=REQUIRED_ENV["SECRET_AZURE_AI_SEARCH_API_KEY"],
        models_endpoint=MODELS_ENDPOINT,
        models_api_key=REQUIRED_ENV["MODELS_API_KEY"],
    )


@pytest.fixture
def search_service() -> FakeSearchService:
    return FakeSearchService()


@pytest.fixture
def search_client(search_service, config):
    client = SearchServiceClient(
        endpoint=config.search_endpoint,
        api_key=config.search_api_key,
        api_version=config.search_api_version,
        transport=search_service.transport,
    )
    yield client
    client.close()


@pytest.fixture
def openai_client() -> MagicMock:
    return make_openai_client()


@pytest.fixture
def engine(config, search_client, openai_client):
    with KnowledgeEngine(
        config,
        search_client=search_client,
        openai_client=openai_client,
        retry=FAST_RETRY,
    ) as eng:
        yield eng


@pytest.fixture
def provisioned_engine(engine):
    engine.provision()
    return engine


@pytest.fixture
def sample_claims() -> list[dict]:
    with open(DATA_DIR / "claims.json", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def sample_claim(sample_claims) -> dict:
    """CLM-2025-001007: fraud indicators and missing documentation, no adjuster notes."""
    return next(c for c in sample_claims if c["claimNumber"] == "CLM-2025-001007")
