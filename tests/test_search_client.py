"""Tests for the search service REST client and its error mapping."""

import httpx
import pytest

from claim_knowledge.errors import ResourceNotFound, UpstreamFailure
from claim_knowledge.search.client import SearchServiceClient

from conftest import SEARCH_ENDPOINT


def _client(handler) -> SearchServiceClient:
    return SearchServiceClient(
        endpoint=SEARCH_ENDPOINT,
        api_key="search-admin-key",
        api_version="2025-11-01-preview",
        transport=httpx.MockTransport(handler),
    )


def test_sends_api_key_and_version(search_client, search_service):
    search_client.create_index({"name": "claims-index", "fields": []})
    request = search_service.requests[-1]
    assert request.headers["api-key"] == "search-admin-key"
    assert request.params["api-version"] == "2025-11-01-preview"
    assert request.headers["if-none-match"] == "*"


def test_get_missing_index_raises_not_found(search_client):
    with pytest.raises(ResourceNotFound):
        search_client.get_index("claims-index")


def test_create_index_reports_race_loss(search_client):
    assert search_client.create_index({"name": "claims-index", "fields": []}) is True
    assert search_client.create_index({"name": "claims-index", "fields": []}) is False


def test_throttling_is_transient(search_client, search_service):
    search_service.fail("GET", "/indexes/claims-index", 429)
    with pytest.raises(UpstreamFailure) as exc_info:
        search_client.get_index("claims-index")
    assert exc_info.value.status_code == 429
    assert exc_info.value.transient
    assert "Injected failure" in str(exc_info.value)


def test_bad_request_is_not_transient(search_client, search_service):
    search_service.fail("PUT", "/knowledgesources/", 400)
    with pytest.raises(UpstreamFailure) as exc_info:
        search_client.put_knowledge_source({"name": "claims-knowledge-source"})
    assert exc_info.value.status_code == 400
    assert not exc_info.value.transient


def test_timeout_is_transient(search_client, search_service):
    search_service.fail("POST", "/retrieve", httpx.ReadTimeout)
    with pytest.raises(UpstreamFailure, match="timed out") as exc_info:
        search_client.retrieve("zava-insurance-kb", {"messages": []})
    assert exc_info.value.transient


def test_connection_error_is_transient(search_client, search_service):
    search_service.fail("POST", "/docs/search", httpx.ConnectError)
    with pytest.raises(UpstreamFailure, match="unreachable") as exc_info:
        search_client.search("claims-index", {"search": "*"})
    assert exc_info.value.transient


def test_invalid_json_body_is_upstream_failure():
    client = _client(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(UpstreamFailure, match="invalid JSON"):
        client.get_index("claims-index")


def test_non_object_body_is_upstream_failure():
    client = _client(lambda request: httpx.Response(200, json=[1, 2]))
    with pytest.raises(UpstreamFailure, match="unexpected payload"):
        client.get_index("claims-index")


def test_upload_partial_failure_raises():
    def handler(request):
        return httpx.Response(
            207,
            json={
                "value": [
                    {"key": "CLM-1", "status": True, "statusCode": 201},
                    {"key": "CLM-2", "status": False, "statusCode": 400, "errorMessage": "bad field"},
                ]
            },
        )

    with _client(handler) as client:
        with pytest.raises(UpstreamFailure, match="1 of 2 documents rejected") as exc_info:
            client.upload_documents("claims-index", [{"id": "CLM-1"}, {"id": "CLM-2"}])
    assert "CLM-2: bad field" in str(exc_info.value)


def test_upload_marks_each_document_for_upload(search_client, search_service):
    search_client.create_index({"name": "claims-index", "fields": []})
    search_client.upload_documents("claims-index", [{"id": "CLM-1", "claimNumber": "CLM-1"}])
    body = search_service.calls("POST", "/docs/index")[0].json
    assert body["value"][0]["@search.action"] == "upload"
    assert search_service.documents["claims-index"]["CLM-1"]["claimNumber"] == "CLM-1"


def test_endpoint_trailing_slash_trimmed():
    client = SearchServiceClient(SEARCH_ENDPOINT + "/", "k", "2025-11-01-preview")
    assert client.endpoint == SEARCH_ENDPOINT
    client.close()
