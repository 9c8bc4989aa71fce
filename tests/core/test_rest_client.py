# ruff: noqa: SLF001,PLR2004
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest
import tenacity

from ado_rest_client.core.contracts import ContractEnumMetadata, ContractMetadata, DateField, EnumField, SerializationData
from ado_rest_client.core.exceptions import HttpStatusError, TransportError
from ado_rest_client.core.rest_client import RestClient
from ado_rest_client.core.transport import HttpClient, HttpClientResponse

STATUS = ContractEnumMetadata({"notStarted": 0, "inProgress": 1, "completed": 2})
BUILD = ContractMetadata({"status": EnumField(STATUS), "queueTime": DateField()})


def json_response(status: int, body=None, reason: str = "OK") -> HttpClientResponse:  # noqa: ANN001
    return HttpClientResponse(
        status=status,
        reason=reason,
        headers={"Content-Type": "application/json"},
        body=json.dumps(body).encode() if body is not None else b"",
        url="https://dev.azure.com/org/_apis/x",
    )


### Fixtures ###
@pytest.fixture
def http_client() -> Mock:
    """Transport whose request method is mocked."""
    client = Mock(spec=HttpClient)
    client.request = AsyncMock(return_value=json_response(200, {}))
    return client


@pytest.fixture
def rest_client(http_client) -> RestClient:
    """REST client that retries without waiting."""
    return RestClient(http_client, "https://dev.azure.com/org", retry_wait=tenacity.wait_none())


def sent_headers(http_client: Mock, call: int = 0) -> dict:
    return http_client.request.await_args_list[call].args[3]


### Requests ###
@pytest.mark.asyncio
async def test_get_json_accept_header(rest_client, http_client) -> None:
    """Test that the api-version rides in the Accept header."""
    await rest_client.get_json("_apis/projects", "7.1")

    method, url, data, _ = http_client.request.await_args.args
    if (method, url, data) != ("GET", "https://dev.azure.com/org/_apis/projects", None):
        pytest.fail(f"Unexpected request {(method, url, data)!r}")
    if sent_headers(http_client)["Accept"] != "application/json;api-version=7.1":
        pytest.fail(f"Unexpected Accept header {sent_headers(http_client)['Accept']!r}")


@pytest.mark.asyncio
async def test_no_api_version(rest_client, http_client) -> None:
    """Test the plain Accept header without a version."""
    await rest_client.get_json("https://other/_apis/x")

    if http_client.request.await_args.args[1] != "https://other/_apis/x":
        pytest.fail("Absolute URLs should not be resolved against the base URL")
    if sent_headers(http_client)["Accept"] != "application/json":
        pytest.fail(f"Unexpected Accept header {sent_headers(http_client)['Accept']!r}")


@pytest.mark.asyncio
async def test_custom_headers(rest_client, http_client) -> None:
    """Test that custom headers are sent along."""
    await rest_client.delete("_apis/x/1", "7.1", custom_headers={"X-TFS-FedAuthRedirect": "Suppress"})
    if sent_headers(http_client).get("X-TFS-FedAuthRedirect") != "Suppress":
        pytest.fail("Expected the custom header to be sent")


@pytest.mark.asyncio
async def test_create_serializes_body(rest_client, http_client) -> None:
    """Test body serialization without mutating the caller's object."""
    body = {"status": 1, "queueTime": datetime(2024, 3, 1, tzinfo=timezone.utc), "tags": ["a"]}
    await rest_client.create("_apis/builds", "7.1", body, SerializationData(request_type_metadata=BUILD))

    _, _, data, headers = http_client.request.await_args.args
    if json.loads(data) != {"status": "inProgress", "queueTime": "2024-03-01T00:00:00+00:00", "tags": ["a"]}:
        pytest.fail(f"Unexpected body {data!r}")
    if headers["Content-Type"] != "application/json; charset=utf-8":
        pytest.fail(f"Unexpected Content-Type {headers['Content-Type']!r}")
    if body["status"] != 1 or not isinstance(body["queueTime"], datetime):
        pytest.fail("The caller's body was mutated")


@pytest.mark.asyncio
async def test_create_dataclass_body_without_metadata(rest_client, http_client) -> None:
    """Test that dataclass bodies are sent as JSON objects when no metadata describes them."""

    @dataclass
    class Tag:
        name: str
        created: datetime = datetime(2024, 3, 1, tzinfo=timezone.utc)
        aliases: list = field(default_factory=list)

    await rest_client.create("_apis/tags", "7.1", [Tag("release"), Tag("hotfix", aliases=["hf"])])

    sent = json.loads(http_client.request.await_args.args[2])
    expected = [
        {"name": "release", "created": "2024-03-01T00:00:00+00:00", "aliases": []},
        {"name": "hotfix", "created": "2024-03-01T00:00:00+00:00", "aliases": ["hf"]},
    ]
    if sent != expected:
        pytest.fail(f"Unexpected body {sent!r}")


@pytest.mark.asyncio
async def test_update_content_type(rest_client, http_client) -> None:
    """Test patch documents with their own content type."""
    patch = [{"op": "add", "path": "/fields/System.Title", "value": "x"}]
    await rest_client.update("_apis/wit/workitems/1", "7.1", patch, content_type="application/json-patch+json")

    method, _, _, headers = http_client.request.await_args.args
    if method != "PATCH" or headers["Content-Type"] != "application/json-patch+json; charset=utf-8":
        pytest.fail(f"Unexpected request {method} {headers!r}")


### Responses ###
@pytest.mark.asyncio
async def test_response_deserialized(rest_client, http_client) -> None:
    """Test deserialization of a collection response."""
    http_client.request.return_value = json_response(
        200,
        {"count": 1, "value": [{"id": 1, "status": "completed", "queueTime": "2024-03-01T10:00:00Z"}]},
    )

    response = await rest_client.get_json(
        "_apis/builds",
        "7.1",
        SerializationData(response_type_metadata=BUILD, response_is_collection=True),
    )

    if response.status_code != 200:
        pytest.fail(f"Expected status 200, got {response.status_code}")
    if response.result != [{"id": 1, "status": 2, "queueTime": datetime(2024, 3, 1, 10, tzinfo=timezone.utc)}]:
        pytest.fail(f"Unexpected result {response.result!r}")


@pytest.mark.asyncio
async def test_no_content(rest_client, http_client) -> None:
    """Test that 204 responses have no result."""
    http_client.request.return_value = json_response(204, None, "No Content")
    response = await rest_client.delete("_apis/x/1", "7.1")
    if response.status_code != 204 or response.result is not None:
        pytest.fail(f"Unexpected response {response!r}")


@pytest.mark.asyncio
async def test_non_json_body(rest_client, http_client) -> None:
    """Test that non JSON success bodies are returned as text."""
    http_client.request.return_value = HttpClientResponse(status=200, body=b"plain text")
    response = await rest_client.get_json("_apis/x")
    if response.result != "plain text":
        pytest.fail(f"Expected the text body, got {response.result!r}")


@pytest.mark.asyncio
async def test_error_envelope(rest_client, http_client) -> None:
    """Test that the server's error message and type key become the exception."""
    http_client.request.return_value = json_response(
        404,
        {"message": "Project X does not exist.", "typeKey": "ProjectDoesNotExistException", "typeName": "T"},
        "Not Found",
    )

    with pytest.raises(HttpStatusError) as exc_info:
        await rest_client.get_json("_apis/projects/X", "7.1")

    error = exc_info.value
    if error.status_code != 404 or error.message != "Project X does not exist.":
        pytest.fail(f"Unexpected error {error!r}")
    if error.type_key != "ProjectDoesNotExistException":
        pytest.fail(f"Unexpected type key {error.type_key!r}")


@pytest.mark.asyncio
async def test_error_without_envelope(rest_client, http_client) -> None:
    """Test the generic message when the failure body is not an envelope."""
    http_client.request.return_value = HttpClientResponse(status=500, reason="Server Error", body=b"<html/>")
    with pytest.raises(HttpStatusError, match=r"Failed request: \(500\)"):
        await rest_client.create("_apis/x", "7.1", {"a": 1})


@pytest.mark.asyncio
async def test_redirect_is_failure(rest_client, http_client) -> None:
    """Test that statuses from 300 up are failures."""
    http_client.request.return_value = json_response(302, None, "Found")
    with pytest.raises(HttpStatusError):
        await rest_client.get_json("_apis/x")


### Retries ###
@pytest.mark.asyncio
async def test_get_retries_on_throttling(rest_client, http_client) -> None:
    """Test that reads are retried on throttling statuses."""
    http_client.request.side_effect = [json_response(429, None, "Too Many Requests"), json_response(200, {"ok": 1})]

    response = await rest_client.get_json("_apis/x", "7.1")

    if http_client.request.await_count != 2:
        pytest.fail(f"Expected 2 attempts, got {http_client.request.await_count}")
    if response.result != {"ok": 1}:
        pytest.fail(f"Unexpected result {response.result!r}")


@pytest.mark.asyncio
async def test_retries_exhausted(rest_client, http_client) -> None:
    """Test that the last failure is raised after max_retries attempts."""
    http_client.request.return_value = json_response(503, None, "Service Unavailable")

    with pytest.raises(HttpStatusError) as exc_info:
        await rest_client.options("_apis/x")

    if exc_info.value.status_code != 503:
        pytest.fail(f"Expected status 503, got {exc_info.value.status_code}")
    if http_client.request.await_count != RestClient.MAX_RETRIES:
        pytest.fail(f"Expected {RestClient.MAX_RETRIES} attempts, got {http_client.request.await_count}")


@pytest.mark.asyncio
async def test_writes_are_not_retried(rest_client, http_client) -> None:
    """Test that non idempotent verbs are attempted once."""
    http_client.request.return_value = json_response(503, None, "Service Unavailable")
    with pytest.raises(HttpStatusError):
        await rest_client.create("_apis/x", "7.1", {"a": 1})
    if http_client.request.await_count != 1:
        pytest.fail(f"Expected 1 attempt, got {http_client.request.await_count}")


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(rest_client, http_client) -> None:
    """Test that 4xx statuses other than 408/429 fail immediately."""
    http_client.request.return_value = json_response(400, {"message": "bad"}, "Bad Request")
    with pytest.raises(HttpStatusError):
        await rest_client.get_json("_apis/x")
    if http_client.request.await_count != 1:
        pytest.fail(f"Expected 1 attempt, got {http_client.request.await_count}")


@pytest.mark.asyncio
async def test_transport_errors_propagate(rest_client, http_client) -> None:
    """Test that transport failures are raised as-is."""
    http_client.request.side_effect = TransportError("refused", "https://dev.azure.com/org/_apis/x")
    with pytest.raises(TransportError):
        await rest_client.get_json("_apis/x")


def test_retry_if_status_code() -> None:
    """Test the retry predicate."""
    if not RestClient._retry_if_status_code(HttpStatusError(429)):
        pytest.fail("429 should be retried")
    if RestClient._retry_if_status_code(HttpStatusError(404)):
        pytest.fail("404 should not be retried")
    if RestClient._retry_if_status_code(ValueError()):
        pytest.fail("Other exceptions should not be retried")


def test_enum_to_string_exposed() -> None:
    """Test the enum helper available on the client class."""
    if RestClient.enum_to_string(STATUS, 1, upper_first=True) != "InProgress":
        pytest.fail("Expected 'InProgress'")
