"""JSON REST client on top of the HTTP transport.

This module performs one HTTP verb against a resolved URL: it serializes the
request body with the contract serializer, sends it with an Accept header
carrying the negotiated API version, maps failure statuses to HttpStatusError
and deserializes successful bodies back into in-memory values.

Key Components:
    RestClient: get_json/options/create/update/replace/delete and
        upload_file/upload_stream

Features:
    - Request bodies are serialized from a deep copy; caller objects are never mutated
    - Server error envelopes ({"message": ..., "typeKey": ...}) become the error message
    - {"count": N, "value": [...]} responses are unwrapped when the call says so
    - Idempotent reads are retried with exponential backoff on throttling and
      gateway statuses

Dependencies:
    - transport.py: HttpClient for the actual requests
    - serializer.py: Contract (de)serialization
    - tenacity: Retry with exponential backoff

Example:
    ```python
    from ado_rest_client.core.contracts import SerializationData
    from ado_rest_client.core.rest_client import RestClient
    from ado_rest_client.core.transport import HttpClient

    async with HttpClient(handlers=handlers) as http:
        rest = RestClient(http, base_url="https://dev.azure.com/org")
        response = await rest.get_json(
            "MyProject/_apis/build/builds",
            "7.1",
            SerializationData(response_type_metadata=Build, response_is_collection=True),
        )
        for build in response.result:
            print(build["id"], build["queueTime"])
    ```

Raises:
    HttpStatusError: When the server answers with a status >= 300
    TransportError: When the request never got a status
"""

import dataclasses
import enum
import json
import logging
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any, ClassVar

import tenacity

from ado_rest_client.core.contracts import SerializationData
from ado_rest_client.core.exceptions import HttpStatusError
from ado_rest_client.core.models import RestResponse
from ado_rest_client.core.serializer import deserialize, enum_to_string, serialize
from ado_rest_client.core.transport import HttpClient, HttpClientResponse, create_accept_header

JSON_CONTENT_TYPE = "application/json"
OCTET_STREAM_CONTENT_TYPE = "application/octet-stream"


class RestClient:
    """Performs JSON REST calls with contract (de)serialization and error mapping."""

    MAX_RETRIES = 3  # Maximum number of attempts for idempotent reads
    RETRY_STATUS_CODES: ClassVar[list[int]] = [
        408,
        429,
        502,
        503,
        504,
    ]  # Status codes to retry on
    IDEMPOTENT_METHODS: ClassVar[tuple[str, ...]] = ("GET", "OPTIONS")
    FAILURE_STATUS = 300

    enum_to_string = staticmethod(enum_to_string)

    def __init__(
        self,
        http_client: HttpClient,
        base_url: str | None = None,
        max_retries: int = MAX_RETRIES,
        retry_wait: tenacity.wait.wait_base | None = None,
    ) -> None:
        self.http_client = http_client
        self.base_url = base_url.rstrip("/") if base_url else None
        self.max_retries = max(1, max_retries)
        self.retry_wait = retry_wait or tenacity.wait_exponential(multiplier=1, min=1, max=10)

    def resolve_url(self, url: str) -> str:
        """Resolve a relative URL against the base URL."""
        if self.base_url is None or "://" in url:
            return url
        return f"{self.base_url}/{url.lstrip('/')}"

    ### Verb methods
    async def get_json(
        self,
        url: str,
        api_version: str | None = None,
        serialization_data: SerializationData | None = None,
        custom_headers: Mapping[str, str] | None = None,
    ) -> RestResponse:
        """GET a JSON resource."""
        return await self._send("GET", url, api_version, None, serialization_data, custom_headers)

    async def options(
        self,
        url: str,
        api_version: str | None = None,
        serialization_data: SerializationData | None = None,
        custom_headers: Mapping[str, str] | None = None,
    ) -> RestResponse:
        """Issue an OPTIONS request, as used for location discovery."""
        return await self._send("OPTIONS", url, api_version, None, serialization_data, custom_headers)

    async def create(
        self,
        url: str,
        api_version: str | None,
        body: Any,
        serialization_data: SerializationData | None = None,
        custom_headers: Mapping[str, str] | None = None,
        content_type: str = JSON_CONTENT_TYPE,
    ) -> RestResponse:
        """POST a JSON body."""
        return await self._send("POST", url, api_version, body, serialization_data, custom_headers, content_type)

    async def update(
        self,
        url: str,
        api_version: str | None,
        body: Any,
        serialization_data: SerializationData | None = None,
        custom_headers: Mapping[str, str] | None = None,
        content_type: str = JSON_CONTENT_TYPE,
    ) -> RestResponse:
        """PATCH a JSON body (pass content_type="application/json-patch+json" for patch documents)."""
        return await self._send("PATCH", url, api_version, body, serialization_data, custom_headers, content_type)

    async def replace(
        self,
        url: str,
        api_version: str | None,
        body: Any,
        serialization_data: SerializationData | None = None,
        custom_headers: Mapping[str, str] | None = None,
        content_type: str = JSON_CONTENT_TYPE,
    ) -> RestResponse:
        """PUT a JSON body."""
        return await self._send("PUT", url, api_version, body, serialization_data, custom_headers, content_type)

    async def delete(
        self,
        url: str,
        api_version: str | None = None,
        serialization_data: SerializationData | None = None,
        custom_headers: Mapping[str, str] | None = None,
    ) -> RestResponse:
        """DELETE a resource."""
        return await self._send("DELETE", url, api_version, None, serialization_data, custom_headers)

    async def upload_file(
        self,
        method: str,
        url: str,
        path: str | Path,
        api_version: str | None = None,
        serialization_data: SerializationData | None = None,
        custom_headers: Mapping[str, str] | None = None,
        content_type: str = OCTET_STREAM_CONTENT_TYPE,
    ) -> RestResponse:
        """Stream a local file as the request body and parse the JSON answer."""
        with Path(path).open("rb") as file:
            return await self.upload_stream(
                method,
                url,
                file,
                api_version,
                serialization_data,
                custom_headers,
                content_type,
            )

    async def upload_stream(
        self,
        method: str,
        url: str,
        stream: Any,
        api_version: str | None = None,
        serialization_data: SerializationData | None = None,
        custom_headers: Mapping[str, str] | None = None,
        content_type: str = OCTET_STREAM_CONTENT_TYPE,
    ) -> RestResponse:
        """Send a file object or async iterable of bytes as the request body and parse the JSON answer."""
        serialization_data = serialization_data or SerializationData()
        headers = self._headers(api_version, custom_headers)
        headers["Content-Type"] = content_type
        response = await self.http_client.send_stream(method, self.resolve_url(url), stream, headers)
        return self._process_response(response, serialization_data)

    ### Request processing
    async def _send(  # noqa: PLR0913
        self,
        method: str,
        url: str,
        api_version: str | None,
        body: Any,
        serialization_data: SerializationData | None,
        custom_headers: Mapping[str, str] | None,
        content_type: str = JSON_CONTENT_TYPE,
    ) -> RestResponse:
        serialization_data = serialization_data or SerializationData()
        headers = self._headers(api_version, custom_headers)

        data = None
        if body is not None:
            payload = serialize(body, serialization_data.request_type_metadata, preserve_original=True)
            data = json.dumps(payload, default=_json_default).encode("utf-8")
            headers["Content-Type"] = f"{content_type}; charset=utf-8"

        attempts = self.max_retries if method in self.IDEMPOTENT_METHODS else 1
        retrying = tenacity.AsyncRetrying(
            wait=self.retry_wait,
            stop=tenacity.stop_after_attempt(attempts),
            retry=tenacity.retry_if_exception(self._retry_if_status_code),
            before_sleep=tenacity.before_sleep_log(logging.getLogger(), logging.WARNING),
            reraise=True,
        )
        return await retrying(self._attempt, method, self.resolve_url(url), data, headers, serialization_data)

    async def _attempt(
        self,
        method: str,
        url: str,
        data: bytes | None,
        headers: dict[str, str],
        serialization_data: SerializationData,
    ) -> RestResponse:
        response = await self.http_client.request(method, url, data, headers)
        return self._process_response(response, serialization_data)

    @staticmethod
    def _retry_if_status_code(exception: BaseException) -> bool:
        """Return True for HttpStatusError with a throttling or gateway status, False otherwise."""
        return isinstance(exception, HttpStatusError) and exception.status_code in RestClient.RETRY_STATUS_CODES

    def _headers(self, api_version: str | None, custom_headers: Mapping[str, str] | None) -> dict[str, str]:
        return {"Accept": create_accept_header(JSON_CONTENT_TYPE, api_version), **(custom_headers or {})}

    def _process_response(self, response: HttpClientResponse, serialization_data: SerializationData) -> RestResponse:
        """Map failure statuses to HttpStatusError, otherwise deserialize the body."""
        try:
            body = response.json()
        except ValueError:
            logging.debug("rest: response body is not JSON - %s", response.url)
            body = response.text() or None

        if response.status >= self.FAILURE_STATUS:
            message, type_key, type_name = _error_details(body)
            logging.error("rest: [%s] %s - %s", response.status, message or response.reason, response.url)
            raise HttpStatusError(response.status, message, type_key, type_name, body)

        result = deserialize(
            body,
            serialization_data.response_type_metadata,
            unwrap_wrapped_collections=serialization_data.response_is_collection,
        )
        return RestResponse(status_code=response.status, result=result, headers=dict(response.headers))


def _error_details(body: Any) -> tuple[str | None, str | None, str | None]:
    """Extract message, typeKey and typeName from a server error envelope."""
    if not isinstance(body, dict):
        return None, None, None
    message = body.get("message") or body.get("Message")
    if not message and isinstance(body.get("value"), dict):
        message = body["value"].get("message") or body["value"].get("Message")
    return message, body.get("typeKey"), body.get("typeName")


def _json_default(value: Any) -> Any:
    """Encode values the contract metadata did not translate."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    msg = f"Object of type {type(value).__name__} is not JSON serializable"
    raise TypeError(msg)
