"""Entry points for resource API classes.

Resource clients (builds, git, work items, ...) are thin: each method names an
area, a location id, its route and query values and the contract metadata of
its request and response. ClientBase wires the plumbing those methods call
into, and Connection hands out one client instance per client class.

Call flow of ClientBase.send:
    1. VersioningClient resolves the location and negotiates the api-version
    2. The route template is expanded into a request URL
    3. RestClient serializes the body, sends the request and deserializes
       the response

Example:
    ```python
    from ado_rest_client.core.connection import ClientBase, Connection
    from ado_rest_client.core.contracts import SerializationData
    from ado_rest_client.core.settings import ClientSettings

    class BuildClient(ClientBase):
        AREA = "build"
        BUILDS_LOCATION = "0cd358e1-9217-4d94-8269-1c1ee6f93dcf"

        async def get_build(self, project: str, build_id: int) -> dict:
            response = await self.send(
                "GET",
                "7.1",
                self.AREA,
                self.BUILDS_LOCATION,
                route_values={"project": project, "buildId": build_id},
                serialization_data=SerializationData(response_type_metadata=Build),
            )
            return response.result

    async with Connection.from_settings(ClientSettings.from_env()) as connection:
        build = await connection.get_client(BuildClient).get_build("MyProject", 42)
    ```
"""

import logging
from collections.abc import Awaitable, Iterable, Mapping
from typing import Any, TypeVar

from ado_rest_client.core.contracts import SerializationData
from ado_rest_client.core.models import RestResponse
from ado_rest_client.core.rest_client import JSON_CONTENT_TYPE, OCTET_STREAM_CONTENT_TYPE, RestClient
from ado_rest_client.core.settings import ClientSettings
from ado_rest_client.core.transport import HttpClient
from ado_rest_client.core.versioning import VersioningClient
from ado_rest_client.handlers import RequestHandler

ClientType = TypeVar("ClientType", bound="ClientBase")


class ClientBase:
    """Owns the transport, REST and versioning clients of one resource client."""

    def __init__(
        self,
        base_url: str,
        handlers: Iterable[RequestHandler] = (),
        settings: ClientSettings | None = None,
        initialization: Awaitable[Any] | None = None,
    ) -> None:
        settings = settings or ClientSettings(base_url=base_url)
        self.base_url = base_url.rstrip("/")
        self.http_client: HttpClient = settings.create_http_client(list(handlers))
        self.rest_client = RestClient(self.http_client, self.base_url, max_retries=settings.max_retries)
        self.versioning_client = VersioningClient(self.base_url, self.rest_client, initialization)

    async def send(  # noqa: PLR0913
        self,
        method: str,
        api_version: str | None,
        area: str,
        location_id: str,
        route_values: dict[str, Any] | None = None,
        query_params: dict[str, Any] | None = None,
        body: Any = None,
        serialization_data: SerializationData | None = None,
        custom_headers: Mapping[str, str] | None = None,
        content_type: str = JSON_CONTENT_TYPE,
    ) -> RestResponse:
        """
        Call one REST operation.

        Args:
            method: HTTP verb
            api_version: Requested api-version, negotiated against the server
            area: Area of the location
            location_id: Location id
            route_values: Route template values
            query_params: Query parameters
            body: Request body for POST/PATCH/PUT
            serialization_data: Request/response contract metadata
            custom_headers: Extra request headers
            content_type: Content type of the body

        Raises:
            VersioningError: Before any request when the location or version cannot be resolved
            HttpStatusError: When the server answers with a failure status
            TransportError: When the request fails at the network level
        """
        versioning = await self.versioning_client.get_versioning_data(
            api_version,
            area,
            location_id,
            route_values,
            query_params,
        )
        url, version = versioning.request_url, versioning.api_version
        method = method.upper()

        if method == "GET":
            return await self.rest_client.get_json(url, version, serialization_data, custom_headers)
        if method == "DELETE":
            return await self.rest_client.delete(url, version, serialization_data, custom_headers)
        if method == "OPTIONS":
            return await self.rest_client.options(url, version, serialization_data, custom_headers)

        writers = {
            "POST": self.rest_client.create,
            "PATCH": self.rest_client.update,
            "PUT": self.rest_client.replace,
        }
        if method not in writers:
            msg = f"Unsupported HTTP method: {method}"
            raise ValueError(msg)
        return await writers[method](url, version, body, serialization_data, custom_headers, content_type)

    async def send_stream(  # noqa: PLR0913
        self,
        method: str,
        api_version: str | None,
        area: str,
        location_id: str,
        stream: Any,
        route_values: dict[str, Any] | None = None,
        query_params: dict[str, Any] | None = None,
        serialization_data: SerializationData | None = None,
        custom_headers: Mapping[str, str] | None = None,
        content_type: str = OCTET_STREAM_CONTENT_TYPE,
    ) -> RestResponse:
        """Upload a stream to one REST operation."""
        versioning = await self.versioning_client.get_versioning_data(
            api_version,
            area,
            location_id,
            route_values,
            query_params,
        )
        return await self.rest_client.upload_stream(
            method,
            versioning.request_url,
            stream,
            versioning.api_version,
            serialization_data,
            custom_headers,
            content_type,
        )

    async def close(self) -> None:
        await self.http_client.close()

    async def __aenter__(self: ClientType) -> ClientType:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.close()


class Connection:
    """A server URL plus credentials, handing out one client per client class."""

    def __init__(
        self,
        base_url: str,
        handlers: Iterable[RequestHandler] = (),
        settings: ClientSettings | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.handlers = tuple(handlers)
        self.settings = settings or ClientSettings(base_url=self.base_url)
        self._clients: dict[tuple[type, str], ClientBase] = {}

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "Connection":
        """Create a connection whose handlers come from the auth settings."""
        return cls(settings.base_url, settings.auth.create_handlers(), settings)

    def get_client(self, client_type: type[ClientType], base_url: str | None = None) -> ClientType:
        """Return the client of the given class, creating it on first use."""
        url = (base_url or self.base_url).rstrip("/")
        key = (client_type, url)
        if key not in self._clients:
            logging.debug("connection: creating %s for %s", client_type.__name__, url)
            self._clients[key] = client_type(url, self.handlers, self.settings)
        return self._clients[key]

    async def close(self) -> None:
        for client in self._clients.values():
            await client.close()
        self._clients.clear()

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.close()
