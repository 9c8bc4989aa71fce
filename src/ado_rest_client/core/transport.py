"""Low-level HTTP transport with pluggable request handlers.

This module issues the actual HTTP requests. It knows nothing about JSON,
contracts or versioning. It runs the configured handler chain over every
outgoing request and gives a handler the chance to answer a 401 challenge.
It also turns network failures into TransportError.

Key Components:
    HttpClient: aiohttp based client owning the session and the handler chain
    RequestOptions: Mutable description of an outgoing request that handlers edit
    HttpClientResponse: Fully buffered response (status, headers, body)
    create_accept_header: Builds "application/json;api-version=..." values

Failure semantics:
    - Network level failures (DNS, refused connection, TLS, timeout) raise
      TransportError / RequestTimeoutError and carry no status code
    - Every HTTP status, including 4xx/5xx, is returned as a response; the
      REST client decides what counts as failure

Example:
    ```python
    from ado_rest_client.core.transport import HttpClient
    from ado_rest_client.handlers import PersonalAccessTokenCredentialHandler

    async with HttpClient(handlers=[PersonalAccessTokenCredentialHandler("pat")]) as http:
        response = await http.get("https://dev.azure.com/org/_apis/projects")
        print(response.status, response.json())

        # Download without buffering the body
        async with http.get_stream("https://dev.azure.com/org/_apis/resources/Containers/1") as stream:
            async for chunk in stream.content.iter_chunked(65536):
                ...
    ```
"""

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiohttp

from ado_rest_client.core.exceptions import RequestTimeoutError, TransportError

if TYPE_CHECKING:
    from ado_rest_client.handlers.base import RequestHandler


def create_accept_header(content_type: str, api_version: str | None = None) -> str:
    """Build an Accept header value embedding the API version."""
    return f"{content_type};api-version={api_version}" if api_version else content_type


@dataclass
class RequestOptions:
    """Outgoing request as seen by request handlers."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class HttpClientResponse:
    """A buffered HTTP response."""

    status: int
    reason: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300  # noqa: PLR2004

    def header_values(self, name: str) -> list[str]:
        """All values of a (possibly repeated) header."""
        if hasattr(self.headers, "getall"):
            return list(self.headers.getall(name, []))
        value = self.headers.get(name)
        return [value] if value is not None else []

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")

    def json(self) -> Any:
        """Parse the body as JSON; an empty body parses as None."""
        if not self.body.strip():
            return None
        return json.loads(self.body)


class HttpClient:
    """Sends HTTP requests through an ordered chain of request handlers."""

    DEFAULT_USER_AGENT = "ado-rest-client"
    DEFAULT_SOCKET_TIMEOUT = 60  # Socket read timeout in seconds
    DEFAULT_CONNECT_TIMEOUT = 10  # Connection timeout in seconds
    UNAUTHORIZED = 401

    def __init__(
        self,
        user_agent: str | None = None,
        handlers: Iterable["RequestHandler"] = (),
        socket_timeout: float | None = None,
        connect_timeout: float | None = None,
        ignore_ssl_error: bool = False,
        proxy: str | None = None,
    ) -> None:
        self.user_agent = user_agent or self.DEFAULT_USER_AGENT
        self.handlers = tuple(handlers)
        self.socket_timeout = socket_timeout or self.DEFAULT_SOCKET_TIMEOUT
        self.connect_timeout = connect_timeout or self.DEFAULT_CONNECT_TIMEOUT
        self.ignore_ssl_error = ignore_ssl_error
        self.proxy = proxy

        self._session: aiohttp.ClientSession | None = None

    ### Session methods
    async def get_session(self) -> aiohttp.ClientSession:
        """Lazy initialization of the shared session."""
        if self._session is None or self._session.closed:
            self._session = self._create_session()
        return self._session

    def _create_session(self, limit: int = 100) -> aiohttp.ClientSession:
        """Creates a new aiohttp client session."""
        return aiohttp.ClientSession(
            headers={"User-Agent": self.user_agent},
            timeout=aiohttp.ClientTimeout(
                total=None,
                sock_connect=self.connect_timeout,
                sock_read=self.socket_timeout,
            ),
            connector=aiohttp.TCPConnector(limit=limit, ssl=not self.ignore_ssl_error),
        )

    @contextlib.asynccontextmanager
    async def exclusive_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        """A single-connection session, so a multi-leg handshake stays on one socket."""
        session = self._create_session(limit=1)
        try:
            yield session
        finally:
            await session.close()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    ### Context manager methods
    async def __aenter__(self) -> "HttpClient":
        await self.get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.close()

    ### Request methods
    def prepare_request(self, method: str, url: str, headers: Mapping[str, str] | None = None) -> RequestOptions:
        """Build request options and run every handler's prepare_request over them in order."""
        options = RequestOptions(method=method.upper(), url=url, headers=dict(headers or {}))
        for handler in self.handlers:
            handler.prepare_request(options)
        return options

    async def request(
        self,
        method: str,
        url: str,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpClientResponse:
        """
        Send a request through the handler chain.

        A 401 response is handed to the first handler that claims it; that
        handler performs its own round trips and its final response is
        returned. Bodies that cannot be replayed (streams) skip this step.

        Raises:
            TransportError: When the request fails before a status is received
            RequestTimeoutError: When the socket timeout elapses
        """
        options = self.prepare_request(method, url, headers)
        session = await self.get_session()
        logging.debug("transport: %s %s", options.method, options.url)
        response = await self.send_raw(session, options, data)

        if response.status == self.UNAUTHORIZED:
            handler = self._authentication_handler_for(response)
            if handler is not None:
                if not _is_replayable(data):
                    logging.warning("transport: cannot replay a streamed body to authenticate - %s", url)
                    return response
                logging.debug("transport: %s answers the 401 challenge", type(handler).__name__)
                return await handler.handle_authentication(self, options, data)

        return response

    async def send_raw(
        self,
        session: aiohttp.ClientSession,
        options: RequestOptions,
        data: Any = None,
    ) -> HttpClientResponse:
        """Send prepared options as-is on the given session and buffer the response."""
        try:
            async with session.request(
                options.method,
                options.url,
                data=data,
                headers=options.headers,
                proxy=self.proxy,
            ) as response:
                body = await response.read()
                return HttpClientResponse(
                    status=response.status,
                    reason=response.reason,
                    headers=response.headers,
                    body=body,
                    url=str(response.url),
                )
        except asyncio.TimeoutError as e:
            logging.error("transport: request timed out - %s", options.url)  # noqa: TRY400
            raise RequestTimeoutError(options.url) from e
        except aiohttp.ClientError as e:
            logging.error("transport: aiohttp error: %s - %s", type(e).__name__, options.url)  # noqa: TRY400
            raise TransportError(f"{type(e).__name__}: {e}", options.url) from e

    async def get(self, url: str, headers: Mapping[str, str] | None = None) -> HttpClientResponse:
        return await self.request("GET", url, headers=headers)

    async def options(self, url: str, headers: Mapping[str, str] | None = None) -> HttpClientResponse:
        return await self.request("OPTIONS", url, headers=headers)

    async def delete(self, url: str, headers: Mapping[str, str] | None = None) -> HttpClientResponse:
        return await self.request("DELETE", url, headers=headers)

    async def post(self, url: str, data: Any, headers: Mapping[str, str] | None = None) -> HttpClientResponse:
        return await self.request("POST", url, data, headers)

    async def patch(self, url: str, data: Any, headers: Mapping[str, str] | None = None) -> HttpClientResponse:
        return await self.request("PATCH", url, data, headers)

    async def put(self, url: str, data: Any, headers: Mapping[str, str] | None = None) -> HttpClientResponse:
        return await self.request("PUT", url, data, headers)

    ### Streaming methods
    async def send_stream(
        self,
        method: str,
        url: str,
        stream: Any,
        headers: Mapping[str, str] | None = None,
    ) -> HttpClientResponse:
        """Send a body read from a file object or async iterable of bytes without buffering it."""
        return await self.request(method, url, stream, headers)

    async def send_file(
        self,
        method: str,
        url: str,
        path: str | Path,
        headers: Mapping[str, str] | None = None,
    ) -> HttpClientResponse:
        """Stream a local file as the request body."""
        with Path(path).open("rb") as file:
            return await self.send_stream(method, url, file, headers)

    @contextlib.asynccontextmanager
    async def get_stream(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncIterator[aiohttp.ClientResponse]:
        """
        GET a resource and yield the unbuffered response.

        Read the body from ``response.content``. Only handlers that
        authenticate proactively apply; 401 challenges are not replayed.
        """
        options = self.prepare_request("GET", url, headers)
        session = await self.get_session()
        try:
            async with session.get(options.url, headers=options.headers, proxy=self.proxy) as response:
                yield response
        except asyncio.TimeoutError as e:
            logging.error("transport: stream timed out - %s", url)  # noqa: TRY400
            raise RequestTimeoutError(url) from e
        except aiohttp.ClientError as e:
            logging.error("transport: aiohttp error: %s - %s", type(e).__name__, url)  # noqa: TRY400
            raise TransportError(f"{type(e).__name__}: {e}", url) from e

    def _authentication_handler_for(self, response: HttpClientResponse) -> "RequestHandler | None":
        for handler in self.handlers:
            if handler.can_handle_authentication(response):
                return handler
        return None


def _is_replayable(data: Any) -> bool:
    return data is None or isinstance(data, (bytes, bytearray, str))
