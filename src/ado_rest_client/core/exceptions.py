"""Custom exceptions for the REST client plumbing.

This module defines the exception hierarchy raised by the transport, REST and
versioning layers. Transport failures and HTTP status failures are kept as
separate branches because callers branch on the presence of a status code.

Exception Categories:
    Authentication: Errors obtaining or applying credentials
    Configuration: Errors related to invalid settings
    Transport: Network level failures (no HTTP status available)
    HTTP: The server answered with a failure status code
    Versioning: Location lookup or API version negotiation failures

Exception Hierarchy:
    AdoRestClientError
    ├── AuthenticationError
    ├── ConfigurationError
    ├── TransportError
    │   └── RequestTimeoutError
    ├── HttpStatusError
    └── VersioningError
        ├── LocationNotFoundError
        └── InvalidApiResourceVersionError

Usage:
    ```python
    from ado_rest_client.core.exceptions import HttpStatusError, TransportError

    try:
        response = await rest_client.get_json(url, "7.1")
    except HttpStatusError as e:
        if e.status_code == 404:
            print("Not found")
    except TransportError:
        print("Server unreachable")
    ```

Note:
    Serialization anomalies never raise. The serializer passes unexpected
    values through unchanged.
"""

from typing import Any


class AdoRestClientError(Exception):
    """Base exception for the REST client."""


class AuthenticationError(AdoRestClientError):
    """Raised when credentials cannot be obtained or applied."""

    def __init__(self, message: str = "Failed to authenticate with Azure DevOps") -> None:
        super().__init__(message)


class ConfigurationError(AdoRestClientError):
    """Raised when client settings are invalid."""

    def __init__(self, message: str = "Invalid client configuration") -> None:
        super().__init__(message)


class TransportError(AdoRestClientError):
    """Raised when a request fails before any HTTP status is received."""

    def __init__(self, message: str = "Request failed at the transport level", url: str | None = None) -> None:
        self.url = url
        super().__init__(message)

    @property
    def status_code(self) -> None:
        """Transport failures never carry a status code."""
        return None


class RequestTimeoutError(TransportError):
    """Raised when the socket timeout elapses."""

    def __init__(self, url: str | None = None) -> None:
        super().__init__(f"Request timed out: {url}" if url else "Request timed out", url)


class HttpStatusError(AdoRestClientError):
    """
    Raised when the server answers with a failure status (>= 300).

    Attributes:
        status_code: HTTP status code returned by the server
        message: Server supplied message, or a generic one naming the status
        type_key: Server exception type key, when the error envelope has one
        type_name: Server exception type name, when the error envelope has one
        result: Parsed JSON body of the failure response, if any
    """

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        type_key: str | None = None,
        type_name: str | None = None,
        result: Any = None,
    ) -> None:
        self.status_code = status_code
        self.message = message or f"Failed request: ({status_code})"
        self.type_key = type_key
        self.type_name = type_name
        self.result = result
        super().__init__(self.message)


class VersioningError(AdoRestClientError):
    """Base class for location and API version resolution errors."""


class LocationNotFoundError(VersioningError):
    """Raised when the server does not expose the requested location."""

    def __init__(self, area: str, location_id: str) -> None:
        self.area = area
        self.location_id = location_id
        super().__init__(f"Failed to find api location for area: {area} id: {location_id}")


class InvalidApiResourceVersionError(VersioningError):
    """Raised when the requested API version is outside the location's supported range."""

    def __init__(self, message: str = "Requested API version is not supported by the server") -> None:
        super().__init__(message)
