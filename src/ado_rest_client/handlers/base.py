"""Base class of the request handler chain."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ado_rest_client.core.transport import HttpClientResponse, RequestOptions

if TYPE_CHECKING:
    from ado_rest_client.core.transport import HttpClient


class RequestHandler(ABC):
    """
    One link of the handler chain run by HttpClient.

    Every handler edits outgoing requests in prepare_request. A handler that
    implements a challenge/response scheme also claims matching 401 responses
    in can_handle_authentication and performs the extra round trips in
    handle_authentication.
    """

    @abstractmethod
    def prepare_request(self, options: RequestOptions) -> None:
        """Add or change headers of an outgoing request."""

    def can_handle_authentication(self, response: HttpClientResponse) -> bool:  # noqa: ARG002
        """Whether this handler can answer the given 401 response."""
        return False

    async def handle_authentication(
        self,
        http_client: "HttpClient",
        options: RequestOptions,
        data: Any,
    ) -> HttpClientResponse:
        """Authenticate and resend the original request, returning the final response."""
        raise NotImplementedError
