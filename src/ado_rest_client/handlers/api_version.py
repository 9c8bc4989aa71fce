"""Handler pinning the API version of every request."""

from ado_rest_client.core.transport import RequestOptions, create_accept_header

from .base import RequestHandler


class ApiVersionHandler(RequestHandler):
    """Sets the Accept header to request JSON at a fixed API version."""

    def __init__(self, api_version: str) -> None:
        self.api_version = api_version

    def prepare_request(self, options: RequestOptions) -> None:
        options.headers["Accept"] = create_accept_header("application/json", self.api_version)
