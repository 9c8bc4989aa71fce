"""Basic authentication handlers."""

import base64

from ado_rest_client.core.transport import RequestOptions

from .base import RequestHandler


class BasicCredentialHandler(RequestHandler):
    """Sends username and password proactively as a Basic Authorization header."""

    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password

    def prepare_request(self, options: RequestOptions) -> None:
        credentials = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
        options.headers["Authorization"] = f"Basic {credentials}"


class PersonalAccessTokenCredentialHandler(BasicCredentialHandler):
    """
    Personal access token authentication.

    Azure DevOps takes a PAT as the password of Basic auth with an empty
    username.
    """

    def __init__(self, token: str) -> None:
        super().__init__("", token)
