"""Bearer token authentication handler."""

import logging
from typing import Any

from azure.core.exceptions import ClientAuthenticationError
from azure.identity import DefaultAzureCredential

from ado_rest_client.core.exceptions import AuthenticationError
from ado_rest_client.core.transport import RequestOptions

from .base import RequestHandler

AZURE_DEVOPS_RESOURCE_ID = "499b84ac-1321-427f-aa17-267ca6975798"  # Azure DevOps resource ID


class BearerCredentialHandler(RequestHandler):
    """Sends an OAuth/Entra ID token proactively as a Bearer Authorization header."""

    def __init__(self, token: str) -> None:
        self.token = token

    def prepare_request(self, options: RequestOptions) -> None:
        options.headers["Authorization"] = f"Bearer {self.token}"

    @classmethod
    def from_azure_identity(cls, credential: Any = None) -> "BearerCredentialHandler":
        """
        Create a handler from an Azure identity credential.

        Uses DefaultAzureCredential unless a credential is given, which covers
        managed identity, environment variables, the Azure CLI and more.

        Raises:
            AuthenticationError: If no token can be obtained.
        """
        credential = credential or DefaultAzureCredential()
        try:
            token = credential.get_token(f"{AZURE_DEVOPS_RESOURCE_ID}/.default").token
        except ClientAuthenticationError as e:
            logging.exception("bearer: failed to retrieve access token")
            raise AuthenticationError from e
        if not token:
            raise AuthenticationError
        return cls(token)
