"""Request handlers for the HTTP transport.

Handlers form an ordered chain that HttpClient runs over every request.
Each one may edit the outgoing headers, and challenge/response schemes may
also answer a 401 with extra round trips.

Components:
    RequestHandler: Abstract base class of all handlers
    ApiVersionHandler: Pins the api-version in the Accept header
    BasicCredentialHandler: Basic auth with username and password
    PersonalAccessTokenCredentialHandler: Basic auth with a PAT
    BearerCredentialHandler: Bearer tokens, optionally from azure-identity
    NtlmCredentialHandler: NTLM negotiate/challenge/authenticate handshake

Example:
    ```python
    from ado_rest_client.core.transport import HttpClient
    from ado_rest_client.handlers import ApiVersionHandler, NtlmCredentialHandler

    http = HttpClient(
        handlers=[
            ApiVersionHandler("7.1"),
            NtlmCredentialHandler("builder", "secret", domain="CORP"),
        ],
    )
    ```
"""

from .api_version import ApiVersionHandler
from .base import RequestHandler
from .basic import BasicCredentialHandler, PersonalAccessTokenCredentialHandler
from .bearer import BearerCredentialHandler
from .ntlm import NtlmCredentialHandler

__all__ = [
    "ApiVersionHandler",
    "BasicCredentialHandler",
    "BearerCredentialHandler",
    "NtlmCredentialHandler",
    "PersonalAccessTokenCredentialHandler",
    "RequestHandler",
]
