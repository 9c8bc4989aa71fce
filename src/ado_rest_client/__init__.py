"""Azure DevOps REST client plumbing.

The generic layer every generated Azure DevOps resource client builds on:
location discovery and API version negotiation, contract (de)serialization,
JSON REST verbs and an aiohttp transport with pluggable authentication.

Package Structure:
    core: Transport, serializer, REST and versioning clients
        - transport: HTTP requests through the handler chain
        - contracts: Contract metadata types
        - serializer: Wire JSON <-> in-memory value conversion
        - rest_client: JSON verbs with error mapping
        - versioning: Location cache and api-version negotiation
        - settings: YAML/environment settings
        - connection: ClientBase and Connection for resource clients
        - exceptions: Error types

    handlers: Request handlers (api-version, Basic, PAT, Bearer, NTLM)

    utils: Route template expansion and query strings

Examples:
    Programmatic Usage:
        ```python
        import os

        from ado_rest_client import (
            ClientBase,
            Connection,
            ContractMetadata,
            DateField,
            PersonalAccessTokenCredentialHandler,
            SerializationData,
        )

        Project = ContractMetadata({"lastUpdateTime": DateField()})

        class CoreClient(ClientBase):
            async def get_projects(self) -> list[dict]:
                response = await self.send(
                    "GET",
                    "7.1",
                    "core",
                    "603fe2ac-9723-48b9-88ad-09305aa6c6e1",
                    query_params={"$top": 100},
                    serialization_data=SerializationData(
                        response_type_metadata=Project,
                        response_is_collection=True,
                    ),
                )
                return response.result

        async with Connection(
            f"https://dev.azure.com/{os.getenv('ADO_ORGANIZATION')}",
            handlers=[PersonalAccessTokenCredentialHandler(os.getenv("ADO_TOKEN"))],
        ) as connection:
            projects = await connection.get_client(CoreClient).get_projects()
        ```
"""

__version__ = "0.1.0"

from ado_rest_client.core import (
    AdoRestClientError,
    ApiResourceLocation,
    ArrayField,
    AuthenticationError,
    AuthKind,
    AuthSettings,
    ClientBase,
    ClientSettings,
    ClientVersioningData,
    ConfigurationError,
    Connection,
    ContractEnumMetadata,
    ContractField,
    ContractMetadata,
    ContractSerializer,
    DateField,
    DictionaryField,
    EnumField,
    HttpClient,
    HttpStatusError,
    InvalidApiResourceVersionError,
    LocationNotFoundError,
    PlainField,
    RequestTimeoutError,
    ResourceVersion,
    RestClient,
    RestResponse,
    SerializationData,
    TransportError,
    VersioningClient,
    VersioningError,
)
from ado_rest_client.handlers import (
    ApiVersionHandler,
    BasicCredentialHandler,
    BearerCredentialHandler,
    NtlmCredentialHandler,
    PersonalAccessTokenCredentialHandler,
    RequestHandler,
)

__all__ = [
    "AdoRestClientError",
    "ApiResourceLocation",
    "ApiVersionHandler",
    "ArrayField",
    "AuthKind",
    "AuthSettings",
    "AuthenticationError",
    "BasicCredentialHandler",
    "BearerCredentialHandler",
    "ClientBase",
    "ClientSettings",
    "ClientVersioningData",
    "ConfigurationError",
    "Connection",
    "ContractEnumMetadata",
    "ContractField",
    "ContractMetadata",
    "ContractSerializer",
    "DateField",
    "DictionaryField",
    "EnumField",
    "HttpClient",
    "HttpStatusError",
    "InvalidApiResourceVersionError",
    "LocationNotFoundError",
    "NtlmCredentialHandler",
    "PersonalAccessTokenCredentialHandler",
    "PlainField",
    "RequestHandler",
    "RequestTimeoutError",
    "ResourceVersion",
    "RestClient",
    "RestResponse",
    "SerializationData",
    "TransportError",
    "VersioningClient",
    "VersioningError",
    "__version__",
]
