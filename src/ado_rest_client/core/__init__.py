"""Core subpackage of the Azure DevOps REST client plumbing.

This subpackage provides the layers shared by every resource client: the HTTP
transport, the contract serializer, the JSON REST client and the versioning
client that resolves locations and API versions.

Modules:
    transport: aiohttp transport running the request handler chain
    contracts: Contract metadata (field kinds, enum maps, per-call bundles)
    serializer: Metadata driven conversion between wire JSON and values
    rest_client: JSON verbs with error mapping and retries
    versioning: Location discovery, caching and API version negotiation
    models: Versions, locations and call results
    settings: Settings loaded from YAML or the environment
    connection: Base class and factory for resource clients
    exceptions: Error hierarchy

Example:
    >>> from ado_rest_client.core import ClientBase, SerializationData
    >>>
    >>> class ProjectClient(ClientBase):
    ...     async def get_projects(self):
    ...         response = await self.send(
    ...             "GET",
    ...             "7.1",
    ...             "core",
    ...             "603fe2ac-9723-48b9-88ad-09305aa6c6e1",
    ...             serialization_data=SerializationData(response_is_collection=True),
    ...         )
    ...         return response.result
"""

from ado_rest_client.core.exceptions import (
    AdoRestClientError,
    AuthenticationError,
    ConfigurationError,
    HttpStatusError,
    InvalidApiResourceVersionError,
    LocationNotFoundError,
    RequestTimeoutError,
    TransportError,
    VersioningError,
)
from ado_rest_client.core.models import ApiResourceLocation, ClientVersioningData, ResourceVersion, RestResponse
from ado_rest_client.core.contracts import (
    ArrayField,
    ContractEnumMetadata,
    ContractField,
    ContractMetadata,
    DateField,
    DictionaryField,
    EnumField,
    PlainField,
    SerializationData,
)
from ado_rest_client.core.serializer import ContractSerializer, enum_to_string
from ado_rest_client.core.transport import HttpClient, HttpClientResponse, RequestOptions, create_accept_header
from ado_rest_client.core.rest_client import RestClient
from ado_rest_client.core.versioning import VersioningClient, compare_resource_versions
from ado_rest_client.core.settings import AuthKind, AuthSettings, ClientSettings
from ado_rest_client.core.connection import ClientBase, Connection

__all__ = [  # noqa: RUF022
    # Clients
    "ClientBase",
    "Connection",
    "HttpClient",
    "RestClient",
    "VersioningClient",
    # Serialization
    "ContractSerializer",
    "enum_to_string",
    "ArrayField",
    "ContractEnumMetadata",
    "ContractField",
    "ContractMetadata",
    "DateField",
    "DictionaryField",
    "EnumField",
    "PlainField",
    "SerializationData",
    # Models
    "ApiResourceLocation",
    "ClientVersioningData",
    "HttpClientResponse",
    "RequestOptions",
    "ResourceVersion",
    "RestResponse",
    "compare_resource_versions",
    "create_accept_header",
    # Settings
    "AuthKind",
    "AuthSettings",
    "ClientSettings",
    # Exceptions
    "AdoRestClientError",
    "AuthenticationError",
    "ConfigurationError",
    "HttpStatusError",
    "InvalidApiResourceVersionError",
    "LocationNotFoundError",
    "RequestTimeoutError",
    "TransportError",
    "VersioningError",
]
