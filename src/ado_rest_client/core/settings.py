"""Connection settings for applications building clients.

The transport, REST and versioning classes take plain constructor arguments
and never read files or the environment. This module is the optional layer an
application uses to collect those arguments from a YAML file or from
environment variables and to turn the auth section into a handler chain.

Classes:
    AuthKind: Supported authentication schemes
    AuthSettings: Credentials and the handler chain they produce
    ClientSettings: Server URL, timeouts, retries, proxy and auth

Example:
    ```yaml
    # ado.yaml
    base_url: https://dev.azure.com/my-org
    socket_timeout: 120
    max_retries: 5
    auth:
      kind: pat
      token: xxxxxxxx
    ```

    ```python
    from ado_rest_client.core.settings import ClientSettings

    settings = ClientSettings.from_yaml("ado.yaml")

    # ADO_ORGANIZATION=my-org ADO_TOKEN=xxxxxxxx
    settings = ClientSettings.from_env()
    handlers = settings.auth.create_handlers()
    ```

Environment variables (default prefix "ADO_"):
    BASE_URL or ORGANIZATION, USER_AGENT, SOCKET_TIMEOUT, CONNECT_TIMEOUT,
    MAX_RETRIES, IGNORE_SSL_ERROR, PROXY, AUTH_KIND, TOKEN, USERNAME,
    PASSWORD, DOMAIN, API_VERSION

Raises:
    ConfigurationError: When settings are missing or invalid
"""

import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ado_rest_client.core.exceptions import ConfigurationError
from ado_rest_client.core.transport import HttpClient
from ado_rest_client.handlers import (
    ApiVersionHandler,
    BasicCredentialHandler,
    BearerCredentialHandler,
    NtlmCredentialHandler,
    PersonalAccessTokenCredentialHandler,
    RequestHandler,
)


class AuthKind(str, Enum):
    """Authentication scheme of a connection."""

    NONE = "none"
    PAT = "pat"
    BEARER = "bearer"
    BASIC = "basic"
    NTLM = "ntlm"
    AZURE_IDENTITY = "azure_identity"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value


class AuthSettings(BaseModel):
    """
    Credentials of a connection.

    Attributes:
        kind: Authentication scheme
        token: PAT or bearer token
        username: Username for basic and NTLM auth
        password: Password for basic and NTLM auth
        domain: Windows domain for NTLM auth
        api_version: Pin every request to this api-version
    """

    kind: AuthKind = AuthKind.NONE
    token: str | None = None
    username: str | None = None
    password: str | None = None
    domain: str = ""
    api_version: str | None = None

    @model_validator(mode="after")
    def _check_credentials(self) -> "AuthSettings":
        if self.kind in (AuthKind.PAT, AuthKind.BEARER) and not self.token:
            msg = f"auth kind '{self.kind}' requires a token"
            raise ValueError(msg)
        if self.kind in (AuthKind.BASIC, AuthKind.NTLM) and not (self.username and self.password is not None):
            msg = f"auth kind '{self.kind}' requires a username and password"
            raise ValueError(msg)
        return self

    def create_handlers(self) -> list[RequestHandler]:
        """Build the ordered handler chain these settings describe."""
        handlers: list[RequestHandler] = []
        if self.api_version:
            handlers.append(ApiVersionHandler(self.api_version))

        if self.kind == AuthKind.PAT:
            handlers.append(PersonalAccessTokenCredentialHandler(self.token))
        elif self.kind == AuthKind.BEARER:
            handlers.append(BearerCredentialHandler(self.token))
        elif self.kind == AuthKind.BASIC:
            handlers.append(BasicCredentialHandler(self.username, self.password))
        elif self.kind == AuthKind.NTLM:
            handlers.append(NtlmCredentialHandler(self.username, self.password, self.domain))
        elif self.kind == AuthKind.AZURE_IDENTITY:
            handlers.append(BearerCredentialHandler.from_azure_identity())
        return handlers


class ClientSettings(BaseModel):
    """
    Connection level settings shared by every client of one server.

    Attributes:
        base_url: Organization/collection URL, e.g. https://dev.azure.com/my-org
        user_agent: User-Agent header value
        socket_timeout: Socket read timeout in seconds
        connect_timeout: Connection timeout in seconds
        max_retries: Attempts for idempotent reads on throttling/gateway statuses
        ignore_ssl_error: Skip TLS certificate verification
        proxy: Proxy URL
        auth: Credentials
    """

    base_url: str
    user_agent: str | None = None
    socket_timeout: float | None = Field(default=None, gt=0)
    connect_timeout: float | None = Field(default=None, gt=0)
    max_retries: int = Field(default=3, ge=1)
    ignore_ssl_error: bool = False
    proxy: str | None = None
    auth: AuthSettings = Field(default_factory=AuthSettings)

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            msg = f"base_url must be an http(s) URL, got '{value}'"
            raise ValueError(msg)
        return value

    @classmethod
    def load(cls, data: Mapping[str, Any]) -> "ClientSettings":
        """Validate a settings mapping."""
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid client settings: {e}") from e

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ClientSettings":
        """Load settings from a YAML file."""
        try:
            with Path(path).open(encoding="utf-8") as file:
                data = yaml.safe_load(file)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to read settings from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file {path} must contain a mapping")
        return cls.load(data)

    @classmethod
    def from_env(cls, prefix: str = "ADO_", environ: Mapping[str, str] | None = None) -> "ClientSettings":
        """Load settings from environment variables."""
        environ = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = environ.get(f"{prefix}{name}")
            return value if value else None

        base_url = get("BASE_URL")
        if base_url is None and get("ORGANIZATION"):
            base_url = f"https://dev.azure.com/{get('ORGANIZATION')}"
        if base_url is None:
            raise ConfigurationError(f"Set {prefix}BASE_URL or {prefix}ORGANIZATION")

        data: dict[str, Any] = {"base_url": base_url}
        for name in ("user_agent", "socket_timeout", "connect_timeout", "max_retries", "ignore_ssl_error", "proxy"):
            value = get(name.upper())
            if value is not None:
                data[name] = value

        auth: dict[str, Any] = {}
        for name in ("token", "username", "password", "domain", "api_version"):
            value = get(name.upper())
            if value is not None:
                auth[name] = value
        kind = get("AUTH_KIND")
        if kind is not None:
            auth["kind"] = kind.lower()
        elif "token" in auth:
            auth["kind"] = AuthKind.PAT
        data["auth"] = auth

        return cls.load(data)

    def create_http_client(self, handlers: list[RequestHandler] | None = None) -> HttpClient:
        """Create a transport configured by these settings."""
        return HttpClient(
            user_agent=self.user_agent,
            handlers=self.auth.create_handlers() if handlers is None else handlers,
            socket_timeout=self.socket_timeout,
            connect_timeout=self.connect_timeout,
            ignore_ssl_error=self.ignore_ssl_error,
            proxy=self.proxy,
        )
