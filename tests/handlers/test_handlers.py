# ruff: noqa: SLF001,PLR2004,S105,S106,ARG001
import base64
import contextlib
from unittest.mock import AsyncMock, Mock, patch

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from azure.core.exceptions import ClientAuthenticationError

from ado_rest_client.core.exceptions import AuthenticationError
from ado_rest_client.core.transport import HttpClient, HttpClientResponse, RequestOptions
from ado_rest_client.handlers import (
    ApiVersionHandler,
    BasicCredentialHandler,
    BearerCredentialHandler,
    NtlmCredentialHandler,
    PersonalAccessTokenCredentialHandler,
)
from ado_rest_client.handlers.bearer import AZURE_DEVOPS_RESOURCE_ID

CHALLENGE = b"server-challenge"


def prepared(handler) -> RequestOptions:  # noqa: ANN001
    options = RequestOptions("GET", "https://tfs.corp.local/tfs/DefaultCollection/_apis")
    handler.prepare_request(options)
    return options


def unauthorized(*values: str) -> HttpClientResponse:
    return HttpClientResponse(status=401, headers={"WWW-Authenticate": ", ".join(values)})


### Proactive handlers ###
def test_api_version_handler() -> None:
    """Test the pinned Accept header."""
    options = prepared(ApiVersionHandler("6.0-preview.1"))
    if options.headers["Accept"] != "application/json;api-version=6.0-preview.1":
        pytest.fail(f"Unexpected Accept header {options.headers['Accept']!r}")


def test_basic_handler() -> None:
    """Test the Basic Authorization header."""
    options = prepared(BasicCredentialHandler("user", "secret"))
    expected = "Basic " + base64.b64encode(b"user:secret").decode()
    if options.headers["Authorization"] != expected:
        pytest.fail(f"Unexpected Authorization header {options.headers['Authorization']!r}")


def test_personal_access_token_handler() -> None:
    """Test that a PAT is sent as the password with an empty username."""
    options = prepared(PersonalAccessTokenCredentialHandler("my-pat"))
    encoded = options.headers["Authorization"].removeprefix("Basic ")
    if base64.b64decode(encoded) != b":my-pat":
        pytest.fail(f"Unexpected credentials {base64.b64decode(encoded)!r}")


def test_bearer_handler() -> None:
    """Test the Bearer Authorization header."""
    options = prepared(BearerCredentialHandler("jwt-token"))
    if options.headers["Authorization"] != "Bearer jwt-token":
        pytest.fail(f"Unexpected Authorization header {options.headers['Authorization']!r}")


def test_proactive_handlers_do_not_claim_challenges() -> None:
    """Test that only challenge/response handlers answer a 401."""
    for handler in (BasicCredentialHandler("u", "p"), BearerCredentialHandler("t"), ApiVersionHandler("7.1")):
        if handler.can_handle_authentication(unauthorized("NTLM")):
            pytest.fail(f"{type(handler).__name__} should not claim a 401")


### Azure identity ###
def test_bearer_from_azure_identity() -> None:
    """Test token retrieval through DefaultAzureCredential."""
    with patch("ado_rest_client.handlers.bearer.DefaultAzureCredential") as mock_credential:
        mock_credential.return_value.get_token.return_value.token = "entra-token"

        handler = BearerCredentialHandler.from_azure_identity()

        mock_credential.return_value.get_token.assert_called_once_with(f"{AZURE_DEVOPS_RESOURCE_ID}/.default")
        if handler.token != "entra-token":
            pytest.fail(f"Expected token 'entra-token', got '{handler.token}'")


def test_bearer_from_explicit_credential() -> None:
    """Test that a given credential is used instead of the default chain."""
    credential = Mock()
    credential.get_token.return_value.token = "cli-token"
    with patch("ado_rest_client.handlers.bearer.DefaultAzureCredential") as mock_credential:
        handler = BearerCredentialHandler.from_azure_identity(credential)
        mock_credential.assert_not_called()
    if handler.token != "cli-token":
        pytest.fail(f"Expected token 'cli-token', got '{handler.token}'")


def test_bearer_from_azure_identity_failure() -> None:
    """Test that credential failures become AuthenticationError."""
    credential = Mock()
    credential.get_token.side_effect = ClientAuthenticationError("no credential available")
    with pytest.raises(AuthenticationError):
        BearerCredentialHandler.from_azure_identity(credential)

    credential.get_token.side_effect = None
    credential.get_token.return_value.token = ""
    with pytest.raises(AuthenticationError):
        BearerCredentialHandler.from_azure_identity(credential)


### NTLM ###
def test_ntlm_principal() -> None:
    """Test DOMAIN\\user formatting."""
    if NtlmCredentialHandler("builder", "pw", "CORP").principal != "CORP\\builder":
        pytest.fail("Expected 'CORP\\builder'")
    if NtlmCredentialHandler("builder", "pw").principal != "builder":
        pytest.fail("Expected the bare username without a domain")


def test_ntlm_prepare_request_is_noop() -> None:
    """Test that NTLM sends nothing up front."""
    if prepared(NtlmCredentialHandler("u", "p")).headers:
        pytest.fail("NTLM should not add headers before a challenge")


def test_ntlm_can_handle_authentication() -> None:
    """Test claiming 401 responses that offer NTLM."""
    handler = NtlmCredentialHandler("u", "p")
    if not handler.can_handle_authentication(unauthorized("Negotiate", "NTLM")):
        pytest.fail("Expected a 401 offering NTLM to be claimed")
    if handler.can_handle_authentication(unauthorized("Bearer authorization_uri=https://login")):
        pytest.fail("Did not expect a Bearer-only 401 to be claimed")
    if handler.can_handle_authentication(HttpClientResponse(status=403, headers={"WWW-Authenticate": "NTLM"})):
        pytest.fail("Did not expect a non 401 response to be claimed")


def test_ntlm_read_challenge() -> None:
    """Test extracting the server token from a challenge."""
    handler = NtlmCredentialHandler("u", "p")
    token = base64.b64encode(CHALLENGE).decode()

    if handler.read_challenge(unauthorized("Negotiate", f"NTLM {token}")) != CHALLENGE:
        pytest.fail("Expected the decoded challenge")
    if handler.read_challenge(unauthorized("NTLM")) is not None:
        pytest.fail("A bare scheme carries no challenge")
    if handler.read_challenge(unauthorized("NTLM !!!")) is not None:
        pytest.fail("A malformed token should be ignored")


@pytest.fixture
def spnego_context():
    """Patched pyspnego context producing fixed NTLM messages."""
    with patch("ado_rest_client.handlers.ntlm.spnego.client") as mock_client:
        context = mock_client.return_value
        context.step.side_effect = [b"negotiate", b"authenticate"]
        yield mock_client


@pytest.mark.asyncio
async def test_ntlm_handshake(spnego_context) -> None:
    """Test the negotiate/challenge/authenticate round trips."""
    session = object()

    @contextlib.asynccontextmanager
    async def exclusive_session():
        yield session

    http_client = Mock()
    http_client.exclusive_session = exclusive_session
    http_client.send_raw = AsyncMock(
        side_effect=[
            unauthorized(f"NTLM {base64.b64encode(CHALLENGE).decode()}"),
            HttpClientResponse(status=200, body=b"{}"),
        ]
    )

    handler = NtlmCredentialHandler("builder", "secret", "CORP")
    options = RequestOptions("POST", "https://tfs.corp.local/tfs/_apis/x", {"Accept": "application/json"})
    response = await handler.handle_authentication(http_client, options, b"body")

    if response.status != 200:
        pytest.fail(f"Expected the final response, got {response.status}")
    spnego_context.assert_called_once_with(
        "CORP\\builder",
        "secret",
        hostname="tfs.corp.local",
        service="HTTP",
        protocol="ntlm",
    )
    spnego_context.return_value.step.assert_called_with(CHALLENGE)

    negotiate_call, authenticate_call = http_client.send_raw.await_args_list
    negotiate_session, negotiate = negotiate_call.args
    authenticate_session, authenticate, data = authenticate_call.args
    if negotiate_session is not session or authenticate_session is not session:
        pytest.fail("Expected both legs on the exclusive session")
    if negotiate.headers["Authorization"] != "NTLM " + base64.b64encode(b"negotiate").decode():
        pytest.fail(f"Unexpected negotiate header {negotiate.headers['Authorization']!r}")

    if authenticate.headers["Authorization"] != "NTLM " + base64.b64encode(b"authenticate").decode():
        pytest.fail(f"Unexpected authenticate header {authenticate.headers['Authorization']!r}")
    if data != b"body" or authenticate.headers["Accept"] != "application/json":
        pytest.fail("Expected the original request to be resent")
    if "Authorization" in options.headers:
        pytest.fail("The original request options were mutated")


@pytest.mark.asyncio
async def test_ntlm_handshake_without_challenge(spnego_context) -> None:
    """Test that a negotiate answer without a challenge is returned."""

    @contextlib.asynccontextmanager
    async def exclusive_session():
        yield object()

    http_client = Mock()
    http_client.exclusive_session = exclusive_session
    http_client.send_raw = AsyncMock(return_value=HttpClientResponse(status=403))

    handler = NtlmCredentialHandler("builder", "secret")
    response = await handler.handle_authentication(http_client, RequestOptions("GET", "https://tfs/_apis"), None)

    if response.status != 403 or http_client.send_raw.await_count != 1:
        pytest.fail(f"Expected the negotiate answer to be returned, got {response.status}")


### NTLM through the transport ###
async def ntlm_endpoint(request: web.Request) -> web.Response:
    authorization = request.headers.get("Authorization", "")
    if authorization == "NTLM " + base64.b64encode(b"authenticate").decode():
        return web.json_response({"body": (await request.read()).decode()})
    if authorization == "NTLM " + base64.b64encode(b"negotiate").decode():
        return web.Response(status=401, headers={"WWW-Authenticate": f"NTLM {base64.b64encode(CHALLENGE).decode()}"})
    return web.Response(status=401, headers={"WWW-Authenticate": "NTLM"})


@pytest_asyncio.fixture
async def ntlm_server():
    """Server demanding an NTLM handshake."""
    app = web.Application()
    app.router.add_route("*", "/_apis/x", ntlm_endpoint)
    async with TestServer(app) as test_server:
        yield test_server


@pytest.mark.asyncio
async def test_ntlm_through_transport(ntlm_server, spnego_context) -> None:
    """Test that HttpClient completes the handshake transparently."""
    async with HttpClient(handlers=[NtlmCredentialHandler("builder", "secret", "CORP")]) as http:
        response = await http.post(str(ntlm_server.make_url("/_apis/x")), b"payload")

    if response.status != 200 or response.json() != {"body": "payload"}:
        pytest.fail(f"Unexpected response {response.status} {response.body!r}")
