"""NTLM challenge/response authentication handler.

NTLM authenticates a connection rather than a request, so the whole handshake
runs over a single socket:

    1. client -> server  original request + "Authorization: NTLM <negotiate>"
    2. server -> client  401 + "WWW-Authenticate: NTLM <challenge>"
    3. client -> server  original request + "Authorization: NTLM <authenticate>"

The NTLM messages themselves are produced by pyspnego. A fresh security
context is created for every handshake, so no state leaks between calls.
"""

import base64
import binascii
import dataclasses
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import spnego

from ado_rest_client.core.transport import HttpClientResponse, RequestOptions

from .base import RequestHandler

if TYPE_CHECKING:
    from ado_rest_client.core.transport import HttpClient


class NtlmCredentialHandler(RequestHandler):
    """Answers NTLM 401 challenges with the configured Windows credentials."""

    SCHEME = "NTLM"
    UNAUTHORIZED = 401

    def __init__(self, username: str, password: str, domain: str = "") -> None:
        self.username = username
        self.password = password
        self.domain = domain

    @property
    def principal(self) -> str:
        return f"{self.domain}\\{self.username}" if self.domain else self.username

    def prepare_request(self, options: RequestOptions) -> None:
        """NTLM is negotiated on challenge, nothing is sent up front."""

    def can_handle_authentication(self, response: HttpClientResponse) -> bool:
        if response.status != self.UNAUTHORIZED:
            return False
        return any(
            value.strip().split(" ", 1)[0].upper() == self.SCHEME
            for header in response.header_values("WWW-Authenticate")
            for value in header.split(",")
        )

    async def handle_authentication(
        self,
        http_client: "HttpClient",
        options: RequestOptions,
        data: Any,
    ) -> HttpClientResponse:
        context = spnego.client(
            self.principal,
            self.password,
            hostname=urlparse(options.url).hostname or "unspecified",
            service="HTTP",
            protocol="ntlm",
        )

        async with http_client.exclusive_session() as session:
            negotiate = self._with_token(options, context.step())
            logging.debug("ntlm: sending negotiate message - %s", options.url)
            challenge_response = await http_client.send_raw(session, negotiate)

            challenge = self.read_challenge(challenge_response)
            if challenge is None:
                logging.warning("ntlm: server did not answer with a challenge (%s)", challenge_response.status)
                return challenge_response

            authenticate = self._with_token(options, context.step(challenge))
            logging.debug("ntlm: sending authenticate message - %s", options.url)
            return await http_client.send_raw(session, authenticate, data)

    def read_challenge(self, response: HttpClientResponse) -> bytes | None:
        """Extract the server's challenge token from a 401 response."""
        if response.status != self.UNAUTHORIZED:
            return None
        for header in response.header_values("WWW-Authenticate"):
            for value in header.split(","):
                scheme, _, token = value.strip().partition(" ")
                if scheme.upper() == self.SCHEME and token:
                    try:
                        return base64.b64decode(token.strip(), validate=True)
                    except (binascii.Error, ValueError):
                        logging.debug("ntlm: malformed challenge token")
        return None

    def _with_token(self, options: RequestOptions, token: bytes) -> RequestOptions:
        headers = {
            **options.headers,
            "Authorization": f"{self.SCHEME} {base64.b64encode(token).decode()}",
            "Connection": "keep-alive",
        }
        return dataclasses.replace(options, headers=headers)
