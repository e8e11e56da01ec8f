#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Final, Literal

from .. import __version__
from .._http import URI, Field, Fields, HTTPRequest
from .._identity import AWSCredentialIdentity
from ..exceptions import CredentialsError, CredentialsErrorKind
from ..interfaces.http import HTTPClient, HTTPResponse
from ._utils import check_response, credentials_from_document, load_json

logger: Final = logging.getLogger(__name__)

_USER_AGENT_FIELD_NAME = "User-Agent"
_USER_AGENT = f"aws-gateway-signers-imds-client/{__version__}"


@dataclass(init=False)
class IMDSConfig:
    """Configuration for EC2Metadata."""

    _HOST_MAPPING = MappingProxyType(
        {"IPv4": "169.254.169.254", "IPv6": "[fd00:ec2::254]"}
    )
    _MIN_TTL = 5
    _MAX_TTL = 21600

    endpoint_uri: URI
    endpoint_mode: Literal["IPv4", "IPv6"]
    token_ttl: int

    def __init__(
        self,
        *,
        endpoint_uri: URI | None = None,
        endpoint_mode: Literal["IPv4", "IPv6"] = "IPv4",
        token_ttl: int = _MAX_TTL,
    ):
        self.endpoint_mode = endpoint_mode
        self.endpoint_uri = self._resolve_endpoint(endpoint_uri, endpoint_mode)
        self.token_ttl = self._validate_token_ttl(token_ttl)

    def _validate_token_ttl(self, ttl: int) -> int:
        if not self._MIN_TTL <= ttl <= self._MAX_TTL:
            raise ValueError(
                f"Token TTL must be between {self._MIN_TTL} and {self._MAX_TTL} seconds."
            )
        return ttl

    def _resolve_endpoint(
        self, endpoint_uri: URI | None, endpoint_mode: Literal["IPv4", "IPv6"]
    ) -> URI:
        if endpoint_uri is not None:
            return endpoint_uri

        return URI(
            scheme="http",
            host=self._HOST_MAPPING.get(endpoint_mode, self._HOST_MAPPING["IPv4"]),
            port=80,
        )


class Token:
    """Represents an IMDSv2 session token with a value and method for checking
    expiration."""

    def __init__(self, value: str, ttl: int):
        self._value = value
        self._ttl = ttl
        self._created_time = datetime.now()

    def is_expired(self) -> bool:
        return datetime.now() - self._created_time >= timedelta(seconds=self._ttl)

    @property
    def value(self) -> str:
        return self._value


class TokenCache:
    """Holds the token needed to fetch instance metadata.

    In addition, it knows how to refresh itself.
    """

    _TOKEN_PATH = "/latest/api/token"  # noqa: S105

    def __init__(self, http_client: HTTPClient, config: IMDSConfig):
        self._http_client = http_client
        self._config = config
        self._base_uri = config.endpoint_uri
        self._refresh_lock = asyncio.Lock()
        self._token: Token | None = None

    def _should_refresh(self) -> bool:
        return self._token is None or self._token.is_expired()

    async def _refresh(self) -> None:
        async with self._refresh_lock:
            if not self._should_refresh():
                return
            headers = Fields(
                [
                    Field(name=_USER_AGENT_FIELD_NAME, values=[_USER_AGENT]),
                    Field(
                        name="x-aws-ec2-metadata-token-ttl-seconds",
                        values=[str(self._config.token_ttl)],
                    ),
                ]
            )
            request = HTTPRequest(
                method="PUT",
                destination=URI(
                    scheme=self._base_uri.scheme,
                    host=self._base_uri.host,
                    port=self._base_uri.port,
                    path=self._TOKEN_PATH,
                ),
                fields=headers,
            )
            response = await self._http_client.send(request)
            check_response(response, source="Instance metadata token endpoint")
            self._token = Token(response.text(), self._config.token_ttl)

    async def get_token(self) -> Token:
        if self._should_refresh():
            await self._refresh()
        assert self._token is not None  # noqa: S101
        return self._token


class EC2Metadata:
    def __init__(self, http_client: HTTPClient, config: IMDSConfig | None = None):
        self._http_client = http_client
        self._config = config or IMDSConfig()
        self._token_cache = TokenCache(
            http_client=self._http_client, config=self._config
        )

    async def get(self, *, path: str) -> HTTPResponse:
        token = await self._token_cache.get_token()
        headers = Fields(
            [
                Field(name=_USER_AGENT_FIELD_NAME, values=[_USER_AGENT]),
                Field(name="x-aws-ec2-metadata-token", values=[token.value]),
            ]
        )
        request = HTTPRequest(
            method="GET",
            destination=URI(
                scheme=self._config.endpoint_uri.scheme,
                host=self._config.endpoint_uri.host,
                port=self._config.endpoint_uri.port,
                path=path,
            ),
            fields=headers,
        )
        return await self._http_client.send(request)


class IMDSCredentialsResolver:
    """Resolves AWS Credentials from an EC2 Instance Metadata Service (IMDS) client."""

    _METADATA_PATH_BASE = "/latest/meta-data/iam/security-credentials/"

    def __init__(self, http_client: HTTPClient, config: IMDSConfig | None = None):
        self._ec2_metadata_client = EC2Metadata(http_client=http_client, config=config)

    async def get_identity(self) -> AWSCredentialIdentity:
        response = await self._ec2_metadata_client.get(path=self._METADATA_PATH_BASE)
        # EC2 supports attaching a single role, so the whole listing is its name.
        role_name = response.text().strip()
        if response.status == 404 or (response.status == 200 and not role_name):
            raise CredentialsError(
                "No credentials available for EC2 instance",
                kind=CredentialsErrorKind.NO_ROLE_CREDENTIALS,
            )
        check_response(response, source="Instance metadata role listing")
        logger.debug("Fetching instance credentials for role %s", role_name)

        response = await self._ec2_metadata_client.get(
            path=f"{self._METADATA_PATH_BASE}{role_name}"
        )
        source = f"instance metadata role {role_name}"
        check_response(response, source=source)
        return credentials_from_document(
            load_json(response, source=source), source=source
        )
