#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio
import ipaddress
import logging
from dataclasses import dataclass
from typing import Final
from urllib.parse import urlparse

from .._http import URI, Field, Fields, HTTPRequest
from .._identity import AWSCredentialIdentity
from ..exceptions import CredentialsError, CredentialsErrorKind
from ..interfaces.http import HTTPClient
from ._utils import check_response, credentials_from_document, load_json

logger: Final = logging.getLogger(__name__)

_CONTAINER_METADATA_IP = "169.254.170.2"
_CONTAINER_METADATA_ALLOWED_HOSTS = {
    _CONTAINER_METADATA_IP,
    "169.254.170.23",
    "fd00:ec2::23",
    "localhost",
}


@dataclass(kw_only=True)
class ContainerCredentialConfig:
    """Where to find the container credentials endpoint and how to authenticate."""

    relative_uri: str | None = None
    """Path appended to the ECS agent address, ``AWS_CONTAINER_CREDENTIALS_RELATIVE_URI``."""

    full_uri: str | None = None
    """Absolute endpoint, ``AWS_CONTAINER_CREDENTIALS_FULL_URI``."""

    authorization_token: str | None = None
    """Literal ``Authorization`` value, ``AWS_CONTAINER_AUTHORIZATION_TOKEN``."""

    authorization_token_file: str | None = None
    """File holding the ``Authorization`` value. Takes precedence over the literal."""


class ContainerMetadataClient:
    """Client for remote credential retrieval in Container environments like ECS/EKS."""

    def __init__(self, http_client: HTTPClient):
        self._http_client = http_client

    def _validate_allowed_url(self, uri: URI) -> None:
        if self._is_loopback(uri.host):
            return

        if not self._is_allowed_container_metadata_host(uri.host):
            raise CredentialsError(
                f"Unsupported host '{uri.host}'. "
                f"Can only retrieve metadata from a loopback address or "
                f"one of: {', '.join(sorted(_CONTAINER_METADATA_ALLOWED_HOSTS))}",
                kind=CredentialsErrorKind.MISSING_CONFIGURATION,
            )

    async def get_credentials(self, uri: URI, fields: Fields) -> AWSCredentialIdentity:
        self._validate_allowed_url(uri)
        fields.set_field(Field(name="Accept", values=["application/json"]))
        request = HTTPRequest(method="GET", destination=uri, fields=fields)
        response = await self._http_client.send(request)

        source = "container metadata"
        check_response(response, source="Container metadata service")
        return credentials_from_document(
            load_json(response, source=source), source=source
        )

    def _is_loopback(self, hostname: str) -> bool:
        try:
            return ipaddress.ip_address(hostname).is_loopback
        except ValueError:
            return False

    def _is_allowed_container_metadata_host(self, hostname: str) -> bool:
        return hostname in _CONTAINER_METADATA_ALLOWED_HOSTS


class ContainerCredentialsResolver:
    """Resolves AWS Credentials from container credential sources."""

    def __init__(self, http_client: HTTPClient, config: ContainerCredentialConfig):
        self._config = config
        self._client = ContainerMetadataClient(http_client)

    def _resolve_uri(self) -> URI:
        if self._config.relative_uri:
            return URI(
                scheme="http",
                host=_CONTAINER_METADATA_IP,
                path=self._config.relative_uri,
            )
        elif self._config.full_uri:
            parsed = urlparse(self._config.full_uri)
            return URI(
                scheme=parsed.scheme,
                host=parsed.hostname or "",
                port=parsed.port,
                path=parsed.path,
                query=parsed.query or None,
            )
        else:
            raise CredentialsError(
                "Neither AWS_CONTAINER_CREDENTIALS_RELATIVE_URI or "
                "AWS_CONTAINER_CREDENTIALS_FULL_URI is set. Unable to resolve "
                "credentials.",
                kind=CredentialsErrorKind.MISSING_CONFIGURATION,
            )

    async def _resolve_fields(self) -> Fields:
        fields = Fields()
        if filename := self._config.authorization_token_file:
            try:
                auth_token = await asyncio.to_thread(self._read_file, filename)
            except (FileNotFoundError, PermissionError) as e:
                raise CredentialsError(
                    f"Unable to open {filename}.",
                    kind=CredentialsErrorKind.MISSING_CONFIGURATION,
                ) from e

            fields.set_field(Field(name="Authorization", values=[auth_token]))
        elif auth_token := self._config.authorization_token:
            fields.set_field(Field(name="Authorization", values=[auth_token]))

        return fields

    def _read_file(self, filename: str) -> str:
        with open(filename) as f:
            try:
                return f.read().strip()
            except UnicodeDecodeError as e:
                raise CredentialsError(
                    f"Unable to read valid utf-8 bytes from {filename}.",
                    kind=CredentialsErrorKind.MISSING_CONFIGURATION,
                ) from e

    async def get_identity(self) -> AWSCredentialIdentity:
        uri = self._resolve_uri()
        fields = await self._resolve_fields()
        logger.debug("Fetching container credentials from %s", uri.netloc)
        return await self._client.get_credentials(uri, fields)
