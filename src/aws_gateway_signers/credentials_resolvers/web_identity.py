#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Final
from urllib.parse import urlencode, urlparse

from .._http import URI, Field, Fields, HTTPRequest
from .._identity import AWSCredentialIdentity
from ..config import DEFAULT_ROLE_SESSION_NAME
from ..exceptions import CredentialsError, CredentialsErrorKind
from ..interfaces.http import HTTPClient
from ._utils import check_response, credentials_from_document, load_json

logger: Final = logging.getLogger(__name__)

GLOBAL_STS_ENDPOINT: Final = "https://sts.amazonaws.com"
_STS_API_VERSION = "2011-06-15"
_ACTION = "AssumeRoleWithWebIdentity"


@dataclass(kw_only=True)
class WebIdentityConfig:
    """Settings for exchanging a web identity token with STS."""

    role_arn: str | None = None
    web_identity_token_file: str | None = None
    role_session_name: str = DEFAULT_ROLE_SESSION_NAME
    sts_endpoint: str | None = None
    sts_regional_endpoints: str = "global"
    region: str | None = None


def resolve_sts_endpoint(
    *, sts_endpoint: str | None, sts_regional_endpoints: str, region: str | None
) -> str:
    """Pick the STS endpoint to call.

    An explicit endpoint wins. Otherwise ``regional`` selects the endpoint of the
    configured region and anything else selects the global endpoint.

    :raises CredentialsError: With the ``MISSING_REGION`` kind when regional
        endpoints are requested without a region.
    """
    if sts_endpoint:
        return sts_endpoint
    if sts_regional_endpoints == "regional":
        if not region:
            raise CredentialsError(
                "Missing required AWS_REGION env variable",
                kind=CredentialsErrorKind.MISSING_REGION,
            )
        return f"https://sts.{region}.amazonaws.com"
    return GLOBAL_STS_ENDPOINT


class WebIdentityCredentialsResolver:
    """Resolves AWS Credentials by calling STS ``AssumeRoleWithWebIdentity`` with a
    token projected into the container, as EKS does for service accounts."""

    def __init__(self, http_client: HTTPClient, config: WebIdentityConfig):
        self._http_client = http_client
        self._config = config

    async def get_identity(self) -> AWSCredentialIdentity:
        # Endpoint problems are configuration errors and must surface before any I/O.
        endpoint = resolve_sts_endpoint(
            sts_endpoint=self._config.sts_endpoint,
            sts_regional_endpoints=self._config.sts_regional_endpoints,
            region=self._config.region,
        )
        if not self._config.role_arn:
            raise CredentialsError(
                "AWS_ROLE_ARN is required for web identity credentials",
                kind=CredentialsErrorKind.MISSING_CONFIGURATION,
            )
        if not self._config.web_identity_token_file:
            raise CredentialsError(
                "AWS_WEB_IDENTITY_TOKEN_FILE is required for web identity credentials",
                kind=CredentialsErrorKind.MISSING_CONFIGURATION,
            )

        token = await self._read_token(self._config.web_identity_token_file)
        query = urlencode(
            {
                "Version": _STS_API_VERSION,
                "Action": _ACTION,
                "RoleArn": self._config.role_arn,
                "RoleSessionName": self._config.role_session_name,
                "WebIdentityToken": token,
            }
        )
        parsed = urlparse(endpoint)
        request = HTTPRequest(
            method="GET",
            destination=URI(
                scheme=parsed.scheme or "https",
                host=parsed.hostname or "",
                port=parsed.port,
                path=parsed.path or "/",
                query=query,
            ),
            fields=Fields([Field(name="Accept", values=["application/json"])]),
        )
        logger.debug(
            "Assuming role %s with web identity as session %s",
            self._config.role_arn,
            self._config.role_session_name,
        )
        response = await self._http_client.send(request)

        source = "STS AssumeRoleWithWebIdentity"
        check_response(response, source=source)
        return credentials_from_document(
            self._extract_credentials(load_json(response, source=source)),
            source=source,
            session_token_key="SessionToken",
        )

    async def _read_token(self, filename: str) -> str:
        try:
            return await asyncio.to_thread(self._read_file, filename)
        except (OSError, UnicodeDecodeError) as e:
            raise CredentialsError(
                f"Unable to read web identity token file {filename}.",
                kind=CredentialsErrorKind.MISSING_CONFIGURATION,
            ) from e

    def _read_file(self, filename: str) -> str:
        with open(filename) as f:
            return f.read().strip()

    def _extract_credentials(self, document: Any) -> Any:
        try:
            return document["AssumeRoleWithWebIdentityResponse"][
                "AssumeRoleWithWebIdentityResult"
            ]["Credentials"]
        except (KeyError, TypeError) as e:
            raise CredentialsError(
                "STS response did not contain AssumeRoleWithWebIdentity credentials.",
                kind=CredentialsErrorKind.INVALID_CREDENTIALS,
            ) from e

