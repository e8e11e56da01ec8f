#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import logging
from collections.abc import MutableMapping
from typing import Final

from .._identity import AWSCredentialIdentity
from ..config import GatewayConfig
from ..interfaces.cache import CredentialsCache
from ..interfaces.http import HTTPClient
from ..interfaces.identity import AWSCredentialsResolver
from .cache import create_credentials_cache
from .container import ContainerCredentialConfig, ContainerCredentialsResolver
from .environment import EnvironmentCredentialsResolver
from .imds import IMDSCredentialsResolver
from .web_identity import WebIdentityConfig, WebIdentityCredentialsResolver

logger: Final = logging.getLogger(__name__)


def create_credentials_resolver(
    config: GatewayConfig, http_client: HTTPClient
) -> AWSCredentialsResolver:
    """Build the resolver for the remote source named by
    :py:attr:`GatewayConfig.credentials_source`."""
    match config.credentials_source:
        case "web_identity":
            return WebIdentityCredentialsResolver(
                http_client,
                WebIdentityConfig(
                    role_arn=config.role_arn,
                    web_identity_token_file=config.web_identity_token_file,
                    role_session_name=config.session_name,
                    sts_endpoint=config.sts_endpoint,
                    sts_regional_endpoints=config.sts_regional_endpoints,
                    region=config.region,
                ),
            )
        case "container":
            return ContainerCredentialsResolver(
                http_client,
                ContainerCredentialConfig(
                    relative_uri=config.container_credentials_relative_uri,
                    full_uri=config.container_credentials_full_uri,
                    authorization_token=config.container_authorization_token,
                    authorization_token_file=config.container_authorization_token_file,
                ),
            )
        case _:
            return IMDSCredentialsResolver(http_client)


class CredentialsProvider:
    """Produces the credentials used to sign every upstream request.

    Resolution order, first success wins:

    1. Static ``AWS_ACCESS_KEY_ID``/``AWS_SECRET_ACCESS_KEY``. The cache is neither
       read nor written.
    2. The credentials cache.
    3. The remote source chosen from configuration. Fetched credentials are written
       back to the cache before they are returned.

    Errors from the remote source propagate unchanged. Cached credentials are
    returned without checking their expiration.
    """

    def __init__(
        self,
        config: GatewayConfig,
        *,
        cache: CredentialsCache,
        http_client: HTTPClient,
        resolver: AWSCredentialsResolver | None = None,
        debug: bool = False,
    ):
        """
        :param config: Gateway configuration.
        :param cache: Backend selected with :py:func:`create_credentials_cache`.
        :param http_client: Client used to reach the remote credentials source.
        :param resolver: Override for the remote source. Defaults to the one selected
            by ``config``.
        :param debug: Log each resolution step.
        """
        self._config = config
        self._cache = cache
        self._static_resolver = EnvironmentCredentialsResolver(config)
        self._resolver = resolver or create_credentials_resolver(config, http_client)
        self._debug = debug

    @classmethod
    def from_config(
        cls,
        config: GatewayConfig,
        *,
        http_client: HTTPClient,
        store: MutableMapping[str, str] | None = None,
    ) -> "CredentialsProvider":
        """Wire a provider with the cache backend and remote source ``config``
        selects."""
        return cls(
            config,
            cache=create_credentials_cache(config, store),
            http_client=http_client,
            debug=config.debug,
        )

    async def resolve(self) -> AWSCredentialIdentity:
        """Resolve credentials for the next signature.

        :raises CredentialsError: If the remote source fails.
        """
        if self._config.has_static_credentials:
            self._log("Using static credentials from the environment")
            return await self._static_resolver.get_identity()

        cached = await self._cache.read()
        if cached is not None:
            self._log("Using cached credentials")
            return cached

        self._log(
            "No cached credentials, fetching from %s", self._config.credentials_source
        )
        credentials = await self._resolver.get_identity()
        await self._cache.write(credentials)
        return credentials

    def _log(self, msg: str, *args: object) -> None:
        if self._debug:
            logger.debug(msg, *args)
