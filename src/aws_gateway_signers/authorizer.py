# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Final

from ._time import SigningTimestamp, SystemTimeSource, TimeSource
from .credentials_resolvers.provider import CredentialsProvider
from .signers import SignedHeaders, SigningContext, SigV4Signer

if TYPE_CHECKING:
    from .config import GatewayConfig
    from .interfaces.cache import SigningKeyCache
    from .interfaces.http import HTTPClient

logger: Final = logging.getLogger(__name__)


class RequestAuthorizer:
    """Entry point for the proxy layer.

    Each call resolves credentials, captures a fresh timestamp and signs the
    described request. Nothing about one request is reused for the next except the
    cached credentials and signing keys.
    """

    def __init__(
        self,
        provider: CredentialsProvider,
        signer: SigV4Signer,
        time_source: TimeSource | None = None,
    ):
        self._provider = provider
        self._signer = signer
        self._time_source = time_source or SystemTimeSource()

    @classmethod
    def from_config(
        cls,
        config: GatewayConfig,
        *,
        http_client: HTTPClient,
        store: MutableMapping[str, str] | None = None,
        signing_key_cache: SigningKeyCache | None = None,
        time_source: TimeSource | None = None,
    ) -> RequestAuthorizer:
        """Wire an authorizer from configuration.

        :param config: Gateway configuration, usually from
            :py:meth:`GatewayConfig.from_environment`.
        :param http_client: Client used to fetch credentials.
        :param store: Shared key-value store used when
            ``CACHE_INSTANCE_CREDENTIALS_ENABLED`` is set.
        :param signing_key_cache: Where derived signing keys are kept.
        :param time_source: Clock used for every signature.
        """
        provider = CredentialsProvider.from_config(
            config, http_client=http_client, store=store
        )
        signer = SigV4Signer(signing_key_cache=signing_key_cache, debug=config.debug)
        return cls(provider, signer, time_source)

    async def authorize(
        self,
        *,
        method: str,
        uri: str,
        host: str,
        region: str,
        service: str,
        query_params: str = "",
    ) -> SignedHeaders:
        """Produce the signed header values for one upstream request.

        :param method: HTTP method of the upstream request.
        :param uri: Path exactly as it will be sent upstream.
        :param host: Upstream ``Host`` header.
        :param region: Region of the upstream service.
        :param service: ``s3`` or ``lambda``.
        :param query_params: Canonical query string, empty if there is none.
        :raises CredentialsError: If no credentials can be resolved. The proxy must
            deny the request.
        """
        identity = await self._provider.resolve()
        # One timestamp per request, taken after credentials are in hand.
        timestamp = SigningTimestamp.capture(self._time_source)
        context = SigningContext(
            method=method,
            uri=uri,
            query_params=query_params,
            host=host,
            timestamp=timestamp,
            region=region,
            service=service,
            session_token=identity.session_token,
        )
        logger.debug("Signing %s %s for %s in %s", method, uri, service, region)
        return self._signer.sign(context=context, identity=identity)
