#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import logging
from dataclasses import dataclass
from itertools import chain
from typing import Final

import aiohttp

from .._http import HTTPRequest, HTTPResponse, tuples_to_fields
from ..exceptions import CredentialsError, CredentialsErrorKind
from ..interfaces.http import URI

logger: Final = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 5.0


@dataclass(kw_only=True)
class AIOHTTPClientConfig:
    """Configuration that applies to all requests made with an
    :py:class:`AIOHTTPClient`."""

    timeout: float = _DEFAULT_TIMEOUT
    """Total number of seconds a single request may take."""


class AIOHTTPClient:
    """Implementation of :py:class:`..interfaces.http.HTTPClient` using aiohttp."""

    def __init__(
        self,
        *,
        client_config: AIOHTTPClientConfig | None = None,
        _session: "aiohttp.ClientSession | None" = None,
    ) -> None:
        """
        :param client_config: Configuration that applies to all requests made with this
        client.
        """
        self._config = client_config or AIOHTTPClientConfig()
        self._session = _session

    async def send(self, request: HTTPRequest) -> HTTPResponse:
        """Send HTTP request using aiohttp client.

        :param request: The request including destination URI and fields.
        :raises CredentialsError: With the ``TRANSPORT_FAILURE`` kind if the request
            could not be completed.
        """
        headers_list = list(
            chain.from_iterable(fld.as_tuples() for fld in request.fields)
        )
        url = self._serialize_uri(request.destination)
        # The query may carry a web identity token, so it is never logged.
        target = f"{request.destination.netloc}{request.destination.path or ''}"
        logger.debug("Sending %s request to %s", request.method, target)
        try:
            async with self._get_session().request(
                method=request.method,
                url=url,
                headers=headers_list,
                timeout=aiohttp.ClientTimeout(total=self._config.timeout),
            ) as resp:
                return await self._marshal_response(resp)
        except (aiohttp.ClientError, TimeoutError) as e:
            raise CredentialsError(
                f"{request.method} {target} failed: {e!r}",
                kind=CredentialsErrorKind.TRANSPORT_FAILURE,
            ) from e

    async def close(self) -> None:
        """Close the underlying aiohttp session, if one was opened."""
        if self._session is not None and not self._session.closed:
            await self._session.close()

    def _get_session(self) -> aiohttp.ClientSession:
        # Sessions must be created inside a running event loop.
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def _serialize_uri(self, uri: URI) -> str:
        # Queries are built percent-encoded by the resolvers.
        return uri.build()

    async def _marshal_response(
        self, aiohttp_resp: aiohttp.ClientResponse
    ) -> HTTPResponse:
        """Convert a ``aiohttp.ClientResponse`` to an ``HTTPResponse``"""
        return HTTPResponse(
            status=aiohttp_resp.status,
            fields=tuples_to_fields(aiohttp_resp.headers.items()),
            body=await aiohttp_resp.read(),
            reason=aiohttp_resp.reason,
        )
