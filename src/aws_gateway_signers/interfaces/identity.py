# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .._identity import AWSCredentialIdentity


@runtime_checkable
class Identity(Protocol):
    """An entity available to the gateway representing who the caller is."""

    expiration: datetime | None = None
    """The expiration time of the identity.

    If time zone is provided, it is updated to UTC. The value must always be in UTC.
    The value is advisory; nothing refreshes credentials because of it.
    """

    @property
    def is_expired(self) -> bool:
        """Whether the identity is expired."""
        if self.expiration is None:
            return False
        return datetime.now(tz=UTC) >= self.expiration


@runtime_checkable
class AWSCredentialsIdentity(Identity, Protocol):
    """AWS Credentials Identity."""

    access_key_id: str
    """A unique identifier for an AWS user or role."""

    secret_access_key: str
    """A secret key used in conjunction with the access key ID to sign requests."""

    session_token: str | None = None
    """A temporary token used to specify the current session for the supplied
    credentials."""


class AWSCredentialsResolver(Protocol):
    """Fetches credentials from one remote or local source."""

    async def get_identity(self) -> AWSCredentialIdentity:
        """Resolve credentials.

        :raises CredentialsError: If this source cannot produce credentials.
        """
        ...
