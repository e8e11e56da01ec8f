# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .._identity import AWSCredentialIdentity


class CredentialsCache(Protocol):
    """Durable storage for credentials resolved from a remote source."""

    async def read(self) -> AWSCredentialIdentity | None:
        """Return the cached credentials, or None when nothing usable is stored.

        A missing or malformed entry is reported as None and never raised.
        """
        ...

    async def write(self, credentials: AWSCredentialIdentity | None) -> None:
        """Persist credentials, replacing whatever was stored before."""
        ...


class SigningKeyCache(Protocol):
    """Storage for derived SigV4 signing keys.

    Values use the ``<YYYYMMDD>:<hex signing key>`` representation.
    """

    def get(self, key: str) -> str | None:
        """Return the stored value for ``key`` if any."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""
        ...
