# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypedDict

from .interfaces.identity import AWSCredentialsIdentity

EXPIRATION_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class CachedCredentials(TypedDict):
    """JSON schema shared by every credentials cache backend."""

    accessKeyId: str
    secretAccessKey: str
    sessionToken: str | None
    expiration: str | None


@dataclass(kw_only=True, frozen=True)
class AWSCredentialIdentity(AWSCredentialsIdentity):
    access_key_id: str
    secret_access_key: str
    session_token: str | None = None
    expiration: datetime | None = None

    def to_cache_dict(self) -> CachedCredentials:
        """Serialize into the shape stored by credentials caches."""
        expiration = None
        if self.expiration is not None:
            expiration = self.expiration.astimezone(UTC).strftime(EXPIRATION_FORMAT)
        return {
            "accessKeyId": self.access_key_id,
            "secretAccessKey": self.secret_access_key,
            "sessionToken": self.session_token,
            "expiration": expiration,
        }

    @classmethod
    def from_cache_dict(cls, data: Mapping[str, Any]) -> "AWSCredentialIdentity":
        """Rebuild credentials from a cache entry.

        :raises KeyError: If ``accessKeyId`` or ``secretAccessKey`` is missing.
        :raises ValueError: If the keys are empty or not strings, or if
            ``expiration`` is not a parseable timestamp.
        """
        access_key_id = data["accessKeyId"]
        secret_access_key = data["secretAccessKey"]
        session_token = data.get("sessionToken")
        if not isinstance(access_key_id, str) or not access_key_id:
            raise ValueError("Cached accessKeyId must be a non-empty string.")
        if not isinstance(secret_access_key, str) or not secret_access_key:
            raise ValueError("Cached secretAccessKey must be a non-empty string.")
        if session_token is not None and not isinstance(session_token, str):
            raise ValueError("Cached sessionToken must be a string.")
        return cls(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=session_token or None,
            expiration=parse_expiration(data.get("expiration")),
        )


def parse_expiration(value: str | float | int | None) -> datetime | None:
    """Normalize an expiration value from a credentials document to UTC.

    Instance metadata returns ISO 8601 strings while STS JSON responses carry
    epoch seconds.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Unsupported expiration value: {value!r}")
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value, tz=UTC)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
