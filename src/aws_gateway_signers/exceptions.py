# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from dataclasses import dataclass, field
from enum import Enum


class GatewaySignersError(Exception):
    """Top-level exception to capture signing and credential related errors."""


class MissingExpectedParameterException(GatewaySignersError, ValueError):
    """Signing requires specific values to be present and non-empty."""


class CredentialsErrorKind(Enum):
    """Discriminates the reasons a credentials resolution can fail."""

    NO_ROLE_CREDENTIALS = "NoRoleCredentials"
    """The instance metadata service has no IAM role attached."""

    MISSING_REGION = "MissingRegion"
    """Regional STS endpoints were requested without a configured region."""

    CACHE_WRITE_REJECTED = "CacheWriteRejected"
    """An empty credentials value was handed to a credentials cache."""

    TRANSPORT_FAILURE = "TransportFailure"
    """The fetch collaborator failed or returned an unsuccessful response."""

    MISSING_CONFIGURATION = "MissingConfiguration"
    """A credentials source was selected but is missing required settings."""

    INVALID_CREDENTIALS = "InvalidCredentials"
    """A credentials document could not be parsed or lacked required keys."""


@dataclass(kw_only=True)
class CredentialsError(GatewaySignersError):
    """Raised when credentials cannot be resolved and no fallback remains."""

    kind: CredentialsErrorKind
    """Why the resolution failed."""

    message: str = field(default="", kw_only=False)
    """The message of the error."""

    def __post_init__(self):
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"
