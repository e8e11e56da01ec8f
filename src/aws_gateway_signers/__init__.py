# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""AWS Gateway Signers produces SigV4 header values for a reverse proxy that fronts
S3 and Lambda, and resolves the credentials used to compute them."""

from __future__ import annotations

__license__ = "Apache-2.0"
__version__ = "0.1.0"

from ._http import URI, Field, Fields  # noqa: E402
from ._identity import AWSCredentialIdentity  # noqa: E402
from ._time import SigningTimestamp, SystemTimeSource  # noqa: E402
from .authorizer import RequestAuthorizer  # noqa: E402
from .config import GatewayConfig  # noqa: E402
from .exceptions import (  # noqa: E402
    CredentialsError,
    CredentialsErrorKind,
    GatewaySignersError,
    MissingExpectedParameterException,
)
from .signers import (  # noqa: E402
    InMemorySigningKeyCache,
    SignedHeaders,
    SigningContext,
    SigV4Signer,
)

__all__ = (
    "URI",
    "AWSCredentialIdentity",
    "CredentialsError",
    "CredentialsErrorKind",
    "Field",
    "Fields",
    "GatewayConfig",
    "GatewaySignersError",
    "InMemorySigningKeyCache",
    "MissingExpectedParameterException",
    "RequestAuthorizer",
    "SigV4Signer",
    "SignedHeaders",
    "SigningContext",
    "SigningTimestamp",
    "SystemTimeSource",
)
