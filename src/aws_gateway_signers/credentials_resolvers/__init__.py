#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from .cache import (
    FileCredentialsCache,
    SharedStoreCredentialsCache,
    create_credentials_cache,
)
from .container import ContainerCredentialsResolver
from .environment import EnvironmentCredentialsResolver
from .imds import IMDSCredentialsResolver
from .provider import CredentialsProvider, create_credentials_resolver
from .web_identity import WebIdentityCredentialsResolver

__all__ = (
    "ContainerCredentialsResolver",
    "CredentialsProvider",
    "EnvironmentCredentialsResolver",
    "FileCredentialsCache",
    "IMDSCredentialsResolver",
    "SharedStoreCredentialsCache",
    "WebIdentityCredentialsResolver",
    "create_credentials_cache",
    "create_credentials_resolver",
)
