#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from .._identity import AWSCredentialIdentity
from ..config import GatewayConfig
from ..exceptions import CredentialsError, CredentialsErrorKind


class EnvironmentCredentialsResolver:
    """Resolves static AWS Credentials from ``AWS_ACCESS_KEY_ID`` and
    ``AWS_SECRET_ACCESS_KEY``.

    Static credentials never carry a session token and never expire.
    """

    def __init__(self, config: GatewayConfig):
        self._config = config
        self._credentials: AWSCredentialIdentity | None = None

    async def get_identity(self) -> AWSCredentialIdentity:
        if self._credentials is not None:
            return self._credentials

        access_key_id = self._config.aws_access_key_id
        secret_access_key = self._config.aws_secret_access_key
        if not access_key_id or not secret_access_key:
            raise CredentialsError(
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY are required",
                kind=CredentialsErrorKind.MISSING_CONFIGURATION,
            )

        self._credentials = AWSCredentialIdentity(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
        )
        return self._credentials
