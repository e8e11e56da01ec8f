#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
import json
from collections.abc import Mapping
from typing import Any

from .._identity import AWSCredentialIdentity, parse_expiration
from ..exceptions import CredentialsError, CredentialsErrorKind
from ..interfaces.http import HTTPResponse


def check_response(response: HTTPResponse, *, source: str) -> None:
    """Raise a transport failure for any response other than 200 OK."""
    if response.status != 200:
        raise CredentialsError(
            f"{source} returned {response.status}: "
            f"{response.body.decode('utf-8', errors='replace')}",
            kind=CredentialsErrorKind.TRANSPORT_FAILURE,
        )


def load_json(response: HTTPResponse, *, source: str) -> Any:
    try:
        return json.loads(response.text())
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CredentialsError(
            f"Unable to parse JSON from {source}.",
            kind=CredentialsErrorKind.INVALID_CREDENTIALS,
        ) from e


def credentials_from_document(
    document: Any, *, source: str, session_token_key: str = "Token"
) -> AWSCredentialIdentity:
    """Map a credentials document in the ``AccessKeyId``/``SecretAccessKey`` shape.

    :param document: Decoded JSON document.
    :param source: Human readable name of where the document came from.
    :param session_token_key: Key holding the session token. Instance and container
        metadata use ``Token`` while STS uses ``SessionToken``.
    """
    if not isinstance(document, Mapping):
        raise CredentialsError(
            f"Expected a JSON object from {source}.",
            kind=CredentialsErrorKind.INVALID_CREDENTIALS,
        )

    access_key_id = document.get("AccessKeyId")
    secret_access_key = document.get("SecretAccessKey")
    if not access_key_id or not secret_access_key:
        raise CredentialsError(
            f"AccessKeyId and SecretAccessKey are required in credentials from {source}",
            kind=CredentialsErrorKind.INVALID_CREDENTIALS,
        )

    try:
        expiration = parse_expiration(document.get("Expiration"))
    except (TypeError, ValueError) as e:
        raise CredentialsError(
            f"Unable to parse Expiration from {source}.",
            kind=CredentialsErrorKind.INVALID_CREDENTIALS,
        ) from e

    return AWSCredentialIdentity(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=document.get(session_token_key),
        expiration=expiration,
    )
