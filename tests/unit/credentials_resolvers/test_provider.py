#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import json
import typing
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest
from aws_gateway_signers import AWSCredentialIdentity, GatewayConfig
from aws_gateway_signers.credentials_resolvers import (
    ContainerCredentialsResolver,
    CredentialsProvider,
    FileCredentialsCache,
    IMDSCredentialsResolver,
    SharedStoreCredentialsCache,
    WebIdentityCredentialsResolver,
    create_credentials_resolver,
)
from aws_gateway_signers.exceptions import CredentialsError, CredentialsErrorKind
from aws_gateway_signers.testing import MockHTTPClient

if typing.TYPE_CHECKING:
    import pathlib

IMDS_DOCUMENT = {
    "AccessKeyId": "ASIAIMDS",
    "SecretAccessKey": "imds-secret",
    "Token": "imds-token",
    "Expiration": "2025-03-13T07:28:47Z",
}


def queue_imds(http_client: MockHTTPClient, role: bytes = b"my-role") -> None:
    http_client.add_response(body=b"session-token")
    http_client.add_response(body=role)
    http_client.add_json_response(IMDS_DOCUMENT)


@pytest.mark.parametrize(
    "config, resolver_type",
    [
        (GatewayConfig(), IMDSCredentialsResolver),
        (
            GatewayConfig(container_credentials_relative_uri="/creds"),
            ContainerCredentialsResolver,
        ),
        (
            GatewayConfig(web_identity_token_file="/var/run/token"),
            WebIdentityCredentialsResolver,
        ),
    ],
)
def test_create_credentials_resolver(
    config: GatewayConfig, resolver_type: type[object]
):
    resolver = create_credentials_resolver(config, MockHTTPClient())
    assert isinstance(resolver, resolver_type)


async def test_static_credentials_skip_cache():
    config = GatewayConfig(aws_access_key_id="AKID", aws_secret_access_key="secret")
    cache = AsyncMock()
    http_client = MockHTTPClient()
    provider = CredentialsProvider(config, cache=cache, http_client=http_client)

    credentials = await provider.resolve()

    assert credentials == AWSCredentialIdentity(
        access_key_id="AKID", secret_access_key="secret"
    )
    assert credentials.session_token is None
    cache.read.assert_not_awaited()
    cache.write.assert_not_awaited()
    assert http_client.call_count == 0


async def test_cache_hit_skips_fetch():
    cached = AWSCredentialIdentity(
        access_key_id="CACHED",
        secret_access_key="cached-secret",
        # Cached credentials are returned even once they have expired.
        expiration=datetime(2000, 1, 1, tzinfo=UTC),
    )
    cache = AsyncMock()
    cache.read.return_value = cached
    resolver = AsyncMock()
    provider = CredentialsProvider(
        GatewayConfig(), cache=cache, http_client=MockHTTPClient(), resolver=resolver
    )

    assert await provider.resolve() is cached
    resolver.get_identity.assert_not_awaited()
    cache.write.assert_not_awaited()


async def test_imds_end_to_end_with_file_cache(tmp_path: pathlib.Path):
    path = tmp_path / "credentials.json"
    config = GatewayConfig(credentials_temp_file=str(path))
    http_client = MockHTTPClient()
    queue_imds(http_client)
    provider = CredentialsProvider.from_config(config, http_client=http_client)

    credentials = await provider.resolve()

    assert credentials == AWSCredentialIdentity(
        access_key_id="ASIAIMDS",
        secret_access_key="imds-secret",
        session_token="imds-token",
        expiration=datetime(2025, 3, 13, 7, 28, 47, tzinfo=UTC),
    )
    assert json.loads(path.read_text()) == {
        "accessKeyId": "ASIAIMDS",
        "secretAccessKey": "imds-secret",
        "sessionToken": "imds-token",
        "expiration": "2025-03-13T07:28:47Z",
    }
    assert await FileCredentialsCache(str(path)).read() == credentials

    # The second resolution is served from the cache.
    assert await provider.resolve() == credentials
    assert http_client.call_count == 3


async def test_corrupt_cache_file_is_refetched(tmp_path: pathlib.Path):
    path = tmp_path / "credentials.json"
    path.write_text("{corrupt")
    config = GatewayConfig(credentials_temp_file=str(path))
    http_client = MockHTTPClient()
    queue_imds(http_client)
    provider = CredentialsProvider.from_config(config, http_client=http_client)

    credentials = await provider.resolve()

    assert credentials.access_key_id == "ASIAIMDS"
    assert await FileCredentialsCache(str(path)).read() == credentials


async def test_shared_store_end_to_end():
    store: dict[str, str] = {}
    config = GatewayConfig(cache_instance_credentials_enabled=True)
    http_client = MockHTTPClient()
    queue_imds(http_client)
    provider = CredentialsProvider.from_config(
        config, http_client=http_client, store=store
    )

    credentials = await provider.resolve()

    assert json.loads(store["instance_credential_json"])["accessKeyId"] == "ASIAIMDS"
    assert await SharedStoreCredentialsCache(store).read() == credentials


async def test_no_role_error_propagates_and_nothing_is_cached():
    store: dict[str, str] = {}
    config = GatewayConfig(cache_instance_credentials_enabled=True)
    http_client = MockHTTPClient()
    http_client.add_response(body=b"session-token")
    http_client.add_response(body=b"")
    provider = CredentialsProvider.from_config(
        config, http_client=http_client, store=store
    )

    with pytest.raises(CredentialsError) as e:
        await provider.resolve()

    assert e.value.kind is CredentialsErrorKind.NO_ROLE_CREDENTIALS
    assert store == {}


async def test_transport_failure_propagates():
    http_client = MockHTTPClient()
    http_client.add_error(
        CredentialsError("refused", kind=CredentialsErrorKind.TRANSPORT_FAILURE)
    )
    provider = CredentialsProvider.from_config(
        GatewayConfig(cache_instance_credentials_enabled=True),
        http_client=http_client,
        store={},
    )

    with pytest.raises(CredentialsError) as e:
        await provider.resolve()
    assert e.value.kind is CredentialsErrorKind.TRANSPORT_FAILURE


async def test_regional_sts_without_region_makes_no_calls(tmp_path: pathlib.Path):
    token_file = tmp_path / "token"
    token_file.write_text("token")
    config = GatewayConfig(
        web_identity_token_file=str(token_file),
        role_arn="arn:aws:iam::123456789012:role/gateway",
        sts_regional_endpoints="regional",
        credentials_temp_file=str(tmp_path / "credentials.json"),
    )
    http_client = MockHTTPClient()
    provider = CredentialsProvider.from_config(config, http_client=http_client)

    with pytest.raises(CredentialsError) as e:
        await provider.resolve()

    assert e.value.kind is CredentialsErrorKind.MISSING_REGION
    assert http_client.call_count == 0


async def test_web_identity_uses_hostname_as_session_name(tmp_path: pathlib.Path):
    token_file = tmp_path / "token"
    token_file.write_text("token")
    config = GatewayConfig(
        web_identity_token_file=str(token_file),
        role_arn="arn:aws:iam::123456789012:role/gateway",
        hostname="gateway-pod-1",
        credentials_temp_file=str(tmp_path / "credentials.json"),
    )
    http_client = MockHTTPClient()
    http_client.add_json_response(
        {
            "AssumeRoleWithWebIdentityResponse": {
                "AssumeRoleWithWebIdentityResult": {
                    "Credentials": {
                        "AccessKeyId": "ASIASTS",
                        "SecretAccessKey": "sts-secret",
                        "SessionToken": "sts-token",
                        "Expiration": 1741850927,
                    }
                }
            }
        }
    )
    provider = CredentialsProvider.from_config(config, http_client=http_client)

    credentials = await provider.resolve()

    assert credentials.session_token == "sts-token"
    query = http_client.captured_requests[0].destination.query
    assert query is not None
    assert "RoleSessionName=gateway-pod-1" in query
