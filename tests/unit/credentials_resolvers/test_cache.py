#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import json
import logging
import os
import typing
from datetime import UTC, datetime

import pytest
from aws_gateway_signers import AWSCredentialIdentity, GatewayConfig
from aws_gateway_signers.credentials_resolvers.cache import (
    SHARED_STORE_KEY,
    FileCredentialsCache,
    SharedStoreCredentialsCache,
    create_credentials_cache,
)
from aws_gateway_signers.exceptions import CredentialsError, CredentialsErrorKind

if typing.TYPE_CHECKING:
    import pathlib

CREDENTIALS = AWSCredentialIdentity(
    access_key_id="ASIAEXAMPLE",
    secret_access_key="secret",
    session_token="session-token",
    expiration=datetime(2025, 3, 13, 7, 28, 47, tzinfo=UTC),
)

CACHED_DOCUMENT = {
    "accessKeyId": "ASIAEXAMPLE",
    "secretAccessKey": "secret",
    "sessionToken": "session-token",
    "expiration": "2025-03-13T07:28:47Z",
}


class TestSharedStoreCredentialsCache:
    async def test_read_missing(self):
        assert await SharedStoreCredentialsCache({}).read() is None

    async def test_read_empty(self):
        assert await SharedStoreCredentialsCache({SHARED_STORE_KEY: ""}).read() is None

    async def test_read(self):
        store = {SHARED_STORE_KEY: json.dumps(CACHED_DOCUMENT)}
        assert await SharedStoreCredentialsCache(store).read() == CREDENTIALS

    @pytest.mark.parametrize(
        "cached",
        [
            "{not json",
            "[]",
            "null",
            json.dumps({"accessKeyId": "A"}),
            json.dumps({"accessKeyId": "", "secretAccessKey": ""}),
            json.dumps({"accessKeyId": 1, "secretAccessKey": ["s"]}),
        ],
    )
    async def test_read_corrupt(self, cached: str, caplog: pytest.LogCaptureFixture):
        cache = SharedStoreCredentialsCache({SHARED_STORE_KEY: cached})
        with caplog.at_level(logging.WARNING):
            assert await cache.read() is None
        assert "Ignoring unusable cached credentials" in caplog.text

    async def test_write(self):
        store: dict[str, str] = {}
        await SharedStoreCredentialsCache(store).write(CREDENTIALS)
        assert json.loads(store[SHARED_STORE_KEY]) == CACHED_DOCUMENT

    async def test_last_write_wins(self):
        store: dict[str, str] = {}
        cache = SharedStoreCredentialsCache(store)
        newer = AWSCredentialIdentity(access_key_id="NEWER", secret_access_key="s")
        await cache.write(CREDENTIALS)
        await cache.write(newer)
        assert await cache.read() == newer

    async def test_write_none_rejected(self):
        with pytest.raises(CredentialsError) as e:
            await SharedStoreCredentialsCache({}).write(None)
        assert e.value.kind is CredentialsErrorKind.CACHE_WRITE_REJECTED

    async def test_write_disabled(self):
        store: dict[str, str] = {}
        cache = SharedStoreCredentialsCache(store, write_enabled=False)
        await cache.write(CREDENTIALS)
        await cache.write(None)
        assert store == {}


class TestFileCredentialsCache:
    async def test_read_missing_file(self, tmp_path: pathlib.Path):
        cache = FileCredentialsCache(str(tmp_path / "credentials.json"))
        assert await cache.read() is None

    async def test_read(self, tmp_path: pathlib.Path):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps(CACHED_DOCUMENT))
        assert await FileCredentialsCache(str(path)).read() == CREDENTIALS

    async def test_read_corrupt_file(
        self, tmp_path: pathlib.Path, caplog: pytest.LogCaptureFixture
    ):
        path = tmp_path / "credentials.json"
        path.write_bytes(b'{"accessKeyId": "trunc')
        with caplog.at_level(logging.WARNING):
            assert await FileCredentialsCache(str(path)).read() is None
        assert str(path) in caplog.text

    async def test_read_other_errors_propagate(self, tmp_path: pathlib.Path):
        # Reading a directory fails with something other than FileNotFoundError.
        cache = FileCredentialsCache(str(tmp_path))
        with pytest.raises(OSError):
            await cache.read()

    async def test_write_then_read(self, tmp_path: pathlib.Path):
        path = tmp_path / "credentials.json"
        cache = FileCredentialsCache(str(path))
        await cache.write(CREDENTIALS)
        assert json.loads(path.read_text()) == CACHED_DOCUMENT
        assert await cache.read() == CREDENTIALS

    async def test_write_replaces_corrupt_file(self, tmp_path: pathlib.Path):
        path = tmp_path / "credentials.json"
        path.write_text("garbage")
        cache = FileCredentialsCache(str(path))
        assert await cache.read() is None
        await cache.write(CREDENTIALS)
        assert await cache.read() == CREDENTIALS

    async def test_write_leaves_no_temporary_files(self, tmp_path: pathlib.Path):
        cache = FileCredentialsCache(str(tmp_path / "credentials.json"))
        await cache.write(CREDENTIALS)
        await cache.write(CREDENTIALS)
        assert os.listdir(tmp_path) == ["credentials.json"]

    async def test_write_none_rejected(self, tmp_path: pathlib.Path):
        path = tmp_path / "credentials.json"
        with pytest.raises(CredentialsError) as e:
            await FileCredentialsCache(str(path)).write(None)
        assert e.value.kind is CredentialsErrorKind.CACHE_WRITE_REJECTED
        assert not path.exists()

    async def test_write_disabled(self, tmp_path: pathlib.Path):
        path = tmp_path / "credentials.json"
        await FileCredentialsCache(str(path), write_enabled=False).write(CREDENTIALS)
        assert not path.exists()


def test_create_file_cache_by_default(tmp_path: pathlib.Path):
    config = GatewayConfig(credentials_temp_file=str(tmp_path / "creds.json"))
    cache = create_credentials_cache(config, store={})
    assert isinstance(cache, FileCredentialsCache)
    assert cache.path == str(tmp_path / "creds.json")


def test_create_shared_store_cache():
    config = GatewayConfig(cache_instance_credentials_enabled=True)
    assert isinstance(
        create_credentials_cache(config, store={}), SharedStoreCredentialsCache
    )


def test_create_file_cache_without_store(caplog: pytest.LogCaptureFixture):
    config = GatewayConfig(cache_instance_credentials_enabled=True)
    with caplog.at_level(logging.WARNING):
        assert isinstance(create_credentials_cache(config), FileCredentialsCache)
    assert "no store is available" in caplog.text
    assert config.credentials_file_path in caplog.text


def test_create_file_cache_by_default_does_not_warn(
    tmp_path: pathlib.Path, caplog: pytest.LogCaptureFixture
):
    config = GatewayConfig(credentials_temp_file=str(tmp_path / "creds.json"))
    with caplog.at_level(logging.WARNING):
        create_credentials_cache(config)
    assert caplog.records == []


async def test_static_credentials_disable_writes(tmp_path: pathlib.Path):
    path = tmp_path / "creds.json"
    config = GatewayConfig(
        aws_access_key_id="AKID",
        aws_secret_access_key="secret",
        credentials_temp_file=str(path),
    )
    await create_credentials_cache(config).write(CREDENTIALS)
    assert not path.exists()
