#  Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#  SPDX-License-Identifier: Apache-2.0
"""Backends that persist resolved credentials between requests.

Both backends store the same JSON document::

    {"accessKeyId": "...", "secretAccessKey": "...",
     "sessionToken": "...", "expiration": "2024-01-01T00:00:00Z"}

A missing or unreadable entry is reported as a cache miss so the caller falls back
to fetching fresh credentials.
"""

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import MutableMapping
from typing import Final

from .._identity import AWSCredentialIdentity
from ..config import GatewayConfig
from ..exceptions import CredentialsError, CredentialsErrorKind
from ..interfaces.cache import CredentialsCache

logger: Final = logging.getLogger(__name__)

SHARED_STORE_KEY: Final = "instance_credential_json"


def _decode(raw: str | bytes, *, location: str) -> AWSCredentialIdentity | None:
    try:
        return AWSCredentialIdentity.from_cache_dict(json.loads(raw))
    except (KeyError, TypeError, ValueError) as e:
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors.
        logger.warning("Ignoring unusable cached credentials in %s: %r", location, e)
        return None


def _encode(credentials: AWSCredentialIdentity) -> str:
    return json.dumps(credentials.to_cache_dict())


def _reject_empty(credentials: AWSCredentialIdentity | None) -> AWSCredentialIdentity:
    if not credentials:
        raise CredentialsError(
            f"Cannot write invalid credentials: {credentials!r}",
            kind=CredentialsErrorKind.CACHE_WRITE_REJECTED,
        )
    return credentials


class SharedStoreCredentialsCache:
    """Keeps credentials in a string key-value store shared by every worker.

    :param store: Mapping backed by the shared store.
    :param key: Entry holding the serialized credentials.
    :param write_enabled: When False writes are silently dropped. This is the case
        when static credentials are configured and nothing needs caching.
    """

    def __init__(
        self,
        store: MutableMapping[str, str],
        *,
        key: str = SHARED_STORE_KEY,
        write_enabled: bool = True,
    ):
        self._store = store
        self._key = key
        self._write_enabled = write_enabled

    async def read(self) -> AWSCredentialIdentity | None:
        cached = self._store.get(self._key)
        if not cached:
            return None
        return _decode(cached, location=f"shared store key {self._key}")

    async def write(self, credentials: AWSCredentialIdentity | None) -> None:
        if not self._write_enabled:
            return
        self._store[self._key] = _encode(_reject_empty(credentials))


class FileCredentialsCache:
    """Keeps credentials in a JSON file on the local file system.

    File access runs in a worker thread. Writes go to a temporary sibling that is
    then renamed over the target, so readers never observe a partial document.

    :param path: Location of the cache file.
    :param write_enabled: When False writes are silently dropped.
    """

    def __init__(self, path: str, *, write_enabled: bool = True):
        self._path = path
        self._write_enabled = write_enabled

    @property
    def path(self) -> str:
        return self._path

    async def read(self) -> AWSCredentialIdentity | None:
        try:
            raw = await asyncio.to_thread(self._read_file)
        except FileNotFoundError:
            # Nothing has been fetched yet.
            logger.debug("Credentials cache file %s does not exist", self._path)
            return None
        return _decode(raw, location=self._path)

    async def write(self, credentials: AWSCredentialIdentity | None) -> None:
        if not self._write_enabled:
            return
        document = _encode(_reject_empty(credentials))
        await asyncio.to_thread(self._write_file, document)
        logger.debug("Wrote credentials cache file %s", self._path)

    def _read_file(self) -> bytes:
        with open(self._path, "rb") as f:
            return f.read()

    def _write_file(self, document: str) -> None:
        directory = os.path.dirname(self._path) or "."
        fd, tmp_path = tempfile.mkstemp(
            dir=directory, prefix=f".{os.path.basename(self._path)}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)
            os.replace(tmp_path, self._path)
        except BaseException:
            os.unlink(tmp_path)
            raise


def create_credentials_cache(
    config: GatewayConfig, store: MutableMapping[str, str] | None = None
) -> CredentialsCache:
    """Select the credentials cache backend once, at startup.

    The shared store is used when ``CACHE_INSTANCE_CREDENTIALS_ENABLED`` is set and a
    store is available. Otherwise credentials are kept in a file.
    """
    write_enabled = not config.has_static_credentials
    if config.cache_instance_credentials_enabled and store is not None:
        logger.debug("Caching credentials in the shared store")
        return SharedStoreCredentialsCache(store, write_enabled=write_enabled)
    if config.cache_instance_credentials_enabled:
        logger.warning(
            "Shared store caching is enabled but no store is available, caching "
            "credentials in %s instead",
            config.credentials_file_path,
        )
    else:
        logger.debug("Caching credentials in %s", config.credentials_file_path)
    return FileCredentialsCache(
        config.credentials_file_path, write_enabled=write_enabled
    )
