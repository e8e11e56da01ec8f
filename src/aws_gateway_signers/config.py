# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields
from typing import Any, ClassVar, Literal, TypeAlias

DEFAULT_ROLE_SESSION_NAME = "aws-gateway-signers"
DEFAULT_CREDENTIALS_FILE = "/tmp/credentials.json"  # noqa: S108
CREDENTIALS_FILE_NAME = "credentials.json"

CredentialsSourceName: TypeAlias = Literal["web_identity", "container", "imds"]

_TRUE_VALUES = frozenset(("TRUE", "true", "True", "YES", "yes", "Yes", "1"))


def parse_boolean(value: Any) -> bool:
    """Interpret a configuration value as a boolean.

    Only the usual spellings of true and yes, or ``1``, are truthy. Anything else,
    including values that cannot be parsed, is False.
    """
    if isinstance(value, bool):
        return value
    return value in _TRUE_VALUES


def _optional_string(value: Any) -> str | None:
    # Environment variables that are set but empty count as unset.
    if value is None or value == "":
        return None
    return str(value)


@dataclass(kw_only=True, frozen=True)
class GatewayConfig:
    """Settings that control how credentials are resolved and requests are signed.

    HOW TO ADD A NEW CONFIG FIELD:

    1. Add the attribute to the dataclass with its default.

    2. Add it to the CONFIG_FIELDS dictionary:
        "my_field": {
            "env_var": "MY_ENV_VAR",  # environment variable name
            "parser": _optional_string,  # converts the raw environment value
        }
    """

    CONFIG_FIELDS: ClassVar[dict[str, dict[str, Any]]] = {
        "aws_access_key_id": {
            "env_var": "AWS_ACCESS_KEY_ID",
            "parser": _optional_string,
        },
        "aws_secret_access_key": {
            "env_var": "AWS_SECRET_ACCESS_KEY",
            "parser": _optional_string,
        },
        "credentials_temp_file": {
            "env_var": "AWS_CREDENTIALS_TEMP_FILE",
            "parser": _optional_string,
        },
        "tmpdir": {
            "env_var": "TMPDIR",
            "parser": _optional_string,
        },
        "cache_instance_credentials_enabled": {
            "env_var": "CACHE_INSTANCE_CREDENTIALS_ENABLED",
            "parser": parse_boolean,
        },
        "web_identity_token_file": {
            "env_var": "AWS_WEB_IDENTITY_TOKEN_FILE",
            "parser": _optional_string,
        },
        "role_arn": {
            "env_var": "AWS_ROLE_ARN",
            "parser": _optional_string,
        },
        "hostname": {
            "env_var": "HOSTNAME",
            "parser": _optional_string,
        },
        "role_session_name": {
            "env_var": "AWS_ROLE_SESSION_NAME",
            "parser": _optional_string,
        },
        "sts_endpoint": {
            "env_var": "STS_ENDPOINT",
            "parser": _optional_string,
        },
        "sts_regional_endpoints": {
            "env_var": "AWS_STS_REGIONAL_ENDPOINTS",
            "parser": _optional_string,
        },
        "region": {
            "env_var": "AWS_REGION",
            "parser": _optional_string,
        },
        "container_credentials_relative_uri": {
            "env_var": "AWS_CONTAINER_CREDENTIALS_RELATIVE_URI",
            "parser": _optional_string,
        },
        "container_credentials_full_uri": {
            "env_var": "AWS_CONTAINER_CREDENTIALS_FULL_URI",
            "parser": _optional_string,
        },
        "container_authorization_token": {
            "env_var": "AWS_CONTAINER_AUTHORIZATION_TOKEN",
            "parser": _optional_string,
        },
        "container_authorization_token_file": {
            "env_var": "AWS_CONTAINER_AUTHORIZATION_TOKEN_FILE",
            "parser": _optional_string,
        },
        "debug": {
            "env_var": "AWS_DEBUG",
            "parser": parse_boolean,
        },
    }

    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    credentials_temp_file: str | None = None
    tmpdir: str | None = None
    cache_instance_credentials_enabled: bool = False
    web_identity_token_file: str | None = None
    role_arn: str | None = None
    hostname: str | None = None
    role_session_name: str = DEFAULT_ROLE_SESSION_NAME
    sts_endpoint: str | None = None
    sts_regional_endpoints: str = "global"
    region: str | None = None
    container_credentials_relative_uri: str | None = None
    container_credentials_full_uri: str | None = None
    container_authorization_token: str | None = None
    container_authorization_token_file: str | None = None
    debug: bool = False

    @classmethod
    def from_environment(
        cls, environ: Mapping[str, str] | None = None
    ) -> "GatewayConfig":
        """Build a config from environment variables.

        :param environ: Mapping to read from. Defaults to ``os.environ``.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for field_name, field_info in cls.CONFIG_FIELDS.items():
            env_var: str = field_info["env_var"]
            parser: Callable[[Any], Any] = field_info["parser"]
            if env_var not in env:
                continue
            value = parser(env[env_var])
            if value is not None:
                values[field_name] = value
        return cls(**values)

    @property
    def has_static_credentials(self) -> bool:
        """Whether both halves of a static access key pair are configured."""
        return bool(self.aws_access_key_id and self.aws_secret_access_key)

    @property
    def credentials_file_path(self) -> str:
        """Location of the file based credentials cache."""
        if self.credentials_temp_file:
            return self.credentials_temp_file
        if self.tmpdir:
            return f"{self.tmpdir}/{CREDENTIALS_FILE_NAME}"
        return DEFAULT_CREDENTIALS_FILE

    @property
    def session_name(self) -> str:
        """Role session name used for web identity federation."""
        return self.hostname or self.role_session_name

    @property
    def credentials_source(self) -> CredentialsSourceName:
        """The remote source credentials are fetched from on a cache miss."""
        if self.web_identity_token_file:
            return "web_identity"
        if self.container_credentials_relative_uri or self.container_credentials_full_uri:
            return "container"
        return "imds"

    def __repr__(self) -> str:
        # Keep the secret out of logs and tracebacks.
        parts = []
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name in ("aws_secret_access_key", "container_authorization_token"):
                value = None if value is None else "****"
            parts.append(f"{f.name}={value!r}")
        return f"{type(self).__name__}({', '.join(parts)})"
