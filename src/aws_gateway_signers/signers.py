# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import hmac
import logging
from collections import OrderedDict
from dataclasses import dataclass
from hashlib import sha256
from typing import Final

from ._identity import AWSCredentialIdentity
from ._time import SigningTimestamp
from .exceptions import MissingExpectedParameterException
from .interfaces.cache import SigningKeyCache

logger: Final = logging.getLogger(__name__)

SIGNING_ALGORITHM: Final = "AWS4-HMAC-SHA256"
EMPTY_SHA256_HASH: Final = (
    "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
)
DEFAULT_SIGNED_HEADERS: Final = "host;x-amz-content-sha256;x-amz-date"
SECURITY_TOKEN_HEADER: Final = "x-amz-security-token"
DEFAULT_SIGNING_KEY_CACHE_SIZE: Final = 64
_REDACTED: Final = "****"


@dataclass(kw_only=True, frozen=True)
class SigningContext:
    """Per-request values that go into one SigV4 signature.

    :param method: HTTP method, for example ``GET``.
    :param uri: URI path exactly as it will be sent upstream.
    :param query_params: Canonical query string, or an empty string.
    :param host: Value of the upstream ``Host`` header.
    :param timestamp: Instant captured for this request only.
    :param region: Region of the upstream service, for example ``us-east-1``.
    :param service: Service code, for example ``s3`` or ``lambda``.
    :param session_token: Session token of the credentials being used, if any.
    """

    method: str
    uri: str
    query_params: str = ""
    host: str
    timestamp: SigningTimestamp
    region: str
    service: str
    session_token: str | None = None

    @property
    def amz_datetime(self) -> str:
        return self.timestamp.amz_datetime

    @property
    def eight_digit_date(self) -> str:
        return self.timestamp.eight_digit_date


@dataclass(kw_only=True, frozen=True)
class SignedHeaders:
    """Header values handed to the proxy layer for one upstream request."""

    authorization: str
    """Value of the ``Authorization`` header."""

    security_token: str
    """Value of the ``X-Amz-Security-Token`` header, empty when there is no token."""

    amz_date: str
    """Value of the ``X-Amz-Date`` header."""

    date: str
    """RFC 2616 value for the ``Date`` header."""

    content_sha256: str
    """Value of the ``X-Amz-Content-SHA256`` header."""

    signed_headers: tuple[str, ...]
    """Lower-cased names of the headers included in the signature."""

    def as_dict(self) -> dict[str, str]:
        """Render the headers the proxy should set on the upstream request."""
        headers = {
            "Authorization": self.authorization,
            "X-Amz-Date": self.amz_date,
            "X-Amz-Content-SHA256": self.content_sha256,
            "Date": self.date,
        }
        if self.security_token:
            headers["X-Amz-Security-Token"] = self.security_token
        return headers


def signed_headers(has_session_token: bool) -> str:
    """Semicolon-delimited list of the headers included in the signature.

    The order is fixed and must agree with :py:func:`build_canonical_request`.
    """
    if has_session_token:
        return f"{DEFAULT_SIGNED_HEADERS};{SECURITY_TOKEN_HEADER}"
    return DEFAULT_SIGNED_HEADERS


def build_canonical_request(
    method: str,
    uri: str,
    query_params: str,
    host: str,
    amz_datetime: str,
    session_token: str | None = None,
) -> str:
    """The canonical request is a standardized string laying out the components used
    in the SigV4 signing algorithm. This is useful to quickly compare inputs to find
    signature mismatches and unintended variances.

    SigV4 defines the canonical request to be:
        <HTTPMethod>\n
        <CanonicalURI>\n
        <CanonicalQueryString>\n
        <CanonicalHeaders>\n
        <SignedHeaders>\n
        <HashedPayload>

    Only body-less requests are signed, so the payload hash is always the hash of
    the empty string.
    """
    canonical_headers = (
        f"host:{host}\n"
        f"x-amz-content-sha256:{EMPTY_SHA256_HASH}\n"
        f"x-amz-date:{amz_datetime}\n"
    )
    if session_token:
        canonical_headers += f"{SECURITY_TOKEN_HEADER}:{session_token}\n"

    return (
        f"{method}\n"
        f"{uri}\n"
        f"{query_params or ''}\n"
        f"{canonical_headers}\n"
        f"{signed_headers(bool(session_token))}\n"
        f"{EMPTY_SHA256_HASH}"
    )


def build_signing_key(
    secret_key: str, eight_digit_date: str, service: str, region: str
) -> bytes:
    """Derive the signing key scoped to a date, region and service.

    The key stays valid for the whole UTC day, which is what makes it worth
    caching.
    """
    # Components of Signing Key Calculation
    #
    # DateKey              = HMAC-SHA256("AWS4"+"<SecretAccessKey>", "<YYYYMMDD>")
    # DateRegionKey        = HMAC-SHA256(<DateKey>, "<aws-region>")
    # DateRegionServiceKey = HMAC-SHA256(<DateRegionKey>, "<aws-service>")
    # SigningKey = HMAC-SHA256(<DateRegionServiceKey>, "aws4_request")
    k_date = _hash(key=f"AWS4{secret_key}".encode(), value=eight_digit_date)
    k_region = _hash(key=k_date, value=region)
    k_service = _hash(key=k_region, value=service)
    return _hash(key=k_service, value="aws4_request")


def build_string_to_sign(
    amz_datetime: str,
    eight_digit_date: str,
    region: str,
    service: str,
    canonical_request_hash: str,
) -> str:
    """The string to sign concatenates the formal identifier of the signing
    algorithm, the signing DateTime, the scope of the credentials, and a hash of the
    canonical request.

    SigV4 defines the string to sign as:
        Algorithm \n
        RequestDateTime \n
        CredentialScope  \n
        HashedCanonicalRequest
    """
    return (
        f"{SIGNING_ALGORITHM}\n"
        f"{amz_datetime}\n"
        f"{_scope(eight_digit_date, region, service)}\n"
        f"{canonical_request_hash}"
    )


def build_authorization(
    *,
    access_key_id: str,
    eight_digit_date: str,
    region: str,
    service: str,
    signed_headers: str,
    signature: str,
) -> str:
    """Assemble the ``Authorization`` header value."""
    credential = f"{access_key_id}/{_scope(eight_digit_date, region, service)}"
    return (
        f"{SIGNING_ALGORITHM} Credential={credential}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )


def split_cached_values(cached: str | None) -> tuple[str, str] | tuple[()]:
    """Split a ``<YYYYMMDD>:<signing key>`` cache value into its two parts.

    An empty tuple is returned for anything that isn't in that shape so the caller
    can treat it as a cache miss.
    """
    if not cached:
        return ()
    date, delimiter, signing_key = cached.partition(":")
    if not delimiter or not date or not signing_key:
        return ()
    return date, signing_key


def _scope(eight_digit_date: str, region: str, service: str) -> str:
    # Scope format: <YYYYMMDD>/<AWS Region>/<AWS Service>/aws4_request
    return f"{eight_digit_date}/{region}/{service}/aws4_request"


def _hash(key: bytes, value: str) -> bytes:
    return hmac.new(key=key, msg=value.encode(), digestmod=sha256).digest()


class InMemorySigningKeyCache:
    """Process local :py:class:`SigningKeyCache`.

    Holds at most ``max_entries`` keys and evicts the least recently used one when
    full. Rotating credentials produce a new access key id, and with it a new
    entry, every few hours.
    """

    def __init__(self, max_entries: int = DEFAULT_SIGNING_KEY_CACHE_SIZE) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1.")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, str] = OrderedDict()

    def get(self, key: str) -> str | None:
        value = self._entries.get(key)
        if value is not None:
            self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: str) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)


class SigV4Signer:
    """Produces SigV4 header values for body-less requests."""

    def __init__(
        self,
        *,
        signing_key_cache: SigningKeyCache | None = None,
        debug: bool = False,
    ) -> None:
        """
        :param signing_key_cache: Where derived signing keys are memoized. Defaults
            to a process local cache.
        :param debug: Log the canonical request and string to sign of every
            signature.
        """
        self._signing_key_cache = signing_key_cache or InMemorySigningKeyCache()
        self._debug = debug

    def sign(
        self, *, context: SigningContext, identity: AWSCredentialIdentity
    ) -> SignedHeaders:
        """Sign a request described by ``context`` with ``identity``.

        :param context: Values of the request being signed.
        :param identity: Fully resolved credentials.
        :raises MissingExpectedParameterException: If the credentials are partial or
            the context carries a session token other than the identity's.
        """
        self._validate_identity(identity=identity)
        session_token = self._session_token(context=context, identity=identity)

        canonical_request = build_canonical_request(
            context.method,
            context.uri,
            context.query_params,
            context.host,
            context.amz_datetime,
            session_token,
        )
        string_to_sign = build_string_to_sign(
            context.amz_datetime,
            context.eight_digit_date,
            context.region,
            context.service,
            sha256(canonical_request.encode()).hexdigest(),
        )
        if self._debug:
            logger.debug(
                "SigV4 canonical request: %r",
                build_canonical_request(
                    context.method,
                    context.uri,
                    context.query_params,
                    context.host,
                    context.amz_datetime,
                    _REDACTED if session_token else None,
                ),
            )
            logger.debug("SigV4 string to sign: %r", string_to_sign)

        signing_key = self._signing_key(context=context, identity=identity)
        signature = hmac.new(
            key=signing_key, msg=string_to_sign.encode(), digestmod=sha256
        ).hexdigest()

        headers_str = signed_headers(session_token is not None)
        return SignedHeaders(
            authorization=build_authorization(
                access_key_id=identity.access_key_id,
                eight_digit_date=context.eight_digit_date,
                region=context.region,
                service=context.service,
                signed_headers=headers_str,
                signature=signature,
            ),
            security_token=session_token or "",
            amz_date=context.amz_datetime,
            date=context.timestamp.http_date,
            content_sha256=EMPTY_SHA256_HASH,
            signed_headers=tuple(headers_str.split(";")),
        )

    def _validate_identity(self, *, identity: AWSCredentialIdentity) -> None:
        if not identity.access_key_id or not identity.secret_access_key:
            raise MissingExpectedParameterException(
                "Cannot sign a request without both an access key id and a "
                "secret access key."
            )

    def _session_token(
        self, *, context: SigningContext, identity: AWSCredentialIdentity
    ) -> str | None:
        session_token = context.session_token or None
        if session_token != (identity.session_token or None):
            raise MissingExpectedParameterException(
                "The session token of the signing context does not match the "
                "session token of the credentials."
            )
        return session_token

    def _signing_key(
        self, *, context: SigningContext, identity: AWSCredentialIdentity
    ) -> bytes:
        cache_key = f"{identity.access_key_id}/{context.region}/{context.service}"
        cached = split_cached_values(self._signing_key_cache.get(cache_key))
        if cached:
            cached_date, encoded_key = cached
            # A key derived for another UTC day is useless for today's scope.
            if cached_date == context.eight_digit_date:
                try:
                    return bytes.fromhex(encoded_key)
                except ValueError:
                    logger.debug("Discarding undecodable cached signing key.")
            else:
                logger.debug(
                    "Cached signing key is dated %s, expected %s.",
                    cached_date,
                    context.eight_digit_date,
                )

        signing_key = build_signing_key(
            identity.secret_access_key,
            context.eight_digit_date,
            context.service,
            context.region,
        )
        self._signing_key_cache.set(
            cache_key, f"{context.eight_digit_date}:{signing_key.hex()}"
        )
        return signing_key
