# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import format_datetime
from typing import Protocol


class TimeSource(Protocol):
    """Supplies the moment a signing operation takes place."""

    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""
        ...


class SystemTimeSource:
    """Reads the system clock on every call."""

    def now(self) -> datetime:
        return datetime.now(UTC)


@dataclass(frozen=True)
class SigningTimestamp:
    """A single UTC instant and the renderings SigV4 derives from it.

    Every value used while signing one request must come from the same instance so
    the date in the credential scope always agrees with ``X-Amz-Date``.
    """

    moment: datetime

    def __post_init__(self):
        object.__setattr__(self, "moment", as_utc(self.moment))

    @classmethod
    def capture(cls, time_source: TimeSource | None = None) -> "SigningTimestamp":
        """Take a fresh timestamp from ``time_source`` (the system clock by default)."""
        return cls((time_source or SystemTimeSource()).now())

    @property
    def eight_digit_date(self) -> str:
        """``YYYYMMDD``"""
        return eight_digit_date(self.moment)

    @property
    def amz_datetime(self) -> str:
        """``YYYYMMDD'T'HHMMSS'Z'``, the value of the ``X-Amz-Date`` header."""
        return signed_date_time(self.moment, self.eight_digit_date)

    @property
    def http_date(self) -> str:
        """RFC 2616 rendering used for the ``Date`` header."""
        return http_date(self.moment)


def as_utc(timestamp: datetime) -> datetime:
    """Convert ``timestamp`` to UTC. Naive datetimes are taken to already be UTC."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=UTC)
    return timestamp.astimezone(UTC)


def eight_digit_date(timestamp: datetime) -> str:
    """Format a timestamp as its UTC ``YYYYMMDD`` date."""
    timestamp = as_utc(timestamp)
    return "".join(
        (
            _pad_with_leading_zeros(timestamp.year, 4),
            _pad_with_leading_zeros(timestamp.month, 2),
            _pad_with_leading_zeros(timestamp.day, 2),
        )
    )


def signed_date_time(timestamp: datetime, date: str) -> str:
    """Format a timestamp in UTC as ISO 8601 basic ``YYYYMMDD'T'HHMMSS'Z'``.

    :param timestamp: Timestamp to take the time of day from.
    :param date: ``YYYYMMDD`` string already extracted from ``timestamp``.
    """
    timestamp = as_utc(timestamp)
    return "".join(
        (
            date,
            "T",
            _pad_with_leading_zeros(timestamp.hour, 2),
            _pad_with_leading_zeros(timestamp.minute, 2),
            _pad_with_leading_zeros(timestamp.second, 2),
            "Z",
        )
    )


def http_date(timestamp: datetime) -> str:
    """Format a timestamp in UTC per RFC 2616, e.g. ``Sun, 30 Aug 2015 12:36:00 GMT``."""
    return format_datetime(as_utc(timestamp), usegmt=True)


def _pad_with_leading_zeros(num: int | str, size: int) -> str:
    """Left-pad ``num`` with zeros, keeping only the last ``size`` characters."""
    return str(num).zfill(size)[-size:]
