"""
Dogsfy Backend — Partition Resolver
=====================================

What:  Maps coordinates to a hemisphere partition and record ids back to
       the partition that stores them.
How:   Two pure functions plus a small identifier value type. No I/O.
Who:   UserDirectory (registration, routed lookups), FriendshipGraph
       (neighbor hydration), AccountService (coordinate pre-check).

Sharding Policy:
    latitude  in [0, 90]   and longitude in [-180, 180] → "n"
    latitude  in [-90, 0)  and longitude in [-180, 180] → "s"
    anything else                                        → InvalidCoordinateError

Identifier Format:
    <tag><32 lowercase hex chars>, e.g. "n3f1c9e0a..."; the tag is written
    once at registration and is the only routing information ever consulted.
"""

import math
import re
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any

from dogsfy.exceptions import InvalidCoordinateError, MalformedIdentifierError

# Name of the partition holding friendship edges (never a user id prefix).
FRIENDS_PARTITION = "f"

IDENTIFIER_PATTERN = re.compile(r"^[ns][0-9a-f]{32}$")


class PartitionTag(str, Enum):
    """One-letter tag of a user partition; also the first character of every user id."""

    NORTH = "n"
    SOUTH = "s"


def resolve_partition(latitude: Any, longitude: Any) -> PartitionTag:
    """
    Assign a coordinate to a hemisphere partition.

    Raises:
        InvalidCoordinateError: Non-numeric, NaN, or out-of-range coordinate.
    """
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError):
        raise InvalidCoordinateError(latitude, longitude) from None

    if math.isnan(lat) or math.isnan(lng) or not -180 <= lng <= 180:
        raise InvalidCoordinateError(latitude, longitude)
    if 0 <= lat <= 90:
        return PartitionTag.NORTH
    if -90 <= lat < 0:
        return PartitionTag.SOUTH
    raise InvalidCoordinateError(latitude, longitude)


def partition_of(identifier: Any) -> PartitionTag:
    """
    Decode the partition of a record id from its first character.

    Raises:
        MalformedIdentifierError: Empty id, non-string id, or unknown tag.
    """
    if not isinstance(identifier, str) or not identifier:
        raise MalformedIdentifierError(identifier)
    try:
        return PartitionTag(identifier[0])
    except ValueError:
        raise MalformedIdentifierError(identifier) from None


@dataclass(frozen=True)
class RecordId:
    """
    A validated user identifier.

    Construct with `RecordId.parse()` for inbound strings or
    `RecordId.generate()` for new users; `str(record_id)` is the stored value.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not IDENTIFIER_PATTERN.match(self.value):
            raise MalformedIdentifierError(self.value)

    @classmethod
    def parse(cls, raw: Any) -> "RecordId":
        return cls(raw)

    @classmethod
    def generate(cls, tag: PartitionTag) -> "RecordId":
        return cls(f"{PartitionTag(tag).value}{uuid.uuid4().hex}")

    @property
    def partition(self) -> PartitionTag:
        return partition_of(self.value)

    def __str__(self) -> str:
        return self.value
