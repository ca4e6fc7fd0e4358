"""Snapshot schema classification."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping


class StatsSchema(Enum):
    """Shape of an nginx statistics snapshot."""

    BASIC = "basic"        # stub_status flat counters
    EXTENDED = "extended"  # nginx plus structured counters


@dataclass(frozen=True)
class ClassifiedSnapshot:
    """A snapshot tagged with its schema."""

    schema: StatsSchema
    data: Mapping[str, Any]

    @property
    def is_extended(self) -> bool:
        return self.schema is StatsSchema.EXTENDED


def classify(snapshot: Mapping[str, Any]) -> ClassifiedSnapshot:
    """
    Decide whether a snapshot is basic or extended.

    Both modules report ``requests`` and ``handled``; the extended module
    nests ``requests`` while ``handled`` is never structured.
    """
    requests = snapshot.get("requests")
    handled = snapshot.get("handled")

    if isinstance(requests, Mapping) and not isinstance(handled, (Mapping, list)):
        return ClassifiedSnapshot(StatsSchema.EXTENDED, snapshot)
    return ClassifiedSnapshot(StatsSchema.BASIC, snapshot)
