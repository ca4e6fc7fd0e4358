"""Metric record data structures for the EPAgent feed."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Union


class MetricType(Enum):
    """EPAgent metric aggregation type."""

    INT_AVERAGE = "IntAverage"
    STRING_EVENT = "StringEvent"


@dataclass(frozen=True)
class MetricRecord:
    """One entry of the EPAgent ``metrics`` array."""

    type: MetricType
    name: str
    value: Union[int, str]

    def to_dict(self) -> Dict[str, Union[int, str]]:
        """Render the record in EPAgent wire format."""
        return {
            "type": self.type.value,
            "name": self.name,
            "value": self.value,
        }
