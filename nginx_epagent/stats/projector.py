"""Project snapshots and deltas onto the EPAgent metric schema."""

import re
from typing import Any, List, Mapping

from ..utils.metrics import MetricRecord, MetricType
from .delta import (
    RESPONSE_CLASSES,
    BasicDeltas,
    Deltas,
    ExtendedDeltas,
    PeerDeltas,
    ZoneDeltas,
    lookup,
)
from .parser import parse_int
from .schema import ClassifiedSnapshot, StatsSchema


_RESERVED = re.compile(r"[|:]")


def metricfy(segment: Any) -> str:
    """Make a dynamic path segment safe for the ``|``/``:`` metric grammar."""
    return _RESERVED.sub("_", "" if segment is None else str(segment))


def string_event_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class MetricProjector:
    """
    Build the flat EPAgent record list for one poll.

    Record order is part of the output contract; consumers display metrics
    in the order received.
    """

    def __init__(self, source: str):
        """
        Args:
            source: Host identifier placed under the ``nginx|`` root
        """
        self.source = source
        self.root = f"nginx|{source}"

    def project(self, snapshot: ClassifiedSnapshot, deltas: Deltas) -> List[MetricRecord]:
        if snapshot.schema is StatsSchema.EXTENDED:
            if not isinstance(deltas, ExtendedDeltas):
                raise TypeError("Extended snapshot requires ExtendedDeltas")
            return self._project_extended(snapshot.data, deltas)
        if not isinstance(deltas, BasicDeltas):
            raise TypeError("Basic snapshot requires BasicDeltas")
        return self._project_basic(snapshot.data, deltas)

    def _int(self, name: str, value: Any) -> MetricRecord:
        return MetricRecord(MetricType.INT_AVERAGE, name, parse_int(value))

    def _event(self, name: str, value: Any) -> MetricRecord:
        return MetricRecord(MetricType.STRING_EVENT, name, string_event_value(value))

    def _project_basic(self, stats: Mapping[str, Any], deltas: BasicDeltas) -> List[MetricRecord]:
        conn = f"{self.root}|Connections"
        return [
            self._int(f"{conn}:Active", stats.get("connections")),
            self._int(f"{conn}:Idle", stats.get("waiting")),
            self._int(f"{conn}:Reading Request", stats.get("reading")),
            self._int(f"{conn}:Writing Response", stats.get("writing")),
            self._int(f"{conn}:Handled Connections", deltas.handled),
            self._int(f"{conn}:Dropped Connections", max(parse_int(stats.get("nothandled")), 0)),
            self._int(f"{self.root}:Requests per Interval", deltas.requests),
            self._int(f"{self.root}:Average Requests per Connection", deltas.requests_per_connection),
        ]

    def _project_extended(self, stats: Mapping[str, Any], deltas: ExtendedDeltas) -> List[MetricRecord]:
        conn = f"{self.root}|Connections"
        ssl = f"{self.root}|SSL"
        records = [
            self._int(f"{conn}:Active", lookup(stats, "connections", "active")),
            self._int(f"{conn}:Idle", lookup(stats, "connections", "idle")),
            self._int(f"{conn}:Handled Connections", deltas.handled),
            self._int(f"{conn}:Dropped Connections", lookup(stats, "connections", "dropped")),
            self._int(f"{self.root}:Requests per Interval", deltas.requests),
            self._int(f"{self.root}:Average Requests per Connection", deltas.requests_per_connection),
            self._int(f"{ssl}:Handshakes per Interval", deltas.ssl_handshakes),
            self._int(f"{ssl}:Handshakes Failed per Interval", deltas.ssl_handshakes_failed),
            self._int(f"{ssl}:Session Reuses per Interval", deltas.ssl_session_reuses),
        ]

        for zone in deltas.zones or []:
            records.extend(self._project_zone(zone))

        for upstream in deltas.upstreams or []:
            for peer in upstream.peers:
                records.extend(self._project_peer(upstream.name, peer))

        return records

    def _project_zone(self, zone: ZoneDeltas) -> List[MetricRecord]:
        path = f"{self.root}|Server Zone|{metricfy(zone.name)}"
        records = [
            self._int(f"{path}:Requests per Interval", zone.requests),
            self._int(f"{path}:Responses per Interval", zone.responses),
            self._int(f"{path}:Discarded per Interval", zone.discarded),
            self._int(f"{path}:Processing per Interval", zone.processing),
            self._int(f"{path}:Sent Bytes per Interval", zone.sent),
            self._int(f"{path}:Received Bytes per Interval", zone.received),
        ]
        records.extend(
            self._int(f"{path}|Responses:{cls} per Interval", zone.responses_by_class.get(cls, 0))
            for cls in RESPONSE_CLASSES
        )
        return records

    def _project_peer(self, upstream: str, peer: PeerDeltas) -> List[MetricRecord]:
        path = f"{self.root}|Upstreams|{metricfy(upstream)}|{metricfy(peer.server)}"
        records = [
            self._event(f"{path}:Backup", peer.backup),
            self._event(f"{path}:State", peer.state),
            self._int(f"{path}:Requests per Interval", peer.requests),
            self._int(f"{path}:Weight", peer.weight),
            self._int(f"{path}:Active Connections", peer.active),
            self._int(f"{path}:Sent Bytes per Interval", peer.sent),
            self._int(f"{path}:Received Bytes per Interval", peer.received),
            self._int(f"{path}:Failures per Interval", peer.fails),
            self._int(f"{path}:Unavailables per Interval", peer.unavail),
            self._int(f"{path}|Health Checks:Checks per Interval", peer.health_checks),
            self._int(f"{path}|Health Checks:Failures per Interval", peer.health_check_fails),
            self._int(f"{path}|Health Checks:Unhealthy per Interval", peer.health_check_unhealthy),
        ]
        records.extend(
            self._int(f"{path}|Responses:{cls} per Interval", peer.responses_by_class.get(cls, 0))
            for cls in RESPONSE_CLASSES
        )
        return records
