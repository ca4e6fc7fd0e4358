"""Interval delta computation between two nginx snapshots."""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .schema import ClassifiedSnapshot


RESPONSE_CLASSES: Tuple[str, ...] = ("1xx", "2xx", "3xx", "4xx", "5xx")


@dataclass(frozen=True)
class BasicDeltas:
    """Interval values for a stub_status snapshot."""
    handled: int = 0
    requests: int = 0
    requests_per_connection: int = 0


@dataclass(frozen=True)
class ZoneDeltas:
    """Interval values for one server zone."""
    name: str
    requests: int = 0
    responses: int = 0
    discarded: int = 0
    processing: int = 0
    sent: int = 0
    received: int = 0
    responses_by_class: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PeerDeltas:
    """Interval values plus current gauges for one upstream peer."""
    server: Any = None
    backup: Any = None
    state: Any = None
    weight: Any = None
    active: Any = None
    requests: int = 0
    sent: int = 0
    received: int = 0
    fails: int = 0
    unavail: int = 0
    health_checks: int = 0
    health_check_fails: int = 0
    health_check_unhealthy: int = 0
    responses_by_class: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class UpstreamDeltas:
    """Per-peer values for one upstream, in the order nginx reported the peers."""
    name: str
    peers: List[PeerDeltas] = field(default_factory=list)


@dataclass(frozen=True)
class ExtendedDeltas:
    """Interval values for an nginx plus snapshot."""
    previous_valid: bool = False
    handled: int = 0
    requests: int = 0
    requests_per_connection: int = 0
    ssl_handshakes: int = 0
    ssl_handshakes_failed: int = 0
    ssl_session_reuses: int = 0
    zones: Optional[List[ZoneDeltas]] = None  # None when server_zones is absent
    upstreams: Optional[List[UpstreamDeltas]] = None  # None when upstreams is absent


Deltas = Union[BasicDeltas, ExtendedDeltas]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def diff(current: Any, previous: Any) -> int:
    """
    Clamped counter difference.

    Returns 0 when either side is missing or not a number, otherwise
    max(current - previous, 0), so a counter reset reads as an idle interval.
    """
    if not _is_number(current) or not _is_number(previous):
        return 0
    return int(max(current - previous, 0))


def round_half_away_from_zero(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def requests_per_connection(requests: int, handled: int) -> int:
    if requests > 0 and handled != 0:
        return round_half_away_from_zero(requests / handled)
    return 0


def lookup(data: Any, *path: str) -> Any:
    """Walk nested mappings, returning None as soon as a key is missing."""
    for key in path:
        if not isinstance(data, Mapping) or key not in data:
            return None
        data = data[key]
    return data


def is_previous_valid(previous: Mapping[str, Any]) -> bool:
    """True when the previous snapshot carries a numeric requests.total."""
    return _is_number(lookup(previous, "requests", "total"))


def peer_list(upstream: Any) -> Sequence[Any]:
    """Peers of an upstream; newer APIs wrap them as {"peers": [...]}."""
    if isinstance(upstream, Mapping):
        upstream = upstream.get("peers")
    if isinstance(upstream, list):
        return upstream
    return []


def compute_deltas(previous: Mapping[str, Any], current: ClassifiedSnapshot) -> Deltas:
    """
    Compute interval deltas for ``current`` against ``previous``.

    Args:
        previous: Raw previous snapshot (empty mapping on the first poll)
        current: Classified current snapshot

    Returns:
        BasicDeltas or ExtendedDeltas, matching ``current.schema``
    """
    if current.is_extended:
        return _extended_deltas(previous, current.data)
    return _basic_deltas(previous, current.data)


def _basic_deltas(previous: Mapping[str, Any], stats: Mapping[str, Any]) -> BasicDeltas:
    handled = diff(stats.get("handled"), previous["handled"]) if "handled" in previous else 0
    requests = diff(stats.get("requests"), previous["requests"]) if "requests" in previous else 0

    return BasicDeltas(
        handled=handled,
        requests=requests,
        requests_per_connection=requests_per_connection(requests, handled),
    )


def _extended_deltas(previous: Mapping[str, Any], stats: Mapping[str, Any]) -> ExtendedDeltas:
    previous_valid = is_previous_valid(previous)

    def counter(*path: str) -> int:
        if not previous_valid:
            return 0
        return diff(lookup(stats, *path), lookup(previous, *path))

    handled = diff(
        lookup(stats, "connections", "accepted"),
        lookup(previous, "connections", "accepted"),
    )
    requests = diff(
        lookup(stats, "requests", "total"),
        lookup(previous, "requests", "total"),
    )

    zones = None
    server_zones = stats.get("server_zones")
    if isinstance(server_zones, Mapping):
        zones = [
            ZoneDeltas(
                name=str(name),
                requests=counter("server_zones", name, "requests"),
                responses=counter("server_zones", name, "responses", "total"),
                discarded=counter("server_zones", name, "discarded"),
                processing=counter("server_zones", name, "processing"),
                sent=counter("server_zones", name, "sent"),
                received=counter("server_zones", name, "received"),
                responses_by_class={
                    cls: counter("server_zones", name, "responses", cls)
                    for cls in RESPONSE_CLASSES
                },
            )
            for name in server_zones
        ]

    upstreams = None
    raw_upstreams = stats.get("upstreams")
    if isinstance(raw_upstreams, Mapping):
        upstreams = [
            UpstreamDeltas(
                name=str(name),
                peers=_peer_deltas(
                    peer_list(upstream),
                    peer_list(lookup(previous, "upstreams", name)),
                    previous_valid,
                ),
            )
            for name, upstream in raw_upstreams.items()
        ]

    return ExtendedDeltas(
        previous_valid=previous_valid,
        handled=handled,
        requests=requests,
        requests_per_connection=requests_per_connection(requests, handled),
        ssl_handshakes=counter("ssl", "handshakes"),
        ssl_handshakes_failed=counter("ssl", "handshakes_failed"),
        ssl_session_reuses=counter("ssl", "session_reuses"),
        zones=zones,
        upstreams=upstreams,
    )


def _peer_deltas(
    peers: Sequence[Any],
    previous_peers: Sequence[Any],
    previous_valid: bool
) -> List[PeerDeltas]:
    # Peers are paired by position, not by server address
    result = []
    for index, peer in enumerate(peers):
        if not isinstance(peer, Mapping):
            peer = {}
        prior = previous_peers[index] if index < len(previous_peers) else None

        def counter(*path: str) -> int:
            if not previous_valid or prior is None:
                return 0
            return diff(lookup(peer, *path), lookup(prior, *path))

        result.append(PeerDeltas(
            server=peer.get("server"),
            backup=peer.get("backup"),
            state=peer.get("state"),
            weight=peer.get("weight"),
            active=peer.get("active"),
            requests=counter("requests"),
            sent=counter("sent"),
            received=counter("received"),
            fails=counter("fails"),
            unavail=counter("unavail"),
            health_checks=counter("health_checks", "checks"),
            health_check_fails=counter("health_checks", "fails"),
            health_check_unhealthy=counter("health_checks", "unhealthy"),
            responses_by_class={
                cls: counter("responses", cls) for cls in RESPONSE_CLASSES
            },
        ))
    return result
