"""Parse nginx status responses into snapshots.

Two formats are supported:

- ngx_http_status_module / nginx plus API: a JSON document
  (http://nginx.org/en/docs/http/ngx_http_status_module.html)
- ngx_http_stub_status_module: plain text, e.g.::

    Active connections: 1
    server accepts handled requests
     112 112 121
    Reading: 0 Writing: 1 Waiting: 0
"""

import json
import re
from typing import Any, Dict, Optional


ACTIVE_CONNECTIONS_MARKER = "Active connections:"

_KEY_VALUE = re.compile(r"(\w+):\s*(\d+)")
_COUNTER_TRIPLE = re.compile(r"\s*(\d+)\s+(\d+)\s+(\d+)\s*$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_int(value: Any) -> int:
    """
    Tolerant integer parse.

    Accepts ints, floats and strings with a leading integer ("12", " 7 ", "3rd").
    Anything else, including None, becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else 0
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def is_json_content_type(content_type: Optional[str]) -> bool:
    """True when the Content-Type header announces a JSON document."""
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def parse_stats_json(body: str) -> Optional[Dict[str, Any]]:
    """
    Strict JSON parse. Returns None unless the body is a JSON object.

    NaN and Infinity literals are rejected.
    """
    try:
        data = json.loads(body, parse_constant=_reject_constant)
    except (TypeError, ValueError):
        return None

    if not isinstance(data, dict):
        return None
    return data


def parse_stats_text(body: str) -> Optional[Dict[str, int]]:
    """Parse stub_status text. Returns None when no counter could be read."""
    stats: Dict[str, int] = {}

    for line in body.split("\n"):
        if line.startswith(ACTIVE_CONNECTIONS_MARKER):
            match = _KEY_VALUE.search(line)
            if match:
                stats[match.group(1).lower()] = parse_int(match.group(2))
            continue

        triple = _COUNTER_TRIPLE.search(line)
        if triple:
            stats["accepts"] = parse_int(triple.group(1))
            stats["handled"] = parse_int(triple.group(2))
            stats["requests"] = parse_int(triple.group(3))
            # Negative on a malformed page; clamped when projected
            stats["nothandled"] = stats["accepts"] - stats["handled"]
            continue

        for key, value in _KEY_VALUE.findall(line):
            stats[key.lower()] = parse_int(value)

    return stats or None


def parse_stats(body: str, content_type: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Parse a status response body into a snapshot.

    Args:
        body: Response body
        content_type: Value of the response Content-Type header

    Returns:
        Snapshot mapping, or None when the body could not be interpreted
    """
    if is_json_content_type(content_type):
        return parse_stats_json(body)
    return parse_stats_text(body)
