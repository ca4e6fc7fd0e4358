"""LangGraph state definition for the poll workflow."""

from typing import TypedDict, List, Annotated, Any, Dict, Optional
import operator

from .collectors.nginx_collector import StatusResponse
from .stats.delta import Deltas
from .stats.schema import ClassifiedSnapshot
from .utils.metrics import MetricRecord


class PollState(TypedDict, total=False):
    """
    State passed between the nodes of one poll cycle.

    Each node adds its output; ``error`` is set by the first node that
    fails and routes the graph straight to END.
    """

    # Fetch / parse outputs
    response: StatusResponse
    snapshot: Dict[str, Any]

    # Compute outputs
    classified: ClassifiedSnapshot
    deltas: Deltas
    metrics: List[MetricRecord]

    # Forward output
    forwarded: bool

    # Failure details
    error: Optional[str]
    error_type: Optional[str]

    # Metadata
    execution_start: float
    errors: Annotated[List[str], operator.add]  # Cumulative errors (auto-append across nodes)
