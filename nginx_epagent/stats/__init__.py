from .parser import parse_stats, parse_int
from .schema import StatsSchema, ClassifiedSnapshot, classify
from .delta import BasicDeltas, ExtendedDeltas, compute_deltas, diff
from .projector import MetricProjector, metricfy

__all__ = [
    "parse_stats",
    "parse_int",
    "StatsSchema",
    "ClassifiedSnapshot",
    "classify",
    "BasicDeltas",
    "ExtendedDeltas",
    "compute_deltas",
    "diff",
    "MetricProjector",
    "metricfy",
]
