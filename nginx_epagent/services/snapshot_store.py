"""Single-slot store for the previous nginx snapshot."""

import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional


class SnapshotStore:
    """
    Hold the most recent snapshot so the next poll can compute deltas.

    Empty at startup, replaced after every poll that produced a snapshot,
    never cleared otherwise. Failed polls leave the slot untouched, so the
    next good poll diffs against the last good snapshot.
    """

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)
        self._previous: Optional[Mapping[str, Any]] = None
        self.replacements = 0

    @property
    def is_empty(self) -> bool:
        return self._previous is None

    @property
    def previous(self) -> Mapping[str, Any]:
        """Previous snapshot, or an empty mapping before the first poll."""
        if self._previous is None:
            return MappingProxyType({})
        return self._previous

    def replace(self, snapshot: Mapping[str, Any]) -> None:
        """Make ``snapshot`` the previous snapshot for the next poll."""
        self._previous = snapshot
        self.replacements += 1
        self.logger.debug(f"Previous snapshot replaced ({self.replacements} total)")
