"""Poll cycle error types."""


class ForwarderError(Exception):
    """Base class for errors that abort a poll cycle."""


class StatusFetchError(ForwarderError):
    """The nginx status endpoint could not be reached or returned a bad status."""


class StatusAuthError(StatusFetchError):
    """The nginx status endpoint rejected the configured credentials (HTTP 401)."""


class EmptyStatsError(ForwarderError):
    """The nginx status endpoint answered 200 with an empty body."""


class StatsParseError(ForwarderError):
    """The status body was neither valid JSON nor stub_status text."""
