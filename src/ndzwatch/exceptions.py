"""Custom exception hierarchy for ndzwatch."""

from __future__ import annotations


class NdzError(Exception):
    """Base exception for all ndzwatch errors."""


class NdzConfigError(NdzError):
    """Invalid or missing configuration."""


class NdzTransportError(NdzError):
    """HTTP-level failure (network, timeout, non-200)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class NdzFeedError(NdzTransportError):
    """The drone feed could not be fetched or parsed.

    Always fatal for the poll cycle that raised it: the tracked state is
    left untouched and nothing is published.
    """


class NdzLookupError(NdzTransportError):
    """A per-drone pilot lookup failed.

    Enrichment converts this into "no pilot information"; it never aborts
    a poll cycle.
    """


class NdzPublishError(NdzError):
    """A broadcaster could not deliver a state snapshot."""


class NdzSubscriptionClosed(NdzError):
    """The subscription was closed and has no snapshots left."""
