"""
Error Taxonomy

Per-token errors (PriceUnavailable, MalformedRecord) are isolated by the loops.
Per-cycle errors (FeedUnavailable, PersistenceFailure) abort the current cycle
and put the loop into its cool-down period. DispatchFailed never leaves the dispatcher.
"""


class SniperError(Exception):
    """Base class for all pipeline errors."""


class FeedUnavailable(SniperError):
    """Source or price feed could not be reached (navigation, timeout, HTTP)."""


class PriceUnavailable(SniperError):
    """No usable price sample for a single token."""

    def __init__(self, mint: str, reason: str = ""):
        self.mint = mint
        self.reason = reason
        message = f"No price for {mint}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class DispatchFailed(SniperError):
    """Downstream trade endpoint rejected or never received the payload."""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class PersistenceFailure(SniperError):
    """Watchlist snapshot could not be written."""


class MalformedRecord(SniperError):
    """A feed returned an entry that cannot be turned into a token."""
