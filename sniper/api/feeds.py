"""
Feed interfaces consumed by the discovery and tracking loops.
"""

from typing import List, Protocol

from ..models import RawListing


class SourceFeed(Protocol):
    async def fetch_listings(self) -> List[RawListing]:
        """Return the listings currently shown; raise FeedUnavailable on failure."""
        ...


class PriceFeed(Protocol):
    async def fetch_price(self, mint: str) -> float:
        """Return the current price; raise PriceUnavailable on failure."""
        ...
