# External feed adapters
from .feeds import PriceFeed, SourceFeed
from .pumpfun import (
    PumpFunBrowser,
    PumpFunPriceClient,
    parse_compact_number,
    parse_listing,
    price_from_coin,
)

__all__ = [
    "PriceFeed",
    "SourceFeed",
    "PumpFunBrowser",
    "PumpFunPriceClient",
    "parse_compact_number",
    "parse_listing",
    "price_from_coin",
]
