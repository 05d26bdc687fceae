# Core pipeline: discovery, tracking and the service that runs them
from .scheduler import LoopState, PeriodicLoop
from .discovery import DiscoveryLoop, DiscoveryReport, build_token, canonical_mint
from .tracker import TrackingLoop, TrackingReport, is_valid_price
from .service import SniperService

__all__ = [
    "LoopState",
    "PeriodicLoop",
    "DiscoveryLoop",
    "DiscoveryReport",
    "build_token",
    "canonical_mint",
    "TrackingLoop",
    "TrackingReport",
    "is_valid_price",
    "SniperService",
]
