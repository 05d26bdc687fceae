"""
Shared Data Models
==================

This package contains dataclasses used across the project.
"""

from .token import PricePoint, RawListing, TrackedToken, utc_now

__all__ = [
    "PricePoint",
    "RawListing",
    "TrackedToken",
    "utc_now",
]
