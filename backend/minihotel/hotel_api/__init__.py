"""Client for the upstream hotel REST API."""

from .client import (
    HotelAPIAuthenticationError,
    HotelAPIClient,
    HotelAPIError,
    HotelAPIUnavailableError,
    build_query,
)
from .resources import HotelAPI, unwrap_items

__all__ = [
    "HotelAPI",
    "HotelAPIAuthenticationError",
    "HotelAPIClient",
    "HotelAPIError",
    "HotelAPIUnavailableError",
    "build_query",
    "unwrap_items",
]
