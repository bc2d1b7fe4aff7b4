"""Market-data sources for the newsletter exporter."""

from __future__ import annotations

from .base import MarketDataSource
from .json_file import JsonFileAdapter, load_request
from .market_api import MarketApiAdapter
from .mls_csv import MlsCsvAdapter

__all__ = [
    "JsonFileAdapter",
    "MarketApiAdapter",
    "MarketDataSource",
    "MlsCsvAdapter",
    "load_request",
]
