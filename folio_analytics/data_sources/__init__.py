"""Data source modules."""

from .market_data import MarketDataClient, PriceFetchError, fetch_aligned_closes, fetch_prices
