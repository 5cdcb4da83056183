"""Tests for folio_analytics.data_sources.market_data -- mocked yfinance, retries, alignment.

All network calls are patched; ``yf.Ticker`` is replaced with a MagicMock.
"""

from datetime import date
from unittest.mock import MagicMock, patch

import numpy as np
import pandas as pd
import pytest

from folio_analytics.data_sources.market_data import (
    MarketDataClient,
    PriceFetchError,
    align_by_intersection,
    fetch_aligned_closes,
    fetch_prices,
    is_rate_limit_message,
    parse_tickers,
    range_to_dates,
)
from folio_analytics.utils.cache import MemoryCache

YF_TICKER = "folio_analytics.data_sources.market_data.yf.Ticker"


def _make_history(dates, closes):
    idx = pd.DatetimeIndex(pd.to_datetime(dates), name="Date")
    return pd.DataFrame({"Open": closes, "Close": closes, "Volume": 1000}, index=idx)


def _make_client(**kwargs):
    kwargs.setdefault("cache", MemoryCache())
    kwargs.setdefault("sleep", MagicMock())
    return MarketDataClient(**kwargs)


def _ticker_returning(frames):
    """Patch target side effect: symbol -> history DataFrame (or exception)."""
    def factory(symbol):
        mock = MagicMock()
        result = frames[symbol]
        if isinstance(result, Exception):
            mock.history.side_effect = result
        else:
            mock.history.return_value = result
        return mock
    return factory


# ---------------------------------------------------------------------------
# Tests for helpers
# ---------------------------------------------------------------------------

class TestHelpers:

    def test_parse_tickers(self):
        assert parse_tickers(" aapl, msft ,brk.b,,123, bad ticker") == ["AAPL", "MSFT", "BRK.B"]

    def test_parse_empty(self):
        assert parse_tickers(None) == []
        assert parse_tickers("") == []

    @pytest.mark.parametrize("label,start", [
        ("3m", "2024-03-15"), ("6m", "2023-12-15"), ("1y", "2023-06-15"), ("3y", "2021-06-15"),
        ("bogus", "2023-06-15"),
    ])
    def test_range_to_dates(self, label, start):
        assert range_to_dates(label, today=date(2024, 6, 15)) == (start, "2024-06-15")

    def test_rate_limit_detection(self):
        assert is_rate_limit_message("429 Client Error: Too Many Requests")
        assert is_rate_limit_message("Rate limit exceeded")
        assert not is_rate_limit_message("Connection reset")


# ---------------------------------------------------------------------------
# Tests for MarketDataClient
# ---------------------------------------------------------------------------

class TestMarketDataClient:

    @patch(YF_TICKER)
    def test_returns_clean_closes(self, mock_ticker):
        mock_ticker.return_value.history.return_value = _make_history(
            ["2024-01-03", "2024-01-02", "2024-01-04"], [101.0, 100.0, np.nan])
        closes = _make_client().get_daily_closes("AAPL", "2024-01-01", "2024-01-05")
        assert list(closes.index) == ["2024-01-02", "2024-01-03"]
        assert closes.tolist() == [100.0, 101.0]

    @patch(YF_TICKER)
    def test_end_date_is_made_inclusive(self, mock_ticker):
        mock_ticker.return_value.history.return_value = _make_history(["2024-01-02"], [1.0])
        _make_client().get_daily_closes("AAPL", "2024-01-01", "2024-01-05")
        kwargs = mock_ticker.return_value.history.call_args.kwargs
        assert kwargs["start"] == "2024-01-01"
        assert kwargs["end"] == "2024-01-06"
        assert kwargs["auto_adjust"] is True

    @patch(YF_TICKER)
    def test_second_call_hits_cache(self, mock_ticker):
        mock_ticker.return_value.history.return_value = _make_history(["2024-01-02"], [1.0])
        client = _make_client()
        client.get_daily_closes("AAPL", "2024-01-01", "2024-01-05")
        again = client.get_daily_closes("AAPL", "2024-01-01", "2024-01-05")
        assert mock_ticker.call_count == 1
        assert again.tolist() == [1.0]

    @patch(YF_TICKER)
    def test_retries_with_exponential_backoff(self, mock_ticker):
        mock_ticker.return_value.history.side_effect = [
            RuntimeError("429 Too Many Requests"),
            RuntimeError("timeout"),
            _make_history(["2024-01-02"], [5.0]),
        ]
        sleep = MagicMock()
        client = _make_client(max_retries=3, backoff_seconds=0.5, sleep=sleep)
        closes = client.get_daily_closes("AAPL", "2024-01-01", "2024-01-05")
        assert closes.tolist() == [5.0]
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]

    @patch(YF_TICKER)
    def test_gives_up_after_max_retries(self, mock_ticker):
        mock_ticker.return_value.history.side_effect = RuntimeError("boom")
        client = _make_client(max_retries=2)
        with pytest.raises(PriceFetchError, match="after 2 attempts"):
            client.get_daily_closes("AAPL", "2024-01-01", "2024-01-05")
        assert mock_ticker.return_value.history.call_count == 2

    @patch(YF_TICKER)
    def test_empty_history_is_invalid_ticker(self, mock_ticker):
        mock_ticker.return_value.history.return_value = pd.DataFrame()
        sleep = MagicMock()
        with pytest.raises(ValueError, match="No data returned for ZZZZ"):
            _make_client(max_retries=3, sleep=sleep).get_daily_closes("ZZZZ", "2024-01-01", "2024-01-05")
        assert mock_ticker.return_value.history.call_count == 3
        assert sleep.call_count == 2

    @patch(YF_TICKER)
    def test_empty_history_is_retried(self, mock_ticker):
        mock_ticker.return_value.history.side_effect = [
            pd.DataFrame(),
            _make_history(["2024-01-02"], [7.0]),
        ]
        sleep = MagicMock()
        client = _make_client(max_retries=3, backoff_seconds=0.5, sleep=sleep)
        closes = client.get_daily_closes("AAPL", "2024-01-01", "2024-01-05")
        assert closes.tolist() == [7.0]
        sleep.assert_called_once_with(1.0)

    @patch(YF_TICKER)
    def test_all_nan_history(self, mock_ticker):
        mock_ticker.return_value.history.return_value = _make_history(["2024-01-02"], [np.nan])
        with pytest.raises(ValueError, match="No usable data"):
            _make_client().get_daily_closes("AAPL", "2024-01-01", "2024-01-05")


# ---------------------------------------------------------------------------
# Tests for alignment and fetch_prices
# ---------------------------------------------------------------------------

class TestAlignment:

    def test_inner_join_on_dates(self):
        a = pd.Series([1.0, 2.0, 3.0], index=["2024-01-02", "2024-01-03", "2024-01-04"])
        b = pd.Series([10.0, 30.0], index=["2024-01-04", "2024-01-02"])
        dates, prices = align_by_intersection({"A": a, "B": b})
        assert dates == ["2024-01-02", "2024-01-04"]
        assert prices == {"A": [1.0, 3.0], "B": [30.0, 10.0]}

    def test_empty(self):
        assert align_by_intersection({}) == ([], {})


class TestFetchPrices:

    DATES = ["2024-01-02", "2024-01-03", "2024-01-04"]

    @patch(YF_TICKER)
    def test_partial_failure_is_reported(self, mock_ticker):
        mock_ticker.side_effect = _ticker_returning({
            "AAA": _make_history(self.DATES, [1.0, 2.0, 3.0]),
            "ZZZ": pd.DataFrame(),
        })
        aligned = fetch_prices(["aaa", "zzz"], "1y", client=_make_client())
        assert list(aligned.prices_by_ticker) == ["AAA"]
        assert "ZZZ" in aligned.errors
        assert aligned.range == "1y"

    @patch(YF_TICKER)
    def test_total_failure_raises(self, mock_ticker):
        mock_ticker.side_effect = _ticker_returning({"ZZZ": pd.DataFrame()})
        with pytest.raises(PriceFetchError):
            fetch_prices(["ZZZ"], client=_make_client())

    def test_requires_a_ticker(self):
        with pytest.raises(ValueError, match="at least one ticker"):
            fetch_prices([" ", ""], client=_make_client())

    def test_ticker_limit(self):
        with pytest.raises(ValueError, match="Max"):
            fetch_prices([f"T{i}" for i in range(21)], client=_make_client())

    @patch(YF_TICKER)
    def test_duplicates_fetched_once(self, mock_ticker):
        mock_ticker.side_effect = _ticker_returning({"AAA": _make_history(self.DATES, [1.0, 2.0, 3.0])})
        fetch_prices(["AAA", "aaa"], client=_make_client())
        assert mock_ticker.call_count == 1


class TestFetchAlignedCloses:

    DATES = ["2024-01-02", "2024-01-03", "2024-01-04"]

    @patch(YF_TICKER)
    def test_any_failure_aborts(self, mock_ticker):
        mock_ticker.side_effect = _ticker_returning({
            "AAA": _make_history(self.DATES, [1.0, 2.0, 3.0]),
            "ZZZ": pd.DataFrame(),
        })
        with pytest.raises(PriceFetchError, match="ZZZ"):
            fetch_aligned_closes(["AAA", "ZZZ"], client=_make_client())

    @patch(YF_TICKER)
    def test_needs_two_overlapping_dates(self, mock_ticker):
        mock_ticker.side_effect = _ticker_returning({
            "AAA": _make_history(["2024-01-02", "2024-01-03"], [1.0, 2.0]),
            "BBB": _make_history(["2024-01-03", "2024-01-04"], [5.0, 6.0]),
        })
        with pytest.raises(ValueError, match="Not enough overlapping"):
            fetch_aligned_closes(["AAA", "BBB"], client=_make_client())

    @patch(YF_TICKER)
    def test_success(self, mock_ticker):
        mock_ticker.side_effect = _ticker_returning({
            "AAA": _make_history(self.DATES, [1.0, 2.0, 3.0]),
            "SPY": _make_history(self.DATES, [4.0, 5.0, 6.0]),
        })
        aligned = fetch_aligned_closes(["AAA", "SPY"], client=_make_client())
        assert aligned.dates == self.DATES
        assert aligned.errors == {}
        assert aligned.last_price("SPY") == 6.0
