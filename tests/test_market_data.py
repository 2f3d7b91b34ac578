"""Tests for the Alpha Vantage quote service (no network, no real sleeps)."""

import asyncio

import pytest

from finance_tracker.services.market_data import (
    AlphaVantageQuoteService,
    QuoteServiceError,
    RateLimitedError,
    TickerNotFoundError,
)

from tests.fakes import FakeHttpSession


def global_quote(symbol, price):
    return {"Global Quote": {"01. symbol": symbol, "05. price": price}}


def search(*matches):
    return {"bestMatches": [{"1. symbol": s, "2. name": n} for s, n in matches]}


@pytest.fixture
def sleeps():
    return []


def make_service(settings, routes, sleeps, api_key=None):
    async def sleep(seconds):
        sleeps.append(seconds)

    session = FakeHttpSession(routes)
    service = AlphaVantageQuoteService(
        settings=settings, api_key=api_key, session=session, sleep=sleep,
    )
    return service, session


class TestFetchQuote:
    """Tests for a single ticker."""

    def test_quote_with_name(self, alpha_vantage_settings, sleeps):
        service, session = make_service(alpha_vantage_settings, {
            ("SYMBOL_SEARCH", "VTI"): search(("VTIP", "Vanguard TIPS"), ("VTI", "Vanguard Total")),
            ("GLOBAL_QUOTE", "VTI"): global_quote("VTI", "250.10"),
        }, sleeps)

        quote = asyncio.run(service.fetch_quote("VTI"))

        assert quote.symbol == "VTI"
        assert quote.name == "Vanguard Total"
        assert quote.price == pytest.approx(250.10)
        assert [c["function"] for c in session.calls] == ["SYMBOL_SEARCH", "GLOBAL_QUOTE"]
        assert all(c["apikey"] == "demo" for c in session.calls)
        assert sleeps == [1.0]

    def test_name_lookup_failure_is_not_fatal(self, alpha_vantage_settings, sleeps):
        service, _ = make_service(alpha_vantage_settings, {
            ("SYMBOL_SEARCH", "VTI"): {"Note": "slow down"},
            ("GLOBAL_QUOTE", "VTI"): global_quote("VTI", "250"),
        }, sleeps)
        assert asyncio.run(service.fetch_quote("VTI")).name == "N/A"

    def test_unknown_ticker(self, alpha_vantage_settings, sleeps):
        service, _ = make_service(alpha_vantage_settings, {
            ("GLOBAL_QUOTE", "NOPE"): {"Global Quote": {}},
        }, sleeps)
        with pytest.raises(TickerNotFoundError, match="NOPE"):
            asyncio.run(service.fetch_quote("NOPE"))

    def test_rate_limit_note(self, alpha_vantage_settings, sleeps):
        service, _ = make_service(alpha_vantage_settings, {
            ("GLOBAL_QUOTE", "VTI"): {"Note": "Thank you for using Alpha Vantage!"},
        }, sleeps)
        with pytest.raises(RateLimitedError):
            asyncio.run(service.fetch_quote("VTI"))

    def test_missing_price_returns_none(self, alpha_vantage_settings, sleeps):
        service, _ = make_service(alpha_vantage_settings, {
            ("GLOBAL_QUOTE", "VTI"): {"Global Quote": {"01. symbol": "VTI"}},
        }, sleeps)
        assert asyncio.run(service.fetch_quote("VTI")) is None

    def test_api_key_override(self, alpha_vantage_settings, sleeps):
        service, session = make_service(alpha_vantage_settings, {
            ("GLOBAL_QUOTE", "VTI"): global_quote("VTI", "1"),
        }, sleeps, api_key="from-user-settings")
        asyncio.run(service.fetch_quote("VTI"))
        assert session.calls[-1]["apikey"] == "from-user-settings"

    def test_missing_api_key(self, alpha_vantage_settings, sleeps):
        settings = alpha_vantage_settings.model_copy(update={"api_key": None})
        service, session = make_service(settings, {}, sleeps)
        assert not service.is_configured
        with pytest.raises(QuoteServiceError, match="API key"):
            asyncio.run(service.fetch_multiple_quotes(["VTI"]))
        assert session.calls == []


class TestFetchMultipleQuotes:
    """Tests for the throttled batch refresh."""

    def test_batch_dedupes_and_throttles(self, alpha_vantage_settings, sleeps):
        service, session = make_service(alpha_vantage_settings, {
            ("GLOBAL_QUOTE", "VTI"): global_quote("VTI", "250"),
            ("GLOBAL_QUOTE", "AAPL"): global_quote("AAPL", "190"),
        }, sleeps)
        progress = []

        quotes = asyncio.run(service.fetch_multiple_quotes(
            ["vti", "AAPL", " VTI "], on_progress=progress.append,
        ))

        assert set(quotes) == {"VTI", "AAPL"}
        assert quotes["AAPL"].price == 190
        assert progress == [50.0, 100.0]
        # lookup pause per ticker, batch pause only between tickers
        assert sleeps == [1.0, 5.0, 1.0]
        assert len(session.calls) == 4

    def test_failed_ticker_is_skipped(self, alpha_vantage_settings, sleeps):
        service, _ = make_service(alpha_vantage_settings, {
            ("GLOBAL_QUOTE", "VTI"): {"Global Quote": {}},
            ("GLOBAL_QUOTE", "AAPL"): global_quote("AAPL", "190"),
        }, sleeps)
        progress = []
        quotes = asyncio.run(service.fetch_multiple_quotes(["VTI", "AAPL"], on_progress=progress.append))
        assert list(quotes) == ["AAPL"]
        assert progress[-1] == 100.0

    def test_empty_batch(self, alpha_vantage_settings, sleeps):
        service, session = make_service(alpha_vantage_settings, {}, sleeps)
        assert asyncio.run(service.fetch_multiple_quotes([])) == {}
        assert session.calls == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
