"""
Market Data Service (Alpha Vantage)

Fetches current prices for holdings.

DESIGN DECISION: Quotes are fetched strictly one ticker at a time with a
fixed pause in between. The free Alpha Vantage tier allows only a handful
of requests per minute, so a batch refresh is slow on purpose and reports
progress as it goes. The calls and pauses are awaited, and the blocking
HTTP request runs in a worker thread, so the caller keeps serving edits
while a batch is in flight.

Each ticker costs two calls:
1. SYMBOL_SEARCH to learn the security's display name (best effort)
2. GLOBAL_QUOTE for the price
"""

import asyncio
from typing import Awaitable, Callable, Iterable, Optional

import requests
import structlog
from pydantic import BaseModel, Field

from finance_tracker.config import get_settings
from finance_tracker.config.settings import AlphaVantageSettings


logger = structlog.get_logger(__name__)


class QuoteServiceError(Exception):
    """Base exception for quote fetching."""
    pass


class RateLimitedError(QuoteServiceError):
    """Alpha Vantage answered with a rate-limit 'Note' instead of data."""
    pass


class TickerNotFoundError(QuoteServiceError):
    """Alpha Vantage has no quote for this symbol."""
    pass


class TickerQuote(BaseModel):
    """Latest price of one security."""

    symbol: str = Field(..., description="Symbol as reported by the quote service")
    name: str = Field(default="N/A", description="Security name from symbol search")
    price: float = Field(..., ge=0)


class AlphaVantageQuoteService:
    """
    Thin client for the two Alpha Vantage functions we use.

    The HTTP session and the sleep function are injectable so tests run
    without network access or real delays.
    """

    def __init__(
        self,
        settings: Optional[AlphaVantageSettings] = None,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            settings: Endpoint, delays and timeout. Loaded from env if None.
            api_key: Overrides settings.api_key (the key saved in UserSettings).
            session: HTTP session to use.
            sleep: Awaited with the number of seconds to pause.
        """
        self._settings = settings or get_settings().alpha_vantage
        self._api_key = api_key or self._settings.api_key
        self._session = session or requests.Session()
        self._sleep = sleep

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def _query(self, params: dict) -> dict:
        if not self._api_key:
            raise QuoteServiceError(
                "Alpha Vantage API key is not set. Add it in Settings "
                "or set ALPHAVANTAGE_API_KEY."
            )
        try:
            response = self._session.get(
                self._settings.endpoint,
                params={**params, "apikey": self._api_key},
                timeout=self._settings.timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise QuoteServiceError(f"Alpha Vantage request failed: {e}")
        except ValueError as e:
            raise QuoteServiceError(f"Alpha Vantage returned invalid JSON: {e}")

        if not isinstance(payload, dict):
            raise QuoteServiceError("Alpha Vantage returned an unexpected payload")
        if "Note" in payload:
            raise RateLimitedError(f"API Note: {payload['Note']}")
        return payload

    async def _fetch(self, params: dict) -> dict:
        return await asyncio.to_thread(self._query, params)

    async def lookup_name(self, ticker: str) -> str:
        """
        Display name for a ticker, or 'N/A'.

        Prefers the match whose symbol equals the ticker exactly, else the
        first match. Failures here are logged and never abort the quote.
        """
        try:
            payload = await self._fetch({"function": "SYMBOL_SEARCH", "keywords": ticker})
        except QuoteServiceError as e:
            logger.warning("symbol_search_failed", ticker=ticker, error=str(e))
            return "N/A"

        matches = payload.get("bestMatches") or []
        if not matches:
            return "N/A"
        best = next(
            (m for m in matches if m.get("1. symbol") == ticker.upper()),
            matches[0],
        )
        return best.get("2. name") or "N/A"

    async def fetch_quote(self, ticker: str) -> Optional[TickerQuote]:
        """
        Fetch the latest quote for one ticker.

        Returns:
            The quote, or None if the response had a quote section without a price

        Raises:
            RateLimitedError: The API answered with a rate-limit note
            TickerNotFoundError: The symbol is unknown
            QuoteServiceError: Network or payload problems
        """
        name = await self.lookup_name(ticker)

        await self._sleep(self._settings.lookup_delay_seconds)

        payload = await self._fetch({"function": "GLOBAL_QUOTE", "symbol": ticker})
        global_quote = payload.get("Global Quote") or {}

        if not global_quote:
            # Unknown symbols come back as an empty object
            raise TickerNotFoundError(f"Ticker symbol '{ticker}' not found.")

        price_str = global_quote.get("05. price")
        if price_str is None:
            return None
        try:
            price = float(price_str)
        except ValueError:
            raise QuoteServiceError(f"Unparseable price for {ticker}: {price_str!r}")

        return TickerQuote(
            symbol=global_quote.get("01. symbol") or ticker.upper(),
            name=name,
            price=price,
        )

    async def fetch_multiple_quotes(
        self,
        tickers: Iterable[str],
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> dict[str, TickerQuote]:
        """
        Fetch quotes for many tickers, one after another.

        Tickers are de-duplicated case-insensitively. A failing ticker is
        logged and skipped; the rest of the batch continues.

        Args:
            tickers: Ticker symbols, in any case
            on_progress: Called with 0-100 after every ticker

        Returns:
            Quotes keyed by upper-cased ticker
        """
        if not self._api_key:
            raise QuoteServiceError(
                "Alpha Vantage API key is not set. Add it in Settings "
                "or set ALPHAVANTAGE_API_KEY."
            )

        unique: list[str] = []
        for ticker in tickers:
            symbol = ticker.strip().upper()
            if symbol and symbol not in unique:
                unique.append(symbol)

        results: dict[str, TickerQuote] = {}
        total = len(unique)

        for i, ticker in enumerate(unique):
            try:
                quote = await self.fetch_quote(ticker)
                if quote is not None:
                    results[ticker] = quote
            except QuoteServiceError as e:
                logger.warning("quote_fetch_failed", ticker=ticker, error=str(e))

            if on_progress is not None:
                on_progress((i + 1) / total * 100)
            if i < total - 1:
                await self._sleep(self._settings.batch_delay_seconds)

        logger.info("quotes_fetched", requested=total, received=len(results))
        return results
