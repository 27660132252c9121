"""Async clients for CoinGecko and CoinMarketCap market data."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from alpha_screener.config import settings
from alpha_screener.models.market import RawMarketData

logger = logging.getLogger(__name__)

COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"
COINMARKETCAP_BASE_URL = "https://pro-api.coinmarketcap.com/v1"
SEARCH_RESULT_LIMIT = 10


class MarketProviderError(RuntimeError):
    """Raised when a market-data provider request fails."""

    def __init__(self, message: str, code: str = "502_MARKET_UPSTREAM") -> None:
        super().__init__(message)
        self.code = code


class MarketClient:
    def __init__(
        self,
        *,
        coingecko_api_key: str | None = None,
        coinmarketcap_api_key: str | None = None,
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._coingecko_api_key = coingecko_api_key
        self._coinmarketcap_api_key = coinmarketcap_api_key
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls) -> "MarketClient":
        return cls(
            coingecko_api_key=settings.coingecko_api_key,
            coinmarketcap_api_key=settings.coinmarketcap_api_key,
            timeout=settings.provider_timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    async def search_projects(self, query: str) -> list[dict[str, str]]:
        """Return up to ten CoinGecko matches as ``{id, name, symbol}``."""
        payload = await self._get_json(
            "coingecko",
            f"{COINGECKO_BASE_URL}/search",
            params={"query": query},
            headers=self._coingecko_headers(),
        )
        coins = payload.get("coins") or []
        return [
            {
                "id": str(coin.get("id", "")),
                "name": str(coin.get("name", "")),
                "symbol": str(coin.get("symbol", "")).upper(),
            }
            for coin in coins[:SEARCH_RESULT_LIMIT]
            if isinstance(coin, dict)
        ]

    async def fetch_from_coingecko(self, identifier: str) -> RawMarketData | None:
        coin_id = await self._search_coingecko_id(identifier)
        if coin_id is None:
            return None
        data = await self._get_json(
            "coingecko",
            f"{COINGECKO_BASE_URL}/coins/{coin_id}",
            params={
                "localization": "false",
                "tickers": "false",
                "market_data": "true",
                "community_data": "false",
                "developer_data": "false",
            },
            headers=self._coingecko_headers(),
        )
        if not data:
            return None
        market = data.get("market_data") or {}
        return RawMarketData(
            name=str(data.get("name") or identifier),
            symbol=str(data.get("symbol") or "").upper(),
            market_cap=_usd(market.get("market_cap")),
            volume_24h=_usd(market.get("total_volume")),
            price=_usd(market.get("current_price")),
            price_change_24h=market.get("price_change_percentage_24h"),
            price_change_7d=market.get("price_change_percentage_7d"),
            price_change_30d=market.get("price_change_percentage_30d"),
            circulating_supply=market.get("circulating_supply"),
            total_supply=market.get("total_supply"),
            max_supply=market.get("max_supply"),
            rank=data.get("market_cap_rank"),
            categories=[category for category in data.get("categories") or [] if category],
        )

    async def fetch_from_coinmarketcap(self, identifier: str) -> RawMarketData | None:
        if not self._coinmarketcap_api_key:
            return None
        params = {"slug": identifier.lower()}
        headers = {"X-CMC_PRO_API_KEY": self._coinmarketcap_api_key}
        info = _first_entry(
            await self._get_json(
                "coinmarketcap",
                f"{COINMARKETCAP_BASE_URL}/cryptocurrency/info",
                params=params,
                headers=headers,
            )
        )
        if info is None:
            return None
        quotes = _first_entry(
            await self._get_json(
                "coinmarketcap",
                f"{COINMARKETCAP_BASE_URL}/cryptocurrency/quotes/latest",
                params=params,
                headers=headers,
            )
        ) or {}
        quote = (quotes.get("quote") or {}).get("USD") or {}
        return RawMarketData(
            name=str(info.get("name") or identifier),
            symbol=str(info.get("symbol") or ""),
            market_cap=quote.get("market_cap"),
            volume_24h=quote.get("volume_24h"),
            price=quote.get("price"),
            price_change_24h=quote.get("percent_change_24h"),
            price_change_7d=quote.get("percent_change_7d"),
            price_change_30d=quote.get("percent_change_30d"),
            circulating_supply=_positive(quotes.get("circulating_supply")),
            total_supply=_positive(quotes.get("total_supply")),
            max_supply=_positive(quotes.get("max_supply")),
            rank=quotes.get("cmc_rank") or None,
            categories=[tag for tag in info.get("tags") or [] if isinstance(tag, str)],
        )

    async def _search_coingecko_id(self, identifier: str) -> str | None:
        """Prefer an exact name or symbol match, else the first search hit."""
        matches = await self.search_projects(identifier)
        if not matches:
            return None
        needle = identifier.lower()
        for coin in matches:
            if coin["name"].lower() == needle or coin["symbol"].lower() == needle:
                return coin["id"]
        return matches[0]["id"] or None

    def _coingecko_headers(self) -> dict[str, str] | None:
        if not self._coingecko_api_key:
            return None
        return {"x-cg-demo-api-key": self._coingecko_api_key}

    async def _get_json(
        self,
        provider: str,
        url: str,
        *,
        params: dict[str, Any],
        headers: dict[str, str] | None,
    ) -> dict[str, Any]:
        try:
            response = await self._http.get(url, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise MarketProviderError(f"{provider} request timed out", code="504_MARKET_TIMEOUT") from exc
        except httpx.HTTPError as exc:
            raise MarketProviderError(f"HTTP error calling {provider}: {exc}") from exc

        if response.status_code == 404:
            return {}
        if response.status_code == 429:
            raise MarketProviderError(f"Rate limited by {provider}", code="429_RATE_LIMIT")
        if response.status_code >= 400:
            raise MarketProviderError(
                f"{provider} request failed: {response.status_code} - {response.text[:200]}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise MarketProviderError(f"Failed to decode {provider} response JSON.") from exc
        if not isinstance(data, dict):
            raise MarketProviderError(f"Unexpected {provider} response schema.")
        return data


def _usd(value: Any) -> float | None:
    if isinstance(value, dict):
        return value.get("usd")
    return None


def _positive(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number or None


def _first_entry(payload: dict[str, Any]) -> dict[str, Any] | None:
    """CoinMarketCap keys its ``data`` object by coin id."""
    data = payload.get("data")
    if not isinstance(data, dict):
        return None
    for entry in data.values():
        if isinstance(entry, list):
            entry = entry[0] if entry else None
        if isinstance(entry, dict):
            return entry
    return None
