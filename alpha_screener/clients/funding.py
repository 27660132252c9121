"""Async clients for the Messari and CryptoRank funding-round APIs."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from alpha_screener.config import settings
from alpha_screener.models.funding import RawFundingData, RawFundingRound

logger = logging.getLogger(__name__)

MESSARI_BASE_URL = "https://api.messari.io"
CRYPTORANK_BASE_URL = "https://api.cryptorank.io/v1"


class FundingProviderError(RuntimeError):
    """Raised when a funding provider request fails or returns an unexpected payload."""

    def __init__(self, message: str, code: str = "502_FUNDING_UPSTREAM") -> None:
        super().__init__(message)
        self.code = code


class FundingClient:
    """Fetches raw funding rounds; an unconfigured provider or unknown project yields ``None``."""

    def __init__(
        self,
        *,
        messari_api_key: str | None = None,
        cryptorank_api_key: str | None = None,
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._messari_api_key = messari_api_key
        self._cryptorank_api_key = cryptorank_api_key
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls) -> "FundingClient":
        return cls(
            messari_api_key=settings.messari_api_key,
            cryptorank_api_key=settings.cryptorank_api_key,
            timeout=settings.provider_timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    async def fetch_from_messari(self, project_name: str) -> RawFundingData | None:
        if not self._messari_api_key:
            return None
        payload = await self._get_json(
            "messari",
            f"{MESSARI_BASE_URL}/funding/v1/rounds",
            params={"search": project_name},
            headers={"x-messari-api-key": self._messari_api_key},
        )
        entries = _as_list(payload.get("data"))
        if not entries:
            return None
        rounds = _valid_rounds(
            "messari",
            (
                {
                    "stage": str(entry.get("round_type") or "Unknown"),
                    "amount_usd": _as_amount(entry.get("amount_raised_usd")),
                    "date": str(entry.get("announcement_date") or _now_iso()),
                    "investors": _investor_names(entry.get("investors")),
                    "source": "messari",
                }
                for entry in entries
            ),
        )
        return _funding_data(project_name, rounds) if rounds else None

    async def fetch_from_cryptorank(self, project_name: str) -> RawFundingData | None:
        if not self._cryptorank_api_key:
            return None
        search = await self._get_json(
            "cryptorank",
            f"{CRYPTORANK_BASE_URL}/coins",
            params={"api_key": self._cryptorank_api_key, "search": project_name, "limit": 1},
        )
        matches = _as_list(search.get("data"))
        if not matches or not matches[0].get("key"):
            return None
        coin_key = matches[0]["key"]
        funding = await self._get_json(
            "cryptorank",
            f"{CRYPTORANK_BASE_URL}/coins/{coin_key}/funding-rounds",
            params={"api_key": self._cryptorank_api_key},
        )
        entries = _as_list(funding.get("data"))
        if not entries:
            return None
        rounds = _valid_rounds(
            "cryptorank",
            (
                {
                    "stage": str(entry.get("type") or "Unknown"),
                    "amount_usd": _as_amount(entry.get("raise")),
                    "date": str(entry.get("date") or _now_iso()),
                    "investors": _investor_names(entry.get("funds")),
                    "source": "cryptorank",
                }
                for entry in entries
            ),
        )
        return _funding_data(project_name, rounds) if rounds else None

    async def _get_json(
        self,
        provider: str,
        url: str,
        *,
        params: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._http.get(url, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise FundingProviderError(f"{provider} request timed out", code="504_FUNDING_TIMEOUT") from exc
        except httpx.HTTPError as exc:
            raise FundingProviderError(f"HTTP error calling {provider}: {exc}") from exc

        if response.status_code == 404:
            return {}
        if response.status_code == 429:
            raise FundingProviderError(f"Rate limited by {provider}", code="429_RATE_LIMIT")
        if response.status_code >= 400:
            raise FundingProviderError(
                f"{provider} request failed: {response.status_code} - {response.text[:200]}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise FundingProviderError(f"Failed to decode {provider} response JSON.") from exc
        if not isinstance(data, dict):
            raise FundingProviderError(f"Unexpected {provider} response schema.")
        return data


def _valid_rounds(provider: str, rows: Iterable[dict[str, Any]]) -> list[RawFundingRound]:
    """Build rounds, skipping rows whose fields do not validate (e.g. an unparseable date)."""
    rounds: list[RawFundingRound] = []
    for row in rows:
        try:
            rounds.append(RawFundingRound(**row))
        except ValidationError:
            logger.warning(
                "funding.round_skipped",
                extra={"provider": provider, "stage": row.get("stage"), "date": row.get("date")},
            )
    return rounds


def _funding_data(project_name: str, rounds: list[RawFundingRound]) -> RawFundingData:
    return RawFundingData(
        project_name=project_name,
        total_raised=sum(funding_round.amount_usd for funding_round in rounds),
        rounds=rounds,
    )


def _as_list(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def _as_amount(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _investor_names(value: Any) -> list[str]:
    return [str(entry["name"]) for entry in _as_list(value) if entry.get("name")]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
