"""
Stock price lookup for investment accounts

AlphaVantagePriceLookup ходит в Alpha Vantage (GLOBAL_QUOTE),
CachedPriceLookup держит цены в TTLCache (по умолчанию 15 минут).
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Protocol

import requests

from ledger.config import Settings, get_settings
from ledger.utils.cache import TTLCache

logger = logging.getLogger(__name__)


class PriceLookupError(RuntimeError):
    """Цену получить не удалось"""
    pass


class PriceLookup(Protocol):
    def get_price(self, symbol: str) -> Decimal:
        ...


class AlphaVantagePriceLookup:
    """Текущая цена акции из Alpha Vantage"""

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        if self.settings.ALPHA_VANTAGE_API_KEY == "demo":
            logger.warning("Alpha Vantage API key not configured, using demo key")

    def get_price(self, symbol: str) -> Decimal:
        symbol = symbol.strip().upper()
        try:
            resp = self.session.get(
                self.settings.ALPHA_VANTAGE_URL,
                params={
                    "function": "GLOBAL_QUOTE",
                    "symbol": symbol,
                    "apikey": self.settings.ALPHA_VANTAGE_API_KEY,
                },
                timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            )
        except requests.RequestException as exc:
            raise PriceLookupError(f"Alpha Vantage request failed for {symbol}: {exc}") from exc

        if resp.status_code != 200:
            raise PriceLookupError(f"Alpha Vantage API returned status {resp.status_code}")

        data = resp.json()
        for key in ("Error Message", "Note", "Information"):
            if key in data:
                raise PriceLookupError(f"Alpha Vantage API: {data[key]}")

        raw_price = (data.get("Global Quote") or {}).get("05. price")
        if not raw_price:
            raise PriceLookupError(f"No price in Alpha Vantage response for {symbol}")
        try:
            price = Decimal(raw_price)
        except InvalidOperation:
            raise PriceLookupError(f"Invalid price for {symbol}: {raw_price!r}")
        if not price.is_finite() or price <= 0:
            raise PriceLookupError(f"Invalid price for {symbol}: {raw_price!r}")
        return price


class CachedPriceLookup:
    """
    Обёртка с TTL-кэшем над любым PriceLookup

    Кэш передаётся явно (никаких модульных синглтонов), поэтому в тестах
    можно подставить свой clock.
    """

    def __init__(self, lookup: PriceLookup, cache: TTLCache):
        self.lookup = lookup
        self.cache = cache

    def get_price(self, symbol: str) -> Decimal:
        key = symbol.strip().upper()
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        price = self.lookup.get_price(key)
        self.cache.put(key, price)
        logger.info("Price for %s refreshed: %s", key, price)
        return price


def build_price_lookup(settings: Optional[Settings] = None) -> CachedPriceLookup:
    """Стандартная сборка: Alpha Vantage + TTL из настроек"""
    settings = settings or get_settings()
    return CachedPriceLookup(
        AlphaVantagePriceLookup(settings),
        TTLCache(ttl_seconds=settings.PRICE_CACHE_TTL_SECONDS),
    )
