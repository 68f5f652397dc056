"""Model-name resolution, tiered cost math, and the single-flight price table cache."""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import Future
from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any, Protocol

from .price_spec import DEFAULT_PRICE_SPEC_URL, fetch_price_spec

LOGGER = logging.getLogger(__name__)

TIER_THRESHOLD_TOKENS = 200_000
PROVIDER_PREFIXES: tuple[str, ...] = (
    "anthropic/",
    "claude-3-5-",
    "claude-3-",
    "claude-",
    "openrouter/openai/",
)

PriceTable = dict[str, "ModelPricing"]
PriceSpecFetcher = Callable[[], Mapping[str, Any]]


@dataclass(frozen=True)
class TokenUsage:
    """Token counts for one request, used as pricing input."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0


@dataclass(frozen=True)
class ModelPricing:
    """Per-token USD rates for one model, with optional above-200k tiers."""

    input_cost_per_token: float | None = None
    output_cost_per_token: float | None = None
    cache_creation_input_token_cost: float | None = None
    cache_read_input_token_cost: float | None = None
    input_cost_per_token_above_200k_tokens: float | None = None
    output_cost_per_token_above_200k_tokens: float | None = None
    cache_creation_input_token_cost_above_200k_tokens: float | None = None
    cache_read_input_token_cost_above_200k_tokens: float | None = None

    @classmethod
    def from_mapping(cls, record: Mapping[str, Any]) -> ModelPricing:
        """Build pricing from one price-table record; non-numeric rates count as absent."""
        values: dict[str, float | None] = {}
        for rate_field in fields(cls):
            raw_value = record.get(rate_field.name)
            if isinstance(raw_value, (int, float)) and not isinstance(raw_value, bool):
                values[rate_field.name] = float(raw_value)
            else:
                values[rate_field.name] = None
        return cls(**values)


class PricingProvider(Protocol):
    """Anything that can price a usage tuple."""

    def cost(
        self,
        usage: TokenUsage,
        model: str | None = None,
        override_cost_usd: float | None = None,
    ) -> Decimal: ...


def decode_price_table(raw_spec: Mapping[str, Any]) -> PriceTable:
    """Convert the raw price specification into typed pricing, dropping null records."""
    table: PriceTable = {}
    for model_name, record in raw_spec.items():
        if not isinstance(record, Mapping):
            continue
        table[str(model_name)] = ModelPricing.from_mapping(record)
    return table


def resolve_model_pricing(model: str, table: Mapping[str, ModelPricing]) -> ModelPricing | None:
    """Resolve a model name to pricing.

    Strategies are tried in order: exact key, each provider prefix, then a
    case-insensitive substring match in either direction. The substring match
    returns the first hit in table iteration order and is best effort only.
    """
    for candidate in (model, *(f"{prefix}{model}" for prefix in PROVIDER_PREFIXES)):
        pricing = table.get(candidate)
        if pricing is not None:
            return pricing

    lowered = model.lower()
    for key, pricing in table.items():
        comparison = key.lower()
        if lowered in comparison or comparison in lowered:
            return pricing
    return None


def tiered_cost(token_count: int, base: float | None, above: float | None) -> Decimal:
    """Return the cost of one token kind, billing the part above 200k at the `above` rate."""
    if token_count <= 0:
        return Decimal(0)

    if token_count > TIER_THRESHOLD_TOKENS and above is not None:
        over = token_count - TIER_THRESHOLD_TOKENS
        cost = over * _as_decimal(above)
        if base is not None:
            cost += TIER_THRESHOLD_TOKENS * _as_decimal(base)
        return cost

    if base is not None:
        return token_count * _as_decimal(base)
    return Decimal(0)


def calculate_cost(usage: TokenUsage, pricing: ModelPricing) -> Decimal:
    """Sum tiered costs over input, output, cache-creation and cache-read tokens."""
    return (
        tiered_cost(
            usage.input_tokens,
            pricing.input_cost_per_token,
            pricing.input_cost_per_token_above_200k_tokens,
        )
        + tiered_cost(
            usage.output_tokens,
            pricing.output_cost_per_token,
            pricing.output_cost_per_token_above_200k_tokens,
        )
        + tiered_cost(
            usage.cache_creation_tokens,
            pricing.cache_creation_input_token_cost,
            pricing.cache_creation_input_token_cost_above_200k_tokens,
        )
        + tiered_cost(
            usage.cache_read_tokens,
            pricing.cache_read_input_token_cost,
            pricing.cache_read_input_token_cost_above_200k_tokens,
        )
    )


class CacheState(enum.Enum):
    EMPTY = "empty"
    FETCHING = "fetching"
    POPULATED = "populated"


class PriceTableCache:
    """Process-lifetime price table cache with single-flight loading.

    The first caller that finds the cache empty performs the fetch; callers
    arriving while it runs wait on the same future. A failed fetch never
    discards a previously loaded table, and leaves the cache ready to retry.
    """

    def __init__(self, fetcher: PriceSpecFetcher) -> None:
        self._fetcher = fetcher
        self._lock = threading.Lock()
        self._state = CacheState.EMPTY
        self._table: PriceTable | None = None
        self._inflight: Future[PriceTable | None] | None = None

    @property
    def state(self) -> CacheState:
        with self._lock:
            return self._state

    def load(self) -> PriceTable | None:
        """Return the cached table, fetching it once if needed; None when unavailable."""
        with self._lock:
            if self._state is CacheState.POPULATED and self._inflight is None:
                return self._table
            if self._state is CacheState.FETCHING and self._inflight is not None:
                inflight = self._inflight
                is_owner = False
            else:
                inflight = Future()
                self._inflight = inflight
                self._state = CacheState.FETCHING
                is_owner = True

        if not is_owner:
            return inflight.result()

        try:
            table = decode_price_table(self._fetcher())
        except Exception as exc:
            LOGGER.error("Failed to fetch model pricing: %s", exc)
            return self._release_failed_fetch(inflight)
        except BaseException:
            # Abandoned fetch: waiters still get the prior table and the next call retries.
            self._release_failed_fetch(inflight)
            raise

        with self._lock:
            self._table = table
            self._state = CacheState.POPULATED
            self._inflight = None
        LOGGER.info("Loaded pricing for %d models.", len(table))
        inflight.set_result(table)
        return table

    def _release_failed_fetch(self, inflight: Future[PriceTable | None]) -> PriceTable | None:
        """Leave FETCHING without touching the prior table and resolve waiters with it."""
        with self._lock:
            self._state = CacheState.POPULATED if self._table is not None else CacheState.EMPTY
            self._inflight = None
            fallback = self._table
        inflight.set_result(fallback)
        return fallback


class PricingResolver:
    """Price token usage with the remote LiteLLM price table."""

    def __init__(
        self,
        fetcher: PriceSpecFetcher | None = None,
        *,
        url: str = DEFAULT_PRICE_SPEC_URL,
    ) -> None:
        self._cache = PriceTableCache(fetcher if fetcher is not None else lambda: fetch_price_spec(url))

    @property
    def cache(self) -> PriceTableCache:
        return self._cache

    def pricing_for(self, model: str) -> ModelPricing | None:
        """Return pricing for a model, or None when the table or the model is unavailable."""
        table = self._cache.load()
        if table is None:
            return None
        return resolve_model_pricing(model, table)

    def cost(
        self,
        usage: TokenUsage,
        model: str | None = None,
        override_cost_usd: float | None = None,
    ) -> Decimal:
        """Return the USD cost of one request; zero when it cannot be priced."""
        if override_cost_usd is not None:
            return _as_decimal(override_cost_usd)
        if not model:
            return Decimal(0)

        pricing = self.pricing_for(model)
        if pricing is None:
            LOGGER.debug("No pricing found for model %s", model)
            return Decimal(0)
        return calculate_cost(usage, pricing)


def _as_decimal(value: float) -> Decimal:
    """Convert a JSON number to Decimal through its shortest repr."""
    return Decimal(str(value))
