"""Shared model pricing utilities."""

from .price_spec import DEFAULT_PRICE_SPEC_URL, PriceSpecFetchError, fetch_price_spec
from .resolver import (
    ModelPricing,
    PriceTableCache,
    PricingProvider,
    PricingResolver,
    TokenUsage,
    calculate_cost,
    decode_price_table,
    resolve_model_pricing,
)

__all__ = [
    "DEFAULT_PRICE_SPEC_URL",
    "ModelPricing",
    "PriceSpecFetchError",
    "PriceTableCache",
    "PricingProvider",
    "PricingResolver",
    "TokenUsage",
    "calculate_cost",
    "decode_price_table",
    "fetch_price_spec",
    "resolve_model_pricing",
]
