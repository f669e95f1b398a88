"""Pricing - Group-buying price computation."""

from groupbuy.pricing.calculator import compute_price, price_schedule
from groupbuy.pricing.models import PriceQuote

__all__ = [
    "PriceQuote",
    "compute_price",
    "price_schedule",
]
