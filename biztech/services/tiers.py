from biztech.core.config import settings
from biztech.core.errors import ValidationError


def classify_tier(price: float, *, threshold: float | None = None) -> str:
    """Service tier for an asking price: premium at or above the threshold, basic below."""
    if price is None or price <= 0:
        raise ValidationError("Price must be a positive number", code="invalid_price", details=[{"field": "price"}])
    limit = settings.premium_price_threshold if threshold is None else threshold
    return "premium" if price >= limit else "basic"


def requires_payment(tier: str) -> bool:
    return tier == "premium"


def listing_fee(tier: str) -> float:
    return settings.premium_listing_fee if requires_payment(tier) else 0.0
