import pytest

from biztech.core.errors import ValidationError
from biztech.services.tiers import classify_tier, listing_fee, requires_payment


def test_threshold_boundary():
    assert classify_tier(499_999) == "basic"
    assert classify_tier(500_000) == "premium"
    assert classify_tier(5_000_000) == "premium"


def test_custom_threshold():
    assert classify_tier(100, threshold=100) == "premium"
    assert classify_tier(99.99, threshold=100) == "basic"


@pytest.mark.parametrize("price", [0, -1, None])
def test_non_positive_price_rejected(price):
    with pytest.raises(ValidationError) as exc:
        classify_tier(price)
    assert exc.value.code == "invalid_price"


def test_only_premium_is_charged():
    assert requires_payment("premium")
    assert not requires_payment("basic")
    assert listing_fee("premium") == 1_500
    assert listing_fee("basic") == 0
