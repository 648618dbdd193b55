"""
Tests for per-variant repricing plans.
"""
import pytest

from storefront_pricing.engine import (
    Ending,
    PricePolicy,
    RepricingEngine,
    RoundingMode,
    VariantPrice,
    policy_from_values,
)


FORCE_99 = PricePolicy(mode=RoundingMode.FORCE_CENTS, ending=Ending.CENTS_99)
TIERS_95 = PricePolicy(mode=RoundingMode.ROUND_TIERS, ending=Ending.CENTS_95, block_size=5)


@pytest.fixture
def engine():
    return RepricingEngine()


def variant(price, compare_at=None, variant_id="gid://shopify/ProductVariant/1", product_id="gid://shopify/Product/1"):
    return VariantPrice(variant_id=variant_id, product_id=product_id, price=price, compare_at_price=compare_at)


def test_force_cents_without_compare_at(engine):
    plan = engine.plan_rounding(variant("34.13"), FORCE_99)

    assert plan.target_price == 34.99
    assert plan.target_compare_at is None
    assert plan.update_price is True
    assert plan.update_compare_at is False
    assert plan.to_variant_input() == {"id": "gid://shopify/ProductVariant/1", "price": "34.99"}


def test_force_cents_carries_compare_at_ratio(engine):
    plan = engine.plan_rounding(variant("34.13", "68.26"), FORCE_99)

    assert plan.target_compare_at == 69.99
    assert plan.to_variant_input() == {
        "id": "gid://shopify/ProductVariant/1",
        "price": "34.99",
        "compareAtPrice": "69.99",
    }


def test_only_compare_at_moving_still_sends_price(engine):
    plan = engine.plan_rounding(variant("34.99", "68.26"), FORCE_99)

    assert plan.update_price is True
    assert plan.update_compare_at is True
    assert plan.to_variant_input()["price"] == "34.99"
    assert plan.to_variant_input()["compareAtPrice"] == "68.99"


def test_converged_variant_is_skipped(engine):
    plan = engine.plan_rounding(variant("34.99"), FORCE_99)

    assert plan.needs_update is False
    assert plan.skip_reason == "Already at target"
    assert plan.to_variant_input() is None


def test_second_pass_writes_nothing(engine):
    first = engine.plan_rounding(variant("332.10", "664.20"), TIERS_95)
    assert first.needs_update

    written = first.to_variant_input()
    second = engine.plan_rounding(variant(written["price"], written["compareAtPrice"]), TIERS_95)

    assert second.needs_update is False, second.get_trace_text()


def test_round_tiers_plan(engine):
    plan = engine.plan_rounding(variant("377.95"), TIERS_95)

    assert plan.target_price == 399.95
    assert plan.to_variant_input()["price"] == "399.95"


def test_compare_at_below_price_is_replaced(engine):
    plan = engine.plan_rounding(variant("34.13", "30.00"), FORCE_99)

    assert plan.target_compare_at == 35.99
    assert plan.update_compare_at is True
    assert any("not above price" in w for w in plan.warnings)


def test_zero_compare_at_is_left_alone(engine):
    plan = engine.plan_rounding(variant("34.13", "0.00"), FORCE_99)

    assert plan.target_compare_at is None
    assert plan.update_compare_at is False
    assert "compareAtPrice" not in plan.to_variant_input()


@pytest.mark.parametrize("bad", [
    VariantPrice(variant_id=None, product_id="p", price="10.00"),
    VariantPrice(variant_id="v", product_id=None, price="10.00"),
    VariantPrice(variant_id="v", product_id="p", price=None),
])
def test_missing_identifiers_are_skipped(engine, bad):
    plan = engine.plan_rounding(bad, FORCE_99)

    assert plan.needs_update is False
    assert plan.skip_reason.startswith("Missing")


@pytest.mark.parametrize("price", ["abc", "0.00", "-4.00"])
def test_unusable_price_is_skipped(engine, price):
    plan = engine.plan_rounding(variant(price), FORCE_99)

    assert plan.needs_update is False
    assert "not a positive number" in plan.skip_reason


def test_no_cents_never_zeroes_a_price(engine):
    policy = PricePolicy(mode=RoundingMode.FORCE_CENTS, ending=Ending.NO_CENTS)
    plan = engine.plan_rounding(variant("0.50"), policy)

    assert plan.needs_update is False
    assert plan.skip_reason == "Rounded price is not positive"
    assert plan.warnings


def test_no_rounding_mode_changes_nothing(engine):
    plan = engine.plan_rounding(variant("34.13", "68.26"), PricePolicy(mode=RoundingMode.NONE))

    assert plan.needs_update is False


def test_discount_stamps_compare_at_when_absent(engine):
    plan = engine.plan_discount(variant("34.95"), 80, PricePolicy(mode=RoundingMode.NONE))

    assert plan.target_compare_at == 174.75
    assert plan.update_price is False
    assert plan.update_compare_at is True
    assert plan.to_variant_input() == {"id": "gid://shopify/ProductVariant/1", "compareAtPrice": "174.75"}


def test_discount_matching_compare_at_is_skipped(engine):
    plan = engine.plan_discount(variant("34.95", "174.75"), 80, PricePolicy(mode=RoundingMode.NONE))

    assert plan.needs_update is False


def test_discount_is_clamped(engine):
    plan = engine.plan_discount(variant("34.95"), 150, PricePolicy(mode=RoundingMode.NONE))

    # 95% is the ceiling: 34.95 / 0.05
    assert plan.to_variant_input()["compareAtPrice"] == "699.00"


def test_discount_with_tier_rounding(engine):
    plan = engine.plan_discount(variant("34.95", "40.00"), 80, TIERS_95)

    assert plan.target_compare_at == 199.95
    assert plan.target_compare_at > plan.current_price


def test_plan_trace_is_recorded(engine):
    plan = engine.plan_rounding(variant("32.95", "65.90"), TIERS_95)

    text = plan.get_trace_text()
    assert "Round Price" in text
    assert "34.95" in text
    assert plan.to_dict()["target_compare_at"] == "69.95"


def test_policy_from_values_normalizes_input():
    policy = policy_from_values("round-tiers", "bogus", 0)

    assert policy.mode is RoundingMode.ROUND_TIERS
    assert policy.ending is Ending.CENTS_95
    assert policy.block_size == 5

    policy = policy_from_values(None, None, "10", default_ending="0.99")
    assert policy.mode is RoundingMode.NONE
    assert policy.ending is Ending.CENTS_99
    assert policy.block_size == 10
