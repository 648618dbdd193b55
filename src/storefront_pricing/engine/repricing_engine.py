"""
Repricing Engine - applies the price rules to one variant at a time.

Each call returns a VariantPlan with:
- Target price and compare-at values
- Flags for which fields need a write
- A skip reason when the variant can't or needn't be touched
- An execution trace of every step
"""
from typing import Optional

from .models import Ending, PricePolicy, RoundingMode, VariantPlan, VariantPrice
from .price_rules import (
    apply_rounding,
    clamp_discount,
    compute_compare_at_from_discount,
    compute_compare_at_target,
    discount_compare_at_target,
    format_price,
    normalize_block_size,
    parse_price,
    should_update,
)


class RepricingEngine:
    """
    Stateless engine that plans price rewrites for variants.

    Rounding flow (force-cents / round-tiers):
    1. Skip variants missing an id, product id or price, or priced at 0
    2. Round the price under the policy
    3. Carry an existing compare-at over, preserving the discount ratio
    4. Write only when price or compare-at moved beyond the tolerance

    Discount flow (collection discount):
    1. Skip variants missing an id, product id or price, or priced at 0
    2. Derive compare-at from the discount percentage, rounded under the policy
    3. Always stamp a compare-at; write unless the stored one already matches
    """

    def __init__(self, default_policy: Optional[PricePolicy] = None):
        self.default_policy = default_policy or PricePolicy()

    def _start_plan(self, variant: VariantPrice) -> tuple[VariantPlan, bool]:
        """Create a plan and check the variant has what every flow needs."""
        plan = VariantPlan(variant_id=variant.variant_id, product_id=variant.product_id)

        if not variant.variant_id or not variant.product_id or not variant.price:
            plan.skip("Missing variant id, product id or price")
            return plan, False

        plan.current_price = parse_price(variant.price)
        plan.add_trace("Read Price", "Stored price", format_price(plan.current_price))

        if variant.compare_at_price is not None:
            plan.current_compare_at = parse_price(variant.compare_at_price)
            plan.add_trace("Read Compare-at", "Stored compare-at", format_price(plan.current_compare_at))

        if plan.current_price <= 0:
            plan.skip(f"Price '{variant.price}' is not a positive number")
            return plan, False

        return plan, True

    def plan_rounding(self, variant: VariantPrice, policy: Optional[PricePolicy] = None) -> VariantPlan:
        """
        Plan a force-cents or round-tiers rewrite for one variant.

        A compare-at is only touched when the variant already has one.
        """
        policy = policy or self.default_policy
        plan, ok = self._start_plan(variant)
        if not ok:
            return plan

        block_size = normalize_block_size(policy.block_size)
        plan.target_price = apply_rounding(plan.current_price, policy.mode, policy.ending, block_size)
        plan.add_trace(
            "Round Price",
            f"{policy.mode.value} with ending {policy.ending.value}",
            format_price(plan.target_price),
        )

        if plan.target_price <= 0:
            plan.add_warning(f"Rounding {format_price(plan.current_price)} would zero the price")
            return plan.skip("Rounded price is not positive")

        plan.target_compare_at = compute_compare_at_target(
            current_price=plan.current_price,
            current_compare_at=plan.current_compare_at,
            target_price=plan.target_price,
            mode=policy.mode,
            ending=policy.ending,
            block_size=block_size,
        )
        if plan.target_compare_at is not None:
            if plan.current_compare_at is not None and plan.current_compare_at <= plan.current_price:
                plan.add_warning("Stored compare-at was not above price; synthesized a new one")
            plan.add_trace("Compare-at", "Re-derived compare-at", format_price(plan.target_compare_at))
        elif plan.current_compare_at is not None:
            plan.add_trace("Compare-at", "Stored compare-at is empty, left unchanged")

        price_moved = should_update(plan.current_price, plan.target_price)
        compare_at_moved = (
            plan.target_compare_at is not None
            and plan.current_compare_at is not None
            and should_update(plan.current_compare_at, plan.target_compare_at)
        )

        if not price_moved and not compare_at_moved:
            return plan.skip("Already at target")

        # The price is always sent with a write, even when only compare-at moved
        plan.update_price = True
        plan.update_compare_at = compare_at_moved
        return plan

    def plan_discount(
        self,
        variant: VariantPrice,
        discount_percent: float,
        policy: Optional[PricePolicy] = None,
    ) -> VariantPlan:
        """Plan a compare-at stamp advertising discount_percent off the current price."""
        policy = policy or self.default_policy
        plan, ok = self._start_plan(variant)
        if not ok:
            return plan

        discount = clamp_discount(discount_percent)
        block_size = normalize_block_size(policy.block_size)

        raw = compute_compare_at_from_discount(plan.current_price, discount)
        plan.add_trace("Discount", f"{discount:g}% off {format_price(plan.current_price)}", format_price(raw))

        plan.target_price = plan.current_price
        plan.target_compare_at = discount_compare_at_target(
            plan.current_price, discount, policy.mode, policy.ending, block_size
        )
        plan.add_trace(
            "Round Compare-at",
            f"{policy.mode.value} with ending {policy.ending.value}",
            format_price(plan.target_compare_at),
        )

        if plan.current_compare_at is not None and not should_update(plan.current_compare_at, plan.target_compare_at):
            return plan.skip("Already at target")

        plan.update_compare_at = True
        return plan


def policy_from_values(mode=None, ending=None, block_size=None, default_ending: str = "0.95") -> PricePolicy:
    """Build a policy from loosely typed request values."""
    return PricePolicy(
        mode=RoundingMode.parse(mode),
        ending=Ending.parse(ending, Ending.parse(default_ending)),
        block_size=normalize_block_size(block_size),
    )
