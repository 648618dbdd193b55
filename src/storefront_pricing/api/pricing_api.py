"""
Pricing API - FastAPI router for previewing the pricing flows.

Each flow endpoint takes the variants as read from the store and returns the
planned writes, grouped per product for productVariantsBulkUpdate, along with
the updated/skipped tallies.
"""
import logging
from typing import Optional, Union

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..config.settings import get_settings
from ..engine import RepricingEngine, RoundingMode, VariantPrice, policy_from_values
from ..engine.price_rules import (
    apply_rounding,
    clamp_discount,
    compute_compare_at_target,
    discount_compare_at_target,
    format_price,
    parse_price,
    should_update,
)
from ..services.variant_updates import build_bulk_update_inputs, flow_params, plan_variants

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/prices", tags=["prices"])

engine = RepricingEngine()


# Pydantic models for API
class VariantIn(BaseModel):
    """A variant as read from the store."""
    id: Optional[str] = None
    product_id: Optional[str] = None
    price: Optional[str] = None
    compare_at_price: Optional[str] = None

    def to_variant(self) -> VariantPrice:
        return VariantPrice(
            variant_id=self.id,
            product_id=self.product_id,
            price=self.price,
            compare_at_price=self.compare_at_price,
        )


class ForceCentsRequest(BaseModel):
    """Request model for the force-cents flow."""
    ending: Optional[str] = None
    variants: list[VariantIn] = Field(default_factory=list)


class RoundTiersRequest(BaseModel):
    """Request model for the round-tiers flow."""
    ending: Optional[str] = None
    block_size: Optional[Union[int, float]] = None
    variants: list[VariantIn] = Field(default_factory=list)


class CollectionDiscountRequest(BaseModel):
    """Request model for the collection-discount flow."""
    collection_id: Optional[str] = None
    discount_percent: Optional[Union[float, str]] = None
    ending: Optional[str] = None
    rounding: Optional[str] = None
    block_size: Optional[Union[int, float]] = None
    variants: list[VariantIn] = Field(default_factory=list)


class QuoteRequest(BaseModel):
    """Request model for a single price quote."""
    price: str
    compare_at_price: Optional[str] = None
    rounding: str = "force-cents"
    ending: Optional[str] = None
    block_size: Optional[Union[int, float]] = None
    discount_percent: Optional[Union[float, str]] = None


class QuoteResponse(BaseModel):
    """Response model for a single price quote."""
    rounding: str
    ending: str
    block_size: int
    price: str
    target_price: str
    compare_at_price: Optional[str]
    target_compare_at: Optional[str]
    update_price: bool
    update_compare_at: bool


def _run_flow(variants: list[VariantIn], policy, discount_percent: Optional[float] = None,
              collection_id: Optional[str] = None) -> dict:
    plans, summary = plan_variants(
        engine,
        [v.to_variant() for v in variants],
        policy,
        discount_percent=discount_percent,
    )
    summary.params = flow_params(policy, discount_percent, collection_id)
    # Nothing is written here; every planned write counts as an update
    summary.updated = sum(1 for p in plans if p.needs_update)

    result = summary.to_dict()
    result["plans"] = [p.to_dict() for p in plans]
    result["bulk_updates"] = build_bulk_update_inputs(plans)
    return result


# Endpoints

@router.post("/force-cents")
async def force_cents_flow(req: ForceCentsRequest):
    """Replace the cents of every price with the ending (or drop them)."""
    settings = get_settings()
    policy = policy_from_values(RoundingMode.FORCE_CENTS, req.ending, default_ending=settings.default_ending)
    return _run_flow(req.variants, policy)


@router.post("/round-tiers")
async def round_tiers_flow(req: RoundTiersRequest):
    """Lift every price to the top of its digit-scaled tier."""
    settings = get_settings()
    block_size = req.block_size if req.block_size is not None else settings.default_block_size
    policy = policy_from_values(RoundingMode.ROUND_TIERS, req.ending, block_size, settings.default_ending)
    return _run_flow(req.variants, policy)


@router.post("/collection-discount")
async def collection_discount_flow(req: CollectionDiscountRequest):
    """Stamp a compare-at price advertising the discount on every variant."""
    if not req.collection_id:
        raise HTTPException(status_code=400, detail="Missing collectionId")

    settings = get_settings()
    block_size = req.block_size if req.block_size is not None else settings.default_block_size
    policy = policy_from_values(req.rounding, req.ending, block_size, settings.default_ending)
    discount = clamp_discount(req.discount_percent)

    logger.info("collection %s: %g%% discount, %s rounding", req.collection_id, discount, policy.mode.value)
    return _run_flow(req.variants, policy, discount_percent=discount, collection_id=req.collection_id)


@router.post("/quote", response_model=QuoteResponse)
async def quote_price(req: QuoteRequest):
    """Preview the rules on a single price."""
    settings = get_settings()
    block_size = req.block_size if req.block_size is not None else settings.default_block_size
    policy = policy_from_values(req.rounding, req.ending, block_size, settings.default_ending)

    price = parse_price(req.price)
    if price <= 0:
        raise HTTPException(status_code=400, detail=f"Price '{req.price}' is not a positive number")

    compare_at = parse_price(req.compare_at_price) if req.compare_at_price is not None else None

    if req.discount_percent is not None:
        target_price = price
        target_compare_at = discount_compare_at_target(
            price, clamp_discount(req.discount_percent), policy.mode, policy.ending, policy.block_size
        )
    else:
        target_price = apply_rounding(price, policy.mode, policy.ending, policy.block_size)
        target_compare_at = compute_compare_at_target(
            price, compare_at, target_price, policy.mode, policy.ending, policy.block_size
        )

    return QuoteResponse(
        rounding=policy.mode.value,
        ending=policy.ending.value,
        block_size=policy.block_size,
        price=format_price(price),
        target_price=format_price(target_price),
        compare_at_price=format_price(compare_at) if compare_at is not None else None,
        target_compare_at=format_price(target_compare_at) if target_compare_at is not None else None,
        update_price=should_update(price, target_price),
        update_compare_at=(
            target_compare_at is not None
            and (compare_at is None or should_update(compare_at, target_compare_at))
        ),
    )
