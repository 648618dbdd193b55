"""
Tests for the glue between store payloads and the repricing engine.
"""
import pytest

from storefront_pricing.engine import Ending, PricePolicy, RepricingEngine, RoundingMode, VariantPrice
from storefront_pricing.services.variant_updates import (
    RunSummary,
    build_bulk_update_inputs,
    flow_params,
    format_user_errors,
    page_info,
    plan_variants,
    variants_from_collection,
    variants_from_connection,
)


VARIANTS_PAYLOAD = {
    "data": {
        "productVariants": {
            "pageInfo": {"hasNextPage": True, "endCursor": "abc123"},
            "edges": [
                {"node": {"id": "v1", "price": "34.13", "compareAtPrice": "68.26", "product": {"id": "p1"}}},
                {"node": {"id": "v2", "price": "12.00", "compareAtPrice": None, "product": {"id": "p1"}}},
                {"node": {"id": "v3", "price": "19.99", "compareAtPrice": None, "product": None}},
            ],
        }
    }
}

COLLECTION_PAYLOAD = {
    "data": {
        "collection": {
            "id": "c1",
            "products": {
                "pageInfo": {"hasNextPage": False, "endCursor": None},
                "edges": [
                    {"node": {"id": "p1", "variants": {"edges": [
                        {"node": {"id": "v1", "price": "34.95", "compareAtPrice": None}},
                        {"node": {"id": "v2", "price": "20.00", "compareAtPrice": "25.00"}},
                    ]}}},
                    {"node": {"id": None, "variants": {"edges": [
                        {"node": {"id": "orphan", "price": "1.00", "compareAtPrice": None}},
                    ]}}},
                    {"node": {"id": "p2", "variants": {"edges": [
                        {"node": {"id": "v3", "price": "99.00", "compareAtPrice": None}},
                    ]}}},
                ],
            },
        }
    }
}


@pytest.fixture
def engine():
    return RepricingEngine()


def test_variants_from_connection():
    variants = variants_from_connection(VARIANTS_PAYLOAD)

    assert [v.variant_id for v in variants] == ["v1", "v2", "v3"]
    assert variants[0].compare_at_price == "68.26"
    assert variants[1].compare_at_price is None
    assert variants[2].product_id is None


def test_variants_from_collection_fills_product_id():
    variants = variants_from_collection(COLLECTION_PAYLOAD)

    assert [(v.variant_id, v.product_id) for v in variants] == [("v1", "p1"), ("v2", "p1"), ("v3", "p2")]


def test_empty_payloads():
    assert variants_from_connection({}) == []
    assert variants_from_collection({"data": {"collection": None}}) == []


def test_page_info():
    assert page_info(VARIANTS_PAYLOAD) == (True, "abc123")
    assert page_info(COLLECTION_PAYLOAD, ("collection", "products")) == (False, None)


def test_plan_variants_counts_skips(engine):
    policy = PricePolicy(mode=RoundingMode.FORCE_CENTS, ending=Ending.CENTS_99)
    plans, summary = plan_variants(engine, variants_from_connection(VARIANTS_PAYLOAD), policy)

    # v3 has no product id
    assert [p.needs_update for p in plans] == [True, True, False]
    assert summary.mode == "force-cents"
    assert summary.skipped == 1


def test_plan_variants_discount_flow(engine):
    policy = PricePolicy(mode=RoundingMode.NONE)
    plans, summary = plan_variants(engine, variants_from_collection(COLLECTION_PAYLOAD), policy, discount_percent=50)

    assert summary.mode == "collection-discount"
    assert [p.target_compare_at for p in plans] == [69.9, 40.0, 198.0]
    assert all(p.update_price is False for p in plans)


def test_build_bulk_update_inputs_groups_by_product(engine):
    policy = PricePolicy(mode=RoundingMode.FORCE_CENTS, ending=Ending.CENTS_99)
    variants = [
        VariantPrice("v1", "p1", "34.13"),
        VariantPrice("v2", "p2", "10.50"),
        VariantPrice("v3", "p1", "8.00", "16.00"),
        VariantPrice("v4", "p2", "5.99"),
    ]
    plans, _ = plan_variants(engine, variants, policy)

    assert build_bulk_update_inputs(plans) == [
        {"productId": "p1", "variants": [
            {"id": "v1", "price": "34.99"},
            {"id": "v3", "price": "8.99", "compareAtPrice": "17.99"},
        ]},
        {"productId": "p2", "variants": [
            {"id": "v2", "price": "10.99"},
        ]},
    ]


def test_format_user_errors():
    errors = [{"field": ["variants", "0", "price"], "message": "Price must be positive"}, {"message": "Other"}, {}]

    assert format_user_errors("v1", errors) == "Variant v1: Price must be positive, Other"


def test_record_result_tallies():
    engine = RepricingEngine()
    plan = engine.plan_rounding(VariantPrice("v1", "p1", "34.13"), PricePolicy(mode=RoundingMode.FORCE_CENTS))
    summary = RunSummary(mode="force-cents", params={"ending": "0.95"})

    summary.record_result(plan)
    summary.record_result(plan, [{"message": "Product is locked"}])

    assert summary.updated == 1
    assert summary.skipped == 1
    assert summary.errors == ["Variant v1: Product is locked"]
    assert summary.to_dict() == {
        "ok": True,
        "mode": "force-cents",
        "ending": "0.95",
        "updated": 1,
        "skipped": 1,
        "errors": ["Variant v1: Product is locked"],
    }


def test_flow_params():
    tiers = PricePolicy(mode=RoundingMode.ROUND_TIERS, ending=Ending.CENTS_99, block_size=10)
    force = PricePolicy(mode=RoundingMode.FORCE_CENTS, ending=Ending.NO_CENTS)

    assert flow_params(tiers) == {"ending": "0.99", "blockSize": 10}
    assert flow_params(force) == {"ending": "no-cents"}
    assert flow_params(tiers, 30.0, "c1") == {
        "collectionId": "c1",
        "discountPercent": 30.0,
        "ending": "0.99",
        "rounding": "round-tiers",
        "blockSize": 10,
    }
