"""
Variant Updates - glue between store payloads and the repricing engine.

Reads variant records out of GraphQL connection payloads, plans a batch,
groups the resulting writes per product and tallies the outcome.
Issuing the requests is left to the caller.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..engine.models import PricePolicy, RoundingMode, VariantPlan, VariantPrice
from ..engine.repricing_engine import RepricingEngine

logger = logging.getLogger(__name__)


VARIANTS_QUERY = """
query Variants($first: Int!, $after: String) {
  productVariants(first: $first, after: $after) {
    pageInfo { hasNextPage endCursor }
    edges {
      node {
        id
        price
        compareAtPrice
        product { id }
      }
    }
  }
}
"""

COLLECTION_VARIANTS_QUERY = """
query CollectionProducts($id: ID!, $first: Int!, $after: String) {
  collection(id: $id) {
    id
    products(first: $first, after: $after) {
      pageInfo { hasNextPage endCursor }
      edges {
        node {
          id
          variants(first: 250) {
            edges {
              node {
                id
                price
                compareAtPrice
              }
            }
          }
        }
      }
    }
  }
}
"""

BULK_UPDATE_MUTATION = """
mutation UpdateVariantPrices($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkUpdate(productId: $productId, variants: $variants) {
    productVariants { id price compareAtPrice }
    userErrors { field message }
  }
}
"""


@dataclass
class RunSummary:
    """Tallies for one pass over a set of variants."""
    mode: str
    params: dict = field(default_factory=dict)
    updated: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def record_skip(self, plan: VariantPlan):
        self.skipped += 1
        logger.debug("skipped variant %s: %s", plan.variant_id, plan.skip_reason)

    def record_result(self, plan: VariantPlan, user_errors: Optional[list] = None):
        """Record the outcome of a write; a rejected write counts as skipped."""
        if user_errors:
            message = format_user_errors(plan.variant_id, user_errors)
            self.errors.append(message)
            self.skipped += 1
            logger.warning("update rejected: %s", message)
        else:
            self.updated += 1

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "mode": self.mode,
            **self.params,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }


def format_user_errors(variant_id: Optional[str], user_errors: list) -> str:
    """Join mutation user errors into one readable line."""
    messages = []
    for error in user_errors:
        message = error.get("message") if isinstance(error, dict) else error
        if message:
            messages.append(str(message))
    return f"Variant {variant_id}: {', '.join(messages)}"


def _edges(connection: Optional[dict]) -> list:
    if not isinstance(connection, dict):
        return []
    return connection.get("edges") or []


def _node_to_variant(node: dict, product_id: Optional[str] = None) -> VariantPrice:
    product = node.get("product") or {}
    compare_at = node.get("compareAtPrice")
    return VariantPrice(
        variant_id=node.get("id"),
        product_id=product.get("id") or product_id,
        price=node.get("price"),
        compare_at_price=compare_at if isinstance(compare_at, str) else None,
    )


def variants_from_connection(payload: dict) -> list[VariantPrice]:
    """Read variants from a productVariants query response."""
    data = (payload or {}).get("data") or payload or {}
    variants = []
    for edge in _edges(data.get("productVariants")):
        node = (edge or {}).get("node") or {}
        variants.append(_node_to_variant(node))
    return variants


def variants_from_collection(payload: dict) -> list[VariantPrice]:
    """Read variants from a collection products query response."""
    data = (payload or {}).get("data") or payload or {}
    collection = data.get("collection") or {}
    variants = []
    for edge in _edges(collection.get("products")):
        product = (edge or {}).get("node") or {}
        product_id = product.get("id")
        if not product_id:
            continue
        for variant_edge in _edges(product.get("variants")):
            node = (variant_edge or {}).get("node") or {}
            variants.append(_node_to_variant(node, product_id))
    return variants


def page_info(payload: dict, path: tuple = ("productVariants",)) -> tuple[bool, Optional[str]]:
    """(has_next_page, end_cursor) for the connection at path."""
    node = (payload or {}).get("data") or payload or {}
    for key in path:
        node = (node or {}).get(key) or {}
    info = node.get("pageInfo") or {}
    return bool(info.get("hasNextPage")), info.get("endCursor")


def plan_variants(
    engine: RepricingEngine,
    variants: Iterable[VariantPrice],
    policy: PricePolicy,
    discount_percent: Optional[float] = None,
    summary: Optional[RunSummary] = None,
) -> tuple[list[VariantPlan], RunSummary]:
    """
    Plan every variant and count the skips.

    With discount_percent the collection-discount flow is used, otherwise
    the rounding flow for the policy's mode.
    """
    if summary is None:
        mode = "collection-discount" if discount_percent is not None else policy.mode.value
        summary = RunSummary(mode=mode)

    plans = []
    for variant in variants:
        if discount_percent is not None:
            plan = engine.plan_discount(variant, discount_percent, policy)
        else:
            plan = engine.plan_rounding(variant, policy)

        if not plan.needs_update:
            summary.record_skip(plan)
        plans.append(plan)

    logger.info(
        "planned %d variants (%s): %d to write, %d skipped",
        len(plans), summary.mode, sum(1 for p in plans if p.needs_update), summary.skipped,
    )
    return plans, summary


def build_bulk_update_inputs(plans: Iterable[VariantPlan]) -> list[dict]:
    """
    Group pending writes per product for productVariantsBulkUpdate.

    Products keep the order in which they were first seen.
    """
    grouped: dict[str, list[dict]] = {}
    for plan in plans:
        variant_input = plan.to_variant_input()
        if variant_input is None:
            continue
        grouped.setdefault(plan.product_id, []).append(variant_input)

    return [
        {"productId": product_id, "variants": variants}
        for product_id, variants in grouped.items()
    ]


def flow_params(policy: PricePolicy, discount_percent: Optional[float] = None, collection_id: Optional[str] = None) -> dict:
    """Parameters echoed back in a run result, per flow."""
    if discount_percent is not None:
        return {
            "collectionId": collection_id,
            "discountPercent": discount_percent,
            "ending": policy.ending.value,
            "rounding": policy.mode.value,
            "blockSize": policy.block_size,
        }
    params = {"ending": policy.ending.value}
    if policy.mode is RoundingMode.ROUND_TIERS:
        params["blockSize"] = policy.block_size
    return params
