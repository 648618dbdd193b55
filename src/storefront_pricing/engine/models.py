"""
Data models for the repricing engine.

Uses enums for the policy choices and dataclasses for per-variant results.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Ending(str, Enum):
    """Fractional suffix carried by every rewritten price."""
    CENTS_95 = "0.95"
    CENTS_99 = "0.99"
    NO_CENTS = "no-cents"

    @property
    def cents(self) -> float:
        """Numeric value of the suffix (0.0 for no-cents)."""
        if self is Ending.NO_CENTS:
            return 0.0
        return float(self.value)

    @classmethod
    def parse(cls, value, default: 'Ending' = None) -> 'Ending':
        """Coerce caller input, falling back to .95 for anything unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            return default or cls.CENTS_95


class RoundingMode(str, Enum):
    """How the integer and fractional parts of a price are rewritten."""
    NONE = "none"
    FORCE_CENTS = "force-cents"
    ROUND_TIERS = "round-tiers"

    @classmethod
    def parse(cls, value, default: 'RoundingMode' = None) -> 'RoundingMode':
        """Coerce caller input, falling back to pass-through."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            return default or cls.NONE


@dataclass(frozen=True)
class PricePolicy:
    """A rounding mode together with its ending and tier block size."""
    mode: RoundingMode = RoundingMode.NONE
    ending: Ending = Ending.CENTS_95
    block_size: int = 5


@dataclass
class VariantPrice:
    """A variant's stored prices as read from the store (raw strings)."""
    variant_id: Optional[str]
    product_id: Optional[str]
    price: Optional[str]
    compare_at_price: Optional[str] = None


@dataclass
class TraceStep:
    """A single step in a variant's repricing trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class VariantPlan:
    """Outcome of running one variant through a pricing flow."""
    variant_id: Optional[str]
    product_id: Optional[str]
    current_price: float = 0.0
    current_compare_at: Optional[float] = None
    target_price: Optional[float] = None
    target_compare_at: Optional[float] = None
    update_price: bool = False
    update_compare_at: bool = False
    skip_reason: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    trace: list[TraceStep] = field(default_factory=list)

    @property
    def needs_update(self) -> bool:
        return self.update_price or self.update_compare_at

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the trace for this variant."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def add_warning(self, warning: str):
        """Add a warning for this variant."""
        self.warnings.append(warning)

    def skip(self, reason: str) -> 'VariantPlan':
        """Mark the plan as skipped and return it."""
        self.skip_reason = reason
        self.update_price = False
        self.update_compare_at = False
        self.add_trace("Skip", reason)
        return self

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)

    def to_variant_input(self) -> Optional[dict]:
        """
        Build the variant input for a bulk update mutation.

        Returns None when nothing needs writing.
        """
        from .price_rules import format_price

        if not self.needs_update:
            return None

        variant_input = {"id": self.variant_id}
        if self.update_price and self.target_price is not None:
            variant_input["price"] = format_price(self.target_price)
        if self.update_compare_at and self.target_compare_at is not None:
            variant_input["compareAtPrice"] = format_price(self.target_compare_at)
        return variant_input

    def to_dict(self) -> dict:
        """Serializable view with prices in wire format."""
        from .price_rules import format_price

        def fmt(value: Optional[float]) -> Optional[str]:
            return format_price(value) if value is not None else None

        return {
            "variant_id": self.variant_id,
            "product_id": self.product_id,
            "current_price": fmt(self.current_price),
            "current_compare_at": fmt(self.current_compare_at),
            "target_price": fmt(self.target_price),
            "target_compare_at": fmt(self.target_compare_at),
            "update_price": self.update_price,
            "update_compare_at": self.update_compare_at,
            "skip_reason": self.skip_reason,
            "warnings": list(self.warnings),
            "trace": self.get_trace_text(),
        }
