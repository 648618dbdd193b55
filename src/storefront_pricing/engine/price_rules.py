"""
Price Rules - pure price-normalization functions.

Two rounding policies are supported:
- force-cents: keep the integer part, replace the cents with the ending
- round-tiers: lift the integer part to the top of a block whose size grows
  ×10 with every extra digit, then append the ending

Compare-at helpers derive a reference price that stays at least one cent above
the rounded price, either by preserving the old price/compare-at ratio or from
a requested discount percentage.

Nothing here raises on malformed numbers: unparseable input becomes 0 and
degenerate ratios fall back to a bumped candidate.
"""
import math
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, localcontext
from typing import Optional

from .models import Ending, RoundingMode


DEFAULT_BLOCK_SIZE = 5
UPDATE_TOLERANCE = 0.0001
MIN_COMPARE_AT_GAP = 0.01

DISCOUNT_MIN = 1.0
DISCOUNT_MAX = 95.0

# Bumps tried, in order, when a compare-at has to be synthesized above price
_DEGENERATE_BUMPS = {
    RoundingMode.NONE: (1.0, 2.0),
    RoundingMode.FORCE_CENTS: (1.0, 2.0),
    RoundingMode.ROUND_TIERS: (2.0, 5.0),
}
_CORRECTION_BUMPS = {
    RoundingMode.NONE: (1.0, 2.0),
    RoundingMode.FORCE_CENTS: (2.0, 5.0),
    RoundingMode.ROUND_TIERS: (5.0, 10.0),
}


def round2(value: float) -> float:
    """Round to cents, halves away from zero."""
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return 0.0
    if not number.is_finite():
        return 0.0
    with localcontext() as ctx:
        # Enough digits for every integer digit plus the cents
        ctx.prec = max(ctx.prec, number.adjusted() + 3)
        quantized = number.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(quantized)


def parse_price(text) -> float:
    """Parse a store price string; 0.0 for anything that isn't a finite, non-negative number."""
    if text is None:
        return 0.0
    try:
        value = float(str(text).strip())
    except ValueError:
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def format_price(value: float) -> str:
    """Wire format: exactly two fractional digits."""
    return f"{round2(value):.2f}"


def should_update(current: float, target: float) -> bool:
    """True when the stored value differs from the target beyond the tolerance."""
    return abs(current - target) > UPDATE_TOLERANCE


def normalize_block_size(value) -> int:
    """Positive numbers floor to an int; anything else becomes the default."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_BLOCK_SIZE
    if not math.isfinite(number) or number < 1:
        return DEFAULT_BLOCK_SIZE
    return int(math.floor(number))


def clamp_discount(value) -> float:
    """Clamp a discount percentage to [1, 95]; non-numeric input clamps to 1."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = 0.0
    if not math.isfinite(number):
        number = 0.0
    return max(DISCOUNT_MIN, min(DISCOUNT_MAX, number))


def drop_cents(price: float) -> float:
    """Integer part only (the no-cents ending)."""
    if not math.isfinite(price):
        return 0.0
    return float(math.floor(price + 1e-9))


def force_cents(price: float, ending) -> float:
    """Keep floor(price) and replace the fractional part with the ending."""
    if not math.isfinite(price):
        return 0.0
    ending = Ending.parse(ending)
    if ending is Ending.NO_CENTS:
        return drop_cents(price)
    return round2(math.floor(price) + ending.cents)


def count_int_digits(value: float) -> int:
    """Number of decimal digits in the integer part (1 for 0-9)."""
    n = abs(math.floor(value))
    if n < 10:
        return 1
    return len(str(n))


def round_to_tier_top_by_digits(price: float, ending, block_size: int = DEFAULT_BLOCK_SIZE) -> float:
    """
    Round the integer part up to the top of its block, then append the ending.

    The block is block_size for 2-digit prices and grows ×10 per extra digit:
    with block_size=5, 32 → 34, 332 → 349, 3232 → 3499.
    Single-digit prices only get the ending.
    """
    if not math.isfinite(price):
        return 0.0
    if price <= 0:
        return price

    ending = Ending.parse(ending)
    block_size = normalize_block_size(block_size)

    int_part = math.floor(price)
    digits = count_int_digits(int_part)

    if digits <= 1:
        return round2(int_part + ending.cents)

    scaled_block = block_size * 10 ** max(0, digits - 2)
    base = int_part - (int_part % scaled_block)
    top = base + scaled_block - 1

    if top < int_part:
        top = base + 2 * scaled_block - 1

    return round2(top + ending.cents)


def apply_rounding(value: float, mode, ending, block_size: int = DEFAULT_BLOCK_SIZE) -> float:
    """Round a value under the given policy."""
    mode = RoundingMode.parse(mode)
    if mode is RoundingMode.FORCE_CENTS:
        return force_cents(value, ending)
    if mode is RoundingMode.ROUND_TIERS:
        return round_to_tier_top_by_digits(value, ending, block_size)
    return value


def _clears(candidate: float, price: float) -> bool:
    return candidate - price >= MIN_COMPARE_AT_GAP - UPDATE_TOLERANCE


def _bump_above(price: float, mode: RoundingMode, ending, block_size: int, bumps: tuple) -> float:
    """Round price + bump under the policy until the result clears price by a cent."""
    candidate = price
    for bump in bumps:
        candidate = apply_rounding(price + bump, mode, ending, block_size)
        if _clears(candidate, price):
            return round2(candidate)
    return max(round2(candidate), round2(price + 1))


def compute_compare_at_target(
    current_price: float,
    current_compare_at: Optional[float],
    target_price: float,
    mode,
    ending,
    block_size: int = DEFAULT_BLOCK_SIZE,
) -> Optional[float]:
    """
    Compare-at consistent with a newly rounded price.

    Returns None when there was no compare-at to begin with. When the old
    compare-at did not sit above the old price, a fresh one is synthesized
    just above target_price; otherwise the old price/compare-at ratio is
    carried over and re-rounded. A returned value always clears target_price
    by at least one cent.
    """
    mode = RoundingMode.parse(mode)

    if current_compare_at is None or not math.isfinite(current_compare_at) or current_compare_at <= 0:
        return None

    if current_compare_at <= current_price + UPDATE_TOLERANCE or current_price <= 0:
        return _bump_above(target_price, mode, ending, block_size, _DEGENERATE_BUMPS[mode])

    ratio = current_price / current_compare_at
    if not math.isfinite(ratio) or ratio <= 0:
        return None

    raw = target_price / ratio
    candidate = apply_rounding(raw, mode, ending, block_size)
    if mode is RoundingMode.NONE:
        candidate = round2(candidate)

    if not _clears(candidate, target_price):
        if mode is RoundingMode.FORCE_CENTS and Ending.parse(ending) is Ending.NO_CENTS:
            return drop_cents(target_price) + 1
        candidate = _bump_above(target_price, mode, ending, block_size, _CORRECTION_BUMPS[mode])

    return candidate


def compute_compare_at_from_discount(price: float, discount_percent: float) -> float:
    """compareAt = price / (1 - D/100); a non-positive denominator yields price + 1."""
    denominator = 1 - discount_percent / 100
    if denominator <= 0:
        return price + 1
    return price / denominator


def discount_compare_at_target(
    price: float,
    discount_percent: float,
    mode,
    ending,
    block_size: int = DEFAULT_BLOCK_SIZE,
) -> float:
    """
    Compare-at that advertises discount_percent off price, rounded under the policy.

    Always produces a value at least one cent above price.
    """
    mode = RoundingMode.parse(mode)
    raw = compute_compare_at_from_discount(price, discount_percent)
    target = apply_rounding(raw, mode, ending, block_size)

    if not _clears(target, price):
        bumped = apply_rounding(price + 2, mode, ending, block_size)
        target = max(bumped, price + 1)

    return round2(target)
