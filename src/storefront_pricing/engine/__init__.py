"""Engine subpackage - price rules and per-variant repricing."""
from .repricing_engine import RepricingEngine, policy_from_values
from .models import Ending, RoundingMode, PricePolicy, VariantPrice, VariantPlan

__all__ = [
    'RepricingEngine', 'policy_from_values',
    'Ending', 'RoundingMode', 'PricePolicy', 'VariantPrice', 'VariantPlan',
]
