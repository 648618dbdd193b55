"""
Storefront Pricing Package

Price-normalization rules for storefront variant pricing.
Rewrites prices to a fixed cents ending or to the top of a digit-scaled tier,
keeping compare-at prices consistent with the discount they advertise.
"""

__version__ = "1.0.0"
