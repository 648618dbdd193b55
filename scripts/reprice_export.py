#!/usr/bin/env python
"""
Reprice a product export spreadsheet.

Usage:
    python scripts/reprice_export.py products_export.csv --rounding round-tiers --ending 0.99
    python scripts/reprice_export.py products_export.csv --discount 30 --rounding force-cents
"""
import argparse
import sys
from pathlib import Path

from storefront_pricing.config.logging import init_logging
from storefront_pricing.config.settings import get_settings
from storefront_pricing.data.price_export import reprice_file
from storefront_pricing.engine import policy_from_values
from storefront_pricing.engine.price_rules import clamp_discount


def parse_args(argv=None):
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Apply pricing rules to a product export.")
    parser.add_argument("input", type=Path, help="Product export (.csv or .xlsx)")
    parser.add_argument("-o", "--output", type=Path, default=None,
                        help="Output file (default: <export dir>/<input>_repriced.<suffix>)")
    parser.add_argument("--rounding", choices=["none", "force-cents", "round-tiers"], default="force-cents")
    parser.add_argument("--ending", choices=["0.95", "0.99", "no-cents"], default=settings.default_ending)
    parser.add_argument("--block-size", type=int, default=settings.default_block_size)
    parser.add_argument("--discount", type=float, default=None,
                        help="Stamp compare-at prices for this discount percentage (1-95)")
    return parser.parse_args(argv)


def main(argv=None):
    settings = get_settings()
    init_logging(settings.log_level)
    args = parse_args(argv)

    output = args.output or settings.export_dir / f"{args.input.stem}_repriced{args.input.suffix}"
    policy = policy_from_values(args.rounding, args.ending, args.block_size, settings.default_ending)
    discount = clamp_discount(args.discount) if args.discount is not None else None

    try:
        report = reprice_file(args.input, output, policy, discount_percent=discount)
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    metrics = report["metrics"]
    print(f"Rows: {metrics['rows']}  Changed: {metrics['changed']}  Skipped: {metrics['skipped']}")
    for warning in report["warnings"]:
        print(f"  WARNING: {warning}")
    print(f"Output: {report['output_file']}")
    print(f"Report: {report['report_file']}")


if __name__ == "__main__":
    main()
