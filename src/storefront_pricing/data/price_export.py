"""
Export Repricer - applies the pricing rules to a product export spreadsheet.

Reads a Shopify-style product export (CSV or XLSX), plans every variant row
through the repricing engine and writes the sheet back with the new prices
alongside the old ones, plus a run report.
"""
import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from ..engine.models import PricePolicy, VariantPrice
from ..engine.price_rules import format_price
from ..engine.repricing_engine import RepricingEngine

logger = logging.getLogger(__name__)


PRICE_COLUMN = 'Variant Price'
COMPARE_AT_COLUMN = 'Variant Compare At Price'
HANDLE_COLUMN = 'Handle'
SKU_COLUMN = 'Variant SKU'


def get_file_hash(path: Path) -> str:
    """Get SHA256 hash of a file."""
    if not path.exists():
        return ""
    with open(path, 'rb') as f:
        return hashlib.sha256(f.read()).hexdigest()[:12]


def load_price_export(path: Path) -> pd.DataFrame:
    """
    Load a product export, keeping every cell as text.

    Raises:
        FileNotFoundError: if the file does not exist
        ValueError: for an unsupported suffix or a missing price column
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Product export not found at {path}.")

    suffix = path.suffix.lower()
    if suffix == '.csv':
        df = pd.read_csv(path, dtype=str)
    elif suffix == '.xlsx':
        df = pd.read_excel(path, dtype=str)
    else:
        raise ValueError(f"Unsupported export format '{path.suffix}' (expected .csv or .xlsx)")

    df.columns = [str(c).strip() for c in df.columns]
    if PRICE_COLUMN not in df.columns:
        raise ValueError(f"Export is missing the '{PRICE_COLUMN}' column")

    return df


def write_price_export(df: pd.DataFrame, path: Path) -> Path:
    """Write the repriced sheet, picking the format from the suffix."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == '.xlsx':
        df.to_excel(path, index=False)
    else:
        df.to_csv(path, index=False)
    return path


def _cell(row: pd.Series, column: str) -> Optional[str]:
    if column not in row.index:
        return None
    value = row[column]
    if pd.isna(value):
        return None
    value = str(value).strip()
    return value or None


def reprice_export(
    df: pd.DataFrame,
    policy: PricePolicy,
    discount_percent: Optional[float] = None,
    engine: Optional[RepricingEngine] = None,
) -> tuple[pd.DataFrame, dict]:
    """
    Plan every row of an export under the policy.

    Args:
        df: Export rows (text cells)
        policy: Rounding policy
        discount_percent: When given, stamp compare-at prices for this discount
            instead of rounding prices
        engine: Optional engine override

    Returns:
        (repriced DataFrame, report dictionary)
    """
    engine = engine or RepricingEngine(policy)
    out = df.copy()

    report = {
        "timestamp": datetime.now().isoformat(),
        "status": "pending",
        "mode": "collection-discount" if discount_percent is not None else policy.mode.value,
        "metrics": {},
        "warnings": [],
    }

    new_prices, new_compare_ats, price_changed, compare_changed, reasons = [], [], [], [], []

    for index, row in out.iterrows():
        handle = _cell(row, HANDLE_COLUMN) or f"row-{index}"
        variant = VariantPrice(
            variant_id=_cell(row, SKU_COLUMN) or f"{handle}#{index}",
            product_id=handle,
            price=_cell(row, PRICE_COLUMN),
            compare_at_price=_cell(row, COMPARE_AT_COLUMN),
        )

        if discount_percent is not None:
            plan = engine.plan_discount(variant, discount_percent, policy)
        else:
            plan = engine.plan_rounding(variant, policy)

        for warning in plan.warnings:
            report["warnings"].append(f"{variant.variant_id}: {warning}")

        final_price = plan.target_price if plan.update_price else plan.current_price
        if plan.update_compare_at:
            final_compare_at = plan.target_compare_at
        else:
            final_compare_at = plan.current_compare_at or None

        if plan.skip_reason and plan.current_price <= 0:
            new_prices.append(None)
            new_compare_ats.append(None)
        else:
            new_prices.append(format_price(final_price))
            new_compare_ats.append(format_price(final_compare_at) if final_compare_at else None)

        price_changed.append(plan.update_price)
        compare_changed.append(plan.update_compare_at)
        reasons.append(plan.skip_reason)

    # object dtype keeps None for rows left unpriced
    out['New Price'] = pd.Series(new_prices, index=out.index, dtype=object)
    out['New Compare At Price'] = pd.Series(new_compare_ats, index=out.index, dtype=object)
    out['Price Changed'] = pd.Series(price_changed, index=out.index, dtype=bool)
    out['Compare At Changed'] = pd.Series(compare_changed, index=out.index, dtype=bool)
    out['Skip Reason'] = pd.Series(reasons, index=out.index, dtype=object)

    changed = out['Price Changed'] | out['Compare At Changed']
    report["metrics"] = {
        "rows": int(len(out)),
        "changed": int(changed.sum()),
        "skipped": int((~changed).sum()),
        "price_changes": int(out['Price Changed'].sum()),
        "compare_at_changes": int(out['Compare At Changed'].sum()),
    }
    report["status"] = "success"

    logger.info(
        "repriced export: %d rows, %d changed, %d skipped",
        report["metrics"]["rows"], report["metrics"]["changed"], report["metrics"]["skipped"],
    )
    return out, report


def reprice_file(
    input_path: Path,
    output_path: Path,
    policy: PricePolicy,
    discount_percent: Optional[float] = None,
    report_path: Optional[Path] = None,
) -> dict:
    """Load, reprice and write an export; the report is saved next to the output unless report_path is given."""
    input_path = Path(input_path)
    output_path = Path(output_path)

    df = load_price_export(input_path)
    out, report = reprice_export(df, policy, discount_percent=discount_percent)

    report["input_file"] = {"path": str(input_path), "hash": get_file_hash(input_path)}
    report["output_file"] = str(write_price_export(out, output_path))

    report_path = Path(report_path) if report_path else output_path.with_suffix('.report.json')
    with open(report_path, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=2)
    report["report_file"] = str(report_path)

    return report
