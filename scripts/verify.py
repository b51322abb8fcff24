"""
Ledger Verification Script

Checks the per-restaurant sales workbooks written by the export task.
Run from project root: python scripts/verify.py
"""

from datetime import datetime

import pandas as pd

from menumagi.core.config import get_settings
from menumagi.services.excel_manager import SALES_COLUMNS, ExcelManager


def verify_ledger(path) -> bool:
    """Report on one workbook. Returns False when a check fails."""
    print(f"\n📄 {path.name}")
    print("-" * 60)

    df = pd.read_excel(path, engine="openpyxl")
    ok = True

    missing = [col for col in SALES_COLUMNS if col not in df.columns]
    if missing:
        print(f"   ⚠️ Missing columns: {missing}")
        ok = False

    duplicates = int(df["order_id"].duplicated().sum()) if "order_id" in df.columns else 0
    if duplicates:
        print(f"   ⚠️ {duplicates} duplicate order IDs")
        ok = False

    if {"subtotal", "tax", "total"} <= set(df.columns):
        drift = (df["subtotal"] + df["tax"] - df["total"]).abs() > 0.01
        if drift.any():
            print(f"   ⚠️ {int(drift.sum())} rows where subtotal + tax != total")
            ok = False

    print(f"   Orders: {len(df)}")
    if "total" in df.columns and len(df):
        print(f"   💰 Revenue: ₹{df['total'].sum():.2f} (avg ₹{df['total'].mean():.2f})")
        cols = [c for c in ("invoice_number", "table_number", "total", "date") if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("   ✅ OK" if ok else "   ❌ Problems found")
    return ok


def verify_all() -> bool:
    print("=" * 60)
    print("🔍 SALES LEDGER VERIFICATION")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now():%Y-%m-%d %H:%M:%S}")
    print(f"📁 Directory: {get_settings().data_directory}")

    ledgers = ExcelManager.list_ledgers()
    if not ledgers:
        print("\n❌ No ledgers found. Complete some orders first.")
        return False

    results = [verify_ledger(path) for path in ledgers]

    print("\n" + "=" * 60)
    print(f"✅ {sum(results)}/{len(results)} ledgers passed")
    print("=" * 60)
    return all(results)


if __name__ == "__main__":
    raise SystemExit(0 if verify_all() else 1)
