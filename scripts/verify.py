"""
Export Verification Script

Verifies the integrity of a session CSV export.
Run from project root: python scripts/verify.py data/session-1.csv

Author: Khalil_Bannouri
Version: 1.0.0
"""

import os
import sys
from datetime import datetime
from decimal import Decimal

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from app.services.exporter import SessionExporter


def _amount(value: str) -> Decimal:
    return Decimal(str(value).lstrip(SessionExporter.CURRENCY_SYMBOL))


def verify_export(path: str) -> bool:
    """Verify a session export file."""

    print("=" * 60)
    print("🔍 EXPORT VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {path}")
    print("=" * 60)

    if not os.path.exists(path):
        print("\n❌ Export file not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        print(f"\n✅ File loaded successfully!")
    except Exception as e:
        print(f"\n❌ Could not read export file: {e}")
        return False

    ok = True

    missing = [col for col in SessionExporter.COLUMNS if col not in df.columns]
    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
        return False
    print(f"\n✅ All required columns present")

    print(f"\n📊 STATISTICS:")
    print(f"   Total Orders: {len(df)}")
    print(f"   Participants: {df['Customer Name'].nunique()}")
    print(f"   Paid Orders: {(df['Paid'] == 'yes').sum()}")

    # Totals are trusted as submitted; flag rows where they disagree with unit x qty
    mismatched = [
        idx for idx, row in df.iterrows()
        if _amount(row["Unit Price"]) * int(row["Quantity"]) != _amount(row["Total Price"])
    ]
    if mismatched:
        ok = False
        print(f"\n⚠️ {len(mismatched)} rows where total != unit price x quantity: {mismatched[:10]}")
    else:
        print(f"✅ Every total matches unit price x quantity")

    total = sum((_amount(v) for v in df["Total Price"]), Decimal("0"))
    print(f"\n💰 AMOUNT:")
    print(f"   Total: {SessionExporter.CURRENCY_SYMBOL}{total:.2f}")

    print(f"\n📋 PER CUSTOMER:")
    print("-" * 60)
    if len(df) > 0:
        per_customer = (
            df.assign(amount=df["Total Price"].map(lambda v: float(_amount(v))))
            .groupby("Customer Name", sort=False)["amount"]
            .agg(["count", "sum"])
        )
        print(per_customer.to_string())

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "⚠️ VERIFICATION FINISHED WITH WARNINGS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/verify.py <export.csv>")
        sys.exit(2)
    sys.exit(0 if verify_export(sys.argv[1]) else 1)
