"""
Group Order Simulation Script

Opens a session, lets a crowd of participants order concurrently through
the shared link, checks the stats against what was sent, finalizes the
session and downloads the CSV export.

Run from project root (server must be running):
    python scripts/simulate.py --participants 8 --orders 40

Author: Khalil_Bannouri
Version: 1.0.0
"""

import asyncio
import sys
import os
import random
import time
import argparse
from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 40
TOTAL_PARTICIPANTS = 8
EXPORT_DIR = "data"

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
RESTAURANTS = ["Luigi's", "Burger Barn", "Green Bowl", "Taco Town"]


def pick_participants(count: int) -> list[str]:
    """Distinct participant names."""
    names = [f"{first} {chr(ord('A') + i % 26)}." for i, first in enumerate(FIRST_NAMES * 3)]
    return random.sample(names, min(count, len(names)))


def generate_order_payload(session_id: int, customer: str, menu: list[dict]) -> dict[str, Any]:
    """Order the way the ordering page does: total computed client side."""
    item = random.choice(menu)
    quantity = random.randint(1, 3)
    unit = Decimal(item["price"])
    return {
        "sessionId": session_id,
        "customerName": customer,
        "menuItemId": item["id"],
        "quantity": quantity,
        "unitPrice": f"{unit:.2f}",
        "totalPrice": f"{unit * quantity:.2f}",
    }


async def place_order(
    client: httpx.AsyncClient,
    order_num: int,
    payload: dict[str, Any],
) -> dict[str, Any]:
    """Send one order."""
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data.get("id"),
                "customer": data.get("customerName"),
                "total": Decimal(data.get("totalPrice")),
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except Exception as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(
    num_orders: int = TOTAL_ORDERS,
    num_participants: int = TOTAL_PARTICIPANTS,
) -> dict[str, Any]:
    """
    Run the group order simulation.

    Args:
        num_orders: Number of orders to place
        num_participants: Number of distinct participants
    """
    print("=" * 70)
    print("🍽️  GROUP ORDER SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"👥 Participants: {num_participants}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        menu = [m for m in (await client.get(f"{API_BASE_URL}/api/menu-items")).json() if m["isAvailable"]]
        if not menu:
            print("\n❌ No available menu items. Add some via POST /api/menu-items first.")
            return {"success": False}

        response = await client.post(
            f"{API_BASE_URL}/api/order-sessions",
            json={
                "name": f"Simulation {datetime.now().strftime('%Y-%m-%d %H%M%S')}",
                "restaurant": random.choice(RESTAURANTS),
            },
        )
        response.raise_for_status()
        session = response.json()
        print(f"\n🆕 Session #{session['id']} opened, link: {session['sessionLink']}")

        # Participants arrive through the shared link
        joined = await client.get(f"{API_BASE_URL}/api/order-sessions/link/{session['sessionLink']}")
        joined.raise_for_status()

        participants = pick_participants(num_participants)
        payloads = [
            generate_order_payload(session["id"], random.choice(participants), menu)
            for _ in range(num_orders)
        ]

        print("\n🚀 Firing orders...\n")
        start_time = time.time()
        results = await asyncio.gather(
            *[place_order(client, i + 1, p) for i, p in enumerate(payloads)]
        )
        total_time = round(time.time() - start_time, 2)

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]
        expected_amount = sum((r["total"] for r in successful), Decimal("0"))
        expected_participants = len({r["customer"] for r in successful})

        stats = (await client.get(f"{API_BASE_URL}/api/order-sessions/{session['id']}/stats")).json()

        finalized = (await client.put(f"{API_BASE_URL}/api/order-sessions/{session['id']}/finalize")).json()
        late = await place_order(client, num_orders + 1, generate_order_payload(session["id"], "Latecomer", menu))

        export = await client.get(f"{API_BASE_URL}/api/order-sessions/{session['id']}/export")
        os.makedirs(EXPORT_DIR, exist_ok=True)
        export_path = os.path.join(EXPORT_DIR, f"session-{session['id']}.csv")
        with open(export_path, "w", encoding="utf-8") as f:
            f.write(export.text)

    # Print results
    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")

    checks = {
        "order count": (stats["totalOrders"], len(successful)),
        "total amount": (stats["totalAmount"], f"{expected_amount:.2f}"),
        "participants": (stats["participantCount"], expected_participants),
    }
    print(f"\n🧮 Stats check:")
    for label, (actual, expected) in checks.items():
        mark = "✅" if actual == expected else "❌"
        print(f"   {mark} {label}: server={actual} expected={expected}")

    print(f"\n🔒 Finalized at: {finalized.get('finalizedAt')}")
    print(f"   {'✅' if not late['success'] else '❌'} Late order rejected: {not late['success']}")
    print(f"\n📄 Export saved to {export_path}")

    if failed:
        print(f"\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print(f"1. Run: python scripts/verify.py {export_path}")
    print(f"2. Open {API_BASE_URL}/api/order-sessions/{session['id']}/summary")
    print("=" * 70)

    return {
        "success": all(a == e for a, e in checks.values()) and not late["success"],
        "session_id": session["id"],
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "export_path": export_path,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Group Order Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--participants", type=int, default=TOTAL_PARTICIPANTS, help="Number of participants")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url
    outcome = asyncio.run(run_simulation(args.orders, args.participants))
    sys.exit(0 if outcome.get("success") else 1)
