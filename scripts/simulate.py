"""
Dinner Rush Simulation Script

Fires many concurrent table orders at a running server to check that
checkout, invoice numbering and the owner board hold up under load.
Run from project root: python scripts/simulate.py

Each simulated table uses its own HTTP client so that every diner gets
a separate session cookie (and therefore a separate cart).
"""

import argparse
import asyncio
import random
import sys
import time
import uuid
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8000"
TOTAL_ORDERS = 30
TABLE_COUNT = 10

FIRST_NAMES = ["Aarav", "Diya", "Kabir", "Meera", "Rohan", "Ananya", "Vihaan", "Isha", "Arjun", "Sara"]
MENU_ITEMS = [
    {"name": "Paneer Tikka", "price": 220, "category": "Starters"},
    {"name": "Veg Spring Roll", "price": 160, "category": "Starters"},
    {"name": "Butter Chicken", "price": 340, "category": "Main Course"},
    {"name": "Dal Makhani", "price": 240, "category": "Main Course"},
    {"name": "Garlic Naan", "price": 60, "category": "Breads"},
    {"name": "Jeera Rice", "price": 150, "category": "Rice"},
    {"name": "Gulab Jamun", "price": 90, "category": "Desserts"},
    {"name": "Masala Chai", "price": 40, "category": "Beverages"},
]


def random_phone() -> str:
    return f"9{random.randint(100000000, 999999999)}"


# =============================================================================
# RESTAURANT SETUP
# =============================================================================

async def setup_restaurant(client: httpx.AsyncClient) -> dict[str, Any]:
    """Sign up a throwaway owner and create a menu. Returns token, id and item ids."""
    email = f"rush-{uuid.uuid4().hex[:8]}@example.com"
    response = await client.post(
        f"{API_BASE_URL}/api/auth/signup",
        json={
            "email": email,
            "password": "simulate123",
            "restaurant_name": "Rush Hour Dhaba",
            "phone": random_phone(),
        },
    )
    response.raise_for_status()
    auth = response.json()
    headers = {"Authorization": f"Bearer {auth['access_token']}"}

    item_ids = []
    for item in MENU_ITEMS:
        created = await client.post(f"{API_BASE_URL}/api/owner/menu", json=item, headers=headers)
        created.raise_for_status()
        item_ids.append(created.json()["id"])

    return {"owner_id": auth["owner"]["id"], "headers": headers, "item_ids": item_ids}


# =============================================================================
# TABLE SIMULATION
# =============================================================================

async def simulate_table(restaurant: dict[str, Any], order_num: int) -> dict[str, Any]:
    """Scan, fill a cart and check out as one diner."""
    table = random.randint(1, TABLE_COUNT)
    start_time = time.time()

    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=30.0) as client:
        try:
            response = await client.get(
                "/customer/table",
                params={"restaurant": restaurant["owner_id"], "table": table},
            )
            response.raise_for_status()

            for item_id in random.sample(restaurant["item_ids"], random.randint(1, 4)):
                response = await client.post(
                    "/api/cart/items",
                    json={"menu_item_id": item_id, "quantity": random.randint(1, 3)},
                )
                response.raise_for_status()

            response = await client.post(
                "/api/checkout",
                json={
                    "customer_name": random.choice(FIRST_NAMES),
                    "customer_phone": random_phone(),
                    "payment_method": random.choice(["cash", "online"]),
                },
            )
            elapsed = round(time.time() - start_time, 3)

            if response.status_code == 201:
                order = response.json()["order"]
                return {
                    "order_num": order_num,
                    "success": True,
                    "order_id": order["id"],
                    "invoice": order["invoice_number"],
                    "total": order["total"],
                    "table": table,
                    "time": elapsed,
                }
            return {
                "order_num": order_num,
                "success": False,
                "error": response.text[:100],
                "time": elapsed,
            }
        except httpx.HTTPError as e:
            return {
                "order_num": order_num,
                "success": False,
                "error": str(e)[:100],
                "time": round(time.time() - start_time, 3),
            }


async def replay_offline_orders(restaurant: dict[str, Any], count: int) -> int:
    """Send each offline order twice; the second copy must not create anything."""
    duplicates_created = 0
    async with httpx.AsyncClient(base_url=API_BASE_URL, timeout=30.0) as client:
        for _ in range(count):
            payload = {
                "client_reference": f"offline-{uuid.uuid4().hex}",
                "restaurant_id": restaurant["owner_id"],
                "table_number": random.randint(1, TABLE_COUNT),
                "items": [
                    {"menu_item_id": random.choice(restaurant["item_ids"]), "quantity": 1}
                ],
            }
            first, second = await asyncio.gather(
                client.post("/api/orders", json=payload),
                client.post("/api/orders", json=payload),
            )
            created = [r for r in (first, second) if r.status_code == 201]
            if len(created) != 1:
                duplicates_created += 1
    return duplicates_created


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, offline: int = 5) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 DINNER RUSH SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient(timeout=30.0) as client:
        restaurant = await setup_restaurant(client)
    print(f"\n🍽️  Restaurant ready: {restaurant['owner_id']} ({len(restaurant['item_ids'])} items)")

    start_time = time.time()
    print("\n🚀 Seating diners...\n")
    results = await asyncio.gather(
        *[simulate_table(restaurant, i + 1) for i in range(num_orders)]
    )
    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    invoices = [r["invoice"] for r in successful]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if len(set(invoices)) != len(invoices):
        print("⚠️  Duplicate invoice numbers detected!")
    else:
        print("✅ Invoice numbers are unique")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r["total"] for r in successful)
        print("\n📈 Performance Metrics:")
        print(f"   Average Checkout: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Order Value (incl. GST): ₹{total_revenue:.2f}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    if offline:
        print(f"\n📴 Replaying {offline} offline orders twice each...")
        bad = await replay_offline_orders(restaurant, offline)
        if bad:
            print(f"   ⚠️ {bad} offline orders were not created exactly once")
        else:
            print("   ✅ Every offline order was created exactly once")

    async with httpx.AsyncClient(timeout=30.0) as client:
        board = await client.get(
            f"{API_BASE_URL}/api/owner/orders",
            params={"limit": 500},
            headers=restaurant["headers"],
        )
    if board.status_code == 200:
        print(f"\n📋 Owner board shows {board.json()['total']} orders: {board.json()['counts']}")

    print("\n" + "=" * 70)
    print("🔍 NEXT STEPS")
    print("=" * 70)
    print("1. Complete a few orders from the owner board")
    print("2. Check the Celery terminal for export tasks")
    print("3. Run: python scripts/verify.py")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


async def preflight() -> bool:
    """Make sure the server answers before the rush starts."""
    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"❌ Server unreachable: {e}")
            return False
    data = response.json()
    print(f"✅ Status: {data.get('status')}")
    print(f"   Database: {data.get('database')}")
    print(f"   Redis: {data.get('redis')}")
    return response.status_code == 200


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dinner Rush Simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of diners")
    parser.add_argument("--offline", type=int, default=5, help="Offline orders to replay")
    parser.add_argument("--url", default=API_BASE_URL, help="Server base URL")
    args = parser.parse_args()
    API_BASE_URL = args.url.rstrip("/")

    if not asyncio.run(preflight()):
        sys.exit(1)

    asyncio.run(run_simulation(num_orders=args.orders, offline=args.offline))
