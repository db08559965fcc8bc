#!/usr/bin/env python3
"""Debug run: load config -> open store -> print menu costs and dashboard -> ask the AI."""

import asyncio
import os
import sys

from dotenv import load_dotenv

load_dotenv()

from restaurant_os import AppState, RestaurantApp, load_config  # noqa: E402
from restaurant_os.menu import can_analyze  # noqa: E402


async def main():
    # ── Step 0: configuration ──
    config_path = os.getenv("RESTAURANT_OS_CONFIG", "").strip('"') or None
    config = load_config(config_path)
    currency = config.shop.currency

    print("=" * 60)
    print("  Restaurant OS debug run")
    print("=" * 60)
    print(f"[DEBUG] Config: {config_path or '(defaults)'}")
    print(f"[DEBUG] Store backend: {config.store.backend}")
    print(f"[DEBUG] Assist backend: {config.assist.backend} "
          f"(key {'set' if config.assist.api_key else 'missing'})")
    print()

    # ── Step 1: connect ──
    print("── Step 1: connect to store ──")
    app = RestaurantApp(config)
    app.start()
    try:
        await app.wait_settled(timeout=30)
    except asyncio.TimeoutError:
        print("[ERROR] store did not deliver all collections within 30s")
        app.stop()
        sys.exit(1)
    if app.state is not AppState.READY:
        print(f"[ERROR] state={app.state.value}: {app.error_message}")
        app.stop()
        sys.exit(1)
    ctx = app.context
    print(f"[OK] {len(ctx.ingredients)} ingredients, "
          f"{len(ctx.menu_items)} menu items, {len(ctx.sales)} sales")
    print()

    # ── Step 2: menu costs ──
    print("── Step 2: menu costs ──")
    for item in ctx.menu_items:
        print(f"  {item.name:<24} price {item.price:>8.2f} {currency}  "
              f"cost {item.total_cost:>8.2f}  margin {item.margin_pct:5.1f}%")
    drift = ctx.sync_menu_costs()
    if drift:
        ok = sum(1 for r in drift if r.ok)
        print(f"[DEBUG] Re-synced {ok}/{len(drift)} stale menu costs")
    print()

    # ── Step 3: dashboard ──
    print("── Step 3: dashboard ──")
    dash = ctx.dashboard()
    for name, summary in (("today", dash.daily), ("month", dash.monthly),
                          ("lifetime", dash.lifetime)):
        print(f"  {name:<9} revenue {summary.revenue:>10.2f}  "
              f"profit {summary.profit:>10.2f}  orders {summary.count}")
    print("  last 7 days:")
    for p in dash.trend:
        print(f"    {p.label:<8} {p.revenue:>10.2f} / {p.profit:>10.2f}")
    print()

    # ── Step 4: AI assist ──
    print("── Step 4: AI profitability check ──")
    target = next((m for m in ctx.menu_items if can_analyze(m)), None)
    if target is None:
        print("[SKIP] no menu item with both price and cost")
    else:
        print(f"[DEBUG] Analyzing {target.name!r}...")
        print(await app.assistant.analyze_profitability(target))

    app.stop()


if __name__ == "__main__":
    asyncio.run(main())
