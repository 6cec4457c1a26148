"""
Command Burst Simulation Script

Fires a burst of concurrent staff commands at the command service to
check that every command gets an answer and that concurrent status
changes on the same order do not overwrite each other.
Run from project root: python scripts/simulate.py

Version: 4.0.0
"""

import asyncio
import sys
import os
import random
import time
import argparse
from datetime import datetime
from typing import Any

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
API_KEY = "dev-admin-key"
TOTAL_COMMANDS = 50

# Spoken the way staff actually say them, mishearings included
QUERY_COMMANDS = [
    "how many pending orders",
    "how many depending orders",
    "show me done orders",
    "list out cancelled orders",
    "show popular items",
    "what's on the menu",
    "what can you do",
]
STATUS_TEMPLATES = [
    "mark order {n} as done",
    "mark other {n} as ready",
    "cancel order {n}",
    "set order {n} to pending",
    "finish all the {n}",
]


def generate_command(order_numbers: list[int]) -> str:
    """Pick a random query or status command."""
    if order_numbers and random.random() < 0.5:
        return random.choice(STATUS_TEMPLATES).format(n=random.choice(order_numbers))
    return random.choice(QUERY_COMMANDS)


async def send_command(
    client: httpx.AsyncClient,
    command_num: int,
    command: str
) -> dict[str, Any]:
    """Send one command and time it."""
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/ai/process-command",
            json={"command": command},
            timeout=60.0
        )
        elapsed = round(time.time() - start_time, 3)
        data = response.json()

        if response.status_code == 200:
            return {
                "command_num": command_num,
                "command": command,
                "success": True,
                "executed": data.get("executionResult", {}).get("success", False),
                "intent": data.get("analysis", {}).get("intent"),
                "source": data.get("analysis", {}).get("source"),
                "response": data.get("response", ""),
                "time": elapsed,
            }
        return {
            "command_num": command_num,
            "command": command,
            "success": False,
            "error": str(data.get("error", response.text))[:100],
            "time": elapsed,
        }
    except (httpx.HTTPError, ValueError) as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "command_num": command_num,
            "command": command,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


async def fetch_order_numbers(client: httpx.AsyncClient) -> list[int]:
    response = await client.get(f"{API_BASE_URL}/api/orders")
    response.raise_for_status()
    return [o["order_number"] for o in response.json().get("orders", [])]


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_commands: int = TOTAL_COMMANDS) -> dict[str, Any]:
    """
    Run the command burst.

    Args:
        num_commands: Number of commands to fire concurrently
    """
    print("=" * 70)
    print("🔥 COMMAND BURST - HIGH CONCURRENCY TEST")
    print("=" * 70)
    print(f"📋 Total Commands: {num_commands}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient(headers={"Authorization": f"Bearer {API_KEY}"}) as client:
        order_numbers = await fetch_order_numbers(client)

        print("\n🚀 Firing commands...\n")
        tasks = [
            send_command(client, i + 1, generate_command(order_numbers))
            for i in range(num_commands)
        ]
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)

    answered = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    executed = [r for r in answered if r["executed"]]
    model_answers = [r for r in answered if r.get("source") == "model"]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Answered: {len(answered)}/{num_commands}")
    print(f"⚙️  Executed successfully: {len(executed)}/{len(answered)}")
    print(f"🤖 Analyzed by model: {len(model_answers)}/{len(answered)}")
    print(f"❌ Failed Requests: {len(failed)}/{num_commands}")
    print(f"⏱️  Total Time: {total_time}s")

    if answered:
        avg_time = round(sum(r["time"] for r in answered) / len(answered), 3)
        print(f"\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in answered)}s")
        print(f"   Slowest: {max(r['time'] for r in answered)}s")

        intents: dict[str, int] = {}
        for r in answered:
            intents[r["intent"]] = intents.get(r["intent"], 0) + 1
        print(f"\n🧭 Intents: {intents}")

    if failed:
        print(f"\n⚠️  Failed Command Details (showing first 5):")
        for f in failed[:5]:
            print(f"   #{f['command_num']} {f['command']!r}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print("1. Check Celery terminal - all log tasks should complete")
    print("2. Run: python scripts/verify.py")
    print("3. Open data/command_log.xlsx to review transcripts and replies")
    print("=" * 70)

    return {
        "total": num_commands,
        "answered": len(answered),
        "failed": len(failed),
        "total_time": total_time,
        "results": results
    }


async def test_single_flows() -> bool:
    """Test individual flows before the burst."""
    print("\n" + "=" * 70)
    print("🧪 TESTING INDIVIDUAL FLOWS")
    print("=" * 70)

    async with httpx.AsyncClient(headers={"Authorization": f"Bearer {API_KEY}"}) as client:
        print("\n1️⃣ Health Check...")
        response = await client.get(f"{API_BASE_URL}/health")
        if response.status_code == 200:
            data = response.json()
            print(f"   ✅ Status: {data.get('status')}")
            print(f"   Data Store: {data.get('data_store')}")
            print(f"   Language Model: {data.get('language_model')}")
            print(f"   Redis: {data.get('redis')}")
        else:
            print(f"   ❌ Failed: {response.text}")
            return False

        print("\n2️⃣ Language Model Status...")
        response = await client.get(f"{API_BASE_URL}/api/ai/status")
        data = response.json()
        print(f"   Status: {data.get('status')} (provider: {data.get('provider')})")

        print("\n3️⃣ Single Query Command...")
        result = await send_command(client, 0, "how many pending orders")
        if result["success"]:
            print(f"   ✅ {result['response']}")
        else:
            print(f"   ❌ Failed: {result['error']}")
            return False

    print("\n" + "=" * 70)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Command Burst Simulation Script")
    parser.add_argument("--commands", type=int, default=TOTAL_COMMANDS, help="Number of commands")
    parser.add_argument("--url", default=API_BASE_URL, help="Command service URL")
    parser.add_argument("--token", default=API_KEY, help="Admin API key")
    parser.add_argument("--skip-tests", action="store_true", help="Skip individual tests")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")
    API_KEY = args.token

    if not args.skip_tests:
        success = asyncio.run(test_single_flows())
        if not success:
            print("\n❌ Pre-flight tests failed. Fix issues before running simulation.")
            sys.exit(1)

        print("\n✅ Pre-flight tests passed!")
        input("\nPress Enter to start the command burst...")

    asyncio.run(run_simulation(num_commands=args.commands))
