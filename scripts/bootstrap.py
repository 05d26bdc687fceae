#!/usr/bin/env python3
"""
Bootstrap Script for the pump.fun Sniper
========================================

Run this once after cloning. Installs the package, the Chromium build that
Playwright drives, and creates the data/ and logs/ directories.

Usage:
    python scripts/bootstrap.py
"""

import subprocess
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent


def run_command(cmd, description):
    """Run a command and report whether it succeeded."""
    print(f"\n{'=' * 50}")
    print(description)
    print(f"{'=' * 50}")
    print(f"Running: {' '.join(cmd)}\n")

    result = subprocess.run(cmd, cwd=project_root)
    if result.returncode != 0:
        print(f"Warning: {description} may have had issues")
        return False
    return True


def check_price_api():
    """Fetch one known coin to confirm the pump.fun API is reachable."""
    import requests

    sys.path.insert(0, str(project_root))
    from sniper.config import config

    print(f"\n{'=' * 50}")
    print("Testing pump.fun API connection...")
    print(f"{'=' * 50}")

    try:
        response = requests.get(f"{config.price_api_url}/coins", params={"limit": 1}, timeout=10)
    except requests.exceptions.RequestException as e:
        print(f"API test failed: {e}")
        print("   (This is OK if you're behind a firewall)")
        return

    if response.status_code == 200:
        print("API connected")
    else:
        print(f"API returned status {response.status_code}")


def main():
    if sys.version_info < (3, 9):
        print("Python 3.9+ required. Please upgrade Python.")
        sys.exit(1)

    print(f"Python {sys.version_info.major}.{sys.version_info.minor} detected")

    run_command(
        [sys.executable, "-m", "pip", "install", "-e", ".[test]"],
        "Installing the sniper package",
    )
    run_command(
        [sys.executable, "-m", "playwright", "install", "chromium"],
        "Installing Chromium for Playwright",
    )

    (project_root / "data").mkdir(exist_ok=True)
    (project_root / "logs").mkdir(exist_ok=True)
    print("\nCreated data/ and logs/ directories")

    check_price_api()

    print(f"""
    {'=' * 50}
    SETUP COMPLETE
    {'=' * 50}

    Next steps:

    1. Copy .env.example to .env and set TRADE_ENDPOINT
       (and TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID for alerts)

    2. Test with dry run:
       python scripts/run_sniper.py --dry-run --once

    3. Run:
       python scripts/run_sniper.py
    """)


if __name__ == "__main__":
    main()
