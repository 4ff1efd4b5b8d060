"""
scripts/automation_scheduler.py

Calls the scheduler endpoint so automations run without a browser open.

  python scripts/automation_scheduler.py              # one tick, exit 0/1 (for cron)
  python scripts/automation_scheduler.py --continuous # every 30s until Ctrl+C
"""

import sys
import os
import time
import logging
import argparse

import requests

# Ensure project root is in path
sys.path.append(os.getcwd())

from app.core.config import settings

logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(message)s")
logger = logging.getLogger("automation_scheduler")

SCHEDULER_PATH = "/api/automations/scheduler"
DEFAULT_INTERVAL_SECONDS = 30


def scheduler_url(base_url: str) -> str:
    return base_url.rstrip("/") + SCHEDULER_PATH


def log_results(result: dict):
    for item in result.get("results") or []:
        name = item.get("name")
        status = item.get("status")
        if status == "SUCCESS":
            logger.info(f'✅ "{name}" - next execution: {item.get("nextExecution")}')
        elif status == "FAILED":
            logger.error(f'❌ "{name}" - error: {item.get("error")}')
        elif status == "CRITICAL_ERROR":
            logger.error(f'💥 "{name}" - critical error: {item.get("error")}')
        else:
            logger.warning(f'⚠️ "{name}" - unknown status: {status}')


def run_scheduler(url: str, timeout: int = None) -> bool:
    """One tick through HTTP. Returns True when the endpoint answered 2xx."""
    timeout = timeout or settings.SCHEDULER_REQUEST_TIMEOUT
    try:
        logger.info("ℹ️ Checking automations...")
        response = requests.get(
            url,
            headers={"Content-Type": "application/json", "User-Agent": "Automation-Scheduler-Script"},
            timeout=timeout,
        )
        if not response.ok:
            logger.error(f"❌ HTTP {response.status_code}: {response.reason}")
            return False

        result = response.json()
        executed = result.get("executedCount", 0)
        if executed > 0:
            logger.info(f"✅ {executed} automation(s) executed")
            log_results(result)
        else:
            logger.info("ℹ️ No automation due right now")

        logger.info("✅ Check finished")
        return True

    except requests.exceptions.ConnectionError as e:
        logger.error(f"❌ Could not reach {url}, is the server running? ({e})")
        return False
    except requests.exceptions.Timeout:
        logger.error(f"⏱️ Request timed out after {timeout}s")
        return False
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.error(f"❌ Scheduler call failed: {e}")
        return False


def run_once(url: str) -> int:
    return 0 if run_scheduler(url) else 1


def run_continuous(url: str, interval: int = DEFAULT_INTERVAL_SECONDS, sleep=time.sleep) -> int:
    logger.info(f"ℹ️ Continuous mode - checking every {interval} seconds")
    logger.warning("⚠️ Press Ctrl+C to stop")
    try:
        while True:
            run_scheduler(url)
            logger.info(f"ℹ️ Waiting {interval} seconds before the next check...")
            sleep(interval)
    except KeyboardInterrupt:
        logger.info("ℹ️ Stopping scheduler")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Trigger automation scheduler ticks.")
    parser.add_argument("-c", "--continuous", action="store_true", help="keep polling until interrupted")
    parser.add_argument("--interval", type=int, default=DEFAULT_INTERVAL_SECONDS, help="seconds between ticks")
    parser.add_argument("--url", default=settings.APP_URL, help="base URL of the API")
    args = parser.parse_args(argv)

    url = scheduler_url(args.url)
    logger.info("🤖 Automation Scheduler")
    logger.info(f"📍 Target: {url}")

    if args.continuous:
        return run_continuous(url, args.interval)
    return run_once(url)


if __name__ == "__main__":
    sys.exit(main())
