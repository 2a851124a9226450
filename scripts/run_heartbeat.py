#!/usr/bin/env python3
"""
Heartbeat runner - invokes the ops heartbeat once, or on a fixed interval until interrupted.
A failed cycle is reported and the loop continues with the next one.
"""

import argparse
import sys
import time

import dotenv
dotenv.load_dotenv()

from mission_control.core.config import get_heartbeat_interval, get_row_store, validate_ops_config
from mission_control.ops.heartbeat import run_ops_heartbeat


def run_cycle() -> bool:
    """Run one heartbeat and print a one-line summary. Returns False if the cycle failed."""
    try:
        summary = run_ops_heartbeat(get_row_store())
    except Exception as e:
        # Error isolation - report and keep the loop alive
        print(f"❌ Heartbeat failed: {e}")
        return False

    if not summary.ok:
        print("⚠️  Row store not configured; heartbeat skipped")
        return False

    if not summary.kernel_enabled:
        print("⏸️  Ops kernel disabled by policy")
        return True

    statuses = ", ".join(f"{t.trigger}={t.status}" for t in summary.triggers)
    print(
        f"✓ Heartbeat: recovered={summary.stale_recovered} "
        f"processed={summary.processed.succeeded}/{summary.processed.attempted} "
        f"queued={summary.queue_depth.queued} running={summary.queue_depth.running} "
        f"[{statuses}]"
    )
    return True


def main():
    parser = argparse.ArgumentParser(description='Run the Mission Control ops heartbeat')
    parser.add_argument('--once', action='store_true', help='Run a single heartbeat and exit')
    parser.add_argument('--interval', type=int, default=None,
                        help='Seconds between heartbeats (default: HEARTBEAT_INTERVAL_SEC)')
    args = parser.parse_args()

    issues = validate_ops_config()
    if issues:
        print("⚠️  Configuration issues:")
        for issue in issues:
            print(f"   - {issue}")

    if args.once:
        return 0 if run_cycle() else 1

    interval = args.interval or get_heartbeat_interval()
    if interval < 1:
        print(f"❌ Interval must be >= 1 second: {interval}")
        return 1

    print(f"🚀 Starting heartbeat loop (every {interval} seconds)")
    print("💡 Press Ctrl+C to stop")

    try:
        while True:
            started = time.monotonic()
            run_cycle()
            elapsed = time.monotonic() - started
            time.sleep(max(0.0, interval - elapsed))
    except KeyboardInterrupt:
        print("\n👋 Shutting down gracefully...")

    return 0


if __name__ == "__main__":
    sys.exit(main())
