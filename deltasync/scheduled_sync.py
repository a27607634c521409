"""
Scheduled synchronization entry point.

Records a file of object changes and reconciles them with the remote
authority in one run:
- Diffs each before/after pair into a pending patch
- Sends pending patches in batches with retry
- Logs and prints synchronization statistics

Designed to be run on a schedule (e.g., via cron or a CI job).

Usage:
    deltasync-sync CHANGES_FILE [--config CONFIG_PATH]

CHANGES_FILE is a JSON list of {"objectId": ..., "before": ..., "after": ...}.
"""

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog

from deltasync.sync.exceptions import SyncError, TransportFailureError
from deltasync.sync.sync_coordinator import SyncCoordinator
from deltasync.sync.transport import HttpTransport, SyncTransport
from deltasync.utils.config_loader import ConfigLoader, ConfigurationError
from deltasync.utils.logging_config import configure_logging_from_config

log = structlog.stdlib.get_logger()


def load_changes(changes_path: str) -> list[dict[str, Any]]:
    """
    Read recorded changes from a JSON file.

    Raises:
        ValueError: If the file is not a list of objects with an objectId
    """
    data = json.loads(Path(changes_path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"Changes file must contain a JSON list: {changes_path}")

    for entry in data:
        if not isinstance(entry, dict) or not entry.get("objectId"):
            raise ValueError(f"Every change needs an objectId: {entry!r}")

    return data


async def run_sync(
    changes: list[dict[str, Any]],
    coordinator: SyncCoordinator,
) -> dict[str, Any]:
    """Record every change and run one reconciliation attempt."""
    for entry in changes:
        coordinator.record_change(entry["objectId"], entry.get("before"), entry.get("after"))

    async with coordinator:
        result = await coordinator.sync()
        pending = len(coordinator.get_pending_changes())
        unresolved = len(coordinator.get_conflicts())

    return {
        **result.model_dump(),
        "recorded": len(changes),
        "pending_after_sync": pending,
        "unresolved_conflicts": unresolved,
    }


def perform_sync(
    changes_path: str,
    config_path: str | None = None,
    transport: SyncTransport | None = None,
) -> dict[str, Any]:
    """
    Perform one synchronization run.

    Args:
        changes_path: Path to the JSON changes file
        config_path: Optional path to configuration file
        transport: Optional transport; defaults to HTTP against sync.endpoint

    Returns:
        Dictionary with sync statistics
    """
    start_time = datetime.now()
    log.info("scheduled_sync_started", changes_path=changes_path, timestamp=start_time.isoformat())

    try:
        config = ConfigLoader().load_config(config_path)
        configure_logging_from_config(config.logging)

        changes = load_changes(changes_path)

        if transport is None:
            transport = HttpTransport(
                config.sync.endpoint, timeout=config.sync.request_timeout
            )

        coordinator = SyncCoordinator(config.sync, transport)
        stats = asyncio.run(run_sync(changes, coordinator))

        duration = (datetime.now() - start_time).total_seconds()
        stats.update(duration_seconds=duration)

        log.info("scheduled_sync_completed", **stats)
        return stats

    except (ConfigurationError, SyncError, ValueError, OSError) as e:
        duration = (datetime.now() - start_time).total_seconds()

        log.error("scheduled_sync_failed", error=str(e), duration_seconds=duration)

        failure: dict[str, Any] = {}
        if isinstance(e, TransportFailureError):
            failure.update(e.result.model_dump())

        failure.update(success=False, error=str(e), duration_seconds=duration)
        return failure


def main() -> None:
    """Main entry point for scheduled sync."""
    parser = argparse.ArgumentParser(description="Reconcile recorded changes with the remote")
    parser.add_argument("changes", type=str, help="JSON file of recorded changes")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None,
    )

    args = parser.parse_args()

    stats = perform_sync(changes_path=args.changes, config_path=args.config)

    print("\n" + "=" * 60)
    print("SYNCHRONIZATION SUMMARY")
    print("=" * 60)

    if stats.get("success"):
        print("Status: ✓ SUCCESS")
        print(f"Recorded: {stats.get('recorded', 0)}")
        print(f"Synced: {stats.get('synced', 0)}")
        print(f"Conflicts: {stats.get('conflicts', 0)}")
        print(f"Bytes Transferred: {stats.get('bytes_transferred', 0)}")
        print(f"Still Pending: {stats.get('pending_after_sync', 0)}")
    else:
        print("Status: ✗ FAILED")
        print(f"Error: {stats.get('error', 'Unknown error')}")

    print(f"Duration: {stats.get('duration_seconds', 0):.2f} seconds")
    print("=" * 60)

    sys.exit(0 if stats.get("success") else 1)


if __name__ == "__main__":
    main()
