"""CLI entry point for TileDeck."""

import asyncio
import logging
import sys
from pathlib import Path

import yaml

from . import PACKAGE_NAME
from .core.config import DashboardConfig
from .core.engine import TileEngine
from .core.errors import ConfigurationError
from .core.loader import load_dashboard_config, load_engine_settings
from .core.models import FetchResult, StatusSnapshot, TileStatus
from .core.status import resolve_status
from .core.utils import format_time_ago, format_timestamp

DEFAULT_DASHBOARD = Path("config/dashboard.yaml")
DEFAULT_SETTINGS = Path("config/engine.yaml")

STATUS_ICONS = {
    TileStatus.LOADING: "⏳",
    TileStatus.SUCCESS: "✅",
    TileStatus.STALE: "⚠️ ",
    TileStatus.ERROR: "❌",
}


def print_usage():
    print(f"Usage: python -m {PACKAGE_NAME} <command> [dashboard.yaml]")
    print("\nCommands:")
    print("  fetch    - Mount every tile once (fetching stale ones) and print statuses")
    print("  watch    - Keep tiles refreshing until interrupted")
    print("  status   - Print cached status of every tile without fetching")
    print("  logs     - Print recent API faults")
    print("  reset    - Clear all cached tile data and logs")


def print_status(tile_id: str, snapshot: StatusSnapshot, engine: TileEngine):
    icon = STATUS_ICONS[snapshot.status]
    line = f"{icon} {tile_id}: {snapshot.status.value}"
    if snapshot.display_timestamp is not None:
        line += f" ({format_time_ago(snapshot.display_timestamp, engine.clock())})"
    print(line)

    if snapshot.status == TileStatus.STALE:
        entry = engine.cache.read(tile_id)
        if entry is not None:
            print(f"   last attempt {format_time_ago(entry.last_request_at, engine.clock())}, "
                  f"last success {format_time_ago(entry.last_success_at, engine.clock())}")


async def fetch_all(engine: TileEngine, dashboard: DashboardConfig):
    print(f"📡 Fetching {len(dashboard.tiles)} tile(s) for '{dashboard.name}'\n")
    schedulers = await engine.mount_dashboard(dashboard)
    for scheduler in schedulers:
        print_status(scheduler.key, scheduler.snapshot(), engine)
    engine.unmount_all()


async def watch(engine: TileEngine, dashboard: DashboardConfig):
    print(f"👀 Watching '{dashboard.name}' (Ctrl+C to stop)\n")
    await engine.mount_dashboard(dashboard, on_change=lambda key, snapshot: print_status(key, snapshot, engine))
    await asyncio.Event().wait()


def show_status(engine: TileEngine, dashboard: DashboardConfig):
    for tile in dashboard.tiles:
        entry = engine.cache.read(tile.id)
        latest = FetchResult.from_entry(entry) if entry is not None else None
        print_status(tile.id, resolve_status(False, latest, entry), engine)


def show_logs(engine: TileEngine):
    entries = engine.fault_log.entries()
    if not entries:
        print("✅ No API faults in the retention window")
        return
    for entry in entries:
        print(f"❌ [{format_timestamp(entry.timestamp)}] {entry.source}: {entry.reason} "
              f"({format_time_ago(entry.timestamp, engine.clock())})")
        for key, value in entry.details.items():
            print(f"   {key}: {value}")


def main():
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print_usage()
        sys.exit(1)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    command = sys.argv[1]
    dashboard_file = Path(sys.argv[2]) if len(sys.argv) > 2 else DEFAULT_DASHBOARD

    try:
        engine = TileEngine(settings=load_engine_settings(DEFAULT_SETTINGS))
    except ValueError as e:
        print(f"❌ Invalid engine settings: {e}")
        sys.exit(1)

    if command == "logs":
        show_logs(engine)
        return
    if command == "reset":
        engine.reset(clear_logs=True)
        print("🧹 Cleared cached tile data and logs")
        return
    if command not in ("fetch", "watch", "status"):
        print(f"Unknown command: {command}")
        sys.exit(1)

    try:
        dashboard = load_dashboard_config(dashboard_file)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"❌ Failed to load {dashboard_file}: {e}")
        sys.exit(1)

    try:
        if command == "status":
            show_status(engine, dashboard)
        elif command == "fetch":
            asyncio.run(fetch_all(engine, dashboard))
        else:
            asyncio.run(watch(engine, dashboard))
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n👋 Stopped")
    finally:
        engine.close()


if __name__ == "__main__":
    main()
