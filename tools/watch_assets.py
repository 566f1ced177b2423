#!/usr/bin/env python3
"""
watch_assets.py - Re-export a tile set when its config or source PNGs change.

Usage:
  python tools/watch_assets.py tileset.toml
  python tools/watch_assets.py tileset.toml --once
  python tools/watch_assets.py tileset.toml --dry-run

Inputs are the config file plus tiles/*.png and terrains/*.png next to it.
Modification times of the last successful export are kept in
.tileset_cache.json beside the config, so --once is a no-op when nothing changed.
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from tilesetc import EXIT_OK, run

CACHE_NAME = ".tileset_cache.json"
SOURCE_DIRS = ("tiles", "terrains")


def file_mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return 0.0


def collect_inputs(config_path: Path) -> list[Path]:
    inputs = [config_path]
    for name in SOURCE_DIRS:
        inputs.extend(sorted((config_path.parent / name).glob("*.png")))
    return inputs


def load_cache(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}


def save_cache(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def snapshot(inputs: list[Path]) -> dict:
    return {str(p): file_mtime(p) for p in inputs}


def should_run(config_path: Path, cache: dict) -> bool:
    return cache.get("inputs") != snapshot(collect_inputs(config_path))


def is_source_event(config_path: Path, src_path: str) -> bool:
    path = Path(src_path).resolve()
    if path == config_path:
        return True
    return path.suffix == ".png" and path.parent.name in SOURCE_DIRS and path.parent.parent == config_path.parent


def export_if_changed(config_path: Path, dry_run: bool = False, verbose: bool = False, force: bool = False) -> bool:
    cache_path = config_path.parent / CACHE_NAME
    cache = load_cache(cache_path)
    if not force and not should_run(config_path, cache):
        return True

    print("TILESET EXPORT START")
    ok = run(str(config_path), dry_run=dry_run, verbose=verbose) == EXIT_OK
    if ok and not dry_run:
        cache["inputs"] = snapshot(collect_inputs(config_path))
        save_cache(cache_path, cache)
    print("TILESET EXPORT END")
    return ok


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("config", help="Tile set config (.toml)")
    ap.add_argument("--interval", type=float, default=0.5, help="Polling interval in seconds")
    ap.add_argument("--once", action="store_true", help="Run a single pass and exit")
    ap.add_argument("--dry-run", action="store_true", help="Build but do not write outputs")
    ap.add_argument("-v", "--verbose", action="store_true", help="List terrain combinations")
    args = ap.parse_args(argv)

    config_path = Path(args.config).resolve()
    if not config_path.is_file():
        print(f"{config_path}:1:1: error: Config not found", file=sys.stderr)
        return 1

    if args.once:
        return 0 if export_if_changed(config_path, args.dry_run, args.verbose) else 1

    class SourcesHandler(FileSystemEventHandler):
        def _changed(self, event):
            if event.is_directory or not is_source_event(config_path, event.src_path):
                return
            export_if_changed(config_path, args.dry_run, args.verbose)

        def on_modified(self, event):
            self._changed(event)

        def on_created(self, event):
            self._changed(event)

    observer = Observer()
    handler = SourcesHandler()
    observer.schedule(handler, str(config_path.parent), recursive=False)
    for name in SOURCE_DIRS:
        source_dir = config_path.parent / name
        if source_dir.is_dir():
            observer.schedule(handler, str(source_dir), recursive=False)
    observer.start()

    export_if_changed(config_path, args.dry_run, args.verbose, force=True)

    try:
        while True:
            time.sleep(args.interval)
    except KeyboardInterrupt:
        observer.stop()
    observer.join()
    return 0


if __name__ == "__main__":
    sys.exit(main())
