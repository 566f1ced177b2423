#!/usr/bin/env python3
"""
tilesetc.py - Export a hex tile set (sheet PNG + TileSet .tres) for Godot.

Reads the TOML config, the existing TileSet resource (which must already have
a texture and an atlas source, created once in the Godot editor), the tile and
terrain PNGs next to the config, then rewrites:
  - the texture PNG the resource points at
  - the .tres itself (uid, texture and atlas ids preserved)

Usage:
  python tools/tilesetc.py tileset.toml
  python tools/tilesetc.py tileset.toml --dry-run -v

Exit codes:
  0 ok, 1 I/O error, 2 usage, 3 config error, 4 .tres syntax error,
  5 unexpected .tres content, 6 image error
"""

from __future__ import annotations

import argparse
import io
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple

from PIL import Image

from terrain_gen import TerrainTile, load_terrain_tiles
from tile_loader import ImageError, StaticTile, load_tiles
from tileset_config import Config, ConfigError, godot_path_to_absolute, load_config
from tres_lexer import TresParseError
from tres_parser import parse_tres
from tres_tileset import Tile, TileSetResource, TresSchemaError
from tres_values import Vector2i

EXIT_OK = 0
EXIT_IO = 1
EXIT_USAGE = 2
EXIT_CONFIG = 3
EXIT_PARSE = 4
EXIT_SCHEMA = 5
EXIT_IMAGE = 6


@dataclass
class ExportResult:
    resource: TileSetResource
    terrain_sets: List[List[str]]
    resource_path: Path
    texture_path: Path
    png_data: bytes
    sheet_size: int
    tile_count: int


def sheet_size_for(tile_size: Tuple[int, int], positions: Sequence[Tuple[int, int]], total: int) -> int:
    """Side of the smallest square sheet covering every position with room for `total` tiles."""
    tile_w, tile_h = tile_size
    size = 0
    for x, y in positions:
        size = max(size, (x + 1) * tile_w, (y + 1) * tile_h)
    while (size // tile_w) * (size // tile_h) < total:
        size += max(tile_w, tile_h)
    return size


def layout_tile_sheet(
    tiles: Sequence[StaticTile], terrain_tiles: Sequence[TerrainTile], tile_size: Tuple[int, int]
) -> Tuple[Image.Image, List[Tile]]:
    tile_w, tile_h = tile_size
    size = sheet_size_for(tile_size, [t.config.position for t in tiles], len(tiles) + len(terrain_tiles))
    sheet = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    layout: List[Tile] = []

    taken = set()
    for tile in tiles:
        x, y = tile.config.position
        sheet.paste(tile.image, (x * tile_w, y * tile_h))
        taken.add((x, y))
        layout.append(Tile(position=Vector2i(x, y)))

    free = ((x, y) for y in range(size // tile_h) for x in range(size // tile_w) if (x, y) not in taken)
    for (x, y), tile in zip(free, terrain_tiles):
        sheet.paste(tile.image, (x * tile_w, y * tile_h))
        layout.append(
            Tile(
                position=Vector2i(x, y),
                terrain_set=tile.terrain.terrain_set,
                terrain=tile.terrain.terrain,
                terrains_peering_bit=tile.terrains_peering_bit,
            )
        )

    return sheet, layout


def load_resource(path: Path) -> TileSetResource:
    tres = parse_tres(str(path))
    try:
        return TileSetResource.from_tres(tres)
    except TresSchemaError as e:
        e.path = str(path)
        raise


def export_tileset(config: Config, verbose: bool = False) -> ExportResult:
    """Build everything in memory; nothing is written here."""
    project = config.godot_project
    resource_path = godot_path_to_absolute(project, config.tile_set_path)
    resource = load_resource(resource_path)

    tiles = load_tiles(config)
    terrain_tiles = load_terrain_tiles(config, verbose)
    if not tiles and not terrain_tiles:
        raise ConfigError(str(config.path), "nothing to export: no [[tiles]] and no terrain combinations")
    sheet, layout = layout_tile_sheet(tiles, terrain_tiles, config.tile_size)

    atlas = resource.tile_set_atlas_source
    atlas.texture_region_size = Vector2i(*config.tile_size)
    atlas.tiles = layout

    if not resource.texture_resource.path:
        raise TresSchemaError(
            "expected a tile set texture to have been added in the resource file via Godot", str(resource_path)
        )
    texture_path = godot_path_to_absolute(project, resource.texture_resource.path)

    png = io.BytesIO()
    sheet.save(png, format="PNG")

    return ExportResult(
        resource=resource,
        terrain_sets=config.terrain_names(),
        resource_path=resource_path,
        texture_path=texture_path,
        png_data=png.getvalue(),
        sheet_size=sheet.width,
        tile_count=len(layout),
    )


def write_outputs(result: ExportResult) -> None:
    # texture first: a failed PNG write leaves the old resource untouched
    os.makedirs(result.texture_path.parent, exist_ok=True)
    with open(result.texture_path, "wb") as f:
        f.write(result.png_data)
    print(f"Wrote {result.texture_path} ({result.sheet_size}x{result.sheet_size})")
    result.resource.write_tres(str(result.resource_path), result.terrain_sets)
    print(f"Wrote {result.resource_path} ({result.tile_count} tiles)")


def report(err: Exception) -> int:
    if isinstance(err, TresParseError):
        path = os.path.abspath(err.path) if err.path else "<input>"
        print(f"{path}:{err.line}:{err.col}: error: {err.message}", file=sys.stderr)
        return EXIT_PARSE
    if isinstance(err, TresSchemaError):
        print(f"{err.path or '<input>'}: error: unexpected '*.tres' file content: {err.message}", file=sys.stderr)
        return EXIT_SCHEMA
    if isinstance(err, ConfigError):
        print(f"{err.path}: error: {err.message}", file=sys.stderr)
        return EXIT_CONFIG
    if isinstance(err, ImageError):
        print(f"{err.path}: error: {err.message}", file=sys.stderr)
        return EXIT_IMAGE
    if isinstance(err, OSError):
        where = err.filename if err.filename else "<io>"
        print(f"{where}: error: {err.strerror or err}", file=sys.stderr)
        return EXIT_IO
    raise err


def run(config_path: str, dry_run: bool = False, verbose: bool = False) -> int:
    try:
        config = load_config(config_path)
        result = export_tileset(config, verbose)
        if dry_run:
            print(f"Would write {result.resource_path} ({result.tile_count} tiles)")
            print(f"Would write {result.texture_path} ({result.sheet_size}x{result.sheet_size})")
            return EXIT_OK
        write_outputs(result)
    except (TresParseError, TresSchemaError, ConfigError, ImageError, OSError) as e:
        return report(e)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Export a hex tile set to a Godot TileSet resource.")
    ap.add_argument("config", help="Tile set config (.toml)")
    ap.add_argument("-d", "--dry-run", action="store_true", help="Build everything but write nothing")
    ap.add_argument("-v", "--verbose", action="store_true", help="List terrain combinations as they are added")
    args = ap.parse_args(argv)
    return run(args.config, dry_run=args.dry_run, verbose=args.verbose)


if __name__ == "__main__":
    sys.exit(main())
