#!/usr/bin/env python3
"""
tileset_config.py - Load the exporter's TOML config.

  [tile_set]
  tile_size = [32, 28]

  [godot]
  project_path = "../game"              # relative to the config file
  tile_set_path = "res://tiles/hex.tres"

  [[tiles]]
  name = "water"                        # tiles/water.png
  position = [0, 0]

  [[terrain_sets]]
  [[terrain_sets.terrains]]
  name = "Grass"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

RES_PREFIX = "res://"


class ConfigError(Exception):
    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path
        self.message = message

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class TileConfig:
    name: str
    position: Tuple[int, int]


@dataclass
class TerrainSetConfig:
    terrains: List[str] = field(default_factory=list)


@dataclass
class Config:
    path: Path
    tile_size: Tuple[int, int]
    project_path: str
    tile_set_path: str
    tiles: List[TileConfig] = field(default_factory=list)
    terrain_sets: List[TerrainSetConfig] = field(default_factory=list)

    @property
    def directory(self) -> Path:
        return self.path.parent

    @property
    def godot_project(self) -> Path:
        return self.directory / self.project_path

    def terrain_names(self) -> List[List[str]]:
        return [list(ts.terrains) for ts in self.terrain_sets]


def _pair(value: Any, what: str, err, minimum: int) -> Tuple[int, int]:
    if (
        not isinstance(value, list)
        or len(value) != 2
        or not all(isinstance(v, int) and not isinstance(v, bool) for v in value)
    ):
        err(f"{what} must be a list of two integers")
    if value[0] < minimum or value[1] < minimum:
        err(f"{what} values must be >= {minimum}")
    return value[0], value[1]


def _table(data: Dict[str, Any], key: str, err) -> Dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        err(f"missing [{key}] table")
    return value


def _string(data: Dict[str, Any], key: str, where: str, err) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        err(f"{where} requires a non-empty string '{key}'")
    return value


def parse_config(data: Dict[str, Any], path: Path) -> Config:
    def err(message: str) -> None:
        raise ConfigError(str(path), message)

    tile_set = _table(data, "tile_set", err)
    godot = _table(data, "godot", err)

    tile_size = _pair(tile_set.get("tile_size"), "tile_set.tile_size", err, 1)
    project_path = _string(godot, "project_path", "[godot]", err)
    tile_set_path = _string(godot, "tile_set_path", "[godot]", err)
    if not tile_set_path.endswith(".tres"):
        err("expected 'tile_set_path' to be on the format 'res://Path/To/resource.tres'")

    tiles: List[TileConfig] = []
    seen_positions: Dict[Tuple[int, int], str] = {}
    raw_tiles = data.get("tiles", [])
    if not isinstance(raw_tiles, list):
        err("'tiles' must be an array of tables")
    for i, raw in enumerate(raw_tiles):
        if not isinstance(raw, dict):
            err(f"tiles[{i}] must be a table")
        name = _string(raw, "name", f"tiles[{i}]", err)
        position = _pair(raw.get("position"), f"tiles[{i}].position", err, 0)
        if position in seen_positions:
            err(f"tile '{name}' uses position {list(position)} already taken by '{seen_positions[position]}'")
        seen_positions[position] = name
        tiles.append(TileConfig(name=name, position=position))

    terrain_sets: List[TerrainSetConfig] = []
    seen_terrains: Dict[str, int] = {}
    raw_sets = data.get("terrain_sets", [])
    if not isinstance(raw_sets, list):
        err("'terrain_sets' must be an array of tables")
    for si, raw_set in enumerate(raw_sets):
        if not isinstance(raw_set, dict):
            err(f"terrain_sets[{si}] must be a table")
        names: List[str] = []
        raw_terrains = raw_set.get("terrains", [])
        if not isinstance(raw_terrains, list):
            err(f"terrain_sets[{si}].terrains must be an array of tables")
        for ti, raw_terrain in enumerate(raw_terrains):
            if not isinstance(raw_terrain, dict):
                err(f"terrain_sets[{si}].terrains[{ti}] must be a table")
            name = _string(raw_terrain, "name", f"terrain_sets[{si}].terrains[{ti}]", err)
            if "-" in name:
                err(f"terrain name '{name}' must not contain '-'")
            if name in seen_terrains:
                err(f"duplicate terrain name '{name}'")
            seen_terrains[name] = si
            names.append(name)
        terrain_sets.append(TerrainSetConfig(terrains=names))

    return Config(
        path=path,
        tile_size=tile_size,
        project_path=project_path,
        tile_set_path=tile_set_path,
        tiles=tiles,
        terrain_sets=terrain_sets,
    )


def load_config(path: str | Path) -> Config:
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(str(path), f"could not parse tile set config: {e}") from e
    return parse_config(data, path)


def godot_path_to_absolute(project_path: Path, godot_path: str) -> Path:
    if not godot_path.startswith(RES_PREFIX):
        raise ConfigError(godot_path, "expected a Godot path on the format 'res://Path/To/resource'")
    return project_path / godot_path[len(RES_PREFIX):]
