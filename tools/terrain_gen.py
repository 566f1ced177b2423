#!/usr/bin/env python3
"""
terrain_gen.py - Generate hex terrain transition tiles from source strips.

Inputs in <config dir>/terrains/:
  mask.png          one tile; six flat colours mark the six hex sides
                    red=top-left green=top blue=top-right
                    cyan=bottom-right magenta=bottom yellow=bottom-left
  Grass.png         4 tiles stacked: plain, two single-edge variants, both edges
  Grass-Sand.png    4 tiles stacked: Grass centre with Sand on the edges
  Grass-Sand-Dirt.png
                    2 tiles stacked: Grass centre between Sand and Dirt

For every usable combination of terrains in a set, one tile is composed for
each assignment of {none} + combination to the six sides; the tile's peering
bits record which terrain each side connects to.
"""

from __future__ import annotations

import itertools
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from tile_loader import ImageError, check_size, load_png
from tileset_config import Config
from tres_tileset import PeeringBit

MASK_COLORS = [
    (255, 0, 0, 255),
    (0, 255, 0, 255),
    (0, 0, 255, 255),
    (0, 255, 255, 255),
    (255, 0, 255, 255),
    (255, 255, 0, 255),
]

# same order as MASK_COLORS
SIDES = ("top_left_side", "top_side", "top_right_side", "bottom_right_side", "bottom_side", "bottom_left_side")

# tile heights per source strip, by number of terrains in the file name
STRIP_HEIGHTS = {1: 4, 2: 4, 3: 2}

MAX_COMBINATION = 7     # centre + six distinct neighbours


@dataclass(frozen=True)
class TerrainId:
    terrain_set: int
    terrain: int


@dataclass
class TerrainTile:
    terrain: TerrainId
    terrains_peering_bit: PeeringBit
    image: Image.Image


Combination = Tuple[TerrainId, ...]


def find_terrain(name: str, config: Config) -> Optional[TerrainId]:
    for set_index, ts in enumerate(config.terrain_sets):
        for terrain_index, terrain in enumerate(ts.terrains):
            if terrain == name:
                return TerrainId(set_index, terrain_index)
    return None


def load_terrain_images(directory: Path, config: Config) -> Dict[Combination, np.ndarray]:
    if not directory.is_dir():
        raise ImageError(str(directory), "could not open terrain directory")

    tile_w, tile_h = config.tile_size
    images: Dict[Combination, np.ndarray] = {}

    for path in sorted(directory.glob("*.png")):
        if path.stem == "mask":
            continue
        names = [p.strip() for p in path.stem.split("-")]
        if len(names) > 3:
            raise ImageError(
                str(path),
                "expected file name to have the format 'TerrainName.png', 'TerrainName-OtherName.png', "
                "or 'TerrainName-Other1Name-Other2Name.png'",
            )

        terrains = []
        for name in names:
            terrain = find_terrain(name, config)
            if terrain is None:
                raise ImageError(str(path), f"'{name}' is not a known terrain")
            terrains.append(terrain)

        mixed = [n for n, t in zip(names[1:], terrains[1:]) if t.terrain_set != terrains[0].terrain_set]
        if mixed:
            print(
                f"{path}: warning: '{names[0]}' and '{mixed[0]}' are not in the same terrain set, skipping",
                file=sys.stderr,
            )
            continue

        img = load_png(path)
        check_size(path, img, (tile_w, tile_h * STRIP_HEIGHTS[len(terrains)]))
        images[tuple(terrains)] = np.asarray(img, dtype=np.uint8)

    return images


def has_images_for_combination(images: Dict[Combination, np.ndarray], combination: Combination) -> bool:
    center, others = combination[0], combination[1:]
    if (center,) not in images:
        return False
    if any((center, other) not in images for other in others):
        return False
    for first, second in itertools.permutations(others, 2):
        if (center, first, second) not in images and (center, second, first) not in images:
            return False
    return True


def find_combinations(
    config: Config, images: Dict[Combination, np.ndarray], verbose: bool = False
) -> List[Combination]:
    found: List[Combination] = []
    for set_index, ts in enumerate(config.terrain_sets):
        ids = [TerrainId(set_index, i) for i in range(len(ts.terrains))]
        for length in range(1, MAX_COMBINATION + 1):
            for combination in itertools.combinations(ids, length):
                if has_images_for_combination(images, combination):
                    if verbose:
                        names = "-".join(ts.terrains[t.terrain] for t in combination)
                        print(f"Adding terrain combination {names}")
                    found.append(combination)
    return found


def _sub_image(active: Tuple[bool, bool], side: int) -> Optional[int]:
    if active == (True, True):
        return 3
    if active == (True, False):
        return 1 + side % 2
    if active == (False, True):
        return 2 - side % 2
    return None


def source_for_edge(
    images: Dict[Combination, np.ndarray],
    center: TerrainId,
    first: Optional[TerrainId],
    second: Optional[TerrainId],
    side: int,
) -> Optional[Tuple[np.ndarray, int]]:
    """Strip and sub-image index for side `side`, whose neighbour pair is (first, second)."""
    others = [t for t in (first, second) if t is not None and t != center]

    if not others:
        strip = images[(center,)]
        sub = _sub_image((first is not None, second is not None), side)
    elif len(others) == 1 or others[0] == others[1]:
        other = others[0]
        strip = images[(center, other)]
        sub = _sub_image((first == other, second == other), side)
    else:
        sub = side % 2
        strip = images.get((center, first, second))
        if strip is None:
            strip = images[(center, second, first)]
            sub = 1 - sub

    if sub is None:
        return None
    return strip, sub


def sides_to_peering_bit(sides: Sequence[Optional[TerrainId]]) -> PeeringBit:
    assert len(sides) == len(SIDES)
    return PeeringBit(**{name: (t.terrain if t is not None else None) for name, t in zip(SIDES, sides)})


def generate_combination_tiles(
    combination: Combination, images: Dict[Combination, np.ndarray], mask: np.ndarray
) -> List[TerrainTile]:
    center = combination[0]
    tile_h = mask.shape[0]
    side_masks = [np.all(mask == np.array(color, dtype=np.uint8), axis=-1) for color in MASK_COLORS]
    plain = images[(center,)][0:tile_h]

    tiles: List[TerrainTile] = []
    for sides in itertools.product((None,) + combination, repeat=len(SIDES)):
        out = plain.copy()
        for index in range(len(SIDES)):
            source = source_for_edge(images, center, sides[index], sides[(index + 1) % len(SIDES)], index)
            if source is None:
                continue
            strip, sub = source
            cell = strip[sub * tile_h:(sub + 1) * tile_h]
            m = side_masks[index]
            out[m] = cell[m]
        tiles.append(
            TerrainTile(
                terrain=center,
                terrains_peering_bit=sides_to_peering_bit(sides),
                image=Image.fromarray(out),
            )
        )
    return tiles


def load_terrain_tiles(config: Config, verbose: bool = False) -> List[TerrainTile]:
    if not config.terrain_sets:
        return []

    directory = config.directory / "terrains"
    mask_path = directory / "mask.png"
    mask_img = load_png(mask_path)
    check_size(mask_path, mask_img, config.tile_size)
    mask = np.asarray(mask_img, dtype=np.uint8)

    images = load_terrain_images(directory, config)
    tiles: List[TerrainTile] = []
    for combination in find_combinations(config, images, verbose):
        tiles.extend(generate_combination_tiles(combination, images, mask))
    return tiles
