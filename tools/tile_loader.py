#!/usr/bin/env python3
"""
tile_loader.py - Load the hand-placed tiles listed under [[tiles]].

Each tile is <config dir>/tiles/<name>.png and must be exactly tile_size.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from PIL import Image, UnidentifiedImageError

from tileset_config import Config, TileConfig


class ImageError(Exception):
    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path
        self.message = message

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass
class StaticTile:
    config: TileConfig
    image: Image.Image


def load_png(path: Path) -> Image.Image:
    try:
        with Image.open(path) as img:
            if img.format != "PNG":
                raise ImageError(str(path), f"expected a PNG image, found {img.format}")
            return img.convert("RGBA")
    except FileNotFoundError:
        raise ImageError(str(path), "could not open image") from None
    except (UnidentifiedImageError, OSError) as e:
        raise ImageError(str(path), f"could not load image: {e}") from e


def check_size(path: Path, img: Image.Image, expected: Tuple[int, int]) -> None:
    if img.size != tuple(expected):
        raise ImageError(
            str(path),
            f"expected an image of size {expected[0]}x{expected[1]}, but found {img.width}x{img.height}",
        )


def load_tiles(config: Config) -> List[StaticTile]:
    directory = config.directory / "tiles"
    tiles: List[StaticTile] = []
    for tile in config.tiles:
        path = directory / f"{tile.name}.png"
        img = load_png(path)
        check_size(path, img, config.tile_size)
        tiles.append(StaticTile(config=tile, image=img))
    return tiles
