from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from terrain_gen import (
    MASK_COLORS,
    TerrainId,
    find_combinations,
    has_images_for_combination,
    load_terrain_images,
    load_terrain_tiles,
    source_for_edge,
    sides_to_peering_bit,
)
from tile_loader import ImageError
from tileset_config import Config, TerrainSetConfig
from tres_tileset import PeeringBit

TILE = 4
GRASS = TerrainId(0, 0)
SAND = TerrainId(0, 1)
SNOW = TerrainId(1, 0)


def make_config(tmp_path: Path, *sets) -> Config:
    return Config(
        path=tmp_path / "tileset.toml",
        tile_size=(TILE, TILE),
        project_path=".",
        tile_set_path="res://hex.tres",
        terrain_sets=[TerrainSetConfig(list(s)) for s in sets],
    )


def strip_color(base: int, sub: int):
    return (base, sub * 40, 0, 255)


def save_strip(directory: Path, name: str, count: int, base: int) -> None:
    img = Image.new("RGBA", (TILE, TILE * count))
    for sub in range(count):
        img.paste(Image.new("RGBA", (TILE, TILE), strip_color(base, sub)), (0, sub * TILE))
    img.save(directory / f"{name}.png")


def save_mask(directory: Path) -> None:
    mask = Image.new("RGBA", (TILE, TILE), (0, 0, 0, 0))
    for i, color in enumerate(MASK_COLORS):
        mask.putpixel((i % TILE, i // TILE), color)
    mask.save(directory / "mask.png")


@pytest.fixture()
def terrains_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "terrains"
    directory.mkdir()
    save_mask(directory)
    save_strip(directory, "Grass", 4, 100)
    save_strip(directory, "Sand", 4, 150)
    save_strip(directory, "Grass-Sand", 4, 200)
    return directory


def pixels(img: Image.Image):
    return [img.getpixel((i % TILE, i // TILE)) for i in range(TILE * TILE)]


def test_tile_counts(tmp_path: Path, terrains_dir: Path):
    config = make_config(tmp_path, ["Grass", "Sand"])
    tiles = load_terrain_tiles(config)
    # Grass: 2^6, Sand: 2^6, Grass-Sand: 3^6
    assert len(tiles) == 64 + 64 + 729
    assert sum(1 for t in tiles if t.terrain == GRASS) == 64 + 729
    assert all(t.image.size == (TILE, TILE) for t in tiles)


def test_single_terrain_only(tmp_path: Path, terrains_dir: Path):
    (terrains_dir / "Sand.png").unlink()
    (terrains_dir / "Grass-Sand.png").unlink()
    tiles = load_terrain_tiles(make_config(tmp_path, ["Grass", "Sand"]))
    assert len(tiles) == 64


def test_no_terrain_sets_means_no_tiles(tmp_path: Path):
    assert load_terrain_tiles(make_config(tmp_path)) == []


def test_compositing(tmp_path: Path, terrains_dir: Path):
    tiles = load_terrain_tiles(make_config(tmp_path, ["Grass", "Sand"]))
    # the first 64 tiles are Grass on its own
    plain, connected = tiles[0], tiles[63]

    assert plain.terrains_peering_bit == PeeringBit()
    assert set(pixels(plain.image)) == {strip_color(100, 0)}

    assert connected.terrains_peering_bit == PeeringBit(0, 0, 0, 0, 0, 0)
    px = pixels(connected.image)
    assert px[: len(MASK_COLORS)] == [strip_color(100, 3)] * len(MASK_COLORS)
    assert set(px[len(MASK_COLORS):]) == {strip_color(100, 0)}


def test_single_edge_uses_side_parity(tmp_path: Path, terrains_dir: Path):
    tiles = load_terrain_tiles(make_config(tmp_path, ["Grass", "Sand"]))
    # only the top-left side (index 0) connected
    tile = next(t for t in tiles if t.terrain == GRASS and t.terrains_peering_bit == PeeringBit(top_left_side=0))
    px = pixels(tile.image)
    # side 0 has its own neighbour but not the next one: sub-image 1
    assert px[0] == strip_color(100, 1)
    # side 5 only has the next one (side 0), and odd sides mirror: sub-image 1
    assert px[5] == strip_color(100, 1)
    assert px[1:5] == [strip_color(100, 0)] * 4


def test_two_terrain_edges_come_from_the_pair_strip(tmp_path: Path, terrains_dir: Path):
    tiles = load_terrain_tiles(make_config(tmp_path, ["Grass", "Sand"]))
    tile = next(
        t for t in tiles if t.terrain == GRASS and t.terrains_peering_bit == PeeringBit(1, 1, 1, 1, 1, 1)
    )
    px = pixels(tile.image)
    assert px[: len(MASK_COLORS)] == [strip_color(200, 3)] * len(MASK_COLORS)


def test_verbose_lists_combinations(tmp_path: Path, terrains_dir: Path, capsys):
    config = make_config(tmp_path, ["Grass", "Sand"])
    images = load_terrain_images(terrains_dir, config)
    assert find_combinations(config, images, verbose=True) == [(GRASS,), (SAND,), (GRASS, SAND)]
    assert capsys.readouterr().out.splitlines() == [
        "Adding terrain combination Grass",
        "Adding terrain combination Sand",
        "Adding terrain combination Grass-Sand",
    ]


def test_has_images_for_combination():
    blank = np.zeros((1,), dtype=np.uint8)
    dirt = TerrainId(0, 2)
    images = {(GRASS,): blank, (GRASS, SAND): blank, (GRASS, dirt): blank}
    assert has_images_for_combination(images, (GRASS, SAND))
    assert not has_images_for_combination(images, (GRASS, SAND, dirt))
    images[(GRASS, dirt, SAND)] = blank
    assert has_images_for_combination(images, (GRASS, SAND, dirt))
    assert not has_images_for_combination(images, (SAND,))


def test_three_terrain_edge_flips_when_stored_reversed():
    dirt = TerrainId(0, 2)
    strip = np.zeros((1,), dtype=np.uint8)
    images = {(GRASS, SAND, dirt): strip}

    found, sub = source_for_edge(images, GRASS, SAND, dirt, 0)
    assert found is strip and sub == 0
    found, sub = source_for_edge(images, GRASS, dirt, SAND, 0)
    assert found is strip and sub == 1
    found, sub = source_for_edge(images, GRASS, dirt, SAND, 1)
    assert sub == 0


def test_unconnected_edge_has_no_source():
    images = {(GRASS,): np.zeros((1,), dtype=np.uint8)}
    assert source_for_edge(images, GRASS, None, None, 2) is None


def test_sides_to_peering_bit():
    bit = sides_to_peering_bit([GRASS, None, SAND, None, None, GRASS])
    assert bit == PeeringBit(top_left_side=0, top_right_side=1, bottom_left_side=0)


def test_unknown_terrain_name(tmp_path: Path, terrains_dir: Path):
    save_strip(terrains_dir, "Lava", 4, 50)
    with pytest.raises(ImageError, match="'Lava' is not a known terrain"):
        load_terrain_images(terrains_dir, make_config(tmp_path, ["Grass", "Sand"]))


def test_too_many_name_parts(tmp_path: Path, terrains_dir: Path):
    save_strip(terrains_dir, "Grass-Sand-Grass-Sand", 2, 50)
    with pytest.raises(ImageError, match="expected file name"):
        load_terrain_images(terrains_dir, make_config(tmp_path, ["Grass", "Sand"]))


def test_wrong_strip_height(tmp_path: Path, terrains_dir: Path):
    save_strip(terrains_dir, "Sand", 2, 150)
    with pytest.raises(ImageError, match="expected an image of size 4x16, but found 4x8"):
        load_terrain_images(terrains_dir, make_config(tmp_path, ["Grass", "Sand"]))


def test_mixed_terrain_sets_are_skipped(tmp_path: Path, terrains_dir: Path, capsys):
    save_strip(terrains_dir, "Grass-Snow", 4, 50)
    images = load_terrain_images(terrains_dir, make_config(tmp_path, ["Grass", "Sand"], ["Snow"]))
    assert (GRASS, SNOW) not in images
    assert "not in the same terrain set" in capsys.readouterr().err


def test_missing_terrain_directory(tmp_path: Path):
    with pytest.raises(ImageError, match="terrain directory"):
        load_terrain_images(tmp_path / "terrains", make_config(tmp_path, ["Grass"]))


def test_missing_mask(tmp_path: Path, terrains_dir: Path):
    (terrains_dir / "mask.png").unlink()
    with pytest.raises(ImageError, match="could not open image"):
        load_terrain_tiles(make_config(tmp_path, ["Grass"]))
