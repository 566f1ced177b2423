from __future__ import annotations

import sys
from pathlib import Path

import pytest

TOOLS = Path(__file__).resolve().parents[1] / "tools"
if str(TOOLS) not in sys.path:
    sys.path.insert(0, str(TOOLS))

SAMPLE_TRES = """[gd_resource type="TileSet" load_steps=3 format=3 uid="uid://abc"]

[ext_resource type="Texture2D" uid="uid://tex" path="res://a.png" id="1_xyz"]

[sub_resource type="TileSetAtlasSource" id="2_abc"]
texture = ExtResource("1_xyz")
"""


@pytest.fixture()
def sample_tres() -> str:
    return SAMPLE_TRES
