#!/usr/bin/env python3
"""
tres_tileset.py - TileSet resource <-> generic .tres tags.

Expected input layout (tag order is free):

  [gd_resource type="TileSet" load_steps=3 format=3 uid="uid://..."]
  [ext_resource type="Texture2D" uid="uid://..." path="res://..." id="..."]
  [sub_resource type="TileSetAtlasSource" id="..."]
  texture = ExtResource("...")
  [resource]                       ; optional, regenerated on write

Tiles and the region size are not read back; the exporter replaces them.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import List, Optional, Sequence

from tres_lexer import TresError
from tres_parser import FORMAT_VERSION, Field, Tag, TagAssign, TresFile, dumps_tres
from tres_values import Color, ExtResource, SubResource, Vector2i

RESOURCE_TAG = "gd_resource"
TEXTURE_TYPE = "Texture2D"
ATLAS_TYPE = "TileSetAtlasSource"
TILE_SET_TYPE = "TileSet"

LOAD_STEPS = 3          # the resource itself + texture + atlas
TILE_SHAPE_HEXAGON = 3
TILE_OFFSET_AXIS_VERTICAL = 1
TERRAIN_MODE_SIDES = 2
TERRAIN_COLOR = Color(0.0, 0.0, 0.0, 1.0)


class TresSchemaError(TresError):
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


@dataclass
class PeeringBit:
    # field order is the order assigns are written in
    bottom_right_side: Optional[int] = None
    bottom_side: Optional[int] = None
    bottom_left_side: Optional[int] = None
    top_left_side: Optional[int] = None
    top_side: Optional[int] = None
    top_right_side: Optional[int] = None


@dataclass
class Tile:
    position: Vector2i
    terrain_set: Optional[int] = None
    terrain: Optional[int] = None
    terrains_peering_bit: PeeringBit = field(default_factory=PeeringBit)

    def to_assigns(self) -> List[TagAssign]:
        key = f"{self.position.x}:{self.position.y}/0"
        out = [TagAssign(key, 0)]
        if self.terrain_set is not None:
            out.append(TagAssign(f"{key}/terrain_set", self.terrain_set))
        if self.terrain is not None:
            out.append(TagAssign(f"{key}/terrain", self.terrain))
        for f in fields(PeeringBit):
            value = getattr(self.terrains_peering_bit, f.name)
            if value is not None:
                out.append(TagAssign(f"{key}/terrains_peering_bit/{f.name}", value))
        return out


@dataclass
class TextureResource:
    uid: str
    path: str
    id: str

    @classmethod
    def from_tag(cls, tag: Tag) -> "TextureResource":
        found = {}
        for f in tag.fields:
            if f.identifier not in ("type", "uid", "path", "id"):
                raise TresSchemaError(f"unexpected 'ext_resource' field '{f.identifier}'")
            if not isinstance(f.value, str):
                raise TresSchemaError(f"expected 'ext_resource' field '{f.identifier}' to be a string")
            found[f.identifier] = f.value

        if found.get("type") != TEXTURE_TYPE:
            raise TresSchemaError(f"expected texture resource type to be '{TEXTURE_TYPE}'")
        for key in ("uid", "path", "id"):
            if not found.get(key):
                raise TresSchemaError(f"missing texture resource '{key}'")
        return cls(uid=found["uid"], path=found["path"], id=found["id"])

    def to_tag(self) -> Tag:
        return Tag(
            "ext_resource",
            [
                Field("type", TEXTURE_TYPE),
                Field("uid", self.uid),
                Field("path", self.path),
                Field("id", self.id),
            ],
        )


@dataclass
class TileSetAtlasSource:
    id: str
    texture: str                          # id of the ext_resource texture
    texture_region_size: Vector2i = field(default_factory=lambda: Vector2i(0, 0))
    tiles: List[Tile] = field(default_factory=list)

    @classmethod
    def from_tag(cls, tag: Tag) -> "TileSetAtlasSource":
        found_type = False
        atlas_id = ""
        for f in tag.fields:
            if f.identifier == "type":
                if not isinstance(f.value, str):
                    raise TresSchemaError("expected 'type' to be a string")
                if f.value != ATLAS_TYPE:
                    raise TresSchemaError(f"expected tile atlas source type to be '{ATLAS_TYPE}'")
                found_type = True
            elif f.identifier == "id":
                if not isinstance(f.value, str):
                    raise TresSchemaError("expected 'id' to be a string")
                atlas_id = f.value
            else:
                raise TresSchemaError(f"unexpected 'sub_resource' field '{f.identifier}'")

        texture = ""
        for a in tag.assigns:
            if a.path == "texture":
                if not isinstance(a.value, ExtResource):
                    raise TresSchemaError("expected 'texture' to be an 'ExtResource'")
                texture = a.value.id

        if not found_type:
            raise TresSchemaError(f"expected tile atlas source type to be '{ATLAS_TYPE}'")
        if not atlas_id:
            raise TresSchemaError("missing tile atlas source 'id'")
        if not texture:
            raise TresSchemaError("missing tile atlas source 'texture'")
        return cls(id=atlas_id, texture=texture)

    def to_tag(self) -> Tag:
        tag = Tag(
            "sub_resource",
            [Field("type", ATLAS_TYPE), Field("id", self.id)],
            [
                TagAssign("texture", ExtResource(self.texture)),
                TagAssign("texture_region_size", self.texture_region_size),
            ],
        )
        for tile in self.tiles:
            tag.assigns.extend(tile.to_assigns())
        return tag


@dataclass
class TileSetResource:
    uid: str
    texture_resource: TextureResource
    tile_set_atlas_source: TileSetAtlasSource

    @classmethod
    def from_tres(cls, tres: TresFile) -> "TileSetResource":
        header = tres.header
        if header.name != RESOURCE_TAG:
            raise TresSchemaError(f"expected a resource file, but found '{header.name}'")
        uid = header.get_field("uid")
        if uid is None or not isinstance(uid.value, str):
            raise TresSchemaError(f"expected a uid string on '{RESOURCE_TAG}'")

        texture: Optional[TextureResource] = None
        atlas: Optional[TileSetAtlasSource] = None
        seen_resource = False

        for tag in tres.tags:
            if tag.name == "ext_resource":
                if texture is not None:
                    raise TresSchemaError("expected only one 'ext_resource'")
                texture = TextureResource.from_tag(tag)
            elif tag.name == "sub_resource":
                if atlas is not None:
                    raise TresSchemaError("expected only one 'sub_resource'")
                atlas = TileSetAtlasSource.from_tag(tag)
            elif tag.name == "resource":
                if seen_resource:
                    raise TresSchemaError("expected at most one 'resource'")
                seen_resource = True
            else:
                raise TresSchemaError(f"unexpected tag '{tag.name}'")

        if texture is None:
            raise TresSchemaError(f"missing external '{TEXTURE_TYPE}' resource")
        if atlas is None:
            raise TresSchemaError(f"missing '{ATLAS_TYPE}' resource")
        return cls(uid=uid.value, texture_resource=texture, tile_set_atlas_source=atlas)

    def header_tag(self) -> Tag:
        return Tag(
            RESOURCE_TAG,
            [
                Field("type", TILE_SET_TYPE),
                Field("load_steps", LOAD_STEPS),
                Field("format", FORMAT_VERSION),
                Field("uid", self.uid),
            ],
        )

    def resource_tag(self, terrain_sets: Sequence[Sequence[str]]) -> Tag:
        """terrain_sets: one list of terrain names per terrain set."""
        atlas = self.tile_set_atlas_source
        tag = Tag(
            "resource",
            assigns=[
                TagAssign("tile_shape", TILE_SHAPE_HEXAGON),
                TagAssign("tile_offset_axis", TILE_OFFSET_AXIS_VERTICAL),
                TagAssign("tile_size", atlas.texture_region_size),
            ],
        )
        for set_index, terrains in enumerate(terrain_sets):
            tag.assigns.append(TagAssign(f"terrain_set_{set_index}/mode", TERRAIN_MODE_SIDES))
            for terrain_index, name in enumerate(terrains):
                prefix = f"terrain_set_{set_index}/terrain_{terrain_index}"
                tag.assigns.append(TagAssign(f"{prefix}/name", name))
                tag.assigns.append(TagAssign(f"{prefix}/color", TERRAIN_COLOR))
        tag.assigns.append(TagAssign("sources/0", SubResource(atlas.id)))
        return tag

    def to_tres(self, terrain_sets: Sequence[Sequence[str]]) -> TresFile:
        return TresFile(
            self.header_tag(),
            [
                self.texture_resource.to_tag(),
                self.tile_set_atlas_source.to_tag(),
                self.resource_tag(terrain_sets),
            ],
        )

    def dumps(self, terrain_sets: Sequence[Sequence[str]]) -> str:
        return dumps_tres(self.to_tres(terrain_sets))

    def write_tres(self, path: str, terrain_sets: Sequence[Sequence[str]]) -> None:
        text = self.dumps(terrain_sets)
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
