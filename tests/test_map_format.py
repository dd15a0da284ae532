"""Test: map format decoding phases, record alignment and the encoder."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config_io.schema import (
    MAX_MAP_SIZE,
    NUM_LAYERS,
    AreaAssociation,
    CellRecord,
    DecodePhase,
    LayerRecord,
    LoadFailure,
    MapDocument,
    RecordAnomaly,
    TerrainRecord,
    ZoneAssociation,
)
from data.buffer import SerializationBuffer
from data.map_format import MapFormatDecoder, MapLoadListener, encode_map


class RecordingListener(MapLoadListener):
    """Keeps every notification in call order."""

    def __init__(self):
        self.events: list[tuple] = []

    def started_loading(self):
        self.events.append(("started",))

    def on_resize(self, width, height):
        self.events.append(("resize", width, height))

    def on_cell_data_loaded(self, cell_id, flags, layer_textures, layer_scales):
        names = [t.name if t is not None else None for t in layer_textures]
        self.events.append(("cell", cell_id, flags, names, list(layer_scales), list(layer_textures)))

    def on_finished_loading_cells(self):
        self.events.append(("cells_done",))

    def on_terrain_texture_loaded(self, terrain_id, name):
        self.events.append(("terrain", terrain_id, name))

    def on_terrain_zone_loaded(self, terrain_id, zone_id):
        self.events.append(("zone", terrain_id, zone_id))

    def on_terrain_area_loaded(self, terrain_id, area_id):
        self.events.append(("area", terrain_id, area_id))

    def finished_loading(self):
        self.events.append(("finished",))

    def of(self, kind: str) -> list[tuple]:
        return [e for e in self.events if e[0] == kind]


def decode(raw: bytes, **kwargs):
    listener = RecordingListener()
    report = MapFormatDecoder(**kwargs).decode(SerializationBuffer(raw), listener)
    return report, listener


def put_cell(buf, cell_id, flags, layers):
    """Write one cell record; `layers` maps layer index -> (tex_index, scale)."""
    buf.put_int32(cell_id).put_uint8(flags)
    for layer in range(NUM_LAYERS):
        if layer in layers:
            tex, scale = layers[layer]
            buf.put_bool(True).put_int32(tex).put_float32(scale)
        else:
            buf.put_bool(False)


def header_with_textures(map_size, textures):
    buf = SerializationBuffer()
    buf.put_int32(map_size).put_int32(len(textures))
    for name in textures:
        buf.put_string(name)
    return buf


def close_sections(buf, terrain_dict=(), terrains=()):
    buf.put_int32(len(terrain_dict))
    for name in terrain_dict:
        buf.put_string(name)
    buf.put_int32(len(terrains))
    for terrain_id, tex in terrains:
        buf.put_int32(terrain_id).put_int32(tex)
    return buf


# ── Header ─────────────────────────────────────────────────────────────────

def test_zero_map_size_fails():
    report, listener = decode(close_sections(header_with_textures(0, ["grass"])).data)
    assert not report.ok
    assert report.phase == DecodePhase.FAILED
    assert report.failure == LoadFailure.FORMAT_ERROR
    assert listener.events == [("started",)]


def test_oversized_map_fails():
    report, listener = decode(SerializationBuffer().put_int32(MAX_MAP_SIZE + 1).data)
    assert not report.ok
    assert report.failure == LoadFailure.FORMAT_ERROR
    assert not listener.of("resize")


def test_negative_map_size_fails():
    report, _ = decode(SerializationBuffer().put_int32(-2).data)
    assert not report.ok


def test_empty_input_fails():
    report, _ = decode(b"")
    assert not report.ok
    assert report.failure == LoadFailure.FORMAT_ERROR


def test_configured_cap_is_applied():
    raw = close_sections(header_with_textures(8, []).put_int32(0)).data
    assert decode(raw)[0].ok
    assert not decode(raw, max_map_size=4)[0].ok
    # The cap can never exceed the format limit
    assert MapFormatDecoder(max_map_size=MAX_MAP_SIZE * 4).max_map_size == MAX_MAP_SIZE


def test_minimal_map():
    raw = close_sections(header_with_textures(1, []).put_int32(0)).data
    report, listener = decode(raw)
    assert report.ok
    assert report.phase == DecodePhase.DONE
    assert report.map_size == 1
    assert listener.events == [
        ("started",), ("resize", 1, 1), ("cells_done",), ("finished",),
    ]


# ── Cell records ───────────────────────────────────────────────────────────

def test_cell_record_decodes_layers():
    buf = header_with_textures(4, ["grass", "rock"]).put_int32(1)
    put_cell(buf, 5, 0x01, {0: (1, 2.5), 2: (0, 0.5)})
    report, listener = decode(close_sections(buf).data)

    assert report.ok
    assert report.cells_loaded == 1
    (_, cell_id, flags, names, scales, _) = listener.of("cell")[0]
    assert cell_id == 5
    assert flags == 0x01
    assert names == ["rock", None, "grass", None]
    assert scales == [2.5, 1.0, 0.5, 1.0]


def test_bad_cell_id_keeps_following_record_aligned():
    buf = header_with_textures(2, ["grass", "sand"]).put_int32(2)
    put_cell(buf, -1, 0x01, {0: (0, 3.0), 1: (1, 4.0), 3: (0, 5.0)})
    put_cell(buf, 3, 0x00, {1: (1, 0.75)})
    report, listener = decode(close_sections(buf).data)

    assert report.ok
    cells = listener.of("cell")
    assert len(cells) == 1
    (_, cell_id, flags, names, scales, _) = cells[0]
    assert cell_id == 3
    assert flags == 0x00
    assert names == [None, "sand", None, None]
    assert scales == [1.0, 0.75, 1.0, 1.0]
    assert report.anomalies[RecordAnomaly.BAD_CELL_ID] == 1


def test_cell_id_past_grid_is_dropped():
    buf = header_with_textures(2, ["grass"]).put_int32(2)
    put_cell(buf, 4, 0x00, {0: (0, 1.0)})
    put_cell(buf, 0, 0x00, {0: (0, 1.0)})
    report, listener = decode(close_sections(buf).data)
    assert [c[1] for c in listener.of("cell")] == [0]
    assert report.dropped == 1


def test_bad_texture_index_drops_only_that_layer():
    buf = header_with_textures(2, ["grass"]).put_int32(1)
    put_cell(buf, 1, 0x00, {0: (7, 9.0), 1: (-1, 9.0), 2: (0, 1.5)})
    report, listener = decode(close_sections(buf, ["dirt"], [(3, 0)]).data)

    (_, _, _, names, scales, _) = listener.of("cell")[0]
    assert names == [None, None, "grass", None]
    assert scales == [1.0, 1.0, 1.5, 1.0]
    assert report.anomalies[RecordAnomaly.BAD_TEXTURE_INDEX] == 2
    # Later sections still line up
    assert listener.of("terrain") == [("terrain", 3, "dirt")]


def test_cells_share_texture_refs():
    buf = header_with_textures(2, ["grass"]).put_int32(2)
    put_cell(buf, 0, 0, {0: (0, 1.0)})
    put_cell(buf, 1, 0, {3: (0, 1.0)})
    _, listener = decode(close_sections(buf).data)
    first, second = listener.of("cell")
    assert first[5][0] is second[5][3]
    assert first[5][0].index == 0


def test_negative_count_reads_nothing():
    buf = header_with_textures(2, []).put_int32(-5)
    report, listener = decode(close_sections(buf, ["dirt"], [(1, 0)]).data)
    assert report.ok
    assert not listener.of("cell")
    assert listener.of("terrain") == [("terrain", 1, "dirt")]


def test_truncated_cell_section_stops_early():
    buf = header_with_textures(2, ["grass"]).put_int32(1000)
    put_cell(buf, 2, 0x01, {})
    report, listener = decode(buf.data)
    assert report.ok
    assert [c[1] for c in listener.of("cell")] == [2]
    assert report.anomalies[RecordAnomaly.TRUNCATED] == 1
    assert listener.events[-1] == ("finished",)


# ── Terrain and trailing sections ──────────────────────────────────────────

def test_terrain_records_and_bad_index():
    buf = header_with_textures(2, []).put_int32(0)
    close_sections(buf, ["mud", "snow"], [(10, 1), (11, 2), (12, 0)])
    report, listener = decode(buf.data)
    assert listener.of("terrain") == [("terrain", 10, "snow"), ("terrain", 12, "mud")]
    assert report.terrains_loaded == 2
    assert report.anomalies[RecordAnomaly.BAD_TERRAIN_INDEX] == 1


def test_trailing_sections_absent():
    buf = close_sections(header_with_textures(2, []).put_int32(0), ["mud"], [(1, 0)])
    report, listener = decode(buf.data)
    assert report.ok
    assert not listener.of("zone")
    assert not listener.of("area")


def test_zones_without_areas():
    buf = close_sections(header_with_textures(2, []).put_int32(0))
    buf.put_int32(2).put_int32(1).put_int32(100).put_int32(2).put_int32(200)
    report, listener = decode(buf.data)
    assert listener.of("zone") == [("zone", 1, 100), ("zone", 2, 200)]
    assert not listener.of("area")
    assert report.zones_loaded == 2


def test_zones_and_areas_in_order():
    buf = close_sections(header_with_textures(2, []).put_int32(0))
    buf.put_int32(1).put_int32(1).put_int32(100)
    buf.put_int32(1).put_int32(1).put_int32(7)
    report, listener = decode(buf.data)
    kinds = [e[0] for e in listener.events]
    assert kinds == ["started", "resize", "cells_done", "zone", "area", "finished"]
    assert listener.of("area") == [("area", 1, 7)]
    assert report.areas_loaded == 1


# ── Encoder ────────────────────────────────────────────────────────────────

def test_encoder_matches_hand_built_layout():
    doc = MapDocument(
        map_size=2,
        textures=["grass", "sand"],
        cells=[CellRecord(cell_id=3, flags=1, layers=[None, LayerRecord(texture=1, scale=0.5)])],
        terrain_textures=["mud"],
        terrains=[TerrainRecord(terrain_id=4, texture=0)],
    )
    buf = header_with_textures(2, ["grass", "sand"]).put_int32(1)
    put_cell(buf, 3, 1, {1: (1, 0.5)})
    close_sections(buf, ["mud"], [(4, 0)])
    assert encode_map(doc) == buf.data


def test_encoder_writes_empty_zones_before_areas():
    doc = MapDocument(map_size=1, areas=[AreaAssociation(terrain_id=2, area_id=9)])
    report, listener = decode(encode_map(doc))
    assert report.ok
    assert not listener.of("zone")
    assert listener.of("area") == [("area", 2, 9)]


def test_encoded_document_decodes():
    doc = MapDocument(
        map_size=3,
        textures=["grass"],
        cells=[CellRecord(cell_id=4, flags=0, layers=[LayerRecord(texture=0, scale=1.25)])],
        terrain_textures=["mud"],
        terrains=[TerrainRecord(terrain_id=1, texture=0)],
        zones=[ZoneAssociation(terrain_id=1, zone_id=5)],
    )
    report, listener = decode(encode_map(doc))
    assert report.ok
    assert listener.of("cell")[0][3] == ["grass", None, None, None]
    assert listener.of("cell")[0][4][0] == 1.25
    assert listener.of("zone") == [("zone", 1, 5)]


if __name__ == "__main__":
    test_bad_cell_id_keeps_following_record_aligned()
    test_minimal_map()
    print("PASS: map format tests")
