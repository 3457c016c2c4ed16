"""Tests for MD2 geometry assembly."""
import struct
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from md2_geometry import assemble_geometry, assemble_triangle_table
from md2_parser import load_model
from md2_types import FormatError
from md2_builder import QUAD_FAN, QUAD_VERTICES, create_quad_md2, create_test_md2


def test_quad_fan_end_to_end():
    """A 4-corner fan should assemble into 2 pivot-reversed triangles."""
    model = load_model(create_quad_md2())

    geometry = assemble_geometry(model, 0)

    assert geometry.triangle_count == 2
    assert geometry.indices == [0, 1, 2, 3, 4, 5]
    assert geometry.vertices == [
        (10.0, 10.0, 0.0, 1.0, 1.0),
        (10.0, 0.0, 0.0, 1.0, 0.0),
        (0.0, 0.0, 0.0, 0.0, 0.0),
        (0.0, 10.0, 0.0, 0.0, 1.0),
        (10.0, 10.0, 0.0, 1.0, 1.0),
        (0.0, 0.0, 0.0, 0.0, 0.0),
    ]


def test_scale_applied_per_axis():
    """Positions should be quantized values times the frame scale."""
    frames = [{"scale": (0.5, 2.0, 3.0), "translate": (100.0, 100.0, 100.0), "vertices": QUAD_VERTICES}]
    model = load_model(create_test_md2(frames, QUAD_FAN))

    geometry = assemble_geometry(model, 0)

    assert geometry.positions[0] == (5.0, 20.0, 0.0)
    assert geometry.positions[1] == (5.0, 0.0, 0.0)


def test_apply_translate_option():
    """Translate is only added when requested."""
    frames = [{"scale": (0.5, 2.0, 3.0), "translate": (1.0, -2.0, 4.0), "vertices": QUAD_VERTICES}]
    model = load_model(create_test_md2(frames, QUAD_FAN))

    geometry = assemble_geometry(model, 0, apply_translate=True)

    assert geometry.positions[0] == (6.0, 18.0, 4.0)
    assert geometry.positions[2] == (1.0, -2.0, 4.0)


def test_frame_selection():
    """Positions come from the requested frame."""
    frames = [
        {"name": "a", "vertices": QUAD_VERTICES},
        {"name": "b", "vertices": [(x + 1, y + 1, z + 1) for x, y, z in QUAD_VERTICES]},
    ]
    model = load_model(create_test_md2(frames, QUAD_FAN))

    geometry = assemble_geometry(model, 1)

    assert geometry.positions[0] == (11.0, 11.0, 1.0)


def test_vertex_count_is_three_per_triangle():
    """Every triangle corner is emitted as its own vertex."""
    vertices = [(i, i, i) for i in range(8)]
    groups = [
        ("strip", [(0.0, 0.0, i) for i in range(6)]),
        ("fan", [(0.0, 0.0, i) for i in range(5)]),
    ]
    model = load_model(create_test_md2([{"vertices": vertices}], groups))

    geometry = assemble_geometry(model, 0)

    assert geometry.triangle_count == 4 + 3
    assert len(geometry.vertices) == 3 * geometry.triangle_count
    assert geometry.indices == list(range(len(geometry.vertices)))


def test_assembly_is_deterministic():
    """Assembling the same frame twice gives identical bytes."""
    model = load_model(create_quad_md2())

    first = assemble_geometry(model, 0)
    second = assemble_geometry(model, 0)

    assert first.vertex_bytes() == second.vertex_bytes()
    assert first.index_bytes() == second.index_bytes()


def test_vertex_index_out_of_range():
    """A command referencing a missing vertex raises IndexError."""
    groups = [("fan", [(0.0, 0.0, 0), (0.0, 0.0, 1), (0.0, 0.0, 4)])]
    model = load_model(create_test_md2([{"vertices": QUAD_VERTICES}], groups))

    with pytest.raises(IndexError, match="Vertex index 4"):
        assemble_geometry(model, 0)


def test_negative_vertex_index():
    """Negative vertex indices are out of range too."""
    groups = [("strip", [(0.0, 0.0, -1), (0.0, 0.0, 1), (0.0, 0.0, 2)])]
    model = load_model(create_test_md2([{"vertices": QUAD_VERTICES}], groups))

    with pytest.raises(IndexError):
        assemble_geometry(model, 0)


def test_frame_index_out_of_range_keeps_model_usable():
    """A bad frame index fails that call only."""
    model = load_model(create_quad_md2())

    with pytest.raises(IndexError, match="Frame index 3"):
        assemble_geometry(model, 3)

    assert assemble_geometry(model, 0).triangle_count == 2


def test_byte_packing():
    """Vertex and index buffers pack as float32 x5 and uint16."""
    geometry = assemble_geometry(load_model(create_quad_md2()), 0)

    vertex_data = geometry.vertex_bytes()
    index_data = geometry.index_bytes()

    assert len(vertex_data) == 6 * 20
    assert struct.unpack_from("<5f", vertex_data, 0) == (10.0, 10.0, 0.0, 1.0, 1.0)
    assert struct.unpack("<6H", index_data) == (0, 1, 2, 3, 4, 5)


def test_triangle_table_assembly():
    """The triangle table path normalizes texcoords by skin size."""
    data = create_quad_md2(
        tex_coords=[(0, 0), (32, 0), (32, 16)],
        triangles=[((0, 1, 2), (0, 1, 2))],
        skin_size=(64, 32),
    )
    model = load_model(data)

    geometry = assemble_triangle_table(model, 0)

    assert geometry.vertices == [
        (10.0, 10.0, 0.0, 0.5, 0.5),
        (10.0, 0.0, 0.0, 0.5, 0.0),
        (0.0, 0.0, 0.0, 0.0, 0.0),
    ]


def test_triangle_table_bad_texcoord_index():
    """Out-of-range texcoord indices raise IndexError."""
    data = create_quad_md2(tex_coords=[(0, 0)], triangles=[((0, 1, 2), (0, 0, 5))])
    model = load_model(data)

    with pytest.raises(IndexError, match="Texcoord index 5"):
        assemble_triangle_table(model, 0)


def test_triangle_table_zero_skin_size():
    """Texcoords cannot be normalized without a skin size."""
    data = create_quad_md2(tex_coords=[(0, 0)], triangles=[((0, 1, 2), (0, 0, 0))], skin_size=(0, 0))
    model = load_model(data)

    with pytest.raises(FormatError, match="skin size"):
        assemble_triangle_table(model, 0)
