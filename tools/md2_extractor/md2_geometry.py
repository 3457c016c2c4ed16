"""Geometry assembly for MD2 models.

Resolves triangle corners against one frame's quantized vertices. Every
triangle corner becomes its own (x, y, z, s, t) vertex, so the index buffer
simply counts 0..N-1.
"""
import logging
from typing import List

from md2_triangulate import triangulate
from md2_types import AssembledGeometry, Corner, FormatError, Frame, Model, Triangle

_log = logging.getLogger("md2_extractor")


def get_frame(model: Model, frame_index: int) -> Frame:
    """Return a frame, raising IndexError outside [0, frame_count)."""
    if not 0 <= frame_index < model.frame_count:
        raise IndexError(f"Frame index {frame_index} out of range (0..{model.frame_count - 1})")
    return model.frames[frame_index]


def corner_position(frame: Frame, vertex_index: int, apply_translate: bool = False):
    """Expand a quantized vertex to model space.

    Args:
        frame: Frame holding the vertex
        vertex_index: Index into frame.vertices
        apply_translate: Add the frame's translate vector after scaling.
            Off by default: positions are scale-only.

    Raises:
        IndexError: If vertex_index is outside the frame's vertex range
    """
    if not 0 <= vertex_index < len(frame.vertices):
        raise IndexError(
            f"Vertex index {vertex_index} out of range (0..{len(frame.vertices) - 1})"
        )
    v = frame.vertices[vertex_index]
    sx, sy, sz = frame.scale
    x, y, z = v.x * sx, v.y * sy, v.z * sz
    if apply_translate:
        tx, ty, tz = frame.translate
        x, y, z = x + tx, y + ty, z + tz
    return x, y, z


def build_geometry(frame: Frame, triangles: List[Triangle], apply_translate: bool = False) -> AssembledGeometry:
    """Emit one vertex and one index per triangle corner."""
    geometry = AssembledGeometry()
    for triangle in triangles:
        for corner in triangle.corners:
            x, y, z = corner_position(frame, corner.vertex_index, apply_translate)
            geometry.indices.append(len(geometry.vertices))
            geometry.vertices.append((x, y, z, corner.s, corner.t))

    return geometry


def assemble_geometry(model: Model, frame_index: int, apply_translate: bool = False) -> AssembledGeometry:
    """Build the triangle list of one frame from the command buffer.

    Args:
        model: Loaded MD2 model
        frame_index: Frame to take vertex positions from
        apply_translate: Add each frame's translate vector to positions

    Returns:
        AssembledGeometry with 3 vertices per triangle

    Raises:
        IndexError: If the frame or a referenced vertex is out of range
    """
    frame = get_frame(model, frame_index)
    triangles = triangulate(model.draw_groups)
    geometry = build_geometry(frame, triangles, apply_translate)
    _log.debug(
        "Assembled frame %d (%s): %d triangles", frame_index, frame.name, geometry.triangle_count
    )
    return geometry


def assemble_triangle_table(model: Model, frame_index: int, apply_translate: bool = False) -> AssembledGeometry:
    """Build the triangle list of one frame from the triangle table.

    The triangle table stores texcoords in skin pixels; they are normalized
    by the skin size. Corners are emitted reversed to match the winding of
    assemble_geometry.

    Raises:
        FormatError: If the header declares a zero skin size
        IndexError: If a frame, vertex or texcoord index is out of range
    """
    frame = get_frame(model, frame_index)
    width, height = model.header.skin_width, model.header.skin_height
    if width <= 0 or height <= 0:
        raise FormatError(f"Invalid skin size {width}x{height}")

    triangles = []
    for record in model.triangles:
        corners = []
        for vertex_index, st_index in zip(record.vertex_indices, record.tex_coord_indices):
            if not 0 <= st_index < len(model.tex_coords):
                raise IndexError(
                    f"Texcoord index {st_index} out of range (0..{len(model.tex_coords) - 1})"
                )
            st = model.tex_coords[st_index]
            corners.append(Corner(vertex_index, st.s / width, st.t / height))
        triangles.append(Triangle(tuple(reversed(corners))))

    return build_geometry(frame, triangles, apply_translate)
