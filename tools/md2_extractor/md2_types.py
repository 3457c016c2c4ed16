"""Type definitions for the MD2 model format."""
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Tuple

# "IDP2" as int32 little-endian
MD2_IDENT = (ord("2") << 24) + (ord("P") << 16) + (ord("D") << 8) + ord("I")
MD2_VERSION = 8

# ident, version, skinwidth, skinheight, framesize, 6 counts, 6 offsets
MD2_HEADER_FMT = "<17i"
MD2_HEADER_SIZE = struct.calcsize(MD2_HEADER_FMT)

# Frame: scale[3], translate[3], name[16], then num_vertices * vertex
MD2_FRAME_HEADER_FMT = "<3f3f16s"
MD2_FRAME_HEADER_SIZE = struct.calcsize(MD2_FRAME_HEADER_FMT)
MD2_FRAME_NAME_LENGTH = 16

# Vertex: x, y, z, normal index
MD2_VERTEX_FMT = "<4B"
MD2_VERTEX_SIZE = struct.calcsize(MD2_VERTEX_FMT)

MD2_SKIN_NAME_LENGTH = 64

# Texture coordinate: s, t in skin pixels
MD2_TEXCOORD_FMT = "<2h"
MD2_TEXCOORD_SIZE = struct.calcsize(MD2_TEXCOORD_FMT)

# Triangle: vertex[3], st[3]
MD2_TRIANGLE_FMT = "<3h3h"
MD2_TRIANGLE_SIZE = struct.calcsize(MD2_TRIANGLE_FMT)

MD2_COMMAND_WORD_SIZE = 4


class FormatError(ValueError):
    """Raised when MD2 data is malformed, truncated or unrecognized."""


class PrimitiveKind(IntEnum):
    STRIP = 0
    FAN = 1


@dataclass(frozen=True)
class MD2Header:
    """MD2 file header, validated against the file length after parsing."""

    ident: int
    version: int
    skin_width: int
    skin_height: int
    frame_size: int
    num_skins: int
    num_vertices: int
    num_tex_coords: int
    num_triangles: int
    num_commands: int
    num_frames: int
    ofs_skins: int
    ofs_tex_coords: int
    ofs_triangles: int
    ofs_frames: int
    ofs_commands: int
    ofs_end: int


@dataclass(frozen=True)
class QuantizedVertex:
    x: int
    y: int
    z: int
    normal_index: int = 0


@dataclass(frozen=True)
class Frame:
    """Single animation frame with byte-quantized vertex positions."""

    name: str
    scale: Tuple[float, float, float]
    translate: Tuple[float, float, float]
    vertices: Tuple[QuantizedVertex, ...] = ()


@dataclass(frozen=True)
class TexCoord:
    s: int
    t: int


@dataclass(frozen=True)
class TriangleRecord:
    """Entry of the triangle table: vertex indices and texcoord indices."""

    vertex_indices: Tuple[int, int, int]
    tex_coord_indices: Tuple[int, int, int]


@dataclass(frozen=True)
class Corner:
    vertex_index: int
    s: float
    t: float


@dataclass(frozen=True)
class DrawGroup:
    """One triangle strip or fan decoded from the command buffer."""

    kind: PrimitiveKind
    corners: Tuple[Corner, ...]


@dataclass(frozen=True)
class Triangle:
    corners: Tuple[Corner, Corner, Corner]


@dataclass(frozen=True)
class Model:
    """Fully decoded MD2 model."""

    header: MD2Header
    frames: Tuple[Frame, ...]
    commands: Tuple[int, ...]
    skins: Tuple[str, ...] = ()
    tex_coords: Tuple[TexCoord, ...] = ()
    triangles: Tuple[TriangleRecord, ...] = ()
    draw_groups: Tuple[DrawGroup, ...] = ()

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    @property
    def vertex_count(self) -> int:
        return self.header.num_vertices


@dataclass
class AssembledGeometry:
    """Flat triangle list: one (x, y, z, s, t) vertex per triangle corner."""

    vertices: List[Tuple[float, float, float, float, float]] = field(default_factory=list)
    indices: List[int] = field(default_factory=list)

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3

    @property
    def positions(self) -> List[Tuple[float, float, float]]:
        return [v[:3] for v in self.vertices]

    @property
    def uvs(self) -> List[Tuple[float, float]]:
        return [v[3:] for v in self.vertices]

    def vertex_bytes(self) -> bytes:
        """Pack vertices as interleaved little-endian float32 (x, y, z, s, t)."""
        return b"".join(struct.pack("<5f", *v) for v in self.vertices)

    def index_bytes(self) -> bytes:
        """Pack indices as little-endian uint16."""
        return struct.pack(f"<{len(self.indices)}H", *self.indices)
