"""Parser for Quake II MD2 model files."""
import logging
import struct
from pathlib import Path
from typing import BinaryIO, Tuple, Union

from md2_commands import interpret_commands
from md2_types import (
    MD2_COMMAND_WORD_SIZE,
    MD2_FRAME_HEADER_FMT,
    MD2_FRAME_HEADER_SIZE,
    MD2_HEADER_FMT,
    MD2_HEADER_SIZE,
    MD2_IDENT,
    MD2_SKIN_NAME_LENGTH,
    MD2_TEXCOORD_FMT,
    MD2_TEXCOORD_SIZE,
    MD2_TRIANGLE_FMT,
    MD2_TRIANGLE_SIZE,
    MD2_VERSION,
    MD2_VERTEX_FMT,
    MD2_VERTEX_SIZE,
    FormatError,
    Frame,
    MD2Header,
    Model,
    QuantizedVertex,
    TexCoord,
    TriangleRecord,
)

_log = logging.getLogger("md2_extractor")

MAX_CORNERS = 0x10000


def _decode_name(raw: bytes) -> str:
    """Decode a NUL-terminated C string."""
    idx = raw.find(b"\x00")
    if idx != -1:
        raw = raw[:idx]
    return raw.decode("ascii", errors="replace")


def _check_range(data_length: int, offset: int, size: int, what: str):
    if offset < 0 or size < 0 or offset + size > data_length:
        raise FormatError(
            f"{what} out of range: offset {offset}, size {size}, file length {data_length}"
        )


def _check_index_width(corner_count: int, what: str):
    # each triangle corner is emitted as its own uint16-indexed vertex
    if corner_count > MAX_CORNERS:
        raise FormatError(f"{what} yields {corner_count} corners, more than a 16-bit index buffer holds")


class MD2Parser:
    """Parses Quake II MD2 model files."""

    def parse_header(self, file: BinaryIO) -> MD2Header:
        """Parse MD2 header from file.

        Args:
            file: Open binary file handle

        Returns:
            MD2Header with parsed data

        Raises:
            FormatError: If the header is truncated or the ident/version is wrong
        """
        data = file.read(MD2_HEADER_SIZE)
        return self.parse_header_bytes(data)

    def parse_header_bytes(self, data: bytes) -> MD2Header:
        """Parse MD2 header from bytes.

        Args:
            data: At least 68 bytes of header data

        Returns:
            MD2Header with parsed data

        Raises:
            FormatError: If the header is truncated or the ident/version is wrong
        """
        if len(data) < MD2_HEADER_SIZE:
            raise FormatError("Header data too short")

        fields = struct.unpack_from(MD2_HEADER_FMT, data, 0)
        header = MD2Header(*fields)

        if header.ident != MD2_IDENT:
            raise FormatError(f"Invalid MD2 magic: {bytes(data[:4])!r}")
        if header.version != MD2_VERSION:
            raise FormatError(f"Unsupported MD2 version: {header.version}")

        return header

    def validate_header(self, header: MD2Header, data_length: int) -> MD2Header:
        """Check every count and table against the file length.

        Done once up front so the table readers can trust the offsets. Only
        arithmetic on the declared counts is performed.

        Raises:
            FormatError: If a count is negative or a table overruns the file
        """
        counts = {
            "frame size": header.frame_size,
            "skin count": header.num_skins,
            "vertex count": header.num_vertices,
            "texcoord count": header.num_tex_coords,
            "triangle count": header.num_triangles,
            "command count": header.num_commands,
            "frame count": header.num_frames,
        }
        for name, value in counts.items():
            if value < 0:
                raise FormatError(f"Negative {name}: {value}")

        _check_range(data_length, header.ofs_end, 0, "End marker")
        _check_range(
            data_length, header.ofs_skins,
            header.num_skins * MD2_SKIN_NAME_LENGTH, "Skin table",
        )
        _check_range(
            data_length, header.ofs_tex_coords,
            header.num_tex_coords * MD2_TEXCOORD_SIZE, "Texcoord table",
        )
        _check_range(
            data_length, header.ofs_triangles,
            header.num_triangles * MD2_TRIANGLE_SIZE, "Triangle table",
        )
        _check_range(
            data_length, header.ofs_commands,
            header.num_commands * MD2_COMMAND_WORD_SIZE, "Command buffer",
        )
        if header.num_frames > 0:
            self._check_frame_size(header)
        _check_range(
            data_length, header.ofs_frames,
            header.num_frames * header.frame_size, "Frame table",
        )

        return header

    def _check_frame_size(self, header: MD2Header):
        needed = MD2_FRAME_HEADER_SIZE + header.num_vertices * MD2_VERTEX_SIZE
        if header.frame_size < needed:
            raise FormatError(
                f"Frame size {header.frame_size} too small for "
                f"{header.num_vertices} vertices (need {needed})"
            )

    def read_frame(self, data: bytes, header: MD2Header, index: int) -> Frame:
        """Decode one animation frame.

        Args:
            data: Whole MD2 file contents
            header: Parsed header
            index: Frame index in [0, num_frames)

        Returns:
            Frame with scale, translate, name and quantized vertices

        Raises:
            IndexError: If index is outside the frame table
            FormatError: If the frame record does not fit in the data
        """
        if not 0 <= index < header.num_frames:
            raise IndexError(f"Frame index {index} out of range (0..{header.num_frames - 1})")

        self._check_frame_size(header)
        offset = header.ofs_frames + index * header.frame_size
        _check_range(len(data), offset, header.frame_size, f"Frame {index}")

        values = struct.unpack_from(MD2_FRAME_HEADER_FMT, data, offset)
        scale = tuple(values[0:3])
        translate = tuple(values[3:6])
        name = _decode_name(values[6])

        start = offset + MD2_FRAME_HEADER_SIZE
        end = start + header.num_vertices * MD2_VERTEX_SIZE
        vertices = tuple(
            QuantizedVertex(x, y, z, n)
            for x, y, z, n in struct.iter_unpack(MD2_VERTEX_FMT, data[start:end])
        )

        return Frame(name=name, scale=scale, translate=translate, vertices=vertices)

    def read_frames(self, data: bytes, header: MD2Header) -> Tuple[Frame, ...]:
        """Decode every frame in the frame table."""
        return tuple(self.read_frame(data, header, i) for i in range(header.num_frames))

    def read_commands(self, data: bytes, header: MD2Header) -> Tuple[int, ...]:
        """Read the command buffer as raw unsigned 32-bit words.

        No interpretation happens here; see md2_commands.interpret_commands.

        Raises:
            FormatError: If the buffer is truncated
        """
        count = header.num_commands
        _check_range(len(data), header.ofs_commands, count * MD2_COMMAND_WORD_SIZE, "Command buffer")
        return struct.unpack_from(f"<{count}I", data, header.ofs_commands)

    def read_skins(self, data: bytes, header: MD2Header) -> Tuple[str, ...]:
        """Read skin (texture) names."""
        size = header.num_skins * MD2_SKIN_NAME_LENGTH
        _check_range(len(data), header.ofs_skins, size, "Skin table")
        return tuple(
            _decode_name(data[off:off + MD2_SKIN_NAME_LENGTH])
            for off in range(header.ofs_skins, header.ofs_skins + size, MD2_SKIN_NAME_LENGTH)
        )

    def read_tex_coords(self, data: bytes, header: MD2Header) -> Tuple[TexCoord, ...]:
        """Read the texcoord table (values in skin pixels)."""
        size = header.num_tex_coords * MD2_TEXCOORD_SIZE
        _check_range(len(data), header.ofs_tex_coords, size, "Texcoord table")
        chunk = data[header.ofs_tex_coords:header.ofs_tex_coords + size]
        return tuple(TexCoord(s, t) for s, t in struct.iter_unpack(MD2_TEXCOORD_FMT, chunk))

    def read_triangles(self, data: bytes, header: MD2Header) -> Tuple[TriangleRecord, ...]:
        """Read the triangle table."""
        size = header.num_triangles * MD2_TRIANGLE_SIZE
        _check_range(len(data), header.ofs_triangles, size, "Triangle table")
        chunk = data[header.ofs_triangles:header.ofs_triangles + size]
        return tuple(
            TriangleRecord(vertex_indices=tuple(t[0:3]), tex_coord_indices=tuple(t[3:6]))
            for t in struct.iter_unpack(MD2_TRIANGLE_FMT, chunk)
        )


def load_model(data: bytes) -> Model:
    """Decode a complete MD2 model from bytes.

    Args:
        data: Whole MD2 file contents

    Returns:
        Immutable Model

    Raises:
        FormatError: If any part of the file is malformed. No partial
            model is returned.
    """
    parser = MD2Parser()
    header = parser.parse_header_bytes(data)
    parser.validate_header(header, len(data))

    commands = parser.read_commands(data, header)
    draw_groups = tuple(interpret_commands(commands))
    _check_index_width(
        sum(max(len(g.corners) - 2, 0) for g in draw_groups) * 3, "Command buffer"
    )
    _check_index_width(header.num_triangles * 3, "Triangle table")

    model = Model(
        header=header,
        frames=parser.read_frames(data, header),
        commands=commands,
        skins=parser.read_skins(data, header),
        tex_coords=parser.read_tex_coords(data, header),
        triangles=parser.read_triangles(data, header),
        draw_groups=draw_groups,
    )
    _log.debug(
        "Loaded MD2: %d frames, %d vertices, %d command words, %d skins",
        model.frame_count, header.num_vertices, header.num_commands, header.num_skins,
    )
    return model


def load_model_file(source: Union[str, Path, BinaryIO]) -> Model:
    """Read a whole MD2 file (path or file-like object) and decode it."""
    if isinstance(source, (str, Path)):
        with open(source, "rb") as file:
            data = file.read()
    else:
        source.seek(0)
        data = source.read()
    return load_model(data)
