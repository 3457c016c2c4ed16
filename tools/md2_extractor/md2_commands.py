"""Interpreter for the MD2 command buffer ("GL commands").

The buffer is a list of 32-bit words whose meaning depends on their position:

    count  s  t  vertex  s  t  vertex  ...  count  ...  0

``count > 0`` starts a triangle strip and ``count < 0`` a triangle fan of
``|count|`` corners; each corner is a (float s, float t, int vertex) triple.
A zero count ends the buffer.
"""
import struct
from typing import List, NamedTuple, Optional, Sequence, Tuple

from md2_types import Corner, DrawGroup, FormatError, PrimitiveKind

WORDS_PER_CORNER = 3


def _as_int32(word: int) -> int:
    return struct.unpack("<i", struct.pack("<I", word))[0]


def _as_float32(word: int) -> float:
    return struct.unpack("<f", struct.pack("<I", word))[0]


class CommandCursor(NamedTuple):
    """Read position in the command word list.

    Every read returns the decoded value together with the advanced cursor,
    the cursor itself is never mutated.
    """

    words: Sequence[int]
    position: int = 0

    @property
    def remaining(self) -> int:
        return len(self.words) - self.position

    def read_int(self) -> Tuple[int, "CommandCursor"]:
        if self.remaining < 1:
            raise FormatError(f"Command buffer truncated at word {self.position}")
        return _as_int32(self.words[self.position]), self._replace(position=self.position + 1)

    def read_corner(self) -> Tuple[Corner, "CommandCursor"]:
        if self.remaining < WORDS_PER_CORNER:
            raise FormatError(f"Command buffer truncated at word {self.position}")
        s_word, t_word, index_word = self.words[self.position:self.position + WORDS_PER_CORNER]
        corner = Corner(
            vertex_index=_as_int32(index_word),
            s=_as_float32(s_word),
            t=_as_float32(t_word),
        )
        return corner, self._replace(position=self.position + WORDS_PER_CORNER)


def read_group(cursor: CommandCursor) -> Tuple[Optional[DrawGroup], CommandCursor]:
    """Decode one strip or fan starting at cursor.

    Returns (None, cursor) when the cursor is on the terminating zero word.

    Raises:
        FormatError: If fewer corners remain than the count word declares
    """
    count, cursor = cursor.read_int()
    if count == 0:
        return None, cursor

    kind = PrimitiveKind.STRIP if count > 0 else PrimitiveKind.FAN
    count = abs(count)
    if cursor.remaining < count * WORDS_PER_CORNER:
        raise FormatError(
            f"Command buffer declares {count} corners at word {cursor.position - 1}, "
            f"only {cursor.remaining} words remain"
        )

    corners = []
    for _ in range(count):
        corner, cursor = cursor.read_corner()
        corners.append(corner)

    return DrawGroup(kind=kind, corners=tuple(corners)), cursor


def interpret_commands(words: Sequence[int]) -> List[DrawGroup]:
    """Reconstruct draw groups from raw command words.

    Args:
        words: Raw unsigned 32-bit command words

    Returns:
        List of DrawGroup in buffer order

    Raises:
        FormatError: If a group runs past the end of the buffer
    """
    groups = []
    cursor = CommandCursor(words)
    # A buffer that ends on a group boundary without a zero word is accepted
    while cursor.remaining > 0:
        group, cursor = read_group(cursor)
        if group is None:
            break
        groups.append(group)
    return groups
