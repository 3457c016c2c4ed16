"""Convert MD2 strips and fans into independent triangles."""
from typing import Iterable, List, Sequence

from md2_types import Corner, DrawGroup, PrimitiveKind, Triangle


def triangulate_strip(corners: Sequence[Corner]) -> List[Triangle]:
    """Split a triangle strip into triangles.

    A strip flips its implicit winding on every step, so the emitted corner
    order alternates between (c2, c1, c0) and (c0, c1, c2), starting with
    the reversed order.

    Example: strip [0, 1, 2, 3] -> (2, 1, 0), (1, 2, 3)
    """
    triangles = []
    clockwise = False
    for i in range(len(corners) - 2):
        c0, c1, c2 = corners[i], corners[i + 1], corners[i + 2]
        if clockwise:
            triangles.append(Triangle((c0, c1, c2)))
        else:
            triangles.append(Triangle((c2, c1, c0)))
        clockwise = not clockwise
    return triangles


def triangulate_fan(corners: Sequence[Corner]) -> List[Triangle]:
    """Split a triangle fan into triangles around its first corner.

    Winding is the same for every triangle of a fan, so there is no
    alternation.

    Example: fan [0, 1, 2, 3, 4] -> (2, 1, 0), (3, 2, 0), (4, 3, 0)
    """
    if len(corners) < 3:
        return []
    pivot = corners[0]
    return [
        Triangle((corners[i + 1], corners[i], pivot))
        for i in range(1, len(corners) - 1)
    ]


def triangulate_group(group: DrawGroup) -> List[Triangle]:
    """Triangulate one draw group. Groups under 3 corners give no triangles."""
    if group.kind == PrimitiveKind.STRIP:
        return triangulate_strip(group.corners)
    return triangulate_fan(group.corners)


def triangulate(groups: Iterable[DrawGroup]) -> List[Triangle]:
    """Triangulate draw groups, keeping buffer order."""
    triangles = []
    for group in groups:
        triangles.extend(triangulate_group(group))
    return triangles
