"""
Well-known binary (WKB) geometry decoding and WKT literal encoding.

MySQL hands spatial columns over as a 4-byte SRID followed by standard WKB.
``decode_geometry`` turns those bytes into a small tree of ``Point`` and
``Geometry`` nodes; ``encode_geometry`` renders such a tree back into a
``GeomFromText('...')`` SQL literal for the dump.
"""

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Union

from mysql.connector.conversion import MySQLConverter

from .exceptions import EncodingError

SRID_LENGTH = 4


class WkbType(IntEnum):
    """WKB geometry type tags."""
    POINT = 1
    LINESTRING = 2
    POLYGON = 3
    MULTIPOINT = 4
    MULTILINESTRING = 5
    MULTIPOLYGON = 6
    GEOMETRYCOLLECTION = 7


@dataclass
class Point:
    """A coordinate pair, tagged when it is a geometry on its own."""
    x: float
    y: float
    wkb_type: Optional[int] = None


@dataclass
class Geometry:
    """A sequence of points or nested sequences, optionally tagged."""
    children: list["GeometryNode"] = field(default_factory=list)
    wkb_type: Optional[int] = None


GeometryNode = Union[Point, Geometry]


@dataclass(frozen=True)
class Cursor:
    """Read position in a WKB buffer."""
    buffer: bytes
    position: int = 0

    def read(self, fmt: str) -> tuple[tuple, "Cursor"]:
        """Unpack ``fmt`` at the current position and return the advanced cursor."""
        size = struct.calcsize(fmt)
        end = self.position + size
        if self.position < 0 or end > len(self.buffer):
            raise EncodingError(
                f"Truncated geometry: need {size} bytes at offset {self.position}, "
                f"buffer has {len(self.buffer)}"
            )
        return struct.unpack_from(fmt, self.buffer, self.position), Cursor(self.buffer, end)


def is_geometry(value: object) -> bool:
    """True for decoded geometry values carrying a type tag."""
    return isinstance(value, (Point, Geometry)) and value.wkb_type is not None


def decode_geometry(buffer: bytes, offset: int = 0) -> tuple[GeometryNode, int]:
    """
    Decode the WKB geometry starting at ``offset``.

    Returns the decoded tree and the offset just past it.

    Raises:
        EncodingError: if the buffer is truncated or holds an unknown type tag.
    """
    node, cursor = _decode(Cursor(bytes(buffer), offset), tagged=True)
    return node, cursor.position


def _decode(cursor: Cursor, tagged: bool) -> tuple[GeometryNode, Cursor]:
    (byte_order,), cursor = cursor.read('B')
    endian = '<' if byte_order else '>'
    (wkb_type,), cursor = cursor.read(f'{endian}I')
    tag = wkb_type if tagged else None

    if wkb_type == WkbType.POINT:
        (x, y), cursor = cursor.read(f'{endian}dd')
        return Point(x, y, tag), cursor

    if wkb_type == WkbType.LINESTRING:
        points, cursor = _read_points(cursor, endian)
        return Geometry(points, tag), cursor

    if wkb_type == WkbType.POLYGON:
        (ring_count,), cursor = cursor.read(f'{endian}I')
        rings = []
        for _ in range(ring_count):
            points, cursor = _read_points(cursor, endian)
            rings.append(Geometry(points))
        return Geometry(rings, tag), cursor

    if wkb_type in (WkbType.MULTIPOINT, WkbType.MULTILINESTRING,
                    WkbType.MULTIPOLYGON, WkbType.GEOMETRYCOLLECTION):
        (count,), cursor = cursor.read(f'{endian}I')
        # Collection members keep their own keyword, MULTI* members do not.
        tag_members = wkb_type == WkbType.GEOMETRYCOLLECTION
        members = []
        for _ in range(count):
            member, cursor = _decode(cursor, tagged=tag_members)
            members.append(member)
        return Geometry(members, tag), cursor

    raise EncodingError(f"Unknown WKB geometry type {wkb_type} at offset {cursor.position - 4}")


def _read_points(cursor: Cursor, endian: str) -> tuple[list[Point], Cursor]:
    (count,), cursor = cursor.read(f'{endian}I')
    points = []
    for _ in range(count):
        (x, y), cursor = cursor.read(f'{endian}dd')
        points.append(Point(x, y))
    return points, cursor


def encode_geometry(node: GeometryNode) -> str:
    """Render a decoded geometry as a ``GeomFromText('...')`` literal."""
    return f"GeomFromText('{_to_wkt(node)}')"


def _to_wkt(node: GeometryNode) -> str:
    if isinstance(node, Point):
        text = f"{_format_coordinate(node.x)} {_format_coordinate(node.y)}"
    else:
        text = '(' + ','.join(_to_wkt(child) for child in node.children) + ')'

    if node.wkb_type:
        if not text.startswith('('):
            text = f'({text})'
        text = WkbType(node.wkb_type).name + text
    return text


def _format_coordinate(value: float) -> str:
    """Shortest round-trip text, integral values without a trailing ``.0``."""
    if float(value).is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(float(value))


class GeometryConverter(MySQLConverter):
    """Driver converter that decodes GEOMETRY columns into geometry trees."""

    def _geometry_to_python(self, value, desc=None):
        geometry, _ = decode_geometry(value, SRID_LENGTH)
        return geometry

    # Older connector releases look the hook up by the upper-case type name.
    _GEOMETRY_to_python = _geometry_to_python
