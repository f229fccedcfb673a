"""Model classes for VoxLoad.

The goal of this module is to provide the in-memory forms a decoded .vox file
is loaded into: a dense grid of palette indices, a sparse list of voxels, and
the 256-color palette both of them refer to.
"""

from typing import Iterator, NamedTuple, Optional, Union

import numpy as np

from voxload.errors import BoundsError


class Size(NamedTuple):
    """Extent of a model along each axis."""

    x: int
    y: int
    z: int


class Voxel(NamedTuple):
    """A filled cell: its coordinates and a palette index (0 means empty)."""

    x: int
    y: int
    z: int
    color: int


class Color(NamedTuple):
    """RGBA color, as four bytes ranging from 0 to 255."""

    r: int
    g: int
    b: int
    a: int = 255

    @classmethod
    def from_packed(cls, value: int) -> "Color":
        """Unpack a little-endian 32-bit value: byte 0 is red, byte 3 alpha."""
        return cls(
            value & 0xFF,
            (value >> 8) & 0xFF,
            (value >> 16) & 0xFF,
            (value >> 24) & 0xFF,
        )


# MagicaVoxel's default palette, used when a file carries no RGBA chunk.
DEFAULT_PALETTE: tuple[Color, ...] = tuple(
    Color.from_packed(value)
    for value in (
        0xffffffff, 0xffffffcc, 0xffffff99, 0xffffff66, 0xffffff33, 0xffffff00,
        0xffffccff, 0xffffcccc, 0xffffcc99, 0xffffcc66, 0xffffcc33, 0xffffcc00,
        0xffff99ff, 0xffff99cc, 0xffff9999, 0xffff9966, 0xffff9933, 0xffff9900,
        0xffff66ff, 0xffff66cc, 0xffff6699, 0xffff6666, 0xffff6633, 0xffff6600,
        0xffff33ff, 0xffff33cc, 0xffff3399, 0xffff3366, 0xffff3333, 0xffff3300,
        0xffff00ff, 0xffff00cc, 0xffff0099, 0xffff0066, 0xffff0033, 0xffff0000,
        0xffccffff, 0xffccffcc, 0xffccff99, 0xffccff66, 0xffccff33, 0xffccff00,
        0xffccccff, 0xffcccccc, 0xffcccc99, 0xffcccc66, 0xffcccc33, 0xffcccc00,
        0xffcc99ff, 0xffcc99cc, 0xffcc9999, 0xffcc9966, 0xffcc9933, 0xffcc9900,
        0xffcc66ff, 0xffcc66cc, 0xffcc6699, 0xffcc6666, 0xffcc6633, 0xffcc6600,
        0xffcc33ff, 0xffcc33cc, 0xffcc3399, 0xffcc3366, 0xffcc3333, 0xffcc3300,
        0xffcc00ff, 0xffcc00cc, 0xffcc0099, 0xffcc0066, 0xffcc0033, 0xffcc0000,
        0xff99ffff, 0xff99ffcc, 0xff99ff99, 0xff99ff66, 0xff99ff33, 0xff99ff00,
        0xff99ccff, 0xff99cccc, 0xff99cc99, 0xff99cc66, 0xff99cc33, 0xff99cc00,
        0xff9999ff, 0xff9999cc, 0xff999999, 0xff999966, 0xff999933, 0xff999900,
        0xff9966ff, 0xff9966cc, 0xff996699, 0xff996666, 0xff996633, 0xff996600,
        0xff9933ff, 0xff9933cc, 0xff993399, 0xff993366, 0xff993333, 0xff993300,
        0xff9900ff, 0xff9900cc, 0xff990099, 0xff990066, 0xff990033, 0xff990000,
        0xff66ffff, 0xff66ffcc, 0xff66ff99, 0xff66ff66, 0xff66ff33, 0xff66ff00,
        0xff66ccff, 0xff66cccc, 0xff66cc99, 0xff66cc66, 0xff66cc33, 0xff66cc00,
        0xff6699ff, 0xff6699cc, 0xff669999, 0xff669966, 0xff669933, 0xff669900,
        0xff6666ff, 0xff6666cc, 0xff666699, 0xff666666, 0xff666633, 0xff666600,
        0xff6633ff, 0xff6633cc, 0xff663399, 0xff663366, 0xff663333, 0xff663300,
        0xff6600ff, 0xff6600cc, 0xff660099, 0xff660066, 0xff660033, 0xff660000,
        0xff33ffff, 0xff33ffcc, 0xff33ff99, 0xff33ff66, 0xff33ff33, 0xff33ff00,
        0xff33ccff, 0xff33cccc, 0xff33cc99, 0xff33cc66, 0xff33cc33, 0xff33cc00,
        0xff3399ff, 0xff3399cc, 0xff339999, 0xff339966, 0xff339933, 0xff339900,
        0xff3366ff, 0xff3366cc, 0xff336699, 0xff336666, 0xff336633, 0xff336600,
        0xff3333ff, 0xff3333cc, 0xff333399, 0xff333366, 0xff333333, 0xff333300,
        0xff3300ff, 0xff3300cc, 0xff330099, 0xff330066, 0xff330033, 0xff330000,
        0xff00ffff, 0xff00ffcc, 0xff00ff99, 0xff00ff66, 0xff00ff33, 0xff00ff00,
        0xff00ccff, 0xff00cccc, 0xff00cc99, 0xff00cc66, 0xff00cc33, 0xff00cc00,
        0xff0099ff, 0xff0099cc, 0xff009999, 0xff009966, 0xff009933, 0xff009900,
        0xff0066ff, 0xff0066cc, 0xff006699, 0xff006666, 0xff006633, 0xff006600,
        0xff0033ff, 0xff0033cc, 0xff003399, 0xff003366, 0xff003333, 0xff003300,
        0xff0000ff, 0xff0000cc, 0xff000099, 0xff000066, 0xff000033, 0xffee0000,
        0xffdd0000, 0xffbb0000, 0xffaa0000, 0xff880000, 0xff770000, 0xff550000,
        0xff440000, 0xff220000, 0xff110000, 0xff00ee00, 0xff00dd00, 0xff00bb00,
        0xff00aa00, 0xff008800, 0xff007700, 0xff005500, 0xff004400, 0xff002200,
        0xff001100, 0xff0000ee, 0xff0000dd, 0xff0000bb, 0xff0000aa, 0xff000088,
        0xff000077, 0xff000055, 0xff000044, 0xff000022, 0xff000011, 0xffeeeeee,
        0xffdddddd, 0xffbbbbbb, 0xffaaaaaa, 0xff888888, 0xff777777, 0xff555555,
        0xff444444, 0xff222222, 0xff111111, 0xff000000,
    )
)


class Palette:
    """Palette class.

    Always holds exactly 256 colors. Index 0 stands for "no voxel" and is never
    drawn; a palette chunk in the file only ever fills indices 1 to 255.
    """

    SIZE = 256

    def __init__(self, colors: Optional[list[Color]] = None):
        if colors is None:
            colors = list(DEFAULT_PALETTE)
        if len(colors) != self.SIZE:
            raise ValueError(f"Palette needs {self.SIZE} colors, got {len(colors)}")
        self.colors = list(colors)

    def load(self, cursor) -> None:
        """Overwrite indices 1..255 with the records of an RGBA chunk.

        The chunk holds 256 records but the first one maps to index 1, so the
        final record has no slot and is left unread.
        """
        for i in range(1, self.SIZE):
            r = cursor.read_uint8()
            g = cursor.read_uint8()
            b = cursor.read_uint8()
            a = cursor.read_uint8()
            self.colors[i] = Color(r, g, b, a)

    def copy(self) -> "Palette":
        return Palette(self.colors)

    def to_array(self) -> np.ndarray:
        """Return the palette as a (256, 4) uint8 RGBA array."""
        return np.array(self.colors, dtype=np.uint8)

    def __getitem__(self, index: int) -> Color:
        return self.colors[index]

    def __setitem__(self, index: int, color: Color):
        self.colors[index] = Color(*color)

    def __len__(self) -> int:
        return self.SIZE

    def __iter__(self) -> Iterator[Color]:
        return iter(self.colors)

    def __eq__(self, other):
        if not isinstance(other, Palette):
            return False
        return self.colors == other.colors

    def __repr__(self):
        return f"Palette({self.colors[1:4]}...)"


def _as_size(size: Union[Size, tuple[int, int, int]]) -> Size:
    return size if isinstance(size, Size) else Size(*size)


class DenseModel:
    """Dense representation of a voxel model.

    A flat array of palette indices, one per cell, where cell (x, y, z) lives at
    ``x + y * size.x + z * size.x * size.y``. Empty cells hold 0.
    """

    def __init__(
        self,
        size: Union[Size, tuple[int, int, int]],
        data: Optional[np.ndarray] = None,
        palette: Optional[Palette] = None,
    ):
        self._size = _as_size(size)
        cells = self._size.x * self._size.y * self._size.z
        if data is None:
            data = np.zeros(cells, dtype=np.uint8)
        elif data.size != cells:
            raise ValueError(f"Expected {cells} cells, got {data.size}")
        self.data = data
        self.palette = palette if palette is not None else Palette()

    @property
    def size(self) -> Size:
        return self._size

    def _offset(self, x: int, y: int, z: int) -> int:
        if not (
            0 <= x < self._size.x and 0 <= y < self._size.y and 0 <= z < self._size.z
        ):
            raise BoundsError((x, y, z), self._size)
        return x + y * self._size.x + z * self._size.x * self._size.y

    def voxel(self, x: int, y: int, z: int) -> int:
        return int(self.data[self._offset(x, y, z)])

    def set_voxel(self, x: int, y: int, z: int, color: int):
        self.data[self._offset(x, y, z)] = color

    def as_array(self) -> np.ndarray:
        """Return a view of the grid indexed as ``[x, y, z]``."""
        return self.data.reshape(self._size, order="F")

    def __eq__(self, other):
        if not isinstance(other, DenseModel):
            return False
        return (
            self._size == other._size
            and np.array_equal(self.data, other.data)
            and self.palette == other.palette
        )


class SparseModel:
    """Sparse representation of a voxel model.

    Only filled voxels are stored, in the order they were read. For models
    with few filled cells this is smaller than the dense grid and cheaper to
    walk, since empty cells never need to be visited.
    """

    def __init__(
        self,
        size: Union[Size, tuple[int, int, int]],
        voxels: Optional[list[Voxel]] = None,
        palette: Optional[Palette] = None,
    ):
        self._size = _as_size(size)
        self.voxels: list[Voxel] = list(voxels) if voxels is not None else []
        self.palette = palette if palette is not None else Palette()

    @property
    def size(self) -> Size:
        return self._size

    def to_dense(self) -> DenseModel:
        """Rebuild the dense grid described by this voxel list."""
        dense = DenseModel(self._size, palette=self.palette.copy())
        for voxel in self.voxels:
            dense.set_voxel(voxel.x, voxel.y, voxel.z, voxel.color)
        return dense

    def __len__(self) -> int:
        return len(self.voxels)

    def __eq__(self, other):
        if not isinstance(other, SparseModel):
            return False
        return (
            self._size == other._size
            and self.voxels == other.voxels
            and self.palette == other.palette
        )
