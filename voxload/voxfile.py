"""VoxFile loader and the chunk readers behind it.

The goal of this module is to read MagicaVoxel .vox files into dense and/or
sparse models. A .vox file is a 4-byte signature and a version number followed
by a RIFF-like tree of chunks; each chunk declares the size of its own
contents and of its children, so chunks this module does not understand can
be stepped over without being parsed.

File format reference:
https://github.com/ephtracy/voxel-model/blob/master/MagicaVoxel-file-format-vox.txt
"""

import io
import logging
from typing import BinaryIO, Optional

from voxload.culling import remove_hidden_voxels
from voxload.errors import (
    BoundsError,
    SignatureMismatchError,
    StructuralError,
    VoxIOError,
)
from voxload.volume import DenseModel, Palette, Size, SparseModel, Voxel

logger = logging.getLogger(__name__)


class ByteCursor:
    """Little-endian reader over a seekable binary stream."""

    def __init__(self, stream: BinaryIO):
        self.stream = stream
        self.size = stream.seek(0, io.SEEK_END)
        stream.seek(0)

    def tell(self) -> int:
        return self.stream.tell()

    def seek(self, offset: int):
        if offset < 0 or offset > self.size:
            raise VoxIOError(f"Cannot seek to {offset}; data is {self.size} bytes")
        self.stream.seek(offset)

    def read_bytes(self, n: int) -> bytes:
        """Read exactly n bytes."""
        offset = self.tell()
        data = self.stream.read(n)
        if len(data) != n:
            raise VoxIOError(
                f"Unexpected end of data: wanted {n} bytes at {offset}, got {len(data)}"
            )
        return data

    def read_uint8(self) -> int:
        return self.read_bytes(1)[0]

    def read_int8(self) -> int:
        return int.from_bytes(self.read_bytes(1), "little", signed=True)

    def read_uint32(self) -> int:
        return int.from_bytes(self.read_bytes(4), "little", signed=False)

    def read_int32(self) -> int:
        return int.from_bytes(self.read_bytes(4), "little", signed=True)


class DecodeState:
    """Everything a single load accumulates while walking the chunk tree."""

    def __init__(
        self,
        load_dense: bool = True,
        load_sparse: bool = True,
        remove_hidden_voxels: bool = True,
        cull_dense: bool = True,
    ):
        self.load_dense = load_dense
        self.load_sparse = load_sparse
        self.remove_hidden_voxels = remove_hidden_voxels
        self.cull_dense = cull_dense

        # size declared by the last SIZE chunk, consumed by the next XYZI chunk
        self.size = Size(0, 0, 0)
        self.palette = Palette()
        self.dense_models: list[DenseModel] = []
        self.sparse_models: list[SparseModel] = []


class Chunk:
    """Chunk class.

    Subclasses decode the contents of one chunk type. The base class reads
    nothing, which is what happens to chunks with an unknown ID.
    """

    id = b""
    has_children = False

    @classmethod
    def read_contents(
        cls,
        cursor: ByteCursor,
        state: DecodeState,
        contents_size: int,
        children_size: int,
    ):
        """Decode the chunk contents at the cursor into the given state."""


class MainChunk(Chunk):
    """Main chunk class.

    Chunk 'MAIN'
    {
        // models
        Chunk 'SIZE'
        Chunk 'XYZI'

        ...

        Chunk 'SIZE'
        Chunk 'XYZI'

        // palette
        Chunk 'RGBA'    : optional

        // anything else is skipped
    }
    """

    id = b"MAIN"

    has_children = True

    @classmethod
    def read_contents(cls, cursor, state, contents_size, children_size):
        # MAIN has no contents of its own worth reading; its children follow
        cursor.seek(cursor.tell() + contents_size)


class SizeChunk(Chunk):
    """Size chunk class.

    -------------------------------------------------------------------------------
    # Bytes  | Type       | Value
    -------------------------------------------------------------------------------
    4        | int        | size x
    4        | int        | size y
    4        | int        | size z : gravity direction
    -------------------------------------------------------------------------------
    """

    id = b"SIZE"

    @classmethod
    def read_contents(cls, cursor, state, contents_size, children_size):
        if contents_size < 12:
            raise StructuralError(
                f"{cls.id!r} chunk holds {contents_size} bytes; expected 12"
            )

        x = cursor.read_uint32()
        y = cursor.read_uint32()
        z = cursor.read_uint32()

        state.size = Size(x, y, z)


class XYZIChunk(Chunk):
    """XYZI chunk class.

    -------------------------------------------------------------------------------
    # Bytes  | Type       | Value
    -------------------------------------------------------------------------------
    4        | int        | numVoxels (N)
    4 x N    | int        | (x, y, z, colorIndex) : 1 byte for each component
    -------------------------------------------------------------------------------

    Each XYZI chunk becomes one model, sized by the SIZE chunk before it.
    """

    id = b"XYZI"

    @classmethod
    def read_contents(cls, cursor, state, contents_size, children_size):
        num_voxels = cursor.read_uint32()
        if 4 + 4 * num_voxels > contents_size:
            raise StructuralError(
                f"{cls.id!r} chunk declares {num_voxels} voxels but holds only "
                f"{contents_size} bytes"
            )

        data = cursor.read_bytes(4 * num_voxels)
        voxels = [Voxel(*data[i : i + 4]) for i in range(0, len(data), 4)]

        build_models(state, state.size, voxels)


class PaletteChunk(Chunk):
    """Palette chunk class.

    -------------------------------------------------------------------------------
    # Bytes  | Type     | Value
    -------------------------------------------------------------------------------
    4 x 256  | int      | (R, G, B, A) : 1 byte for each component
                        | * <NOTICE>
                        | * color [0-254] are mapped to palette index [1-255], e.g :
                        |
                        | for ( int i = 0; i <= 254; i++ ) {
                        |     palette[i + 1] = ReadRGBA();
                        | }
    -------------------------------------------------------------------------------
    """

    id = b"RGBA"

    @classmethod
    def read_contents(cls, cursor, state, contents_size, children_size):
        if contents_size < 4 * 255:
            raise StructuralError(
                f"{cls.id!r} chunk holds {contents_size} bytes; expected 1024"
            )

        # a later palette chunk replaces an earlier one
        state.palette.load(cursor)


CHUNK_TYPES: dict[bytes, type[Chunk]] = {
    chunk_type.id: chunk_type
    for chunk_type in (MainChunk, SizeChunk, XYZIChunk, PaletteChunk)
}


def _read_one_chunk(cursor: ByteCursor, state: DecodeState, limit: int):
    """Read one chunk header and the contents behind it.

    Returns the chunk type and the offset the chunk ends at. The cursor is left
    wherever the contents reader stopped.
    """
    chunk_id = cursor.read_bytes(4)
    contents_size = cursor.read_uint32()
    children_size = cursor.read_uint32()
    contents_start = cursor.tell()

    end = contents_start + contents_size + children_size
    if end > limit:
        raise StructuralError(
            f"Chunk {chunk_id!r} at {contents_start - 12} ends at {end}, "
            f"past its container's end at {limit}"
        )

    chunk_type = CHUNK_TYPES.get(chunk_id, Chunk)
    if chunk_type is Chunk:
        logger.debug("Skipping unknown chunk %r (%d bytes)", chunk_id, end - contents_start)
    else:
        logger.debug(
            "Reading chunk %r at %d: contents %d bytes, children %d bytes",
            chunk_id,
            contents_start,
            contents_size,
            children_size,
        )
    chunk_type.read_contents(cursor, state, contents_size, children_size)

    return chunk_type, end


def read_chunk(cursor: ByteCursor, state: DecodeState, limit: int):
    """Read the chunk at the cursor, and every chunk nested in it.

    ``limit`` is the offset the chunk must end by. Afterwards the cursor is just
    past the chunk. Nesting is walked with an explicit stack, so arbitrarily
    deep trees do not exhaust the interpreter's recursion limit.
    """
    # ends of the containers entered so far; the innermost is last
    container_ends = [limit]
    while True:
        chunk_type, end = _read_one_chunk(cursor, state, container_ends[-1])

        if chunk_type.has_children:
            # the children follow the contents, which read_contents skipped
            container_ends.append(end)
        else:
            # whatever was or was not consumed, the next chunk starts here
            cursor.seek(end)

        while len(container_ends) > 1 and cursor.tell() >= container_ends[-1]:
            cursor.seek(container_ends.pop())

        if len(container_ends) == 1:
            return


def build_models(state: DecodeState, size: Size, voxels: list[Voxel]):
    """Turn one decoded voxel list into the models the state asks for.

    Records with color index 0 describe empty cells and are dropped.
    """
    try:
        dense = DenseModel(size)
    except (ValueError, OverflowError, MemoryError) as exc:
        raise StructuralError(f"Cannot allocate a model of size {tuple(size)}") from exc

    filled = []
    for voxel in voxels:
        if voxel.x >= size.x or voxel.y >= size.y or voxel.z >= size.z:
            raise BoundsError(voxel, size)
        if voxel.color == 0:
            continue
        dense.data[voxel.x + voxel.y * size.x + voxel.z * size.x * size.y] = voxel.color
        filled.append(voxel)
    voxels = filled

    if state.remove_hidden_voxels:
        visible = remove_hidden_voxels(dense, voxels, clear_dense=state.cull_dense)
    else:
        visible = list(voxels)

    if state.load_dense:
        state.dense_models.append(dense)
    if state.load_sparse:
        state.sparse_models.append(SparseModel(size, visible))


class VoxFile:
    """VoxFile class.

    Loads the models and (optional) palette of a .vox file as dense models,
    sparse models, or both. An instance is not meant to be shared between
    threads; use one per concurrent load.
    """

    SIGNATURE = b"VOX "

    def __init__(
        self,
        load_dense: bool = True,
        load_sparse: bool = True,
        remove_hidden_voxels: bool = True,
        cull_dense: bool = True,
    ):
        """VoxFile constructor.

        load_dense: load the models as dense models, see dense_models
        load_sparse: load the models as sparse models, see sparse_models
        remove_hidden_voxels: drop voxels whose six sides are all covered by
            other voxels, and which therefore can never be seen
        cull_dense: also clear hidden voxels from the dense models; when False,
            only the sparse models lose them
        """
        self.load_dense = load_dense
        self.load_sparse = load_sparse
        self.remove_hidden_voxels = remove_hidden_voxels
        self.cull_dense = cull_dense

        self.version: Optional[int] = None
        self.palette = Palette()
        self.dense_models: list[DenseModel] = []
        self.sparse_models: list[SparseModel] = []

    def load(self, path: str):
        """Clear any previous result and load the file at the given path.

        Nothing is replaced unless the whole file decodes.
        """
        state = DecodeState(
            self.load_dense,
            self.load_sparse,
            self.remove_hidden_voxels,
            self.cull_dense,
        )

        try:
            f = open(path, "rb")
        except OSError as exc:
            raise VoxIOError(f"Cannot open {path}: {exc}") from exc

        with f:
            cursor = ByteCursor(f)

            signature = cursor.read_bytes(4)
            if signature != self.SIGNATURE:
                raise SignatureMismatchError(self.SIGNATURE, signature)

            version = cursor.read_int32()

            # only the root chunk (MAIN) is read; anything after it is ignored
            read_chunk(cursor, state, cursor.size)

        for model in state.dense_models:
            model.palette = state.palette.copy()
        for model in state.sparse_models:
            model.palette = state.palette.copy()

        self.version = version
        self.palette = state.palette
        self.dense_models = state.dense_models
        self.sparse_models = state.sparse_models

        logger.info(
            "Loaded %s (version %d): %d dense, %d sparse models",
            path,
            version,
            len(self.dense_models),
            len(self.sparse_models),
        )
