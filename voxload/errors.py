"""Exceptions raised while loading .vox files."""


class VoxError(Exception):
    """Base class for all .vox decode failures."""


class VoxIOError(VoxError, OSError):
    """The file could not be opened, or a read went past the end of data."""


class SignatureMismatchError(VoxError, ValueError):
    """The file does not start with the expected 4-byte tag."""

    def __init__(self, expected: bytes, found: bytes):
        super().__init__(
            f"Chunk ID mismatch: expected {expected!r} but found {found!r}"
        )
        self.expected = expected
        self.found = found


class BoundsError(VoxError, IndexError):
    """A voxel lies outside the size declared for its model."""

    def __init__(self, voxel, size):
        super().__init__(f"Voxel {tuple(voxel[:3])} out of bounds for size {tuple(size)}")
        self.voxel = voxel
        self.size = size


class StructuralError(VoxError, ValueError):
    """A chunk's declared sizes do not agree with the data around it."""
