"""VoxLoad: read MagicaVoxel .vox files into dense and sparse models."""

from voxload.errors import (
    BoundsError,
    SignatureMismatchError,
    StructuralError,
    VoxError,
    VoxIOError,
)
from voxload.volume import (
    DEFAULT_PALETTE,
    Color,
    DenseModel,
    Palette,
    Size,
    SparseModel,
    Voxel,
)
from voxload.voxfile import VoxFile

__all__ = [
    "BoundsError",
    "Color",
    "DEFAULT_PALETTE",
    "DenseModel",
    "Palette",
    "SignatureMismatchError",
    "Size",
    "SparseModel",
    "StructuralError",
    "Voxel",
    "VoxError",
    "VoxFile",
    "VoxIOError",
]
