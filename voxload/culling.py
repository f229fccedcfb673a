"""Removal of voxels that can never be seen.

A voxel is hidden when it is not on the outer shell of its model and all six
face neighbors are filled. Cells are tested against the grid as it is being
culled, so a voxel next to one that was already removed counts as exposed.
"""

import logging

from voxload.volume import DenseModel, Voxel

logger = logging.getLogger(__name__)


def _is_hidden(grid, voxel: Voxel, size) -> bool:
    x, y, z = voxel.x, voxel.y, voxel.z
    if not (0 < x < size.x - 1 and 0 < y < size.y - 1 and 0 < z < size.z - 1):
        return False

    row = size.x
    layer = size.x * size.y
    offset = x + y * row + z * layer
    return bool(
        grid[offset - 1]
        and grid[offset + 1]
        and grid[offset - row]
        and grid[offset + row]
        and grid[offset - layer]
        and grid[offset + layer]
    )


def remove_hidden_voxels(
    dense: DenseModel, voxels: list[Voxel], clear_dense: bool = True
) -> list[Voxel]:
    """Return the voxels of ``voxels`` that are not hidden inside ``dense``.

    With ``clear_dense`` the cells of hidden voxels are zeroed in ``dense``
    itself; otherwise the work happens on a copy and ``dense`` is untouched.
    Either way the returned list is the same.
    """
    grid = dense.data if clear_dense else dense.data.copy()
    size = dense.size

    visible = []
    for voxel in voxels:
        if _is_hidden(grid, voxel, size):
            grid[voxel.x + voxel.y * size.x + voxel.z * size.x * size.y] = 0
        else:
            visible.append(voxel)

    logger.debug(
        "Culled %d of %d voxels in model of size %s",
        len(voxels) - len(visible),
        len(voxels),
        tuple(size),
    )
    return visible
