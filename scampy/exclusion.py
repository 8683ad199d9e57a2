# SCAMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# SCAMPY is derived from STUMPY, a trademark of TD Ameritrade IP Company, Inc.

import math

import numpy as np

from . import config


def get_excl_zone(m):
    """
    Compute the half-width of the exclusion zone for a self-join

    Parameters
    ----------
    m : int
        Window size

    Returns
    -------
    excl_zone : int
        `ceil(m / config.SCAMPY_EXCL_ZONE_DENOM)`

    Notes
    -----
    `DOI: 10.1109/ICDM.2016.0085 \
    <https://www.cs.ucr.edu/~eamonn/STOMP_GPU_final_submission_camera_ready.pdf>`__

    See Definition 3 and Figure 3
    """
    return int(math.ceil(m / config.SCAMPY_EXCL_ZONE_DENOM))


def get_exclusion(m, self_join, transpose=False, row_start=0, col_start=0):
    """
    Compute the half-open range of tile diagonals that must be skipped

    A tile covers subsequences `row_start + i` (rows) and `col_start + j` (columns)
    of the full correlation matrix and its local diagonals are `g = j - i`. For a
    self-join, every global diagonal within `excl_zone` of the main diagonal is a
    trivial match and is excluded. For an AB-join between distinct sequences
    nothing is excluded.

    Parameters
    ----------
    m : int
        Window size

    self_join : bool
        `True` for a self-join and `False` for an AB-join

    transpose : bool, default False
        When `True`, the tile is traversed with its rows and columns swapped and
        the range is expressed in the swapped (local) diagonal space

    row_start : int, default 0
        The global index of the first row of the tile

    col_start : int, default 0
        The global index of the first column of the tile

    Returns
    -------
    exclusion_lower : int
        The first excluded local diagonal

    exclusion_upper : int
        One past the last excluded local diagonal. The range is empty when
        `exclusion_lower == exclusion_upper`.
    """
    if not self_join:
        return 0, 0

    excl_zone = get_excl_zone(m)
    shift = col_start - row_start
    if transpose:
        shift = -shift

    return -excl_zone - shift, excl_zone - shift + 1


def get_tile_diags(
    n_rows, n_cols, exclusion_lower, exclusion_upper, upper_triangle_only=None
):
    """
    Enumerate the local diagonals of a tile that need to be computed

    Parameters
    ----------
    n_rows : int
        The number of subsequences (rows) in the tile

    n_cols : int
        The number of subsequences (columns) in the tile

    exclusion_lower : int
        The first excluded local diagonal

    exclusion_upper : int
        One past the last excluded local diagonal

    upper_triangle_only : int, default None
        When provided, only local diagonals strictly greater than this value are
        kept. Self-joins use this to visit each pair of subsequences exactly once.

    Returns
    -------
    diags : numpy.ndarray
        The local diagonal indices
    """
    diags = np.arange(-(n_rows - 1), n_cols, dtype=np.int64)
    mask = (diags < exclusion_lower) | (diags >= exclusion_upper)
    if upper_triangle_only is not None:
        mask &= diags > upper_triangle_only

    return diags[mask]
