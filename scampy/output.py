# SCAMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# SCAMPY is derived from STUMPY, a trademark of TD Ameritrade IP Company, Inc.

import logging
import math

import numpy as np

from . import config, mpentry
from .mprofile import ProfileType

logger = logging.getLogger(__name__)


def _fmt():
    return f"%.{config.SCAMPY_OUTPUT_PRECISION}g"


def _convert(ρ, output_pearson, m):
    if output_pearson:
        return np.asarray(ρ, dtype=np.float64)
    return np.asarray(mpentry.to_distance(ρ, m), dtype=np.float64)


def iter_matches(profile):
    """
    Iterate over the all-neighbors matches of every row in ascending correlation
    order without modifying the per-row heaps

    Parameters
    ----------
    profile : mprofile
        A `PROFILE_TYPE_APPROX_ALL_NEIGHBORS` profile

    Returns
    -------
    matches : generator
        Every `match` record, row by row
    """
    for heap in profile.data:
        yield from sorted(heap)


def reduce_all_neighbors(profile, height, width, output_height, output_width):
    """
    Downsample the all-neighbors matches of a `height` x `width` correlation matrix
    into a dense `output_height` x `output_width` matrix

    Every output cell holds the largest correlation of all matches that map into it
    or `-1.0` when no match does. A match that maps outside of the output matrix is
    logged and dropped.

    Parameters
    ----------
    profile : mprofile
        A `PROFILE_TYPE_APPROX_ALL_NEIGHBORS` profile

    height : int
        The number of rows of the full correlation matrix

    width : int
        The number of columns of the full correlation matrix

    output_height : int
        The number of rows of the reduced matrix

    output_width : int
        The number of columns of the reduced matrix

    Returns
    -------
    out : numpy.ndarray
        The reduced matrix
    """
    reduced_rows = math.ceil(height / output_height)
    reduced_cols = math.ceil(width / output_width)
    out = np.full((output_height, output_width), -1.0, dtype=np.float64)
    for heap in profile.data:
        for match in heap:
            row = match.row // reduced_rows
            col = match.col // reduced_cols
            if row >= output_height or col >= output_width:
                logger.warning(
                    f"row: {match.row} col: {match.col} corr: {match.corr} "
                    "did not fit into reduced matrix"
                )
            elif out[row, col] < match.corr:
                out[row, col] = match.corr

    return out


def write_matrix(mp_path, output_pearson, matrix, m):
    """
    Write a dense matrix row-major with one row per line where every value is
    followed by a single space

    Parameters
    ----------
    mp_path : str
        The output file path

    output_pearson : bool
        Write Pearson correlations rather than z-normalized Euclidean distances

    matrix : numpy.ndarray
        A 2-D matrix of Pearson correlations

    m : int
        Window size

    Returns
    -------
    None
    """
    matrix = np.atleast_2d(_convert(matrix, output_pearson, m))
    np.savetxt(mp_path, matrix, fmt=_fmt(), delimiter=" ", newline=" \n")


def write_profile(mp_path, mpi_path, profile, output_pearson, m):
    """
    Write a profile of any type to text files

    Parameters
    ----------
    mp_path : str
        The path of the value file

    mpi_path : str
        The path of the index file. This is only written for a
        `PROFILE_TYPE_1NN_INDEX` profile.

    profile : mprofile
        The profile to write

    output_pearson : bool
        Write Pearson correlations rather than z-normalized Euclidean distances.
        Thresholded sums are always written as is.

    m : int
        Window size

    Returns
    -------
    None

    Notes
    -----
    Every value is written with `config.SCAMPY_OUTPUT_PRECISION` significant
    digits. Indices are one-based and `-1` marks an entry without any match.
    """
    fmt = _fmt()
    profile_type = profile.profile_type

    if profile_type == ProfileType.PROFILE_TYPE_1NN_INDEX:
        ρ, I = mpentry.unpack(profile.data)
        I = np.where(ρ < -1.0, -1, I.astype(np.int64) + 1)
        np.savetxt(mp_path, _convert(ρ, output_pearson, m), fmt=fmt)
        np.savetxt(mpi_path, I, fmt="%d")
    elif profile_type == ProfileType.PROFILE_TYPE_1NN:
        np.savetxt(mp_path, _convert(profile.data, output_pearson, m), fmt=fmt)
    elif profile_type == ProfileType.PROFILE_TYPE_SUM_THRESH:
        np.savetxt(mp_path, np.asarray(profile.data, dtype=np.float64), fmt=fmt)
    elif profile_type == ProfileType.PROFILE_TYPE_APPROX_ALL_NEIGHBORS:
        if profile.matrix is not None:
            write_matrix(mp_path, output_pearson, profile.matrix, m)
            return

        with open(mp_path, "w") as f:
            for match in iter_matches(profile):
                value = _convert(match.corr, output_pearson, m)
                f.write(f"{match.col} {match.row} {fmt % float(value)}\n")
    else:
        raise ValueError(f"Cannot write a profile of type {profile_type!r}")
