# SCAMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# SCAMPY is derived from STUMPY, a trademark of TD Ameritrade IP Company, Inc.

import math
import warnings

import numpy as np
from numba import njit, prange
from scipy.ndimage import maximum_filter1d, minimum_filter1d

from . import config


def check_segment(T, copy=True):
    """
    Validate a segment and return it as a (copied) one-dimensional `float64` array

    Parameters
    ----------
    T : numpy.ndarray
        Time series or segment

    copy : bool, default True
        Return a copy of `T` rather than `T` itself

    Returns
    -------
    T : numpy.ndarray
        The validated segment

    Raises
    ------
    TypeError
        If `T` is not a `float64` array

    ValueError
        If `T` is not one-dimensional
    """
    T = np.array(T) if copy else np.asarray(T)
    if not np.issubdtype(T.dtype, np.float64):
        msg = f"float64 dtype expected but found {T.dtype} in the input segment\n"
        msg += "Please change your input `dtype` with `.astype(np.float64)`"
        raise TypeError(msg)
    if T.ndim != 1:
        raise ValueError(f"A segment must be one-dimensional but found {T.ndim} dims")

    return T


def check_window_size(m, max_size=None, n=None):
    """
    Check that the window size is at least three and at most `max_size`

    When `n` is given, a self-join of a segment of length `n` is assumed and a
    warning is issued if some subsequence has no neighbor outside of its
    exclusion zone.

    Parameters
    ----------
    m : int
        Window size

    max_size : int, default None
        The largest window size allowed

    n : int, default None
        The segment length for a self-join

    Returns
    -------
    None
    """
    if m < 3:
        msg = (
            f"The window size must be at least three but found m = {m}. A Pearson "
            + "correlation of two samples is always -1, 0, or 1."
        )
        raise ValueError(msg)

    if max_size is not None and m > max_size:
        raise ValueError(f"The window size must be less than or equal to {max_size}")

    if n is not None:
        # The middle subsequence has the nearest farthest neighbor
        excl_zone = int(math.ceil(m / config.SCAMPY_EXCL_ZONE_DENOM))
        if (n - m + 1) // 2 <= excl_zone:
            msg = (
                f"The window size, 'm = {m}', leaves at least one subsequence "
                + f"without a neighbor outside of its exclusion zone (n = {n})"
            )
            warnings.warn(msg)


@njit(parallel=True, fastmath=config.SCAMPY_FASTMATH_FLAGS)
def _sliding_mean_std(T, m):
    """
    A Numba JIT-compiled and parallelized sliding mean and (population) standard
    deviation of a finite segment

    Parameters
    ----------
    T : numpy.ndarray
        A segment without any `np.nan`/`np.inf` values

    m : int
        Window size

    Returns
    -------
    μ : numpy.ndarray
        Sliding mean

    σ : numpy.ndarray
        Sliding standard deviation
    """
    l = T.shape[0] - m + 1
    μ = np.empty(l, dtype=np.float64)
    σ = np.empty(l, dtype=np.float64)
    for i in prange(l):
        μ[i] = np.mean(T[i : i + m])
        σ[i] = np.sqrt(np.mean(np.square(T[i : i + m] - μ[i])))

    return μ, σ


def sliding_isfinite(T, m):
    """
    Flag the subsequences of `T` that only hold finite values

    Parameters
    ----------
    T : numpy.ndarray
        Time series or segment

    m : int
        Window size

    Returns
    -------
    T_subseq_isfinite : numpy.ndarray
        A boolean array of length `len(T) - m + 1`
    """
    n_nonfinite = np.concatenate(([0], np.cumsum(~np.isfinite(T))))

    return n_nonfinite[m:] == n_nonfinite[:-m]


def sliding_isconstant(T, m, T_subseq_isfinite):
    """
    Flag the finite subsequences of `T` whose minimum and maximum are equal

    Parameters
    ----------
    T : numpy.ndarray
        A segment where non-finite values were already replaced

    m : int
        Window size

    T_subseq_isfinite : numpy.ndarray
        The output of `sliding_isfinite` for the original segment

    Returns
    -------
    T_subseq_isconstant : numpy.ndarray
        A boolean array of length `len(T) - m + 1`
    """
    # A centered filter of size `m` covers `T[i : i + m]` at `i + m // 2`
    start = m // 2
    stop = start + T.shape[0] - m + 1
    T_max = maximum_filter1d(T, size=m)[start:stop]
    T_min = minimum_filter1d(T, size=m)[start:stop]

    return (T_max == T_min) & T_subseq_isfinite


def preprocess_segment(T, m, copy=True):
    """
    Prepare a segment for the diagonal traversal of a correlation matrix

    Non-finite values are replaced with zero and every subsequence that held one is
    flagged in `T_subseq_isfinite`. Constant subsequences are flagged in
    `T_subseq_isconstant` and get a unit standard deviation so that their inverse
    stays finite.

    Parameters
    ----------
    T : numpy.ndarray
        Time series or segment

    m : int
        Window size

    copy : bool, default True
        Work on a copy of `T`

    Returns
    -------
    T : numpy.ndarray
        The segment with non-finite values replaced with zero

    M_T : numpy.ndarray
        Sliding mean with a window size of `m`

    Σ_T_inverse : numpy.ndarray
        Inverse sliding standard deviation with a window size of `m`

    M_T_m_1 : numpy.ndarray
        Sliding mean with a window size of `m - 1`

    T_subseq_isfinite : numpy.ndarray
        `False` for every subsequence that contains a `np.nan`/`np.inf` value

    T_subseq_isconstant : numpy.ndarray
        `True` for every finite subsequence that is constant
    """
    T = check_segment(T, copy)
    check_window_size(m, max_size=T.shape[0])

    T_subseq_isfinite = sliding_isfinite(T, m)
    T[~np.isfinite(T)] = 0.0
    T_subseq_isconstant = sliding_isconstant(T, m, T_subseq_isfinite)

    M_T, Σ_T = _sliding_mean_std(T, m)
    Σ_T[T_subseq_isconstant] = 1.0
    M_T_m_1, _ = _sliding_mean_std(T, m - 1)

    return T, M_T, 1.0 / Σ_T, M_T_m_1, T_subseq_isfinite, T_subseq_isconstant


@njit(fastmath=config.SCAMPY_FASTMATH_TRUE)
def _split_diags(diags, l_A, l_B, n_chunks):
    """
    Split the diagonals of an `l_A` x `l_B` tile into `n_chunks` contiguous ranges
    that hold roughly the same number of cells

    Parameters
    ----------
    diags : numpy.ndarray
        The local diagonal indices, `g = j - i`

    l_A : int
        The number of rows of the tile

    l_B : int
        The number of columns of the tile

    n_chunks : int
        The number of ranges

    Returns
    -------
    diags_ranges : numpy.ndarray
        A two column array of start and (exclusive) stop indices into `diags`.
        Ranges that are left over are empty.
    """
    n_diags = diags.shape[0]
    counts = np.empty(n_diags, dtype=np.int64)
    for idx in range(n_diags):
        g = diags[idx]
        if g >= 0:
            counts[idx] = max(0, min(l_A, l_B - g))
        else:
            counts[idx] = max(0, min(l_A + g, l_B))

    diags_ranges = np.full((n_chunks, 2), n_diags, dtype=np.int64)
    total = counts.sum()
    chunk = 0
    start = 0
    n_cells = 0
    for idx in range(n_diags):
        n_cells += counts[idx]
        if chunk < n_chunks - 1 and n_cells * n_chunks >= total * (chunk + 1):
            diags_ranges[chunk, 0] = start
            diags_ranges[chunk, 1] = idx + 1
            start = idx + 1
            chunk += 1
    diags_ranges[chunk, 0] = start

    return diags_ranges


def _get_tile_ranges(l, tile_size):
    """
    Split `l` subsequence start positions into consecutive tiles

    Parameters
    ----------
    l : int
        The number of subsequences

    tile_size : int
        The maximum number of subsequences in a single tile

    Returns
    -------
    tile_ranges : numpy.ndarray
        A two column array where each row consists of a start and (exclusive) stop
        index pair
    """
    if tile_size < 1:  # pragma: no cover
        raise ValueError(f"The tile size must be positive but found {tile_size}")

    starts = np.arange(0, l, tile_size, dtype=np.int64)
    stops = np.minimum(starts + tile_size, l)

    return np.column_stack((starts, stops))
