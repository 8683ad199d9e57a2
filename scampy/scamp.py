# SCAMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# SCAMPY is derived from STUMPY, a trademark of TD Ameritrade IP Company, Inc.

import logging
from dataclasses import dataclass
from typing import NamedTuple

import numba
import numpy as np
from numba import njit, prange

from . import config, core, exclusion, mpentry
from .mprofile import (
    PrecisionType,
    ProfileType,
    check_precision_type,
    check_profile_type,
    mprofile,
)

logger = logging.getLogger(__name__)

_SUM_THRESH = int(ProfileType.PROFILE_TYPE_SUM_THRESH)
_ALL_NEIGHBORS = int(ProfileType.PROFILE_TYPE_APPROX_ALL_NEIGHBORS)


class KernelError(RuntimeError):
    """
    Raised when the correlation kernel fails on a tile or returns a malformed result
    """

    pass


@dataclass
class SCAMPArgs:
    """
    The parameters of a single (tiled) join

    Parameters
    ----------
    window : int
        Window size

    profile_type : ProfileType
        The kind of profile to compute

    precision : PrecisionType
        The floating point precision used by the kernel

    threshold : float
        The Pearson correlation that a match must exceed to be counted by the
        `PROFILE_TYPE_SUM_THRESH` and `PROFILE_TYPE_APPROX_ALL_NEIGHBORS` kinds

    max_matches_per_tile : int
        The maximum number of all-neighbors matches kept for a single tile

    max_tile_size : int
        The maximum number of subsequences along either side of a tile

    compute_rows : bool
        Update the profile of the first (row) sequence

    compute_cols : bool
        Update the profile of the second (column) sequence. This is ignored for a
        self-join where both sides share a single profile.

    has_b : bool
        `True` for an AB-join and `False` for a self-join
    """

    window: int
    profile_type: ProfileType = ProfileType.PROFILE_TYPE_1NN_INDEX
    precision: PrecisionType = PrecisionType.PRECISION_DOUBLE
    threshold: float = 0.0
    max_matches_per_tile: int = None
    max_tile_size: int = None
    compute_rows: bool = True
    compute_cols: bool = True
    has_b: bool = False

    def __post_init__(self):
        if self.max_matches_per_tile is None:
            self.max_matches_per_tile = config.SCAMPY_MAX_MATCHES_PER_TILE
        if self.max_tile_size is None:
            self.max_tile_size = config.SCAMPY_MAX_TILE_SIZE


class subseq_stats(NamedTuple):
    """
    The sliding statistics of a preprocessed sequence
    """

    μ: np.ndarray
    σ_inverse: np.ndarray
    μ_m_1: np.ndarray
    isfinite: np.ndarray
    isconstant: np.ndarray

    def tile(self, start, stop):
        """
        Slice the statistics of subsequences `start` through `stop - 1`
        """
        return subseq_stats(
            self.μ[start:stop],
            self.σ_inverse[start:stop],
            self.μ_m_1[start : stop + 1],
            self.isfinite[start:stop],
            self.isconstant[start:stop],
        )


class tile_result(NamedTuple):
    """
    The output of a kernel for a single tile

    `ρ_A`, `I_A`, and `S_A` are indexed by the (local) row of the tile while `ρ_B`,
    `I_B`, and `S_B` are indexed by its (local) column. Matrix profile indices as
    well as `match_rows` and `match_cols` are global. Arrays that were not requested
    are `None`.
    """

    ρ_A: np.ndarray
    I_A: np.ndarray
    ρ_B: np.ndarray = None
    I_B: np.ndarray = None
    S_A: np.ndarray = None
    S_B: np.ndarray = None
    match_rows: np.ndarray = None
    match_cols: np.ndarray = None
    match_corrs: np.ndarray = None


def preprocess_stats(T, m, precision=PrecisionType.PRECISION_DOUBLE):
    """
    Preprocess a sequence and cast its statistics for the requested precision

    Parameters
    ----------
    T : numpy.ndarray
        Time series or sequence

    m : int
        Window size

    precision : PrecisionType, default PrecisionType.PRECISION_DOUBLE
        `PRECISION_DOUBLE` keeps everything in `float64`. `PRECISION_MIXED` keeps
        the samples and means in `float64` and the inverse standard deviations in
        `float32`. `PRECISION_SINGLE` casts everything to `float32`.

    Returns
    -------
    T : numpy.ndarray
        Modified time series where all non-finite values are replaced with zero

    stats : subseq_stats
        The sliding statistics of `T`
    """
    T, M_T, Σ_T_inverse, M_T_m_1, T_subseq_isfinite, T_subseq_isconstant = (
        core.preprocess_segment(T, m)
    )

    if precision == PrecisionType.PRECISION_SINGLE:
        T = T.astype(np.float32)
        M_T = M_T.astype(np.float32)
        M_T_m_1 = M_T_m_1.astype(np.float32)
        Σ_T_inverse = Σ_T_inverse.astype(np.float32)
    elif precision == PrecisionType.PRECISION_MIXED:
        Σ_T_inverse = Σ_T_inverse.astype(np.float32)

    stats = subseq_stats(
        M_T, Σ_T_inverse, M_T_m_1, T_subseq_isfinite, T_subseq_isconstant
    )

    return T, stats


@njit(fastmath=config.SCAMPY_FASTMATH_FLAGS)
def _compute_diagonal(
    T_A,
    T_B,
    m,
    μ_Q,
    M_T,
    σ_Q_inverse,
    Σ_T_inverse,
    cov_a,
    cov_b,
    cov_c,
    cov_d,
    T_A_subseq_isfinite,
    T_B_subseq_isfinite,
    T_A_subseq_isconstant,
    T_B_subseq_isconstant,
    diags,
    diags_start_idx,
    diags_stop_idx,
    thread_idx,
    profile_type,
    threshold,
    row_start,
    col_start,
    compute_cols,
    ρ_A,
    I_A,
    ρ_B,
    I_B,
    S_A,
    S_B,
    match_rows,
    match_cols,
    match_corrs,
    n_matches,
    n_dropped,
):
    """
    Compute (Numba JIT-compiled) the Pearson correlations along individual
    diagonals of a tile and fold them into the per-thread buffers of the requested
    profile type using a single thread and avoiding race conditions.

    Parameters
    ----------
    T_A : numpy.ndarray
        The samples spanned by the rows of the tile

    T_B : numpy.ndarray
        The samples spanned by the columns of the tile

    m : int
        Window size

    μ_Q : numpy.ndarray
        Sliding mean of `T_A`

    M_T : numpy.ndarray
        Sliding mean of `T_B`

    σ_Q_inverse : numpy.ndarray
        Inverse sliding standard deviation of `T_A`

    Σ_T_inverse : numpy.ndarray
        Inverse sliding standard deviation of `T_B`

    cov_a : numpy.ndarray
        The first covariance term relating T_B[j + m - 1] and M_T_m_1[j]

    cov_b : numpy.ndarray
        The second covariance term relating T_A[i + m - 1] and μ_Q_m_1[i]

    cov_c : numpy.ndarray
        The third covariance term relating T_B[j - 1] and M_T_m_1[j]

    cov_d : numpy.ndarray
        The fourth covariance term relating T_A[i - 1] and μ_Q_m_1[i]

    T_A_subseq_isfinite : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T_A` contains a
        `np.nan`/`np.inf` value (False)

    T_B_subseq_isfinite : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T_B` contains a
        `np.nan`/`np.inf` value (False)

    T_A_subseq_isconstant : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T_A` is constant (True)

    T_B_subseq_isconstant : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T_B` is constant (True)

    diags : numpy.ndarray
        The local diagonal indices, `g = j - i`

    diags_start_idx : int
        The start index for a range of diagonal indices to compute

    diags_stop_idx : int
        The (exclusive) stop index for a range of diagonal indices to compute

    thread_idx : int
        The thread index

    profile_type : int
        The integer value of the requested `ProfileType`

    threshold : float
        The Pearson correlation that a match must exceed for the thresholded kinds

    row_start : int
        The global index of the first row of the tile

    col_start : int
        The global index of the first column of the tile

    compute_cols : bool
        Also update the column-indexed buffers

    ρ_A : numpy.ndarray
        The best row-wise Pearson correlations per thread

    I_A : numpy.ndarray
        The (global) column index of each row-wise best match per thread

    ρ_B : numpy.ndarray
        The best column-wise Pearson correlations per thread

    I_B : numpy.ndarray
        The (global) row index of each column-wise best match per thread

    S_A : numpy.ndarray
        The row-wise thresholded sums per thread

    S_B : numpy.ndarray
        The column-wise thresholded sums per thread

    match_rows : numpy.ndarray
        The (global) row of every all-neighbors match per thread

    match_cols : numpy.ndarray
        The (global) column of every all-neighbors match per thread

    match_corrs : numpy.ndarray
        The Pearson correlation of every all-neighbors match per thread

    n_matches : numpy.ndarray
        The number of all-neighbors matches stored by each thread

    n_dropped : numpy.ndarray
        The number of all-neighbors matches each thread had no room for

    Returns
    -------
    None

    Notes
    -----
    `DOI: 10.1145/3357223.3362721 \
    <https://www.cs.ucr.edu/~eamonn/public/GPU_Matrix_profile_VLDB_30DraftOnly.pdf>`__

    See Section 3.1 and Section 3.3

    The above reference outlines the use of the Pearson correlation via Welford's
    centered sum-of-products along each diagonal of the distance matrix in place of the
    sliding window dot product found in the original STOMP method.
    """
    n_A = T_A.shape[0]
    n_B = T_B.shape[0]
    m_inverse = 1.0 / m
    constant = (m - 1) * m_inverse * m_inverse  # (m - 1)/(m * m)
    uint64_m = np.uint64(m)
    match_capacity = match_rows.shape[1]

    for diag_idx in range(diags_start_idx, diags_stop_idx):
        g = diags[diag_idx]

        if g >= 0:
            iter_range = range(0, min(n_A - m + 1, n_B - m + 1 - g))
        else:
            iter_range = range(-g, min(n_A - m + 1, n_B - m + 1 - g))

        for i in iter_range:
            uint64_i = np.uint64(i)
            uint64_j = np.uint64(i + g)

            if uint64_i == 0 or uint64_j == 0:
                cov = (
                    np.dot(
                        (T_B[uint64_j : uint64_j + uint64_m] - M_T[uint64_j]),
                        (T_A[uint64_i : uint64_i + uint64_m] - μ_Q[uint64_i]),
                    )
                    * m_inverse
                )
            else:
                cov = cov + constant * (
                    cov_a[uint64_j] * cov_b[uint64_i]
                    - cov_c[uint64_j] * cov_d[uint64_i]
                )

            if not (T_B_subseq_isfinite[uint64_j] and T_A_subseq_isfinite[uint64_i]):
                continue

            if T_B_subseq_isconstant[uint64_j] and T_A_subseq_isconstant[uint64_i]:
                pearson = 1.0
            elif T_B_subseq_isconstant[uint64_j] or T_A_subseq_isconstant[uint64_i]:
                pearson = 0.5
            else:
                pearson = cov * Σ_T_inverse[uint64_j] * σ_Q_inverse[uint64_i]
                pearson = max(-1.0, min(1.0, pearson))

            if profile_type == _SUM_THRESH:
                if pearson > threshold:
                    S_A[thread_idx, uint64_i] += pearson
                    if compute_cols:
                        S_B[thread_idx, uint64_j] += pearson
            elif profile_type == _ALL_NEIGHBORS:
                if pearson > threshold:
                    k = n_matches[thread_idx]
                    if k < match_capacity:
                        match_rows[thread_idx, k] = i + row_start
                        match_cols[thread_idx, k] = i + g + col_start
                        match_corrs[thread_idx, k] = pearson
                        n_matches[thread_idx] = k + 1
                    else:
                        n_dropped[thread_idx] += 1
            else:
                if pearson > ρ_A[thread_idx, uint64_i]:
                    ρ_A[thread_idx, uint64_i] = pearson
                    I_A[thread_idx, uint64_i] = i + g + col_start

                if compute_cols and pearson > ρ_B[thread_idx, uint64_j]:
                    ρ_B[thread_idx, uint64_j] = pearson
                    I_B[thread_idx, uint64_j] = i + row_start

    return


@njit(parallel=True, fastmath=config.SCAMPY_FASTMATH_FLAGS)
def _scamp_tile(
    T_A,
    T_B,
    m,
    μ_Q,
    M_T,
    σ_Q_inverse,
    Σ_T_inverse,
    μ_Q_m_1,
    M_T_m_1,
    T_A_subseq_isfinite,
    T_B_subseq_isfinite,
    T_A_subseq_isconstant,
    T_B_subseq_isconstant,
    diags,
    profile_type,
    threshold,
    row_start,
    col_start,
    compute_cols,
    max_matches,
):
    """
    A Numba JIT-compiled and parallelized computation of one tile of the
    correlation matrix where the diagonals of the tile are distributed evenly
    across all threads.

    Parameters
    ----------
    T_A : numpy.ndarray
        The samples spanned by the rows of the tile

    T_B : numpy.ndarray
        The samples spanned by the columns of the tile

    m : int
        Window size

    μ_Q : numpy.ndarray
        Sliding mean of `T_A`

    M_T : numpy.ndarray
        Sliding mean of `T_B`

    σ_Q_inverse : numpy.ndarray
        Inverse sliding standard deviation of `T_A`

    Σ_T_inverse : numpy.ndarray
        Inverse sliding standard deviation of `T_B`

    μ_Q_m_1 : numpy.ndarray
        Sliding mean of `T_A` using a window size of `m-1`

    M_T_m_1 : numpy.ndarray
        Sliding mean of `T_B` using a window size of `m-1`

    T_A_subseq_isfinite : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T_A` contains a
        `np.nan`/`np.inf` value (False)

    T_B_subseq_isfinite : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T_B` contains a
        `np.nan`/`np.inf` value (False)

    T_A_subseq_isconstant : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T_A` is constant (True)

    T_B_subseq_isconstant : numpy.ndarray
        A boolean array that indicates whether a subsequence in `T_B` is constant (True)

    diags : numpy.ndarray
        The local diagonal indices

    profile_type : int
        The integer value of the requested `ProfileType`

    threshold : float
        The Pearson correlation that a match must exceed for the thresholded kinds

    row_start : int
        The global index of the first row of the tile

    col_start : int
        The global index of the first column of the tile

    compute_cols : bool
        Also compute the column-indexed outputs

    max_matches : int
        The number of all-neighbors matches that each thread can hold

    Returns
    -------
    ρ_A : numpy.ndarray
        The best row-wise Pearson correlations (`-np.inf` where nothing was found)

    I_A : numpy.ndarray
        The global column indices of the row-wise best matches

    ρ_B : numpy.ndarray
        The best column-wise Pearson correlations

    I_B : numpy.ndarray
        The global row indices of the column-wise best matches

    S_A : numpy.ndarray
        The row-wise thresholded sums

    S_B : numpy.ndarray
        The column-wise thresholded sums

    match_rows : numpy.ndarray
        The per-thread global rows of all-neighbors matches

    match_cols : numpy.ndarray
        The per-thread global columns of all-neighbors matches

    match_corrs : numpy.ndarray
        The per-thread Pearson correlations of all-neighbors matches

    n_matches : numpy.ndarray
        The number of valid matches held by each thread

    n_dropped : numpy.ndarray
        The number of matches that each thread had no room for
    """
    n_A = T_A.shape[0]
    n_B = T_B.shape[0]
    l_A = n_A - m + 1
    l_B = n_B - m + 1
    n_threads = numba.config.NUMBA_NUM_THREADS

    if compute_cols:
        l_cols = l_B
    else:
        l_cols = 0

    if profile_type == _ALL_NEIGHBORS:
        n_slots = max_matches
    else:
        n_slots = 0

    ρ_A = np.full((n_threads, l_A), -np.inf, dtype=np.float64)
    I_A = np.full((n_threads, l_A), -1, dtype=np.int64)
    ρ_B = np.full((n_threads, l_cols), -np.inf, dtype=np.float64)
    I_B = np.full((n_threads, l_cols), -1, dtype=np.int64)
    S_A = np.zeros((n_threads, l_A), dtype=np.float64)
    S_B = np.zeros((n_threads, l_cols), dtype=np.float64)

    match_rows = np.empty((n_threads, n_slots), dtype=np.int64)
    match_cols = np.empty((n_threads, n_slots), dtype=np.int64)
    match_corrs = np.empty((n_threads, n_slots), dtype=np.float64)
    n_matches = np.zeros(n_threads, dtype=np.int64)
    n_dropped = np.zeros(n_threads, dtype=np.int64)

    diags_ranges = core._split_diags(diags, l_A, l_B, n_threads)

    cov_a = T_B[m - 1 :] - M_T_m_1[:-1]
    cov_b = T_A[m - 1 :] - μ_Q_m_1[:-1]
    cov_c = np.empty_like(M_T_m_1)
    cov_c[1:] = T_B[: M_T_m_1.shape[0] - 1]
    cov_c[0] = T_B[-1]
    cov_c[:] = cov_c - M_T_m_1
    cov_d = np.empty_like(μ_Q_m_1)
    cov_d[1:] = T_A[: μ_Q_m_1.shape[0] - 1]
    cov_d[0] = T_A[-1]
    cov_d[:] = cov_d - μ_Q_m_1

    for thread_idx in prange(n_threads):
        _compute_diagonal(
            T_A,
            T_B,
            m,
            μ_Q,
            M_T,
            σ_Q_inverse,
            Σ_T_inverse,
            cov_a,
            cov_b,
            cov_c,
            cov_d,
            T_A_subseq_isfinite,
            T_B_subseq_isfinite,
            T_A_subseq_isconstant,
            T_B_subseq_isconstant,
            diags,
            diags_ranges[thread_idx, 0],
            diags_ranges[thread_idx, 1],
            thread_idx,
            profile_type,
            threshold,
            row_start,
            col_start,
            compute_cols,
            ρ_A,
            I_A,
            ρ_B,
            I_B,
            S_A,
            S_B,
            match_rows,
            match_cols,
            match_corrs,
            n_matches,
            n_dropped,
        )

    # Reduction of results from all threads
    for thread_idx in range(1, n_threads):
        mask = ρ_A[0] < ρ_A[thread_idx]
        ρ_A[0][mask] = ρ_A[thread_idx][mask]
        I_A[0][mask] = I_A[thread_idx][mask]

        mask = ρ_B[0] < ρ_B[thread_idx]
        ρ_B[0][mask] = ρ_B[thread_idx][mask]
        I_B[0][mask] = I_B[thread_idx][mask]

        S_A[0] += S_A[thread_idx]
        S_B[0] += S_B[thread_idx]

    return (
        ρ_A[0],
        I_A[0],
        ρ_B[0],
        I_B[0],
        S_A[0],
        S_B[0],
        match_rows,
        match_cols,
        match_corrs,
        n_matches,
        n_dropped,
    )


def _cpu_kernel(
    T_A, T_B, m, stats_A, stats_B, diags, row_start, col_start, compute_cols, args
):
    """
    The default (numba) kernel that computes a single tile of the correlation matrix

    Parameters
    ----------
    T_A : numpy.ndarray
        The samples spanned by the rows of the tile

    T_B : numpy.ndarray
        The samples spanned by the columns of the tile

    m : int
        Window size

    stats_A : subseq_stats
        The sliding statistics of the rows of the tile

    stats_B : subseq_stats
        The sliding statistics of the columns of the tile

    diags : numpy.ndarray
        The local diagonals of the tile that need to be computed

    row_start : int
        The global index of the first row of the tile

    col_start : int
        The global index of the first column of the tile

    compute_cols : bool
        Also compute the column-indexed outputs

    args : SCAMPArgs
        The join parameters

    Returns
    -------
    result : tile_result
        The tile outputs for `args.profile_type`
    """
    (
        ρ_A,
        I_A,
        ρ_B,
        I_B,
        S_A,
        S_B,
        match_rows,
        match_cols,
        match_corrs,
        n_matches,
        n_dropped,
    ) = _scamp_tile(
        T_A,
        T_B,
        m,
        stats_A.μ,
        stats_B.μ,
        stats_A.σ_inverse,
        stats_B.σ_inverse,
        stats_A.μ_m_1,
        stats_B.μ_m_1,
        stats_A.isfinite,
        stats_B.isfinite,
        stats_A.isconstant,
        stats_B.isconstant,
        diags,
        int(args.profile_type),
        float(args.threshold),
        row_start,
        col_start,
        compute_cols,
        args.max_matches_per_tile,
    )

    if not compute_cols:
        ρ_B = I_B = S_B = None

    if args.profile_type == ProfileType.PROFILE_TYPE_SUM_THRESH:
        return tile_result(None, None, S_A=S_A, S_B=S_B)

    if args.profile_type == ProfileType.PROFILE_TYPE_APPROX_ALL_NEIGHBORS:
        rows = np.concatenate([match_rows[t, :n] for t, n in enumerate(n_matches)])
        cols = np.concatenate([match_cols[t, :n] for t, n in enumerate(n_matches)])
        corrs = np.concatenate([match_corrs[t, :n] for t, n in enumerate(n_matches)])
        n_dropped = int(n_dropped.sum())
        if corrs.shape[0] > args.max_matches_per_tile:
            n_dropped += corrs.shape[0] - args.max_matches_per_tile
            idx = np.argsort(-corrs, kind="stable")[: args.max_matches_per_tile]
            rows, cols, corrs = rows[idx], cols[idx], corrs[idx]
        if n_dropped > 0:
            logger.debug(
                f"Tile at ({row_start}, {col_start}) dropped {n_dropped} matches "
                f"over the per-tile budget of {args.max_matches_per_tile}"
            )
        return tile_result(
            None, None, match_rows=rows, match_cols=cols, match_corrs=corrs
        )

    return tile_result(ρ_A, I_A, ρ_B, I_B)


def init_profile_memory(T_A, T_B, args, profile_a, profile_b=None):
    """
    Size and sentinel-fill any profile that has not been allocated yet

    Parameters
    ----------
    T_A : numpy.ndarray
        The row sequence

    T_B : numpy.ndarray
        The column sequence. This is ignored for a self-join.

    args : SCAMPArgs
        The join parameters

    profile_a : mprofile
        The profile of `T_A`

    profile_b : mprofile, default None
        The profile of `T_B`

    Returns
    -------
    success : bool
        `False` when a profile length would be non-positive or an existing profile
        does not match its sequence and `True` otherwise
    """
    l_A = len(T_A) - args.window + 1
    if l_A <= 0:
        return False

    if profile_a.data is None:
        profile_a.alloc(l_A)
    elif len(profile_a) != l_A:
        return False

    if args.has_b:
        l_B = len(T_B) - args.window + 1
        if l_B <= 0:
            return False
        if profile_b is not None:
            if profile_b.data is None:
                profile_b.alloc(l_B)
            elif len(profile_b) != l_B:
                return False

    return True


def _check_tile_result(result, n_rows, n_cols, compute_cols, profile_type):
    if not isinstance(result, tile_result):
        raise KernelError(f"Expected a tile_result but the kernel returned {result!r}")

    if profile_type == ProfileType.PROFILE_TYPE_SUM_THRESH:
        expected = [(result.S_A, n_rows)]
        if compute_cols:
            expected.append((result.S_B, n_cols))
    elif profile_type == ProfileType.PROFILE_TYPE_APPROX_ALL_NEIGHBORS:
        if result.match_corrs is None:
            raise KernelError("The kernel returned no all-neighbors matches")
        n = result.match_corrs.shape[0]
        expected = [(result.match_rows, n), (result.match_cols, n)]
    else:
        expected = [(result.ρ_A, n_rows), (result.I_A, n_rows)]
        if compute_cols:
            expected.extend([(result.ρ_B, n_cols), (result.I_B, n_cols)])

    for a, l in expected:
        if a is None or a.shape != (l,):
            shape = None if a is None else a.shape
            msg = f"The kernel returned an array of shape {shape} but expected ({l},)"
            raise KernelError(msg)


def _fold_nn(profile, start, ρ, I):
    valid = I >= 0
    if profile.profile_type == ProfileType.PROFILE_TYPE_1NN_INDEX:
        P = np.where(valid, mpentry.pack(ρ, I), mpentry.sentinel())
        mpentry.merge(profile.data[start : start + ρ.shape[0]], P)
    else:
        ρ = ρ.astype(np.float32)
        data = profile.data[start : start + ρ.shape[0]]
        mask = valid & (ρ > data)
        data[mask] = ρ[mask]


def _fold(result, profile_a, profile_b, row_start, col_start, compute_cols):
    """
    Fold the result of one tile into the row and (optionally) column profiles
    """
    profile_type = profile_a.profile_type
    if profile_type == ProfileType.PROFILE_TYPE_SUM_THRESH:
        profile_a.data[row_start : row_start + result.S_A.shape[0]] += result.S_A
        if compute_cols:
            profile_b.data[col_start : col_start + result.S_B.shape[0]] += result.S_B
    elif profile_type == ProfileType.PROFILE_TYPE_APPROX_ALL_NEIGHBORS:
        profile_a.push_matches(result.match_rows, result.match_cols, result.match_corrs)
        if compute_cols:
            profile_b.push_matches(
                result.match_cols, result.match_rows, result.match_corrs
            )
    else:
        _fold_nn(profile_a, row_start, result.ρ_A, result.I_A)
        if compute_cols:
            _fold_nn(profile_b, col_start, result.ρ_B, result.I_B)


def _run_join(T_A, T_B, profile_a, profile_b, args, kernel=None):
    """
    Split a join into tiles, invoke the kernel on every tile, and fold the tile
    results into the profiles (in place)

    For a self-join, only tiles on or above the main diagonal are visited and
    every pair of subsequences outside of the exclusion zone is computed exactly
    once with the column updates folded back into `profile_a`. For an AB-join, a
    single pass over the tiles updates `profile_a` (rows) and, when
    `args.compute_cols` is set, `profile_b` (columns). When only the columns are
    requested, the join is transposed so that the kernel still works row-wise.

    Parameters
    ----------
    T_A : numpy.ndarray
        The row sequence

    T_B : numpy.ndarray
        The column sequence. This is ignored for a self-join.

    profile_a : mprofile
        The (allocated) profile of `T_A`

    profile_b : mprofile
        The (allocated) profile of `T_B`. This is ignored for a self-join.

    args : SCAMPArgs
        The join parameters

    kernel : callable, default None
        The tile kernel. When `None`, the default numba kernel is used.

    Returns
    -------
    None

    Raises
    ------
    KernelError
        If the kernel raises an exception or returns a malformed result
    """
    if kernel is None:
        kernel = _cpu_kernel

    m = args.window
    self_join = not args.has_b
    tile_size = args.max_tile_size

    T_A, stats_A = preprocess_stats(T_A, m, args.precision)
    if self_join:
        T_B, stats_B = T_A, stats_A
        profile_b = profile_a
        compute_cols = True
    else:
        T_B, stats_B = preprocess_stats(T_B, m, args.precision)
        compute_cols = args.compute_cols
        if not args.compute_rows:
            T_A, T_B = T_B, T_A
            stats_A, stats_B = stats_B, stats_A
            profile_a, profile_b = profile_b, profile_a
            compute_cols = False

    l_A = stats_A.μ.shape[0]
    l_B = stats_B.μ.shape[0]
    row_ranges = core._get_tile_ranges(l_A, tile_size)
    col_ranges = core._get_tile_ranges(l_B, tile_size)
    logger.debug(
        f"Joining {l_A} x {l_B} subsequences (m={m}) in "
        f"{len(row_ranges)} x {len(col_ranges)} tiles"
    )

    for row_start, row_stop in row_ranges:
        for col_start, col_stop in col_ranges:
            if self_join and col_stop <= row_start:
                continue

            n_rows = row_stop - row_start
            n_cols = col_stop - col_start
            exclusion_lower, exclusion_upper = exclusion.get_exclusion(
                m, self_join, row_start=row_start, col_start=col_start
            )
            diags = exclusion.get_tile_diags(
                n_rows,
                n_cols,
                exclusion_lower,
                exclusion_upper,
                upper_triangle_only=row_start - col_start if self_join else None,
            )
            if diags.shape[0] == 0:
                continue

            try:
                result = kernel(
                    T_A[row_start : row_stop + m - 1],
                    T_B[col_start : col_stop + m - 1],
                    m,
                    stats_A.tile(row_start, row_stop),
                    stats_B.tile(col_start, col_stop),
                    diags,
                    int(row_start),
                    int(col_start),
                    compute_cols,
                    args,
                )
            except KernelError:
                raise
            except Exception as e:
                msg = f"The kernel failed on the tile at ({row_start}, {col_start})"
                raise KernelError(msg) from e

            _check_tile_result(result, n_rows, n_cols, compute_cols, args.profile_type)
            _fold(result, profile_a, profile_b, row_start, col_start, compute_cols)


def scamp(
    T_A,
    m,
    T_B=None,
    profile_type=ProfileType.PROFILE_TYPE_1NN_INDEX,
    precision=PrecisionType.PRECISION_DOUBLE,
    threshold=0.0,
    distance_threshold=None,
    max_matches_per_tile=None,
    max_tile_size=None,
    compute_rows=True,
    compute_cols=True,
    kernel=None,
):
    """
    Compute the matrix profile of a self-join or an AB-join with tiled (and
    parallelized) diagonal traversal of the Pearson correlation matrix

    Parameters
    ----------
    T_A : numpy.ndarray
        The time series or sequence for which to compute the matrix profile

    m : int
        Window size

    T_B : numpy.ndarray, default None
        The time series or sequence that will be used to annotate `T_A`. For every
        subsequence in `T_A`, its nearest neighbor in `T_B` will be recorded. Default
        is `None` which corresponds to a self-join.

    profile_type : ProfileType, default ProfileType.PROFILE_TYPE_1NN_INDEX
        The kind of profile to compute

    precision : PrecisionType, default PrecisionType.PRECISION_DOUBLE
        The floating point precision used by the kernel

    threshold : float, default 0.0
        The Pearson correlation that a match must exceed to be counted by the
        `PROFILE_TYPE_SUM_THRESH` and `PROFILE_TYPE_APPROX_ALL_NEIGHBORS` kinds

    distance_threshold : float, default None
        The same threshold given as a z-normalized Euclidean distance. When
        provided, this overrides `threshold`.

    max_matches_per_tile : int, default None
        The maximum number of all-neighbors matches kept per tile. Defaults to
        `config.SCAMPY_MAX_MATCHES_PER_TILE`.

    max_tile_size : int, default None
        The maximum number of subsequences along either side of a tile. Defaults to
        `config.SCAMPY_MAX_TILE_SIZE`.

    compute_rows : bool, default True
        For an AB-join, compute the profile of `T_A`

    compute_cols : bool, default True
        For an AB-join, compute the profile of `T_B`

    kernel : callable, default None
        A tile kernel with the same signature as the default numba kernel

    Returns
    -------
    out : mprofile or tuple
        For a self-join, the profile of `T_A`. For an AB-join, a tuple with the
        profile of `T_A` and the profile of `T_B` where a profile that was not
        requested is `None`.

    Raises
    ------
    KernelError
        If the kernel fails
    """
    profile_type = check_profile_type(profile_type)
    precision = check_precision_type(precision)

    T_A = core.check_segment(T_A)
    has_b = T_B is not None
    if has_b:
        T_B = core.check_segment(T_B)
        core.check_window_size(m, max_size=min(T_A.shape[0], T_B.shape[0]))
        if not (compute_rows or compute_cols):
            msg = "At least one of `compute_rows` or `compute_cols` is needed"
            raise ValueError(msg)
    else:
        core.check_window_size(m, max_size=T_A.shape[0], n=T_A.shape[0])
        compute_rows = compute_cols = True

    if distance_threshold is not None:
        threshold = mpentry.to_correlation(distance_threshold, m)

    args = SCAMPArgs(
        window=m,
        profile_type=profile_type,
        precision=precision,
        threshold=float(threshold),
        max_matches_per_tile=max_matches_per_tile,
        max_tile_size=max_tile_size,
        compute_rows=compute_rows,
        compute_cols=compute_cols,
        has_b=has_b,
    )

    profile_a = mprofile(profile_type, m)
    profile_b = mprofile(profile_type, m) if has_b else None
    if not init_profile_memory(T_A, T_B, args, profile_a, profile_b):
        raise ValueError(f"The inputs are too short for a window size of {m}")

    _run_join(T_A, T_B, profile_a, profile_b, args, kernel)

    if not has_b:
        return profile_a

    return (
        profile_a if compute_rows else None,
        profile_b if compute_cols else None,
    )
