import math

import numpy as np

from scampy import config


def rolling_window(a, w):
    return np.lib.stride_tricks.sliding_window_view(a, w)


def rolling_isfinite(a, w):
    return np.all(rolling_window(np.isfinite(a), w), axis=1)


def rolling_isconstant(a, w):
    windows = rolling_window(a, w)
    with np.errstate(invalid="ignore"):
        is_ptp_zero = np.max(windows, axis=1) - np.min(windows, axis=1) == 0
    return np.logical_and(rolling_isfinite(a, w), is_ptp_zero)


def z_norm(a, axis=0):
    std = np.std(a, axis, keepdims=True)
    std = np.where(std > 0, std, 1.0)

    return (a - np.mean(a, axis, keepdims=True)) / std


def compute_mean_std(T, m):
    n = T.shape[0]

    M_T = np.zeros(n - m + 1, dtype=float)
    Σ_T = np.zeros(n - m + 1, dtype=float)

    for i in range(n - m + 1):
        Q = T[i : i + m].copy()
        Q[np.isinf(Q)] = np.nan

        M_T[i] = np.mean(Q)
        Σ_T[i] = np.nanstd(Q)

    M_T[np.isnan(M_T)] = np.inf
    Σ_T[np.isnan(Σ_T)] = 0
    return M_T, Σ_T


def get_excl_zone(m):
    return int(math.ceil(m / config.SCAMPY_EXCL_ZONE_DENOM))


def pearson_matrix(T_A, m, T_B=None):
    """
    The full Pearson correlation matrix where a pair with a non-finite subsequence
    is `np.nan` and a pair with exactly one (both) constant subsequence(s) is `0.5`
    (`1.0`)
    """
    if T_B is None:
        T_B = T_A

    l_A = T_A.shape[0] - m + 1
    l_B = T_B.shape[0] - m + 1
    A_isfinite = rolling_isfinite(T_A, m)
    B_isfinite = rolling_isfinite(T_B, m)
    A_isconstant = rolling_isconstant(T_A, m)
    B_isconstant = rolling_isconstant(T_B, m)

    ρ = np.full((l_A, l_B), np.nan, dtype=np.float64)
    for i in range(l_A):
        if not A_isfinite[i]:
            continue
        Q = z_norm(T_A[i : i + m])
        for j in range(l_B):
            if not B_isfinite[j]:
                continue
            if A_isconstant[i] and B_isconstant[j]:
                ρ[i, j] = 1.0
            elif A_isconstant[i] or B_isconstant[j]:
                ρ[i, j] = 0.5
            else:
                S = z_norm(T_B[j : j + m])
                ρ[i, j] = min(1.0, max(-1.0, np.dot(Q, S) / m))

    return ρ


def apply_exclusion_zone(ρ, excl_zone, val=np.nan):
    ρ = ρ.copy()
    for i in range(ρ.shape[0]):
        start = max(0, i - excl_zone)
        stop = min(ρ.shape[1], i + excl_zone + 1)
        ρ[i, start:stop] = val

    return ρ


def scamp(T_A, m, T_B=None, excl_zone=None):
    """
    Return the best Pearson correlation (`-np.inf` when nothing was found) and the
    index of the best match (`-1` when nothing was found) of every subsequence in
    `T_A`
    """
    ρ = pearson_matrix(T_A, m, T_B)
    if T_B is None:
        if excl_zone is None:
            excl_zone = get_excl_zone(m)
        ρ = apply_exclusion_zone(ρ, excl_zone)

    ρ = np.where(np.isnan(ρ), -np.inf, ρ)
    if ρ.shape[1] == 0:
        return np.full(ρ.shape[0], -np.inf), np.full(ρ.shape[0], -1, dtype=np.int64)

    I = np.argmax(ρ, axis=1).astype(np.int64)
    P = ρ[np.arange(ρ.shape[0]), I]
    I[np.isneginf(P)] = -1

    return P, I


def sum_thresh(T_A, m, threshold, T_B=None, excl_zone=None):
    ρ = pearson_matrix(T_A, m, T_B)
    if T_B is None:
        if excl_zone is None:
            excl_zone = get_excl_zone(m)
        ρ = apply_exclusion_zone(ρ, excl_zone)

    ρ = np.where(ρ > threshold, ρ, 0.0)

    return np.sum(ρ, axis=1)


def all_neighbors(T_A, m, threshold, T_B=None, excl_zone=None):
    """
    Return a list (one per row) of sorted `(row, col)` pairs and a matching list of
    correlations for every pair with a correlation above `threshold`
    """
    ρ = pearson_matrix(T_A, m, T_B)
    if T_B is None:
        if excl_zone is None:
            excl_zone = get_excl_zone(m)
        ρ = apply_exclusion_zone(ρ, excl_zone)

    pairs = []
    corrs = []
    for i in range(ρ.shape[0]):
        cols = np.flatnonzero(ρ[i] > threshold)
        pairs.append([(i, j) for j in cols])
        corrs.append(ρ[i, cols])

    return pairs, corrs


def to_distance(ρ, m):
    with np.errstate(invalid="ignore"):
        D = np.sqrt(np.abs(2 * m * (1 - ρ)))
    D[ρ < -1] = np.nan

    return D
