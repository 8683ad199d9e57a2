# SCAMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# SCAMPY is derived from STUMPY, a trademark of TD Ameritrade IP Company, Inc.

from typing import NamedTuple

import numpy as np

_LOWER_MASK = np.uint64(0xFFFFFFFF)
_SHIFT = np.uint64(32)

SENTINEL_CORRELATION = np.finfo(np.float32).min
SENTINEL_INDEX = -1


def pack(ρ, I):
    """
    Pack Pearson correlations and matrix profile indices into 64-bit words

    The upper 32 bits hold the IEEE-754 single precision correlation and the lower
    32 bits hold the (signed) neighbor index. The packed value carries no ordering
    of its own; compare entries with their decoded correlation (see `unpack`).

    Parameters
    ----------
    ρ : float or numpy.ndarray
        Pearson correlation(s). These are rounded to single precision.

    I : int or numpy.ndarray
        Matrix profile (neighbor) index or indices. These must fit in an `int32`.

    Returns
    -------
    P : numpy.uint64 or numpy.ndarray
        The packed entry (or entries) with the broadcast shape of `ρ` and `I`
    """
    ρ, I = np.broadcast_arrays(np.asarray(ρ), np.asarray(I))
    shape = ρ.shape
    ρ = np.array(ρ.reshape(-1), dtype=np.float32)
    I = np.array(I.reshape(-1), dtype=np.int32)
    hi = ρ.view(np.uint32).astype(np.uint64)
    lo = I.view(np.uint32).astype(np.uint64)
    P = (hi << _SHIFT) | lo

    if shape == ():
        return P.reshape(-1)[0]

    return P.reshape(shape)


def unpack(P):
    """
    Unpack 64-bit words into Pearson correlations and matrix profile indices

    This is the inverse of `pack`.

    Parameters
    ----------
    P : numpy.uint64 or numpy.ndarray
        Packed entry (or entries)

    Returns
    -------
    ρ : numpy.float32 or numpy.ndarray
        Pearson correlation(s)

    I : numpy.int32 or numpy.ndarray
        Matrix profile (neighbor) index or indices
    """
    P = np.asarray(P, dtype=np.uint64)
    shape = P.shape
    P = np.array(P.reshape(-1))
    ρ = (P >> _SHIFT).astype(np.uint32).view(np.float32)
    I = (P & _LOWER_MASK).astype(np.uint32).view(np.int32)

    if shape == ():
        return ρ[0], I[0]

    return ρ.reshape(shape), I.reshape(shape)


def sentinel():
    """
    Return the packed "no match yet" value

    Parameters
    ----------
    None

    Returns
    -------
    out : numpy.uint64
        The packed lowest representable `float32` correlation with an index of `-1`
    """
    return pack(SENTINEL_CORRELATION, SENTINEL_INDEX)


def full(l):
    """
    Create a packed matrix profile where every entry is the sentinel

    Parameters
    ----------
    l : int
        Matrix profile length

    Returns
    -------
    P : numpy.ndarray
        A `uint64` array of length `l`
    """
    return np.full(l, sentinel(), dtype=np.uint64)


def merge(P_A, P_B):
    """
    Merge two packed matrix profiles and update `P_A` (in place)

    `P_A[i]` is replaced by `P_B[i]` only when the correlation in `P_B[i]` is
    strictly greater. Ties keep the value already in `P_A` so an entry is never
    overwritten by one that is no better.

    Parameters
    ----------
    P_A : numpy.ndarray
        A packed matrix profile

    P_B : numpy.ndarray
        A packed matrix profile with the same shape as `P_A`

    Returns
    -------
    P_A : numpy.ndarray
        The updated `P_A`
    """
    if P_A.shape != P_B.shape:  # pragma: no cover
        msg = f"Cannot merge profiles of shape {P_A.shape} and {P_B.shape}"
        raise ValueError(msg)

    ρ_A, _ = unpack(P_A)
    ρ_B, _ = unpack(P_B)
    mask = ρ_B > ρ_A
    P_A[mask] = P_B[mask]

    return P_A


def to_distance(ρ, m):
    """
    Convert Pearson correlation(s) into z-normalized Euclidean distance(s)

    Parameters
    ----------
    ρ : float or numpy.ndarray
        Pearson correlation(s)

    m : int
        Window size

    Returns
    -------
    D : float or numpy.ndarray
        `sqrt(max(0, 2 * m * (1 - ρ)))` where `ρ >= -1` and `np.nan` elsewhere.
        Correlations below `-1` only arise from entries that never found a match.
    """
    ρ = np.asarray(ρ, dtype=np.float64)
    with np.errstate(invalid="ignore"):
        D = np.sqrt(np.maximum(2.0 * m * (1.0 - ρ), 0.0))
        D = np.where(ρ >= -1.0, D, np.nan)

    if D.ndim == 0:
        return float(D)

    return D


def to_correlation(D, m):
    """
    Convert z-normalized Euclidean distance(s) into Pearson correlation(s)

    Parameters
    ----------
    D : float or numpy.ndarray
        z-normalized Euclidean distance(s)

    m : int
        Window size

    Returns
    -------
    ρ : float or numpy.ndarray
        `1 - D ** 2 / (2 * m)`
    """
    return 1.0 - np.square(D) / (2.0 * m)


class mpentry(NamedTuple):
    """
    A single matrix profile entry

    Entries are ordered only by their Pearson correlation, where a higher
    correlation is a better match. Two entries with equal correlations but
    different indices are neither less nor greater than each other while still
    not being equal.

    Parameters
    ----------
    correlation : float
        Pearson correlation of the best match found so far

    index : int
        Zero-based index of the best match or `-1` when no match was found
    """

    correlation: float
    index: int

    def __lt__(self, other):
        return self.correlation < other.correlation

    def __le__(self, other):
        return self.correlation <= other.correlation

    def __gt__(self, other):
        return self.correlation > other.correlation

    def __ge__(self, other):
        return self.correlation >= other.correlation

    @classmethod
    def sentinel(cls):
        return cls(SENTINEL_CORRELATION, SENTINEL_INDEX)

    @classmethod
    def from_uint64(cls, value):
        ρ, I = unpack(value)
        return cls(ρ, int(I))

    def to_uint64(self):
        return pack(self.correlation, self.index)

    @property
    def is_sentinel(self):
        return self.correlation < -1.0

    def distance(self, m):
        """
        Parameters
        ----------
        m : int
            Window size

        Returns
        -------
        out : float
            The z-normalized Euclidean distance or `np.nan` for a sentinel
        """
        return to_distance(self.correlation, m)
