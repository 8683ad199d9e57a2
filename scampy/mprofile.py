# SCAMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# SCAMPY is derived from STUMPY, a trademark of TD Ameritrade IP Company, Inc.

import heapq
from enum import IntEnum
from typing import NamedTuple

import numpy as np

from . import mpentry


class ProfileType(IntEnum):
    PROFILE_TYPE_INVALID = 0
    PROFILE_TYPE_1NN_INDEX = 1
    PROFILE_TYPE_SUM_THRESH = 2
    PROFILE_TYPE_1NN = 3
    PROFILE_TYPE_APPROX_ALL_NEIGHBORS = 4


class PrecisionType(IntEnum):
    PRECISION_INVALID = 0
    PRECISION_SINGLE = 1
    PRECISION_MIXED = 2
    PRECISION_DOUBLE = 3


_PROFILE_TYPE_NAMES = {
    "1NN_INDEX": ProfileType.PROFILE_TYPE_1NN_INDEX,
    "SUM_THRESH": ProfileType.PROFILE_TYPE_SUM_THRESH,
    "1NN": ProfileType.PROFILE_TYPE_1NN,
    "ALL_NEIGHBORS": ProfileType.PROFILE_TYPE_APPROX_ALL_NEIGHBORS,
}


def parse_profile_type(s):
    """
    Map a profile type name onto a `ProfileType`

    Parameters
    ----------
    s : str
        One of `"1NN_INDEX"`, `"1NN"`, `"SUM_THRESH"`, or `"ALL_NEIGHBORS"`

    Returns
    -------
    profile_type : ProfileType
        The matching profile type or `ProfileType.PROFILE_TYPE_INVALID` for any
        unrecognized name
    """
    return _PROFILE_TYPE_NAMES.get(s, ProfileType.PROFILE_TYPE_INVALID)


def get_precision_type(doublep, mixedp, singlep):
    """
    Select a `PrecisionType` from a set of (mutually exclusive) flags

    Parameters
    ----------
    doublep : bool
        Request double precision

    mixedp : bool
        Request mixed precision

    singlep : bool
        Request single precision

    Returns
    -------
    precision_type : PrecisionType
        The first requested precision (in the order double, mixed, single) or
        `PrecisionType.PRECISION_INVALID` when no flag is set
    """
    if doublep:
        return PrecisionType.PRECISION_DOUBLE
    if mixedp:
        return PrecisionType.PRECISION_MIXED
    if singlep:
        return PrecisionType.PRECISION_SINGLE

    return PrecisionType.PRECISION_INVALID


def check_profile_type(profile_type):
    """
    Parameters
    ----------
    profile_type : ProfileType or int
        The profile type to validate

    Returns
    -------
    profile_type : ProfileType
        The validated profile type
    """
    try:
        profile_type = ProfileType(profile_type)
    except ValueError:
        profile_type = ProfileType.PROFILE_TYPE_INVALID

    if profile_type == ProfileType.PROFILE_TYPE_INVALID:
        raise ValueError(f"Invalid profile type: {profile_type!r}")

    return profile_type


def check_precision_type(precision_type):
    """
    Parameters
    ----------
    precision_type : PrecisionType or int
        The precision type to validate

    Returns
    -------
    precision_type : PrecisionType
        The validated precision type
    """
    try:
        precision_type = PrecisionType(precision_type)
    except ValueError:
        precision_type = PrecisionType.PRECISION_INVALID

    if precision_type == PrecisionType.PRECISION_INVALID:
        raise ValueError(f"Invalid precision type: {precision_type!r}")

    return precision_type


class match(NamedTuple):
    """
    A single (approximate) all-neighbors match

    The correlation is the first field so that a heap of matches is keyed on it.
    """

    corr: float
    row: int
    col: int


class mprofile:
    """
    A matrix profile of one of the supported profile types

    Parameters
    ----------
    profile_type : ProfileType
        The kind of profile stored in `data`

    m : int
        Window size

    Attributes
    ----------
    data : numpy.ndarray or list
        For `PROFILE_TYPE_1NN_INDEX`, a `uint64` array of packed entries. For
        `PROFILE_TYPE_1NN`, a `float32` array of Pearson correlations. For
        `PROFILE_TYPE_SUM_THRESH`, a `float64` array of thresholded sums. For
        `PROFILE_TYPE_APPROX_ALL_NEIGHBORS`, a list (one element per row) of
        min-heaps of `match` records.

    matrix : numpy.ndarray
        A dense reduced all-neighbors matrix. This is `None` until it is assigned.

    P_ : numpy.ndarray
        The matrix profile as z-normalized Euclidean distances (1NN kinds only)

    I_ : numpy.ndarray
        The zero-based matrix profile indices (`PROFILE_TYPE_1NN_INDEX` only)
    """

    def __init__(self, profile_type, m, data=None):
        self.profile_type = ProfileType(profile_type)
        self.m = m
        self.data = data
        self.matrix = None

    def __len__(self):
        if self.data is None:
            return 0
        return len(self.data)

    def __repr__(self):
        return f"mprofile({self.profile_type.name}, m={self.m}, len={len(self)})"

    def alloc(self, l):
        """
        Allocate `l` entries, all holding the "no match yet" value for this kind

        Parameters
        ----------
        l : int
            Matrix profile length

        Returns
        -------
        self : mprofile
            This profile
        """
        if self.profile_type == ProfileType.PROFILE_TYPE_1NN_INDEX:
            self.data = mpentry.full(l)
        elif self.profile_type == ProfileType.PROFILE_TYPE_1NN:
            self.data = np.full(l, mpentry.SENTINEL_CORRELATION, dtype=np.float32)
        elif self.profile_type == ProfileType.PROFILE_TYPE_SUM_THRESH:
            self.data = np.zeros(l, dtype=np.float64)
        elif self.profile_type == ProfileType.PROFILE_TYPE_APPROX_ALL_NEIGHBORS:
            self.data = [[] for _ in range(l)]
        else:  # pragma: no cover
            raise ValueError(f"Cannot allocate a profile of type {self.profile_type}")

        return self

    def copy(self):
        """
        Parameters
        ----------
        None

        Returns
        -------
        out : mprofile
            A deep copy of this profile
        """
        out = mprofile(self.profile_type, self.m)
        if self.profile_type == ProfileType.PROFILE_TYPE_APPROX_ALL_NEIGHBORS:
            out.data = None if self.data is None else [list(h) for h in self.data]
        elif self.data is not None:
            out.data = self.data.copy()
        if self.matrix is not None:
            out.matrix = self.matrix.copy()

        return out

    def push_matches(self, rows, cols, corrs):
        """
        Push all-neighbors matches onto their per-row heaps

        Parameters
        ----------
        rows : numpy.ndarray
            The row (query) index of each match

        cols : numpy.ndarray
            The column (neighbor) index of each match

        corrs : numpy.ndarray
            The Pearson correlation of each match

        Returns
        -------
        None
        """
        for row, col, corr in zip(rows.tolist(), cols.tolist(), corrs.tolist()):
            heapq.heappush(self.data[row], match(corr, row, col))

    def _correlations(self):
        if self.profile_type == ProfileType.PROFILE_TYPE_1NN_INDEX:
            ρ, _ = mpentry.unpack(self.data)
            return ρ
        if self.profile_type == ProfileType.PROFILE_TYPE_1NN:
            return self.data
        msg = f"Nearest neighbor correlations are not available for {self.profile_type}"
        raise ValueError(msg)

    @property
    def ρ_(self):
        """
        Get the best Pearson correlation of each subsequence
        """
        return self._correlations()

    @property
    def P_(self):
        """
        Get the matrix profile as z-normalized Euclidean distances
        """
        return mpentry.to_distance(self._correlations(), self.m)

    @property
    def I_(self):
        """
        Get the zero-based matrix profile indices (`-1` when there is no match)
        """
        if self.profile_type != ProfileType.PROFILE_TYPE_1NN_INDEX:
            msg = f"Matrix profile indices are not available for {self.profile_type}"
            raise ValueError(msg)
        ρ, I = mpentry.unpack(self.data)
        I = I.astype(np.int64)
        I[ρ < -1.0] = -1

        return I
