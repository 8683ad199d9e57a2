# SCAMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# SCAMPY is derived from STUMPY, a trademark of TD Ameritrade IP Company, Inc.

import logging
import os
from collections import deque

import numpy as np

from . import config, core, output
from .mprofile import PrecisionType, ProfileType, check_precision_type, mprofile
from .scamp import KernelError, SCAMPArgs, _run_join, init_profile_memory

logger = logging.getLogger(__name__)


class _segment:
    """
    An accepted segment that owns its (read-only) samples and its running profile
    """

    __slots__ = ("T", "profile")

    def __init__(self, T, profile):
        self.T = T
        self.T.flags.writeable = False
        self.profile = profile

    def __len__(self):
        return self.T.shape[0]


class scampi:
    """
    A class to incrementally compute the matrix profiles of a growing collection of
    time series segments

    Every new segment is joined against every previously accepted segment (in both
    directions) and against itself. The profile of each accepted segment therefore
    always holds the best match found across all accepted segments so far. Matrix
    profile indices refer to a position within the segment where the match was
    found.

    Parameters
    ----------
    m : int
        Window size

    precision : PrecisionType, default PrecisionType.PRECISION_DOUBLE
        The floating point precision used by the kernel

    profile_type : ProfileType, default ProfileType.PROFILE_TYPE_1NN_INDEX
        The kind of profile maintained for every segment. Only
        `PROFILE_TYPE_1NN_INDEX` can be merged incrementally.

    kernel : callable, default None
        The tile kernel. When `None`, the default numba kernel is used.

    max_tile_size : int, default None
        The maximum number of subsequences along either side of a tile. Defaults to
        `config.SCAMPY_MAX_TILE_SIZE`.

    Attributes
    ----------
    n_segments_ : int
        The number of accepted segments

    segments_ : list
        The (read-only) samples of every accepted segment in acceptance order

    profiles_ : list
        The `mprofile` of every accepted segment in acceptance order

    P_ : list
        The matrix profile (z-normalized Euclidean distances) of every accepted
        segment

    I_ : list
        The matrix profile indices of every accepted segment

    Methods
    -------
    add_segment(T)
        Queue a new segment

    process_pending()
        Join every queued segment, in arrival order, and accept it

    write_profiles(directory_prefix, output_pearson=False)
        Write the matrix profile and matrix profile indices of every accepted segment

    Examples
    --------
    >>> import scampy
    >>> import numpy as np
    >>> stream = scampy.scampi(m=3)
    >>> stream.add_segment(np.array([584., -11., 23., 79., 1001., 0., -19.]))
    >>> stream.add_segment(np.array([584., -11., 23., 79., 1001., 0., -19.]))
    >>> stream.process_pending()
    >>> stream.I_[0]
    array([0, 1, 2, 3, 4])
    """

    def __init__(
        self,
        m,
        precision=PrecisionType.PRECISION_DOUBLE,
        profile_type=ProfileType.PROFILE_TYPE_1NN_INDEX,
        kernel=None,
        max_tile_size=None,
    ):
        """
        Initialize the `scampi` object

        Parameters
        ----------
        m : int
            Window size

        precision : PrecisionType, default PrecisionType.PRECISION_DOUBLE
            The floating point precision used by the kernel

        profile_type : ProfileType, default ProfileType.PROFILE_TYPE_1NN_INDEX
            The kind of profile maintained for every segment

        kernel : callable, default None
            The tile kernel. When `None`, the default numba kernel is used.

        max_tile_size : int, default None
            The maximum number of subsequences along either side of a tile
        """
        core.check_window_size(m)
        if profile_type != ProfileType.PROFILE_TYPE_1NN_INDEX:
            msg = (
                "Only `ProfileType.PROFILE_TYPE_1NN_INDEX` profiles can be updated "
                + f"incrementally but found {profile_type!r}"
            )
            raise ValueError(msg)

        self._m = m
        self._precision = check_precision_type(precision)
        self._profile_type = ProfileType(profile_type)
        self._kernel = kernel
        if max_tile_size is None:
            max_tile_size = config.SCAMPY_MAX_TILE_SIZE
        self._max_tile_size = max_tile_size

        self._pending = deque()
        self._segments = []
        self._failed = False

    def add_segment(self, T):
        """
        Queue a new segment. Nothing is computed until `process_pending` is called.

        Parameters
        ----------
        T : numpy.ndarray
            The samples of the new segment. A `float64` copy is stored.

        Returns
        -------
        None
        """
        self._pending.append(np.array(T, dtype=np.float64))

    add_data = add_segment

    def _args(self, has_b):
        return SCAMPArgs(
            window=self._m,
            profile_type=self._profile_type,
            precision=self._precision,
            max_tile_size=self._max_tile_size,
            compute_rows=True,
            compute_cols=True,
            has_b=has_b,
        )

    def process_pending(self):
        """
        Drain the queue of pending segments in arrival (FIFO) order

        Each segment is cross-joined against every accepted segment (oldest first)
        with both profiles updated, self-joined, and then accepted. A segment that is
        shorter than the window size is skipped with a warning.

        Parameters
        ----------
        None

        Returns
        -------
        None

        Raises
        ------
        KernelError
            If the kernel fails. This instance can no longer be updated afterwards.

        RuntimeError
            If a previous call failed
        """
        if self._failed:
            raise RuntimeError(
                "A previous kernel failure left this `scampi` in an invalid state"
            )

        while self._pending:
            T = self._pending.popleft()
            profile = mprofile(self._profile_type, self._m)
            if not init_profile_memory(T, None, self._args(False), profile):
                logger.warning(
                    f"Skipping a segment of length {T.shape[0]} that is too short "
                    f"for a window size of {self._m}"
                )
                continue

            try:
                for accepted in self._segments:
                    _run_join(
                        T,
                        accepted.T,
                        profile,
                        accepted.profile,
                        self._args(True),
                        self._kernel,
                    )
                _run_join(T, None, profile, None, self._args(False), self._kernel)
            except KernelError:
                self._failed = True
                logger.error(
                    f"The kernel failed while joining segment {len(self._segments)}"
                )
                raise

            self._segments.append(_segment(T, profile))
            logger.debug(
                f"Accepted segment {len(self._segments) - 1} of length {T.shape[0]}"
            )

    update_mp = process_pending

    def write_profiles(self, directory_prefix, output_pearson=False):
        """
        Write the matrix profile and the matrix profile indices of every accepted
        segment to `<directory_prefix>mp_<i>` and `<directory_prefix>mpi_<i>`,
        respectively, where `i` is the (zero-based) acceptance order

        Parameters
        ----------
        directory_prefix : str
            The path prefix of all written files, typically a directory with a
            trailing separator

        output_pearson : bool, default False
            Write Pearson correlations rather than z-normalized Euclidean distances

        Returns
        -------
        None
        """
        directory_prefix = os.fspath(directory_prefix)
        for i, seg in enumerate(self._segments):
            output.write_profile(
                f"{directory_prefix}mp_{i}",
                f"{directory_prefix}mpi_{i}",
                seg.profile,
                output_pearson,
                self._m,
            )

    write_mp = write_profiles

    @property
    def n_segments_(self):
        """
        Get the number of accepted segments
        """
        return len(self._segments)

    @property
    def n_pending_(self):
        """
        Get the number of queued segments
        """
        return len(self._pending)

    @property
    def segments_(self):
        """
        Get the (read-only) samples of every accepted segment
        """
        return [seg.T for seg in self._segments]

    @property
    def profiles_(self):
        """
        Get the profile of every accepted segment
        """
        return [seg.profile for seg in self._segments]

    @property
    def P_(self):
        """
        Get the matrix profile of every accepted segment
        """
        return [seg.profile.P_ for seg in self._segments]

    @property
    def I_(self):
        """
        Get the matrix profile indices of every accepted segment
        """
        return [seg.profile.I_ for seg in self._segments]
