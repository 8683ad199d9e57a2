# SCAMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# SCAMPY is derived from STUMPY, a trademark of TD Ameritrade IP Company, Inc.

import logging
import os

import numpy as np

logger = logging.getLogger(__name__)


def read_value(token, line_idx, filename=None):
    """
    Parse a single time series value

    Parameters
    ----------
    token : str
        The text of a single whitespace-delimited value. An empty string stands
        for a blank line.

    line_idx : int
        The (zero-based) index of the line that `token` was read from

    filename : str, default None
        The file that `token` was read from. This is only used for messages.

    Returns
    -------
    value : float
        The parsed value or `np.nan` for an empty token

    Raises
    ------
    ValueError
        If `token` cannot be parsed as a float
    """
    if not token:
        logger.warning(f"Got empty line #{line_idx + 1} in input file {filename}")
        return np.nan

    try:
        return float(token)
    except ValueError as e:
        msg = f"Could not parse line number {line_idx + 1} ({token!r}) from {filename}"
        raise ValueError(msg) from e


def read_file(filename):
    """
    Read a time series of whitespace- or newline-delimited values

    A blank line in the middle of the file is read as `np.nan`. Blank lines at the
    end of the file are ignored.

    Parameters
    ----------
    filename : str
        The path of the input file

    Returns
    -------
    T : numpy.ndarray
        The time series as `float64`

    Raises
    ------
    FileNotFoundError
        If `filename` does not exist

    ValueError
        If a value cannot be parsed
    """
    filename = os.fspath(filename)
    if not os.path.isfile(filename):
        logger.error(f"Unable to open {filename} for reading")
        raise FileNotFoundError(f"Unable to open {filename} for reading")

    logger.info(f"Reading data from {filename}")
    with open(filename) as f:
        lines = f.read().splitlines()

    while lines and not lines[-1].strip():
        lines.pop()

    values = []
    for line_idx, line in enumerate(lines):
        tokens = line.split()
        if not tokens:
            values.append(read_value("", line_idx, filename))
        for token in tokens:
            values.append(read_value(token, line_idx, filename))

    T = np.array(values, dtype=np.float64)
    logger.info(f"Read {T.shape[0]} values from file {filename}")

    return T
