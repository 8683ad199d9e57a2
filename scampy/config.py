# SCAMPY
# Copyright 2019 TD Ameritrade. Released under the terms of the 3-Clause BSD license.
# SCAMPY is derived from STUMPY, a trademark of TD Ameritrade IP Company, Inc.

import warnings

_SCAMPY_DEFAULTS = {
    "SCAMPY_TEST_PRECISION": 5,
    "SCAMPY_EXCL_ZONE_DENOM": 4,
    "SCAMPY_MAX_TILE_SIZE": 1 << 20,
    "SCAMPY_MAX_MATCHES_PER_TILE": 1 << 16,
    "SCAMPY_OUTPUT_PRECISION": 10,
    "SCAMPY_FASTMATH_TRUE": True,
    "SCAMPY_FASTMATH_FLAGS": {"nsz", "arcp", "contract", "afn", "reassoc"},
}

SCAMPY_TEST_PRECISION = _SCAMPY_DEFAULTS["SCAMPY_TEST_PRECISION"]
SCAMPY_EXCL_ZONE_DENOM = _SCAMPY_DEFAULTS["SCAMPY_EXCL_ZONE_DENOM"]
SCAMPY_MAX_TILE_SIZE = _SCAMPY_DEFAULTS["SCAMPY_MAX_TILE_SIZE"]
SCAMPY_MAX_MATCHES_PER_TILE = _SCAMPY_DEFAULTS["SCAMPY_MAX_MATCHES_PER_TILE"]
SCAMPY_OUTPUT_PRECISION = _SCAMPY_DEFAULTS["SCAMPY_OUTPUT_PRECISION"]
SCAMPY_FASTMATH_TRUE = _SCAMPY_DEFAULTS["SCAMPY_FASTMATH_TRUE"]
SCAMPY_FASTMATH_FLAGS = _SCAMPY_DEFAULTS["SCAMPY_FASTMATH_FLAGS"]


def _reset(var=None):
    """
    Reset the value of a configuration variable(s) to their default value(s)

    Parameters
    ----------
    var : str, default None
        The name of the configuration variable. If None, then all
        configuration variables are reset to their default values.

    Returns
    -------
    None
    """
    config_vars = [
        k for k, _ in globals().items() if k.isupper() and k.startswith("SCAMPY")
    ]

    if var is None:
        for config_var in config_vars:
            globals()[config_var] = _SCAMPY_DEFAULTS[config_var]
    elif var in config_vars:
        globals()[var] = _SCAMPY_DEFAULTS[var]
    else:  # pragma: no cover
        msg = (
            f"Configuration reset was skipped for unrecognized '_SCAMPY_DEFAULT[{var}]'"
        )
        warnings.warn(msg)

    return
