from . import config  # noqa: F401
from .exclusion import get_excl_zone, get_exclusion  # noqa: F401
from .loader import read_file  # noqa: F401
from .mpentry import pack, sentinel, to_distance, unpack  # noqa: F401
from .mprofile import (  # noqa: F401
    PrecisionType,
    ProfileType,
    get_precision_type,
    mprofile,
    parse_profile_type,
)
from .output import reduce_all_neighbors, write_matrix, write_profile  # noqa: F401
from .scamp import KernelError, SCAMPArgs, scamp  # noqa: F401
from .scampi import scampi  # noqa: F401
