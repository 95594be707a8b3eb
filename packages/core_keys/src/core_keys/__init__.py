from .constants import (
    MODEL_ID_SIZE,
    ELEMENT_ID_SIZE,
    ELEMENT_FLAGS_SIZE,
    ELEMENT_ID_WITH_FLAGS_SIZE,
    XREF_SIZE,
    MODEL_URN_PREFIX,
    FACILITY_URN_PREFIX,
)
from .errors import MalformedKey, MalformedXref
from .keys import *
from .keys import __all__ as _keys_all

__all__ = [
    "MODEL_ID_SIZE", "ELEMENT_ID_SIZE", "ELEMENT_FLAGS_SIZE",
    "ELEMENT_ID_WITH_FLAGS_SIZE", "XREF_SIZE",
    "MODEL_URN_PREFIX", "FACILITY_URN_PREFIX",
    "MalformedKey", "MalformedXref",
    *_keys_all,
]
