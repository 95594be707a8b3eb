"""Fixed byte layouts of the store's binary identifiers."""
from typing import Final

MODEL_ID_SIZE: Final[int] = 16
ELEMENT_ID_SIZE: Final[int] = 20
ELEMENT_FLAGS_SIZE: Final[int] = 4
ELEMENT_ID_WITH_FLAGS_SIZE: Final[int] = ELEMENT_FLAGS_SIZE + ELEMENT_ID_SIZE   # 24
XREF_SIZE: Final[int] = MODEL_ID_SIZE + ELEMENT_ID_WITH_FLAGS_SIZE               # 40

MODEL_URN_PREFIX: Final[str] = "urn:adsk.dtm:"
FACILITY_URN_PREFIX: Final[str] = "urn:adsk.dtt:"
