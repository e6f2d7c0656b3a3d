from enum import StrEnum
from typing import Protocol


class Scheme(StrEnum):
    """Address prefixes understood by the endpoint resolver"""

    UNIX = "unix://"
    HTTP = "http://"


class ByteStream(Protocol):
    """Readable side of an open stats endpoint"""

    async def read(self, n: int = -1) -> bytes: ...
